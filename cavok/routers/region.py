"""Monitored region and tile conversion endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query

from cavok.config import Settings, get_settings
from cavok.exceptions import WeatherError
from cavok.projection import Coordinate, TileID, tile_bounding_box, tile_to_coordinate
from cavok.routers.deps import get_weather_service, weather_http_error
from cavok.schemas.region import (
    BoundingBoxResponse,
    CoordinateResponse,
    RegionRequest,
    RegionResponse,
    RegionUpdateResult,
    TileInfoResponse,
    TileRangeResponse,
    TileResponse,
)
from cavok.schemas.weather import StationResponse
from cavok.services.region import Region
from cavok.services.weather import WeatherService

router = APIRouter(prefix="/api", tags=["region"])


def _region_response(region: Region) -> RegionResponse:
    return RegionResponse(latitude=region.center.lat, longitude=region.center.lon, radius=region.radius)


def _to_region(data: RegionRequest) -> Region:
    return Region(center=Coordinate.from_degrees(data.longitude, data.latitude), radius=data.radius)


@router.get("/region", response_model=RegionResponse)
async def get_region(service: WeatherService = Depends(get_weather_service)) -> RegionResponse:
    """Get the monitored region."""
    region = await service.region()
    if region is None:
        raise HTTPException(status_code=404, detail="Select monitored region")
    return _region_response(region)


@router.put("/region", response_model=RegionUpdateResult)
async def update_region(
    data: RegionRequest,
    refresh: bool = Query(default=True, description="Reload stations and observations when the region changed"),
    service: WeatherService = Depends(get_weather_service),
) -> RegionUpdateResult:
    """Save the monitored region.

    A changed region clears cached stations and observations; with
    ``refresh`` they are fetched again for the new region right away.
    """
    region = _to_region(data)
    try:
        changed = await service.update_region(region)
    except WeatherError as e:
        raise weather_http_error(e) from e

    if not changed:
        message = "Region unchanged"
    elif not refresh:
        message = "Region changed, reload stations"
    else:
        try:
            stations = await service.refresh_stations()
            observations = await service.refresh_observations()
            message = f"Found {len(stations)} stations, {len(observations)} observations"
        except WeatherError as e:
            message = e.status_text

    return RegionUpdateResult(region=_region_response(region), changed=changed, message=message)


@router.post("/region/preview", response_model=list[StationResponse])
async def preview_region_stations(
    data: RegionRequest,
    service: WeatherService = Depends(get_weather_service),
) -> list[StationResponse]:
    """List upstream stations a region would track, without saving it."""
    try:
        records = await service.query_stations(_to_region(data))
    except WeatherError as e:
        raise weather_http_error(e) from e
    return [StationResponse.model_validate(r, from_attributes=True) for r in records]


@router.get("/region/tiles", response_model=TileRangeResponse)
async def get_region_tiles(
    zoom: int | None = Query(default=None, ge=0, le=22),
    service: WeatherService = Depends(get_weather_service),
    settings: Settings = Depends(get_settings),
) -> TileRangeResponse:
    """Inclusive tile range covering the monitored region."""
    region = await service.region()
    if region is None:
        raise HTTPException(status_code=409, detail="Select monitored region")

    level = settings.tile_zoom if zoom is None else zoom
    bbox = region.bounding_box(settings.earth_radius_km)
    lower_left, upper_right = region.tile_range(level, settings.earth_radius_km)
    return TileRangeResponse(
        lower_left=TileResponse.from_tile(lower_left),
        upper_right=TileResponse.from_tile(upper_right),
        bounding_box=BoundingBoxResponse.from_bbox(bbox),
    )


@router.get("/tiles/{level}/{x}/{y}", response_model=TileInfoResponse)
async def get_tile(level: int, x: int, y: int) -> TileInfoResponse:
    """Coordinate and bounding box of a tile."""
    if not 0 <= level <= 30:
        raise HTTPException(status_code=400, detail="Invalid zoom level")
    if not (0 <= x < 2**level and 0 <= y < 2**level):
        raise HTTPException(status_code=400, detail="Tile outside the zoom level grid")

    tile = TileID(x=x, y=y, level=level)
    return TileInfoResponse(
        tile=TileResponse.from_tile(tile),
        coordinate=CoordinateResponse.from_coordinate(tile_to_coordinate(tile)),
        bounding_box=BoundingBoxResponse.from_bbox(tile_bounding_box(tile)),
    )
