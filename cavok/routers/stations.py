"""Station cache endpoints."""

from fastapi import APIRouter, Depends

from cavok.exceptions import WeatherError
from cavok.routers.deps import get_weather_service, weather_http_error
from cavok.schemas.weather import StationRefreshResult, StationResponse
from cavok.services.weather import WeatherService

router = APIRouter(prefix="/api/stations", tags=["stations"])


@router.get("", response_model=list[StationResponse])
async def list_stations(service: WeatherService = Depends(get_weather_service)) -> list[StationResponse]:
    """List cached stations."""
    stations = await service.stations()
    return [StationResponse.model_validate(s) for s in stations]


@router.post("/refresh", response_model=StationRefreshResult)
async def refresh_stations(service: WeatherService = Depends(get_weather_service)) -> StationRefreshResult:
    """Reload stations for the monitored region.

    Cached observations are dropped with the old stations; refresh
    observations afterwards.
    """
    try:
        stations = await service.refresh_stations()
    except WeatherError as e:
        raise weather_http_error(e) from e

    return StationRefreshResult(
        success=True,
        station_count=len(stations),
        message=f"Found {len(stations)} stations...",
    )
