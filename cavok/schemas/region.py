"""Schemas for the monitored region and tile conversions."""

from pydantic import BaseModel, Field

from cavok.config import get_settings
from cavok.projection import BoundingBox, Coordinate, TileID


class RegionRequest(BaseModel):
    """Schema for selecting the monitored region."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., gt=-180, le=180)
    radius: float = Field(
        default_factory=lambda: get_settings().default_region_radius_km,
        gt=0,
        le=2000,
        description="Radius in kilometres",
    )


class RegionResponse(BaseModel):
    """Schema for the stored region."""

    latitude: float
    longitude: float
    radius: float


class RegionUpdateResult(BaseModel):
    """Result of saving a region."""

    region: RegionResponse
    changed: bool
    message: str


class CoordinateResponse(BaseModel):
    """A point in degrees."""

    latitude: float
    longitude: float

    @classmethod
    def from_coordinate(cls, c: Coordinate) -> "CoordinateResponse":
        return cls(latitude=c.lat, longitude=c.lon)


class BoundingBoxResponse(BaseModel):
    """Rectangle given by its lower-left and upper-right corners."""

    lower_left: CoordinateResponse
    upper_right: CoordinateResponse

    @classmethod
    def from_bbox(cls, bbox: BoundingBox) -> "BoundingBoxResponse":
        return cls(
            lower_left=CoordinateResponse.from_coordinate(bbox.lower_left),
            upper_right=CoordinateResponse.from_coordinate(bbox.upper_right),
        )


class TileResponse(BaseModel):
    """Web-Mercator tile index."""

    x: int
    y: int
    level: int

    @classmethod
    def from_tile(cls, tile: TileID) -> "TileResponse":
        return cls(x=tile.x, y=tile.y, level=tile.level)


class TileRangeResponse(BaseModel):
    """Inclusive tile range covering the region."""

    lower_left: TileResponse
    upper_right: TileResponse
    bounding_box: BoundingBoxResponse


class TileInfoResponse(BaseModel):
    """Geographic placement of a single tile."""

    tile: TileResponse
    coordinate: CoordinateResponse
    bounding_box: BoundingBoxResponse
