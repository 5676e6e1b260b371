"""Monitored weather region: a persisted center and radius."""

import logging
import math
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.attributes import flag_modified

from cavok.models import SystemSetting
from cavok.projection import (
    EARTH_RADIUS_KM,
    BoundingBox,
    Coordinate,
    TileID,
    distance,
    region_bounding_box,
    tile_range,
)

logger = logging.getLogger(__name__)

REGION_KEY = "weather.region"

NORTH_POLE = Coordinate.from_degrees(0.0, 90.0)
SOUTH_POLE = Coordinate.from_degrees(0.0, -90.0)


@dataclass(frozen=True)
class Region:
    """Center and radius (km) of the area whose stations are tracked."""

    center: Coordinate
    radius: float

    def in_range(self, latitude: float, longitude: float, earth_radius_km: float = EARTH_RADIUS_KM) -> bool:
        """True if the point (degrees) lies within ``radius`` of the center."""
        point = Coordinate.from_degrees(longitude, latitude)
        return distance(self.center, point, earth_radius_km) <= self.radius

    def bounding_box(self, earth_radius_km: float = EARTH_RADIUS_KM) -> BoundingBox:
        return region_bounding_box(self.center, self.radius, earth_radius_km)

    def search_box(self, earth_radius_km: float = EARTH_RADIUS_KM) -> BoundingBox | None:
        """Box for narrowing upstream station queries.

        None when the circle covers a pole or crosses the antimeridian, where a
        corner-based box would cut part of the region off.
        """
        pole = min(
            distance(self.center, NORTH_POLE, earth_radius_km),
            distance(self.center, SOUTH_POLE, earth_radius_km),
        )
        if pole <= self.radius:
            return None
        bbox = self.bounding_box(earth_radius_km)
        ll, ur = bbox.lower_left, bbox.upper_right
        if any(math.isnan(v) for v in (ll.x, ll.y, ur.x, ur.y)):
            return None
        if ll.lon < -180.0 or ur.lon > 180.0 or ll.x >= ur.x:
            return None
        return bbox

    def tile_range(self, zoom: int, earth_radius_km: float = EARTH_RADIUS_KM) -> tuple[TileID, TileID]:
        return tile_range(self.bounding_box(earth_radius_km), zoom)

    def to_value(self) -> dict:
        return {
            "longitude": self.center.lon,
            "latitude": self.center.lat,
            "radius": self.radius,
        }

    @classmethod
    def from_value(cls, value: dict) -> "Region":
        return cls(
            center=Coordinate.from_degrees(value["longitude"], value["latitude"]),
            radius=float(value["radius"]),
        )


async def load_region(db: AsyncSession) -> Region | None:
    """Read the persisted region, if one was ever saved."""
    result = await db.execute(select(SystemSetting).where(SystemSetting.key == REGION_KEY))
    setting = result.scalar()
    if not setting:
        return None
    try:
        return Region.from_value(setting.value)
    except (KeyError, TypeError, ValueError):
        logger.warning(f"Ignoring malformed region setting: {setting.value!r}")
        return None


async def save_region(db: AsyncSession, region: Region) -> bool:
    """Stage ``region`` in ``db``. Returns whether the stored value changes.

    The caller owns the transaction, so dependent data can be cleared in the
    same commit.
    """
    value = region.to_value()
    result = await db.execute(select(SystemSetting).where(SystemSetting.key == REGION_KEY))
    setting = result.scalar()

    if setting is None:
        db.add(SystemSetting(key=REGION_KEY, value=value))
        return True
    if setting.value == value:
        return False

    setting.value = value
    flag_modified(setting, "value")
    return True


class RegionStore:
    """Loads the region in its own session."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def load(self) -> Region | None:
        async with self._session_maker() as db:
            return await load_region(db)
