"""Web-Mercator tile math and great-circle helpers.

Coordinates are kept in radians (longitude ``x``, latitude ``y``); degrees only
appear at the edges (tile formulas and the public ``from_degrees`` helpers).
Tile indices follow the standard slippy-map scheme so that they line up with
any tile-based renderer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import NamedTuple

RADIANS_TO_DEGREES = 180.0 / math.pi
DEGREES_TO_RADIANS = math.pi / 180.0
EARTH_RADIUS_KM = 6371.01
# Web-Mercator stops at atan(sinh(pi)); tiles beyond it belong to the edge rows
MAX_LATITUDE = math.atan(math.sinh(math.pi))


@dataclass(frozen=True)
class Coordinate:
    """A point on the globe in radians."""

    x: float  # longitude
    y: float  # latitude

    @classmethod
    def from_degrees(cls, lon: float, lat: float) -> Coordinate:
        return cls(x=lon * DEGREES_TO_RADIANS, y=lat * DEGREES_TO_RADIANS)

    @property
    def degrees(self) -> tuple[float, float]:
        """(longitude, latitude) in degrees."""
        return self.x * RADIANS_TO_DEGREES, self.y * RADIANS_TO_DEGREES

    @property
    def lon(self) -> float:
        return self.x * RADIANS_TO_DEGREES

    @property
    def lat(self) -> float:
        return self.y * RADIANS_TO_DEGREES


class TileID(NamedTuple):
    """Web-Mercator tile index at a zoom level."""

    x: int
    y: int
    level: int


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned rectangle given by its lower-left and upper-right corners."""

    lower_left: Coordinate
    upper_right: Coordinate

    @property
    def ll(self) -> Coordinate:
        return self.lower_left

    @property
    def ur(self) -> Coordinate:
        return self.upper_right


def to_tile(coordinate: Coordinate, zoom: int, offset_x: int = 0, offset_y: int = 0) -> TileID:
    """Tile containing ``coordinate`` at ``zoom``, shifted by the given offsets.

    The offsets let callers step one tile past an edge, which is how
    ``tile_range`` turns a bounding box into an inclusive range.
    """
    scale = 2.0**zoom

    lon = coordinate.x * RADIANS_TO_DEGREES
    x = math.floor((lon + 180.0) / 360.0 * scale)

    lat = min(max(coordinate.y, -MAX_LATITUDE), MAX_LATITUDE)
    y = math.floor((1.0 - math.log(math.tan(lat) + 1.0 / math.cos(lat)) / math.pi) / 2.0 * scale)
    y = min(max(y, 0), int(scale) - 1)

    return TileID(x=x + offset_x, y=y + offset_y, level=zoom)


def tile_range(bbox: BoundingBox, zoom: int) -> tuple[TileID, TileID]:
    """Lower-left and upper-right tiles covering ``bbox``.

    Tile rows grow southwards, so the lower-left corner takes ``offset_y=1``
    and the upper-right corner ``offset_x=1``.
    """
    ll = to_tile(bbox.lower_left, zoom, offset_x=0, offset_y=1)
    ur = to_tile(bbox.upper_right, zoom, offset_x=1, offset_y=0)
    return ll, ur


def _tile_corner(x: int, y: int, level: int) -> Coordinate:
    """North-west corner of tile (x, y) at ``level``."""
    scale = 2.0**level

    lon = x / scale * 360.0 - 180.0

    n = math.pi - 2.0 * math.pi * y / scale
    lat = RADIANS_TO_DEGREES * math.atan(math.sinh(n))

    return Coordinate.from_degrees(lon, lat)


def tile_to_coordinate(tile: TileID) -> Coordinate:
    """Inverse projection: the north-west corner of ``tile``."""
    return _tile_corner(tile.x, tile.y, tile.level)


def tile_bounding_box(tile: TileID) -> BoundingBox:
    """Geographic extent of ``tile``."""
    return BoundingBox(
        lower_left=_tile_corner(tile.x, tile.y + 1, tile.level),
        upper_right=_tile_corner(tile.x + 1, tile.y, tile.level),
    )


def contains(bbox: BoundingBox, c: Coordinate) -> bool:
    """Strict containment; points on an edge are outside."""
    ll, ur = bbox.lower_left, bbox.upper_right
    return ll.x < c.x and ll.y < c.y and c.x < ur.x and c.y < ur.y


def destination(
    origin: Coordinate,
    distance_km: float,
    bearing_deg: float,
    earth_radius_km: float = EARTH_RADIUS_KM,
) -> Coordinate:
    """Point reached from ``origin`` after ``distance_km`` along ``bearing_deg``.

    Uses the spherical law of cosines. When ``sin(nA)`` vanishes (the result
    sits on a pole) the longitude is undefined and comes back as NaN; callers
    have to cope with that.
    """
    lat1 = origin.y
    lon1 = origin.x
    d_rad = bearing_deg * DEGREES_TO_RADIANS

    n_c = distance_km / earth_radius_km
    try:
        n_a = math.acos(
            math.cos(n_c) * math.cos(math.pi / 2 - lat1)
            + math.sin(math.pi / 2 - lat1) * math.sin(n_c) * math.cos(d_rad)
        )
        d_lon = math.asin(math.sin(n_c) * math.sin(d_rad) / math.sin(n_a))
    except (ValueError, ZeroDivisionError):
        return Coordinate(x=math.nan, y=math.nan)

    lat2 = math.pi / 2 - n_a
    lon2 = d_lon + lon1

    return Coordinate(x=lon2, y=lat2)


def distance(a: Coordinate, b: Coordinate, earth_radius_km: float = EARTH_RADIUS_KM) -> float:
    """Great-circle distance between two points in kilometres."""
    cos_angle = math.sin(a.y) * math.sin(b.y) + math.cos(a.y) * math.cos(b.y) * math.cos(b.x - a.x)
    # rounding can push identical points just past 1
    cos_angle = max(-1.0, min(1.0, cos_angle))
    return math.acos(cos_angle) * earth_radius_km


def region_bounding_box(
    center: Coordinate,
    radius_km: float,
    earth_radius_km: float = EARTH_RADIUS_KM,
) -> BoundingBox:
    """Box enclosing the circle of ``radius_km`` around ``center``."""
    north = destination(center, radius_km, 0, earth_radius_km)
    east = destination(center, radius_km, 90, earth_radius_km)
    south = destination(center, radius_km, 180, earth_radius_km)
    west = destination(center, radius_km, 270, earth_radius_km)
    return BoundingBox(
        lower_left=Coordinate(x=west.x, y=south.y),
        upper_right=Coordinate(x=east.x, y=north.y),
    )


def to_spherical_mercator(c: Coordinate) -> Coordinate:
    """Geographic coordinate to spherical-Mercator local space on the unit sphere."""
    return Coordinate(x=c.x, y=math.log(math.tan(math.pi / 4 + c.y / 2)))


def bbox_to_spherical_mercator(bbox: BoundingBox) -> BoundingBox:
    return BoundingBox(
        lower_left=to_spherical_mercator(bbox.lower_left),
        upper_right=to_spherical_mercator(bbox.upper_right),
    )
