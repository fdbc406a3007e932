from __future__ import annotations

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Tuple

from pyproj import Transformer

from bal.errors import InvalidCoordinate

SOURCE_CRS = "EPSG:4326"  # WGS84 geodetic
TARGET_CRS = "EPSG:2154"  # RGF93 / Lambert-93

PROJECTED_PRECISION = 2
GEODETIC_PRECISION = 6

# Transformer objects are immutable once built; one per process is enough
_TRANSFORMER = Transformer.from_crs(SOURCE_CRS, TARGET_CRS, always_xy=True)


def round_coordinate(value: float, precision: int) -> float:
    """Round half away from zero on the decimal representation of ``value``.

    ``round_coordinate(1.999999, 2) == 2.0`` while the builtin ``round`` works
    on the binary value and rounds ties to even.
    """
    quantum = Decimal(1).scaleb(-int(precision))
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def validate_lon_lat(longitude: float, latitude: float) -> Tuple[float, float]:
    if isinstance(longitude, bool) or isinstance(latitude, bool):
        raise InvalidCoordinate(longitude, latitude, "not a number")
    try:
        lon = float(longitude)
        lat = float(latitude)
    except (TypeError, ValueError):
        raise InvalidCoordinate(longitude, latitude, "not a number")
    if not (math.isfinite(lon) and math.isfinite(lat)):
        raise InvalidCoordinate(longitude, latitude, "non-finite value")
    if not -180.0 <= lon <= 180.0:
        raise InvalidCoordinate(longitude, latitude, "longitude outside [-180, 180]")
    if not -90.0 <= lat <= 90.0:
        raise InvalidCoordinate(longitude, latitude, "latitude outside [-90, 90]")
    return lon, lat


def project(longitude: float, latitude: float) -> Tuple[float, float]:
    """Project WGS84 (lon, lat) to Lambert-93 (x, y), rounded to 2 decimals."""
    lon, lat = validate_lon_lat(longitude, latitude)
    x, y = _TRANSFORMER.transform(lon, lat)
    if not (math.isfinite(x) and math.isfinite(y)):
        raise InvalidCoordinate(longitude, latitude, "outside projection domain")
    return round_coordinate(x, PROJECTED_PRECISION), round_coordinate(y, PROJECTED_PRECISION)


__all__ = [
    "round_coordinate",
    "validate_lon_lat",
    "project",
    "PROJECTED_PRECISION",
    "GEODETIC_PRECISION",
]
