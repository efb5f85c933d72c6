"""Geographic to display coordinate transforms.

Contour vertices are computed in WGS84. Map providers operating in mainland
China expect GCJ-02 ("Mars coordinates"), an obfuscated datum offset by up
to a few hundred meters. The transform applied to contour output is chosen
by configuration; outside China the GCJ-02 transform is the identity.

All transforms take and return ``(lng, lat)`` in degrees.
"""

from __future__ import annotations

import math
from collections.abc import Callable

from elevation_app.core import config

CoordinateTransform = Callable[[float, float], tuple[float, float]]

# Krasovsky 1940 ellipsoid used by GCJ-02
_SEMI_MAJOR_AXIS = 6378245.0
_ECCENTRICITY_SQ = 0.00669342162296594323


def identity(lng: float, lat: float) -> tuple[float, float]:
    return lng, lat


def is_in_china(lng: float, lat: float) -> bool:
    """Rough bounding box of the area where GCJ-02 offsets apply."""
    return 72.004 <= lng <= 137.8347 and 0.8293 <= lat <= 55.8271


def _transform_lat(x: float, y: float) -> float:
    ret = -100.0 + 2.0 * x + 3.0 * y + 0.2 * y * y + 0.1 * x * y
    ret += 0.2 * math.sqrt(abs(x))
    ret += (20.0 * math.sin(6.0 * x * math.pi) + 20.0 * math.sin(2.0 * x * math.pi)) * 2.0 / 3.0
    ret += (20.0 * math.sin(y * math.pi) + 40.0 * math.sin(y / 3.0 * math.pi)) * 2.0 / 3.0
    ret += (160.0 * math.sin(y / 12.0 * math.pi) + 320.0 * math.sin(y * math.pi / 30.0)) * 2.0 / 3.0
    return ret


def _transform_lng(x: float, y: float) -> float:
    ret = 300.0 + x + 2.0 * y + 0.1 * x * x + 0.1 * x * y
    ret += 0.1 * math.sqrt(abs(x))
    ret += (20.0 * math.sin(6.0 * x * math.pi) + 20.0 * math.sin(2.0 * x * math.pi)) * 2.0 / 3.0
    ret += (20.0 * math.sin(x * math.pi) + 40.0 * math.sin(x / 3.0 * math.pi)) * 2.0 / 3.0
    ret += (150.0 * math.sin(x / 12.0 * math.pi) + 300.0 * math.sin(x / 30.0 * math.pi)) * 2.0 / 3.0
    return ret


def _gcj02_offset(lng: float, lat: float) -> tuple[float, float]:
    d_lat = _transform_lat(lng - 105.0, lat - 35.0)
    d_lng = _transform_lng(lng - 105.0, lat - 35.0)
    rad_lat = lat / 180.0 * math.pi
    magic = 1 - _ECCENTRICITY_SQ * math.sin(rad_lat) ** 2
    sqrt_magic = math.sqrt(magic)
    d_lat = (d_lat * 180.0) / (
        (_SEMI_MAJOR_AXIS * (1 - _ECCENTRICITY_SQ)) / (magic * sqrt_magic) * math.pi
    )
    d_lng = (d_lng * 180.0) / (_SEMI_MAJOR_AXIS / sqrt_magic * math.cos(rad_lat) * math.pi)
    return d_lng, d_lat


def wgs84_to_gcj02(lng: float, lat: float) -> tuple[float, float]:
    """Shift a WGS84 coordinate into GCJ-02."""
    if not is_in_china(lng, lat):
        return lng, lat
    d_lng, d_lat = _gcj02_offset(lng, lat)
    return lng + d_lng, lat + d_lat


def gcj02_to_wgs84(lng: float, lat: float) -> tuple[float, float]:
    """Approximate inverse of wgs84_to_gcj02, accurate to a few meters."""
    if not is_in_china(lng, lat):
        return lng, lat
    d_lng, d_lat = _gcj02_offset(lng, lat)
    return lng - d_lng, lat - d_lat


_TRANSFORMS: dict[config.DisplayCRS, CoordinateTransform] = {
    "wgs84": identity,
    "gcj02": wgs84_to_gcj02,
}


def get_display_transform(display_crs: config.DisplayCRS) -> CoordinateTransform:
    """Return the transform from WGS84 into the configured display CRS."""
    return _TRANSFORMS[display_crs]
