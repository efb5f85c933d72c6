"""Normalization of caller-supplied map bounds.

Map renderers describe the visible region in several shapes. Leaflet hands
out a ``LatLngBounds`` object with ``getSouth()``/``getNorth()``/
``getWest()``/``getEast()`` accessors, while JSON clients send plain
rectangles under varying field names. ``normalize_bounds`` is the single
adapter between those shapes and the canonical ``TileBounds`` rectangle the
engine uses internally. It fails closed: anything that does not resolve to
four finite numbers yields None.

Example:
    Accessor objects and aliased mappings resolve to the same rectangle:
        >>> normalize_bounds({"south": 30, "north": 31, "west": 117, "east": 118})
        TileBounds(min_lat=30.0, max_lat=31.0, min_lng=117.0, max_lng=118.0)
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from elevation_app.core import errors
from elevation_app.manifest import models as manifest_models


# (snake_case accessor, camelCase accessor) per edge, in
# (min_lat, max_lat, min_lng, max_lng) order
_ACCESSORS = (
    ("get_south", "getSouth"),
    ("get_north", "getNorth"),
    ("get_west", "getWest"),
    ("get_east", "getEast"),
)

_ALIASES = (
    ("minLat", "min_lat", "south", "minLatitude", "latitudeMin"),
    ("maxLat", "max_lat", "north", "maxLatitude", "latitudeMax"),
    ("minLng", "min_lng", "west", "minLongitude", "longitudeMin"),
    ("maxLng", "max_lng", "east", "maxLongitude", "longitudeMax"),
)


def _from_accessors(bounds: Any) -> list[Any] | None:
    values = []
    for names in _ACCESSORS:
        method = next(
            (getattr(bounds, name) for name in names if callable(getattr(bounds, name, None))),
            None,
        )
        if method is None:
            return None
        values.append(method())
    return values


def _lookup(bounds: Any, key: str) -> Any:
    if isinstance(bounds, Mapping):
        return bounds.get(key)
    return getattr(bounds, key, None)


def _from_fields(bounds: Any) -> list[Any]:
    values = []
    for names in _ALIASES:
        values.append(
            next(
                (v for v in (_lookup(bounds, name) for name in names) if v is not None),
                None,
            )
        )
    return values


def _to_finite(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return None
    return numeric if math.isfinite(numeric) else None


def normalize_bounds(bounds: Any) -> manifest_models.TileBounds | None:
    """Resolve any supported bounds shape into a TileBounds rectangle.

    Accessor methods are tried first, then field aliases on a mapping or on
    plain attributes.

    Args:
        bounds: Leaflet-style accessor object, mapping, or object with
            rectangle attributes.

    Returns:
        The canonical rectangle, or None if the input does not resolve to
        four finite numbers or an accessor raises.
    """
    if bounds is None:
        return None

    try:
        raw = None if isinstance(bounds, Mapping) else _from_accessors(bounds)
    except (AttributeError, TypeError, ValueError):
        return None
    if raw is None:
        raw = _from_fields(bounds)

    numbers = [_to_finite(value) for value in raw]
    if any(value is None for value in numbers):
        return None

    min_lat, max_lat, min_lng, max_lng = numbers
    return manifest_models.TileBounds(
        min_lat=min_lat,  # type: ignore[arg-type]
        max_lat=max_lat,  # type: ignore[arg-type]
        min_lng=min_lng,  # type: ignore[arg-type]
        max_lng=max_lng,  # type: ignore[arg-type]
    )


def require_bounds(bounds: Any) -> manifest_models.TileBounds:
    """Like ``normalize_bounds`` but raising on unusable input.

    Raises:
        InvalidBoundsError: If the input does not resolve to four finite
            numbers.
    """
    normalized = normalize_bounds(bounds)
    if normalized is None:
        raise errors.InvalidBoundsError(f"Cannot normalize bounds: {bounds!r}")
    return normalized
