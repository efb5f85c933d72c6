"""Tests for map bounds normalization.

Every supported input shape must resolve to the same canonical rectangle,
and anything that does not yield four finite numbers must be rejected.
"""

from __future__ import annotations

import math
import types
from typing import Any

import pytest

from elevation_app.core import errors
from elevation_app.manifest import models as manifest_models
from elevation_app.services import bounds as bounds_utils

EXPECTED = manifest_models.TileBounds(min_lat=30.0, max_lat=31.0, min_lng=117.0, max_lng=118.0)


class LeafletBounds:
    """Mimics a Leaflet LatLngBounds object."""

    def getSouth(self) -> float:  # noqa: N802
        return 30.0

    def getNorth(self) -> float:  # noqa: N802
        return 31.0

    def getWest(self) -> float:  # noqa: N802
        return 117.0

    def getEast(self) -> float:  # noqa: N802
        return 118.0


class SnakeBounds:
    """Accessor object using snake_case method names."""

    def get_south(self) -> float:
        return 30.0

    def get_north(self) -> float:
        return 31.0

    def get_west(self) -> float:
        return 117.0

    def get_east(self) -> float:
        return 118.0


@pytest.mark.parametrize(
    "raw",
    [
        {"minLat": 30, "maxLat": 31, "minLng": 117, "maxLng": 118},
        {"min_lat": 30, "max_lat": 31, "min_lng": 117, "max_lng": 118},
        {"south": 30, "north": 31, "west": 117, "east": 118},
        {"minLatitude": 30, "maxLatitude": 31, "minLongitude": 117, "maxLongitude": 118},
        {"latitudeMin": 30, "latitudeMax": 31, "longitudeMin": 117, "longitudeMax": 118},
        {"minLat": "30", "north": 31.0, "minLongitude": 117, "longitudeMax": "118"},
    ],
)
def test_normalize_bounds_aliases(raw: dict[str, Any]) -> None:
    """Test that every alias family resolves to the same rectangle."""
    assert bounds_utils.normalize_bounds(raw) == EXPECTED


def test_normalize_bounds_accessors() -> None:
    """Test Leaflet-style and snake_case accessor objects."""
    assert bounds_utils.normalize_bounds(LeafletBounds()) == EXPECTED
    assert bounds_utils.normalize_bounds(SnakeBounds()) == EXPECTED


def test_normalize_bounds_attributes() -> None:
    """Test plain objects carrying rectangle attributes."""
    raw = types.SimpleNamespace(south=30, north=31, west=117, east=118)
    assert bounds_utils.normalize_bounds(raw) == EXPECTED


def test_normalize_bounds_prefers_primary_alias() -> None:
    """Test that the first alias present wins."""
    raw = {"minLat": 30, "south": 0, "maxLat": 31, "minLng": 117, "maxLng": 118}
    assert bounds_utils.normalize_bounds(raw) == EXPECTED


@pytest.mark.parametrize(
    "raw",
    [
        None,
        {},
        {"minLat": 30, "maxLat": 31, "minLng": 117},
        {"minLat": "abc", "maxLat": 31, "minLng": 117, "maxLng": 118},
        {"minLat": math.nan, "maxLat": 31, "minLng": 117, "maxLng": 118},
        {"minLat": math.inf, "maxLat": 31, "minLng": 117, "maxLng": 118},
        {"minLat": True, "maxLat": 31, "minLng": 117, "maxLng": 118},
        object(),
    ],
)
def test_normalize_bounds_rejects_unusable_input(raw: Any) -> None:
    """Test that inputs without four finite numbers are rejected."""
    assert bounds_utils.normalize_bounds(raw) is None


def test_require_bounds() -> None:
    """Test the raising variant."""
    assert bounds_utils.require_bounds(LeafletBounds()) == EXPECTED
    with pytest.raises(errors.InvalidBoundsError):
        bounds_utils.require_bounds({"south": 30})


class BrokenBounds(LeafletBounds):
    """Accessor object whose southern edge cannot be computed."""

    def getSouth(self) -> float:  # noqa: N802
        raise ValueError("map is not initialized")


def test_normalize_bounds_accessor_error() -> None:
    """Test that an accessor raising yields None instead of propagating."""
    assert bounds_utils.normalize_bounds(BrokenBounds()) is None
    with pytest.raises(errors.InvalidBoundsError):
        bounds_utils.require_bounds(BrokenBounds())
