"""Data models for the elevation tile manifest.

This module defines the core data structures used throughout the application
to describe elevation tiles: the geographic rectangle a tile covers and the
descriptor that names the raster file holding it. Both are frozen dataclasses
loaded once at startup.

Example:
    Creating a TileDescriptor for a 5x5 degree SRTM tile:
        >>> from elevation_app.manifest.models import TileBounds, TileDescriptor
        >>> tile = TileDescriptor(
        ...     id="srtm_60_06",
        ...     file_name="srtm_60_06.tif",
        ...     bounds=TileBounds(
        ...         min_lat=30, max_lat=35, min_lng=115, max_lng=120
        ...     ),
        ... )
        >>> tile.bounds.contains(32.5, 117.0)
        True
"""

from __future__ import annotations

import dataclasses
from typing import Any


@dataclasses.dataclass(frozen=True)
class TileBounds:
    """Axis-aligned rectangle in geographic degrees.

    Attributes:
        min_lat: Southern edge.
        max_lat: Northern edge.
        min_lng: Western edge.
        max_lng: Eastern edge.
    """

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, lat: float, lng: float) -> bool:
        """Return True if the point lies inside the rectangle (inclusive)."""
        return (
            self.min_lat <= lat <= self.max_lat
            and self.min_lng <= lng <= self.max_lng
        )

    def intersects(self, other: TileBounds) -> bool:
        """Return True if both rectangles overlap on open intervals.

        Rectangles that only share an edge do not intersect.
        """
        return (
            self.min_lat < other.max_lat
            and self.max_lat > other.min_lat
            and self.min_lng < other.max_lng
            and self.max_lng > other.min_lng
        )


@dataclasses.dataclass(frozen=True)
class TileDescriptor:
    """Represents one elevation tile the engine knows about.

    Attributes:
        id: Unique tile identifier, also the cache key.
        file_name: Raster file name relative to the configured base URL.
        bounds: Geographic coverage of the tile.
    """

    id: str
    file_name: str
    bounds: TileBounds

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the manifest's camelCase field names."""
        return {
            "id": self.id,
            "fileName": self.file_name,
            "bounds": {
                "minLat": self.bounds.min_lat,
                "maxLat": self.bounds.max_lat,
                "minLng": self.bounds.min_lng,
                "maxLng": self.bounds.max_lng,
            },
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> TileDescriptor:
        """Build a descriptor from a manifest record.

        Args:
            raw: Mapping with ``id``, ``fileName`` and ``bounds`` keys.

        Raises:
            KeyError: If a required key is missing.
            TypeError: If a bound is not numeric.
            ValueError: If a bound is not numeric.
        """
        bounds = raw["bounds"]
        return cls(
            id=str(raw["id"]),
            file_name=str(raw["fileName"]),
            bounds=TileBounds(
                min_lat=float(bounds["minLat"]),
                max_lat=float(bounds["maxLat"]),
                min_lng=float(bounds["minLng"]),
                max_lng=float(bounds["maxLng"]),
            ),
        )
