"""Error hierarchy for the elevation engine.

Query operations never let these escape to their callers: the elevation
service converts them into empty or ``has_data=False`` results. They exist
so that each layer can signal a precise failure to the layer above and so
that the HTTP routers can map them onto status codes.
"""

from __future__ import annotations


class ElevationError(RuntimeError):
    """Base error for elevation and contour operations."""


class ManifestError(ElevationError):
    """Tile manifest file is missing, unreadable, or malformed."""


class TileNotFoundError(ElevationError):
    """No manifest tile covers the requested coordinate or id."""


class TileLoadError(ElevationError):
    """A tile could not be opened, or opening it timed out.

    Attributes:
        tile_id: Identifier of the tile that failed to load.
    """

    def __init__(self, tile_id: str, reason: str) -> None:
        self.tile_id = tile_id
        super().__init__(f"Failed to load tile {tile_id}: {reason}")


class RasterReadError(ElevationError):
    """A windowed or resampled read on an open tile failed."""


class InvalidBoundsError(ElevationError):
    """Bounds do not resolve to four finite numbers."""


class InsufficientPolygonError(ElevationError):
    """Clip polygon has fewer than 3 distinct vertices."""
