"""Elevation tile manifest and coverage lookups.

This package holds the static registry of elevation tiles: their ids, raster
file names and geographic coverage boxes. It answers "which tile covers this
point" and "which tiles intersect this region" without any I/O.

Re-exports the manifest protocol, the in-memory implementation and the
factory from elevation_app.manifest.registry so the service and the HTTP
layer share one import location.

Example:
    Use in a service or FastAPI dependency:
        >>> from elevation_app.manifest import get_tile_manifest
        >>> manifest = get_tile_manifest(settings)
        >>> manifest.find_by_coordinate(32.5, 117.0).id
        'srtm_60_06'
"""

from elevation_app.manifest.models import TileBounds, TileDescriptor
from elevation_app.manifest.registry import (
    DEFAULT_MANIFEST,
    InMemoryTileManifest,
    TileManifestProtocol,
    find_tile_by_coordinate,
    get_tile_manifest,
    load_manifest,
    tiles_intersecting_bounds,
)

__all__ = [
    "DEFAULT_MANIFEST",
    "InMemoryTileManifest",
    "TileBounds",
    "TileDescriptor",
    "TileManifestProtocol",
    "find_tile_by_coordinate",
    "get_tile_manifest",
    "load_manifest",
    "tiles_intersecting_bounds",
]
