"""Tile manifest repositories and coverage lookups."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Protocol

from elevation_app.core import errors
from elevation_app.manifest import models as manifest_models

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Iterable, Sequence

    from elevation_app.core import config

logger = logging.getLogger(__name__)


def _srtm_tile(tile_id: str, min_lat: float, min_lng: float) -> manifest_models.TileDescriptor:
    return manifest_models.TileDescriptor(
        id=tile_id,
        file_name=f"{tile_id}.tif",
        bounds=manifest_models.TileBounds(
            min_lat=min_lat,
            max_lat=min_lat + 5,
            min_lng=min_lng,
            max_lng=min_lng + 5,
        ),
    )


DEFAULT_MANIFEST: tuple[manifest_models.TileDescriptor, ...] = (
    _srtm_tile("srtm_60_06", 30, 115),
    _srtm_tile("srtm_60_07", 25, 115),
    _srtm_tile("srtm_60_08", 20, 115),
    _srtm_tile("srtm_61_06", 30, 120),
    _srtm_tile("srtm_61_07", 25, 120),
    _srtm_tile("srtm_61_08", 20, 120),
)


def find_tile_by_coordinate(
    lat: float,
    lng: float,
    tiles: Iterable[manifest_models.TileDescriptor],
) -> manifest_models.TileDescriptor | None:
    """Return the first tile whose bounds contain the point.

    Overlapping tiles are resolved by manifest order.
    """
    for tile in tiles:
        if tile.bounds.contains(lat, lng):
            return tile
    return None


def tiles_intersecting_bounds(
    query: manifest_models.TileBounds | None,
    tiles: Iterable[manifest_models.TileDescriptor],
) -> list[manifest_models.TileDescriptor]:
    """Return every tile whose bounds intersect the query rectangle."""
    if query is None:
        return []
    return [tile for tile in tiles if tile.bounds.intersects(query)]


class TileManifestProtocol(Protocol):
    """Protocol interface for looking up elevation tiles.

    Implementations hold an ordered, immutable list of tile descriptors.
    """

    def get(self, tile_id: str) -> manifest_models.TileDescriptor | None: ...

    def all(self) -> Sequence[manifest_models.TileDescriptor]: ...

    def find_by_coordinate(
        self,
        lat: float,
        lng: float,
    ) -> manifest_models.TileDescriptor | None: ...

    def intersecting(
        self,
        query: manifest_models.TileBounds | None,
    ) -> list[manifest_models.TileDescriptor]: ...


class InMemoryTileManifest(TileManifestProtocol):
    """Manifest backed by a tuple of descriptors kept in manifest order."""

    def __init__(
        self,
        tiles: Iterable[manifest_models.TileDescriptor] = DEFAULT_MANIFEST,
    ) -> None:
        """Initialize the manifest.

        Args:
            tiles: Descriptors in priority order.

        Raises:
            ManifestError: If two descriptors share an id.
        """
        self._tiles = tuple(tiles)
        self._by_id: dict[str, manifest_models.TileDescriptor] = {}
        for tile in self._tiles:
            if tile.id in self._by_id:
                raise errors.ManifestError(f"Duplicate tile id: {tile.id}")
            self._by_id[tile.id] = tile

    def get(self, tile_id: str) -> manifest_models.TileDescriptor | None:
        """Retrieve a tile by id, or None if unknown."""
        return self._by_id.get(tile_id)

    def all(self) -> Sequence[manifest_models.TileDescriptor]:
        """Return every tile in manifest order."""
        return self._tiles

    def find_by_coordinate(
        self,
        lat: float,
        lng: float,
    ) -> manifest_models.TileDescriptor | None:
        return find_tile_by_coordinate(lat, lng, self._tiles)

    def intersecting(
        self,
        query: manifest_models.TileBounds | None,
    ) -> list[manifest_models.TileDescriptor]:
        return tiles_intersecting_bounds(query, self._tiles)


def load_manifest(path: pathlib.Path) -> InMemoryTileManifest:
    """Read a JSON manifest file.

    The file holds a list of ``{id, fileName, bounds}`` records, where
    ``bounds`` has ``minLat``, ``maxLat``, ``minLng`` and ``maxLng``.

    Args:
        path: Location of the manifest file.

    Returns:
        InMemoryTileManifest with the file's tiles in file order.

    Raises:
        ManifestError: If the file cannot be read or a record is malformed.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise errors.ManifestError(f"Cannot read manifest {path}: {exc}") from exc

    if not isinstance(raw, list):
        raise errors.ManifestError(f"Manifest {path} must contain a list of tiles")

    tiles = []
    for index, record in enumerate(raw):
        try:
            tiles.append(manifest_models.TileDescriptor.from_dict(record))
        except (KeyError, TypeError, ValueError) as exc:
            raise errors.ManifestError(
                f"Malformed tile record #{index} in {path}: {exc!r}"
            ) from exc

    logger.info("Loaded %d tiles from manifest %s", len(tiles), path)
    return InMemoryTileManifest(tiles)


def get_tile_manifest(settings: config.Settings) -> TileManifestProtocol:
    """Factory function to create the tile manifest.

    Args:
        settings: Application settings naming the optional manifest file.

    Returns:
        Manifest read from ``settings.manifest_path``, or the built-in
        SRTM manifest when no path is configured.
    """
    if settings.manifest_path is None:
        return InMemoryTileManifest()
    return load_manifest(settings.manifest_path)
