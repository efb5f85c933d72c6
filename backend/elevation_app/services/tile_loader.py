"""Elevation tile loading, caching and windowed raster reads.

This module resolves a manifest tile descriptor into an open raster handle
plus the metadata the engine needs: pixel size, geographic bounding box,
no-data sentinel and resolution. Tiles are Cloud Optimized GeoTIFFs read
through rio-tiler, so only the internal blocks covering a requested window
are fetched. A point query therefore costs O(window) and a contour scan
O(sample grid), independent of the source resolution.

Opening and reading run in worker threads; the event loop only suspends at
those I/O boundaries. Open tiles are memoized in a bounded LRU cache, and
concurrent requests for a tile that is still opening share one pending load.

Example:
    Load a tile and read the 2x2 neighborhood around a pixel:
        >>> from elevation_app.manifest import DEFAULT_MANIFEST
        >>> from elevation_app.services.tile_loader import TileLoader

        >>> loader = TileLoader(base_url="/data/srtm")
        >>> record = await loader.load_tile(DEFAULT_MANIFEST[0])
        >>> record.meta.width, record.meta.height
        (6000, 6000)
        >>> window = await loader.read_window(record, 100, 200, 2, 2)
        >>> window.shape
        (2, 2)
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import functools
import logging
import threading
from typing import TYPE_CHECKING, Protocol

import numpy as np
import rio_tiler.io as rio_tiler_io
from rasterio import windows
from rasterio.errors import RasterioError
from rio_tiler.errors import RioTilerError

from elevation_app.core import errors
from elevation_app.services import cache as cache_utils

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from elevation_app.manifest import models as manifest_models

    BBox = tuple[float, float, float, float]

logger = logging.getLogger(__name__)

_LEASE_ATTEMPTS = 3


class RasterSource(Protocol):
    """Windowed raster reader capability consumed by the engine.

    ``bounds`` is ``(min_lng, min_lat, max_lng, max_lat)`` in degrees and
    row 0 of every read is the northern edge.
    """

    width: int
    height: int
    bounds: BBox
    nodata: float | None
    resolution: tuple[float, float] | None

    def read_window(
        self,
        col_off: int,
        row_off: int,
        width: int,
        height: int,
    ) -> np.ndarray: ...

    def read_resampled(self, width: int, height: int) -> np.ndarray: ...

    def close(self) -> None: ...


class CogRaster:
    """RasterSource backed by a rio-tiler Reader on the first band.

    rasterio dataset handles are not safe for concurrent use, so reads on one
    handle are serialized with a lock.
    """

    def __init__(self, reader: rio_tiler_io.Reader) -> None:
        self._reader = reader
        self._lock = threading.Lock()
        dataset = reader.dataset
        self.width = int(dataset.width)
        self.height = int(dataset.height)
        self.bounds = tuple(reader.geographic_bounds)
        self.nodata = dataset.nodata
        self.resolution = tuple(dataset.res) if dataset.res else None

    def _read(self, **kwargs: object) -> np.ndarray:
        with self._lock:
            try:
                image = self._reader.read(indexes=1, **kwargs)
            except (RasterioError, RioTilerError) as exc:
                raise errors.RasterReadError(str(exc)) from exc
        return np.asarray(image.data[0], dtype="float64")

    def read_window(
        self,
        col_off: int,
        row_off: int,
        width: int,
        height: int,
    ) -> np.ndarray:
        """Read the pixels of one window at native resolution."""
        window = windows.Window(col_off, row_off, width, height)
        return self._read(window=window)

    def read_resampled(self, width: int, height: int) -> np.ndarray:
        """Read the whole band resampled bilinearly to ``width x height``."""
        return self._read(width=width, height=height, resampling_method="bilinear")

    def close(self) -> None:
        self._reader.close()


def open_cog(url: str) -> CogRaster:
    """Open a Cloud Optimized GeoTIFF from a path or URL.

    Raises:
        RasterReadError: If rio-tiler or rasterio cannot open the file.
    """
    try:
        reader = rio_tiler_io.Reader(input=url, options={})
    except (RasterioError, RioTilerError) as exc:
        raise errors.RasterReadError(str(exc)) from exc
    return CogRaster(reader)


def build_tile_url(base_url: str, file_name: str) -> str:
    """Join the tile base URL and a file name with exactly one slash."""
    return f"{base_url.rstrip('/')}/{file_name}"


@dataclasses.dataclass(frozen=True)
class TileMeta:
    """Raster metadata of an open tile.

    Attributes:
        width: Pixel columns.
        height: Pixel rows.
        bbox: ``(min_lng, min_lat, max_lng, max_lat)`` in degrees.
        no_data_value: Sentinel meaning "no measurement", if any.
        resolution_x: Pixel width in degrees, if known.
        resolution_y: Pixel height in degrees, if known.
    """

    width: int
    height: int
    bbox: BBox
    no_data_value: float | None
    resolution_x: float | None
    resolution_y: float | None

    @classmethod
    def from_raster(cls, raster: RasterSource) -> TileMeta:
        resolution = raster.resolution or (None, None)
        return cls(
            width=raster.width,
            height=raster.height,
            bbox=raster.bounds,
            no_data_value=raster.nodata,
            resolution_x=resolution[0],
            resolution_y=resolution[1],
        )


@dataclasses.dataclass(eq=False)
class TileRecord:
    """An open tile owned by the loader's cache.

    Readers hold a lease while they use ``raster``. Closing a record that is
    leased only retires it; the raster closes when the last lease is released.

    Attributes:
        descriptor: Manifest entry the tile was opened for.
        raster: Open raster handle.
        meta: Metadata read from the raster at open time.
        leases: Number of readers currently holding the record.
    """

    descriptor: manifest_models.TileDescriptor
    raster: RasterSource
    meta: TileMeta
    leases: int = dataclasses.field(default=0, init=False)
    retired: bool = dataclasses.field(default=False, init=False)
    closed: bool = dataclasses.field(default=False, init=False)

    def acquire(self) -> bool:
        """Take a lease, or return False if the record was already retired."""
        if self.retired:
            return False
        self.leases += 1
        return True

    def release(self) -> None:
        """Give a lease back, closing a retired record when it was the last."""
        self.leases -= 1
        if self.retired and self.leases == 0:
            self._close_raster()

    def close(self) -> None:
        """Retire the record, closing the raster once no lease is held."""
        self.retired = True
        if self.leases == 0:
            self._close_raster()

    def _close_raster(self) -> None:
        if not self.closed:
            self.closed = True
            self.raster.close()


class TileLoader:
    """Opens elevation tiles once and serves windowed reads from them."""

    def __init__(
        self,
        base_url: str = "/geo",
        *,
        opener: Callable[[str], RasterSource] = open_cog,
        cache_size: int = 64,
        load_timeout: float | None = None,
    ) -> None:
        """Initialize the loader.

        Args:
            base_url: Directory or URL prefix holding the tile files.
            opener: Callable turning a tile URL into a RasterSource.
            cache_size: Number of open tiles kept before LRU eviction.
            load_timeout: Seconds a caller waits for a tile to open.
        """
        self.base_url = base_url
        self._opener = opener
        self._load_timeout = load_timeout
        self._tiles: cache_utils.InFlightCache[str, TileRecord] = (
            cache_utils.InFlightCache(
                cache_utils.ClosingLRUCache(maxsize=cache_size),
                on_discard=cache_utils.close_item,
            )
        )

    async def load_tile(self, tile: manifest_models.TileDescriptor) -> TileRecord:
        """Return the open record for ``tile``, opening it on first use.

        Concurrent callers for a tile that is still opening share the same
        load. A failed load is not cached.

        Raises:
            TileLoadError: If the raster cannot be opened or the load timed out.
        """
        try:
            return await self._tiles.get_or_create(
                tile.id,
                functools.partial(self._open, tile),
                timeout=self._load_timeout,
            )
        except TimeoutError as exc:
            logger.warning(
                "Timed out after %ss waiting for tile %s", self._load_timeout, tile.id
            )
            raise errors.TileLoadError(tile.id, "timed out") from exc

    @contextlib.asynccontextmanager
    async def lease(self, tile: manifest_models.TileDescriptor) -> AsyncIterator[TileRecord]:
        """Load ``tile`` and keep its raster open until the block exits.

        Eviction or ``clear`` while the block runs drops the record from the
        cache but leaves the raster readable for this holder. A record that
        was retired before the lease could be taken is loaded again.

        Raises:
            TileLoadError: If the tile cannot be opened.
        """
        record = await self._acquire(tile)
        try:
            yield record
        finally:
            record.release()

    async def _acquire(self, tile: manifest_models.TileDescriptor) -> TileRecord:
        for _ in range(_LEASE_ATTEMPTS):
            record = await self.load_tile(tile)
            if record.acquire():
                return record
            logger.debug("Tile %s was closed before it could be leased, reloading", tile.id)
        raise errors.TileLoadError(tile.id, "closed before it could be read")

    async def _open(self, tile: manifest_models.TileDescriptor) -> TileRecord:
        url = build_tile_url(self.base_url, tile.file_name)
        logger.info("Opening elevation tile %s from %s", tile.id, url)
        try:
            raster = await asyncio.to_thread(self._opener, url)
        except (errors.RasterReadError, OSError) as exc:
            logger.warning("Failed to open elevation tile %s: %s", tile.id, exc)
            raise errors.TileLoadError(tile.id, str(exc)) from exc
        return TileRecord(descriptor=tile, raster=raster, meta=TileMeta.from_raster(raster))

    def get_cached_tile(self, tile_id: str) -> TileRecord | None:
        """Return an already opened tile without loading it."""
        return self._tiles.get(tile_id)

    async def read_window(
        self,
        record: TileRecord,
        col_off: int,
        row_off: int,
        width: int,
        height: int,
    ) -> np.ndarray:
        """Read a pixel window of ``record`` as a float64 ``(rows, cols)`` array.

        Raises:
            RasterReadError: If the read fails.
        """
        return await self._read(
            record, record.raster.read_window, col_off, row_off, width, height
        )

    async def read_resampled(
        self,
        record: TileRecord,
        width: int,
        height: int,
    ) -> np.ndarray:
        """Read the whole tile resampled bilinearly to ``width x height``.

        Raises:
            RasterReadError: If the read fails.
        """
        return await self._read(record, record.raster.read_resampled, width, height)

    @staticmethod
    async def _read(
        record: TileRecord,
        read: Callable[..., np.ndarray],
        *args: int,
    ) -> np.ndarray:
        try:
            data = await asyncio.to_thread(read, *args)
        except OSError as exc:
            raise errors.RasterReadError(
                f"Read failed on tile {record.descriptor.id}: {exc}"
            ) from exc
        return np.asarray(data, dtype="float64")

    def clear(self) -> None:
        """Close every cached tile and forget loads still in flight."""
        self._tiles.clear()
        logger.info("Cleared elevation tile cache")
