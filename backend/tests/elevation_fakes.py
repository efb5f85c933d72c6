"""Synthetic rasters and openers shared by the elevation test modules.

``FakeRaster`` stands in for a rio-tiler backed tile: a 4x4 raster covering
``(0, 0)``-``(10, 10)`` degrees whose windowed reads return ``100 + col +
row`` and whose resampled reads return ``50.5 + col + row``. Reads
fail with OSError once the raster is closed. ``FakeOpener`` replaces
``tile_loader.open_cog`` and counts how often each URL is opened.
"""

from __future__ import annotations

import threading
import time

import numpy as np

from elevation_app.core import errors
from elevation_app.manifest import models as manifest_models
from elevation_app.manifest import registry
from elevation_app.services import elevation_service, tile_loader
from elevation_app.services import models as service_models

NO_DATA = -32768.0


class FakeRaster:
    """In-memory RasterSource with predictable values."""

    def __init__(
        self,
        width: int = 4,
        height: int = 4,
        bounds: tuple[float, float, float, float] = (0.0, 0.0, 10.0, 10.0),
        nodata: float | None = NO_DATA,
        read_delay: float = 0.0,
    ) -> None:
        self.width = width
        self.height = height
        self.bounds = bounds
        self.nodata = nodata
        self.resolution = (
            (bounds[2] - bounds[0]) / width,
            (bounds[3] - bounds[1]) / height,
        )
        self.read_delay = read_delay
        self.closed = False
        self.windows: list[tuple[int, int, int, int]] = []
        self.resampled: list[tuple[int, int]] = []

    def _wait(self) -> None:
        time.sleep(self.read_delay)
        if self.closed:
            raise OSError("dataset is closed")

    def read_window(self, col_off: int, row_off: int, width: int, height: int) -> np.ndarray:
        self._wait()
        self.windows.append((col_off, row_off, width, height))
        rows, cols = np.mgrid[row_off : row_off + height, col_off : col_off + width]
        return (100 + cols + rows).astype("float64")

    def read_resampled(self, width: int, height: int) -> np.ndarray:
        self._wait()
        self.resampled.append((width, height))
        rows, cols = np.mgrid[0:height, 0:width]
        return (50.5 + cols + rows).astype("float64")

    def close(self) -> None:
        self.closed = True


class FakeOpener:
    """Opener that hands out FakeRasters and records every call.

    Attributes:
        calls: URLs opened, in call order.
        rasters: Rasters returned, in call order.
        fail_for: File names whose open raises RasterReadError.
        gate: Optional event every open waits on before returning.
    """

    def __init__(
        self,
        fail_for: tuple[str, ...] = (),
        gate: threading.Event | None = None,
        **raster_kwargs: object,
    ) -> None:
        self.calls: list[str] = []
        self.rasters: list[FakeRaster] = []
        self.fail_for = fail_for
        self.gate = gate
        self._raster_kwargs = raster_kwargs
        self._lock = threading.Lock()

    def __call__(self, url: str) -> FakeRaster:
        with self._lock:
            self.calls.append(url)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if any(url.endswith(name) for name in self.fail_for):
            raise errors.RasterReadError(f"cannot open {url}")
        raster = FakeRaster(**self._raster_kwargs)  # type: ignore[arg-type]
        with self._lock:
            self.rasters.append(raster)
        return raster


def make_tile(
    tile_id: str = "test_tile",
    min_lat: float = 0.0,
    max_lat: float = 10.0,
    min_lng: float = 0.0,
    max_lng: float = 10.0,
) -> manifest_models.TileDescriptor:
    return manifest_models.TileDescriptor(
        id=tile_id,
        file_name=f"{tile_id}.tif",
        bounds=manifest_models.TileBounds(
            min_lat=min_lat,
            max_lat=max_lat,
            min_lng=min_lng,
            max_lng=max_lng,
        ),
    )


def make_service(
    opener: FakeOpener | None = None,
    tiles: tuple[manifest_models.TileDescriptor, ...] | None = None,
    defaults: service_models.ContourSettings | None = None,
    cache_size: int = 8,
) -> elevation_service.ElevationService:
    """Build a service over fake tiles, defaulting to one 10x10 degree tile."""
    loader = tile_loader.TileLoader(
        "https://tiles.example.com/geo/",
        opener=opener or FakeOpener(),
        cache_size=cache_size,
    )
    return elevation_service.ElevationService(
        registry.InMemoryTileManifest(tiles or (make_tile(),)),
        loader,
        defaults=defaults
        or service_models.ContourSettings(threshold_step=10, sample_size=8, max_contours=12),
    )
