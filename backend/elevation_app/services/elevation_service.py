"""Elevation service: the public facade of the engine.

This module ties together the tile manifest, the tile loader, the bilinear
interpolator, the contour generator and the region clipper. It answers two
kinds of question:

1. Point queries: the elevation under a coordinate, interpolated from the
   2x2 pixel neighborhood read out of the covering tile.
2. Region queries: contour lines for every tile that intersects the visible
   map bounds, optionally restricted to a user-drawn polygon.

Query operations never raise. Tile load and read failures are logged and
degrade into ``has_data=False`` samples or tiles without features, so one
broken tile never takes a whole region down with it.

Per-tile contour results are cached by ``(tile_id, threshold_step,
sample_size, max_contours)``; concurrent first-time requests for the same key
share one computation.

Example:
    Query a point and the contours around it:
        >>> service = get_elevation_service()
        >>> sample = await service.get_elevation(32.5, 117.25)
        >>> sample.to_dict()["hasData"]
        True
        >>> collection = await service.get_contours_for_bounds(
        ...     {"minLat": 32.4, "maxLat": 32.6, "minLng": 117.1, "maxLng": 117.4}
        ... )
        >>> collection.tile_ids
        ['srtm_60_06']
"""

from __future__ import annotations

import asyncio
import dataclasses
import functools
import logging
import math
from typing import TYPE_CHECKING, Any

import cachetools

from elevation_app import manifest as manifest_registry
from elevation_app.core import config, errors
from elevation_app.services import bounds as bounds_utils
from elevation_app.services import cache as cache_utils
from elevation_app.services import contour_generator, coordinate_transform, interpolation
from elevation_app.services import models as service_models
from elevation_app.services import region_clipper, tile_loader

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from elevation_app.manifest import models as manifest_models

logger = logging.getLogger(__name__)

ContourKey = tuple[str, float, int, int]

MIN_SAMPLE_SIZE = 2


def _clamp(value: float, minimum: float, maximum: float) -> float:
    return min(max(value, minimum), maximum)


@dataclasses.dataclass(frozen=True)
class PixelWindow:
    """2x2 (or smaller, at raster edges) neighborhood around a point.

    Attributes:
        x0: Left column.
        y0: Top row.
        x1: Right column, equal to ``x0`` on the last column.
        y1: Bottom row, equal to ``y0`` on the last row.
        x_ratio: Fractional offset from ``x0`` in [0, 1].
        y_ratio: Fractional offset from ``y0`` in [0, 1].
    """

    x0: int
    y0: int
    x1: int
    y1: int
    x_ratio: float
    y_ratio: float

    @property
    def width(self) -> int:
        return self.x1 - self.x0 + 1

    @property
    def height(self) -> int:
        return self.y1 - self.y0 + 1


def pixel_window(meta: tile_loader.TileMeta, lat: float, lng: float) -> PixelWindow | None:
    """Map a coordinate to the pixel neighborhood used for interpolation.

    Row 0 is the northern edge, so the row index grows as latitude falls.
    Indices are clamped to the raster, which makes points on the eastern or
    southern edge reuse the last column or row.

    Returns:
        The window, or None when the tile has a degenerate bounding box.
    """
    min_lng, min_lat, max_lng, max_lat = meta.bbox
    span_lng = max_lng - min_lng
    span_lat = max_lat - min_lat
    if span_lng <= 0 or span_lat <= 0 or meta.width < 1 or meta.height < 1:
        return None

    x = (lng - min_lng) / span_lng * meta.width
    y = (max_lat - lat) / span_lat * meta.height
    x0 = int(_clamp(math.floor(x), 0, meta.width - 1))
    y0 = int(_clamp(math.floor(y), 0, meta.height - 1))
    return PixelWindow(
        x0=x0,
        y0=y0,
        x1=min(x0 + 1, meta.width - 1),
        y1=min(y0 + 1, meta.height - 1),
        x_ratio=_clamp(x - x0, 0.0, 1.0),
        y_ratio=_clamp(y - y0, 0.0, 1.0),
    )


def grid_shape(meta: tile_loader.TileMeta, sample_size: int) -> tuple[int, int]:
    """Return ``(width, height)`` of the contour grid for a tile.

    The longer raster edge gets ``sample_size`` cells and the shorter edge
    keeps the raster's aspect ratio, with at least 2 cells.
    """
    if meta.width >= meta.height:
        return sample_size, max(2, round(sample_size * meta.height / max(meta.width, 1)))
    return max(2, round(sample_size * meta.width / meta.height)), sample_size


class ElevationService:
    """Point elevation and contour queries over a tiled elevation dataset.

    The service owns the per-tile contour cache; the tile cache belongs to
    its loader. Both are cleared together by ``clear_caches``.
    """

    def __init__(
        self,
        manifest: manifest_registry.TileManifestProtocol,
        loader: tile_loader.TileLoader,
        *,
        defaults: service_models.ContourSettings | None = None,
        transform: coordinate_transform.CoordinateTransform = coordinate_transform.identity,
        contour_cache_size: int = 1024,
    ) -> None:
        """Initialize the service.

        Args:
            manifest: Tile registry used to locate coverage.
            loader: Loader that opens tiles and serves raster reads.
            defaults: Contour settings used when a query does not pass any.
            transform: Geographic to display transform for contour vertices.
            contour_cache_size: Number of per-tile contour results kept.
        """
        self.manifest = manifest
        self.loader = loader
        self.defaults = defaults or service_models.ContourSettings()
        self._transform = transform
        self._contours: cache_utils.InFlightCache[
            ContourKey, list[service_models.ContourFeature]
        ] = cache_utils.InFlightCache(cachetools.LRUCache(maxsize=contour_cache_size))

    def get_tile(self, tile_id: str) -> manifest_models.TileDescriptor:
        """Look up a manifest tile by id.

        Raises:
            TileNotFoundError: If no tile has that id.
        """
        tile = self.manifest.get(tile_id)
        if tile is None:
            raise errors.TileNotFoundError(f"Unknown elevation tile: {tile_id}")
        return tile

    def tiles(self) -> Sequence[manifest_models.TileDescriptor]:
        """Return every manifest tile in priority order."""
        return self.manifest.all()

    async def get_elevation(
        self,
        lat: float | None,
        lng: float | None,
    ) -> service_models.ElevationSample:
        """Estimate the elevation at a coordinate.

        Args:
            lat: Latitude in degrees.
            lng: Longitude in degrees.

        Returns:
            ElevationSample. ``has_data`` is False outside coverage, when the
            tile cannot be read, or when every neighboring pixel is no-data;
            ``tile_id`` is set whenever a tile covers the point.
        """
        if lat is None or lng is None:
            return service_models.ElevationSample(
                has_data=False, elevation=None, tile_id=None, lat=None, lng=None
            )

        tile = self.manifest.find_by_coordinate(lat, lng)
        elevation = None
        if tile is not None:
            try:
                elevation = interpolation.round_elevation(await self._sample(tile, lat, lng))
            except (errors.TileLoadError, errors.RasterReadError) as exc:
                logger.warning("Elevation query at (%s, %s) failed: %s", lat, lng, exc)

        return service_models.ElevationSample(
            has_data=elevation is not None,
            elevation=elevation,
            tile_id=tile.id if tile is not None else None,
            lat=interpolation.format_coordinate(lat),
            lng=interpolation.format_coordinate(lng),
        )

    async def _sample(
        self,
        tile: manifest_models.TileDescriptor,
        lat: float,
        lng: float,
    ) -> float | None:
        async with self.loader.lease(tile) as record:
            window = pixel_window(record.meta, lat, lng)
            if window is None:
                logger.warning("Tile %s has a degenerate bounding box", tile.id)
                return None

            data = await self.loader.read_window(
                record, window.x0, window.y0, window.width, window.height
            )
        if data.size == 0:
            return None
        corners = [data[0, 0], data[0, -1], data[-1, 0], data[-1, -1]]
        return interpolation.bilinear_interpolation(
            window.x_ratio,
            window.y_ratio,
            [float(value) for value in corners],
            record.meta.no_data_value,
        )

    async def get_tile_contours(
        self,
        tile: manifest_models.TileDescriptor,
        settings: service_models.ContourSettings | None = None,
        *,
        force: bool = False,
    ) -> list[service_models.ContourFeature]:
        """Return the contour features of one tile.

        Args:
            tile: Tile to contour.
            settings: Contour parameters; the service defaults when None.
            force: Recompute even if a cached result exists.

        Returns:
            Features tagged with the tile id, or an empty list when the tile
            cannot be loaded or read or the sample size is below 2. Failures
            are not cached.
        """
        resolved = settings or self.defaults
        if resolved.sample_size < MIN_SAMPLE_SIZE:
            logger.warning(
                "Skipping contours for tile %s: sample size %s is below %d",
                tile.id,
                resolved.sample_size,
                MIN_SAMPLE_SIZE,
            )
            return []

        key: ContourKey = (
            tile.id,
            float(resolved.threshold_step),
            int(resolved.sample_size),
            int(resolved.max_contours),
        )
        if force:
            self._contours.cache.pop(key, None)

        try:
            return await self._contours.get_or_create(
                key, functools.partial(self._compute_contours, tile, resolved)
            )
        except (errors.TileLoadError, errors.RasterReadError) as exc:
            logger.warning("Skipping contours for tile %s: %s", tile.id, exc)
            return []

    async def _compute_contours(
        self,
        tile: manifest_models.TileDescriptor,
        settings: service_models.ContourSettings,
    ) -> list[service_models.ContourFeature]:
        async with self.loader.lease(tile) as record:
            meta = record.meta
            width, height = grid_shape(meta, int(settings.sample_size))
            grid = await self.loader.read_resampled(record, width, height)

        features = contour_generator.generate_contour_features(
            width=width,
            height=height,
            values=grid,
            bbox=meta.bbox,
            no_data_value=meta.no_data_value,
            threshold_step=settings.threshold_step,
            max_contours=settings.max_contours,
            transform=self._transform,
        )
        logger.debug(
            "Generated %d contour levels for tile %s on a %dx%d grid",
            len(features),
            tile.id,
            width,
            height,
        )
        return [dataclasses.replace(feature, tile_id=tile.id) for feature in features]

    async def get_contours_for_bounds(
        self,
        bounds: Any,
        settings: service_models.ContourSettings | None = None,
        region: region_clipper.ClipPolygon | Iterable[Any] | None = None,
    ) -> service_models.ContourFeatureCollection:
        """Return contour lines for every tile intersecting the bounds.

        Args:
            bounds: Map bounds in any shape accepted by ``normalize_bounds``.
            settings: Contour parameters; the service defaults when None.
            region: Optional polygon; features are clipped to it and those
                with nothing inside are dropped.

        Returns:
            Features concatenated in manifest order without stitching across
            tile seams. Empty for invalid bounds or an unusable region.
        """
        try:
            query = bounds_utils.require_bounds(bounds)
        except errors.InvalidBoundsError as exc:
            logger.debug("Ignoring contour request: %s", exc)
            return service_models.ContourFeatureCollection()

        tiles = self.manifest.intersecting(query)
        if not tiles:
            return service_models.ContourFeatureCollection()

        results = await asyncio.gather(
            *(self.get_tile_contours(tile, settings) for tile in tiles)
        )
        features = [feature for tile_features in results for feature in tile_features]

        if region is not None:
            try:
                features = region_clipper.clip_features_to_polygon(features, region)
            except errors.InsufficientPolygonError as exc:
                logger.warning("Ignoring contour request with unusable region: %s", exc)
                return service_models.ContourFeatureCollection()

        return service_models.ContourFeatureCollection(
            features=features,
            tile_ids=[tile.id for tile in tiles],
        )

    def clear_caches(self) -> None:
        """Drop cached tiles and contour results, closing open rasters."""
        self.loader.clear()
        self._contours.clear()
        logger.info("Cleared elevation service caches")


def build_elevation_service(settings: config.Settings) -> ElevationService:
    """Factory function to wire an ElevationService from settings.

    Args:
        settings: Application settings.

    Returns:
        ElevationService over the configured manifest and tile location.

    Raises:
        ManifestError: If the configured manifest file is malformed.
    """
    loader = tile_loader.TileLoader(
        settings.tile_base_url,
        cache_size=settings.tile_cache_size,
        load_timeout=settings.tile_load_timeout_seconds,
    )
    return ElevationService(
        manifest_registry.get_tile_manifest(settings),
        loader,
        defaults=service_models.ContourSettings(
            threshold_step=settings.threshold_step,
            sample_size=settings.sample_size,
            max_contours=settings.max_contours,
        ),
        transform=coordinate_transform.get_display_transform(settings.display_crs),
        contour_cache_size=settings.contour_cache_size,
    )


@functools.lru_cache
def get_elevation_service() -> ElevationService:
    """Get the application-wide service instance.

    Built on first use from ``config.get_settings()`` and cached for the
    lifetime of the process, like the settings themselves.
    """
    return build_elevation_service(config.get_settings())
