"""Contour line endpoints for the visible map region.

Contours are returned as a GeoJSON ``FeatureCollection`` with one
``MultiLineString`` feature per threshold per tile, plus a ``tiles`` list
naming every tile that intersects the request. Features from neighbouring
tiles are concatenated, not stitched across tile seams.

Example:
    Contours for the current map view:
        >>> response = client.get(
        ...     "/api/contours",
        ...     params={"minLat": 32.4, "maxLat": 32.6, "minLng": 117.1, "maxLng": 117.4},
        ... )
        >>> response.json()["tiles"]
        >>> # Returns: ["srtm_60_06"]

    Contours clipped to a drawn polygon:
        >>> response = client.post(
        ...     "/api/contours",
        ...     json={
        ...         "bounds": {"south": 32.4, "north": 32.6, "west": 117.1, "east": 117.4},
        ...         "settings": {"thresholdStep": 20},
        ...         "region": [[32.4, 117.1], [32.6, 117.2], [32.4, 117.4]],
        ...     },
        ... )
"""

from typing import Any

import fastapi
import pydantic

from elevation_app.core import errors
from elevation_app.services import elevation_service, region_clipper
from elevation_app.services import models as service_models

router = fastapi.APIRouter(prefix="/api/contours", tags=["contours"])

MAX_SAMPLE_SIZE = 4096


class ContourSettingsBody(pydantic.BaseModel):
    """Per-request overrides of the configured contour settings."""

    model_config = pydantic.ConfigDict(populate_by_name=True)

    threshold_step: float | None = pydantic.Field(default=None, gt=0, alias="thresholdStep")
    sample_size: int | None = pydantic.Field(
        default=None, gt=1, le=MAX_SAMPLE_SIZE, alias="sampleSize"
    )
    max_contours: int | None = pydantic.Field(default=None, gt=0, alias="maxContours")


class ContourRequest(pydantic.BaseModel):
    """Body of a region contour request.

    Attributes:
        bounds: Rectangle under any supported field aliases
            (``minLat``/``south``/``minLatitude``/``latitudeMin``...).
        settings: Optional contour setting overrides.
        region: Optional polygon as ``{lat, lng}`` objects or ``[lat, lng]``
            pairs.
    """

    bounds: dict[str, Any]
    settings: ContourSettingsBody | None = None
    region: list[Any] | None = None


def _resolve_settings(
    service: elevation_service.ElevationService,
    overrides: ContourSettingsBody | None,
) -> service_models.ContourSettings:
    if overrides is None:
        return service.defaults
    return service.defaults.merged(
        threshold_step=overrides.threshold_step,
        sample_size=overrides.sample_size,
        max_contours=overrides.max_contours,
    )


@router.get("")
async def get_contours(
    min_lat: float = fastapi.Query(..., alias="minLat"),  # noqa: B008
    max_lat: float = fastapi.Query(..., alias="maxLat"),  # noqa: B008
    min_lng: float = fastapi.Query(..., alias="minLng"),  # noqa: B008
    max_lng: float = fastapi.Query(..., alias="maxLng"),  # noqa: B008
    threshold_step: float | None = fastapi.Query(None, gt=0, alias="thresholdStep"),  # noqa: B008
    sample_size: int | None = fastapi.Query(  # noqa: B008
        None, gt=1, le=MAX_SAMPLE_SIZE, alias="sampleSize"
    ),
    max_contours: int | None = fastapi.Query(None, gt=0, alias="maxContours"),  # noqa: B008
    service: elevation_service.ElevationService = fastapi.Depends(  # noqa: B008
        elevation_service.get_elevation_service
    ),
) -> dict[str, Any]:
    """Contour the tiles intersecting a rectangle.

    Args:
        min_lat: Southern edge.
        max_lat: Northern edge.
        min_lng: Western edge.
        max_lng: Eastern edge.
        threshold_step: Contour spacing override in meters.
        sample_size: Sample grid size override.
        max_contours: Maximum contour count override.
        service: Elevation service (injected via FastAPI Depends).

    Returns:
        GeoJSON FeatureCollection with a ``tiles`` member. Bounds that are
        not finite produce an empty collection.
    """
    settings = service.defaults.merged(
        threshold_step=threshold_step,
        sample_size=sample_size,
        max_contours=max_contours,
    )
    bounds = {"minLat": min_lat, "maxLat": max_lat, "minLng": min_lng, "maxLng": max_lng}
    collection = await service.get_contours_for_bounds(bounds, settings)
    return collection.to_geojson()


@router.post("")
async def post_contours(
    request: ContourRequest,
    service: elevation_service.ElevationService = fastapi.Depends(  # noqa: B008
        elevation_service.get_elevation_service
    ),
) -> dict[str, Any]:
    """Contour a rectangle, optionally clipped to a polygon.

    Args:
        request: Bounds, optional settings and optional region.
        service: Elevation service (injected via FastAPI Depends).

    Returns:
        GeoJSON FeatureCollection with a ``tiles`` member.

    Raises:
        HTTPException: If the region has fewer than 3 usable vertices (422).
    """
    region = None
    if request.region is not None:
        try:
            region = region_clipper.ClipPolygon.from_vertices(request.region)
        except errors.InsufficientPolygonError as exc:
            raise fastapi.HTTPException(status_code=422, detail=str(exc)) from exc

    collection = await service.get_contours_for_bounds(
        request.bounds,
        _resolve_settings(service, request.settings),
        region,
    )
    return collection.to_geojson()


@router.delete("/cache", status_code=204)
async def clear_contour_cache(
    service: elevation_service.ElevationService = fastapi.Depends(  # noqa: B008
        elevation_service.get_elevation_service
    ),
) -> fastapi.Response:
    """Drop cached tiles and contour results.

    Returns:
        Empty 204 response.
    """
    service.clear_caches()
    return fastapi.Response(status_code=204)
