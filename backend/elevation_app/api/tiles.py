"""Elevation tile listing and per-tile contour endpoints.

This module exposes the tile manifest so map clients can draw coverage
outlines, and lets a client request the contours of a single tile by id
without describing a region.

Example:
    List the tiles:
        >>> response = client.get("/api/tiles")
        >>> response.json()[0]
        >>> # Returns: {"id": "srtm_60_06", "fileName": "srtm_60_06.tif",
        >>> #           "bounds": {"minLat": 30, "maxLat": 35,
        >>> #                      "minLng": 115, "maxLng": 120}}

    Contours of one tile at 100 m spacing:
        >>> response = client.get(
        ...     "/api/tiles/srtm_60_06/contours", params={"thresholdStep": 100}
        ... )
"""

from typing import Any

import fastapi

from elevation_app.api import contours
from elevation_app.core import errors
from elevation_app.services import elevation_service
from elevation_app.services import models as service_models

router = fastapi.APIRouter(prefix="/api/tiles", tags=["tiles"])


@router.get("")
async def list_tiles(
    service: elevation_service.ElevationService = fastapi.Depends(  # noqa: B008
        elevation_service.get_elevation_service
    ),
) -> list[dict[str, Any]]:
    """List every manifest tile in priority order.

    Args:
        service: Elevation service (injected via FastAPI Depends).

    Returns:
        Tile descriptors with camelCase keys.
    """
    return [tile.to_dict() for tile in service.tiles()]


@router.get("/{tile_id}/contours")
async def tile_contours(
    tile_id: str,
    threshold_step: float | None = fastapi.Query(None, gt=0, alias="thresholdStep"),  # noqa: B008
    sample_size: int | None = fastapi.Query(  # noqa: B008
        None, gt=1, le=contours.MAX_SAMPLE_SIZE, alias="sampleSize"
    ),
    max_contours: int | None = fastapi.Query(None, gt=0, alias="maxContours"),  # noqa: B008
    service: elevation_service.ElevationService = fastapi.Depends(  # noqa: B008
        elevation_service.get_elevation_service
    ),
) -> dict[str, Any]:
    """Contour a single tile.

    A tile that exists but cannot be read yields an empty collection.

    Args:
        tile_id: Manifest tile id.
        threshold_step: Contour spacing override in meters.
        sample_size: Sample grid size override.
        max_contours: Maximum contour count override.
        service: Elevation service (injected via FastAPI Depends).

    Returns:
        GeoJSON FeatureCollection whose ``tiles`` member names the tile.

    Raises:
        HTTPException: If the tile id is not in the manifest (404).
    """
    try:
        tile = service.get_tile(tile_id)
    except errors.TileNotFoundError as exc:
        raise fastapi.HTTPException(status_code=404, detail="Tile not found") from exc

    settings = service.defaults.merged(
        threshold_step=threshold_step,
        sample_size=sample_size,
        max_contours=max_contours,
    )
    features = await service.get_tile_contours(tile, settings)
    return service_models.ContourFeatureCollection(
        features=features,
        tile_ids=[tile.id],
    ).to_geojson()
