"""Point elevation query endpoint.

Example:
    Ask for the elevation under a map click:
        >>> response = client.get("/api/elevation", params={"lat": 32.5, "lng": 117.25})
        >>> response.json()
        >>> # Returns: {"hasData": true, "elevation": 143, "tileId": "srtm_60_06",
        >>> #           "lat": 32.5, "lng": 117.25}
"""

from typing import Any

import fastapi

from elevation_app.services import elevation_service

router = fastapi.APIRouter(prefix="/api/elevation", tags=["elevation"])


@router.get("")
async def get_elevation(
    lat: float = fastapi.Query(..., ge=-90, le=90),  # noqa: B008
    lng: float = fastapi.Query(..., ge=-180, le=180),  # noqa: B008
    service: elevation_service.ElevationService = fastapi.Depends(  # noqa: B008
        elevation_service.get_elevation_service
    ),
) -> dict[str, Any]:
    """Estimate the elevation at a coordinate.

    Points outside the tile coverage, or on tiles that cannot be read,
    answer with ``hasData: false`` rather than an error status.

    Args:
        lat: Latitude in degrees.
        lng: Longitude in degrees.
        service: Elevation service (injected via FastAPI Depends).

    Returns:
        ElevationSample with camelCase keys.
    """
    sample = await service.get_elevation(lat, lng)
    return sample.to_dict()
