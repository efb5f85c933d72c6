"""API router subpackage for the elevation backend.

Each module exposes its own APIRouter for composition in the application's
main FastAPI instance. All routers share the elevation service through the
``get_elevation_service`` dependency, which tests replace via
``app.dependency_overrides``.

Submodules:
    - elevation: Point elevation queries.
    - contours: Contour lines for a map region, optionally clipped to a
      polygon, and cache invalidation.
    - tiles: Tile manifest listing and single-tile contours.
"""
