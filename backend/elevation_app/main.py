"""FastAPI application entrypoint and configuration.

This module provides the FastAPI application factory that configures
logging, sets up CORS middleware, includes the elevation, contour and tile
routers, and exposes a health check endpoint for monitoring.

Example:
    The application can be run with uvicorn:
        $ uvicorn elevation_app.main:app --reload

    Or imported and used programmatically:
        >>> from elevation_app.main import app
        >>> # Use app in ASGI server
"""

import logging

import fastapi
from fastapi.middleware import cors

from elevation_app.api import contours, elevation, tiles
from elevation_app.core import config


def create_app() -> fastapi.FastAPI:
    """Create and configure the FastAPI application.

    Applies the configured log level, includes the API routers and adds a
    health check endpoint. CORS origins are configured from settings so the
    map front end can call the API from its own origin.

    Returns:
        Configured FastAPI application instance ready for ASGI server.

    Example:
        The app can be used with uvicorn or other ASGI servers:
            >>> app = create_app()
            >>> # Or use the module-level app instance:
            >>> from elevation_app.main import app
    """
    settings = config.get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = fastapi.FastAPI(title="Elevation Service", version="0.1.0")

    app.include_router(elevation.router)
    app.include_router(contours.router)
    app.include_router(tiles.router)

    app.add_middleware(
        cors.CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:  # type: ignore[misc]
        """Health check endpoint for monitoring and load balancers.

        Returns:
            Dictionary with status "ok" if the service is running.
        """
        return {"status": "ok"}

    return app


app = create_app()
