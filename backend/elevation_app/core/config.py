"""Application settings and configuration management.

This module provides Pydantic-based settings management that loads
configuration from environment variables or a .env file. Settings include
the raster tile location, the optional tile manifest file, contour defaults,
cache sizes, tile load timeout, the display coordinate system, CORS origins,
and the log level.

Example:
    Settings can be accessed via the cached get_settings() function:
        >>> from elevation_app.core.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.tile_base_url)

    Environment variables can override defaults:
        >>> TILE_BASE_URL=https://cdn.example.com/geo
        >>> MANIFEST_PATH=/etc/elevation/manifest.json
        >>> DISPLAY_CRS=gcj02
"""

import functools
import pathlib
from typing import Literal

import pydantic
import pydantic_settings

DisplayCRS = Literal["wgs84", "gcj02"]


class Settings(pydantic_settings.BaseSettings):
    """Runtime configuration pulled from environment variables or defaults.

    All settings can be overridden via environment variables or .env file.

    Attributes:
        tile_base_url: Directory or URL prefix holding the elevation tiles.
            A tile is addressed as ``{tile_base_url}/{file_name}``.
        manifest_path: JSON manifest describing the tiles. When unset the
            built-in SRTM manifest is used.
        threshold_step: Default contour spacing in meters.
        sample_size: Default longest edge of the contour sample grid.
        max_contours: Default upper bound on thresholds per tile.
        tile_cache_size: Number of open tiles kept in memory.
        contour_cache_size: Number of per-tile contour results kept in memory.
        tile_load_timeout_seconds: Time a caller waits for a tile to open.
        display_crs: Coordinate system of returned contour vertices.
        allow_origins: List of allowed CORS origins (["*"] allows all).
        log_level: Root log level applied by the application factory.

    Example:
        Create settings with custom values:
            >>> settings = Settings(
            ...     tile_base_url="/data/srtm",
            ...     threshold_step=20,
            ...     display_crs="gcj02",
            ... )
    """

    tile_base_url: str = "/geo"
    manifest_path: pathlib.Path | None = None
    threshold_step: float = pydantic.Field(default=50.0, gt=0)
    sample_size: int = pydantic.Field(default=512, gt=1)
    max_contours: int = pydantic.Field(default=12, gt=0)
    tile_cache_size: int = pydantic.Field(default=64, gt=0)
    contour_cache_size: int = pydantic.Field(default=1024, gt=0)
    tile_load_timeout_seconds: float = pydantic.Field(default=30.0, gt=0)
    display_crs: DisplayCRS = "wgs84"
    allow_origins: list[str] = ["*"]
    log_level: str = "INFO"

    model_config = pydantic_settings.SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@functools.lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded from environment variables or .env file and cached
    for the lifetime of the application. Subsequent calls return the same
    cached instance.

    Returns:
        Settings instance with all configuration values populated.

    Example:
        The settings are cached, so multiple calls return the same instance:
            >>> settings1 = get_settings()
            >>> settings2 = get_settings()
            >>> assert settings1 is settings2  # Same instance
    """
    return Settings()
