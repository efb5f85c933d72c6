"""Elevation sampling and contour generation backend.

This package answers two questions about a tiled elevation dataset (SRTM
tiles stored as Cloud Optimized GeoTIFFs):

- What is the elevation under a coordinate? Answered by bilinear
  interpolation over the 2x2 pixel neighborhood read from the covering tile.
- What contour lines cover the visible map region? Answered per tile by
  marching squares over a resampled grid, optionally clipped to a polygon.

- Tiles are located through a static manifest of ids and coverage boxes
- Tiles are opened once through rio-tiler and kept in a bounded LRU cache
- Concurrent requests for the same tile or contour result share one load
- Query failures degrade to empty results instead of errors
- Exposed over FastAPI with dependency injection for testability

See module sub-docstrings for details on architecture and usage.
"""
