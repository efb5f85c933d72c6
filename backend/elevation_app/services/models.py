"""Value objects returned by the elevation engine.

Results are plain dataclasses. Each one knows how to render itself as the
camelCase JSON the map renderer consumes: ``ElevationSample.to_dict`` for
point queries and GeoJSON ``Feature``/``FeatureCollection`` dictionaries
for contours.

Example:
    Render a contour collection for the map:
        >>> collection = ContourFeatureCollection(
        ...     features=[
        ...         ContourFeature(
        ...             elevation=100,
        ...             spacing=50,
        ...             lines=[[[117.0, 30.0], [117.1, 30.1]]],
        ...             tile_id="srtm_60_06",
        ...         )
        ...     ],
        ...     tile_ids=["srtm_60_06"],
        ... )
        >>> collection.to_geojson()["features"][0]["geometry"]["type"]
        'MultiLineString'
"""

from __future__ import annotations

import dataclasses
from typing import Any

Line = list[list[float]]


@dataclasses.dataclass(frozen=True)
class ElevationSample:
    """Result of a point elevation query.

    Attributes:
        has_data: True when an elevation could be estimated.
        elevation: Elevation in whole meters, or None.
        tile_id: Tile that covers the point, or None outside coverage.
        lat: Latitude rounded to 6 decimals.
        lng: Longitude rounded to 6 decimals.
    """

    has_data: bool
    elevation: int | None
    tile_id: str | None
    lat: float | None
    lng: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasData": self.has_data,
            "elevation": self.elevation,
            "tileId": self.tile_id,
            "lat": self.lat,
            "lng": self.lng,
        }


@dataclasses.dataclass(frozen=True)
class ContourSettings:
    """Parameters of one contour computation; part of the cache key.

    Attributes:
        threshold_step: Requested spacing between contour elevations.
        sample_size: Longest edge of the resampled grid, in cells.
        max_contours: Upper bound on thresholds per tile.
    """

    threshold_step: float = 50.0
    sample_size: int = 512
    max_contours: int = 12

    def merged(
        self,
        threshold_step: float | None = None,
        sample_size: int | None = None,
        max_contours: int | None = None,
    ) -> ContourSettings:
        """Return a copy with every non-None override applied."""
        return ContourSettings(
            threshold_step=self.threshold_step if threshold_step is None else threshold_step,
            sample_size=self.sample_size if sample_size is None else sample_size,
            max_contours=self.max_contours if max_contours is None else max_contours,
        )


@dataclasses.dataclass(frozen=True)
class ContourFeature:
    """Contour lines of one threshold on one tile.

    Attributes:
        elevation: Threshold the lines trace.
        spacing: Effective threshold step after enlargement to fit max_contours.
        lines: Independent polylines of ``[lng, lat]`` vertices; not
            necessarily closed.
        tile_id: Source tile, set by the elevation service.
    """

    elevation: float
    spacing: float
    lines: list[Line]
    tile_id: str | None = None

    def to_geojson(self) -> dict[str, Any]:
        properties: dict[str, Any] = {
            "elevation": self.elevation,
            "spacing": self.spacing,
        }
        if self.tile_id is not None:
            properties["tileId"] = self.tile_id
        return {
            "type": "Feature",
            "properties": properties,
            "geometry": {
                "type": "MultiLineString",
                "coordinates": self.lines,
            },
        }


@dataclasses.dataclass(frozen=True)
class ContourFeatureCollection:
    """Contours for a region, concatenated across tiles without stitching.

    Attributes:
        features: Features of every contributing tile, in manifest order.
        tile_ids: Tiles intersecting the region, including those that failed
            to load or produced no contours.
    """

    features: list[ContourFeature] = dataclasses.field(default_factory=list)
    tile_ids: list[str] = dataclasses.field(default_factory=list)

    def to_geojson(self) -> dict[str, Any]:
        return {
            "type": "FeatureCollection",
            "features": [feature.to_geojson() for feature in self.features],
            "tiles": list(self.tile_ids),
        }
