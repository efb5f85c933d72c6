"""Restrict contour lines to a user-drawn polygon.

Clipping is vertex-based: a contour line is walked in order and split into
runs of consecutive vertices that lie inside the polygon. Runs of at least
two vertices become output segments; segments are never re-closed into
rings, and no intersection points with the polygon edges are synthesized.
All geometry is planar in degree space, with ``x = lng`` and ``y = lat``.

Example:
    Clip a line that leaves and re-enters a triangle:
        >>> triangle = [{"lat": 0, "lng": 0}, {"lat": 10, "lng": 5}, {"lat": 0, "lng": 10}]
        >>> line = [[2, 1], [4, 4], [5, 12], [6, 4], [8, 1]]
        >>> feature = ContourFeature(elevation=100, spacing=50, lines=[line])
        >>> clipped = clip_feature_to_polygon(feature, triangle)
        >>> len(clipped.lines)
        2
"""

from __future__ import annotations

import dataclasses
import logging
import math
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from elevation_app.core import errors

if TYPE_CHECKING:
    from collections.abc import Iterable

    from elevation_app.services import models as service_models

logger = logging.getLogger(__name__)

Point = tuple[float, float]  # (lng, lat)


@dataclasses.dataclass(frozen=True)
class ClipPolygon:
    """Normalized polygon ready for repeated inside tests.

    Attributes:
        vertices: ``(lng, lat)`` vertices without a repeated closing vertex.
        min_lng: Western edge of the bounding box.
        min_lat: Southern edge of the bounding box.
        max_lng: Eastern edge of the bounding box.
        max_lat: Northern edge of the bounding box.
    """

    vertices: tuple[Point, ...]
    min_lng: float
    min_lat: float
    max_lng: float
    max_lat: float

    @classmethod
    def from_vertices(cls, raw_vertices: Iterable[Any]) -> ClipPolygon:
        """Normalize vertices and compute the bounding box.

        Args:
            raw_vertices: Ordered vertices as ``{lat, lng}`` or
                ``{latitude, longitude}`` mappings or objects, or
                ``[lat, lng]`` pairs.

        Raises:
            InsufficientPolygonError: If fewer than 3 vertices remain after
                dropping unusable ones and a closing duplicate.
        """
        vertices = [
            point for point in (_to_point(raw) for raw in raw_vertices) if point is not None
        ]
        if len(vertices) > 1 and vertices[-1] == vertices[0]:
            vertices.pop()
        if len(vertices) < 3:
            raise errors.InsufficientPolygonError(
                f"Clip polygon needs at least 3 distinct vertices, got {len(vertices)}"
            )
        lngs = [lng for lng, _ in vertices]
        lats = [lat for _, lat in vertices]
        return cls(
            vertices=tuple(vertices),
            min_lng=min(lngs),
            min_lat=min(lats),
            max_lng=max(lngs),
            max_lat=max(lats),
        )

    def bbox_contains(self, lng: float, lat: float) -> bool:
        return self.min_lng <= lng <= self.max_lng and self.min_lat <= lat <= self.max_lat

    def contains(self, lng: float, lat: float) -> bool:
        """Bounding-box pre-check followed by the ray-casting test."""
        return self.bbox_contains(lng, lat) and point_in_polygon(lng, lat, self.vertices)


def _field(raw: Any, *names: str) -> Any:
    for name in names:
        value = raw.get(name) if isinstance(raw, Mapping) else getattr(raw, name, None)
        if value is not None:
            return value
    return None


def _to_point(raw: Any) -> Point | None:
    if isinstance(raw, Sequence) and not isinstance(raw, str):
        if len(raw) < 2:
            return None
        lat, lng = raw[0], raw[1]
    else:
        lat = _field(raw, "lat", "latitude")
        lng = _field(raw, "lng", "longitude")
    try:
        point = (float(lng), float(lat))
    except (TypeError, ValueError):
        return None
    return point if all(math.isfinite(v) for v in point) else None


def point_in_polygon(x: float, y: float, vertices: Sequence[Point]) -> bool:
    """Crossing-number test for a point against a simple polygon.

    An edge counts only when exactly one of its endpoints lies strictly above
    the ray, so a vertex on the ray is never counted twice.
    """
    inside = False
    j = len(vertices) - 1
    for i in range(len(vertices)):
        xi, yi = vertices[i]
        xj, yj = vertices[j]
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def clip_line(line: Sequence[Sequence[float]], polygon: ClipPolygon) -> list[list[list[float]]]:
    """Split a polyline into its runs of vertices inside ``polygon``.

    Returns:
        Segments of two or more ``[lng, lat]`` vertices, in line order.
    """
    segments: list[list[list[float]]] = []
    run: list[list[float]] = []
    for vertex in line:
        lng, lat = float(vertex[0]), float(vertex[1])
        if polygon.contains(lng, lat):
            run.append([lng, lat])
            continue
        if len(run) >= 2:
            segments.append(run)
        run = []
    if len(run) >= 2:
        segments.append(run)
    return segments


def _as_polygon(polygon: ClipPolygon | Iterable[Any]) -> ClipPolygon:
    if isinstance(polygon, ClipPolygon):
        return polygon
    return ClipPolygon.from_vertices(polygon)


def clip_feature_to_polygon(
    feature: service_models.ContourFeature,
    polygon: ClipPolygon | Iterable[Any],
) -> service_models.ContourFeature | None:
    """Keep only the parts of a contour feature inside a polygon.

    Args:
        feature: Contour feature whose lines are clipped.
        polygon: Normalized polygon or raw vertex list.

    Returns:
        A copy of the feature holding the clipped segments, or None when the
        polygon has fewer than 3 usable vertices or no segment survives.
    """
    try:
        clip_polygon = _as_polygon(polygon)
    except errors.InsufficientPolygonError as exc:
        logger.warning("Cannot clip contour feature: %s", exc)
        return None

    lines = [segment for line in feature.lines for segment in clip_line(line, clip_polygon)]
    if not lines:
        return None
    return dataclasses.replace(feature, lines=lines)


def clip_features_to_polygon(
    features: Iterable[service_models.ContourFeature],
    polygon: ClipPolygon | Iterable[Any],
) -> list[service_models.ContourFeature]:
    """Clip every feature, dropping those with nothing inside the polygon.

    Raises:
        InsufficientPolygonError: If the polygon has fewer than 3 usable
            vertices.
    """
    clip_polygon = _as_polygon(polygon)
    clipped = (clip_feature_to_polygon(feature, clip_polygon) for feature in features)
    return [feature for feature in clipped if feature is not None]
