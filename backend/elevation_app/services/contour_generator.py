"""Contour threshold selection and line extraction for a sampled raster.

Given a tile already resampled to a bounded grid, this module picks a set of
elevation thresholds that fits a result-count limit and traces each one with
marching squares (scikit-image ``find_contours``). Grid vertices are mapped
back to geographic coordinates using the tile's bounding box, then through a
pluggable display transform.

Threshold selection ignores outliers: values outside [-10000, 10000] m, the
no-data sentinel and non-finite values are dropped, and only the 1st to 99th
percentile of what remains defines the elevation range.

Example:
    Contour a 3x3 ramp at 10 m spacing:
        >>> features = generate_contour_features(
        ...     width=3,
        ...     height=3,
        ...     values=[5, 15, 25, 15, 25, 35, 25, 35, 45],
        ...     bbox=(117.0, 30.0, 117.1, 30.1),
        ...     no_data_value=-32768,
        ...     threshold_step=10,
        ... )
        >>> [feature.elevation for feature in features]
        [10.0, 20.0, 30.0, 40.0]
"""

from __future__ import annotations

import dataclasses
import math
from typing import TYPE_CHECKING

import numpy as np
from skimage import measure

from elevation_app.services import coordinate_transform
from elevation_app.services import models as service_models

if TYPE_CHECKING:
    from collections.abc import Sequence

    import numpy.typing as npt

    BBox = tuple[float, float, float, float]

MIN_PLAUSIBLE_ELEVATION = -10000.0
MAX_PLAUSIBLE_ELEVATION = 10000.0
LOWER_PERCENTILE = 0.01
UPPER_PERCENTILE = 0.99
DEFAULT_THRESHOLD_STEP = 50.0
DEFAULT_MAX_CONTOURS = 12

# absorbs float error in (end - start) / step so the last threshold survives
_STEP_EPSILON = 1e-9


@dataclasses.dataclass(frozen=True)
class ValueRange:
    minimum: float
    maximum: float


@dataclasses.dataclass(frozen=True)
class ThresholdPlan:
    """Thresholds to trace and the step that separates them."""

    thresholds: list[float]
    step: float


def valid_mask(values: npt.ArrayLike, no_data_value: float | None) -> np.ndarray:
    """Boolean mask of finite, plausible samples that are not no-data."""
    data = np.asarray(values, dtype="float64")
    mask = np.isfinite(data)
    mask &= data >= MIN_PLAUSIBLE_ELEVATION
    mask &= data <= MAX_PLAUSIBLE_ELEVATION
    if no_data_value is not None and math.isfinite(no_data_value):
        mask &= data != float(no_data_value)
    return mask


def collect_valid_range(
    values: npt.ArrayLike,
    no_data_value: float | None,
) -> ValueRange | None:
    """Return the 1st-99th percentile range of the valid samples.

    Returns:
        The range, or None when no sample is valid.
    """
    data = np.asarray(values, dtype="float64").ravel()
    valid = np.sort(data[valid_mask(data, no_data_value)])
    count = valid.size
    if count == 0:
        return None
    low = math.floor(count * LOWER_PERCENTILE)
    high = min(math.floor(count * UPPER_PERCENTILE), count - 1)
    return ValueRange(minimum=float(valid[low]), maximum=float(valid[high]))


def _threshold_count(start: float, end: float, step: float) -> int:
    return math.floor((end - start) / step + _STEP_EPSILON) + 1


def build_thresholds(
    value_range: ValueRange | None,
    step: float = DEFAULT_THRESHOLD_STEP,
    max_contours: int = DEFAULT_MAX_CONTOURS,
) -> ThresholdPlan:
    """Choose contour elevations for a value range under a count limit.

    Thresholds are multiples of ``step`` covering the range. When there
    would be more than ``max_contours`` of them, the step is multiplied by
    the smallest integer that brings the count within the limit.

    Args:
        value_range: Range of the sampled values, or None for no data.
        step: Requested spacing; non-positive values fall back to 50.
        max_contours: Maximum number of thresholds returned.

    Returns:
        ThresholdPlan with the thresholds and the effective step.
    """
    safe_step = float(step) if step and step > 0 else DEFAULT_THRESHOLD_STEP
    limit = max(1, int(max_contours))
    if value_range is None:
        return ThresholdPlan(thresholds=[], step=safe_step)

    start = math.floor(value_range.minimum / safe_step) * safe_step
    end = math.ceil(value_range.maximum / safe_step) * safe_step

    raw_count = _threshold_count(start, end, safe_step)
    if raw_count > limit:
        safe_step *= math.ceil(raw_count / limit)

    count = min(_threshold_count(start, end, safe_step), limit)
    thresholds = [float(start + index * safe_step) for index in range(count)]
    return ThresholdPlan(thresholds=thresholds, step=safe_step)


def _reproject(
    path: np.ndarray,
    width: int,
    height: int,
    bbox: BBox,
    transform: coordinate_transform.CoordinateTransform,
) -> service_models.Line:
    min_lng, min_lat, max_lng, max_lat = bbox
    rows = path[:, 0]
    cols = path[:, 1]
    lngs = min_lng + cols / max(width - 1, 1) * (max_lng - min_lng)
    lats = max_lat - rows / max(height - 1, 1) * (max_lat - min_lat)
    return [list(transform(float(lng), float(lat))) for lng, lat in zip(lngs, lats)]


def generate_contour_features(
    width: int,
    height: int,
    values: npt.ArrayLike | Sequence[float],
    bbox: BBox | None,
    no_data_value: float | None = None,
    threshold_step: float = DEFAULT_THRESHOLD_STEP,
    max_contours: int = DEFAULT_MAX_CONTOURS,
    transform: coordinate_transform.CoordinateTransform = coordinate_transform.identity,
) -> list[service_models.ContourFeature]:
    """Trace contour lines of a sampled raster.

    Args:
        width: Grid columns.
        height: Grid rows; row 0 is the northern edge.
        values: ``width * height`` samples in row-major order, or a
            ``(height, width)`` array. Callers resample the tile first so
            the grid size is bounded.
        bbox: ``(min_lng, min_lat, max_lng, max_lat)`` of the grid.
        no_data_value: Sentinel excluded from ranges and tracing.
        threshold_step: Requested spacing between contour elevations.
        max_contours: Maximum number of thresholds.
        transform: Geographic to display coordinate transform.

    Returns:
        One feature per threshold that produced at least one line of two or
        more vertices, in ascending elevation order.
    """
    if values is None or bbox is None or width < 2 or height < 2:
        return []

    grid = np.asarray(values, dtype="float64")
    if grid.size != width * height:
        return []
    grid = grid.reshape(height, width)

    mask = valid_mask(grid, no_data_value)
    plan = build_thresholds(
        collect_valid_range(grid[mask], no_data_value),
        threshold_step,
        max_contours,
    )
    if not plan.thresholds:
        return []

    traced = np.where(mask, grid, np.nan)
    features = []
    for threshold in plan.thresholds:
        lines = [
            line
            for line in (
                _reproject(path, width, height, bbox, transform)
                for path in measure.find_contours(traced, threshold, mask=mask)
            )
            if len(line) >= 2
        ]
        if lines:
            features.append(
                service_models.ContourFeature(
                    elevation=threshold,
                    spacing=plan.step,
                    lines=lines,
                )
            )
    return features
