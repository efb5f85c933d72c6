"""Bilinear interpolation and result formatting for point elevation queries.

The interpolator works on the four pixels surrounding a fractional raster
position. Missing corners (None, NaN or the raster's no-data sentinel) do not
poison the result: with one to three usable corners the function degrades to
their arithmetic mean, and only a fully empty neighborhood yields None.

Example:
    Interpolate a quarter of the way across a regular cell:
        >>> from elevation_app.services.interpolation import bilinear_interpolation
        >>> bilinear_interpolation(0.25, 0.5, [100, 200, 150, 250], None)
        150.0
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

Corner = float | int | None


def _is_missing(value: Corner, no_data_value: float | None) -> bool:
    if value is None:
        return True
    numeric = float(value)
    if math.isnan(numeric):
        return True
    return no_data_value is not None and numeric == float(no_data_value)


def bilinear_interpolation(
    x_ratio: float,
    y_ratio: float,
    corners: Sequence[Corner],
    no_data_value: float | None = None,
) -> float | None:
    """Estimate a value from the four corners of a raster cell.

    Args:
        x_ratio: Fractional column offset inside the cell, in [0, 1].
        y_ratio: Fractional row offset inside the cell, in [0, 1].
        corners: ``[top_left, top_right, bottom_left, bottom_right]``.
        no_data_value: Raster sentinel meaning "no measurement".

    Returns:
        The bilinear estimate when all four corners are usable, the mean of
        the usable corners when one to three are, or None when none are or
        ``corners`` does not hold exactly four entries.
    """
    if len(corners) != 4:
        return None

    valid = [float(v) for v in corners if not _is_missing(v, no_data_value)]
    if not valid:
        return None

    if len(valid) < 4:
        return sum(valid) / len(valid)

    top_left, top_right, bottom_left, bottom_right = valid
    top = top_left + (top_right - top_left) * x_ratio
    bottom = bottom_left + (bottom_right - bottom_left) * x_ratio
    return top + (bottom - top) * y_ratio


def format_coordinate(value: float | None) -> float | None:
    """Round a coordinate to 6 decimals, or None for missing input."""
    if value is None or not math.isfinite(value):
        return None
    return round(float(value), 6)


def round_elevation(value: float | None) -> int | None:
    """Round an elevation to the nearest meter, halves toward +infinity."""
    if value is None or not math.isfinite(value):
        return None
    return math.floor(float(value) + 0.5)
