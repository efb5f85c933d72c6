"""Tests for bilinear interpolation and result formatting."""

from __future__ import annotations

import math
import random

import pytest

from elevation_app.services import interpolation


def test_bilinear_corners_reproduce_corner_values() -> None:
    """Test that the four unit-square corners return their own values."""
    corners = [100.0, 200.0, 300.0, 400.0]
    assert interpolation.bilinear_interpolation(0, 0, corners) == 100.0
    assert interpolation.bilinear_interpolation(1, 0, corners) == 200.0
    assert interpolation.bilinear_interpolation(0, 1, corners) == 300.0
    assert interpolation.bilinear_interpolation(1, 1, corners) == 400.0


def test_bilinear_center_is_mean() -> None:
    """Test that the cell center is the mean of the corners."""
    value = interpolation.bilinear_interpolation(0.5, 0.5, [10, 20, 30, 40])
    assert value == pytest.approx(25.0)


def test_bilinear_stays_within_corner_range() -> None:
    """Test that estimates never leave the corner value range."""
    rng = random.Random(7)
    for _ in range(200):
        corners = [rng.uniform(-500, 9000) for _ in range(4)]
        value = interpolation.bilinear_interpolation(rng.random(), rng.random(), corners)
        assert value is not None
        assert min(corners) - 1e-9 <= value <= max(corners) + 1e-9


def test_bilinear_matches_closed_form() -> None:
    """Test that full neighborhoods follow the row-then-column lerp formula."""
    rng = random.Random(11)
    for _ in range(200):
        top_left, top_right, bottom_left, bottom_right = (
            rng.uniform(-500, 9000) for _ in range(4)
        )
        x, y = rng.random(), rng.random()
        top = top_left + (top_right - top_left) * x
        bottom = bottom_left + (bottom_right - bottom_left) * x
        value = interpolation.bilinear_interpolation(
            x, y, [top_left, top_right, bottom_left, bottom_right]
        )
        assert value == pytest.approx(top + (bottom - top) * y)


def test_bilinear_quarter_offset() -> None:
    """Test a quarter of the way across a cell, halfway down."""
    value = interpolation.bilinear_interpolation(0.25, 0.5, [100, 200, 150, 250])
    assert value == pytest.approx(150.0, abs=1e-5)


def test_bilinear_single_no_data_corner_uses_mean_of_rest() -> None:
    """Test that one no-data corner falls back to the mean of the other three."""
    value = interpolation.bilinear_interpolation(
        0.5, 0.5, [100, -32768, 200, 220], no_data_value=-32768
    )
    assert value is not None
    assert 150 < value < 220
    assert value == pytest.approx((100 + 200 + 220) / 3)


def test_bilinear_falls_back_to_mean_of_valid_corners() -> None:
    """Test that missing corners degrade to the mean of the rest."""
    value = interpolation.bilinear_interpolation(
        0.9, 0.1, [100, -32768, 200, math.nan], no_data_value=-32768
    )
    assert value == pytest.approx(150.0)

    value = interpolation.bilinear_interpolation(0.3, 0.3, [None, None, 42, None])
    assert value == pytest.approx(42.0)


def test_bilinear_no_valid_corners() -> None:
    """Test that an all-missing neighborhood yields None."""
    assert (
        interpolation.bilinear_interpolation(
            0.5, 0.5, [-32768, -32768, None, math.nan], no_data_value=-32768
        )
        is None
    )


@pytest.mark.parametrize("corners", [[], [1, 2, 3], [1, 2, 3, 4, 5]])
def test_bilinear_requires_four_corners(corners: list[float]) -> None:
    """Test that a corner list of the wrong length yields None."""
    assert interpolation.bilinear_interpolation(0.5, 0.5, corners) is None


def test_format_coordinate() -> None:
    """Test rounding coordinates to 6 decimals."""
    assert interpolation.format_coordinate(32.123456789) == 32.123457
    assert interpolation.format_coordinate(30.1234567) == pytest.approx(30.123457, abs=1e-9)
    assert interpolation.format_coordinate(None) is None
    assert interpolation.format_coordinate(math.inf) is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (123.6, 124),
        (12.4, 12),
        (12.5, 13),
        (-12.5, -12),
        (-12.6, -13),
        (-0.5, 0),
        (0.49, 0),
        (1234.5, 1235),
    ],
)
def test_round_elevation(value: float, expected: int) -> None:
    """Test rounding to whole meters with halves toward +infinity."""
    assert interpolation.round_elevation(value) == expected


def test_round_elevation_missing() -> None:
    """Test that missing or non-finite elevations stay None."""
    assert interpolation.round_elevation(None) is None
    assert interpolation.round_elevation(math.nan) is None
