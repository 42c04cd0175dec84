"""
Tests for the scale and arc geometry helpers.
"""

import math

import pytest

from profile_dashboard.scales import (
    arc_path,
    category_tick_indices,
    extent,
    format_number,
    large_arc_flag,
    linear_scale,
    max_value,
    pie_slices,
    value_ticks,
)


class TestLinearScale:
    """Test linear domain to range mapping."""

    def test_maps_proportionally(self):
        """Test interpolation and extrapolation."""
        scale = linear_scale((0, 10), (0, 100))

        assert scale(0) == 0
        assert scale(5) == 50
        assert scale(10) == 100
        assert scale(20) == 200

    def test_inverted_range(self):
        """Test the usual y-axis mapping where larger values sit higher."""
        scale = linear_scale((0, 200), (300, 0))

        assert scale(0) == 300
        assert scale(200) == 0
        assert scale(50) == 225

    def test_degenerate_domain_maps_to_range_start(self):
        """Test that a zero-width domain does not divide by zero."""
        scale = linear_scale((3, 3), (10, 20))

        assert scale(3) == 10
        assert scale(7) == 10


class TestTicks:
    """Test tick and extent helpers."""

    def test_value_ticks(self):
        """Test six evenly spaced values including both ends."""
        assert value_ticks(100) == [0, 20, 40, 60, 80, 100]

    def test_category_ticks_short_series(self):
        """Test that a short series gets one tick per item."""
        assert category_tick_indices(3) == [0, 1, 2]

    def test_category_ticks_sampled(self):
        """Test sampling of a long series."""
        assert category_tick_indices(12) == [0, 2, 4, 7, 9]
        assert category_tick_indices(0) == []

    def test_extent_and_max(self):
        """Test min/max helpers, including empty input."""
        assert extent([3, 1, 2], float) == (1, 3)
        assert extent([], float) == (0.0, 0.0)
        assert max_value([3, 1, 2], float) == 3
        assert max_value([], float) == 0.0

    @pytest.mark.parametrize(
        "value, expected",
        [(100, "100"), (12.5, "12.5"), (3.14159, "3.14"), (0, "0"), (-0.001, "0"), (-4.25, "-4.25")],
    )
    def test_format_number(self, value, expected):
        """Test compact coordinate formatting."""
        assert format_number(value) == expected


class TestArcs:
    """Test pie and donut slice geometry."""

    def test_large_arc_flag(self):
        """Test the flag switches strictly above half a turn."""
        assert large_arc_flag(math.pi / 2) == 0
        assert large_arc_flag(math.pi) == 0
        assert large_arc_flag(1.5 * math.pi) == 1

    def test_equal_halves(self):
        """Test two equal slices starting at twelve o'clock."""
        slices = pie_slices([("Passed", 1), ("Failed", 1)], 100)

        assert [s.path for s in slices] == [
            "M 0 -100 A 100 100 0 0 1 0 100 L 0 0 Z",
            "M 0 100 A 100 100 0 0 1 0 -100 L 0 0 Z",
        ]
        assert [s.percentage for s in slices] == [50.0, 50.0]

    def test_slice_angles_and_labels(self):
        """Test large-arc flags and label placement for an uneven split."""
        passed, failed = pie_slices([("Passed", 3), ("Failed", 1)], 100)

        assert passed.large_arc == 1
        assert failed.large_arc == 0
        assert passed.angle == pytest.approx(1.5 * math.pi)
        assert passed.start_angle == pytest.approx(-math.pi / 2)
        assert failed.end_angle == pytest.approx(1.5 * math.pi)
        assert passed.label_x == pytest.approx(70 * math.cos(math.pi / 4))
        assert passed.label_y == pytest.approx(70 * math.sin(math.pi / 4))
        assert (passed.percentage, failed.percentage) == (75.0, 25.0)

    def test_zero_total_produces_no_slices(self):
        """Test that nothing is drawn when every value is zero."""
        assert pie_slices([("Passed", 0), ("Failed", 0)], 100) == []
        assert pie_slices([], 100) == []

    def test_slice_percentages_round_ties_up(self):
        """Test that slice percentages round a trailing 5 upwards."""
        passed, failed = pie_slices([("Passed", 1), ("Failed", 15)], 100)

        assert (passed.percentage, failed.percentage) == (6.3, 93.8)

    def test_full_circle(self):
        """Test that a single non-zero value covers the whole circle."""
        slices = pie_slices([("Passed", 3), ("Failed", 0)], 100)

        assert len(slices) == 1
        assert slices[0].path.count(" A ") == 2
        assert slices[0].percentage == 100.0

    def test_donut_slice_has_inner_arc(self):
        """Test that a non-zero inner radius adds the inner arc back to the start."""
        path = arc_path(-math.pi / 2, math.pi / 2, 100, 50)

        assert path == "M 0 -100 A 100 100 0 0 1 0 100 L 0 50 A 50 50 0 0 0 0 -50 Z"
