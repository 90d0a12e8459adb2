"""
Unit tests for the region_analysis module.
"""

import numpy as np
import pytest

from conftest import make_target
from hole_detection.image_preprocessing import to_grayscale
from hole_detection.models import TargetRegion
from hole_detection.region_analysis import (
    analyze_regions,
    compute_contrast,
    compute_region_stats,
    compute_sharpness,
    find_transition,
)


def _gray(image):
    return to_grayscale(image)[0]


class TestFindTransition:
    """Tests for the find_transition function."""

    def test_finds_step(self):
        """Test that a sharp step is located at its first bright column."""
        profile = np.array([30.0] * 250 + [220.0] * 250)
        transition_x, gradient = find_transition(profile)
        assert transition_x == 250
        assert gradient == pytest.approx(190.0)

    def test_flat_profile_falls_back_to_midpoint(self):
        """Test that no usable gradient yields the horizontal midpoint."""
        transition_x, gradient = find_transition(np.full(301, 128.0))
        assert transition_x == 150
        assert gradient == 0.0

    def test_weak_step_falls_back_to_midpoint(self):
        """Test that a step below the 30-level threshold is ignored."""
        profile = np.array([100.0] * 100 + [120.0] * 300)
        transition_x, gradient = find_transition(profile)
        assert transition_x == 200
        assert gradient == pytest.approx(20.0)

    def test_tiny_profile(self):
        """Test that a profile too short for the window does not fail."""
        transition_x, gradient = find_transition(np.array([10.0]))
        assert transition_x == 0
        assert gradient == 0.0


class TestRegionStatistics:
    """Tests for the statistics helpers."""

    def test_region_stats_floor_std(self, half_target):
        """Test that a uniform region reports its mean with std floored at 1."""
        mean, std = compute_region_stats(_gray(half_target), 0, 250)
        assert mean == pytest.approx(30.0)
        assert std == 1.0

    def test_region_stats_empty_range(self, half_target):
        """Test that an empty column range returns the defaults."""
        assert compute_region_stats(_gray(half_target), 100, 100) == (128.0, 30.0)

    def test_contrast_percentile_spread(self, half_target):
        """Test that contrast is the 5th-95th percentile spread over 255."""
        assert compute_contrast(_gray(half_target)) == pytest.approx(190 / 255)

    def test_contrast_uniform(self, uniform_gray_image):
        assert compute_contrast(_gray(uniform_gray_image)) == 0.0

    def test_sharpness(self, half_target, uniform_gray_image):
        """Test that a sharp edge gives positive sharpness and a flat image none."""
        assert compute_sharpness(_gray(half_target)) > 100.0
        assert compute_sharpness(_gray(uniform_gray_image)) == 0.0


class TestAnalyzeRegions:
    """Tests for the analyze_regions function."""

    def test_left_black_target(self, half_target):
        """Test that a black-left target is split at the step."""
        analysis = analyze_regions(_gray(half_target))

        assert analysis.transition_x == 250
        assert analysis.transition_x_normalized == pytest.approx(0.5)
        assert analysis.is_left_black
        assert analysis.black_mean == pytest.approx(30.0)
        assert analysis.white_mean == pytest.approx(220.0)
        assert analysis.is_valid

    def test_right_black_target(self):
        """Test that a black-right target is recognised."""
        analysis = analyze_regions(_gray(make_target(left_black=False)))

        assert not analysis.is_left_black
        assert analysis.black_mean == pytest.approx(30.0)
        assert analysis.white_mean == pytest.approx(220.0)
        assert analysis.region_at(100) == TargetRegion.WHITE
        assert analysis.region_at(400) == TargetRegion.BLACK

    def test_region_at_and_spans(self, half_target):
        """Test the column helpers for a black-left target."""
        analysis = analyze_regions(_gray(half_target))

        assert analysis.region_at(249) == TargetRegion.BLACK
        assert analysis.region_at(250) == TargetRegion.WHITE
        assert analysis.white_span(500) == (250, 500)
        assert analysis.black_span(500) == (0, 250)

    def test_uniform_image_is_invalid(self, uniform_gray_image):
        """Test that a featureless image falls back to the midpoint and is invalid."""
        analysis = analyze_regions(_gray(uniform_gray_image))

        assert analysis.transition_x == 250
        assert analysis.transition_x_normalized == pytest.approx(0.5)
        assert not analysis.is_valid

    @pytest.mark.parametrize("split", [60, 180, 320, 440])
    def test_transition_normalized_in_unit_range(self, split):
        """Test that the normalized transition always lies in [0, 1]."""
        image = np.full((300, 500), 220, dtype=np.uint8)
        image[:, :split] = 30
        analysis = analyze_regions(image)

        assert 0.0 <= analysis.transition_x_normalized <= 1.0
        assert analysis.transition_x == split

    def test_to_dict(self, half_target):
        data = analyze_regions(_gray(half_target)).to_dict()
        assert data["is_valid"] is True
        assert data["transition_x"] == 250
