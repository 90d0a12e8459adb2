"""
Shared fixtures for the hole detection tests.

All images are synthetic: a two-tone target (black left half, white right
half) with sharp disks drawn in as pellet holes.
"""

import numpy as np
import pytest

from hole_detection.config import DetectionConfiguration
from hole_detection.models import (
    CandidateFeatures,
    DetectionCandidate,
    DetectionSignal,
    TargetRegion,
)

TARGET_WIDTH = 500
TARGET_HEIGHT = 400
BLACK_LEVEL = 30
WHITE_LEVEL = 220

# Expected hole radius for a 500x400 image at the default 2% fraction
EXPECTED_RADIUS = 8

# Hole on the white half, placed on the edge-ring scan grid
HOLE_CENTER = (302, 202)
HOLE_RADIUS = 8

# Light hole on the black half
LIGHT_HOLE_CENTER = (150, 202)


def make_target(width=TARGET_WIDTH, height=TARGET_HEIGHT, left_black=True):
    """Create a BGR target split into a black and a white half."""
    image = np.full((height, width, 3), WHITE_LEVEL, dtype=np.uint8)
    half = width // 2
    if left_black:
        image[:, :half] = BLACK_LEVEL
    else:
        image[:, half:] = BLACK_LEVEL
    return image


def draw_disk(image, center, radius, value):
    """Fill every pixel with dx^2 + dy^2 <= radius^2."""
    height, width = image.shape[:2]
    yy, xx = np.ogrid[:height, :width]
    mask = (xx - center[0]) ** 2 + (yy - center[1]) ** 2 <= radius ** 2
    image[mask] = value
    return image


# ============================================================================
# Image fixtures
# ============================================================================

@pytest.fixture
def half_target():
    """Black left half, white right half, no holes - 500x400 pixels."""
    return make_target()


@pytest.fixture
def target_with_hole():
    """One sharp dark hole (r=8) on the white half."""
    return draw_disk(make_target(), HOLE_CENTER, HOLE_RADIUS, BLACK_LEVEL)


@pytest.fixture
def target_with_light_hole():
    """One sharp light hole (r=8) on the black half."""
    return draw_disk(make_target(), LIGHT_HOLE_CENTER, HOLE_RADIUS, WHITE_LEVEL)


@pytest.fixture
def target_with_overlap():
    """Two dark holes 4 pixels apart, forming one connected blob."""
    image = make_target()
    draw_disk(image, (HOLE_CENTER[0] - 2, HOLE_CENTER[1]), HOLE_RADIUS, BLACK_LEVEL)
    draw_disk(image, (HOLE_CENTER[0] + 2, HOLE_CENTER[1]), HOLE_RADIUS, BLACK_LEVEL)
    return image


@pytest.fixture
def borderline_target():
    """A faint hole only 14 levels darker than the white half."""
    return draw_disk(make_target(), HOLE_CENTER, HOLE_RADIUS, WHITE_LEVEL - 14)


@pytest.fixture
def uniform_gray_image():
    """Uniform gray (128) image with no target structure - 500x400 pixels."""
    return np.full((TARGET_HEIGHT, TARGET_WIDTH, 3), 128, dtype=np.uint8)


@pytest.fixture
def default_config():
    return DetectionConfiguration.default()


# ============================================================================
# Candidate fixtures
# ============================================================================

@pytest.fixture
def make_candidate():
    """Factory for single-signal candidates in a 500x400 image."""
    def _make(x, y, signal=DetectionSignal.DARK_ANOMALY, score=0.8,
              radius=EXPECTED_RADIUS, region=TargetRegion.WHITE):
        return DetectionCandidate.from_signal(
            pixel_center=(x, y),
            pixel_radius=radius,
            signal=signal,
            raw_score=score,
            region=region,
            width=TARGET_WIDTH,
            height=TARGET_HEIGHT,
        )
    return _make


@pytest.fixture
def strong_features():
    """Features of a clean, isolated two-signal hole on the white half."""
    return CandidateFeatures(
        intensity_delta=-0.7,
        contrast_ratio=20.0,
        edge_closure=1.0,
        edge_strength=0.6,
        compactness=0.85,
        aspect_ratio=1.05,
        size_conformance=1.0,
        signal_count=2,
        region_type=TargetRegion.WHITE,
        ring_proximity=0.3,
        isolation=2.0,
    )
