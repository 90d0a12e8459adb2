"""
Unit tests for the sampling and blob_analysis modules.
"""

import math

import numpy as np
import pytest

from hole_detection.blob_analysis import (
    Blob,
    compute_aspect_ratio,
    compute_compactness,
    extract_blob,
)
from hole_detection.sampling import (
    disk_offsets,
    edge_ring_offsets,
    edge_ring_profile,
    edge_ring_sample_count,
    gather,
    ring_offsets,
    ring_statistics,
    sample_disk,
    sample_ring,
)


def _disk_image(center=(50, 50), radius=6, inside=30, outside=220, size=100):
    image = np.full((size, size), outside, dtype=np.uint8)
    yy, xx = np.ogrid[:size, :size]
    image[(xx - center[0]) ** 2 + (yy - center[1]) ** 2 <= radius ** 2] = inside
    return image


# ============================================================================
# Offset lattices
# ============================================================================

class TestOffsets:
    """Tests for the cached offset lattices."""

    def test_ring_offsets_within_bounds(self):
        dy, dx = ring_offsets(3, 5)
        dist = np.sqrt(dx ** 2 + dy ** 2).astype(int)
        assert len(dy) > 0
        assert dist.min() >= 3
        assert dist.max() <= 5
        # Stride-2 lattice
        assert np.all(dx % 2 == 1) or np.all(dx % 2 == 0)

    def test_offsets_are_cached_and_read_only(self):
        """Test that repeated calls share one read-only lattice."""
        first = ring_offsets(9, 16)
        assert ring_offsets(9, 16) is first
        assert not first[0].flags.writeable
        with pytest.raises(ValueError):
            first[0][0] = 99

    def test_disk_offsets_count(self):
        """Test that a radius-2 disk has 13 lattice points."""
        dy, dx = disk_offsets(2)
        assert len(dy) == 13
        assert np.all(dx ** 2 + dy ** 2 <= 4)

    def test_edge_ring_sample_count(self):
        assert edge_ring_sample_count(2) == 16
        assert edge_ring_sample_count(8) == 32

    def test_edge_ring_offsets_truncate_inwards(self):
        """Test that angular samples never lie outside the nominal radius."""
        dy, dx = edge_ring_offsets(8)
        assert len(dy) == 32
        assert np.all(dx ** 2 + dy ** 2 <= 64)
        assert (8 in dx) and (-8 in dx) and (8 in dy) and (-8 in dy)


# ============================================================================
# Sampling
# ============================================================================

class TestSampling:
    """Tests for gather and the sampling wrappers."""

    def test_gather_marks_out_of_bounds(self):
        """Test that samples outside the matrix are flagged invalid."""
        matrix = np.arange(25, dtype=np.uint8).reshape(5, 5)
        values, valid = gather(matrix, np.array([0]), np.array([0]), disk_offsets(1))

        assert values.shape == valid.shape == (1, 5)
        assert valid.sum() == 3
        assert set(values[valid].tolist()) == {0.0, 1.0, 5.0}

    def test_sample_disk_uniform(self):
        gray = np.full((50, 50), 100, dtype=np.uint8)
        assert sample_disk(gray, 25, 25, 5) == pytest.approx(100.0)

    def test_sample_disk_outside_image(self):
        """Test that a disk entirely outside the image returns the default."""
        gray = np.full((50, 50), 100, dtype=np.uint8)
        assert sample_disk(gray, -100, -100, 3) == pytest.approx(128.0)

    def test_sample_ring_floors_std(self):
        """Test that a uniform annulus reports std 1 even at a corner."""
        gray = np.full((50, 50), 50, dtype=np.uint8)
        mean, std = sample_ring(gray, 0, 0, 3, 6)
        assert mean == pytest.approx(50.0)
        assert std == 1.0

    def test_ring_statistics_empty_ring_defaults(self):
        gray = np.full((50, 50), 50, dtype=np.uint8)
        means, stds = ring_statistics(gray, np.array([-1000]), np.array([-1000]), 3, 6)
        assert means[0] == pytest.approx(128.0)
        assert stds[0] == pytest.approx(30.0)

    def test_ring_statistics_vectorized(self):
        """Test that each grid point gets its own background."""
        gray = np.full((60, 120), 200, dtype=np.uint8)
        gray[:, 60:] = 40
        means, _ = ring_statistics(gray, np.array([30, 30]), np.array([25, 95]), 4, 8)
        assert means[0] == pytest.approx(200.0)
        assert means[1] == pytest.approx(40.0)

    def test_edge_ring_profile_full_ring(self):
        edges = np.full((50, 50), 255, dtype=np.uint8)
        closure, strength = edge_ring_profile(edges, 25, 25, 8)
        assert closure == pytest.approx(1.0)
        assert strength == pytest.approx(1.0)

    def test_edge_ring_profile_counts_missing_samples(self):
        """Test that samples off the image count as missing edge."""
        edges = np.full((50, 50), 255, dtype=np.uint8)
        closure, strength = edge_ring_profile(edges, 0, 25, 8)
        assert 0.4 < closure < 0.7
        assert strength == pytest.approx(closure)

    def test_edge_ring_profile_no_edges(self):
        edges = np.zeros((50, 50), dtype=np.uint8)
        assert edge_ring_profile(edges, 25, 25, 8) == (0.0, 0.0)


# ============================================================================
# Blob analysis
# ============================================================================

class TestBlobShape:
    """Tests for compactness and aspect ratio."""

    def test_square_compactness(self):
        """Test that a filled square scores close to pi/4."""
        mask = np.zeros((40, 40), dtype=np.uint8)
        mask[10:30, 10:30] = 1
        assert compute_compactness(mask) == pytest.approx(math.pi / 4, abs=0.02)

    def test_elongated_shape_less_compact(self):
        square = np.zeros((40, 40), dtype=np.uint8)
        square[10:30, 10:30] = 1
        bar = np.zeros((40, 40), dtype=np.uint8)
        bar[17:23, 8:32] = 1
        assert compute_compactness(bar) < compute_compactness(square)

    def test_empty_mask_compactness(self):
        assert compute_compactness(np.zeros((10, 10), dtype=np.uint8)) == 0.0

    def test_aspect_ratio(self):
        """Test that a 24x6 bar has an aspect ratio near 4."""
        bar = np.zeros((40, 40), dtype=np.uint8)
        bar[17:23, 8:32] = 1
        assert compute_aspect_ratio(bar) == pytest.approx(math.sqrt(575 / 35), rel=0.01)

    def test_aspect_ratio_tiny_blob(self):
        mask = np.zeros((10, 10), dtype=np.uint8)
        mask[5, 5] = 1
        assert compute_aspect_ratio(mask) == 1.0


class TestExtractBlob:
    """Tests for the extract_blob function."""

    def test_dark_disk(self):
        """Test that the seed's component is the whole disk."""
        blob = extract_blob(_disk_image(), 50, 50, threshold=125, search_radius=15)

        assert blob.area == 113
        assert blob.centroid == pytest.approx((50.0, 50.0))
        assert blob.aspect_ratio < 1.1
        assert blob.compactness > 0.6
        assert blob.radius == pytest.approx(math.sqrt(113 / math.pi))
        assert blob.bounding_box == (44, 44, 13, 13)

    def test_seed_off_blob_uses_largest_component(self):
        """Test that a seed on the background falls back to the largest component."""
        blob = extract_blob(_disk_image(), 50, 42, threshold=125, search_radius=20)
        assert blob.area == 113
        assert blob.centroid == pytest.approx((50.0, 50.0))

    def test_light_disk(self):
        image = _disk_image(inside=220, outside=30)
        blob = extract_blob(image, 50, 50, threshold=125, search_radius=15, light=True)
        assert blob.area == 113

    def test_search_radius_limits_blob(self):
        """Test that pixels outside the search disk are ignored."""
        gray = np.zeros((100, 100), dtype=np.uint8)
        blob = extract_blob(gray, 50, 50, threshold=125, search_radius=3)
        assert blob.area == 29

    def test_nothing_below_threshold(self):
        """Test that an empty mask yields a single-pixel blob at the seed."""
        gray = np.full((100, 100), 220, dtype=np.uint8)
        blob = extract_blob(gray, 50, 50, threshold=125, search_radius=10)
        assert blob == Blob.single_pixel(50, 50)
        assert blob.area == 1
