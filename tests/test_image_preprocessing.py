"""
Unit tests for the image_preprocessing module.

Tests for:
- load_image / decode_image: file and buffer decoding
- to_grayscale: channel handling, dtype conversion and size bounds
- sobel_magnitude: edge scaling and border handling
- preprocess_image: combined PixelMatrix output
"""

import cv2
import numpy as np
import pytest

from hole_detection.exceptions import InvalidImageError
from hole_detection.image_preprocessing import (
    decode_image,
    load_image,
    preprocess_image,
    sobel_magnitude,
    to_grayscale,
)


# ============================================================================
# Tests for load_image / decode_image
# ============================================================================

class TestLoading:
    """Tests for reading images from disk and from memory."""

    def test_load_image_reads_png(self, tmp_path, half_target):
        """Test that a written PNG loads back with the same shape."""
        path = tmp_path / "target.png"
        cv2.imwrite(str(path), half_target)

        image = load_image(path)
        assert image.shape == half_target.shape
        np.testing.assert_array_equal(image, half_target)

    def test_load_image_missing_file(self, tmp_path):
        """Test that a missing file raises InvalidImageError."""
        with pytest.raises(InvalidImageError, match="Failed to load"):
            load_image(tmp_path / "missing.png")

    def test_decode_image_round_trip(self, half_target):
        """Test that PNG bytes decode to the original pixels."""
        ok, encoded = cv2.imencode(".png", half_target)
        assert ok

        image = decode_image(encoded.tobytes())
        np.testing.assert_array_equal(image, half_target)

    def test_decode_image_empty_buffer(self):
        """Test that an empty buffer raises InvalidImageError."""
        with pytest.raises(InvalidImageError, match="Empty"):
            decode_image(b"")

    def test_decode_image_garbage(self):
        """Test that non-image bytes raise InvalidImageError."""
        with pytest.raises(InvalidImageError, match="decode"):
            decode_image(b"definitely not an image")


# ============================================================================
# Tests for to_grayscale
# ============================================================================

class TestToGrayscale:
    """Tests for the to_grayscale function."""

    def test_bgr_image_keeps_size(self, half_target):
        """Test that a BGR image within bounds is converted without resizing."""
        gray, scale = to_grayscale(half_target)
        assert gray.shape == (400, 500)
        assert gray.dtype == np.uint8
        assert scale == 1.0
        assert gray[0, 0] == 30
        assert gray[0, -1] == 220

    def test_single_channel_passthrough(self):
        """Test that a 2D image is used as-is."""
        image = np.full((200, 300), 77, dtype=np.uint8)
        gray, _ = to_grayscale(image)
        np.testing.assert_array_equal(gray, image)

    def test_bgra_image(self):
        """Test that a BGRA image is accepted."""
        image = np.full((200, 300, 4), 90, dtype=np.uint8)
        gray, _ = to_grayscale(image)
        assert gray.shape == (200, 300)
        assert abs(int(gray[100, 100]) - 90) <= 1

    def test_float_image_in_unit_range(self):
        """Test that float images in [0, 1] are scaled to 0-255."""
        image = np.full((200, 300), 1.0, dtype=np.float32)
        gray, _ = to_grayscale(image)
        assert gray.dtype == np.uint8
        assert gray[0, 0] == 255

    def test_large_image_is_downscaled(self):
        """Test that the longest side is limited to 1000 pixels."""
        image = np.zeros((1200, 2000, 3), dtype=np.uint8)
        gray, scale = to_grayscale(image)
        assert gray.shape == (600, 1000)
        assert scale == pytest.approx(0.5)

    def test_small_image_is_floored(self):
        """Test that each side is floored at 100 pixels."""
        image = np.zeros((50, 80, 3), dtype=np.uint8)
        gray, scale = to_grayscale(image)
        assert gray.shape == (100, 100)
        assert scale == pytest.approx(100 / 80)

    def test_raises_on_none(self):
        """Test that None raises InvalidImageError."""
        with pytest.raises(InvalidImageError):
            to_grayscale(None)

    def test_raises_on_empty(self):
        """Test that an empty array raises InvalidImageError."""
        empty = np.array([], dtype=np.uint8).reshape(0, 0, 3)
        with pytest.raises(InvalidImageError, match="shape"):
            to_grayscale(empty)

    def test_raises_on_unsupported_dtype(self):
        """Test that integer types other than uint8/uint16 are rejected."""
        image = np.zeros((200, 200), dtype=np.int32)
        with pytest.raises(InvalidImageError, match="dtype"):
            to_grayscale(image)


# ============================================================================
# Tests for sobel_magnitude / preprocess_image
# ============================================================================

class TestSobelMagnitude:
    """Tests for the sobel_magnitude function."""

    def test_step_edge_magnitude(self, half_target):
        """Test that a 30 -> 220 step gives 190 on both sides of the edge."""
        gray, _ = to_grayscale(half_target)
        edges = sobel_magnitude(gray)

        assert edges[200, 249] == 190
        assert edges[200, 250] == 190
        assert edges[200, 100] == 0
        assert edges[200, 400] == 0

    def test_border_is_zero(self, half_target):
        """Test that the one-pixel border never carries an edge."""
        gray, _ = to_grayscale(half_target)
        edges = sobel_magnitude(gray)

        assert not edges[0, :].any()
        assert not edges[-1, :].any()
        assert not edges[:, 0].any()
        assert not edges[:, -1].any()

    def test_uniform_image_has_no_edges(self, uniform_gray_image):
        """Test that a featureless image has an all-zero edge matrix."""
        gray, _ = to_grayscale(uniform_gray_image)
        assert not sobel_magnitude(gray).any()

    def test_output_clipped_to_uint8(self):
        """Test that a full-range diagonal step saturates at 255."""
        diagonal = (np.indices((120, 120)).sum(axis=0) > 120) * 255
        edges = sobel_magnitude(diagonal.astype(np.uint8))
        assert edges.dtype == np.uint8
        assert edges.max() == 255


class TestPreprocessImage:
    """Tests for the preprocess_image function."""

    def test_returns_matching_matrices(self, half_target):
        """Test that gray and edges share a shape and the scale is recorded."""
        matrix = preprocess_image(half_target)
        assert matrix.gray.shape == matrix.edges.shape == (400, 500)
        assert matrix.width == 500
        assert matrix.height == 400
        assert matrix.scale == 1.0

    def test_matrices_are_read_only(self, half_target):
        """Test that the pixel matrix cannot be modified by later stages."""
        matrix = preprocess_image(half_target)
        assert not matrix.gray.flags.writeable
        assert not matrix.edges.flags.writeable
        with pytest.raises(ValueError):
            matrix.gray[0, 0] = 1
