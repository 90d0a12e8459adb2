"""
Image preprocessing for hole detection.

This module handles:
- Image loading and decoding
- Conversion to a size-bounded grayscale matrix
- Sobel gradient magnitude computation
"""

import logging
from pathlib import Path
from typing import Tuple, Union

import cv2
import numpy as np

from .detection_constants import (
    MAX_IMAGE_DIMENSION,
    MIN_IMAGE_DIMENSION,
    SOBEL_MAGNITUDE_DIVISOR,
)
from .exceptions import InvalidImageError
from .models import PixelMatrix

logger = logging.getLogger(__name__)


def load_image(path: Union[str, Path]) -> np.ndarray:
    """
    Load an image file as a BGR array.

    Args:
        path: Path to a JPG/PNG image

    Returns:
        BGR image as numpy array
    """
    image = cv2.imread(str(path))
    if image is None:
        raise InvalidImageError(f"Failed to load image: {path}")
    return image


def decode_image(data: bytes) -> np.ndarray:
    """Decode encoded image bytes (JPG/PNG) into a BGR array."""
    if not data:
        raise InvalidImageError("Empty image buffer")
    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if image is None:
        raise InvalidImageError("Could not decode image buffer")
    return image


def _as_uint8(image: np.ndarray) -> np.ndarray:
    if image.dtype == np.uint8:
        return image
    if image.dtype == np.uint16:
        return (image // 257).astype(np.uint8)
    if np.issubdtype(image.dtype, np.floating):
        # Float images are expected in [0, 1]
        return np.clip(image * 255.0, 0, 255).astype(np.uint8)
    raise InvalidImageError(f"Unsupported image dtype: {image.dtype}")


def to_grayscale(image: np.ndarray) -> Tuple[np.ndarray, float]:
    """
    Convert an image to a size-bounded grayscale matrix.

    The longer side is limited to MAX_IMAGE_DIMENSION while preserving the
    aspect ratio, and each side is floored at MIN_IMAGE_DIMENSION.

    Args:
        image: BGR, BGRA or single-channel image

    Returns:
        Tuple of (grayscale uint8 matrix, horizontal scale factor applied)
    """
    if image is None or not isinstance(image, np.ndarray):
        raise InvalidImageError("No image data")
    if image.size == 0 or image.ndim not in (2, 3) or image.shape[0] == 0 or image.shape[1] == 0:
        raise InvalidImageError(f"Invalid image shape: {getattr(image, 'shape', None)}")

    pixels = _as_uint8(image)

    try:
        if pixels.ndim == 2:
            gray = pixels.copy()
        elif pixels.shape[2] == 1:
            gray = pixels[:, :, 0].copy()
        elif pixels.shape[2] == 3:
            gray = cv2.cvtColor(pixels, cv2.COLOR_BGR2GRAY)
        elif pixels.shape[2] == 4:
            gray = cv2.cvtColor(pixels, cv2.COLOR_BGRA2GRAY)
        else:
            raise InvalidImageError(f"Unsupported channel count: {pixels.shape[2]}")
    except cv2.error as e:
        raise InvalidImageError(f"Grayscale conversion failed: {e}") from e

    height, width = gray.shape[:2]
    scale = min(1.0, MAX_IMAGE_DIMENSION / max(width, height))
    scaled_w = max(MIN_IMAGE_DIMENSION, int(width * scale))
    scaled_h = max(MIN_IMAGE_DIMENSION, int(height * scale))

    if (scaled_w, scaled_h) != (width, height):
        shrinking = scaled_w <= width and scaled_h <= height
        interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
        try:
            gray = cv2.resize(gray, (scaled_w, scaled_h), interpolation=interpolation)
        except cv2.error as e:
            raise InvalidImageError(f"Resize failed: {e}") from e
        logger.debug(f"Resized {width}x{height} -> {scaled_w}x{scaled_h}")

    return np.ascontiguousarray(gray, dtype=np.uint8), scaled_w / width


def sobel_magnitude(gray: np.ndarray) -> np.ndarray:
    """
    Compute a 3x3 Sobel gradient magnitude scaled into 0-255.

    Args:
        gray: Grayscale uint8 matrix

    Returns:
        uint8 edge matrix of the same shape, zero on the one-pixel border
    """
    grad_x = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=3)
    grad_y = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=3)
    magnitude = np.sqrt(grad_x ** 2 + grad_y ** 2) / SOBEL_MAGNITUDE_DIVISOR

    edges = np.clip(magnitude, 0, 255).astype(np.uint8)
    edges[0, :] = 0
    edges[-1, :] = 0
    edges[:, 0] = 0
    edges[:, -1] = 0
    return edges


def preprocess_image(image: np.ndarray) -> PixelMatrix:
    """
    Produce the grayscale and edge matrices for one detection run.

    Args:
        image: Decoded input image

    Returns:
        Immutable PixelMatrix
    """
    gray, scale = to_grayscale(image)
    edges = sobel_magnitude(gray)
    return PixelMatrix(gray=gray, edges=edges, scale=scale)
