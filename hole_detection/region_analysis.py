"""
Black/white region analysis of a target image.

This module handles:
- Locating the black/white transition column
- Per-region intensity statistics
- Global contrast (percentile spread) and Laplacian sharpness

The analysis is best effort: it never raises, and downstream stages treat an
invalid analysis as a warning rather than a failure.
"""

import logging
from typing import Tuple

import cv2
import numpy as np

from .detection_constants import (
    COLUMN_PROFILE_ROW_STEP,
    CONTRAST_HIGH_PERCENTILE,
    CONTRAST_LOW_PERCENTILE,
    DEFAULT_REGION_MEAN,
    DEFAULT_REGION_STD,
    MIN_REGION_STD,
    MIN_TRANSITION_GRADIENT,
    REGION_STATS_STEP,
    SHARPNESS_OFFSET,
    SHARPNESS_STEP,
    TRANSITION_WINDOW_DIVISOR,
    TRANSITION_WINDOW_MAX,
)
from .models import RegionAnalysis

logger = logging.getLogger(__name__)


def compute_column_profile(gray: np.ndarray) -> np.ndarray:
    """Mean intensity of each column over a subsample of rows."""
    rows = gray[::COLUMN_PROFILE_ROW_STEP, :].astype(np.float64)
    return rows.mean(axis=0)


def find_transition(profile: np.ndarray) -> Tuple[int, float]:
    """
    Find the column where the windowed left/right means differ most.

    Args:
        profile: Column-mean intensity profile

    Returns:
        Tuple of (transition_x, max_gradient). transition_x falls back to the
        horizontal midpoint when max_gradient is below MIN_TRANSITION_GRADIENT.
    """
    width = len(profile)
    window = max(1, min(TRANSITION_WINDOW_MAX, width // TRANSITION_WINDOW_DIVISOR))

    xs = np.arange(window, width - window)
    if len(xs) == 0:
        return width // 2, 0.0

    cumulative = np.concatenate([[0.0], np.cumsum(profile)])
    left_means = (cumulative[xs] - cumulative[xs - window]) / window
    right_means = (cumulative[xs + window] - cumulative[xs]) / window
    gradients = np.abs(right_means - left_means)

    # argmax returns the first maximum, so ties resolve leftmost
    best = int(np.argmax(gradients))
    max_gradient = float(gradients[best])

    if max_gradient < MIN_TRANSITION_GRADIENT:
        return width // 2, max_gradient

    return int(xs[best]), max_gradient


def compute_region_stats(gray: np.ndarray, start_x: int, end_x: int) -> Tuple[float, float]:
    """
    Subsampled mean and standard deviation of a column range.

    Args:
        gray: Grayscale matrix
        start_x: First column (inclusive)
        end_x: Last column (exclusive)

    Returns:
        Tuple of (mean, std) with std floored at MIN_REGION_STD
    """
    if end_x <= start_x:
        return DEFAULT_REGION_MEAN, DEFAULT_REGION_STD

    samples = gray[::REGION_STATS_STEP, start_x:end_x:REGION_STATS_STEP].astype(np.float64)
    if samples.size == 0:
        return DEFAULT_REGION_MEAN, DEFAULT_REGION_STD

    mean = float(samples.mean())
    std = float(samples.std()) if samples.size > 1 else DEFAULT_REGION_STD
    return mean, max(std, MIN_REGION_STD)


def compute_contrast(gray: np.ndarray) -> float:
    """Normalized spread between the 5th and 95th intensity percentiles."""
    flat = gray.ravel()
    n = flat.size
    if n == 0:
        return 0.0
    low_index = n * CONTRAST_LOW_PERCENTILE // 100
    high_index = min(n - 1, n * CONTRAST_HIGH_PERCENTILE // 100)
    partitioned = np.partition(flat, [low_index, high_index])
    return float(int(partitioned[high_index]) - int(partitioned[low_index])) / 255.0


def compute_sharpness(gray: np.ndarray) -> float:
    """
    Mean squared 4-neighbour Laplacian on a sparse grid.

    Higher values indicate a sharper image.
    """
    height, width = gray.shape[:2]
    if height <= 2 * SHARPNESS_OFFSET or width <= 2 * SHARPNESS_OFFSET:
        return 0.0

    laplacian = cv2.Laplacian(gray, cv2.CV_64F, ksize=1)
    sampled = laplacian[
        SHARPNESS_OFFSET:height - SHARPNESS_OFFSET:SHARPNESS_STEP,
        SHARPNESS_OFFSET:width - SHARPNESS_OFFSET:SHARPNESS_STEP,
    ]
    if sampled.size == 0:
        return 0.0
    return float(np.mean(sampled ** 2))


def analyze_regions(gray: np.ndarray) -> RegionAnalysis:
    """
    Split the target into its black and white halves and measure quality.

    Args:
        gray: Grayscale matrix

    Returns:
        RegionAnalysis (check is_valid before trusting the split)
    """
    height, width = gray.shape[:2]

    profile = compute_column_profile(gray)
    transition_x, max_gradient = find_transition(profile)

    left_mean, left_std = compute_region_stats(gray, 0, transition_x)
    right_mean, right_std = compute_region_stats(gray, transition_x, width)
    is_left_black = left_mean < right_mean

    analysis = RegionAnalysis(
        black_mean=left_mean if is_left_black else right_mean,
        black_std=left_std if is_left_black else right_std,
        white_mean=right_mean if is_left_black else left_mean,
        white_std=right_std if is_left_black else left_std,
        transition_x=transition_x,
        transition_x_normalized=transition_x / width if width > 0 else 0.5,
        is_left_black=is_left_black,
        overall_contrast=compute_contrast(gray),
        sharpness=compute_sharpness(gray),
        max_transition_gradient=max_gradient,
    )

    logger.debug(
        f"Regions: black={analysis.black_mean:.0f}±{analysis.black_std:.1f}, "
        f"white={analysis.white_mean:.0f}±{analysis.white_std:.1f}, "
        f"transition@{analysis.transition_x_normalized * 100:.0f}% "
        f"(gradient={max_gradient:.1f}), contrast={analysis.overall_contrast:.2f}, "
        f"sharpness={analysis.sharpness:.0f}"
    )
    if not analysis.is_valid:
        logger.debug("Target regions are ambiguous; region split is advisory")

    return analysis
