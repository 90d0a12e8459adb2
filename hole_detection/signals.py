"""
Candidate signal generators.

This module handles:
- Signal A: dark anomalies on the white region
- Signal B: light anomalies on the black region
- Signal C: closed edge rings at the expected hole radius

Each generator scans a regular grid one row at a time. Rows are sampled in a
single vectorized pass; only grid points that pass the contrast or edge test
go on to per-point blob extraction. An optional threading.Event is checked
between rows for cooperative cancellation.
"""

import logging
import math
import threading
from typing import List, Optional, Tuple

import numpy as np

from .blob_analysis import extract_blob
from .config import DetectionConfiguration
from .detection_constants import (
    BACKGROUND_RING_INNER_FACTOR,
    BACKGROUND_RING_OUTER_FACTOR,
    BLOB_BORDER_PADDING,
    BLOB_GRID_STEP_MIN,
    DARK_ANOMALY_SCORE_NORMALIZER,
    EDGE_GRID_STEP_MIN,
    EDGE_RING_BORDER_PADDING,
    EDGE_RING_SCORE_NORMALIZER,
    LIGHT_ANOMALY_SCORE_NORMALIZER,
    MAX_BLOB_AREA_FACTOR,
    MIN_BLOB_AREA_FACTOR,
)
from .exceptions import DetectionCancelledError
from .models import DetectionCandidate, DetectionSignal, RegionAnalysis, TargetRegion
from .sampling import edge_ring_strengths, ring_statistics

logger = logging.getLogger(__name__)


def check_cancelled(cancel_event: Optional[threading.Event], stage: str) -> None:
    """Raise DetectionCancelledError if the event has been set."""
    if cancel_event is not None and cancel_event.is_set():
        raise DetectionCancelledError(f"Detection cancelled during {stage}")


def blob_area_bounds(min_radius: int, max_radius: int) -> Tuple[int, int]:
    """Accepted blob area range in pixels for the given radius limits."""
    min_area = int(math.pi * min_radius * min_radius * MIN_BLOB_AREA_FACTOR)
    max_area = int(math.pi * max_radius * max_radius * MAX_BLOB_AREA_FACTOR)
    return min_area, max_area


def blob_scan_grid(
    span: Tuple[int, int],
    width: int,
    height: int,
    expected_radius: int,
    max_radius: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Grid rows and columns scanned by the anomaly signals.

    Args:
        span: Column range [start, end) of the region being scanned
        width: Image width
        height: Image height
        expected_radius: Expected hole radius in pixels
        max_radius: Maximum hole radius in pixels

    Returns:
        Tuple of (ys, xs); both empty when the region is too narrow
    """
    start, end = span
    if end <= start + 2 * max_radius:
        return np.array([], dtype=np.int64), np.array([], dtype=np.int64)

    step = max(BLOB_GRID_STEP_MIN, expected_radius // 2)
    ys = np.arange(max_radius + BLOB_BORDER_PADDING, height - max_radius - BLOB_BORDER_PADDING, step)
    xs = np.arange(
        max(start + max_radius, max_radius + BLOB_BORDER_PADDING),
        min(end - max_radius, width - max_radius - BLOB_BORDER_PADDING),
        step,
    )
    return ys, xs


def _detect_anomalies(
    gray: np.ndarray,
    span: Tuple[int, int],
    expected_radius: int,
    min_radius: int,
    max_radius: int,
    contrast_threshold: float,
    light: bool,
    cancel_event: Optional[threading.Event],
) -> List[DetectionCandidate]:
    height, width = gray.shape[:2]
    signal = DetectionSignal.LIGHT_ANOMALY if light else DetectionSignal.DARK_ANOMALY
    region = TargetRegion.BLACK if light else TargetRegion.WHITE
    normalizer = LIGHT_ANOMALY_SCORE_NORMALIZER if light else DARK_ANOMALY_SCORE_NORMALIZER

    ys, xs = blob_scan_grid(span, width, height, expected_radius, max_radius)
    if len(ys) == 0 or len(xs) == 0:
        return []

    inner = int(expected_radius * BACKGROUND_RING_INNER_FACTOR)
    outer = int(expected_radius * BACKGROUND_RING_OUTER_FACTOR)
    min_area, max_area = blob_area_bounds(min_radius, max_radius)

    candidates = []
    for y in ys:
        check_cancelled(cancel_event, signal.value)

        row_ys = np.full(len(xs), y)
        bg_means, _ = ring_statistics(gray, row_ys, xs, inner, outer)
        centers = gray[y, xs].astype(np.float64)
        contrasts = centers - bg_means if light else bg_means - centers

        for i in np.flatnonzero(contrasts >= contrast_threshold):
            x = int(xs[i])
            threshold = int((centers[i] + bg_means[i]) / 2)
            blob = extract_blob(gray, x, int(y), threshold, max_radius, light=light)
            if not min_area <= blob.area <= max_area:
                continue

            raw_score = min(1.0, float(contrasts[i]) / normalizer)
            candidates.append(DetectionCandidate.from_signal(
                pixel_center=blob.centroid,
                pixel_radius=blob.radius,
                signal=signal,
                raw_score=raw_score,
                region=region,
                width=width,
                height=height,
            ))

    return candidates


def detect_dark_anomalies(
    gray: np.ndarray,
    analysis: RegionAnalysis,
    expected_radius: int,
    min_radius: int,
    max_radius: int,
    config: DetectionConfiguration,
    cancel_event: Optional[threading.Event] = None,
) -> List[DetectionCandidate]:
    """
    Signal A: spots darker than their surroundings on the white region.

    Args:
        gray: Grayscale matrix
        analysis: Region analysis locating the white half
        expected_radius: Expected hole radius in pixels
        min_radius: Minimum hole radius in pixels
        max_radius: Maximum hole radius in pixels
        config: Detection configuration (uses signal_a_contrast_threshold)
        cancel_event: Optional cancellation flag checked between grid rows

    Returns:
        Single-signal candidates centered on the extracted blob centroids
    """
    span = analysis.white_span(gray.shape[1])
    candidates = _detect_anomalies(
        gray, span, expected_radius, min_radius, max_radius,
        config.signal_a_contrast_threshold, light=False, cancel_event=cancel_event,
    )
    logger.debug(f"Signal A (dark on white, x={span[0]}-{span[1]}): {len(candidates)} candidates")
    return candidates


def detect_light_anomalies(
    gray: np.ndarray,
    analysis: RegionAnalysis,
    expected_radius: int,
    min_radius: int,
    max_radius: int,
    config: DetectionConfiguration,
    cancel_event: Optional[threading.Event] = None,
) -> List[DetectionCandidate]:
    """
    Signal B: spots lighter than their surroundings on the black region.

    Same grid and blob rules as Signal A with the comparison reversed.
    """
    span = analysis.black_span(gray.shape[1])
    candidates = _detect_anomalies(
        gray, span, expected_radius, min_radius, max_radius,
        config.signal_b_contrast_threshold, light=True, cancel_event=cancel_event,
    )
    logger.debug(f"Signal B (light on black, x={span[0]}-{span[1]}): {len(candidates)} candidates")
    return candidates


def detect_edge_rings(
    edges: np.ndarray,
    analysis: RegionAnalysis,
    expected_radius: int,
    config: DetectionConfiguration,
    cancel_event: Optional[threading.Event] = None,
) -> List[DetectionCandidate]:
    """
    Signal C: circles of the expected radius with strong edge response.

    Args:
        edges: Edge magnitude matrix (0-255)
        analysis: Region analysis used to label each candidate's region
        expected_radius: Ring radius in pixels
        config: Detection configuration (uses signal_c_edge_threshold)
        cancel_event: Optional cancellation flag checked between grid rows

    Returns:
        Single-signal candidates centered on the grid points, with the
        expected radius
    """
    if not config.enable_signal_c:
        return []

    height, width = edges.shape[:2]
    step = max(EDGE_GRID_STEP_MIN, expected_radius // 2)
    margin = expected_radius + EDGE_RING_BORDER_PADDING
    ys = np.arange(margin, height - margin, step)
    xs = np.arange(margin, width - margin, step)
    if len(ys) == 0 or len(xs) == 0:
        return []

    candidates = []
    for y in ys:
        check_cancelled(cancel_event, DetectionSignal.EDGE_RING.value)

        strengths = edge_ring_strengths(edges, np.full(len(xs), y), xs, expected_radius)
        for i in np.flatnonzero(strengths >= config.signal_c_edge_threshold):
            x = int(xs[i])
            candidates.append(DetectionCandidate.from_signal(
                pixel_center=(x, int(y)),
                pixel_radius=expected_radius,
                signal=DetectionSignal.EDGE_RING,
                raw_score=min(1.0, float(strengths[i]) / EDGE_RING_SCORE_NORMALIZER),
                region=analysis.region_at(x),
                width=width,
                height=height,
            ))

    logger.debug(f"Signal C (edge ring r={expected_radius}): {len(candidates)} candidates")
    return candidates
