"""
Feature extraction for merged candidates.

This module handles:
- Intensity contrast against a local background annulus
- Edge closure and strength around the candidate boundary
- Shape (compactness, aspect ratio) from a re-extracted blob
- Size conformance, isolation and target ring proximity
"""

import dataclasses
import logging
import math
from typing import List, Optional

import numpy as np

from .blob_analysis import extract_blob
from .detection_constants import (
    BLOB_SEARCH_RADIUS_FACTOR,
    FEATURE_BACKGROUND_GAP,
    FEATURE_BACKGROUND_WIDTH,
    FEATURE_BORDER_PADDING,
    MAX_ISOLATION,
    SIZE_CONFORMANCE_SIGMA_DIVISOR,
)
from .models import (
    CandidateFeatures,
    DetectionCandidate,
    PixelMatrix,
    TargetGeometry,
    TargetRegion,
)
from .sampling import edge_ring_profile, sample_disk, sample_ring

logger = logging.getLogger(__name__)


def size_conformance(radius: float, expected_radius: float) -> float:
    """Gaussian fit of a radius to the expected radius (sigma = expected / 3)."""
    sigma = expected_radius / SIZE_CONFORMANCE_SIGMA_DIVISOR
    if sigma <= 0:
        return 0.0
    return math.exp(-((radius - expected_radius) ** 2) / (2.0 * sigma ** 2))


def compute_isolation(candidate: DetectionCandidate, others: List[DetectionCandidate], expected_radius: float) -> float:
    """Distance to the nearest other candidate in units of 2 * expected radius, capped."""
    nearest = min(
        (candidate.distance_to(o) for o in others if o.id != candidate.id),
        default=math.inf,
    )
    return min(MAX_ISOLATION, nearest / (2.0 * expected_radius))


def _is_in_bounds(x: int, y: int, radius: int, width: int, height: int) -> bool:
    pad = radius + FEATURE_BORDER_PADDING
    return pad < x < width - pad and pad < y < height - pad


def compute_features(
    candidate: DetectionCandidate,
    matrix: PixelMatrix,
    candidates: List[DetectionCandidate],
    expected_radius: int,
    geometry: TargetGeometry,
) -> CandidateFeatures:
    """
    Compute the feature vector of one candidate.

    Args:
        candidate: Merged candidate
        matrix: Grayscale and edge matrices
        candidates: All merged candidates (for isolation)
        expected_radius: Expected hole radius in pixels
        geometry: Target placement used for ring proximity

    Returns:
        CandidateFeatures; CandidateFeatures.empty() when the candidate is
        too close to the image border
    """
    # Nearest pixel
    x = int(round(candidate.pixel_center[0]))
    y = int(round(candidate.pixel_center[1]))
    radius = int(round(candidate.pixel_radius))

    if not _is_in_bounds(x, y, radius, matrix.width, matrix.height):
        return CandidateFeatures.empty()

    gray = matrix.gray

    # Intensity
    center_mean = sample_disk(gray, x, y, radius)
    bg_inner = radius + FEATURE_BACKGROUND_GAP
    bg_mean, bg_std = sample_ring(gray, x, y, bg_inner, bg_inner + FEATURE_BACKGROUND_WIDTH)
    intensity_delta = (center_mean - bg_mean) / 255.0
    contrast_ratio = abs(center_mean - bg_mean) / bg_std if bg_std > 0 else 0.0

    # Edges
    edge_closure, edge_strength = edge_ring_profile(matrix.edges, x, y, radius)

    # Shape
    threshold = int((center_mean + bg_mean) / 2)
    blob = extract_blob(
        gray, x, y, threshold,
        search_radius=radius * BLOB_SEARCH_RADIUS_FACTOR,
        light=candidate.region == TargetRegion.BLACK,
    )

    return CandidateFeatures(
        intensity_delta=intensity_delta,
        contrast_ratio=contrast_ratio,
        edge_closure=edge_closure,
        edge_strength=edge_strength,
        compactness=blob.compactness,
        aspect_ratio=max(1.0, blob.aspect_ratio),
        size_conformance=size_conformance(blob.radius, expected_radius),
        signal_count=candidate.signal_count,
        region_type=candidate.region,
        ring_proximity=geometry.proximity(candidate.center),
        isolation=compute_isolation(candidate, candidates, expected_radius),
    )


def extract_features(
    candidates: List[DetectionCandidate],
    matrix: PixelMatrix,
    expected_radius: int,
    geometry: Optional[TargetGeometry] = None,
) -> List[DetectionCandidate]:
    """
    Attach feature vectors to merged candidates.

    Args:
        candidates: Merged candidates
        matrix: Grayscale and edge matrices
        expected_radius: Expected hole radius in pixels
        geometry: Target placement; defaults to a target filling the image

    Returns:
        New candidate objects with features set
    """
    geometry = geometry or TargetGeometry()

    result = [
        dataclasses.replace(c, features=compute_features(c, matrix, candidates, expected_radius, geometry))
        for c in candidates
    ]

    if result:
        empty = sum(1 for c in result if c.features.signal_count == 0)
        mean_delta = float(np.mean([c.features.intensity_delta for c in result]))
        logger.debug(
            f"Extracted features for {len(result)} candidates "
            f"({empty} near border, mean intensity delta {mean_delta:+.3f})"
        )

    return result
