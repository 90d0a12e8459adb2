"""
Overlap resolution.

Two touching holes usually show up as one elongated, ragged or oversized
blob. Such candidates are kept but flagged so a person can split them.
"""

import dataclasses
import logging
from typing import List

from .detection_constants import (
    OVERLAP_MAX_ASPECT_RATIO,
    OVERLAP_MIN_COMPACTNESS,
    OVERLAP_MAX_RADIUS_FACTOR,
)
from .models import DetectionCandidate, ReviewReason

logger = logging.getLogger(__name__)


def is_possible_overlap(candidate: DetectionCandidate, expected_radius: int) -> bool:
    """True when a scored candidate looks like more than one hole."""
    features = candidate.features
    if features is None:
        return False
    return (
        features.aspect_ratio > OVERLAP_MAX_ASPECT_RATIO
        or features.compactness < OVERLAP_MIN_COMPACTNESS
        or candidate.pixel_radius > expected_radius * OVERLAP_MAX_RADIUS_FACTOR
    )


def resolve_overlaps(candidates: List[DetectionCandidate], expected_radius: int) -> List[DetectionCandidate]:
    """
    Flag candidates that may be overlapping holes.

    Args:
        candidates: Scored candidates
        expected_radius: Expected hole radius in pixels

    Returns:
        New list; flagged candidates are copies marked needs_review with
        ReviewReason.POSSIBLE_OVERLAP, others are passed through
    """
    result = []
    flagged = 0
    for candidate in candidates:
        if is_possible_overlap(candidate, expected_radius):
            candidate = dataclasses.replace(
                candidate,
                needs_review=True,
                review_reason=ReviewReason.POSSIBLE_OVERLAP,
            )
            flagged += 1
        result.append(candidate)

    if flagged:
        logger.debug(f"Flagged {flagged} of {len(candidates)} candidates as possible overlaps")
    return result
