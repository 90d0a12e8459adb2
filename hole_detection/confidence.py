"""
Confidence scoring and classification of candidates.

This module handles:
- Region-dependent weighted scoring of candidate features
- Multiplicative penalties and review flags
- Low-confidence flagging against the configured thresholds
- Confidence level labels for reporting

All weights and penalties are imported from confidence_constants.py.
"""

import dataclasses
import logging
import math
from typing import Dict, List, Optional, Tuple

import numpy as np

from .config import DetectionConfiguration
from .confidence_constants import (
    BLACK_REGION_WEIGHT_OVERRIDES,
    CONFIDENCE_LEVEL_HIGH_THRESHOLD,
    CONFIDENCE_LEVEL_MEDIUM_THRESHOLD,
    CONTRAST_RATIO_MIDPOINT,
    CROWDED_ISOLATION,
    CROWDED_PENALTY,
    INTENSITY_SIGMOID_SLOPE,
    IRREGULAR_COMPACTNESS,
    IRREGULAR_SHAPE_PENALTY,
    MAX_SIGNAL_COUNT,
    MODERATE_ASPECT_PENALTY,
    MODERATE_ASPECT_RATIO,
    RING_PROXIMITY_INSIDE_SCORE,
    RING_PROXIMITY_LIMIT,
    RING_PROXIMITY_OUTSIDE_SCORE,
    SEVERE_ASPECT_PENALTY,
    SEVERE_ASPECT_RATIO,
    SINGLE_SIGNAL_PENALTY,
    WHITE_REGION_WEIGHTS,
)
from .models import CandidateFeatures, DetectionCandidate, ReviewReason, TargetRegion

logger = logging.getLogger(__name__)


def sigmoid(x: float) -> float:
    """Logistic function, safe for large magnitudes."""
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def region_weights(region: TargetRegion) -> Dict[str, float]:
    """Feature weights for a region (black overrides applied on top of white)."""
    weights = dict(WHITE_REGION_WEIGHTS)
    if region == TargetRegion.BLACK:
        weights.update(BLACK_REGION_WEIGHT_OVERRIDES)
    return weights


def compute_base_score(features: CandidateFeatures) -> float:
    """
    Weighted sum of feature scores before penalties.

    Uses constants:
    - WHITE_REGION_WEIGHTS / BLACK_REGION_WEIGHT_OVERRIDES: component weights
    - INTENSITY_SIGMOID_SLOPE: steepness of the intensity sigmoid (8)
    - CONTRAST_RATIO_MIDPOINT: contrast ratio scoring 0.5 (1.5)
    - RING_PROXIMITY_*: binary on-target bonus

    Args:
        features: Candidate feature vector

    Returns:
        Unclamped weighted score
    """
    weights = region_weights(features.region_type)

    # Dark on white and light on black both score high
    if features.region_type == TargetRegion.WHITE:
        intensity_score = sigmoid(-features.intensity_delta * INTENSITY_SIGMOID_SLOPE)
    else:
        intensity_score = sigmoid(features.intensity_delta * INTENSITY_SIGMOID_SLOPE)

    if features.ring_proximity < RING_PROXIMITY_LIMIT:
        proximity_score = RING_PROXIMITY_INSIDE_SCORE
    else:
        proximity_score = RING_PROXIMITY_OUTSIDE_SCORE

    return (
        weights["intensity_delta"] * intensity_score +
        weights["contrast_ratio"] * sigmoid(features.contrast_ratio - CONTRAST_RATIO_MIDPOINT) +
        weights["edge_closure"] * features.edge_closure +
        weights["edge_strength"] * features.edge_strength +
        weights["compactness"] * features.compactness +
        weights["size_conformance"] * features.size_conformance +
        weights["signal_count"] * min(1.0, features.signal_count / MAX_SIGNAL_COUNT) +
        weights["isolation"] * min(1.0, features.isolation) +
        weights["ring_proximity"] * proximity_score +
        weights["region_bonus"]
    )


def apply_penalties(
    score: float,
    features: CandidateFeatures,
) -> Tuple[float, bool, Optional[ReviewReason]]:
    """
    Apply multiplicative penalties and collect review flags.

    The first reason set wins; later penalties only fill an empty reason.

    Args:
        score: Base score
        features: Candidate feature vector

    Returns:
        Tuple of (penalized score, needs_review, review_reason)
    """
    needs_review = False
    reason = None

    if features.aspect_ratio > SEVERE_ASPECT_RATIO:
        score *= SEVERE_ASPECT_PENALTY
        needs_review = True
        reason = ReviewReason.POSSIBLE_OVERLAP
    elif features.aspect_ratio > MODERATE_ASPECT_RATIO:
        score *= MODERATE_ASPECT_PENALTY

    if features.signal_count == 1:
        score *= SINGLE_SIGNAL_PENALTY
        reason = reason or ReviewReason.SINGLE_SIGNAL

    if features.compactness < IRREGULAR_COMPACTNESS:
        score *= IRREGULAR_SHAPE_PENALTY
        needs_review = True
        reason = reason or ReviewReason.IRREGULAR_SHAPE

    if features.isolation < CROWDED_ISOLATION:
        score *= CROWDED_PENALTY

    return score, needs_review, reason


def score_candidate(candidate: DetectionCandidate, config: DetectionConfiguration) -> DetectionCandidate:
    """
    Score one candidate and set its review flags.

    Args:
        candidate: Candidate with features (candidates without features score 0)
        config: Detection configuration (accept/review thresholds)

    Returns:
        New candidate with confidence in [0, 1], needs_review and review_reason
    """
    features = candidate.features
    if features is None:
        return dataclasses.replace(candidate, confidence=0.0)

    score, needs_review, reason = apply_penalties(compute_base_score(features), features)
    confidence = float(np.clip(score, 0.0, 1.0))

    if config.review_threshold <= confidence < config.auto_accept_threshold:
        needs_review = True
        reason = reason or ReviewReason.LOW_CONFIDENCE

    return dataclasses.replace(
        candidate,
        confidence=confidence,
        needs_review=needs_review,
        review_reason=reason,
    )


def score_and_classify(
    candidates: List[DetectionCandidate],
    config: DetectionConfiguration,
) -> List[DetectionCandidate]:
    """Score every candidate; returns new candidate objects in the same order."""
    scored = [score_candidate(c, config) for c in candidates]
    if scored:
        logger.debug(
            f"Scored {len(scored)} candidates: "
            f"max confidence {max(c.confidence for c in scored):.2f}, "
            f"{sum(1 for c in scored if c.needs_review)} need review"
        )
    return scored


def confidence_level(confidence: float) -> str:
    """
    Classify a confidence value for reporting.

    Returns:
        "high", "medium", or "low"
    """
    if confidence > CONFIDENCE_LEVEL_HIGH_THRESHOLD:
        return "high"
    if confidence >= CONFIDENCE_LEVEL_MEDIUM_THRESHOLD:
        return "medium"
    return "low"
