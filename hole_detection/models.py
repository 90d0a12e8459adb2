"""
Data models for the multi-signal hole detection pipeline.

This module handles:
- Signal, region and review-reason enumerations
- Pixel matrices and region analysis results
- Detection candidates and their feature vectors
- Final detection results and diagnostics

Positions are stored as (x, y) tuples. "Normalized" values are fractions of
the image width/height (positions) or of the shorter image side (radii).
"""

import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

import numpy as np

from .detection_constants import (
    REGION_VALID_MEAN_DIFFERENCE,
    REGION_VALID_MIN_CONTRAST,
)

ALGORITHM_VERSION = "2.0.0"

Point = Tuple[float, float]


# =============================================================================
# Enumerations
# =============================================================================

class DetectionSignal(str, Enum):
    """Independent heuristic that produced a candidate."""
    DARK_ANOMALY = "dark_anomaly"    # Signal A: dark spot on the white region
    LIGHT_ANOMALY = "light_anomaly"  # Signal B: light spot on the black region
    EDGE_RING = "edge_ring"          # Signal C: closed edge ring at the expected radius


class TargetRegion(str, Enum):
    """Half of the target a candidate lies on."""
    WHITE = "white"
    BLACK = "black"
    TRANSITION = "transition"
    UNKNOWN = "unknown"


class ReviewReason(str, Enum):
    """Why a candidate needs a human to look at it."""
    LOW_CONFIDENCE = "Low confidence score"
    POSSIBLE_OVERLAP = "Possible overlapping holes"
    IRREGULAR_SHAPE = "Irregular shape detected"
    AMBIGUOUS_REGION = "Near black/white boundary"
    UNUSUAL_SIZE = "Unusual hole size"
    SINGLE_SIGNAL = "Single detection signal"


class TargetType(str, Enum):
    """Kind of target card. Only recorded; scoring rings live elsewhere."""
    TETRATHLON = "tetrathlon"
    FULL_CIRCULAR = "full_circular"
    PRACTICE = "practice"
    UNKNOWN = "unknown"


# =============================================================================
# Image-level data
# =============================================================================

@dataclass(frozen=True)
class TargetGeometry:
    """
    Where the target sits inside the cropped image.

    center_x/center_y are normalized image coordinates of the target center,
    radius is the normalized distance from that center to the outer ring.
    The defaults describe a target centered in the frame and filling it.
    """
    center_x: float = 0.5
    center_y: float = 0.5
    radius: float = 0.5

    def proximity(self, point: Point) -> float:
        """Distance of a normalized point from the target center, in target radii."""
        radius = self.radius if self.radius > 0 else 0.5
        return math.hypot(point[0] - self.center_x, point[1] - self.center_y) / radius


@dataclass(frozen=True)
class PixelMatrix:
    """Grayscale intensities and Sobel edge magnitudes of one image."""
    gray: np.ndarray
    edges: np.ndarray
    scale: float = 1.0

    def __post_init__(self):
        if self.gray.shape != self.edges.shape:
            raise ValueError(
                f"Edge matrix shape {self.edges.shape} does not match "
                f"grayscale shape {self.gray.shape}"
            )
        self.gray.setflags(write=False)
        self.edges.setflags(write=False)

    @property
    def height(self) -> int:
        return int(self.gray.shape[0])

    @property
    def width(self) -> int:
        return int(self.gray.shape[1])


@dataclass(frozen=True)
class RegionAnalysis:
    """Black/white split of the target and global image quality figures."""
    black_mean: float
    black_std: float
    white_mean: float
    white_std: float
    transition_x: int
    transition_x_normalized: float
    is_left_black: bool
    overall_contrast: float
    sharpness: float
    max_transition_gradient: float = 0.0

    @property
    def is_valid(self) -> bool:
        return (
            abs(self.white_mean - self.black_mean) > REGION_VALID_MEAN_DIFFERENCE
            and self.overall_contrast > REGION_VALID_MIN_CONTRAST
        )

    def region_at(self, x: float) -> TargetRegion:
        """Region for a pixel column, judged against the transition column."""
        left_of_transition = x < self.transition_x
        if self.is_left_black:
            return TargetRegion.BLACK if left_of_transition else TargetRegion.WHITE
        return TargetRegion.WHITE if left_of_transition else TargetRegion.BLACK

    def white_span(self, width: int) -> Tuple[int, int]:
        """Column range [start, end) of the white region."""
        if self.is_left_black:
            return self.transition_x, width
        return 0, self.transition_x

    def black_span(self, width: int) -> Tuple[int, int]:
        """Column range [start, end) of the black region."""
        if self.is_left_black:
            return 0, self.transition_x
        return self.transition_x, width

    def to_dict(self) -> Dict[str, Any]:
        return {
            "black_mean": round(self.black_mean, 2),
            "black_std": round(self.black_std, 2),
            "white_mean": round(self.white_mean, 2),
            "white_std": round(self.white_std, 2),
            "transition_x": self.transition_x,
            "transition_x_normalized": round(self.transition_x_normalized, 4),
            "is_left_black": self.is_left_black,
            "overall_contrast": round(self.overall_contrast, 4),
            "sharpness": round(self.sharpness, 2),
            "is_valid": self.is_valid,
        }


# =============================================================================
# Candidates
# =============================================================================

@dataclass(frozen=True)
class CandidateFeatures:
    """Feature vector computed for each merged candidate."""
    intensity_delta: float      # (I_center - I_background) / 255, [-1, 1]
    contrast_ratio: float       # |I_center - I_background| / std_background
    edge_closure: float         # Fraction of the boundary with a strong edge, [0, 1]
    edge_strength: float        # Mean edge magnitude at the boundary, [0, 1]
    compactness: float          # 4*pi*area / perimeter^2, [0, 1]
    aspect_ratio: float         # Major / minor axis, >= 1
    size_conformance: float     # Gaussian fit to the expected radius, [0, 1]
    signal_count: int
    region_type: TargetRegion
    ring_proximity: float       # Distance from target center in target radii
    isolation: float            # Distance to nearest candidate / (2 * expected), <= 2

    @classmethod
    def empty(cls) -> "CandidateFeatures":
        return cls(
            intensity_delta=0.0,
            contrast_ratio=0.0,
            edge_closure=0.0,
            edge_strength=0.0,
            compactness=0.0,
            aspect_ratio=1.0,
            size_conformance=0.0,
            signal_count=0,
            region_type=TargetRegion.UNKNOWN,
            ring_proximity=0.0,
            isolation=1.0,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intensity_delta": round(self.intensity_delta, 4),
            "contrast_ratio": round(self.contrast_ratio, 4),
            "edge_closure": round(self.edge_closure, 4),
            "edge_strength": round(self.edge_strength, 4),
            "compactness": round(self.compactness, 4),
            "aspect_ratio": round(self.aspect_ratio, 4),
            "size_conformance": round(self.size_conformance, 4),
            "signal_count": self.signal_count,
            "region_type": self.region_type.value,
            "ring_proximity": round(self.ring_proximity, 4),
            "isolation": round(self.isolation, 4),
        }


@dataclass
class DetectionCandidate:
    """
    A possible hole before final classification.

    Signal generators create candidates with exactly one signal. The merger
    folds duplicates into one candidate per physical mark; after scoring,
    stages produce modified copies instead of mutating.
    """
    center: Point                   # Normalized (0-1)
    pixel_center: Point
    radius: float                   # Normalized to the shorter image side
    pixel_radius: float
    signals: Set[DetectionSignal]
    raw_scores: Dict[DetectionSignal, float]
    region: TargetRegion
    features: Optional[CandidateFeatures] = None
    confidence: float = 0.0
    needs_review: bool = False
    review_reason: Optional[ReviewReason] = None
    parent_id: Optional[str] = None
    merged_count: int = 1
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def from_signal(
        cls,
        pixel_center: Point,
        pixel_radius: float,
        signal: DetectionSignal,
        raw_score: float,
        region: TargetRegion,
        width: int,
        height: int,
    ) -> "DetectionCandidate":
        """Create a single-signal candidate from pixel measurements."""
        return cls(
            center=(pixel_center[0] / width, pixel_center[1] / height),
            pixel_center=(float(pixel_center[0]), float(pixel_center[1])),
            radius=pixel_radius / min(width, height),
            pixel_radius=float(pixel_radius),
            signals={signal},
            raw_scores={signal: float(raw_score)},
            region=region,
        )

    @property
    def signal_count(self) -> int:
        return len(self.signals)

    @property
    def best_raw_score(self) -> float:
        return max(self.raw_scores.values(), default=0.0)

    def distance_to(self, other: "DetectionCandidate") -> float:
        return math.hypot(
            self.pixel_center[0] - other.pixel_center[0],
            self.pixel_center[1] - other.pixel_center[1],
        )

    def merge(self, other: "DetectionCandidate") -> None:
        """
        Fold another detection of the same mark into this candidate.

        Position and radius move to the average of every raw detection
        absorbed so far. Signals are unioned and each signal keeps its best
        raw score.
        """
        total = self.merged_count + other.merged_count
        w_self = self.merged_count / total
        w_other = other.merged_count / total

        self.center = (
            self.center[0] * w_self + other.center[0] * w_other,
            self.center[1] * w_self + other.center[1] * w_other,
        )
        self.pixel_center = (
            self.pixel_center[0] * w_self + other.pixel_center[0] * w_other,
            self.pixel_center[1] * w_self + other.pixel_center[1] * w_other,
        )
        self.radius = self.radius * w_self + other.radius * w_other
        self.pixel_radius = self.pixel_radius * w_self + other.pixel_radius * w_other

        self.signals = self.signals | other.signals
        for signal, score in other.raw_scores.items():
            self.raw_scores[signal] = max(self.raw_scores.get(signal, score), score)
        self.merged_count = total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "center": [round(self.center[0], 4), round(self.center[1], 4)],
            "pixel_center": [round(self.pixel_center[0], 2), round(self.pixel_center[1], 2)],
            "radius": round(self.radius, 5),
            "pixel_radius": round(self.pixel_radius, 2),
            "signals": sorted(s.value for s in self.signals),
            "raw_scores": {s.value: round(v, 4) for s, v in self.raw_scores.items()},
            "region": self.region.value,
            "features": self.features.to_dict() if self.features is not None else None,
            "confidence": round(self.confidence, 4),
            "needs_review": self.needs_review,
            "review_reason": self.review_reason.value if self.review_reason else None,
            "parent_id": self.parent_id,
        }


# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True)
class DetectedHole:
    """A hole reported to the caller (accepted or flagged for review)."""
    id: str
    position: Point                 # Normalized (0-1)
    pixel_position: Point
    radius: float                   # Normalized to the shorter image side
    pixel_radius: float
    confidence: float
    needs_review: bool = False
    review_reason: Optional[ReviewReason] = None
    signals: Tuple[DetectionSignal, ...] = ()
    region: TargetRegion = TargetRegion.UNKNOWN

    @classmethod
    def from_candidate(cls, candidate: DetectionCandidate) -> "DetectedHole":
        return cls(
            id=candidate.id,
            position=candidate.center,
            pixel_position=candidate.pixel_center,
            radius=candidate.radius,
            pixel_radius=candidate.pixel_radius,
            confidence=candidate.confidence,
            needs_review=candidate.needs_review,
            review_reason=candidate.review_reason,
            signals=tuple(sorted(candidate.signals, key=lambda s: s.value)),
            region=candidate.region,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "position": [round(self.position[0], 4), round(self.position[1], 4)],
            "pixel_position": [round(self.pixel_position[0], 2), round(self.pixel_position[1], 2)],
            "radius": round(self.radius, 5),
            "pixel_radius": round(self.pixel_radius, 2),
            "confidence": round(self.confidence, 4),
            "needs_review": self.needs_review,
            "review_reason": self.review_reason.value if self.review_reason else None,
            "signals": [s.value for s in self.signals],
            "region": self.region.value,
        }


@dataclass(frozen=True)
class CandidateDiagnostic:
    """Per-candidate record kept for tuning."""
    id: str
    position: Point
    region: TargetRegion
    signals: Tuple[DetectionSignal, ...]
    features: Optional[CandidateFeatures]
    confidence: float
    classification: str  # "accept", "flag" or "reject"
    review_reason: Optional[ReviewReason] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "position": [round(self.position[0], 4), round(self.position[1], 4)],
            "region": self.region.value,
            "signals": [s.value for s in self.signals],
            "features": self.features.to_dict() if self.features is not None else None,
            "confidence": round(self.confidence, 4),
            "classification": self.classification,
            "review_reason": self.review_reason.value if self.review_reason else None,
        }


@dataclass
class DetectionDiagnostics:
    """Counts, sizes and timings of one detection run."""
    image_size: Tuple[int, int]
    expected_radius_px: int
    min_radius_px: int
    max_radius_px: int
    scale: float = 1.0
    target_type: TargetType = TargetType.TETRATHLON
    algorithm_version: str = ALGORITHM_VERSION

    signal_a_candidates: int = 0
    signal_b_candidates: int = 0
    signal_c_candidates: int = 0
    merged_candidates: int = 0

    preprocessing_ms: int = 0
    region_analysis_ms: int = 0
    signal_generation_ms: int = 0
    merging_ms: int = 0
    feature_extraction_ms: int = 0
    scoring_ms: int = 0
    total_ms: int = 0

    all_candidates: List[CandidateDiagnostic] = field(default_factory=list)

    def count(self, classification: str) -> int:
        return sum(1 for c in self.all_candidates if c.classification == classification)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "algorithm_version": self.algorithm_version,
            "image_size": list(self.image_size),
            "scale": round(self.scale, 4),
            "target_type": self.target_type.value,
            "expected_radius_px": self.expected_radius_px,
            "min_radius_px": self.min_radius_px,
            "max_radius_px": self.max_radius_px,
            "signal_counts": {
                DetectionSignal.DARK_ANOMALY.value: self.signal_a_candidates,
                DetectionSignal.LIGHT_ANOMALY.value: self.signal_b_candidates,
                DetectionSignal.EDGE_RING.value: self.signal_c_candidates,
            },
            "merged_candidates": self.merged_candidates,
            "timings_ms": {
                "preprocessing": self.preprocessing_ms,
                "region_analysis": self.region_analysis_ms,
                "signal_generation": self.signal_generation_ms,
                "merging": self.merging_ms,
                "feature_extraction": self.feature_extraction_ms,
                "scoring": self.scoring_ms,
                "total": self.total_ms,
            },
            "candidates": [c.to_dict() for c in self.all_candidates],
        }


@dataclass(frozen=True)
class DetectionResult:
    """Output of one pipeline invocation."""
    accepted_holes: List[DetectedHole]
    flagged_candidates: List[DetectedHole]
    rejected_count: int
    quality_warnings: List[str]
    region_analysis: RegionAnalysis
    processing_time_ms: int
    diagnostics: Optional[DetectionDiagnostics] = None

    @property
    def all_holes(self) -> List[DetectedHole]:
        return list(self.accepted_holes) + list(self.flagged_candidates)

    @property
    def total_candidates(self) -> int:
        return len(self.accepted_holes) + len(self.flagged_candidates) + self.rejected_count

    def to_dict(self) -> Dict[str, Any]:
        output = {
            "accepted_holes": [h.to_dict() for h in self.accepted_holes],
            "flagged_candidates": [h.to_dict() for h in self.flagged_candidates],
            "rejected_count": self.rejected_count,
            "quality_warnings": list(self.quality_warnings),
            "region_analysis": self.region_analysis.to_dict(),
            "processing_time_ms": self.processing_time_ms,
        }
        if self.diagnostics is not None:
            output["diagnostics"] = self.diagnostics.to_dict()
        return output
