"""
Detection evaluation against ground-truth annotations.

This module handles:
- Loading ground-truth fixtures from JSON
- Greedy one-to-one matching of predictions to annotations
- Precision / recall / F1 overall and per target region

Evaluation is a pure comparison of two position lists and does not depend on
how the predictions were produced.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set, Union

from .exceptions import HoleDetectionError
from .models import ALGORITHM_VERSION, DetectedHole, Point, TargetRegion

logger = logging.getLogger(__name__)

DEFAULT_MATCH_TOLERANCE = 0.03  # Normalized distance (3% of the image)


@dataclass(frozen=True)
class GroundTruthHole:
    """A manually annotated hole position (normalized coordinates)."""
    x: float
    y: float
    region: TargetRegion = TargetRegion.UNKNOWN
    id: int = 0
    is_overlapping: bool = False

    @property
    def position(self) -> Point:
        return (self.x, self.y)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], index: int = 0) -> "GroundTruthHole":
        try:
            region = TargetRegion(str(data.get("region", "unknown")).lower())
        except ValueError:
            region = TargetRegion.UNKNOWN
        return cls(
            x=float(data["x"]),
            y=float(data["y"]),
            region=region,
            id=int(data.get("id", index)),
            is_overlapping=bool(data.get("is_overlapping", data.get("isOverlapping", False))),
        )


@dataclass(frozen=True)
class GroundTruthFixture:
    """Annotated test image with the minimum quality it must reach."""
    holes: List[GroundTruthHole]
    image_file: Optional[str] = None
    category: Optional[str] = None
    difficulty: Optional[str] = None
    expected_min_recall: float = 0.0
    expected_min_precision: float = 0.0


@dataclass(frozen=True)
class RegionMetrics:
    """Match counts restricted to the annotations of one region."""
    true_positives: int
    false_positives: int
    false_negatives: int

    @property
    def precision(self) -> float:
        total = self.true_positives + self.false_positives
        return self.true_positives / total if total > 0 else 0.0

    @property
    def recall(self) -> float:
        total = self.true_positives + self.false_negatives
        return self.true_positives / total if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "true_positives": self.true_positives,
            "false_positives": self.false_positives,
            "false_negatives": self.false_negatives,
            "precision": round(self.precision, 4),
            "recall": round(self.recall, 4),
        }


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of comparing one prediction set to its ground truth."""
    true_positives: int
    false_positives: int
    false_negatives: int
    match_tolerance: float = DEFAULT_MATCH_TOLERANCE
    algorithm_version: str = ALGORITHM_VERSION
    black_region: Optional[RegionMetrics] = None
    white_region: Optional[RegionMetrics] = None
    matched_ids: List[int] = field(default_factory=list)

    @property
    def precision(self) -> float:
        total = self.true_positives + self.false_positives
        return self.true_positives / total if total > 0 else 0.0

    @property
    def recall(self) -> float:
        total = self.true_positives + self.false_negatives
        return self.true_positives / total if total > 0 else 0.0

    @property
    def f1_score(self) -> float:
        p, r = self.precision, self.recall
        return 2 * p * r / (p + r) if (p + r) > 0 else 0.0

    @property
    def user_corrections(self) -> int:
        """Taps a user needs to fix the result: delete each FP, add each FN."""
        return self.false_positives + self.false_negatives

    @property
    def correction_rate(self) -> float:
        total = self.true_positives + self.false_negatives
        return self.user_corrections / total if total > 0 else 0.0

    def meets(self, fixture: GroundTruthFixture) -> bool:
        """True when recall and precision reach the fixture's minimums."""
        return (
            self.recall >= fixture.expected_min_recall
            and self.precision >= fixture.expected_min_precision
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "algorithm_version": self.algorithm_version,
            "match_tolerance": self.match_tolerance,
            "true_positives": self.true_positives,
            "false_positives": self.false_positives,
            "false_negatives": self.false_negatives,
            "precision": round(self.precision, 4),
            "recall": round(self.recall, 4),
            "f1_score": round(self.f1_score, 4),
            "user_corrections": self.user_corrections,
            "correction_rate": round(self.correction_rate, 4),
            "black_region": self.black_region.to_dict() if self.black_region else None,
            "white_region": self.white_region.to_dict() if self.white_region else None,
        }


def match_predictions(
    predictions: Sequence[Point],
    ground_truth: Sequence[GroundTruthHole],
    match_tolerance: float = DEFAULT_MATCH_TOLERANCE,
) -> List[int]:
    """
    Greedy one-to-one matching in prediction order.

    Each prediction takes the first unmatched annotation within tolerance.

    Args:
        predictions: Normalized predicted positions
        ground_truth: Annotations
        match_tolerance: Maximum normalized distance for a match

    Returns:
        Indices into ground_truth of the matched annotations, in match order
    """
    matched: Set[int] = set()
    order = []
    for px, py in predictions:
        for i, hole in enumerate(ground_truth):
            if i in matched:
                continue
            if math.hypot(px - hole.x, py - hole.y) <= match_tolerance:
                matched.add(i)
                order.append(i)
                break
    return order


def _region_metrics(
    predictions: Sequence[Point],
    ground_truth: Sequence[GroundTruthHole],
    match_tolerance: float,
) -> Optional[RegionMetrics]:
    if not ground_truth:
        return None
    tp = len(match_predictions(predictions, ground_truth, match_tolerance))
    return RegionMetrics(
        true_positives=tp,
        false_positives=len(predictions) - tp,
        false_negatives=len(ground_truth) - tp,
    )


def evaluate(
    predictions: Sequence[Union[DetectedHole, Point]],
    ground_truth: Sequence[GroundTruthHole],
    match_tolerance: float = DEFAULT_MATCH_TOLERANCE,
) -> EvaluationResult:
    """
    Compare predicted holes with ground truth.

    Args:
        predictions: Detected holes or normalized (x, y) positions
        ground_truth: Annotated holes
        match_tolerance: Maximum normalized distance for a match

    Returns:
        EvaluationResult with overall and per-region counts. Region false
        positives count every prediction not matched within that region.
    """
    positions = [p.position if isinstance(p, DetectedHole) else p for p in predictions]

    matched = match_predictions(positions, ground_truth, match_tolerance)
    tp = len(matched)

    result = EvaluationResult(
        true_positives=tp,
        false_positives=len(positions) - tp,
        false_negatives=len(ground_truth) - tp,
        match_tolerance=match_tolerance,
        black_region=_region_metrics(
            positions, [h for h in ground_truth if h.region == TargetRegion.BLACK], match_tolerance
        ),
        white_region=_region_metrics(
            positions, [h for h in ground_truth if h.region == TargetRegion.WHITE], match_tolerance
        ),
        matched_ids=[ground_truth[i].id for i in matched],
    )

    logger.info(
        f"Evaluation: TP={result.true_positives} FP={result.false_positives} "
        f"FN={result.false_negatives} precision={result.precision:.2f} "
        f"recall={result.recall:.2f} F1={result.f1_score:.2f}"
    )
    return result


def load_ground_truth(path: Union[str, Path]) -> GroundTruthFixture:
    """
    Load a ground-truth fixture from JSON.

    The file holds {"holes": [{"x": ..., "y": ..., "region": ...}, ...]}
    with optional imageFile/category/difficulty and expectedMinRecall/
    expectedMinPrecision (camelCase or snake_case keys).

    Args:
        path: Path to the fixture file

    Returns:
        GroundTruthFixture
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise HoleDetectionError(f"Cannot read ground truth {path}: {e}") from e

    if isinstance(data, list):
        data = {"holes": data}
    if not isinstance(data, dict) or not isinstance(data.get("holes"), list):
        raise HoleDetectionError(f"Ground truth {path} must contain a 'holes' list")

    try:
        holes = [GroundTruthHole.from_dict(h, index=i) for i, h in enumerate(data["holes"])]
    except (KeyError, TypeError, ValueError) as e:
        raise HoleDetectionError(f"Invalid hole annotation in {path}: {e}") from e

    def pick(snake: str, camel: str, default: Any = None) -> Any:
        return data.get(snake, data.get(camel, default))

    return GroundTruthFixture(
        holes=holes,
        image_file=pick("image_file", "imageFile"),
        category=data.get("category"),
        difficulty=data.get("difficulty"),
        expected_min_recall=float(pick("expected_min_recall", "expectedMinRecall", 0.0)),
        expected_min_precision=float(pick("expected_min_precision", "expectedMinPrecision", 0.0)),
    )
