"""
Multi-signal pellet hole detection for black/white shooting targets.
"""

from .config import DetectionConfiguration, PRESETS, get_preset, load_config
from .evaluation import GroundTruthHole, evaluate, load_ground_truth
from .exceptions import (
    ConfigurationError,
    DetectionCancelledError,
    HoleDetectionError,
    InvalidImageError,
)
from .image_preprocessing import decode_image, load_image, preprocess_image
from .image_quality import assess_image_quality
from .models import (
    ALGORITHM_VERSION,
    DetectedHole,
    DetectionResult,
    DetectionSignal,
    ReviewReason,
    TargetGeometry,
    TargetRegion,
    TargetType,
)
from .pipeline import HoleDetectionPipeline, detect_holes

__all__ = [
    "ALGORITHM_VERSION",
    "DetectionConfiguration",
    "PRESETS",
    "get_preset",
    "load_config",
    "GroundTruthHole",
    "evaluate",
    "load_ground_truth",
    "ConfigurationError",
    "DetectionCancelledError",
    "HoleDetectionError",
    "InvalidImageError",
    "decode_image",
    "load_image",
    "preprocess_image",
    "assess_image_quality",
    "DetectedHole",
    "DetectionResult",
    "DetectionSignal",
    "ReviewReason",
    "TargetGeometry",
    "TargetRegion",
    "TargetType",
    "HoleDetectionPipeline",
    "detect_holes",
]
