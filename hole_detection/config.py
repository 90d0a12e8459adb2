"""
Detection configuration.

This module handles:
- The immutable per-run DetectionConfiguration and its presets
- Loading overrides from JSON files
- Deriving pixel hole sizes from an image size
"""

import dataclasses
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Tuple, Union

from .detection_constants import MIN_EXPECTED_RADIUS_PX, MIN_RADIUS_FLOOR_PX
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionConfiguration:
    """Caller-supplied tuning for one detection run."""

    # Size parameters
    expected_hole_radius_fraction: float = 0.02  # Of the shorter image side
    size_tolerance_min: float = 0.33             # min radius = expected * 0.33
    size_tolerance_max: float = 3.0              # max radius = expected * 3.0

    # Signal thresholds
    signal_a_contrast_threshold: float = 12.0    # Dark anomaly (intensity levels)
    signal_b_contrast_threshold: float = 10.0    # Light anomaly (intensity levels)
    signal_c_edge_threshold: float = 0.15        # Edge ring (normalized magnitude)

    # Merging
    merge_radius_fraction: float = 0.6           # Of the expected radius

    # Classification
    auto_accept_threshold: float = 0.85
    review_threshold: float = 0.50

    # Feature toggles
    enable_signal_c: bool = True
    enable_overlap_detection: bool = True
    enable_diagnostics: bool = True
    parallel_signals: bool = True

    @classmethod
    def default(cls) -> "DetectionConfiguration":
        return cls()

    @classmethod
    def high_recall(cls) -> "DetectionConfiguration":
        return cls(
            signal_a_contrast_threshold=8.0,
            signal_b_contrast_threshold=6.0,
            review_threshold=0.40,
        )

    @classmethod
    def high_precision(cls) -> "DetectionConfiguration":
        return cls(
            signal_a_contrast_threshold=15.0,
            signal_b_contrast_threshold=12.0,
            auto_accept_threshold=0.90,
        )

    def with_overrides(self, **overrides: Any) -> "DetectionConfiguration":
        """Return a validated copy with some fields replaced."""
        unknown = set(overrides) - {f.name for f in dataclasses.fields(self)}
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        updated = dataclasses.replace(self, **overrides)
        updated.validate()
        return updated

    def validate(self) -> None:
        """Raise ConfigurationError if any value is out of range."""
        if self.expected_hole_radius_fraction <= 0:
            raise ConfigurationError("expected_hole_radius_fraction must be positive")
        if self.size_tolerance_min <= 0 or self.size_tolerance_max <= 0:
            raise ConfigurationError("size tolerances must be positive")
        if self.size_tolerance_min > self.size_tolerance_max:
            raise ConfigurationError(
                f"size_tolerance_min ({self.size_tolerance_min}) exceeds "
                f"size_tolerance_max ({self.size_tolerance_max})"
            )
        if self.merge_radius_fraction <= 0:
            raise ConfigurationError("merge_radius_fraction must be positive")
        if self.signal_a_contrast_threshold < 0 or self.signal_b_contrast_threshold < 0:
            raise ConfigurationError("contrast thresholds must not be negative")
        for name in ("signal_c_edge_threshold", "auto_accept_threshold", "review_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {value}")
        if self.review_threshold > self.auto_accept_threshold:
            raise ConfigurationError(
                f"review_threshold ({self.review_threshold}) exceeds "
                f"auto_accept_threshold ({self.auto_accept_threshold})"
            )

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectionConfiguration":
        """
        Build a configuration from a plain dictionary.

        An optional "preset" key selects the base configuration; all other
        keys override its fields.

        Args:
            data: Mapping of field names to values

        Returns:
            Validated DetectionConfiguration
        """
        data = dict(data)
        preset_name = data.pop("preset", "default")
        base = get_preset(preset_name)
        return base.with_overrides(**data)


PRESETS = {
    "default": DetectionConfiguration.default,
    "highRecall": DetectionConfiguration.high_recall,
    "highPrecision": DetectionConfiguration.high_precision,
    "high_recall": DetectionConfiguration.high_recall,
    "high_precision": DetectionConfiguration.high_precision,
}


def get_preset(name: str) -> DetectionConfiguration:
    """Look up a built-in preset by name."""
    try:
        return PRESETS[name]()
    except KeyError:
        raise ConfigurationError(
            f"Unknown preset: {name}. Use one of {sorted(PRESETS)}"
        ) from None


def load_config(path: Union[str, Path]) -> DetectionConfiguration:
    """
    Load a configuration from a JSON file.

    Args:
        path: Path to a JSON object of configuration fields

    Returns:
        Validated DetectionConfiguration
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a JSON object")

    config = DetectionConfiguration.from_dict(data)
    logger.debug(f"Loaded configuration from {path}: {config}")
    return config


def compute_hole_sizes(width: int, height: int, config: DetectionConfiguration) -> Tuple[int, int, int]:
    """
    Derive pixel hole radii for an image.

    Args:
        width: Image width in pixels
        height: Image height in pixels
        config: Detection configuration

    Returns:
        Tuple of (expected_radius, min_radius, max_radius) in pixels
    """
    image_dim = min(width, height)
    expected = max(MIN_EXPECTED_RADIUS_PX, int(image_dim * config.expected_hole_radius_fraction))
    min_radius = max(MIN_RADIUS_FLOOR_PX, int(expected * config.size_tolerance_min))
    max_radius = int(expected * config.size_tolerance_max)
    return expected, min_radius, max_radius
