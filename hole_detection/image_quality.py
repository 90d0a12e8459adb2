"""
Image quality assessment for target photos.

This module handles:
- Warnings attached to every detection result
- A fuller pre-detection assessment (exposure, noise, region visibility)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import cv2
import numpy as np

from .detection_constants import (
    ACCEPTABLE_MIN_CONTRAST,
    ACCEPTABLE_MIN_SHARPNESS,
    BLUR_SHARPNESS_THRESHOLD,
    LOW_CONTRAST_THRESHOLD,
)
from .models import PixelMatrix, RegionAnalysis
from .region_analysis import analyze_regions

BLURRY_WARNING = "Image may be blurry - hold camera steady"
LOW_CONTRAST_WARNING = "Low contrast - improve lighting"
AMBIGUOUS_REGIONS_WARNING = "Could not detect target regions clearly"

# Exposure limits for the region means (0-255)
MIN_WHITE_EXPOSURE = 150
MAX_BLACK_EXPOSURE = 100

# Black-region std above this suggests glare or texture hiding holes
MAX_BLACK_REGION_STD = 40.0

# Median absolute Laplacian above this indicates sensor noise
MAX_NOISE_LEVEL = 12.0


def generate_quality_warnings(analysis: RegionAnalysis) -> List[str]:
    """
    Human-readable warnings for a region analysis.

    Args:
        analysis: Region analysis of the image

    Returns:
        List of warnings (empty for a clean image)
    """
    warnings = []
    if analysis.sharpness < BLUR_SHARPNESS_THRESHOLD:
        warnings.append(BLURRY_WARNING)
    if analysis.overall_contrast < LOW_CONTRAST_THRESHOLD:
        warnings.append(LOW_CONTRAST_WARNING)
    if not analysis.is_valid:
        warnings.append(AMBIGUOUS_REGIONS_WARNING)
    return warnings


def estimate_noise(gray: np.ndarray) -> float:
    """
    Estimate sensor noise as the median absolute Laplacian response.

    Edges occupy few pixels, so the median tracks the noise floor.
    """
    laplacian = cv2.Laplacian(gray, cv2.CV_64F)
    return float(np.median(np.abs(laplacian)))


@dataclass(frozen=True)
class QualityAssessment:
    """Pre-detection quality figures for one image."""
    sharpness: float
    contrast: float
    white_exposure: float
    black_exposure: float
    black_region_visibility: float
    noise_level: float
    transition_x: float
    issues: List[str] = field(default_factory=list)

    @property
    def is_acceptable(self) -> bool:
        return self.sharpness > ACCEPTABLE_MIN_SHARPNESS and self.contrast > ACCEPTABLE_MIN_CONTRAST

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_acceptable": self.is_acceptable,
            "sharpness": round(self.sharpness, 2),
            "contrast": round(self.contrast, 4),
            "white_exposure": round(self.white_exposure, 2),
            "black_exposure": round(self.black_exposure, 2),
            "black_region_visibility": round(self.black_region_visibility, 2),
            "noise_level": round(self.noise_level, 2),
            "transition_x": round(self.transition_x, 4),
            "issues": list(self.issues),
        }


def assess_image_quality(
    matrix: PixelMatrix,
    analysis: Optional[RegionAnalysis] = None,
) -> QualityAssessment:
    """
    Comprehensive quality assessment before running detection.

    Combines the region analysis figures with exposure, noise and
    black-region visibility checks.

    Args:
        matrix: Preprocessed image
        analysis: Existing region analysis (computed when omitted)

    Returns:
        QualityAssessment listing any issues found
    """
    if analysis is None:
        analysis = analyze_regions(matrix.gray)

    noise = estimate_noise(matrix.gray)
    issues = generate_quality_warnings(analysis)

    if analysis.white_mean < MIN_WHITE_EXPOSURE:
        issues.append(f"White region is underexposed (mean: {analysis.white_mean:.0f})")
    if analysis.black_mean > MAX_BLACK_EXPOSURE:
        issues.append(f"Black region is washed out (mean: {analysis.black_mean:.0f})")
    if analysis.black_std > MAX_BLACK_REGION_STD:
        issues.append(f"Black region is uneven, possible glare (std: {analysis.black_std:.1f})")
    if noise > MAX_NOISE_LEVEL:
        issues.append(f"Image is noisy (level: {noise:.1f})")

    return QualityAssessment(
        sharpness=analysis.sharpness,
        contrast=analysis.overall_contrast,
        white_exposure=analysis.white_mean,
        black_exposure=analysis.black_mean,
        black_region_visibility=analysis.black_std,
        noise_level=noise,
        transition_x=analysis.transition_x_normalized,
        issues=issues,
    )
