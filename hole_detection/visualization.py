"""
Debug visualization of a detection result.

This module handles:
- Accepted and flagged hole outlines on the original image
- The black/white transition line
- A summary text block (counts, warnings, timing)
"""

from typing import Dict, List, Tuple

import cv2
import numpy as np

from .confidence import confidence_level
from .models import DetectedHole, DetectionResult
from .viz_constants import (
    FONT_FACE,
    Color,
    FontScale,
    FontThickness,
    Layout,
    REFERENCE_HEIGHT,
    Size,
    draw_outlined_text,
    get_scaled_font_size,
)


def get_scaled_params(image_height: int) -> Dict[str, float]:
    """
    Calculate drawing parameters scaled to image dimensions.

    Args:
        image_height: Height of the image in pixels

    Returns:
        Dictionary of scaled font sizes, thicknesses and offsets
    """
    factor = max(1.0, image_height / REFERENCE_HEIGHT)
    return {
        "body_scale": get_scaled_font_size(FontScale.BODY, image_height),
        "label_scale": get_scaled_font_size(FontScale.LABEL, image_height),
        "text_thickness": max(1, int(FontThickness.BODY * factor)),
        "outline_thickness": max(2, int(FontThickness.BODY_OUTLINE * factor)),
        "circle_thickness": max(1, int(Size.CIRCLE_THICK * factor)),
        "line_thickness": max(1, int(Size.LINE_NORMAL * factor)),
        "label_offset": int(Layout.LABEL_OFFSET * factor),
        "line_height": int(Layout.RESULT_TEXT_LINE_HEIGHT * factor),
        "y_start": int(Layout.RESULT_TEXT_Y_START * factor),
        "x_offset": int(Layout.TEXT_OFFSET_X * factor),
        "panel_width": int(Layout.RESULT_PANEL_WIDTH * factor),
    }


def _to_image_coords(hole: DetectedHole, width: int, height: int) -> Tuple[Tuple[int, int], int]:
    # Normalized coordinates map directly onto the original image
    center = (int(round(hole.position[0] * width)), int(round(hole.position[1] * height)))
    radius = max(2, int(round(hole.radius * min(width, height))))
    return center, radius


def draw_holes(
    image: np.ndarray,
    holes: List[DetectedHole],
    color: Tuple[int, int, int],
    show_reason: bool = False,
) -> np.ndarray:
    """Draw hole outlines with confidence labels."""
    h, w = image.shape[:2]
    params = get_scaled_params(h)

    for hole in holes:
        center, radius = _to_image_coords(hole, w, h)
        cv2.circle(image, center, radius, color, params["circle_thickness"], cv2.LINE_AA)

        label = f"{hole.confidence:.2f}"
        if show_reason and hole.review_reason is not None:
            label += f" {hole.review_reason.value}"
        position = (center[0] + radius + params["label_offset"], center[1])
        draw_outlined_text(
            image, label, position, params["label_scale"], color,
            params["text_thickness"], params["outline_thickness"],
        )

    return image


def draw_transition(image: np.ndarray, transition_x_normalized: float, valid: bool) -> np.ndarray:
    """Draw the black/white transition as a vertical line."""
    h, w = image.shape[:2]
    params = get_scaled_params(h)
    x = int(round(transition_x_normalized * w))
    color = Color.TRANSITION if valid else Color.TEXT_ERROR
    cv2.line(image, (x, 0), (x, h - 1), color, params["line_thickness"])
    return image


def add_summary_text(image: np.ndarray, result: DetectionResult) -> np.ndarray:
    """Add the result summary block in the top-left corner."""
    params = get_scaled_params(image.shape[0])

    best = max((hole.confidence for hole in result.accepted_holes), default=0.0)
    text_lines = [
        ("=== HOLE DETECTION ===", Color.TEXT_PRIMARY),
        (f"Accepted: {len(result.accepted_holes)}", Color.TEXT_SUCCESS),
        (f"Flagged: {len(result.flagged_candidates)}", Color.TEXT_WARNING),
        (f"Rejected: {result.rejected_count}", Color.TEXT_ERROR),
        (f"Best confidence: {best:.2f} ({confidence_level(best)})", Color.TEXT_PRIMARY),
        (f"Time: {result.processing_time_ms} ms", Color.TEXT_PRIMARY),
    ]
    for warning in result.quality_warnings:
        text_lines.append((f"! {warning}", Color.TEXT_WARNING))

    # Semi-transparent background panel
    panel_bottom = params["y_start"] + len(text_lines) * params["line_height"]
    overlay = image.copy()
    cv2.rectangle(overlay, (0, 0), (params["panel_width"], panel_bottom), Color.BLACK, -1)
    cv2.addWeighted(overlay, 0.6, image, 0.4, 0, image)

    for i, (text, color) in enumerate(text_lines):
        cv2.putText(
            image,
            text,
            (params["x_offset"], params["y_start"] + i * params["line_height"]),
            FONT_FACE,
            params["body_scale"],
            color,
            params["text_thickness"],
            cv2.LINE_AA,
        )

    return image


def create_debug_visualization(image: np.ndarray, result: DetectionResult) -> np.ndarray:
    """
    Create debug visualization overlay on the original image.

    Args:
        image: Original image (BGR or grayscale)
        result: Detection result for that image

    Returns:
        Annotated BGR image
    """
    if image.ndim == 2:
        vis = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    elif image.shape[2] == 4:
        vis = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    else:
        vis = image.copy()

    analysis = result.region_analysis
    vis = draw_transition(vis, analysis.transition_x_normalized, analysis.is_valid)
    vis = draw_holes(vis, result.flagged_candidates, Color.FLAGGED, show_reason=True)
    vis = draw_holes(vis, result.accepted_holes, Color.ACCEPTED)
    vis = add_summary_text(vis, result)

    return vis
