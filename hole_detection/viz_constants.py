"""
Shared visualization constants for debug output.

This module provides centralized configuration for fonts, colors, sizes, and
layout used by the final overlay (visualization.py) and the intermediate
stage images (debug_observer.py).

Example usage:
    from .viz_constants import Color, FontScale, FONT_FACE

    draw_outlined_text(img, "Merged: 12", (10, 30), FontScale.TITLE, Color.CYAN)
"""

import cv2

# ============================================================================
# FONT SETTINGS
# ============================================================================

FONT_FACE = cv2.FONT_HERSHEY_SIMPLEX


class FontScale:
    """
    Font scales at the reference image height (1000 px).

    Overlays on larger images scale these up with get_scaled_font_size().
    """
    TITLE = 0.9          # Stage titles
    LABEL = 0.45         # Per-candidate labels
    BODY = 0.6           # Summary text block


class FontThickness:
    """Stroke widths; OUTLINE variants are drawn first as a dark halo."""
    TITLE = 2
    LABEL = 1
    BODY = 1

    TITLE_OUTLINE = 5
    LABEL_OUTLINE = 3
    BODY_OUTLINE = 3


# ============================================================================
# COLORS (BGR format for OpenCV)
# ============================================================================

class Color:
    """
    Standard colors used across all visualizations.

    All colors in BGR format (Blue, Green, Red) as required by OpenCV.
    """
    WHITE = (255, 255, 255)
    BLACK = (0, 0, 0)
    RED = (0, 0, 255)
    GREEN = (0, 255, 0)
    BLUE = (255, 0, 0)
    CYAN = (255, 255, 0)
    YELLOW = (0, 255, 255)
    MAGENTA = (255, 0, 255)
    ORANGE = (0, 128, 255)

    # Classification colors
    ACCEPTED = GREEN
    FLAGGED = YELLOW
    REJECTED = RED

    # Region split
    TRANSITION = MAGENTA

    # Text colors
    TEXT_PRIMARY = WHITE
    TEXT_SUCCESS = GREEN
    TEXT_WARNING = YELLOW
    TEXT_ERROR = RED


class SignalColor:
    """Colors distinguishing raw candidates from each signal."""
    DARK_ANOMALY = Color.CYAN
    LIGHT_ANOMALY = Color.ORANGE
    EDGE_RING = Color.MAGENTA
    MULTI_SIGNAL = Color.GREEN


# ============================================================================
# DRAWING SIZES
# ============================================================================

class Size:
    """Size constants in pixels at the reference height."""
    CIRCLE_THICK = 2            # Accepted/flagged hole outlines
    CIRCLE_THIN = 1             # Raw candidate outlines
    CENTER_RADIUS = 2           # Center dots
    LINE_NORMAL = 2             # Transition line


# ============================================================================
# LAYOUT CONSTANTS
# ============================================================================

class Layout:
    """Text placement in pixels from the top-left corner."""
    TITLE_Y = 30
    TEXT_OFFSET_X = 10
    LABEL_OFFSET = 4
    RESULT_TEXT_Y_START = 28
    RESULT_TEXT_LINE_HEIGHT = 24
    RESULT_PANEL_WIDTH = 460


# Reference height for font and size scaling
REFERENCE_HEIGHT = 1000


def get_scaled_font_size(base_scale: float, image_height: int,
                         reference_height: int = REFERENCE_HEIGHT,
                         min_scale: float = 0.35) -> float:
    """
    Scale font size based on image dimensions for consistent appearance.

    Args:
        base_scale: Base font scale (e.g., FontScale.TITLE)
        image_height: Height of the image in pixels
        reference_height: Reference height for scaling
        min_scale: Minimum scale to keep text legible

    Returns:
        Scaled font size
    """
    scaled = base_scale * image_height / reference_height
    return max(scaled, min_scale)


def draw_outlined_text(image, text, position, font_scale, color,
                       thickness=1, outline_thickness=3):
    """Draw text over a black outline for visibility on any background."""
    cv2.putText(image, text, position, FONT_FACE,
                font_scale, Color.BLACK, outline_thickness, cv2.LINE_AA)
    cv2.putText(image, text, position, FONT_FACE,
                font_scale, color, thickness, cv2.LINE_AA)
