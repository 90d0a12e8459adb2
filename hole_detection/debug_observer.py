"""
Debug observer for the hole detection pipeline.

This module provides a non-intrusive way to capture intermediate processing
stages without putting file I/O into the detection algorithms. It also holds
the drawing functions used for those stage images.
"""

from pathlib import Path
from typing import Callable, Dict, List, Union

import cv2
import numpy as np

from .models import DetectionCandidate, DetectionSignal, RegionAnalysis
from .viz_constants import (
    Color,
    FontScale,
    FontThickness,
    Layout,
    SignalColor,
    Size,
    draw_outlined_text,
    get_scaled_font_size,
)

# Saved images are downsampled above this size
MAX_SAVE_DIMENSION = 1920

PNG_COMPRESSION_LEVEL = 6


class DebugObserver:
    """
    Observer for capturing and saving intermediate processing stages.

    Stage images are written as compressed PNGs named after the stage; a
    stage saved more than once gets a numeric suffix.
    """

    def __init__(self, debug_dir: Union[str, Path]):
        """
        Initialize debug observer.

        Args:
            debug_dir: Directory where debug images will be saved
        """
        self.debug_dir = Path(debug_dir)
        self.debug_dir.mkdir(parents=True, exist_ok=True)
        self._stage_counter: Dict[str, int] = {}
        self.saved: List[Path] = []

    def save_stage(self, name: str, image: np.ndarray) -> None:
        """
        Save an intermediate processing stage image.

        Args:
            name: Stage name (used as filename prefix)
            image: Image to save
        """
        if image is None or image.size == 0:
            return

        if name in self._stage_counter:
            self._stage_counter[name] += 1
            filename = f"{name}_{self._stage_counter[name]}.png"
        else:
            self._stage_counter[name] = 0
            filename = f"{name}.png"

        self._save_with_compression(image, filename)

    def draw_and_save(self, name: str, image: np.ndarray,
                      draw_func: Callable, *args, **kwargs) -> None:
        """
        Apply a drawing function to an image and save the result.

        Args:
            name: Stage name for the output file
            image: Base image to draw on
            draw_func: Function that takes (image, *args, **kwargs) and returns annotated image
            *args, **kwargs: Arguments to pass to draw_func
        """
        if image is None or image.size == 0:
            return

        annotated = draw_func(image, *args, **kwargs)
        self.save_stage(name, annotated)

    def _save_with_compression(self, image: np.ndarray, filename: str) -> None:
        output_path = self.debug_dir / filename

        h, w = image.shape[:2]
        if max(h, w) > MAX_SAVE_DIMENSION:
            scale = MAX_SAVE_DIMENSION / max(h, w)
            image = cv2.resize(image, (int(w * scale), int(h * scale)), interpolation=cv2.INTER_AREA)

        cv2.imwrite(str(output_path), image, [cv2.IMWRITE_PNG_COMPRESSION, PNG_COMPRESSION_LEVEL])
        self.saved.append(output_path)


# =============================================================================
# Drawing Functions for Debug Visualization
# =============================================================================

def _to_bgr(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    return image.copy()


def _draw_title(image: np.ndarray, title: str) -> None:
    draw_outlined_text(
        image, title, (Layout.TEXT_OFFSET_X, Layout.TITLE_Y),
        get_scaled_font_size(FontScale.TITLE, image.shape[0]), Color.CYAN,
        FontThickness.TITLE, FontThickness.TITLE_OUTLINE,
    )


def candidate_color(candidate: DetectionCandidate):
    """Color for a raw or merged candidate by its contributing signals."""
    if candidate.signal_count > 1:
        return SignalColor.MULTI_SIGNAL
    signal = next(iter(candidate.signals))
    if signal == DetectionSignal.DARK_ANOMALY:
        return SignalColor.DARK_ANOMALY
    if signal == DetectionSignal.LIGHT_ANOMALY:
        return SignalColor.LIGHT_ANOMALY
    return SignalColor.EDGE_RING


def draw_candidates(
    gray: np.ndarray,
    candidates: List[DetectionCandidate],
    title: str,
) -> np.ndarray:
    """
    Draw candidate circles colored by signal.

    Args:
        gray: Working grayscale matrix
        candidates: Candidates in working-matrix pixel coordinates
        title: Title for the visualization

    Returns:
        Annotated BGR image
    """
    overlay = _to_bgr(gray)

    for candidate in candidates:
        center = (int(round(candidate.pixel_center[0])), int(round(candidate.pixel_center[1])))
        radius = max(1, int(round(candidate.pixel_radius)))
        color = candidate_color(candidate)
        cv2.circle(overlay, center, radius, color, Size.CIRCLE_THIN, cv2.LINE_AA)
        cv2.circle(overlay, center, Size.CENTER_RADIUS, color, -1)

    _draw_title(overlay, title)
    return overlay


def draw_region_split(gray: np.ndarray, analysis: RegionAnalysis) -> np.ndarray:
    """Draw the detected transition column and region means."""
    overlay = _to_bgr(gray)
    h = overlay.shape[0]

    x = analysis.transition_x
    cv2.line(overlay, (x, 0), (x, h - 1), Color.TRANSITION, Size.LINE_NORMAL)

    status = "valid" if analysis.is_valid else "ambiguous"
    _draw_title(
        overlay,
        f"Black {analysis.black_mean:.0f} / White {analysis.white_mean:.0f} ({status})",
    )
    return overlay


def draw_edge_heatmap(edges: np.ndarray, colormap: int = cv2.COLORMAP_JET) -> np.ndarray:
    """Visualize the edge magnitude matrix with a color map."""
    return cv2.applyColorMap(np.clip(edges, 0, 255).astype(np.uint8), colormap)
