"""
Multi-signal hole detection pipeline.

Stages:
1. Preprocess: bounded grayscale + Sobel edge magnitude
2. Region analysis: black/white split, contrast, sharpness
3. Signals A/B/C (concurrently): dark anomalies, light anomalies, edge rings
4. Merge nearby detections
5. Feature extraction
6. Confidence scoring and classification
7. Overlap flagging
8. Partition into accepted / flagged / rejected, plus quality warnings

Each stage consumes the previous stage's output and produces new objects, so
one pipeline instance can serve concurrent callers.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

import numpy as np

from .config import DetectionConfiguration, compute_hole_sizes
from .confidence import score_and_classify
from .debug_observer import (
    DebugObserver,
    draw_candidates,
    draw_edge_heatmap,
    draw_region_split,
)
from .features import extract_features
from .image_preprocessing import preprocess_image
from .image_quality import generate_quality_warnings
from .merging import merge_candidates
from .models import (
    CandidateDiagnostic,
    DetectedHole,
    DetectionCandidate,
    DetectionDiagnostics,
    DetectionResult,
    TargetGeometry,
    TargetType,
)
from .overlap import resolve_overlaps
from .region_analysis import analyze_regions
from .signals import (
    check_cancelled,
    detect_dark_anomalies,
    detect_edge_rings,
    detect_light_anomalies,
)

logger = logging.getLogger(__name__)

ACCEPT = "accept"
FLAG = "flag"
REJECT = "reject"

# Number of candidates listed individually in the debug log
LOGGED_CANDIDATES = 10


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def classify_candidate(candidate: DetectionCandidate, config: DetectionConfiguration) -> str:
    """Return ACCEPT, FLAG or REJECT for a scored, overlap-checked candidate."""
    if candidate.confidence >= config.auto_accept_threshold and not candidate.needs_review:
        return ACCEPT
    if candidate.confidence >= config.review_threshold:
        return FLAG
    return REJECT


def partition_candidates(
    candidates: List[DetectionCandidate],
    config: DetectionConfiguration,
) -> Tuple[List[DetectedHole], List[DetectedHole], int, List[CandidateDiagnostic]]:
    """
    Split candidates into accepted holes, flagged holes and a rejected count.

    Args:
        candidates: Scored, overlap-checked candidates
        config: Detection configuration (accept/review thresholds)

    Returns:
        Tuple of (accepted, flagged, rejected_count, per-candidate records)
    """
    accepted = []
    flagged = []
    rejected = 0
    records = []

    for candidate in candidates:
        classification = classify_candidate(candidate, config)
        if classification == ACCEPT:
            accepted.append(DetectedHole.from_candidate(candidate))
        elif classification == FLAG:
            flagged.append(DetectedHole.from_candidate(candidate))
        else:
            rejected += 1

        records.append(CandidateDiagnostic(
            id=candidate.id,
            position=candidate.center,
            region=candidate.region,
            signals=tuple(sorted(candidate.signals, key=lambda s: s.value)),
            features=candidate.features,
            confidence=candidate.confidence,
            classification=classification,
            review_reason=candidate.review_reason,
        ))

    return accepted, flagged, rejected, records


class HoleDetectionPipeline:
    """
    Detects pellet holes in a cropped black/white target photo.

    The only state is the default configuration, which is immutable; a
    configuration passed to detect() takes precedence for that call.
    """

    def __init__(self, config: Optional[DetectionConfiguration] = None):
        self.config = config or DetectionConfiguration.default()
        self.config.validate()

    def detect(
        self,
        image: np.ndarray,
        configuration: Optional[DetectionConfiguration] = None,
        target_geometry: Optional[TargetGeometry] = None,
        target_type: TargetType = TargetType.TETRATHLON,
        cancel_event: Optional[threading.Event] = None,
        debug_observer: Optional[DebugObserver] = None,
    ) -> DetectionResult:
        """
        Run the full pipeline on one image.

        Args:
            image: Decoded image (BGR, BGRA or grayscale numpy array)
            configuration: Per-call configuration (defaults to the pipeline's)
            target_geometry: Where the target sits in the image
            target_type: Kind of target, recorded in diagnostics
            cancel_event: Optional flag for cooperative cancellation
            debug_observer: Optional observer saving intermediate stages

        Returns:
            DetectionResult

        Raises:
            InvalidImageError: The image cannot be turned into a grayscale matrix
            ConfigurationError: The configuration is invalid
            DetectionCancelledError: cancel_event was set during the run
        """
        config = configuration or self.config
        config.validate()
        geometry = target_geometry or TargetGeometry()
        total_start = time.perf_counter()

        # Stage 1: preprocessing
        stage_start = time.perf_counter()
        matrix = preprocess_image(image)
        preprocessing_ms = _elapsed_ms(stage_start)
        width, height = matrix.width, matrix.height
        check_cancelled(cancel_event, "preprocessing")

        expected_r, min_r, max_r = compute_hole_sizes(width, height, config)
        diagnostics = DetectionDiagnostics(
            image_size=(width, height),
            expected_radius_px=expected_r,
            min_radius_px=min_r,
            max_radius_px=max_r,
            scale=matrix.scale,
            target_type=target_type,
            preprocessing_ms=preprocessing_ms,
        )

        if debug_observer is not None:
            debug_observer.save_stage("01_grayscale", matrix.gray)
            debug_observer.draw_and_save("02_edges", matrix.edges, draw_edge_heatmap)

        # Stage 2: region analysis
        stage_start = time.perf_counter()
        analysis = analyze_regions(matrix.gray)
        diagnostics.region_analysis_ms = _elapsed_ms(stage_start)
        check_cancelled(cancel_event, "region analysis")

        if debug_observer is not None:
            debug_observer.draw_and_save("03_regions", matrix.gray, draw_region_split, analysis)

        # Stage 3: signals
        stage_start = time.perf_counter()
        dark, light, rings = self._generate_signals(matrix, analysis, expected_r, min_r, max_r, config, cancel_event)
        diagnostics.signal_generation_ms = _elapsed_ms(stage_start)
        diagnostics.signal_a_candidates = len(dark)
        diagnostics.signal_b_candidates = len(light)
        diagnostics.signal_c_candidates = len(rings)
        raw_candidates = dark + light + rings

        if debug_observer is not None:
            debug_observer.draw_and_save(
                "04_signal_candidates", matrix.gray, draw_candidates, raw_candidates,
                f"Signals A:{len(dark)} B:{len(light)} C:{len(rings)}",
            )

        # Stage 4: merging
        stage_start = time.perf_counter()
        merged = merge_candidates(raw_candidates, expected_r * config.merge_radius_fraction)
        diagnostics.merging_ms = _elapsed_ms(stage_start)
        diagnostics.merged_candidates = len(merged)
        check_cancelled(cancel_event, "merging")

        if debug_observer is not None:
            debug_observer.draw_and_save(
                "05_merged_candidates", matrix.gray, draw_candidates, merged,
                f"Merged: {len(merged)}",
            )

        # Stage 5: features
        stage_start = time.perf_counter()
        with_features = extract_features(merged, matrix, expected_r, geometry)
        diagnostics.feature_extraction_ms = _elapsed_ms(stage_start)
        check_cancelled(cancel_event, "feature extraction")

        # Stages 6-7: scoring and overlap flagging
        stage_start = time.perf_counter()
        scored = score_and_classify(with_features, config)
        if config.enable_overlap_detection:
            scored = resolve_overlaps(scored, expected_r)
        diagnostics.scoring_ms = _elapsed_ms(stage_start)

        # Stage 8: partition
        accepted, flagged, rejected, records = partition_candidates(scored, config)
        diagnostics.all_candidates = records
        warnings = generate_quality_warnings(analysis)

        processing_ms = _elapsed_ms(total_start)
        diagnostics.total_ms = processing_ms

        result = DetectionResult(
            accepted_holes=accepted,
            flagged_candidates=flagged,
            rejected_count=rejected,
            quality_warnings=warnings,
            region_analysis=analysis,
            processing_time_ms=processing_ms,
            diagnostics=diagnostics if config.enable_diagnostics else None,
        )
        self._log_summary(result, diagnostics)
        return result

    def _generate_signals(
        self,
        matrix,
        analysis,
        expected_r: int,
        min_r: int,
        max_r: int,
        config: DetectionConfiguration,
        cancel_event: Optional[threading.Event],
    ) -> Tuple[List[DetectionCandidate], List[DetectionCandidate], List[DetectionCandidate]]:
        """Run signals A, B and C; results are always returned in that order."""
        tasks = [
            (detect_dark_anomalies, (matrix.gray, analysis, expected_r, min_r, max_r, config, cancel_event)),
            (detect_light_anomalies, (matrix.gray, analysis, expected_r, min_r, max_r, config, cancel_event)),
            (detect_edge_rings, (matrix.edges, analysis, expected_r, config, cancel_event)),
        ]

        if not config.parallel_signals:
            dark, light, rings = (func(*args) for func, args in tasks)
            return dark, light, rings

        with ThreadPoolExecutor(max_workers=len(tasks), thread_name_prefix="hole-signal") as executor:
            futures = [executor.submit(func, *args) for func, args in tasks]
            dark, light, rings = (f.result() for f in futures)
        return dark, light, rings

    @staticmethod
    def _log_summary(result: DetectionResult, diagnostics: DetectionDiagnostics) -> None:
        analysis = result.region_analysis
        logger.debug(
            f"Image {diagnostics.image_size[0]}x{diagnostics.image_size[1]}px, "
            f"expected hole r={diagnostics.expected_radius_px}px "
            f"(min={diagnostics.min_radius_px}, max={diagnostics.max_radius_px}); "
            f"black={analysis.black_mean:.0f} white={analysis.white_mean:.0f}"
        )
        logger.debug(
            f"Signals A={diagnostics.signal_a_candidates} B={diagnostics.signal_b_candidates} "
            f"C={diagnostics.signal_c_candidates} -> merged {diagnostics.merged_candidates}"
        )

        for record in diagnostics.all_candidates[:LOGGED_CANDIDATES]:
            features = record.features
            if features is not None:
                detail = (
                    f"d={features.intensity_delta:+.2f} C={features.contrast_ratio:.1f} "
                    f"E={features.edge_closure:.2f} S={features.signal_count}"
                )
            else:
                detail = "no features"
            logger.debug(
                f"  ({record.position[0]:.2f},{record.position[1]:.2f}) {record.region.value} | "
                f"{detail} -> {record.confidence:.2f} {record.classification.upper()}"
            )
        if len(diagnostics.all_candidates) > LOGGED_CANDIDATES:
            logger.debug(f"  ... and {len(diagnostics.all_candidates) - LOGGED_CANDIDATES} more")

        logger.info(
            f"Detected {len(result.accepted_holes)} accepted, "
            f"{len(result.flagged_candidates)} flagged, {result.rejected_count} rejected "
            f"in {result.processing_time_ms}ms"
        )
        for warning in result.quality_warnings:
            logger.warning(warning)


def detect_holes(
    image: np.ndarray,
    config: Optional[DetectionConfiguration] = None,
    **kwargs,
) -> DetectionResult:
    """
    Detect holes in one image with a throwaway pipeline.

    Args:
        image: Decoded image
        config: Detection configuration (default preset when omitted)
        **kwargs: Passed to HoleDetectionPipeline.detect()

    Returns:
        DetectionResult
    """
    return HoleDetectionPipeline(config).detect(image, **kwargs)
