#!/usr/bin/env python3
"""
Target Hole Detection Tool

Finds .22 pellet holes on a cropped photo of a black/white paper target and
classifies each as accepted, flagged for review, or rejected.

Usage:
    python detect_holes.py --input target.jpg --output result.json [--debug overlay.png]
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import cv2
import numpy as np

from hole_detection.config import DetectionConfiguration, get_preset, load_config
from hole_detection.debug_observer import DebugObserver
from hole_detection.evaluation import DEFAULT_MATCH_TOLERANCE, evaluate, load_ground_truth
from hole_detection.exceptions import HoleDetectionError
from hole_detection.image_preprocessing import load_image, preprocess_image
from hole_detection.image_quality import assess_image_quality
from hole_detection.models import DetectionResult, TargetType
from hole_detection.pipeline import HoleDetectionPipeline
from hole_detection.visualization import create_debug_visualization

SUPPORTED_SUFFIXES = [".jpg", ".jpeg", ".png"]

PRESET_CHOICES = ["default", "highRecall", "highPrecision"]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Detect pellet holes on a black/white shooting target photo.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python detect_holes.py --input target.jpg --output result.json
    python detect_holes.py --input target.jpg --output result.json --debug overlay.png
    python detect_holes.py --input target.jpg --output result.json --preset highRecall
    python detect_holes.py --input target.jpg --output result.json --ground-truth truth.json
        """,
    )

    # Required arguments
    parser.add_argument(
        "--input",
        type=str,
        required=True,
        help="Path to input image (JPG/PNG)",
    )
    parser.add_argument(
        "--output",
        type=str,
        required=True,
        help="Path to output JSON file",
    )

    # Debug output
    parser.add_argument(
        "--debug",
        type=str,
        default=None,
        help="Path to save debug visualization (PNG)",
    )
    parser.add_argument(
        "--debug-dir",
        type=str,
        default=None,
        help="Directory to save intermediate stage images",
    )

    # Configuration
    parser.add_argument(
        "--preset",
        type=str,
        choices=PRESET_CHOICES,
        default="default",
        help="Configuration preset (default: default)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON file with configuration overrides (may name a preset)",
    )
    parser.add_argument(
        "--accept-threshold",
        type=float,
        default=None,
        help="Confidence needed to auto-accept a hole",
    )
    parser.add_argument(
        "--review-threshold",
        type=float,
        default=None,
        help="Confidence needed to flag a hole for review",
    )
    parser.add_argument(
        "--no-edge-ring",
        action="store_true",
        help="Disable the edge ring signal",
    )
    parser.add_argument(
        "--no-overlap",
        action="store_true",
        help="Disable overlapping-hole flagging",
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Run the three signals one after another instead of in parallel",
    )
    parser.add_argument(
        "--target-type",
        type=str,
        choices=[t.value for t in TargetType],
        default=TargetType.TETRATHLON.value,
        help="Target card type, recorded in diagnostics (default: tetrathlon)",
    )

    # Evaluation
    parser.add_argument(
        "--ground-truth",
        type=str,
        default=None,
        help="Ground-truth JSON to evaluate the result against",
    )
    parser.add_argument(
        "--match-tolerance",
        type=float,
        default=DEFAULT_MATCH_TOLERANCE,
        help=f"Normalized match distance for evaluation (default: {DEFAULT_MATCH_TOLERANCE})",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log per-stage details",
    )

    return parser.parse_args(argv)


def validate_input(input_path: str) -> Optional[str]:
    """
    Validate input file exists and is a supported image format.

    Args:
        input_path: Path to input image

    Returns:
        Error message if validation fails, None if valid
    """
    path = Path(input_path)

    if not path.exists():
        return f"Input file not found: {input_path}"
    if not path.is_file():
        return f"Input path is not a file: {input_path}"

    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        return f"Unsupported image format: {suffix}. Use JPG or PNG."

    return None


def build_config(args: argparse.Namespace) -> DetectionConfiguration:
    """
    Build the detection configuration from the preset, file and flags.

    Flags override the config file, which overrides the preset.
    """
    if args.config is not None:
        config = load_config(args.config)
    else:
        config = get_preset(args.preset)

    overrides: Dict[str, Any] = {}
    if args.accept_threshold is not None:
        overrides["auto_accept_threshold"] = args.accept_threshold
    if args.review_threshold is not None:
        overrides["review_threshold"] = args.review_threshold
    if args.no_edge_ring:
        overrides["enable_signal_c"] = False
    if args.no_overlap:
        overrides["enable_overlap_detection"] = False
    if args.sequential:
        overrides["parallel_signals"] = False

    return config.with_overrides(**overrides) if overrides else config


def create_output(
    result: DetectionResult,
    config: DetectionConfiguration,
    evaluation: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Create the JSON output dictionary.

    Args:
        result: Detection result
        config: Configuration the result was produced with
        evaluation: Optional evaluation block

    Returns:
        Output dictionary
    """
    output = result.to_dict()
    output["configuration"] = config.to_dict()
    if evaluation is not None:
        output["evaluation"] = evaluation
    return output


def save_output(output: Dict[str, Any], output_path: str) -> None:
    """Save output dictionary to JSON file."""
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        json.dump(output, f, indent=2)


def run_detection(
    image: np.ndarray,
    config: DetectionConfiguration,
    target_type: TargetType = TargetType.TETRATHLON,
    debug_path: Optional[str] = None,
    debug_dir: Optional[str] = None,
) -> DetectionResult:
    """
    Main detection flow with console progress.

    Args:
        image: Input BGR image
        config: Detection configuration
        target_type: Target card type
        debug_path: Path to save the debug overlay
        debug_dir: Directory for intermediate stage images

    Returns:
        DetectionResult
    """
    # Quality check (informational only)
    quality = assess_image_quality(preprocess_image(image))
    print(f"Image quality: sharpness={quality.sharpness:.1f}, "
          f"contrast={quality.contrast:.2f}, "
          f"noise={quality.noise_level:.1f}")
    for issue in quality.issues:
        print(f"  Warning: {issue}")

    observer = DebugObserver(debug_dir) if debug_dir is not None else None
    pipeline = HoleDetectionPipeline(config)
    result = pipeline.detect(image, target_type=target_type, debug_observer=observer)

    diagnostics = result.diagnostics
    if diagnostics is not None:
        print(f"Expected hole radius: {diagnostics.expected_radius_px}px "
              f"(min={diagnostics.min_radius_px}, max={diagnostics.max_radius_px})")
        print(f"Signals: dark={diagnostics.signal_a_candidates}, "
              f"light={diagnostics.signal_b_candidates}, "
              f"edge={diagnostics.signal_c_candidates} -> merged {diagnostics.merged_candidates}")

    print(f"Accepted: {len(result.accepted_holes)}, "
          f"flagged: {len(result.flagged_candidates)}, "
          f"rejected: {result.rejected_count} ({result.processing_time_ms}ms)")
    for hole in result.flagged_candidates:
        reason = hole.review_reason.value if hole.review_reason else "review"
        print(f"  Flagged at ({hole.position[0]:.3f}, {hole.position[1]:.3f}): "
              f"{reason} (confidence={hole.confidence:.2f})")

    if observer is not None:
        print(f"Intermediate stages saved to: {debug_dir} ({len(observer.saved)} images)")

    if debug_path is not None:
        print("Generating debug visualization...")
        debug_image = create_debug_visualization(image, result)
        Path(debug_path).parent.mkdir(parents=True, exist_ok=True)
        cv2.imwrite(debug_path, debug_image)
        print(f"Debug visualization saved to: {debug_path}")

    return result


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Validate input
    error = validate_input(args.input)
    if error:
        print(f"Error: {error}", file=sys.stderr)
        return 1

    try:
        config = build_config(args)
        image = load_image(args.input)
    except HoleDetectionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Loaded image: {args.input} ({image.shape[1]}x{image.shape[0]})")

    try:
        result = run_detection(
            image=image,
            config=config,
            target_type=TargetType(args.target_type),
            debug_path=args.debug,
            debug_dir=args.debug_dir,
        )
    except HoleDetectionError as e:
        print(f"Detection failed: {e}", file=sys.stderr)
        return 1

    evaluation = None
    if args.ground_truth is not None:
        try:
            fixture = load_ground_truth(args.ground_truth)
        except HoleDetectionError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        evaluated = evaluate(result.accepted_holes, fixture.holes, args.match_tolerance)
        evaluation = evaluated.to_dict()
        evaluation["meets_expectations"] = evaluated.meets(fixture)
        print(f"Evaluation: precision={evaluated.precision:.2f}, recall={evaluated.recall:.2f}, "
              f"F1={evaluated.f1_score:.2f}, corrections={evaluated.user_corrections}")

    # Save output
    save_output(create_output(result, config, evaluation), args.output)
    print(f"Results saved to: {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
