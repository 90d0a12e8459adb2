#!/usr/bin/env python3
"""Simple web demo for target hole detection.

Upload a target photo, run detection, and return JSON + debug overlay.
"""

from __future__ import annotations

import json
import sys
import uuid
from pathlib import Path
from typing import Dict, Any

import cv2
from flask import Flask, jsonify, request, send_from_directory
from werkzeug.utils import secure_filename

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

from hole_detection import ALGORITHM_VERSION, HoleDetectionPipeline, TargetType, get_preset
from hole_detection.exceptions import HoleDetectionError
from hole_detection.image_preprocessing import decode_image
from hole_detection.visualization import create_debug_visualization

APP_ROOT = Path(__file__).resolve().parent
RESULTS_DIR = APP_ROOT / "results"
ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png"}

app = Flask(__name__)


def _allowed_file(filename: str) -> bool:
    return Path(filename).suffix.lower() in ALLOWED_EXTENSIONS


def _save_json(path: Path, data: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def _error(message: str, status: int = 400):
    return jsonify({"success": False, "error": message}), status


@app.route("/api/health")
def health():
    return jsonify({"status": "ok", "algorithm_version": ALGORITHM_VERSION})


@app.route("/results/<path:filename>")
def serve_result(filename: str):
    return send_from_directory(RESULTS_DIR, filename)


@app.route("/api/detect", methods=["POST"])
def api_detect():
    if "image" not in request.files:
        return _error("Missing image file")

    file = request.files["image"]
    if file.filename == "":
        return _error("Empty filename")

    if not _allowed_file(file.filename):
        return _error("Unsupported file type")

    try:
        config = get_preset(request.form.get("preset", "default"))
        target_type = TargetType(request.form.get("target_type", TargetType.TETRATHLON.value))
        image = decode_image(file.read())
    except ValueError as e:
        # ConfigurationError and unknown target types are both ValueErrors
        return _error(str(e))
    except HoleDetectionError as e:
        return _error(str(e))

    try:
        result = HoleDetectionPipeline(config).detect(image, target_type=target_type)
    except HoleDetectionError as e:
        return _error(f"Detection failed: {e}", 500)

    run_id = uuid.uuid4().hex[:12]
    stem = Path(secure_filename(file.filename)).stem or "upload"

    result_png_name = f"{run_id}__{stem}_overlay.png"
    RESULTS_DIR.mkdir(parents=True, exist_ok=True)
    cv2.imwrite(str(RESULTS_DIR / result_png_name), create_debug_visualization(image, result))

    result_json_name = f"{run_id}__{stem}.json"
    output = result.to_dict()
    _save_json(RESULTS_DIR / result_json_name, output)

    payload = {
        "success": True,
        "result": output,
        "result_image_url": f"/results/{result_png_name}",
        "result_json_url": f"/results/{result_json_name}",
    }

    return jsonify(payload)


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8000, debug=True)
