"""
Tests for the detect_holes command line tool.
"""

import json

import cv2
import pytest

import detect_holes
from conftest import HOLE_CENTER, TARGET_HEIGHT, TARGET_WIDTH


@pytest.fixture
def target_file(tmp_path, target_with_hole):
    path = tmp_path / "target.png"
    cv2.imwrite(str(path), target_with_hole)
    return path


class TestValidateInput:
    """Tests for the validate_input function."""

    def test_valid_png(self, target_file):
        assert detect_holes.validate_input(str(target_file)) is None

    def test_missing(self, tmp_path):
        assert "not found" in detect_holes.validate_input(str(tmp_path / "none.png"))

    def test_directory(self, tmp_path):
        assert "not a file" in detect_holes.validate_input(str(tmp_path))

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "target.bmp"
        path.write_bytes(b"BM")
        assert "Unsupported" in detect_holes.validate_input(str(path))


class TestBuildConfig:
    """Tests for the build_config function."""

    def _args(self, *extra):
        return detect_holes.parse_args(["--input", "in.png", "--output", "out.json", *extra])

    def test_default(self):
        config = detect_holes.build_config(self._args())
        assert config.auto_accept_threshold == 0.85
        assert config.enable_signal_c

    def test_preset_and_flags(self):
        config = detect_holes.build_config(self._args(
            "--preset", "highRecall",
            "--accept-threshold", "0.9",
            "--no-edge-ring",
            "--no-overlap",
            "--sequential",
        ))
        assert config.signal_a_contrast_threshold == 8.0
        assert config.auto_accept_threshold == 0.9
        assert not config.enable_signal_c
        assert not config.enable_overlap_detection
        assert not config.parallel_signals

    def test_config_file_overrides_preset(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"preset": "highPrecision", "review_threshold": 0.6}))

        config = detect_holes.build_config(self._args("--preset", "highRecall", "--config", str(path)))
        assert config.signal_a_contrast_threshold == 15.0
        assert config.review_threshold == 0.6

    def test_unknown_preset_rejected_by_argparse(self):
        with pytest.raises(SystemExit):
            self._args("--preset", "aggressive")


class TestMain:
    """Tests for the main entry point."""

    def test_writes_json(self, tmp_path, target_file, capsys):
        output = tmp_path / "out" / "result.json"
        debug = tmp_path / "out" / "overlay.png"

        code = detect_holes.main([
            "--input", str(target_file),
            "--output", str(output),
            "--debug", str(debug),
        ])

        assert code == 0
        assert debug.exists()
        data = json.loads(output.read_text())
        assert len(data["accepted_holes"]) == 1
        assert data["configuration"]["auto_accept_threshold"] == 0.85
        assert "evaluation" not in data
        assert "Results saved to" in capsys.readouterr().out

    def test_debug_dir(self, tmp_path, target_file):
        debug_dir = tmp_path / "stages"
        code = detect_holes.main([
            "--input", str(target_file),
            "--output", str(tmp_path / "result.json"),
            "--debug-dir", str(debug_dir),
        ])
        assert code == 0
        assert (debug_dir / "01_grayscale.png").exists()

    def test_ground_truth_evaluation(self, tmp_path, target_file):
        truth = tmp_path / "truth.json"
        truth.write_text(json.dumps({
            "expectedMinRecall": 1.0,
            "holes": [{
                "x": HOLE_CENTER[0] / TARGET_WIDTH,
                "y": HOLE_CENTER[1] / TARGET_HEIGHT,
                "region": "white",
            }],
        }))
        output = tmp_path / "result.json"

        code = detect_holes.main([
            "--input", str(target_file),
            "--output", str(output),
            "--ground-truth", str(truth),
        ])

        assert code == 0
        evaluation = json.loads(output.read_text())["evaluation"]
        assert evaluation["true_positives"] == 1
        assert evaluation["false_negatives"] == 0
        assert evaluation["meets_expectations"] is True

    def test_missing_input(self, tmp_path, capsys):
        code = detect_holes.main([
            "--input", str(tmp_path / "missing.png"),
            "--output", str(tmp_path / "result.json"),
        ])
        assert code == 1
        assert "Error" in capsys.readouterr().err

    def test_corrupt_image(self, tmp_path, capsys):
        path = tmp_path / "broken.png"
        path.write_bytes(b"not a png")
        code = detect_holes.main(["--input", str(path), "--output", str(tmp_path / "result.json")])
        assert code == 1
        assert not (tmp_path / "result.json").exists()

    def test_bad_config_file(self, tmp_path, target_file):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"auto_accept_threshold": 3.0}))
        code = detect_holes.main([
            "--input", str(target_file),
            "--output", str(tmp_path / "result.json"),
            "--config", str(path),
        ])
        assert code == 1
