"""
Tests for the Flask web demo.
"""

import importlib.util
import io
from pathlib import Path

import cv2
import pytest

from hole_detection import ALGORITHM_VERSION

APP_PATH = Path(__file__).resolve().parents[1] / "web_demo" / "app.py"


@pytest.fixture
def web_app(tmp_path, monkeypatch):
    spec = importlib.util.spec_from_file_location("web_demo_app", APP_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    monkeypatch.setattr(module, "RESULTS_DIR", tmp_path / "results")
    module.app.config["TESTING"] = True
    return module


@pytest.fixture
def client(web_app):
    return web_app.app.test_client()


def _png_bytes(image):
    ok, encoded = cv2.imencode(".png", image)
    assert ok
    return encoded.tobytes()


class TestWebDemo:
    """Tests for the upload and health endpoints."""

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.get_json() == {"status": "ok", "algorithm_version": ALGORITHM_VERSION}

    def test_detect(self, client, web_app, target_with_hole):
        response = client.post(
            "/api/detect",
            data={"image": (io.BytesIO(_png_bytes(target_with_hole)), "target.png")},
            content_type="multipart/form-data",
        )

        assert response.status_code == 200
        payload = response.get_json()
        assert payload["success"] is True
        assert len(payload["result"]["accepted_holes"]) == 1

        image_name = payload["result_image_url"].rsplit("/", 1)[1]
        json_name = payload["result_json_url"].rsplit("/", 1)[1]
        assert (web_app.RESULTS_DIR / image_name).exists()
        assert (web_app.RESULTS_DIR / json_name).exists()
        assert client.get(payload["result_json_url"]).status_code == 200

    def test_missing_file(self, client):
        response = client.post("/api/detect", data={}, content_type="multipart/form-data")
        assert response.status_code == 400
        assert response.get_json()["error"] == "Missing image file"

    def test_unsupported_type(self, client):
        response = client.post(
            "/api/detect",
            data={"image": (io.BytesIO(b"GIF89a"), "target.gif")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 400

    def test_unknown_preset(self, client, target_with_hole):
        response = client.post(
            "/api/detect",
            data={
                "image": (io.BytesIO(_png_bytes(target_with_hole)), "target.png"),
                "preset": "aggressive",
            },
            content_type="multipart/form-data",
        )
        assert response.status_code == 400
        assert "Unknown preset" in response.get_json()["error"]

    def test_undecodable_upload(self, client):
        response = client.post(
            "/api/detect",
            data={"image": (io.BytesIO(b"not an image"), "target.jpg")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 400
        assert response.get_json()["success"] is False
