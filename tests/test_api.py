import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from api.app import create_app
from CONSTANTS import LivenessSettings
from liveness import InferenceError


def _png(size=(224, 224), value=0):
    buffer = io.BytesIO()
    Image.new("RGB", size, (value, value, value)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def client_for(make_classifier):
    def _client(**kwargs):
        classifier, runner = make_classifier(**kwargs)
        app = create_app(LivenessSettings(), classifier_factory=lambda settings: classifier)
        return TestClient(app), classifier, runner
    return _client


def test_health(client_for):
    client, classifier, _ = client_for(threshold=0.3)
    with client:
        response = client.get("/")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["threshold"] == pytest.approx(0.3)
    assert body["model"] == classifier.model_name


def test_live_face(client_for):
    client, _, _ = client_for(score=0.1, threshold=0.5)
    with client:
        response = client.post("/v1/liveness", files={"file": ("face.png", _png(), "image/png")})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "SUCCESS"
    assert body["is_live"] is True
    assert body["spoof_score"] == pytest.approx(0.1)


def test_spoof_face(client_for):
    client, _, _ = client_for(score=0.9, threshold=0.5)
    with client:
        response = client.post("/v1/liveness", files={"file": ("face.png", _png(value=255), "image/png")})
    assert response.status_code == 200
    assert response.json()["is_live"] is False


def test_wrong_size_is_422(client_for):
    client, _, runner = client_for()
    with client:
        response = client.post("/v1/liveness", files={"file": ("face.png", _png((100, 100)), "image/png")})
    assert response.status_code == 422
    assert "224x224" in response.json()["detail"]
    assert runner.run_calls == 0


def test_undecodable_upload_is_400(client_for):
    client, _, runner = client_for()
    with client:
        response = client.post("/v1/liveness", files={"file": ("face.png", b"not an image", "image/png")})
    assert response.status_code == 400
    assert runner.run_calls == 0


def test_inference_failure_is_500(client_for):
    client, _, _ = client_for(error=InferenceError("engine state corrupted"))
    with client:
        response = client.post("/v1/liveness", files={"file": ("face.png", _png(), "image/png")})
    assert response.status_code == 500
    assert "is_live" not in response.json()


def test_shutdown_releases_model(client_for):
    client, classifier, runner = client_for()
    with client:
        assert not classifier.closed
    assert classifier.closed
    assert runner.close_calls == 1


def test_oversized_upload_is_400(client_for, monkeypatch):
    client, _, runner = client_for()
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    with client:
        response = client.post("/v1/liveness", files={"file": ("face.png", _png(), "image/png")})
    assert response.status_code == 400
    assert runner.run_calls == 0


def test_wrong_size_is_rejected_before_decoding(client_for, monkeypatch):
    client, _, runner = client_for()
    upload = _png((640, 480))

    def fail_convert(self, *args, **kwargs):
        raise AssertionError("pixels decoded for a wrongly sized upload")

    monkeypatch.setattr(Image.Image, "convert", fail_convert)
    with client:
        response = client.post("/v1/liveness", files={"file": ("face.png", upload, "image/png")})
    assert response.status_code == 422
    assert "640x480" in response.json()["detail"]
    assert runner.run_calls == 0
