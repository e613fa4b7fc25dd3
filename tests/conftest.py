import numpy as np
import pytest
from PIL import Image

from liveness import LivenessClassifier


class StubRunner:
    """Returns a fixed spoof score and records every call."""

    def __init__(self, score=0.1, error=None):
        self.score = score
        self.error = error
        self.inputs = []
        self.close_calls = 0

    def run(self, tensor):
        if self.error is not None:
            raise self.error
        self.inputs.append(tensor)
        return np.array([[self.score]], dtype=np.float32)

    def close(self):
        self.close_calls += 1

    @property
    def run_calls(self):
        return len(self.inputs)


@pytest.fixture
def model_file(tmp_path):
    path = tmp_path / "liveness_model.tflite"
    path.write_bytes(b"not-a-real-model")
    return path


@pytest.fixture
def make_classifier(model_file):
    """Build a classifier around a StubRunner; returns (classifier, runner)."""
    created = []

    def _make(score=0.1, threshold=0.5, error=None):
        runner = StubRunner(score=score, error=error)
        classifier = LivenessClassifier(model_file, threshold, runner_factory=lambda artifact: runner)
        created.append(classifier)
        return classifier, runner

    yield _make
    for classifier in created:
        classifier.close()


@pytest.fixture
def solid_image():
    def _solid(value, size=(224, 224)):
        return Image.new("RGB", size, (value, value, value))
    return _solid
