"""Binary live/spoof decision on a pre-cropped 224x224 face."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable, Optional

import numpy as np

from CONSTANTS import LivenessSettings, ModelConfigs
from liveness.errors import ClassifierClosedError, InferenceError, LoadError
from liveness.loader import ModelArtifact, ModelRef, load_model_artifact
from liveness.preprocess import to_input_tensor
from liveness.runners import ModelRunner, create_runner

logger = logging.getLogger(__name__)

RunnerFactory = Callable[[ModelArtifact], ModelRunner]

EXPECTED_INPUT_SHAPE = (
    1,
    ModelConfigs.LIVENESS_INPUT_SIZE,
    ModelConfigs.LIVENESS_INPUT_SIZE,
    ModelConfigs.LIVENESS_CHANNELS,
)


@dataclass(frozen=True)
class LivenessResult:
    is_live: bool
    score: float
    threshold: float


def _shape_matches(shape) -> bool:
    # Dynamic dimensions come back as None or a symbolic name
    if shape is None:
        return True
    dims = list(shape)
    if len(dims) != len(EXPECTED_INPUT_SHAPE):
        return False
    for dim, expected in zip(dims[1:], EXPECTED_INPUT_SHAPE[1:]):
        if isinstance(dim, (int, np.integer)) and dim > 0 and dim != expected:
            return False
    return True


class LivenessClassifier:
    """Owns one loaded liveness model and turns its spoof score into a verdict.

    The model is loaded when the classifier is built and released by
    :meth:`close` (or on leaving a ``with`` block). A face is live when the
    spoof score is strictly below ``spoof_threshold``.

    Not safe for concurrent :meth:`classify` calls on the same instance;
    serialize calls or build one classifier per thread.
    """

    def __init__(self, model_ref: ModelRef, spoof_threshold: float,
                 runner_factory: Optional[RunnerFactory] = None,
                 settings: Optional[LivenessSettings] = None) -> None:
        self._runner: Optional[ModelRunner] = None
        self._spoof_threshold = float(spoof_threshold)
        settings = settings or LivenessSettings()

        try:
            artifact = load_model_artifact(model_ref, settings)
        except LoadError:
            raise
        except Exception as exc:
            raise LoadError("Could not load model artifact") from exc
        factory = runner_factory or partial(create_runner, settings=settings)
        try:
            runner = factory(artifact)
        except LoadError:
            raise
        except Exception as exc:
            raise LoadError(f"Could not initialise inference engine for {artifact.name}") from exc

        input_shape = getattr(runner, "input_shape", None)
        if not _shape_matches(input_shape):
            runner.close()
            raise LoadError(
                f"Model {artifact.name} expects input {tuple(input_shape)}, "
                f"not {EXPECTED_INPUT_SHAPE}"
            )

        self._runner = runner
        self.model_name = artifact.name
        logger.info("Liveness classifier ready (model=%s, threshold=%.3f)",
                    self.model_name, self._spoof_threshold)

    @property
    def spoof_threshold(self) -> float:
        return self._spoof_threshold

    @property
    def closed(self) -> bool:
        return self._runner is None

    def score(self, image) -> float:
        """Raw spoof score of ``image``; higher means more likely a spoof."""
        if self._runner is None:
            raise ClassifierClosedError("Liveness classifier is closed")

        input_tensor = to_input_tensor(image)
        try:
            output = np.asarray(self._runner.run(input_tensor))
            if output.size != 1:
                raise InferenceError(
                    f"Expected a single spoof score, model returned shape {output.shape}"
                )
            score = float(output.reshape(-1)[0])
        except InferenceError:
            raise
        except Exception as exc:
            raise InferenceError("Liveness inference failed") from exc
        logger.debug("Spoof score: %.6f", score)
        return score

    def predict(self, image) -> LivenessResult:
        score = self.score(image)
        return LivenessResult(
            is_live=score < self._spoof_threshold,
            score=score,
            threshold=self._spoof_threshold,
        )

    def classify(self, image) -> bool:
        """Return True if the 224x224 RGB face is live, False if spoofed.

        Raises:
            InvalidInputError: the image is not 224x224 RGB; the model is not run.
            InferenceError: the inference engine failed.
        """
        return self.predict(image).is_live

    def close(self) -> None:
        runner, self._runner = self._runner, None
        if runner is not None:
            runner.close()
            logger.info("Liveness model released (%s)", self.model_name)

    def __enter__(self) -> "LivenessClassifier":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def load_classifier(settings: Optional[LivenessSettings] = None) -> LivenessClassifier:
    settings = settings or LivenessSettings.from_env()
    return LivenessClassifier(settings.model_path, settings.spoof_threshold, settings=settings)
