"""Inference engines the classifier can drive.

Each runner loads its model when constructed, runs one synchronous forward
pass per ``run`` call and releases the engine on ``close``. Runners keep
internal scratch state between calls and are not safe to share between
threads.
"""
from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

import numpy as np
import onnxruntime as ort

from CONSTANTS import LivenessSettings
from liveness.errors import InferenceError, LoadError
from liveness.loader import ModelArtifact

logger = logging.getLogger(__name__)


class ModelRunner(Protocol):
    def run(self, tensor: np.ndarray) -> np.ndarray: ...

    def close(self) -> None: ...


class OnnxModelRunner:
    """ONNX Runtime session bound to one model."""

    def __init__(self, artifact: ModelArtifact,
                 providers: Sequence[str] = ("CPUExecutionProvider",)) -> None:
        try:
            self._session = ort.InferenceSession(artifact.content, providers=list(providers))
            model_input = self._session.get_inputs()[0]
            self._input_name = model_input.name
            self.input_shape = tuple(model_input.shape)
        except Exception as exc:
            self._session = None
            raise LoadError(f"Not a valid ONNX model: {artifact.name}") from exc
        logger.info("ONNX session ready for %s (input '%s')", artifact.name, self._input_name)

    def run(self, tensor: np.ndarray) -> np.ndarray:
        if self._session is None:
            raise InferenceError("ONNX session has been released")
        try:
            outputs = self._session.run(None, {self._input_name: tensor})
        except Exception as exc:
            raise InferenceError("ONNX Runtime forward pass failed") from exc
        return np.asarray(outputs[0])

    def close(self) -> None:
        self._session = None


class TFLiteModelRunner:
    """TensorFlow Lite interpreter bound to one model."""

    def __init__(self, artifact: ModelArtifact) -> None:
        try:
            from ai_edge_litert.interpreter import Interpreter
        except ImportError as exc:
            raise LoadError(
                "TFLite models need the 'tflite' extra (ai-edge-litert)"
            ) from exc

        try:
            self._interpreter = Interpreter(model_content=artifact.content)
            self._interpreter.allocate_tensors()
            input_details = self._interpreter.get_input_details()[0]
            self._input_index = input_details["index"]
            self.input_shape = tuple(int(d) for d in input_details["shape"])
            self._output_index = self._interpreter.get_output_details()[0]["index"]
        except Exception as exc:
            self._interpreter = None
            raise LoadError(f"Not a valid TFLite model: {artifact.name}") from exc
        logger.info("TFLite interpreter ready for %s", artifact.name)

    def run(self, tensor: np.ndarray) -> np.ndarray:
        if self._interpreter is None:
            raise InferenceError("TFLite interpreter has been released")
        try:
            self._interpreter.set_tensor(self._input_index, tensor)
            self._interpreter.invoke()
            # get_tensor returns a copy; the interpreter reuses its buffers
            return np.asarray(self._interpreter.get_tensor(self._output_index))
        except Exception as exc:
            raise InferenceError("TFLite forward pass failed") from exc

    def close(self) -> None:
        self._interpreter = None


def create_runner(artifact: ModelArtifact,
                  settings: Optional[LivenessSettings] = None) -> ModelRunner:
    """Pick the engine matching the artifact format."""
    settings = settings or LivenessSettings()
    if artifact.suffix == ".onnx":
        return OnnxModelRunner(artifact, providers=settings.onnx_providers)
    if artifact.suffix == ".tflite":
        return TFLiteModelRunner(artifact)
    raise LoadError(f"Unsupported model format '{artifact.suffix}' for {artifact.name}")
