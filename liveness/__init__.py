"""Face liveness classification on pre-cropped 224x224 RGB images."""

from .classifier import LivenessClassifier, LivenessResult, load_classifier
from .errors import (
    ClassifierClosedError,
    InferenceError,
    InvalidInputError,
    LivenessError,
    LoadError,
)
from .loader import ModelArtifact, download_model, load_model_artifact
from .preprocess import to_input_tensor, validate_image
from .runners import ModelRunner, OnnxModelRunner, TFLiteModelRunner, create_runner

__all__ = [
    "ClassifierClosedError",
    "InferenceError",
    "InvalidInputError",
    "LivenessClassifier",
    "LivenessError",
    "LivenessResult",
    "LoadError",
    "ModelArtifact",
    "ModelRunner",
    "OnnxModelRunner",
    "TFLiteModelRunner",
    "create_runner",
    "download_model",
    "load_classifier",
    "load_model_artifact",
    "to_input_tensor",
    "validate_image",
]
