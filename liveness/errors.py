class LivenessError(Exception):
    """Base class for every error raised by the liveness classifier."""


class LoadError(LivenessError):
    """The model artifact is missing, unreadable or not a valid model."""


class InvalidInputError(LivenessError, ValueError):
    """The image does not match the fixed input contract of the model."""


class InferenceError(LivenessError, RuntimeError):
    """The inference engine failed during a forward pass."""


class ClassifierClosedError(InferenceError):
    """The classifier was used after its model was released."""
