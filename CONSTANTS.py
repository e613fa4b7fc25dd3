# CONSTANTS.py
import os
from dataclasses import dataclass, field
from typing import Tuple

@dataclass(frozen=True)
class ModelConfigs:
    # Input contract of the liveness model
    LIVENESS_INPUT_SIZE: int = 224
    LIVENESS_CHANNELS: int = 3
    PIXEL_SCALE: float = 255.0

    # Format assumed for raw model bytes with no file name
    LIVENESS_MODEL_FORMAT: str = ".tflite"

@dataclass(frozen=True)
class LoggingConfig:
    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

@dataclass(frozen=True)
class LivenessSettings:
    model_path: str = "model/liveness_model.tflite"
    model_dir: str = "model"
    # Scores strictly below this are live
    spoof_threshold: float = 0.3
    onnx_providers: Tuple[str, ...] = ("CPUExecutionProvider",)
    download_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "LivenessSettings":
        defaults = cls()
        providers = os.getenv("LIVENESS_ONNX_PROVIDERS")
        return cls(
            model_path=os.getenv("LIVENESS_MODEL_PATH", defaults.model_path),
            model_dir=os.getenv("LIVENESS_MODEL_DIR", defaults.model_dir),
            spoof_threshold=float(os.getenv("LIVENESS_SPOOF_THRESHOLD", defaults.spoof_threshold)),
            onnx_providers=tuple(p.strip() for p in providers.split(",") if p.strip())
            if providers else defaults.onnx_providers,
            download_timeout=float(os.getenv("LIVENESS_DOWNLOAD_TIMEOUT", defaults.download_timeout)),
        )
