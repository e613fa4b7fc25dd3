import io
import logging
import threading
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from CONSTANTS import LivenessSettings, LoggingConfig
from liveness import InferenceError, InvalidInputError, LivenessClassifier, load_classifier
from liveness.preprocess import INPUT_SIZE

logging_config = LoggingConfig()
logging.basicConfig(level=logging_config.LOG_LEVEL, format=logging_config.LOG_FORMAT)
logger = logging.getLogger(__name__)


class LivenessResponse(BaseModel):
    status: str = "SUCCESS"
    is_live: bool
    spoof_score: float
    threshold: float


class HealthResponse(BaseModel):
    status: str
    model: str
    threshold: float


def create_app(
    settings: Optional[LivenessSettings] = None,
    classifier_factory: Callable[[LivenessSettings], LivenessClassifier] = load_classifier,
) -> FastAPI:
    settings = settings or LivenessSettings.from_env()
    # The inference engine is not reentrant: one request at a time
    classify_lock = threading.Lock()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Load the model once at startup, release it at shutdown
        app.state.classifier = classifier_factory(settings)
        try:
            yield
        finally:
            app.state.classifier.close()

    app = FastAPI(title="eKYC Liveness API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"], # In production, replace "*" with your specific domain
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def predict(image: Image.Image):
        with classify_lock:
            return app.state.classifier.predict(image)

    @app.get("/", response_model=HealthResponse)
    def health():
        classifier = app.state.classifier
        return HealthResponse(
            status="ok",
            model=classifier.model_name,
            threshold=classifier.spoof_threshold,
        )

    @app.post("/v1/liveness", response_model=LivenessResponse)
    async def check_liveness(file: UploadFile = File(...)):
        # 1. Read and decode the pre-cropped face
        data = await file.read()
        try:
            image = Image.open(io.BytesIO(data))
            # Header only; reject before decoding the pixels
            width, height = image.size
            if (width, height) != (INPUT_SIZE, INPUT_SIZE):
                raise HTTPException(
                    status_code=422,
                    detail=f"Input image must be {INPUT_SIZE}x{INPUT_SIZE}, got {width}x{height}",
                )
            image = image.convert("RGB")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
            raise HTTPException(status_code=400, detail="Could not decode image") from exc

        # 2. Inference
        try:
            result = await run_in_threadpool(predict, image)
        except InvalidInputError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except InferenceError as exc:
            logger.exception("Liveness inference failed")
            raise HTTPException(status_code=500, detail="Liveness inference failed") from exc

        return LivenessResponse(
            is_live=result.is_live,
            spoof_score=result.score,
            threshold=result.threshold,
        )

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
