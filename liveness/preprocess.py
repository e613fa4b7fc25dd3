import numpy as np
from PIL import Image

from CONSTANTS import ModelConfigs
from liveness.errors import InvalidInputError

INPUT_SIZE = ModelConfigs.LIVENESS_INPUT_SIZE
CHANNELS = ModelConfigs.LIVENESS_CHANNELS


def _check_size(width, height):
    if width != INPUT_SIZE or height != INPUT_SIZE:
        raise InvalidInputError(
            f"Input image must be {INPUT_SIZE}x{INPUT_SIZE}, got {width}x{height}"
        )


def validate_image(image) -> np.ndarray:
    """Check the input contract and return the image as a (224, 224, 3) uint8 array.

    Accepts a PIL image in any mode, or an HxWx3 / HxWx4 uint8 array laid
    out as [row, column, channel] with channels in R, G, B(, A) order.
    Alpha is dropped. Nothing is ever resized.
    """
    if isinstance(image, Image.Image):
        width, height = image.size
        _check_size(width, height)
        if image.mode != "RGB":
            image = image.convert("RGB")
        return np.asarray(image, dtype=np.uint8)

    if isinstance(image, np.ndarray):
        if image.ndim != 3:
            raise InvalidInputError(
                f"Input array must be HxWxC, got shape {image.shape}"
            )
        height, width, channels = image.shape
        _check_size(width, height)
        if channels not in (CHANNELS, CHANNELS + 1):
            raise InvalidInputError(
                f"Input array must have RGB or RGBA channels, got {channels}"
            )
        if image.dtype != np.uint8:
            raise InvalidInputError(
                f"Input array must hold 8-bit channel values, got {image.dtype}"
            )
        return image[..., :CHANNELS]

    raise InvalidInputError(
        f"Unsupported image type: {type(image).__name__}"
    )


def to_input_tensor(image) -> np.ndarray:
    """Build the (1, 224, 224, 3) float32 model input.

    Element (0, y, x, c) is channel c of the pixel at column x, row y,
    divided by 255.
    """
    pixels = validate_image(image)
    tensor = pixels.astype(np.float32) / np.float32(ModelConfigs.PIXEL_SCALE)
    return np.ascontiguousarray(tensor[np.newaxis, ...])
