"""
Frame helpers
=============
A frame is an immutable H x W x 4 RGBA uint8 numpy array. These helpers
build frames from camera buffers, uploaded files and base64 strings, and
encode them back to JPEG for the AI bridge.
"""

import io
import base64
import logging

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from plantcare.exceptions import InvalidFrameError

logger = logging.getLogger(__name__)


def make_frame(pixels) -> np.ndarray:
    """
    Normalise a pixel buffer into a read-only RGBA frame.

    Accepts grayscale (H, W), RGB (H, W, 3) or RGBA (H, W, 4) arrays.
    """
    array = np.asarray(pixels)

    if array.ndim == 2:
        array = np.stack([array, array, array], axis=-1)

    if array.ndim != 3 or array.shape[2] not in (3, 4):
        raise InvalidFrameError(f"Unsupported frame shape: {array.shape}")

    if array.dtype != np.uint8:
        array = np.clip(array, 0, 255).astype(np.uint8)

    if array.shape[2] == 3:
        alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
        array = np.concatenate([array, alpha], axis=2)
    else:
        array = array.copy()

    array.flags.writeable = False
    return array


def frame_from_bgr(bgr_image: np.ndarray) -> np.ndarray:
    """Convert an OpenCV BGR camera frame to an RGBA frame."""
    rgba = cv2.cvtColor(bgr_image, cv2.COLOR_BGR2RGBA)
    rgba.flags.writeable = False
    return rgba


def frame_from_bytes(image_data: bytes) -> np.ndarray:
    """Decode encoded image bytes (JPEG, PNG, WebP...) into an RGBA frame."""
    try:
        image = Image.open(io.BytesIO(image_data))
        image = image.convert('RGBA')
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning(f"Could not decode image: {e}")
        raise InvalidFrameError() from e

    return make_frame(np.array(image))


def frame_from_base64(image_base64: str) -> np.ndarray:
    """Decode a base64 string (data URI prefix allowed) into an RGBA frame."""
    if ',' in image_base64:
        image_base64 = image_base64.split(',', 1)[1]

    try:
        image_data = base64.b64decode(image_base64, validate=False)
    except (ValueError, TypeError) as e:
        raise InvalidFrameError() from e

    return frame_from_bytes(image_data)


def frame_to_jpeg(frame: np.ndarray, quality: int = 90) -> bytes:
    """Encode a frame as JPEG bytes (alpha is dropped)."""
    image = Image.fromarray(np.ascontiguousarray(frame[:, :, :3]))
    buffer = io.BytesIO()
    image.save(buffer, format='JPEG', quality=quality)
    return buffer.getvalue()


def frame_size(frame: np.ndarray) -> tuple:
    """(width, height) of a frame."""
    return int(frame.shape[1]), int(frame.shape[0])
