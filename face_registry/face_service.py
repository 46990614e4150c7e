"""
Face Embedding Service using DeepFace

This module handles:
- Decoding base64 request images
- Face detection and embedding generation
- One-time model loading before the service accepts requests
"""
import base64
import binascii
import numpy as np
from PIL import Image
from io import BytesIO
from typing import Optional, Protocol
import logging

from face_registry.config import (
    FACE_RECOGNITION_MODEL,
    FACE_DETECTOR_BACKEND,
    MAX_IMAGE_SIZE,
    MAX_REQUEST_IMAGE_BYTES
)
from face_registry.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_DATA_URL_PREFIX = "data:image/png;base64,"
DECODE_ERROR_MESSAGE = "Unsupported image type or corrupted data"
NO_FACE_MESSAGE = "Face could not be detected"


class EmbeddingExtractor(Protocol):
    """Anything that turns an RGB image into a fixed-length face embedding."""

    def load(self) -> None:
        ...

    def extract(self, img_array: np.ndarray) -> Optional[np.ndarray]:
        ...


def _strip_data_url(image_base64: str) -> str:
    if not image_base64.startswith("data:"):
        image_base64 = DEFAULT_DATA_URL_PREFIX + image_base64
    header, sep, payload = image_base64.partition(",")
    if not sep or not header.endswith(";base64"):
        raise ValidationError(DECODE_ERROR_MESSAGE)
    return payload


def decode_image(image_base64: str) -> np.ndarray:
    """
    Decode a base64 image into an RGB numpy array.

    The `data:image/...;base64,` prefix is optional. Large images are
    downscaled to MAX_IMAGE_SIZE, preserving aspect ratio.

    Raises:
        ValidationError: If the payload is not a decodable image
    """
    payload = _strip_data_url(image_base64.strip())

    try:
        raw = base64.b64decode("".join(payload.split()), validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(DECODE_ERROR_MESSAGE)

    if not raw:
        raise ValidationError(DECODE_ERROR_MESSAGE)
    if len(raw) > MAX_REQUEST_IMAGE_BYTES:
        raise ValidationError(f"Image exceeds {MAX_REQUEST_IMAGE_BYTES} bytes")

    try:
        # Pillow raises a mix of OSError, SyntaxError, DecompressionBombError
        # and zlib errors for hostile or damaged input
        image = Image.open(BytesIO(raw))
        image.load()

        # Convert to RGB (handles PNG with alpha, grayscale, etc.)
        if image.mode != "RGB":
            image = image.convert("RGB")

        if image.size[0] > MAX_IMAGE_SIZE[0] or image.size[1] > MAX_IMAGE_SIZE[1]:
            image.thumbnail(MAX_IMAGE_SIZE, Image.Resampling.LANCZOS)
            logger.debug(f"Image resized to {image.size}")

        return np.array(image)
    except Exception as e:
        logger.warning(f"Image decoding failed: {type(e).__name__}: {e}")
        raise ValidationError(DECODE_ERROR_MESSAGE)


class DeepFaceExtractor:
    """
    Embedding extractor backed by DeepFace.

    The embedding is returned as-is (not normalized): matching uses
    Euclidean distance with a threshold calibrated for the configured model.
    """

    def __init__(
        self,
        model_name: str = FACE_RECOGNITION_MODEL,
        detector_backend: str = FACE_DETECTOR_BACKEND
    ):
        self.model_name = model_name
        self.detector_backend = detector_backend
        self._model_loaded = False

    @property
    def model_loaded(self) -> bool:
        return self._model_loaded

    def load(self) -> None:
        """Build the recognition model once so the first request is not paying for it."""
        if self._model_loaded:
            return

        # Imported here: pulling in DeepFace loads its whole ML stack
        from deepface import DeepFace

        logger.info(f"Loading {self.model_name} model...")
        DeepFace.build_model(self.model_name)
        self._model_loaded = True
        logger.info(f"{self.model_name} model loaded successfully")

    def extract(self, img_array: np.ndarray) -> Optional[np.ndarray]:
        """
        Generate the embedding of the most confident face in the image.

        Args:
            img_array: RGB image as numpy array

        Returns:
            Embedding vector, or None if no face was detected
        """
        from deepface import DeepFace

        try:
            # DeepFace expects BGR ordering for numpy input
            faces = DeepFace.represent(
                img_path=np.ascontiguousarray(img_array[:, :, ::-1]),
                model_name=self.model_name,
                detector_backend=self.detector_backend,
                enforce_detection=True,
                align=True
            )
        except ValueError as e:
            # DeepFace reports an empty detection as a ValueError; anything
            # else (bad model or detector name, shape errors) is a real fault
            if NO_FACE_MESSAGE not in str(e):
                raise
            logger.info(f"No face detected: {e}")
            return None

        if not faces:
            return None

        best = max(faces, key=lambda face: face.get("face_confidence") or 0.0)
        embedding = best.get("embedding")
        if embedding is None:
            return None

        return np.asarray(embedding, dtype=np.float64)
