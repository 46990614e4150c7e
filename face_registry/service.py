"""
Enrollment and recognition orchestration

Ties the image decoder, the embedding extractor, the record store and the
matcher together. Every failure leaves as a FaceRegistryError subclass so the
API layer can map it to a status code.
"""
import asyncio
import logging
from typing import Optional

import numpy as np
from sqlalchemy.ext.asyncio import async_sessionmaker

from face_registry.config import PROCESSING_TIMEOUT_SECONDS, RECOGNITION_THRESHOLD
from face_registry.errors import (
    NoFaceError,
    NotFoundError,
    ProcessingTimeoutError,
    ServiceNotReadyError,
    ValidationError,
)
from face_registry.face_service import EmbeddingExtractor, decode_image
from face_registry.matcher import Match, find_best_match
from face_registry.repository import IdentityRecordRepository
from face_registry.schemas import IdentityRecord

logger = logging.getLogger(__name__)


class FaceRegistryService:
    """
    Register faces under a name and recognize them later.

    `startup()` must complete before requests are served; until then every
    operation raises ServiceNotReadyError.
    """

    def __init__(
        self,
        extractor: EmbeddingExtractor,
        session_maker: async_sessionmaker,
        threshold: float = RECOGNITION_THRESHOLD,
        timeout: float = PROCESSING_TIMEOUT_SECONDS
    ):
        self.extractor = extractor
        self.session_maker = session_maker
        self.threshold = threshold
        self.timeout = timeout
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    async def startup(self):
        """Load the model once, off the event loop."""
        await asyncio.to_thread(self.extractor.load)
        self._ready = True

    async def enroll(self, name: Optional[str], image: Optional[str]) -> IdentityRecord:
        """
        Store a new identity for the face in `image`.

        Raises:
            ValidationError: Missing name/image or undecodable image
            NoFaceError: No face detected
            StorageError: Record store failure
        """
        clean_name = (name or "").strip()
        if not clean_name or not image:
            raise ValidationError("Name and image are required")
        self._ensure_ready()

        embedding = await self._embed(image)

        vector = embedding.tolist()
        async with self.session_maker() as session:
            record_id = await IdentityRecordRepository.insert(session, clean_name, vector)

        return IdentityRecord(id=str(record_id), name=clean_name, embedding=vector)

    async def recognize(self, image: Optional[str]) -> Match:
        """
        Find the registered identity closest to the face in `image`.

        Raises:
            ValidationError: Missing image or undecodable image
            NoFaceError: No face detected
            NotFoundError: No record within the threshold
            StorageError: Record store failure
        """
        if not image:
            raise ValidationError("Image is required")
        self._ensure_ready()

        embedding = await self._embed(image)
        logger.debug(f"Extracted embedding length: {embedding.shape[0]}")

        async with self.session_maker() as session:
            records = await IdentityRecordRepository.scan_all(session)

        match = find_best_match(embedding, records, threshold=self.threshold)
        if match is None:
            logger.info(f"No match across {len(records)} records")
            raise NotFoundError()

        logger.info(f"Recognized '{match.name}' (distance: {match.distance:.4f})")
        return match

    def _ensure_ready(self):
        if not self._ready:
            raise ServiceNotReadyError()

    async def _embed(self, image: str) -> np.ndarray:
        img_array = decode_image(image)

        try:
            embedding = await asyncio.wait_for(
                asyncio.to_thread(self.extractor.extract, img_array),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"Embedding extraction exceeded {self.timeout}s")
            raise ProcessingTimeoutError()

        if embedding is None:
            raise NoFaceError()
        return np.asarray(embedding, dtype=np.float64)
