"""
Nearest-identity matching

Exact nearest-neighbour search over every stored embedding using Euclidean
distance. A record only counts as a match when its distance is strictly below
the threshold. Records whose embedding length differs from the query are
skipped, never compared.
"""
from dataclasses import dataclass
from typing import Any, Optional, Sequence
import logging

import numpy as np

from face_registry.config import RECOGNITION_THRESHOLD

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Match:
    record: Any
    distance: float

    @property
    def name(self) -> str:
        return self.record.name


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Square root of the summed squared component differences.

    Raises:
        ValueError: If the vectors differ in length
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValueError(f"Embedding length mismatch: {a.shape[0]} != {b.shape[0]}")
    diff = a - b
    return float(np.sqrt(np.dot(diff, diff)))


def nearest(query: Sequence[float], records: Sequence[Any]) -> Optional[Match]:
    """
    Closest comparable record regardless of threshold.

    Args:
        query: Query embedding
        records: Objects exposing `.embedding` (and `.name`)

    Returns:
        Match for the minimum-distance record, or None if nothing is comparable
    """
    query = np.asarray(query, dtype=np.float64)
    dim = query.shape[0]
    if not np.all(np.isfinite(query)):
        logger.warning("Query embedding has non-finite values; nothing to compare")
        return None

    best = None
    for record in records:
        if len(record.embedding) != dim:
            logger.warning(
                f"Embedding length mismatch: query={dim}, stored={len(record.embedding)}; skipping record"
            )
            continue

        distance = euclidean_distance(query, record.embedding)
        if not np.isfinite(distance):
            logger.warning(f"Stored embedding for '{record.name}' has non-finite values; skipping record")
            continue

        if best is None or distance < best.distance:
            best = Match(record=record, distance=distance)

    return best


def find_best_match(
    query: Sequence[float],
    records: Sequence[Any],
    threshold: float = RECOGNITION_THRESHOLD
) -> Optional[Match]:
    """Nearest record if it lies strictly within `threshold`, else None."""
    best = nearest(query, records)
    if best is None:
        logger.info("No comparable records to match against")
        return None

    if best.distance < threshold:
        return best

    logger.info(f"Closest record '{best.name}' at {best.distance:.4f} is outside threshold {threshold}")
    return None
