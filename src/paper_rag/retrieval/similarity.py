"""Cosine similarity and top-K ranking over stored chunks."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence

import numpy as np

from paper_rag.ingestion.models import Chunk
from paper_rag.retrieval.models import ScoredChunk

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float] | None, b: Sequence[float] | None) -> float:
    """Return ``dot(a, b) / (|a| * |b|)`` clamped to ``[0, 1]``.

    Degenerate input scores 0 instead of raising: a missing vector, a
    length mismatch, an empty or zero-magnitude vector.

    Vectors are not assumed to be pre-normalised.  Negative cosine values
    (opposite directions) are floored to 0; only "how similar", never "how
    opposite", takes part in ranking.
    """
    if a is None or b is None:
        return 0.0
    if len(a) != len(b):
        logger.warning("Vector length mismatch: %d vs %d", len(a), len(b))
        return 0.0
    if len(a) == 0:
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    similarity = float(np.dot(va, vb)) / (norm_a * norm_b)
    if not math.isfinite(similarity):
        return 0.0
    return max(0.0, min(1.0, similarity))


def rank_chunks(
    query_vector: Sequence[float],
    chunks: Iterable[Chunk],
    *,
    k: int,
    threshold: float,
) -> list[ScoredChunk]:
    """Score *chunks* against *query_vector* and keep the best *k*.

    Chunks without an embedding score 0.  Ties keep the order of *chunks*
    (``sorted`` is stable), which keeps results deterministic.
    """
    if k < 1:
        raise ValueError(f"k must be a positive integer, got {k}")
    scored = [ScoredChunk(chunk, cosine_similarity(query_vector, chunk.embedding)) for chunk in chunks]
    relevant = [hit for hit in scored if hit.score >= threshold]
    relevant = sorted(relevant, key=lambda hit: hit.score, reverse=True)
    return relevant[:k]
