"""In-process implementation of the vector-store abstraction."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence

from paper_rag.ingestion.models import EmbeddedChunk
from paper_rag.retrieval.base import VectorStoreBase
from paper_rag.retrieval.models import ScoredChunk
from paper_rag.retrieval.similarity import rank_chunks

logger = logging.getLogger(__name__)


def _require_embedded(chunks: Sequence[EmbeddedChunk]) -> list[EmbeddedChunk]:
    batch = list(chunks)
    for chunk in batch:
        if not isinstance(chunk, EmbeddedChunk) or not chunk.vector:
            raise TypeError(f"only embedded chunks can be stored, got {chunk!r}")
    return batch


class InMemoryVectorStore(VectorStoreBase):
    """Ordered list of embedded chunks with exact (brute-force) cosine search.

    Nothing is persisted; the store starts empty and lives as long as the
    owning session.  Mutations swap in a new list under a lock, so readers
    always see either the whole of a batch or none of it.
    """

    def __init__(self, collection_name: str = "papers") -> None:
        super().__init__(collection_name)
        self._chunks: list[EmbeddedChunk] = []
        self._lock = threading.Lock()

    # -- VectorStoreBase overrides --------------------------------------------

    def add(self, chunks: Sequence[EmbeddedChunk]) -> None:
        batch = _require_embedded(chunks)
        with self._lock:
            self._chunks = self._chunks + batch
            total = len(self._chunks)
        logger.debug("Stored %d chunks (total=%d)", len(batch), total)

    def replace_source(self, source: str, chunks: Sequence[EmbeddedChunk]) -> int:
        batch = _require_embedded(chunks)
        with self._lock:
            kept = [c for c in self._chunks if c.source != source]
            dropped = len(self._chunks) - len(kept)
            self._chunks = kept + batch
        if dropped:
            logger.info("Replaced %d chunks of %s with %d", dropped, source, len(batch))
        return dropped

    def remove_source(self, source: str) -> int:
        with self._lock:
            kept = [c for c in self._chunks if c.source != source]
            removed = len(self._chunks) - len(kept)
            self._chunks = kept
        return removed

    def similarity_search(
        self,
        query_embedding: Sequence[float],
        *,
        k: int = 5,
        threshold: float = 0.0,
    ) -> list[ScoredChunk]:
        return rank_chunks(query_embedding, self.snapshot(), k=k, threshold=threshold)

    def __len__(self) -> int:
        return len(self._chunks)

    # -- extras ---------------------------------------------------------------

    def snapshot(self) -> tuple[EmbeddedChunk, ...]:
        """Current chunks in insertion order."""
        with self._lock:
            return tuple(self._chunks)
