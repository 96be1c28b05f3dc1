"""Semantic retriever — top-K cosine search with citation tracking.

This module is the **primary public interface** for retrieval.  It never
talks to a generation model; callers format the returned passages into
whatever prompt they need (see :mod:`paper_rag.retrieval.context`).

Usage::

    retriever = SemanticRetriever(store, embedder)
    results   = await retriever.search("What loss function does the paper use?")
    for r in results:
        print(r.citation.short_ref(), r.content[:80])
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from paper_rag.config import settings
from paper_rag.errors import PaperRagError
from paper_rag.ingestion.embedder import Embedder
from paper_rag.retrieval.base import VectorStoreBase
from paper_rag.retrieval.models import RetrievalResult

logger = logging.getLogger(__name__)


class SemanticRetriever:
    """High-level retriever over any :class:`VectorStoreBase`.

    Parameters
    ----------
    store:
        The vector store to search.
    embedder:
        Embeds queries with exactly the call used for chunks.
    default_k:
        Default number of results returned by :meth:`search`.
    score_threshold:
        Minimum cosine similarity; results below this are discarded.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        embedder: Embedder,
        *,
        default_k: int | None = None,
        score_threshold: float | None = None,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self.default_k = settings.top_k_chunks if default_k is None else default_k
        self.score_threshold = (
            settings.min_similarity_threshold if score_threshold is None else score_threshold
        )

    # -- public API -----------------------------------------------------------

    async def search(self, query: str, *, k: int | None = None) -> list[RetrievalResult]:
        """Embed *query* and return the most similar stored passages.

        An empty store, an unavailable embedder or a failed query embedding
        all produce ``[]``; "nothing to retrieve yet" is not an error.

        Parameters
        ----------
        query:
            Natural-language search query.
        k:
            Number of results (defaults to ``self.default_k``).

        Raises
        ------
        ValueError
            *k* is smaller than 1.

        Returns
        -------
        list[RetrievalResult]
            Best first, every score ``>= self.score_threshold``.
        """
        k = self._resolve_k(k)
        if len(self._store) == 0:
            logger.info("Vector store is empty; nothing to search")
            return []
        if not await self._embedder.wait_until_ready():
            logger.warning("Embedder not available for search (%s)", self._embedder.status.value)
            return []

        preview = query if len(query) <= 100 else query[:100] + "..."
        logger.info("Searching %d chunks for %r", len(self._store), preview)
        try:
            query_vector = await self._embedder.embed(query)
        except PaperRagError as exc:
            logger.warning("Query embedding failed: %s", exc)
            return []

        return self.search_by_embedding(query_vector, k=k)

    def search_by_embedding(
        self,
        embedding: Sequence[float],
        *,
        k: int | None = None,
    ) -> list[RetrievalResult]:
        """Same as :meth:`search` but accepts a pre-computed embedding."""
        k = self._resolve_k(k)
        hits = self._store.similarity_search(embedding, k=k, threshold=self.score_threshold)
        logger.info("Found %d chunks above threshold %.2f", len(hits), self.score_threshold)
        for hit in hits[:3]:
            logger.debug("  %.3f %s#%d", hit.score, hit.chunk.source, hit.chunk.chunk_index)
        return [RetrievalResult.from_scored(hit) for hit in hits]

    def _resolve_k(self, k: int | None) -> int:
        k = self.default_k if k is None else k
        if k < 1:
            raise ValueError(f"k must be a positive integer, got {k}")
        return k
