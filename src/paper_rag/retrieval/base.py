"""Abstract base class for vector-store backends.

The retrieval and ingestion layers only talk to :class:`VectorStoreBase`.
The shipped backend is :class:`~paper_rag.retrieval.memory_store.InMemoryVectorStore`;
another backend only needs to implement the abstract methods below.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from paper_rag.ingestion.models import EmbeddedChunk
from paper_rag.retrieval.models import ScoredChunk


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Parameters
    ----------
    collection_name:
        Logical name of the collection.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def add(self, chunks: Sequence[EmbeddedChunk]) -> None:
        """Append *chunks* as one batch; never partially visible."""
        ...

    @abstractmethod
    def replace_source(self, source: str, chunks: Sequence[EmbeddedChunk]) -> int:
        """Atomically drop every chunk of *source* and append *chunks*.

        Returns the number of chunks dropped.
        """
        ...

    @abstractmethod
    def remove_source(self, source: str) -> int:
        """Remove every chunk whose ``source`` equals *source*; return the count."""
        ...

    @abstractmethod
    def similarity_search(
        self,
        query_embedding: Sequence[float],
        *,
        k: int = 5,
        threshold: float = 0.0,
    ) -> list[ScoredChunk]:
        """Return up to *k* chunks scoring at least *threshold*, best first.

        Parameters
        ----------
        query_embedding:
            Dense vector for the query.
        k:
            Number of results to return.
        threshold:
            Minimum cosine similarity.
        """
        ...

    @abstractmethod
    def __len__(self) -> int:
        ...

    # -- optional overrides ---------------------------------------------------

    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        return True
