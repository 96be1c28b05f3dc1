"""Lazily-loaded embedding capability shared by ingestion and retrieval.

The sentence-transformer is loaded once, in a worker thread, the first
time :meth:`Embedder.initialize` is awaited.  Concurrent callers share the
same load task; a failed load is permanent for the life of the embedder.
Every caller that needs a vector goes through :meth:`Embedder.embed`, so
chunks and queries are embedded with identical pooling / normalisation.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING

from langchain_core.embeddings import Embeddings

from paper_rag.config import settings
from paper_rag.errors import EmbedderUnavailableError, EmbeddingFailure
from paper_rag.events import StatusBus, StatusState

if TYPE_CHECKING:
    from langchain_huggingface import HuggingFaceEmbeddings

logger = logging.getLogger(__name__)

EmbeddingsFactory = Callable[[], Embeddings]


class EmbedderStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


def get_embedding_function(
    model_name: str | None = None,
    device: str | None = None,
) -> HuggingFaceEmbeddings:
    """Return the configured sentence-transformer embedding function.

    all-MiniLM-L6-v2 mean-pools token embeddings; ``normalize_embeddings``
    L2-normalises the pooled vector.
    """
    # Lazy import: keeps sentence-transformers / torch out of import time.
    from langchain_huggingface import HuggingFaceEmbeddings

    return HuggingFaceEmbeddings(
        model_name=model_name or settings.embedding_model,
        model_kwargs={"device": device or settings.embedding_device},
        encode_kwargs={"normalize_embeddings": True},
    )


class Embedder:
    """Stateful wrapper around a LangChain :class:`Embeddings` backend.

    Parameters
    ----------
    factory:
        Zero-argument callable building the backend.  Called at most once,
        off the event loop.  Defaults to :func:`get_embedding_function`.
    events:
        Bus receiving ``embedder_loading`` / ``embedder_ready`` /
        ``embedder_error`` transitions.
    """

    def __init__(
        self,
        factory: EmbeddingsFactory | None = None,
        *,
        events: StatusBus | None = None,
    ) -> None:
        self._factory = factory or get_embedding_function
        self._events = events or StatusBus()
        self._backend: Embeddings | None = None
        self._load_task: asyncio.Task[None] | None = None
        self.status = EmbedderStatus.IDLE
        self.error: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.status is EmbedderStatus.READY

    # -- lifecycle ------------------------------------------------------------

    async def initialize(self) -> None:
        """Load the backend unless it is already loading, loaded or failed."""
        if self.status in (EmbedderStatus.READY, EmbedderStatus.FAILED):
            return
        if self._load_task is None:
            # Flip to LOADING before the first await so concurrent callers queue.
            self.status = EmbedderStatus.LOADING
            self._events.emit(StatusState.EMBEDDER_LOADING)
            self._load_task = asyncio.create_task(self._load())
        await asyncio.shield(self._load_task)

    async def wait_until_ready(self) -> bool:
        """Wait out an in-flight load; return whether :meth:`embed` may be called.

        Does not start a load by itself; an idle embedder stays unavailable.
        """
        if self._load_task is not None and not self._load_task.done():
            await asyncio.shield(self._load_task)
        return self.is_ready

    async def _load(self) -> None:
        logger.info("Loading embedding model")
        try:
            backend = await asyncio.to_thread(self._factory)
        except Exception as exc:
            self.status = EmbedderStatus.FAILED
            self.error = str(exc) or type(exc).__name__
            logger.exception("Failed to load embedding model")
            self._events.emit(StatusState.EMBEDDER_ERROR, message=self.error)
            return
        self._backend = backend
        self.status = EmbedderStatus.READY
        logger.info("Embedding model loaded (%s)", type(backend).__name__)
        self._events.emit(StatusState.EMBEDDER_READY)

    # -- embedding ------------------------------------------------------------

    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector for *text*.

        Raises
        ------
        EmbedderUnavailableError
            The backend is not loaded (idle, still loading, or failed).
        EmbeddingFailure
            The backend raised or produced an empty / non-finite vector.
        """
        if self._backend is None or not self.is_ready:
            raise EmbedderUnavailableError(f"embedder is {self.status.value}")

        try:
            vector = await self._backend.aembed_query(text)
        except Exception as exc:
            raise EmbeddingFailure(f"backend error: {exc}") from exc

        if not vector:
            raise EmbeddingFailure("backend returned an empty vector")
        values = [float(x) for x in vector]
        if not all(math.isfinite(x) for x in values):
            raise EmbeddingFailure("backend returned non-finite values")
        return values
