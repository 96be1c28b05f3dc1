"""RAG session — the explicit context object owning all mutable state.

A :class:`RagSession` bundles one embedder, one vector store and the
document registry.  Nothing is module-global, so tests and multiple
independent sessions never see each other's documents.

Usage::

    session = RagSession()
    await session.start()
    result = await session.ingest(load_pdf("paper.pdf"))
    hits = await session.search("Which datasets were used?")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from paper_rag.config import Settings, settings as default_settings, validate_chunk_params
from paper_rag.events import RecentEvents, StatusBus, StatusState
from paper_rag.ingestion.embedder import Embedder, EmbeddingsFactory
from paper_rag.ingestion.loader import PdfTextExtractor, TextExtractor
from paper_rag.ingestion.models import DocumentRecord, IngestResult, SourceDocument
from paper_rag.ingestion.pipeline import IngestionPipeline
from paper_rag.retrieval.memory_store import InMemoryVectorStore
from paper_rag.retrieval.models import RetrievalResult
from paper_rag.retrieval.retriever import SemanticRetriever

logger = logging.getLogger(__name__)


class RagSession:
    """Owns the embedder, the vector store and the uploaded documents.

    Parameters
    ----------
    settings:
        Chunking / retrieval configuration.  Validated here, so a bad
        chunk size or overlap fails at startup with ``ConfigurationError``.
    embeddings_factory:
        Builds the LangChain embeddings backend (defaults to the
        configured HuggingFace model).
    extractor:
        Text extractor (defaults to :class:`PdfTextExtractor`).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        embeddings_factory: EmbeddingsFactory | None = None,
        extractor: TextExtractor | None = None,
    ) -> None:
        self.settings = settings or default_settings
        validate_chunk_params(self.settings.chunk_size, self.settings.chunk_overlap)

        self.events = StatusBus()
        self.recent_events = RecentEvents(maxlen=self.settings.recent_events)
        self.events.subscribe(self.recent_events)

        self.embedder = Embedder(embeddings_factory, events=self.events)
        self.store = InMemoryVectorStore()
        self._documents: dict[str, DocumentRecord] = {}
        self._payloads: dict[str, bytes] = {}

        self.pipeline = IngestionPipeline(
            extractor or PdfTextExtractor(),
            self.embedder,
            self.store,
            settings=self.settings,
            on_stored=self._register,
            events=self.events,
        )
        self.retriever = SemanticRetriever(
            self.store,
            self.embedder,
            default_k=self.settings.top_k_chunks,
            score_threshold=self.settings.min_similarity_threshold,
        )

    # -- lifecycle ------------------------------------------------------------

    async def start(self) -> None:
        """Load the embedder (idempotent)."""
        await self.embedder.initialize()

    # -- documents ------------------------------------------------------------

    async def ingest(self, document: SourceDocument) -> IngestResult:
        result = await self.pipeline.ingest(document)
        if result.status == "ok":
            self._payloads[document.name] = document.data
        return result

    async def ingest_many(self, documents: Iterable[SourceDocument]) -> list[IngestResult]:
        """Ingest *documents* concurrently; results come back in input order."""
        return list(await asyncio.gather(*(self.ingest(doc) for doc in documents)))

    def remove(self, name: str) -> int:
        """Drop every chunk of *name* and its record.  Unknown names are a no-op.

        Returns the number of chunks removed.
        """
        removed = self.store.remove_source(name)
        record = self._documents.pop(name, None)
        self._payloads.pop(name, None)
        if record is not None or removed:
            logger.info("Removed paper %s (%d chunks)", name, removed)
            self.events.emit(StatusState.DOCUMENT_REMOVED, document=name, chunk_count=removed)
        return removed

    def documents(self) -> list[DocumentRecord]:
        return list(self._documents.values())

    def get_document(self, name: str) -> DocumentRecord | None:
        return self._documents.get(name)

    def get_payload(self, name: str) -> bytes | None:
        """Original bytes of an ingested document, kept only for re-display."""
        return self._payloads.get(name)

    def _register(self, record: DocumentRecord) -> None:
        self._documents.pop(record.name, None)
        self._documents[record.name] = record

    # -- retrieval ------------------------------------------------------------

    async def search(self, query: str, *, k: int | None = None) -> list[RetrievalResult]:
        return await self.retriever.search(query, k=k)

    def stats(self) -> dict[str, Any]:
        return {
            "embedder": self.embedder.status.value,
            "embedder_error": self.embedder.error,
            "chunks": len(self.store),
            "documents": len(self._documents),
        }
