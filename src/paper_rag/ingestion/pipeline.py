"""Ingestion pipeline — extract → chunk → embed → store for one document.

Stage contract
--------------
* Each stage is a coroutine (or function) that takes the previous stage's
  output and returns either its own output or an :class:`IngestFailure`.
* No exception crosses a stage boundary; :meth:`IngestionPipeline.ingest`
  stops at the first failure and returns it to the caller.
* Per-chunk embedding failures are absorbed inside the embed stage: the
  chunk is dropped and counted, the document still succeeds.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Union

from paper_rag.config import Settings, settings as default_settings
from paper_rag.errors import ConfigurationError, EmbeddingFailure, ExtractionError
from paper_rag.events import StatusBus, StatusState
from paper_rag.ingestion.chunker import chunk_text
from paper_rag.ingestion.embedder import Embedder
from paper_rag.ingestion.loader import TextExtractor
from paper_rag.ingestion.models import (
    DocumentRecord,
    EmbeddedChunk,
    IngestFailure,
    IngestResult,
    IngestSuccess,
    PendingChunk,
    SourceDocument,
)
from paper_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 10


@dataclass
class EmbeddedBatch:
    """Output of the embed stage."""

    chunks: list[EmbeddedChunk]
    failed: int
    total: int


class IngestionPipeline:
    """Run one document through the typed ingestion stages.

    Parameters
    ----------
    extractor:
        Turns the raw document into text.
    embedder:
        Shared embedder; ingestion waits for an in-flight load.
    store:
        Vector store receiving surviving chunks in one atomic batch.
    on_stored:
        Called with the :class:`DocumentRecord` once chunks are stored
        (the session uses it to register the document).
    events:
        Status bus for ``ingest_*`` and ``embedding_progress`` events.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        embedder: Embedder,
        store: VectorStoreBase,
        *,
        settings: Settings | None = None,
        on_stored: Callable[[DocumentRecord], None] | None = None,
        events: StatusBus | None = None,
    ) -> None:
        self._extractor = extractor
        self._embedder = embedder
        self._store = store
        self._settings = settings or default_settings
        self._on_stored = on_stored
        self._events = events or StatusBus()

    async def ingest(self, document: SourceDocument) -> IngestResult:
        """Ingest *document*; never raises for a per-document failure."""
        logger.info("Starting ingestion of %s (%d bytes)", document.name, document.size)
        self._events.emit(StatusState.INGEST_STARTED, document=document.name)

        result = await self._run(document)

        if isinstance(result, IngestFailure):
            logger.error("Failed to process %s at %s: %s", result.name, result.stage, result.error)
            self._events.emit(StatusState.INGEST_FAILED, document=result.name, message=result.error)
        else:
            logger.info(
                "Processed %s (%d chunks, %d failed)",
                result.name,
                result.document.chunk_count,
                result.failed,
            )
            self._events.emit(
                StatusState.INGEST_SUCCEEDED,
                document=result.name,
                chunk_count=result.document.chunk_count,
                embedded=result.embedded,
                failed=result.failed,
                total=result.total,
            )
        return result

    async def _run(self, document: SourceDocument) -> IngestResult:
        text = await self._extract(document)
        if isinstance(text, IngestFailure):
            return text

        pending = self._chunk(document, text)
        if isinstance(pending, IngestFailure):
            return pending

        batch = await self._embed(document, pending)
        if isinstance(batch, IngestFailure):
            return batch

        return self._store_batch(document, batch)

    # -- stages ---------------------------------------------------------------

    async def _extract(self, document: SourceDocument) -> Union[str, IngestFailure]:
        try:
            return await self._extractor.extract(document)
        except ExtractionError as exc:
            return IngestFailure(name=document.name, stage="extract", error=exc.reason)

    def _chunk(self, document: SourceDocument, text: str) -> Union[list[PendingChunk], IngestFailure]:
        try:
            return chunk_text(
                text,
                document.name,
                chunk_size=self._settings.chunk_size,
                chunk_overlap=self._settings.chunk_overlap,
            )
        except ConfigurationError as exc:
            return IngestFailure(name=document.name, stage="chunk", error=str(exc))

    async def _embed(
        self, document: SourceDocument, pending: list[PendingChunk]
    ) -> Union[EmbeddedBatch, IngestFailure]:
        total = len(pending)
        if total and not await self._embedder.wait_until_ready():
            return IngestFailure(
                name=document.name,
                stage="embed",
                error=f"embedder unavailable ({self._embedder.status.value})",
            )

        embedded: list[EmbeddedChunk] = []
        failed = 0
        # Sequential, in chunk order.
        for i, chunk in enumerate(pending):
            try:
                vector = await self._embedder.embed(chunk.text)
            except EmbeddingFailure as exc:
                failed += 1
                logger.warning(
                    "Failed to embed chunk %d of %s: %s", chunk.chunk_index, document.name, exc
                )
            else:
                embedded.append(chunk.with_embedding(vector))

            if i % PROGRESS_EVERY == 0 or i == total - 1:
                logger.debug("Embedding progress for %s: %d/%d", document.name, i + 1, total)
                self._events.emit(
                    StatusState.EMBEDDING_PROGRESS,
                    document=document.name,
                    embedded=len(embedded),
                    failed=failed,
                    total=total,
                )

        return EmbeddedBatch(chunks=embedded, failed=failed, total=total)

    def _store_batch(self, document: SourceDocument, batch: EmbeddedBatch) -> IngestResult:
        self._store.replace_source(document.name, batch.chunks)
        record = DocumentRecord(
            name=document.name,
            chunk_count=len(batch.chunks),
            total_chunks=batch.total,
            failed_chunks=batch.failed,
            size_bytes=document.size,
        )
        if self._on_stored is not None:
            self._on_stored(record)
        return IngestSuccess(
            document=record,
            embedded=len(batch.chunks),
            failed=batch.failed,
            total=batch.total,
        )
