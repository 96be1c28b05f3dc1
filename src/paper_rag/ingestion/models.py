"""Domain models for ingestion — chunks, source documents and outcomes.

A chunk is either *pending* (produced by the chunker, no vector yet) or
*embedded* (vector attached).  Only :class:`EmbeddedChunk` instances may
enter a vector store; the split into two types makes that checkable.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal, Union

from pydantic import BaseModel, Field, model_validator


# ---------------------------------------------------------------------------
# Chunks (plain frozen dataclasses with identity equality and immutable vectors)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class Chunk:
    """A bounded text segment with its source attribution.

    Attributes
    ----------
    text:
        Whitespace-normalised, trimmed, non-empty text.
    source:
        Name of the originating document; used for citation and removal.
    chunk_index:
        Zero-based ordinal within *source*.  Not globally unique.
    """

    text: str
    source: str
    chunk_index: int

    @property
    def embedding(self) -> tuple[float, ...] | None:
        return None


@dataclass(frozen=True, eq=False)
class PendingChunk(Chunk):
    """A chunk that has not been embedded (or whose embedding failed)."""

    def with_embedding(self, vector: Sequence[float]) -> EmbeddedChunk:
        return EmbeddedChunk(
            text=self.text,
            source=self.source,
            chunk_index=self.chunk_index,
            vector=tuple(float(x) for x in vector),
        )


@dataclass(frozen=True, eq=False)
class EmbeddedChunk(Chunk):
    """A chunk carrying its embedding vector."""

    vector: tuple[float, ...] = ()

    @property
    def embedding(self) -> tuple[float, ...]:
        return self.vector


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class SourceDocument(BaseModel):
    """A raw document handed to the ingestion pipeline.

    Size and type policy (PDF only, max upload size) is enforced by the
    caller before the document gets here.
    """

    name: str
    data: bytes = Field(repr=False)
    size: int = -1
    content_type: str = "application/pdf"

    @model_validator(mode="after")
    def _default_size(self) -> SourceDocument:
        if self.size < 0:
            self.size = len(self.data)
        return self


class DocumentRecord(BaseModel):
    """Metadata about an ingested document, decoupled from its chunks."""

    name: str
    chunk_count: int
    total_chunks: int = 0
    failed_chunks: int = 0
    size_bytes: int = 0
    ingest_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ---------------------------------------------------------------------------
# Ingestion outcomes (tagged so callers never confuse "0 chunks" with "failed")
# ---------------------------------------------------------------------------


IngestStage = Literal["extract", "chunk", "embed", "store"]


class IngestSuccess(BaseModel):
    status: Literal["ok"] = "ok"
    document: DocumentRecord
    embedded: int
    failed: int
    total: int

    @property
    def name(self) -> str:
        return self.document.name


class IngestFailure(BaseModel):
    status: Literal["failed"] = "failed"
    name: str
    stage: IngestStage
    error: str


IngestResult = Union[IngestSuccess, IngestFailure]
