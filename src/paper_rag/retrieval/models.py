"""Domain models for retrieval results and citation tracking."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel

from paper_rag.ingestion.models import Chunk


@dataclass(frozen=True)
class ScoredChunk:
    """A stored chunk paired with its similarity to the query."""

    chunk: Chunk
    score: float


class Citation(BaseModel):
    """Provenance record linking a retrieved chunk back to its source document.

    Attributes
    ----------
    source:
        Document name, cited verbatim by generation layers.
    chunk_index:
        Ordinal position of the chunk within the source document.
    score:
        Cosine similarity to the query, in ``[0, 1]``.
    """

    source: str
    chunk_index: int
    score: float

    def short_ref(self) -> str:
        """Return a compact ``[source§chunk]`` reference string."""
        return f"[{self.source}§{self.chunk_index}]"


class RetrievalResult(BaseModel):
    """A single retrieved passage together with its citation."""

    content: str
    citation: Citation

    @classmethod
    def from_scored(cls, hit: ScoredChunk) -> RetrievalResult:
        return cls(
            content=hit.chunk.text,
            citation=Citation(
                source=hit.chunk.source,
                chunk_index=hit.chunk.chunk_index,
                score=hit.score,
            ),
        )

    def __str__(self) -> str:  # noqa: D105
        return f"{self.citation.short_ref()} {self.content[:120]}…"
