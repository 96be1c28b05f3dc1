"""Character-based sliding-window chunking."""

from __future__ import annotations

import logging
import re

from paper_rag.config import settings, validate_chunk_params
from paper_rag.ingestion.models import PendingChunk

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs to a single space and trim both ends."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def chunk_text(
    text: str,
    source: str,
    *,
    chunk_size: int | None = None,
    chunk_overlap: int | None = None,
) -> list[PendingChunk]:
    """Split *text* into overlapping, un-embedded chunks.

    Parameters
    ----------
    text:
        Raw extracted text; whitespace is normalised first.
    source:
        Document name stamped on every chunk.
    chunk_size:
        Window length in characters (defaults to ``settings.chunk_size``).
    chunk_overlap:
        Characters shared by consecutive windows (defaults to
        ``settings.chunk_overlap``).  Must be smaller than *chunk_size*.

    Returns
    -------
    list[PendingChunk]
        Chunks in document order with ``chunk_index`` 0, 1, 2, …  Empty
        input yields an empty list.

    Raises
    ------
    ConfigurationError
        If the window step ``chunk_size - chunk_overlap`` is not positive.
    """
    size = settings.chunk_size if chunk_size is None else chunk_size
    overlap = settings.chunk_overlap if chunk_overlap is None else chunk_overlap
    validate_chunk_params(size, overlap)

    clean = normalize_whitespace(text)
    step = size - overlap
    chunks: list[PendingChunk] = []

    for start in range(0, len(clean), step):
        window = clean[start : start + size].strip()
        if window:
            chunks.append(PendingChunk(text=window, source=source, chunk_index=len(chunks)))
        # The final (possibly short) window ends the scan; no duplicate tails.
        if start + size >= len(clean):
            break

    logger.debug(
        "Chunked %s: %d chars -> %d chunks (size=%d, overlap=%d)",
        source,
        len(clean),
        len(chunks),
        size,
        overlap,
    )
    return chunks
