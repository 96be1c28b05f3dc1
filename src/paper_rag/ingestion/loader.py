"""Document loading and text extraction — thin wrappers around LangChain parsers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from langchain_community.document_loaders.parsers import PyPDFParser
from langchain_core.documents.base import Blob

from paper_rag.errors import ExtractionError
from paper_rag.ingestion.models import SourceDocument

if TYPE_CHECKING:
    from langchain_core.documents import Document

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


class TextExtractor(Protocol):
    """Anything that can turn a :class:`SourceDocument` into plain text."""

    async def extract(self, document: SourceDocument) -> str:
        """Return the document's text or raise :class:`ExtractionError`."""
        ...


class PdfTextExtractor:
    """Extract text from PDF bytes page by page.

    Each page is decoded in a worker thread so a large PDF never blocks
    the event loop for longer than one page.  Pages are joined with a
    newline; the chunker normalises whitespace afterwards.

    Parameters
    ----------
    parser:
        A LangChain blob parser.  Defaults to :class:`PyPDFParser`.
    """

    def __init__(self, parser: Any | None = None) -> None:
        self._parser = parser or PyPDFParser()

    async def extract(self, document: SourceDocument) -> str:
        blob = Blob.from_data(document.data, path=document.name, mime_type=PDF_CONTENT_TYPE)
        pages: Iterator[Document] = iter(self._parser.lazy_parse(blob))
        texts: list[str] = []
        try:
            while True:
                page = await asyncio.to_thread(next, pages, None)
                if page is None:
                    break
                texts.append(page.page_content or "")
        except Exception as exc:
            logger.error("Failed to parse %s: %s", document.name, exc)
            raise ExtractionError(document.name, f"could not read PDF ({exc})") from exc

        text = "\n".join(texts)
        if not text.strip():
            raise ExtractionError(document.name, "no text could be extracted from this PDF")

        logger.info("Extracted %d chars from %s (%d pages)", len(text), document.name, len(texts))
        return text


def is_pdf(name: str, content_type: str | None = None) -> bool:
    """Accept a file when either its MIME type or its extension says PDF."""
    return content_type == PDF_CONTENT_TYPE or name.lower().endswith(".pdf")


def load_pdf(path: str | Path) -> SourceDocument:
    """Read a PDF from disk into a :class:`SourceDocument` named after the file."""
    path = Path(path)
    data = path.read_bytes()
    return SourceDocument(name=path.name, data=data, size=len(data), content_type=PDF_CONTENT_TYPE)
