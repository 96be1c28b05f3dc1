"""Error taxonomy shared by ingestion, retrieval and serving."""

from __future__ import annotations


class PaperRagError(Exception):
    """Base class for every error raised by :mod:`paper_rag`."""


class ConfigurationError(PaperRagError):
    """Settings that would make the core misbehave (e.g. overlap >= chunk size)."""


class ExtractionError(PaperRagError):
    """A document could not be converted to text.

    Aborts ingestion of that one document; the message names the file so
    it can be shown to the user as-is.
    """

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"{name}: {reason}")
        self.name = name
        self.reason = reason


class EmbedderUnavailableError(PaperRagError):
    """The embedder failed to load or has not finished loading."""


class EmbeddingFailure(PaperRagError):
    """A single text could not be embedded. Never invalidates the embedder."""
