"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

import logging

from pydantic import Field
from pydantic_settings import BaseSettings

from paper_rag.errors import ConfigurationError


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Embedding
    embedding_model: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2",
        description="HuggingFace sentence-transformer used for both chunks and queries",
    )
    embedding_device: str = "cpu"
    preload_embedder: bool = Field(
        default=True,
        description="Start loading the embedder as soon as the server starts",
    )

    # Chunking (character based)
    chunk_size: int = Field(default=500, gt=0)
    chunk_overlap: int = Field(default=100, ge=0)

    # Retrieval
    top_k_chunks: int = Field(default=5, gt=0)
    min_similarity_threshold: float = Field(default=0.1, ge=0.0, le=1.0)

    # Intake / serving
    max_upload_mb: int = Field(default=25, gt=0)
    host: str = "127.0.0.1"
    port: int = 8000

    # Observability
    recent_events: int = Field(default=200, gt=0, description="Status events kept for GET /events")
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def chunk_step(self) -> int:
        return self.chunk_size - self.chunk_overlap

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


def validate_chunk_params(chunk_size: int, chunk_overlap: int) -> None:
    """Raise :class:`ConfigurationError` unless the sliding window can advance."""
    if chunk_size <= 0:
        raise ConfigurationError(f"chunk_size ({chunk_size}) must be > 0")
    if chunk_overlap < 0:
        raise ConfigurationError(f"chunk_overlap ({chunk_overlap}) must be >= 0")
    if chunk_overlap >= chunk_size:
        raise ConfigurationError(
            f"chunk_overlap ({chunk_overlap}) must be < chunk_size ({chunk_size})"
        )


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for processes that own their entry point."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Singleton: import `settings` wherever defaults are needed.
settings = Settings()
