"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import pytest

from paper_rag.config import Settings
from paper_rag.session import RagSession
from tests.fakes import KeywordEmbeddings, TextBytesExtractor


@pytest.fixture()
def rag_settings() -> Settings:
    return Settings(
        _env_file=None,
        chunk_size=40,
        chunk_overlap=10,
        top_k_chunks=5,
        min_similarity_threshold=0.1,
        preload_embedder=False,
    )


@pytest.fixture()
def backend() -> KeywordEmbeddings:
    return KeywordEmbeddings()


@pytest.fixture()
def session(rag_settings: Settings, backend: KeywordEmbeddings) -> RagSession:
    return RagSession(
        rag_settings,
        embeddings_factory=lambda: backend,
        extractor=TextBytesExtractor(),
    )
