"""Unit tests for the session context object — removal, concurrency, isolation."""

from __future__ import annotations

import asyncio

import pytest

from paper_rag.config import Settings
from paper_rag.errors import ConfigurationError
from paper_rag.events import StatusState
from paper_rag.ingestion.models import IngestFailure, IngestSuccess
from paper_rag.session import RagSession

from tests.fakes import KeywordEmbeddings, TextBytesExtractor, make_document

# With chunk_size=40 / overlap=10 an 89-character text yields exactly 3 chunks.
ALPHA_TEXT = "alpha " * 15
BETA_TEXT = "beta " * 18


@pytest.mark.asyncio
async def test_remove_leaves_other_documents(session: RagSession) -> None:
    await session.start()
    a = await session.ingest(make_document("A.pdf", ALPHA_TEXT))
    b = await session.ingest(make_document("B.pdf", BETA_TEXT))
    assert isinstance(a, IngestSuccess) and a.document.chunk_count == 3
    assert isinstance(b, IngestSuccess) and b.document.chunk_count == 3

    assert session.remove("A.pdf") == 3

    remaining = session.store.snapshot()
    assert len(remaining) == 3
    assert all(c.source == "B.pdf" for c in remaining)
    assert [d.name for d in session.documents()] == ["B.pdf"]
    assert session.get_payload("A.pdf") is None
    assert session.recent_events.states()[-1] is StatusState.DOCUMENT_REMOVED


@pytest.mark.asyncio
async def test_remove_unknown_document_is_noop(session: RagSession) -> None:
    await session.start()
    await session.ingest(make_document("B.pdf", BETA_TEXT))
    before = session.recent_events.states()

    assert session.remove("missing.pdf") == 0
    assert session.remove("missing.pdf") == 0

    assert len(session.store) == 3
    assert session.recent_events.states() == before


@pytest.mark.asyncio
async def test_ingest_many_runs_concurrently_and_keeps_order(session: RagSession) -> None:
    await session.start()
    docs = [
        make_document("A.pdf", ALPHA_TEXT),
        make_document("empty.pdf", ""),
        make_document("B.pdf", BETA_TEXT),
    ]

    results = await session.ingest_many(docs)

    assert [r.status for r in results] == ["ok", "failed", "ok"]
    assert isinstance(results[1], IngestFailure)
    for source in ("A.pdf", "B.pdf"):
        indices = [c.chunk_index for c in session.store.snapshot() if c.source == source]
        assert indices == [0, 1, 2]
    assert session.stats()["documents"] == 2


@pytest.mark.asyncio
async def test_ingest_waits_for_inflight_embedder_load(session: RagSession) -> None:
    """Ingestion queues behind a load in progress instead of failing."""
    loader = asyncio.create_task(session.start())
    await asyncio.sleep(0)
    result = await session.ingest(make_document("A.pdf", ALPHA_TEXT))
    await loader

    assert isinstance(result, IngestSuccess)


@pytest.mark.asyncio
async def test_search_end_to_end(session: RagSession) -> None:
    await session.start()
    await session.ingest(make_document("A.pdf", ALPHA_TEXT))
    await session.ingest(make_document("B.pdf", BETA_TEXT))

    results = await session.search("tell me about beta")

    assert 0 < len(results) <= session.settings.top_k_chunks
    assert {r.citation.source for r in results} == {"B.pdf"}


@pytest.mark.asyncio
async def test_search_without_embedder_returns_empty(session: RagSession) -> None:
    assert await session.search("anything") == []


@pytest.mark.asyncio
async def test_payload_retained_for_redisplay(session: RagSession) -> None:
    await session.start()
    await session.ingest(make_document("A.pdf", ALPHA_TEXT))
    assert session.get_payload("A.pdf") == ALPHA_TEXT.encode()
    assert session.get_document("A.pdf").size_bytes == len(ALPHA_TEXT)


def test_stats_on_fresh_session(session: RagSession) -> None:
    assert session.stats() == {
        "embedder": "idle",
        "embedder_error": None,
        "chunks": 0,
        "documents": 0,
    }


@pytest.mark.asyncio
async def test_sessions_are_isolated(rag_settings: Settings) -> None:
    one = RagSession(rag_settings, embeddings_factory=KeywordEmbeddings, extractor=TextBytesExtractor())
    two = RagSession(rag_settings, embeddings_factory=KeywordEmbeddings, extractor=TextBytesExtractor())
    await one.start()
    await one.ingest(make_document("A.pdf", ALPHA_TEXT))

    assert len(one.store) == 3
    assert len(two.store) == 0
    assert two.documents() == []


def test_invalid_chunking_is_fatal_at_startup() -> None:
    bad = Settings(_env_file=None, chunk_size=100, chunk_overlap=100)
    with pytest.raises(ConfigurationError):
        RagSession(bad, embeddings_factory=KeywordEmbeddings, extractor=TextBytesExtractor())
