"""Unit tests for the retrieval layer — models, retriever and context helpers."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from paper_rag.ingestion.embedder import Embedder
from paper_rag.ingestion.models import PendingChunk
from paper_rag.retrieval.context import build_prompt, format_context, to_documents
from paper_rag.retrieval.memory_store import InMemoryVectorStore
from paper_rag.retrieval.models import Citation, RetrievalResult, ScoredChunk
from paper_rag.retrieval.retriever import SemanticRetriever

from tests.fakes import KeywordEmbeddings


# ── Fixtures ────────────────────────────────────────────────────────────


def _store_with(*entries: tuple[str, str, list[float]]) -> InMemoryVectorStore:
    store = InMemoryVectorStore()
    store.add(
        [
            PendingChunk(text=text, source=source, chunk_index=i).with_embedding(vector)
            for i, (source, text, vector) in enumerate(entries)
        ]
    )
    return store


@pytest.fixture()
def populated_store() -> InMemoryVectorStore:
    # Vector dimensions follow the fake vocabulary: alpha, beta, gamma, delta.
    return _store_with(
        ("attention.pdf", "alpha passage", [1.0, 0.0, 0.0, 0.0]),
        ("bert.pdf", "alpha and beta passage", [1.0, 1.0, 0.0, 0.0]),
        ("resnet.pdf", "gamma passage", [0.0, 0.0, 1.0, 0.0]),
        ("vit.pdf", "mostly gamma, a little alpha", [0.05, 0.0, 1.0, 0.0]),
    )


@pytest_asyncio.fixture()
async def ready_embedder() -> Embedder:
    embedder = Embedder(KeywordEmbeddings)
    await embedder.initialize()
    return embedder


# ── Citation model tests ───────────────────────────────────────────────


class TestCitation:
    def test_short_ref(self) -> None:
        c = Citation(source="guide.pdf", chunk_index=3, score=0.5)
        assert c.short_ref() == "[guide.pdf§3]"

    def test_round_trip_serialization(self) -> None:
        c = Citation(source="file.pdf", chunk_index=2, score=0.9)
        assert Citation(**c.model_dump()) == c


# ── RetrievalResult tests ─────────────────────────────────────────────


class TestRetrievalResult:
    def test_from_scored_copies_chunk_fields(self) -> None:
        chunk = PendingChunk(text="Some content.", source="a.pdf", chunk_index=4)
        r = RetrievalResult.from_scored(ScoredChunk(chunk=chunk, score=0.42))
        assert r.content == "Some content."
        assert r.citation == Citation(source="a.pdf", chunk_index=4, score=0.42)

    def test_str_includes_ref_and_content(self) -> None:
        r = RetrievalResult(
            content="Some long content about ML workflows.",
            citation=Citation(source="guide.pdf", chunk_index=1, score=0.8),
        )
        text = str(r)
        assert "[guide.pdf§1]" in text
        assert "ML workflows" in text


# ── SemanticRetriever tests ────────────────────────────────────────────


class TestSemanticRetriever:
    @pytest.mark.asyncio
    async def test_empty_store_skips_embedder(self) -> None:
        embedder = MagicMock(spec=Embedder)
        retriever = SemanticRetriever(InMemoryVectorStore(), embedder)
        assert await retriever.search("anything") == []
        embedder.wait_until_ready.assert_not_called()
        embedder.embed.assert_not_called()

    @pytest.mark.asyncio
    async def test_unavailable_embedder_returns_empty(self, populated_store) -> None:
        retriever = SemanticRetriever(populated_store, Embedder(KeywordEmbeddings))
        assert await retriever.search("anything") == []

    @pytest.mark.asyncio
    async def test_failed_embedder_returns_empty(self, populated_store) -> None:
        def broken() -> KeywordEmbeddings:
            raise RuntimeError("no GPU")

        embedder = Embedder(broken)
        await embedder.initialize()
        retriever = SemanticRetriever(populated_store, embedder)
        assert await retriever.search("alpha") == []

    @pytest.mark.asyncio
    async def test_query_embedding_failure_returns_empty(self, populated_store, ready_embedder) -> None:
        retriever = SemanticRetriever(populated_store, ready_embedder)
        assert await retriever.search("poison alpha") == []

    @pytest.mark.asyncio
    async def test_results_ranked_and_thresholded(self, populated_store, ready_embedder) -> None:
        retriever = SemanticRetriever(populated_store, ready_embedder, default_k=5, score_threshold=0.1)
        results = await retriever.search("alpha")

        sources = [r.citation.source for r in results]
        assert sources == ["attention.pdf", "bert.pdf"]
        scores = [r.citation.score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert all(s >= 0.1 for s in scores)
        assert results[0].citation.score == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_k_limits_results(self, populated_store, ready_embedder) -> None:
        retriever = SemanticRetriever(populated_store, ready_embedder, default_k=1, score_threshold=0.0)
        assert len(await retriever.search("alpha gamma")) == 1

    @pytest.mark.asyncio
    async def test_explicit_k_overrides_default(self, populated_store, ready_embedder) -> None:
        retriever = SemanticRetriever(populated_store, ready_embedder, default_k=5, score_threshold=0.0)
        assert len(await retriever.search("alpha gamma", k=2)) == 2

    @pytest.mark.asyncio
    async def test_query_and_chunks_share_embedding_call(self, ready_embedder) -> None:
        """A query identical to a stored chunk's text scores 1."""
        store = _store_with(("a.pdf", "delta delta beta", [0.0, 1.0, 0.0, 2.0]))
        retriever = SemanticRetriever(store, ready_embedder)
        results = await retriever.search("delta delta beta")
        assert results[0].citation.score == pytest.approx(1.0)

    def test_search_by_embedding(self, populated_store) -> None:
        retriever = SemanticRetriever(populated_store, MagicMock(spec=Embedder), score_threshold=0.5)
        results = retriever.search_by_embedding([0.0, 0.0, 1.0, 0.0], k=5)
        assert [r.citation.source for r in results] == ["resnet.pdf", "vit.pdf"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("k", [0, -1])
    async def test_non_positive_k_rejected(self, k, ready_embedder) -> None:
        store = _store_with(*[("a.pdf", f"alpha {i}", [1.0, float(i), 0.0, 0.0]) for i in range(8)])
        retriever = SemanticRetriever(store, ready_embedder, default_k=5, score_threshold=0.0)
        with pytest.raises(ValueError):
            await retriever.search("alpha", k=k)
        with pytest.raises(ValueError):
            retriever.search_by_embedding([1.0, 0.0, 0.0, 0.0], k=k)
        assert len(retriever.search_by_embedding([1.0, 0.0, 0.0, 0.0])) == 5


# ── Context helpers ────────────────────────────────────────────────────


def _results() -> list[RetrievalResult]:
    return [
        RetrievalResult(content="First passage.", citation=Citation(source="a.pdf", chunk_index=0, score=0.9)),
        RetrievalResult(content="Second passage.", citation=Citation(source="b.pdf", chunk_index=2, score=0.5)),
    ]


class TestContext:
    def test_format_context_cites_sources_verbatim(self) -> None:
        block = format_context(_results())
        assert block.startswith("--- DOCUMENT CONTEXT ---")
        assert block.rstrip().endswith("--- END CONTEXT ---")
        assert "[Source: a.pdf]\nFirst passage." in block
        assert "[Source: b.pdf]\nSecond passage." in block

    def test_format_context_empty(self) -> None:
        assert format_context([]) == ""

    def test_build_prompt(self) -> None:
        assert build_prompt("Why?", []) == "Why?"
        prompt = build_prompt("Why?", _results())
        assert prompt.endswith("Why?")
        assert "cite your sources" in prompt

    def test_to_documents(self) -> None:
        docs = to_documents(_results())
        assert docs[0].page_content == "First passage."
        assert docs[1].metadata == {"source": "b.pdf", "chunk_index": 2, "score": 0.5}
