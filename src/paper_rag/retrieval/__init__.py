"""
Retrieval — vector storage, cosine similarity search and context assembly.

This module wraps the vector store behind a clean interface so that
callers never need to know how vectors are held or scored.

Public surface
--------------
- :class:`SemanticRetriever` — main entry point for retrieval with citations.
- :class:`VectorStoreBase` — abstract backend.
- :class:`InMemoryVectorStore` — default process-lifetime backend.
- :func:`cosine_similarity`, :func:`rank_chunks` — scoring primitives.
- :class:`Citation`, :class:`RetrievalResult`, :class:`ScoredChunk` — data models.
"""

from paper_rag.retrieval.base import VectorStoreBase
from paper_rag.retrieval.memory_store import InMemoryVectorStore
from paper_rag.retrieval.models import Citation, RetrievalResult, ScoredChunk
from paper_rag.retrieval.retriever import SemanticRetriever
from paper_rag.retrieval.similarity import cosine_similarity, rank_chunks

__all__ = [
    "Citation",
    "InMemoryVectorStore",
    "RetrievalResult",
    "ScoredChunk",
    "SemanticRetriever",
    "VectorStoreBase",
    "cosine_similarity",
    "rank_chunks",
]
