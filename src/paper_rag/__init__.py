"""paper_rag — retrieval-augmented question answering over uploaded papers.

The core (chunking, embedding, vector storage, similarity search) runs
without any generation model; see :class:`paper_rag.session.RagSession`.
"""

__version__ = "0.1.0"
