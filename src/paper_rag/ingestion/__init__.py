"""
Ingestion — text extraction, chunking and embedding into the vector store.

This module is responsible for the pipeline that converts an uploaded PDF
into embedded chunks held by a :class:`~paper_rag.retrieval.VectorStoreBase`.
"""
