"""
Serving — FastAPI application exposing ingestion and retrieval over HTTP.

The HTTP layer plays the document-source role: it enforces the PDF-only
and maximum-size intake policy before anything reaches the pipeline.
"""
