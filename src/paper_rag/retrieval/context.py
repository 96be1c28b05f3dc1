"""Helpers for generation layers that consume retrieval results.

Nothing here calls a model.  The context block cites each passage's
``source`` verbatim so answers can be traced back to the uploaded file.
"""

from __future__ import annotations

from langchain_core.documents import Document

from paper_rag.retrieval.models import RetrievalResult

CONTEXT_HEADER = "--- DOCUMENT CONTEXT ---"
CONTEXT_FOOTER = "--- END CONTEXT ---"
CITE_INSTRUCTION = (
    "Based on the provided document context above, please answer the following "
    "question. Always cite your sources using the filenames provided."
)


def format_context(results: list[RetrievalResult]) -> str:
    """Render *results* as a ``[Source: name]`` delimited context block.

    Returns an empty string when there is nothing to ground on.
    """
    if not results:
        return ""
    parts = [CONTEXT_HEADER]
    for r in results:
        parts.append(f"[Source: {r.citation.source}]\n{r.content}\n")
    parts.append(CONTEXT_FOOTER)
    return "\n".join(parts)


def build_prompt(question: str, results: list[RetrievalResult]) -> str:
    """Prefix *question* with the context block and citation instruction."""
    if not results:
        return question
    return f"{format_context(results)}\n\n{CITE_INSTRUCTION}\n\n{question}"


def to_documents(results: list[RetrievalResult]) -> list[Document]:
    """Convert results to LangChain Documents for chain-based generators."""
    return [
        Document(
            page_content=r.content,
            metadata={
                "source": r.citation.source,
                "chunk_index": r.citation.chunk_index,
                "score": r.citation.score,
            },
        )
        for r in results
    ]
