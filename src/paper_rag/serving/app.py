"""FastAPI application exposing document ingestion and retrieval as a REST API."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from urllib.parse import quote

from fastapi import Depends, FastAPI, File, HTTPException, Request, Response, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from paper_rag import __version__
from paper_rag.config import configure_logging, settings
from paper_rag.events import StatusEvent
from paper_rag.ingestion.loader import PDF_CONTENT_TYPE, is_pdf
from paper_rag.ingestion.models import DocumentRecord, IngestFailure, IngestSuccess, SourceDocument
from paper_rag.retrieval.context import format_context
from paper_rag.retrieval.models import RetrievalResult
from paper_rag.session import RagSession

logger = logging.getLogger(__name__)


# ── Request / Response schemas ────────────────────────────────────────
class SearchRequest(BaseModel):
    """Incoming question from the user."""

    query: str = Field(min_length=1)
    k: int | None = Field(default=None, gt=0)


class SearchResponse(BaseModel):
    """Ranked passages plus a ready-to-use, source-cited context block."""

    results: list[RetrievalResult]
    context: str


class StatusResponse(BaseModel):
    embedder: str
    embedder_error: str | None = None
    chunks: int
    documents: int


# ── Dependencies ──────────────────────────────────────────────────────
def get_session(request: Request) -> RagSession:
    return request.app.state.session


def content_disposition(name: str, disposition: str = "inline") -> str:
    """``Content-Disposition`` value that is latin-1 safe for any file name.

    Plain ASCII names go out as ``filename="..."``.  Anything else gets an
    RFC 5987 ``filename*`` alongside an ASCII fallback, as Starlette's
    ``FileResponse`` does.
    """
    quoted = quote(name)
    if quoted == name:
        return f'{disposition}; filename="{name}"'
    fallback = name.encode("ascii", "replace").decode("ascii").replace('"', "").replace("\\", "")
    return f"{disposition}; filename=\"{fallback}\"; filename*=utf-8''{quoted}"


# ── Application factory ───────────────────────────────────────────────
def create_app(session: RagSession | None = None) -> FastAPI:
    """Build the API around *session* (a fresh default session when omitted)."""
    session = session or RagSession()

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        loader: asyncio.Task[None] | None = None
        if session.settings.preload_embedder:
            # Loads in the background; requests arriving meanwhile wait for it.
            loader = asyncio.create_task(session.start())
        yield
        if loader is not None and not loader.done():
            loader.cancel()

    app = FastAPI(
        title="Paper RAG API",
        version=__version__,
        description="Upload PDF papers and retrieve the passages most relevant to a question.",
        lifespan=lifespan,
    )
    app.state.session = session

    # ── Routes ────────────────────────────────────────────────────────
    @app.get("/health")
    async def health(session: RagSession = Depends(get_session)) -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok" if session.store.health_check() else "unavailable"}

    @app.get("/status", response_model=StatusResponse)
    async def get_status(session: RagSession = Depends(get_session)) -> StatusResponse:
        return StatusResponse(**session.stats())

    @app.get("/events", response_model=list[StatusEvent])
    async def recent_events(session: RagSession = Depends(get_session)) -> list[StatusEvent]:
        return session.recent_events.snapshot()

    @app.get("/documents", response_model=list[DocumentRecord])
    async def list_documents(session: RagSession = Depends(get_session)) -> list[DocumentRecord]:
        return session.documents()

    @app.post(
        "/documents",
        response_model=IngestSuccess,
        status_code=status.HTTP_201_CREATED,
        responses={422: {"model": IngestFailure}},
    )
    async def upload_document(
        file: UploadFile = File(...),
        session: RagSession = Depends(get_session),
    ) -> IngestSuccess | JSONResponse:
        """Validate an uploaded PDF and run it through the ingestion pipeline."""
        name = file.filename or "upload.pdf"
        if not is_pdf(name, file.content_type):
            raise HTTPException(
                status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                detail=f'Please upload only PDF files. "{name}" is not a PDF.',
            )

        limit = session.settings.max_upload_bytes
        too_big = f'"{name}" is too large (max {session.settings.max_upload_mb} MB).'
        if file.size is not None and file.size > limit:
            raise HTTPException(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=too_big)
        data = await file.read()
        if len(data) > limit:
            raise HTTPException(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=too_big)

        result = await session.ingest(
            SourceDocument(name=name, data=data, size=len(data), content_type=PDF_CONTENT_TYPE)
        )
        if isinstance(result, IngestFailure):
            return JSONResponse(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                content=result.model_dump(mode="json"),
            )
        return result

    @app.get("/documents/{name}/file")
    async def get_document_file(name: str, session: RagSession = Depends(get_session)) -> Response:
        payload = session.get_payload(name)
        if payload is None:
            raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Unknown document: {name}")
        return Response(
            content=payload,
            media_type=PDF_CONTENT_TYPE,
            headers={"Content-Disposition": content_disposition(name)},
        )

    @app.delete("/documents/{name}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_document(name: str, session: RagSession = Depends(get_session)) -> Response:
        session.remove(name)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/search", response_model=SearchResponse)
    async def search(
        request: SearchRequest,
        session: RagSession = Depends(get_session),
    ) -> SearchResponse:
        """Return the passages most similar to the query."""
        results = await session.search(request.query, k=request.k)
        return SearchResponse(results=results, context=format_context(results))

    return app


app = create_app()


def main() -> None:
    """Console entry point: ``paper-rag-serve``."""
    import uvicorn

    configure_logging()
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
