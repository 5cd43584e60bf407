"""FastAPI application exposing document management and fuzzy phrase search."""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr
from pydantic.alias_generators import to_camel

from ftsearch.config import AppConfig
from ftsearch.context import ServiceContext
from ftsearch.index.storage import DocumentExistsError, StorageError
from ftsearch.models import Document, SearchMatch, SearchOutcome
from ftsearch.utils.logs import configure_logging

LOGGER = logging.getLogger(__name__)

VALIDATION_ERROR = "Error while validating input"

router = APIRouter()


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AddPayload(_Payload):
    document_id: StrictStr
    document_name: StrictStr
    text: StrictStr


class EditPayload(_Payload):
    document_id: StrictStr
    document_name: StrictStr | None = None
    text: StrictStr | None = None


class RemovePayload(_Payload):
    document_id: StrictStr


class SearchAllPayload(_Payload):
    query_text: StrictStr
    stop_after_one: StrictBool
    # Falls back to AppConfig.peri_text_length; snippets always span the query's tokens.
    peri_text_length: int | None = Field(default=None, ge=1)
    max_results: int | None = Field(default=None, ge=1)


class SearchOnePayload(SearchAllPayload):
    document_id: StrictStr


def get_context(request: Request) -> ServiceContext:
    return request.app.state.context


def _serialize_match(match: SearchMatch) -> Dict[str, Any]:
    return {
        "documentId": match.document_id,
        "documentName": match.document_name,
        "position": match.position,
        "snippet": match.snippet,
    }


def _search_response(
    outcome: SearchOutcome, max_results: int, *, error: str
) -> Dict[str, List[Dict[str, Any]]]:
    if outcome.failed:
        LOGGER.error(error)
        raise HTTPException(status_code=500, detail=error)
    return {"results": [_serialize_match(match) for match in outcome.matches[:max_results]]}


def _storage_failure(message: str, exc: StorageError) -> HTTPException:
    LOGGER.error("%s: %s", message, exc)
    return HTTPException(status_code=500, detail=message)


@router.post("/add")
async def add_document(
    payload: AddPayload, context: ServiceContext = Depends(get_context)
) -> Dict[str, str]:
    LOGGER.info("Adding document %s", payload.document_id)
    document = Document(id=payload.document_id, name=payload.document_name, text=payload.text)
    try:
        context.store.add_document(document)
    except DocumentExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except StorageError as exc:
        raise _storage_failure("Error while saving document to the database", exc) from exc
    return {"status": "ok", "documentId": document.id}


@router.post("/edit")
async def edit_document(
    payload: EditPayload, context: ServiceContext = Depends(get_context)
) -> Dict[str, str]:
    LOGGER.info("Editing document %s", payload.document_id)
    try:
        edited = context.store.edit_document(
            payload.document_id, name=payload.document_name, text=payload.text
        )
    except StorageError as exc:
        raise _storage_failure("Error while editing document in the database", exc) from exc

    if not edited:
        raise HTTPException(status_code=404, detail=f"Document {payload.document_id} not found")
    return {"status": "ok", "documentId": payload.document_id}


@router.post("/remove")
async def remove_document(
    payload: RemovePayload, context: ServiceContext = Depends(get_context)
) -> Dict[str, str]:
    LOGGER.info("Removing document %s", payload.document_id)
    try:
        removed = context.store.remove_document(payload.document_id)
    except StorageError as exc:
        raise _storage_failure("Error while removing document from the database", exc) from exc

    if not removed:
        raise HTTPException(status_code=404, detail=f"Document {payload.document_id} not found")
    return {"status": "ok", "documentId": payload.document_id}


@router.post("/removeAll")
async def remove_all_documents(context: ServiceContext = Depends(get_context)) -> Dict[str, Any]:
    LOGGER.info("Removing all documents")
    try:
        removed = context.store.remove_all()
    except StorageError as exc:
        raise _storage_failure("Error while removing all documents from the database", exc) from exc
    return {"status": "ok", "removed": removed}


@router.get("/documents")
async def list_documents(context: ServiceContext = Depends(get_context)) -> Dict[str, Any]:
    """List stored documents without their text."""
    try:
        documents = context.store.list_documents()
    except StorageError as exc:
        raise _storage_failure("Error while listing documents", exc) from exc
    return {
        "documents": [{"documentId": doc.id, "documentName": doc.name} for doc in documents],
        "count": len(documents),
    }


@router.post("/search/one")
async def search_one(
    payload: SearchOnePayload, context: ServiceContext = Depends(get_context)
) -> Dict[str, List[Dict[str, Any]]]:
    peri_text_length = payload.peri_text_length or context.config.peri_text_length
    LOGGER.info(
        "Searching document %s with term: %r (periTextLength=%d)",
        payload.document_id,
        payload.query_text,
        peri_text_length,
    )
    outcome = await asyncio.to_thread(
        context.searcher.search_document,
        payload.document_id,
        payload.query_text,
        stop_after_one=payload.stop_after_one,
    )
    max_results = payload.max_results or context.config.max_results
    return _search_response(
        outcome, max_results, error="Error while searching document in the database"
    )


@router.post("/search/all")
async def search_all(
    payload: SearchAllPayload, context: ServiceContext = Depends(get_context)
) -> Dict[str, List[Dict[str, Any]]]:
    peri_text_length = payload.peri_text_length or context.config.peri_text_length
    LOGGER.info(
        "Searching all documents with term: %r (periTextLength=%d)",
        payload.query_text,
        peri_text_length,
    )
    outcome = await asyncio.to_thread(
        context.searcher.search_all,
        payload.query_text,
        stop_after_one=payload.stop_after_one,
    )
    max_results = payload.max_results or context.config.max_results
    return _search_response(
        outcome, max_results, error="Error while searching documents in the database"
    )


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics(context: ServiceContext = Depends(get_context)) -> PlainTextResponse:
    return PlainTextResponse(context.metrics.render())


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    LOGGER.debug("Rejected request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content={"detail": VALIDATION_ERROR, "errors": jsonable_encoder(exc.errors())},
    )


def create_app(config: AppConfig | None = None, *, base_dir: Path | None = None) -> FastAPI:
    """Build the web application; the service context lives for the app's lifespan."""
    app_config = config if config is not None else AppConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(logging.INFO, app_config.log_file)
        context = ServiceContext.open(app_config, base_dir if base_dir is not None else Path.cwd())
        app.state.context = context
        try:
            yield
        finally:
            context.close()
            LOGGER.info("Document store closed")

    app = FastAPI(title="ftsearch", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    @app.middleware("http")
    async def count_requests(request: Request, call_next) -> Response:
        context: ServiceContext | None = getattr(request.app.state, "context", None)
        if context is not None and context.metrics.tracks(request.url.path):
            context.metrics.increment(request.url.path)

        start_time = time.perf_counter()
        response = await call_next(request)
        LOGGER.debug(
            "%s %s -> %d (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start_time) * 1000,
        )
        return response

    app.include_router(router)
    return app


app = create_app()
