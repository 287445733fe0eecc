"""Query endpoints: retrieve matching documents and answer over them."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterator
from typing import Annotated

from anthropic import APIStatusError
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from src.api.dependencies import get_reducer, get_vector_store
from src.api.models import QueryRequest, QueryResponse, SourceDocument
from src.ingestion.storage import SupabaseVectorStore
from src.llm import TokenEvent
from src.retrieval.generation import build_context, generate_answer, stream_answer
from src.retrieval.models import RetrievalMatch
from src.retrieval.search import retrieve
from src.summarization.reducer import DocumentReducer

logger = logging.getLogger(__name__)

router = APIRouter()

NO_RESULTS_ANSWER = "No relevant documents found for your question."


def _sources(matches: list[RetrievalMatch]) -> list[SourceDocument]:
    return [
        SourceDocument(
            document_id=m.document_id,
            title=m.metadata.title,
            url=m.metadata.url,
            content=m.chunk_text,
            score=m.score,
        )
        for m in matches
    ]


def _reduced_context(
    question: str, matches: list[RetrievalMatch], reducer: DocumentReducer
) -> str:
    return reducer.reduce(build_context(matches), query=question)


@router.post("/api/query", response_model=QueryResponse)
async def query(
    request: QueryRequest,
    store: Annotated[SupabaseVectorStore, Depends(get_vector_store)],
    reducer: Annotated[DocumentReducer, Depends(get_reducer)],
) -> QueryResponse:
    """Answer a question from the stored team documents.

    The matched chunks are reduced with the question as the guiding query
    before being handed to Claude.
    """
    matches = await asyncio.to_thread(retrieve, request.question, store, request.top_k)
    if not matches:
        return QueryResponse(answer=NO_RESULTS_ANSWER, sources=[])

    context = await asyncio.to_thread(_reduced_context, request.question, matches, reducer)
    try:
        result = await asyncio.to_thread(generate_answer, request.question, context, matches)
    except APIStatusError as exc:
        # Return 503 so the browser gets a JSON response with CORS headers intact.
        raise HTTPException(status_code=503, detail=f"LLM unavailable: {exc.message}") from exc

    return QueryResponse(
        answer=result["answer"],
        sources=_sources(matches),
        model=result.get("model"),
        usage=result.get("usage"),
    )


def _ndjson(event: TokenEvent) -> str:
    return json.dumps({"type": event.kind, "text": event.text}) + "\n"


def _stream_events(
    question: str, matches: list[RetrievalMatch], reducer: DocumentReducer
) -> Iterator[str]:
    if not matches:
        yield _ndjson(TokenEvent(kind="token", text=NO_RESULTS_ANSWER))
        yield _ndjson(TokenEvent(kind="end"))
        return
    try:
        context = _reduced_context(question, matches, reducer)
        for event in stream_answer(question, context, matches):
            yield _ndjson(event)
    except Exception as exc:
        logger.exception("Answer stream failed")
        yield _ndjson(TokenEvent(kind="error", text=str(exc)))


@router.post("/api/query/stream")
async def query_stream(
    request: QueryRequest,
    store: Annotated[SupabaseVectorStore, Depends(get_vector_store)],
    reducer: Annotated[DocumentReducer, Depends(get_reducer)],
) -> StreamingResponse:
    """Same as ``/api/query`` but streams the answer as NDJSON token events.

    The stream ends with exactly one ``end`` event, or an ``error`` event if
    generation failed part-way.
    """
    matches = await asyncio.to_thread(retrieve, request.question, store, request.top_k)
    return StreamingResponse(
        _stream_events(request.question, matches, reducer),
        media_type="application/x-ndjson",
    )
