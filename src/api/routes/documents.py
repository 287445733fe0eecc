"""Document endpoints: ingestion, space vectorization, scheduled refresh and reverts."""

from __future__ import annotations

import asyncio
import secrets
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException

from src.api.dependencies import get_meeting_services, get_reducer
from src.api.models import (
    DocumentChangeResponse,
    IngestDocumentRequest,
    IngestResponse,
    RefreshResponse,
    VectorizeRequest,
    VectorizeResponse,
)
from src.config import settings
from src.ingestion.models import Document, DocumentMetadata
from src.ingestion.pipeline import ingest_document
from src.ingestion.spaces import refresh_spaces, vectorize_space
from src.integrations.confluence import ConfluenceError
from src.meetings.lifecycle import MeetingServices
from src.meetings.sync import ChangeNotRevertable, revert_change
from src.summarization.reducer import DocumentReducer

router = APIRouter()


@router.post("/api/documents", response_model=IngestResponse)
async def ingest(
    request: IngestDocumentRequest,
    services: Annotated[MeetingServices, Depends(get_meeting_services)],
    reducer: Annotated[DocumentReducer, Depends(get_reducer)],
) -> IngestResponse:
    """Chunk, embed and store a single document."""
    if not request.content.strip():
        raise HTTPException(status_code=400, detail="Document content is empty")

    document = Document(
        content=request.content,
        metadata=DocumentMetadata(
            source_id=request.source_id,
            title=request.title,
            url=request.url,
            space_key=request.space_key,
            user_id=request.user_id,
            extra=dict(request.metadata),
        ),
    )
    num_chunks = await asyncio.to_thread(
        ingest_document,
        document,
        services.store,
        reducer if request.summarize else None,
    )
    return IngestResponse(source_id=request.source_id, num_chunks=num_chunks)


@router.post("/api/spaces/vectorize", response_model=VectorizeResponse)
async def vectorize(
    request: VectorizeRequest,
    services: Annotated[MeetingServices, Depends(get_meeting_services)],
    reducer: Annotated[DocumentReducer, Depends(get_reducer)],
) -> VectorizeResponse:
    """Ingest every page of a Confluence space and remember it as the user's space."""
    repository = services.repository
    config = await asyncio.to_thread(repository.get_atlassian_config, request.user_id)
    if config is None:
        raise HTTPException(status_code=404, detail="Atlassian configuration not found")

    def run() -> int:
        repository.set_space_key(request.user_id, request.space_key)
        with services.confluence_factory(config) as confluence:
            return vectorize_space(
                config,
                request.space_key,
                confluence=confluence,
                store=services.store,
                reducer=reducer if request.summarize else None,
            )

    try:
        pages = await asyncio.to_thread(run)
    except ConfluenceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return VectorizeResponse(space_key=request.space_key, pages_ingested=pages)


@router.post("/api/cron/update-documents", response_model=RefreshResponse)
async def update_documents(
    services: Annotated[MeetingServices, Depends(get_meeting_services)],
    authorization: Annotated[str | None, Header()] = None,
) -> RefreshResponse:
    """Re-ingest pages whose content changed.  Requires ``Bearer <CRON_SECRET>``."""
    expected = f"Bearer {settings.cron_secret}"
    if not settings.cron_secret or not secrets.compare_digest(authorization or "", expected):
        raise HTTPException(status_code=401, detail="Unauthorized")

    configs = await asyncio.to_thread(services.repository.list_atlassian_configs)
    refreshed = await asyncio.to_thread(
        refresh_spaces,
        configs,
        store=services.store,
        confluence_factory=services.confluence_factory,
    )
    return RefreshResponse(pages_refreshed=refreshed)


@router.post("/api/document-changes/{change_id}/revert", response_model=DocumentChangeResponse)
async def revert(
    change_id: str,
    services: Annotated[MeetingServices, Depends(get_meeting_services)],
) -> DocumentChangeResponse:
    """Restore the page content a meeting update replaced."""
    repository = services.repository
    change = await asyncio.to_thread(repository.get_change, change_id)
    if change is None:
        raise HTTPException(status_code=404, detail="Document change not found")

    bot = await asyncio.to_thread(repository.get_bot_by_id, change.meeting_bot_id)
    config = (
        await asyncio.to_thread(repository.get_atlassian_config, bot.user_id)
        if bot is not None and bot.user_id
        else None
    )
    if config is None:
        raise HTTPException(status_code=404, detail="Atlassian configuration not found")

    def run() -> None:
        with services.confluence_factory(config) as confluence:
            revert_change(change, repository=repository, confluence=confluence)

    try:
        await asyncio.to_thread(run)
    except ChangeNotRevertable as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ConfluenceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return DocumentChangeResponse(
        id=change_id,
        page_id=change.page_id,
        page_title=change.page_title,
        status=change.status.value,
    )
