"""Pydantic request/response schemas for the Meeting Sync API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Meeting bots / webhook
# ---------------------------------------------------------------------------


class WebhookWord(BaseModel):
    word: str


class WebhookSegment(BaseModel):
    speaker: str
    words: list[WebhookWord] = []


class WebhookStatus(BaseModel):
    code: str


class WebhookData(BaseModel):
    bot_id: str
    status: WebhookStatus | None = None
    transcript: list[WebhookSegment] | None = None
    error: str | None = None


class WebhookPayload(BaseModel):
    """Body the bot provider POSTs to /api/meeting/webhook."""

    event: str
    data: WebhookData


class WebhookResponse(BaseModel):
    success: bool = True
    status: str


class CreateBotRequest(BaseModel):
    """Request body for /api/meeting/bot.

    ``user_id`` comes from the (external) session layer.
    """

    meeting_url: str
    user_id: str | None = None


class BotResponse(BaseModel):
    id: str
    bot_id: str
    bot_name: str
    meeting_url: str
    status: str


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


class QueryRequest(BaseModel):
    """Request body for the /api/query endpoints."""

    question: str
    top_k: int | None = Field(default=None, ge=1, le=50)


class SourceDocument(BaseModel):
    """A single retrieved document with its best-matching chunk."""

    document_id: str
    title: str = ""
    url: str = ""
    content: str
    score: float


class QueryResponse(BaseModel):
    answer: str
    sources: list[SourceDocument]
    model: str | None = None
    usage: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class IngestDocumentRequest(BaseModel):
    """Request body for /api/documents."""

    source_id: str
    content: str
    title: str = ""
    url: str = ""
    space_key: str | None = None
    user_id: str | None = None
    metadata: dict[str, Any] = {}
    summarize: bool = False


class IngestResponse(BaseModel):
    source_id: str
    num_chunks: int


class VectorizeRequest(BaseModel):
    user_id: str
    space_key: str
    summarize: bool = False


class VectorizeResponse(BaseModel):
    space_key: str
    pages_ingested: int


class RefreshResponse(BaseModel):
    pages_refreshed: int


class DocumentChangeResponse(BaseModel):
    id: str
    page_id: str
    page_title: str
    status: str
