"""Meeting endpoints: bot creation and the provider's status webhook."""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request

from src.api.dependencies import get_bot_api, get_meeting_services
from src.api.models import BotResponse, CreateBotRequest, WebhookPayload, WebhookResponse
from src.config import settings
from src.integrations.meeting_bots import MeetingBotApi, MeetingBotApiError, MeetingUrlNotAllowed
from src.meetings.lifecycle import (
    InvalidWebhook,
    MeetingServices,
    WebhookEvent,
    create_meeting_bot,
    handle_webhook_event,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/meeting/bot", response_model=BotResponse)
async def create_bot(
    body: CreateBotRequest,
    request: Request,
    services: Annotated[MeetingServices, Depends(get_meeting_services)],
    bot_api: Annotated[MeetingBotApi, Depends(get_bot_api)],
) -> BotResponse:
    """Send a recording bot to a meeting and track it as ``pending``."""
    webhook_url = str(request.url_for("meeting_webhook"))
    try:
        bot = await asyncio.to_thread(
            create_meeting_bot,
            body.meeting_url,
            body.user_id,
            webhook_url,
            repository=services.repository,
            bot_api=bot_api,
            bot_name=settings.meeting_bot_name,
        )
    except MeetingUrlNotAllowed as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except MeetingBotApiError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

    return BotResponse(
        id=bot.id,
        bot_id=bot.bot_id,
        bot_name=bot.bot_name,
        meeting_url=bot.meeting_url,
        status=bot.status,
    )


@router.post("/api/meeting/webhook", response_model=WebhookResponse, name="meeting_webhook")
async def meeting_webhook(
    payload: WebhookPayload,
    services: Annotated[MeetingServices, Depends(get_meeting_services)],
) -> WebhookResponse:
    """Apply a bot provider event to the tracked bot.

    A transcript-complete event runs the whole meeting pipeline before
    responding; pipeline failures mark the bot ``failed`` rather than
    failing the request.
    """
    try:
        event = WebhookEvent(payload.event)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Unknown event: {payload.event}") from exc

    bot = await asyncio.to_thread(services.repository.get_bot, payload.data.bot_id)
    if bot is None:
        raise HTTPException(status_code=404, detail="Bot not found")

    try:
        status = await asyncio.to_thread(
            handle_webhook_event,
            event,
            bot,
            payload.data.model_dump(),
            services,
        )
    except InvalidWebhook as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    logger.info("Webhook %s for bot %s -> %s", event, bot.bot_id, status)
    return WebhookResponse(status=status)
