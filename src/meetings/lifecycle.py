"""Meeting bot lifecycle: bot creation and webhook-driven status transitions.

``pending`` is set at creation.  Status-change events overwrite the status
with the provider's code verbatim.  A transcript-complete event runs the
analysis and synchronization pipeline and ends in ``completed`` or
``failed``; a failure event goes straight to ``failed``.  Both are terminal:
events arriving for a terminal bot are ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from src.integrations.confluence import ConfluenceClient
from src.integrations.jira import JiraClient
from src.integrations.meeting_bots import MeetingBotApi, validate_meeting_url
from src.integrations.models import AtlassianConfig
from src.meetings.analyzer import analyze_transcript, normalize_transcript
from src.meetings.models import BotStatus, MeetingBot
from src.meetings.repository import MeetingRepository
from src.meetings.sync import emit_tasks, sync_documents
from src.retrieval.search import SimilaritySearch, retrieve

logger = logging.getLogger(__name__)


class WebhookEvent(StrEnum):
    STATUS_CHANGE = "bot.status_change"
    TRANSCRIPT_COMPLETE = "complete"
    FAILED = "failed"


class InvalidWebhook(ValueError):
    """A recognized event is missing the data it needs."""


class MeetingPipelineError(Exception):
    """The meeting pipeline cannot run for this bot."""


@dataclass
class MeetingServices:
    """Collaborators the meeting pipeline talks to."""

    repository: MeetingRepository
    store: SimilaritySearch
    confluence_factory: Callable[[AtlassianConfig], ConfluenceClient] = ConfluenceClient.from_config
    jira_factory: Callable[[AtlassianConfig], JiraClient] = JiraClient.from_config


def create_meeting_bot(
    meeting_url: str,
    user_id: str | None,
    webhook_url: str,
    *,
    repository: MeetingRepository,
    bot_api: MeetingBotApi,
    bot_name: str,
) -> MeetingBot:
    """Validate the URL, ask the provider for a bot, and record it as ``pending``.

    Raises:
        MeetingUrlNotAllowed: Before any external call, for unsupported hosts.
        MeetingBotApiError: The provider refused or answered badly.
    """
    url = validate_meeting_url(meeting_url)
    data = bot_api.create_bot(url, bot_name, webhook_url)
    bot = repository.create_bot(str(data["bot_id"]), bot_name, url, user_id)
    logger.info("Created bot %s for %s", bot.bot_id, url)
    return bot


def handle_webhook_event(
    event: WebhookEvent,
    bot: MeetingBot,
    data: dict[str, Any],
    services: MeetingServices,
) -> str:
    """Apply one webhook event to *bot* and return its resulting status.

    Raises:
        InvalidWebhook: Required event data is missing (nothing is written).
    """
    status_code = (data.get("status") or {}).get("code")
    transcript = data.get("transcript")

    if event is WebhookEvent.STATUS_CHANGE and not status_code:
        raise InvalidWebhook("status change event without status.code")
    if event is WebhookEvent.TRANSCRIPT_COMPLETE and transcript is None:
        raise InvalidWebhook("complete event without transcript")

    if bot.is_terminal:
        logger.info("Ignoring %s for bot %s in terminal status %s", event, bot.bot_id, bot.status)
        return bot.status

    repository = services.repository

    if event is WebhookEvent.STATUS_CHANGE:
        new_status = str(status_code)
    elif event is WebhookEvent.FAILED:
        logger.error("Bot %s failed with error: %s", bot.bot_id, data.get("error"))
        new_status = BotStatus.FAILED.value
    else:
        try:
            process_transcript(bot, transcript, services)
            new_status = BotStatus.COMPLETED.value
        except Exception:
            logger.exception("Failed to process transcript for bot %s", bot.bot_id)
            new_status = BotStatus.FAILED.value

    repository.set_bot_status(bot.bot_id, new_status)
    bot.status = new_status
    return new_status


def process_transcript(
    bot: MeetingBot,
    raw_transcript: list[dict[str, Any]],
    services: MeetingServices,
) -> None:
    """Analyze the transcript, then update Confluence and create Jira issues.

    Analysis failures propagate (nothing is written).  Per-page and
    per-issue failures are logged inside the sync step and do not.
    """
    config = services.repository.get_atlassian_config(bot.user_id) if bot.user_id else None
    if config is None:
        raise MeetingPipelineError(f"Atlassian configuration not found for bot {bot.bot_id}")

    normalized = normalize_transcript(raw_transcript)
    analysis = analyze_transcript(normalized)
    logger.info(
        "Analyzed bot %s: %d speakers, %d action items",
        bot.bot_id,
        len(normalized.speakers),
        len(analysis.action_items),
    )

    matches = retrieve(analysis.summary, services.store)

    with services.confluence_factory(config) as confluence:
        synced = sync_documents(
            analysis,
            matches,
            bot=bot,
            repository=services.repository,
            confluence=confluence,
            space_key=config.space_key,
        )

    if not config.jira_project_key:
        return
    try:
        with services.jira_factory(config) as jira:
            emit_tasks(
                analysis.action_items,
                synced,
                jira=jira,
                project_key=config.jira_project_key,
            )
    except Exception:
        logger.exception("Failed to emit Jira issues for bot %s", bot.bot_id)
