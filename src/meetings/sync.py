"""Propagate a meeting analysis to Confluence pages and Jira issues.

Every page and every issue is handled independently: a failure is logged
and the rest of the batch carries on.
"""

from __future__ import annotations

import html
import logging
from datetime import date

from src.integrations.confluence import ConfluenceClient
from src.integrations.jira import JiraClient
from src.integrations.models import PageLink
from src.meetings.models import (
    ActionItem,
    AnalysisResult,
    ChangeStatus,
    DocumentChange,
    MeetingBot,
    SyncedDocument,
)
from src.meetings.repository import MeetingRepository
from src.retrieval.models import RetrievalMatch

logger = logging.getLogger(__name__)

MAX_LINKED_PAGES = 3


class ChangeNotRevertable(ValueError):
    """The change has no prior content to restore, or was already reverted."""


def _list_section(heading: str, items: list[str]) -> str:
    if not items:
        return ""
    entries = "\n".join(f"      <li>{item}</li>" for item in items)
    return f"    <p><strong>{heading}:</strong></p>\n    <ul>\n{entries}\n    </ul>\n"


def _action_item_entry(item: ActionItem) -> str:
    parts = [f"<strong>{html.escape(item.title)}</strong>: {html.escape(item.description)}"]
    if item.assignee:
        parts.append(f"Assignee: {html.escape(item.assignee)}")
    if item.priority:
        parts.append(f"Priority: {item.priority}")
    if item.due_date:
        parts.append(f"Due Date: {item.due_date.isoformat()}")
    return "<br/>".join(parts)


def render_meeting_update(original_content: str, analysis: AnalysisResult, today: date) -> str:
    """Append a dated meeting-update panel to *original_content* (storage format).

    Existing content is kept byte-for-byte; the update goes after it.
    """
    section = (
        '<ac:structured-macro ac:name="info">\n'
        "  <ac:rich-text-body>\n"
        f"    <p><strong>Meeting Update ({today.isoformat()})</strong></p>\n"
        f"    <p>{html.escape(analysis.summary)}</p>\n"
        + _list_section("Key Points", [html.escape(p) for p in analysis.key_points])
        + _list_section("Decisions", [html.escape(d) for d in analysis.decisions])
        + _list_section("Action Items", [_action_item_entry(i) for i in analysis.action_items])
        + "  </ac:rich-text-body>\n"
        "</ac:structured-macro>\n"
    )
    if original_content and original_content.strip():
        return f"{original_content}\n\n{section}"
    return section


def sync_documents(
    analysis: AnalysisResult,
    matches: list[RetrievalMatch],
    *,
    bot: MeetingBot,
    repository: MeetingRepository,
    confluence: ConfluenceClient,
    space_key: str | None,
    today: date | None = None,
) -> list[SyncedDocument]:
    """Write the meeting update into every matched page, or one new page if none matched.

    For each match the audit record is written (``pending``) before the
    page update is attempted.  The update carries the version read at fetch
    time plus one, so a concurrent edit surfaces as a per-page
    ``VersionConflict``.

    Returns:
        The pages that were successfully updated or created.
    """
    today = today or date.today()

    if not matches:
        created = _create_meeting_page(
            analysis,
            bot=bot,
            repository=repository,
            confluence=confluence,
            space_key=space_key,
            today=today,
        )
        return [created] if created else []

    synced: list[SyncedDocument] = []
    for match in matches:
        try:
            synced.append(
                _update_page(
                    analysis,
                    match,
                    bot=bot,
                    repository=repository,
                    confluence=confluence,
                    today=today,
                )
            )
        except Exception:
            logger.exception("Failed to update page %s for bot %s", match.document_id, bot.bot_id)

    logger.info("Synchronized %d of %d matched pages", len(synced), len(matches))
    return synced


def _update_page(
    analysis: AnalysisResult,
    match: RetrievalMatch,
    *,
    bot: MeetingBot,
    repository: MeetingRepository,
    confluence: ConfluenceClient,
    today: date,
) -> SyncedDocument:
    page = confluence.get_page(match.document_id)
    updated = render_meeting_update(page.content, analysis, today)

    repository.record_change(
        DocumentChange(
            meeting_bot_id=bot.id,
            page_id=page.id,
            page_title=match.metadata.title or page.title,
            original_content=page.content,
            updated_content=updated,
            status=ChangeStatus.PENDING,
        )
    )
    confluence.update_page(page.id, page.title, updated, version=page.version + 1)

    return SyncedDocument(
        page_id=page.id,
        title=page.title,
        url=page.url or confluence.page_url(page.id),
        relevance=match.score,
    )


def _create_meeting_page(
    analysis: AnalysisResult,
    *,
    bot: MeetingBot,
    repository: MeetingRepository,
    confluence: ConfluenceClient,
    space_key: str | None,
    today: date,
) -> SyncedDocument | None:
    content = render_meeting_update("", analysis, today)
    try:
        title = f"Meeting Notes - {today.isoformat()}"
        page = confluence.create_page(space_key or "", title, content)
        repository.record_change(
            DocumentChange(
                meeting_bot_id=bot.id,
                page_id=page.id,
                page_title=page.title,
                original_content=None,
                updated_content=content,
                status=ChangeStatus.APPLIED,
            )
        )
    except Exception:
        logger.exception("Failed to create meeting notes page for bot %s", bot.bot_id)
        return None

    return SyncedDocument(
        page_id=page.id,
        title=page.title,
        url=page.url or confluence.page_url(page.id),
        relevance=1.0,
        created=True,
    )


def emit_tasks(
    action_items: list[ActionItem],
    synced: list[SyncedDocument],
    *,
    jira: JiraClient,
    project_key: str | None,
) -> list[str]:
    """Create one Jira task per action item, linked to the most relevant pages.

    Does nothing when no project is configured.

    Returns:
        Keys of the issues that were created.
    """
    if not project_key:
        return []

    top_pages = sorted(synced, key=lambda doc: doc.relevance, reverse=True)[:MAX_LINKED_PAGES]
    links = [PageLink(page_id=d.page_id, title=d.title, url=d.url) for d in top_pages]

    keys: list[str] = []
    for item in action_items:
        try:
            keys.append(
                jira.create_issue(
                    project_key,
                    item.title,
                    item.description,
                    priority=item.priority,
                    assignee=item.assignee,
                    due_date=item.due_date,
                    links=links,
                )
            )
        except Exception:
            logger.exception("Failed to create Jira issue %r", item.title)

    logger.info("Created %d of %d Jira issues in %s", len(keys), len(action_items), project_key)
    return keys


def revert_change(
    change: DocumentChange,
    *,
    repository: MeetingRepository,
    confluence: ConfluenceClient,
) -> DocumentChange:
    """Restore the page content a change replaced and mark the change reverted.

    Raises:
        ChangeNotRevertable: The change created its page, or is already reverted.
    """
    if change.id is None or change.original_content is None:
        raise ChangeNotRevertable("Change created a new page; there is nothing to restore")
    if change.status is ChangeStatus.REVERTED:
        raise ChangeNotRevertable("Change is already reverted")

    page = confluence.get_page(change.page_id)
    confluence.update_page(page.id, page.title, change.original_content, version=page.version + 1)
    repository.set_change_status(change.id, ChangeStatus.REVERTED)
    change.status = ChangeStatus.REVERTED
    return change
