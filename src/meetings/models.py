"""Data models for the meeting pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field


class BotStatus(StrEnum):
    """Statuses the tracker itself sets; providers may report others verbatim."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({BotStatus.COMPLETED.value, BotStatus.FAILED.value})


class ChangeStatus(StrEnum):
    PENDING = "pending"
    APPLIED = "applied"
    REVERTED = "reverted"


# ---------------------------------------------------------------------------
# Transcript
# ---------------------------------------------------------------------------


@dataclass
class TranscriptSegment:
    """One speaker turn with cleaned text."""

    speaker: str
    text: str


@dataclass
class NormalizedTranscript:
    speakers: list[str] = field(default_factory=list)
    segments: list[TranscriptSegment] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Analysis (validated model output)
# ---------------------------------------------------------------------------


class ActionItem(BaseModel):
    title: str = Field(min_length=1)
    description: str
    assignee: str | None = None
    priority: Literal["High", "Medium", "Low"] | None = None
    due_date: date | None = None


class AnalysisResult(BaseModel):
    summary: str = Field(min_length=1)
    key_points: list[str]
    decisions: list[str] = Field(default_factory=list)
    action_items: list[ActionItem]


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------


@dataclass
class MeetingBot:
    """One external recording/transcription job."""

    id: str
    bot_id: str
    bot_name: str
    meeting_url: str
    status: str = BotStatus.PENDING.value
    user_id: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> MeetingBot:
        return cls(
            id=str(row["id"]),
            bot_id=str(row["bot_id"]),
            bot_name=row.get("bot_name") or "",
            meeting_url=row.get("meeting_url") or "",
            status=row.get("status") or BotStatus.PENDING.value,
            user_id=row.get("user_id"),
        )


@dataclass
class DocumentChange:
    """Audit record of one page write made on behalf of a meeting."""

    meeting_bot_id: str
    page_id: str
    page_title: str
    original_content: str | None
    updated_content: str
    status: ChangeStatus = ChangeStatus.PENDING
    id: str | None = None

    def to_row(self) -> dict[str, Any]:
        return {
            "meeting_bot_id": self.meeting_bot_id,
            "confluence_page_id": self.page_id,
            "confluence_page_title": self.page_title,
            "original_content": self.original_content,
            "updated_content": self.updated_content,
            "status": self.status.value,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> DocumentChange:
        return cls(
            id=str(row["id"]),
            meeting_bot_id=str(row["meeting_bot_id"]),
            page_id=str(row["confluence_page_id"]),
            page_title=row.get("confluence_page_title") or "",
            original_content=row.get("original_content"),
            updated_content=row.get("updated_content") or "",
            status=ChangeStatus(row.get("status") or ChangeStatus.PENDING.value),
        )


@dataclass
class SyncedDocument:
    """A page that received the meeting update, with its retrieval relevance."""

    page_id: str
    title: str
    url: str
    relevance: float
    created: bool = False
