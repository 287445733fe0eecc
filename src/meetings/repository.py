"""Supabase persistence for meeting bots, document changes and Atlassian configs."""

from __future__ import annotations

from typing import Any, cast

from supabase import Client

from src.integrations.models import AtlassianConfig
from src.meetings.models import ChangeStatus, DocumentChange, MeetingBot


def _rows(result: Any) -> list[dict[str, Any]]:
    # Supabase .data is typed as JSON (broad union); cast to concrete type.
    return cast(list[dict[str, Any]], result.data or [])


class MeetingRepository:
    """Table access for the meeting pipeline (``meeting_bots``, ``document_changes``,
    ``atlassian_config``)."""

    def __init__(self, client: Client) -> None:
        self._client = client

    # -- meeting_bots --------------------------------------------------------

    def get_bot(self, bot_id: str) -> MeetingBot | None:
        """Look up a bot by the provider's ``bot_id``."""
        result = self._client.table("meeting_bots").select("*").eq("bot_id", bot_id).execute()
        rows = _rows(result)
        return MeetingBot.from_row(rows[0]) if rows else None

    def get_bot_by_id(self, id: str) -> MeetingBot | None:
        result = self._client.table("meeting_bots").select("*").eq("id", id).execute()
        rows = _rows(result)
        return MeetingBot.from_row(rows[0]) if rows else None

    def create_bot(
        self, bot_id: str, bot_name: str, meeting_url: str, user_id: str | None
    ) -> MeetingBot:
        result = (
            self._client.table("meeting_bots")
            .insert(
                {
                    "bot_id": bot_id,
                    "bot_name": bot_name,
                    "meeting_url": meeting_url,
                    "user_id": user_id,
                    "status": "pending",
                }
            )
            .execute()
        )
        return MeetingBot.from_row(_rows(result)[0])

    def set_bot_status(self, bot_id: str, status: str) -> None:
        self._client.table("meeting_bots").update({"status": status}).eq("bot_id", bot_id).execute()

    # -- document_changes ----------------------------------------------------

    def record_change(self, change: DocumentChange) -> DocumentChange:
        result = self._client.table("document_changes").insert(change.to_row()).execute()
        return DocumentChange.from_row(_rows(result)[0])

    def get_change(self, change_id: str) -> DocumentChange | None:
        result = self._client.table("document_changes").select("*").eq("id", change_id).execute()
        rows = _rows(result)
        return DocumentChange.from_row(rows[0]) if rows else None

    def set_change_status(self, change_id: str, status: ChangeStatus) -> None:
        self._client.table("document_changes").update({"status": status.value}).eq(
            "id", change_id
        ).execute()

    # -- atlassian_config ----------------------------------------------------

    def get_atlassian_config(self, user_id: str) -> AtlassianConfig | None:
        result = (
            self._client.table("atlassian_config").select("*").eq("user_id", user_id).execute()
        )
        rows = _rows(result)
        return AtlassianConfig.from_row(rows[0]) if rows else None

    def list_atlassian_configs(self) -> list[AtlassianConfig]:
        result = self._client.table("atlassian_config").select("*").execute()
        return [AtlassianConfig.from_row(row) for row in _rows(result)]

    def set_space_key(self, user_id: str, space_key: str) -> None:
        self._client.table("atlassian_config").update({"space_key": space_key}).eq(
            "user_id", user_id
        ).execute()
