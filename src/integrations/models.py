"""Shared models for the Atlassian integrations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class AtlassianConfig:
    """Per-user connection settings for Confluence and Jira."""

    user_id: str
    base_url: str
    api_key: str
    space_key: str | None = None
    jira_project_key: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> AtlassianConfig:
        return cls(
            user_id=str(row["user_id"]),
            base_url=str(row["base_url"]).rstrip("/"),
            api_key=str(row["api_key"]),
            space_key=row.get("space_key"),
            jira_project_key=row.get("jira_project_key"),
        )


@dataclass
class PageLink:
    """A wiki page an issue should point back to."""

    page_id: str
    title: str
    url: str
