"""Jira Cloud REST (v3) client for creating issues from meeting action items."""

from __future__ import annotations

from datetime import date
from typing import Any

import httpx

from src.config import settings
from src.integrations.models import AtlassianConfig, PageLink


class JiraError(Exception):
    """Jira rejected a request."""


def build_description(description: str, links: list[PageLink]) -> dict[str, Any]:
    """Build an Atlassian Document Format body, with linked pages as inline cards."""
    content: list[dict[str, Any]] = [
        {"type": "paragraph", "content": [{"type": "text", "text": description or " "}]}
    ]
    if links:
        content.append(
            {
                "type": "paragraph",
                "content": [
                    {
                        "type": "text",
                        "text": "Related Confluence Pages:",
                        "marks": [{"type": "strong"}],
                    }
                ],
            }
        )
        content.append(
            {
                "type": "bulletList",
                "content": [
                    {
                        "type": "listItem",
                        "content": [
                            {
                                "type": "paragraph",
                                "content": [{"type": "inlineCard", "attrs": {"url": link.url}}],
                            }
                        ],
                    }
                    for link in links
                ],
            }
        )
    return {"type": "doc", "version": 1, "content": content}


class JiraClient:
    """Synchronous Jira client; one instance per user configuration."""

    def __init__(self, base_url: str, api_key: str, timeout: float | None = None) -> None:
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
            timeout=timeout or settings.http_timeout_seconds,
        )

    @classmethod
    def from_config(cls, config: AtlassianConfig) -> JiraClient:
        return cls(config.base_url, config.api_key)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> JiraClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def create_issue(
        self,
        project_key: str,
        summary: str,
        description: str,
        *,
        issue_type: str = "Task",
        priority: str | None = None,
        assignee: str | None = None,
        due_date: date | None = None,
        links: list[PageLink] | None = None,
    ) -> str:
        """Create one issue and return its key (e.g. ``"OPS-42"``)."""
        fields: dict[str, Any] = {
            "project": {"key": project_key},
            "summary": summary,
            "description": build_description(description, links or []),
            "issuetype": {"name": issue_type},
        }
        if priority:
            fields["priority"] = {"name": priority}
        if assignee:
            fields["assignee"] = {"name": assignee}
        if due_date:
            fields["duedate"] = due_date.isoformat()

        response = self._http.post("/rest/api/3/issue", json={"fields": fields})
        if response.is_error:
            raise JiraError(f"Failed to create Jira issue: {response.status_code} {response.text}")
        data = response.json()
        return str(data.get("key") or data["id"])
