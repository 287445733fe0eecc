"""Confluence Cloud REST (v2) client for reading, updating and creating pages."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from src.config import settings
from src.integrations.models import AtlassianConfig

logger = logging.getLogger(__name__)


class ConfluenceError(Exception):
    """Confluence rejected a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class VersionConflict(ConfluenceError):
    """The page changed since it was read (optimistic version check failed)."""


@dataclass
class ConfluencePage:
    id: str
    title: str
    content: str
    version: int
    url: str = ""


class ConfluenceClient:
    """Synchronous Confluence client; one instance per user configuration."""

    def __init__(self, base_url: str, api_key: str, timeout: float | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = httpx.Client(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
            timeout=timeout or settings.http_timeout_seconds,
        )

    @classmethod
    def from_config(cls, config: AtlassianConfig) -> ConfluenceClient:
        return cls(config.base_url, config.api_key)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> ConfluenceClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def page_url(self, page_id: str) -> str:
        return f"{self.base_url}/wiki/spaces/viewpage.action?pageId={page_id}"

    def get_page(self, page_id: str) -> ConfluencePage:
        response = self._http.get(
            f"/wiki/api/v2/pages/{page_id}", params={"body-format": "storage"}
        )
        _raise_for_status(response, "get Confluence page")
        return self._parse_page(response.json())

    def update_page(self, page_id: str, title: str, content: str, version: int) -> int:
        """Write *content* as page version *version*; return the new version number.

        Raises:
            VersionConflict: Someone else already wrote that version.
            ConfluenceError: Any other rejection.
        """
        response = self._http.put(
            f"/wiki/api/v2/pages/{page_id}",
            json={
                "id": page_id,
                "status": "current",
                "title": title,
                "version": {"number": version},
                "body": {"representation": "storage", "value": content},
            },
        )
        _raise_for_status(response, "update Confluence page")
        data = response.json()
        return int((data.get("version") or {}).get("number", version))

    def create_page(self, space_id: str, title: str, content: str) -> ConfluencePage:
        response = self._http.post(
            "/wiki/api/v2/pages",
            json={
                "spaceId": space_id,
                "status": "current",
                "title": title,
                "body": {"representation": "storage", "value": content},
            },
        )
        _raise_for_status(response, "create Confluence page")
        page = self._parse_page(response.json())
        if not page.content:
            page.content = content
        return page

    def list_space_pages(self, space_id: str) -> list[ConfluencePage]:
        """Return every current page in a space, with storage-format bodies."""
        pages: list[ConfluencePage] = []
        url: str | None = f"/wiki/api/v2/spaces/{space_id}/pages"
        params: dict[str, Any] | None = {"body-format": "storage", "limit": 250}

        while url:
            response = self._http.get(url, params=params)
            _raise_for_status(response, "list Confluence pages")
            data = response.json()
            pages.extend(self._parse_page(item) for item in data.get("results", []))
            url = (data.get("_links") or {}).get("next")
            params = None  # the next link already carries the cursor

        logger.info("Listed %d pages in space %s", len(pages), space_id)
        return pages

    def _parse_page(self, data: dict[str, Any]) -> ConfluencePage:
        webui = (data.get("_links") or {}).get("webui")
        return ConfluencePage(
            id=str(data["id"]),
            title=data.get("title", ""),
            content=((data.get("body") or {}).get("storage") or {}).get("value", ""),
            version=int((data.get("version") or {}).get("number", 1)),
            url=f"{self.base_url}/wiki{webui}" if webui else self.page_url(str(data["id"])),
        )


def _raise_for_status(response: httpx.Response, action: str) -> None:
    if response.status_code == 409:
        raise VersionConflict(f"Failed to {action}: version conflict", status_code=409)
    if response.is_error:
        raise ConfluenceError(
            f"Failed to {action}: {response.status_code} {response.text}",
            status_code=response.status_code,
        )
