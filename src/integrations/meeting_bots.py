"""Meeting recording bot provider: URL allow-listing and bot creation."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

import httpx

from src.config import settings


class MeetingUrlNotAllowed(ValueError):
    """The meeting URL is not on a supported meeting platform."""


class MeetingBotApiError(Exception):
    """The bot provider failed or answered with something unusable."""

    def __init__(self, message: str, status_code: int = 502) -> None:
        super().__init__(message)
        self.status_code = status_code


def validate_meeting_url(url: str, allowed_domains: list[str] | None = None) -> str:
    """Return *url* unchanged if it points at an allowed meeting host.

    The host must equal an allowed domain or be a subdomain of one
    (``us02web.zoom.us`` passes, ``evilzoom.us`` does not).

    Raises:
        MeetingUrlNotAllowed: Anything else, including malformed URLs.
    """
    domains = allowed_domains if allowed_domains is not None else settings.allowed_meeting_domains
    parsed = urlparse(url.strip())
    host = (parsed.hostname or "").lower()

    if parsed.scheme != "https" or not host:
        raise MeetingUrlNotAllowed(f"Not a valid https meeting URL: {url!r}")
    if not any(host == d or host.endswith(f".{d}") for d in domains):
        raise MeetingUrlNotAllowed(
            f"Meeting host {host!r} is not supported. Allowed: {', '.join(domains)}"
        )
    return url.strip()


class MeetingBotApi:
    """Client for the external bot provider's ``/bots`` endpoint."""

    def __init__(self, base_url: str | None = None, api_key: str | None = None) -> None:
        self._http = httpx.Client(
            base_url=(base_url or settings.meeting_api_url).rstrip("/"),
            headers={
                "Content-Type": "application/json",
                "x-spoke-api-key": api_key or settings.meeting_api_key,
            },
            timeout=settings.http_timeout_seconds,
        )

    def close(self) -> None:
        self._http.close()

    def create_bot(self, meeting_url: str, bot_name: str, webhook_url: str) -> dict[str, Any]:
        """Ask the provider to send a bot into the meeting.

        Returns:
            The provider's JSON response; always contains ``bot_id``.
        """
        try:
            response = self._http.post(
                "/bots",
                json={
                    "meeting_url": meeting_url,
                    "bot_name": bot_name,
                    "webhook_url": webhook_url,
                    "reserved": False,
                    "recording_mode": "audio_only",
                    "speech_to_text": "Gladia",
                },
            )
        except httpx.HTTPError as exc:
            raise MeetingBotApiError(f"Bot provider unreachable: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise MeetingBotApiError("Invalid response from bot API") from exc

        if response.is_error:
            message = data.get("message", "Unknown error") if isinstance(data, dict) else data
            raise MeetingBotApiError(
                f"Bot creation failed: {message}", status_code=response.status_code
            )
        if not isinstance(data, dict) or not data.get("bot_id"):
            raise MeetingBotApiError("Invalid response from bot API: missing bot_id")
        return data
