"""Thin wrapper around the Anthropic Messages API.

``complete`` returns the aggregated text of one call; ``stream_tokens``
yields :class:`TokenEvent` values for whatever component delivers tokens
to a client.  Neither retries automatically.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Literal

from anthropic import Anthropic
from anthropic.types import TextBlock

from src.config import settings


@dataclass(frozen=True)
class TokenEvent:
    """One event in a streamed generation: a token, the end marker, or an error."""

    kind: Literal["token", "end", "error"]
    text: str = ""


def get_anthropic_client() -> Anthropic:
    """Anthropic client with the configured timeout and retries disabled."""
    return Anthropic(
        api_key=settings.anthropic_api_key,
        timeout=settings.llm_timeout_seconds,
        max_retries=0,
    )


def complete(
    prompt: str,
    *,
    system: str | None = None,
    max_tokens: int = 4096,
    model: str | None = None,
) -> str:
    """Run one completion and return its text."""
    client = get_anthropic_client()
    kwargs: dict[str, object] = {}
    if system:
        kwargs["system"] = system
    response = client.messages.create(
        model=model or settings.llm_model,
        max_tokens=max_tokens,
        messages=[{"role": "user", "content": prompt}],
        **kwargs,  # type: ignore[arg-type]
    )
    return "".join(block.text for block in response.content if isinstance(block, TextBlock))


def stream_tokens(
    prompt: str,
    *,
    system: str | None = None,
    max_tokens: int = 1024,
    model: str | None = None,
) -> Iterator[TokenEvent]:
    """Yield generated text as token events, then a single ``end`` event."""
    client = get_anthropic_client()
    kwargs: dict[str, object] = {}
    if system:
        kwargs["system"] = system
    with client.messages.stream(
        model=model or settings.llm_model,
        max_tokens=max_tokens,
        messages=[{"role": "user", "content": prompt}],
        **kwargs,  # type: ignore[arg-type]
    ) as stream:
        for text in stream.text_stream:
            yield TokenEvent(kind="token", text=text)
    yield TokenEvent(kind="end")
