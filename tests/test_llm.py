"""Tests for the Anthropic wrapper (client is mocked)."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from anthropic.types import TextBlock

from src.llm import TokenEvent, complete, stream_tokens


@patch("src.llm.get_anthropic_client")
def test_complete_joins_text_blocks(factory: MagicMock) -> None:
    response = MagicMock()
    response.content = [
        TextBlock(type="text", text="Hello "),
        MagicMock(),  # non-text blocks are skipped
        TextBlock(type="text", text="world"),
    ]
    factory.return_value.messages.create.return_value = response

    assert complete("prompt", system="be brief") == "Hello world"
    kwargs = factory.return_value.messages.create.call_args.kwargs
    assert kwargs["system"] == "be brief"
    assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]


@patch("src.llm.get_anthropic_client")
def test_complete_omits_empty_system(factory: MagicMock) -> None:
    factory.return_value.messages.create.return_value.content = []
    complete("prompt")
    assert "system" not in factory.return_value.messages.create.call_args.kwargs


@patch("src.llm.get_anthropic_client")
def test_stream_tokens_ends_with_single_end_event(factory: MagicMock) -> None:
    stream = MagicMock()
    stream.text_stream = iter(["a", "b"])
    factory.return_value.messages.stream.return_value.__enter__.return_value = stream

    events = list(stream_tokens("prompt"))

    assert events == [TokenEvent("token", "a"), TokenEvent("token", "b"), TokenEvent("end")]
