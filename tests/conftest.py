"""Shared pytest fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from src.integrations.models import AtlassianConfig
from src.meetings.models import MeetingBot
from tests.fakes import FakeRepository


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def atlassian_config() -> AtlassianConfig:
    return AtlassianConfig(
        user_id="user-1",
        base_url="https://example.atlassian.net",
        api_key="secret",
        space_key="ENG",
        jira_project_key="OPS",
    )


@pytest.fixture
def sample_bot() -> MeetingBot:
    return MeetingBot(
        id="row-bot",
        bot_id="bot-1",
        bot_name="TeamMind AI",
        meeting_url="https://meet.google.com/abc-defg-hij",
        user_id="user-1",
    )


@pytest.fixture
def sample_transcript() -> list[dict[str, Any]]:
    return [
        {
            "speaker": "Alice",
            "words": [{"word": "We"}, {"word": "ship"}, {"word": "v2"}, {"word": "Friday."}],
        },
        {
            "speaker": "Bob",
            "words": [{"word": "I'll"}, {"word": "update"}, {"word": "the"}, {"word": "runbook."}],
        },
    ]
