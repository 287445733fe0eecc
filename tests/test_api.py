"""Tests for API endpoints (no external API keys required).

Supabase, Confluence, Jira and the bot provider are swapped for in-memory
fakes through FastAPI dependency overrides.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest
from anthropic import APIStatusError
from fastapi.testclient import TestClient

from src.api.dependencies import (
    get_bot_api,
    get_meeting_services,
    get_reducer,
    get_vector_store,
)
from src.api.main import app
from src.integrations.confluence import ConfluencePage
from src.integrations.meeting_bots import MeetingBotApiError
from src.llm import TokenEvent
from src.meetings.lifecycle import MeetingServices
from src.meetings.models import AnalysisResult, ChangeStatus, DocumentChange
from tests.fakes import (
    FakeConfluence,
    FakeJira,
    FakeRepository,
    FakeStore,
    PassThroughReducer,
    make_match,
)


@pytest.fixture
def confluence() -> FakeConfluence:
    return FakeConfluence([ConfluencePage("p1", "Runbook", "<p>one</p>", 1)])


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def bot_api() -> MagicMock:
    api = MagicMock()
    api.create_bot.return_value = {"bot_id": "b-new"}
    return api


@pytest.fixture
def client(repository: FakeRepository, store, confluence, bot_api, atlassian_config):
    repository.configs[atlassian_config.user_id] = atlassian_config
    services = MeetingServices(
        repository=repository,
        store=store,
        confluence_factory=lambda config: confluence,
        jira_factory=lambda config: FakeJira(),
    )
    app.dependency_overrides[get_meeting_services] = lambda: services
    app.dependency_overrides[get_vector_store] = lambda: store
    app.dependency_overrides[get_bot_api] = lambda: bot_api
    app.dependency_overrides[get_reducer] = lambda: PassThroughReducer()
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200


# ---------------------------------------------------------------------------
# Meeting bots
# ---------------------------------------------------------------------------


class TestCreateBotEndpoint:
    def test_creates_pending_bot(self, client: TestClient, bot_api, repository) -> None:
        response = client.post(
            "/api/meeting/bot",
            json={"meeting_url": "https://meet.google.com/abc-defg-hij", "user_id": "user-1"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "pending"
        assert repository.get_bot("b-new").user_id == "user-1"
        webhook_url = bot_api.create_bot.call_args.args[2]
        assert webhook_url.endswith("/api/meeting/webhook")

    def test_rejects_unsupported_url(self, client: TestClient, bot_api) -> None:
        response = client.post("/api/meeting/bot", json={"meeting_url": "https://evilzoom.us/j/1"})
        assert response.status_code == 400
        bot_api.create_bot.assert_not_called()

    def test_provider_error_status_passed_through(self, client: TestClient, bot_api) -> None:
        bot_api.create_bot.side_effect = MeetingBotApiError("quota", status_code=429)
        response = client.post(
            "/api/meeting/bot", json={"meeting_url": "https://us02web.zoom.us/j/1"}
        )
        assert response.status_code == 429

    def test_requires_meeting_url(self, client: TestClient) -> None:
        assert client.post("/api/meeting/bot", json={}).status_code == 422


class TestWebhookEndpoint:
    def test_unknown_event(self, client: TestClient) -> None:
        response = client.post(
            "/api/meeting/webhook", json={"event": "bot.exploded", "data": {"bot_id": "bot-1"}}
        )
        assert response.status_code == 400

    def test_unknown_bot(self, client: TestClient) -> None:
        response = client.post(
            "/api/meeting/webhook",
            json={
                "event": "bot.status_change",
                "data": {"bot_id": "nope", "status": {"code": "x"}},
            },
        )
        assert response.status_code == 404

    def test_status_change(self, client: TestClient, repository, sample_bot) -> None:
        repository.add_bot(sample_bot)
        response = client.post(
            "/api/meeting/webhook",
            json={
                "event": "bot.status_change",
                "data": {"bot_id": "bot-1", "status": {"code": "in_waiting_room"}},
            },
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "status": "in_waiting_room"}

    def test_complete_without_transcript(self, client: TestClient, repository, sample_bot) -> None:
        repository.add_bot(sample_bot)
        response = client.post(
            "/api/meeting/webhook", json={"event": "complete", "data": {"bot_id": "bot-1"}}
        )
        assert response.status_code == 400
        assert repository.status_updates == []

    @patch("src.meetings.lifecycle.analyze_transcript")
    def test_complete_runs_pipeline(
        self, mock_analyze: MagicMock, client: TestClient, repository, sample_bot, confluence
    ) -> None:
        mock_analyze.return_value = AnalysisResult(
            summary="Shipped.", key_points=[], action_items=[]
        )
        repository.add_bot(sample_bot)
        response = client.post(
            "/api/meeting/webhook",
            json={
                "event": "complete",
                "data": {
                    "bot_id": "bot-1",
                    "transcript": [{"speaker": "Alice", "words": [{"word": "Shipped."}]}],
                },
            },
        )

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        # No stored matches, so a meeting notes page is created.
        assert len(confluence.created) == 1


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


class TestQueryEndpoint:
    def test_validation(self, client: TestClient) -> None:
        assert client.post("/api/query", json={}).status_code == 422

    def test_no_matches(self, client: TestClient) -> None:
        response = client.post("/api/query", json={"question": "How do we deploy?"})
        assert response.status_code == 200
        assert response.json()["sources"] == []

    @patch("src.api.routes.query.generate_answer")
    def test_answer_with_sources(self, mock_generate: MagicMock, client: TestClient, store) -> None:
        store.matches = [make_match("p1", text="Run deploy.sh")]
        mock_generate.return_value = {"answer": "Use deploy.sh", "model": "m", "usage": {}}

        response = client.post("/api/query", json={"question": "How do we deploy?"})

        data = response.json()
        assert data["answer"] == "Use deploy.sh"
        assert data["sources"][0]["document_id"] == "p1"
        context = mock_generate.call_args.args[1]
        assert context == "[Source 1] Run deploy.sh"

    @patch("src.api.routes.query.generate_answer")
    def test_llm_unavailable_returns_503(
        self, mock_generate: MagicMock, client: TestClient, store
    ) -> None:
        store.matches = [make_match("p1")]
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        mock_generate.side_effect = APIStatusError(
            "overloaded", response=httpx.Response(529, request=request), body=None
        )

        response = client.post("/api/query", json={"question": "q"})
        assert response.status_code == 503

    @patch("src.api.routes.query.stream_answer")
    def test_stream(self, mock_stream: MagicMock, client: TestClient, store) -> None:
        store.matches = [make_match("p1")]
        mock_stream.return_value = iter(
            [TokenEvent("token", "Use "), TokenEvent("token", "deploy.sh"), TokenEvent("end")]
        )

        response = client.post("/api/query/stream", json={"question": "q"})

        events = [json.loads(line) for line in response.text.splitlines()]
        assert [e["type"] for e in events] == ["token", "token", "end"]
        assert "".join(e["text"] for e in events) == "Use deploy.sh"

    @patch("src.api.routes.query.stream_answer")
    def test_stream_error_event(self, mock_stream: MagicMock, client: TestClient, store) -> None:
        store.matches = [make_match("p1")]

        def failing(*args):
            yield TokenEvent("token", "partial")
            raise RuntimeError("connection reset")

        mock_stream.side_effect = failing

        response = client.post("/api/query/stream", json={"question": "q"})

        events = [json.loads(line) for line in response.text.splitlines()]
        assert events[-1]["type"] == "error"
        assert "end" not in [e["type"] for e in events]


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class TestDocumentEndpoints:
    def test_ingest(self, client: TestClient, store) -> None:
        response = client.post(
            "/api/documents",
            json={"source_id": "doc-1", "content": "Step one.\n\nStep two.", "title": "Guide"},
        )
        assert response.status_code == 200
        assert response.json() == {"source_id": "doc-1", "num_chunks": 1}
        assert store.chunks[0].document.metadata.title == "Guide"

    def test_ingest_empty_content(self, client: TestClient) -> None:
        response = client.post("/api/documents", json={"source_id": "doc-1", "content": "  "})
        assert response.status_code == 400

    def test_vectorize_space(self, client: TestClient, repository, store) -> None:
        response = client.post(
            "/api/spaces/vectorize", json={"user_id": "user-1", "space_key": "DOCS"}
        )
        assert response.status_code == 200
        assert response.json() == {"space_key": "DOCS", "pages_ingested": 1}
        assert repository.configs["user-1"].space_key == "DOCS"

    def test_vectorize_unknown_user(self, client: TestClient) -> None:
        response = client.post(
            "/api/spaces/vectorize", json={"user_id": "ghost", "space_key": "DOCS"}
        )
        assert response.status_code == 404

    def test_cron_requires_secret(self, client: TestClient) -> None:
        with patch("src.api.routes.documents.settings") as mock_settings:
            mock_settings.cron_secret = "s3cret"
            assert client.post("/api/cron/update-documents").status_code == 401
            response = client.post(
                "/api/cron/update-documents", headers={"Authorization": "Bearer wrong"}
            )
            assert response.status_code == 401

    def test_cron_refreshes(self, client: TestClient, store) -> None:
        with patch("src.api.routes.documents.settings") as mock_settings:
            mock_settings.cron_secret = "s3cret"
            response = client.post(
                "/api/cron/update-documents", headers={"Authorization": "Bearer s3cret"}
            )
        assert response.status_code == 200
        assert response.json() == {"pages_refreshed": 1}

    def test_cron_disabled_without_secret(self, client: TestClient) -> None:
        with patch("src.api.routes.documents.settings") as mock_settings:
            mock_settings.cron_secret = ""
            response = client.post(
                "/api/cron/update-documents", headers={"Authorization": "Bearer "}
            )
        assert response.status_code == 401


class TestRevertEndpoint:
    def _change(self, repository, sample_bot, original: str | None) -> DocumentChange:
        repository.add_bot(sample_bot)
        return repository.record_change(
            DocumentChange(
                meeting_bot_id=sample_bot.id,
                page_id="p1",
                page_title="Runbook",
                original_content=original,
                updated_content="<p>one</p><p>update</p>",
                status=ChangeStatus.PENDING,
            )
        )

    def test_revert(self, client: TestClient, repository, sample_bot, confluence) -> None:
        confluence.pages["p1"].content = "<p>one</p><p>update</p>"
        change = self._change(repository, sample_bot, "<p>one</p>")

        response = client.post(f"/api/document-changes/{change.id}/revert")

        assert response.status_code == 200
        assert response.json()["status"] == "reverted"
        assert confluence.pages["p1"].content == "<p>one</p>"

    def test_created_page_cannot_be_reverted(
        self, client: TestClient, repository, sample_bot
    ) -> None:
        change = self._change(repository, sample_bot, None)
        response = client.post(f"/api/document-changes/{change.id}/revert")
        assert response.status_code == 409

    def test_unknown_change(self, client: TestClient) -> None:
        assert client.post("/api/document-changes/nope/revert").status_code == 404
