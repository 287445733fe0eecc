"""Tests for document ingestion, supersession, space sync and the vector store."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from src.ingestion.models import Chunk, Document, DocumentMetadata
from src.ingestion.pipeline import content_hash, ingest_document, refresh_document
from src.ingestion.spaces import refresh_spaces, vectorize_space
from src.ingestion.storage import SupabaseVectorStore
from src.integrations.confluence import ConfluencePage
from tests.fakes import FakeConfluence, FakeStore

RUNBOOK = "Runbook.\n\nStep one. Step two."


def _doc(source_id: str = "page-1", content: str = RUNBOOK) -> Document:
    metadata = DocumentMetadata(source_id=source_id, title="Runbook")
    return Document(content=content, metadata=metadata)


class TestDocumentMetadata:
    def test_round_trip_keeps_extra(self) -> None:
        metadata = DocumentMetadata(source_id="42", title="T", extra={"content_hash": "abc"})
        data = metadata.to_dict()
        assert data["source_id"] == "42"
        assert data["content_hash"] == "abc"
        assert DocumentMetadata.from_dict(data) == metadata

    def test_known_keys_override_extra(self) -> None:
        metadata = DocumentMetadata(source_id="42", extra={"source_id": "spoofed"})
        assert metadata.to_dict()["source_id"] == "42"

    def test_from_none(self) -> None:
        assert DocumentMetadata.from_dict(None).source_id == ""


class TestIngestDocument:
    def test_stores_chunks_with_hash(self) -> None:
        store = FakeStore()
        count = ingest_document(_doc(), store, chunk_size=12)

        assert count == len(store.chunks) > 1
        assert store.hashes["page-1"] == content_hash(_doc().content)
        assert all(c.document.metadata.title == "Runbook" for c in store.chunks)

    def test_reducer_output_is_chunked_but_hash_is_of_source(self) -> None:
        store = FakeStore()
        reducer = MagicMock()
        reducer.reduce.return_value = "Reduced."

        ingest_document(_doc(), store, reducer=reducer)

        assert [c.text for c in store.chunks] == ["Reduced."]
        assert store.hashes["page-1"] == content_hash(_doc().content)

    def test_input_metadata_not_mutated(self) -> None:
        document = _doc()
        ingest_document(document, FakeStore())
        assert "content_hash" not in document.metadata.extra


class TestRefreshDocument:
    def test_unchanged_document_skipped(self) -> None:
        store = FakeStore()
        ingest_document(_doc(), store)
        stored = list(store.chunks)

        assert refresh_document(_doc(), store) is False
        assert store.chunks == stored
        assert store.deleted == []

    def test_changed_document_superseded(self) -> None:
        store = FakeStore()
        ingest_document(_doc(content="Old text."), store)

        assert refresh_document(_doc(content="New text."), store) is True
        assert store.deleted == ["page-1"]
        assert [c.text for c in store.chunks] == ["New text."]

    def test_new_document_ingested_without_delete(self) -> None:
        store = FakeStore()
        assert refresh_document(_doc(), store) is True
        assert store.deleted == []


class TestSpaces:
    def test_vectorize_space_ingests_every_page(self, atlassian_config) -> None:
        confluence = FakeConfluence(
            [
                ConfluencePage("1", "One", "First page.", 1),
                ConfluencePage("2", "Two", "Second page.", 1),
            ]
        )
        store = FakeStore()

        assert vectorize_space(atlassian_config, "ENG", confluence=confluence, store=store) == 2
        metadata = store.chunks[0].document.metadata
        assert metadata.space_key == "ENG"
        assert metadata.user_id == "user-1"

    def test_refresh_spaces_only_changed_pages(self, atlassian_config) -> None:
        confluence = FakeConfluence(
            [
                ConfluencePage("1", "One", "First page.", 1),
                ConfluencePage("2", "Two", "Second page.", 1),
            ]
        )
        store = FakeStore()
        vectorize_space(atlassian_config, "ENG", confluence=confluence, store=store)
        confluence.pages["2"].content = "Second page, edited."

        refreshed = refresh_spaces(
            [atlassian_config], store=store, confluence_factory=lambda config: confluence
        )

        assert refreshed == 1
        assert store.deleted == ["2"]

    def test_refresh_skips_configs_without_space_and_failing_users(self, atlassian_config) -> None:
        no_space = MagicMock(space_key=None, user_id="user-2")
        factory = MagicMock(side_effect=RuntimeError("bad credentials"))

        refreshed = refresh_spaces(
            [no_space, atlassian_config], store=FakeStore(), confluence_factory=factory
        )

        assert refreshed == 0
        factory.assert_called_once_with(atlassian_config)


class TestSupabaseVectorStore:
    def test_add_chunks_embeds_and_inserts(self) -> None:
        client = MagicMock()
        embed = MagicMock(return_value=[[0.1, 0.2]])
        store = SupabaseVectorStore(client, embed=embed)
        document = _doc()

        assert store.add_chunks([Chunk.from_text("Step one.", document)]) == 1

        client.table.assert_called_with("documents")
        rows = client.table.return_value.insert.call_args.args[0]
        assert rows == [
            {
                "content": "Step one.",
                "metadata": document.metadata.to_dict(),
                "embedding": [0.1, 0.2],
            }
        ]

    def test_add_chunks_logs_total_size(self, caplog: pytest.LogCaptureFixture) -> None:
        store = SupabaseVectorStore(MagicMock(), embed=MagicMock(return_value=[[0.1], [0.2]]))
        document = _doc()
        chunks = [Chunk.from_text("Step one.", document), Chunk.from_text("Étape", document)]

        with caplog.at_level("INFO", logger="src.ingestion.storage"):
            store.add_chunks(chunks)

        assert [c.size_bytes for c in chunks] == [9, 6]
        assert "Storing 2 chunks (15 bytes)" in caplog.text

    def test_add_chunks_requires_parent_document(self) -> None:
        store = SupabaseVectorStore(MagicMock(), embed=MagicMock())
        with pytest.raises(ValueError):
            store.add_chunks([Chunk.from_text("orphan")])

    def test_similarity_search_calls_rpc(self) -> None:
        client = MagicMock()
        client.rpc.return_value.execute.return_value.data = [
            {"content": "c", "metadata": {"source_id": "p1", "title": "P"}, "similarity": 0.8}
        ]
        store = SupabaseVectorStore(client, embed=MagicMock(return_value=[[0.5]]))

        matches = store.similarity_search("query", 3)

        client.rpc.assert_called_once_with(
            "match_documents", {"query_embedding": [0.5], "match_count": 3, "filter": {}}
        )
        assert matches[0].document_id == "p1"
        assert matches[0].score == 0.8

    def test_get_content_hash(self) -> None:
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value.limit.return_value
        query.execute.return_value.data = [{"metadata": {"content_hash": "h1"}}]
        store = SupabaseVectorStore(client, embed=MagicMock())

        assert store.get_content_hash("p1") == "h1"
        client.table.return_value.select.return_value.eq.assert_called_once_with(
            "metadata->>source_id", "p1"
        )

    def test_get_content_hash_missing(self) -> None:
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value.limit.return_value
        query.execute.return_value.data = []
        assert SupabaseVectorStore(client, embed=MagicMock()).get_content_hash("p1") is None
