"""Supabase storage helpers: client factory and the pgvector document store."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, cast

from supabase import Client, create_client

from src.config import settings
from src.ingestion.embeddings import embed_texts
from src.ingestion.models import Chunk, DocumentMetadata
from src.retrieval.models import RetrievalMatch

logger = logging.getLogger(__name__)

INSERT_BATCH_SIZE = 50

EmbedFn = Callable[[list[str]], list[list[float]]]


def get_supabase_client() -> Client:
    """Create and return a Supabase client from settings."""
    return create_client(settings.supabase_url, settings.supabase_key)


class SupabaseVectorStore:
    """Embedding store backed by a Supabase ``documents`` table.

    Rows are ``(content, metadata, embedding)`` triples; similarity search
    goes through the ``match_documents`` SQL function.  Documents are
    addressed by ``metadata->>source_id``.
    """

    def __init__(
        self,
        client: Client,
        table_name: str = "documents",
        query_name: str = "match_documents",
        embed: EmbedFn = embed_texts,
    ) -> None:
        self._client = client
        self._table_name = table_name
        self._query_name = query_name
        self._embed = embed

    def upsert(self, rows: list[tuple[str, DocumentMetadata, list[float]]]) -> None:
        """Insert content/metadata/embedding rows (batched by 50)."""
        records: list[dict[str, Any]] = [
            {"content": content, "metadata": metadata.to_dict(), "embedding": embedding}
            for content, metadata, embedding in rows
        ]
        for i in range(0, len(records), INSERT_BATCH_SIZE):
            self._client.table(self._table_name).insert(
                records[i : i + INSERT_BATCH_SIZE]
            ).execute()

    def add_chunks(self, chunks: list[Chunk]) -> int:
        """Embed *chunks* and store them under their parent document's metadata."""
        if not chunks:
            return 0
        for chunk in chunks:
            if chunk.document is None:
                raise ValueError("Chunk has no parent document; cannot store metadata")

        logger.info(
            "Storing %d chunks (%d bytes) for %s",
            len(chunks),
            sum(c.size_bytes for c in chunks),
            chunks[0].document.metadata.source_id,  # type: ignore[union-attr]
        )
        embeddings = self._embed([c.text for c in chunks])
        self.upsert(
            [
                (chunk.text, chunk.document.metadata, embedding)  # type: ignore[union-attr]
                for chunk, embedding in zip(chunks, embeddings, strict=True)
            ]
        )
        return len(chunks)

    def similarity_search(self, query_text: str, k: int) -> list[RetrievalMatch]:
        """Return up to *k* stored chunks most similar to *query_text*, best first."""
        [embedding] = self._embed([query_text])
        result = self._client.rpc(
            self._query_name,
            {"query_embedding": embedding, "match_count": k, "filter": {}},
        ).execute()
        # Supabase .data is typed as JSON (broad union); cast to concrete type.
        rows = cast(list[dict[str, Any]], result.data or [])
        return [RetrievalMatch.from_row(row) for row in rows]

    def get_content_hash(self, source_id: str) -> str | None:
        """Return the content hash recorded for *source_id*, or None if not stored."""
        result = (
            self._client.table(self._table_name)
            .select("metadata")
            .eq("metadata->>source_id", source_id)
            .limit(1)
            .execute()
        )
        rows = cast(list[dict[str, Any]], result.data or [])
        if not rows:
            return None
        return (rows[0].get("metadata") or {}).get("content_hash")

    def delete_source(self, source_id: str) -> None:
        """Delete every stored chunk of *source_id*."""
        self._client.table(self._table_name).delete().eq(
            "metadata->>source_id", source_id
        ).execute()
