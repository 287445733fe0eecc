"""Chunked similarity retrieval with first-occurrence deduplication."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol

from src.config import settings
from src.ingestion.chunking import chunk_text
from src.retrieval.models import RetrievalMatch

logger = logging.getLogger(__name__)


class SimilaritySearch(Protocol):
    def similarity_search(self, query_text: str, k: int) -> list[RetrievalMatch]: ...


def deduplicate_matches(matches: Iterable[RetrievalMatch]) -> list[RetrievalMatch]:
    """Keep the first match seen for each ``document_id``; drop later ones."""
    unique: dict[str, RetrievalMatch] = {}
    for match in matches:
        if match.document_id not in unique:
            unique[match.document_id] = match
    return list(unique.values())


def retrieve(
    query: str,
    store: SimilaritySearch,
    top_k_per_chunk: int | None = None,
    chunk_size: int | None = None,
) -> list[RetrievalMatch]:
    """Find stored documents relevant to *query*.

    The query is chunked the same way documents are at ingestion, each chunk
    is searched independently, and the concatenated results (query-chunk
    order, then rank order) are deduplicated by document identity.

    Args:
        query: Free-text query.
        store: Embedding store to search.
        top_k_per_chunk: Matches requested per query chunk.
        chunk_size: Query chunk size in bytes (defaults to the ingestion size).

    Returns:
        Deduplicated matches; empty when nothing matched or every search failed.
    """
    k = top_k_per_chunk or settings.retrieval_top_k
    query_chunks = chunk_text(query, chunk_size or settings.chunk_size)
    if not query_chunks:
        return []

    def search_chunk(text: str) -> list[RetrievalMatch]:
        try:
            return store.similarity_search(text, k)
        except Exception:
            logger.exception("Similarity search failed for query chunk of %d chars", len(text))
            return []

    workers = max(1, min(settings.retrieval_workers, len(query_chunks)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        per_chunk = list(pool.map(search_chunk, query_chunks))

    matches = deduplicate_matches(m for results in per_chunk for m in results)
    logger.info(
        "Retrieved %d unique documents from %d query chunks", len(matches), len(query_chunks)
    )
    return matches
