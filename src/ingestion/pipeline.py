"""Document ingestion: (reduce ->) chunk -> embed -> store, and supersession on change."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import replace

from src.config import settings
from src.ingestion.chunking import chunk_text
from src.ingestion.models import Chunk, Document
from src.ingestion.storage import SupabaseVectorStore
from src.summarization.reducer import DocumentReducer

logger = logging.getLogger(__name__)


def content_hash(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def ingest_document(
    document: Document,
    store: SupabaseVectorStore,
    reducer: DocumentReducer | None = None,
    chunk_size: int | None = None,
) -> int:
    """Chunk, embed and store one document.

    Args:
        document: The document to store.
        store: Target embedding store.
        reducer: When given, the content is reduced before chunking.
        chunk_size: Chunk size in bytes (defaults to ``settings.chunk_size``).

    Returns:
        The number of chunks stored.
    """
    content = reducer.reduce(document.content) if reducer else document.content

    # The hash is of the source content, so refreshes compare like with like.
    metadata = replace(
        document.metadata,
        extra={**document.metadata.extra, "content_hash": content_hash(document.content)},
    )
    stored = replace(document, content=content, metadata=metadata)

    chunks = [
        Chunk.from_text(text, stored)
        for text in chunk_text(content, chunk_size or settings.chunk_size)
    ]
    count = store.add_chunks(chunks)
    logger.info("Stored %d chunks for %s", count, metadata.source_id)
    return count


def refresh_document(
    document: Document,
    store: SupabaseVectorStore,
    reducer: DocumentReducer | None = None,
) -> bool:
    """Re-ingest *document* if its content changed since it was stored.

    A changed document is superseded: its stored chunks are deleted and the
    new content is ingested from scratch.

    Returns:
        True if the document was (re)ingested, False if it was unchanged.
    """
    source_id = document.metadata.source_id
    stored_hash = store.get_content_hash(source_id)
    if stored_hash == content_hash(document.content):
        return False

    if stored_hash is not None:
        store.delete_source(source_id)
    ingest_document(document, store, reducer)
    return True
