"""Confluence space ingestion: initial vectorization and scheduled refresh."""

from __future__ import annotations

import logging
from collections.abc import Callable

from src.ingestion.models import Document, DocumentMetadata
from src.ingestion.pipeline import ingest_document, refresh_document
from src.ingestion.storage import SupabaseVectorStore
from src.integrations.confluence import ConfluenceClient, ConfluencePage
from src.integrations.models import AtlassianConfig
from src.summarization.reducer import DocumentReducer

logger = logging.getLogger(__name__)

ConfluenceFactory = Callable[[AtlassianConfig], ConfluenceClient]


def page_to_document(page: ConfluencePage, space_key: str, user_id: str | None) -> Document:
    return Document(
        content=page.content,
        metadata=DocumentMetadata(
            source_id=page.id,
            title=page.title,
            url=page.url,
            space_key=space_key,
            user_id=user_id,
        ),
    )


def vectorize_space(
    config: AtlassianConfig,
    space_key: str,
    *,
    confluence: ConfluenceClient,
    store: SupabaseVectorStore,
    reducer: DocumentReducer | None = None,
) -> int:
    """Ingest every page of *space_key*; return the number of pages stored.

    Pages that fail are logged and skipped.
    """
    stored = 0
    for page in confluence.list_space_pages(space_key):
        try:
            ingest_document(page_to_document(page, space_key, config.user_id), store, reducer)
            stored += 1
        except Exception:
            logger.exception("Failed to ingest page %s from space %s", page.id, space_key)
    return stored


def refresh_spaces(
    configs: list[AtlassianConfig],
    *,
    store: SupabaseVectorStore,
    confluence_factory: ConfluenceFactory = ConfluenceClient.from_config,
) -> int:
    """Re-ingest every page whose content changed since it was stored.

    Users without a space key are skipped; a failing user or page is logged
    and does not stop the others.

    Returns:
        The number of pages that were (re)ingested.
    """
    refreshed = 0
    for config in configs:
        if not config.space_key:
            continue
        try:
            with confluence_factory(config) as confluence:
                pages = confluence.list_space_pages(config.space_key)
        except Exception:
            logger.exception("Failed to list pages for user %s", config.user_id)
            continue

        for page in pages:
            try:
                document = page_to_document(page, config.space_key, config.user_id)
                if refresh_document(document, store):
                    refreshed += 1
            except Exception:
                logger.exception("Failed to refresh page %s for user %s", page.id, config.user_id)

    logger.info("Refreshed %d pages across %d configurations", refreshed, len(configs))
    return refreshed
