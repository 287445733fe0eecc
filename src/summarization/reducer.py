"""Map-reduce compression of long documents under a size budget."""

from __future__ import annotations

import logging

from src.ingestion.chunking import PARAGRAPH_SEPARATOR, chunk_text, truncate_bytes
from src.summarization.summarizer import Summarizer

logger = logging.getLogger(__name__)


class DocumentReducer:
    """Reduce a document to roughly ``soft_budget`` characters.

    Short documents pass through untouched.  Longer ones are chunked and
    each chunk summarized (map); if the joined summaries still exceed the
    hard limit, one more summarization pass runs over them (reduce).  There
    are never more than two passes.  Any failure, or a result still above
    the hard limit, falls back to truncating the original document.
    """

    def __init__(self, summarizer: Summarizer) -> None:
        self._summarizer = summarizer
        self.config = summarizer.config

    @property
    def soft_budget(self) -> int:
        return self.config.soft_budget

    @property
    def hard_limit(self) -> int:
        return self.config.hard_limit

    def reduce(self, document: str, query: str | None = None) -> str:
        if len(document) <= self.soft_budget:
            return document

        try:
            result = self._map_reduce(document, query)
        except Exception:
            logger.exception("Reduction failed for %d chars; truncating", len(document))
            return truncate_bytes(document, self.soft_budget)

        if len(result) > self.hard_limit:
            logger.warning(
                "Reduced text still %d chars (limit %d); truncating original",
                len(result),
                self.hard_limit,
            )
            return truncate_bytes(document, self.soft_budget)
        return result

    def _map_reduce(self, document: str, query: str | None) -> str:
        chunk_size = max(1, self.soft_budget - self.config.prompt_overhead)
        chunks = chunk_text(document, chunk_size)
        logger.info("Reducing %d chars in %d chunks", len(document), len(chunks))

        joined = PARAGRAPH_SEPARATOR.join(self._summarizer.summarize_many(chunks, query))
        if len(joined) > self.hard_limit:
            logger.info("Final summarization pass over %d chars", len(joined))
            joined = self._summarizer.summarize(joined, query)
        return joined
