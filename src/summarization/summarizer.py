"""Best-effort chunk summarization through a shared rate limiter."""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from src.pipeline_config import PipelineConfig, SummarizationStrategy
from src.summarization.prompts import build_summary_prompt
from src.summarization.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

CompleteFn = Callable[[str], str]


def plan_batches(sizes: list[int], max_items: int, max_chars: int) -> list[list[int]]:
    """Group item indices into consecutive batches.

    A batch closes when adding the next item would exceed *max_items* items
    or *max_chars* total size.  An item larger than *max_chars* gets a
    batch of its own.

    Args:
        sizes: Size of each item, in input order.
        max_items: Maximum items per batch.
        max_chars: Maximum cumulative size per batch.

    Returns:
        Lists of indices; flattening them yields ``range(len(sizes))``.
    """
    batches: list[list[int]] = []
    current: list[int] = []
    current_size = 0

    for index, size in enumerate(sizes):
        if current and (len(current) >= max_items or current_size + size > max_chars):
            batches.append(current)
            current = []
            current_size = 0
        current.append(index)
        current_size += size

    if current:
        batches.append(current)
    return batches


class Summarizer:
    """Compresses text with the generation API; never raises to the caller."""

    def __init__(
        self,
        complete: CompleteFn,
        rate_limiter: RateLimiter,
        config: PipelineConfig | None = None,
    ) -> None:
        self._complete = complete
        self._rate_limiter = rate_limiter
        self.config = config or PipelineConfig()

    def summarize(self, text: str, query: str | None = None) -> str:
        """Summarize *text*, optionally guided by *query*.

        Returns the original text when the call fails, times out, comes back
        empty, or comes back longer than the input.
        """
        prompt = build_summary_prompt(text, query, self.config.soft_budget)
        try:
            with self._rate_limiter:
                result = self._complete(prompt)
        except Exception:
            logger.warning(
                "Summarization failed for %d chars; keeping input", len(text), exc_info=True
            )
            return text

        result = (result or "").strip()
        if not result or len(result) > len(text):
            return text
        return result

    def summarize_many(self, texts: list[str], query: str | None = None) -> list[str]:
        """Summarize every text; output order always matches input order."""
        if self.config.summarization_strategy is SummarizationStrategy.BATCHED:
            return self._summarize_batched(texts, query)
        return [self.summarize(text, query) for text in texts]

    def _summarize_batched(self, texts: list[str], query: str | None) -> list[str]:
        batches = plan_batches(
            [len(t) for t in texts],
            self.config.batch_max_items,
            self.config.batch_max_chars,
        )
        logger.info("Summarizing %d chunks in %d batches", len(texts), len(batches))

        results: list[str] = []
        with ThreadPoolExecutor(max_workers=max(1, self.config.max_workers)) as pool:
            for batch in batches:
                # map() yields in submission order regardless of completion order
                results.extend(pool.map(lambda i: self.summarize(texts[i], query), batch))
        return results
