"""Pipeline configuration: strategy enums and PipelineConfig dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.config import settings


class SummarizationStrategy(str, Enum):
    """How chunk summarization calls are scheduled."""

    SERIAL = "serial"
    BATCHED = "batched"


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable configuration for the summarization pipeline.

    Holds the active scheduling strategy and the reducer budgets.  Defaults
    mirror the deployed behaviour (serial rate-limited calls, 8000-char
    soft budget, one extra pass above 1.5x the budget).
    """

    summarization_strategy: SummarizationStrategy = SummarizationStrategy.SERIAL
    soft_budget: int = 8000
    prompt_overhead: int = 1200
    final_pass_ratio: float = 1.5
    batch_max_items: int = 4
    batch_max_chars: int = 24000
    max_workers: int = 4

    @property
    def hard_limit(self) -> int:
        """Length the reducer output never exceeds."""
        return int(self.soft_budget * self.final_pass_ratio)

    @classmethod
    def from_settings(cls) -> PipelineConfig:
        return cls(
            summarization_strategy=SummarizationStrategy(settings.summarizer_strategy),
            soft_budget=settings.summary_soft_budget,
            prompt_overhead=settings.summary_prompt_overhead,
            final_pass_ratio=settings.summary_final_pass_ratio,
            batch_max_items=settings.summarizer_batch_max_items,
            batch_max_chars=settings.summarizer_batch_max_chars,
            max_workers=settings.summarizer_max_concurrency,
        )
