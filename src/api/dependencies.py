"""FastAPI dependencies: the composition root for pipeline collaborators."""

from __future__ import annotations

from collections.abc import Iterator
from functools import lru_cache

from src.config import settings
from src.ingestion.storage import SupabaseVectorStore, get_supabase_client
from src.integrations.meeting_bots import MeetingBotApi
from src.llm import complete
from src.meetings.lifecycle import MeetingServices
from src.meetings.repository import MeetingRepository
from src.pipeline_config import PipelineConfig
from src.summarization.rate_limiter import RateLimiter
from src.summarization.reducer import DocumentReducer
from src.summarization.summarizer import Summarizer


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    """The single limiter shared by every summarization call in this process."""
    return RateLimiter(
        min_interval=settings.summarizer_min_interval_seconds,
        max_concurrent=settings.summarizer_max_concurrency,
    )


def get_reducer() -> DocumentReducer:
    summarizer = Summarizer(complete, get_rate_limiter(), PipelineConfig.from_settings())
    return DocumentReducer(summarizer)


def get_vector_store() -> SupabaseVectorStore:
    return SupabaseVectorStore(get_supabase_client())


def get_meeting_services() -> MeetingServices:
    client = get_supabase_client()
    return MeetingServices(
        repository=MeetingRepository(client),
        store=SupabaseVectorStore(client),
    )


def get_bot_api() -> Iterator[MeetingBotApi]:
    api = MeetingBotApi()
    try:
        yield api
    finally:
        api.close()
