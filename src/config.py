from __future__ import annotations

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""

    # Meeting bot provider
    meeting_api_url: str = ""
    meeting_api_key: str = ""
    meeting_bot_name: str = "TeamMind AI"
    allowed_meeting_domains: list[str] = [
        "meet.google.com",
        "teams.microsoft.com",
        "zoom.us",
    ]

    # Shared secret sent by the scheduler as "Authorization: Bearer <secret>"
    cron_secret: str = ""

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    llm_model: str = "claude-sonnet-4-20250514"
    analysis_model: str = "claude-3-haiku-20240307"
    llm_timeout_seconds: float = 60.0
    embedding_timeout_seconds: float = 30.0
    http_timeout_seconds: float = 30.0

    # Chunking / retrieval (bytes; ~300 tokens)
    chunk_size: int = 1200
    retrieval_top_k: int = 5
    retrieval_workers: int = 4

    # Summarization
    summarizer_strategy: str = "serial"
    summarizer_min_interval_seconds: float = 5.05
    summarizer_max_concurrency: int = 4
    summarizer_batch_max_items: int = 4
    summarizer_batch_max_chars: int = 24000
    summary_soft_budget: int = 8000
    summary_prompt_overhead: int = 1200
    summary_final_pass_ratio: float = 1.5

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to the root logger (idempotent)."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


settings = get_settings()
