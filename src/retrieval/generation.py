"""Claude-powered answer generation over retrieved documents."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from anthropic.types import TextBlock

from src.config import settings
from src.llm import TokenEvent, get_anthropic_client, stream_tokens
from src.retrieval.models import RetrievalMatch

ANSWER_SYSTEM_PROMPT = (
    "You are a team knowledge assistant. Answer questions based on the "
    "provided documentation excerpts.\n\n"
    "Rules:\n"
    "- Only answer based on the provided context. If the answer isn't in "
    "the context, say so.\n"
    "- Cite your sources using [Source N] notation and list their URLs at the end.\n"
    "- Preserve relevant code examples exactly; never invent code.\n"
    "- Format the answer as markdown and be concise."
)


def format_sources(matches: list[RetrievalMatch]) -> str:
    lines = []
    for i, match in enumerate(matches, 1):
        title = match.metadata.title or match.document_id
        url = f" <{match.metadata.url}>" if match.metadata.url else ""
        lines.append(f"[Source {i}] {title}{url}")
    return "\n".join(lines)


def build_context(matches: list[RetrievalMatch]) -> str:
    """Number the matched chunks so the model can cite them as [Source N]."""
    return "\n\n".join(
        f"[Source {i}] {match.chunk_text}" for i, match in enumerate(matches, 1)
    )


def build_answer_prompt(question: str, context: str, matches: list[RetrievalMatch]) -> str:
    return (
        f"Sources:\n{format_sources(matches)}\n\n"
        f"Context from team documents:\n\n{context}\n\n"
        f"Question: {question}"
    )


def generate_answer(
    question: str, context: str, matches: list[RetrievalMatch]
) -> dict[str, Any]:
    """Generate an answer using Claude with source attribution.

    Args:
        question: The user's question.
        context: Retrieved (and possibly reduced) document text.
        matches: The retrieval matches the context came from.

    Returns:
        Dictionary with answer, model, and usage info.
    """
    client = get_anthropic_client()
    response = client.messages.create(
        model=settings.llm_model,
        max_tokens=1024,
        system=ANSWER_SYSTEM_PROMPT,
        messages=[{"role": "user", "content": build_answer_prompt(question, context, matches)}],
    )

    answer = "".join(block.text for block in response.content if isinstance(block, TextBlock))

    return {
        "answer": answer,
        "model": response.model,
        "usage": {
            "input_tokens": response.usage.input_tokens,
            "output_tokens": response.usage.output_tokens,
        },
    }


def stream_answer(
    question: str, context: str, matches: list[RetrievalMatch]
) -> Iterator[TokenEvent]:
    """Same prompt as :func:`generate_answer`, delivered as token events."""
    return stream_tokens(
        build_answer_prompt(question, context, matches),
        system=ANSWER_SYSTEM_PROMPT,
    )
