"""Claude-powered meeting analysis: summary, key points, decisions, action items."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from src.config import settings
from src.llm import get_anthropic_client
from src.meetings.models import AnalysisResult, NormalizedTranscript, TranscriptSegment

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


class AnalysisFailure(Exception):
    """The transcript could not be turned into a valid AnalysisResult."""


# Tool definition for Claude structured output
ANALYSIS_TOOL: dict[str, Any] = {
    "name": "store_meeting_analysis",
    "description": (
        "Store the structured analysis of a meeting transcript. "
        "Call this once with the summary, key points, decisions and action items."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "summary": {
                "type": "string",
                "description": "Brief summary of the meeting in 2-3 sentences.",
            },
            "key_points": {
                "type": "array",
                "description": "Main topics or issues discussed.",
                "items": {"type": "string"},
            },
            "decisions": {
                "type": "array",
                "description": "Decisions or agreements reached.",
                "items": {"type": "string"},
            },
            "action_items": {
                "type": "array",
                "description": "Tasks, assignments or commitments made during the meeting.",
                "items": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string", "description": "Clear, concise title."},
                        "description": {"type": "string", "description": "Detailed description."},
                        "assignee": {
                            "type": "string",
                            "description": "Person assigned, if mentioned.",
                        },
                        "priority": {
                            "type": "string",
                            "enum": ["High", "Medium", "Low"],
                            "description": "Priority, if mentioned.",
                        },
                        "due_date": {
                            "type": "string",
                            "description": "Due date as YYYY-MM-DD, if mentioned.",
                        },
                    },
                    "required": ["title", "description"],
                },
            },
        },
        "required": ["summary", "key_points", "action_items"],
    },
}

ANALYSIS_PROMPT = """You will be analyzing a meeting transcript and extracting specific information from it. Here is the transcript:
<transcript>
{transcript}
</transcript>

Extract the following:
1. Action items: tasks, assignments or commitments. For each give a clear title and a detailed description, plus the assignee, priority (High, Medium or Low) and due date (YYYY-MM-DD) when mentioned.
2. A brief summary of the meeting in 2-3 sentences, focused on its purpose and most important outcomes.
3. Key discussion points that received significant attention.
4. Decisions that were made.

Use the store_meeting_analysis tool to return your results. Only extract items clearly supported by the transcript."""


def _clean_text(words: Iterable[str]) -> str:
    text = " ".join(words).replace(" - ", "-")
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_transcript(raw_segments: list[dict[str, Any]] | None) -> NormalizedTranscript:
    """Flatten provider word lists into speaker turns.

    Pure and deterministic: words are joined with single spaces, ``" - "``
    becomes ``"-"`` and runs of whitespace collapse to one space.

    Args:
        raw_segments: ``[{"speaker": str, "words": [{"word": str}, ...]}, ...]``.

    Returns:
        Sorted distinct speakers and the ordered cleaned segments.
    """
    if not raw_segments:
        return NormalizedTranscript()

    segments = [
        TranscriptSegment(
            speaker=segment["speaker"],
            text=_clean_text(w["word"] for w in segment.get("words") or []),
        )
        for segment in raw_segments
    ]
    return NormalizedTranscript(
        speakers=sorted({s.speaker for s in segments}),
        segments=segments,
    )


def format_transcript(transcript: NormalizedTranscript) -> str:
    return "\n".join(f"{s.speaker}: {s.text}" for s in transcript.segments)


def build_analysis_prompt(transcript: NormalizedTranscript) -> str:
    return ANALYSIS_PROMPT.format(transcript=format_transcript(transcript))


def analyze_transcript(transcript: NormalizedTranscript) -> AnalysisResult:
    """Extract a structured analysis from a normalized transcript with one Claude call.

    Raises:
        AnalysisFailure: Empty transcript, API error or timeout, or a
            response that does not match the AnalysisResult shape.
    """
    if not transcript.segments:
        raise AnalysisFailure("Transcript is empty; nothing to analyze")

    client = get_anthropic_client()
    try:
        response = client.messages.create(
            model=settings.analysis_model,
            max_tokens=4096,
            tools=[ANALYSIS_TOOL],
            tool_choice={"type": "tool", "name": "store_meeting_analysis"},
            messages=[{"role": "user", "content": build_analysis_prompt(transcript)}],
        )
    except Exception as exc:
        raise AnalysisFailure(f"Analysis call failed: {exc}") from exc

    return _parse_tool_response(response)


def _parse_tool_response(response: Any) -> AnalysisResult:
    """Parse and validate the Claude tool_use block."""
    for block in response.content:
        if block.type != "tool_use" or block.name != "store_meeting_analysis":
            continue

        data = block.input
        try:
            if isinstance(data, str):
                data = json.loads(data)
            return AnalysisResult.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise AnalysisFailure(f"Malformed analysis response: {exc}") from exc

    raise AnalysisFailure("Response contained no store_meeting_analysis tool call")
