"""Prompt templates for chunk summarization."""

from __future__ import annotations

GUIDED_SUMMARY_TEMPLATE = """Shorten the text in the CONTENT, attempting to answer the INQUIRY. Follow ALL of these rules:
- Any code found in the CONTENT must be preserved in the summary, unchanged.
- Code is surrounded by backticks (`) or triple backticks (```).
- Code examples relevant to the INQUIRY must be preserved in their entirety. Do not invent code.
- The summary should answer the INQUIRY. If it cannot, preserve the information most likely to help with related questions.
- Preserve specific details, numbers, dates, names and technical terms relevant to the INQUIRY.
- Preserve step-by-step instructions or procedures relevant to the INQUIRY.
- The summary must be under {target_chars} characters.
- Group similar items together, keeping their unique details.
- Keep the original structure and hierarchy of information where possible.
- Do not add information that is not in the CONTENT. Do not interpret or explain it.

INQUIRY: {inquiry}
CONTENT: {document}

Final answer:
"""

DOCUMENT_SUMMARY_TEMPLATE = """Summarize the text in the CONTENT. Follow ALL of these rules:
- Any code found in the CONTENT must be preserved in the summary, unchanged.
- Code is surrounded by backticks (`) or triple backticks (```). Do not invent code.
- The summary must be under {target_chars} characters.
- Preserve specific details, numbers, dates, names and technical terms.
- Preserve step-by-step instructions or procedures.
- Group similar items together, keeping their unique details.
- Keep the original structure and hierarchy of information where possible.
- Do not add information that is not in the CONTENT. Do not interpret or explain it.

CONTENT: {document}

Final answer:
"""


def build_summary_prompt(document: str, inquiry: str | None, target_chars: int) -> str:
    """Fill the guided template when an inquiry is given, the plain one otherwise."""
    if inquiry:
        return GUIDED_SUMMARY_TEMPLATE.format(
            inquiry=inquiry, document=document, target_chars=target_chars
        )
    return DOCUMENT_SUMMARY_TEMPLATE.format(document=document, target_chars=target_chars)
