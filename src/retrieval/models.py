"""Data models for retrieval results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from src.ingestion.models import DocumentMetadata


@dataclass
class RetrievalMatch:
    """One ranked similarity-search hit (higher ``score`` is better)."""

    document_id: str
    chunk_text: str
    metadata: DocumentMetadata
    score: float = 0.0

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> RetrievalMatch:
        """Build a match from a ``match_documents`` RPC row."""
        metadata = DocumentMetadata.from_dict(row.get("metadata"))
        return cls(
            document_id=metadata.source_id,
            chunk_text=row.get("content", ""),
            metadata=metadata,
            score=float(row.get("similarity") or 0.0),
        )
