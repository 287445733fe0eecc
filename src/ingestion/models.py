"""Data models for the ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

_METADATA_FIELDS = ("source_id", "title", "url", "space_key", "user_id")


@dataclass
class DocumentMetadata:
    """Fixed-shape metadata stored alongside every persisted chunk.

    ``source_id`` is the external system's page id and doubles as the
    document identity used for deduplication and supersession.  Anything
    else travels in ``extra`` and is flattened into the stored JSON.
    """

    source_id: str
    title: str = ""
    url: str = ""
    space_key: str | None = None
    user_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.extra)
        data.update(
            {
                "source_id": self.source_id,
                "title": self.title,
                "url": self.url,
                "space_key": self.space_key,
                "user_id": self.user_id,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> DocumentMetadata:
        data = dict(data or {})
        known = {name: data.pop(name, None) for name in _METADATA_FIELDS}
        return cls(
            source_id=str(known["source_id"] or ""),
            title=known["title"] or "",
            url=known["url"] or "",
            space_key=known["space_key"],
            user_id=known["user_id"],
            extra=data,
        )


@dataclass
class Document:
    """A long-form document before chunking."""

    content: str
    metadata: DocumentMetadata
    id: str | None = None


@dataclass
class Chunk:
    """A size-bounded slice of a document, ready for embedding."""

    text: str
    size_bytes: int
    document: Document | None = None

    @classmethod
    def from_text(cls, text: str, document: Document | None = None) -> Chunk:
        return cls(text=text, size_bytes=len(text.encode("utf-8")), document=document)
