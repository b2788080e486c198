"""Wiki document data model.

A Document is the unit of content the sync engine moves between the local
cache and the remote store. Its content hash is a SHA-256 digest of the raw
body and is only ever used for equality checks.
"""

import hashlib
from dataclasses import dataclass, field, replace
from datetime import datetime, UTC
from typing import Any, Dict, Optional


def compute_content_hash(content: str) -> str:
    """Return the hex SHA-256 digest of raw document content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as an ISO 8601 UTC string (naive values are UTC)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp and normalize it to UTC.

    Accepts a trailing 'Z' and naive timestamps (interpreted as UTC).

    Returns:
        Timezone-aware UTC datetime, or None if value is empty or invalid
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


@dataclass
class Document:
    """A single wiki page as held in the local cache.

    Attributes:
        id: Unique document identifier (slug of the remote path)
        path: Path of the document in the remote store (e.g., "rules.md")
        title: Human-readable title
        content: Raw markdown body
        order: Position inside its category
        category_id: Id of the owning category (None if uncategorized)
        last_modified: ISO 8601 UTC timestamp of the last modification
        content_hash: SHA-256 of content; recomputed when omitted
        revision: Remote revision token this copy was last synced with
    """
    id: str
    path: str
    title: str
    content: str
    order: int = 0
    category_id: Optional[str] = None
    last_modified: str = ""
    content_hash: str = ""
    revision: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.content_hash:
            self.content_hash = compute_content_hash(self.content)

    def with_content(self, content: str, last_modified: str) -> "Document":
        """Return a copy carrying new content and a fresh hash."""
        return replace(
            self,
            content=content,
            last_modified=last_modified,
            content_hash=compute_content_hash(content),
        )

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the persisted `pages` namespace layout."""
        return {
            "content": self.content,
            "metadata": {
                "title": self.title,
                "path": self.path,
                "categoryId": self.category_id,
                "order": self.order,
                "lastModified": self.last_modified,
                "hash": self.content_hash,
                "revision": self.revision,
            },
        }

    @classmethod
    def from_record(cls, doc_id: str, record: Dict[str, Any]) -> "Document":
        """Build a Document from a persisted `pages` record."""
        metadata = record.get("metadata") or {}
        return cls(
            id=doc_id,
            path=metadata.get("path") or f"{doc_id}.md",
            title=metadata.get("title") or doc_id,
            content=record.get("content", ""),
            order=int(metadata.get("order") or 0),
            category_id=metadata.get("categoryId"),
            last_modified=metadata.get("lastModified") or "",
            content_hash=metadata.get("hash") or "",
            revision=metadata.get("revision"),
        )


@dataclass
class RemoteDocument:
    """A document as returned by the remote store.

    Attributes:
        path: Remote path of the document
        content: Raw markdown body
        revision: Opaque revision token identifying this exact version
        last_modified: ISO 8601 UTC timestamp reported by the backend
        metadata: Backend-specific extras (page id, sha, author, ...)
    """
    path: str
    content: str
    revision: str
    last_modified: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
