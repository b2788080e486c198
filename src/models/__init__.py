"""Data models for wiki documents shared by the cache, remote and engine layers."""

from src.models.document import (
    Document,
    RemoteDocument,
    compute_content_hash,
    format_timestamp,
    parse_timestamp,
)

__all__ = [
    'Document',
    'RemoteDocument',
    'compute_content_hash',
    'format_timestamp',
    'parse_timestamp',
]
