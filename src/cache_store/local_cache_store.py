"""Durable namespaced key/value cache for the offline wiki.

This module provides the LocalCacheStore class, the single shared mutable
resource of the sync engine. Records are JSON documents stored one file per
key inside a directory per namespace:

    .wiki-sync/cache/
      summary/current.json      # {"content", "lastSync", "version"}
      pages/<id>.json           # {"content", "metadata": {..., "hash"}}
      assets/<path>.json        # {"blob" (base64), "type", "lastModified"}
      sync/state.json           # pending changes + sync status (one record)

Every write goes to a temporary file first and is moved into place with
os.replace, so a reader only ever sees a complete record (per-key
atomicity). A re-entrant lock serializes access across threads.
"""

import base64
import json
import logging
import os
import shutil
import tempfile
import threading
from dataclasses import replace
from datetime import datetime, timedelta, UTC
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote, unquote

from src.cache_store.errors import StorageError, UnknownNamespaceError
from src.models.document import (
    Document,
    compute_content_hash,
    format_timestamp,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".json"
TEMP_PREFIX = ".tmp-"


class LocalCacheStore:
    """Namespaced durable key/value persistence with change detection.

    The `pages` namespace recomputes a SHA-256 content hash on every write;
    the hash is used only to compare content, never for security.

    Example:
        >>> cache = LocalCacheStore(".wiki-sync/cache")
        >>> cache.put_page(Document(id="rules", path="rules.md",
        ...                         title="Rules", content="# Rules"))
        >>> cache.get_page("rules").title
        'Rules'
    """

    SUMMARY = "summary"
    PAGES = "pages"
    ASSETS = "assets"
    SYNC = "sync"
    NAMESPACES = (SUMMARY, PAGES, ASSETS, SYNC)

    # Keys of the two singleton namespaces
    SUMMARY_KEY = "current"
    SYNC_KEY = "state"

    def __init__(
        self,
        cache_dir: str,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the cache store.

        Directories are created lazily on first access.

        Args:
            cache_dir: Root directory of the cache (e.g., .wiki-sync/cache)
            clock: Callable returning the current UTC time (for tests)
        """
        self.cache_dir = os.path.abspath(cache_dir)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = threading.RLock()
        self._initialized = False

    # ------------------------------------------------------------------
    # Initialization and paths
    # ------------------------------------------------------------------

    def _ensure_initialized(self) -> None:
        """Create namespace directories, retrying once on failure.

        Raises:
            StorageError: If the directories cannot be created twice in a row
        """
        if self._initialized:
            return

        for attempt in (1, 2):
            try:
                for namespace in self.NAMESPACES:
                    os.makedirs(os.path.join(self.cache_dir, namespace), exist_ok=True)
                self._initialized = True
                logger.debug(f"Cache directory ready: {self.cache_dir}")
                return
            except OSError as e:
                if attempt == 2:
                    raise StorageError(self.cache_dir, None, "init", str(e)) from e
                logger.warning(f"Cache initialization failed ({e}), retrying once")

    def _check_namespace(self, namespace: str) -> None:
        if namespace not in self.NAMESPACES:
            raise UnknownNamespaceError(namespace)

    def _record_path(self, namespace: str, key: str) -> str:
        if not key:
            raise ValueError("Cache key cannot be empty")
        filename = quote(key, safe="") + RECORD_SUFFIX
        return os.path.join(self.cache_dir, namespace, filename)

    # ------------------------------------------------------------------
    # Generic key/value operations
    # ------------------------------------------------------------------

    def get(self, namespace: str, key: str) -> Optional[Dict[str, Any]]:
        """Read a record.

        Args:
            namespace: One of summary, pages, assets, sync
            key: Record key

        Returns:
            The stored record, or None if the key does not exist

        Raises:
            StorageError: If the record exists but cannot be read or parsed
        """
        self._check_namespace(namespace)
        with self._lock:
            self._ensure_initialized()
            path = self._record_path(namespace, key)
            try:
                with open(path, "r", encoding="utf-8") as f:
                    return json.load(f)
            except FileNotFoundError:
                return None
            except (OSError, json.JSONDecodeError) as e:
                raise StorageError(namespace, key, "read", str(e)) from e

    def put(self, namespace: str, key: str, value: Dict[str, Any]) -> None:
        """Write a record atomically.

        Records in the `pages` namespace get their metadata hash recomputed
        from the raw content.

        Raises:
            StorageError: If the record cannot be written
        """
        self._check_namespace(namespace)
        if namespace == self.PAGES:
            value = self._stamp_page_hash(value)

        with self._lock:
            self._ensure_initialized()
            path = self._record_path(namespace, key)
            self._atomic_write(namespace, key, path, value)

    def delete(self, namespace: str, key: str) -> bool:
        """Delete a record.

        Returns:
            True if a record was deleted, False if it did not exist
        """
        self._check_namespace(namespace)
        with self._lock:
            self._ensure_initialized()
            path = self._record_path(namespace, key)
            try:
                os.remove(path)
                return True
            except FileNotFoundError:
                return False
            except OSError as e:
                raise StorageError(namespace, key, "delete", str(e)) from e

    def exists(self, namespace: str, key: str) -> bool:
        """Check whether a record exists."""
        self._check_namespace(namespace)
        with self._lock:
            self._ensure_initialized()
            return os.path.exists(self._record_path(namespace, key))

    def list(self, namespace: str) -> List[str]:
        """List the keys of a namespace in sorted order."""
        self._check_namespace(namespace)
        with self._lock:
            self._ensure_initialized()
            try:
                filenames = os.listdir(os.path.join(self.cache_dir, namespace))
            except OSError as e:
                raise StorageError(namespace, None, "list", str(e)) from e

        keys = [
            unquote(name[: -len(RECORD_SUFFIX)])
            for name in filenames
            if name.endswith(RECORD_SUFFIX) and not name.startswith(TEMP_PREFIX)
        ]
        return sorted(keys)

    def update(
        self,
        namespace: str,
        key: str,
        mutate: Callable[[Optional[Dict[str, Any]]], Optional[Dict[str, Any]]],
    ) -> Optional[Dict[str, Any]]:
        """Atomically read, transform and write back a single record.

        The whole read-modify-write runs under the store lock, so concurrent
        updaters of the same record never lose each other's changes.

        Args:
            namespace: Cache namespace
            key: Record key
            mutate: Receives the current record (or None) and returns the new
                    record; returning None deletes the record

        Returns:
            The record that was written (None if deleted)
        """
        with self._lock:
            current = self.get(namespace, key)
            updated = mutate(current)
            if updated is None:
                self.delete(namespace, key)
            else:
                self.put(namespace, key, updated)
            return updated

    def size_of(self, namespace: str) -> int:
        """Return the number of records in a namespace."""
        return len(self.list(namespace))

    def sizes(self) -> Dict[str, int]:
        """Return record counts for every namespace."""
        return {namespace: self.size_of(namespace) for namespace in self.NAMESPACES}

    def clear(self, namespace: Optional[str] = None) -> None:
        """Delete every record of one namespace, or of the whole cache."""
        namespaces = [namespace] if namespace else list(self.NAMESPACES)
        with self._lock:
            self._ensure_initialized()
            for name in namespaces:
                self._check_namespace(name)
                directory = os.path.join(self.cache_dir, name)
                try:
                    shutil.rmtree(directory)
                    os.makedirs(directory, exist_ok=True)
                except OSError as e:
                    raise StorageError(name, None, "clear", str(e)) from e
        logger.info(f"Cleared cache namespace(s): {', '.join(namespaces)}")

    # ------------------------------------------------------------------
    # Summary helpers
    # ------------------------------------------------------------------

    def get_summary(self) -> Optional[Dict[str, Any]]:
        """Return the summary record ({content, lastSync, version}) or None."""
        return self.get(self.SUMMARY, self.SUMMARY_KEY)

    def set_summary(
        self,
        content: str,
        version: Optional[str],
        last_sync: Optional[datetime] = None,
    ) -> None:
        """Store the table-of-contents text with its remote revision."""
        moment = last_sync or self._clock()
        self.put(self.SUMMARY, self.SUMMARY_KEY, {
            "content": content,
            "lastSync": format_timestamp(moment),
            "version": version,
        })

    def is_recent(self, threshold_minutes: float = 5) -> bool:
        """Check whether the summary was synced within the threshold."""
        summary = self.get_summary()
        if not summary:
            return False
        last_sync = parse_timestamp(summary.get("lastSync"))
        if last_sync is None:
            return False
        return last_sync > self._clock() - timedelta(minutes=threshold_minutes)

    def has_cached_data(self) -> bool:
        """True when both a summary and at least one page are cached."""
        return self.get_summary() is not None and self.size_of(self.PAGES) > 0

    # ------------------------------------------------------------------
    # Page helpers
    # ------------------------------------------------------------------

    def get_page(self, doc_id: str) -> Optional[Document]:
        record = self.get(self.PAGES, doc_id)
        if record is None:
            return None
        return Document.from_record(doc_id, record)

    def put_page(self, document: Document) -> None:
        self.put(self.PAGES, document.id, document.to_record())

    def set_page_revision(
        self,
        doc_id: str,
        revision: Optional[str],
        document: Optional[Document] = None,
    ) -> bool:
        """Record the remote revision a cached page was synchronized with.

        When document is given and the cached body still equals its content,
        document replaces the record. A body edited while the write was in
        flight is kept as is; that edit stays queued and is pushed against
        the new revision.

        Returns:
            False if the page is no longer cached
        """
        def _stamp(record):
            if record is None:
                return None
            if document is not None and record.get("content") == document.content:
                return replace(document, revision=revision).to_record()
            metadata = dict(record.get("metadata") or {})
            metadata["revision"] = revision
            return dict(record, metadata=metadata)

        return self.update(self.PAGES, doc_id, _stamp) is not None

    def delete_page(self, doc_id: str) -> bool:
        return self.delete(self.PAGES, doc_id)

    def all_pages(self) -> Dict[str, Document]:
        """Load every cached page keyed by id."""
        pages = {}
        for doc_id in self.list(self.PAGES):
            document = self.get_page(doc_id)
            if document is not None:
                pages[doc_id] = document
        return pages

    def get_page_hash(self, doc_id: str) -> Optional[str]:
        record = self.get(self.PAGES, doc_id)
        if record is None:
            return None
        return (record.get("metadata") or {}).get("hash")

    # ------------------------------------------------------------------
    # Asset helpers
    # ------------------------------------------------------------------

    def put_asset(self, path: str, data: bytes, content_type: str) -> None:
        """Store a binary asset (image, attachment) under its path."""
        self.put(self.ASSETS, path, {
            "blob": base64.b64encode(data).decode("ascii"),
            "type": content_type,
            "lastModified": format_timestamp(self._clock()),
        })

    def get_asset(self, path: str) -> Optional[Dict[str, Any]]:
        """Return {"data": bytes, "type", "lastModified"} or None."""
        record = self.get(self.ASSETS, path)
        if record is None:
            return None
        try:
            data = base64.b64decode(record.get("blob", ""))
        except ValueError as e:
            raise StorageError(self.ASSETS, path, "read", f"Corrupt blob: {e}") from e
        return {
            "data": data,
            "type": record.get("type", "application/octet-stream"),
            "lastModified": record.get("lastModified"),
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _stamp_page_hash(value: Dict[str, Any]) -> Dict[str, Any]:
        if "content" not in value:
            raise ValueError("Page records require a 'content' field")
        metadata = dict(value.get("metadata") or {})
        metadata["hash"] = compute_content_hash(value["content"])
        stamped = dict(value)
        stamped["metadata"] = metadata
        return stamped

    def _atomic_write(
        self,
        namespace: str,
        key: str,
        path: str,
        value: Dict[str, Any],
    ) -> None:
        directory = os.path.dirname(path)
        temp_path = None
        try:
            fd, temp_path = tempfile.mkstemp(dir=directory, prefix=TEMP_PREFIX)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2, ensure_ascii=False)
            os.replace(temp_path, path)
            temp_path = None
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(namespace, key, "write", str(e)) from e
        finally:
            if temp_path is not None and os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    logger.warning(f"Failed to remove temp file {temp_path}")
