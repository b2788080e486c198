"""In-process transport used by tests and offline demos.

Revisions are monotonically increasing integers (as strings) per path. Every
successful write is appended to write_log, which lets callers assert the
order in which changes reached the backend. Failures can be injected per
operation to exercise error handling.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Callable, Dict, List, Optional, Tuple

from src.models.document import RemoteDocument, format_timestamp
from .errors import DocumentNotFoundError, RevisionConflictError
from .transport import DocumentTransport

logger = logging.getLogger(__name__)


@dataclass
class WriteRecord:
    """One applied write."""
    path: str
    content: str
    message: str
    revision: str


class InMemoryTransport(DocumentTransport):
    """Dictionary-backed transport with optimistic concurrency.

    Example:
        >>> transport = InMemoryTransport()
        >>> transport.write("rules.md", "# Rules", "create", None, timeout=5)
        '1'
        >>> transport.read("rules.md", timeout=5).revision
        '1'
    """

    endpoint = "memory://"

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = threading.Lock()
        self._documents: Dict[str, Tuple[str, int, str]] = {}
        self._failures: Dict[str, List[Tuple[Optional[str], Exception]]] = {}
        self.write_log: List[WriteRecord] = []

    def seed(self, path: str, content: str, last_modified: Optional[str] = None) -> str:
        """Create or replace a document out of band (simulates a remote edit).

        Returns:
            The new revision
        """
        with self._lock:
            _, revision, _ = self._documents.get(path, ("", 0, ""))
            revision += 1
            stamp = last_modified or format_timestamp(self._clock())
            self._documents[path] = (content, revision, stamp)
            return str(revision)

    def remove(self, path: str) -> None:
        """Delete a document out of band."""
        with self._lock:
            self._documents.pop(path, None)

    def revision_of(self, path: str) -> Optional[str]:
        with self._lock:
            entry = self._documents.get(path)
            return str(entry[1]) if entry else None

    def fail_next(self, operation: str, error: Exception, path: Optional[str] = None) -> None:
        """Make the next matching call raise error.

        Args:
            operation: read, write, list_index or ping
            error: Exception to raise
            path: Restrict the failure to one path (read/write only)
        """
        self._failures.setdefault(operation, []).append((path, error))

    def _maybe_fail(self, operation: str, path: Optional[str] = None) -> None:
        queued = self._failures.get(operation, [])
        for index, (target, error) in enumerate(queued):
            if target is None or target == path:
                del queued[index]
                logger.debug(f"Injected failure for {operation}({path}): {error}")
                raise error

    def read(self, path: str, timeout: float) -> RemoteDocument:
        self._maybe_fail("read", path)
        with self._lock:
            entry = self._documents.get(path)
        if entry is None:
            raise DocumentNotFoundError(path)
        content, revision, last_modified = entry
        return RemoteDocument(
            path=path,
            content=content,
            revision=str(revision),
            last_modified=last_modified,
        )

    def write(
        self,
        path: str,
        content: str,
        message: str,
        expected_revision: Optional[str],
        timeout: float,
    ) -> str:
        self._maybe_fail("write", path)
        with self._lock:
            entry = self._documents.get(path)
            current = entry[1] if entry else None
            if expected_revision is None and current is not None:
                raise RevisionConflictError(path, None, str(current))
            if expected_revision is not None and (
                current is None or str(current) != str(expected_revision)
            ):
                raise RevisionConflictError(
                    path,
                    expected_revision,
                    str(current) if current is not None else None,
                )
            revision = (current or 0) + 1
            self._documents[path] = (content, revision, format_timestamp(self._clock()))
            self.write_log.append(WriteRecord(path, content, message, str(revision)))
            return str(revision)

    def list_index(self, timeout: float) -> List[str]:
        self._maybe_fail("list_index")
        with self._lock:
            return sorted(self._documents)

    def ping(self, timeout: float) -> None:
        self._maybe_fail("ping")
