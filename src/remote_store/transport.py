"""Transport adapter interface for the authoritative document backend.

A transport knows one concrete protocol (Confluence REST, GitHub contents
API, in-process memory). It handles credentials and protocol details and
reports every failure using the typed exceptions of the remote store.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from src.models.document import RemoteDocument


class DocumentTransport(ABC):
    """Read/write access to documents addressed by path.

    Every method takes a timeout in seconds; a call that exceeds it raises
    TransientNetworkError.
    """

    #: Human-readable backend location used in error messages
    endpoint: str = "unknown"

    @abstractmethod
    def read(self, path: str, timeout: float) -> RemoteDocument:
        """Fetch content and revision of a document.

        Raises:
            DocumentNotFoundError: If no document exists at path
        """

    @abstractmethod
    def write(
        self,
        path: str,
        content: str,
        message: str,
        expected_revision: Optional[str],
        timeout: float,
    ) -> str:
        """Create or replace a document and return its new revision.

        With expected_revision None the path must not exist yet; otherwise
        the current revision must equal expected_revision.

        Raises:
            RevisionConflictError: If the precondition does not hold
        """

    @abstractmethod
    def list_index(self, timeout: float) -> List[str]:
        """Enumerate the paths of all documents in the backend."""

    @abstractmethod
    def ping(self, timeout: float) -> None:
        """Verify the backend is reachable with the configured credentials.

        Raises:
            RemoteStoreError: On any failure
        """
