"""Remote document store facade used by the sync engine.

RemoteDocumentStore wraps one DocumentTransport and adds what every backend
needs: a per-call timeout, bounded retry with exponential backoff for rate
limits and transient network failures, and table-of-contents parsing through
an injected parser. write_document is the only mutating operation; it uses
optimistic concurrency through the expected revision.
"""

import logging
import time
from typing import Callable, List, Optional, Tuple

from src.models.document import RemoteDocument
from src.toc import SummaryParser, TableOfContents
from .errors import RemoteStoreError
from .retry_logic import DEFAULT_MAX_RETRIES, retry_with_backoff
from .transport import DocumentTransport

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_SUMMARY_PATH = "SUMMARY.md"


class RemoteDocumentStore:
    """Authoritative document store with optimistic concurrency.

    Example:
        >>> store = RemoteDocumentStore(InMemoryTransport(), timeout=10)
        >>> revision = store.write_document("rules.md", "# Rules", "Create rules")
        >>> store.fetch_document("rules.md").revision == revision
        True
    """

    def __init__(
        self,
        transport: DocumentTransport,
        parser=SummaryParser,
        summary_path: str = DEFAULT_SUMMARY_PATH,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the store.

        Args:
            transport: Backend adapter
            parser: Object with parse(text) and serialize(toc)
            summary_path: Path of the table-of-contents document
            timeout: Seconds allowed for each remote call
            max_retries: Retries for rate-limited or transient failures
            sleep: Sleep function used between retries
        """
        self.transport = transport
        self.parser = parser
        self.summary_path = summary_path
        self.timeout = timeout
        self.max_retries = max_retries
        self._sleep = sleep

    def _call(self, func):
        return retry_with_backoff(func, self.max_retries, self._sleep)

    def fetch_document(self, path: str) -> RemoteDocument:
        """Fetch content and revision of one document.

        Raises:
            DocumentNotFoundError: If the document does not exist
            RemoteAuthError: On authentication/authorization failure
            TransientNetworkError: If retries are exhausted
        """
        logger.debug(f"Fetching remote document {path}")
        return self._call(lambda: self.transport.read(path, timeout=self.timeout))

    def write_document(
        self,
        path: str,
        content: str,
        message: str,
        expected_revision: Optional[str] = None,
    ) -> str:
        """Create or replace a document.

        Args:
            path: Remote path
            content: Full new content
            message: Change description recorded by the backend
            expected_revision: Revision the caller last read; None to create

        Returns:
            The new revision token

        Raises:
            RevisionConflictError: If expected_revision is stale, or when
                creating a path that already exists
        """
        revision = self._call(lambda: self.transport.write(
            path,
            content,
            message,
            expected_revision,
            timeout=self.timeout,
        ))
        logger.info(f"Wrote {path} (revision {expected_revision} -> {revision})")
        return revision

    def fetch_table_of_contents(self) -> TableOfContents:
        """Fetch and parse the table of contents."""
        toc, _ = self.fetch_table_of_contents_with_revision()
        return toc

    def fetch_table_of_contents_with_revision(self) -> Tuple[TableOfContents, str]:
        """Fetch the table of contents together with its revision token."""
        document = self.fetch_document(self.summary_path)
        return self.parser.parse(document.content), document.revision

    def write_table_of_contents(
        self,
        toc: TableOfContents,
        message: str,
        expected_revision: Optional[str],
    ) -> str:
        """Serialize and write the table of contents.

        Returns:
            The new revision of the index document
        """
        return self.write_document(
            self.summary_path,
            self.parser.serialize(toc),
            message,
            expected_revision,
        )

    def list_paths(self) -> List[str]:
        """Enumerate every document path the backend holds."""
        return self._call(lambda: self.transport.list_index(timeout=self.timeout))

    def check_access(self) -> bool:
        """Check that the backend is reachable with valid credentials.

        Never raises for remote failures; they are logged and reported as
        False.
        """
        try:
            self._call(lambda: self.transport.ping(timeout=self.timeout))
            return True
        except RemoteStoreError as e:
            logger.warning(f"Remote store is not accessible: {e}")
            return False
