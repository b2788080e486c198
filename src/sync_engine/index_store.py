"""Local and remote table-of-contents maintenance.

Categories and page membership live in the index document (SUMMARY.md).
Locally it is the `summary` cache record; remotely it is one document
written with optimistic concurrency like any other. IndexStore performs the
read-modify-write cycles on both copies.
"""

import logging
from datetime import datetime, UTC
from typing import Callable, Iterable, Optional, Tuple

from src.cache_store import LocalCacheStore
from src.remote_store import RemoteDocumentStore, RevisionConflictError
from src.toc import SummaryParser, TableOfContents

logger = logging.getLogger(__name__)

TocMutation = Callable[[TableOfContents], object]


class IndexStore:
    """Reads and updates the local and remote table of contents."""

    def __init__(
        self,
        cache: LocalCacheStore,
        store: RemoteDocumentStore,
        parser=SummaryParser,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.cache = cache
        self.store = store
        self.parser = parser
        self._clock = clock or (lambda: datetime.now(UTC))

    def load_local(self) -> Tuple[TableOfContents, Optional[str]]:
        """Return the local table of contents and the remote revision it was
        last synced with (None before the first sync)."""
        summary = self.cache.get_summary()
        if not summary:
            return TableOfContents(), None
        return self.parser.parse(summary.get("content", "")), summary.get("version")

    def update_local(self, mutate: TocMutation) -> None:
        """Apply mutate to the local table of contents atomically.

        Only the content changes; lastSync and version are preserved.
        """
        def _apply(record):
            record = dict(record or {"content": "", "lastSync": None, "version": None})
            toc = self.parser.parse(record.get("content", ""))
            mutate(toc)
            record["content"] = self.parser.serialize(toc)
            return record

        self.cache.update(LocalCacheStore.SUMMARY, LocalCacheStore.SUMMARY_KEY, _apply)

    def update_remote(self, mutate: TocMutation, message: str) -> Tuple[TableOfContents, str]:
        """Apply mutate to the remote table of contents.

        The index is re-fetched and the mutation re-applied once if another
        writer moved it in between. A mutation returning False leaves the
        index untouched and nothing is written.

        Returns:
            (written table of contents, new revision)

        Raises:
            RevisionConflictError: If the index moved twice in a row
        """
        for attempt in (1, 2):
            toc, revision = self.store.fetch_table_of_contents_with_revision()
            if mutate(toc) is False:
                logger.debug("Remote index already up to date, skipping write")
                return toc, revision
            try:
                new_revision = self.store.write_table_of_contents(toc, message, revision)
                return toc, new_revision
            except RevisionConflictError:
                if attempt == 2:
                    raise
                logger.warning("Remote index moved during update, re-fetching once")
        raise RuntimeError("update_remote exhausted without result")

    def adopt_remote(
        self,
        remote_toc: TableOfContents,
        revision: Optional[str],
        keep_local_ids: Iterable[str] = (),
    ) -> TableOfContents:
        """Make the remote index the local one, keeping some local categories.

        Categories in keep_local_ids (held, or with unconfirmed changes) keep
        their local version, or stay absent if they were deleted locally.

        Returns:
            The table of contents now stored locally
        """
        local_toc, _ = self.load_local()
        adopted = remote_toc.copy()
        for category_id in keep_local_ids:
            local_category = local_toc.find_category(category_id)
            if local_category is not None:
                adopted.replace_category(local_category)
            elif adopted.find_category(category_id) is not None:
                adopted.remove_category(category_id)

        self.cache.set_summary(self.parser.serialize(adopted), revision, self._clock())
        return adopted
