"""Local mutations that feed the pending-change queue.

Presentation layers edit the offline copy through LocalEditor. Every edit
updates the cache first, so the change is visible immediately, and then
enqueues a PendingChange that the next sync cycle pushes to the remote.
"""

import logging
from dataclasses import replace
from datetime import datetime, UTC
from typing import Callable, Optional

from src.cache_store import LocalCacheStore
from src.models.document import Document, format_timestamp
from src.toc import Category, DocumentRef, slug_from_path, slugify
from .errors import SyncEngineError
from .index_store import IndexStore
from .models import ChangeType, ConflictKind, PendingChange
from .pending_queue import PendingChangeQueue

logger = logging.getLogger(__name__)


class DocumentNotCachedError(SyncEngineError):
    """Raised when editing a document that is not in the local cache."""

    def __init__(self, doc_id: str):
        self.doc_id = doc_id
        super().__init__(f"Document '{doc_id}' is not in the local cache")


class DuplicateDocumentError(SyncEngineError):
    """Raised when creating a document whose id is already cached."""

    def __init__(self, doc_id: str):
        self.doc_id = doc_id
        super().__init__(f"Document '{doc_id}' already exists")


class LocalEditor:
    """Creates, updates and deletes pages and categories offline.

    Example:
        >>> editor = LocalEditor(cache, queue, index)
        >>> doc = editor.create_page("Server Rules", "# Rules", category_id="guides")
        >>> editor.update_page(doc.id, content="# Rules\\n\\nBe nice.")
        >>> editor.delete_page(doc.id)
    """

    def __init__(
        self,
        cache: LocalCacheStore,
        queue: PendingChangeQueue,
        index: IndexStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.cache = cache
        self.queue = queue
        self.index = index
        self._clock = clock or (lambda: datetime.now(UTC))

    def create_page(
        self,
        title: str,
        content: str,
        category_id: Optional[str] = None,
        path: Optional[str] = None,
    ) -> Document:
        """Create a page locally and queue its creation.

        Args:
            title: Page title
            content: Markdown body
            category_id: Owning category (uncategorized when None or unknown)
            path: Remote path; defaults to the slugified title plus ".md"

        Raises:
            DuplicateDocumentError: If a page with the same id is cached
        """
        path = path or f"{slugify(title)}.md"
        doc_id = slug_from_path(path)
        if self.cache.exists(LocalCacheStore.PAGES, doc_id):
            raise DuplicateDocumentError(doc_id)

        now = format_timestamp(self._clock())
        ref = DocumentRef(id=doc_id, title=title, path=path)
        self.index.update_local(lambda toc: toc.upsert_document(category_id, ref))

        document = Document(
            id=doc_id,
            path=path,
            title=title,
            content=content,
            order=ref.order,
            category_id=self._owning_category(doc_id),
            last_modified=now,
        )
        self.cache.put_page(document)
        self.queue.enqueue(PendingChange(
            change_type=ChangeType.CREATE,
            target_id=doc_id,
            payload={
                "path": path,
                "title": title,
                "content": content,
                "category_id": document.category_id,
            },
            timestamp=now,
        ))
        logger.info(f"Created page '{doc_id}' locally")
        return document

    def update_page(
        self,
        doc_id: str,
        content: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Document:
        """Change a cached page's content and/or title and queue the update.

        Raises:
            DocumentNotCachedError: If the page is not cached
        """
        document = self.cache.get_page(doc_id)
        if document is None:
            raise DocumentNotCachedError(doc_id)

        now = format_timestamp(self._clock())
        updated = document.with_content(
            document.content if content is None else content, now
        )
        payload = {"path": document.path, "content": updated.content}
        if title is not None and title != document.title:
            updated = replace(updated, title=title)
            payload["title"] = title

            def _retitle(toc):
                found = toc.find_document(doc_id)
                if found is not None:
                    found[0].title = title

            self.index.update_local(_retitle)

        self.cache.put_page(updated)
        self.queue.enqueue(PendingChange(
            change_type=ChangeType.UPDATE,
            target_id=doc_id,
            payload=payload,
            timestamp=now,
            base_revision=document.revision,
        ))
        logger.info(f"Updated page '{doc_id}' locally")
        return updated

    def delete_page(self, doc_id: str) -> None:
        """Remove a page from the cache and the local index; queue the delete.

        Raises:
            DocumentNotCachedError: If the page is not cached
        """
        document = self.cache.get_page(doc_id)
        if document is None:
            raise DocumentNotCachedError(doc_id)

        self.cache.delete_page(doc_id)
        self.index.update_local(lambda toc: toc.remove_document(doc_id))
        self.queue.enqueue(PendingChange(
            change_type=ChangeType.DELETE,
            target_id=doc_id,
            payload={"path": document.path},
            timestamp=format_timestamp(self._clock()),
            base_revision=document.revision,
        ))
        logger.info(f"Deleted page '{doc_id}' locally")

    def update_category(self, category: Category) -> Category:
        """Replace (or add) a category in the local index and queue it."""
        now = format_timestamp(self._clock())
        category = replace(category, last_modified=now)
        self.index.update_local(lambda toc: toc.replace_category(category))
        self.queue.enqueue(PendingChange(
            change_type=ChangeType.UPDATE,
            target_id=category.id,
            kind=ConflictKind.CATEGORY,
            payload={"category": category.to_dict()},
            timestamp=now,
        ))
        logger.info(f"Updated category '{category.id}' locally")
        return category

    def _owning_category(self, doc_id: str) -> Optional[str]:
        toc, _ = self.index.load_local()
        found = toc.find_document(doc_id)
        return found[1] if found else None
