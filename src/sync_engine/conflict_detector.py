"""Conflict detection between the local and remote document sets.

This module compares the full local set L and the full remote set R, keyed
by id, in O(|L| + |R|) and sorts every item into exactly one bucket:
unchanged, pull, push or conflict.

Change fingerprints:
    page:     (content hash, title, order, category id)
    category: (title, order, child ids, page ids)

Timestamps are deliberately not part of a fingerprint: byte-identical sides
never conflict, whatever clock drift their last-modified stamps carry.

Attribution when page fingerprints differ uses the revision baseline (the
remote revision the local copy was last synced with):

    no local pending change, remote revision moved  -> pull
    no local pending change, only metadata differs  -> pull
    local pending change, remote revision unchanged -> push
    anything else                                   -> conflict

A body that differs at the same revision with nothing queued cannot be
attributed to either side, so it is reported as a content conflict.

Categories have no revision of their own; their baseline is the fingerprint
recorded at the end of the last cycle (SyncState.category_baseline).
"""

import hashlib
import json
import logging
from typing import Dict, Iterable, Optional

from src.models.document import Document
from src.toc.models import Category
from .models import (
    ConflictItem,
    ConflictKind,
    ConflictType,
    DetectionResult,
    DocumentSet,
)

logger = logging.getLogger(__name__)


def page_fingerprint(document: Document) -> str:
    """Fingerprint of everything about a page that is synchronized."""
    return _digest([
        document.content_hash,
        document.title,
        document.order,
        document.category_id,
    ])


def category_fingerprint(category: Category) -> str:
    """Fingerprint of a category's title, position and membership."""
    return _digest([
        category.title,
        category.order,
        category.child_ids(),
        category.page_ids(),
    ])


def category_fingerprints(categories: Dict[str, Category]) -> Dict[str, str]:
    return {
        category_id: category_fingerprint(category)
        for category_id, category in categories.items()
    }


def _digest(parts) -> str:
    encoded = json.dumps(parts, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def classify_page_difference(local: Document, remote: Document) -> ConflictType:
    """Most significant difference between two versions of a page."""
    if local.content_hash != remote.content_hash:
        return ConflictType.CONTENT
    if local.category_id != remote.category_id:
        return ConflictType.STRUCTURE
    return ConflictType.METADATA


def classify_category_difference(local: Category, remote: Category) -> ConflictType:
    if local.child_ids() != remote.child_ids() or local.page_ids() != remote.page_ids():
        return ConflictType.STRUCTURE
    return ConflictType.METADATA


class ConflictDetector:
    """Diffs local against remote state and produces ConflictItems."""

    def detect_conflicts(
        self,
        local: DocumentSet,
        remote: DocumentSet,
        pending_ids: Iterable[str] = (),
        held_ids: Iterable[str] = (),
        category_baseline: Optional[Dict[str, str]] = None,
    ) -> DetectionResult:
        """Compare both sides.

        Args:
            local: Local pages and categories
            remote: Remote pages and categories
            pending_ids: Ids with queued local changes
            held_ids: Ids awaiting manual resolution (skipped entirely)
            category_baseline: Category fingerprints at the last sync

        Returns:
            DetectionResult with every non-held id in exactly one bucket
        """
        pending = set(pending_ids)
        held = set(held_ids)
        result = DetectionResult()

        self._detect_pages(local, remote, pending, held, result)
        self._detect_categories(local, remote, held, category_baseline or {}, result)

        logger.info(
            f"Detected {len(result.conflicts)} conflict(s), "
            f"{len(result.to_pull)} page(s) to pull, {len(result.to_push)} to push, "
            f"{len(result.unchanged)} unchanged"
        )
        return result

    def _detect_pages(
        self,
        local: DocumentSet,
        remote: DocumentSet,
        pending: set,
        held: set,
        result: DetectionResult,
    ) -> None:
        for doc_id, local_doc in local.documents.items():
            if doc_id in held:
                logger.debug(f"Skipping held page '{doc_id}'")
                continue

            remote_doc = remote.documents.get(doc_id)
            if remote_doc is None:
                if doc_id in pending or local_doc.revision is None:
                    result.to_push.append(doc_id)
                else:
                    # Synced before, now gone remotely: a delete conflict
                    result.conflicts.append(ConflictItem(
                        id=doc_id,
                        kind=ConflictKind.PAGE,
                        local_version=local_doc,
                        remote_version=None,
                        conflict_type=ConflictType.STRUCTURE,
                    ))
                continue

            if page_fingerprint(local_doc) == page_fingerprint(remote_doc):
                result.unchanged.append(doc_id)
                continue

            remote_moved = remote_doc.revision != local_doc.revision
            same_body = local_doc.content_hash == remote_doc.content_hash
            if doc_id not in pending and (remote_moved or same_body):
                # Remote moved, or the same body with only index metadata changed
                result.to_pull.append(doc_id)
            elif doc_id in pending and not remote_moved:
                result.to_push.append(doc_id)
            else:
                conflict_type = classify_page_difference(local_doc, remote_doc)
                logger.debug(f"Page '{doc_id}' conflicts ({conflict_type.value})")
                result.conflicts.append(ConflictItem(
                    id=doc_id,
                    kind=ConflictKind.PAGE,
                    local_version=local_doc,
                    remote_version=remote_doc,
                    conflict_type=conflict_type,
                    remote_revision=remote_doc.revision,
                ))

        for doc_id in remote.documents:
            if doc_id in local.documents or doc_id in held:
                continue
            # A pending delete removed the local copy; push the delete
            if doc_id in pending:
                result.to_push.append(doc_id)
            else:
                result.to_pull.append(doc_id)

    def _detect_categories(
        self,
        local: DocumentSet,
        remote: DocumentSet,
        held: set,
        baseline: Dict[str, str],
        result: DetectionResult,
    ) -> None:
        ids = list(local.categories) + [
            category_id for category_id in remote.categories
            if category_id not in local.categories
        ]

        for category_id in ids:
            if category_id in held:
                continue
            local_cat = local.categories.get(category_id)
            remote_cat = remote.categories.get(category_id)
            local_fp = category_fingerprint(local_cat) if local_cat else None
            remote_fp = category_fingerprint(remote_cat) if remote_cat else None
            base_fp = baseline.get(category_id)

            if local_fp == remote_fp:
                result.unchanged.append(category_id)
                continue

            local_changed = local_fp != base_fp
            remote_changed = remote_fp != base_fp

            if remote_changed and not local_changed:
                result.categories_to_pull.append(category_id)
            elif local_changed and not remote_changed:
                result.categories_to_push.append(category_id)
            else:
                if local_cat is None or remote_cat is None:
                    conflict_type = ConflictType.STRUCTURE
                else:
                    conflict_type = classify_category_difference(local_cat, remote_cat)
                result.conflicts.append(ConflictItem(
                    id=category_id,
                    kind=ConflictKind.CATEGORY,
                    local_version=local_cat,
                    remote_version=remote_cat,
                    conflict_type=conflict_type,
                    remote_revision=remote.toc_revision,
                ))
