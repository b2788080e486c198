"""Pure merge functions, one per entity kind.

merge_documents never fabricates content: it selects one whole side.
merge_categories never drops a child: the result references every child
category and page referenced by either side.
"""

import copy
import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Tuple

from src.models.document import Document, format_timestamp, parse_timestamp
from src.toc.models import Category

logger = logging.getLogger(__name__)

LOCAL = "local"
REMOTE = "remote"


def pick_newer_side(local: Document, remote: Document) -> str:
    """Return "local" or "remote", whichever was modified later.

    Timestamps are normalized to UTC before comparing. Ties, and a missing
    or unparseable timestamp on either side, favour the remote because it
    is authoritative.
    """
    local_time = parse_timestamp(local.last_modified)
    remote_time = parse_timestamp(remote.last_modified)
    if local_time is None or remote_time is None:
        return REMOTE
    return LOCAL if local_time > remote_time else REMOTE


def merge_documents(local: Document, remote: Document, now: datetime) -> Tuple[Document, str]:
    """Select the later-modified side of a page and re-stamp it.

    Args:
        local: Local version
        remote: Remote version
        now: Current sync time used as the new modification stamp

    Returns:
        (merged document, side) where side is "local" or "remote"
    """
    side = pick_newer_side(local, remote)
    winner = local if side == LOCAL else remote
    merged = replace(winner, last_modified=format_timestamp(now))
    logger.debug(f"Merged page '{local.id}': {side} side is newer")
    return merged, side


def merge_categories(local: Category, remote: Category, now: datetime) -> Category:
    """Union of two versions of a category.

    Local title, description, order and child order are preserved; child
    categories and page references only present remotely are appended in
    remote order. Entries are de-duplicated by id.

    Args:
        local: Local version
        remote: Remote version
        now: Current sync time used as the new modification stamp

    Returns:
        A new Category; neither input is modified
    """
    merged = copy.deepcopy(local)
    merged.children = _union_by_id(merged.children, remote.children)
    merged.pages = _union_by_id(merged.pages, remote.pages)
    for index, child in enumerate(merged.children):
        child.order = index
    for index, page in enumerate(merged.pages):
        page.order = index
    merged.last_modified = format_timestamp(now)
    return merged


def _union_by_id(local_items: List, remote_items: List) -> List:
    seen = set()
    union = []
    for item in local_items:
        if item.id not in seen:
            seen.add(item.id)
            union.append(item)
    for item in remote_items:
        if item.id not in seen:
            seen.add(item.id)
            union.append(copy.deepcopy(item))
    return union
