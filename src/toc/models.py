"""Data models for the wiki table of contents.

The table of contents is an ordered tree of categories whose leaves reference
documents. Category ids are slug paths ("guides", "guides/server-rules") and
document ids are slugs of the document path, so both are stable across
parse/serialize round trips.
"""

import copy
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple


@dataclass
class DocumentRef:
    """Reference from a category to a document.

    Attributes:
        id: Document id (slug of path)
        title: Link title shown in the index
        path: Remote path of the document
        order: Position inside the owning category
    """
    id: str
    title: str
    path: str
    order: int = 0


@dataclass
class Category:
    """A node of the table of contents.

    Attributes:
        id: Slug path uniquely identifying the category
        title: Heading text
        order: Position among its siblings
        level: Heading depth (2 for top-level categories)
        description: Free text lines following the heading
        children: Nested categories
        pages: Documents listed directly under this category
        last_modified: ISO 8601 timestamp of the last structural change
    """
    id: str
    title: str
    order: int = 0
    level: int = 2
    description: str = ""
    children: List['Category'] = field(default_factory=list)
    pages: List[DocumentRef] = field(default_factory=list)
    last_modified: str = ""

    def child_ids(self) -> List[str]:
        return [child.id for child in self.children]

    def page_ids(self) -> List[str]:
        return [page.id for page in self.pages]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for queue payloads (JSON-safe, recursive)."""
        return {
            "id": self.id,
            "title": self.title,
            "order": self.order,
            "level": self.level,
            "description": self.description,
            "children": [child.to_dict() for child in self.children],
            "pages": [asdict(page) for page in self.pages],
            "lastModified": self.last_modified,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Category':
        return cls(
            id=data["id"],
            title=data.get("title", data["id"]),
            order=int(data.get("order", 0)),
            level=int(data.get("level", 2)),
            description=data.get("description", ""),
            children=[cls.from_dict(child) for child in data.get("children", [])],
            pages=[DocumentRef(**page) for page in data.get("pages", [])],
            last_modified=data.get("lastModified", ""),
        )


@dataclass
class TableOfContents:
    """Ordered tree of categories.

    Attributes:
        title: Index title (the level-1 heading)
        categories: Top-level categories in order
    """
    title: str = "Summary"
    categories: List[Category] = field(default_factory=list)

    def iter_categories(self) -> Iterator[Category]:
        """Depth-first iteration over every category."""
        stack = list(reversed(self.categories))
        while stack:
            category = stack.pop()
            yield category
            stack.extend(reversed(category.children))

    def category_map(self) -> Dict[str, Category]:
        return {category.id: category for category in self.iter_categories()}

    def find_category(self, category_id: str) -> Optional[Category]:
        return self.category_map().get(category_id)

    def document_refs(self) -> List[Tuple[DocumentRef, str]]:
        """Every document reference with its owning category id, in order."""
        refs = []
        for category in self.iter_categories():
            for page in category.pages:
                refs.append((page, category.id))
        return refs

    def find_document(self, doc_id: str) -> Optional[Tuple[DocumentRef, str]]:
        for ref, category_id in self.document_refs():
            if ref.id == doc_id:
                return ref, category_id
        return None

    def replace_category(self, replacement: Category) -> None:
        """Replace the category with the same id, or append it at top level."""
        siblings = self._siblings_of(replacement.id)
        if siblings is None:
            self.categories.append(replacement)
            return
        for index, category in enumerate(siblings):
            if category.id == replacement.id:
                siblings[index] = replacement
                return

    def upsert_document(self, category_id: Optional[str], ref: DocumentRef) -> None:
        """Place a document reference under a category (moving it if needed).

        A reference already listed in the target category keeps its position.
        """
        category = self.find_category(category_id) if category_id else None
        if category is not None:
            for index, page in enumerate(category.pages):
                if page.id == ref.id:
                    ref.order = page.order
                    category.pages[index] = ref
                    return
        self.remove_document(ref.id)
        if category is None:
            category = self.find_category(UNCATEGORIZED_ID)
        if category is None:
            category = Category(
                id=UNCATEGORIZED_ID,
                title="Uncategorized",
                order=len(self.categories),
            )
            self.categories.append(category)
        ref.order = len(category.pages)
        category.pages.append(ref)

    def remove_category(self, category_id: str) -> bool:
        siblings = self._siblings_of(category_id)
        if siblings is None:
            return False
        siblings[:] = [category for category in siblings if category.id != category_id]
        for index, category in enumerate(siblings):
            category.order = index
        return True

    def remove_document(self, doc_id: str) -> bool:
        removed = False
        for category in self.iter_categories():
            kept = [page for page in category.pages if page.id != doc_id]
            if len(kept) != len(category.pages):
                for index, page in enumerate(kept):
                    page.order = index
                category.pages = kept
                removed = True
        return removed

    def copy(self) -> 'TableOfContents':
        return copy.deepcopy(self)

    def _siblings_of(self, category_id: str) -> Optional[List[Category]]:
        if any(category.id == category_id for category in self.categories):
            return self.categories
        for category in self.iter_categories():
            if any(child.id == category_id for child in category.children):
                return category.children
        return None


UNCATEGORIZED_ID = "uncategorized"
