"""Parser and serializer for GitBook-style SUMMARY.md indexes.

Grammar handled:

    # Summary                       <- index title (level-1 heading)
    ## Getting Started              <- category (level >= 2 nests by depth)
    Short description line          <- appended to the current category
    * [Welcome](welcome.md)         <- document reference
      * [Rules](guides/rules.md)    <- indented bullets stay in the category
    ### Server Rules                <- nested category

Pages listed before any heading are collected into an "Uncategorized"
category.
"""

import logging
import re
import unicodedata
from typing import List

from src.toc.models import UNCATEGORIZED_ID, Category, DocumentRef, TableOfContents

logger = logging.getLogger(__name__)

_HEADING = re.compile(r'^(#+)\s+(.+?)\s*$')
_PAGE = re.compile(r'^(\s*)[*-]\s+\[(.+?)\]\((.+?)\)')

# Characters that NFKD does not decompose into ASCII
_SPECIAL_LETTERS = {
    'ß': 'ss',
    'ø': 'o',
    'æ': 'ae',
    'œ': 'oe',
    'ð': 'd',
    'þ': 'th',
    'ł': 'l',
}


def slugify(text: str) -> str:
    """Convert a title or file name to a lowercase ASCII slug.

    Examples:
        >>> slugify("Server Rules & FAQ")
        'server-rules-faq'
        >>> slugify("Göteborg Överblick")
        'goteborg-overblick'
    """
    lowered = text.strip().lower()
    for letter, replacement in _SPECIAL_LETTERS.items():
        lowered = lowered.replace(letter, replacement)
    ascii_text = (
        unicodedata.normalize('NFKD', lowered)
        .encode('ascii', 'ignore')
        .decode('ascii')
    )
    slug = re.sub(r'[^a-z0-9]+', '-', ascii_text)
    return slug.strip('-')


def slug_from_path(path: str) -> str:
    """Derive a document id from its path.

    README.md files take the name of their directory.

    Examples:
        >>> slug_from_path("guides/Server Rules.md")
        'server-rules'
        >>> slug_from_path("towns/README.md")
        'towns'
    """
    parts = [part for part in path.strip('/').split('/') if part]
    if not parts:
        return ''
    filename = parts[-1]
    if filename.lower() == 'readme.md' and len(parts) > 1:
        return slugify(parts[-2])
    if filename.lower().endswith('.md'):
        filename = filename[:-3]
    return slugify(filename)


class SummaryParser:
    """Converts SUMMARY.md text to and from a TableOfContents."""

    @classmethod
    def parse(cls, text: str) -> TableOfContents:
        """Parse index text into a TableOfContents.

        Args:
            text: Raw SUMMARY.md content

        Returns:
            TableOfContents with categories and document references
        """
        toc = TableOfContents()
        stack: List[Category] = []

        for line in text.splitlines():
            stripped = line.strip()
            if not stripped:
                continue

            heading = _HEADING.match(stripped)
            if heading:
                level = len(heading.group(1))
                title = heading.group(2)
                if level == 1:
                    toc.title = title
                    continue
                while stack and stack[-1].level >= level:
                    stack.pop()
                parent = stack[-1] if stack else None
                siblings = parent.children if parent else toc.categories
                slug = slugify(title) or f"category-{len(siblings)}"
                category = Category(
                    id=f"{parent.id}/{slug}" if parent else slug,
                    title=title,
                    order=len(siblings),
                    level=level,
                )
                siblings.append(category)
                stack.append(category)
                continue

            page = _PAGE.match(line)
            if page:
                title, path = page.group(2), page.group(3)
                if not stack:
                    stack.append(cls._uncategorized(toc))
                category = stack[-1]
                category.pages.append(DocumentRef(
                    id=slug_from_path(path),
                    title=title,
                    path=path,
                    order=len(category.pages),
                ))
                continue

            if stack:
                category = stack[-1]
                if category.description:
                    category.description += '\n' + stripped
                else:
                    category.description = stripped
            else:
                logger.debug(f"Ignoring index line outside any category: {stripped}")

        return toc

    @classmethod
    def serialize(cls, toc: TableOfContents) -> str:
        """Render a TableOfContents back to SUMMARY.md text."""
        lines = [f"# {toc.title}", ""]
        for category in sorted(toc.categories, key=lambda c: c.order):
            cls._render_category(category, 2, lines)
        return '\n'.join(lines).rstrip('\n') + '\n'

    @classmethod
    def _render_category(cls, category: Category, level: int, lines: List[str]) -> None:
        lines.append(f"{'#' * level} {category.title}")
        if category.description:
            lines.extend(category.description.splitlines())
        lines.append("")
        if category.pages:
            for ref in sorted(category.pages, key=lambda p: p.order):
                lines.append(f"* [{ref.title}]({ref.path})")
            lines.append("")
        for child in sorted(category.children, key=lambda c: c.order):
            cls._render_category(child, level + 1, lines)

    @staticmethod
    def _uncategorized(toc: TableOfContents) -> Category:
        category = toc.find_category(UNCATEGORIZED_ID)
        if category is None:
            category = Category(
                id=UNCATEGORIZED_ID,
                title="Uncategorized",
                order=len(toc.categories),
            )
            toc.categories.append(category)
        return category
