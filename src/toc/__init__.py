"""Table of contents model and SUMMARY.md parser."""

from .models import UNCATEGORIZED_ID, Category, DocumentRef, TableOfContents
from .summary_parser import SummaryParser, slug_from_path, slugify

__all__ = [
    "Category",
    "DocumentRef",
    "SummaryParser",
    "TableOfContents",
    "UNCATEGORIZED_ID",
    "slug_from_path",
    "slugify",
]
