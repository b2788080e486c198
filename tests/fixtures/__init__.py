"""Test fixtures for the wiki sync engine.

This module provides test fixtures for:
- A sample wiki (index plus pages) to seed an InMemoryTransport
- A deterministic clock shared by every component under test
"""

from .sample_wiki import (
    SAMPLE_PAGES,
    SAMPLE_SUMMARY,
    START_TIME,
    SUMMARY_WITH_LOOSE_PAGES,
    SUMMARY_WITHOUT_RULES,
    FakeClock,
    seed_wiki,
)

__all__ = [
    "SAMPLE_PAGES",
    "SAMPLE_SUMMARY",
    "START_TIME",
    "SUMMARY_WITH_LOOSE_PAGES",
    "SUMMARY_WITHOUT_RULES",
    "FakeClock",
    "seed_wiki",
]
