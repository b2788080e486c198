"""Unit tests for remote_store.document_store and memory_transport modules."""

import pytest
from unittest.mock import MagicMock

from src.remote_store import (
    DocumentNotFoundError,
    InMemoryTransport,
    RemoteDocumentStore,
    RevisionConflictError,
    TransientNetworkError,
    UnauthenticatedError,
)
from src.toc import DocumentRef


@pytest.fixture
def sleep():
    return MagicMock()


@pytest.fixture
def store(transport, sleep):
    return RemoteDocumentStore(transport, timeout=5, sleep=sleep)


class TestFetchAndWrite:
    """Test cases for fetch_document and write_document."""

    def test_fetch_returns_content_and_revision(self, store):
        """A seeded document is returned with its revision."""
        document = store.fetch_document("rules.md")

        assert document.content.startswith("# Server Rules")
        assert document.revision == "1"
        assert document.last_modified == "2024-01-15T10:00:00+00:00"

    def test_fetch_missing_document_raises(self, store):
        """Unknown paths raise DocumentNotFoundError."""
        with pytest.raises(DocumentNotFoundError):
            store.fetch_document("missing.md")

    def test_write_with_current_revision_succeeds(self, store, transport):
        """A write carrying the current revision advances it."""
        revision = store.write_document("rules.md", "# Rules v2", "Update rules", "1")

        assert revision == "2"
        assert transport.read("rules.md", timeout=5).content == "# Rules v2"

    def test_write_with_stale_revision_conflicts(self, store, transport):
        """A stale expected revision raises RevisionConflictError."""
        transport.seed("rules.md", "# Remote edit")

        with pytest.raises(RevisionConflictError) as exc_info:
            store.write_document("rules.md", "# Local edit", "Update rules", "1")

        assert exc_info.value.expected_revision == "1"
        assert exc_info.value.actual_revision == "2"
        assert transport.read("rules.md", timeout=5).content == "# Remote edit"

    def test_create_existing_path_conflicts(self, store):
        """expected_revision=None only succeeds for new paths."""
        with pytest.raises(RevisionConflictError):
            store.write_document("rules.md", "# Duplicate", "Create rules", None)

    def test_create_new_path(self, store, transport):
        """New documents are created with revision 1."""
        assert store.write_document("faq.md", "# FAQ", "Create faq") == "1"
        assert transport.write_log[-1].message == "Create faq"

    def test_update_of_missing_document_conflicts(self, store):
        """Writing against a revision of a document that is gone conflicts."""
        with pytest.raises(RevisionConflictError):
            store.write_document("gone.md", "# Gone", "Update", "3")


class TestRetries:
    """Test cases for retry behavior of the store."""

    def test_transient_failures_are_retried(self, store, transport, sleep):
        """Two timeouts followed by success return the document."""
        transport.fail_next("read", TransientNetworkError("memory://"), path="rules.md")
        transport.fail_next("read", TransientNetworkError("memory://"), path="rules.md")

        document = store.fetch_document("rules.md")

        assert document.revision == "1"
        assert [call[0][0] for call in sleep.call_args_list] == [1, 2]

    def test_retries_are_bounded(self, transport, sleep):
        """The last transient failure propagates once retries run out."""
        store = RemoteDocumentStore(transport, max_retries=1, sleep=sleep)
        for _ in range(2):
            transport.fail_next("read", TransientNetworkError("memory://"))

        with pytest.raises(TransientNetworkError):
            store.fetch_document("rules.md")

        assert sleep.call_count == 1

    def test_auth_failures_are_not_retried(self, store, transport, sleep):
        """Credential errors propagate immediately."""
        transport.fail_next("write", UnauthenticatedError("user", "memory://"))

        with pytest.raises(UnauthenticatedError):
            store.write_document("rules.md", "# Rules", "Update", "1")

        sleep.assert_not_called()


class TestTableOfContents:
    """Test cases for index helpers."""

    def test_fetch_table_of_contents_with_revision(self, store):
        """The index is parsed and returned with its revision."""
        toc, revision = store.fetch_table_of_contents_with_revision()

        assert revision == "1"
        assert toc.find_document("redstone")[1] == "guides/advanced"

    def test_write_table_of_contents(self, store, transport):
        """The index is serialized and written with optimistic concurrency."""
        toc = store.fetch_table_of_contents()
        toc.upsert_document("guides", DocumentRef("farming", "Farming", "guides/farming.md"))

        revision = store.write_table_of_contents(toc, "Add farming", "1")

        assert revision == "2"
        assert "* [Farming](guides/farming.md)" in transport.read("SUMMARY.md", timeout=5).content

    def test_custom_summary_path(self, transport):
        """The index path is configurable."""
        transport.seed("index.md", "# Index\n\n## Only\n\n* [A](a.md)\n")
        store = RemoteDocumentStore(transport, summary_path="index.md")

        assert store.fetch_table_of_contents().title == "Index"


class TestAccessAndListing:
    """Test cases for list_paths and check_access."""

    def test_list_paths(self, store):
        """Every stored path is listed in sorted order."""
        assert store.list_paths() == [
            "SUMMARY.md",
            "guides/building.md",
            "guides/redstone.md",
            "rules.md",
            "welcome.md",
        ]

    def test_check_access_true(self, store):
        """A reachable backend reports True."""
        assert store.check_access() is True

    def test_check_access_false_never_raises(self, store, transport):
        """Failures are reported as False instead of raised."""
        transport.fail_next("ping", UnauthenticatedError("user", "memory://"))

        assert store.check_access() is False


class TestInMemoryTransport:
    """Test cases for the in-memory backend itself."""

    def test_seed_increments_revision(self):
        """Out-of-band edits move the revision like remote edits."""
        transport = InMemoryTransport()

        assert transport.seed("a.md", "one") == "1"
        assert transport.seed("a.md", "two") == "2"
        assert transport.revision_of("a.md") == "2"

    def test_remove(self):
        """remove deletes a document out of band."""
        transport = InMemoryTransport()
        transport.seed("a.md", "one")

        transport.remove("a.md")

        assert transport.revision_of("a.md") is None

    def test_path_specific_failure_leaves_other_paths(self):
        """Injected failures only hit the targeted path."""
        transport = InMemoryTransport()
        transport.seed("a.md", "a")
        transport.seed("b.md", "b")
        transport.fail_next("read", TransientNetworkError("memory://"), path="b.md")

        assert transport.read("a.md", timeout=1).content == "a"
        with pytest.raises(TransientNetworkError):
            transport.read("b.md", timeout=1)
        assert transport.read("b.md", timeout=1).content == "b"
