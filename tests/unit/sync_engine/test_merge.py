"""Unit tests for sync_engine.merge module."""

import copy

import pytest

from src.models.document import Document
from src.sync_engine.merge import (
    LOCAL,
    REMOTE,
    merge_categories,
    merge_documents,
    pick_newer_side,
)
from src.toc import Category, DocumentRef
from tests.fixtures import START_TIME


def _doc(content, last_modified):
    return Document(id="rules", path="rules.md", title="Rules", content=content,
                    last_modified=last_modified)


class TestPickNewerSide:
    """Test cases for pick_newer_side function."""

    def test_local_newer(self):
        """The later-modified local side wins."""
        local = _doc("mine", "2024-01-15T11:00:00Z")
        remote = _doc("theirs", "2024-01-15T10:00:00Z")

        assert pick_newer_side(local, remote) == LOCAL

    def test_remote_newer(self):
        """The later-modified remote side wins."""
        local = _doc("mine", "2024-01-15T09:00:00Z")
        remote = _doc("theirs", "2024-01-15T10:00:00Z")

        assert pick_newer_side(local, remote) == REMOTE

    def test_tie_goes_to_remote(self):
        """Equal timestamps favour the authoritative remote."""
        local = _doc("mine", "2024-01-15T10:00:00+00:00")
        remote = _doc("theirs", "2024-01-15T10:00:00Z")

        assert pick_newer_side(local, remote) == REMOTE

    def test_offsets_are_normalized_to_utc(self):
        """12:30+02:00 is 10:30Z, which is older than 10:45Z."""
        local = _doc("mine", "2024-01-15T12:30:00+02:00")
        remote = _doc("theirs", "2024-01-15T10:45:00Z")

        assert pick_newer_side(local, remote) == REMOTE

    @pytest.mark.parametrize("local_stamp,remote_stamp", [
        ("", "2024-01-15T10:00:00Z"),
        ("2024-01-15T10:00:00Z", "yesterday"),
    ])
    def test_missing_or_invalid_timestamp_goes_to_remote(self, local_stamp, remote_stamp):
        """Unparseable timestamps cannot win for the local side."""
        assert pick_newer_side(_doc("mine", local_stamp), _doc("theirs", remote_stamp)) == REMOTE


class TestMergeDocuments:
    """Test cases for merge_documents function."""

    def test_selects_one_whole_side(self):
        """The merged content is exactly one side's content."""
        local = _doc("mine", "2024-01-15T11:00:00Z")
        remote = _doc("theirs", "2024-01-15T10:00:00Z")

        merged, side = merge_documents(local, remote, START_TIME)

        assert side == LOCAL
        assert merged.content == "mine"
        assert merged.content_hash == local.content_hash

    def test_restamps_with_sync_time(self):
        """The merged result carries the current sync time."""
        local = _doc("mine", "2024-01-15T09:00:00Z")
        remote = _doc("theirs", "2024-01-15T09:30:00Z")

        merged, side = merge_documents(local, remote, START_TIME)

        assert side == REMOTE
        assert merged.last_modified == "2024-01-15T10:00:00+00:00"
        assert remote.last_modified == "2024-01-15T09:30:00Z"


class TestMergeCategories:
    """Test cases for merge_categories function."""

    @pytest.fixture
    def local(self):
        return Category(
            id="guides",
            title="Guides (local)",
            description="Local description",
            children=[Category(id="guides/advanced", title="Advanced", level=3)],
            pages=[
                DocumentRef("building", "Building", "guides/building.md", 0),
                DocumentRef("farming", "Farming", "guides/farming.md", 1),
            ],
        )

    @pytest.fixture
    def remote(self):
        return Category(
            id="guides",
            title="Guides (remote)",
            children=[
                Category(id="guides/basics", title="Basics", level=3),
                Category(id="guides/advanced", title="Advanced", level=3),
            ],
            pages=[
                DocumentRef("mining", "Mining", "guides/mining.md", 0),
                DocumentRef("building", "Building", "guides/building.md", 1),
            ],
        )

    def test_no_child_is_dropped(self, local, remote):
        """Every child and page of either side survives, de-duplicated."""
        merged = merge_categories(local, remote, START_TIME)

        assert merged.page_ids() == ["building", "farming", "mining"]
        assert merged.child_ids() == ["guides/advanced", "guides/basics"]

    def test_local_metadata_and_order_preserved(self, local, remote):
        """Title and description come from the local side; orders are renumbered."""
        merged = merge_categories(local, remote, START_TIME)

        assert merged.title == "Guides (local)"
        assert merged.description == "Local description"
        assert [page.order for page in merged.pages] == [0, 1, 2]
        assert merged.last_modified == "2024-01-15T10:00:00+00:00"

    def test_inputs_are_not_modified(self, local, remote):
        """merge_categories is pure."""
        local_before = copy.deepcopy(local)
        remote_before = copy.deepcopy(remote)

        merge_categories(local, remote, START_TIME)

        assert local == local_before
        assert remote == remote_before
