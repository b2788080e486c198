"""Unit tests for sync_engine.conflict_detector module."""

from dataclasses import replace

import pytest

from src.models.document import Document
from src.sync_engine.conflict_detector import (
    ConflictDetector,
    category_fingerprint,
    category_fingerprints,
    page_fingerprint,
)
from src.sync_engine.models import ConflictKind, ConflictType, DocumentSet
from src.toc import DocumentRef, SummaryParser
from tests.fixtures import SAMPLE_SUMMARY


def _doc(doc_id, content="body", revision="1", title=None, order=0, category_id="cat",
         last_modified="2024-01-15T10:00:00+00:00"):
    return Document(
        id=doc_id,
        path=f"{doc_id}.md",
        title=title or doc_id.title(),
        content=content,
        order=order,
        category_id=category_id,
        last_modified=last_modified,
        revision=revision,
    )


def _set(*documents, toc=None):
    return DocumentSet.from_toc(toc, {doc.id: doc for doc in documents})


def _buckets(result):
    return {
        "conflicts": [item.id for item in result.conflicts],
        "to_pull": result.to_pull,
        "to_push": result.to_push,
        "unchanged": result.unchanged,
        "categories_to_pull": result.categories_to_pull,
        "categories_to_push": result.categories_to_push,
    }


@pytest.fixture
def detector():
    return ConflictDetector()


class TestFingerprints:
    """Test cases for page and category fingerprints."""

    def test_timestamps_do_not_affect_page_fingerprint(self):
        """Identical pages with different stamps share a fingerprint."""
        a = _doc("rules", last_modified="2024-01-15T10:00:00+00:00")
        b = _doc("rules", last_modified="2030-01-01T00:00:00+00:00", revision="9")

        assert page_fingerprint(a) == page_fingerprint(b)

    @pytest.mark.parametrize("change", [
        {"content": "other"},
        {"title": "Other"},
        {"order": 5},
        {"category_id": "elsewhere"},
    ])
    def test_synchronized_fields_change_page_fingerprint(self, change):
        """Content, title, order and category all count."""
        original = _doc("rules")
        changed = replace(original, **change)
        if "content" in change:
            changed = original.with_content(change["content"], original.last_modified)

        assert page_fingerprint(original) != page_fingerprint(changed)

    def test_category_fingerprint_tracks_membership(self):
        """Adding a page changes a category's fingerprint."""
        category = SummaryParser.parse(SAMPLE_SUMMARY).find_category("guides")
        before = category_fingerprint(category)

        category.pages.append(DocumentRef("farming", "Farming", "farming.md", 1))

        assert category_fingerprint(category) != before

    def test_category_fingerprints_maps_every_category(self):
        """category_fingerprints covers nested categories too."""
        toc = SummaryParser.parse(SAMPLE_SUMMARY)

        assert set(category_fingerprints(toc.category_map())) == {
            "getting-started", "guides", "guides/advanced",
        }


class TestPageDetection:
    """Test cases for page classification."""

    def test_identical_sets_are_unchanged(self, detector):
        """Byte-identical sides never conflict."""
        result = detector.detect_conflicts(_set(_doc("a"), _doc("b")), _set(_doc("a"), _doc("b")))

        assert sorted(result.unchanged) == ["a", "b"]
        assert result.conflicts == []

    def test_identical_content_with_drifted_timestamps_is_unchanged(self, detector):
        """Clock drift alone is never a conflict."""
        local = _doc("a", last_modified="2024-01-15T10:00:00+00:00")
        remote = _doc("a", last_modified="2024-01-15T12:00:00+02:00", revision="2")

        result = detector.detect_conflicts(_set(local), _set(remote), pending_ids=["a"])

        assert result.unchanged == ["a"]

    def test_remote_only_change_is_pulled(self, detector):
        """A moved remote revision without local changes is pulled."""
        result = detector.detect_conflicts(
            _set(_doc("a", "old", "1")),
            _set(_doc("a", "new", "2")),
        )

        assert result.to_pull == ["a"]

    def test_remote_index_metadata_change_is_pulled(self, detector):
        """A retitle in the remote index alone is pulled, not a conflict."""
        result = detector.detect_conflicts(
            _set(_doc("a", title="Old")),
            _set(_doc("a", title="New")),
        )

        assert result.to_pull == ["a"]
        assert result.conflicts == []

    def test_content_only_difference_is_one_content_conflict(self, detector):
        """Bodies differing at the same revision give exactly one content conflict."""
        result = detector.detect_conflicts(
            _set(_doc("d", "local body"), _doc("other")),
            _set(_doc("d", "remote body"), _doc("other")),
        )

        assert [(item.id, item.conflict_type) for item in result.conflicts] == [
            ("d", ConflictType.CONTENT),
        ]
        assert result.to_pull == []
        assert result.unchanged == ["other"]

    def test_local_only_change_is_pushed(self, detector):
        """A pending local change against an unmoved remote is pushed."""
        result = detector.detect_conflicts(
            _set(_doc("a", "local edit", "1")),
            _set(_doc("a", "base", "1")),
            pending_ids=["a"],
        )

        assert result.to_push == ["a"]

    def test_both_changed_is_content_conflict(self, detector):
        """Divergent content on both sides is a content conflict."""
        result = detector.detect_conflicts(
            _set(_doc("a", "local edit", "1")),
            _set(_doc("a", "remote edit", "2")),
            pending_ids=["a"],
        )

        assert len(result.conflicts) == 1
        item = result.conflicts[0]
        assert item.kind == ConflictKind.PAGE
        assert item.conflict_type == ConflictType.CONTENT
        assert item.remote_revision == "2"
        assert item.local_version.content == "local edit"
        assert item.remote_version.content == "remote edit"

    def test_category_move_is_structure_conflict(self, detector):
        """Same content in different categories is a structure conflict."""
        result = detector.detect_conflicts(
            _set(_doc("a", category_id="one")),
            _set(_doc("a", category_id="two", revision="2")),
            pending_ids=["a"],
        )

        assert result.conflicts[0].conflict_type == ConflictType.STRUCTURE

    def test_title_only_difference_is_metadata_conflict(self, detector):
        """Only title or order differing is a metadata conflict."""
        result = detector.detect_conflicts(
            _set(_doc("a", title="Local")),
            _set(_doc("a", title="Remote", revision="2")),
            pending_ids=["a"],
        )

        assert result.conflicts[0].conflict_type == ConflictType.METADATA

    def test_new_remote_page_is_pulled(self, detector):
        """Pages only present remotely are pulled."""
        result = detector.detect_conflicts(_set(), _set(_doc("a")))

        assert result.to_pull == ["a"]

    def test_new_local_page_is_pushed(self, detector):
        """Pages created offline (no revision yet) are pushed."""
        result = detector.detect_conflicts(_set(_doc("a", revision=None)), _set())

        assert result.to_push == ["a"]

    def test_remote_delete_of_synced_page_is_conflict(self, detector):
        """A synced page gone remotely is a delete conflict."""
        result = detector.detect_conflicts(_set(_doc("a", revision="3")), _set())

        item = result.conflicts[0]
        assert item.remote_version is None
        assert item.conflict_type == ConflictType.STRUCTURE

    def test_pending_local_delete_is_pushed(self, detector):
        """A page deleted locally with a queued delete is pushed."""
        result = detector.detect_conflicts(_set(), _set(_doc("a")), pending_ids=["a"])

        assert result.to_push == ["a"]

    def test_held_ids_are_skipped(self, detector):
        """Items held for manual resolution appear in no bucket."""
        result = detector.detect_conflicts(
            _set(_doc("a", "local", "1")),
            _set(_doc("a", "remote", "2"), _doc("b")),
            pending_ids=["a"],
            held_ids=["a", "b"],
        )

        assert all(not ids for ids in _buckets(result).values())

    def test_every_id_lands_in_exactly_one_bucket(self, detector):
        """Detection partitions the union of both sides (minus held ids)."""
        local = _set(
            _doc("same"),
            _doc("pull", "old", "1"),
            _doc("push", "edit", "1"),
            _doc("clash", "mine", "1"),
            _doc("created", revision=None),
            _doc("gone", revision="1"),
            _doc("held", "x", "1"),
        )
        remote = _set(
            _doc("same"),
            _doc("pull", "new", "2"),
            _doc("push", "base", "1"),
            _doc("clash", "theirs", "2"),
            _doc("fresh"),
            _doc("held", "y", "2"),
        )

        result = detector.detect_conflicts(
            local, remote, pending_ids=["push", "clash", "created"], held_ids=["held"],
        )

        buckets = _buckets(result)
        seen = [doc_id for ids in buckets.values() for doc_id in ids]
        assert sorted(seen) == sorted(set(seen))
        assert set(seen) == {"same", "pull", "push", "clash", "created", "gone", "fresh"}
        assert buckets["to_pull"] == ["pull", "fresh"]
        assert sorted(buckets["to_push"]) == ["created", "push"]
        assert sorted(buckets["conflicts"]) == ["clash", "gone"]


class TestCategoryDetection:
    """Test cases for category classification against the baseline."""

    @pytest.fixture
    def toc(self):
        return SummaryParser.parse(SAMPLE_SUMMARY)

    def test_unchanged_categories(self, detector, toc):
        """Identical categories are unchanged."""
        result = detector.detect_conflicts(_set(toc=toc), _set(toc=toc.copy()))

        assert sorted(result.unchanged) == ["getting-started", "guides", "guides/advanced"]

    def test_remote_change_is_pulled(self, detector, toc):
        """Remote differs from the baseline, local does not."""
        baseline = category_fingerprints(toc.category_map())
        remote = toc.copy()
        remote.find_category("guides").title = "Guides & Tips"

        result = detector.detect_conflicts(_set(toc=toc), _set(toc=remote), category_baseline=baseline)

        assert result.categories_to_pull == ["guides"]

    def test_local_change_is_pushed(self, detector, toc):
        """Local differs from the baseline, remote does not."""
        baseline = category_fingerprints(toc.category_map())
        local = toc.copy()
        local.upsert_document("guides", DocumentRef("farming", "Farming", "farming.md"))

        result = detector.detect_conflicts(_set(toc=local), _set(toc=toc), category_baseline=baseline)

        assert result.categories_to_push == ["guides"]

    def test_both_changed_is_category_conflict(self, detector, toc):
        """Both sides differ from the baseline and from each other."""
        baseline = category_fingerprints(toc.category_map())
        local = toc.copy()
        local.upsert_document("guides", DocumentRef("farming", "Farming", "farming.md"))
        remote = toc.copy()
        remote.upsert_document("guides", DocumentRef("mining", "Mining", "mining.md"))

        result = detector.detect_conflicts(_set(toc=local), _set(toc=remote), category_baseline=baseline)

        item = result.conflicts[0]
        assert item.id == "guides"
        assert item.kind == ConflictKind.CATEGORY
        assert item.conflict_type == ConflictType.STRUCTURE

    def test_new_remote_category_without_baseline_is_pulled(self, detector, toc):
        """Before the first sync every remote category is pulled."""
        result = detector.detect_conflicts(_set(), _set(toc=toc))

        assert sorted(result.categories_to_pull) == ["getting-started", "guides", "guides/advanced"]

    def test_category_title_change_is_metadata(self, detector, toc):
        """Only a title difference on both sides is a metadata conflict."""
        baseline = category_fingerprints(toc.category_map())
        local = toc.copy()
        local.find_category("guides").title = "Local Guides"
        remote = toc.copy()
        remote.find_category("guides").title = "Remote Guides"

        result = detector.detect_conflicts(_set(toc=local), _set(toc=remote), category_baseline=baseline)

        assert result.conflicts[0].conflict_type == ConflictType.METADATA

    def test_held_category_skipped(self, detector, toc):
        """Held category ids are skipped as well."""
        remote = toc.copy()
        remote.find_category("guides").title = "Changed"

        result = detector.detect_conflicts(_set(toc=toc), _set(toc=remote), held_ids=["guides"])

        assert "guides" not in _buckets(result)["conflicts"] + result.categories_to_pull


def test_category_deleted_remotely_is_pulled():
    """A category removed remotely and untouched locally is pulled (removed)."""
    toc = SummaryParser.parse(SAMPLE_SUMMARY)
    baseline = category_fingerprints(toc.category_map())
    remote = toc.copy()
    remote.remove_category("guides")

    result = ConflictDetector().detect_conflicts(_set(toc=toc), _set(toc=remote), category_baseline=baseline)

    assert sorted(result.categories_to_pull) == ["guides", "guides/advanced"]
