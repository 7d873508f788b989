"""Tests for the parent/child ownership index."""

from davinci_terraformer.resolver.hierarchy import HierarchyTracker
from davinci_terraformer.resolver.schema import ResourceKind

APP = ResourceKind.APPLICATION
POLICY = ResourceKind.FLOW_POLICY


class TestHierarchyTracker:
    def test_records_are_kept_in_order(self):
        tracker = HierarchyTracker()
        tracker.add_relationship(APP, "app-1", POLICY, ["pol-1"])
        tracker.add_relationship(APP, "app-2", POLICY, ["pol-2"])
        assert [rel.parent_id for rel in tracker.relationships] == ["app-1", "app-2"]
        assert len(tracker) == 2

    def test_duplicates_are_kept_by_default(self):
        """Recording the same parent twice reports its children twice."""
        tracker = HierarchyTracker()
        tracker.add_relationship(APP, "app-1", POLICY, ["pol-1"])
        tracker.add_relationship(APP, "app-1", POLICY, ["pol-1"])
        assert len(tracker) == 2
        assert tracker.get_child_ids(APP, "app-1") == ["pol-1", "pol-1"]

    def test_deduplicate_merges_records(self):
        """With deduplication, one record per parent and child kind."""
        tracker = HierarchyTracker(deduplicate=True)
        tracker.add_relationship(APP, "app-1", POLICY, ["pol-1", "pol-1"])
        tracker.add_relationship(APP, "app-1", POLICY, ["pol-1", "pol-2"])
        assert len(tracker) == 1
        assert tracker.get_child_ids(APP, "app-1") == ["pol-1", "pol-2"]

    def test_get_parent(self):
        tracker = HierarchyTracker()
        tracker.add_relationship(APP, "app-1", POLICY, ["pol-1", "pol-2"])
        parent = tracker.get_parent(POLICY, "pol-2")
        assert parent is not None
        assert parent.parent_kind == APP
        assert parent.parent_id == "app-1"
        assert tracker.get_parent(POLICY, "pol-9") is None

    def test_get_child_ids_filters_by_kind(self):
        tracker = HierarchyTracker()
        tracker.add_relationship(
            ResourceKind.FLOW, "flow-1", ResourceKind.VARIABLE, ["var-1"]
        )
        assert tracker.get_child_ids(
            ResourceKind.FLOW, "flow-1", ResourceKind.VARIABLE
        ) == ["var-1"]
        assert tracker.get_child_ids(ResourceKind.FLOW, "flow-1", POLICY) == []

    def test_stored_child_list_is_a_copy(self):
        """Mutating the caller's list does not change the record."""
        tracker = HierarchyTracker()
        children = ["pol-1"]
        tracker.add_relationship(APP, "app-1", POLICY, children)
        children.append("pol-2")
        assert tracker.get_child_ids(APP, "app-1") == ["pol-1"]
