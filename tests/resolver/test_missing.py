"""Tests for unresolved-reference classification and summaries."""

from davinci_terraformer.resolver.graph import ResourceRef
from davinci_terraformer.resolver.missing import (
    MissingDependencyTracker,
    MissingReason,
)
from davinci_terraformer.resolver.schema import ResourceKind

FLOW = ResourceKind.FLOW
CONN = ResourceKind.CONNECTOR_INSTANCE


class TestClassification:
    """Excluded beats NotIncluded beats NotFound."""

    def test_unknown_target_is_not_found(self):
        tracker = MissingDependencyTracker()
        assert tracker.classify(CONN, "conn-1") == MissingReason.NOT_FOUND

    def test_out_of_scope_kind_is_not_included(self):
        tracker = MissingDependencyTracker()
        tracker.set_included_kinds({FLOW})
        assert tracker.classify(CONN, "conn-1") == MissingReason.NOT_INCLUDED
        assert tracker.is_in_scope(FLOW)
        assert not tracker.is_in_scope(CONN)

    def test_excluded_wins_over_scope(self):
        tracker = MissingDependencyTracker()
        tracker.set_included_kinds({FLOW})
        tracker.mark_excluded(CONN, "conn-1")
        assert tracker.classify(CONN, "conn-1") == MissingReason.EXCLUDED

    def test_empty_scope_includes_everything(self):
        tracker = MissingDependencyTracker()
        tracker.set_included_kinds(set())
        assert tracker.is_in_scope(CONN)


class TestRecording:
    def test_record_stores_classified_dependency(self):
        tracker = MissingDependencyTracker()
        tracker.mark_excluded(CONN, "conn-1")
        missing = tracker.record(
            ResourceRef(FLOW, "flow-1", "pingcli__Login"),
            ResourceRef(CONN, "conn-1"),
            "connection_id",
        )
        assert missing.reason == MissingReason.EXCLUDED
        assert tracker.count == 1
        assert tracker.by_reason(MissingReason.EXCLUDED) == [missing]
        assert tracker.by_reason(MissingReason.NOT_FOUND) == []


class TestSummary:
    def test_summary_without_missing(self):
        assert (
            MissingDependencyTracker().summarize()
            == "✓ All dependencies resolved successfully"
        )

    def test_summary_groups_by_reason(self):
        """Sections are titled per reason and list source → target."""
        tracker = MissingDependencyTracker()
        tracker.mark_excluded(CONN, "conn-1")
        source = ResourceRef(FLOW, "flow-1", "pingcli__Login")
        tracker.record(source, ResourceRef(CONN, "conn-1"), "connection_id")
        tracker.record(source, ResourceRef(CONN, "conn-2"), "connection_id")

        summary = tracker.summarize()
        assert "⚠ Missing Dependencies Summary (2 total)" in summary
        assert "Excluded Resources (1):" in summary
        assert "Not Found in Environment (1):" in summary
        assert "Not Included in Export" not in summary
        assert (
            '  • pingone_davinci_flow "pingcli__Login" (flow-1) → '
            "pingone_davinci_connector_instance conn-2 [field: connection_id]"
        ) in summary
        assert summary.index("Excluded Resources") < summary.index("Not Found")
