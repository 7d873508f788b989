"""Tests for the dependency graph and its sealed view."""

import pytest

from davinci_terraformer.exceptions import (
    CycleError,
    GraphSealedError,
    GraphValidationError,
    ResolverError,
    ResourceNotRegisteredError,
)
from davinci_terraformer.resolver.graph import (
    DependencyGraph,
    ResourceRef,
    SealedGraph,
)
from davinci_terraformer.resolver.schema import ResourceKind

FLOW = ResourceKind.FLOW


def _flow(resource_id: str) -> ResourceRef:
    return ResourceRef(FLOW, resource_id)


def _graph_with(ids, edges) -> DependencyGraph:
    graph = DependencyGraph()
    for resource_id in ids:
        graph.register(FLOW, resource_id, f"pingcli__{resource_id}")
    for source, target in edges:
        graph.add_edge(_flow(source), _flow(target), "subflow_id", "test")
    return graph


class TestRegistration:
    def test_register_is_idempotent_per_identity(self):
        """Registering the same (kind, id) twice returns the first name."""
        graph = DependencyGraph()
        first = graph.register(FLOW, "flow-1", "pingcli__Login")
        again = graph.register(FLOW, "flow-1", "pingcli__Other")
        assert first == again == "pingcli__Login"
        assert graph.resource_count == 1

    def test_same_id_different_kind_is_distinct(self):
        """Identity is the (kind, id) pair."""
        graph = DependencyGraph()
        graph.register(FLOW, "x", "pingcli__x")
        graph.register(ResourceKind.VARIABLE, "x", "pingcli__x")
        assert graph.resource_count == 2

    def test_lookup_unregistered_raises(self):
        """Lookup misses raise with kind and id in context."""
        graph = DependencyGraph()
        with pytest.raises(ResourceNotRegisteredError) as exc_info:
            graph.lookup(FLOW, "ghost")
        assert exc_info.value.resource_id == "ghost"

    def test_count_by_kind(self):
        graph = DependencyGraph()
        graph.register(FLOW, "a", "pingcli__a")
        graph.register(FLOW, "b", "pingcli__b")
        graph.register(ResourceKind.APPLICATION, "c", "pingcli__c")
        assert graph.count_by_kind() == {FLOW: 2, ResourceKind.APPLICATION: 1}
        assert [ref.id for ref in graph.resources_of_kind(FLOW)] == ["a", "b"]


class TestEdges:
    def test_edge_source_must_be_registered(self):
        """Edges never originate from unknown resources."""
        graph = DependencyGraph()
        with pytest.raises(ResourceNotRegisteredError):
            graph.add_edge(_flow("a"), _flow("b"), "subflow_id", "test")

    def test_edge_target_may_be_unregistered(self):
        """Targets are looked up at resolution time."""
        graph = _graph_with(["a"], [("a", "missing")])
        assert graph.dependency_count == 1
        assert graph.edges_from("a")[0].target.id == "missing"

    def test_edge_source_carries_canonical_name(self):
        """Stored edges use the registered source reference."""
        graph = _graph_with(["a", "b"], [("a", "b")])
        assert graph.dependencies[0].source.name == "pingcli__a"

    def test_edges_from_filters_by_kind(self):
        graph = _graph_with(["a", "b"], [("a", "b")])
        assert len(graph.edges_from("a", FLOW)) == 1
        assert graph.edges_from("a", ResourceKind.VARIABLE) == []


class TestCycles:
    """Cycle detection and ordering."""

    def test_three_cycle_contains_all_members(self):
        """A→B→C→A is reported as one closed cycle."""
        graph = _graph_with(["a", "b", "c"], [("a", "b"), ("b", "c"), ("c", "a")])
        cycles = graph.detect_cycles()
        assert len(cycles) == 1
        cycle_ids = [ref.id for ref in cycles[0]]
        assert cycle_ids == ["a", "b", "c", "a"]

    def test_self_edge_reports_pair(self):
        """A self-reference yields [A, A]."""
        graph = _graph_with(["a"], [("a", "a")])
        cycles = graph.detect_cycles()
        assert [[ref.id for ref in cycle] for cycle in cycles] == [["a", "a"]]

    def test_diamond_has_no_cycles_and_orders_leaves_first(self):
        """Dependencies precede dependents in topological order."""
        graph = _graph_with(
            ["a", "b", "c", "d"], [("a", "b"), ("a", "c"), ("b", "d"), ("c", "d")]
        )
        assert graph.detect_cycles() == []

        order = [ref.id for ref in graph.topological_sort()]
        assert order.index("d") < order.index("b")
        assert order.index("d") < order.index("c")
        assert order.index("b") < order.index("a")
        assert order.index("c") < order.index("a")

    def test_topological_sort_raises_on_cycle(self):
        """Ordering a cyclic graph fails with the cycle attached."""
        graph = _graph_with(["a", "b"], [("a", "b"), ("b", "a")])
        with pytest.raises(CycleError) as exc_info:
            graph.topological_sort()
        assert [ref.id for ref in exc_info.value.cycle] == ["a", "b", "a"]

    def test_edges_to_unregistered_targets_do_not_order(self):
        """Dangling targets neither block nor reorder the sort."""
        graph = _graph_with(["a"], [("a", "ghost")])
        assert [ref.id for ref in graph.topological_sort()] == ["a"]


class TestValidation:
    def test_validation_issues_list_dangling_edges(self):
        graph = _graph_with(["a"], [("a", "ghost")])
        issues = graph.validation_issues()
        assert issues == [
            "pingone_davinci_flow:a references missing resource "
            "pingone_davinci_flow:ghost (field: subflow_id)"
        ]

    def test_validate_raises_with_all_issues(self):
        graph = _graph_with(["a"], [("a", "a"), ("a", "ghost")])
        with pytest.raises(GraphValidationError) as exc_info:
            graph.validate()
        assert len(exc_info.value.issues) == 2

    def test_clean_graph_validates(self):
        _graph_with(["a", "b"], [("a", "b")]).validate()


class TestSealing:
    """The append-only graph is frozen before conversion."""

    def test_sealed_graph_rejects_registration(self):
        graph = _graph_with(["a"], [])
        graph.seal()
        with pytest.raises(GraphSealedError):
            graph.register(FLOW, "b", "pingcli__b")

    def test_sealed_graph_rejects_edges(self):
        graph = _graph_with(["a", "b"], [])
        graph.seal()
        with pytest.raises(GraphSealedError):
            graph.add_edge(_flow("a"), _flow("b"), "subflow_id", "test")

    def test_sealed_view_reads_through(self):
        """The sealed view answers the same queries as the graph."""
        graph = _graph_with(["a", "b"], [("a", "b")])
        sealed = graph.seal()
        assert graph.is_sealed
        assert sealed.lookup(FLOW, "b") == "pingcli__b"
        assert sealed.dependency_count == 1
        assert sealed.resource_count == 2
        assert sealed.has_resource(FLOW, "a")
        assert not sealed.has_resource(FLOW, "z")

    def test_sealed_view_requires_sealed_graph(self):
        """A view over an unsealed graph cannot be created."""
        with pytest.raises(ResolverError):
            SealedGraph(DependencyGraph())
