"""Dependency graph validation report.

Diagnostic only: nothing here blocks generation. The ordering depth is the
length of the longest dependency chain plus one, i.e. how many "waves" of
resources Terraform needs when creating everything from scratch.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

import networkx as nx

from ..exceptions import CycleError, ResolverError
from .graph import DependencyGraph, ResourceRef, SealedGraph
from .missing import MissingDependencyTracker
from .schema import KIND_ORDER, ResourceKind

logger = logging.getLogger(__name__)


def build_ordering_graph(graph: Union[DependencyGraph, SealedGraph]) -> nx.DiGraph:
    """networkx view with edges running dependency -> dependent.

    Only registered resources are nodes; references to unregistered targets
    are left out.
    """
    ordering = nx.DiGraph()
    registered = set()
    for ref in graph.resources:
        ordering.add_node(ref.key, kind=ref.kind.value, name=ref.name)
        registered.add(ref.key)
    for edge in graph.dependencies:
        if edge.target.key in registered and edge.source.key in registered:
            ordering.add_edge(edge.target.key, edge.source.key, field=edge.field_name)
    return ordering


def count_dependency_levels(graph: Union[DependencyGraph, SealedGraph]) -> int:
    """Number of ordering levels; 0 for an empty graph.

    Raises:
        CycleError: If the graph contains a cycle
    """
    if graph.resource_count == 0:
        return 0
    ordering = build_ordering_graph(graph)
    if not nx.is_directed_acyclic_graph(ordering):
        cycles = graph.detect_cycles()
        raise CycleError(cycles[0] if cycles else [])
    return nx.dag_longest_path_length(ordering) + 1


@dataclass
class GraphValidationReport:
    """Snapshot of graph health for the end-of-run report."""

    total_resources: int = 0
    total_dependencies: int = 0
    missing_dependencies: int = 0
    resources_by_kind: Dict[ResourceKind, int] = field(default_factory=dict)
    cycles: List[List[ResourceRef]] = field(default_factory=list)
    ordering_levels: Optional[int] = None
    ordering_error: Optional[str] = None

    @classmethod
    def from_graph(
        cls,
        graph: Union[DependencyGraph, SealedGraph],
        missing_tracker: Optional[MissingDependencyTracker] = None,
    ) -> "GraphValidationReport":
        report = cls(
            total_resources=graph.resource_count,
            total_dependencies=graph.dependency_count,
            missing_dependencies=missing_tracker.count if missing_tracker else 0,
            resources_by_kind=graph.count_by_kind(),
            cycles=graph.detect_cycles(),
        )
        try:
            graph.topological_sort()
            report.ordering_levels = count_dependency_levels(graph)
        except ResolverError as e:
            report.ordering_error = e.message
            logger.warning(f"Cannot order resources: {e.message}")
        return report

    @property
    def is_orderable(self) -> bool:
        return self.ordering_error is None

    def format_report(self) -> str:
        """Format the validation report as a human-readable string."""
        lines = []
        lines.append("Dependency Graph Validation Report")
        lines.append("=" * 60)
        lines.append("")
        lines.append(f"Total Resources: {self.total_resources}")
        lines.append(f"Total Dependencies: {self.total_dependencies}")
        lines.append(f"Missing Dependencies (TODOs): {self.missing_dependencies}")
        lines.append("")

        lines.append("Resources by Type:")
        for kind in KIND_ORDER:
            count = self.resources_by_kind.get(kind, 0)
            if count:
                lines.append(f"  {kind.value}: {count}")
        lines.append("")

        if self.cycles:
            lines.append(f"✗ Circular dependencies detected: {len(self.cycles)}")
            for i, cycle in enumerate(self.cycles, 1):
                path = " → ".join(ref.key for ref in cycle)
                lines.append(f"  {i}. {path}")
        else:
            lines.append("✓ No circular dependencies detected")
        lines.append("")

        if self.is_orderable:
            lines.append("✓ Resources can be ordered by dependencies")
            lines.append(f"  Suggested order: {self.ordering_levels} levels")
        else:
            lines.append(f"✗ Cannot order resources: {self.ordering_error}")

        return "\n".join(lines)


def generate_validation_report(
    graph: Union[DependencyGraph, SealedGraph],
    missing_tracker: Optional[MissingDependencyTracker] = None,
) -> str:
    """Convenience wrapper returning the formatted report text."""
    return GraphValidationReport.from_graph(graph, missing_tracker).format_report()
