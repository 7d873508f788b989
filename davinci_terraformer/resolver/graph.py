"""Dependency graph for DaVinci resources.

The graph is the single source of truth for resource identity during one
export run: it maps (kind, id) to a unique Terraform name and records every
reference edge discovered while parsing. It is append-only. Once
registration and parsing are finished the graph is sealed, and conversion
code works exclusively against the read-only SealedGraph handle.
"""

import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, Optional, Set

from ..exceptions import (
    CycleError,
    GraphSealedError,
    GraphValidationError,
    ResolverError,
    ResourceNotRegisteredError,
)
from .naming import NameRegistry
from .schema import ResourceKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceRef:
    """Identity of a resource; the canonical name is not part of equality."""

    kind: ResourceKind
    id: str
    name: str = field(default="", compare=False)

    @property
    def key(self) -> str:
        return f"{self.kind.value}:{self.id}"

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class Dependency:
    """A reference from one resource to another."""

    source: ResourceRef
    target: ResourceRef
    field_name: str
    location: str


class DependencyGraph:
    """Registry of resource identities plus the reference edges between them.

    Usage:
        graph = DependencyGraph()
        name = graph.register(ResourceKind.CONNECTOR_INSTANCE, "conn-1",
                              sanitize("HTTP"))
        graph.add_dependencies(parse_dependencies(...))
        sealed = graph.seal()
    """

    def __init__(self) -> None:
        self._resources: Dict[str, ResourceRef] = {}
        self._edges: List[Dependency] = []
        self._names = NameRegistry()
        self._sealed = False

    # Mutation (phase A only)

    def register(self, kind: ResourceKind, resource_id: str, name: str) -> str:
        """Register a resource and return its unique canonical name.

        Args:
            kind: Resource kind
            resource_id: Remote ID of the resource
            name: Sanitized base name

        Returns:
            The canonical name, suffixed when the base name is already taken.
            Registering the same identity twice returns the original name.

        Raises:
            GraphSealedError: If the graph has been sealed
        """
        self._check_mutable("register")
        ref = ResourceRef(kind, resource_id)
        existing = self._resources.get(ref.key)
        if existing is not None:
            logger.debug(f"{ref.key} already registered as '{existing.name}'")
            return existing.name

        unique_name = self._names.ensure_unique(name)
        self._resources[ref.key] = ResourceRef(kind, resource_id, unique_name)
        logger.debug(f"Registered {ref.key} as '{unique_name}'")
        return unique_name

    def add_edge(
        self,
        source: ResourceRef,
        target: ResourceRef,
        field_name: str,
        location: str,
    ) -> Dependency:
        """Record that ``source`` references ``target``.

        The target is not required to be registered; it is looked up at
        resolution time.

        Raises:
            GraphSealedError: If the graph has been sealed
            ResourceNotRegisteredError: If the source is not registered
        """
        self._check_mutable("add_edge")
        registered_source = self._resources.get(source.key)
        if registered_source is None:
            raise ResourceNotRegisteredError(
                f"edge source is not registered: {source.key}",
                resource_type=source.kind.value,
                resource_id=source.id,
            )
        edge = Dependency(
            source=registered_source,
            target=ResourceRef(target.kind, target.id),
            field_name=field_name,
            location=location,
        )
        self._edges.append(edge)
        return edge

    def add_dependencies(self, dependencies: Iterable[Dependency]) -> int:
        """Add a batch of parsed edges; returns how many were added."""
        added = 0
        for dep in dependencies:
            self.add_edge(dep.source, dep.target, dep.field_name, dep.location)
            added += 1
        return added

    def seal(self) -> "SealedGraph":
        """Freeze the graph and hand out the read-only phase-B view."""
        if not self._sealed:
            self._sealed = True
            logger.info(
                f"Dependency graph sealed: {len(self._resources)} resources, "
                f"{len(self._edges)} dependencies"
            )
        return SealedGraph(self)

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    def _check_mutable(self, operation: str) -> None:
        if self._sealed:
            raise GraphSealedError(
                f"cannot {operation} on a sealed dependency graph",
                context={"operation": operation},
            )

    # Queries

    def get(self, kind: ResourceKind, resource_id: str) -> Optional[ResourceRef]:
        return self._resources.get(ResourceRef(kind, resource_id).key)

    def has_resource(self, kind: ResourceKind, resource_id: str) -> bool:
        return self.get(kind, resource_id) is not None

    def lookup(self, kind: ResourceKind, resource_id: str) -> str:
        """Return the canonical name registered for (kind, id).

        Raises:
            ResourceNotRegisteredError: If the resource was never registered
        """
        ref = self.get(kind, resource_id)
        if ref is None:
            raise ResourceNotRegisteredError(
                f"resource not found: type={kind.value}, id={resource_id}",
                resource_type=kind.value,
                resource_id=resource_id,
            )
        return ref.name

    def edges_from(
        self, resource_id: str, kind: Optional[ResourceKind] = None
    ) -> List[Dependency]:
        """Edges whose source has the given ID (optionally of one kind)."""
        return [
            edge
            for edge in self._edges
            if edge.source.id == resource_id
            and (kind is None or edge.source.kind == kind)
        ]

    @property
    def resources(self) -> List[ResourceRef]:
        """Registered resources in registration order."""
        return list(self._resources.values())

    @property
    def dependencies(self) -> List[Dependency]:
        return list(self._edges)

    @property
    def resource_count(self) -> int:
        return len(self._resources)

    @property
    def dependency_count(self) -> int:
        return len(self._edges)

    def resources_of_kind(self, kind: ResourceKind) -> List[ResourceRef]:
        return [ref for ref in self._resources.values() if ref.kind == kind]

    def count_by_kind(self) -> Dict[ResourceKind, int]:
        return dict(Counter(ref.kind for ref in self._resources.values()))

    # Algorithms

    def _adjacency(self) -> Dict[str, List[ResourceRef]]:
        adjacency: Dict[str, List[ResourceRef]] = {}
        for edge in self._edges:
            adjacency.setdefault(edge.source.key, []).append(edge.target)
        return adjacency

    def _find_cycle(
        self,
        ref: ResourceRef,
        adjacency: Dict[str, List[ResourceRef]],
        visited: Set[str],
        on_stack: Set[str],
        path: List[ResourceRef],
    ) -> Optional[List[ResourceRef]]:
        visited.add(ref.key)
        on_stack.add(ref.key)
        path.append(ref)

        for target in adjacency.get(ref.key, []):
            if target.key in on_stack:
                start = next(i for i, r in enumerate(path) if r.key == target.key)
                return path[start:] + [path[start]]
            if target.key not in visited:
                next_ref = self._resources.get(target.key, target)
                cycle = self._find_cycle(next_ref, adjacency, visited, on_stack, path)
                if cycle:
                    return cycle

        on_stack.discard(ref.key)
        path.pop()
        return None

    def detect_cycles(self) -> List[List[ResourceRef]]:
        """Find circular dependencies.

        Runs a depth-first search from every unvisited resource in
        registration order. Each search reports at most one cycle: the path
        suffix starting at the revisited node, closed by repeating it.

        Returns:
            List of cycles; a self-reference yields ``[A, A]``
        """
        adjacency = self._adjacency()
        visited: Set[str] = set()
        cycles: List[List[ResourceRef]] = []

        for ref in self._resources.values():
            if ref.key in visited:
                continue
            cycle = self._find_cycle(ref, adjacency, visited, set(), [])
            if cycle:
                cycles.append(cycle)

        if cycles:
            logger.warning(f"Detected {len(cycles)} circular dependencies")
        return cycles

    def topological_sort(self) -> List[ResourceRef]:
        """Order resources so every dependency precedes its dependents.

        Uses Kahn's algorithm over inverted edges: if A references B, B is
        emitted first. Edges to unregistered targets impose no ordering.

        Returns:
            Registered resources, dependencies first

        Raises:
            CycleError: With the first detected cycle if the graph is not a DAG
        """
        cycles = self.detect_cycles()
        if cycles:
            raise CycleError(cycles[0])

        in_degree: Dict[str, int] = {key: 0 for key in self._resources}
        dependents: Dict[str, List[str]] = {}
        for edge in self._edges:
            if edge.target.key not in self._resources:
                continue
            dependents.setdefault(edge.target.key, []).append(edge.source.key)
            in_degree[edge.source.key] += 1

        queue: Deque[str] = deque(
            key for key, degree in in_degree.items() if degree == 0
        )
        ordered: List[ResourceRef] = []
        while queue:
            key = queue.popleft()
            ordered.append(self._resources[key])
            for dependent in dependents.get(key, []):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if len(ordered) != len(self._resources):
            raise ResolverError(
                f"topological sort failed: sorted {len(ordered)} of "
                f"{len(self._resources)} resources"
            )
        return ordered

    def validation_issues(self) -> List[str]:
        """Structural problems: cycles and edges to unregistered resources."""
        issues: List[str] = []
        for cycle in self.detect_cycles():
            issues.append(
                "circular dependency: " + " → ".join(ref.key for ref in cycle)
            )
        for edge in self._edges:
            if edge.source.key not in self._resources:
                issues.append(f"edge references missing source: {edge.source.key}")
            if edge.target.key not in self._resources:
                issues.append(
                    f"{edge.source.key} references missing resource "
                    f"{edge.target.key} (field: {edge.field_name})"
                )
        return issues

    def validate(self) -> None:
        """Raise if the graph has cycles or dangling edges.

        Raises:
            GraphValidationError: Listing every problem found
        """
        issues = self.validation_issues()
        if issues:
            raise GraphValidationError(issues)


class SealedGraph:
    """Read-only view of a sealed DependencyGraph.

    Conversion functions take this type rather than DependencyGraph, so they
    can only run once every resource has been registered.
    """

    def __init__(self, graph: DependencyGraph) -> None:
        if not graph.is_sealed:
            raise ResolverError("SealedGraph requires a sealed DependencyGraph")
        self._graph = graph

    def get(self, kind: ResourceKind, resource_id: str) -> Optional[ResourceRef]:
        return self._graph.get(kind, resource_id)

    def has_resource(self, kind: ResourceKind, resource_id: str) -> bool:
        return self._graph.has_resource(kind, resource_id)

    def lookup(self, kind: ResourceKind, resource_id: str) -> str:
        return self._graph.lookup(kind, resource_id)

    def edges_from(
        self, resource_id: str, kind: Optional[ResourceKind] = None
    ) -> List[Dependency]:
        return self._graph.edges_from(resource_id, kind)

    @property
    def resources(self) -> List[ResourceRef]:
        return self._graph.resources

    @property
    def dependencies(self) -> List[Dependency]:
        return self._graph.dependencies

    @property
    def resource_count(self) -> int:
        return self._graph.resource_count

    @property
    def dependency_count(self) -> int:
        return self._graph.dependency_count

    def resources_of_kind(self, kind: ResourceKind) -> List[ResourceRef]:
        return self._graph.resources_of_kind(kind)

    def count_by_kind(self) -> Dict[ResourceKind, int]:
        return self._graph.count_by_kind()

    def detect_cycles(self) -> List[List[ResourceRef]]:
        return self._graph.detect_cycles()

    def topological_sort(self) -> List[ResourceRef]:
        return self._graph.topological_sort()

    def validation_issues(self) -> List[str]:
        return self._graph.validation_issues()

    def validate(self) -> None:
        self._graph.validate()
