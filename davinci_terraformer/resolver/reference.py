"""Terraform reference expressions and unresolved-reference placeholders."""

from typing import Union

from .graph import DependencyGraph, SealedGraph
from .schema import ResourceKind

PLACEHOLDER_MARKER = "# TODO:"

GraphView = Union[DependencyGraph, SealedGraph]


def resolve(
    graph: GraphView, kind: ResourceKind, resource_id: str, attribute: str = "id"
) -> str:
    """Build ``<type>.<name>.<attribute>`` for a registered resource.

    Raises:
        ResourceNotRegisteredError: If the target was never registered
    """
    name = graph.lookup(kind, resource_id)
    return f"{kind.value}.{name}.{attribute}"


def placeholder(kind: ResourceKind, resource_id: str, cause: str) -> str:
    """An empty literal with a greppable comment naming the missing target."""
    return (
        f'"" {PLACEHOLDER_MARKER} Reference to {kind.value} {resource_id} '
        f'unresolved ({cause})'
    )


def is_placeholder(text: str) -> bool:
    return text.startswith('""') and PLACEHOLDER_MARKER in text
