"""Schema-driven reference extraction from resource documents.

Paths are dotted with an optional ``[*]`` wildcard suffix on a segment, e.g.
``graphData.elements.nodes[*].data.connectionId``. A wildcard segment fans the
traversal out over every element of the array it names.
"""

import logging
from typing import Any, Iterable, List, Optional

from ..exceptions import RequiredPathError
from .graph import Dependency, ResourceRef
from .schema import FieldPath, ResourceKind, get_schema

logger = logging.getLogger(__name__)

WILDCARD = "[*]"


def split_path(path: str) -> List[str]:
    """Split a path on dots that are not inside brackets.

    Args:
        path: Dotted path expression

    Returns:
        List of non-empty segments
    """
    parts: List[str] = []
    current = []
    depth = 0
    for char in path:
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
        if char == "." and depth == 0:
            if current:
                parts.append("".join(current))
            current = []
            continue
        current.append(char)
    if current:
        parts.append("".join(current))
    return parts


def _step(values: Iterable[Any], segment: str) -> List[Any]:
    results: List[Any] = []
    if segment.endswith(WILDCARD):
        key = segment[: -len(WILDCARD)]
        for value in values:
            if not isinstance(value, dict):
                continue
            items = value.get(key)
            if isinstance(items, list):
                results.extend(items)
        return results

    for value in values:
        if isinstance(value, dict) and value.get(segment) is not None:
            results.append(value[segment])
    return results


def extract_values(document: Any, path: str) -> List[str]:
    """Collect every non-empty string found at ``path`` in document order.

    Non-string terminals (numbers, booleans, objects, arrays) are ignored.
    """
    current: List[Any] = [document]
    for segment in split_path(path):
        current = _step(current, segment)
        if not current:
            return []
    return [value for value in current if isinstance(value, str) and value != ""]


def parse_field_path(
    source: ResourceRef, document: Any, field_path: FieldPath
) -> List[Dependency]:
    """Build edges for one FieldPath of a registered resource.

    Raises:
        RequiredPathError: If a required path yields no values
    """
    values = extract_values(document, field_path.path)
    if not values:
        if field_path.optional:
            return []
        raise RequiredPathError(
            f"no values found at path {field_path.path}",
            resource_type=source.kind.value,
            resource_id=source.id,
            path=field_path.path,
        )

    return [
        Dependency(
            source=source,
            target=ResourceRef(field_path.target_kind, value),
            field_name=field_path.field_name,
            location=field_path.path,
        )
        for value in values
    ]


def parse_dependencies(
    kind: ResourceKind,
    resource_id: str,
    document: Any,
    schema: Optional[Iterable[FieldPath]] = None,
    name: str = "",
) -> List[Dependency]:
    """Parse every reference a resource document carries.

    Args:
        kind: Kind of the resource being parsed
        resource_id: Remote ID of the resource
        document: Decoded JSON document
        schema: FieldPaths to evaluate (defaults to the kind's schema)
        name: Canonical name, when already registered

    Returns:
        Edges in schema order, then document order

    Raises:
        RequiredPathError: If any required path yields nothing; no partial
            edge list is returned in that case
    """
    source = ResourceRef(kind, resource_id, name)
    field_paths = get_schema(kind) if schema is None else schema
    dependencies: List[Dependency] = []
    for field_path in field_paths:
        dependencies.extend(parse_field_path(source, document, field_path))

    logger.debug(
        f"Parsed {len(dependencies)} references from {kind.value} {resource_id}"
    )
    return dependencies
