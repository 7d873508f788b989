"""Parent/child ownership index for export scope.

Independent of the reference edges in DependencyGraph: an application owning
its flow policies is recorded here whether or not the policies reference the
application in a way the parser sees.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .schema import ResourceKind

logger = logging.getLogger(__name__)


@dataclass
class HierarchyRelationship:
    parent_kind: ResourceKind
    parent_id: str
    child_kind: ResourceKind
    child_ids: List[str] = field(default_factory=list)


class HierarchyTracker:
    """Append-only list of ownership records.

    Duplicate records are kept by default, so a parent recorded twice
    reports its children twice. Pass ``deduplicate=True`` to merge records
    for the same parent and child kind and drop repeated child IDs.
    """

    def __init__(self, deduplicate: bool = False) -> None:
        self.deduplicate = deduplicate
        self._relationships: List[HierarchyRelationship] = []

    def add_relationship(
        self,
        parent_kind: ResourceKind,
        parent_id: str,
        child_kind: ResourceKind,
        child_ids: List[str],
    ) -> None:
        if self.deduplicate:
            for rel in self._relationships:
                if (
                    rel.parent_kind == parent_kind
                    and rel.parent_id == parent_id
                    and rel.child_kind == child_kind
                ):
                    for child_id in child_ids:
                        if child_id not in rel.child_ids:
                            rel.child_ids.append(child_id)
                    return
            child_ids = list(dict.fromkeys(child_ids))

        self._relationships.append(
            HierarchyRelationship(parent_kind, parent_id, child_kind, list(child_ids))
        )
        logger.debug(
            f"Hierarchy: {parent_kind.value}:{parent_id} owns "
            f"{len(child_ids)} {child_kind.value}"
        )

    def get_children(
        self, parent_kind: ResourceKind, parent_id: str
    ) -> List[HierarchyRelationship]:
        """All records for one parent, in insertion order."""
        return [
            rel
            for rel in self._relationships
            if rel.parent_kind == parent_kind and rel.parent_id == parent_id
        ]

    def get_child_ids(
        self,
        parent_kind: ResourceKind,
        parent_id: str,
        child_kind: Optional[ResourceKind] = None,
    ) -> List[str]:
        ids: List[str] = []
        for rel in self.get_children(parent_kind, parent_id):
            if child_kind is None or rel.child_kind == child_kind:
                ids.extend(rel.child_ids)
        return ids

    def get_parent(
        self, child_kind: ResourceKind, child_id: str
    ) -> Optional[HierarchyRelationship]:
        """First record listing the child, or None."""
        for rel in self._relationships:
            if rel.child_kind == child_kind and child_id in rel.child_ids:
                return rel
        return None

    @property
    def relationships(self) -> List[HierarchyRelationship]:
        return list(self._relationships)

    def __len__(self) -> int:
        return len(self._relationships)
