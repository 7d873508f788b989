"""Classification of references that could not be resolved.

An unresolved reference never fails an export. It becomes a placeholder in
the generated HCL plus one MissingDependency here, classified by why the
target is absent so the end-of-run summary can tell the user what to do.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Set, Tuple

from .graph import ResourceRef
from .schema import ResourceKind

logger = logging.getLogger(__name__)


class MissingReason(Enum):
    """Why a referenced resource is not in the export."""

    NOT_FOUND = "not found"
    EXCLUDED = "excluded"
    NOT_INCLUDED = "not included"

    @property
    def description(self) -> str:
        return _REASON_DESCRIPTIONS[self]


_REASON_DESCRIPTIONS = {
    MissingReason.NOT_FOUND: "not found in environment",
    MissingReason.EXCLUDED: "was excluded from export",
    MissingReason.NOT_INCLUDED: "was not included in export filters",
}

_SECTION_TITLES = (
    (MissingReason.EXCLUDED, "Excluded Resources"),
    (MissingReason.NOT_INCLUDED, "Not Included in Export"),
    (MissingReason.NOT_FOUND, "Not Found in Environment"),
)


@dataclass(frozen=True)
class MissingDependency:
    source: ResourceRef
    target: ResourceRef
    reason: MissingReason
    field_name: str = ""
    location: str = ""


def _format_resource(ref: ResourceRef) -> str:
    if ref.name:
        return f'{ref.kind.value} "{ref.name}" ({ref.id})'
    return f"{ref.kind.value} {ref.id}"


class MissingDependencyTracker:
    """Collects unresolved references for one export run."""

    def __init__(self) -> None:
        self._excluded: Set[Tuple[ResourceKind, str]] = set()
        self._included_kinds: Set[ResourceKind] = set()
        self._missing: List[MissingDependency] = []

    def mark_excluded(self, kind: ResourceKind, resource_id: str) -> None:
        self._excluded.add((kind, resource_id))

    def set_included_kinds(self, kinds: Iterable[ResourceKind]) -> None:
        """Restrict the export scope; an empty set means every kind."""
        self._included_kinds = set(kinds)

    def is_excluded(self, kind: ResourceKind, resource_id: str) -> bool:
        return (kind, resource_id) in self._excluded

    def is_in_scope(self, kind: ResourceKind) -> bool:
        return not self._included_kinds or kind in self._included_kinds

    def classify(self, kind: ResourceKind, resource_id: str) -> MissingReason:
        """Excluded beats NotIncluded beats NotFound."""
        if self.is_excluded(kind, resource_id):
            return MissingReason.EXCLUDED
        if not self.is_in_scope(kind):
            return MissingReason.NOT_INCLUDED
        return MissingReason.NOT_FOUND

    def record(
        self,
        source: ResourceRef,
        target: ResourceRef,
        field_name: str = "",
        location: str = "",
    ) -> MissingDependency:
        """Classify and store one unresolved reference."""
        missing = MissingDependency(
            source=source,
            target=target,
            reason=self.classify(target.kind, target.id),
            field_name=field_name,
            location=location,
        )
        self._missing.append(missing)
        logger.debug(
            f"Missing dependency: {source.key} -> {target.key} "
            f"({missing.reason.value})"
        )
        return missing

    @property
    def missing(self) -> List[MissingDependency]:
        return list(self._missing)

    @property
    def count(self) -> int:
        return len(self._missing)

    def by_reason(self, reason: MissingReason) -> List[MissingDependency]:
        return [m for m in self._missing if m.reason == reason]

    def summarize(self) -> str:
        """Human-readable summary grouped by reason."""
        if not self._missing:
            return "✓ All dependencies resolved successfully"

        lines = [f"\n⚠ Missing Dependencies Summary ({len(self._missing)} total)"]
        lines.append("=" * 60)

        for reason, title in _SECTION_TITLES:
            group = self.by_reason(reason)
            if not group:
                continue
            lines.append("")
            lines.append(f"{title} ({len(group)}):")
            for dep in group:
                line = (
                    f"  • {_format_resource(dep.source)} → "
                    f"{_format_resource(dep.target)}"
                )
                if dep.field_name:
                    line += f" [field: {dep.field_name}]"
                lines.append(line)

        lines.append("")
        lines.append("Note: Missing references are marked with # TODO: comments")
        lines.append("in the generated configuration. Add the referenced resources")
        lines.append("to the export or replace the placeholders manually.")
        return "\n".join(lines)
