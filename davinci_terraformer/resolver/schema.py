"""Reference path schemas for DaVinci resource kinds.

Each resource kind owns a static list of FieldPath entries describing where
inside its JSON document a reference to another resource may live. Adding a
new reference location is a matter of adding one entry to SCHEMAS.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple


class ResourceKind(Enum):
    """Closed set of exported resource kinds, valued by Terraform type."""

    VARIABLE = "pingone_davinci_variable"
    CONNECTOR_INSTANCE = "pingone_davinci_connector_instance"
    FLOW = "pingone_davinci_flow"
    APPLICATION = "pingone_davinci_application"
    FLOW_POLICY = "pingone_davinci_application_flow_policy"

    @property
    def terraform_type(self) -> str:
        return self.value

    @property
    def short_name(self) -> str:
        return self.name.lower()

    @classmethod
    def from_type(cls, terraform_type: str) -> "ResourceKind":
        """Map a Terraform resource type back to its kind.

        Raises:
            ValueError: If the type is not a DaVinci resource type
        """
        try:
            return cls(terraform_type)
        except ValueError:
            raise ValueError(
                f"Unknown resource type: {terraform_type} "
                f"(known: {', '.join(k.value for k in cls)})"
            ) from None

    @classmethod
    def parse(cls, value: str) -> "ResourceKind":
        """Accept either the short name ("flow") or the Terraform type."""
        normalized = value.strip()
        for kind in cls:
            if normalized.lower() == kind.short_name:
                return kind
        return cls.from_type(normalized)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class FieldPath:
    """A navigable location that may hold a reference to another kind."""

    path: str
    target_kind: ResourceKind
    field_name: str
    is_array: bool = False
    optional: bool = False
    description: str = ""


# Leaf-before-dependent processing order
KIND_ORDER: Tuple[ResourceKind, ...] = (
    ResourceKind.VARIABLE,
    ResourceKind.CONNECTOR_INSTANCE,
    ResourceKind.FLOW,
    ResourceKind.APPLICATION,
    ResourceKind.FLOW_POLICY,
)

SCHEMAS: Dict[ResourceKind, Tuple[FieldPath, ...]] = {
    ResourceKind.FLOW: (
        FieldPath(
            path="graphData.elements.nodes[*].data.connectionId",
            target_kind=ResourceKind.CONNECTOR_INSTANCE,
            field_name="connection_id",
            is_array=True,
            optional=False,
            description="Connector instances used by flow nodes",
        ),
        FieldPath(
            path="graphData.elements.nodes[*].data.properties.variableId",
            target_kind=ResourceKind.VARIABLE,
            field_name="variable_id",
            is_array=True,
            optional=True,
            description="Variables read or written by flow nodes",
        ),
        FieldPath(
            path="graphData.elements.nodes[*].data.properties.subFlowId",
            target_kind=ResourceKind.FLOW,
            field_name="subflow_id",
            is_array=True,
            optional=True,
            description="Sub-flows invoked by flow nodes",
        ),
    ),
    ResourceKind.FLOW_POLICY: (
        FieldPath(
            path="flowDistributions[*].id",
            target_kind=ResourceKind.FLOW,
            field_name="flow_id",
            is_array=True,
            optional=False,
            description="Flows distributed by the policy",
        ),
        FieldPath(
            path="applicationId",
            target_kind=ResourceKind.APPLICATION,
            field_name="application_id",
            is_array=False,
            optional=False,
            description="Application owning the policy",
        ),
    ),
    # Kinds with no embedded references
    ResourceKind.APPLICATION: (),
    ResourceKind.CONNECTOR_INSTANCE: (),
    ResourceKind.VARIABLE: (),
}

_missing = [kind for kind in ResourceKind if kind not in SCHEMAS]
if _missing:
    raise RuntimeError(f"No reference schema declared for: {_missing}")


def get_schema(kind: ResourceKind) -> Tuple[FieldPath, ...]:
    """Return the reference paths declared for a kind."""
    return SCHEMAS[kind]


def get_field_path(kind: ResourceKind, field_name: str) -> FieldPath:
    """Look up one FieldPath by its output field name.

    Raises:
        KeyError: If the kind declares no such field
    """
    for field_path in SCHEMAS[kind]:
        if field_path.field_name == field_name:
            return field_path
    raise KeyError(f"{kind.value} has no reference field '{field_name}'")


def describe_schemas() -> List[str]:
    """Human-readable listing of every declared reference path."""
    lines = []
    for kind in KIND_ORDER:
        for fp in SCHEMAS[kind]:
            flag = "optional" if fp.optional else "required"
            lines.append(
                f"{kind.value}: {fp.path} -> {fp.target_kind.value} "
                f"({fp.field_name}, {flag})"
            )
    return lines
