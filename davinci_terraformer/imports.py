"""Terraform import descriptors for exported DaVinci resources.

Import IDs are ``<environment_id>/<resource_id>`` except for kinds whose
remote identity is scoped to a parent, which use
``<environment_id>/<parent_id>/<resource_id>``.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .exceptions import ImportIdError
from .hcl import quote_string
from .resolver.schema import KIND_ORDER, ResourceKind

logger = logging.getLogger(__name__)

FLOW_ENABLE_TYPE = "pingone_davinci_flow_enable"
FLOW_DEPLOY_TYPE = "pingone_davinci_flow_deploy"

PARENT_SCOPED_TYPES = {ResourceKind.FLOW_POLICY.value}

IMPORTABLE_TYPES = {kind.value for kind in ResourceKind} | {FLOW_ENABLE_TYPE}

# Import blocks are listed in the same leaf-first order as resources
_TYPE_ORDER = [kind.value for kind in KIND_ORDER]
_TYPE_ORDER.insert(_TYPE_ORDER.index(ResourceKind.FLOW.value) + 1, FLOW_ENABLE_TYPE)


@dataclass(frozen=True)
class RawImportBlock:
    """One import target: resource address plus remote import ID."""

    resource_type: str
    resource_name: str
    import_id: str

    @property
    def address(self) -> str:
        return f"{self.resource_type}.{self.resource_name}"

    def render(self) -> str:
        return (
            "import {\n"
            f"  to = {self.address}\n"
            f"  id = {quote_string(self.import_id)}\n"
            "}"
        )


def build_import_id(
    resource_type: str,
    environment_id: str,
    resource_id: str,
    parent_id: Optional[str] = None,
) -> str:
    """Build the provider import ID for a resource.

    Args:
        resource_type: Terraform resource type
        environment_id: PingOne environment ID
        resource_id: Remote ID of the resource
        parent_id: Parent ID for parent-scoped types (flow policies)

    Returns:
        Import ID string

    Raises:
        ImportIdError: If the type is not importable or a component is missing
    """
    if resource_type not in IMPORTABLE_TYPES:
        raise ImportIdError(
            f"unsupported resource type for import: {resource_type}",
            resource_type=resource_type,
        )
    if not environment_id:
        raise ImportIdError(
            "environment ID is required to build import IDs",
            resource_type=resource_type,
        )
    if not resource_id:
        raise ImportIdError(
            "resource ID is required to build import IDs",
            resource_type=resource_type,
        )
    if resource_type in PARENT_SCOPED_TYPES:
        if not parent_id:
            raise ImportIdError(
                f"{resource_type} import requires the parent application ID",
                resource_type=resource_type,
                context={"resource_id": resource_id},
            )
        return f"{environment_id}/{parent_id}/{resource_id}"
    return f"{environment_id}/{resource_id}"


def sort_import_blocks(blocks: Iterable[RawImportBlock]) -> List[RawImportBlock]:
    def order(block: RawImportBlock):
        try:
            rank = _TYPE_ORDER.index(block.resource_type)
        except ValueError:
            rank = len(_TYPE_ORDER)
        return (rank, block.resource_name.lower())

    return sorted(blocks, key=order)


def format_import_blocks(blocks: Iterable[RawImportBlock]) -> str:
    """Render import blocks, leaf kinds first, separated by blank lines."""
    ordered = sort_import_blocks(blocks)
    if not ordered:
        return ""
    logger.debug(f"Rendering {len(ordered)} import blocks")
    return "\n\n".join(block.render() for block in ordered) + "\n"
