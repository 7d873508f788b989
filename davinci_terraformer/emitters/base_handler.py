"""Base handler interface for DaVinci resource kinds.

This module defines the abstract base class that all resource handlers
must implement. Each handler converts the JSON document of one resource
kind into an HCL block, and knows how that kind is identified and named.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Set, Tuple

from ..exceptions import ConversionError
from ..hcl import HclWriter, format_number, quote_string, resource_header
from ..imports import RawImportBlock, build_import_id
from ..resolver.naming import sanitize
from ..resolver.schema import ResourceKind
from .context import ConversionContext
from .variables import VariableEligibleAttribute

logger = logging.getLogger(__name__)


@dataclass
class ConvertedBlock:
    """HCL for one resource plus what the conversion extracted."""

    kind: ResourceKind
    resource_id: str
    name: str
    hcl: str
    variables: List[VariableEligibleAttribute] = field(default_factory=list)


class ResourceHandler(ABC):
    """Abstract base class for resource kind handlers.

    Handlers should be:
    - Focused: One resource kind each
    - Stateless: Use ConversionContext for shared state
    - Reference-aware: Ask the context for every cross-resource field

    Usage:
        @handler
        class ApplicationHandler(ResourceHandler):
            KIND = ResourceKind.APPLICATION
            TERRAFORM_TYPES = {"pingone_davinci_application"}

            def emit(self, document, context):
                ...
    """

    # Subclasses MUST override this
    KIND: ClassVar[ResourceKind]

    # Terraform resource type(s) this handler emits
    TERRAFORM_TYPES: ClassVar[Set[str]] = set()

    # Document keys holding the remote ID, in preference order
    ID_FIELDS: ClassVar[Tuple[str, ...]] = ("id",)

    @classmethod
    def can_handle(cls, kind: ResourceKind) -> bool:
        return getattr(cls, "KIND", None) == kind

    # Identity

    def resource_id(self, document: Dict[str, Any]) -> str:
        """Remote ID of the resource.

        Raises:
            ConversionError: If none of ID_FIELDS holds a non-empty string
        """
        for key in self.ID_FIELDS:
            value = document.get(key)
            if isinstance(value, str) and value:
                return value
        raise ConversionError(
            f"{self.KIND.value} document has no ID "
            f"(looked for {', '.join(self.ID_FIELDS)})",
            resource_type=self.KIND.value,
        )

    def label(self, document: Dict[str, Any]) -> str:
        """Sanitized base name, before uniqueness suffixes."""
        return sanitize(self.get_string(document, "name") or self.resource_id(document))

    def parent_id(
        self, document: Dict[str, Any], context: Optional[ConversionContext] = None
    ) -> Optional[str]:
        """ID of the owning resource for parent-scoped kinds."""
        return None

    # Conversion

    @abstractmethod
    def emit(
        self, document: Dict[str, Any], context: ConversionContext
    ) -> ConvertedBlock:
        """Convert one resource document to HCL.

        Args:
            document: Decoded JSON document
            context: Shared conversion context

        Returns:
            ConvertedBlock with HCL text and extracted variables

        Raises:
            ConversionError: If required attributes are missing or invalid
        """
        raise NotImplementedError

    def extract_variables(
        self, document: Dict[str, Any], resource_name: str
    ) -> List[VariableEligibleAttribute]:
        """Variable-eligible attributes of the document (none by default)."""
        return []

    def import_blocks(
        self,
        document: Dict[str, Any],
        resource_name: str,
        context: ConversionContext,
    ) -> List[RawImportBlock]:
        """Import descriptors for the resource (and any auxiliaries)."""
        import_id = build_import_id(
            self.KIND.value,
            context.environment_id,
            self.resource_id(document),
            self.parent_id(document, context),
        )
        return [RawImportBlock(self.KIND.value, resource_name, import_id)]

    # Utility methods available to all handlers

    @staticmethod
    def get_string(document: Dict[str, Any], key: str) -> str:
        value = document.get(key)
        return value if isinstance(value, str) else ""

    @staticmethod
    def get_dict(document: Dict[str, Any], key: str) -> Dict[str, Any]:
        value = document.get(key)
        return value if isinstance(value, dict) else {}

    def require_string(self, document: Dict[str, Any], key: str, label: str) -> str:
        value = self.get_string(document, key)
        if not value:
            raise ConversionError(
                f"{label} is required",
                resource_type=self.KIND.value,
                resource_id=self.get_string(document, "id") or None,
            )
        return value

    def open_resource(
        self,
        writer: HclWriter,
        terraform_type: str,
        name: str,
    ):
        """Start a resource block; use as a context manager."""
        return writer.block(resource_header(terraform_type, name))

    @staticmethod
    def write_environment(writer: HclWriter, context: ConversionContext) -> None:
        writer.attribute("environment_id", context.environment_id_expression)

    def write_trigger(self, writer: HclWriter, trigger: Dict[str, Any]) -> None:
        """Shared trigger block for flows and flow policies."""
        with writer.block("trigger =", "{"):
            trigger_type = self.get_string(trigger, "type")
            if trigger_type:
                writer.attribute("type", quote_string(trigger_type))

            configuration = self.get_dict(trigger, "configuration")
            if not configuration:
                return
            writer.blank()
            with writer.block("configuration =", "{"):
                for key in ("mfa", "pwd"):
                    section = self.get_dict(configuration, key)
                    if not section:
                        continue
                    writer.blank()
                    with writer.block(f"{key} =", "{"):
                        pairs = []
                        if isinstance(section.get("enabled"), bool):
                            pairs.append(
                                ("enabled", format_number(section["enabled"]))
                            )
                        if isinstance(section.get("time"), (int, float)):
                            pairs.append(("time", str(int(section["time"]))))
                        time_format = self.get_string(section, "timeFormat")
                        if time_format:
                            pairs.append(("time_format", quote_string(time_format)))
                        writer.attributes(pairs)
