"""TerraformEmitter - Per-kind orchestration of handler-based HCL generation.

Architecture:
    Orchestrator -> TerraformEmitter (this file) -> HandlerRegistry -> Handlers
                                 |
                                 v
                        ConversionContext (shared state)

The emitter converts every document of one resource kind, collects the
variables and import descriptors the handlers produce, and returns the
kind's blocks sorted by canonical name.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..exceptions import ConversionError, DaVinciTerraformerError
from ..hcl import HclWriter, format_hcl_value, quote_string, sort_blocks
from ..imports import RawImportBlock
from ..resolver.schema import KIND_ORDER, ResourceKind
from .base_handler import ConvertedBlock
from .context import ENVIRONMENT_VARIABLE, ConversionContext
from .handlers import HandlerRegistry, ensure_handlers_registered
from .variables import VariableEligibleAttribute

logger = logging.getLogger(__name__)

PROVIDER_SOURCE = "pingidentity/pingone"
PROVIDER_VERSION = ">= 1.0.0"

_UUID_PATTERN = "^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"


@dataclass
class KindOutput:
    """Everything produced for one resource kind."""

    kind: ResourceKind
    hcl: str = ""
    blocks: List[ConvertedBlock] = field(default_factory=list)
    variables: List[VariableEligibleAttribute] = field(default_factory=list)
    import_blocks: List[RawImportBlock] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.blocks)


class TerraformEmitter:
    """Converts the documents of each resource kind using registered handlers.

    Usage:
        emitter = TerraformEmitter(context)
        for kind in KIND_ORDER:
            output = emitter.convert(kind, batch.documents(kind))
    """

    def __init__(self, context: ConversionContext):
        self.context = context

        # Ensure handlers are registered
        ensure_handlers_registered()

        # Track statistics
        self.stats: Dict[str, Any] = {
            "total_resources": 0,
            "emitted_resources": 0,
            "skipped_resources": 0,
            "handler_errors": [],
            "by_kind": {},
        }

    def convert(
        self, kind: ResourceKind, documents: Iterable[Dict[str, Any]]
    ) -> KindOutput:
        """Convert all documents of one kind.

        Args:
            kind: Resource kind of every document
            documents: Decoded JSON documents

        Returns:
            KindOutput with sorted HCL and the collected side outputs

        Raises:
            ConversionError: In strict mode, when a document cannot be
                converted; otherwise the document is skipped and recorded
        """
        handler = HandlerRegistry.get_handler(kind)
        if handler is None:
            raise ConversionError(
                f"No handler registered for {kind.value}", resource_type=kind.value
            )

        output = KindOutput(kind=kind)
        for document in documents:
            self.stats["total_resources"] += 1
            try:
                block = handler.emit(document, self.context)
                imports: List[RawImportBlock] = []
                if self.context.generate_imports:
                    imports = handler.import_blocks(
                        document, block.name, self.context
                    )
            except DaVinciTerraformerError as e:
                error = {
                    "kind": kind.value,
                    "resource": document.get("name") or document.get("id", "unknown"),
                    "error": str(e),
                }
                output.errors.append(error)
                self.stats["handler_errors"].append(error)
                self.stats["skipped_resources"] += 1
                logger.warning(
                    f"Handler error for {error['resource']} ({kind.value}): {e}"
                )
                if self.context.strict_mode:
                    raise
                continue

            output.blocks.append(block)
            output.variables.extend(block.variables)
            output.import_blocks.extend(imports)
            self.context.add_variables(block.variables)
            for import_block in imports:
                self.context.add_import(import_block)
            self.stats["emitted_resources"] += 1

        output.hcl = sort_blocks([block.hcl for block in output.blocks])
        self.stats["by_kind"][kind.value] = output.count
        logger.info(f"Converted {output.count} {kind.short_name} resources")
        return output

    def convert_all(
        self, documents_by_kind: Dict[ResourceKind, List[Dict[str, Any]]]
    ) -> List[KindOutput]:
        """Convert every kind in leaf-before-dependent order."""
        outputs = [
            self.convert(kind, documents_by_kind.get(kind, [])) for kind in KIND_ORDER
        ]
        self._log_statistics()
        return outputs

    def _log_statistics(self) -> None:
        """Log emission statistics."""
        logger.info(
            f"Terraform emission complete: "
            f"{self.stats['emitted_resources']}/{self.stats['total_resources']} "
            f"resources emitted"
        )

        if self.stats["skipped_resources"] > 0:
            logger.info(f"Skipped {self.stats['skipped_resources']} resources")

        if self.stats["handler_errors"]:
            logger.warning(
                f"Handler errors: {len(self.stats['handler_errors'])} "
                f"resources had errors"
            )

        if self.context.missing_tracker.count:
            logger.warning(
                f"Missing references: {self.context.missing_tracker.count} "
                f"references could not be resolved"
            )

    def get_supported_types(self) -> List[str]:
        return HandlerRegistry.get_all_supported_types()

    def get_statistics(self) -> Dict[str, Any]:
        """Get emission statistics.

        Returns:
            Dictionary with emission statistics
        """
        return {
            "total_resources": self.stats["total_resources"],
            "emitted_resources": self.stats["emitted_resources"],
            "skipped_resources": self.stats["skipped_resources"],
            "handler_errors_count": len(self.stats["handler_errors"]),
            "missing_references_count": self.context.missing_tracker.count,
            "variables_count": len(self.context.variables),
            "import_blocks_count": len(self.context.import_blocks),
            "by_kind": dict(self.stats["by_kind"]),
        }


def render_provider_config(region: str) -> str:
    """terraform/provider blocks for the PingOne provider."""
    writer = HclWriter()
    with writer.block("terraform"):
        with writer.block("required_providers"):
            with writer.block("pingone =", "{"):
                writer.attributes(
                    [
                        ("source", quote_string(PROVIDER_SOURCE)),
                        ("version", quote_string(PROVIDER_VERSION)),
                    ]
                )
    writer.blank()
    with writer.block('provider "pingone"'):
        writer.attribute("region", quote_string(region))
        writer.line("# Configure authentication via environment variables:")
        writer.line("# PINGONE_CLIENT_ID")
        writer.line("# PINGONE_CLIENT_SECRET")
        writer.line("# PINGONE_ENVIRONMENT_ID (for OAuth client)")
    return writer.render()


def render_environment_variable() -> str:
    """Declaration of the environment ID input every resource refers to."""
    writer = HclWriter()
    with writer.block(f'variable "{ENVIRONMENT_VARIABLE}"'):
        writer.attributes(
            [
                ("type", "string"),
                (
                    "description",
                    quote_string(
                        "The PingOne environment ID to configure DaVinci resources in"
                    ),
                ),
            ]
        )
        writer.blank()
        with writer.block("validation"):
            writer.attributes(
                [
                    (
                        "condition",
                        f"can(regex({quote_string(_UUID_PATTERN)}, "
                        f"var.{ENVIRONMENT_VARIABLE}))",
                    ),
                    (
                        "error_message",
                        quote_string(
                            "The PingOne Environment ID must be a valid PingOne "
                            "resource ID (UUID format)."
                        ),
                    ),
                ]
            )
    return writer.render()


def render_variable_block(attribute: VariableEligibleAttribute) -> str:
    """``variable`` declaration for one extracted attribute."""
    definition = attribute.to_variable_definition()
    writer = HclWriter()
    with writer.block(f'variable "{attribute.variable_name}"'):
        pairs = [("type", definition["type"])]
        if "description" in definition:
            pairs.append(("description", quote_string(definition["description"])))
        if "default" in definition:
            pairs.append(("default", format_hcl_value(definition["default"], 2)))
        if definition.get("sensitive"):
            pairs.append(("sensitive", "true"))
        writer.attributes(pairs)
    return writer.render()


def format_variable_blocks(
    attributes: Iterable[VariableEligibleAttribute],
    order: Optional[List[ResourceKind]] = None,
) -> str:
    """Render variable declarations grouped by kind, sorted by name.

    A variable name extracted more than once is declared once.
    """
    order = order or list(KIND_ORDER)
    seen = set()
    blocks: List[str] = []
    by_kind: Dict[ResourceKind, List[VariableEligibleAttribute]] = {}
    for attribute in attributes:
        by_kind.setdefault(attribute.resource_kind, []).append(attribute)

    for kind in order:
        for attribute in sorted(
            by_kind.get(kind, []), key=lambda a: a.variable_name.lower()
        ):
            if attribute.variable_name in seen:
                logger.debug(f"Variable {attribute.variable_name} already declared")
                continue
            seen.add(attribute.variable_name)
            blocks.append(render_variable_block(attribute).rstrip())

    return "\n\n".join(blocks) + "\n" if blocks else ""
