"""Application flow policy handler for Terraform emission.

Handles: ResourceKind.FLOW_POLICY
Emits: pingone_davinci_application_flow_policy
"""

import logging
from typing import Any, ClassVar, Dict, List, Optional, Set, Tuple

from ...hcl import HclWriter, quote_string
from ...resolver.graph import ResourceRef
from ...resolver.schema import ResourceKind
from ..base_handler import ConvertedBlock, ResourceHandler
from ..context import ConversionContext
from . import handler

logger = logging.getLogger(__name__)


@handler
class FlowPolicyHandler(ResourceHandler):
    """Handler for application flow policies.

    A policy belongs to one application and distributes traffic over one
    or more flows; both are written as references. Its import ID is scoped
    to the owning application.
    """

    KIND = ResourceKind.FLOW_POLICY
    TERRAFORM_TYPES: ClassVar[Set[str]] = {"pingone_davinci_application_flow_policy"}
    ID_FIELDS = ("policyId", "id")

    def parent_id(
        self, document: Dict[str, Any], context: Optional[ConversionContext] = None
    ) -> Optional[str]:
        """Owning application ID, from the document or the recorded hierarchy."""
        application_id = self.get_string(document, "applicationId")
        if application_id:
            return application_id
        if context is not None and context.hierarchy is not None:
            parent = context.hierarchy.get_parent(
                self.KIND, self.resource_id(document)
            )
            if parent is not None:
                return parent.parent_id
        return None

    def emit(
        self, document: Dict[str, Any], context: ConversionContext
    ) -> ConvertedBlock:
        """Convert a flow policy to Terraform configuration."""
        name = self.require_string(document, "name", "flow policy name")
        resource_id = self.resource_id(document)
        resource_name = context.resource_name(self.KIND, resource_id)
        source = context.source_ref(self.KIND, resource_id)

        writer = HclWriter()
        with self.open_resource(
            writer, "pingone_davinci_application_flow_policy", resource_name
        ):
            pairs: List[Tuple[str, str]] = [
                ("environment_id", context.environment_id_expression)
            ]
            application_id = self.parent_id(document, context)
            if application_id:
                reference = context.reference_for(
                    source, "application_id", application_id
                )
                pairs.append(("davinci_application_id", reference.render()))
            pairs.append(("name", quote_string(name)))
            status = self.get_string(document, "status")
            if status:
                pairs.append(("status", quote_string(status)))
            writer.attributes(pairs)

            trigger = document.get("trigger")
            if isinstance(trigger, dict) and trigger:
                writer.blank()
                self.write_trigger(writer, trigger)

            distributions = [
                item
                for item in document.get("flowDistributions") or []
                if isinstance(item, dict)
            ]
            if distributions:
                writer.blank()
                self._write_distributions(writer, distributions, source, context)

        logger.debug(f"Flow policy '{name}' emitted as {resource_name}")
        return ConvertedBlock(
            kind=self.KIND,
            resource_id=resource_id,
            name=resource_name,
            hcl=writer.render(),
        )

    def _write_distributions(
        self,
        writer: HclWriter,
        distributions: List[Dict[str, Any]],
        source: ResourceRef,
        context: ConversionContext,
    ) -> None:
        with writer.block("flow_distributions =", "[", "]"):
            for distribution in distributions:
                with writer.block("", "{", "},"):
                    pairs: List[Tuple[str, str]] = []
                    flow_id = self.get_string(distribution, "id")
                    if flow_id:
                        reference = context.reference_for(source, "flow_id", flow_id)
                        pairs.append(("id", reference.render()))
                    for key in ("version", "weight"):
                        value = distribution.get(key)
                        if isinstance(value, (int, float)) and not isinstance(
                            value, bool
                        ):
                            pairs.append((key, str(int(value))))
                    writer.attributes(pairs)
