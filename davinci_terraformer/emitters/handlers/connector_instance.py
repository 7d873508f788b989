"""Connector instance handler for Terraform emission.

Handles: ResourceKind.CONNECTOR_INSTANCE
Emits: pingone_davinci_connector_instance
"""

import logging
from typing import Any, ClassVar, Dict, List, Optional, Set

from ...hcl import HclWriter, quote_string
from ...resolver.schema import ResourceKind
from ..base_handler import ConvertedBlock, ResourceHandler
from ..context import ConversionContext
from ..variables import (
    PropertyMappingConfig,
    VariableEligibleAttribute,
    extract_connector_variables,
    has_typed_value_shape,
)
from . import handler

logger = logging.getLogger(__name__)


@handler
class ConnectorInstanceHandler(ResourceHandler):
    """Handler for DaVinci connector instances.

    Properties are written inside ``jsonencode()`` with their
    ``{"type", "value"}`` containers intact. Masked values are replaced by
    an interpolated input variable.
    """

    KIND = ResourceKind.CONNECTOR_INSTANCE
    TERRAFORM_TYPES: ClassVar[Set[str]] = {"pingone_davinci_connector_instance"}

    def __init__(
        self, property_config: Optional[PropertyMappingConfig] = None
    ) -> None:
        self.property_config = property_config or PropertyMappingConfig()

    def extract_variables(
        self, document: Dict[str, Any], resource_name: str
    ) -> List[VariableEligibleAttribute]:
        return extract_connector_variables(
            document, resource_name, self.property_config
        )

    def emit(
        self, document: Dict[str, Any], context: ConversionContext
    ) -> ConvertedBlock:
        """Convert a connector instance to Terraform configuration."""
        name = self.require_string(document, "name", "connector instance name")
        connector_id = self.require_string(
            self.get_dict(document, "connector"), "id", "connector.id"
        )
        resource_id = self.resource_id(document)
        resource_name = context.resource_name(self.KIND, resource_id)
        extracted = self.extract_variables(document, resource_name)

        writer = HclWriter()
        with self.open_resource(
            writer, "pingone_davinci_connector_instance", resource_name
        ):
            self.write_environment(writer, context)
            writer.blank()
            writer.attribute("name", quote_string(name))
            writer.blank()
            with writer.block("connector =", "{"):
                writer.attribute("id", quote_string(connector_id))

            properties = document.get("properties")
            if isinstance(properties, dict) and properties:
                writer.blank()
                writer.json_attribute(
                    "properties",
                    self._linked_properties(properties, extracted, context),
                )

        logger.debug(f"Connector instance '{name}' emitted as {resource_name}")
        return ConvertedBlock(
            kind=self.KIND,
            resource_id=resource_id,
            name=resource_name,
            hcl=writer.render(),
            variables=extracted,
        )

    def _linked_properties(
        self,
        properties: Dict[str, Any],
        extracted: List[VariableEligibleAttribute],
        context: ConversionContext,
    ) -> Dict[str, Any]:
        """Copy of the properties with variable interpolations substituted.

        Masked values are always extracted (with no default), so they are
        always replaced here.
        """
        by_path = {attr.attribute_path: attr for attr in extracted}
        linked: Dict[str, Any] = {}

        for prop_name, prop in properties.items():
            attr = by_path.get(f"properties.{prop_name}")
            use_var = attr is not None and (
                attr.current_value is None or context.use_variable_references
            )

            if not has_typed_value_shape(prop):
                linked[prop_name] = attr.interpolation if use_var else prop
                continue

            container: Dict[str, Any] = {}
            prop_type = prop.get("type")
            if isinstance(prop_type, str) and prop_type.strip():
                container["type"] = prop_type
            container["value"] = attr.interpolation if use_var else prop.get("value")
            linked[prop_name] = container
        return linked
