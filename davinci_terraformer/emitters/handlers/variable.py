"""DaVinci variable handler for Terraform emission.

Handles: ResourceKind.VARIABLE
Emits: pingone_davinci_variable
"""

import json
import logging
from typing import Any, ClassVar, Dict, List, Optional, Set, Tuple

from ...hcl import HclWriter, format_json_value, format_number, quote_string
from ...resolver.naming import sanitize_composite
from ...resolver.schema import ResourceKind
from ..base_handler import ConvertedBlock, ResourceHandler
from ..context import ConversionContext
from ..variables import VariableEligibleAttribute, extract_variable_value
from . import handler

logger = logging.getLogger(__name__)


def _value_key(value: Any) -> Optional[str]:
    """Provider value attribute for a runtime value, or None if unwritable."""
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "float32"
    if isinstance(value, str):
        return "string" if value else None
    if isinstance(value, (dict, list)):
        return "json_object" if json.dumps(value) not in ("{}", "[]") else None
    return None


@handler
class VariableHandler(ResourceHandler):
    """Handler for DaVinci variables.

    Variables are named from name + context, since the same variable name
    may exist in several contexts (company, flowInstance, user, flow).
    Secret values are never written; a masked secret is wired to a
    sensitive input variable instead.
    """

    KIND = ResourceKind.VARIABLE
    TERRAFORM_TYPES: ClassVar[Set[str]] = {"pingone_davinci_variable"}

    def label(self, document: Dict[str, Any]) -> str:
        return sanitize_composite(
            self.get_string(document, "name"), self.get_string(document, "context")
        )

    def extract_variables(
        self, document: Dict[str, Any], resource_name: str
    ) -> List[VariableEligibleAttribute]:
        return extract_variable_value(document, resource_name)

    def emit(
        self, document: Dict[str, Any], context: ConversionContext
    ) -> ConvertedBlock:
        """Convert a DaVinci variable to Terraform configuration."""
        name = self.require_string(document, "name", "variable name")
        var_context = self.require_string(document, "context", "variable context")
        data_type = self.require_string(document, "dataType", "variable data_type")
        resource_id = self.resource_id(document)
        resource_name = context.resource_name(self.KIND, resource_id)

        extracted = self.extract_variables(document, resource_name)
        value_line = self._value_line(document, data_type, extracted, context)

        mutable = document.get("mutable")
        if not isinstance(mutable, bool):
            mutable = False
        mutable_overridden = value_line is None and not mutable
        if mutable_overridden:
            mutable = True

        writer = HclWriter()
        with self.open_resource(writer, "pingone_davinci_variable", resource_name):
            self.write_environment(writer, context)
            writer.blank()

            pairs: List[Tuple[str, str]] = [
                ("name", quote_string(name)),
                ("context", quote_string(var_context)),
                ("data_type", quote_string(data_type)),
                ("mutable", format_number(mutable)),
            ]
            writer.attributes(pairs)
            if mutable_overridden:
                writer.line(
                    "# NOTE: mutable overridden to true because no value is provided"
                )

            optional: List[Tuple[str, str]] = []
            display_name = self.get_string(document, "displayName")
            if display_name:
                optional.append(("display_name", quote_string(display_name)))
            for key in ("min", "max"):
                if isinstance(document.get(key), (int, float)) and not isinstance(
                    document.get(key), bool
                ):
                    optional.append((key, format_number(document[key])))
            writer.attributes(optional)

            flow_id = self.get_string(self.get_dict(document, "flow"), "id")
            if flow_id:
                writer.blank()
                with writer.block("flow =", "{"):
                    writer.attribute("id", quote_string(flow_id))

            writer.blank()
            if value_line is not None:
                with writer.block("value =", "{"):
                    writer.line(value_line)
            elif data_type.lower() == "secret":
                writer.line("# TODO: Add secret value manually")
                writer.line("# value = {")
                writer.line('#   secret_string = "your-secret-value"')
                writer.line("# }")
            else:
                writer.line(f"# TODO: Add {data_type} value")
                writer.line(
                    "# Value omitted - will be set dynamically by flow execution"
                )

        logger.debug(f"Variable '{name}' ({var_context}) emitted as {resource_name}")
        return ConvertedBlock(
            kind=self.KIND,
            resource_id=resource_id,
            name=resource_name,
            hcl=writer.render(),
            variables=extracted,
        )

    def _value_line(
        self,
        document: Dict[str, Any],
        data_type: str,
        extracted: List[VariableEligibleAttribute],
        context: ConversionContext,
    ) -> Optional[str]:
        value = document.get("value")
        attribute = extracted[0] if extracted else None

        if data_type.lower() == "secret":
            if attribute is not None and attribute.is_secret:
                return f"secret_string = {attribute.reference}"
            return None

        key = _value_key(value)
        if key is None:
            return None
        if attribute is not None and context.use_variable_references:
            return f"{key} = {attribute.reference}"
        if key == "json_object":
            return f"{key} = jsonencode({format_json_value(value, 4)})"
        if key == "string":
            return f"{key} = {quote_string(value)}"
        return f"{key} = {format_number(value)}"
