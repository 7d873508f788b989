"""DaVinci flow handler for Terraform emission.

Handles: ResourceKind.FLOW
Emits: pingone_davinci_flow, pingone_davinci_flow_enable,
       pingone_davinci_flow_deploy

A flow converts to three resources that share one canonical name: the flow
itself, an enable resource carrying its enabled state, and a deploy resource
keyed on the flow's current version.
"""

import json
import logging
from typing import Any, ClassVar, Dict, List, Optional, Set, Tuple

from ...exceptions import FlowEnabledConflictError
from ...hcl import (
    HclWriter,
    format_hcl_value,
    format_number,
    quote_string,
)
from ...imports import FLOW_DEPLOY_TYPE, FLOW_ENABLE_TYPE, RawImportBlock
from ...resolver.graph import ResourceRef
from ...resolver.schema import ResourceKind, get_schema
from ..base_handler import ConvertedBlock, ResourceHandler
from ..context import ConversionContext
from . import handler

logger = logging.getLogger(__name__)

FLOW_TYPE = ResourceKind.FLOW.value

# Flow settings accepted by the provider, mapped to their HCL attribute names
FLOW_SETTINGS_FIELDS: Dict[str, str] = {
    "csp": "csp",
    "css": "css",
    "cssLinks": "css_links",
    "customErrorScreenBrandLogoUrl": "custom_error_screen_brand_logo_url",
    "customErrorShowFooter": "custom_error_show_footer",
    "customFaviconLink": "custom_favicon_link",
    "customLogoURLSelection": "custom_logo_urlselection",
    "customTitle": "custom_title",
    "defaultErrorScreenBrandLogo": "default_error_screen_brand_logo",
    "flowHttpTimeoutInSeconds": "flow_http_timeout_in_seconds",
    "flowTimeoutInSeconds": "flow_timeout_in_seconds",
    "intermediateLoadingScreenCSS": "intermediate_loading_screen_css",
    "intermediateLoadingScreenHTML": "intermediate_loading_screen_html",
    "jsCustomFlowPlayer": "js_custom_flow_player",
    "jsLinks": "js_links",
    "logLevel": "log_level",
    "requireAuthenticationToInitiate": "require_authentication_to_initiate",
    "scrubSensitiveInfo": "scrub_sensitive_info",
    "sensitiveInfoFields": "sensitive_info_fields",
    "useCSP": "use_csp",
    "useCustomCSS": "use_custom_css",
    "useCustomFlowPlayer": "use_custom_flow_player",
    "useCustomScript": "use_custom_script",
    "useIntermediateLoadingScreen": "use_intermediate_loading_screen",
    "validateOnSave": "validate_on_save",
}

DEFAULT_LOG_LEVEL = 4

INPUT_DATA_TYPES = {"array", "boolean", "number", "object", "string"}
_DATA_TYPE_ALIASES = {
    "bool": "boolean",
    "integer": "number",
    "int": "number",
    "float": "number",
    "double": "number",
    "secret": "string",
}

_NODE_PROPERTIES_PREFIX = "graphData.elements.nodes[*].data.properties."

# Node property key -> reference field name, taken from the flow schema
NODE_PROPERTY_REFERENCES: Dict[str, str] = {
    fp.path[len(_NODE_PROPERTIES_PREFIX) :]: fp.field_name
    for fp in get_schema(ResourceKind.FLOW)
    if fp.path.startswith(_NODE_PROPERTIES_PREFIX)
}

_NODE_FLAGS = ("removed", "selected", "selectable", "locked", "grabbable", "pannable")

_GRAPH_FLAGS = (
    ("zoomingEnabled", "zooming_enabled"),
    ("panningEnabled", "panning_enabled"),
    ("userZoomingEnabled", "user_zooming_enabled"),
    ("userPanningEnabled", "user_panning_enabled"),
    ("boxSelectionEnabled", "box_selection_enabled"),
)


def resolve_enabled(document: Dict[str, Any]) -> Optional[bool]:
    """Enabled state from the export ``flowStatus`` or the API ``enabled`` flag.

    Returns:
        The enabled state, or None when neither field carries one

    Raises:
        FlowEnabledConflictError: If both fields are present and disagree
    """
    status_enabled: Optional[bool] = None
    status = document.get("flowStatus")
    if isinstance(status, str):
        status_enabled = {"enabled": True, "disabled": False}.get(status.lower())

    api_enabled = document.get("enabled")
    if not isinstance(api_enabled, bool):
        api_enabled = None

    if (
        status_enabled is not None
        and api_enabled is not None
        and status_enabled != api_enabled
    ):
        raise FlowEnabledConflictError(
            f"flow enabled conflict: flowStatus={str(status_enabled).lower()} "
            f"enabled={str(api_enabled).lower()}",
            resource_type=FLOW_TYPE,
            resource_id=document.get("flowId") or document.get("id"),
        )
    return api_enabled if api_enabled is not None else status_enabled


def normalize_data_type(value: str) -> str:
    """Map an input schema data type onto the values the provider accepts."""
    lowered = value.lower()
    lowered = _DATA_TYPE_ALIASES.get(lowered, lowered)
    return lowered if lowered in INPUT_DATA_TYPES else "string"


def _sorted_by_data_id(elements: List[Any]) -> List[Dict[str, Any]]:
    items = [item for item in elements if isinstance(item, dict)]

    def data_id(item: Dict[str, Any]) -> str:
        data = item.get("data")
        value = data.get("id") if isinstance(data, dict) else None
        return value if isinstance(value, str) else ""

    return sorted(items, key=data_id)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@handler
class FlowHandler(ResourceHandler):
    """Handler for DaVinci flows.

    Connection IDs and node property references (variables, sub-flows) are
    written through the conversion context, so they become Terraform
    references, placeholders, or literal IDs depending on the run.
    """

    KIND = ResourceKind.FLOW
    TERRAFORM_TYPES: ClassVar[Set[str]] = {
        FLOW_TYPE,
        FLOW_ENABLE_TYPE,
        FLOW_DEPLOY_TYPE,
    }
    ID_FIELDS = ("flowId", "id")

    def emit(
        self, document: Dict[str, Any], context: ConversionContext
    ) -> ConvertedBlock:
        """Convert a flow and its enable/deploy companions to Terraform."""
        name = self.require_string(document, "name", "flow name")
        resource_id = self.resource_id(document)
        enabled = resolve_enabled(document)
        resource_name = context.resource_name(self.KIND, resource_id)
        source = context.source_ref(self.KIND, resource_id)

        writer = HclWriter()
        with self.open_resource(writer, FLOW_TYPE, resource_name):
            self.write_environment(writer, context)
            writer.blank()

            pairs: List[Tuple[str, str]] = [("name", quote_string(name))]
            description = self.get_string(document, "description")
            if description:
                pairs.append(("description", quote_string(description)))
            color = self.get_string(document, "flowColor") or self.get_string(
                document, "color"
            )
            if color:
                pairs.append(("color", quote_string(color)))
            writer.attributes(pairs)

            settings = self._filter_settings(self.get_dict(document, "settings"))
            if settings:
                writer.blank()
                self._write_settings(writer, settings)

            graph_data = document.get("graphData")
            if isinstance(graph_data, dict):
                writer.blank()
                self._write_graph_data(writer, graph_data, source, context)

            input_schema = self._input_schema(document)
            if input_schema:
                writer.blank()
                self._write_input_schema(writer, input_schema)

            output_schema = self.get_dict(document, "outputSchema")
            if output_schema:
                writer.blank()
                with writer.block("output_schema =", "{"):
                    if "output" in output_schema:
                        writer.json_attribute("output", output_schema["output"])

            trigger = document.get("trigger")
            if isinstance(trigger, dict):
                writer.blank()
                self.write_trigger(writer, trigger)

        writer.blank()
        self._write_enable(writer, document, resource_name, enabled, context)
        writer.blank()
        self._write_deploy(writer, document, resource_name, context)

        logger.debug(f"Flow '{name}' emitted as {resource_name}")
        return ConvertedBlock(
            kind=self.KIND,
            resource_id=resource_id,
            name=resource_name,
            hcl=writer.render(),
        )

    def import_blocks(
        self,
        document: Dict[str, Any],
        resource_name: str,
        context: ConversionContext,
    ) -> List[RawImportBlock]:
        """The flow and its enable resource share one import ID."""
        blocks = super().import_blocks(document, resource_name, context)
        blocks.append(
            RawImportBlock(FLOW_ENABLE_TYPE, resource_name, blocks[0].import_id)
        )
        return blocks

    # Settings

    def _filter_settings(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        filtered = {k: v for k, v in settings.items() if k in FLOW_SETTINGS_FIELDS}
        dropped = sorted(set(settings) - set(filtered))
        if dropped:
            logger.debug(f"Dropping unsupported flow settings: {', '.join(dropped)}")
        if filtered and "logLevel" not in filtered:
            filtered["logLevel"] = DEFAULT_LOG_LEVEL
        return filtered

    def _write_settings(self, writer: HclWriter, settings: Dict[str, Any]) -> None:
        with writer.block("settings =", "{"):
            pairs: List[Tuple[str, str]] = []
            for key in sorted(settings):
                if key == "jsLinks":
                    continue
                value = settings[key]
                attribute = FLOW_SETTINGS_FIELDS[key]
                if value is None:
                    pairs.append((attribute, "null"))
                elif isinstance(value, bool):
                    pairs.append((attribute, format_number(value)))
                elif _is_number(value):
                    pairs.append((attribute, str(int(value))))
                elif isinstance(value, str):
                    pairs.append((attribute, quote_string(value)))
                elif isinstance(value, list):
                    pairs.append(
                        (attribute, format_hcl_value([str(item) for item in value]))
                    )
            writer.attributes(pairs)

            if "jsLinks" in settings:
                links = settings["jsLinks"]
                links = [link for link in links or [] if isinstance(link, dict)]
                if not links:
                    writer.attribute("js_links", "[]")
                    return
                with writer.block("js_links =", "[", "]"):
                    for index, link in enumerate(links):
                        closer = "}," if index < len(links) - 1 else "}"
                        with writer.block("", "{", closer):
                            writer.attributes(self._js_link_pairs(link))

    def _js_link_pairs(self, link: Dict[str, Any]) -> List[Tuple[str, str]]:
        defer = link.get("defer")
        pairs = [
            ("crossorigin", quote_string(self.get_string(link, "crossorigin"))),
            ("defer", format_number(defer if isinstance(defer, bool) else False)),
            ("integrity", quote_string(self.get_string(link, "integrity"))),
        ]
        label = self.get_string(link, "label")
        if label:
            pairs.append(("label", quote_string(label)))
        pairs.extend(
            [
                (
                    "referrerpolicy",
                    quote_string(self.get_string(link, "referrerpolicy")),
                ),
                ("type", quote_string(self.get_string(link, "type"))),
                ("value", quote_string(self.get_string(link, "value"))),
            ]
        )
        return pairs

    # Graph data

    def _write_graph_data(
        self,
        writer: HclWriter,
        graph_data: Dict[str, Any],
        source: ResourceRef,
        context: ConversionContext,
    ) -> None:
        with writer.block("graph_data =", "{"):
            data = graph_data.get("data")
            if isinstance(data, dict):
                writer.json_attribute("data", data)

            elements = graph_data.get("elements")
            if isinstance(elements, dict):
                with writer.block("elements =", "{"):
                    nodes = elements.get("nodes")
                    if isinstance(nodes, list):
                        self._write_nodes(
                            writer, _sorted_by_data_id(nodes), source, context
                        )
                    edges = elements.get("edges")
                    if isinstance(edges, list):
                        self._write_edges(writer, _sorted_by_data_id(edges))

            pan = graph_data.get("pan")
            if isinstance(pan, dict):
                writer.blank()
                self._write_position(writer, "pan", pan)

            pairs: List[Tuple[str, str]] = []
            if _is_number(graph_data.get("zoom")):
                pairs.append(("zoom", str(int(graph_data["zoom"]))))
            for key, attribute in (("minZoom", "min_zoom"), ("maxZoom", "max_zoom")):
                if _is_number(graph_data.get(key)):
                    pairs.append((attribute, format_number(graph_data[key])))
            for key, attribute in _GRAPH_FLAGS:
                if isinstance(graph_data.get(key), bool):
                    pairs.append((attribute, format_number(graph_data[key])))
            if pairs:
                writer.blank()
                writer.attributes(pairs)

            renderer = graph_data.get("renderer")
            if isinstance(renderer, dict):
                writer.blank()
                writer.json_attribute("renderer", renderer)

    def _write_nodes(
        self,
        writer: HclWriter,
        nodes: List[Dict[str, Any]],
        source: ResourceRef,
        context: ConversionContext,
    ) -> None:
        with writer.block("nodes =", "{"):
            for index, node in enumerate(nodes):
                data = self.get_dict(node, "data")
                key = self.get_string(data, "id") or f"node_{index}"
                with writer.block(f"{quote_string(key)} =", "{"):
                    if data:
                        self._write_node_data(writer, data, source, context)
                    self._write_element_attributes(writer, node)

    def _write_node_data(
        self,
        writer: HclWriter,
        data: Dict[str, Any],
        source: ResourceRef,
        context: ConversionContext,
    ) -> None:
        with writer.block("data =", "{"):
            pairs: List[Tuple[str, str]] = []
            for key, attribute in (
                ("id", "id"),
                ("nodeType", "node_type"),
                ("idUnique", "id_unique"),
            ):
                value = self.get_string(data, key)
                if value:
                    pairs.append((attribute, quote_string(value)))

            connection_id = self.get_string(data, "connectionId")
            if connection_id:
                reference = context.reference_for(
                    source, "connection_id", connection_id
                )
                pairs.append(("connection_id", reference.render()))

            for key, attribute in (
                ("connectorId", "connector_id"),
                ("name", "name"),
                ("label", "label"),
                ("status", "status"),
                ("capabilityName", "capability_name"),
                ("type", "type"),
            ):
                value = self.get_string(data, key)
                if value:
                    pairs.append((attribute, quote_string(value)))
            writer.attributes(pairs)

            properties = data.get("properties")
            if isinstance(properties, dict):
                writer.json_attribute(
                    "properties", self._linked_properties(properties, source, context)
                )

    def _linked_properties(
        self,
        properties: Dict[str, Any],
        source: ResourceRef,
        context: ConversionContext,
    ) -> Dict[str, Any]:
        linked = dict(properties)
        for key, field_name in NODE_PROPERTY_REFERENCES.items():
            target_id = properties.get(key)
            if isinstance(target_id, str) and target_id:
                linked[key] = context.reference_for(source, field_name, target_id)
        return linked

    def _write_edges(self, writer: HclWriter, edges: List[Dict[str, Any]]) -> None:
        if not edges:
            writer.attribute("edges", "{}")
            return
        with writer.block("edges =", "{"):
            for index, edge in enumerate(edges):
                data = self.get_dict(edge, "data")
                key = self.get_string(data, "id") or f"edge_{index}"
                with writer.block(f"{quote_string(key)} =", "{"):
                    if data:
                        pairs = [
                            (attribute, quote_string(self.get_string(data, attribute)))
                            for attribute in ("id", "source", "target")
                            if self.get_string(data, attribute)
                        ]
                        with writer.block("data =", "{"):
                            writer.attributes(pairs)
                    self._write_element_attributes(writer, edge)

    def _write_element_attributes(
        self, writer: HclWriter, element: Dict[str, Any]
    ) -> None:
        """Position, group, boolean flags and classes shared by nodes and edges."""
        position = element.get("position")
        if isinstance(position, dict):
            self._write_position(writer, "position", position)

        pairs: List[Tuple[str, str]] = []
        group = self.get_string(element, "group")
        if group:
            pairs.append(("group", quote_string(group)))
        for flag in _NODE_FLAGS:
            if isinstance(element.get(flag), bool):
                pairs.append((flag, format_number(element[flag])))
        # classes is always written, even when empty
        pairs.append(("classes", quote_string(self.get_string(element, "classes"))))
        writer.attributes(pairs)

    @staticmethod
    def _write_position(
        writer: HclWriter, attribute: str, position: Dict[str, Any]
    ) -> None:
        with writer.block(f"{attribute} =", "{"):
            for axis in ("x", "y"):
                if _is_number(position.get(axis)):
                    writer.attribute(axis, format_number(position[axis]))

    # Input schema

    def _input_schema(self, document: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Input schema entries, derived from the compiled schema when needed."""
        explicit = document.get("inputSchema")
        if isinstance(explicit, list) and explicit:
            return [item for item in explicit if isinstance(item, dict)]

        compiled = document.get("inputSchemaCompiled")
        if not isinstance(compiled, dict):
            return []
        params = compiled.get("parameters")
        if not isinstance(params, dict):
            params = compiled

        derived = self._derive_input_schema(
            self.get_dict(params, "properties"), params.get("required")
        )
        if derived:
            return derived
        return self._input_schema_from_nodes(document)

    def _input_schema_from_nodes(
        self, document: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        """Merge JSON input schemas embedded in node properties."""
        merged: Dict[str, Any] = {}
        required: List[str] = []
        nodes = self.get_dict(self.get_dict(document, "graphData"), "elements").get(
            "nodes"
        )
        for node in nodes if isinstance(nodes, list) else []:
            if not isinstance(node, dict):
                continue
            properties = self.get_dict(self.get_dict(node, "data"), "properties")
            raw = self.get_string(self.get_dict(properties, "inputSchema"), "value")
            if not raw:
                continue
            try:
                schema = json.loads(raw)
            except json.JSONDecodeError:
                logger.debug("Ignoring node inputSchema that is not valid JSON")
                continue
            if not isinstance(schema, dict):
                continue
            for prop_name, prop in self.get_dict(schema, "properties").items():
                merged.setdefault(prop_name, prop)
            if isinstance(schema.get("required"), list):
                required.extend(schema["required"])
        return self._derive_input_schema(merged, required)

    def _derive_input_schema(
        self, properties: Dict[str, Any], required: Any
    ) -> List[Dict[str, Any]]:
        required_set = set(required) if isinstance(required, list) else set()
        derived = []
        for prop_name in sorted(properties):
            prop = properties[prop_name]
            if not isinstance(prop, dict):
                continue
            derived.append(
                {
                    "propertyName": prop_name,
                    "preferredDataType": self.get_string(prop, "preferredDataType")
                    or self.get_string(prop, "type"),
                    "preferredControlType": self.get_string(
                        prop, "preferredControlType"
                    )
                    or "textField",
                    "isExpanded": prop.get("isExpanded") is True,
                    "description": self.get_string(prop, "description"),
                    "required": prop_name in required_set,
                }
            )
        return derived

    def _write_input_schema(
        self, writer: HclWriter, entries: List[Dict[str, Any]]
    ) -> None:
        with writer.block("input_schema =", "[", "]"):
            for index, entry in enumerate(entries):
                closer = "}," if index < len(entries) - 1 else "}"
                with writer.block("", "{", closer):
                    writer.attributes(self._input_schema_pairs(entry))

    def _input_schema_pairs(self, entry: Dict[str, Any]) -> List[Tuple[str, str]]:
        data_type = self.get_string(entry, "preferredDataType") or self.get_string(
            entry, "dataType"
        )
        pairs: List[Tuple[str, str]] = []
        property_name = self.get_string(entry, "propertyName")
        if property_name:
            pairs.append(("property_name", quote_string(property_name)))
        pairs.append(
            ("preferred_data_type", quote_string(normalize_data_type(data_type)))
        )
        control_type = self.get_string(entry, "preferredControlType")
        if control_type:
            pairs.append(("preferred_control_type", quote_string(control_type)))
        for key, attribute in (("required", "required"), ("isExpanded", "is_expanded")):
            if isinstance(entry.get(key), bool):
                pairs.append((attribute, format_number(entry[key])))
        # description is always written, even when empty
        description = self.get_string(entry, "description")
        pairs.append(("description", quote_string(description)))
        return pairs

    # Companion resources

    def _write_enable(
        self,
        writer: HclWriter,
        document: Dict[str, Any],
        resource_name: str,
        enabled: Optional[bool],
        context: ConversionContext,
    ) -> None:
        resource_id = self.resource_id(document)
        flow_ref = f"{FLOW_TYPE}.{resource_name}"
        if context.skip_dependencies:
            flow_id = quote_string(resource_id)
            enabled_value = (
                format_number(enabled) if enabled is not None else f"{flow_ref}.enabled"
            )
        else:
            flow_id = f"{flow_ref}.id"
            enabled_value = f"{flow_ref}.enabled"

        with self.open_resource(writer, FLOW_ENABLE_TYPE, resource_name):
            writer.attributes(
                [
                    ("environment_id", context.environment_id_expression),
                    ("flow_id", flow_id),
                    ("enabled", enabled_value),
                ]
            )

    def _write_deploy(
        self,
        writer: HclWriter,
        document: Dict[str, Any],
        resource_name: str,
        context: ConversionContext,
    ) -> None:
        flow_ref = f"{FLOW_TYPE}.{resource_name}"
        version: str = f"{flow_ref}.current_version"
        if context.skip_dependencies:
            flow_id = quote_string(self.resource_id(document))
            if _is_number(document.get("currentVersion")):
                version = str(int(document["currentVersion"]))
        else:
            flow_id = f"{flow_ref}.id"

        with self.open_resource(writer, FLOW_DEPLOY_TYPE, resource_name):
            writer.attributes(
                [
                    ("environment_id", context.environment_id_expression),
                    ("flow_id", flow_id),
                ]
            )
            with writer.block("deploy_trigger_values =", "{"):
                writer.attribute(quote_string("deployed_version"), version)
