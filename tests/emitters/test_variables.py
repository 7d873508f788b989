"""Tests for variable-eligible attribute extraction."""

from davinci_terraformer.emitters.emitter import format_variable_blocks
from davinci_terraformer.emitters.variables import (
    PropertyMappingConfig,
    extract_connector_variables,
    extract_variable_value,
    has_typed_value_shape,
    infer_type,
    is_masked,
)
from davinci_terraformer.resolver.schema import ResourceKind

CONNECTOR_NAME = "pingcli__HTTP-0020-Connector"


class TestShapes:
    def test_typed_value_shape(self):
        assert has_typed_value_shape({"type": "string", "value": ""})
        assert has_typed_value_shape({"value": "x"})
        assert has_typed_value_shape({"value": False})
        assert not has_typed_value_shape({"value": ""})
        assert not has_typed_value_shape({"type": "string"})
        assert not has_typed_value_shape("plain")

    def test_infer_type(self):
        assert infer_type(True) == "bool"
        assert infer_type(3) == "number"
        assert infer_type(1.5) == "number"
        assert infer_type("x") == "string"

    def test_is_masked(self):
        assert is_masked("******")
        assert not is_masked("*****")
        assert not is_masked(None)


class TestConnectorVariables:
    """Connector properties become input variables."""

    def test_extracted_sorted_by_property_name(self):
        document = {
            "id": "conn-123",
            "name": "HTTP Connector",
            "properties": {
                "clientSecret": {"type": "string", "value": "******"},
                "baseUrl": {"type": "string", "value": "https://api.example.com"},
                "apiKey": "******",
                "connectionId": {"value": "internal"},
                "emptyValue": {"type": "string", "value": ""},
                "nested": {"type": "json", "value": {"a": 1}},
            },
        }
        attributes = extract_connector_variables(document, CONNECTOR_NAME)
        assert [a.attribute_path for a in attributes] == [
            "properties.apiKey",
            "properties.baseUrl",
            "properties.clientSecret",
        ]

    def test_masked_values_get_blank_sensitive_default(self):
        document = {
            "id": "conn-123",
            "name": "HTTP Connector",
            "properties": {"clientSecret": {"type": "string", "value": "******"}},
        }
        (attribute,) = extract_connector_variables(document, CONNECTOR_NAME)
        assert attribute.current_value is None
        assert attribute.sensitive
        assert attribute.variable_type == "string"
        assert attribute.variable_name == (
            "davinci_connection_HTTP-0020-Connector_clientSecret"
        )
        assert attribute.to_variable_definition() == {
            "type": "string",
            "description": "clientSecret for HTTP Connector connector",
            "default": "",
            "sensitive": True,
        }

    def test_plain_values_keep_default(self):
        document = {
            "id": "conn-123",
            "name": "HTTP Connector",
            "properties": {"timeout": {"type": "number", "value": 30}},
        }
        (attribute,) = extract_connector_variables(document, CONNECTOR_NAME)
        assert attribute.current_value == 30
        assert attribute.variable_type == "number"
        assert not attribute.sensitive

    def test_secret_names_are_sensitive_even_when_visible(self):
        document = {
            "id": "conn-1",
            "name": "X",
            "properties": {"password": {"type": "string", "value": "hunter2"}},
        }
        (attribute,) = extract_connector_variables(document, "pingcli__X")
        assert attribute.sensitive
        assert attribute.current_value == "hunter2"

    def test_custom_property_config(self):
        config = PropertyMappingConfig(
            secret_property_names={"token"}, excluded_property_names={"baseUrl"}
        )
        document = {
            "id": "conn-1",
            "name": "X",
            "properties": {
                "baseUrl": {"value": "https://x"},
                "token": {"value": "abc"},
            },
        }
        attributes = extract_connector_variables(document, "pingcli__X", config)
        assert [a.attribute_path for a in attributes] == ["properties.token"]
        assert attributes[0].is_secret


class TestVariableValue:
    def test_primitive_value(self, retry_variable):
        (attribute,) = extract_variable_value(
            retry_variable, "pingcli__retryCount_company"
        )
        assert attribute.resource_kind == ResourceKind.VARIABLE
        assert attribute.variable_name == "davinci_variable_retryCount_company_value"
        assert attribute.variable_type == "number"
        assert attribute.current_value == 3

    def test_masked_secret(self):
        document = {"id": "v", "name": "s", "dataType": "secret", "value": "******"}
        (attribute,) = extract_variable_value(document, "pingcli__s_company")
        assert attribute.sensitive
        assert attribute.current_value is None

    def test_unmasked_secret_is_never_extracted(self):
        document = {"id": "v", "name": "s", "dataType": "secret", "value": "plain"}
        assert extract_variable_value(document, "pingcli__s_company") == []

    def test_non_primitive_values_are_skipped(self):
        assert extract_variable_value({"value": {"a": 1}}, "pingcli__x") == []
        assert extract_variable_value({"value": ""}, "pingcli__x") == []


class TestVariableBlocks:
    def test_blocks_grouped_sorted_and_deduplicated(self, retry_variable):
        connector = {
            "id": "conn-123",
            "name": "HTTP Connector",
            "properties": {"clientSecret": "******", "baseUrl": {"value": "https://x"}},
        }
        attributes = extract_connector_variables(connector, CONNECTOR_NAME)
        attributes += extract_variable_value(
            retry_variable, "pingcli__retryCount_company"
        )
        attributes += attributes[:1]

        text = format_variable_blocks(attributes)
        assert text.count('variable "davinci_') == 3
        assert text.index("davinci_variable_retryCount") < text.index(
            "davinci_connection_HTTP-0020-Connector_baseUrl"
        )
        assert (
            'variable "davinci_connection_HTTP-0020-Connector_clientSecret" {\n'
            "  type        = string\n"
            '  description = "clientSecret for HTTP Connector connector"\n'
            '  default     = ""\n'
            "  sensitive   = true\n"
            "}"
        ) in text
        assert '  default     = "https://x"' in text
        assert "  default     = 3" in text

    def test_no_variables(self):
        assert format_variable_blocks([]) == ""
