"""Tests for the DaVinci variable handler."""

import pytest

from davinci_terraformer.emitters.handlers.variable import VariableHandler
from davinci_terraformer.exceptions import ConversionError
from davinci_terraformer.resolver.schema import ResourceKind

VARIABLE = ResourceKind.VARIABLE


def _convert(build_context, document, **options):
    context = build_context({VARIABLE: [document]}, **options)
    return VariableHandler().emit(document, context)


class TestVariableHandler:
    def test_number_variable(self, build_context, retry_variable):
        """A complete variable with a literal value."""
        block = _convert(build_context, retry_variable)

        assert block.name == "pingcli__retryCount_company"
        assert block.hcl == (
            'resource "pingone_davinci_variable" "pingcli__retryCount_company" {\n'
            "  environment_id = var.pingone_environment_id\n"
            "\n"
            '  name      = "retryCount"\n'
            '  context   = "company"\n'
            '  data_type = "number"\n'
            "  mutable   = true\n"
            "\n"
            "  value = {\n"
            "    float32 = 3\n"
            "  }\n"
            "}\n"
        )
        assert [v.variable_name for v in block.variables] == [
            "davinci_variable_retryCount_company_value"
        ]

    def test_variable_references(self, build_context, retry_variable):
        """With variable references on, the value comes from the input."""
        block = _convert(build_context, retry_variable, use_variable_references=True)
        assert "float32 = var.davinci_variable_retryCount_company_value" in block.hcl

    def test_string_value_is_quoted(self, build_context):
        document = {
            "id": "var-1",
            "name": "greeting",
            "context": "flowInstance",
            "dataType": "string",
            "value": "hello ${name}",
            "displayName": "Greeting",
        }
        block = _convert(build_context, document)
        assert 'string = "hello $${name}"' in block.hcl
        assert 'display_name = "Greeting"' in block.hcl

    def test_object_value_uses_jsonencode(self, build_context):
        document = {
            "id": "var-1",
            "name": "config",
            "context": "company",
            "dataType": "object",
            "value": {"retries": 2},
            "mutable": True,
        }
        block = _convert(build_context, document)
        assert "json_object = jsonencode({" in block.hcl
        assert '"retries" = 2' in block.hcl

    def test_masked_secret_uses_sensitive_variable(self, build_context):
        """A masked secret is wired to an input variable, never written."""
        document = {
            "id": "var-1",
            "name": "apiToken",
            "context": "company",
            "dataType": "secret",
            "value": "******",
            "mutable": False,
        }
        block = _convert(build_context, document)
        assert (
            "secret_string = var.davinci_variable_apiToken_company_value" in block.hcl
        )
        assert "******" not in block.hcl
        assert block.variables[0].sensitive

    def test_missing_value_forces_mutable(self, build_context):
        """Without a value the variable must be mutable."""
        document = {
            "id": "var-1",
            "name": "sessionState",
            "context": "flowInstance",
            "dataType": "string",
            "mutable": False,
        }
        block = _convert(build_context, document)
        assert "mutable   = true" in block.hcl
        assert "# NOTE: mutable overridden to true" in block.hcl
        assert "# TODO: Add string value" in block.hcl

    def test_non_boolean_mutable_is_ignored(self, build_context):
        """Only a JSON boolean sets mutable; the string "false" does not."""
        document = {
            "id": "var-1",
            "name": "greeting",
            "context": "company",
            "dataType": "string",
            "value": "hello",
            "mutable": "false",
        }
        block = _convert(build_context, document)
        assert "  mutable   = false\n" in block.hcl
        assert "mutable overridden" not in block.hcl

    def test_unmasked_secret_is_not_written(self, build_context):
        document = {
            "id": "var-1",
            "name": "apiToken",
            "context": "company",
            "dataType": "secret",
            "value": "plaintext",
            "mutable": True,
        }
        block = _convert(build_context, document)
        assert "plaintext" not in block.hcl
        assert "# TODO: Add secret value manually" in block.hcl
        assert block.variables == []

    def test_flow_scoped_variable(self, build_context):
        """The owning flow is written as a literal ID."""
        document = {
            "id": "var-1",
            "name": "counter",
            "context": "flow",
            "dataType": "number",
            "value": 0,
            "flow": {"id": "flow-001"},
        }
        block = _convert(build_context, document)
        assert '  flow = {\n    id = "flow-001"\n  }' in block.hcl

    def test_min_max_are_written(self, build_context):
        document = {
            "id": "var-1",
            "name": "n",
            "context": "company",
            "dataType": "number",
            "value": 5,
            "min": 1,
            "max": 10,
        }
        block = _convert(build_context, document)
        assert "min = 1" in block.hcl
        assert "max = 10" in block.hcl

    def test_skip_dependencies_writes_literal_environment(self, build_context):
        block = _convert(
            build_context,
            {
                "id": "var-1",
                "name": "n",
                "context": "company",
                "dataType": "boolean",
                "value": True,
            },
            skip_dependencies=True,
        )
        assert (
            'environment_id = "abcd0123-4567-89ab-cdef-0123456789ab"' in block.hcl
        )
        assert "bool = true" in block.hcl

    def test_label_combines_name_and_context(self):
        handler = VariableHandler()
        assert handler.label({"name": "n", "context": "user"}) == "pingcli__n_user"

    def test_missing_required_field_raises(self, build_context):
        document = {"id": "var-1", "name": "n", "dataType": "string"}
        context = build_context({})
        with pytest.raises(ConversionError):
            VariableHandler().emit(document, context)
