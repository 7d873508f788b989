"""Tests for TerraformEmitter and the shared output renderers."""

import pytest

from davinci_terraformer.emitters import (
    HandlerRegistry,
    TerraformEmitter,
    render_environment_variable,
    render_provider_config,
)
from davinci_terraformer.exceptions import ConversionError
from davinci_terraformer.resolver.schema import ResourceKind


class TestTerraformEmitter:
    """Test cases for per-kind conversion."""

    def test_convert_all(self, build_context, batch_documents):
        """Every document of the batch is converted and counted."""
        context = build_context(batch_documents, generate_imports=True)
        emitter = TerraformEmitter(context)
        outputs = emitter.convert_all(batch_documents)

        assert [o.kind for o in outputs] == [
            ResourceKind.VARIABLE,
            ResourceKind.CONNECTOR_INSTANCE,
            ResourceKind.FLOW,
            ResourceKind.APPLICATION,
            ResourceKind.FLOW_POLICY,
        ]
        stats = emitter.get_statistics()
        assert stats["total_resources"] == 6
        assert stats["emitted_resources"] == 6
        assert stats["skipped_resources"] == 0
        assert stats["missing_references_count"] == 0
        assert stats["variables_count"] == 3
        # One per resource, plus the flow's enable resource
        assert stats["import_blocks_count"] == 7
        assert stats["by_kind"]["pingone_davinci_connector_instance"] == 2

    def test_blocks_sorted_by_name(self, batch_context, batch_documents):
        output = TerraformEmitter(batch_context).convert(
            ResourceKind.CONNECTOR_INSTANCE,
            batch_documents[ResourceKind.CONNECTOR_INSTANCE],
        )
        assert output.hcl.index("pingcli__Email-0020-Connector") < output.hcl.index(
            "pingcli__HTTP-0020-Connector"
        )
        assert output.count == 2

    def test_no_imports_unless_requested(self, batch_context, batch_documents):
        emitter = TerraformEmitter(batch_context)
        emitter.convert_all(batch_documents)
        assert emitter.get_statistics()["import_blocks_count"] == 0

    def test_handler_error_skips_document(self, build_context, http_connector):
        """Outside strict mode a bad document is recorded and skipped."""
        broken = {"id": "conn-bad", "name": "Broken"}
        documents = {ResourceKind.CONNECTOR_INSTANCE: [http_connector, broken]}
        emitter = TerraformEmitter(build_context(documents))

        output = emitter.convert(
            ResourceKind.CONNECTOR_INSTANCE,
            documents[ResourceKind.CONNECTOR_INSTANCE],
        )
        assert output.count == 1
        assert len(output.errors) == 1
        assert output.errors[0]["resource"] == "Broken"
        assert "connector.id is required" in output.errors[0]["error"]
        assert emitter.get_statistics()["handler_errors_count"] == 1

    def test_handler_error_raises_in_strict_mode(self, build_context):
        broken = {"id": "conn-bad", "name": "Broken"}
        documents = {ResourceKind.CONNECTOR_INSTANCE: [broken]}
        emitter = TerraformEmitter(build_context(documents, strict_mode=True))

        with pytest.raises(ConversionError):
            emitter.convert(ResourceKind.CONNECTOR_INSTANCE, [broken])

    def test_missing_handler_raises(self, batch_context):
        emitter = TerraformEmitter(batch_context)
        HandlerRegistry.clear()
        with pytest.raises(ConversionError, match="No handler registered"):
            emitter.convert(ResourceKind.FLOW, [])

    def test_supported_types(self, batch_context):
        assert TerraformEmitter(batch_context).get_supported_types() == [
            "pingone_davinci_application",
            "pingone_davinci_application_flow_policy",
            "pingone_davinci_connector_instance",
            "pingone_davinci_flow",
            "pingone_davinci_flow_deploy",
            "pingone_davinci_flow_enable",
            "pingone_davinci_variable",
        ]


class TestRenderers:
    def test_provider_config(self):
        text = render_provider_config("EU")
        assert text.startswith("terraform {\n  required_providers {\n")
        assert '      source  = "pingidentity/pingone"' in text
        assert 'provider "pingone" {\n  region = "EU"' in text

    def test_environment_variable(self):
        text = render_environment_variable()
        assert text.startswith('variable "pingone_environment_id" {\n')
        assert "  type        = string\n" in text
        assert "validation {" in text
        assert "var.pingone_environment_id))" in text
