"""End-to-end: registration, parsing, sealing and reference generation."""

from davinci_terraformer.emitters import ConversionContext
from davinci_terraformer.emitters.handlers.flow import FlowHandler
from davinci_terraformer.resolver.graph import DependencyGraph
from davinci_terraformer.resolver.naming import sanitize, sanitize_composite
from davinci_terraformer.resolver.parser import parse_dependencies
from davinci_terraformer.resolver.reference import resolve
from davinci_terraformer.resolver.schema import ResourceKind


class TestFlowEndToEnd:
    def test_three_references(self, login_flow):
        graph = DependencyGraph()
        graph.register(
            ResourceKind.CONNECTOR_INSTANCE, "conn-123", sanitize("HTTP Connector")
        )
        graph.register(
            ResourceKind.VARIABLE,
            "var-789",
            sanitize_composite("retryCount", "company"),
        )
        graph.register(
            ResourceKind.CONNECTOR_INSTANCE, "conn-456", sanitize("Email Connector")
        )
        flow_name = graph.register(
            ResourceKind.FLOW, "flow-001", sanitize("Login Flow")
        )

        edges = parse_dependencies(
            ResourceKind.FLOW, "flow-001", login_flow, name=flow_name
        )
        assert graph.add_dependencies(edges) == 3
        sealed = graph.seal()

        expressions = sorted(
            resolve(sealed, edge.target.kind, edge.target.id)
            for edge in sealed.edges_from("flow-001", ResourceKind.FLOW)
        )
        assert expressions == [
            "pingone_davinci_connector_instance.pingcli__Email-0020-Connector.id",
            "pingone_davinci_connector_instance.pingcli__HTTP-0020-Connector.id",
            "pingone_davinci_variable.pingcli__retryCount_company.id",
        ]

        context = ConversionContext(graph=sealed, environment_id="env")
        hcl = FlowHandler().emit(login_flow, context).hcl
        for expression in expressions:
            assert expression in hcl
        assert context.missing_tracker.count == 0
        assert context.unlinked_references == []
