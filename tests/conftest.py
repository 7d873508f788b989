"""Shared fixtures for DaVinci Terraformer tests."""

import copy
from typing import Any, Callable, Dict, List

import pytest

from davinci_terraformer.emitters import ConversionContext
from davinci_terraformer.emitters.handlers import (
    HandlerRegistry,
    _register_all_handlers,
)
from davinci_terraformer.resolver.graph import DependencyGraph
from davinci_terraformer.resolver.hierarchy import HierarchyTracker
from davinci_terraformer.resolver.missing import MissingDependencyTracker
from davinci_terraformer.resolver.parser import parse_dependencies
from davinci_terraformer.resolver.schema import KIND_ORDER, ResourceKind

ENVIRONMENT_ID = "abcd0123-4567-89ab-cdef-0123456789ab"

_ENV_VARS = (
    "PINGONE_ENVIRONMENT_ID",
    "PINGONE_REGION",
    "DAVINCI_SKIP_DEPENDENCIES",
    "DAVINCI_GENERATE_IMPORTS",
    "DAVINCI_USE_VARIABLE_REFERENCES",
    "DAVINCI_CONTINUE_ON_PARSE_ERROR",
    "DAVINCI_DEDUPLICATE_HIERARCHY",
    "DAVINCI_STRICT_MODE",
    "DAVINCI_INCLUDE_KINDS",
    "DAVINCI_EXCLUDED_RESOURCES",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep configuration from the developer's shell out of the tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def force_handler_registration():
    """Start every test with a freshly populated handler registry."""
    HandlerRegistry.clear()
    _register_all_handlers()
    yield


# ============================================================================
# Resource documents
# ============================================================================


@pytest.fixture
def http_connector() -> Dict[str, Any]:
    return {
        "id": "conn-123",
        "name": "HTTP Connector",
        "connector": {"id": "httpConnector"},
        "properties": {
            "baseUrl": {"type": "string", "value": "https://api.example.com"},
            "clientSecret": {"type": "string", "value": "******"},
        },
    }


@pytest.fixture
def email_connector() -> Dict[str, Any]:
    return {
        "id": "conn-456",
        "name": "Email Connector",
        "connector": {"id": "smtpConnector"},
        "properties": {},
    }


@pytest.fixture
def retry_variable() -> Dict[str, Any]:
    return {
        "id": "var-789",
        "name": "retryCount",
        "context": "company",
        "dataType": "number",
        "value": 3,
        "mutable": True,
    }


@pytest.fixture
def login_flow() -> Dict[str, Any]:
    """Flow with two nodes referencing conn-123, var-789 and conn-456."""
    return {
        "flowId": "flow-001",
        "name": "Login Flow",
        "description": "Primary login",
        "enabled": True,
        "currentVersion": 2,
        "settings": {"logLevel": 2, "useCustomCSS": False, "unknownSetting": "x"},
        "graphData": {
            "elements": {
                "nodes": [
                    {
                        "data": {
                            "id": "node-2",
                            "nodeType": "CONNECTION",
                            "connectionId": "conn-456",
                            "connectorId": "smtpConnector",
                            "name": "smtp",
                            "capabilityName": "sendEmail",
                            "properties": {},
                        },
                        "position": {"x": 400, "y": 100},
                        "group": "nodes",
                    },
                    {
                        "data": {
                            "id": "node-1",
                            "nodeType": "CONNECTION",
                            "connectionId": "conn-123",
                            "connectorId": "httpConnector",
                            "name": "http",
                            "capabilityName": "customHtmlMessage",
                            "properties": {"variableId": "var-789"},
                        },
                        "position": {"x": 100, "y": 100},
                        "group": "nodes",
                    },
                ],
                "edges": [
                    {
                        "data": {
                            "id": "edge-1",
                            "source": "node-1",
                            "target": "node-2",
                        },
                        "group": "edges",
                    }
                ],
            },
            "pan": {"x": 0, "y": 0},
            "zoom": 1,
        },
        "trigger": {"type": "AUTHENTICATION"},
    }


@pytest.fixture
def customer_application() -> Dict[str, Any]:
    return {
        "id": "app-001",
        "name": "Customer Portal",
        "apiKey": {"enabled": True, "value": "do-not-export"},
        "oauth": {
            "grantTypes": ["authorizationCode"],
            "redirectUris": ["https://portal.example.com/callback"],
            "scopes": ["openid", "profile"],
            "enforceSignedRequestOpenid": False,
        },
    }


@pytest.fixture
def login_policy() -> Dict[str, Any]:
    return {
        "id": "policy-001",
        "applicationId": "app-001",
        "name": "Login Policy",
        "status": "enabled",
        "flowDistributions": [{"id": "flow-001", "version": 2, "weight": 100}],
    }


@pytest.fixture
def batch_documents(
    http_connector,
    email_connector,
    retry_variable,
    login_flow,
    customer_application,
    login_policy,
) -> Dict[ResourceKind, List[Dict[str, Any]]]:
    """One complete, self-consistent export batch."""
    return {
        ResourceKind.VARIABLE: [retry_variable],
        ResourceKind.CONNECTOR_INSTANCE: [http_connector, email_connector],
        ResourceKind.FLOW: [login_flow],
        ResourceKind.APPLICATION: [customer_application],
        ResourceKind.FLOW_POLICY: [login_policy],
    }


# ============================================================================
# Graph and context builders
# ============================================================================


@pytest.fixture
def build_context() -> Callable[..., ConversionContext]:
    """Factory running registration and parsing, then sealing the graph.

    Documents are registered with their handler's identity and label, like
    the exporter does, so names match real runs.
    """

    def _build(
        documents_by_kind: Dict[ResourceKind, List[Dict[str, Any]]],
        **context_options: Any,
    ) -> ConversionContext:
        graph = DependencyGraph()
        registered = []
        for kind in KIND_ORDER:
            handler = HandlerRegistry.get_handler(kind)
            for document in documents_by_kind.get(kind, []):
                resource_id = handler.resource_id(document)
                graph.register(kind, resource_id, handler.label(document))
                registered.append((kind, resource_id, document))
        for kind, resource_id, document in registered:
            graph.add_dependencies(
                parse_dependencies(
                    kind,
                    resource_id,
                    document,
                    name=graph.lookup(kind, resource_id),
                )
            )
        context_options.setdefault("environment_id", ENVIRONMENT_ID)
        context_options.setdefault("missing_tracker", MissingDependencyTracker())
        context_options.setdefault("hierarchy", HierarchyTracker())
        return ConversionContext(graph=graph.seal(), **context_options)

    return _build


@pytest.fixture
def batch_context(build_context, batch_documents) -> ConversionContext:
    return build_context(batch_documents)


@pytest.fixture
def batch_json(batch_documents) -> Dict[str, Any]:
    """The batch as it appears in a JSON export file."""
    return {
        kind.short_name: copy.deepcopy(documents)
        for kind, documents in batch_documents.items()
    }
