"""Extraction of variable-eligible attributes.

A variable-eligible attribute is a value that should be supplied from the
outside (a Terraform input variable) instead of being written literally:
connector properties and DaVinci variable values. Values the API masks with
``******`` are always extracted, carry no default, and are sensitive.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from ..hcl import HclExpression
from ..resolver.naming import strip_prefix
from ..resolver.schema import ResourceKind

logger = logging.getLogger(__name__)

MASKED_VALUE = "******"


@dataclass
class VariableEligibleAttribute:
    """An attribute externalized as a Terraform input variable."""

    resource_kind: ResourceKind
    resource_name: str
    resource_id: str
    attribute_path: str
    current_value: Any
    variable_name: str
    variable_type: str = "string"
    description: str = ""
    sensitive: bool = False
    is_secret: bool = False

    @property
    def reference(self) -> HclExpression:
        return HclExpression(f"var.{self.variable_name}")

    @property
    def interpolation(self) -> HclExpression:
        return HclExpression(f'"${{var.{self.variable_name}}}"')

    def to_variable_definition(self) -> Dict[str, Any]:
        """Variable declaration body: type, description, default, sensitive."""
        definition: Dict[str, Any] = {"type": self.variable_type}
        if self.description:
            definition["description"] = self.description
        if self.current_value is not None:
            definition["default"] = self.current_value
        elif self.is_secret:
            # Masked on export; the real value is supplied at apply time
            definition["default"] = ""
        if self.sensitive:
            definition["sensitive"] = True
        return definition


@dataclass
class PropertyMappingConfig:
    """Which connector properties are secrets and which are never extracted."""

    secret_property_names: Set[str] = field(
        default_factory=lambda: {
            "clientSecret",
            "apiKey",
            "accessToken",
            "refreshToken",
            "password",
            "secret",
            "privateKey",
            "certificate",
            "signingKey",
            "encryptionKey",
            "bearerToken",
            "authToken",
        }
    )
    excluded_property_names: Set[str] = field(
        default_factory=lambda: {
            "createdDate",
            "updatedDate",
            "connectionId",
            "connectorId",
            "skRedirectUri",  # generated by the service
            "skDisplayName",  # generated by the service
        }
    )

    def is_secret(self, property_name: str) -> bool:
        return property_name in self.secret_property_names

    def is_excluded(self, property_name: str) -> bool:
        return property_name in self.excluded_property_names


def is_masked(value: Any) -> bool:
    return isinstance(value, str) and value.strip() == MASKED_VALUE


def has_typed_value_shape(prop: Any) -> bool:
    """True for ``{"type": ..., "value": ...}`` property containers.

    A container qualifies with a non-empty type, or with a scalar value that
    is a non-empty string, a boolean or a number.
    """
    if not isinstance(prop, dict) or "value" not in prop:
        return False
    prop_type = prop.get("type")
    if isinstance(prop_type, str) and prop_type.strip():
        return True
    value = prop.get("value")
    if isinstance(value, str):
        return value != ""
    return isinstance(value, (bool, int, float))


def infer_type(value: Any) -> str:
    """Terraform variable type from the JSON runtime type."""
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    return "string"


def connection_variable_name(resource_name: str, property_name: str) -> str:
    return f"davinci_connection_{strip_prefix(resource_name)}_{property_name}"


def variable_value_name(resource_name: str) -> str:
    return f"davinci_variable_{strip_prefix(resource_name)}_value"


def extract_connector_variables(
    document: Dict[str, Any],
    resource_name: str,
    config: Optional[PropertyMappingConfig] = None,
) -> List[VariableEligibleAttribute]:
    """Variable-eligible properties of a connector instance, sorted by name."""
    config = config or PropertyMappingConfig()
    properties = document.get("properties") or {}
    if not isinstance(properties, dict):
        return []

    instance_name = document.get("name", "")
    attributes: List[VariableEligibleAttribute] = []
    for prop_name in sorted(properties):
        prop = properties[prop_name]
        if has_typed_value_shape(prop):
            value = prop.get("value")
        elif is_masked(prop):
            value = prop
        else:
            continue

        masked = is_masked(value)
        if config.is_excluded(prop_name) and not masked:
            continue
        if value is None or value == "" or isinstance(value, (dict, list)):
            continue

        secret = masked or config.is_secret(prop_name)
        attributes.append(
            VariableEligibleAttribute(
                resource_kind=ResourceKind.CONNECTOR_INSTANCE,
                resource_name=resource_name,
                resource_id=document.get("id", ""),
                attribute_path=f"properties.{prop_name}",
                current_value=None if masked else value,
                variable_name=connection_variable_name(resource_name, prop_name),
                variable_type="string" if masked else infer_type(value),
                description=f"{prop_name} for {instance_name} connector",
                sensitive=secret,
                is_secret=secret,
            )
        )

    logger.debug(
        f"Extracted {len(attributes)} variables from connector '{instance_name}'"
    )
    return attributes


def extract_variable_value(
    document: Dict[str, Any], resource_name: str
) -> List[VariableEligibleAttribute]:
    """The ``value`` of a DaVinci variable, when it is a primitive or masked."""
    value = document.get("value")
    data_type = str(document.get("dataType", "")).lower()
    masked_secret = data_type == "secret" and is_masked(value)

    primitive = isinstance(value, (str, bool, int, float)) and value != ""
    if not (primitive or masked_secret):
        return []
    # Unmasked secrets are never written or extracted
    if data_type == "secret" and not masked_secret:
        return []

    return [
        VariableEligibleAttribute(
            resource_kind=ResourceKind.VARIABLE,
            resource_name=resource_name,
            resource_id=document.get("id", ""),
            attribute_path="value",
            current_value=None if masked_secret else value,
            variable_name=variable_value_name(resource_name),
            variable_type="string" if masked_secret else infer_type(value),
            description=f"Value for {document.get('name', '')} DaVinci variable",
            sensitive=masked_secret,
            is_secret=masked_secret,
        )
    ]
