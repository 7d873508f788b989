"""Terraform emitter package for DaVinci resource conversion.

This package converts DaVinci resource documents to Terraform HCL. The
architecture follows a Strategy pattern where individual handlers are
responsible for one resource kind each.

Main Components:
- TerraformEmitter: Per-kind conversion and output collection
- ConversionContext: Shared state passed to all handlers
- ResourceHandler: Abstract base class for handlers
- HandlerRegistry: Registry for handler lookup by resource kind

Usage:
    from davinci_terraformer.emitters import ConversionContext, TerraformEmitter

    context = ConversionContext(graph=graph.seal(), environment_id="env-id")
    output = TerraformEmitter(context).convert(ResourceKind.FLOW, flows)
"""

from .base_handler import ConvertedBlock, ResourceHandler
from .context import ConversionContext
from .emitter import (
    KindOutput,
    TerraformEmitter,
    format_variable_blocks,
    render_environment_variable,
    render_provider_config,
)
from .handlers import HandlerRegistry, ensure_handlers_registered, handler
from .variables import PropertyMappingConfig, VariableEligibleAttribute

__all__ = [
    "ConversionContext",
    "ConvertedBlock",
    "HandlerRegistry",
    "KindOutput",
    "PropertyMappingConfig",
    "ResourceHandler",
    "TerraformEmitter",
    "VariableEligibleAttribute",
    "ensure_handlers_registered",
    "format_variable_blocks",
    "handler",
    "render_environment_variable",
    "render_provider_config",
]
