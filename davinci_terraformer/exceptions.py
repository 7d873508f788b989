"""
Custom Exception Hierarchy for DaVinci Terraformer

This module provides the exception hierarchy shared by the resolver, the
emitters and the export orchestrator, providing error context and debugging
information alongside the human-readable message.
"""

from typing import Any, Dict, List, Optional


class DaVinciTerraformerError(Exception):
    """
    Base exception class for all DaVinci Terraformer errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


# Resolver exceptions
class ResolverError(DaVinciTerraformerError):
    """Base class for dependency resolution errors."""

    pass


class RequiredPathError(ResolverError):
    """Raised when a required reference path yields no values in a document."""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        path: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if resource_type:
            context["resource_type"] = resource_type
        if resource_id:
            context["resource_id"] = resource_id
        if path:
            context["path"] = path
        kwargs["context"] = context
        kwargs.setdefault("error_code", "REQUIRED_PATH_MISSING")
        super().__init__(message, **kwargs)
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.path = path


class ResourceNotRegisteredError(ResolverError):
    """Raised when a resource lookup misses the dependency graph."""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if resource_type:
            context["resource_type"] = resource_type
        if resource_id:
            context["resource_id"] = resource_id
        kwargs["context"] = context
        kwargs.setdefault("error_code", "RESOURCE_NOT_REGISTERED")
        super().__init__(message, **kwargs)
        self.resource_type = resource_type
        self.resource_id = resource_id


class CycleError(ResolverError):
    """Raised when an operation requires an acyclic dependency graph."""

    def __init__(self, cycle: List[Any], **kwargs: Any) -> None:
        path = " → ".join(str(ref) for ref in cycle)
        kwargs.setdefault("error_code", "CIRCULAR_DEPENDENCY")
        kwargs.setdefault(
            "recovery_suggestion",
            "Break the reference loop between the listed resources",
        )
        super().__init__(f"circular dependency detected: {path}", **kwargs)
        self.cycle = list(cycle)


class GraphValidationError(ResolverError):
    """Raised when the dependency graph fails structural validation."""

    def __init__(self, issues: List[str], **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "GRAPH_VALIDATION_FAILED")
        message = "dependency graph validation failed:\n  " + "\n  ".join(issues)
        super().__init__(message, **kwargs)
        self.issues = list(issues)


class GraphSealedError(ResolverError):
    """Raised when a sealed dependency graph is mutated."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "GRAPH_SEALED")
        super().__init__(message, **kwargs)


# Conversion exceptions
class ConversionError(DaVinciTerraformerError):
    """Raised when a resource document cannot be converted to HCL."""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if resource_type:
            context["resource_type"] = resource_type
        if resource_id:
            context["resource_id"] = resource_id
        kwargs["context"] = context
        kwargs.setdefault("error_code", "CONVERSION_FAILED")
        super().__init__(message, **kwargs)
        self.resource_type = resource_type
        self.resource_id = resource_id


class FlowEnabledConflictError(ConversionError):
    """Raised when a flow's export status and API enabled flag disagree."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "FLOW_ENABLED_CONFLICT")
        kwargs.setdefault(
            "recovery_suggestion",
            "Re-export the flow so flowStatus and enabled agree",
        )
        super().__init__(message, **kwargs)


class ImportIdError(DaVinciTerraformerError):
    """Raised when an import identifier cannot be built."""

    def __init__(
        self, message: str, resource_type: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if resource_type:
            context["resource_type"] = resource_type
        kwargs["context"] = context
        kwargs.setdefault("error_code", "IMPORT_ID_INVALID")
        super().__init__(message, **kwargs)


# Configuration exceptions
class ConfigurationError(DaVinciTerraformerError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self, message: str, config_key: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key
        kwargs["context"] = context
        kwargs.setdefault("error_code", "CONFIG_INVALID")
        kwargs.setdefault(
            "recovery_suggestion", "Check your .env file or command-line options"
        )
        super().__init__(message, **kwargs)


# Convenience functions for common error scenarios
def wrap_exception(
    original_exception: Exception,
    new_exception_class: type,
    message: str,
    **kwargs: Any,
) -> DaVinciTerraformerError:
    """
    Wrap an existing exception in a DaVinci Terraformer exception.

    Args:
        original_exception: The original exception to wrap
        new_exception_class: The new exception class to create
        message: New error message
        **kwargs: Additional arguments for the new exception

    Returns:
        New exception instance with the original as the cause
    """
    kwargs["cause"] = original_exception
    return new_exception_class(message, **kwargs)
