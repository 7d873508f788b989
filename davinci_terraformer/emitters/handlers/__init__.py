"""Handler registry for resource kind dispatch.

This module provides the HandlerRegistry class that manages registration
and lookup of resource handlers by ResourceKind.
"""

import logging
from typing import Dict, List, Optional, Type

from ...resolver.schema import ResourceKind
from ..base_handler import ResourceHandler

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Registry for resource handlers with kind-based dispatch.

    Usage:
        @handler
        class FlowHandler(ResourceHandler):
            KIND = ResourceKind.FLOW
            ...

        # Later:
        flow_handler = HandlerRegistry.get_handler(ResourceKind.FLOW)
        block = flow_handler.emit(document, context)
    """

    _handlers: List[Type[ResourceHandler]] = []
    _kind_cache: Dict[ResourceKind, Type[ResourceHandler]] = {}

    @classmethod
    def register(cls, handler_class: Type[ResourceHandler]) -> Type[ResourceHandler]:
        """Register a handler class.

        Args:
            handler_class: Handler class to register

        Returns:
            The handler class (unchanged)

        Raises:
            ValueError: If another handler already claims the same kind
        """
        if handler_class in cls._handlers:
            return handler_class

        existing = cls._kind_cache.get(handler_class.KIND)
        if existing is not None and existing is not handler_class:
            raise ValueError(
                f"{handler_class.__name__} and {existing.__name__} both handle "
                f"{handler_class.KIND.value}"
            )

        cls._handlers.append(handler_class)
        cls._kind_cache[handler_class.KIND] = handler_class
        logger.debug(
            f"Registered handler {handler_class.__name__} "
            f"for {handler_class.KIND.value}"
        )
        return handler_class

    @classmethod
    def get_handler(cls, kind: ResourceKind) -> Optional[ResourceHandler]:
        """Get handler instance for a resource kind.

        Returns:
            Handler instance or None if no handler registered
        """
        handler_class = cls._kind_cache.get(kind)
        return handler_class() if handler_class else None

    @classmethod
    def get_all_supported_types(cls) -> List[str]:
        """Every Terraform type the registered handlers emit, sorted."""
        types = set()
        for handler_class in cls._handlers:
            types.update(handler_class.TERRAFORM_TYPES)
        return sorted(types)

    @classmethod
    def get_all_handlers(cls) -> List[Type[ResourceHandler]]:
        return cls._handlers.copy()

    @classmethod
    def clear(cls) -> None:
        """Clear all registered handlers.

        Primarily for testing.
        """
        cls._handlers = []
        cls._kind_cache = {}


def handler(cls: Type[ResourceHandler]) -> Type[ResourceHandler]:
    """Decorator to register a handler class."""
    return HandlerRegistry.register(cls)


def _register_all_handlers() -> None:
    """Import all handler modules to trigger registration.

    Registration is repeated explicitly so the registry recovers after
    clear(), when module imports are already cached.
    """
    from .application import ApplicationHandler
    from .connector_instance import ConnectorInstanceHandler
    from .flow import FlowHandler
    from .flow_policy import FlowPolicyHandler
    from .variable import VariableHandler

    for handler_class in (
        VariableHandler,
        ConnectorInstanceHandler,
        FlowHandler,
        ApplicationHandler,
        FlowPolicyHandler,
    ):
        HandlerRegistry.register(handler_class)

    logger.debug(
        f"Registered {len(HandlerRegistry._handlers)} handlers "
        f"covering {len(HandlerRegistry.get_all_supported_types())} Terraform types"
    )


def ensure_handlers_registered() -> None:
    """Ensure a handler is registered for every resource kind.

    Called lazily on first use; safe to call multiple times.
    """
    if any(kind not in HandlerRegistry._kind_cache for kind in ResourceKind):
        _register_all_handlers()
