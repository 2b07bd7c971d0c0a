"""DeFi protocol handler registry."""

import logging
from typing import TYPE_CHECKING, Any

from polygon_wallet_dashboard.data import get_protocol_catalog

if TYPE_CHECKING:
    import httpx

    from polygon_wallet_dashboard.config import Settings
    from polygon_wallet_dashboard.protocols.base import BaseProtocolHandler

logger = logging.getLogger(__name__)


class ProtocolRegistry:
    """
    Class-level registry of DeFi protocol handlers.

    Handler modules decorate their class with ``@ProtocolRegistry.register``;
    importing ``polygon_wallet_dashboard.protocols`` is enough to populate it.
    Registration order is kept, so the session queries handlers (and reports
    their positions) in a stable order.

    """

    _handlers: dict[str, type["BaseProtocolHandler"]] = {}

    @classmethod
    def register(cls, handler_class: type) -> type:
        """
        Register a handler class under its ``name``.

        Parameters
        ----------
        handler_class : type
            ``BaseProtocolHandler`` subclass with ``name`` and ``supported_chains``

        Returns
        -------
        type
            The class itself, so this works as a decorator

        Raises
        ------
        ValueError
            If the class has no ``name``

        Examples
        --------
        >>> @ProtocolRegistry.register
        ... class QuickSwapHandler(BaseProtocolHandler):
        ...     name = "quickswap"
        ...     supported_chains = ["polygon"]

        """
        name = getattr(handler_class, "name", None)
        if not name:
            msg = f"{handler_class.__name__} has no protocol name"
            raise ValueError(msg)

        if name in cls._handlers and cls._handlers[name] is not handler_class:
            logger.warning("Replacing protocol handler %s with %s", name, handler_class.__name__)
        cls._handlers[name] = handler_class
        return handler_class

    @classmethod
    def get_handler(cls, protocol_name: str) -> type | None:
        """Look up a handler class by protocol name; None if unknown."""
        return cls._handlers.get(protocol_name)

    @classmethod
    def get_all_handlers(cls) -> list[type]:
        return list(cls._handlers.values())

    @classmethod
    def get_handlers_for_chain(cls, chain: str) -> list[type]:
        """Handler classes deployed on ``chain``, in registration order."""
        return [handler for handler in cls._handlers.values() if chain in handler.supported_chains]

    @classmethod
    def create_handlers(cls, settings: "Settings", client: "httpx.AsyncClient") -> list["BaseProtocolHandler"]:
        """
        Instantiate every handler for the configured chain.

        Parameters
        ----------
        settings : Settings
            Dashboard settings; ``settings.chain`` selects the handlers
        client : httpx.AsyncClient
            Shared HTTP client handed to each handler

        Returns
        -------
        list[BaseProtocolHandler]
            Ready-to-query handlers

        """
        handlers = [handler_class(settings, client) for handler_class in cls.get_handlers_for_chain(settings.chain)]
        logger.debug("Created %d protocol handlers for %s", len(handlers), settings.chain)
        return handlers

    @classmethod
    def describe(cls) -> list[dict[str, Any]]:
        """
        Catalog view of every registered protocol.

        Returns
        -------
        list[dict[str, Any]]
            ``{"name", "display_name", "type", "chains"}`` per protocol

        """
        rows = []
        for name, handler_class in cls._handlers.items():
            catalog = get_protocol_catalog(name)
            rows.append(
                {
                    "name": name,
                    "display_name": catalog["name"],
                    "type": catalog.get("type", "unknown"),
                    "chains": list(handler_class.supported_chains),
                }
            )
        return rows

    @classmethod
    def clear(cls) -> None:
        """Forget every registered handler."""
        cls._handlers.clear()

    @classmethod
    def list_protocols(cls) -> list[str]:
        return list(cls._handlers)
