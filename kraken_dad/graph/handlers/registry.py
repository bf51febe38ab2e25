from __future__ import annotations

from collections.abc import Iterable

from kraken_dad.graph.handlers.action import CancelOrderHandler, LogIntentHandler, PlaceOrderHandler
from kraken_dad.graph.handlers.base import BlockDefinition, NodeHandler, NodeType
from kraken_dad.graph.handlers.control import StartHandler, TimeWindowHandler
from kraken_dad.graph.handlers.data import (
    AssetPairsHandler,
    ConstantHandler,
    OhlcHandler,
    SpreadHandler,
    TickerHandler,
)
from kraken_dad.graph.handlers.logic import EqualsHandler, IfHandler, MovingAverageHandler
from kraken_dad.graph.handlers.risk import RiskGuardHandler


class RegistryError(RuntimeError):
    """Raised when the handler table does not cover the node types exactly."""


class HandlerRegistry:
    """Closed table mapping every ``NodeType`` to exactly one handler."""

    def __init__(self, handlers: Iterable[NodeHandler]) -> None:
        self._handlers: dict[str, NodeHandler] = {}
        for handler in handlers:
            node_type = handler.node_type
            if node_type in self._handlers:
                raise RegistryError(f"Node type '{node_type}' has more than one handler.")
            self._handlers[node_type] = handler

        declared = {member.value for member in NodeType}
        missing = sorted(declared - set(self._handlers))
        if missing:
            raise RegistryError(f"No handler registered for node types: {', '.join(missing)}.")
        unknown = sorted(set(self._handlers) - declared)
        if unknown:
            raise RegistryError(f"Handlers registered for undeclared node types: {', '.join(unknown)}.")

    def __contains__(self, node_type: object) -> bool:
        return node_type in self._handlers

    def get(self, node_type: str) -> NodeHandler | None:
        return self._handlers.get(node_type)

    def definition(self, node_type: str) -> BlockDefinition | None:
        handler = self._handlers.get(node_type)
        return handler.definition if handler is not None else None

    def definitions(self) -> list[BlockDefinition]:
        return [self._handlers[member.value].definition for member in NodeType]

    def replace(self, *handlers: NodeHandler) -> HandlerRegistry:
        """Return a registry where the given handlers take over their node types."""
        overrides = {handler.node_type: handler for handler in handlers}
        unknown = sorted(set(overrides) - set(self._handlers))
        if unknown:
            raise RegistryError(f"Cannot replace handlers for unknown node types: {', '.join(unknown)}.")
        merged = [overrides.get(node_type, handler) for node_type, handler in self._handlers.items()]
        return HandlerRegistry(merged)


def default_handlers() -> list[NodeHandler]:
    return [
        StartHandler(),
        TimeWindowHandler(),
        ConstantHandler(),
        TickerHandler(),
        OhlcHandler(),
        SpreadHandler(),
        AssetPairsHandler(),
        IfHandler(),
        EqualsHandler(),
        MovingAverageHandler(),
        RiskGuardHandler(),
        PlaceOrderHandler(),
        CancelOrderHandler(),
        LogIntentHandler(),
    ]


def default_registry() -> HandlerRegistry:
    return HandlerRegistry(default_handlers())
