from kraken_dad.graph.handlers.base import (
    ActionOutcome,
    BlockDefinition,
    HandlerResult,
    IntentPayload,
    NodeExecutionError,
    NodeHandler,
    NodeIssue,
    NodeType,
    Port,
)
from kraken_dad.graph.handlers.registry import (
    HandlerRegistry,
    RegistryError,
    default_handlers,
    default_registry,
)

__all__ = [
    "ActionOutcome",
    "BlockDefinition",
    "HandlerRegistry",
    "HandlerResult",
    "IntentPayload",
    "NodeExecutionError",
    "NodeHandler",
    "NodeIssue",
    "NodeType",
    "Port",
    "RegistryError",
    "default_handlers",
    "default_registry",
]
