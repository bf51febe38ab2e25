from kraken_dad.graph.context import (
    EXECUTION_MODES,
    ExchangeActionAdapter,
    ExecutionContext,
    MarketDataProvider,
)
from kraken_dad.graph.executor import StrategyExecutionError, StrategyExecutor, execute_strategy
from kraken_dad.graph.handlers import HandlerRegistry, NodeType, RegistryError, default_registry
from kraken_dad.graph.hooks import HOOK_EVENTS, HookInvocation, StrategyHookRegistry
from kraken_dad.graph.result import ActionIntent, ActionRecord, ExecutionResult, NodeExecutionLog
from kraken_dad.graph.scheduler import ExecutionPlan, Scheduler, TargetNotFoundError
from kraken_dad.graph.schema import (
    SCHEMA_VERSION,
    Strategy,
    StrategyEdge,
    StrategyNode,
    StrategyParseError,
    parse_strategy,
)
from kraken_dad.graph.validation import Diagnostic, StrategyValidator, ValidationResult, validate_strategy

__all__ = [
    "ActionIntent",
    "ActionRecord",
    "Diagnostic",
    "EXECUTION_MODES",
    "ExchangeActionAdapter",
    "ExecutionContext",
    "ExecutionPlan",
    "ExecutionResult",
    "HOOK_EVENTS",
    "HandlerRegistry",
    "HookInvocation",
    "MarketDataProvider",
    "NodeExecutionLog",
    "NodeType",
    "RegistryError",
    "SCHEMA_VERSION",
    "Scheduler",
    "Strategy",
    "StrategyEdge",
    "StrategyExecutionError",
    "StrategyExecutor",
    "StrategyHookRegistry",
    "StrategyNode",
    "StrategyParseError",
    "StrategyValidator",
    "TargetNotFoundError",
    "ValidationResult",
    "default_registry",
    "execute_strategy",
    "parse_strategy",
    "validate_strategy",
]
