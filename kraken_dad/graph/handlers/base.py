from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Literal

from kraken_dad.graph.contracts import CONTROL_DATA_TYPE

if TYPE_CHECKING:
    from kraken_dad.graph.context import ExecutionContext


PortKind = Literal["control", "data"]
HandlerStatus = Literal["executed", "error"]
OutcomeKind = Literal["validation", "live"]
OutcomeStatus = Literal["ok", "error"]


class NodeType(str, Enum):
    CONTROL_START = "control.start"
    CONTROL_TIME_WINDOW = "control.timeWindow"
    DATA_CONSTANT = "data.constant"
    DATA_KRAKEN_TICKER = "data.kraken.ticker"
    DATA_KRAKEN_OHLC = "data.kraken.ohlc"
    DATA_KRAKEN_SPREAD = "data.kraken.spread"
    DATA_KRAKEN_ASSET_PAIRS = "data.kraken.assetPairs"
    LOGIC_IF = "logic.if"
    LOGIC_EQUALS = "logic.equals"
    LOGIC_MOVING_AVERAGE = "logic.movingAverage"
    RISK_GUARD = "risk.guard"
    ACTION_PLACE_ORDER = "action.placeOrder"
    ACTION_CANCEL_ORDER = "action.cancelOrder"
    ACTION_LOG_INTENT = "action.logIntent"


@dataclass(frozen=True, slots=True)
class Port:
    id: str
    kind: PortKind = "data"
    data_type: str = "any"
    required: bool = False
    label: str | None = None


def control_port(port_id: str = "out", label: str | None = None) -> Port:
    return Port(id=port_id, kind="control", data_type=CONTROL_DATA_TYPE, label=label or port_id.title())


def data_port(
    port_id: str,
    data_type: str = "any",
    *,
    required: bool = False,
    label: str | None = None,
) -> Port:
    return Port(id=port_id, kind="data", data_type=data_type, required=required, label=label)


@dataclass(frozen=True, slots=True)
class BlockDefinition:
    type: str
    category: str
    name: str
    description: str
    inputs: tuple[Port, ...] = ()
    outputs: tuple[Port, ...] = ()

    def input(self, port_id: str) -> Port | None:
        return next((port for port in self.inputs if port.id == port_id), None)

    def output(self, port_id: str) -> Port | None:
        return next((port for port in self.outputs if port.id == port_id), None)

    @property
    def data_inputs(self) -> tuple[Port, ...]:
        return tuple(port for port in self.inputs if port.kind == "data")


@dataclass(slots=True)
class IntentPayload:
    action: str
    params: dict[str, Any]


@dataclass(slots=True)
class ActionOutcome:
    kind: OutcomeKind
    action: str
    status: OutcomeStatus
    detail: str
    response: object | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass(slots=True)
class NodeIssue:
    code: str
    message: str


@dataclass(slots=True)
class HandlerResult:
    outputs: dict[str, Any] = field(default_factory=dict)
    status: HandlerStatus = "executed"
    warnings: list[NodeIssue] = field(default_factory=list)
    action_intent: IntentPayload | None = None
    action_outcome: ActionOutcome | None = None
    error: NodeIssue | None = None


class NodeExecutionError(RuntimeError):
    """Raised by a handler when a node cannot produce its outputs."""

    def __init__(self, message: str, *, code: str = "NODE_EXECUTION_ERROR") -> None:
        super().__init__(message)
        self.code = code


class NodeHandler:
    """Behavior for one node type: static config checks plus the run step."""

    definition: ClassVar[BlockDefinition]

    @property
    def node_type(self) -> str:
        return self.definition.type

    def validate_config(self, config: Mapping[str, Any]) -> list[str]:
        return []

    async def run(
        self,
        inputs: dict[str, Any],
        config: Mapping[str, Any],
        context: ExecutionContext,
    ) -> HandlerResult:
        raise NotImplementedError
