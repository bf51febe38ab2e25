from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from kraken_dad.graph.scheduler import NodeStatus
from kraken_dad.graph.validation.models import Diagnostic


@dataclass(slots=True)
class NodeExecutionLog:
    node_id: str
    node_type: str
    inputs: dict[str, Any]
    outputs: dict[str, Any]
    duration_ms: float
    status: NodeStatus

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "nodeType": self.node_type,
            "inputs": self.inputs,
            "outputs": self.outputs,
            "durationMs": self.duration_ms,
            "status": self.status,
        }


@dataclass(slots=True)
class ActionIntent:
    node_id: str
    type: str
    action: str
    params: dict[str, Any]
    executed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "type": self.type,
            "intent": {"action": self.action, "params": self.params},
            "executed": self.executed,
        }


@dataclass(slots=True)
class ActionRecord:
    """Outcome of one exchange call: a dry-run validation or a live order action."""

    node_id: str
    action: str
    status: str
    detail: str
    response: object | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "nodeId": self.node_id,
            "action": self.action,
            "status": self.status,
            "detail": self.detail,
        }
        if self.response is not None:
            payload["response"] = self.response
        return payload


@dataclass(slots=True)
class ExecutionResult:
    success: bool
    mode: str
    started_at: str
    completed_at: str
    nodes_executed: int
    log: list[NodeExecutionLog] = field(default_factory=list)
    errors: list[Diagnostic] = field(default_factory=list)
    warnings: list[Diagnostic] = field(default_factory=list)
    action_intents: list[ActionIntent] = field(default_factory=list)
    kraken_validations: list[ActionRecord] | None = None
    live_actions: list[ActionRecord] | None = None

    @property
    def primary_error(self) -> str | None:
        return self.errors[0].message if self.errors else None

    def visited(self) -> list[str]:
        return [entry.node_id for entry in self.log]

    def entry(self, node_id: str) -> NodeExecutionLog | None:
        for item in self.log:
            if item.node_id == node_id:
                return item
        return None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.success,
            "mode": self.mode,
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
            "nodesExecuted": self.nodes_executed,
            "log": [item.to_dict() for item in self.log],
            "errors": [item.to_dict() for item in self.errors],
            "warnings": [item.to_dict() for item in self.warnings],
            "actionIntents": [item.to_dict() for item in self.action_intents],
        }
        if self.kraken_validations is not None:
            payload["krakenValidations"] = [item.to_dict() for item in self.kraken_validations]
        if self.live_actions is not None:
            payload["liveActions"] = [item.to_dict() for item in self.live_actions]
        return payload


class ResultBuilder:
    """Collects one run's trace in visitation order and assembles the report."""

    def __init__(
        self,
        mode: str,
        *,
        clock: Callable[[], datetime],
        track_validations: bool = False,
        track_live_actions: bool = False,
    ) -> None:
        self._mode = mode
        self._clock = clock
        self._started_at = clock().isoformat()
        self._log: list[NodeExecutionLog] = []
        self._errors: list[Diagnostic] = []
        self._warnings: list[Diagnostic] = []
        self._intents: list[ActionIntent] = []
        self._validations: list[ActionRecord] | None = [] if track_validations else None
        self._live_actions: list[ActionRecord] | None = [] if track_live_actions else None

    def add_log(self, entry: NodeExecutionLog) -> None:
        self._log.append(entry)

    def add_error(self, diagnostic: Diagnostic) -> None:
        self._errors.append(diagnostic)

    def add_errors(self, diagnostics: list[Diagnostic]) -> None:
        self._errors.extend(diagnostics)

    def add_warning(self, diagnostic: Diagnostic) -> None:
        self._warnings.append(diagnostic)

    def add_warnings(self, diagnostics: list[Diagnostic]) -> None:
        self._warnings.extend(diagnostics)

    def add_intent(self, intent: ActionIntent) -> None:
        self._intents.append(intent)

    def add_validation(self, record: ActionRecord) -> None:
        if self._validations is not None:
            self._validations.append(record)

    def add_live_action(self, record: ActionRecord) -> None:
        if self._live_actions is not None:
            self._live_actions.append(record)

    def build(self) -> ExecutionResult:
        return ExecutionResult(
            success=not self._errors,
            mode=self._mode,
            started_at=self._started_at,
            completed_at=self._clock().isoformat(),
            nodes_executed=sum(1 for item in self._log if item.status == "executed"),
            log=list(self._log),
            errors=list(self._errors),
            warnings=list(self._warnings),
            action_intents=list(self._intents),
            kraken_validations=list(self._validations) if self._validations is not None else None,
            live_actions=list(self._live_actions) if self._live_actions is not None else None,
        )
