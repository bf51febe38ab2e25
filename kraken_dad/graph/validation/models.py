from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


DiagnosticSeverity = Literal["error", "warning"]


@dataclass(slots=True)
class Diagnostic:
    code: str
    severity: DiagnosticSeverity
    message: str
    node_id: str | None = None
    edge_id: str | None = None
    hint: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.node_id is not None:
            payload["nodeId"] = self.node_id
        if self.edge_id is not None:
            payload["edgeId"] = self.edge_id
        return payload


def error(code: str, message: str, **location: Any) -> Diagnostic:
    return Diagnostic(code=code, severity="error", message=message, **location)


def warning(code: str, message: str, **location: Any) -> Diagnostic:
    return Diagnostic(code=code, severity="warning", message=message, **location)


@dataclass(slots=True)
class ValidationResult:
    diagnostics: list[Diagnostic]
    reachable: set[str] = field(default_factory=set)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def errors(self) -> list[Diagnostic]:
        return [item for item in self.diagnostics if item.severity == "error"]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [item for item in self.diagnostics if item.severity == "warning"]

    def codes(self) -> set[str]:
        return {item.code for item in self.diagnostics}
