from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from kraken_dad.graph.handlers.registry import HandlerRegistry, default_registry
from kraken_dad.graph.index import GraphIndex
from kraken_dad.graph.schema import Strategy, parse_strategy
from kraken_dad.graph.validation.models import Diagnostic, ValidationResult
from kraken_dad.graph.validation.passes import (
    run_cfg_pass,
    run_edge_pass,
    run_input_pass,
    run_structure_pass,
)


class StrategyValidator:
    """Structural checks that must pass before any node of a strategy runs."""

    def __init__(self, registry: HandlerRegistry | None = None) -> None:
        self._registry = registry or default_registry()

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    def validate(self, strategy: Strategy | Mapping[str, Any]) -> ValidationResult:
        parsed = parse_strategy(strategy)
        index = GraphIndex.build(parsed)
        diagnostics: list[Diagnostic] = []

        diagnostics.extend(run_structure_pass(parsed, self._registry))
        diagnostics.extend(run_edge_pass(parsed, self._registry))

        cfg_analysis, cfg_diags = run_cfg_pass(index)
        diagnostics.extend(cfg_diags)

        diagnostics.extend(run_input_pass(index, self._registry, cfg_analysis.reachable))

        return ValidationResult(diagnostics=diagnostics, reachable=cfg_analysis.reachable)


def validate_strategy(
    strategy: Strategy | Mapping[str, Any],
    registry: HandlerRegistry | None = None,
) -> list[Diagnostic]:
    """Return the fatal diagnostics only; an empty list means the strategy may run."""
    return StrategyValidator(registry).validate(strategy).errors
