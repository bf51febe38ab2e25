from __future__ import annotations

import operator
from collections.abc import Mapping
from typing import Any, Callable

from kraken_dad.graph.context import ExecutionContext
from kraken_dad.graph.contracts import clamp_count, coerce_number
from kraken_dad.graph.handlers.base import (
    BlockDefinition,
    HandlerResult,
    NodeExecutionError,
    NodeHandler,
    NodeType,
    control_port,
    data_port,
)


COMPARATORS: dict[str, Callable[[float, float], bool]] = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "=>": operator.ge,
    "<=": operator.le,
    "==": operator.eq,
    "=": operator.eq,
}
MOVING_AVERAGE_METHODS = ("SMA", "EMA")
DEFAULT_PERIOD = 14
MAX_PERIOD = 500


class IfHandler(NodeHandler):
    """Compare ``condition`` against ``threshold`` and activate exactly one branch."""

    definition = BlockDefinition(
        type=NodeType.LOGIC_IF.value,
        category="logic",
        name="If",
        description="Routes control flow based on a numeric comparison",
        inputs=(
            control_port("in", "Trigger"),
            data_port("condition", "number", required=True, label="Value"),
            data_port("threshold", "number", required=True, label="Threshold"),
        ),
        outputs=(control_port("true", "True"), control_port("false", "False")),
    )

    def validate_config(self, config: Mapping[str, Any]) -> list[str]:
        comparator = config.get("comparator")
        if comparator is not None and comparator not in COMPARATORS:
            return [f"Unsupported comparator '{comparator}'. Use one of: {', '.join(COMPARATORS)}."]
        return []

    async def run(
        self,
        inputs: dict[str, Any],
        config: Mapping[str, Any],
        context: ExecutionContext,
    ) -> HandlerResult:
        comparator = config.get("comparator") or ">"
        compare = COMPARATORS.get(comparator)
        if compare is None:
            raise NodeExecutionError(f"Unsupported comparator: {comparator}")

        value = coerce_number(inputs.get("condition"))
        if value is None:
            raise NodeExecutionError("Condition node requires a numeric input value")
        threshold = coerce_number(inputs.get("threshold"))
        if threshold is None:
            raise NodeExecutionError("Condition node requires a numeric threshold")

        condition = bool(compare(value, threshold))
        return HandlerResult(outputs={"true": condition, "false": not condition})


class EqualsHandler(NodeHandler):
    definition = BlockDefinition(
        type=NodeType.LOGIC_EQUALS.value,
        category="logic",
        name="Equals",
        description="Compares two values and outputs a boolean",
        inputs=(
            control_port("in", "Trigger"),
            data_port("a", "any", required=True, label="A"),
            data_port("b", "any", required=True, label="B"),
        ),
        outputs=(control_port("out"), data_port("result", "boolean", required=True)),
    )

    async def run(
        self,
        inputs: dict[str, Any],
        config: Mapping[str, Any],
        context: ExecutionContext,
    ) -> HandlerResult:
        return HandlerResult(outputs={"out": True, "result": strict_equals(inputs.get("a"), inputs.get("b"))})


def strict_equals(left: object, right: object) -> bool:
    # True == 1 holds in Python; booleans only equal booleans here.
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


class MovingAverageHandler(NodeHandler):
    definition = BlockDefinition(
        type=NodeType.LOGIC_MOVING_AVERAGE.value,
        category="logic",
        name="Moving Average",
        description="Computes SMA or EMA from a numeric series",
        inputs=(
            control_port("in", "Trigger"),
            data_port("series", "series", required=True, label="Series"),
            data_port("period", "number", label="Period"),
        ),
        outputs=(control_port("out"), data_port("value", "number", required=True)),
    )

    def validate_config(self, config: Mapping[str, Any]) -> list[str]:
        method = config.get("method")
        if method is not None and str(method).upper() not in MOVING_AVERAGE_METHODS:
            return [f"Unsupported moving average method '{method}'. Use SMA or EMA."]
        return []

    async def run(
        self,
        inputs: dict[str, Any],
        config: Mapping[str, Any],
        context: ExecutionContext,
    ) -> HandlerResult:
        method = str(config.get("method") or "SMA").upper()
        period = clamp_count(inputs.get("period"), DEFAULT_PERIOD, 1, MAX_PERIOD)
        values = extract_series_values(inputs.get("series"))
        if not values:
            raise NodeExecutionError("Moving Average requires a numeric series")

        computed = compute_ema(values, period) if method == "EMA" else compute_sma(values, period)
        return HandlerResult(outputs={"out": True, "value": computed[-1]})


def extract_series_values(raw: object) -> list[float]:
    """Accept numbers, numeric strings, or candle-like mappings with ``close``/``value``."""
    if not isinstance(raw, (list, tuple)):
        return []
    values: list[float] = []
    for entry in raw:
        if isinstance(entry, Mapping):
            candidate = entry.get("close", entry.get("value"))
        else:
            candidate = entry
        number = coerce_number(candidate)
        if number is None:
            raise NodeExecutionError("Moving Average requires a numeric series")
        values.append(number)
    return values


def compute_sma(series: list[float], period: int) -> list[float]:
    result: list[float] = []
    window_sum = 0.0
    for index, value in enumerate(series):
        window_sum += value
        if index >= period:
            window_sum -= series[index - period]
        result.append(window_sum / min(index + 1, period))
    return result


def compute_ema(series: list[float], period: int) -> list[float]:
    if not series:
        return []
    alpha = 2 / (period + 1)
    previous = series[0]
    result = [previous]
    for value in series[1:]:
        previous = alpha * value + (1 - alpha) * previous
        result.append(previous)
    return result
