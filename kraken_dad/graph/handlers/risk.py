from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from kraken_dad.graph.context import ExecutionContext
from kraken_dad.graph.contracts import coerce_number
from kraken_dad.graph.handlers.base import (
    BlockDefinition,
    HandlerResult,
    NodeHandler,
    NodeIssue,
    NodeType,
    control_port,
    data_port,
)
from kraken_dad.graph.handlers.data import resolve_pair


DEFAULT_MAX_SPREAD = 5.0
DEPTH_LEVELS = 10


class RiskGuardHandler(NodeHandler):
    """Allow the flow through only while the pair's spread is at most ``maxSpread``.

    The spread comes from ``spreadOverride`` when wired or configured, then the
    ticker, then the top of the order book.
    """

    definition = BlockDefinition(
        type=NodeType.RISK_GUARD.value,
        category="risk",
        name="Orderbook Guard",
        description="Blocks execution if spread exceeds threshold",
        inputs=(
            control_port("in", "Trigger"),
            data_port("pair", "string", label="Pair"),
            data_port("maxSpread", "number", label="Max Spread"),
            data_port("spreadOverride", "number", label="Spread Override"),
        ),
        outputs=(
            control_port("out", "Pass"),
            data_port("allowed", "boolean", required=True),
            data_port("spread", "number"),
        ),
    )

    def validate_config(self, config: Mapping[str, Any]) -> list[str]:
        raw = config.get("maxSpread")
        if raw is None:
            return []
        max_spread = coerce_number(raw)
        if max_spread is None or max_spread < 0:
            return [f"'maxSpread' must be a non-negative number, got {raw!r}."]
        return []

    async def run(
        self,
        inputs: dict[str, Any],
        config: Mapping[str, Any],
        context: ExecutionContext,
    ) -> HandlerResult:
        pair = resolve_pair(inputs)
        max_spread = coerce_number(inputs.get("maxSpread"))
        if max_spread is None:
            max_spread = DEFAULT_MAX_SPREAD

        warnings: list[NodeIssue] = []
        spread = coerce_number(inputs.get("spreadOverride"))
        if spread is None:
            ticker = await context.market_data.get_ticker(pair)
            if ticker.stale:
                warnings.append(
                    NodeIssue(
                        code="MARKET_DATA_FALLBACK",
                        message=f"Spread for {ticker.pair} comes from a fallback snapshot.",
                    )
                )
            spread = ticker.spread
        if spread is None:
            depth = await context.market_data.get_depth(pair, DEPTH_LEVELS)
            spread = depth.spread
        if spread is None:
            spread = 0.0

        allowed = spread <= max_spread
        return HandlerResult(
            outputs={"out": allowed, "allowed": allowed, "spread": spread},
            warnings=warnings,
        )
