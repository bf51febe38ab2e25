from __future__ import annotations

import statistics
from collections.abc import Mapping
from typing import Any

from kraken_dad.graph.context import ExecutionContext
from kraken_dad.graph.contracts import (
    ALLOWED_DATA_TYPES,
    clamp_count,
    coerce_number,
    describe_value_type,
)
from kraken_dad.graph.handlers.base import (
    BlockDefinition,
    HandlerResult,
    NodeHandler,
    NodeIssue,
    NodeType,
    Port,
    control_port,
    data_port,
)
from kraken_dad.market.pairs import resolve_asset_pair_metadata


DEFAULT_PAIR = "BTC/USD"
SUPPORTED_OHLC_INTERVALS = (1, 5, 15, 30, 60, 240, 1440, 10080, 21600)
DEFAULT_OHLC_COUNT = 120
MAX_OHLC_COUNT = 720
DEFAULT_SPREAD_COUNT = 50
MAX_SPREAD_COUNT = 500


def resolve_pair(inputs: Mapping[str, Any]) -> str:
    pair = inputs.get("pair")
    if isinstance(pair, str) and pair.strip():
        return pair.strip()
    return DEFAULT_PAIR


def normalize_interval(value: object) -> int:
    number = coerce_number(value)
    if number is not None and int(number) == number and int(number) in SUPPORTED_OHLC_INTERVALS:
        return int(number)
    return 1


def spread_stats(series: list[float]) -> dict[str, float]:
    if not series:
        return {"latest": 0.0, "average": 0.0, "min": 0.0, "max": 0.0, "median": 0.0}
    return {
        "latest": series[-1],
        "average": sum(series) / len(series),
        "min": min(series),
        "max": max(series),
        "median": statistics.median(series),
    }


def _pair_input() -> Port:
    return data_port("pair", "string", label="Pair")


def _stale_warning(code: str, what: str, pair: str) -> NodeIssue:
    return NodeIssue(code=code, message=f"{what} for {pair} is a fallback snapshot, not live market data.")


class ConstantHandler(NodeHandler):
    definition = BlockDefinition(
        type=NodeType.DATA_CONSTANT.value,
        category="data",
        name="Constant",
        description="Outputs a constant value from configuration",
        inputs=(control_port("in", "Trigger"),),
        outputs=(
            control_port("out"),
            data_port("value", "any", required=True),
            data_port("valueType", "string"),
        ),
    )

    def validate_config(self, config: Mapping[str, Any]) -> list[str]:
        value_type = config.get("valueType")
        if value_type is None:
            return []
        if value_type not in ALLOWED_DATA_TYPES - {"any"}:
            return [f"Unsupported valueType '{value_type}'."]
        actual = describe_value_type(config.get("value"))
        if actual != value_type:
            return [f"Constant value is a {actual}, but valueType is '{value_type}'."]
        return []

    async def run(
        self,
        inputs: dict[str, Any],
        config: Mapping[str, Any],
        context: ExecutionContext,
    ) -> HandlerResult:
        value = config.get("value")
        return HandlerResult(
            outputs={
                "out": True,
                "value": value,
                "valueType": config.get("valueType") or describe_value_type(value),
            }
        )


class TickerHandler(NodeHandler):
    definition = BlockDefinition(
        type=NodeType.DATA_KRAKEN_TICKER.value,
        category="data",
        name="Kraken Ticker",
        description="Fetches the latest ticker price for a pair",
        inputs=(control_port("in", "Trigger"), _pair_input()),
        outputs=(
            control_port("out"),
            data_port("price", "number", required=True),
            data_port("pair", "string", required=True),
            data_port("ask", "number"),
            data_port("bid", "number"),
            data_port("spread", "number"),
        ),
    )

    async def run(
        self,
        inputs: dict[str, Any],
        config: Mapping[str, Any],
        context: ExecutionContext,
    ) -> HandlerResult:
        pair = resolve_pair(inputs)
        ticker = await context.market_data.get_ticker(pair)
        warnings = [_stale_warning("MARKET_DATA_FALLBACK", "Ticker", ticker.pair)] if ticker.stale else []
        return HandlerResult(
            outputs={
                "out": True,
                "price": ticker.last,
                "pair": ticker.pair,
                "ask": ticker.ask,
                "bid": ticker.bid,
                "spread": ticker.spread,
            },
            warnings=warnings,
        )


class OhlcHandler(NodeHandler):
    definition = BlockDefinition(
        type=NodeType.DATA_KRAKEN_OHLC.value,
        category="data",
        name="Kraken OHLC",
        description="Fetches OHLC candles for a pair and interval",
        inputs=(control_port("in", "Trigger"), _pair_input()),
        outputs=(
            control_port("out"),
            data_port("candles", "series", required=True),
            data_port("closeSeries", "series", required=True),
            data_port("lastCandle", "any", required=True),
        ),
    )

    async def run(
        self,
        inputs: dict[str, Any],
        config: Mapping[str, Any],
        context: ExecutionContext,
    ) -> HandlerResult:
        pair = resolve_pair(inputs)
        interval = normalize_interval(config.get("interval"))
        count = clamp_count(config.get("count"), DEFAULT_OHLC_COUNT, 1, MAX_OHLC_COUNT)

        snapshot = await context.market_data.get_ohlc(pair, interval)
        candles = [candle.to_dict() for candle in snapshot.candles[-count:]]
        warnings = [_stale_warning("OHLC_FALLBACK", "OHLC data", snapshot.pair)] if snapshot.stale else []
        return HandlerResult(
            outputs={
                "out": True,
                "candles": candles,
                "closeSeries": [candle["close"] for candle in candles],
                "lastCandle": candles[-1] if candles else None,
            },
            warnings=warnings,
        )


class SpreadHandler(NodeHandler):
    definition = BlockDefinition(
        type=NodeType.DATA_KRAKEN_SPREAD.value,
        category="data",
        name="Kraken Spreads",
        description="Fetches recent bid/ask spreads for a pair",
        inputs=(control_port("in", "Trigger"), _pair_input()),
        outputs=(
            control_port("out"),
            data_port("latest", "number", required=True),
            data_port("average", "number", required=True),
            data_port("min", "number", required=True),
            data_port("max", "number", required=True),
            data_port("median", "number", required=True),
            data_port("series", "series", required=True),
        ),
    )

    async def run(
        self,
        inputs: dict[str, Any],
        config: Mapping[str, Any],
        context: ExecutionContext,
    ) -> HandlerResult:
        pair = resolve_pair(inputs)
        count = clamp_count(config.get("count"), DEFAULT_SPREAD_COUNT, 1, MAX_SPREAD_COUNT)

        snapshot = await context.market_data.get_spread(pair)
        series = [entry.spread for entry in snapshot.entries[-count:]]
        warnings = [_stale_warning("SPREAD_FALLBACK", "Spread data", snapshot.pair)] if snapshot.stale else []
        return HandlerResult(
            outputs={"out": True, **spread_stats(series), "series": series},
            warnings=warnings,
        )


class AssetPairsHandler(NodeHandler):
    definition = BlockDefinition(
        type=NodeType.DATA_KRAKEN_ASSET_PAIRS.value,
        category="data",
        name="Kraken AssetPairs",
        description="Reads AssetPairs metadata for precision and minimum size checks",
        inputs=(control_port("in", "Trigger"), _pair_input()),
        outputs=(
            control_port("out"),
            data_port("found", "boolean", required=True),
            data_port("status", "string"),
            data_port("pairDecimals", "number"),
            data_port("lotDecimals", "number"),
            data_port("orderMin", "number"),
            data_port("costMin", "number"),
            data_port("tickSize", "number"),
        ),
    )

    async def run(
        self,
        inputs: dict[str, Any],
        config: Mapping[str, Any],
        context: ExecutionContext,
    ) -> HandlerResult:
        pair = resolve_pair(inputs)
        catalog = await context.market_data.get_asset_pairs()
        metadata = resolve_asset_pair_metadata(pair, catalog.pairs)

        warnings: list[NodeIssue] = []
        if catalog.stale:
            warnings.append(_stale_warning("ASSET_PAIR_FALLBACK", "AssetPairs metadata", pair))
        if metadata is None:
            warnings.append(
                NodeIssue(code="ASSET_PAIR_NOT_FOUND", message=f"AssetPairs metadata not found for {pair}.")
            )
            return HandlerResult(
                outputs={
                    "out": True,
                    "found": False,
                    "status": None,
                    "pairDecimals": None,
                    "lotDecimals": None,
                    "orderMin": None,
                    "costMin": None,
                    "tickSize": None,
                },
                warnings=warnings,
            )

        return HandlerResult(
            outputs={
                "out": True,
                "found": True,
                "status": metadata.status,
                "pairDecimals": metadata.pair_decimals,
                "lotDecimals": metadata.lot_decimals,
                "orderMin": metadata.order_min,
                "costMin": metadata.cost_min,
                "tickSize": metadata.tick_size,
            },
            warnings=warnings,
        )
