from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import replace
from typing import Any, TypeVar

from kraken_dad.market.models import (
    AssetPairCatalog,
    Candle,
    DepthLevel,
    DepthSnapshot,
    OhlcSnapshot,
    SpreadEntry,
    SpreadSnapshot,
    TickerSnapshot,
)
from kraken_dad.market.pairs import normalize_pair


LOGGER = logging.getLogger(__name__)

MARKET_FALLBACKS: dict[str, dict[str, float]] = {
    "BTC/USD": {"last": 90135.6, "ask": 90136.4, "bid": 90134.8, "spread": 1.6},
    "ETH/USD": {"last": 3450.12, "ask": 3450.6, "bid": 3449.5, "spread": 1.1},
}
DEFAULT_FALLBACK = {"last": 42000.0, "spread": 2.5}

FALLBACK_ASSET_PAIRS: dict[str, dict[str, Any]] = {
    "XXBTZUSD": {
        "altname": "XBTUSD",
        "wsname": "XBT/USD",
        "base": "XXBT",
        "quote": "ZUSD",
        "status": "online",
        "pair_decimals": 1,
        "lot_decimals": 8,
        "ordermin": "0.0001",
        "costmin": "0.5",
        "tick_size": "0.1",
    },
    "XETHZUSD": {
        "altname": "ETHUSD",
        "wsname": "ETH/USD",
        "base": "XETH",
        "quote": "ZUSD",
        "status": "online",
        "pair_decimals": 2,
        "lot_decimals": 8,
        "ordermin": "0.002",
        "costmin": "0.5",
        "tick_size": "0.01",
    },
}

MOCK_CANDLE_COUNT = 720
MOCK_SPREAD_COUNT = 500
MOCK_SPREAD_STEP_MS = 1000
# Fixed so that mock series are identical from run to run.
DEFAULT_ANCHOR_MS = 1_700_000_000_000

SnapshotT = TypeVar("SnapshotT")


def fallback_ticker(pair: str) -> TickerSnapshot:
    display = normalize_pair(pair).display
    entry = MARKET_FALLBACKS.get(display)
    if entry is not None:
        return TickerSnapshot(
            pair=display,
            last=entry["last"],
            ask=entry["ask"],
            bid=entry["bid"],
            spread=entry["spread"],
        )
    last = DEFAULT_FALLBACK["last"]
    spread = DEFAULT_FALLBACK["spread"]
    return TickerSnapshot(pair=display, last=last, ask=last + spread / 2, bid=last - spread / 2, spread=spread)


def mock_candles(base: float, interval: int, anchor_ms: int, count: int = MOCK_CANDLE_COUNT) -> list[Candle]:
    """Deterministic gently rising candles ending at ``anchor_ms``."""
    step_ms = interval * 60_000
    start = anchor_ms - (count - 1) * step_ms
    candles: list[Candle] = []
    for index in range(count):
        open_price = base + index * 0.35
        close_price = open_price + (0.25 if index % 2 == 0 else -0.15)
        candles.append(
            Candle(
                time=start + index * step_ms,
                open=open_price,
                high=max(open_price, close_price) + 0.4,
                low=min(open_price, close_price) - 0.4,
                close=close_price,
                vwap=(open_price + close_price) / 2,
                volume=0.5 + index * 0.01,
                count=10 + index,
            )
        )
    return candles


def mock_spreads(base: float, spread: float, anchor_ms: int, count: int = MOCK_SPREAD_COUNT) -> list[SpreadEntry]:
    start = anchor_ms - (count - 1) * MOCK_SPREAD_STEP_MS
    return [
        SpreadEntry(time=start + index * MOCK_SPREAD_STEP_MS, bid=base, ask=base + spread, spread=spread)
        for index in range(count)
    ]


class StaticMarketData:
    """In-memory provider serving fixed snapshots, for offline runs and tests.

    Pairs without an explicit ticker use the built-in fallback prices; OHLC and
    spread series are derived from the ticker unless given.
    """

    def __init__(
        self,
        tickers: Mapping[str, TickerSnapshot | float] | None = None,
        *,
        depth: Mapping[str, DepthSnapshot] | None = None,
        ohlc: Mapping[str, list[Candle]] | None = None,
        spreads: Mapping[str, list[SpreadEntry]] | None = None,
        asset_pairs: Mapping[str, Mapping[str, Any]] | None = None,
        anchor_ms: int | None = None,
    ) -> None:
        self._tickers = {_display(pair): value for pair, value in (tickers or {}).items()}
        self._depth = {_display(pair): value for pair, value in (depth or {}).items()}
        self._ohlc = {_display(pair): value for pair, value in (ohlc or {}).items()}
        self._spreads = {_display(pair): value for pair, value in (spreads or {}).items()}
        self._asset_pairs = {
            key: dict(value) for key, value in (asset_pairs if asset_pairs is not None else FALLBACK_ASSET_PAIRS).items()
        }
        self._anchor_ms = anchor_ms if anchor_ms is not None else DEFAULT_ANCHOR_MS

    async def get_ticker(self, pair: str) -> TickerSnapshot:
        display = _display(pair)
        value = self._tickers.get(display)
        if value is None:
            return fallback_ticker(display)
        if isinstance(value, TickerSnapshot):
            return value
        fallback = fallback_ticker(display)
        spread = fallback.spread or DEFAULT_FALLBACK["spread"]
        last = float(value)
        return TickerSnapshot(pair=display, last=last, ask=last + spread / 2, bid=last - spread / 2, spread=spread)

    async def get_depth(self, pair: str, count: int = 10) -> DepthSnapshot:
        display = _display(pair)
        snapshot = self._depth.get(display)
        if snapshot is not None:
            return replace(snapshot, asks=snapshot.asks[:count], bids=snapshot.bids[:count])
        ticker = await self.get_ticker(display)
        asks = [DepthLevel(price=ticker.ask, volume=1.0)] if ticker.ask is not None else []
        bids = [DepthLevel(price=ticker.bid, volume=1.0)] if ticker.bid is not None else []
        return DepthSnapshot(pair=display, asks=asks, bids=bids)

    async def get_ohlc(self, pair: str, interval: int = 1) -> OhlcSnapshot:
        display = _display(pair)
        candles = self._ohlc.get(display)
        if candles is None:
            ticker = await self.get_ticker(display)
            candles = mock_candles(ticker.last, interval, self._anchor_ms)
        last = candles[-1].time if candles else 0
        return OhlcSnapshot(pair=display, interval=interval, candles=list(candles), last=last)

    async def get_spread(self, pair: str) -> SpreadSnapshot:
        display = _display(pair)
        entries = self._spreads.get(display)
        if entries is None:
            ticker = await self.get_ticker(display)
            base = ticker.bid if ticker.bid is not None else ticker.last
            entries = mock_spreads(base, ticker.spread or 0.0, self._anchor_ms)
        last = entries[-1].time if entries else 0
        return SpreadSnapshot(pair=display, entries=list(entries), last=last)

    async def get_asset_pairs(self) -> AssetPairCatalog:
        return AssetPairCatalog(pairs={key: dict(value) for key, value in self._asset_pairs.items()})


class FallbackMarketData:
    """Wraps a provider and serves stale fallback snapshots when it fails."""

    def __init__(self, primary: Any, fallback: Any | None = None) -> None:
        self._primary = primary
        self._fallback = fallback or StaticMarketData()

    async def get_ticker(self, pair: str) -> TickerSnapshot:
        return await self._with_fallback(
            "ticker",
            pair,
            lambda: self._primary.get_ticker(pair),
            lambda: self._fallback.get_ticker(pair),
        )

    async def get_depth(self, pair: str, count: int = 10) -> DepthSnapshot:
        return await self._with_fallback(
            "depth",
            pair,
            lambda: self._primary.get_depth(pair, count),
            lambda: self._fallback.get_depth(pair, count),
        )

    async def get_ohlc(self, pair: str, interval: int = 1) -> OhlcSnapshot:
        return await self._with_fallback(
            "OHLC",
            pair,
            lambda: self._primary.get_ohlc(pair, interval),
            lambda: self._fallback.get_ohlc(pair, interval),
        )

    async def get_spread(self, pair: str) -> SpreadSnapshot:
        return await self._with_fallback(
            "spread",
            pair,
            lambda: self._primary.get_spread(pair),
            lambda: self._fallback.get_spread(pair),
        )

    async def get_asset_pairs(self) -> AssetPairCatalog:
        return await self._with_fallback(
            "AssetPairs",
            "*",
            self._primary.get_asset_pairs,
            self._fallback.get_asset_pairs,
        )

    async def _with_fallback(
        self,
        what: str,
        pair: str,
        primary: Callable[[], Awaitable[SnapshotT]],
        fallback: Callable[[], Awaitable[SnapshotT]],
    ) -> SnapshotT:
        try:
            return await primary()
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Kraken %s fetch failed for %s, using fallback snapshot: %s", what, pair, exc)
        snapshot = await fallback()
        return replace(snapshot, stale=True)


def _display(pair: str) -> str:
    return normalize_pair(pair).display
