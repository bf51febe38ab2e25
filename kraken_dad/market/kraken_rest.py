from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any

import httpx

from kraken_dad.market.models import (
    AssetPairCatalog,
    Candle,
    DepthLevel,
    DepthSnapshot,
    OhlcSnapshot,
    SpreadEntry,
    SpreadSnapshot,
    TickerSnapshot,
    to_number,
)
from kraken_dad.market.pairs import normalize_pair


LOGGER = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.kraken.com"
DEFAULT_TIMEOUT_SECONDS = 2.5


class KrakenAPIError(RuntimeError):
    """Raised when a public Kraken endpoint fails or reports errors."""


class KrakenRestMarketData:
    """Market-data provider backed by Kraken's public REST endpoints.

    Only unauthenticated endpoints are used, so no credentials or request signing
    are involved. Every call opens a short-lived ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = max(0.1, float(timeout_seconds))
        self._transport = transport

    async def get_ticker(self, pair: str) -> TickerSnapshot:
        normalized = normalize_pair(pair)
        result = await self._get_public("Ticker", {"pair": normalized.kraken_pair})
        ticker = _first_result(result)

        ask = _first_number(ticker.get("a"))
        bid = _first_number(ticker.get("b"))
        last = _first_number(ticker.get("c"))
        return TickerSnapshot(
            pair=normalized.display,
            last=last if last is not None else 0.0,
            ask=ask,
            bid=bid,
            spread=ask - bid if ask is not None and bid is not None else None,
            volume_24h=_nth_number(ticker.get("v"), 1) or 0.0,
            change_24h=_nth_number(ticker.get("p"), 1) or 0.0,
            timestamp=int(time.time() * 1000),
        )

    async def get_depth(self, pair: str, count: int = 10) -> DepthSnapshot:
        normalized = normalize_pair(pair)
        result = await self._get_public("Depth", {"pair": normalized.kraken_pair, "count": count})
        depth = _first_result(result)
        return DepthSnapshot(
            pair=normalized.display,
            asks=_depth_levels(depth.get("asks")),
            bids=_depth_levels(depth.get("bids")),
        )

    async def get_ohlc(self, pair: str, interval: int = 1) -> OhlcSnapshot:
        normalized = normalize_pair(pair)
        result = await self._get_public("OHLC", {"pair": normalized.kraken_pair, "interval": interval})
        rows = _series_result(result)

        candles: list[Candle] = []
        for row in rows:
            if not isinstance(row, (list, tuple)) or len(row) < 8:
                continue
            candles.append(
                Candle(
                    time=int((to_number(row[0]) or 0) * 1000),
                    open=to_number(row[1]) or 0.0,
                    high=to_number(row[2]) or 0.0,
                    low=to_number(row[3]) or 0.0,
                    close=to_number(row[4]) or 0.0,
                    vwap=to_number(row[5]) or 0.0,
                    volume=to_number(row[6]) or 0.0,
                    count=int(to_number(row[7]) or 0),
                )
            )
        return OhlcSnapshot(
            pair=normalized.display,
            interval=interval,
            candles=candles,
            last=int(to_number(result.get("last")) or 0),
        )

    async def get_spread(self, pair: str) -> SpreadSnapshot:
        normalized = normalize_pair(pair)
        result = await self._get_public("Spread", {"pair": normalized.kraken_pair})
        rows = _series_result(result)

        entries: list[SpreadEntry] = []
        for row in rows:
            if not isinstance(row, (list, tuple)) or len(row) < 3:
                continue
            bid = to_number(row[1]) or 0.0
            ask = to_number(row[2]) or 0.0
            entries.append(
                SpreadEntry(
                    time=int((to_number(row[0]) or 0) * 1000),
                    bid=bid,
                    ask=ask,
                    spread=ask - bid,
                )
            )
        return SpreadSnapshot(
            pair=normalized.display,
            entries=entries,
            last=int(to_number(result.get("last")) or 0),
        )

    async def get_asset_pairs(self) -> AssetPairCatalog:
        result = await self._get_public("AssetPairs", {})
        pairs = {str(key): dict(value) for key, value in result.items() if isinstance(value, Mapping)}
        return AssetPairCatalog(pairs=pairs)

    async def _get_public(self, endpoint: str, params: Mapping[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}/0/public/{endpoint}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
                response = await client.get(url, params=dict(params))
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise KrakenAPIError(f"Kraken {endpoint} request failed: {exc}") from exc

        if not isinstance(payload, Mapping):
            raise KrakenAPIError(f"Kraken {endpoint} returned an unexpected payload.")
        errors = payload.get("error") or []
        if errors:
            raise KrakenAPIError(f"Kraken API error: {', '.join(str(item) for item in errors)}")
        result = payload.get("result")
        if not isinstance(result, Mapping):
            raise KrakenAPIError(f"Kraken {endpoint} returned an empty result.")
        LOGGER.debug("Kraken %s returned %d result keys.", endpoint, len(result))
        return dict(result)


def _first_result(result: Mapping[str, Any]) -> Mapping[str, Any]:
    for value in result.values():
        if isinstance(value, Mapping):
            return value
    raise KrakenAPIError("Kraken API error: empty result")


def _series_result(result: Mapping[str, Any]) -> list[Any]:
    # OHLC and Spread results hold one pair key plus a "last" cursor.
    for key, value in result.items():
        if key != "last" and isinstance(value, list):
            return value
    raise KrakenAPIError("Kraken API error: empty result")


def _first_number(raw: object) -> float | None:
    return _nth_number(raw, 0)


def _nth_number(raw: object, position: int) -> float | None:
    if not isinstance(raw, (list, tuple)) or len(raw) <= position:
        return None
    return to_number(raw[position])


def _depth_levels(raw: object) -> list[DepthLevel]:
    if not isinstance(raw, list):
        return []
    levels: list[DepthLevel] = []
    for row in raw:
        if not isinstance(row, (list, tuple)) or len(row) < 2:
            continue
        levels.append(DepthLevel(price=to_number(row[0]) or 0.0, volume=to_number(row[1]) or 0.0))
    return levels
