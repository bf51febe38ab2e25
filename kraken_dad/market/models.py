from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any


def to_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) or math.isinf(number) else number


@dataclass(slots=True)
class TickerSnapshot:
    pair: str
    last: float
    ask: float | None = None
    bid: float | None = None
    spread: float | None = None
    volume_24h: float = 0.0
    change_24h: float = 0.0
    timestamp: int = 0
    stale: bool = False


@dataclass(slots=True)
class DepthLevel:
    price: float
    volume: float


@dataclass(slots=True)
class DepthSnapshot:
    pair: str
    asks: list[DepthLevel] = field(default_factory=list)
    bids: list[DepthLevel] = field(default_factory=list)
    stale: bool = False

    @property
    def best_ask(self) -> float | None:
        return self.asks[0].price if self.asks else None

    @property
    def best_bid(self) -> float | None:
        return self.bids[0].price if self.bids else None

    @property
    def spread(self) -> float | None:
        if self.best_ask is None or self.best_bid is None:
            return None
        return self.best_ask - self.best_bid


@dataclass(slots=True)
class Candle:
    time: int
    open: float
    high: float
    low: float
    close: float
    vwap: float
    volume: float
    count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class OhlcSnapshot:
    pair: str
    interval: int
    candles: list[Candle] = field(default_factory=list)
    last: int = 0
    stale: bool = False


@dataclass(slots=True)
class SpreadEntry:
    time: int
    bid: float
    ask: float
    spread: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class SpreadSnapshot:
    pair: str
    entries: list[SpreadEntry] = field(default_factory=list)
    last: int = 0
    stale: bool = False


@dataclass(slots=True)
class AssetPairMetadata:
    pair: str
    base: str
    quote: str
    status: str | None
    pair_decimals: int | None
    lot_decimals: int | None
    order_min: float | None
    cost_min: float | None
    tick_size: float | None


@dataclass(slots=True)
class AssetPairCatalog:
    """Raw AssetPairs entries keyed by Kraken pair name."""

    pairs: dict[str, dict[str, Any]] = field(default_factory=dict)
    stale: bool = False
