from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Literal, Protocol

from kraken_dad.market.models import (
    AssetPairCatalog,
    DepthSnapshot,
    OhlcSnapshot,
    SpreadSnapshot,
    TickerSnapshot,
)


ExecutionMode = Literal["dry-run", "live"]
EXECUTION_MODES = ("dry-run", "live")


class MarketDataProvider(Protocol):
    async def get_ticker(self, pair: str) -> TickerSnapshot: ...

    async def get_depth(self, pair: str, count: int = 10) -> DepthSnapshot: ...

    async def get_ohlc(self, pair: str, interval: int = 1) -> OhlcSnapshot: ...

    async def get_spread(self, pair: str) -> SpreadSnapshot: ...

    async def get_asset_pairs(self) -> AssetPairCatalog: ...


class ExchangeActionAdapter(Protocol):
    """Order operations. Credentials and request signing live behind this boundary."""

    async def validate_order(self, params: dict[str, str]) -> dict[str, Any]: ...

    async def validate_cancel(self, txid: str) -> dict[str, Any]: ...

    async def place_order(self, params: dict[str, str]) -> dict[str, Any]: ...

    async def cancel_order(self, txid: str) -> dict[str, Any]: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    """Everything a run may consult. Built by the caller, read-only for the run."""

    mode: str
    market_data: MarketDataProvider
    actions: ExchangeActionAdapter | None = None
    validate: bool = False
    target_node_id: str | None = None
    strict_validation: bool = False
    clock: Callable[[], datetime] = utc_now

    @property
    def is_live(self) -> bool:
        return self.mode == "live"

    @property
    def is_dry_run(self) -> bool:
        return self.mode == "dry-run"
