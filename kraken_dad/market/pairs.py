from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from kraken_dad.market.models import AssetPairMetadata, to_number


WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True, slots=True)
class NormalizedPair:
    kraken_pair: str
    display: str

    @property
    def base(self) -> str:
        return self.display.split("/", 1)[0]

    @property
    def quote(self) -> str:
        return self.display.split("/", 1)[1]


def pair_key(pair: str) -> str:
    return pair.strip().upper()


def normalize_pair(pair: str) -> NormalizedPair:
    """Map a user pair such as ``btc/usd`` or ``XBTUSD`` to Kraken and display names."""
    cleaned = WHITESPACE_RE.sub("", pair.strip().upper()).replace("XBT", "BTC")
    if not cleaned:
        raise ValueError("Pair must be a non-empty string.")

    if "/" in cleaned:
        base, quote = cleaned.split("/", 1)
    else:
        base, quote = cleaned[:-3], cleaned[-3:]
    if not base or not quote:
        raise ValueError(f"Pair '{pair}' is not in BASE/QUOTE form.")

    kraken_base = "XBT" if base == "BTC" else base
    return NormalizedPair(kraken_pair=f"{kraken_base}{quote}", display=f"{base}/{quote}")


def resolve_asset_pair_metadata(
    pair: str,
    catalog: Mapping[str, Mapping[str, Any]],
) -> AssetPairMetadata | None:
    normalized = normalize_pair(pair)
    display = normalized.display
    display_xbt = display.replace("BTC", "XBT")
    candidates = {
        normalized.kraken_pair,
        display,
        display.replace("/", ""),
        display_xbt,
        display_xbt.replace("/", ""),
    }

    for key, meta in catalog.items():
        altname = str(meta.get("altname") or "").upper()
        wsname = str(meta.get("wsname") or "").upper()
        if key.upper() in candidates or altname in candidates or wsname in candidates:
            return AssetPairMetadata(
                pair=display,
                base=normalized.base,
                quote=normalized.quote,
                status=meta.get("status"),
                pair_decimals=_optional_int(meta.get("pair_decimals")),
                lot_decimals=_optional_int(meta.get("lot_decimals")),
                order_min=to_number(meta.get("ordermin")),
                cost_min=to_number(meta.get("costmin")),
                tick_size=to_number(meta.get("tick_size")),
            )
    return None


def _optional_int(value: object) -> int | None:
    number = to_number(value)
    return int(number) if number is not None else None
