from kraken_dad.market.kraken_rest import DEFAULT_API_BASE_URL, KrakenAPIError, KrakenRestMarketData
from kraken_dad.market.models import (
    AssetPairCatalog,
    AssetPairMetadata,
    Candle,
    DepthLevel,
    DepthSnapshot,
    OhlcSnapshot,
    SpreadEntry,
    SpreadSnapshot,
    TickerSnapshot,
)
from kraken_dad.market.pairs import NormalizedPair, normalize_pair, resolve_asset_pair_metadata
from kraken_dad.market.static import MARKET_FALLBACKS, FallbackMarketData, StaticMarketData

__all__ = [
    "AssetPairCatalog",
    "AssetPairMetadata",
    "Candle",
    "DEFAULT_API_BASE_URL",
    "DepthLevel",
    "DepthSnapshot",
    "FallbackMarketData",
    "KrakenAPIError",
    "KrakenRestMarketData",
    "MARKET_FALLBACKS",
    "NormalizedPair",
    "OhlcSnapshot",
    "SpreadEntry",
    "SpreadSnapshot",
    "StaticMarketData",
    "TickerSnapshot",
    "normalize_pair",
    "resolve_asset_pair_metadata",
]
