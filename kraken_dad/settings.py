from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from kraken_dad.market.kraken_rest import DEFAULT_API_BASE_URL, DEFAULT_TIMEOUT_SECONDS


DEFAULT_PAIR = "BTC/USD"
DEFAULT_EXECUTION_MODE = "dry-run"
EXECUTION_MODE_CHOICES = ("dry-run", "live")
TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(slots=True)
class AppSettings:
    kraken_api_base_url: str = DEFAULT_API_BASE_URL
    market_data_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    default_pair: str = DEFAULT_PAIR
    execution_mode: str = DEFAULT_EXECUTION_MODE
    validate_orders: bool = False
    strict_validation: bool = False
    market_data_offline: bool = False



def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if not value:
        return default
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    return default


def _get_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    value = (os.getenv(name) or "").strip().lower()
    return value if value in choices else default



def load_settings() -> AppSettings:
    load_dotenv()

    return AppSettings(
        kraken_api_base_url=os.getenv("KRAKEN_API_BASE_URL", DEFAULT_API_BASE_URL),
        market_data_timeout_seconds=_get_float("MARKET_DATA_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        default_pair=os.getenv("DEFAULT_PAIR", DEFAULT_PAIR).strip() or DEFAULT_PAIR,
        execution_mode=_get_choice("EXECUTION_MODE", EXECUTION_MODE_CHOICES, DEFAULT_EXECUTION_MODE),
        validate_orders=_get_bool("VALIDATE_ORDERS", False),
        strict_validation=_get_bool("STRICT_VALIDATION", False),
        market_data_offline=_get_bool("MARKET_DATA_OFFLINE", False),
    )
