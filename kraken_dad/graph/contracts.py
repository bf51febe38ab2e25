from __future__ import annotations

from collections.abc import Mapping

from kraken_dad.market.models import to_number as coerce_number


CONTROL_DATA_TYPE = "trigger"

ALLOWED_DATA_TYPES = {
    "any",
    "number",
    "string",
    "boolean",
    "series",
}


def describe_value_type(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "series"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def value_matches_data_type(value: object, data_type: str) -> bool:
    if data_type in {"any", CONTROL_DATA_TYPE}:
        return True
    if data_type not in ALLOWED_DATA_TYPES:
        # Unknown declared types are not checked.
        return True
    return describe_value_type(value) == data_type


def data_types_compatible(source: str, target: str) -> bool:
    if source == "any" or target == "any":
        return True
    return source == target


def clamp_count(value: object, default: int, minimum: int, maximum: int) -> int:
    number = coerce_number(value)
    if number is None:
        return default
    return min(max(int(round(number)), minimum), maximum)

