from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

from kraken_dad.graph.context import ExecutionContext
from kraken_dad.graph.handlers.base import (
    BlockDefinition,
    HandlerResult,
    NodeHandler,
    NodeType,
    control_port,
    data_port,
)


DAY_LABELS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
DEFAULT_START_MINUTES = 0
DEFAULT_END_MINUTES = 23 * 60 + 59


class StartHandler(NodeHandler):
    definition = BlockDefinition(
        type=NodeType.CONTROL_START.value,
        category="control",
        name="Start",
        description="Entry point for control flow execution",
        outputs=(control_port("out"),),
    )

    async def run(
        self,
        inputs: dict[str, Any],
        config: Mapping[str, Any],
        context: ExecutionContext,
    ) -> HandlerResult:
        return HandlerResult(outputs={"out": True})


class TimeWindowHandler(NodeHandler):
    """Gate control flow on a UTC day and time-of-day window.

    ``startTime``/``endTime`` are ``HH:MM``; a window whose start is after its end
    wraps past midnight, and its early-morning part counts as the previous
    day's session. ``days`` takes labels (``Mon``) or indexes with 0 = Sunday;
    an empty list allows no day at all.
    """

    definition = BlockDefinition(
        type=NodeType.CONTROL_TIME_WINDOW.value,
        category="control",
        name="Time Window",
        description="Gates control flow based on UTC day/time window",
        inputs=(control_port("in", "Trigger"),),
        outputs=(
            control_port("out"),
            data_port("allowed", "boolean", required=True),
            data_port("now", "string"),
            data_port("nextAllowedAt", "string"),
        ),
    )

    def validate_config(self, config: Mapping[str, Any]) -> list[str]:
        problems: list[str] = []
        for key in ("startTime", "endTime"):
            raw = config.get(key)
            if raw is not None and parse_time_to_minutes(raw) is None:
                problems.append(f"'{key}' must be a HH:MM time, got {raw!r}.")
        days = config.get("days")
        if days is not None and not isinstance(days, (list, tuple)):
            problems.append("'days' must be a list of day labels or indexes.")
        return problems

    async def run(
        self,
        inputs: dict[str, Any],
        config: Mapping[str, Any],
        context: ExecutionContext,
    ) -> HandlerResult:
        start_minutes = parse_time_to_minutes(config.get("startTime"))
        if start_minutes is None:
            start_minutes = DEFAULT_START_MINUTES
        end_minutes = parse_time_to_minutes(config.get("endTime"))
        if end_minutes is None:
            end_minutes = DEFAULT_END_MINUTES
        allowed_days = resolve_allowed_days(config.get("days", list(DAY_LABELS)))

        now = context.clock()
        allowed = is_within_window(now, allowed_days, start_minutes, end_minutes)
        upcoming = now if allowed else next_allowed_at(now, allowed_days, start_minutes)
        return HandlerResult(
            outputs={
                "out": allowed,
                "allowed": allowed,
                "now": now.isoformat(),
                "nextAllowedAt": upcoming.isoformat() if upcoming is not None else None,
            }
        )


def parse_time_to_minutes(value: object) -> int | None:
    if not isinstance(value, str):
        return None
    match = TIME_RE.match(value.strip())
    if match is None:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def resolve_allowed_days(value: object) -> list[int]:
    if not isinstance(value, (list, tuple)):
        return list(range(7))

    allowed: set[int] = set()
    for entry in value:
        if isinstance(entry, int) and not isinstance(entry, bool) and 0 <= entry <= 6:
            allowed.add(entry)
        elif isinstance(entry, str):
            label = entry.strip()[:3].lower()
            for index, day in enumerate(DAY_LABELS):
                if day.lower() == label:
                    allowed.add(index)
    return sorted(allowed)


def _weekday_index(moment: datetime) -> int:
    # datetime.weekday() is Monday=0; the window uses Sunday=0.
    return (moment.weekday() + 1) % 7


def is_within_window(now: datetime, allowed_days: list[int], start_minutes: int, end_minutes: int) -> bool:
    today = _weekday_index(now)
    now_minutes = now.hour * 60 + now.minute
    if start_minutes <= end_minutes:
        return today in allowed_days and start_minutes <= now_minutes <= end_minutes
    if now_minutes >= start_minutes:
        return today in allowed_days
    # After midnight the window still belongs to the session that opened the day before.
    return now_minutes <= end_minutes and (today - 1) % 7 in allowed_days


def next_allowed_at(now: datetime, allowed_days: list[int], start_minutes: int) -> datetime | None:
    if not allowed_days:
        return None
    now_minutes = now.hour * 60 + now.minute
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    for offset in range(8):
        candidate_day = (_weekday_index(now) + offset) % 7
        if candidate_day not in allowed_days:
            continue
        if offset == 0 and start_minutes <= now_minutes:
            continue
        return midnight + timedelta(days=offset, minutes=start_minutes)
    return None
