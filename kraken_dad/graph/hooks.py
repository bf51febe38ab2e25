from __future__ import annotations

import inspect
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable


HookCallback = Callable[[dict[str, Any]], object | Awaitable[object]]

HOOK_EVENTS = (
    "before_run",
    "after_run",
    "before_node",
    "after_node",
    "on_error",
)


@dataclass(slots=True)
class HookInvocation:
    event: str
    callback_name: str
    result: object | None


class StrategyHookRegistry:
    """Lifecycle hook registry for strategy runs."""

    def __init__(self) -> None:
        self._callbacks: dict[str, list[HookCallback]] = defaultdict(list)

    def register(self, event: str, callback: HookCallback) -> None:
        if event not in HOOK_EVENTS:
            raise ValueError(f"Unknown hook event '{event}'. Use one of: {', '.join(HOOK_EVENTS)}.")
        self._callbacks[event].append(callback)

    async def emit(self, event: str, context: dict[str, Any]) -> list[HookInvocation]:
        invocations: list[HookInvocation] = []
        for callback in self._callbacks.get(event, []):
            callback_name = getattr(callback, "__name__", callback.__class__.__name__)
            result = callback(context)
            if inspect.isawaitable(result):
                result = await result
            invocations.append(
                HookInvocation(
                    event=event,
                    callback_name=str(callback_name),
                    result=result,
                )
            )
        return invocations
