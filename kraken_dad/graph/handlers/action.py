from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any, Awaitable, Callable

from kraken_dad.graph.context import ExecutionContext
from kraken_dad.graph.contracts import coerce_number
from kraken_dad.graph.handlers.base import (
    ActionOutcome,
    BlockDefinition,
    HandlerResult,
    IntentPayload,
    NodeHandler,
    NodeIssue,
    NodeType,
    control_port,
    data_port,
)
from kraken_dad.market.pairs import normalize_pair


DEFAULT_ORDER_PAIR = "XBT/USD"
DEFAULT_ORDER_AMOUNT = 0.1
ORDER_SIDES = ("buy", "sell")
ORDER_TYPES = ("market", "limit")
UNKNOWN_ORDER_ID = "unknown"


def build_order_params(inputs: Mapping[str, Any]) -> dict[str, Any]:
    """Order intent parameters; a known price turns the order into a limit order."""
    pair = inputs.get("pair")
    if not isinstance(pair, str) or not pair.strip():
        pair = DEFAULT_ORDER_PAIR
    side = str(inputs.get("side") or "buy").lower()
    order_type = "limit" if inputs.get("type") == "limit" else "market"
    amount = coerce_number(inputs.get("amount"))
    price = coerce_number(inputs.get("price"))
    if price is not None:
        order_type = "limit"

    params: dict[str, Any] = {
        "pair": pair,
        "side": side,
        "type": order_type,
        "amount": amount if amount is not None else DEFAULT_ORDER_AMOUNT,
    }
    if price is not None:
        params["price"] = price
    return params


def resolve_order_params(params: Mapping[str, Any]) -> dict[str, str]:
    """Translate intent parameters into Kraken AddOrder fields."""
    order = {
        "pair": normalize_pair(str(params["pair"])).kraken_pair,
        "type": str(params["side"]),
        "ordertype": str(params["type"]),
        "volume": format_decimal(float(params["amount"])),
    }
    if params.get("price") is not None:
        order["price"] = format_decimal(float(params["price"]))
    return order


def format_decimal(value: float) -> str:
    text = f"{value:.8f}".rstrip("0").rstrip(".")
    return text or "0"


def dry_run_order_id(params: Mapping[str, Any]) -> str:
    digest = hashlib.sha1(json.dumps(params, sort_keys=True, default=str).encode("utf-8")).hexdigest()
    return f"dry-run-{digest[:12]}"


def _missing_price(params: Mapping[str, Any]) -> bool:
    return params.get("type") == "limit" and params.get("price") is None


async def _attach_validation(
    result: HandlerResult,
    context: ExecutionContext,
    call: Callable[[], Awaitable[dict[str, Any]]] | None = None,
    *,
    precheck: NodeIssue | None = None,
) -> HandlerResult:
    """Record a read-only exchange validation on a dry-run result.

    A ``precheck`` issue fails the validation locally without calling the exchange.
    """
    intent = result.action_intent
    action = intent.action if intent is not None else "UNKNOWN"

    issue = precheck
    if issue is None and call is not None:
        try:
            response = await call()
        except Exception as exc:  # noqa: BLE001
            issue = NodeIssue(code="ORDER_VALIDATION_FAILED", message=f"Kraken validation failed: {exc}")
        else:
            result.action_outcome = ActionOutcome(
                kind="validation",
                action=action,
                status="ok",
                detail="Kraken validate=true accepted",
                response=response,
            )
            return result
    if issue is None:
        return result

    result.action_outcome = ActionOutcome(kind="validation", action=action, status="error", detail=issue.message)
    if context.strict_validation:
        result.status = "error"
        result.error = issue
    else:
        result.warnings.append(issue)
    return result


async def _run_live(
    intent: IntentPayload,
    call: Callable[[], Awaitable[dict[str, Any]]],
    *,
    success_detail: str,
    failure_prefix: str,
) -> tuple[HandlerResult, dict[str, Any] | None]:
    try:
        response = await call()
    except Exception as exc:  # noqa: BLE001
        detail = f"{failure_prefix}: {exc}"
        return (
            HandlerResult(
                status="error",
                action_intent=intent,
                action_outcome=ActionOutcome(kind="live", action=intent.action, status="error", detail=detail),
                error=NodeIssue(code="LIVE_ORDER_FAILED", message=detail),
            ),
            None,
        )
    outcome = ActionOutcome(kind="live", action=intent.action, status="ok", detail=success_detail, response=response)
    return HandlerResult(action_intent=intent, action_outcome=outcome), response


def _live_precheck(intent: IntentPayload, context: ExecutionContext, problem: str | None) -> HandlerResult | None:
    """Failed result for a live action that cannot be sent; the intent stays in the audit trail."""
    if context.actions is None:
        issue = NodeIssue(code="LIVE_ADAPTER_MISSING", message="Live mode requires an exchange action adapter.")
    elif problem is not None:
        issue = NodeIssue(code="LIVE_ORDER_INVALID", message=problem)
    else:
        return None
    return HandlerResult(status="error", action_intent=intent, error=issue)


class PlaceOrderHandler(NodeHandler):
    definition = BlockDefinition(
        type=NodeType.ACTION_PLACE_ORDER.value,
        category="action",
        name="Place Order",
        description="Places a trading order (dry-run mode records the intent only)",
        inputs=(
            control_port("trigger", "Trigger"),
            data_port("pair", "string", label="Pair"),
            data_port("side", "string", label="Side"),
            data_port("type", "string", label="Order Type"),
            data_port("amount", "number", label="Amount"),
            data_port("price", "number", label="Price"),
        ),
        outputs=(control_port("out"), data_port("orderId", "string", required=True)),
    )

    def validate_config(self, config: Mapping[str, Any]) -> list[str]:
        problems: list[str] = []
        side = config.get("side")
        if side is not None and str(side).lower() not in ORDER_SIDES:
            problems.append(f"Unsupported order side '{side}'. Use buy or sell.")
        order_type = config.get("type")
        if order_type is not None and order_type not in ORDER_TYPES:
            problems.append(f"Unsupported order type '{order_type}'. Use market or limit.")
        amount = config.get("amount")
        if amount is not None:
            number = coerce_number(amount)
            if number is None or number <= 0:
                problems.append(f"Order amount must be a positive number, got {amount!r}.")
        return problems

    async def run(
        self,
        inputs: dict[str, Any],
        config: Mapping[str, Any],
        context: ExecutionContext,
    ) -> HandlerResult:
        params = build_order_params(inputs)
        intent = IntentPayload(action="PLACE_ORDER", params=params)

        if context.is_live:
            problem = "Limit orders require a price." if _missing_price(params) else None
            rejected = _live_precheck(intent, context, problem)
            if rejected is not None:
                return rejected
            actions = context.actions
            order = resolve_order_params(params)
            result, response = await _run_live(
                intent,
                lambda: actions.place_order(order),
                success_detail="Kraken order placed",
                failure_prefix="Kraken live order failed",
            )
            if response is not None:
                result.outputs = {"out": True, "orderId": _first_txid(response)}
            return result

        result = HandlerResult(
            outputs={"out": True, "orderId": dry_run_order_id(params)},
            action_intent=intent,
        )
        if not context.validate or context.actions is None:
            return result

        if _missing_price(params):
            return await _attach_validation(
                result,
                context,
                precheck=NodeIssue(code="ORDER_PRICE_REQUIRED", message="Limit orders require a price."),
            )
        actions = context.actions
        order = resolve_order_params(params)
        return await _attach_validation(result, context, lambda: actions.validate_order(order))


class CancelOrderHandler(NodeHandler):
    definition = BlockDefinition(
        type=NodeType.ACTION_CANCEL_ORDER.value,
        category="action",
        name="Cancel Order",
        description="Cancels a trading order (dry-run mode records the intent only)",
        inputs=(
            control_port("trigger", "Trigger"),
            data_port("orderId", "string", label="Order ID"),
        ),
        outputs=(control_port("out"),),
    )

    async def run(
        self,
        inputs: dict[str, Any],
        config: Mapping[str, Any],
        context: ExecutionContext,
    ) -> HandlerResult:
        order_id = str(inputs.get("orderId") or UNKNOWN_ORDER_ID)
        intent = IntentPayload(action="CANCEL_ORDER", params={"orderId": order_id})

        if context.is_live:
            problem = "Cancel requires an order id." if order_id == UNKNOWN_ORDER_ID else None
            rejected = _live_precheck(intent, context, problem)
            if rejected is not None:
                return rejected
            actions = context.actions
            result, response = await _run_live(
                intent,
                lambda: actions.cancel_order(order_id),
                success_detail="Kraken order cancelled",
                failure_prefix="Kraken live cancel failed",
            )
            if response is not None:
                result.outputs = {"out": True}
            return result

        result = HandlerResult(outputs={"out": True}, action_intent=intent)
        if not context.validate or context.actions is None:
            return result

        if order_id == UNKNOWN_ORDER_ID:
            return await _attach_validation(
                result,
                context,
                precheck=NodeIssue(code="ORDER_ID_REQUIRED", message="Cancel requires an order id."),
            )
        actions = context.actions
        return await _attach_validation(result, context, lambda: actions.validate_cancel(order_id))


class LogIntentHandler(NodeHandler):
    definition = BlockDefinition(
        type=NodeType.ACTION_LOG_INTENT.value,
        category="action",
        name="Log Intent",
        description="Records an action intent for audit without side effects",
        inputs=(
            control_port("trigger", "Trigger"),
            data_port("price", "number", label="Price"),
            data_port("value", "any", label="Value"),
        ),
        outputs=(),
    )

    async def run(
        self,
        inputs: dict[str, Any],
        config: Mapping[str, Any],
        context: ExecutionContext,
    ) -> HandlerResult:
        params = {key: value for key, value in config.items() if key not in {"action", "disabled"}}
        params.update({key: value for key, value in inputs.items() if value is not None})
        action = str(config.get("action") or "LOG")
        return HandlerResult(action_intent=IntentPayload(action=action, params=params))


def _first_txid(response: Mapping[str, Any]) -> str | None:
    txid = response.get("txid")
    if isinstance(txid, list) and txid:
        return str(txid[0])
    if isinstance(txid, str):
        return txid
    return None
