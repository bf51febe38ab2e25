from __future__ import annotations

import asyncio
import copy
import unittest
from datetime import datetime, timezone

from kraken_dad.graph import (
    ExecutionContext,
    StrategyExecutionError,
    StrategyExecutor,
    StrategyHookRegistry,
    execute_strategy,
)
from kraken_dad.market import StaticMarketData


FIXED_NOW = datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


def node(node_id: str, node_type: str, **config) -> dict:
    return {"id": node_id, "type": node_type, "config": config}


def control(edge_id: str, source: str, target: str, source_port: str = "out", target_port: str = "in") -> dict:
    return {
        "id": edge_id,
        "kind": "control",
        "source": source,
        "sourcePort": source_port,
        "target": target,
        "targetPort": target_port,
    }


def data(edge_id: str, source: str, source_port: str, target: str, target_port: str) -> dict:
    return {
        "id": edge_id,
        "kind": "data",
        "source": source,
        "sourcePort": source_port,
        "target": target,
        "targetPort": target_port,
    }


def breakout_strategy() -> dict:
    """start -> ticker -> price-check -(true)-> order-template, plus an audit sibling and a false branch."""
    return {
        "version": 1,
        "metadata": {"name": "breakout", "createdAt": "2025-01-01T00:00:00Z", "updatedAt": "2025-01-01T00:00:00Z"},
        "nodes": [
            node("start", "control.start"),
            node("ticker", "data.kraken.ticker", pair="BTC/USD"),
            node("price-check", "logic.if", comparator=">", threshold=90000),
            node("order-template", "action.placeOrder", pair="BTC/USD", side="buy", type="market", amount=0.01),
            node("below-log", "action.logIntent", action="HOLD"),
            node("audit", "action.logIntent"),
        ],
        "edges": [
            control("c1", "start", "ticker"),
            control("c2", "ticker", "price-check"),
            data("d1", "ticker", "price", "price-check", "condition"),
            control("c3", "price-check", "order-template", "true", "trigger"),
            control("c4", "price-check", "below-log", "false", "trigger"),
            control("c5", "start", "audit", "out", "trigger"),
        ],
    }


def context(**overrides) -> ExecutionContext:
    values = {"mode": "dry-run", "market_data": StaticMarketData(), "clock": fixed_clock}
    values.update(overrides)
    return ExecutionContext(**values)


class RecordingActions:
    def __init__(self, *, fail_validation: bool = False, fail_live: bool = False) -> None:
        self.calls: list[tuple[str, object]] = []
        self._fail_validation = fail_validation
        self._fail_live = fail_live

    async def validate_order(self, params):
        self.calls.append(("validate_order", params))
        if self._fail_validation:
            raise RuntimeError("EOrder:Insufficient funds")
        return {"descr": {"order": f"{params['type']} {params['volume']} {params['pair']} @ market"}}

    async def validate_cancel(self, txid):
        self.calls.append(("validate_cancel", txid))
        return {"count": 0}

    async def place_order(self, params):
        self.calls.append(("place_order", params))
        if self._fail_live:
            raise RuntimeError("EGeneral:Permission denied")
        return {"txid": ["OABCDE-12345-FGHIJK"], "descr": {"order": "buy 0.01 XBTUSD @ market"}}

    async def cancel_order(self, txid):
        self.calls.append(("cancel_order", txid))
        return {"count": 1}

    def mutating_calls(self) -> list[tuple[str, object]]:
        return [call for call in self.calls if call[0] in {"place_order", "cancel_order"}]


class FailingTickerMarketData(StaticMarketData):
    async def get_ticker(self, pair: str):
        raise RuntimeError("ticker down")


def run(strategy: dict, ctx: ExecutionContext, executor: StrategyExecutor | None = None):
    return asyncio.run((executor or StrategyExecutor()).arun(strategy, ctx))


class BranchingExecutionTests(unittest.TestCase):
    def test_true_branch_runs_and_false_branch_is_skipped(self) -> None:
        result = run(breakout_strategy(), context())

        self.assertTrue(result.success)
        self.assertEqual(
            result.visited(),
            ["start", "audit", "ticker", "price-check", "order-template", "below-log"],
        )
        self.assertEqual(result.entry("price-check").inputs, {"condition": 90135.6, "threshold": 90000})
        self.assertEqual(result.entry("price-check").outputs, {"true": True, "false": False})
        self.assertEqual(result.entry("order-template").status, "executed")
        self.assertEqual(result.entry("below-log").status, "skipped")
        self.assertEqual(result.nodes_executed, 5)
        self.assertEqual(result.errors, [])

    def test_below_threshold_takes_false_branch(self) -> None:
        ctx = context(market_data=StaticMarketData({"BTC/USD": 85000.0}))
        result = run(breakout_strategy(), ctx)

        self.assertTrue(result.success)
        self.assertEqual(result.entry("order-template").status, "skipped")
        self.assertEqual(result.entry("below-log").status, "executed")
        intents = {intent.node_id: intent for intent in result.action_intents}
        self.assertEqual(intents["below-log"].action, "HOLD")

    def test_report_shape(self) -> None:
        payload = run(breakout_strategy(), context()).to_dict()

        self.assertEqual(
            set(payload),
            {"success", "mode", "startedAt", "completedAt", "nodesExecuted", "log", "errors", "warnings", "actionIntents"},
        )
        self.assertEqual(payload["startedAt"], FIXED_NOW.isoformat())
        self.assertEqual(
            set(payload["log"][0]),
            {"nodeId", "nodeType", "inputs", "outputs", "durationMs", "status"},
        )
        order_intent = next(item for item in payload["actionIntents"] if item["nodeId"] == "order-template")
        self.assertEqual(order_intent["type"], "action.placeOrder")
        self.assertEqual(
            order_intent["intent"],
            {
                "action": "PLACE_ORDER",
                "params": {"pair": "BTC/USD", "side": "buy", "type": "market", "amount": 0.01},
            },
        )
        self.assertFalse(order_intent["executed"])

    def test_repeated_runs_are_identical(self) -> None:
        first = run(breakout_strategy(), context())
        second = run(breakout_strategy(), context())

        self.assertEqual(first.visited(), second.visited())
        self.assertEqual([item.to_dict() for item in first.errors], [item.to_dict() for item in second.errors])
        self.assertEqual([item.to_dict() for item in first.warnings], [item.to_dict() for item in second.warnings])
        self.assertEqual(
            [item.to_dict() for item in first.action_intents],
            [item.to_dict() for item in second.action_intents],
        )

    def test_guard_blocks_when_spread_is_too_wide(self) -> None:
        payload = breakout_strategy()
        payload["nodes"].append(node("guard", "risk.guard", maxSpread=5, spreadOverride=10))
        payload["edges"][3] = control("c3", "price-check", "guard", "true", "in")
        payload["edges"].append(control("c6", "guard", "order-template", "out", "trigger"))

        result = run(payload, context())

        self.assertTrue(result.success)
        self.assertEqual(result.entry("guard").outputs, {"out": False, "allowed": False, "spread": 10.0})
        self.assertEqual(result.entry("order-template").status, "skipped")

    def test_moving_average_over_constant_series(self) -> None:
        payload = {
            "version": 1,
            "nodes": [
                node("start", "control.start"),
                node("series", "data.constant", value=[1, 2, 3, 4, 5]),
                node("sma", "logic.movingAverage", method="SMA", period=3),
                node("ema", "logic.movingAverage", method="EMA", period=3),
            ],
            "edges": [
                control("c1", "start", "series"),
                control("c2", "series", "sma"),
                control("c3", "series", "ema"),
                data("d1", "series", "value", "sma", "series"),
                data("d2", "series", "value", "ema", "series"),
            ],
        }
        result = run(payload, context())

        self.assertTrue(result.success)
        self.assertAlmostEqual(result.entry("sma").outputs["value"], 4.0)
        self.assertAlmostEqual(result.entry("ema").outputs["value"], 4.0625)


class PartialExecutionTests(unittest.TestCase):
    def test_target_runs_only_the_ancestor_chain(self) -> None:
        result = run(breakout_strategy(), context(target_node_id="order-template"))

        self.assertTrue(result.success)
        self.assertEqual(result.visited(), ["start", "ticker", "price-check", "order-template"])
        self.assertIsNone(result.entry("audit"))

    def test_unknown_target_is_a_structural_error(self) -> None:
        result = run(breakout_strategy(), context(target_node_id="missing"))

        self.assertFalse(result.success)
        self.assertEqual(result.nodes_executed, 0)
        self.assertEqual(result.errors[0].code, "TARGET_NODE_NOT_FOUND")
        self.assertEqual(result.log, [])


class StructuralFailureTests(unittest.TestCase):
    def test_missing_required_input_stops_the_run(self) -> None:
        payload = breakout_strategy()
        payload["edges"] = [edge for edge in payload["edges"] if edge["id"] != "d1"]

        result = run(payload, context())

        self.assertFalse(result.success)
        self.assertEqual(result.nodes_executed, 0)
        self.assertEqual(result.log, [])
        self.assertIn("MISSING_REQUIRED_INPUT", {item.code for item in result.errors})
        self.assertEqual(result.primary_error, result.errors[0].message)

    def test_control_cycle_never_executes(self) -> None:
        payload = breakout_strategy()
        payload["edges"].append(control("loop", "price-check", "ticker", "true", "in"))

        result = run(payload, context())

        self.assertFalse(result.success)
        self.assertEqual(result.nodes_executed, 0)
        self.assertEqual([item.code for item in result.errors], ["CYCLE_DETECTED"])

    def test_unsupported_mode_raises(self) -> None:
        with self.assertRaises(StrategyExecutionError):
            run(breakout_strategy(), context(mode="paper"))


class RuntimeFailureTests(unittest.TestCase):
    def _direct_condition_strategy(self) -> dict:
        # price-check is triggered by start directly, so only its data input depends on ticker.
        payload = breakout_strategy()
        payload["edges"][1] = control("c2", "start", "price-check")
        return payload

    def test_handler_exception_is_local_to_the_node(self) -> None:
        result = run(breakout_strategy(), context(market_data=FailingTickerMarketData()))

        self.assertFalse(result.success)
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(result.errors[0].code, "NODE_EXECUTION_ERROR")
        self.assertEqual(result.errors[0].message, "Error executing node 'ticker': ticker down")
        self.assertEqual(result.entry("ticker").status, "error")
        self.assertEqual(result.entry("audit").status, "executed")
        for node_id in ("price-check", "order-template", "below-log"):
            self.assertEqual(result.entry(node_id).status, "skipped")

    def test_dependent_of_failed_node_is_skipped_not_errored(self) -> None:
        result = run(self._direct_condition_strategy(), context(market_data=FailingTickerMarketData()))

        self.assertEqual(result.visited()[:3], ["start", "audit", "ticker"])
        self.assertEqual(result.entry("price-check").status, "skipped")
        self.assertEqual([item.code for item in result.errors], ["NODE_EXECUTION_ERROR"])
        skipped = [item for item in result.warnings if item.code == "UPSTREAM_UNAVAILABLE"]
        self.assertEqual([item.node_id for item in skipped], ["price-check"])

    def test_disabled_source_skips_dependents_without_errors(self) -> None:
        payload = self._direct_condition_strategy()
        payload["nodes"][1]["config"]["disabled"] = True

        result = run(payload, context())

        self.assertTrue(result.success)
        self.assertEqual(result.entry("ticker").status, "skipped")
        self.assertEqual(result.entry("price-check").status, "skipped")
        self.assertIn("DISABLED_INPUT", {item.code for item in result.warnings})

    def test_wrong_value_type_warns_then_fails(self) -> None:
        payload = {
            "version": 1,
            "nodes": [
                node("start", "control.start"),
                node("label", "data.constant", value="abc"),
                node("check", "logic.if", threshold=1),
            ],
            "edges": [
                control("c1", "start", "label"),
                control("c2", "label", "check"),
                data("d1", "label", "value", "check", "condition"),
            ],
        }
        result = run(payload, context())

        self.assertIn("TYPE_MISMATCH", {item.code for item in result.warnings})
        self.assertEqual(result.entry("check").status, "error")
        self.assertIn("requires a numeric input value", result.errors[0].message)

    def test_stale_snapshot_adds_warning(self) -> None:
        class StaleTicker(StaticMarketData):
            async def get_ticker(self, pair: str):
                snapshot = await super().get_ticker(pair)
                snapshot.stale = True
                return snapshot

        result = run(breakout_strategy(), context(market_data=StaleTicker()))

        self.assertTrue(result.success)
        self.assertEqual(
            [(item.code, item.node_id) for item in result.warnings],
            [("MARKET_DATA_FALLBACK", "ticker")],
        )


class DryRunTests(unittest.TestCase):
    def test_dry_run_never_calls_mutating_actions(self) -> None:
        actions = RecordingActions()
        result = run(breakout_strategy(), context(actions=actions, validate=True))

        self.assertTrue(result.success)
        self.assertEqual(actions.mutating_calls(), [])
        self.assertTrue(all(not intent.executed for intent in result.action_intents))
        self.assertEqual(
            actions.calls,
            [("validate_order", {"pair": "XBTUSD", "type": "buy", "ordertype": "market", "volume": "0.01"})],
        )
        self.assertEqual(len(result.kraken_validations), 1)
        self.assertEqual(result.kraken_validations[0].status, "ok")
        self.assertEqual(result.kraken_validations[0].detail, "Kraken validate=true accepted")
        self.assertIsNone(result.live_actions)

    def test_without_validate_the_adapter_is_untouched(self) -> None:
        actions = RecordingActions()
        result = run(breakout_strategy(), context(actions=actions))

        self.assertEqual(actions.calls, [])
        self.assertNotIn("krakenValidations", result.to_dict())

    def test_validate_without_adapter_warns_once(self) -> None:
        result = run(breakout_strategy(), context(validate=True))

        self.assertTrue(result.success)
        self.assertEqual([item.code for item in result.warnings], ["VALIDATE_SKIPPED"])
        self.assertEqual(result.to_dict()["krakenValidations"], [])

    def test_failed_validation_is_a_warning_by_default(self) -> None:
        result = run(breakout_strategy(), context(actions=RecordingActions(fail_validation=True), validate=True))

        self.assertTrue(result.success)
        self.assertEqual(result.entry("order-template").status, "executed")
        self.assertEqual([item.code for item in result.warnings], ["ORDER_VALIDATION_FAILED"])
        self.assertEqual(result.kraken_validations[0].status, "error")
        self.assertIn("EOrder:Insufficient funds", result.kraken_validations[0].detail)

    def test_strict_validation_turns_failure_into_error(self) -> None:
        ctx = context(actions=RecordingActions(fail_validation=True), validate=True, strict_validation=True)
        result = run(breakout_strategy(), ctx)

        self.assertFalse(result.success)
        self.assertEqual(result.entry("order-template").status, "error")
        self.assertEqual([item.code for item in result.errors], ["ORDER_VALIDATION_FAILED"])

    def test_limit_order_without_price_fails_validation_locally(self) -> None:
        payload = breakout_strategy()
        payload["nodes"][3]["config"]["type"] = "limit"
        actions = RecordingActions()

        result = run(payload, context(actions=actions, validate=True))

        self.assertEqual(actions.calls, [])
        self.assertEqual([item.code for item in result.warnings], ["ORDER_PRICE_REQUIRED"])
        self.assertEqual(result.kraken_validations[0].detail, "Limit orders require a price.")


class LiveModeTests(unittest.TestCase):
    def test_live_order_is_placed_and_recorded(self) -> None:
        actions = RecordingActions()
        result = run(breakout_strategy(), context(mode="live", actions=actions))

        self.assertTrue(result.success)
        self.assertEqual([call[0] for call in actions.calls], ["place_order"])
        order_intent = next(item for item in result.action_intents if item.node_id == "order-template")
        self.assertTrue(order_intent.executed)
        audit_intent = next(item for item in result.action_intents if item.node_id == "audit")
        self.assertFalse(audit_intent.executed)
        self.assertEqual(result.entry("order-template").outputs["orderId"], "OABCDE-12345-FGHIJK")
        self.assertEqual(result.live_actions[0].status, "ok")
        self.assertEqual(result.live_actions[0].detail, "Kraken order placed")
        self.assertIsNone(result.kraken_validations)

    def test_live_failure_is_a_node_error(self) -> None:
        result = run(breakout_strategy(), context(mode="live", actions=RecordingActions(fail_live=True)))

        self.assertFalse(result.success)
        self.assertEqual([item.code for item in result.errors], ["LIVE_ORDER_FAILED"])
        self.assertEqual(result.live_actions[0].status, "error")
        self.assertFalse(any(intent.executed for intent in result.action_intents))

    def test_live_without_adapter_fails_the_action_node(self) -> None:
        result = run(breakout_strategy(), context(mode="live"))

        self.assertEqual([item.code for item in result.errors], ["LIVE_ADAPTER_MISSING"])
        self.assertEqual(result.entry("order-template").status, "error")
        self.assertEqual(result.to_dict()["liveActions"], [])
        order_intent = next(item for item in result.action_intents if item.node_id == "order-template")
        self.assertEqual(order_intent.action, "PLACE_ORDER")
        self.assertFalse(order_intent.executed)

    def test_live_limit_order_without_price_keeps_its_intent(self) -> None:
        payload = breakout_strategy()
        payload["nodes"][3]["config"]["type"] = "limit"
        actions = RecordingActions()

        result = run(payload, context(mode="live", actions=actions))

        self.assertEqual(actions.calls, [])
        self.assertEqual([item.code for item in result.errors], ["LIVE_ORDER_INVALID"])
        self.assertEqual(result.errors[0].message, "Limit orders require a price.")
        order_intent = next(item for item in result.action_intents if item.node_id == "order-template")
        self.assertFalse(order_intent.executed)


def cancel_strategy(**config) -> dict:
    return {
        "version": 1,
        "metadata": {"name": "cancel"},
        "nodes": [node("start", "control.start"), node("cancel", "action.cancelOrder", **config)],
        "edges": [control("c1", "start", "cancel", "out", "trigger")],
    }


class CancelOrderTests(unittest.TestCase):
    def test_dry_run_records_intent_only(self) -> None:
        actions = RecordingActions()
        result = run(cancel_strategy(orderId="OABC"), context(actions=actions))

        self.assertTrue(result.success)
        self.assertEqual(actions.mutating_calls(), [])
        self.assertEqual(actions.calls, [])
        intent = result.action_intents[0]
        self.assertEqual((intent.action, intent.params, intent.executed), ("CANCEL_ORDER", {"orderId": "OABC"}, False))

    def test_dry_run_validation_uses_validate_cancel(self) -> None:
        actions = RecordingActions()
        result = run(cancel_strategy(orderId="OABC"), context(actions=actions, validate=True))

        self.assertTrue(result.success)
        self.assertEqual(actions.mutating_calls(), [])
        self.assertEqual(actions.calls, [("validate_cancel", "OABC")])
        self.assertEqual(result.kraken_validations[0].action, "CANCEL_ORDER")
        self.assertEqual(result.kraken_validations[0].status, "ok")
        self.assertFalse(result.action_intents[0].executed)

    def test_dry_run_validation_without_order_id_fails_locally(self) -> None:
        actions = RecordingActions()
        result = run(cancel_strategy(), context(actions=actions, validate=True))

        self.assertTrue(result.success)
        self.assertEqual(actions.calls, [])
        self.assertEqual([item.code for item in result.warnings], ["ORDER_ID_REQUIRED"])
        self.assertEqual(result.kraken_validations[0].status, "error")

    def test_live_cancel_is_sent_and_recorded(self) -> None:
        actions = RecordingActions()
        result = run(cancel_strategy(orderId="OABC"), context(mode="live", actions=actions))

        self.assertTrue(result.success)
        self.assertEqual(actions.mutating_calls(), [("cancel_order", "OABC")])
        self.assertTrue(result.action_intents[0].executed)
        self.assertEqual(len(result.live_actions), 1)
        self.assertEqual(result.live_actions[0].action, "CANCEL_ORDER")
        self.assertEqual(result.live_actions[0].detail, "Kraken order cancelled")
        self.assertEqual(result.live_actions[0].response, {"count": 1})

    def test_live_cancel_without_order_id_is_invalid(self) -> None:
        actions = RecordingActions()
        result = run(cancel_strategy(), context(mode="live", actions=actions))

        self.assertFalse(result.success)
        self.assertEqual(actions.calls, [])
        self.assertEqual([item.code for item in result.errors], ["LIVE_ORDER_INVALID"])
        self.assertEqual(result.entry("cancel").status, "error")
        self.assertEqual(result.action_intents[0].params, {"orderId": "unknown"})
        self.assertFalse(result.action_intents[0].executed)
        self.assertEqual(result.live_actions, [])


def chain_strategy(length: int) -> dict:
    """start -> n00000 -> ... -> n<length-1>, all constants on one control path."""
    ids = [f"n{position:05d}" for position in range(length)]
    nodes = [node("start", "control.start")] + [node(node_id, "data.constant", value=1) for node_id in ids]
    edges = [control(f"c-{target}", source, target) for source, target in zip(["start"] + ids, ids)]
    return {"version": 1, "metadata": {"name": "chain"}, "nodes": nodes, "edges": edges}


class LongChainTests(unittest.TestCase):
    CHAIN_LENGTH = 2000

    def test_long_control_chain_runs_to_the_end(self) -> None:
        result = run(chain_strategy(self.CHAIN_LENGTH), context())

        self.assertTrue(result.success)
        self.assertEqual(result.nodes_executed, self.CHAIN_LENGTH + 1)
        self.assertEqual(result.visited()[-1], f"n{self.CHAIN_LENGTH - 1:05d}")

    def test_cycle_at_the_end_of_a_long_chain_is_reported(self) -> None:
        payload = chain_strategy(self.CHAIN_LENGTH)
        payload["edges"].append(control("c-loop", f"n{self.CHAIN_LENGTH - 1:05d}", "n00000"))

        result = run(payload, context())

        self.assertFalse(result.success)
        self.assertEqual([item.code for item in result.errors], ["CYCLE_DETECTED"])
        self.assertEqual(result.nodes_executed, 0)
        self.assertEqual(result.log, [])

    def test_data_wait_on_the_far_end_of_a_long_chain(self) -> None:
        payload = chain_strategy(self.CHAIN_LENGTH)
        last = f"n{self.CHAIN_LENGTH - 1:05d}"
        payload["nodes"].append(node("a-compare", "logic.equals", b=1))
        payload["edges"].append(control("c-compare", "start", "a-compare"))
        payload["edges"].append(data("d-compare", last, "value", "a-compare", "a"))

        result = run(payload, context())

        self.assertTrue(result.success)
        self.assertEqual(result.visited()[-2:], [last, "a-compare"])
        self.assertEqual(result.entry("a-compare").outputs, {"out": True, "result": True})


class ExecutorHookTests(unittest.TestCase):
    def test_hooks_see_the_run_and_cannot_break_it(self) -> None:
        hooks = StrategyHookRegistry()
        events: list[tuple[str, object]] = []

        async def _before_run(payload):
            events.append(("before_run", payload["mode"]))

        def _after_node(payload):
            events.append(("after_node", payload["node_id"]))

        def _broken(payload):
            raise RuntimeError("hook failure")

        hooks.register("before_run", _before_run)
        hooks.register("after_node", _after_node)
        hooks.register("before_node", _broken)

        executor = StrategyExecutor(hook_registry=hooks)
        result = run(breakout_strategy(), context(target_node_id="ticker"), executor)

        self.assertTrue(result.success)
        self.assertEqual(events, [("before_run", "dry-run"), ("after_node", "start"), ("after_node", "ticker")])

    def test_emit_awaits_async_callbacks_in_order(self) -> None:
        hooks = StrategyHookRegistry()

        def _sync_hook(payload):
            return payload["node_id"]

        async def _async_hook(payload):
            return payload["node_id"].upper()

        hooks.register("after_node", _sync_hook)
        hooks.register("after_node", _async_hook)
        invocations = asyncio.run(hooks.emit("after_node", {"node_id": "ticker"}))

        self.assertEqual(
            [(item.callback_name, item.result) for item in invocations],
            [("_sync_hook", "ticker"), ("_async_hook", "TICKER")],
        )
        self.assertEqual(asyncio.run(hooks.emit("on_error", {})), [])

    def test_unknown_hook_event_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            StrategyHookRegistry().register("before_everything", lambda payload: None)


class SyncRunTests(unittest.TestCase):
    def test_run_wraps_arun(self) -> None:
        result = StrategyExecutor().run(copy.deepcopy(breakout_strategy()), context())
        self.assertTrue(result.success)

    def test_run_inside_event_loop_is_refused(self) -> None:
        executor = StrategyExecutor()

        async def _call_sync():
            executor.run(breakout_strategy(), context())

        with self.assertRaises(StrategyExecutionError):
            asyncio.run(_call_sync())

    def test_module_helper_matches_executor(self) -> None:
        helper = asyncio.run(execute_strategy(breakout_strategy(), context()))
        direct = run(breakout_strategy(), context())
        self.assertEqual(helper.visited(), direct.visited())
        self.assertEqual(
            [item.to_dict() for item in helper.action_intents],
            [item.to_dict() for item in direct.action_intents],
        )


if __name__ == "__main__":
    unittest.main()
