from __future__ import annotations

import unittest

from kraken_dad.graph import StrategyParseError, StrategyValidator, parse_strategy, validate_strategy
from kraken_dad.graph.validation import render_diagnostics


def node(node_id: str, node_type: str, **config) -> dict:
    return {"id": node_id, "type": node_type, "config": config, "position": {"x": 0, "y": 0}}


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


def strategy(nodes: list[dict], edges: list[dict], version: int = 1) -> dict:
    return {
        "version": version,
        "metadata": {"name": "test", "createdAt": "2025-01-01T00:00:00Z", "updatedAt": "2025-01-01T00:00:00Z"},
        "nodes": nodes,
        "edges": edges,
    }


def price_check_strategy() -> dict:
    return strategy(
        [
            node("start", "control.start"),
            node("ticker", "data.kraken.ticker", pair="BTC/USD"),
            node("price-check", "logic.if", comparator=">", threshold=90000),
            node("order-template", "action.placeOrder", side="buy", amount=0.01),
        ],
        [
            control("c1", "start", "ticker"),
            control("c2", "ticker", "price-check"),
            data("d1", "ticker", "price", "price-check", "condition"),
            control("c3", "price-check", "order-template", "true", "trigger"),
        ],
    )


class StrategySchemaTests(unittest.TestCase):
    def test_edge_type_field_is_accepted_as_kind(self) -> None:
        payload = strategy(
            [node("start", "control.start"), node("k", "data.constant", value=1)],
            [{"id": "c1", "type": "control", "source": "start", "sourcePort": "out", "target": "k", "targetPort": "in"}],
        )
        parsed = parse_strategy(payload)
        self.assertEqual(parsed.edges[0].kind, "control")
        self.assertEqual(parsed.edges[0].source_port, "out")

    def test_payload_uses_camel_case_aliases(self) -> None:
        parsed = parse_strategy(price_check_strategy())
        payload = parsed.to_payload()
        self.assertEqual(payload["edges"][0]["sourcePort"], "out")
        self.assertIn("createdAt", payload["metadata"])

    def test_malformed_document_raises_parse_error(self) -> None:
        with self.assertRaises(StrategyParseError):
            parse_strategy({"version": 1, "nodes": [{"type": "control.start"}]})
        with self.assertRaises(StrategyParseError):
            parse_strategy("{not json")

    def test_restricted_to_drops_edges_leaving_the_subset(self) -> None:
        parsed = parse_strategy(price_check_strategy())
        subset = parsed.restricted_to({"start", "ticker"})
        self.assertEqual([item.id for item in subset.nodes], ["start", "ticker"])
        self.assertEqual([item.id for item in subset.edges], ["c1"])


class StrategyValidatorTests(unittest.TestCase):
    def test_valid_strategy_has_no_diagnostics(self) -> None:
        result = StrategyValidator().validate(price_check_strategy())
        self.assertTrue(result.ok)
        self.assertEqual(result.diagnostics, [])
        self.assertEqual(result.reachable, {"start", "ticker", "price-check", "order-template"})

    def test_unknown_node_type(self) -> None:
        payload = strategy(
            [node("start", "control.start"), node("mystery", "data.kraken.mystery")],
            [control("c1", "start", "mystery")],
        )
        errors = validate_strategy(payload)
        self.assertEqual([item.code for item in errors], ["UNKNOWN_NODE_TYPE"])
        self.assertEqual(errors[0].node_id, "mystery")

    def test_edge_to_missing_node_is_dangling(self) -> None:
        payload = strategy([node("start", "control.start")], [control("c1", "start", "ghost")])
        errors = validate_strategy(payload)
        self.assertIn("DANGLING_EDGE", {item.code for item in errors})
        self.assertEqual(errors[0].edge_id, "c1")

    def test_edge_to_undeclared_port_is_dangling(self) -> None:
        payload = strategy(
            [node("start", "control.start"), node("k", "data.constant", value=1)],
            [control("c1", "start", "k", target_port="go")],
        )
        errors = validate_strategy(payload)
        self.assertEqual([item.code for item in errors], ["DANGLING_EDGE"])
        self.assertIn("'go'", errors[0].message)

    def test_control_edge_on_data_port_is_kind_mismatch(self) -> None:
        payload = price_check_strategy()
        payload["edges"].append(control("bad", "ticker", "order-template", "price", "trigger"))
        codes = {item.code for item in validate_strategy(payload)}
        self.assertEqual(codes, {"PORT_KIND_MISMATCH"})

    def test_two_writers_to_one_input_port(self) -> None:
        payload = price_check_strategy()
        payload["nodes"].append(node("k", "data.constant", value=90100))
        payload["edges"].append(control("c4", "start", "k"))
        payload["edges"].append(data("d2", "k", "value", "price-check", "condition"))
        errors = validate_strategy(payload)
        self.assertIn("DUPLICATE_PORT_CONNECTION", {item.code for item in errors})

    def test_missing_required_input_on_reachable_node(self) -> None:
        payload = price_check_strategy()
        payload["edges"] = [edge for edge in payload["edges"] if edge["id"] != "d1"]
        errors = validate_strategy(payload)
        self.assertEqual([item.code for item in errors], ["MISSING_REQUIRED_INPUT"])
        self.assertEqual(errors[0].node_id, "price-check")

    def test_required_input_from_config_is_satisfied(self) -> None:
        payload = price_check_strategy()
        payload["edges"] = [edge for edge in payload["edges"] if edge["id"] != "d1"]
        payload["nodes"][2]["config"]["condition"] = 91000
        self.assertEqual(validate_strategy(payload), [])

    def test_unreachable_node_only_warns(self) -> None:
        payload = price_check_strategy()
        payload["nodes"].append(node("lonely-if", "logic.if", comparator=">"))
        payload["nodes"].append(node("lonely-log", "action.logIntent"))
        payload["edges"].append(control("c9", "lonely-if", "lonely-log", "true", "trigger"))
        result = StrategyValidator().validate(payload)
        self.assertTrue(result.ok)
        self.assertEqual({item.code for item in result.warnings}, {"UNREACHABLE_NODE"})
        self.assertEqual({item.node_id for item in result.warnings}, {"lonely-if", "lonely-log"})

    def test_node_without_control_edges_is_orphan(self) -> None:
        payload = price_check_strategy()
        payload["nodes"].append(node("loose", "data.constant", value=1))
        result = StrategyValidator().validate(payload)
        self.assertEqual([(item.code, item.node_id) for item in result.warnings], [("ORPHAN_NODE", "loose")])

    def test_control_cycle_is_rejected(self) -> None:
        payload = strategy(
            [
                node("start", "control.start"),
                node("a", "data.constant", value=1),
                node("b", "data.constant", value=2),
            ],
            [control("c1", "start", "a"), control("c2", "a", "b"), control("c3", "b", "a")],
        )
        errors = validate_strategy(payload)
        self.assertEqual([item.code for item in errors], ["CYCLE_DETECTED"])
        self.assertIn("a -> b -> a", errors[0].message)

    def test_long_chain_validates_without_recursion(self) -> None:
        ids = [f"n{position:05d}" for position in range(2000)]
        payload = strategy(
            [node("start", "control.start")] + [node(node_id, "data.constant", value=1) for node_id in ids],
            [control(f"c-{target}", source, target) for source, target in zip(["start"] + ids, ids)],
        )

        result = StrategyValidator().validate(payload)

        self.assertTrue(result.ok)
        self.assertEqual(len(result.reachable), 2001)

    def test_missing_start_node(self) -> None:
        payload = strategy([node("k", "data.constant", value=1)], [])
        self.assertEqual([item.code for item in validate_strategy(payload)], ["NO_START_NODE"])

    def test_schema_version_and_duplicate_ids(self) -> None:
        payload = strategy(
            [node("start", "control.start"), node("start", "control.start")],
            [control("c1", "start", "start"), control("c1", "start", "start")],
            version=2,
        )
        codes = {item.code for item in validate_strategy(payload)}
        self.assertTrue({"INVALID_SCHEMA_VERSION", "DUPLICATE_NODE_ID", "DUPLICATE_EDGE_ID"} <= codes)

    def test_handler_config_checks_become_invalid_config(self) -> None:
        payload = price_check_strategy()
        payload["nodes"][2]["config"]["comparator"] = "~"
        errors = validate_strategy(payload)
        self.assertEqual([item.code for item in errors], ["INVALID_CONFIG"])
        self.assertIn("Unsupported comparator", errors[0].message)

    def test_disabled_node_config_is_not_checked(self) -> None:
        payload = price_check_strategy()
        payload["nodes"][2]["config"].update({"comparator": "~", "disabled": True})
        self.assertEqual(validate_strategy(payload), [])

    def test_incompatible_edge_types_warn(self) -> None:
        payload = price_check_strategy()
        payload["edges"][2] = data("d1", "ticker", "pair", "price-check", "condition")
        result = StrategyValidator().validate(payload)
        self.assertTrue(result.ok)
        self.assertEqual([item.code for item in result.warnings], ["EDGE_TYPE_MISMATCH"])

    def test_rendered_diagnostics_put_errors_first(self) -> None:
        payload = price_check_strategy()
        payload["edges"] = [edge for edge in payload["edges"] if edge["id"] != "d1"]
        payload["nodes"].append(node("loose", "data.constant", value=1))
        rendered = render_diagnostics(StrategyValidator().validate(payload).diagnostics)
        lines = rendered.splitlines()
        self.assertTrue(lines[0].startswith("- [ERROR] MISSING_REQUIRED_INPUT"))
        self.assertIn("(node=price-check)", lines[0])
        self.assertTrue(lines[1].startswith("- [WARNING] ORPHAN_NODE"))


if __name__ == "__main__":
    unittest.main()
