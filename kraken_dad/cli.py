from __future__ import annotations

import argparse
import asyncio
import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from kraken_dad.graph import (
    EXECUTION_MODES,
    ExecutionContext,
    ExecutionResult,
    MarketDataProvider,
    Scheduler,
    Strategy,
    StrategyExecutor,
    StrategyParseError,
    StrategyValidator,
    TargetNotFoundError,
    default_registry,
    parse_strategy,
)
from kraken_dad.graph.validation import render_diagnostics
from kraken_dad.logging_utils import configure_logging
from kraken_dad.market import FallbackMarketData, KrakenRestMarketData, StaticMarketData
from kraken_dad.settings import AppSettings, load_settings


LOGGER = logging.getLogger(__name__)
OUTPUT_PREVIEW_CHARS = 60


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kraken-dad", description="Validate and run Kraken strategy graphs.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_run = sub.add_parser("run", help="Execute a strategy once and print the trace")
    p_run.add_argument("strategy", help="Path to a strategy JSON document")
    p_run.add_argument("--mode", choices=EXECUTION_MODES, default=None, help="dry-run (default) or live")
    p_run.add_argument("--validate", action="store_true", default=None, help="Validate order intents with the exchange")
    p_run.add_argument(
        "--strict-validation",
        action="store_true",
        default=None,
        help="Treat failed order validations as node errors",
    )
    p_run.add_argument("--target", default=None, help="Run only this node and its ancestors")
    p_run.add_argument("--offline", action="store_true", default=None, help="Use built-in market snapshots")
    p_run.add_argument("--json", action="store_true", help="Print the raw execution report")

    p_validate = sub.add_parser("validate", help="Check a strategy without running it")
    p_validate.add_argument("strategy", help="Path to a strategy JSON document")
    p_validate.add_argument("--json", action="store_true", help="Print diagnostics as JSON")

    p_plan = sub.add_parser("plan", help="Show the visitation order when every branch fires")
    p_plan.add_argument("strategy", help="Path to a strategy JSON document")
    p_plan.add_argument("--target", default=None, help="Plan only this node and its ancestors")

    sub.add_parser("blocks", help="List the available node types and their ports")

    p_ticker = sub.add_parser("ticker", help="Show the current ticker snapshot for a pair")
    p_ticker.add_argument("pair", nargs="?", default=None, help="Pair such as BTC/USD (defaults to DEFAULT_PAIR)")
    p_ticker.add_argument("--offline", action="store_true", default=None, help="Use built-in market snapshots")

    return parser


def load_strategy_file(path: str | Path) -> Strategy:
    return parse_strategy(Path(path).expanduser().read_text(encoding="utf-8"))


def build_market_data(settings: AppSettings, *, offline: bool) -> MarketDataProvider:
    if offline:
        return StaticMarketData()
    return FallbackMarketData(
        KrakenRestMarketData(
            settings.kraken_api_base_url,
            timeout_seconds=settings.market_data_timeout_seconds,
        )
    )


class StrategyCLI:
    def __init__(self, console: Console | None = None, settings: AppSettings | None = None) -> None:
        self.console = console or Console(highlight=False, markup=False)
        self.settings = settings or load_settings()
        self._commands = {
            "run": self._handle_run,
            "validate": self._handle_validate,
            "plan": self._handle_plan,
            "blocks": self._handle_blocks,
            "ticker": self._handle_ticker,
        }

    def dispatch(self, args: argparse.Namespace) -> int:
        handler = self._commands[args.command]
        try:
            return handler(args)
        except (OSError, StrategyParseError) as exc:
            self.console.print(f"Error: {exc}")
            return 1

    def _handle_run(self, args: argparse.Namespace) -> int:
        strategy = load_strategy_file(args.strategy)
        offline = args.offline if args.offline is not None else self.settings.market_data_offline
        context = ExecutionContext(
            mode=args.mode or self.settings.execution_mode,
            market_data=build_market_data(self.settings, offline=offline),
            validate=args.validate if args.validate is not None else self.settings.validate_orders,
            strict_validation=(
                args.strict_validation if args.strict_validation is not None else self.settings.strict_validation
            ),
            target_node_id=args.target,
        )
        LOGGER.info("Running '%s' in %s mode (offline=%s).", strategy.metadata.name, context.mode, offline)
        result = StrategyExecutor().run(strategy, context)

        if args.json:
            self.console.out(json.dumps(result.to_dict(), indent=2, default=str), highlight=False)
        else:
            self._print_result(strategy, result)
        return 0 if result.success else 1

    def _handle_validate(self, args: argparse.Namespace) -> int:
        strategy = load_strategy_file(args.strategy)
        validation = StrategyValidator().validate(strategy)

        if args.json:
            payload = {
                "ok": validation.ok,
                "errors": [item.to_dict() for item in validation.errors],
                "warnings": [item.to_dict() for item in validation.warnings],
            }
            self.console.out(json.dumps(payload, indent=2), highlight=False)
            return 0 if validation.ok else 1

        if validation.diagnostics:
            self.console.print(render_diagnostics(validation.diagnostics))
        if validation.ok:
            self.console.print(f"Strategy '{strategy.metadata.name}' is valid.")
        return 0 if validation.ok else 1

    def _handle_plan(self, args: argparse.Namespace) -> int:
        strategy = load_strategy_file(args.strategy)
        try:
            order = Scheduler().schedule(strategy, args.target)
        except TargetNotFoundError as exc:
            self.console.print(f"Error: {exc}")
            return 1

        node_types = {node.id: node.type for node in strategy.nodes}
        self._print_list(
            f"Visitation order for '{strategy.metadata.name}':",
            [f"{position}. {node_id} ({node_types.get(node_id, '?')})" for position, node_id in enumerate(order, 1)],
        )
        return 0

    def _handle_blocks(self, args: argparse.Namespace) -> int:
        table = Table(title="Node types")
        table.add_column("Type")
        table.add_column("Category")
        table.add_column("Inputs")
        table.add_column("Outputs")
        for definition in default_registry().definitions():
            table.add_row(
                definition.type,
                definition.category,
                ", ".join(_port_label(port.id, port.kind, port.required) for port in definition.inputs) or "-",
                ", ".join(_port_label(port.id, port.kind, False) for port in definition.outputs) or "-",
            )
        self.console.print(table)
        return 0

    def _handle_ticker(self, args: argparse.Namespace) -> int:
        pair = args.pair or self.settings.default_pair
        offline = args.offline if args.offline is not None else self.settings.market_data_offline
        provider = build_market_data(self.settings, offline=offline)
        try:
            ticker = asyncio.run(provider.get_ticker(pair))
        except ValueError as exc:
            self.console.print(f"Error: {exc}")
            return 1

        source = "fallback snapshot" if ticker.stale else ("offline snapshot" if offline else "Kraken")
        self._print_kv_lines(
            f"Ticker {ticker.pair} ({source})",
            [
                ("last", _format_value(ticker.last)),
                ("ask", _format_value(ticker.ask)),
                ("bid", _format_value(ticker.bid)),
                ("spread", _format_value(ticker.spread)),
            ],
        )
        return 0

    def _print_result(self, strategy: Strategy, result: ExecutionResult) -> None:
        outcome = "succeeded" if result.success else "failed"
        self.console.print(
            f"Strategy '{strategy.metadata.name}' {outcome} in {result.mode} mode: "
            f"{result.nodes_executed} node(s) executed."
        )

        if result.log:
            table = Table()
            table.add_column("Node")
            table.add_column("Type")
            table.add_column("Status")
            table.add_column("ms", justify="right")
            table.add_column("Outputs")
            for entry in result.log:
                table.add_row(
                    entry.node_id,
                    entry.node_type,
                    entry.status,
                    f"{entry.duration_ms:.1f}",
                    _preview(entry.outputs),
                )
            self.console.print(table)

        if result.errors or result.warnings:
            self.console.print(render_diagnostics(result.errors + result.warnings))

        if result.action_intents:
            self._print_list(
                "Action intents:",
                [
                    f"{intent.node_id}: {intent.action} {_preview(intent.params)} "
                    f"({'executed' if intent.executed else 'not executed'})"
                    for intent in result.action_intents
                ],
            )
        for title, records in (
            ("Kraken validations:", result.kraken_validations),
            ("Live actions:", result.live_actions),
        ):
            if records:
                self._print_list(title, [f"{item.node_id}: {item.status} - {item.detail}" for item in records])

    def _print_kv_lines(self, title: str, rows: list[tuple[str, str]]) -> None:
        self.console.print(title)
        for key, value in rows:
            self.console.print(f"- {key}: {value}")
        self.console.print()

    def _print_list(self, title: str, items: list[str]) -> None:
        self.console.print(title)
        if not items:
            self.console.print("- (none)")
        else:
            for item in items:
                self.console.print(f"- {item}")
        self.console.print()


def _port_label(port_id: str, kind: str, required: bool) -> str:
    label = port_id if kind == "data" else f"{port_id}>"
    return f"{label}*" if required else label


def _format_value(value: object) -> str:
    return "-" if value is None else str(value)


def _preview(payload: dict[str, Any]) -> str:
    if not payload:
        return "-"
    text = json.dumps(payload, default=str)
    if len(text) > OUTPUT_PREVIEW_CHARS:
        return text[: OUTPUT_PREVIEW_CHARS - 3] + "..."
    return text


def main(
    argv: Sequence[str] | None = None,
    *,
    console: Console | None = None,
    settings: AppSettings | None = None,
) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return int(exc.code or 0)
    return StrategyCLI(console=console, settings=settings).dispatch(args)


def run() -> None:
    configure_logging()
    raise SystemExit(main())
