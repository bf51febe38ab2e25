from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from kraken_dad.graph.context import EXECUTION_MODES, ExecutionContext
from kraken_dad.graph.contracts import describe_value_type, value_matches_data_type
from kraken_dad.graph.handlers.base import (
    BlockDefinition,
    HandlerResult,
    NodeExecutionError,
    NodeType,
)
from kraken_dad.graph.handlers.registry import HandlerRegistry, default_registry
from kraken_dad.graph.hooks import StrategyHookRegistry
from kraken_dad.graph.result import (
    ActionIntent,
    ActionRecord,
    ExecutionResult,
    NodeExecutionLog,
    ResultBuilder,
)
from kraken_dad.graph.scheduler import ExecutionPlan, Scheduler, TargetNotFoundError
from kraken_dad.graph.schema import Strategy, StrategyNode, parse_strategy
from kraken_dad.graph.validation import Diagnostic, StrategyValidator, error, render_diagnostics, warning


LOGGER = logging.getLogger(__name__)

ORDER_NODE_TYPES = {NodeType.ACTION_PLACE_ORDER.value, NodeType.ACTION_CANCEL_ORDER.value}


class StrategyExecutionError(RuntimeError):
    """Raised when the executor is called incorrectly, before any node runs."""


@dataclass(slots=True)
class ResolvedInputs:
    values: dict[str, Any] = field(default_factory=dict)
    warnings: list[Diagnostic] = field(default_factory=list)
    skip_reason: Diagnostic | None = None
    failure: Diagnostic | None = None


class StrategyExecutor:
    """Validates, schedules and runs one strategy, returning the aggregated report.

    Runs are sequential: each node, including its collaborator calls, finishes
    before the next one starts. Per-node failures are recorded and the run goes
    on; only structural problems stop a run before its first node.
    """

    def __init__(
        self,
        registry: HandlerRegistry | None = None,
        *,
        validator: StrategyValidator | None = None,
        scheduler: Scheduler | None = None,
        hook_registry: StrategyHookRegistry | None = None,
    ) -> None:
        self._registry = registry or default_registry()
        self._validator = validator or StrategyValidator(self._registry)
        self._scheduler = scheduler or Scheduler()
        self._hooks = hook_registry or StrategyHookRegistry()

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    @property
    def hooks(self) -> StrategyHookRegistry:
        return self._hooks

    async def arun(
        self,
        strategy: Strategy | Mapping[str, Any],
        context: ExecutionContext,
    ) -> ExecutionResult:
        if context.mode not in EXECUTION_MODES:
            raise StrategyExecutionError(
                f"Unsupported execution mode '{context.mode}'. Use dry-run or live."
            )

        parsed = parse_strategy(strategy)
        builder = ResultBuilder(
            context.mode,
            clock=context.clock,
            track_validations=context.is_dry_run and context.validate,
            track_live_actions=context.is_live,
        )

        try:
            scoped = self._scheduler.scope(parsed, context.target_node_id)
        except TargetNotFoundError as exc:
            builder.add_error(error("TARGET_NODE_NOT_FOUND", str(exc), node_id=exc.node_id))
            return builder.build()

        validation = self._validator.validate(scoped)
        builder.add_warnings(validation.warnings)
        if not validation.ok:
            builder.add_errors(validation.errors)
            LOGGER.info(
                "Strategy '%s' failed validation:\n%s",
                parsed.metadata.name,
                render_diagnostics(validation.errors),
            )
            return builder.build()

        if self._validation_skipped(scoped, context):
            builder.add_warning(
                warning(
                    "VALIDATE_SKIPPED",
                    "Order validation was requested but no exchange action adapter is configured.",
                )
            )

        await self._emit_hook(
            "before_run",
            {
                "strategy": parsed.metadata.name,
                "mode": context.mode,
                "target_node_id": context.target_node_id,
                "node_count": len(scoped.nodes),
            },
        )

        plan = self._scheduler.plan(scoped)
        produced: dict[str, dict[str, Any]] = {}
        while True:
            node_id = plan.next_node()
            if node_id is None:
                break
            await self._execute_node(plan.index.node_map[node_id], plan, produced, context, builder)

        for node_id in plan.unreached():
            node = plan.index.node_map[node_id]
            plan.skip(node_id)
            builder.add_log(_skipped_entry(node))

        result = builder.build()
        LOGGER.info(
            "Strategy '%s' finished in %s mode: %d executed, %d errors, %d warnings.",
            parsed.metadata.name,
            context.mode,
            result.nodes_executed,
            len(result.errors),
            len(result.warnings),
        )
        await self._emit_hook(
            "after_run",
            {
                "strategy": parsed.metadata.name,
                "mode": context.mode,
                "success": result.success,
                "nodes_executed": result.nodes_executed,
            },
        )
        return result

    def run(
        self,
        strategy: Strategy | Mapping[str, Any],
        context: ExecutionContext,
    ) -> ExecutionResult:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop and loop.is_running():
            raise StrategyExecutionError(
                "StrategyExecutor.run() cannot be called inside an active event loop. Use await arun()."
            )
        return asyncio.run(self.arun(strategy, context))

    async def _execute_node(
        self,
        node: StrategyNode,
        plan: ExecutionPlan,
        produced: dict[str, dict[str, Any]],
        context: ExecutionContext,
        builder: ResultBuilder,
    ) -> None:
        if node.disabled:
            LOGGER.debug("Node '%s' is disabled; skipping.", node.id)
            plan.skip(node.id)
            builder.add_log(_skipped_entry(node))
            return

        handler = self._registry.get(node.type)
        if handler is None:
            # Unknown types never pass validation; a swapped-in validator may still let one through.
            failure = error("UNKNOWN_NODE_TYPE", f"Node '{node.id}' has unknown type '{node.type}'.", node_id=node.id)
            await self._record_failure(node, {}, {}, 0.0, failure, plan, builder)
            return

        resolved = self._resolve_inputs(node, handler.definition, plan, produced)
        builder.add_warnings(resolved.warnings)
        if resolved.skip_reason is not None:
            plan.skip(node.id)
            builder.add_warning(resolved.skip_reason)
            builder.add_log(_skipped_entry(node, resolved.values))
            return
        if resolved.failure is not None:
            await self._record_failure(node, resolved.values, {}, 0.0, resolved.failure, plan, builder)
            return

        await self._emit_hook(
            "before_node",
            {"node_id": node.id, "node_type": node.type, "inputs": dict(resolved.values)},
        )

        started = time.perf_counter()
        outcome: HandlerResult | None = None
        failure: Diagnostic | None = None
        try:
            outcome = await handler.run(dict(resolved.values), node.config, context)
        except NodeExecutionError as exc:
            failure = error(exc.code, f"Error executing node '{node.id}': {exc}", node_id=node.id)
        except Exception as exc:  # noqa: BLE001
            failure = error(
                "NODE_EXECUTION_ERROR",
                f"Error executing node '{node.id}': {exc}",
                node_id=node.id,
            )
        duration_ms = round((time.perf_counter() - started) * 1000, 3)

        if outcome is None:
            await self._record_failure(node, resolved.values, {}, duration_ms, failure, plan, builder)
            return

        for issue in outcome.warnings:
            builder.add_warning(warning(issue.code, issue.message, node_id=node.id))
        self._record_action(node, outcome, context, builder)

        if outcome.status == "error":
            issue = outcome.error
            failure = error(
                issue.code if issue is not None else "NODE_EXECUTION_ERROR",
                issue.message if issue is not None else f"Node '{node.id}' reported an error.",
                node_id=node.id,
            )
            await self._record_failure(node, resolved.values, outcome.outputs, duration_ms, failure, plan, builder)
            return

        produced[node.id] = dict(outcome.outputs)
        plan.complete(node.id, outcome.outputs)
        builder.add_log(
            NodeExecutionLog(
                node_id=node.id,
                node_type=node.type,
                inputs=dict(resolved.values),
                outputs=dict(outcome.outputs),
                duration_ms=duration_ms,
                status="executed",
            )
        )
        await self._emit_hook(
            "after_node",
            {"node_id": node.id, "node_type": node.type, "status": "executed", "outputs": dict(outcome.outputs)},
        )

    def _resolve_inputs(
        self,
        node: StrategyNode,
        definition: BlockDefinition,
        plan: ExecutionPlan,
        produced: Mapping[str, Mapping[str, Any]],
    ) -> ResolvedInputs:
        """Config values for the node's data ports, overridden by values on executed data edges."""
        resolved = ResolvedInputs()
        wired = {edge.target_port: edge for edge in plan.index.incoming_data.get(node.id, [])}

        for port in definition.data_inputs:
            value = node.config.get(port.id)
            edge = wired.get(port.id)

            if edge is not None:
                source_status = plan.status(edge.source)
                if source_status == "executed":
                    incoming = produced.get(edge.source, {}).get(edge.source_port)
                    if incoming is not None:
                        if not value_matches_data_type(incoming, port.data_type):
                            resolved.warnings.append(
                                warning(
                                    "TYPE_MISMATCH",
                                    f"Input '{port.id}' on node '{node.id}' expects {port.data_type} "
                                    f"but received {describe_value_type(incoming)} from '{edge.source}.{edge.source_port}'.",
                                    node_id=node.id,
                                    edge_id=edge.id,
                                )
                            )
                        value = incoming
                    elif port.required and value is None:
                        resolved.failure = error(
                            "MISSING_REQUIRED_INPUT",
                            f"Required input '{port.id}' on node '{node.id}' received no value "
                            f"from '{edge.source}.{edge.source_port}'.",
                            node_id=node.id,
                            edge_id=edge.id,
                        )
                elif port.required and resolved.skip_reason is None:
                    resolved.skip_reason = self._upstream_unavailable(node, port.id, edge.source, source_status, plan)

            if value is not None:
                resolved.values[port.id] = value

        return resolved

    def _upstream_unavailable(
        self,
        node: StrategyNode,
        port_id: str,
        source_id: str,
        source_status: str,
        plan: ExecutionPlan,
    ) -> Diagnostic:
        source = plan.index.node_map[source_id]
        if source.disabled:
            return warning(
                "DISABLED_INPUT",
                f"Node '{node.id}' was skipped: input '{port_id}' comes from disabled node '{source_id}'.",
                node_id=node.id,
            )
        state = "did not run" if source_status == "pending" else f"ended with status '{source_status}'"
        return warning(
            "UPSTREAM_UNAVAILABLE",
            f"Node '{node.id}' was skipped: required input '{port_id}' depends on '{source_id}', which {state}.",
            node_id=node.id,
        )

    def _record_action(
        self,
        node: StrategyNode,
        outcome: HandlerResult,
        context: ExecutionContext,
        builder: ResultBuilder,
    ) -> None:
        action_outcome = outcome.action_outcome
        if outcome.action_intent is not None:
            executed = (
                context.is_live
                and action_outcome is not None
                and action_outcome.kind == "live"
                and action_outcome.ok
            )
            builder.add_intent(
                ActionIntent(
                    node_id=node.id,
                    type=node.type,
                    action=outcome.action_intent.action,
                    params=dict(outcome.action_intent.params),
                    executed=executed,
                )
            )

        if action_outcome is None:
            return
        record = ActionRecord(
            node_id=node.id,
            action=action_outcome.action,
            status=action_outcome.status,
            detail=action_outcome.detail,
            response=action_outcome.response,
        )
        if action_outcome.kind == "live":
            builder.add_live_action(record)
        else:
            builder.add_validation(record)

    async def _record_failure(
        self,
        node: StrategyNode,
        inputs: Mapping[str, Any],
        outputs: Mapping[str, Any],
        duration_ms: float,
        failure: Diagnostic | None,
        plan: ExecutionPlan,
        builder: ResultBuilder,
    ) -> None:
        if failure is None:
            failure = error("NODE_EXECUTION_ERROR", f"Node '{node.id}' failed.", node_id=node.id)
        LOGGER.warning("Node '%s' (%s) failed: %s", node.id, node.type, failure.message)
        plan.fail(node.id)
        builder.add_error(failure)
        builder.add_log(
            NodeExecutionLog(
                node_id=node.id,
                node_type=node.type,
                inputs=dict(inputs),
                outputs=dict(outputs),
                duration_ms=duration_ms,
                status="error",
            )
        )
        await self._emit_hook(
            "on_error",
            {"node_id": node.id, "node_type": node.type, "error": failure.to_dict()},
        )
        await self._emit_hook(
            "after_node",
            {"node_id": node.id, "node_type": node.type, "status": "error", "outputs": dict(outputs)},
        )

    def _validation_skipped(self, strategy: Strategy, context: ExecutionContext) -> bool:
        if not (context.is_dry_run and context.validate) or context.actions is not None:
            return False
        return any(node.type in ORDER_NODE_TYPES and not node.disabled for node in strategy.nodes)

    async def _emit_hook(self, event: str, context: dict[str, Any]) -> None:
        try:
            await self._hooks.emit(event, context)
        except Exception:  # noqa: BLE001
            # Hooks should never break a strategy run.
            LOGGER.exception("Hook for '%s' raised; continuing.", event)


def _skipped_entry(node: StrategyNode, inputs: Mapping[str, Any] | None = None) -> NodeExecutionLog:
    return NodeExecutionLog(
        node_id=node.id,
        node_type=node.type,
        inputs=dict(inputs or {}),
        outputs={},
        duration_ms=0.0,
        status="skipped",
    )


async def execute_strategy(
    strategy: Strategy | Mapping[str, Any],
    context: ExecutionContext,
    registry: HandlerRegistry | None = None,
) -> ExecutionResult:
    return await StrategyExecutor(registry).arun(strategy, context)
