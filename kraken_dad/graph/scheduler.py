from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from kraken_dad.graph.index import GraphIndex
from kraken_dad.graph.schema import Strategy


NodeStatus = Literal["pending", "executed", "skipped", "error"]


class TargetNotFoundError(ValueError):
    """Raised when a partial run names a node the strategy does not contain."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Target node '{node_id}' was not found.")
        self.node_id = node_id


class ExecutionPlan:
    """Per-run scheduling state: node statuses plus the active control-edge set.

    A node becomes ready once any incoming control edge is active (OR-join).
    Ready nodes are released in ascending id order, except that a node waits
    while one of its data sources may still run.
    """

    def __init__(self, index: GraphIndex) -> None:
        self._index = index
        self._status: dict[str, NodeStatus] = {node_id: "pending" for node_id in index.node_map}
        self._active_edges: set[str] = set()
        self._inactive_edges: set[str] = set()
        self._ready: set[str] = set(index.start_nodes())

    @property
    def index(self) -> GraphIndex:
        return self._index

    def status(self, node_id: str) -> NodeStatus:
        return self._status[node_id]

    def statuses(self) -> dict[str, NodeStatus]:
        return dict(self._status)

    def is_edge_active(self, edge_id: str) -> bool:
        return edge_id in self._active_edges

    def next_node(self) -> str | None:
        if not self._ready:
            return None
        candidates = sorted(self._ready)
        for node_id in candidates:
            if not self._waits_on_data(node_id):
                self._ready.discard(node_id)
                return node_id
        # Every ready node waits on another; release the smallest to keep making progress.
        self._ready.discard(candidates[0])
        return candidates[0]

    def complete(self, node_id: str, outputs: Mapping[str, Any]) -> None:
        self._status[node_id] = "executed"
        for edge in self._index.outgoing_control.get(node_id, []):
            value = outputs.get(edge.source_port)
            if value is None or bool(value):
                self._active_edges.add(edge.id)
                if self._status[edge.target] == "pending":
                    self._ready.add(edge.target)
            else:
                self._inactive_edges.add(edge.id)

    def fail(self, node_id: str) -> None:
        self._settle(node_id, "error")

    def skip(self, node_id: str) -> None:
        self._settle(node_id, "skipped")

    def unreached(self) -> list[str]:
        return sorted(node_id for node_id, status in self._status.items() if status == "pending")

    def _settle(self, node_id: str, status: NodeStatus) -> None:
        self._status[node_id] = status
        self._ready.discard(node_id)
        for edge in self._index.outgoing_control.get(node_id, []):
            self._inactive_edges.add(edge.id)

    def _waits_on_data(self, node_id: str) -> bool:
        for edge in self._index.incoming_data.get(node_id, []):
            if edge.source != node_id and self._may_run(edge.source):
                return True
        return False

    def _may_run(self, node_id: str) -> bool:
        """True when a pending node is ready or sits downstream of a ready node over live edges."""
        seen: set[str] = set()
        stack = [node_id]
        while stack:
            current = stack.pop()
            if current in seen or self._status.get(current) != "pending":
                continue
            if current in self._ready:
                return True
            seen.add(current)
            for edge in self._index.incoming_control.get(current, []):
                if edge.id not in self._inactive_edges and edge.source not in seen:
                    stack.append(edge.source)
        return False


class Scheduler:
    """Deterministic, branching-aware ordering of strategy nodes."""

    def scope(self, strategy: Strategy, target_node_id: str | None = None) -> Strategy:
        """Restrict a strategy to the target node and everything feeding it."""
        if target_node_id is None:
            return strategy
        if strategy.node(target_node_id) is None:
            raise TargetNotFoundError(target_node_id)
        index = GraphIndex.build(strategy)
        return strategy.restricted_to(index.ancestors(target_node_id))

    def plan(self, strategy: Strategy) -> ExecutionPlan:
        return ExecutionPlan(GraphIndex.build(strategy))

    def schedule(self, strategy: Strategy, target_node_id: str | None = None) -> list[str]:
        """Visitation order when every control edge fires."""
        plan = self.plan(self.scope(strategy, target_node_id))
        order: list[str] = []
        while True:
            node_id = plan.next_node()
            if node_id is None:
                break
            order.append(node_id)
            plan.complete(node_id, {})
        return order
