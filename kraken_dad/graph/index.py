from __future__ import annotations

from dataclasses import dataclass, field

from kraken_dad.graph.schema import Strategy, StrategyEdge, StrategyNode


START_NODE_TYPE = "control.start"


@dataclass(slots=True)
class GraphIndex:
    """Adjacency lists for control and data edges, keyed by node id."""

    node_map: dict[str, StrategyNode]
    incoming_control: dict[str, list[StrategyEdge]] = field(default_factory=dict)
    outgoing_control: dict[str, list[StrategyEdge]] = field(default_factory=dict)
    incoming_data: dict[str, list[StrategyEdge]] = field(default_factory=dict)
    outgoing_data: dict[str, list[StrategyEdge]] = field(default_factory=dict)

    @classmethod
    def build(cls, strategy: Strategy) -> GraphIndex:
        node_map: dict[str, StrategyNode] = {}
        for node in strategy.nodes:
            node_map.setdefault(node.id, node)

        index = cls(
            node_map=node_map,
            incoming_control={node_id: [] for node_id in node_map},
            outgoing_control={node_id: [] for node_id in node_map},
            incoming_data={node_id: [] for node_id in node_map},
            outgoing_data={node_id: [] for node_id in node_map},
        )

        # Edges pointing at unknown nodes are reported by validation, not indexed.
        for edge in strategy.edges:
            if edge.source not in node_map or edge.target not in node_map:
                continue
            if edge.kind == "control":
                index.outgoing_control[edge.source].append(edge)
                index.incoming_control[edge.target].append(edge)
            else:
                index.outgoing_data[edge.source].append(edge)
                index.incoming_data[edge.target].append(edge)

        for edges in index.outgoing_control.values():
            edges.sort(key=lambda item: (item.target, item.id))
        return index

    def start_nodes(self) -> list[str]:
        return sorted(node_id for node_id, node in self.node_map.items() if node.type == START_NODE_TYPE)

    def control_successors(self, node_id: str) -> list[str]:
        return [edge.target for edge in self.outgoing_control.get(node_id, [])]

    def has_control_edges(self, node_id: str) -> bool:
        return bool(self.incoming_control.get(node_id)) or bool(self.outgoing_control.get(node_id))

    def ancestors(self, node_id: str) -> set[str]:
        """Collect a node plus everything feeding it over control or data edges."""
        visited: set[str] = set()
        stack = [node_id]
        while stack:
            current = stack.pop()
            if current in visited or current not in self.node_map:
                continue
            visited.add(current)
            for edge in self.incoming_control.get(current, []) + self.incoming_data.get(current, []):
                if edge.source not in visited:
                    stack.append(edge.source)
        return visited

    def reachable_from(self, roots: list[str]) -> set[str]:
        reachable: set[str] = set()
        stack = list(roots)
        while stack:
            current = stack.pop()
            if current in reachable or current not in self.node_map:
                continue
            reachable.add(current)
            for target in self.control_successors(current):
                if target not in reachable:
                    stack.append(target)
        return reachable
