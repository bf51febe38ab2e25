from __future__ import annotations

from kraken_dad.graph.handlers.registry import HandlerRegistry
from kraken_dad.graph.index import GraphIndex
from kraken_dad.graph.validation.models import Diagnostic, error


def run_input_pass(index: GraphIndex, registry: HandlerRegistry, reachable: set[str]) -> list[Diagnostic]:
    """Required data inputs of reachable nodes need a config value or one live data edge."""
    diagnostics: list[Diagnostic] = []

    for node_id in sorted(reachable):
        node = index.node_map[node_id]
        definition = registry.definition(node.type)
        if definition is None or node.disabled:
            continue

        for port in definition.data_inputs:
            if not port.required:
                continue
            if node.config.get(port.id) is not None:
                continue

            edges = [edge for edge in index.incoming_data.get(node_id, []) if edge.target_port == port.id]
            if len(edges) == 1 and edges[0].source in reachable:
                continue

            if not edges:
                message = f"Required input '{port.id}' on node '{node_id}' has no config value and no data edge."
            elif len(edges) > 1:
                # Also reported as DUPLICATE_PORT_CONNECTION.
                message = f"Required input '{port.id}' on node '{node_id}' has more than one data edge."
            else:
                message = (
                    f"Required input '{port.id}' on node '{node_id}' is wired from "
                    f"'{edges[0].source}', which no start node reaches."
                )
            diagnostics.append(
                error(
                    "MISSING_REQUIRED_INPUT",
                    message,
                    node_id=node_id,
                    hint=f"Set config.{port.id} or connect exactly one data edge to '{port.id}'.",
                )
            )

    return diagnostics
