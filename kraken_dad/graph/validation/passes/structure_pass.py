from __future__ import annotations

from kraken_dad.graph.handlers.registry import HandlerRegistry
from kraken_dad.graph.schema import SCHEMA_VERSION, Strategy
from kraken_dad.graph.validation.models import Diagnostic, error


def run_structure_pass(strategy: Strategy, registry: HandlerRegistry) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []

    if strategy.version != SCHEMA_VERSION:
        diagnostics.append(
            error(
                "INVALID_SCHEMA_VERSION",
                f"Expected schema version {SCHEMA_VERSION}, got {strategy.version}.",
                hint=f"Set version to {SCHEMA_VERSION}.",
            )
        )

    seen_nodes: set[str] = set()
    for node in strategy.nodes:
        if node.id in seen_nodes:
            diagnostics.append(error("DUPLICATE_NODE_ID", f"Duplicate node id '{node.id}'.", node_id=node.id))
        seen_nodes.add(node.id)

    seen_edges: set[str] = set()
    for edge in strategy.edges:
        if edge.id in seen_edges:
            diagnostics.append(error("DUPLICATE_EDGE_ID", f"Duplicate edge id '{edge.id}'.", edge_id=edge.id))
        seen_edges.add(edge.id)

    for node in strategy.nodes:
        handler = registry.get(node.type)
        if handler is None:
            diagnostics.append(
                error(
                    "UNKNOWN_NODE_TYPE",
                    f"Node '{node.id}' has unknown type '{node.type}'.",
                    node_id=node.id,
                )
            )
            continue
        if node.disabled:
            continue
        for problem in handler.validate_config(node.config):
            diagnostics.append(
                error(
                    "INVALID_CONFIG",
                    f"Node '{node.id}' ({node.type}): {problem}",
                    node_id=node.id,
                )
            )

    return diagnostics
