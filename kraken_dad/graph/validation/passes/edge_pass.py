from __future__ import annotations

from collections import defaultdict

from kraken_dad.graph.contracts import data_types_compatible
from kraken_dad.graph.handlers.registry import HandlerRegistry
from kraken_dad.graph.schema import Strategy, StrategyEdge
from kraken_dad.graph.validation.models import Diagnostic, error, warning


def run_edge_pass(strategy: Strategy, registry: HandlerRegistry) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    node_types = {node.id: node.type for node in strategy.nodes}
    data_writers: dict[tuple[str, str], list[str]] = defaultdict(list)

    for edge in strategy.edges:
        diagnostics.extend(_check_edge(edge, node_types, registry))
        if edge.kind == "data" and edge.target in node_types:
            data_writers[(edge.target, edge.target_port)].append(edge.id)

    for (target, port), edge_ids in sorted(data_writers.items()):
        if len(edge_ids) > 1:
            diagnostics.append(
                error(
                    "DUPLICATE_PORT_CONNECTION",
                    f"Input '{port}' on node '{target}' is fed by {len(edge_ids)} data edges ({', '.join(edge_ids)}).",
                    node_id=target,
                    hint="Keep exactly one data edge per input port.",
                )
            )

    return diagnostics


def _check_edge(
    edge: StrategyEdge,
    node_types: dict[str, str],
    registry: HandlerRegistry,
) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for role, node_id in (("source", edge.source), ("target", edge.target)):
        if node_id not in node_types:
            diagnostics.append(
                error(
                    "DANGLING_EDGE",
                    f"Edge '{edge.id}' references missing {role} node '{node_id}'.",
                    edge_id=edge.id,
                )
            )
    if diagnostics:
        return diagnostics

    source_definition = registry.definition(node_types[edge.source])
    target_definition = registry.definition(node_types[edge.target])
    if source_definition is None or target_definition is None:
        # Unknown node types are reported by the structure pass.
        return diagnostics

    source_port = source_definition.output(edge.source_port)
    if source_port is None:
        diagnostics.append(
            error(
                "DANGLING_EDGE",
                f"Output port '{edge.source_port}' is not declared by node '{edge.source}' ({source_definition.type}).",
                node_id=edge.source,
                edge_id=edge.id,
            )
        )
    target_port = target_definition.input(edge.target_port)
    if target_port is None:
        diagnostics.append(
            error(
                "DANGLING_EDGE",
                f"Input port '{edge.target_port}' is not declared by node '{edge.target}' ({target_definition.type}).",
                node_id=edge.target,
                edge_id=edge.id,
            )
        )
    if source_port is None or target_port is None:
        return diagnostics

    mismatched = [port for port in (source_port, target_port) if port.kind != edge.kind]
    if mismatched:
        port = mismatched[0]
        diagnostics.append(
            error(
                "PORT_KIND_MISMATCH",
                f"Edge '{edge.id}' is a {edge.kind} edge but port '{port.id}' is a {port.kind} port.",
                edge_id=edge.id,
                hint="Control ports connect only to control ports and data ports only to data ports.",
            )
        )
        return diagnostics

    if edge.kind == "data" and not data_types_compatible(source_port.data_type, target_port.data_type):
        diagnostics.append(
            warning(
                "EDGE_TYPE_MISMATCH",
                f"Edge '{edge.id}' carries {source_port.data_type} into '{edge.target}.{target_port.id}', "
                f"which expects {target_port.data_type}.",
                node_id=edge.target,
                edge_id=edge.id,
            )
        )
    return diagnostics
