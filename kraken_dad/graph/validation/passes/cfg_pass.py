from __future__ import annotations

from dataclasses import dataclass

from kraken_dad.graph.index import GraphIndex
from kraken_dad.graph.validation.models import Diagnostic, error, warning


@dataclass(slots=True)
class CFGAnalysis:
    start_nodes: list[str]
    reachable: set[str]
    cycle: list[str] | None


def run_cfg_pass(index: GraphIndex) -> tuple[CFGAnalysis, list[Diagnostic]]:
    diagnostics: list[Diagnostic] = []

    start_nodes = index.start_nodes()
    if not start_nodes:
        diagnostics.append(
            error(
                "NO_START_NODE",
                "Strategy has no control.start node.",
                hint="Add a control.start node and connect it with control edges.",
            )
        )

    reachable = index.reachable_from(start_nodes)

    cycle = _find_cycle(start_nodes, index)
    if cycle is not None:
        diagnostics.append(
            error(
                "CYCLE_DETECTED",
                f"Control edges form a cycle: {' -> '.join(cycle)}.",
                node_id=cycle[0],
                hint="Control flow must be acyclic.",
            )
        )

    multiple_nodes = len(index.node_map) > 1
    for node_id in sorted(index.node_map):
        if node_id in reachable:
            continue
        if not index.has_control_edges(node_id):
            if multiple_nodes:
                diagnostics.append(
                    warning(
                        "ORPHAN_NODE",
                        f"Node '{node_id}' is not connected to any control flow.",
                        node_id=node_id,
                    )
                )
            continue
        diagnostics.append(
            warning(
                "UNREACHABLE_NODE",
                f"Node '{node_id}' is not reachable from a start node.",
                node_id=node_id,
            )
        )

    return CFGAnalysis(start_nodes=start_nodes, reachable=reachable, cycle=cycle), diagnostics


def _find_cycle(start_nodes: list[str], index: GraphIndex) -> list[str] | None:
    # Explicit stack so long chains cannot exhaust the interpreter's recursion limit.
    # Grey nodes are on the current path; black nodes are fully explored.
    colour: dict[str, str] = {}
    for start in start_nodes:
        if start in colour:
            continue
        colour[start] = "grey"
        path = [start]
        frames = [iter(index.control_successors(start))]
        while frames:
            target = next(frames[-1], None)
            if target is None:
                colour[path.pop()] = "black"
                frames.pop()
                continue
            state = colour.get(target)
            if state == "grey":
                return path[path.index(target):] + [target]
            if state == "black" or target not in index.node_map:
                continue
            colour[target] = "grey"
            path.append(target)
            frames.append(iter(index.control_successors(target)))
    return None
