from __future__ import annotations

from kraken_dad.graph.validation.models import Diagnostic


def render_diagnostic(diagnostic: Diagnostic) -> str:
    location_bits: list[str] = []
    if diagnostic.node_id:
        location_bits.append(f"node={diagnostic.node_id}")
    if diagnostic.edge_id:
        location_bits.append(f"edge={diagnostic.edge_id}")

    location = f" ({', '.join(location_bits)})" if location_bits else ""
    hint = f" Hint: {diagnostic.hint}" if diagnostic.hint else ""
    message = diagnostic.message.rstrip(".")
    return f"[{diagnostic.severity.upper()}] {diagnostic.code}: {message}{location}.{hint}".rstrip()


def render_diagnostics(diagnostics: list[Diagnostic]) -> str:
    if not diagnostics:
        return ""

    order = {"error": 0, "warning": 1}
    sorted_items = sorted(
        diagnostics,
        key=lambda item: (order.get(item.severity, 9), item.code, item.node_id or "", item.edge_id or ""),
    )
    return "\n".join(f"- {render_diagnostic(item)}" for item in sorted_items)
