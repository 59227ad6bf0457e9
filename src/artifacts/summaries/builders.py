"""Summary builders for the reconstruction manifest."""

from __future__ import annotations

from artifacts.models.manifest import DepsSummary
from graph.algos import find_cycles, graph_edges


def compute_fan_stats(
    edges: list[tuple[str, str]],
) -> tuple[dict[str, int], dict[str, int]]:
    """Compute fan-in and fan-out statistics from edges."""
    fan_in: dict[str, int] = {}
    fan_out: dict[str, int] = {}

    for source, target in edges:
        fan_out[source] = fan_out.get(source, 0) + 1
        fan_in[target] = fan_in.get(target, 0) + 1

    return fan_in, fan_out


def build_deps_summary(graph: dict[str, set[str]], *, top_n: int = 10) -> DepsSummary:
    """Summarize a module dependency graph."""
    edges = graph_edges(graph)
    fan_in, fan_out = compute_fan_stats(edges)
    top_modules = sorted(fan_in, key=lambda m: (-fan_in[m], m))[:top_n]

    return DepsSummary(
        node_count=len(graph),
        edge_count=len(edges),
        cycles=find_cycles(graph),
        fan_in=dict(sorted(fan_in.items())),
        fan_out=dict(sorted(fan_out.items())),
        top_modules=top_modules,
    )
