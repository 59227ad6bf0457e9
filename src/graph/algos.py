"""Graph algorithms for the reconstructed module dependency graph."""

from __future__ import annotations

from typing import TYPE_CHECKING

from utils import strip_current_dir

if TYPE_CHECKING:
    from collections.abc import Iterable

    from rewrite.pipeline import ModuleResult


def build_dependency_graph(modules: Iterable[ModuleResult]) -> dict[str, set[str]]:
    """Build a dependency graph between reconstructed modules.

    Args:
        modules: Pipeline results carrying resolved dependency paths

    Returns:
        Mapping of module path to the set of module paths it imports.
        Dependencies outside the reconstructed set (vendored packages)
        are not graph nodes.
    """
    results = list(modules)
    known = {result.path for result in results}

    graph: dict[str, set[str]] = {}
    for result in results:
        targets = graph.setdefault(result.path, set())
        for dependency in result.record.dependencies:
            target = strip_current_dir(dependency)
            if target in known:
                targets.add(target)
    return graph


def graph_edges(graph: dict[str, set[str]]) -> list[tuple[str, str]]:
    """Return sorted (source, target) pairs."""
    return sorted(
        (source, target) for source, targets in graph.items() for target in targets
    )


class _TarjanState:
    """Mutable state for one strongly-connected-components pass."""

    def __init__(self) -> None:
        self.counter = 0
        self.indices: dict[str, int] = {}
        self.low_link: dict[str, int] = {}
        self.on_stack: set[str] = set()
        self.stack: list[str] = []
        self.components: list[list[str]] = []

    def visit(self, node: str) -> None:
        self.indices[node] = self.counter
        self.low_link[node] = self.counter
        self.counter += 1
        self.stack.append(node)
        self.on_stack.add(node)

    def pop_component(self, root: str) -> list[str]:
        component: list[str] = []
        while True:
            member = self.stack.pop()
            self.on_stack.discard(member)
            component.append(member)
            if member == root:
                return component


def _strongconnect(
    start: str, graph: dict[str, set[str]], state: _TarjanState
) -> None:
    """Iterative Tarjan visit so deep import chains cannot exhaust the stack."""
    state.visit(start)
    work: list[tuple[str, list[str]]] = [(start, sorted(graph.get(start, set())))]

    while work:
        node, pending = work[-1]
        if pending:
            neighbor = pending.pop(0)
            if neighbor not in state.indices:
                state.visit(neighbor)
                work.append((neighbor, sorted(graph.get(neighbor, set()))))
            elif neighbor in state.on_stack:
                state.low_link[node] = min(
                    state.low_link[node], state.indices[neighbor]
                )
            continue

        work.pop()
        if work:
            parent = work[-1][0]
            state.low_link[parent] = min(state.low_link[parent], state.low_link[node])

        if state.low_link[node] == state.indices[node]:
            component = state.pop_component(node)
            if len(component) > 1 or node in graph.get(node, set()):
                state.components.append(sorted(component))


def find_cycles(graph: dict[str, set[str]]) -> list[list[str]]:
    """Find import cycles (strongly connected components).

    Returns:
        Sorted list of cycles; each cycle is a sorted list of module paths.
    """
    state = _TarjanState()
    for node in sorted(graph):
        if node not in state.indices:
            _strongconnect(node, graph, state)
    return sorted(state.components)


__all__ = ["build_dependency_graph", "find_cycles", "graph_edges"]
