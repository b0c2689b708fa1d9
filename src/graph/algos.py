"""Graph algorithms for package graphs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from graph.models import DependencyKind, Graph


@dataclass(frozen=True)
class TreeRow:
    """One line of a dependency tree walk."""

    depth: int
    node: int
    kind: DependencyKind | None
    repeated: bool = False


def reachable(graph: Graph, start: int | None = None) -> set[int]:
    """Return the node indices reachable from ``start`` (default: root)."""
    start = graph.root if start is None else start
    seen = {start}
    stack = [start]
    while stack:
        node = stack.pop()
        for neighbor, _kind in graph.neighbors(node):
            if neighbor not in seen:
                seen.add(neighbor)
                stack.append(neighbor)
    return seen


def walk_tree(
    graph: Graph,
    *,
    start: int | None = None,
    all_nodes: bool = False,
) -> Iterator[TreeRow]:
    """Walk the graph depth-first from ``start`` (default: root) in tree order.

    A package already expanded elsewhere is emitted once more with
    ``repeated=True`` and not expanded again, unless ``all_nodes`` is set.
    Packages on the current path are never re-entered, which keeps the walk
    finite for dev-dependency cycles and inverted graphs.

    Args:
        graph: Graph or inverted view to walk
        start: Node index to start from
        all_nodes: Expand repeated subtrees instead of truncating them

    Yields:
        TreeRow for every visited position in the tree.
    """
    expanded: set[int] = set()
    stack: list[tuple[int, int, DependencyKind | None, frozenset[int]]] = [
        (graph.root if start is None else start, 0, None, frozenset())
    ]
    while stack:
        node, depth, kind, path = stack.pop()
        repeated = node in expanded or node in path
        if repeated and (not all_nodes or node in path):
            yield TreeRow(depth=depth, node=node, kind=kind, repeated=True)
            continue

        yield TreeRow(depth=depth, node=node, kind=kind)
        expanded.add(node)
        children = sorted(
            graph.neighbors(node),
            key=lambda entry: (entry[1].value, graph.nodes[entry[0]].id),
        )
        for child, child_kind in reversed(children):
            stack.append((child, depth + 1, child_kind, path | {node}))


__all__ = ["TreeRow", "reachable", "walk_tree"]
