"""Dependency tree rows annotated with package metrics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from graph.algos import walk_tree

if TYPE_CHECKING:
    from graph.models import DependencyKind, Graph, Package
    from metrics.aggregate import AggregatedMetrics
    from scan.models import CounterBlock


@dataclass(frozen=True)
class AnnotatedRow:
    depth: int
    package: Package
    kind: DependencyKind | None
    repeated: bool
    counters: CounterBlock | None
    forbids_unsafe: bool


def annotate_tree(
    graph: Graph,
    aggregated: AggregatedMetrics,
    *,
    invert: bool = False,
    start: str | None = None,
    all_nodes: bool = False,
) -> list[AnnotatedRow]:
    """Return tree rows for presentation; ``counters`` is None without metrics.

    With ``invert`` the walk follows dependents instead of dependencies,
    usually starting from a dependency given as ``start``.
    """
    view = graph.inverted() if invert else graph
    start_node = graph.index[start] if start is not None else None
    rows: list[AnnotatedRow] = []
    for row in walk_tree(view, start=start_node, all_nodes=all_nodes):
        package = view.nodes[row.node]
        metrics = aggregated.packages.get(package.id)
        rows.append(
            AnnotatedRow(
                depth=row.depth,
                package=package,
                kind=row.kind,
                repeated=row.repeated,
                counters=metrics.counters if metrics is not None else None,
                forbids_unsafe=metrics.forbids_unsafe if metrics is not None else False,
            )
        )
    return rows


def format_prefix_depth(rows: list[AnnotatedRow]) -> list[str]:
    """Render rows as ``<depth> <id> <unsafe>/<total>`` lines, ``?`` when unknown."""
    lines: list[str] = []
    for row in rows:
        if row.counters is None:
            usage = "?"
        else:
            usage = f"{row.counters.unsafe_total}/{row.counters.total}"
        marker = " (*)" if row.repeated else ""
        lock = " !" if row.forbids_unsafe else ""
        lines.append(f"{row.depth} {row.package.id} {usage}{lock}{marker}")
    return lines


__all__ = ["AnnotatedRow", "annotate_tree", "format_prefix_depth"]
