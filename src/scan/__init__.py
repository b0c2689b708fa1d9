"""Source scanning for geiger-core."""

from __future__ import annotations

from typing import TYPE_CHECKING

from scan.models import (
    Count,
    CounterBlock,
    ScanContext,
    ScanMode,
    SourceFileMetrics,
)

if TYPE_CHECKING:
    from graph.models import Graph


def find_unsafe(
    graph: Graph,
    *,
    mode: ScanMode,
    include_tests: bool = False,
    max_workers: int | None = None,
) -> ScanContext:
    """Scan the packages of ``graph`` via lazy import to avoid package import cycles."""
    from scan.find import find_unsafe as _find_unsafe

    return _find_unsafe(
        graph, mode=mode, include_tests=include_tests, max_workers=max_workers
    )


__all__ = [
    "Count",
    "CounterBlock",
    "ScanContext",
    "ScanMode",
    "SourceFileMetrics",
    "find_unsafe",
]
