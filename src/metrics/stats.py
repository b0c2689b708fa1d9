"""Compiled-versus-scanned statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from scan.models import CounterBlock

if TYPE_CHECKING:
    from pathlib import Path

    from metrics.aggregate import PackageMetrics
    from scan.models import ScanContext


@dataclass(frozen=True)
class UnsafeStats:
    """Counters split by whether the file is part of the compiled build."""

    used: CounterBlock = field(default_factory=CounterBlock)
    unused: CounterBlock = field(default_factory=CounterBlock)
    forbids_unsafe: bool = False


def unsafe_stats(metrics: PackageMetrics, compiled: frozenset[Path]) -> UnsafeStats:
    used = CounterBlock()
    unused = CounterBlock()
    for path, file_metrics in metrics.files.items():
        if path in compiled:
            used = used + file_metrics.counters
        else:
            unused = unused + file_metrics.counters
    return UnsafeStats(used=used, unused=unused, forbids_unsafe=metrics.forbids_unsafe)


def files_used_but_not_scanned(
    context: ScanContext, compiled: frozenset[Path]
) -> list[Path]:
    """Return compiled files the scanner never visited, sorted."""
    return sorted(compiled - context.visited_paths)


def unsafe_ratio(counters: CounterBlock) -> float:
    """Share of unsafe occurrences among all counted occurrences."""
    if counters.total == 0:
        return 0.0
    return round(counters.unsafe_total / counters.total, 4)


__all__ = [
    "UnsafeStats",
    "files_used_but_not_scanned",
    "unsafe_ratio",
    "unsafe_stats",
]
