"""Fold per-file scan results onto the packages of the graph."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import reduce
from operator import add
from typing import TYPE_CHECKING

from scan.models import CounterBlock
from utils import owning_root

if TYPE_CHECKING:
    from pathlib import Path

    from graph.models import Graph
    from scan.models import ScanContext, SourceFileMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageMetrics:
    """Aggregated counters and the per-file breakdown of one package."""

    package_id: str
    files: dict[Path, SourceFileMetrics]
    counters: CounterBlock = field(default_factory=CounterBlock)

    @property
    def forbids_unsafe(self) -> bool:
        """True when every crate entry file carries `#![forbid(unsafe_code)]`.

        The directive is crate-scoped, so child module files never repeat it.
        """
        entries = [m for m in self.files.values() if m.is_entry_point]
        return bool(entries) and all(m.forbids_unsafe for m in entries)


@dataclass(frozen=True)
class AggregatedMetrics:
    """Package metrics plus the packages that have none.

    A package without metrics is unknown, not unsafe-free: it may have no
    local source or no files in the active build.
    """

    packages: dict[str, PackageMetrics]
    packages_without_metrics: frozenset[str]
    packages_with_parse_errors: frozenset[str] = frozenset()


def sum_counters(metrics: list[SourceFileMetrics]) -> CounterBlock:
    return reduce(add, (m.counters for m in metrics), CounterBlock())


def assign_owners(graph: Graph, paths: list[Path]) -> dict[Path, str]:
    """Map each path to the package with the longest matching source root."""
    roots = {
        package.source_root: package.id
        for package in graph.packages()
        if package.source_root is not None
    }
    owners: dict[Path, str] = {}
    for path in paths:
        owner = owning_root(path, roots)
        if owner is None:
            logger.debug("File %s is not owned by any package in the graph", path)
            continue
        owners[path] = owner
    return owners


def package_metrics(graph: Graph, context: ScanContext) -> AggregatedMetrics:
    """Aggregate scanned files onto graph packages.

    Args:
        graph: Filtered package graph
        context: Frozen scan results

    Returns:
        AggregatedMetrics in graph order; packages owning no scanned file are
        listed in ``packages_without_metrics`` and get no numeric entry.
    """
    owners = assign_owners(graph, list(context.files))
    error_owners = assign_owners(graph, [error.path for error in context.parse_errors])
    owned: dict[str, list[SourceFileMetrics]] = {}
    for path, owner in owners.items():
        owned.setdefault(owner, []).append(context.files[path])

    packages: dict[str, PackageMetrics] = {}
    without: set[str] = set()
    for package in graph.packages():
        files = sorted(owned.get(package.id, ()), key=lambda m: m.path)
        if not files:
            without.add(package.id)
            continue
        packages[package.id] = PackageMetrics(
            package_id=package.id,
            files={m.path: m for m in files},
            counters=sum_counters(files),
        )

    logger.info(
        "Aggregated metrics for %d packages; %d without metrics",
        len(packages),
        len(without),
    )
    return AggregatedMetrics(
        packages=packages,
        packages_without_metrics=frozenset(without),
        packages_with_parse_errors=frozenset(error_owners.values()),
    )


__all__ = [
    "AggregatedMetrics",
    "PackageMetrics",
    "assign_owners",
    "package_metrics",
    "sum_counters",
]
