"""Scan every package of a dependency graph for unsafe usage."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from scan.entry_points import entry_files
from scan.models import ScanContext, ScanMode
from scan.worklist import PendingFile, run_worklist

if TYPE_CHECKING:
    from pathlib import Path

    from graph.models import Graph
    from scan.worklist import FileArena

logger = logging.getLogger(__name__)


def _freeze(arena: FileArena, mode: ScanMode) -> ScanContext:
    context = ScanContext(mode=mode)
    visited: set[Path] = set()
    for record in arena:
        visited.add(record.path)
        context.warnings.extend(record.warnings)
        if record.error is not None:
            context.parse_errors.append(record.error)
            continue
        if record.metrics is None:
            continue
        context.files[record.path] = record.metrics
        context.package_files.setdefault(record.package_id, []).append(record.path)
    context.visited_paths = frozenset(visited)
    return context


def find_unsafe(
    graph: Graph,
    *,
    mode: ScanMode,
    include_tests: bool = False,
    max_workers: int | None = None,
) -> ScanContext:
    """Scan the packages of ``graph`` in the given mode.

    Packages without a local source root are skipped; they end up without
    metrics downstream.
    """
    initial: list[PendingFile] = []
    for package in graph.packages():
        if package.source_root is None:
            logger.debug("No local source for %s; not scanned", package.id)
            continue
        for path in entry_files(package, include_tests=include_tests):
            initial.append(
                PendingFile(path=path, package_id=package.id, is_entry_point=True)
            )

    arena = run_worklist(
        initial, mode=mode, include_tests=include_tests, max_workers=max_workers
    )
    context = _freeze(arena, mode)
    logger.info(
        "Scanned %d files (%s mode): %d parse errors, %d warnings",
        len(context.files),
        mode.value,
        len(context.parse_errors),
        len(context.warnings),
    )
    return context


__all__ = ["find_unsafe"]
