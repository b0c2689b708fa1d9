"""Worklist scanning of Rust source files.

Files form a graph through ``mod`` declarations and ``include!``. The scan
walks it with an explicit worklist: every file is claimed once in a
lock-protected arena keyed by canonical path, parsed on a bounded thread
pool, and its children are claimed and scheduled as soon as it completes.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from threading import Lock
from typing import TYPE_CHECKING

from errors import ParseError
from parse.treesitter_unsafe import scan_file_treesitter, scan_forbid_treesitter
from scan.models import ScanMode, SourceFileMetrics
from scan.modules import resolve_module_file
from utils import canonical_path

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

    from parse.treesitter_unsafe import ModuleDeclaration

logger = logging.getLogger(__name__)

# Default worker count: use CPU count, capped at 8 to avoid overwhelming I/O
_DEFAULT_WORKERS = min(os.cpu_count() or 4, 8)


@dataclass(frozen=True)
class PendingFile:
    path: Path
    package_id: str
    is_mod_root: bool = True
    is_entry_point: bool = False


@dataclass
class FileRecord:
    """Arena slot for one file; written only by the worker that scans it."""

    id: int
    path: Path
    package_id: str
    is_mod_root: bool
    is_entry_point: bool
    metrics: SourceFileMetrics | None = None
    error: ParseError | None = None
    warnings: list[str] = field(default_factory=list)


class FileArena:
    """File records indexed by integer id, deduplicated by canonical path."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._records: list[FileRecord] = []
        self._ids: dict[Path, int] = {}

    def claim(self, pending: PendingFile) -> FileRecord | None:
        """Allocate a record for ``pending``; None if the path was already claimed."""
        with self._lock:
            if pending.path in self._ids:
                return None
            record = FileRecord(
                id=len(self._records),
                path=pending.path,
                package_id=pending.package_id,
                is_mod_root=pending.is_mod_root,
                is_entry_point=pending.is_entry_point,
            )
            self._records.append(record)
            self._ids[pending.path] = record.id
            return record

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __iter__(self) -> Iterator[FileRecord]:
        with self._lock:
            records = list(self._records)
        return iter(records)


def _children(
    record: FileRecord,
    modules: list[ModuleDeclaration],
    includes: list[str],
) -> list[PendingFile]:
    children: list[PendingFile] = []
    for declaration in modules:
        resolved = resolve_module_file(
            record.path, declaration, is_mod_root=record.is_mod_root
        )
        if resolved is None:
            record.warnings.append(
                f"{record.path}:{declaration.line}: no source file found for "
                f"module `{declaration.name}`"
            )
            continue
        path, is_mod_root = resolved
        children.append(PendingFile(path, record.package_id, is_mod_root))

    for include in includes:
        target = canonical_path(include, record.path.parent)
        if not target.is_file():
            record.warnings.append(f"{record.path}: included file {include!r} not found")
            continue
        children.append(PendingFile(target, record.package_id, True))
    return children


def scan_record(
    record: FileRecord,
    *,
    mode: ScanMode,
    include_tests: bool,
) -> list[PendingFile]:
    """Scan one file into its record and return the files it pulls in.

    A ParseError is stored on the record instead of propagating, so sibling
    files keep scanning.
    """
    try:
        if mode is ScanMode.ENTRY_POINTS_ONLY:
            result = scan_forbid_treesitter(record.path)
        else:
            result = scan_file_treesitter(record.path, include_tests=include_tests)
    except ParseError as exc:
        logger.warning("Excluding unparsable file %s", exc)
        record.error = exc
        return []

    record.metrics = SourceFileMetrics(
        path=record.path,
        counters=result.counters,
        forbids_unsafe=result.forbids_unsafe,
        is_entry_point=record.is_entry_point,
    )
    record.warnings.extend(result.warnings)
    if mode is ScanMode.ENTRY_POINTS_ONLY:
        children: list[PendingFile] = []
    else:
        children = _children(record, result.modules, result.includes)

    for warning in record.warnings:
        logger.warning("%s", warning)
    logger.debug("Scanned %s (%d child files)", record.path, len(children))
    return children


def run_worklist(
    initial: Iterable[PendingFile],
    *,
    mode: ScanMode,
    include_tests: bool = False,
    max_workers: int | None = None,
) -> FileArena:
    """Scan ``initial`` files and everything they reach, each exactly once.

    Args:
        initial: Entry files with their owning package ids
        mode: Full follows modules and includes; EntryPointsOnly does not
        include_tests: Count test-only code
        max_workers: Thread pool size (default: CPU count, capped at 8)

    Returns:
        The arena of file records in claim order.
    """
    arena = FileArena()
    with ThreadPoolExecutor(max_workers=max_workers or _DEFAULT_WORKERS) as executor:
        pending: set[Future[list[PendingFile]]] = set()
        queue = list(initial)
        while queue or pending:
            for item in queue:
                record = arena.claim(item)
                if record is None:
                    logger.debug("Already scheduled: %s", item.path)
                    continue
                pending.add(
                    executor.submit(
                        scan_record, record, mode=mode, include_tests=include_tests
                    )
                )
            queue = []
            if not pending:
                continue

            done, pending = wait(pending, return_when=FIRST_COMPLETED)
            for future in done:
                queue.extend(future.result())

    return arena


__all__ = ["FileArena", "FileRecord", "PendingFile", "run_worklist", "scan_record"]
