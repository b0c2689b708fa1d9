"""Scan result models.

Counters are plain mutable dataclasses: a scan only ever increments them,
and aggregation adds them up without touching the inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from errors import ParseError


class ScanMode(str, Enum):
    """Scan fidelity."""

    FULL = "full"
    ENTRY_POINTS_ONLY = "entry_points_only"


@dataclass
class Count:
    safe: int = 0
    unsafe: int = 0

    def count(self, is_unsafe: bool) -> None:
        if is_unsafe:
            self.unsafe += 1
        else:
            self.safe += 1

    def __add__(self, other: Count) -> Count:
        return Count(safe=self.safe + other.safe, unsafe=self.unsafe + other.unsafe)

    @property
    def total(self) -> int:
        return self.safe + self.unsafe


@dataclass
class CounterBlock:
    """Per-category safe/unsafe tallies for one file or package."""

    functions: Count = field(default_factory=Count)
    exprs: Count = field(default_factory=Count)
    item_impls: Count = field(default_factory=Count)
    item_traits: Count = field(default_factory=Count)
    methods: Count = field(default_factory=Count)

    def __add__(self, other: CounterBlock) -> CounterBlock:
        return CounterBlock(
            **{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)}
        )

    def categories(self) -> dict[str, Count]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @property
    def unsafe_total(self) -> int:
        return sum(count.unsafe for count in self.categories().values())

    @property
    def total(self) -> int:
        return sum(count.total for count in self.categories().values())

    def has_unsafe(self) -> bool:
        return self.unsafe_total > 0


@dataclass
class SourceFileMetrics:
    path: Path
    counters: CounterBlock = field(default_factory=CounterBlock)
    forbids_unsafe: bool = False
    is_entry_point: bool = False


@dataclass
class ScanContext:
    """Everything a scan learned, keyed by canonical file path.

    ``package_files`` keeps discovery order per package. ``visited_paths``
    covers every file the scanner opened, including files that failed to
    parse and are therefore absent from ``files``.
    """

    mode: ScanMode
    files: dict[Path, SourceFileMetrics] = field(default_factory=dict)
    package_files: dict[str, list[Path]] = field(default_factory=dict)
    parse_errors: list[ParseError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    visited_paths: frozenset[Path] = frozenset()

    def metrics_for(self, package_id: str) -> list[SourceFileMetrics]:
        return [
            self.files[path]
            for path in self.package_files.get(package_id, ())
            if path in self.files
        ]


__all__ = [
    "Count",
    "CounterBlock",
    "ScanContext",
    "ScanMode",
    "SourceFileMetrics",
]
