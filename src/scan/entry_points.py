"""Compilation target entry files."""

from __future__ import annotations

from typing import TYPE_CHECKING

from utils import canonical_path

if TYPE_CHECKING:
    from pathlib import Path

    from graph.models import Package

BUILD_TARGET_KINDS = frozenset(
    {"lib", "rlib", "dylib", "cdylib", "staticlib", "proc-macro", "bin", "custom-build"}
)
TEST_TARGET_KINDS = frozenset({"test", "bench", "example"})


def entry_files(package: Package, *, include_tests: bool = False) -> list[Path]:
    """Return the canonical entry files of the package's compiled targets.

    Test, bench and example targets are only included with
    ``include_tests``, matching what a check build of the package compiles.
    """
    kinds = BUILD_TARGET_KINDS | TEST_TARGET_KINDS if include_tests else BUILD_TARGET_KINDS
    base = package.manifest_path.parent
    paths = {
        canonical_path(target.src_path, base)
        for target in package.targets
        if kinds.intersection(target.kinds)
    }
    return sorted(paths)


__all__ = ["BUILD_TARGET_KINDS", "TEST_TARGET_KINDS", "entry_files"]
