"""Resolve the set of Rust files a real check build compiles."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from errors import BuildResolutionError
from resolve.cargo import cargo_command, feature_flags, run_tool
from resolve.depinfo import iter_dep_info_files, parse_dep_info
from utils import canonical_path

if TYPE_CHECKING:
    from rules.config import CargoConfig, FeaturesConfig, TargetConfig

logger = logging.getLogger(__name__)

# Stable stand-in for the throwaway check directory in generated file paths
TARGET_DIR_TOKEN = "<target-dir>"


def build_check_command(
    manifest_path: Path,
    target_dir: Path,
    *,
    features: FeaturesConfig,
    target: TargetConfig,
    cargo: CargoConfig,
    package: str | None = None,
) -> list[str]:
    """Return the ``cargo check`` invocation for the selection."""
    command = [
        cargo_command(),
        "check",
        "--manifest-path",
        str(manifest_path),
        "--target-dir",
        str(target_dir),
        *feature_flags(features),
    ]
    if package:
        command.extend(["--package", package])
    if target.target:
        command.extend(["--target", target.target])
    command.extend(cargo.flags())
    return command


def collect_compiled_files(target_dir: Path, workspace_root: Path) -> frozenset[Path]:
    """Read every unit's dep-info under ``target_dir`` into canonical paths.

    Relative prerequisites are resolved against the workspace root, which is
    the directory cargo runs rustc from. Files generated under ``target_dir``
    (build script `OUT_DIR` output) are rewritten below ``TARGET_DIR_TOKEN``
    since the directory does not outlive the check build.
    """
    build_root = canonical_path(target_dir)
    compiled: set[Path] = set()
    units = 0
    for dep_info in iter_dep_info_files(target_dir):
        units += 1
        try:
            text = dep_info.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"Cannot read dep-info file {dep_info}: {exc}"
            raise BuildResolutionError(msg) from exc
        for dependency in parse_dep_info(text):
            if not dependency.endswith(".rs"):
                continue
            path = canonical_path(dependency, workspace_root)
            if path.is_relative_to(build_root):
                path = Path(TARGET_DIR_TOKEN) / path.relative_to(build_root)
            compiled.add(path)
    logger.info("Compiled file set: %d files from %d units", len(compiled), units)
    return frozenset(compiled)


def resolve_compiled_files(
    manifest_path: Path,
    *,
    workspace_root: Path,
    features: FeaturesConfig,
    target: TargetConfig,
    cargo: CargoConfig,
    package: str | None = None,
) -> frozenset[Path]:
    """Ask cargo which ``.rs`` files a check build for the selection compiles.

    Conditional compilation and generated modules make walking the module
    tree unreliable, so the answer comes from a real type-check-only build
    into a fresh target directory, read back from rustc's dep-info files.

    Args:
        manifest_path: Path to Cargo.toml
        workspace_root: Workspace root from cargo metadata
        features: Feature selection
        target: Target platform selection
        cargo: Pass-through cargo flags
        package: Optional package spec to build

    Returns:
        Frozen set of canonical source paths.

    Raises:
        BuildResolutionError: If cargo cannot produce the compile plan.
    """
    with tempfile.TemporaryDirectory(prefix="geiger-check-") as temp_dir:
        target_dir = Path(temp_dir)
        command = build_check_command(
            manifest_path,
            target_dir,
            features=features,
            target=target,
            cargo=cargo,
            package=package,
        )
        run_tool(command, error=BuildResolutionError, cwd=workspace_root)
        return collect_compiled_files(target_dir, workspace_root)


__all__ = [
    "TARGET_DIR_TOKEN",
    "build_check_command",
    "collect_compiled_files",
    "resolve_compiled_files",
]
