"""Subprocess boundary to cargo and rustc."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import TYPE_CHECKING, Any

import orjson

from errors import GeigerError, GraphResolutionError
from rules.cfg import TargetFilter, parse_cfg_entries

if TYPE_CHECKING:
    from pathlib import Path

    from rules.config import CargoConfig, FeaturesConfig, TargetConfig

logger = logging.getLogger(__name__)

_STDERR_TAIL_LINES = 20


def cargo_command() -> str:
    return os.environ.get("CARGO", "cargo")


def rustc_command() -> str:
    return os.environ.get("RUSTC", "rustc")


def feature_flags(features: FeaturesConfig) -> list[str]:
    flags: list[str] = []
    if features.features:
        flags.extend(["--features", " ".join(features.features)])
    if features.all_features:
        flags.append("--all-features")
    if features.no_default_features:
        flags.append("--no-default-features")
    return flags


def run_tool(
    command: list[str],
    *,
    error: type[GeigerError],
    cwd: Path | None = None,
) -> str:
    """Run an external tool and return its stdout.

    Raises:
        error: If the tool cannot be started or exits with a non-zero status;
            the message carries the tail of its stderr.
    """
    logger.debug("Running %s", " ".join(command))
    try:
        completed = subprocess.run(
            command,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        msg = f"Failed to run {command[0]}: {exc}"
        raise error(msg) from exc

    if completed.returncode != 0:
        tail = "\n".join((completed.stderr or "").splitlines()[-_STDERR_TAIL_LINES:])
        msg = f"`{' '.join(command[:2])}` exited with status {completed.returncode}"
        if tail:
            msg = f"{msg}:\n{tail}"
        raise error(msg)
    return completed.stdout


def load_cargo_metadata(
    manifest_path: Path,
    *,
    features: FeaturesConfig,
    cargo: CargoConfig,
) -> dict[str, Any]:
    """Return parsed ``cargo metadata`` output for the feature selection.

    Raises:
        GraphResolutionError: If cargo fails or prints invalid JSON.
    """
    command = [
        cargo_command(),
        "metadata",
        "--format-version",
        "1",
        "--manifest-path",
        str(manifest_path),
        *feature_flags(features),
        *cargo.flags(),
    ]
    stdout = run_tool(command, error=GraphResolutionError)
    try:
        metadata = orjson.loads(stdout)
    except orjson.JSONDecodeError as exc:
        msg = f"cargo metadata printed invalid JSON: {exc}"
        raise GraphResolutionError(msg) from exc
    if not isinstance(metadata, dict):
        msg = "cargo metadata output is not a JSON object"
        raise GraphResolutionError(msg)
    return metadata


def _host_triple() -> str | None:
    stdout = run_tool([rustc_command(), "-vV"], error=GraphResolutionError)
    for line in stdout.splitlines():
        if line.startswith("host:"):
            return line.split(":", 1)[1].strip()
    return None


def load_target_filter(target: TargetConfig) -> TargetFilter:
    """Build the platform filter from ``rustc --print cfg`` for the target.

    Raises:
        GraphResolutionError: If rustc cannot report the configuration.
    """
    if target.all_targets:
        return TargetFilter(all_targets=True)

    command = [rustc_command(), "--print", "cfg"]
    if target.target:
        command.extend(["--target", target.target])
    cfgs = parse_cfg_entries(run_tool(command, error=GraphResolutionError).splitlines())
    triple = target.target or _host_triple()
    logger.info("Target %s: %d cfg entries", triple, len(cfgs))
    return TargetFilter(triple=triple, cfgs=cfgs)


__all__ = [
    "cargo_command",
    "feature_flags",
    "load_cargo_metadata",
    "load_target_filter",
    "run_tool",
    "rustc_command",
]
