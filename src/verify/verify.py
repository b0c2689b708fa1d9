"""Determinism verification for geiger reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import orjson

from report.write import generate_report, serialize_report
from scan.models import ScanMode

if TYPE_CHECKING:
    from pathlib import Path

    from rules.config import GeigerConfig


@dataclass(frozen=True)
class DeterminismResult:
    ok: bool
    differing_keys: tuple[str, ...] = field(default_factory=tuple)


def _differing_keys(original: object, regenerated: object) -> list[str]:
    if not isinstance(original, dict) or not isinstance(regenerated, dict):
        return ["<root>"]
    keys: list[str] = []
    for key in sorted(set(original) | set(regenerated)):
        if original.get(key) != regenerated.get(key):
            keys.append(key)
    # Same content, different bytes
    return keys or ["<formatting>"]


def verify_report_determinism(
    *,
    manifest_path: Path,
    report_path: Path,
    config: GeigerConfig | None = None,
) -> DeterminismResult:
    """Verify that a report regenerates byte-for-byte.

    The scan mode follows the ``report_kind`` of the existing report. On a
    mismatch the top-level keys whose values differ are reported.

    Args:
        manifest_path: Path to the root Cargo.toml.
        report_path: Existing report to compare against.
        config: Optional configuration used for the regeneration.

    Returns:
        DeterminismResult with ok status and the differing top-level keys.

    Raises:
        FileNotFoundError: If report_path does not exist.
        ValueError: If the existing report is not a recognized report.
    """
    if not report_path.is_file():
        msg = f"Report file does not exist: {report_path}"
        raise FileNotFoundError(msg)

    original_bytes = report_path.read_bytes()
    try:
        original = orjson.loads(original_bytes)
    except orjson.JSONDecodeError as exc:
        msg = f"Report is not valid JSON: {report_path}"
        raise ValueError(msg) from exc

    kind = original.get("report_kind") if isinstance(original, dict) else None
    if kind == "safety":
        mode = ScanMode.FULL
    elif kind == "quick":
        mode = ScanMode.ENTRY_POINTS_ONLY
    else:
        msg = f"Unknown report_kind {kind!r} in {report_path}"
        raise ValueError(msg)

    regenerated_bytes = serialize_report(
        generate_report(manifest_path=manifest_path, mode=mode, config=config)
    )
    if regenerated_bytes == original_bytes:
        return DeterminismResult(ok=True)

    regenerated = orjson.loads(regenerated_bytes)
    return DeterminismResult(
        ok=False, differing_keys=tuple(_differing_keys(original, regenerated))
    )


__all__ = ["DeterminismResult", "verify_report_determinism"]
