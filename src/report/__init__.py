"""Report generation entry points."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from report.models import QuickSafetyReport, SafetyReport
    from rules.config import GeigerConfig
    from scan.models import ScanMode


def generate_report(
    *,
    manifest_path: Path,
    mode: ScanMode | None = None,
    config: GeigerConfig | None = None,
) -> SafetyReport | QuickSafetyReport:
    """Generate a report via lazy import to avoid package import cycles."""
    from report.write import generate_report as _generate_report
    from scan.models import ScanMode

    return _generate_report(
        manifest_path=manifest_path,
        mode=mode or ScanMode.FULL,
        config=config,
    )


__all__ = ["generate_report"]
