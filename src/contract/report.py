"""Report contract definitions.

This module defines the stable boundary between geiger-core and the
presentation layers that consume its reports.
"""

from __future__ import annotations

from dataclasses import dataclass

# Report schema version, bumped on any incompatible field change.
REPORT_SCHEMA_VERSION = 1

# Default report filenames inside the output directory.
SAFETY_REPORT_JSON = "geiger-report.json"
QUICK_REPORT_JSON = "geiger-quick-report.json"


@dataclass(frozen=True)
class ReportSpec:
    """Specification for one report shape."""

    report_kind: str
    filename: str
    required_fields_note: str


REPORT_SPECS: dict[str, ReportSpec] = {
    "safety": ReportSpec(
        report_kind="safety",
        filename=SAFETY_REPORT_JSON,
        required_fields_note="SafetyReport fields required by contract.",
    ),
    "quick": ReportSpec(
        report_kind="quick",
        filename=QUICK_REPORT_JSON,
        required_fields_note="QuickSafetyReport fields required by contract.",
    ),
}
