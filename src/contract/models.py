"""Report models exposed at the contract boundary."""

from report.models import (
    CounterBlockModel,
    CountModel,
    PackageInfo,
    QuickReportEntry,
    QuickSafetyReport,
    ReportEntry,
    SafetyReport,
    UnsafeInfo,
)

__all__ = [
    "CountModel",
    "CounterBlockModel",
    "PackageInfo",
    "QuickReportEntry",
    "QuickSafetyReport",
    "ReportEntry",
    "SafetyReport",
    "UnsafeInfo",
]
