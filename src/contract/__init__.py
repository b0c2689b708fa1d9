"""Stable report contract surface for geiger-core.

Treat these exports as the authoritative boundary for consumers of
geiger reports.
"""

from contract.report import (
    QUICK_REPORT_JSON,
    REPORT_SCHEMA_VERSION,
    REPORT_SPECS,
    SAFETY_REPORT_JSON,
    ReportSpec,
)


def __getattr__(name: str) -> object:
    if name in {"QuickSafetyReport", "SafetyReport"}:
        from contract.models import QuickSafetyReport, SafetyReport

        return {
            "QuickSafetyReport": QuickSafetyReport,
            "SafetyReport": SafetyReport,
        }[name]

    if name in {"ValidationMessage", "ValidationResult", "validate_report"}:
        from contract.validation import (
            ValidationMessage,
            ValidationResult,
            validate_report,
        )

        return {
            "ValidationMessage": ValidationMessage,
            "ValidationResult": ValidationResult,
            "validate_report": validate_report,
        }[name]

    msg = f"module 'contract' has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "QUICK_REPORT_JSON",
    "REPORT_SCHEMA_VERSION",
    "REPORT_SPECS",
    "SAFETY_REPORT_JSON",
    "QuickSafetyReport",
    "ReportSpec",
    "SafetyReport",
    "ValidationMessage",
    "ValidationResult",
    "validate_report",
]
