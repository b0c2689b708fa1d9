"""Validation helpers for geiger report files."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import orjson
from pydantic import ValidationError

from contract.report import REPORT_SCHEMA_VERSION, REPORT_SPECS
from report.models import QuickSafetyReport, SafetyReport

if TYPE_CHECKING:
    from pathlib import Path

_MODELS: dict[str, type[SafetyReport] | type[QuickSafetyReport]] = {
    "safety": SafetyReport,
    "quick": QuickSafetyReport,
}


@dataclass(frozen=True)
class ValidationMessage:
    report: str
    path: Path
    message: str
    package: str | None = None

    def location(self) -> str:
        if self.package is None:
            return str(self.path)
        return f"{self.path}[{self.package}]"

    def to_dict(self) -> dict[str, object]:
        return {
            "report": self.report,
            "path": str(self.path),
            "package": self.package,
            "message": self.message,
        }


@dataclass
class ValidationResult:
    report_kind: str | None = None
    errors: list[ValidationMessage] = field(default_factory=list)
    warnings: list[ValidationMessage] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def validate_report(
    path: Path, *, strict_schema_version: bool = False
) -> ValidationResult:
    """Validate one report file against its contract model.

    The report kind is read from the ``report_kind`` tag. Besides schema
    validation, entries must be keyed by their own package id and the
    diagnostic lists must be sorted.
    """
    result = ValidationResult()

    if not path.is_file():
        result.errors.append(
            ValidationMessage(
                report="report", path=path, message="Report file does not exist."
            )
        )
        return result

    try:
        raw = orjson.loads(path.read_bytes())
    except (OSError, orjson.JSONDecodeError) as exc:
        result.errors.append(
            ValidationMessage(report="report", path=path, message=f"Invalid JSON: {exc}.")
        )
        return result

    if not isinstance(raw, dict):
        result.errors.append(
            ValidationMessage(
                report="report", path=path, message="Expected a JSON object."
            )
        )
        return result

    kind = raw.get("report_kind")
    if kind not in REPORT_SPECS:
        result.errors.append(
            ValidationMessage(
                report="report",
                path=path,
                message=f"Unknown report_kind: {kind!r}.",
            )
        )
        return result
    result.report_kind = kind

    schema_present = "schema_version" in raw
    try:
        report = _MODELS[kind].model_validate(raw)
    except ValidationError as exc:
        result.errors.append(
            ValidationMessage(
                report=kind, path=path, message=f"Schema validation failed: {exc}."
            )
        )
        return result

    _check_schema_version(
        kind,
        path,
        schema_present,
        report.schema_version,
        result,
        strict_schema_version=strict_schema_version,
    )
    _check_entries(kind, path, report, result)
    return result


def _check_entries(
    kind: str,
    path: Path,
    report: SafetyReport | QuickSafetyReport,
    result: ValidationResult,
) -> None:
    for key, entry in report.packages.items():
        if entry.package.id != key:
            result.errors.append(
                ValidationMessage(
                    report=kind,
                    path=path,
                    package=key,
                    message=f"Entry is keyed by {key!r} but describes {entry.package.id!r}.",
                )
            )
        if key in report.packages_without_metrics and getattr(
            entry, "forbids_unsafe", False
        ):
            result.errors.append(
                ValidationMessage(
                    report=kind,
                    path=path,
                    package=key,
                    message="Package without metrics cannot forbid unsafe code.",
                )
            )

    lists: dict[str, list[Any]] = {
        "packages_without_metrics": report.packages_without_metrics
    }
    if isinstance(report, SafetyReport):
        lists["used_but_not_scanned_files"] = report.used_but_not_scanned_files
        lists["parse_errors"] = report.parse_errors
        lists["warnings"] = report.warnings
    for name, values in lists.items():
        if values != sorted(values):
            result.errors.append(
                ValidationMessage(
                    report=kind, path=path, message=f"{name} is not sorted."
                )
            )


def _check_schema_version(
    kind: str,
    path: Path,
    schema_present: bool,
    schema_version: int,
    result: ValidationResult,
    *,
    strict_schema_version: bool,
) -> None:
    if schema_present and schema_version != REPORT_SCHEMA_VERSION:
        result.errors.append(
            ValidationMessage(
                report=kind,
                path=path,
                message=(
                    "Schema version mismatch: "
                    f"expected {REPORT_SCHEMA_VERSION}, got {schema_version}."
                ),
            )
        )
        return

    if not schema_present:
        message = f"Missing schema_version; defaulted to {REPORT_SCHEMA_VERSION}."
        target = result.errors if strict_schema_version else result.warnings
        target.append(ValidationMessage(report=kind, path=path, message=message))


__all__ = [
    "ValidationMessage",
    "ValidationResult",
    "validate_report",
]
