"""Report models.

The Full scan and the quick scan produce two distinct report records, each
tagged with ``report_kind`` and keyed by package id.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from contract.report import REPORT_SCHEMA_VERSION
from scan.models import Count, CounterBlock


class CountModel(BaseModel):
    safe: int = Field(default=0, ge=0)
    unsafe: int = Field(default=0, ge=0)

    @classmethod
    def from_count(cls, count: Count) -> CountModel:
        return cls(safe=count.safe, unsafe=count.unsafe)


class CounterBlockModel(BaseModel):
    """Per-category safe/unsafe counts."""

    functions: CountModel = Field(default_factory=CountModel)
    exprs: CountModel = Field(default_factory=CountModel)
    item_impls: CountModel = Field(default_factory=CountModel)
    item_traits: CountModel = Field(default_factory=CountModel)
    methods: CountModel = Field(default_factory=CountModel)

    @classmethod
    def from_counters(cls, counters: CounterBlock) -> CounterBlockModel:
        return cls(
            **{
                name: CountModel.from_count(count)
                for name, count in counters.categories().items()
            }
        )


class PackageInfo(BaseModel):
    id: str
    name: str
    version: str
    source: str | None = None


class UnsafeInfo(BaseModel):
    used: CounterBlockModel = Field(
        default_factory=CounterBlockModel,
        description="Counts from files that are part of the compiled build",
    )
    unused: CounterBlockModel = Field(
        default_factory=CounterBlockModel,
        description="Counts from scanned files the build does not compile",
    )
    forbids_unsafe: bool = False


class ReportEntry(BaseModel):
    package: PackageInfo
    unsafety: UnsafeInfo
    unsafe_ratio: float = Field(
        ge=0.0, le=1.0, description="Unsafe share of the used counts"
    )


class SafetyReport(BaseModel):
    """Full scan report."""

    schema_version: int = Field(default=REPORT_SCHEMA_VERSION)
    report_kind: Literal["safety"] = "safety"
    packages: dict[str, ReportEntry] = Field(default_factory=dict)
    packages_without_metrics: list[str] = Field(default_factory=list)
    used_but_not_scanned_files: list[str] = Field(default_factory=list)
    parse_errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class QuickReportEntry(BaseModel):
    package: PackageInfo
    forbids_unsafe: bool


class QuickSafetyReport(BaseModel):
    """Entry-points-only report: one forbid verdict per package."""

    schema_version: int = Field(default=REPORT_SCHEMA_VERSION)
    report_kind: Literal["quick"] = "quick"
    packages: dict[str, QuickReportEntry] = Field(default_factory=dict)
    packages_without_metrics: list[str] = Field(default_factory=list)


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
