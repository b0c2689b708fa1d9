"""Report builders for Full and quick scans."""

from __future__ import annotations

from typing import TYPE_CHECKING

from metrics.stats import files_used_but_not_scanned, unsafe_ratio, unsafe_stats
from report.models import (
    CounterBlockModel,
    PackageInfo,
    QuickReportEntry,
    QuickSafetyReport,
    ReportEntry,
    SafetyReport,
    UnsafeInfo,
)
from utils import display_path

if TYPE_CHECKING:
    from pathlib import Path

    from graph.models import Graph, Package
    from metrics.aggregate import AggregatedMetrics
    from scan.models import ScanContext


def package_info(package: Package) -> PackageInfo:
    return PackageInfo(
        id=package.id,
        name=package.name,
        version=package.version,
        source=package.source,
    )


def build_safety_report(
    graph: Graph,
    aggregated: AggregatedMetrics,
    compiled: frozenset[Path],
    context: ScanContext,
) -> SafetyReport:
    """Build the Full scan report.

    Args:
        graph: Filtered package graph
        aggregated: Package metrics from the Full scan
        compiled: Files the check build compiled
        context: The Full scan context, for the coverage cross-check

    Returns:
        SafetyReport with entries sorted by package id and sorted diagnostics.
    """
    packages: dict[str, ReportEntry] = {}
    for package in sorted(graph.packages(), key=lambda p: p.id):
        metrics = aggregated.packages.get(package.id)
        if metrics is None:
            continue
        stats = unsafe_stats(metrics, compiled)
        packages[package.id] = ReportEntry(
            package=package_info(package),
            unsafety=UnsafeInfo(
                used=CounterBlockModel.from_counters(stats.used),
                unused=CounterBlockModel.from_counters(stats.unused),
                forbids_unsafe=stats.forbids_unsafe,
            ),
            unsafe_ratio=unsafe_ratio(stats.used),
        )

    return SafetyReport(
        packages=packages,
        packages_without_metrics=sorted(aggregated.packages_without_metrics),
        used_but_not_scanned_files=[
            display_path(path) for path in files_used_but_not_scanned(context, compiled)
        ],
        parse_errors=sorted(str(error) for error in context.parse_errors),
        warnings=sorted(set(context.warnings)),
    )


def build_quick_report(graph: Graph, aggregated: AggregatedMetrics) -> QuickSafetyReport:
    """Build the quick report from an entry-points-only scan.

    A package is reported as forbidding unsafe code only when every entry file
    it owns carries the directive and nothing about it is unknown; missing or
    partial coverage reports ``False``.
    """
    packages: dict[str, QuickReportEntry] = {}
    for package in sorted(graph.packages(), key=lambda p: p.id):
        metrics = aggregated.packages.get(package.id)
        forbids = (
            metrics is not None
            and metrics.forbids_unsafe
            and package.id not in aggregated.packages_without_metrics
            and package.id not in aggregated.packages_with_parse_errors
        )
        packages[package.id] = QuickReportEntry(
            package=package_info(package),
            forbids_unsafe=forbids,
        )

    return QuickSafetyReport(
        packages=packages,
        packages_without_metrics=sorted(aggregated.packages_without_metrics),
    )


__all__ = ["build_quick_report", "build_safety_report", "package_info"]
