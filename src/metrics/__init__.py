"""Per-package metric aggregation."""

from metrics.aggregate import (
    AggregatedMetrics,
    PackageMetrics,
    package_metrics,
)
from metrics.stats import (
    UnsafeStats,
    files_used_but_not_scanned,
    unsafe_ratio,
    unsafe_stats,
)

__all__ = [
    "AggregatedMetrics",
    "PackageMetrics",
    "UnsafeStats",
    "files_used_but_not_scanned",
    "package_metrics",
    "unsafe_ratio",
    "unsafe_stats",
]
