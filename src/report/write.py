from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson

from errors import SerializationError
from graph.builder import build_graph
from metrics.aggregate import package_metrics
from report.builders import build_quick_report, build_safety_report
from resolve.cargo import load_cargo_metadata, load_target_filter
from resolve.compiled_files import resolve_compiled_files
from rules.config import load_config
from scan.find import find_unsafe
from scan.models import ScanMode

if TYPE_CHECKING:
    from report.models import QuickSafetyReport, SafetyReport
    from rules.config import GeigerConfig

logger = logging.getLogger(__name__)


def serialize_report(report: SafetyReport | QuickSafetyReport) -> bytes:
    """Serialize a report to JSON with sorted keys and stable indentation.

    Raises:
        SerializationError: If the report cannot be encoded.
    """
    opts = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2
    try:
        return orjson.dumps(report.model_dump(mode="json"), option=opts)
    except (orjson.JSONEncodeError, TypeError, ValueError) as exc:
        msg = f"Cannot serialize {report.report_kind} report: {exc}"
        raise SerializationError(msg) from exc


def write_report(path: Path, report: SafetyReport | QuickSafetyReport) -> Path:
    payload = serialize_report(report)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
    return path


def generate_report(
    *,
    manifest_path: Path,
    mode: ScanMode = ScanMode.FULL,
    config: GeigerConfig | None = None,
    metadata: dict[str, Any] | None = None,
) -> SafetyReport | QuickSafetyReport:
    """Scan a cargo project and build its report.

    Args:
        manifest_path: Path to the root Cargo.toml
        mode: Full scan (safety report) or entry points only (quick report)
        config: Optional configuration; loaded from geiger.toml next to the
            manifest when omitted
        metadata: Optional pre-resolved cargo metadata

    Returns:
        SafetyReport for Full mode, QuickSafetyReport otherwise.

    Raises:
        GraphResolutionError: If metadata or the graph cannot be resolved.
        BuildResolutionError: If the Full mode compile plan cannot be produced.
    """
    if config is None:
        config = load_config(manifest_path.parent)

    if metadata is None:
        metadata = load_cargo_metadata(
            manifest_path, features=config.features, cargo=config.cargo
        )

    graph = build_graph(
        metadata,
        dependency_kinds=config.dependencies.kinds(),
        target_filter=load_target_filter(config.target),
        package=config.package,
    )

    if mode is ScanMode.ENTRY_POINTS_ONLY:
        context = find_unsafe(
            graph,
            mode=mode,
            include_tests=config.include_tests,
            max_workers=config.max_workers,
        )
        return build_quick_report(graph, package_metrics(graph, context))

    root = graph.root_package
    compiled = resolve_compiled_files(
        manifest_path,
        workspace_root=Path(metadata.get("workspace_root") or manifest_path.parent),
        features=config.features,
        target=config.target,
        cargo=config.cargo,
        package=f"{root.name}@{root.version}" if config.package else None,
    )
    context = find_unsafe(
        graph,
        mode=mode,
        include_tests=config.include_tests,
        max_workers=config.max_workers,
    )
    report = build_safety_report(graph, package_metrics(graph, context), compiled, context)
    if report.used_but_not_scanned_files:
        logger.warning(
            "%d compiled files were not scanned",
            len(report.used_but_not_scanned_files),
        )
    return report


__all__ = ["generate_report", "serialize_report", "write_report"]
