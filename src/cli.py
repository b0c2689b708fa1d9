"""Command-line interface for geiger-core."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from contract.report import REPORT_SPECS
from contract.validation import validate_report
from errors import GeigerError
from graph.builder import build_graph
from metrics.aggregate import package_metrics
from report.tree import annotate_tree, format_prefix_depth
from report.write import generate_report, write_report
from resolve.cargo import load_cargo_metadata, load_target_filter
from rules.config import ConfigError, GeigerConfig, load_config, resolve_output_dir
from scan.find import find_unsafe
from scan.models import ScanMode
from verify.verify import verify_report_determinism

logger = logging.getLogger(__name__)


def _add_common_paths(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Project root containing Cargo.toml (default: .)",
    )
    parser.add_argument(
        "--manifest-path",
        default=None,
        help="Path to Cargo.toml (default: ROOT/Cargo.toml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )


def _add_selection_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-p", "--package", default=None, help="Package to scan")
    parser.add_argument(
        "--features", default=None, help="Space or comma separated features"
    )
    parser.add_argument("--all-features", action="store_true", default=None)
    parser.add_argument("--no-default-features", action="store_true", default=None)
    parser.add_argument("--target", default=None, help="Target triple")
    parser.add_argument("--all-targets", action="store_true", default=None)
    parser.add_argument("--build-dependencies", action="store_true", default=None)
    parser.add_argument("--dev-dependencies", action="store_true", default=None)
    parser.add_argument("--all-dependencies", action="store_true", default=None)
    parser.add_argument(
        "--include-tests",
        action="store_true",
        default=None,
        help="Count unsafe usage in tests",
    )
    parser.add_argument("--offline", action="store_true", default=None)
    parser.add_argument("--locked", action="store_true", default=None)
    parser.add_argument("--frozen", action="store_true", default=None)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="geiger")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser("scan", help="Scan a cargo project")
    _add_common_paths(scan_parser)
    _add_selection_flags(scan_parser)
    scan_parser.add_argument(
        "--forbid-only",
        action="store_true",
        help="Only check entry points for #![forbid(unsafe_code)]",
    )
    scan_parser.add_argument(
        "--out",
        default=None,
        help="Report path (default: <output_dir>/<report file>)",
    )
    scan_parser.add_argument(
        "--tree",
        action="store_true",
        help="Print the annotated dependency tree instead of writing a report",
    )
    scan_parser.add_argument(
        "--invert",
        default=None,
        metavar="PACKAGE_ID",
        help="With --tree, print dependents of PACKAGE_ID",
    )

    validate_parser = subparsers.add_parser("validate", help="Validate a report")
    validate_parser.add_argument("report", help="Report file")
    validate_parser.add_argument(
        "--strict-schema-version",
        action="store_true",
        help="Treat a missing schema_version as an error",
    )

    verify_parser = subparsers.add_parser(
        "verify", help="Verify determinism of a report"
    )
    verify_parser.add_argument("report", help="Report file")
    _add_common_paths(verify_parser)
    _add_selection_flags(verify_parser)

    return parser


def _configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s"
    )


def _apply_overrides(config: GeigerConfig, args: argparse.Namespace) -> GeigerConfig:
    """Return ``config`` with explicitly given CLI flags applied on top."""

    def pick(**values: object) -> dict[str, object]:
        return {key: value for key, value in values.items() if value is not None}

    return config.model_copy(
        update=pick(
            package=args.package,
            include_tests=args.include_tests,
            dependencies=config.dependencies.model_copy(
                update=pick(
                    build=args.build_dependencies,
                    dev=args.dev_dependencies,
                    all=args.all_dependencies,
                )
            ),
            features=config.features.model_validate(
                {
                    **config.features.model_dump(),
                    **pick(
                        features=args.features,
                        all_features=args.all_features,
                        no_default_features=args.no_default_features,
                    ),
                }
            ),
            target=config.target.model_copy(
                update=pick(target=args.target, all_targets=args.all_targets)
            ),
            cargo=config.cargo.model_copy(
                update=pick(offline=args.offline, locked=args.locked, frozen=args.frozen)
            ),
        )
    )


def _manifest_path(root: Path, manifest_path: str | None) -> Path:
    if manifest_path is None:
        return root / "Cargo.toml"
    return Path(manifest_path).expanduser().resolve()


def _handle_tree(
    manifest_path: Path, config: GeigerConfig, mode: ScanMode, invert: str | None
) -> int:
    metadata = load_cargo_metadata(
        manifest_path, features=config.features, cargo=config.cargo
    )
    graph = build_graph(
        metadata,
        dependency_kinds=config.dependencies.kinds(),
        target_filter=load_target_filter(config.target),
        package=config.package,
    )
    if invert is not None and invert not in graph:
        sys.stderr.write(f"error: package {invert!r} is not in the dependency graph\n")
        return 2
    context = find_unsafe(
        graph,
        mode=mode,
        include_tests=config.include_tests,
        max_workers=config.max_workers,
    )
    rows = annotate_tree(
        graph,
        package_metrics(graph, context),
        invert=invert is not None,
        start=invert,
    )
    for line in format_prefix_depth(rows):
        sys.stdout.write(f"{line}\n")
    return 0


def _handle_scan(root: Path, args: argparse.Namespace) -> int:
    config = _apply_overrides(load_config(root), args)
    manifest_path = _manifest_path(root, args.manifest_path)
    mode = ScanMode.ENTRY_POINTS_ONLY if args.forbid_only else ScanMode.FULL

    if args.tree:
        return _handle_tree(manifest_path, config, mode, args.invert)

    report = generate_report(manifest_path=manifest_path, mode=mode, config=config)
    if args.out is not None:
        out_path = Path(args.out).expanduser().resolve()
    else:
        out_dir = resolve_output_dir(root, config.output_dir)
        out_path = out_dir / REPORT_SPECS[report.report_kind].filename
    write_report(out_path, report)
    logger.info("Wrote %s report to %s", report.report_kind, out_path)
    sys.stdout.write(f"{out_path}\n")
    return 0


def _handle_validate(report_path: Path, *, strict_schema_version: bool) -> int:
    result = validate_report(report_path, strict_schema_version=strict_schema_version)
    for warning in result.warnings:
        sys.stderr.write(f"warning: {warning.location()}: {warning.message}\n")
    if result.errors:
        for error in result.errors:
            sys.stderr.write(f"{error.location()}: {error.message}\n")
        return 1
    return 0


def _handle_verify(root: Path, args: argparse.Namespace) -> int:
    config = _apply_overrides(load_config(root), args)
    report_path = Path(args.report).expanduser().resolve()
    try:
        result = verify_report_determinism(
            manifest_path=_manifest_path(root, args.manifest_path),
            report_path=report_path,
            config=config,
        )
    except (FileNotFoundError, ValueError) as exc:
        sys.stderr.write(f"report: {report_path}\n")
        sys.stderr.write(f"error: {exc}\n")
        return 2
    if not result.ok:
        for key in result.differing_keys:
            sys.stderr.write(f"mismatch: {key}\n")
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(getattr(args, "verbose", 0))

    try:
        if args.command == "scan":
            return _handle_scan(Path(args.root).expanduser().resolve(), args)

        if args.command == "validate":
            return _handle_validate(
                Path(args.report).expanduser().resolve(),
                strict_schema_version=args.strict_schema_version,
            )

        if args.command == "verify":
            return _handle_verify(Path(args.root).expanduser().resolve(), args)
    except (GeigerError, ConfigError) as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 2

    raise AssertionError


if __name__ == "__main__":
    raise SystemExit(main())
