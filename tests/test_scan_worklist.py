from __future__ import annotations

from typing import TYPE_CHECKING

from graph.builder import build_graph
from scan.find import find_unsafe
from scan.models import ScanMode
from scan.worklist import PendingFile, run_worklist

if TYPE_CHECKING:
    from pathlib import Path

    from conftest import CargoProject


def _src(cargo_project: CargoProject, crate: str, relative: str) -> Path:
    return (cargo_project.root / crate / relative).resolve()


def test_full_scan_follows_modules_once(cargo_project: CargoProject) -> None:
    pkg = cargo_project.add_crate(
        "app",
        member=True,
        files={
            "src/lib.rs": 'mod a;\nmod b;\n#[path = "b.rs"]\nmod b_again;\n',
            "src/a.rs": "pub fn a() { unsafe { x() } }\n",
            "src/b.rs": "mod nested;\n",
            "src/b/nested.rs": "pub fn n() {}\n",
        },
    )
    graph = build_graph(cargo_project.metadata())

    context = find_unsafe(graph, mode=ScanMode.FULL, max_workers=2)

    expected = {
        _src(cargo_project, "app", rel)
        for rel in ("src/lib.rs", "src/a.rs", "src/b.rs", "src/b/nested.rs")
    }
    assert set(context.files) == expected
    assert context.visited_paths == frozenset(expected)
    assert sorted(context.package_files[pkg]) == sorted(expected)
    assert context.files[_src(cargo_project, "app", "src/a.rs")].counters.exprs.unsafe == 1
    assert context.parse_errors == []
    assert context.warnings == []


def test_parse_error_does_not_abort_siblings(cargo_project: CargoProject) -> None:
    cargo_project.add_crate(
        "app",
        member=True,
        files={
            "src/lib.rs": "mod bad;\nmod good;\n",
            "src/bad.rs": "fn broken( {\n",
            "src/good.rs": "pub fn g() {}\n",
        },
    )
    graph = build_graph(cargo_project.metadata())

    context = find_unsafe(graph, mode=ScanMode.FULL)

    bad = _src(cargo_project, "app", "src/bad.rs")
    assert [error.path for error in context.parse_errors] == [bad]
    assert bad in context.visited_paths
    assert bad not in context.files
    assert _src(cargo_project, "app", "src/good.rs") in context.files


def test_unresolved_module_is_a_warning(cargo_project: CargoProject) -> None:
    cargo_project.add_crate(
        "app", member=True, files={"src/lib.rs": "mod gone;\npub fn f() {}\n"}
    )
    graph = build_graph(cargo_project.metadata())

    context = find_unsafe(graph, mode=ScanMode.FULL)

    assert len(context.files) == 1
    assert len(context.warnings) == 1
    assert "no source file found for module `gone`" in context.warnings[0]


def test_literal_include_is_scanned_for_same_package(
    cargo_project: CargoProject,
) -> None:
    pkg = cargo_project.add_crate(
        "app",
        member=True,
        files={
            "src/lib.rs": 'include!("gen.rs");\n',
            "src/gen.rs": "fn g() { unsafe { h() } }\n",
        },
    )
    graph = build_graph(cargo_project.metadata())

    context = find_unsafe(graph, mode=ScanMode.FULL)

    generated = _src(cargo_project, "app", "src/gen.rs")
    assert generated in context.package_files[pkg]
    assert context.files[generated].counters.exprs.unsafe == 1


def test_entry_points_only_reads_entry_files(cargo_project: CargoProject) -> None:
    pkg = cargo_project.add_crate(
        "app",
        member=True,
        files={
            "src/lib.rs": "#![forbid(unsafe_code)]\nmod a;\n",
            "src/a.rs": "pub fn a() { unsafe { x() } }\n",
            "src/main.rs": "#![forbid(unsafe_code)]\nfn main() {}\n",
        },
        targets=[("lib", "src/lib.rs"), ("bin", "src/main.rs")],
    )
    graph = build_graph(cargo_project.metadata())

    context = find_unsafe(graph, mode=ScanMode.ENTRY_POINTS_ONLY)

    assert set(context.package_files[pkg]) == {
        _src(cargo_project, "app", "src/lib.rs"),
        _src(cargo_project, "app", "src/main.rs"),
    }
    assert all(metrics.forbids_unsafe for metrics in context.files.values())
    assert all(metrics.counters.total == 0 for metrics in context.files.values())


def test_test_targets_need_include_tests(cargo_project: CargoProject) -> None:
    cargo_project.add_crate(
        "app",
        member=True,
        files={"src/lib.rs": "pub fn f() {}\n", "tests/it.rs": "fn t() {}\n"},
        targets=[("lib", "src/lib.rs"), ("test", "tests/it.rs")],
    )
    graph = build_graph(cargo_project.metadata())
    integration = _src(cargo_project, "app", "tests/it.rs")

    assert integration not in find_unsafe(graph, mode=ScanMode.FULL).files
    assert (
        integration
        in find_unsafe(graph, mode=ScanMode.FULL, include_tests=True).files
    )


def test_packages_without_local_source_are_not_scanned(
    cargo_project: CargoProject,
) -> None:
    root = cargo_project.add_crate("app", member=True)
    remote = cargo_project.add_crate("remote", "1.0.0", local=False)
    cargo_project.depend(root, remote)
    graph = build_graph(cargo_project.metadata())

    context = find_unsafe(graph, mode=ScanMode.FULL)

    assert remote not in context.package_files
    assert root in context.package_files


def test_run_worklist_claims_each_path_once(tmp_path: Path) -> None:
    path = (tmp_path / "lib.rs").resolve()
    path.write_text("fn f() {}\n", encoding="utf-8")

    arena = run_worklist(
        [PendingFile(path, "a"), PendingFile(path, "b")],
        mode=ScanMode.FULL,
        max_workers=1,
    )

    records = list(arena)
    assert len(records) == 1
    assert records[0].package_id == "a"
    assert records[0].metrics is not None


def test_run_worklist_with_no_files(tmp_path: Path) -> None:
    assert len(run_worklist([], mode=ScanMode.FULL)) == 0
