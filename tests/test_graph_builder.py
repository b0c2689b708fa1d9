from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from errors import GraphResolutionError
from graph.algos import reachable, walk_tree
from graph.builder import build_graph
from graph.models import DependencyEdge, DependencyKind
from rules.cfg import TargetFilter

if TYPE_CHECKING:
    from conftest import CargoProject

ALL_KINDS = (DependencyKind.NORMAL, DependencyKind.BUILD, DependencyKind.DEV)


def test_dev_only_dependency_absent_under_normal_filter(
    cargo_project: CargoProject,
) -> None:
    root = cargo_project.add_crate("app", member=True)
    dev = cargo_project.add_crate("b")
    cargo_project.depend(root, dev, kind="dev")

    graph = build_graph(cargo_project.metadata())

    assert dev not in graph
    assert graph.edges() == set()

    graph = build_graph(
        cargo_project.metadata(),
        dependency_kinds=(DependencyKind.NORMAL, DependencyKind.DEV),
    )
    assert graph.edges() == {DependencyEdge(root, dev, DependencyKind.DEV)}


def test_retained_edges_match_kind_filter(cargo_project: CargoProject) -> None:
    root = cargo_project.add_crate("app", member=True)
    a = cargo_project.add_crate("a")
    c = cargo_project.add_crate("c")
    d = cargo_project.add_crate("d")
    cargo_project.depend(root, a)
    cargo_project.depend(a, c, kind="build")
    cargo_project.depend(root, d, kind="build")

    for kinds in (
        {DependencyKind.NORMAL},
        {DependencyKind.NORMAL, DependencyKind.BUILD},
        {DependencyKind.BUILD},
    ):
        graph = build_graph(cargo_project.metadata(), dependency_kinds=kinds)
        assert all(edge.kind in kinds for edge in graph.edges())

    graph = build_graph(cargo_project.metadata())
    assert {p.id for p in graph.packages()} == {root, a}


def test_dependency_listed_under_two_kinds_keeps_both_edges(
    cargo_project: CargoProject,
) -> None:
    root = cargo_project.add_crate("app", member=True)
    shared = cargo_project.add_crate("shared")
    cargo_project.depend(root, shared)
    cargo_project.depend(root, shared, kind="build")

    graph = build_graph(cargo_project.metadata(), dependency_kinds=ALL_KINDS)

    assert graph.edges() == {
        DependencyEdge(root, shared, DependencyKind.NORMAL),
        DependencyEdge(root, shared, DependencyKind.BUILD),
    }
    assert len(graph) == 2


def test_dev_edges_of_dependencies_are_not_followed(
    cargo_project: CargoProject,
) -> None:
    root = cargo_project.add_crate("app", member=True)
    a = cargo_project.add_crate("a")
    e = cargo_project.add_crate("e")
    cargo_project.depend(root, a)
    cargo_project.depend(a, e, kind="dev")

    graph = build_graph(cargo_project.metadata(), dependency_kinds=ALL_KINDS)

    assert a in graph
    assert e not in graph


def test_inversion_is_involutive(cargo_project: CargoProject) -> None:
    root = cargo_project.add_crate("app", member=True)
    a = cargo_project.add_crate("a")
    b = cargo_project.add_crate("b")
    cargo_project.depend(root, a)
    cargo_project.depend(root, b, kind="build")
    cargo_project.depend(a, b)

    graph = build_graph(cargo_project.metadata(), dependency_kinds=ALL_KINDS)
    inverted = graph.inverted()

    assert inverted.inverted().edges() == graph.edges()
    assert inverted.edges() == {
        DependencyEdge(edge.target, edge.source, edge.kind) for edge in graph.edges()
    }
    assert inverted.nodes is graph.nodes


def test_target_specific_edges_follow_cfg(cargo_project: CargoProject) -> None:
    root = cargo_project.add_crate("app", member=True)
    unix_dep = cargo_project.add_crate("unix-dep")
    windows_dep = cargo_project.add_crate("windows-dep")
    triple_dep = cargo_project.add_crate("triple-dep")
    cargo_project.depend(root, unix_dep, platform="cfg(unix)")
    cargo_project.depend(root, windows_dep, platform='cfg(target_os = "windows")')
    cargo_project.depend(root, triple_dep, platform="x86_64-unknown-linux-gnu")

    target_filter = TargetFilter(
        triple="x86_64-unknown-linux-gnu",
        cfgs=frozenset({("unix", None), ("target_os", "linux")}),
    )
    graph = build_graph(cargo_project.metadata(), target_filter=target_filter)

    assert unix_dep in graph
    assert triple_dep in graph
    assert windows_dep not in graph

    graph = build_graph(
        cargo_project.metadata(), target_filter=TargetFilter(all_targets=True)
    )
    assert windows_dep in graph


def test_malformed_platform_is_a_resolution_error(cargo_project: CargoProject) -> None:
    root = cargo_project.add_crate("app", member=True)
    dep = cargo_project.add_crate("dep")
    cargo_project.depend(root, dep, platform="cfg(all(unix)")

    with pytest.raises(GraphResolutionError, match="Invalid platform"):
        build_graph(
            cargo_project.metadata(),
            target_filter=TargetFilter(cfgs=frozenset({("unix", None)})),
        )


def test_unknown_dependency_kind_is_a_resolution_error(
    cargo_project: CargoProject,
) -> None:
    root = cargo_project.add_crate("app", member=True)
    dep = cargo_project.add_crate("dep")
    cargo_project.depend(root, dep, kind="optional")

    with pytest.raises(GraphResolutionError, match="Unknown dependency kind"):
        build_graph(cargo_project.metadata())


def test_edge_to_unknown_package_is_rejected(cargo_project: CargoProject) -> None:
    cargo_project.add_crate("app", member=True)
    metadata = cargo_project.metadata()
    metadata["resolve"]["nodes"][0]["deps"].append(
        {"name": "ghost", "pkg": "ghost 1.0.0", "dep_kinds": [{"kind": None}]}
    )

    with pytest.raises(GraphResolutionError, match="unknown package"):
        build_graph(metadata)


def test_missing_resolve_section_is_rejected(cargo_project: CargoProject) -> None:
    cargo_project.add_crate("app", member=True)
    metadata = cargo_project.metadata()
    metadata["resolve"] = None

    with pytest.raises(GraphResolutionError, match="resolve section missing"):
        build_graph(metadata)


def test_virtual_workspace_requires_package_selection(
    cargo_project: CargoProject,
) -> None:
    first = cargo_project.add_crate("first", member=True)
    second = cargo_project.add_crate("second", member=True)
    metadata = cargo_project.metadata()
    metadata["resolve"]["root"] = None

    with pytest.raises(GraphResolutionError, match="virtual workspace"):
        build_graph(metadata)

    graph = build_graph(metadata, package="second")
    assert graph.root_package.id == second
    assert first not in graph

    graph = build_graph(metadata, package="first@0.1.0")
    assert graph.root_package.id == first


def test_registry_package_without_local_source(cargo_project: CargoProject) -> None:
    root = cargo_project.add_crate("app", member=True)
    remote = cargo_project.add_crate("remote", "1.2.3", local=False)
    cargo_project.depend(root, remote)

    graph = build_graph(cargo_project.metadata())

    assert graph.package(remote).source_root is None
    assert graph.package(remote).source is not None
    assert graph.package(root).source_root == (cargo_project.root / "app").resolve()


def test_walk_tree_marks_repeated_packages(cargo_project: CargoProject) -> None:
    root = cargo_project.add_crate("app", member=True)
    a = cargo_project.add_crate("a")
    b = cargo_project.add_crate("b")
    c = cargo_project.add_crate("c")
    cargo_project.depend(root, a)
    cargo_project.depend(root, b)
    cargo_project.depend(a, c)
    cargo_project.depend(b, c)

    graph = build_graph(cargo_project.metadata())
    rows = [
        (row.depth, graph.nodes[row.node].id, row.repeated) for row in walk_tree(graph)
    ]

    assert rows == [
        (0, root, False),
        (1, a, False),
        (2, c, False),
        (1, b, False),
        (2, c, True),
    ]
    expanded = [row for row in walk_tree(graph, all_nodes=True) if row.repeated]
    assert expanded == []
    assert reachable(graph) == set(range(len(graph)))


def test_walk_tree_inverted_terminates_on_cycles(cargo_project: CargoProject) -> None:
    root = cargo_project.add_crate("app", member=True)
    helper = cargo_project.add_crate("helper", member=True)
    cargo_project.depend(root, helper)
    cargo_project.depend(helper, root, kind="dev")

    graph = build_graph(cargo_project.metadata(), dependency_kinds=ALL_KINDS)
    rows = list(walk_tree(graph.inverted(), start=graph.index[helper], all_nodes=True))

    assert [row.depth for row in rows] == [0, 1, 2]
    assert rows[-1].repeated is True
