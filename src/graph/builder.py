"""Build a filtered package graph from ``cargo metadata`` output."""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from typing import TYPE_CHECKING, Any

from errors import GraphResolutionError
from graph.models import DependencyKind, Graph, Package, Target
from rules.cfg import CfgSyntaxError, TargetFilter

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


def _package_from_metadata(raw: dict[str, Any]) -> Package:
    manifest_path = Path(raw["manifest_path"])
    package_dir = manifest_path.parent
    source_root = package_dir.resolve() if package_dir.is_dir() else None
    targets = tuple(
        Target(
            name=target["name"],
            kinds=tuple(target.get("kind", ())),
            src_path=Path(target["src_path"]),
        )
        for target in raw.get("targets", ())
    )
    return Package(
        id=raw["id"],
        name=raw["name"],
        version=raw["version"],
        source=raw.get("source"),
        manifest_path=manifest_path,
        source_root=source_root,
        targets=targets,
    )


def _matches_spec(package: Package, spec: str) -> bool:
    if spec == package.id:
        return True
    if "@" in spec:
        name, version = spec.split("@", 1)
        return package.name == name and package.version == version
    return package.name == spec


def _resolve_root_id(
    metadata: dict[str, Any],
    packages: dict[str, Package],
    spec: str | None,
) -> str:
    if spec is not None:
        candidates = [p.id for p in packages.values() if _matches_spec(p, spec)]
        members = set(metadata.get("workspace_members") or ())
        if len(candidates) > 1:
            in_workspace = [c for c in candidates if c in members]
            candidates = in_workspace or candidates
        if len(candidates) != 1:
            msg = (
                f"Package spec {spec!r} matched {len(candidates)} packages; "
                "expected exactly one."
            )
            raise GraphResolutionError(msg)
        return candidates[0]

    root = (metadata.get("resolve") or {}).get("root")
    if root is not None:
        return str(root)

    members = metadata.get("workspace_members") or []
    if len(members) == 1:
        return str(members[0])

    msg = (
        "Cannot determine the root package: the manifest is a virtual workspace; "
        "select a package explicitly."
    )
    raise GraphResolutionError(msg)


def _edge_kinds(
    dep: dict[str, Any],
    dependency_kinds: frozenset[DependencyKind],
    target_filter: TargetFilter,
    *,
    follow_dev: bool,
) -> list[DependencyKind]:
    """Return the distinct requested kinds under which ``dep`` is active."""
    kinds: list[DependencyKind] = []
    dep_kinds = dep.get("dep_kinds") or [{"kind": None, "target": None}]
    for dep_kind in dep_kinds:
        try:
            kind = DependencyKind.from_metadata(dep_kind.get("kind"))
        except ValueError as exc:
            msg = f"Unknown dependency kind for {dep.get('pkg')!r}: {exc}"
            raise GraphResolutionError(msg) from exc
        if kind not in dependency_kinds or kind in kinds:
            continue
        if kind is DependencyKind.DEV and not follow_dev:
            continue
        try:
            active = target_filter.matches(dep_kind.get("target"))
        except CfgSyntaxError as exc:
            msg = f"Invalid platform for dependency {dep.get('pkg')!r}: {exc}"
            raise GraphResolutionError(msg) from exc
        if active:
            kinds.append(kind)
    return kinds


def build_graph(
    metadata: dict[str, Any],
    *,
    dependency_kinds: Iterable[DependencyKind] = (DependencyKind.NORMAL,),
    target_filter: TargetFilter | None = None,
    package: str | None = None,
) -> Graph:
    """Build the package graph reachable from the root package.

    Only edges whose kind is in ``dependency_kinds`` and whose platform is
    accepted by ``target_filter`` are kept; packages reachable solely
    through other edges never enter the graph. Dev edges are followed only
    out of workspace members, since cargo never builds the dev-dependencies
    of a dependency.

    Args:
        metadata: Parsed ``cargo metadata --format-version 1`` output
        dependency_kinds: Dependency kinds to follow
        target_filter: Platform filter (default: accept every platform)
        package: Optional root package spec (name, name@version or id)

    Returns:
        Graph whose node 0 is the root package, nodes in breadth-first order.

    Raises:
        GraphResolutionError: If the root is missing or an edge references an
            unknown package.
    """
    kinds = frozenset(dependency_kinds)
    target_filter = target_filter or TargetFilter()

    packages = {raw["id"]: _package_from_metadata(raw) for raw in metadata.get("packages", ())}
    resolve = metadata.get("resolve")
    if not resolve:
        msg = "Metadata has no dependency resolution (resolve section missing)."
        raise GraphResolutionError(msg)

    resolve_nodes = {node["id"]: node for node in resolve.get("nodes", ())}
    root_id = _resolve_root_id(metadata, packages, package)
    if root_id not in packages or root_id not in resolve_nodes:
        msg = f"Root package {root_id!r} is absent from metadata."
        raise GraphResolutionError(msg)

    members = set(metadata.get("workspace_members") or ()) | {root_id}

    nodes: list[Package] = [packages[root_id]]
    index: dict[str, int] = {root_id: 0}
    outgoing: list[list[tuple[int, DependencyKind]]] = [[]]
    queue: deque[str] = deque([root_id])

    while queue:
        current = queue.popleft()
        node = resolve_nodes.get(current)
        if node is None:
            msg = f"Package {current!r} has no entry in the dependency resolution."
            raise GraphResolutionError(msg)

        deps = node.get("deps")
        if deps is None:
            deps = [{"pkg": dep_id} for dep_id in node.get("dependencies", ())]

        for dep in sorted(deps, key=lambda d: d["pkg"]):
            dep_id = dep["pkg"]
            if dep_id not in packages:
                msg = f"Dependency edge {current!r} -> {dep_id!r} references an unknown package."
                raise GraphResolutionError(msg)

            active_kinds = _edge_kinds(
                dep, kinds, target_filter, follow_dev=current in members
            )
            if not active_kinds:
                continue

            if dep_id not in index:
                index[dep_id] = len(nodes)
                nodes.append(packages[dep_id])
                outgoing.append([])
                queue.append(dep_id)

            for kind in active_kinds:
                outgoing[index[current]].append((index[dep_id], kind))

    logger.info(
        "Built dependency graph rooted at %s: %d packages, %d edges",
        root_id,
        len(nodes),
        sum(len(adjacency) for adjacency in outgoing),
    )
    return Graph(nodes=nodes, index=index, root=0, outgoing=outgoing)


__all__ = ["build_graph"]
