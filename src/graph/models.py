"""Package graph models.

The graph is an adjacency list over integer node indices. Each adjacency
entry carries the dependency kind, so inversion is a transposed view over the
same node storage rather than a copy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


class DependencyKind(str, Enum):
    """Cargo dependency kinds."""

    NORMAL = "normal"
    BUILD = "build"
    DEV = "dev"

    @classmethod
    def from_metadata(cls, kind: str | None) -> DependencyKind:
        """Map a cargo metadata ``dep_kinds[].kind`` value (``None`` is normal)."""
        if kind is None:
            return cls.NORMAL
        return cls(kind)


@dataclass(frozen=True)
class Target:
    """A compilation target of a package (library, binary, build script...)."""

    name: str
    kinds: tuple[str, ...]
    src_path: Path


@dataclass(frozen=True)
class Package:
    id: str
    name: str
    version: str
    source: str | None
    manifest_path: Path
    source_root: Path | None
    targets: tuple[Target, ...] = ()


@dataclass(frozen=True, order=True)
class DependencyEdge:
    source: str
    target: str
    kind: DependencyKind


@dataclass
class Graph:
    """Directed package graph rooted at ``root``.

    Edges point from a package to the packages it depends on. ``inverted()``
    swaps the adjacency lists without touching the nodes.
    """

    nodes: list[Package]
    index: dict[str, int]
    root: int
    outgoing: list[list[tuple[int, DependencyKind]]]
    incoming: list[list[tuple[int, DependencyKind]]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.incoming:
            self.incoming = [[] for _ in self.nodes]
            for source, adjacency in enumerate(self.outgoing):
                for target, kind in adjacency:
                    self.incoming[target].append((source, kind))

    @property
    def root_package(self) -> Package:
        return self.nodes[self.root]

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, package_id: object) -> bool:
        return package_id in self.index

    def package(self, package_id: str) -> Package:
        return self.nodes[self.index[package_id]]

    def packages(self) -> Iterator[Package]:
        yield from self.nodes

    def neighbors(self, node: int) -> list[tuple[int, DependencyKind]]:
        return self.outgoing[node]

    def edges(self) -> set[DependencyEdge]:
        """Return the edge set as (source id, target id, kind) records."""
        return {
            DependencyEdge(self.nodes[source].id, self.nodes[target].id, kind)
            for source, adjacency in enumerate(self.outgoing)
            for target, kind in adjacency
        }

    def inverted(self) -> Graph:
        """Return a transposed view sharing node storage with this graph."""
        return Graph(
            nodes=self.nodes,
            index=self.index,
            root=self.root,
            outgoing=self.incoming,
            incoming=self.outgoing,
        )


__all__ = ["DependencyEdge", "DependencyKind", "Graph", "Package", "Target"]
