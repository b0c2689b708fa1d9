"""Package dependency graph."""

from graph.algos import TreeRow, reachable, walk_tree
from graph.builder import build_graph
from graph.models import DependencyEdge, DependencyKind, Graph, Package, Target

__all__ = [
    "DependencyEdge",
    "DependencyKind",
    "Graph",
    "Package",
    "Target",
    "TreeRow",
    "build_graph",
    "reachable",
    "walk_tree",
]
