"""Shared utilities for geiger-core."""

from __future__ import annotations

from pathlib import Path


def canonical_path(path: str | Path, base: Path | None = None) -> Path:
    """Return the canonical absolute form of a path.

    Args:
        path: Absolute or relative path (e.g., "src/lib.rs" or Path object)
        base: Directory relative paths are resolved against (default: cwd)

    Returns:
        Resolved absolute path with symlinks followed where they exist.

    Examples:
        >>> canonical_path("/crate/src/../src/lib.rs").as_posix()
        '/crate/src/lib.rs'
    """
    candidate = Path(path)
    if not candidate.is_absolute() and base is not None:
        candidate = base / candidate
    return candidate.resolve()


def owning_root(path: Path, roots: dict[Path, str]) -> str | None:
    """Return the value of the longest root in ``roots`` containing ``path``.

    Walking parents from the nearest outward makes the first hit the
    longest matching prefix.
    """
    for parent in path.parents:
        owner = roots.get(parent)
        if owner is not None:
            return owner
    return None


def display_path(path: Path) -> str:
    """Render a path with forward slashes for reports."""
    return path.as_posix()
