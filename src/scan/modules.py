"""Resolution of out-of-line ``mod`` declarations to source files."""

from __future__ import annotations

from typing import TYPE_CHECKING

from utils import canonical_path

if TYPE_CHECKING:
    from pathlib import Path

    from parse.treesitter_unsafe import ModuleDeclaration


def module_dir(file_path: Path, *, is_mod_root: bool) -> Path:
    """Return the directory where ``mod name;`` items of ``file_path`` live.

    Crate roots, ``mod.rs`` files and files loaded through ``#[path]`` own
    their own directory; any other ``foo.rs`` owns ``foo/``.
    """
    if is_mod_root or file_path.name == "mod.rs":
        return file_path.parent
    return file_path.parent / file_path.stem


def module_candidates(
    file_path: Path,
    declaration: ModuleDeclaration,
    *,
    is_mod_root: bool,
) -> list[Path]:
    """Return candidate files for a module declaration, in lookup order."""
    name = declaration.name.removeprefix("r#")
    if declaration.path_attr is not None:
        if declaration.inline_path:
            base = module_dir(file_path, is_mod_root=is_mod_root).joinpath(
                *declaration.inline_path
            )
        else:
            base = file_path.parent
        return [base / declaration.path_attr]

    base = module_dir(file_path, is_mod_root=is_mod_root).joinpath(
        *declaration.inline_path
    )
    return [base / f"{name}.rs", base / name / "mod.rs"]


def resolve_module_file(
    file_path: Path,
    declaration: ModuleDeclaration,
    *,
    is_mod_root: bool,
) -> tuple[Path, bool] | None:
    """Resolve a module declaration to a canonical file path.

    Returns:
        (path, is_mod_root) for the first existing candidate, or None when no
        candidate exists (cfg-gated or generated modules).
    """
    for candidate in module_candidates(file_path, declaration, is_mod_root=is_mod_root):
        if candidate.is_file():
            child_is_root = declaration.path_attr is not None
            return canonical_path(candidate), child_is_root
    return None


__all__ = ["module_candidates", "module_dir", "resolve_module_file"]
