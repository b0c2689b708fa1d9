"""Cargo-backed resolution of metadata, platform and compiled files."""

from resolve.cargo import load_cargo_metadata, load_target_filter
from resolve.compiled_files import resolve_compiled_files
from resolve.depinfo import parse_dep_info

__all__ = [
    "load_cargo_metadata",
    "load_target_filter",
    "parse_dep_info",
    "resolve_compiled_files",
]
