"""Parsing utilities for Rust source files."""

from parse.treesitter_unsafe import (
    Attribute,
    FileScan,
    ModuleDeclaration,
    forbid_verdict,
    parse_rust_file,
    scan_file_treesitter,
    scan_forbid_treesitter,
)

__all__ = [
    "Attribute",
    "FileScan",
    "ModuleDeclaration",
    "forbid_verdict",
    "parse_rust_file",
    "scan_file_treesitter",
    "scan_forbid_treesitter",
]
