"""Parsing of rustc dep-info (``.d``) files."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

# A rule separator is a colon followed by whitespace or end of line, which
# keeps Windows drive letters ("C:\...") intact.
_RULE_SEPARATOR = re.compile(r"(?<!\\):(?=\s|$)")


def _split_escaped(text: str) -> list[str]:
    """Split a dependency list on unescaped whitespace, unescaping ``\\ ``."""
    items: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\\" and i + 1 < len(text) and text[i + 1] == " ":
            current.append(" ")
            i += 2
            continue
        if char.isspace():
            if current:
                items.append("".join(current))
                current = []
        else:
            current.append(char)
        i += 1
    if current:
        items.append("".join(current))
    return items


def parse_dep_info(text: str) -> list[str]:
    """Return every prerequisite path listed in a dep-info file.

    Examples:
        >>> parse_dep_info("out.rmeta: src/lib.rs src/a\\\\ b.rs\\n\\nsrc/lib.rs:\\n")
        ['src/lib.rs', 'src/a b.rs']
    """
    dependencies: list[str] = []
    for raw_line in text.splitlines():
        line = raw_line.rstrip()
        if not line or line.startswith("#"):
            continue
        match = _RULE_SEPARATOR.search(line)
        if match is None:
            continue
        dependencies.extend(_split_escaped(line[match.end() :]))
    return dependencies


def iter_dep_info_files(target_dir: Path) -> Iterator[Path]:
    """Yield the dep-info files of compiled units under a cargo target dir.

    Crate units write ``deps/<name>-<hash>.d``; build scripts write
    ``build/<unit>/<name>-<hash>.d``. Other ``.d`` files (for instance C
    dependency files inside a build script's OUT_DIR) are ignored.
    """
    for path in sorted(target_dir.rglob("*.d")):
        if not path.is_file():
            continue
        if path.parent.name == "deps" or path.parent.parent.name == "build":
            yield path


__all__ = ["iter_dep_info_files", "parse_dep_info"]
