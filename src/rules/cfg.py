"""Evaluation of cargo platform expressions (``cfg(...)`` and triples)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

_TOKEN = re.compile(r'\s*(?:(?P<ident>[A-Za-z_][A-Za-z0-9_]*)|(?P<str>"[^"]*")|(?P<punct>[(),=]))')


class CfgSyntaxError(ValueError):
    """Raised for a malformed cfg expression."""


def parse_cfg_entries(lines: Iterable[str]) -> frozenset[tuple[str, str | None]]:
    """Parse ``rustc --print cfg`` output into (name, value) pairs.

    Examples:
        >>> sorted(parse_cfg_entries(['unix', 'target_os="linux"']))
        [('target_os', 'linux'), ('unix', None)]
    """
    entries: set[tuple[str, str | None]] = set()
    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        if "=" in line:
            name, value = line.split("=", 1)
            entries.add((name.strip(), value.strip().strip('"')))
        else:
            entries.add((line, None))
    return frozenset(entries)


def _tokenize(expr: str) -> list[str]:
    tokens: list[str] = []
    pos = 0
    while pos < len(expr):
        if expr[pos:].strip() == "":
            break
        match = _TOKEN.match(expr, pos)
        if match is None:
            msg = f"Unexpected character in cfg expression at {pos}: {expr!r}"
            raise CfgSyntaxError(msg)
        tokens.append(match.group(match.lastgroup or "punct"))
        pos = match.end()
    return tokens


class _CfgParser:
    def __init__(self, tokens: list[str], cfgs: frozenset[tuple[str, str | None]]):
        self.tokens = tokens
        self.pos = 0
        self.cfgs = cfgs

    def _peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next(self) -> str:
        token = self._peek()
        if token is None:
            msg = "Unexpected end of cfg expression"
            raise CfgSyntaxError(msg)
        self.pos += 1
        return token

    def _expect(self, token: str) -> None:
        got = self._next()
        if got != token:
            msg = f"Expected {token!r} in cfg expression, got {got!r}"
            raise CfgSyntaxError(msg)

    def _list(self) -> list[bool]:
        self._expect("(")
        values: list[bool] = []
        while self._peek() != ")":
            values.append(self.expr())
            if self._peek() == ",":
                self._next()
        self._expect(")")
        return values

    def expr(self) -> bool:
        name = self._next()
        if name in {"all", "any"} and self._peek() == "(":
            values = self._list()
            return all(values) if name == "all" else any(values)
        if name == "not" and self._peek() == "(":
            self._expect("(")
            value = self.expr()
            self._expect(")")
            return not value
        if self._peek() == "=":
            self._next()
            value = self._next()
            if not value.startswith('"'):
                msg = f"Expected string value for cfg {name!r}"
                raise CfgSyntaxError(msg)
            return (name, value.strip('"')) in self.cfgs
        return (name, None) in self.cfgs


def eval_cfg(expr: str, cfgs: frozenset[tuple[str, str | None]]) -> bool:
    """Evaluate a ``cfg(...)`` expression against a cfg set.

    Args:
        expr: Expression with or without the outer ``cfg( )`` wrapper
        cfgs: Active (name, value) pairs, see ``parse_cfg_entries``

    Raises:
        CfgSyntaxError: If the expression cannot be parsed.
    """
    text = expr.strip()
    if text.startswith("cfg(") and text.endswith(")"):
        text = text[4:-1]
    parser = _CfgParser(_tokenize(text), cfgs)
    result = parser.expr()
    if parser._peek() is not None:
        msg = f"Trailing tokens in cfg expression: {expr!r}"
        raise CfgSyntaxError(msg)
    return result


@dataclass(frozen=True)
class TargetFilter:
    """Platform filter applied to target-specific dependency edges.

    ``cfgs`` is ``None`` when the active configuration is unknown, in which
    case every platform matches.
    """

    triple: str | None = None
    cfgs: frozenset[tuple[str, str | None]] | None = None
    all_targets: bool = False

    def matches(self, platform: str | None) -> bool:
        if platform is None or self.all_targets or self.cfgs is None:
            return True
        if platform.startswith("cfg("):
            return eval_cfg(platform, self.cfgs)
        return platform == self.triple


__all__ = [
    "CfgSyntaxError",
    "TargetFilter",
    "eval_cfg",
    "parse_cfg_entries",
]
