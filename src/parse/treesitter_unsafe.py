"""Tree-sitter based unsafe usage counting for Rust source files."""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from tree_sitter import Language, Node, Parser, Tree
from tree_sitter_rust import language as get_rust_language

from errors import ParseError
from scan.models import CounterBlock

if TYPE_CHECKING:
    from pathlib import Path

_LOCAL = threading.local()

_WORD = re.compile(rb"[A-Za-z_][A-Za-z0-9_]*")
_STRING_LITERAL = re.compile(r'^r?#*"(?P<body>.*)"#*$', re.DOTALL)

# Paths and literals are not counted, so `f(x)` is one expression.
_UNCOUNTED_EXPRESSIONS = frozenset({"unit_expression"})
_EXTRA_EXPRESSIONS = frozenset(
    {"compound_assignment_expr", "async_block", "const_block", "gen_block"}
)
_ITEM_CONTAINERS = frozenset({"source_file", "declaration_list"})
_ATTRIBUTE_SIBLINGS = frozenset({"attribute_item", "line_comment", "block_comment"})
_REENABLING_LINTS = frozenset({"allow", "warn", "expect"})
_INCLUDE_MACROS = frozenset({"include", "std::include", "core::include"})
_SKIPPED_NODES = frozenset(
    {
        "attribute_item",
        "inner_attribute_item",
        "macro_definition",
        "line_comment",
        "block_comment",
    }
)


def _get_parser() -> Parser:
    """Return the Tree-sitter Rust parser for the calling thread."""
    parser = getattr(_LOCAL, "parser", None)
    if parser is None:
        parser = Parser(Language(get_rust_language()))
        _LOCAL.parser = parser
    return parser


@dataclass(frozen=True)
class Attribute:
    name: str
    args: tuple[str, ...] = ()
    value: str | None = None
    line: int = 0

    def is_lint(self, levels: frozenset[str] | set[str]) -> bool:
        return self.name in levels and "unsafe_code" in self.args

    @property
    def is_cfg_test(self) -> bool:
        return self.name == "cfg" and self.args == ("test",)

    @property
    def is_test(self) -> bool:
        return self.name == "test" or self.name.endswith("::test") or self.is_cfg_test


@dataclass(frozen=True)
class ModuleDeclaration:
    """An out-of-line ``mod name;`` declaration.

    ``inline_path`` lists the enclosing inline modules (``mod a { mod b; }``
    gives ``("a",)`` for ``b``).
    """

    name: str
    inline_path: tuple[str, ...] = ()
    path_attr: str | None = None
    line: int = 0


@dataclass
class FileScan:
    counters: CounterBlock = field(default_factory=CounterBlock)
    forbids_unsafe: bool = False
    modules: list[ModuleDeclaration] = field(default_factory=list)
    includes: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def string_literal_value(node: Node) -> str | None:
    """Return the contents of a (raw) string literal node."""
    if node.type not in ("string_literal", "raw_string_literal") or node.text is None:
        return None
    match = _STRING_LITERAL.match(node.text.decode("utf8", errors="replace"))
    if match is None:
        return None
    return match.group("body")


def parse_attribute(item: Node) -> Attribute | None:
    """Extract name, word arguments and ``= "value"`` from an attribute item."""
    attribute = next((c for c in item.named_children if c.type == "attribute"), None)
    if attribute is None or not attribute.named_children:
        return None

    path_node = attribute.named_children[0]
    if path_node.text is None:
        return None

    args: tuple[str, ...] = ()
    value: str | None = None
    for child in attribute.named_children[1:]:
        if child.type == "token_tree" and child.text is not None:
            args = tuple(word.decode("utf8") for word in _WORD.findall(child.text))
        elif value is None:
            value = string_literal_value(child)

    return Attribute(
        name=path_node.text.decode("utf8").replace(" ", ""),
        args=args,
        value=value,
        line=item.start_point[0] + 1,
    )


def outer_attributes(node: Node) -> list[Attribute]:
    """Return the ``#[...]`` attributes attached to ``node``.

    Tree-sitter keeps outer attributes as preceding siblings of the item
    they annotate, possibly interleaved with comments.
    """
    attributes: list[Attribute] = []
    sibling = node.prev_named_sibling
    while sibling is not None and sibling.type in _ATTRIBUTE_SIBLINGS:
        if sibling.type == "attribute_item":
            parsed = parse_attribute(sibling)
            if parsed is not None:
                attributes.append(parsed)
        sibling = sibling.prev_named_sibling
    return attributes


def file_attributes(root: Node) -> list[Attribute]:
    """Return the ``#![...]`` attributes at file scope."""
    attributes: list[Attribute] = []
    for child in root.named_children:
        if child.type == "inner_attribute_item":
            parsed = parse_attribute(child)
            if parsed is not None:
                attributes.append(parsed)
    return attributes


def _reenabling_attributes(root: Node) -> list[Attribute]:
    """Return every allow/warn/expect(unsafe_code) attribute in the file."""
    found: list[Attribute] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type in ("attribute_item", "inner_attribute_item"):
            attribute = parse_attribute(node)
            if attribute is not None and attribute.is_lint(_REENABLING_LINTS):
                found.append(attribute)
            continue
        stack.extend(node.named_children)
    return sorted(found, key=lambda attr: attr.line)


def forbid_verdict(root: Node, file_path: Path) -> tuple[bool, list[str]]:
    """Return whether the file forbids unsafe code, plus any warnings.

    A file-scope `#![forbid(unsafe_code)]` is only credited when nothing in
    the file re-enables the lint; an override makes the verdict false.
    """
    if not any(attr.is_lint({"forbid"}) for attr in file_attributes(root)):
        return False, []
    overrides = _reenabling_attributes(root)
    if not overrides:
        return True, []
    lines = ", ".join(str(attr.line) for attr in overrides)
    warning = (
        f"{file_path}: forbid(unsafe_code) is locally overridden (line {lines}); "
        "not credited"
    )
    return False, [warning]


def _has_unsafe_keyword(node: Node) -> bool:
    return any(child.type == "unsafe" for child in node.children)


def _function_is_unsafe(node: Node) -> bool:
    modifiers = next((c for c in node.children if c.type == "function_modifiers"), None)
    return modifiers is not None and _has_unsafe_keyword(modifiers)


def _is_counted_expression(node_type: str) -> bool:
    if node_type in _UNCOUNTED_EXPRESSIONS:
        return False
    return node_type.endswith("_expression") or node_type in _EXTRA_EXPRESSIONS


def _token_tree_has_unsafe(token_tree: Node) -> bool:
    stack = [token_tree]
    while stack:
        node = stack.pop()
        if node.child_count == 0:
            if node.type == "unsafe" or node.text == b"unsafe":
                return True
            continue
        stack.extend(node.children)
    return False


def _first_error_line(root: Node) -> int:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
        if node.has_error:
            stack.extend(reversed(node.children))
    return root.start_point[0] + 1


def parse_rust_file(file_path: Path) -> Tree:
    """Parse a Rust file, raising ParseError on read or syntax errors."""
    try:
        source_bytes = file_path.read_bytes()
    except OSError as exc:
        raise ParseError(file_path, f"cannot read file: {exc}") from exc

    tree = _get_parser().parse(source_bytes)
    if tree.root_node.has_error:
        line = _first_error_line(tree.root_node)
        raise ParseError(file_path, f"syntax error near line {line}")
    return tree


class _UnsafeVisitor:
    """Counts safe and unsafe items and expressions in one syntax tree.

    The walk is iterative; each stack entry carries the state inherited from
    its ancestors: whether an unsafe scope is active, whether the enclosing
    item list belongs to an impl or trait, and the inline module path.
    """

    def __init__(self, file_path: Path, *, include_tests: bool) -> None:
        self.file_path = file_path
        self.include_tests = include_tests
        self.result = FileScan()

    def _warn(self, node: Node, message: str) -> None:
        self.result.warnings.append(f"{self.file_path}:{node.start_point[0] + 1}: {message}")

    def _is_skipped_test(self, attributes: list[Attribute], *, module: bool) -> bool:
        if self.include_tests:
            return False
        if module:
            return any(attr.is_cfg_test for attr in attributes)
        return any(attr.is_test for attr in attributes)

    def _visit_macro(self, node: Node, in_unsafe: bool) -> None:
        macro = node.child_by_field_name("macro")
        name = macro.text.decode("utf8") if macro is not None and macro.text else ""
        token_tree = next((c for c in node.named_children if c.type == "token_tree"), None)

        if node.parent is not None and node.parent.type not in _ITEM_CONTAINERS:
            self.result.counters.exprs.count(in_unsafe)

        if name in _INCLUDE_MACROS:
            literals = (
                [string_literal_value(c) for c in token_tree.named_children]
                if token_tree is not None
                else []
            )
            if len(literals) == 1 and literals[0] is not None:
                self.result.includes.append(literals[0])
            else:
                self._warn(node, f"{name}! without a literal path was not scanned")
            return

        if token_tree is not None and _token_tree_has_unsafe(token_tree):
            self._warn(node, f"unexpanded {name}! invocation contains unsafe")

    def visit(self, root: Node) -> FileScan:
        counters = self.result.counters
        stack: list[tuple[Node, bool, str, tuple[str, ...], bool]] = [
            (root, False, "module", (), False)
        ]
        while stack:
            node, in_unsafe, owner, inline_path, is_callee = stack.pop()
            node_type = node.type
            child_unsafe = in_unsafe
            child_owner = owner
            child_inline = inline_path

            if node_type in _SKIPPED_NODES:
                continue

            if node_type == "macro_invocation":
                self._visit_macro(node, in_unsafe)
                continue

            if node_type == "function_item":
                if self._is_skipped_test(outer_attributes(node), module=False):
                    continue
                is_unsafe = _function_is_unsafe(node)
                category = counters.methods if owner in ("impl", "trait") else counters.functions
                category.count(is_unsafe)
                child_unsafe = in_unsafe or is_unsafe
                child_owner = "module"
            elif node_type == "impl_item":
                counters.item_impls.count(_has_unsafe_keyword(node))
                child_owner = "impl"
            elif node_type == "trait_item":
                counters.item_traits.count(_has_unsafe_keyword(node))
                child_owner = "trait"
            elif node_type == "unsafe_block":
                child_unsafe = True
            elif node_type == "mod_item":
                attributes = outer_attributes(node)
                if self._is_skipped_test(attributes, module=True):
                    continue
                name_node = node.child_by_field_name("name")
                name = name_node.text.decode("utf8") if name_node and name_node.text else ""
                path_attr = next((a.value for a in attributes if a.name == "path"), None)
                body = node.child_by_field_name("body")
                if body is None:
                    self.result.modules.append(
                        ModuleDeclaration(
                            name=name,
                            inline_path=inline_path,
                            path_attr=path_attr,
                            line=node.start_point[0] + 1,
                        )
                    )
                    continue
                child_inline = (*inline_path, path_attr or name)
                child_owner = "module"
            elif node_type in ("function_signature_item", "declaration_list", "block"):
                pass
            elif _is_counted_expression(node_type) and not is_callee:
                counters.exprs.count(in_unsafe)

            callee_id = None
            if node_type == "call_expression":
                function = node.child_by_field_name("function")
                if function is not None and function.type == "field_expression":
                    callee_id = function.id

            for child in reversed(node.children):
                if not child.is_named:
                    continue
                stack.append(
                    (child, child_unsafe, child_owner, child_inline, child.id == callee_id)
                )

        return self.result


def scan_file_treesitter(file_path: Path, *, include_tests: bool = False) -> FileScan:
    """Count safe and unsafe usage in a Rust file using Tree-sitter.

    Args:
        file_path: Absolute path to the Rust file
        include_tests: Count ``#[test]`` functions and ``#[cfg(test)]`` modules

    Returns:
        FileScan with counters, the file-scope forbid verdict, out-of-line
        module declarations, literal ``include!`` paths and warnings.

    Raises:
        ParseError: If the file cannot be read or has syntax errors.
    """
    root = parse_rust_file(file_path).root_node
    result = _UnsafeVisitor(file_path, include_tests=include_tests).visit(root)
    result.forbids_unsafe, warnings = forbid_verdict(root, file_path)
    result.warnings.extend(warnings)
    return result


def scan_forbid_treesitter(file_path: Path) -> FileScan:
    """Check only the file-scope ``#![forbid(unsafe_code)]`` directive.

    Raises:
        ParseError: If the file cannot be read or has syntax errors.
    """
    root = parse_rust_file(file_path).root_node
    forbids, warnings = forbid_verdict(root, file_path)
    return FileScan(forbids_unsafe=forbids, warnings=warnings)


__all__ = [
    "Attribute",
    "FileScan",
    "ModuleDeclaration",
    "forbid_verdict",
    "parse_rust_file",
    "scan_file_treesitter",
    "scan_forbid_treesitter",
]
