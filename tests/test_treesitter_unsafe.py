from __future__ import annotations

from pathlib import Path

import pytest

from errors import ParseError
from parse.treesitter_unsafe import (
    FileScan,
    ModuleDeclaration,
    scan_file_treesitter,
    scan_forbid_treesitter,
)


def _scan(tmp_path: Path, source: str, *, include_tests: bool = False) -> FileScan:
    path = tmp_path / "lib.rs"
    path.write_text(source, encoding="utf-8")
    return scan_file_treesitter(path, include_tests=include_tests)


def test_unsafe_block_calls_and_unsafe_impl(tmp_path: Path) -> None:
    result = _scan(
        tmp_path,
        """
struct S;

unsafe impl Send for S {}

fn f() {
    unsafe {
        a();
        b();
    }
}
""",
    )

    counters = result.counters
    assert counters.exprs.unsafe >= 2
    assert counters.exprs.safe == 0
    assert counters.item_impls.unsafe == 1
    assert counters.item_impls.safe == 0
    assert counters.functions.safe == 1
    assert counters.functions.unsafe == 0


def test_functions_methods_traits_and_impls(tmp_path: Path) -> None:
    result = _scan(
        tmp_path,
        """
pub unsafe fn raw(p: *const u8) -> u8 {
    *p
}

struct S;

impl S {
    fn safe_method(&self) -> u8 { 1 }
    unsafe fn unsafe_method(&self) {}
}

unsafe trait Marker {}

trait Plain {
    fn required(&self);
}
""",
    )

    counters = result.counters
    assert (counters.functions.safe, counters.functions.unsafe) == (0, 1)
    assert (counters.methods.safe, counters.methods.unsafe) == (1, 1)
    assert (counters.item_impls.safe, counters.item_impls.unsafe) == (1, 0)
    assert (counters.item_traits.safe, counters.item_traits.unsafe) == (1, 1)
    assert (counters.exprs.safe, counters.exprs.unsafe) == (0, 1)


def test_unsafe_impl_body_is_not_an_unsafe_scope(tmp_path: Path) -> None:
    result = _scan(
        tmp_path,
        """
struct S;

unsafe impl Sync for S {}

unsafe impl Send for S {}

impl Drop for S {
    fn drop(&mut self) {
        cleanup();
    }
}
""",
    )

    assert result.counters.item_impls.unsafe == 2
    assert result.counters.item_impls.safe == 1
    assert result.counters.exprs.safe == 1
    assert result.counters.exprs.unsafe == 0


def test_method_call_counts_once(tmp_path: Path) -> None:
    result = _scan(tmp_path, "fn len(v: Vec<u8>) -> usize { v.len() }\n")

    assert result.counters.exprs.safe == 1


def test_macro_in_expression_position_counts_as_expression(tmp_path: Path) -> None:
    result = _scan(tmp_path, "fn f() { let v = vec![1]; }\n")

    assert result.counters.exprs.safe == 1
    assert result.warnings == []


def test_test_code_skipped_unless_included(tmp_path: Path) -> None:
    source = """
fn real() {}

#[test]
fn unit() {
    unsafe { x(); }
}

#[cfg(test)]
mod tests {
    fn helper() {
        unsafe { y(); }
    }
}
"""
    skipped = _scan(tmp_path, source)
    included = _scan(tmp_path, source, include_tests=True)

    assert skipped.counters.functions.safe == 1
    assert skipped.counters.exprs.unsafe == 0
    assert included.counters.functions.safe == 3
    assert included.counters.exprs.unsafe == 2


def test_forbid_directive_credited(tmp_path: Path) -> None:
    result = _scan(tmp_path, "#![forbid(unsafe_code)]\n\nfn f() {}\n")

    assert result.forbids_unsafe is True
    assert result.warnings == []


@pytest.mark.parametrize(
    "source",
    [
        "fn f() {}\n",
        "#![deny(unsafe_code)]\nfn f() {}\n",
        "#[forbid(unsafe_code)]\nfn f() {}\n",
    ],
)
def test_forbid_directive_absent(tmp_path: Path, source: str) -> None:
    assert _scan(tmp_path, source).forbids_unsafe is False


def test_forbid_override_is_not_credited(tmp_path: Path) -> None:
    result = _scan(
        tmp_path,
        """#![forbid(unsafe_code)]

#[allow(unsafe_code)]
fn g() {}
""",
    )

    assert result.forbids_unsafe is False
    assert len(result.warnings) == 1
    assert "overridden (line 3)" in result.warnings[0]


def test_module_declarations(tmp_path: Path) -> None:
    result = _scan(
        tmp_path,
        """
mod a;

#[path = "other/b_impl.rs"]
mod b;

mod inline {
    mod c;
}

mod d {
    fn x() {}
}
""",
    )

    assert [(m.name, m.inline_path, m.path_attr) for m in result.modules] == [
        ("a", (), None),
        ("b", (), "other/b_impl.rs"),
        ("c", ("inline",), None),
    ]
    assert result.counters.functions.safe == 1
    assert all(isinstance(m, ModuleDeclaration) for m in result.modules)


def test_include_literal_and_dynamic(tmp_path: Path) -> None:
    result = _scan(
        tmp_path,
        """
include!("generated.rs");

include!(concat!(env!("OUT_DIR"), "/bindings.rs"));
""",
    )

    assert result.includes == ["generated.rs"]
    assert any("without a literal path" in warning for warning in result.warnings)


def test_unsafe_inside_unexpanded_macro_warns(tmp_path: Path) -> None:
    result = _scan(tmp_path, "fn f() { my_macro!(unsafe { x() }); }\n")

    assert result.counters.exprs.unsafe == 0
    assert any("unexpanded my_macro!" in warning for warning in result.warnings)


def test_syntax_error_raises_parse_error(tmp_path: Path) -> None:
    path = tmp_path / "broken.rs"
    path.write_text("fn broken( {\n", encoding="utf-8")

    with pytest.raises(ParseError, match="syntax error") as exc_info:
        scan_file_treesitter(path)
    assert exc_info.value.path == path


def test_missing_file_raises_parse_error(tmp_path: Path) -> None:
    with pytest.raises(ParseError, match="cannot read file"):
        scan_forbid_treesitter(tmp_path / "missing.rs")


def test_forbid_only_scan_has_no_counts(tmp_path: Path) -> None:
    path = tmp_path / "lib.rs"
    path.write_text(
        "#![forbid(unsafe_code)]\nmod a;\nfn f() { unsafe { g() } }\n",
        encoding="utf-8",
    )

    result = scan_forbid_treesitter(path)

    assert result.forbids_unsafe is True
    assert result.counters.total == 0
    assert result.modules == []
