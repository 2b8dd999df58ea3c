"""Tests for the compile/validate orchestration."""

import logging

import pytest

from trees import binop, call, expr_stmt, func, ident, num, param, prim, program, ret, text, var
from ylang import (
    CompileResult,
    ParseError,
    ParseOutcome,
    compile_source,
    compile_tree,
    validate_source,
    validate_tree,
)


def _greet():
    return program(
        func(
            "greet",
            ret(binop("+", text("Hello "), ident("name"))),
            params=[param("name", prim("string"))],
            returns=prim("string"),
        )
    )


class FakeParser:
    """Stands in for the external Y parser: source text is looked up in a table."""

    def __init__(self, trees):
        self.trees = trees

    def parse(self, source):
        if source not in self.trees:
            return ParseOutcome(None, ["Unexpected token (Line 1:0)"])
        return ParseOutcome(self.trees[source], [])


class RaisingParser:
    def parse(self, source):
        raise ParseError("unterminated string", 2, 5)


# ============================================================
# compile
# ============================================================


def test_greet_typescript():
    result = compile_tree(_greet(), "typescript")
    assert result.success
    assert "function greet(name: string): string" in result.code
    assert '"Hello "' in result.code
    assert result.errors == []
    assert result.warnings == []
    assert result.target == "typescript"
    assert result.elapsed_ms >= 0


def test_greet_rust():
    result = compile_tree(_greet(), "rust")
    assert "pub fn greet(name: String) -> String" in result.code
    assert 'String::from("Hello ")' in result.code


def test_target_alias_is_canonicalized():
    assert compile_tree(_greet(), "TS").target == "typescript"


def test_unsupported_target():
    result = compile_tree(_greet(), "cobol")
    assert not result.success
    assert result.code is None
    assert result.errors == ["Unsupported target language: cobol"]
    assert result.warnings == []


def test_unsupported_target_checked_before_build():
    result = compile_tree({"_type": "Garbage"}, "cobol")
    assert result.errors == ["Unsupported target language: cobol"]


def test_build_error():
    result = compile_tree(program({"_type": "VariableDeclaration", "name": "x", "lineno": 4, "col_offset": 2}), "go")
    assert result.code is None
    assert result.errors == ["Build error: VariableDeclaration is missing required 'value' (Line 4:2)"]
    assert result.warnings == []


def test_warnings_accompany_code():
    tree = program(func("f", var("x", num(1)), ret(num(0))))
    result = compile_tree(tree, "go")
    assert result.success
    assert result.code is not None
    assert result.warnings == ["Unused variable 'x'"]


def test_coercion_warning():
    result = compile_tree(program(expr_stmt(binop("+", num(1), text("x")))), "rust")
    assert result.warnings == ["Suspicious string-number concatenation"]


def test_success_and_errors_are_exclusive():
    for result in (compile_tree(_greet(), "go"), compile_tree(_greet(), "cobol")):
        assert isinstance(result, CompileResult)
        assert result.success == (result.code is not None)
        assert result.success == (not result.errors)


def test_requests_are_independent():
    first = compile_tree(_greet(), "typescript")
    compile_tree(program(func("other", var("y", num(2)))), "typescript")
    assert compile_tree(_greet(), "typescript").code == first.code


def test_logging(caplog):
    with caplog.at_level(logging.DEBUG, logger="ylang"):
        compile_tree(_greet(), "go")
    assert any("compiled to go" in r.getMessage() for r in caplog.records)


# ============================================================
# validate
# ============================================================


def test_validate_valid():
    result = validate_tree(program(func("f", var("x", num(1)), ret(num(0)))))
    assert result.valid
    assert result.errors == []
    assert result.warnings == ["Unused variable 'x'"]


def test_validate_invalid():
    result = validate_tree(program(ident("x")))
    assert not result.valid
    assert result.errors == ["Build error: expression Identifier used as a statement"]
    assert result.warnings == []


# ============================================================
# source entry points
# ============================================================


def test_compile_source():
    parser = FakeParser({"greet": _greet()})
    result = compile_source("greet", "rust", parser)
    assert result.success
    assert "pub fn greet" in result.code


def test_compile_source_syntax_errors_short_circuit():
    result = compile_source("???", "rust", FakeParser({}))
    assert result.code is None
    assert result.errors == ["Unexpected token (Line 1:0)"]


def test_compile_source_raised_parse_error():
    result = compile_source("x = \"", "go", RaisingParser())
    assert result.errors == ["unterminated string (Line 2:5)"]


def test_validate_source():
    parser = FakeParser({"ok": program(expr_stmt(call("main")))})
    assert validate_source("ok", parser).valid
    assert not validate_source("bad", parser).valid


@pytest.mark.parametrize("target", ["typescript", "rust", "go"])
def test_empty_program(target):
    result = compile_tree(program(), target)
    assert result.success
    assert result.warnings == []
