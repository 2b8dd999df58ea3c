"""Tests for the IR node model."""

import dataclasses

import pytest

from ylang import ir
from ylang.ir import (
    NOTHING,
    NUMBER,
    STRING,
    BinaryOp,
    Block,
    Constant,
    Function,
    Ident,
    Loc,
    Program,
    Return,
    to_dict,
)


def test_loc_suffix():
    assert Loc(3, 7).suffix() == " (Line 3:7)"
    assert Loc(3).suffix() == " (Line 3)"
    assert Loc().suffix() == ""


def test_nodes_are_frozen():
    node = Ident("x")
    with pytest.raises(dataclasses.FrozenInstanceError):
        node.name = "y"


def test_types_compare_structurally():
    assert ir.List(STRING) == ir.List(ir.Primitive("string"))
    assert ir.Map(STRING, NUMBER) != ir.Map(NUMBER, STRING)
    assert ir.Reference(STRING) != ir.Reference(STRING, "a")


def test_constant_integral():
    assert Constant("number", 3).is_integral
    assert not Constant("number", 3.0).is_integral
    assert not Constant("boolean", True).is_integral
    assert not Constant("string", "3").is_integral


def test_match_case_wildcard():
    assert ir.MatchCase("_", Block()).is_wildcard
    assert ir.MatchCase("default", Block()).is_wildcard
    assert not ir.MatchCase("Some", Block()).is_wildcard


def test_kind_registries_are_disjoint_and_complete():
    assert len(ir.STMT_KINDS) == 20
    assert len(ir.EXPR_KINDS) == 11
    assert len(ir.TYPE_KINDS) == 8
    assert not set(ir.STMT_KINDS) & set(ir.EXPR_KINDS)
    for kind in ir.STMT_KINDS:
        assert issubclass(kind, ir.Stmt)
    for kind in ir.EXPR_KINDS:
        assert issubclass(kind, ir.Expr)
    for kind in ir.TYPE_KINDS:
        assert issubclass(kind, ir.Type)


def test_to_dict():
    prog = Program(
        body=(
            Function(
                name="one",
                params=(),
                ret=NUMBER,
                body=Block(body=(Return(Constant("number", 1), loc=Loc(2, 4)),)),
            ),
        )
    )
    d = to_dict(prog)
    fn = d["body"][0]
    assert fn["_type"] == "Function"
    assert fn["ret"] == {"_type": "Primitive", "kind": "number"}
    assert "loc" not in fn
    stmt = fn["body"]["body"][0]
    assert stmt["loc"] == {"line": 2, "col": 4}
    assert stmt["value"] == {"_type": "Constant", "kind": "number", "value": 1}


def test_to_dict_map_entries_keep_order():
    m = ir.MapLit(entries=((Constant("string", "b"), Ident("x")), (Constant("string", "a"), Ident("y"))))
    entries = to_dict(m)["entries"]
    assert [pair[0]["value"] for pair in entries] == ["b", "a"]


def test_binary_op_operands():
    expr = BinaryOp("add", Ident("a"), Ident("b"))
    assert expr.loc == ir.loc_unknown()
    assert NOTHING == ir.Primitive("nothing")
