"""Tests for the warning passes: unreachable code, unused variables, coercions."""

from trees import (
    assign,
    binop,
    block,
    call,
    expr_stmt,
    func,
    ident,
    if_,
    num,
    program,
    ret,
    text,
    var,
    while_,
)
from ylang import ir
from ylang.frontend import build_tree
from ylang.middleend import (
    analyze,
    count_references,
    find_literal_coercions,
    find_unreachable,
    find_unused_variables,
)


def _warnings(*body):
    return analyze(build_tree(program(*body)))


def _unreachable(warnings):
    return [w for w in warnings if w.startswith("Unreachable code after return")]


def _unused(warnings):
    return [w for w in warnings if w.startswith("Unused variable")]


def _coercions(warnings):
    return [w for w in warnings if w.startswith("Suspicious string-number concatenation")]


# ============================================================
# analyze
# ============================================================


def test_absent_tree_has_no_warnings():
    assert analyze(None) == []
    assert find_unreachable(None) == []
    assert find_unused_variables(None) == []
    assert find_literal_coercions(None) == []


def test_clean_program_has_no_warnings():
    assert _warnings(func("f", ret(num(1)), returns={"_type": "Type", "kind": "number"})) == []


def test_pass_order():
    warnings = _warnings(
        func(
            "f",
            var("unused", num(1), line=2),
            ret(binop("+", text("a"), num(1), line=3), line=3),
            expr_stmt(call("g"), line=4),
        )
    )
    assert warnings == [
        "Unreachable code after return (Line 4:4)",
        "Unused variable 'unused' (Line 2:4)",
        "Suspicious string-number concatenation (Line 3:4)",
    ]


def test_analysis_does_not_change_the_tree():
    tree = build_tree(program(func("f", var("x", num(1)), ret(num(0)), expr_stmt(call("g")))))
    before = ir.to_dict(tree)
    analyze(tree)
    assert ir.to_dict(tree) == before


# ============================================================
# unreachable code
# ============================================================


def test_statements_after_return_reported_once_each():
    warnings = _warnings(
        func(
            "f",
            expr_stmt(call("a"), line=1),
            ret(line=2),
            expr_stmt(call("b"), line=3),
            expr_stmt(call("c"), line=4),
        )
    )
    assert _unreachable(warnings) == [
        "Unreachable code after return (Line 3:4)",
        "Unreachable code after return (Line 4:4)",
    ]


def test_second_return_is_itself_unreachable():
    warnings = _warnings(func("f", ret(num(1)), ret(num(2))))
    assert len(_unreachable(warnings)) == 1


def test_return_last_is_clean():
    assert _unreachable(_warnings(func("f", expr_stmt(call("a")), ret()))) == []


def test_nested_blocks_checked_independently():
    warnings = _warnings(
        func(
            "f",
            if_(ident("c"), [ret(), expr_stmt(call("x"), line=3)], [expr_stmt(call("y"))]),
            expr_stmt(call("z")),
        )
    )
    assert _unreachable(warnings) == ["Unreachable code after return (Line 3:4)"]


def test_nested_blocks_in_unreachable_code_are_still_checked():
    warnings = _warnings(
        func(
            "f",
            ret(),
            while_(ident("c"), ret(), expr_stmt(call("x"))),
        )
    )
    assert len(_unreachable(warnings)) == 2


def test_top_level_block_statement():
    warnings = _warnings(block(ret(), expr_stmt(call("x"))))
    assert len(_unreachable(warnings)) == 1


def test_unknown_location_has_no_suffix():
    warnings = _warnings(func("f", ret(), expr_stmt(call("x"))))
    assert _unreachable(warnings) == ["Unreachable code after return"]


def test_catch_and_case_bodies():
    warnings = _warnings(
        func(
            "f",
            {
                "_type": "TryStatement",
                "body": block(ret(), expr_stmt(call("a"))),
                "handlers": [
                    {"_type": "CatchClause", "name": "e", "body": block(ret(), expr_stmt(call("b")))}
                ],
            },
            {
                "_type": "MatchStatement",
                "subject": ident("x"),
                "cases": [
                    {"_type": "MatchCase", "pattern": "_", "body": block(ret(), expr_stmt(call("c")))}
                ],
            },
        )
    )
    assert len(_unreachable(warnings)) == 3


# ============================================================
# unused variables
# ============================================================


def test_unused_variable_and_no_unreachable():
    warnings = _warnings(func("f", var("x", num(1)), ret(num(0))))
    assert _unused(warnings) == ["Unused variable 'x'"]
    assert _unreachable(warnings) == []


def test_referenced_variable_not_reported():
    assert _unused(_warnings(func("f", var("x", num(1)), ret(ident("x"))))) == []


def test_reference_in_nested_block_counts():
    body = [var("x", num(1)), if_(ident("c"), [expr_stmt(call("print", ident("x")))])]
    assert _unused(_warnings(func("f", *body))) == []


def test_assignment_target_is_not_a_reference():
    warnings = _warnings(func("f", var("x", num(1)), assign("x", num(2))))
    assert _unused(warnings) == ["Unused variable 'x'"]


def test_while_increment_counts_as_reference():
    warnings = _warnings(func("f", var("i", num(0)), while_(ident("c"), increment="i")))
    assert _unused(warnings) == []


def test_nested_declarations_are_not_tracked():
    warnings = _warnings(func("f", if_(ident("c"), [var("inner", num(1))])))
    assert _unused(warnings) == []


def test_top_level_variables_are_not_tracked():
    assert _unused(_warnings(var("x", num(1)))) == []


def test_methods_are_checked():
    struct = {
        "_type": "StructureDeclaration",
        "name": "S",
        "members": [func("m", var("tmp", num(1)))],
    }
    assert _unused(_warnings(struct)) == ["Unused variable 'tmp'"]


def test_each_unused_variable_reported_once():
    warnings = _warnings(func("f", var("a", num(1)), var("b", num(2)), var("c", ident("a"))))
    assert _unused(warnings) == ["Unused variable 'b'", "Unused variable 'c'"]


def test_count_references():
    body = build_tree(
        program(func("f", var("x", num(1)), ret(binop("+", ident("x"), ident("x")))))
    ).body[0].body
    assert count_references(body, "x") == 2
    assert count_references(body, "y") == 0


# ============================================================
# literal coercions
# ============================================================


def test_number_plus_string_literal():
    warnings = _warnings(var("v", binop("+", num(1), text("x"))))
    assert _coercions(warnings) == ["Suspicious string-number concatenation"]


def test_string_plus_number_literal():
    assert len(_coercions(_warnings(var("v", binop("+", text("x"), num(1)))))) == 1


def test_same_kind_operands_are_fine():
    assert _coercions(_warnings(var("v", binop("+", text("a"), text("b"))))) == []
    assert _coercions(_warnings(var("v", binop("+", num(1), num(2))))) == []


def test_non_literal_operand_is_fine():
    assert _coercions(_warnings(var("v", binop("+", ident("n"), text("x"))))) == []


def test_only_addition_is_checked():
    assert _coercions(_warnings(var("v", binop("*", num(2), text("x"))))) == []


def test_nested_coercion_found():
    expr = call("print", binop("+", ident("a"), binop("+", num(1), text("x"), line=7)))
    warnings = _warnings(func("f", expr_stmt(expr)))
    assert _coercions(warnings) == ["Suspicious string-number concatenation (Line 7:4)"]
