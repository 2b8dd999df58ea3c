"""Literal coercion check: string + number between two constants."""

from __future__ import annotations

from ..ir import BinaryOp, Constant, Program
from ..walk import all_exprs, all_stmts, stmt_exprs


def find_literal_coercions(program: Program | None) -> list[str]:
    """Report each add whose operands are a string and a number literal."""
    warnings: list[str] = []
    if program is None:
        return warnings
    for top in program.body:
        for stmt in all_stmts(top):
            for expr in stmt_exprs(stmt):
                for sub in all_exprs(expr):
                    if _is_suspicious(sub):
                        warnings.append(
                            "Suspicious string-number concatenation" + sub.loc.suffix()
                        )
    return warnings


def _is_suspicious(expr: object) -> bool:
    if not isinstance(expr, BinaryOp) or expr.op != "add":
        return False
    left = expr.left
    right = expr.right
    if not isinstance(left, Constant) or not isinstance(right, Constant):
        return False
    kinds = {left.kind, right.kind}
    return kinds == {"string", "number"}
