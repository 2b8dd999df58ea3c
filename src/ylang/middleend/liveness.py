"""Liveness analysis: variables declared in a function body and never read.

Scope is deliberately shallow. Only Variable declarations sitting directly
in a function's top-level body are tracked; declarations inside nested
blocks are not. References are counted textually across the whole body.
"""

from __future__ import annotations

from ..ir import Block, Function, Ident, Program, Stmt, Variable, While
from ..walk import all_exprs, all_stmts, stmt_exprs


def find_unused_variables(program: Program | None) -> list[str]:
    """Report each function-body variable with zero identifier references."""
    warnings: list[str] = []
    if program is None:
        return warnings
    for top in program.body:
        for stmt in all_stmts(top):
            if isinstance(stmt, Function):
                _check_function(stmt, warnings)
    return warnings


def _check_function(func: Function, warnings: list[str]) -> None:
    for stmt in func.body.body:
        if not isinstance(stmt, Variable):
            continue
        if count_references(func.body, stmt.name) == 0:
            warnings.append("Unused variable '" + stmt.name + "'" + stmt.loc.suffix())


def count_references(block: Block, name: str) -> int:
    """Count Ident nodes named name anywhere under block.

    A while loop's increment variable counts as a reference; assignment
    targets and loop bindings do not.
    """
    count = 0
    for stmt in all_stmts(block):
        count += _count_in_stmt(stmt, name)
    return count


def _count_in_stmt(stmt: Stmt, name: str) -> int:
    count = 0
    if isinstance(stmt, While) and stmt.increment == name:
        count += 1
    for expr in stmt_exprs(stmt):
        for sub in all_exprs(expr):
            if isinstance(sub, Ident) and sub.name == name:
                count += 1
    return count
