"""Reachability analysis: statements following a return in the same block."""

from __future__ import annotations

from ..ir import Block, Program, Return, Stmt
from ..walk import child_blocks, child_stmts


def find_unreachable(program: Program | None) -> list[str]:
    """Report every statement that follows a Return in its own block.

    Nested blocks are checked independently of whether the parent
    statement is itself reachable.
    """
    warnings: list[str] = []
    if program is None:
        return warnings
    for stmt in program.body:
        _visit(stmt, warnings)
    return warnings


def _visit(stmt: Stmt, warnings: list[str]) -> None:
    if isinstance(stmt, Block):
        _check_block(stmt, warnings)
        return
    for child in child_stmts(stmt):
        _visit(child, warnings)
    for block in child_blocks(stmt):
        _check_block(block, warnings)


def _check_block(block: Block, warnings: list[str]) -> None:
    seen_return = False
    for stmt in block.body:
        if seen_return:
            warnings.append("Unreachable code after return" + stmt.loc.suffix())
        if isinstance(stmt, Return):
            seen_return = True
        _visit(stmt, warnings)
