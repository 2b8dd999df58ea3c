"""Child enumeration over the IR.

Each function lists the direct children of one node in source order. The
analysis passes and the backends recurse on top of these instead of
repeating the kind dispatch.
"""

from __future__ import annotations

from .ir import (
    Assign,
    BinaryOp,
    Block,
    Call,
    Cast,
    Constant,
    Decorator,
    Expr,
    ExprStmt,
    ForEach,
    Function,
    Ident,
    If,
    Impl,
    ListLit,
    MapLit,
    Match,
    MemberAccess,
    ModuleDecl,
    Paren,
    Return,
    Stmt,
    Struct,
    Ternary,
    Try,
    UnaryOp,
    Variable,
    While,
)


def child_blocks(stmt: Stmt) -> list[Block]:
    """Blocks directly owned by a statement, in source order."""
    if isinstance(stmt, Function):
        return [stmt.body]
    if isinstance(stmt, If):
        if stmt.else_body is not None:
            return [stmt.then_body, stmt.else_body]
        return [stmt.then_body]
    if isinstance(stmt, (ForEach, While)):
        return [stmt.body]
    if isinstance(stmt, Try):
        return [stmt.body] + [c.body for c in stmt.catches]
    if isinstance(stmt, Match):
        return [c.body for c in stmt.cases]
    return []


def child_stmts(stmt: Stmt) -> list[Stmt]:
    """Statements nested directly in a statement, outside of its blocks."""
    if isinstance(stmt, Block):
        return list(stmt.body)
    if isinstance(stmt, ModuleDecl):
        return list(stmt.body)
    if isinstance(stmt, Struct):
        return list(stmt.members)
    if isinstance(stmt, Impl):
        return list(stmt.methods)
    if isinstance(stmt, Decorator):
        return [stmt.target]
    return []


def stmt_exprs(stmt: Stmt) -> list[Expr]:
    """Expressions held directly by a statement (not inside nested blocks)."""
    if isinstance(stmt, Variable):
        return [stmt.value]
    if isinstance(stmt, Assign):
        return [stmt.value]
    if isinstance(stmt, If):
        return [stmt.cond]
    if isinstance(stmt, ForEach):
        return [stmt.iterable]
    if isinstance(stmt, While):
        return [stmt.cond]
    if isinstance(stmt, Return):
        return [stmt.value] if stmt.value is not None else []
    if isinstance(stmt, Match):
        return [stmt.subject]
    if isinstance(stmt, ExprStmt):
        return [stmt.expr]
    if isinstance(stmt, Decorator):
        return list(stmt.args)
    return []


def expr_children(expr: Expr) -> list[Expr]:
    """Direct sub-expressions, in evaluation order."""
    if isinstance(expr, (Constant, Ident)):
        return []
    if isinstance(expr, Call):
        return list(expr.args)
    if isinstance(expr, BinaryOp):
        return [expr.left, expr.right]
    if isinstance(expr, UnaryOp):
        return [expr.operand]
    if isinstance(expr, Ternary):
        return [expr.cond, expr.then_expr, expr.else_expr]
    if isinstance(expr, MemberAccess):
        return [expr.obj, expr.member]
    if isinstance(expr, ListLit):
        return list(expr.elements)
    if isinstance(expr, MapLit):
        result: list[Expr] = []
        for key, value in expr.entries:
            result.append(key)
            result.append(value)
        return result
    if isinstance(expr, (Cast, Paren)):
        return [expr.expr]
    raise NotImplementedError(f"expr_children: {type(expr).__name__}")


def all_stmts(stmt: Stmt) -> list[Stmt]:
    """The statement itself followed by every statement nested inside it."""
    result: list[Stmt] = [stmt]
    for child in child_stmts(stmt):
        result.extend(all_stmts(child))
    for block in child_blocks(stmt):
        result.extend(all_stmts(block))
    return result


def all_exprs(expr: Expr) -> list[Expr]:
    """The expression itself followed by all of its sub-expressions."""
    result: list[Expr] = [expr]
    for child in expr_children(expr):
        result.extend(all_exprs(child))
    return result
