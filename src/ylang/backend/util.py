"""Shared utilities for backend code emitters."""

from __future__ import annotations

import re
from typing import TypeVar

from ..ir import (
    Assign,
    BinaryOp,
    Box,
    CatchClause,
    Constant,
    Expr,
    NamedType,
    Program,
    Reference,
    Stmt,
    Ternary,
    Type,
    UnaryOp,
    While,
)
from ..walk import all_stmts

T = TypeVar("T")

# Binding strength of each binary operator (higher binds tighter). TypeScript,
# Rust, and Go agree on the relative order for this operator set.
BINARY_PREC: dict[str, int] = {
    "or": 1,
    "and": 2,
    "eq": 3,
    "gt": 3,
    "lt": 3,
    "add": 4,
    "sub": 4,
    "mul": 5,
    "div": 5,
    "mod": 5,
}

_COMPARISON_PREC = 3

_WORD = re.compile(r"[A-Z]+(?=[A-Z][a-z0-9])|[A-Z]?[a-z0-9]+|[A-Z]+")


def split_words(name: str) -> list[str]:
    """Split an identifier on hyphens, underscores, and camel boundaries.

    >>> split_words("user-name_fooBar")
    ['user', 'name', 'foo', 'Bar']
    """
    words: list[str] = []
    for chunk in re.split(r"[-_\s]+", name):
        words.extend(_WORD.findall(chunk))
    return words


def _prefix(name: str) -> str:
    """Leading underscores survive casing (private names stay private)."""
    return name[: len(name) - len(name.lstrip("_"))]


def to_snake(name: str) -> str:
    """Convert any casing to snake_case."""
    words = split_words(name)
    if not words:
        return name
    return _prefix(name) + "_".join(w.lower() for w in words)


def to_camel(name: str) -> str:
    """Convert any casing to camelCase."""
    words = split_words(name)
    if not words:
        return name
    first = words[0].lower()
    return _prefix(name) + first + "".join(w.capitalize() for w in words[1:])


def to_pascal(name: str) -> str:
    """Convert any casing to PascalCase."""
    words = split_words(name)
    if not words:
        return name
    return _prefix(name) + "".join(w.capitalize() for w in words)


_CONTROL = re.compile(r"[\x00-\x1f\x7f]")


def escape_string(value: str) -> str:
    """Escape a string for use in a double-quoted literal (without quotes).

    Control characters without a short escape become \\xNN, which
    TypeScript, Rust, and Go all accept for code points below 0x80.
    """
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\t", "\\t")
        .replace("\r", "\\r")
    )
    return _CONTROL.sub(lambda m: f"\\x{ord(m.group()):02x}", escaped)


def format_number(value: object) -> str:
    """Render a numeric literal payload."""
    if isinstance(value, float):
        return repr(value)
    return str(value)


def module_segments(module: str) -> list[str]:
    """Split a module name on '.', '::', or '/'."""
    return [s for s in re.split(r"\.|::|/", module) if s]


def is_optional_doc(doc: str | None) -> bool:
    """True if a parameter doc annotation carries the optional marker."""
    return doc is not None and "optional" in doc.lower()


def is_literal_pattern(tag: str) -> bool:
    """Numeric or quoted match tags are literal patterns, emitted verbatim."""
    if len(tag) >= 2 and tag[0] == tag[-1] and tag[0] in "\"'":
        return True
    return re.fullmatch(r"-?\d+(\.\d+)?", tag) is not None


def catch_chain(catches: tuple[CatchClause, ...]) -> list[tuple[CatchClause, bool]]:
    """Pair each catch clause with whether it is the chain's closing else.

    A typed clause is a conditional branch. An untyped clause closes the
    chain when it comes last; an untyped clause in any other position is a
    branch whose condition always holds, so later clauses never run.
    """
    result: list[tuple[CatchClause, bool]] = []
    for i, clause in enumerate(catches):
        result.append((clause, clause.typ is None and i == len(catches) - 1))
    return result


def declared_enum(typ: Type | None) -> str | None:
    """Enum name a declared type refers to, looking through Reference and Box."""
    while isinstance(typ, (Reference, Box)):
        typ = typ.element
    if isinstance(typ, NamedType):
        return typ.name
    return None


def pick_owner(owners: dict[str, T], enum: str | None) -> tuple[str, T] | None:
    """Choose which enum a match arm's variant belongs to.

    owners maps each enum declaring the variant, in declaration order, to
    its variant info. The subject's own enum wins when it declares the
    variant; otherwise the first declaring enum is used.
    """
    if not owners:
        return None
    if enum is not None and enum in owners:
        return enum, owners[enum]
    first = next(iter(owners))
    return first, owners[first]


def reassigned_names(program: Program) -> set[str]:
    """Names that are assigned after declaration anywhere in the program."""
    names: set[str] = set()
    for top in program.body:
        for stmt in all_stmts(top):
            if isinstance(stmt, Assign):
                names.add(stmt.target)
            elif isinstance(stmt, While) and stmt.increment is not None:
                names.add(stmt.increment)
    return names


class Emitter:
    """Base class for code emitters with indentation tracking.

    Statement and expression kinds dispatch by name: a statement of kind K
    is handled by _emit_K, an expression of kind K by _expr_K. Every
    backend must define both families for the whole kind set.
    """

    def __init__(self, indent_str: str = "    ") -> None:
        self.indent: int = 0
        self.lines: list[str] = []
        self._indent_str = indent_str

    def line(self, text: str = "") -> None:
        """Emit a line with current indentation."""
        if text:
            self.lines.append(self._indent_str * self.indent + text)
        else:
            self.lines.append("")

    def output(self) -> str:
        """Return the accumulated output as a string."""
        return "\n".join(self.lines)

    def _reset(self) -> None:
        self.indent = 0
        self.lines = []

    def _stmt(self, stmt: Stmt) -> None:
        handler = getattr(self, "_emit_" + type(stmt).__name__, None)
        if handler is None:
            raise NotImplementedError(f"{type(self).__name__} stmt: {type(stmt).__name__}")
        handler(stmt)

    def _expr(self, expr: Expr) -> str:
        handler = getattr(self, "_expr_" + type(expr).__name__, None)
        if handler is None:
            raise NotImplementedError(f"{type(self).__name__} expr: {type(expr).__name__}")
        return handler(expr)

    def _body(self, stmts: tuple[Stmt, ...]) -> None:
        """Emit statements one level deeper than the current line."""
        self.indent += 1
        for stmt in stmts:
            self._stmt(stmt)
        self.indent -= 1

    def _binary_op(self, op: str) -> str:
        raise NotImplementedError

    def _wrap_prec(self, expr: Expr, parent_op: str, is_right: bool) -> str:
        """Emit expr, adding parens if its precedence requires it."""
        s = self._expr(expr)
        if isinstance(expr, Ternary):
            return f"({s})"
        if isinstance(expr, BinaryOp):
            child_prec = BINARY_PREC[expr.op]
            parent_prec = BINARY_PREC[parent_op]
            if child_prec < parent_prec:
                return f"({s})"
            if child_prec == parent_prec and (is_right or child_prec == _COMPARISON_PREC):
                return f"({s})"
        return s

    def _expr_BinaryOp(self, expr: BinaryOp) -> str:
        op = self._binary_op(expr.op)
        left = self._wrap_prec(expr.left, expr.op, False)
        right = self._wrap_prec(expr.right, expr.op, True)
        return f"{left} {op} {right}"

    def _unary_operand(self, expr: UnaryOp) -> str:
        s = self._expr(expr.operand)
        if isinstance(expr.operand, (BinaryOp, UnaryOp, Ternary)):
            return f"({s})"
        if isinstance(expr.operand, Constant) and s.startswith("-"):
            return f"({s})"
        return s

    def _postfix_operand(self, expr: Expr) -> str:
        """Emit the object of a member access or method-style suffix."""
        s = self._expr(expr)
        if isinstance(expr, (BinaryOp, UnaryOp, Ternary)):
            return f"({s})"
        return s
