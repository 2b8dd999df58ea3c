"""ylang IR - the Y-language syntax tree.

This module defines the closed set of node kinds every later phase reads.
Each node's docstring documents its semantics and invariants.

Architecture:
    Parse tree -> Frontend (builder) -> [IR] -> Middleend (warnings) -> Backend -> Target

The builder creates every node exactly once. Nodes are frozen: the analyzer
and every backend only read them, and no phase mutates a tree in place.
Sequences are tuples so a built tree is immutable all the way down.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from typing import Literal, Union


# ============================================================
# SOURCE LOCATIONS
# ============================================================


@dataclass(frozen=True)
class Loc:
    """Source position used only for diagnostics.

    Invariants:
    - line >= 1 when known, -1 when unknown
    - col >= 0 when known, -1 when unknown
    - never affects translation
    """

    line: int = -1
    col: int = -1

    def suffix(self) -> str:
        """Diagnostic suffix: ' (Line L:C)', ' (Line L)', or ''."""
        if self.line >= 0 and self.col >= 0:
            return f" (Line {self.line}:{self.col})"
        if self.line >= 0:
            return f" (Line {self.line})"
        return ""


def loc_unknown() -> Loc:
    """Factory for unknown source location."""
    return Loc(-1, -1)


# ============================================================
# TYPES
#
# Types are structural value objects. Two types with the same shape
# compare equal and may be shared freely between nodes.
# ============================================================


@dataclass(frozen=True)
class Type:
    """Base for all types. Abstract."""


@dataclass(frozen=True)
class Primitive(Type):
    """Built-in scalar types.

    | Kind    | TS      | Rust                    | Go      |
    |---------|---------|-------------------------|---------|
    | string  | string  | String                  | string  |
    | number  | number  | i64                     | int64   |
    | boolean | boolean | bool                    | bool    |
    | nothing | void    | ()                      | (none)  |
    | any     | any     | Box<dyn std::any::Any>  | any     |
    """

    kind: Literal["string", "number", "boolean", "nothing", "any"]


@dataclass(frozen=True)
class List(Type):
    """Ordered homogeneous sequence: list of T."""

    element: Type


@dataclass(frozen=True)
class Map(Type):
    """Key-value mapping: map of K to V."""

    key: Type
    value: Type


@dataclass(frozen=True)
class Either(Type):
    """Two-arm sum type: either L or R.

    | Target | Representation                                   |
    |--------|--------------------------------------------------|
    | TS     | Either<L, R> (tagged union alias in the prelude) |
    | Rust   | Result<L, R>                                     |
    | Go     | Either[L, R] (generic struct in the prelude)     |
    """

    left: Type
    right: Type


@dataclass(frozen=True)
class FuncType(Type):
    """Function taking one parameter type and returning one type."""

    param: Type
    ret: Type


@dataclass(frozen=True)
class Reference(Type):
    """Borrowed, non-owning view of a value.

    lifetime is an optional lifetime name. Only targets with borrow
    lifetimes (Rust) render it; elsewhere it renders as empty text.
    """

    element: Type
    lifetime: str | None = None


@dataclass(frozen=True)
class Box(Type):
    """Owned, heap-indirect value."""

    element: Type


@dataclass(frozen=True)
class NamedType(Type):
    """User-defined or generic type referenced by name."""

    name: str


STRING = Primitive("string")
NUMBER = Primitive("number")
BOOLEAN = Primitive("boolean")
NOTHING = Primitive("nothing")
ANY = Primitive("any")


# ============================================================
# EXPRESSIONS
# ============================================================


LiteralKind = Literal["string", "number", "boolean", "empty_list", "empty_map"]
BinaryOperator = Literal["add", "sub", "mul", "div", "eq", "gt", "lt", "and", "or", "mod"]
UnaryOperator = Literal["not", "negate"]
AccessKind = Literal["dot", "index"]
CastTarget = Literal["string", "number", "boolean"]

LITERAL_KINDS: tuple[str, ...] = ("string", "number", "boolean", "empty_list", "empty_map")
BINARY_OPS: tuple[str, ...] = ("add", "sub", "mul", "div", "eq", "gt", "lt", "and", "or", "mod")
UNARY_OPS: tuple[str, ...] = ("not", "negate")
ACCESS_KINDS: tuple[str, ...] = ("dot", "index")
CAST_TARGETS: tuple[str, ...] = ("string", "number", "boolean")


@dataclass(frozen=True, kw_only=True)
class Expr:
    """Base for all expressions. Abstract."""

    loc: Loc = field(default_factory=loc_unknown)


@dataclass(frozen=True)
class Constant(Expr):
    """Literal value.

    | kind       | value                     |
    |------------|---------------------------|
    | string     | str                       |
    | number     | int (integral) or float   |
    | boolean    | bool                      |
    | empty_list | None                      |
    | empty_map  | None                      |

    Integral vs fractional numbers are kept apart so backends can pick an
    exact-width or a floating representation.
    """

    kind: LiteralKind
    value: str | int | float | bool | None = None

    @property
    def is_integral(self) -> bool:
        return (
            self.kind == "number"
            and isinstance(self.value, int)
            and not isinstance(self.value, bool)
        )


@dataclass(frozen=True)
class Ident(Expr):
    """Reference to a named value."""

    name: str


@dataclass(frozen=True)
class Call(Expr):
    """Call of a named function: func(args...)."""

    func: str
    args: tuple[Expr, ...] = ()


@dataclass(frozen=True)
class BinaryOp(Expr):
    """Binary operation.

    Invariants:
    - op is one of BINARY_OPS
    - eq is value equality on every target
    """

    op: BinaryOperator
    left: Expr
    right: Expr


@dataclass(frozen=True)
class UnaryOp(Expr):
    """Unary operation: not x, -x."""

    op: UnaryOperator
    operand: Expr


@dataclass(frozen=True)
class Ternary(Expr):
    """Value-producing conditional: cond ? then_expr : else_expr.

    Distinct from the If statement. Exactly one arm is evaluated, after
    cond. Targets without a ternary must keep that evaluation order.
    """

    cond: Expr
    then_expr: Expr
    else_expr: Expr


@dataclass(frozen=True)
class MemberAccess(Expr):
    """obj.member (dot) or obj[member] (index)."""

    obj: Expr
    access: AccessKind
    member: Expr


@dataclass(frozen=True)
class ListLit(Expr):
    """List literal with ordered elements."""

    elements: tuple[Expr, ...] = ()


@dataclass(frozen=True)
class MapLit(Expr):
    """Map literal.

    Invariants:
    - entries keep insertion order; backends never sort them
    """

    entries: tuple[tuple[Expr, Expr], ...] = ()


@dataclass(frozen=True)
class Cast(Expr):
    """Conversion to string, number, or boolean."""

    expr: Expr
    to: CastTarget


@dataclass(frozen=True)
class Paren(Expr):
    """Explicit parentheses, kept so re-emission never re-associates."""

    expr: Expr


# ============================================================
# STATEMENTS
# ============================================================


@dataclass(frozen=True, kw_only=True)
class Stmt:
    """Base for all statements and declarations. Abstract."""

    loc: Loc = field(default_factory=loc_unknown)


@dataclass(frozen=True)
class Block(Stmt):
    """Ordered statement sequence; order is execution order."""

    body: tuple[Stmt, ...] = ()


@dataclass(frozen=True)
class Assign(Stmt):
    """target = value, where target is a variable name."""

    target: str
    value: Expr


@dataclass(frozen=True)
class If(Stmt):
    """Conditional statement. else_body is None when there is no else."""

    cond: Expr
    then_body: Block
    else_body: Block | None = None


@dataclass(frozen=True)
class Loop(Stmt):
    """Base for the two loop shapes. Abstract.

    A loop is exactly one of ForEach or While; the shapes never mix.
    """


@dataclass(frozen=True)
class ForEach(Loop):
    """for each var in iterable: body"""

    var: str
    iterable: Expr
    body: Block


@dataclass(frozen=True)
class While(Loop):
    """while cond: body, then increment var += 1 when increment is set."""

    cond: Expr
    body: Block
    increment: str | None = None


@dataclass(frozen=True)
class Return(Stmt):
    """Return from function. value None means void."""

    value: Expr | None = None


@dataclass(frozen=True)
class CatchClause:
    """catch var [as typ]: body. typ None catches everything."""

    var: str
    body: Block
    typ: Type | None = None
    loc: Loc = field(default_factory=loc_unknown)


@dataclass(frozen=True)
class Try(Stmt):
    """try body, then the first catch clause whose type matches."""

    body: Block
    catches: tuple[CatchClause, ...] = ()


@dataclass(frozen=True)
class MatchCase:
    """A case in a match statement.

    pattern is a tag: "_" (or "default") is the wildcard, numeric or quoted
    text is a literal pattern, anything else names an enum variant.
    binding, when set, names the matched payload; typ optionally types it.
    """

    pattern: str
    body: Block
    binding: str | None = None
    typ: Type | None = None
    loc: Loc = field(default_factory=loc_unknown)

    @property
    def is_wildcard(self) -> bool:
        return self.pattern in ("_", "default")


@dataclass(frozen=True)
class Match(Stmt):
    """Match subject against ordered cases; the first match runs."""

    subject: Expr
    cases: tuple[MatchCase, ...] = ()


@dataclass(frozen=True)
class ExprStmt(Stmt):
    """Expression evaluated for its side effect, result discarded."""

    expr: Expr


# ============================================================
# DECLARATIONS
# ============================================================


@dataclass(frozen=True)
class Param:
    """Function parameter.

    doc is the free-text annotation; the word "optional" in it marks the
    parameter optional on every target.
    """

    name: str
    typ: Type
    doc: str | None = None
    loc: Loc = field(default_factory=loc_unknown)


@dataclass(frozen=True)
class Function(Stmt):
    """Function declaration.

    Invariants:
    - ret is NOTHING for functions returning no value
    - doc is the optional free-text doc annotation
    """

    name: str
    params: tuple[Param, ...]
    ret: Type
    body: Block
    is_async: bool = False
    doc: str | None = None


@dataclass(frozen=True)
class Variable(Stmt):
    """Variable declaration. value is always present."""

    name: str
    typ: Type
    value: Expr


@dataclass(frozen=True)
class Struct(Stmt):
    """Structure declaration.

    generic is a single optional type-parameter name. implements names the
    capability the structure satisfies. members are typically Variable
    (fields) and Function (methods) nodes, kept in order.
    """

    name: str
    members: tuple[Stmt, ...] = ()
    generic: str | None = None
    implements: str | None = None


@dataclass(frozen=True)
class MethodSig:
    """Bodiless function signature inside a trait."""

    name: str
    params: tuple[Param, ...]
    ret: Type
    loc: Loc = field(default_factory=loc_unknown)


@dataclass(frozen=True)
class Trait(Stmt):
    """Capability: a named set of required function signatures."""

    name: str
    methods: tuple[MethodSig, ...] = ()


@dataclass(frozen=True)
class EnumVariant:
    """Enum variant: bare tag when fields is empty, else tag with payload."""

    name: str
    fields: tuple[Type, ...] = ()
    loc: Loc = field(default_factory=loc_unknown)


@dataclass(frozen=True)
class Enum(Stmt):
    """Enum declaration with ordered variants."""

    name: str
    variants: tuple[EnumVariant, ...] = ()
    generic: str | None = None


@dataclass(frozen=True)
class ModuleDecl(Stmt):
    """Named module holding nested statements."""

    name: str
    body: tuple[Stmt, ...] = ()


@dataclass(frozen=True)
class Import(Stmt):
    """Import of a module by name (segments joined by '.' or '::')."""

    module: str


@dataclass(frozen=True)
class InterfaceMember:
    """Data member of an interface."""

    name: str
    typ: Type
    optional: bool = False
    readonly: bool = False
    loc: Loc = field(default_factory=loc_unknown)


@dataclass(frozen=True)
class Interface(Stmt):
    """Structural contract made of typed data members."""

    name: str
    members: tuple[InterfaceMember, ...] = ()
    generic: str | None = None


@dataclass(frozen=True)
class TypeAlias(Stmt):
    """type name[<generic>] = aliased"""

    name: str
    aliased: Type
    generic: str | None = None


@dataclass(frozen=True)
class Impl(Stmt):
    """Implementation block: methods for target, optionally satisfying trait."""

    target: str
    methods: tuple[Stmt, ...] = ()
    trait: str | None = None


@dataclass(frozen=True)
class Decorator(Stmt):
    """@name(args) applied to exactly one node."""

    name: str
    target: Stmt
    args: tuple[Expr, ...] = ()


@dataclass(frozen=True)
class Program:
    """Root of a built tree: ordered top-level statements. Never nested."""

    body: tuple[Stmt, ...] = ()


# ============================================================
# KIND REGISTRY
# ============================================================

Node = Union[Program, Stmt, Expr, Type]

STMT_KINDS: tuple[type, ...] = (
    Function,
    Variable,
    Struct,
    Trait,
    Enum,
    ModuleDecl,
    Import,
    Interface,
    TypeAlias,
    Impl,
    Decorator,
    Assign,
    If,
    ForEach,
    While,
    Return,
    Try,
    Match,
    ExprStmt,
    Block,
)

EXPR_KINDS: tuple[type, ...] = (
    Constant,
    Ident,
    Call,
    BinaryOp,
    UnaryOp,
    Ternary,
    MemberAccess,
    ListLit,
    MapLit,
    Cast,
    Paren,
)

TYPE_KINDS: tuple[type, ...] = (
    Primitive,
    List,
    Map,
    Either,
    FuncType,
    Reference,
    Box,
    NamedType,
)


def to_dict(node: object) -> object:
    """Convert an IR node to a JSON-ready structure.

    Unknown locations are omitted; every dataclass gets a "_type" key.
    """
    if isinstance(node, Loc):
        return {"line": node.line, "col": node.col}
    if is_dataclass(node) and not isinstance(node, type):
        d: dict[str, object] = {"_type": type(node).__name__}
        for f in fields(node):
            value = getattr(node, f.name)
            if f.name == "loc" and value == loc_unknown():
                continue
            d[f.name] = to_dict(value)
        return d
    if isinstance(node, tuple):
        return [to_dict(item) for item in node]
    return node
