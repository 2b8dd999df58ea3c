"""Tree builder: dict-based parse tree -> IR Program.

The parse tree comes from the external Y parser, already free of syntax
errors. Building is a pure structural transformation: no name resolution,
no type checking. Elided annotations get documented defaults (missing type
-> nothing, missing list -> empty). Any other shape the IR cannot represent
raises a single BuildError for the first anomaly found; no partial tree is
ever returned.
"""

from __future__ import annotations

from .. import ir
from ..ir import (
    ANY,
    BOOLEAN,
    NOTHING,
    NUMBER,
    STRING,
    Block,
    Expr,
    Loc,
    Stmt,
    Type,
)

# Type alias for parse-tree dict nodes
ParseNode = dict[str, object]


class BuildError(Exception):
    """Parse-tree shape the IR cannot represent, with location info."""

    def __init__(self, msg: str, lineno: int = -1, col: int = -1):
        self.msg: str = msg
        self.lineno: int = lineno
        self.col: int = col
        super().__init__(msg)

    def __str__(self) -> str:
        return self.msg + Loc(self.lineno, self.col).suffix()


_PRIMITIVES: dict[str, Type] = {
    "string": STRING,
    "number": NUMBER,
    "boolean": BOOLEAN,
    "nothing": NOTHING,
    "any": ANY,
}

# Symbolic, Y keyword, and canonical spellings of each operator
_BINARY_OPS: dict[str, str] = {
    "+": "add",
    "plus": "add",
    "add": "add",
    "-": "sub",
    "minus": "sub",
    "sub": "sub",
    "*": "mul",
    "times": "mul",
    "mul": "mul",
    "/": "div",
    "divided by": "div",
    "div": "div",
    "==": "eq",
    "equals": "eq",
    "eq": "eq",
    ">": "gt",
    "is greater than": "gt",
    "gt": "gt",
    "<": "lt",
    "is less than": "lt",
    "lt": "lt",
    "&&": "and",
    "and": "and",
    "||": "or",
    "or": "or",
    "%": "mod",
    "modulo": "mod",
    "mod": "mod",
}

_UNARY_OPS: dict[str, str] = {
    "not": "not",
    "!": "not",
    "negate": "negate",
    "minus": "negate",
    "-": "negate",
}

_EXPR_TYPES: frozenset[str] = frozenset(
    {
        "Literal",
        "Identifier",
        "FunctionCall",
        "BinaryExpression",
        "UnaryExpression",
        "ConditionalExpression",
        "MemberAccess",
        "ListExpression",
        "MapExpression",
        "TypeCast",
        "ParenthesizedExpression",
    }
)


def build_tree(tree: object) -> ir.Program:
    """Build an IR Program from a parse tree. Raises BuildError."""
    if not isinstance(tree, dict):
        raise BuildError("parse tree root must be a Program node")
    if tree.get("_type") != "Program":
        raise BuildError(
            "expected Program at root, got " + _describe(tree),
            _lineno(tree),
            _col(tree),
        )
    return ir.Program(body=_stmts(tree, "body"))


# --- helpers ---


def _describe(node: object) -> str:
    if isinstance(node, dict):
        return str(node.get("_type", "<untyped node>"))
    return type(node).__name__


def _lineno(node: ParseNode) -> int:
    value = node.get("lineno")
    return value if isinstance(value, int) and not isinstance(value, bool) else -1


def _col(node: ParseNode) -> int:
    value = node.get("col_offset")
    return value if isinstance(value, int) and not isinstance(value, bool) else -1


def _loc(node: ParseNode) -> Loc:
    return Loc(_lineno(node), _col(node))


def _fail(node: ParseNode, msg: str) -> BuildError:
    return BuildError(msg, _lineno(node), _col(node))


def _node(parent: ParseNode, key: str) -> ParseNode:
    """Required child node."""
    child = parent.get(key)
    if child is None:
        raise _fail(parent, _describe(parent) + " is missing required '" + key + "'")
    if not isinstance(child, dict):
        raise _fail(parent, _describe(parent) + "." + key + " must be a node")
    if child.get("_type") == "Error":
        raise _fail(child, "parse tree contains an unparsed fragment")
    return child


def _opt_node(parent: ParseNode, key: str) -> ParseNode | None:
    if parent.get(key) is None:
        return None
    return _node(parent, key)


def _nodes(parent: ParseNode, key: str) -> list[ParseNode]:
    """Child node list; absent means empty."""
    children = parent.get(key)
    if children is None:
        return []
    if not isinstance(children, list):
        raise _fail(parent, _describe(parent) + "." + key + " must be a list")
    result: list[ParseNode] = []
    for child in children:
        if not isinstance(child, dict):
            raise _fail(parent, _describe(parent) + "." + key + " holds a non-node")
        if child.get("_type") == "Error":
            raise _fail(child, "parse tree contains an unparsed fragment")
        result.append(child)
    return result


def _name(node: ParseNode, key: str = "name") -> str:
    value = node.get(key)
    if not isinstance(value, str) or value == "":
        raise _fail(node, _describe(node) + " is missing required '" + key + "'")
    return value


def _opt_str(node: ParseNode, key: str) -> str | None:
    value = node.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise _fail(node, _describe(node) + "." + key + " must be text")
    return value


def _flag(node: ParseNode, key: str) -> bool:
    value = node.get(key, False)
    if not isinstance(value, bool):
        raise _fail(node, _describe(node) + "." + key + " must be a boolean")
    return value


# --- statements ---


def _stmts(parent: ParseNode, key: str) -> tuple[Stmt, ...]:
    return tuple(_stmt(child) for child in _nodes(parent, key))


def _block(parent: ParseNode, key: str) -> Block:
    node = _node(parent, key)
    if node.get("_type") != "Block":
        raise _fail(node, "expected Block, got " + _describe(node))
    return Block(body=_stmts(node, "body"), loc=_loc(node))


def _opt_block(parent: ParseNode, key: str) -> Block | None:
    if parent.get(key) is None:
        return None
    return _block(parent, key)


def _stmt(node: ParseNode) -> Stmt:
    kind = node.get("_type")
    loc = _loc(node)
    match kind:
        case "FunctionDeclaration":
            return ir.Function(
                name=_name(node),
                params=_params(node),
                ret=_opt_type(node, "returns"),
                body=_block(node, "body"),
                is_async=_flag(node, "is_async"),
                doc=_opt_str(node, "doc"),
                loc=loc,
            )
        case "VariableDeclaration":
            return ir.Variable(
                name=_name(node),
                typ=_opt_type(node, "type"),
                value=_expr(_node(node, "value")),
                loc=loc,
            )
        case "StructureDeclaration":
            return ir.Struct(
                name=_name(node),
                members=_stmts(node, "members"),
                generic=_opt_str(node, "generic"),
                implements=_opt_str(node, "implements"),
                loc=loc,
            )
        case "TraitDeclaration":
            return ir.Trait(
                name=_name(node),
                methods=tuple(_signature(sig) for sig in _nodes(node, "signatures")),
                loc=loc,
            )
        case "EnumDeclaration":
            return ir.Enum(
                name=_name(node),
                variants=tuple(_variant(v) for v in _nodes(node, "variants")),
                generic=_opt_str(node, "generic"),
                loc=loc,
            )
        case "ModuleDeclaration":
            return ir.ModuleDecl(name=_name(node), body=_stmts(node, "body"), loc=loc)
        case "ImportStatement":
            return ir.Import(module=_name(node, "module"), loc=loc)
        case "InterfaceDeclaration":
            return ir.Interface(
                name=_name(node),
                members=tuple(_member(m) for m in _nodes(node, "members")),
                generic=_opt_str(node, "generic"),
                loc=loc,
            )
        case "TypeAliasDeclaration":
            return ir.TypeAlias(
                name=_name(node),
                aliased=_type(_node(node, "type")),
                generic=_opt_str(node, "generic"),
                loc=loc,
            )
        case "Implementation":
            return ir.Impl(
                target=_name(node, "target"),
                methods=_stmts(node, "methods"),
                trait=_opt_str(node, "trait"),
                loc=loc,
            )
        case "Decorator":
            return ir.Decorator(
                name=_name(node),
                target=_stmt(_node(node, "target")),
                args=_exprs(node, "args"),
                loc=loc,
            )
        case "Assignment":
            return ir.Assign(
                target=_name(node, "target"), value=_expr(_node(node, "value")), loc=loc
            )
        case "IfStatement":
            return ir.If(
                cond=_expr(_node(node, "test")),
                then_body=_block(node, "body"),
                else_body=_opt_block(node, "orelse"),
                loc=loc,
            )
        case "ForEachLoop":
            return ir.ForEach(
                var=_name(node, "var"),
                iterable=_expr(_node(node, "iter")),
                body=_block(node, "body"),
                loc=loc,
            )
        case "WhileLoop":
            return ir.While(
                cond=_expr(_node(node, "test")),
                body=_block(node, "body"),
                increment=_opt_str(node, "increment"),
                loc=loc,
            )
        case "ReturnStatement":
            value = _opt_node(node, "value")
            return ir.Return(value=_expr(value) if value is not None else None, loc=loc)
        case "TryStatement":
            return ir.Try(
                body=_block(node, "body"),
                catches=tuple(_catch(h) for h in _nodes(node, "handlers")),
                loc=loc,
            )
        case "MatchStatement":
            return ir.Match(
                subject=_expr(_node(node, "subject")),
                cases=tuple(_case(c) for c in _nodes(node, "cases")),
                loc=loc,
            )
        case "ExpressionStatement":
            return ir.ExprStmt(expr=_expr(_node(node, "value")), loc=loc)
        case "Block":
            return Block(body=_stmts(node, "body"), loc=loc)
    if kind in _EXPR_TYPES:
        raise _fail(node, "expression " + str(kind) + " used as a statement")
    raise _fail(node, "unknown statement node " + _describe(node))


def _params(node: ParseNode) -> tuple[ir.Param, ...]:
    result: list[ir.Param] = []
    for p in _nodes(node, "params"):
        if p.get("_type") != "Parameter":
            raise _fail(p, "expected Parameter, got " + _describe(p))
        result.append(
            ir.Param(
                name=_name(p),
                typ=_opt_type(p, "type"),
                doc=_opt_str(p, "doc"),
                loc=_loc(p),
            )
        )
    return tuple(result)


def _signature(node: ParseNode) -> ir.MethodSig:
    if node.get("_type") != "FunctionSignature":
        raise _fail(node, "expected FunctionSignature, got " + _describe(node))
    return ir.MethodSig(
        name=_name(node),
        params=_params(node),
        ret=_opt_type(node, "returns"),
        loc=_loc(node),
    )


def _variant(node: ParseNode) -> ir.EnumVariant:
    if node.get("_type") != "EnumVariant":
        raise _fail(node, "expected EnumVariant, got " + _describe(node))
    return ir.EnumVariant(
        name=_name(node),
        fields=tuple(_type(t) for t in _nodes(node, "fields")),
        loc=_loc(node),
    )


def _member(node: ParseNode) -> ir.InterfaceMember:
    if node.get("_type") != "InterfaceMember":
        raise _fail(node, "expected InterfaceMember, got " + _describe(node))
    return ir.InterfaceMember(
        name=_name(node),
        typ=_opt_type(node, "type"),
        optional=_flag(node, "optional"),
        readonly=_flag(node, "readonly"),
        loc=_loc(node),
    )


def _catch(node: ParseNode) -> ir.CatchClause:
    if node.get("_type") != "CatchClause":
        raise _fail(node, "expected CatchClause, got " + _describe(node))
    typ = _opt_node(node, "type")
    return ir.CatchClause(
        var=_name(node),
        body=_block(node, "body"),
        typ=_type(typ) if typ is not None else None,
        loc=_loc(node),
    )


def _case(node: ParseNode) -> ir.MatchCase:
    if node.get("_type") != "MatchCase":
        raise _fail(node, "expected MatchCase, got " + _describe(node))
    typ = _opt_node(node, "type")
    return ir.MatchCase(
        pattern=_name(node, "pattern"),
        body=_block(node, "body"),
        binding=_opt_str(node, "name"),
        typ=_type(typ) if typ is not None else None,
        loc=_loc(node),
    )


# --- expressions ---


def _exprs(parent: ParseNode, key: str) -> tuple[Expr, ...]:
    return tuple(_expr(child) for child in _nodes(parent, key))


def _expr(node: ParseNode) -> Expr:
    kind = node.get("_type")
    loc = _loc(node)
    match kind:
        case "Literal":
            return _literal(node)
        case "Identifier":
            return ir.Ident(name=_name(node), loc=loc)
        case "FunctionCall":
            return ir.Call(func=_name(node), args=_exprs(node, "args"), loc=loc)
        case "BinaryExpression":
            op = _BINARY_OPS.get(str(node.get("op", "")).strip().lower())
            if op is None:
                raise _fail(node, "unknown binary operator " + repr(node.get("op")))
            return ir.BinaryOp(
                op=op,
                left=_expr(_node(node, "left")),
                right=_expr(_node(node, "right")),
                loc=loc,
            )
        case "UnaryExpression":
            op = _UNARY_OPS.get(str(node.get("op", "")).strip().lower())
            if op is None:
                raise _fail(node, "unknown unary operator " + repr(node.get("op")))
            return ir.UnaryOp(op=op, operand=_expr(_node(node, "operand")), loc=loc)
        case "ConditionalExpression":
            return ir.Ternary(
                cond=_expr(_node(node, "test")),
                then_expr=_expr(_node(node, "body")),
                else_expr=_expr(_node(node, "orelse")),
                loc=loc,
            )
        case "MemberAccess":
            return ir.MemberAccess(
                obj=_expr(_node(node, "value")),
                access="index" if _flag(node, "indexed") else "dot",
                member=_expr(_node(node, "member")),
                loc=loc,
            )
        case "ListExpression":
            return ir.ListLit(elements=_exprs(node, "elts"), loc=loc)
        case "MapExpression":
            entries: list[tuple[Expr, Expr]] = []
            for entry in _nodes(node, "entries"):
                if entry.get("_type") != "MapEntry":
                    raise _fail(entry, "expected MapEntry, got " + _describe(entry))
                entries.append((_expr(_node(entry, "key")), _expr(_node(entry, "value"))))
            return ir.MapLit(entries=tuple(entries), loc=loc)
        case "TypeCast":
            to = node.get("to")
            if to not in ir.CAST_TARGETS:
                raise _fail(node, "unknown cast target " + repr(to))
            return ir.Cast(expr=_expr(_node(node, "value")), to=to, loc=loc)
        case "ParenthesizedExpression":
            return ir.Paren(expr=_expr(_node(node, "value")), loc=loc)
    raise _fail(node, "unknown expression node " + _describe(node))


def _literal(node: ParseNode) -> ir.Constant:
    kind = node.get("kind")
    value = node.get("value")
    loc = _loc(node)
    if kind == "string":
        if not isinstance(value, str):
            raise _fail(node, "string literal needs a text value")
        return ir.Constant(kind="string", value=value, loc=loc)
    if kind == "number":
        return ir.Constant(kind="number", value=_number(node, value), loc=loc)
    if kind == "boolean":
        if isinstance(value, str) and value.lower() in ("true", "false"):
            value = value.lower() == "true"
        if not isinstance(value, bool):
            raise _fail(node, "boolean literal needs true or false")
        return ir.Constant(kind="boolean", value=value, loc=loc)
    if kind in ("empty_list", "empty_map"):
        return ir.Constant(kind=kind, value=None, loc=loc)
    raise _fail(node, "unknown literal kind " + repr(kind))


def _number(node: ParseNode, value: object) -> int | float:
    if isinstance(value, bool):
        raise _fail(node, "number literal holds a boolean")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if "." in text or "e" in text.lower():
                return float(text)
            return int(text)
        except ValueError:
            raise _fail(node, "malformed number literal " + repr(value)) from None
    raise _fail(node, "number literal needs a numeric value")


# --- types ---


def _opt_type(parent: ParseNode, key: str) -> Type:
    """Type annotation; an elided annotation means nothing."""
    node = _opt_node(parent, key)
    if node is None:
        return NOTHING
    return _type(node)


def _type(node: ParseNode) -> Type:
    kind = node.get("_type")
    match kind:
        case "Type":
            prim = _PRIMITIVES.get(str(node.get("kind", "")))
            if prim is None:
                raise _fail(node, "unknown primitive type " + repr(node.get("kind")))
            return prim
        case "ListType":
            return ir.List(_type(_node(node, "element")))
        case "MapType":
            return ir.Map(_type(_node(node, "key")), _type(_node(node, "value")))
        case "EitherType":
            return ir.Either(_type(_node(node, "left")), _type(_node(node, "right")))
        case "FunctionType":
            return ir.FuncType(_type(_node(node, "param")), _opt_type(node, "returns"))
        case "ReferenceType":
            return ir.Reference(_type(_node(node, "element")), _opt_str(node, "lifetime"))
        case "BoxType":
            return ir.Box(_type(_node(node, "element")))
        case "NamedType":
            return ir.NamedType(_name(node))
    raise _fail(node, "unknown type node " + _describe(node))
