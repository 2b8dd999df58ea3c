"""GoBackend: IR -> Go code.

Go has no ternary, no tagged unions, no payload-carrying enums, no
decorators, no exceptions, and no nested modules. Each gap has a fixed
rendering:

- Conditional expressions become an immediately invoked function literal
  that evaluates exactly one arm. Its result type comes from a shallow
  lookup over literals, declared variables and parameters, and known
  function return types, falling back to `any`.
- Either is a generic struct emitted once in the header.
- Bare enums are iota constants. Enums with payloads degrade to string
  tags; the payload field types stay in a comment on each constant.
- Decorators become a `// @name(args)` comment on the decorated node.
- Try runs its body in a function literal guarded by defer/recover.
- A module is a comment header; its declarations join the package.

Loose top-level statements run in `func init()`.
"""

from __future__ import annotations

from ..ir import (
    ANY,
    NOTHING,
    Assign,
    BinaryOp,
    Block,
    Box,
    Call,
    Cast,
    CatchClause,
    Constant,
    Decorator,
    Either,
    Enum,
    Expr,
    ExprStmt,
    ForEach,
    FuncType,
    Function,
    Ident,
    If,
    Impl,
    Import,
    Interface,
    List,
    ListLit,
    Map,
    MapLit,
    Match,
    MatchCase,
    MemberAccess,
    MethodSig,
    ModuleDecl,
    NamedType,
    Param,
    Paren,
    Primitive,
    Program,
    Reference,
    Return,
    Stmt,
    Struct,
    Ternary,
    Trait,
    Try,
    Type,
    TypeAlias,
    UnaryOp,
    Variable,
    While,
)
from ..walk import all_stmts
from .util import (
    Emitter,
    catch_chain,
    declared_enum,
    escape_string,
    format_number,
    is_literal_pattern,
    is_optional_doc,
    module_segments,
    pick_owner,
    to_camel,
    to_pascal,
)

# Go reserved words and predeclared names that need renaming
GO_RESERVED = frozenset(
    {
        "any",
        "break",
        "case",
        "chan",
        "const",
        "continue",
        "default",
        "defer",
        "else",
        "fallthrough",
        "for",
        "func",
        "go",
        "goto",
        "if",
        "import",
        "interface",
        "map",
        "nil",
        "package",
        "range",
        "return",
        "select",
        "struct",
        "switch",
        "type",
        "var",
    }
)

_PRIMITIVES = {
    "string": "string",
    "number": "int64",
    "boolean": "bool",
    "nothing": "struct{}",
    "any": "any",
}

_BINARY_OPS = {
    "add": "+",
    "sub": "-",
    "mul": "*",
    "div": "/",
    "mod": "%",
    "eq": "==",
    "gt": ">",
    "lt": "<",
    "and": "&&",
    "or": "||",
}

_UNARY_OPS = {"not": "!", "negate": "-"}

_EITHER_PRELUDE = """type Either[L any, R any] struct {
\tLeft    L
\tRight   R
\tIsRight bool
}"""

# Kinds that live at package level; everything else runs in a function body
_ITEM_KINDS = (
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
)


def _is_item(stmt: Stmt) -> bool:
    if isinstance(stmt, Decorator):
        return _is_item(stmt.target)
    return isinstance(stmt, _ITEM_KINDS)


class GoBackend(Emitter):
    """Emit Go code from IR Program."""

    def __init__(self) -> None:
        super().__init__("\t")
        self._imports: list[str] = []
        self._needs_either = False
        self._variants: dict[str, dict[str, tuple[Type, ...]]] = {}
        self._returns: dict[str, Type] = {}
        self._scope: dict[str, Type] = {}
        self._in_func = 0

    def emit(self, program: Program) -> str:
        """Emit Go code from an IR Program."""
        self._reset()
        self._imports = []
        self._needs_either = False
        self._variants = {}
        self._returns = {}
        self._scope = {}
        self._in_func = 0
        for top in program.body:
            for stmt in all_stmts(top):
                if isinstance(stmt, Enum):
                    enum = self._type_name(stmt.name)
                    for v in stmt.variants:
                        self._variants.setdefault(to_pascal(v.name), {})[enum] = v.fields
                elif isinstance(stmt, Function):
                    self._returns[to_camel(stmt.name)] = stmt.ret
        self._emit_items(program.body)
        # Two-pass: emit body first, then prepend header with only needed imports
        body = self.lines
        self.lines = []
        self._emit_header("\n".join(body))
        self.lines.extend(body)
        return self.output() + "\n"

    def _emit_header(self, body: str) -> None:
        """Emit package declaration, imports, and helpers based on what body uses."""
        self.line("package main")
        imports = set(self._imports)
        if "fmt." in body:
            imports.add("fmt")
        if "strconv." in body:
            imports.add("strconv")
        if len(imports) == 1:
            self.line("")
            self.line(f'import "{next(iter(imports))}"')
        elif imports:
            self.line("")
            self.line("import (")
            self.indent += 1
            for imp in sorted(imports):
                self.line(f'"{imp}"')
            self.indent -= 1
            self.line(")")
        if self._needs_either:
            self.line("")
            self.lines.extend(_EITHER_PRELUDE.split("\n"))
        if body:
            self.line("")

    def _emit_items(self, stmts: tuple[Stmt, ...]) -> None:
        """Emit package-level declarations, then the rest inside func init()."""
        loose: list[Stmt] = []
        emitted = False
        for stmt in stmts:
            if not _is_item(stmt):
                loose.append(stmt)
                continue
            mark = len(self.lines)
            self._stmt(stmt)
            if len(self.lines) > mark:
                if emitted:
                    self.lines.insert(mark, "")
                emitted = True
        if loose:
            if emitted:
                self.line("")
            self.line("func init() {")
            self._in_func += 1
            self._body(tuple(loose))
            self._in_func -= 1
            self.line("}")

    # ── names and types ──────────────────────────────────────

    def _safe(self, name: str) -> str:
        if name in GO_RESERVED:
            return name + "_"
        return name

    def _name(self, name: str) -> str:
        return self._safe(to_camel(name))

    def _type_name(self, name: str) -> str:
        return self._safe(to_pascal(name))

    def _type_params(self, generic: str | None) -> str:
        return f"[{self._type_name(generic)} any]" if generic else ""

    def _type_args(self, generic: str | None) -> str:
        return f"[{self._type_name(generic)}]" if generic else ""

    def _type(self, typ: Type) -> str:
        if isinstance(typ, Primitive):
            return _PRIMITIVES[typ.kind]
        if isinstance(typ, List):
            return f"[]{self._type(typ.element)}"
        if isinstance(typ, Map):
            return f"map[{self._type(typ.key)}]{self._type(typ.value)}"
        if isinstance(typ, Either):
            self._needs_either = True
            return f"Either[{self._type(typ.left)}, {self._type(typ.right)}]"
        if isinstance(typ, FuncType):
            param = "" if typ.param == NOTHING else self._type(typ.param)
            return f"func({param}){self._ret(typ.ret)}"
        if isinstance(typ, (Reference, Box)):
            return f"*{self._type(typ.element)}"
        if isinstance(typ, NamedType):
            return self._type_name(typ.name)
        raise NotImplementedError(f"Go type: {typ}")

    def _ret(self, typ: Type) -> str:
        if typ == NOTHING:
            return ""
        return f" {self._type(typ)}"

    def _param(self, p: Param) -> str:
        typ = self._type(p.typ)
        if is_optional_doc(p.doc):
            typ = f"*{typ}"
        return f"{self._name(p.name)} {typ}"

    def _signature(self, func: Function | MethodSig) -> str:
        params = ", ".join(self._param(p) for p in func.params)
        return f"{self._name(func.name)}({params}){self._ret(func.ret)}"

    def _doc(self, doc: str | None) -> None:
        if doc is None:
            return
        for text in doc.splitlines() or [""]:
            self.line(f"// {text}".rstrip())

    def _decorator(self, s: Decorator) -> str:
        if s.args:
            args = ", ".join(self._expr(a) for a in s.args)
            return f"// @{s.name}({args})"
        return f"// @{s.name}"

    # ── declarations ─────────────────────────────────────────

    def _emit_Function(self, func: Function) -> None:
        self._doc(func.doc)
        if func.is_async:
            self.line("// async: callers run this in a goroutine")
        if self._in_func:
            params = ", ".join(self._param(p) for p in func.params)
            self.line(f"{self._name(func.name)} := func({params}){self._ret(func.ret)} {{")
        else:
            self.line(f"func {self._signature(func)} {{")
        self._func_body(func)
        self.line("}")

    def _func_body(self, func: Function) -> None:
        saved = self._scope
        self._scope = dict(saved)
        for p in func.params:
            self._scope[to_camel(p.name)] = p.typ
        self._in_func += 1
        self._body(func.body.body)
        self._in_func -= 1
        self._scope = saved

    def _emit_method(self, func: Function, receiver: str, decorators: list[Decorator]) -> None:
        for d in decorators:
            self.line(self._decorator(d))
        self._doc(func.doc)
        self.line(f"func (self *{receiver}) {self._signature(func)} {{")
        self._func_body(func)
        self.line("}")

    def _emit_Variable(self, s: Variable) -> None:
        name = self._name(s.name)
        value = self._expr(s.value)
        self._scope[to_camel(s.name)] = s.typ
        if s.typ == NOTHING:
            if self._in_func:
                self.line(f"{name} := {value}")
            else:
                self.line(f"var {name} = {value}")
            return
        self.line(f"var {name} {self._type(s.typ)} = {value}")

    def _emit_Struct(self, s: Struct) -> None:
        name = self._type_name(s.name)
        params = self._type_params(s.generic)
        receiver = name + self._type_args(s.generic)
        fields: list[tuple[Variable, list[Decorator]]] = []
        methods: list[tuple[Function, list[Decorator]]] = []
        others: list[Stmt] = []
        for member in s.members:
            decorators: list[Decorator] = []
            target = member
            while isinstance(target, Decorator):
                decorators.append(target)
                target = target.target
            if isinstance(target, Variable):
                fields.append((target, decorators))
            elif isinstance(target, Function):
                methods.append((target, decorators))
            else:
                others.append(member)
        self.line(f"type {name}{params} struct {{")
        self.indent += 1
        for field, decorators in fields:
            for d in decorators:
                self.line(self._decorator(d))
            self.line(f"{self._name(field.name)} {self._type(field.typ)}")
        self.indent -= 1
        self.line("}")
        if fields:
            self.line("")
            self.line(f"func New{name}{params}() *{receiver} {{")
            self.indent += 1
            self.line(f"return &{receiver}{{")
            self.indent += 1
            for field, _ in fields:
                self.line(f"{self._name(field.name)}: {self._expr(field.value)},")
            self.indent -= 1
            self.line("}")
            self.indent -= 1
            self.line("}")
        for method, decorators in methods:
            self.line("")
            self._emit_method(method, receiver, decorators)
        if s.implements and not s.generic:
            self.line("")
            self.line(f"var _ {self._type_name(s.implements)} = (*{name})(nil)")
        if others:
            self.line("")
            self._emit_items(tuple(others))

    def _emit_Trait(self, s: Trait) -> None:
        self.line(f"type {self._type_name(s.name)} interface {{")
        self.indent += 1
        for sig in s.methods:
            self.line(self._signature(sig))
        self.indent -= 1
        self.line("}")

    def _emit_Enum(self, s: Enum) -> None:
        name = self._type_name(s.name)
        if s.generic:
            self.line(f"// {name} is generic over {self._type_name(s.generic)}")
        tagged = any(v.fields for v in s.variants)
        self.line(f"type {name} {'string' if tagged else 'int'}")
        if not s.variants:
            return
        self.line("")
        self.line("const (")
        self.indent += 1
        for i, v in enumerate(s.variants):
            const = name + to_pascal(v.name)
            if tagged:
                if v.fields:
                    payload = ", ".join(self._type(f) for f in v.fields)
                    self.line(f"// {const} carries ({payload})")
                self.line(f'{const} {name} = "{to_pascal(v.name)}"')
            elif i == 0:
                self.line(f"{const} {name} = iota")
            else:
                self.line(const)
        self.indent -= 1
        self.line(")")

    def _emit_ModuleDecl(self, s: ModuleDecl) -> None:
        self.line(f"// module {s.name}")
        if s.body:
            self.line("")
            self._emit_items(s.body)

    def _emit_Import(self, s: Import) -> None:
        path = "/".join(module_segments(s.module))
        if path and path not in self._imports:
            self._imports.append(path)

    def _emit_Interface(self, s: Interface) -> None:
        self.line(f"type {self._type_name(s.name)}{self._type_params(s.generic)} interface {{")
        self.indent += 1
        for m in s.members:
            typ = self._type(m.typ)
            if m.optional:
                typ = f"*{typ}"
            self.line(f"{self._name(m.name)}() {typ}")
            if not m.readonly:
                self.line(f"{self._name('set_' + m.name)}(value {typ})")
        self.indent -= 1
        self.line("}")

    def _emit_TypeAlias(self, s: TypeAlias) -> None:
        name = self._type_name(s.name)
        self.line(f"type {name}{self._type_params(s.generic)} = {self._type(s.aliased)}")

    def _emit_Impl(self, s: Impl) -> None:
        target = self._type_name(s.target)
        if s.trait:
            self.line(f"// {target} implements {self._type_name(s.trait)}")
        first = True
        others: list[Stmt] = []
        for m in s.methods:
            if not isinstance(m, Function):
                others.append(m)
                continue
            if not first:
                self.line("")
            first = False
            self._emit_method(m, target, [])
        if s.trait:
            self.line("")
            self.line(f"var _ {self._type_name(s.trait)} = (*{target})(nil)")
        if others:
            self.line("")
            self._emit_items(tuple(others))

    def _emit_Decorator(self, s: Decorator) -> None:
        self.line(self._decorator(s))
        self._stmt(s.target)

    # ── statements ───────────────────────────────────────────

    def _emit_Assign(self, s: Assign) -> None:
        self.line(f"{self._name(s.target)} = {self._expr(s.value)}")

    def _emit_If(self, s: If) -> None:
        self.line(f"if {self._expr(s.cond)} {{")
        self._body(s.then_body.body)
        if s.else_body is not None:
            self.line("} else {")
            self._body(s.else_body.body)
        self.line("}")

    def _emit_ForEach(self, s: ForEach) -> None:
        self.line(f"for _, {self._name(s.var)} := range {self._expr(s.iterable)} {{")
        self._body(s.body.body)
        self.line("}")

    def _emit_While(self, s: While) -> None:
        self.line(f"for {self._expr(s.cond)} {{")
        self._body(s.body.body)
        if s.increment is not None:
            self.indent += 1
            self.line(f"{self._name(s.increment)} += 1")
            self.indent -= 1
        self.line("}")

    def _emit_Return(self, s: Return) -> None:
        if s.value is None:
            self.line("return")
        else:
            self.line(f"return {self._expr(s.value)}")

    def _emit_Try(self, s: Try) -> None:
        if not s.catches:
            self._emit_Block(s.body)
            return
        # Return statements in the body return from the function literal
        self.line("func() {")
        self.indent += 1
        self.line("defer func() {")
        self.indent += 1
        self.line("if r := recover(); r != nil {")
        self.indent += 1
        self._emit_catch_dispatch(s.catches)
        self.indent -= 1
        self.line("}")
        self.indent -= 1
        self.line("}()")
        self._in_func += 1
        for stmt in s.body.body:
            self._stmt(stmt)
        self._in_func -= 1
        self.indent -= 1
        self.line("}()")

    def _emit_catch_dispatch(self, catches: tuple[CatchClause, ...]) -> None:
        """Emit catch dispatch logic for try/catch."""
        chain = catch_chain(catches)
        if len(chain) == 1 and chain[0][1]:
            self._catch_body(chain[0][0])
            return
        for i, (clause, closing) in enumerate(chain):
            var = self._name(clause.var)
            if closing:
                self.line("} else {")
            elif clause.typ is None or clause.typ == ANY:
                self.line("if true {" if i == 0 else "} else if true {")
            else:
                keyword = "if" if i == 0 else "} else if"
                self.line(f"{keyword} {var}, ok := r.({self._type(clause.typ)}); ok {{")
            self.indent += 1
            self._catch_body(clause)
            self.indent -= 1
        self.line("}")

    def _catch_body(self, clause: CatchClause) -> None:
        var = self._name(clause.var)
        if clause.typ is None or clause.typ == ANY:
            self.line(f"{var} := r")
        self.line(f"_ = {var}")
        for stmt in clause.body.body:
            self._stmt(stmt)

    def _emit_Match(self, s: Match) -> None:
        subject = self._expr(s.subject)
        enum = self._subject_enum(s.subject)
        if isinstance(s.subject, Ident):
            self.line(f"switch {subject} {{")
        else:
            self.line(f"switch _subject := {subject}; _subject {{")
            subject = "_subject"
        for case in s.cases:
            self._emit_case(case, subject, enum)
        self.line("}")

    def _subject_enum(self, subject: Expr) -> str | None:
        if not isinstance(subject, Ident):
            return None
        name = declared_enum(self._scope.get(to_camel(subject.name)))
        return self._type_name(name) if name is not None else None

    def _emit_case(self, case: MatchCase, subject: str, enum: str | None) -> None:
        payload: tuple[Type, ...] = ()
        if case.is_wildcard:
            self.line("default:")
        elif is_literal_pattern(case.pattern):
            self.line(f"case {case.pattern}:")
        else:
            variant = to_pascal(case.pattern)
            owner = pick_owner(self._variants.get(variant, {}), enum)
            if owner is not None:
                payload = owner[1]
                variant = owner[0] + variant
            self.line(f"case {variant}:")
        self.indent += 1
        if case.binding is not None:
            var = self._name(case.binding)
            if case.is_wildcard:
                self.line(f"{var} := {subject}")
            else:
                if case.typ is not None:
                    typ = self._type(case.typ)
                elif len(payload) == 1:
                    typ = self._type(payload[0])
                else:
                    typ = "any"
                self.line(f"{var}, _ := any({subject}).({typ})")
            self.line(f"_ = {var}")
        for stmt in case.body.body:
            self._stmt(stmt)
        self.indent -= 1

    def _emit_ExprStmt(self, s: ExprStmt) -> None:
        self.line(self._expr(s.expr))

    def _emit_Block(self, s: Block) -> None:
        self.line("{")
        self._body(s.body)
        self.line("}")

    # ── type lookup ──────────────────────────────────────────

    def _infer(self, expr: Expr) -> str:
        """Shallow Go type of an expression, `any` when unknown."""
        if isinstance(expr, Constant):
            if expr.kind == "string":
                return "string"
            if expr.kind == "number":
                return "int64" if expr.is_integral else "float64"
            if expr.kind == "boolean":
                return "bool"
            if expr.kind == "empty_list":
                return "[]any"
            return "map[string]any"
        if isinstance(expr, Ident):
            typ = self._scope.get(to_camel(expr.name))
            if typ is None or typ == NOTHING:
                return "any"
            return self._type(typ)
        if isinstance(expr, Call):
            ret = self._returns.get(to_camel(expr.func))
            if ret is None or ret == NOTHING:
                return "any"
            return self._type(ret)
        if isinstance(expr, BinaryOp):
            if expr.op in ("eq", "gt", "lt", "and", "or"):
                return "bool"
            left = self._infer(expr.left)
            return left if left != "any" else self._infer(expr.right)
        if isinstance(expr, UnaryOp):
            return "bool" if expr.op == "not" else self._infer(expr.operand)
        if isinstance(expr, Ternary):
            then = self._infer(expr.then_expr)
            return then if then != "any" else self._infer(expr.else_expr)
        if isinstance(expr, Cast):
            return {"string": "string", "number": "int64", "boolean": "bool"}[expr.to]
        if isinstance(expr, Paren):
            return self._infer(expr.expr)
        if isinstance(expr, ListLit):
            return "[]" + self._common([self._infer(e) for e in expr.elements])
        if isinstance(expr, MapLit):
            key = self._common([self._infer(k) for k, _ in expr.entries])
            value = self._common([self._infer(v) for _, v in expr.entries])
            return f"map[{key}]{value}"
        return "any"

    def _common(self, types: list[str]) -> str:
        if types and all(t == types[0] for t in types):
            return types[0]
        return "any"

    # ── expressions ──────────────────────────────────────────

    def _binary_op(self, op: str) -> str:
        if op not in _BINARY_OPS:
            raise NotImplementedError(f"Go binary op: {op}")
        return _BINARY_OPS[op]

    def _expr_Constant(self, e: Constant) -> str:
        if e.kind == "string":
            return f'"{escape_string(str(e.value))}"'
        if e.kind == "number":
            return format_number(e.value)
        if e.kind == "boolean":
            return "true" if e.value else "false"
        if e.kind == "empty_list":
            return "[]any{}"
        if e.kind == "empty_map":
            return "map[string]any{}"
        raise NotImplementedError(f"Go literal: {e.kind}")

    def _expr_Ident(self, e: Ident) -> str:
        return self._name(e.name)

    def _expr_Call(self, e: Call) -> str:
        args = ", ".join(self._expr(a) for a in e.args)
        return f"{self._name(e.func)}({args})"

    def _expr_UnaryOp(self, e: UnaryOp) -> str:
        if e.op not in _UNARY_OPS:
            raise NotImplementedError(f"Go unary op: {e.op}")
        return f"{_UNARY_OPS[e.op]}{self._unary_operand(e)}"

    def _expr_Ternary(self, e: Ternary) -> str:
        typ = self._infer(e)
        cond = self._expr(e.cond)
        then = self._expr(e.then_expr)
        else_ = self._expr(e.else_expr)
        return f"func() {typ} {{ if {cond} {{ return {then} }}; return {else_} }}()"

    def _expr_MemberAccess(self, e: MemberAccess) -> str:
        obj = self._postfix_operand(e.obj)
        if e.access == "dot" and isinstance(e.member, (Ident, Call)):
            return f"{obj}.{self._expr(e.member)}"
        return f"{obj}[{self._expr(e.member)}]"

    def _expr_ListLit(self, e: ListLit) -> str:
        elements = ", ".join(self._expr(el) for el in e.elements)
        return f"{self._infer(e)}{{{elements}}}"

    def _expr_MapLit(self, e: MapLit) -> str:
        entries = ", ".join(f"{self._expr(k)}: {self._expr(v)}" for k, v in e.entries)
        return f"{self._infer(e)}{{{entries}}}"

    def _expr_Cast(self, e: Cast) -> str:
        inner = self._expr(e.expr)
        if e.to == "string":
            return f"fmt.Sprint({inner})"
        if e.to == "number":
            return (
                "func() int64 { n, _ := strconv.ParseInt("
                f"fmt.Sprint({inner}), 10, 64); return n }}()"
            )
        if e.to == "boolean":
            return (
                "func() bool { b, _ := strconv.ParseBool("
                f"fmt.Sprint({inner})); return b }}()"
            )
        raise NotImplementedError(f"Go cast: {e.to}")

    def _expr_Paren(self, e: Paren) -> str:
        return f"({self._expr(e.expr)})"
