"""RustBackend: IR -> Rust code.

Values and functions are snake_case, types and variants PascalCase. String
literals are owned (`String::from`), and string concatenation is flattened
into one format! call. Loose top-level statements are collected into
`fn main()`, or `fn run_top_level()` when the program declares its own main.
Try blocks run under catch_unwind and dispatch on the panic payload type.
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
    reassigned_names,
    to_pascal,
    to_snake,
)

RUST_RESERVED = frozenset({
    "as", "async", "await", "break", "const", "continue", "crate", "dyn",
    "else", "enum", "extern", "false", "fn", "for", "if", "impl", "in",
    "let", "loop", "match", "mod", "move", "mut", "pub", "ref", "return",
    "self", "Self", "static", "struct", "super", "trait", "true", "type",
    "union", "unsafe", "use", "where", "while", "abstract", "become", "box",
    "do", "final", "macro", "override", "priv", "try", "typeof", "unsized",
    "virtual", "yield",
})

_PRIMITIVES = {
    "string": "String",
    "number": "i64",
    "boolean": "bool",
    "nothing": "()",
    "any": "Box<dyn std::any::Any>",
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

# Kinds that are Rust items; everything else runs inside a function body
_ITEM_KINDS = (Function, Struct, Trait, Enum, ModuleDecl, Import, Interface, TypeAlias, Impl)


def _is_item(stmt: Stmt) -> bool:
    if isinstance(stmt, Decorator):
        return _is_item(stmt.target)
    return isinstance(stmt, _ITEM_KINDS)


def _is_string_lit(expr: Expr) -> bool:
    return isinstance(expr, Constant) and expr.kind == "string"


def _lifetime(name: str) -> str:
    return "'" + name.lstrip("'")


def _collect_lifetimes(typ: Type, out: list[str]) -> None:
    """Append lifetime names used anywhere in typ, first use first."""
    if isinstance(typ, Reference):
        if typ.lifetime is not None and _lifetime(typ.lifetime) not in out:
            out.append(_lifetime(typ.lifetime))
        _collect_lifetimes(typ.element, out)
    elif isinstance(typ, (List, Box)):
        _collect_lifetimes(typ.element, out)
    elif isinstance(typ, Map):
        _collect_lifetimes(typ.key, out)
        _collect_lifetimes(typ.value, out)
    elif isinstance(typ, Either):
        _collect_lifetimes(typ.left, out)
        _collect_lifetimes(typ.right, out)
    elif isinstance(typ, FuncType):
        _collect_lifetimes(typ.param, out)
        _collect_lifetimes(typ.ret, out)


class RustBackend(Emitter):
    """Emit Rust code from IR Program."""

    def __init__(self) -> None:
        super().__init__()
        self._reassigned: set[str] = set()
        self._variants: dict[str, dict[str, int]] = {}
        self._scope: dict[str, Type] = {}
        self._traits: dict[str, set[str]] = {}
        self._needs_hashmap = False
        self._needs_catch_unwind = False

    def emit(self, program: Program) -> str:
        self._reset()
        self._reassigned = reassigned_names(program)
        self._variants = {}
        self._scope = {}
        self._traits = {}
        self._needs_hashmap = False
        self._needs_catch_unwind = False
        declares_main = False
        for top in program.body:
            if isinstance(top, Function) and to_snake(top.name) == "main":
                declares_main = True
            for stmt in all_stmts(top):
                if isinstance(stmt, Enum):
                    enum = self._type_name(stmt.name)
                    for v in stmt.variants:
                        self._variants.setdefault(to_pascal(v.name), {})[enum] = len(v.fields)
                elif isinstance(stmt, Trait):
                    self._traits[to_pascal(stmt.name)] = {to_snake(m.name) for m in stmt.methods}
        self._emit_items(program.body, "run_top_level" if declares_main else "main", public=False)
        body = self.lines
        self.lines = []
        if self._needs_hashmap:
            self.line("use std::collections::HashMap;")
        if self._needs_catch_unwind:
            self.line("use std::panic::{catch_unwind, AssertUnwindSafe};")
        if self.lines and body:
            self.line("")
        self.lines.extend(body)
        return self.output() + "\n"

    def _emit_items(self, stmts: tuple[Stmt, ...], loose_fn: str, public: bool = True) -> None:
        """Emit items in order, then gather the remaining statements into loose_fn."""
        loose: list[Stmt] = []
        first = True
        for stmt in stmts:
            if not _is_item(stmt):
                loose.append(stmt)
                continue
            if not first:
                self.line("")
            first = False
            self._stmt(stmt)
        if loose:
            if not first:
                self.line("")
            vis = "pub " if public else ""
            self.line(f"{vis}fn {loose_fn}() {{")
            self._body(tuple(loose))
            self.line("}")

    # ── names and types ──────────────────────────────────────

    def _safe(self, name: str) -> str:
        if name in RUST_RESERVED:
            return name + "_"
        return name

    def _name(self, name: str) -> str:
        return self._safe(to_snake(name))

    def _type_name(self, name: str) -> str:
        return self._safe(to_pascal(name))

    def _generic(self, generic: str | None) -> str:
        return f"<{self._type_name(generic)}>" if generic else ""

    def _type(self, typ: Type) -> str:
        if isinstance(typ, Primitive):
            return _PRIMITIVES[typ.kind]
        if isinstance(typ, List):
            return f"Vec<{self._type(typ.element)}>"
        if isinstance(typ, Map):
            self._needs_hashmap = True
            return f"HashMap<{self._type(typ.key)}, {self._type(typ.value)}>"
        if isinstance(typ, Either):
            return f"Result<{self._type(typ.left)}, {self._type(typ.right)}>"
        if isinstance(typ, FuncType):
            param = "" if typ.param == NOTHING else self._type(typ.param)
            if typ.ret == NOTHING:
                return f"Box<dyn Fn({param})>"
            return f"Box<dyn Fn({param}) -> {self._type(typ.ret)}>"
        if isinstance(typ, Reference):
            if typ.lifetime is not None:
                return f"&{_lifetime(typ.lifetime)} {self._type(typ.element)}"
            return f"&{self._type(typ.element)}"
        if isinstance(typ, Box):
            return f"Box<{self._type(typ.element)}>"
        if isinstance(typ, NamedType):
            return self._type_name(typ.name)
        raise NotImplementedError(f"Rust type: {typ}")

    def _annot(self, typ: Type) -> str:
        if typ == NOTHING:
            return ""
        return f": {self._type(typ)}"

    def _param(self, p: Param) -> str:
        typ = self._type(p.typ)
        if is_optional_doc(p.doc):
            typ = f"Option<{typ}>"
        return f"{self._name(p.name)}: {typ}"

    def _fn_head(
        self,
        func: Function | MethodSig,
        receiver: bool = False,
        public: bool = True,
    ) -> str:
        """Signature text up to the body, without the trailing brace or semicolon."""
        lifetimes: list[str] = []
        for p in func.params:
            _collect_lifetimes(p.typ, lifetimes)
        _collect_lifetimes(func.ret, lifetimes)
        generics = f"<{', '.join(lifetimes)}>" if lifetimes else ""
        params = [self._param(p) for p in func.params]
        if receiver:
            params.insert(0, "&self")
        ret = "" if func.ret == NOTHING else f" -> {self._type(func.ret)}"
        vis = "pub " if public else ""
        asyn = "async " if isinstance(func, Function) and func.is_async else ""
        return f"{vis}{asyn}fn {self._name(func.name)}{generics}({', '.join(params)}){ret}"

    def _doc(self, doc: str | None) -> None:
        if doc is None:
            return
        for text in doc.splitlines() or [""]:
            self.line(f"/// {text}".rstrip())

    def _attr(self, s: Decorator) -> str:
        if not s.args:
            return f"#[{self._name(s.name)}]"
        args = ", ".join(self._attr_arg(a) for a in s.args)
        return f"#[{self._name(s.name)}({args})]"

    def _attr_arg(self, expr: Expr) -> str:
        # Attribute arguments take bare literals
        if _is_string_lit(expr):
            return f'"{escape_string(str(expr.value))}"'
        return self._expr(expr)

    # ── declarations ─────────────────────────────────────────

    def _emit_fn(self, func: Function, receiver: bool = False, public: bool = True) -> None:
        self._doc(func.doc)
        self.line(f"{self._fn_head(func, receiver, public)} {{")
        saved = self._scope
        self._scope = dict(saved)
        for p in func.params:
            self._scope[to_snake(p.name)] = p.typ
        self._body(func.body.body)
        self._scope = saved
        self.line("}")

    def _emit_Function(self, func: Function) -> None:
        self._emit_fn(func)

    def _emit_Variable(self, s: Variable) -> None:
        mut = "mut " if s.name in self._reassigned else ""
        value = self._expr(s.value)
        self._scope[to_snake(s.name)] = s.typ
        self.line(f"let {mut}{self._name(s.name)}{self._annot(s.typ)} = {value};")

    def _emit_Struct(self, s: Struct) -> None:
        name = self._type_name(s.name)
        gen = self._generic(s.generic)
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
        self.line(f"pub struct {name}{gen} {{")
        self.indent += 1
        for field, decorators in fields:
            for d in decorators:
                self.line(self._attr(d))
            self.line(f"pub {self._name(field.name)}: {self._type(field.typ)},")
        self.indent -= 1
        self.line("}")
        if fields:
            self._emit_default(name, gen, [f for f, _ in fields])
        known = self._traits.get(to_pascal(s.implements)) if s.implements else None
        trait_methods = []
        own_methods = []
        for method, decorators in methods:
            if s.implements and (known is None or to_snake(method.name) in known):
                trait_methods.append((method, decorators))
            else:
                own_methods.append((method, decorators))
        if s.implements:
            self.line("")
            self.line(f"impl{gen} {self._type_name(s.implements)} for {name}{gen} {{")
            self._emit_methods(trait_methods, public=False)
            self.line("}")
        if own_methods:
            self.line("")
            self.line(f"impl{gen} {name}{gen} {{")
            self._emit_methods(own_methods, public=True)
            self.line("}")
        if others:
            self.line("")
            self._emit_items(tuple(others), f"init_{to_snake(s.name)}")

    def _emit_default(self, name: str, gen: str, fields: list[Variable]) -> None:
        self.line("")
        self.line(f"impl{gen} Default for {name}{gen} {{")
        self.indent += 1
        self.line("fn default() -> Self {")
        self.indent += 1
        self.line("Self {")
        self.indent += 1
        for field in fields:
            self.line(f"{self._name(field.name)}: {self._expr(field.value)},")
        self.indent -= 1
        self.line("}")
        self.indent -= 1
        self.line("}")
        self.indent -= 1
        self.line("}")

    def _emit_methods(
        self, methods: list[tuple[Function, list[Decorator]]], public: bool
    ) -> None:
        self.indent += 1
        for i, (method, decorators) in enumerate(methods):
            if i > 0:
                self.line("")
            for d in decorators:
                self.line(self._attr(d))
            self._emit_fn(method, receiver=True, public=public)
        self.indent -= 1

    def _emit_Trait(self, s: Trait) -> None:
        self.line(f"pub trait {self._type_name(s.name)} {{")
        self.indent += 1
        for sig in s.methods:
            self.line(f"{self._fn_head(sig, receiver=True, public=False)};")
        self.indent -= 1
        self.line("}")

    def _emit_Enum(self, s: Enum) -> None:
        self.line(f"pub enum {self._type_name(s.name)}{self._generic(s.generic)} {{")
        self.indent += 1
        for v in s.variants:
            if v.fields:
                payload = ", ".join(self._type(f) for f in v.fields)
                self.line(f"{to_pascal(v.name)}({payload}),")
            else:
                self.line(f"{to_pascal(v.name)},")
        self.indent -= 1
        self.line("}")

    def _emit_ModuleDecl(self, s: ModuleDecl) -> None:
        self.line(f"pub mod {self._name(s.name)} {{")
        self.indent += 1
        self.line("use super::*;")
        if s.body:
            self.line("")
        self._emit_items(s.body, "init")
        self.indent -= 1
        self.line("}")

    def _emit_Import(self, s: Import) -> None:
        path = "::".join(self._name(seg) for seg in module_segments(s.module))
        self.line(f"use {path};")

    def _emit_Interface(self, s: Interface) -> None:
        self.line(f"pub trait {self._type_name(s.name)}{self._generic(s.generic)} {{")
        self.indent += 1
        for m in s.members:
            typ = self._type(m.typ)
            if m.optional:
                typ = f"Option<{typ}>"
            name = self._name(m.name)
            self.line(f"fn {name}(&self) -> {typ};")
            if not m.readonly:
                self.line(f"fn set_{to_snake(m.name)}(&mut self, value: {typ});")
        self.indent -= 1
        self.line("}")

    def _emit_TypeAlias(self, s: TypeAlias) -> None:
        name = self._type_name(s.name)
        self.line(f"pub type {name}{self._generic(s.generic)} = {self._type(s.aliased)};")

    def _emit_Impl(self, s: Impl) -> None:
        target = self._type_name(s.target)
        methods = [(m, []) for m in s.methods if isinstance(m, Function)]
        others = tuple(m for m in s.methods if not isinstance(m, Function))
        if s.trait:
            self.line(f"impl {self._type_name(s.trait)} for {target} {{")
            self._emit_methods(methods, public=False)
        else:
            self.line(f"impl {target} {{")
            self._emit_methods(methods, public=True)
        self.line("}")
        if others:
            self.line("")
            self._emit_items(others, f"init_{to_snake(s.target)}")

    def _emit_Decorator(self, s: Decorator) -> None:
        self.line(self._attr(s))
        self._stmt(s.target)

    # ── statements ───────────────────────────────────────────

    def _emit_Assign(self, s: Assign) -> None:
        self.line(f"{self._name(s.target)} = {self._expr(s.value)};")

    def _emit_If(self, s: If) -> None:
        self.line(f"if {self._expr(s.cond)} {{")
        self._body(s.then_body.body)
        if s.else_body is not None:
            self.line("} else {")
            self._body(s.else_body.body)
        self.line("}")

    def _emit_ForEach(self, s: ForEach) -> None:
        mut = "mut " if s.var in self._reassigned else ""
        iterable = self._postfix_operand(s.iterable)
        self.line(f"for {mut}{self._name(s.var)} in {iterable}.iter() {{")
        self._body(s.body.body)
        self.line("}")

    def _emit_While(self, s: While) -> None:
        self.line(f"while {self._expr(s.cond)} {{")
        self._body(s.body.body)
        if s.increment is not None:
            self.indent += 1
            self.line(f"{self._name(s.increment)} += 1;")
            self.indent -= 1
        self.line("}")

    def _emit_Return(self, s: Return) -> None:
        if s.value is None:
            self.line("return;")
        else:
            self.line(f"return {self._expr(s.value)};")

    def _emit_Try(self, s: Try) -> None:
        if not s.catches:
            self._emit_Block(s.body)
            return
        self._needs_catch_unwind = True
        self.line("let _result = catch_unwind(AssertUnwindSafe(|| {")
        self._body(s.body.body)
        self.line("}));")
        self.line("if let Err(_panic) = _result {")
        self.indent += 1
        chain = catch_chain(s.catches)
        if len(chain) == 1 and chain[0][1]:
            self._catch_body(chain[0][0])
        else:
            for i, (clause, closing) in enumerate(chain):
                if closing:
                    self.line("} else {")
                else:
                    keyword = "if" if i == 0 else "} else if"
                    self.line(f"{keyword} {self._catch_test(clause)} {{")
                self.indent += 1
                self._catch_body(clause)
                self.indent -= 1
            self.line("}")
        self.indent -= 1
        self.line("}")

    def _downcasts(self, clause: CatchClause) -> bool:
        return clause.typ is not None and clause.typ != ANY

    def _catch_test(self, clause: CatchClause) -> str:
        if not self._downcasts(clause):
            return "true"
        typ = self._type(clause.typ)
        return f"let Some({self._name(clause.var)}) = _panic.downcast_ref::<{typ}>()"

    def _catch_body(self, clause: CatchClause) -> None:
        if not self._downcasts(clause):
            self.line(f"let {self._name(clause.var)} = &_panic;")
        for stmt in clause.body.body:
            self._stmt(stmt)

    def _emit_Match(self, s: Match) -> None:
        self.line(f"match {self._expr(s.subject)} {{")
        self.indent += 1
        enum = self._subject_enum(s.subject)
        for case in s.cases:
            self.line(f"{self._pattern(case, enum)} => {{")
            self._body(case.body.body)
            self.line("}")
        if not any(c.is_wildcard for c in s.cases):
            self.line("_ => {}")
        self.indent -= 1
        self.line("}")

    def _subject_enum(self, subject: Expr) -> str | None:
        if not isinstance(subject, Ident):
            return None
        name = declared_enum(self._scope.get(to_snake(subject.name)))
        return self._type_name(name) if name is not None else None

    def _pattern(self, case: MatchCase, enum: str | None) -> str:
        if case.is_wildcard:
            return self._name(case.binding) if case.binding is not None else "_"
        if is_literal_pattern(case.pattern):
            return case.pattern
        variant = to_pascal(case.pattern)
        owner = pick_owner(self._variants.get(variant, {}), enum)
        if owner is not None:
            nfields = owner[1]
            variant = f"{owner[0]}::{variant}"
        else:
            nfields = 1 if case.binding is not None else 0
        if case.binding is not None:
            rest = ", .." if nfields > 1 else ""
            return f"{variant}({self._name(case.binding)}{rest})"
        if nfields:
            return f"{variant}(..)"
        return variant

    def _emit_ExprStmt(self, s: ExprStmt) -> None:
        self.line(f"{self._expr(s.expr)};")

    def _emit_Block(self, s: Block) -> None:
        self.line("{")
        self._body(s.body)
        self.line("}")

    # ── expressions ──────────────────────────────────────────

    def _binary_op(self, op: str) -> str:
        if op not in _BINARY_OPS:
            raise NotImplementedError(f"Rust binary op: {op}")
        return _BINARY_OPS[op]

    def _expr_Constant(self, e: Constant) -> str:
        if e.kind == "string":
            return f'String::from("{escape_string(str(e.value))}")'
        if e.kind == "number":
            return format_number(e.value)
        if e.kind == "boolean":
            return "true" if e.value else "false"
        if e.kind == "empty_list":
            return "Vec::new()"
        if e.kind == "empty_map":
            self._needs_hashmap = True
            return "HashMap::new()"
        raise NotImplementedError(f"Rust literal: {e.kind}")

    def _expr_Ident(self, e: Ident) -> str:
        return self._name(e.name)

    def _expr_Call(self, e: Call) -> str:
        args = ", ".join(self._expr(a) for a in e.args)
        return f"{self._name(e.func)}({args})"

    def _expr_BinaryOp(self, e: BinaryOp) -> str:
        # String + anything: String + String does not compile, use format!
        if self._is_string_add(e):
            parts: list[Expr] = []
            self._flatten_string_add(e, parts)
            placeholders = "{}" * len(parts)
            args = ", ".join(self._expr(p) for p in parts)
            return f'format!("{placeholders}", {args})'
        return super()._expr_BinaryOp(e)

    def _is_string_add(self, expr: Expr) -> bool:
        if not isinstance(expr, BinaryOp) or expr.op != "add":
            return False
        return any(
            _is_string_lit(side) or self._is_string_add(side)
            for side in (expr.left, expr.right)
        )

    def _flatten_string_add(self, expr: Expr, out: list[Expr]) -> None:
        if isinstance(expr, BinaryOp) and self._is_string_add(expr):
            self._flatten_string_add(expr.left, out)
            self._flatten_string_add(expr.right, out)
        else:
            out.append(expr)

    def _expr_UnaryOp(self, e: UnaryOp) -> str:
        if e.op not in _UNARY_OPS:
            raise NotImplementedError(f"Rust unary op: {e.op}")
        return f"{_UNARY_OPS[e.op]}{self._unary_operand(e)}"

    def _expr_Ternary(self, e: Ternary) -> str:
        cond = self._expr(e.cond)
        then = self._expr(e.then_expr)
        else_ = self._expr(e.else_expr)
        return f"if {cond} {{ {then} }} else {{ {else_} }}"

    def _expr_MemberAccess(self, e: MemberAccess) -> str:
        obj = self._postfix_operand(e.obj)
        if e.access == "dot" and isinstance(e.member, (Ident, Call)):
            return f"{obj}.{self._expr(e.member)}"
        return f"{obj}[{self._expr(e.member)}]"

    def _expr_ListLit(self, e: ListLit) -> str:
        elements = ", ".join(self._expr(el) for el in e.elements)
        return f"vec![{elements}]"

    def _expr_MapLit(self, e: MapLit) -> str:
        self._needs_hashmap = True
        if not e.entries:
            return "HashMap::new()"
        pairs = ", ".join(f"({self._expr(k)}, {self._expr(v)})" for k, v in e.entries)
        return f"HashMap::from([{pairs}])"

    def _expr_Cast(self, e: Cast) -> str:
        inner = self._postfix_operand(e.expr)
        if e.to == "string":
            return f"{inner}.to_string()"
        if e.to == "number":
            return f"{inner}.parse::<i64>().unwrap()"
        if e.to == "boolean":
            return f"!{inner}.is_empty()"
        raise NotImplementedError(f"Rust cast: {e.to}")

    def _expr_Paren(self, e: Paren) -> str:
        return f"({self._expr(e.expr)})"
