"""TypeScript backend: IR -> TypeScript code.

Values are camelCase and types PascalCase. Equality is always `===`.

Enums become discriminated unions keyed on `tag`, with the payload under
`value` (a tuple when a variant carries several fields). Either is a prelude
alias of the same shape, emitted once when used. Implementation blocks
merge an interface into the target class and attach their methods with
Object.assign. Imports are hoisted to the top of the file.
"""

from __future__ import annotations

from ..ir import (
    NOTHING,
    Assign,
    Block,
    Box,
    Call,
    Cast,
    CatchClause,
    Constant,
    Decorator,
    Either,
    Enum,
    EnumVariant,
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
from .util import (
    Emitter,
    catch_chain,
    escape_string,
    format_number,
    is_literal_pattern,
    is_optional_doc,
    module_segments,
    reassigned_names,
    to_camel,
    to_pascal,
)

_TS_RESERVED = frozenset(
    {
        "break",
        "case",
        "catch",
        "class",
        "const",
        "continue",
        "default",
        "delete",
        "do",
        "else",
        "enum",
        "export",
        "extends",
        "false",
        "finally",
        "for",
        "function",
        "if",
        "import",
        "in",
        "instanceof",
        "interface",
        "let",
        "new",
        "null",
        "return",
        "super",
        "switch",
        "this",
        "throw",
        "true",
        "try",
        "type",
        "typeof",
        "var",
        "void",
        "while",
        "with",
        "yield",
        "Array",
        "Boolean",
        "Number",
        "Object",
        "Promise",
        "Record",
        "String",
    }
)

_PRIMITIVES = {
    "string": "string",
    "number": "number",
    "boolean": "boolean",
    "nothing": "void",
    "any": "any",
}

_BINARY_OPS = {
    "add": "+",
    "sub": "-",
    "mul": "*",
    "div": "/",
    "mod": "%",
    "eq": "===",
    "gt": ">",
    "lt": "<",
    "and": "&&",
    "or": "||",
}

_UNARY_OPS = {"not": "!", "negate": "-"}

_CASTS = {"string": "String", "number": "Number", "boolean": "Boolean"}

# Declarations that take an `export` modifier inside a namespace
_EXPORTABLE = (Function, Variable, Struct, Trait, Enum, ModuleDecl, Interface, TypeAlias)

_EITHER_PRELUDE = 'type Either<L, R> = { tag: "left"; value: L } | { tag: "right"; value: R };'


def _safe_name(name: str) -> str:
    """Rename TypeScript reserved words to safe alternatives."""
    if name in _TS_RESERVED:
        return name + "_"
    return name


class TsBackend(Emitter):
    """Emit TypeScript code from IR."""

    def __init__(self) -> None:
        super().__init__("  ")
        self._reassigned: set[str] = set()
        self._imports: list[str] = []
        self._needs_either = False
        self._export = False

    def emit(self, program: Program) -> str:
        """Emit TypeScript code from an IR Program."""
        self._reset()
        self._reassigned = reassigned_names(program)
        self._imports = []
        self._needs_either = False
        self._export = False
        for stmt in program.body:
            self._stmt(stmt)
        # Body first, then prepend only the header lines it needed
        body = self.lines
        self.lines = []
        for imp in self._imports:
            self.line(imp)
        if self._needs_either:
            self.line(_EITHER_PRELUDE)
        if self.lines and body:
            self.line("")
        self.lines.extend(body)
        return self.output() + "\n"

    # ── names and types ──────────────────────────────────────

    def _name(self, name: str) -> str:
        return _safe_name(to_camel(name))

    def _type_name(self, name: str) -> str:
        return _safe_name(to_pascal(name))

    def _generic(self, generic: str | None) -> str:
        return f"<{self._type_name(generic)}>" if generic else ""

    def _type(self, typ: Type) -> str:
        if isinstance(typ, Primitive):
            return _PRIMITIVES[typ.kind]
        if isinstance(typ, List):
            if isinstance(typ.element, FuncType):
                return f"Array<{self._type(typ.element)}>"
            return f"{self._type(typ.element)}[]"
        if isinstance(typ, Map):
            return f"Record<{self._type(typ.key)}, {self._type(typ.value)}>"
        if isinstance(typ, Either):
            self._needs_either = True
            return f"Either<{self._type(typ.left)}, {self._type(typ.right)}>"
        if isinstance(typ, FuncType):
            ret = self._type(typ.ret)
            if typ.param == NOTHING:
                return f"() => {ret}"
            return f"(arg: {self._type(typ.param)}) => {ret}"
        if isinstance(typ, (Reference, Box)):
            return self._type(typ.element)
        if isinstance(typ, NamedType):
            return self._type_name(typ.name)
        raise NotImplementedError(f"TypeScript type: {typ}")

    def _annot(self, typ: Type) -> str:
        """Type annotation suffix; a nothing-typed binding is left to inference."""
        if typ == NOTHING:
            return ""
        return f": {self._type(typ)}"

    def _params(self, params: tuple[Param, ...]) -> str:
        parts: list[str] = []
        for p in params:
            mark = "?" if is_optional_doc(p.doc) else ""
            parts.append(f"{self._name(p.name)}{mark}: {self._type(p.typ)}")
        return ", ".join(parts)

    def _signature(self, func: Function | MethodSig) -> str:
        ret = self._type(func.ret)
        if isinstance(func, Function) and func.is_async:
            ret = f"Promise<{ret}>"
        return f"{self._name(func.name)}({self._params(func.params)}): {ret}"

    def _doc(self, doc: str | None) -> None:
        if doc is None:
            return
        lines = doc.splitlines() or [""]
        if len(lines) == 1:
            self.line(f"/** {lines[0]} */")
            return
        self.line("/**")
        for text in lines:
            self.line(f" * {text}".rstrip())
        self.line(" */")

    def _take_export(self) -> str:
        export = "export " if self._export else ""
        self._export = False
        return export

    # ── declarations ─────────────────────────────────────────

    def _emit_Function(self, func: Function) -> None:
        export = self._take_export()
        self._doc(func.doc)
        prefix = "async " if func.is_async else ""
        self.line(f"{export}{prefix}function {self._signature(func)} {{")
        self._body(func.body.body)
        self.line("}")

    def _emit_Variable(self, s: Variable) -> None:
        export = self._take_export()
        keyword = "let" if s.name in self._reassigned else "const"
        value = self._expr(s.value)
        self.line(f"{export}{keyword} {self._name(s.name)}{self._annot(s.typ)} = {value};")

    def _emit_Struct(self, s: Struct) -> None:
        export = self._take_export()
        implements = f" implements {self._type_name(s.implements)}" if s.implements else ""
        name = self._type_name(s.name)
        self.line(f"{export}class {name}{self._generic(s.generic)}{implements} {{")
        self.indent += 1
        others: list[Stmt] = []
        for member in s.members:
            if not self._emit_member(member):
                others.append(member)
        if others:
            self.line("static {")
            self._body(tuple(others))
            self.line("}")
        self.indent -= 1
        self.line("}")

    def _emit_member(self, member: Stmt) -> bool:
        """Emit a class field or method. False if member is neither."""
        if isinstance(member, Variable):
            value = self._expr(member.value)
            self.line(f"{self._name(member.name)}{self._annot(member.typ)} = {value};")
            return True
        if isinstance(member, Function):
            self._doc(member.doc)
            prefix = "async " if member.is_async else ""
            self.line(f"{prefix}{self._signature(member)} {{")
            self._body(member.body.body)
            self.line("}")
            return True
        if isinstance(member, Decorator) and isinstance(member.target, (Variable, Function)):
            self.line(self._decorator(member))
            return self._emit_member(member.target)
        return False

    def _emit_Trait(self, s: Trait) -> None:
        export = self._take_export()
        self.line(f"{export}interface {self._type_name(s.name)} {{")
        self.indent += 1
        for sig in s.methods:
            self.line(f"{self._signature(sig)};")
        self.indent -= 1
        self.line("}")

    def _emit_Enum(self, s: Enum) -> None:
        export = self._take_export()
        head = f"{export}type {self._type_name(s.name)}{self._generic(s.generic)} ="
        if not s.variants:
            self.line(f"{head} never;")
            return
        self.line(head)
        self.indent += 1
        for i, variant in enumerate(s.variants):
            end = ";" if i == len(s.variants) - 1 else ""
            self.line(f"| {self._variant(variant)}{end}")
        self.indent -= 1

    def _variant(self, variant: EnumVariant) -> str:
        tag = f'tag: "{to_pascal(variant.name)}"'
        if not variant.fields:
            return f"{{ {tag} }}"
        if len(variant.fields) == 1:
            value = self._type(variant.fields[0])
        else:
            value = "[" + ", ".join(self._type(f) for f in variant.fields) + "]"
        return f"{{ {tag}; value: {value} }}"

    def _emit_ModuleDecl(self, s: ModuleDecl) -> None:
        export = self._take_export()
        self.line(f"{export}namespace {self._type_name(s.name)} {{")
        self.indent += 1
        for stmt in s.body:
            self._export = isinstance(stmt, _EXPORTABLE)
            self._stmt(stmt)
            self._export = False
        self.indent -= 1
        self.line("}")

    def _emit_Import(self, s: Import) -> None:
        segments = module_segments(s.module)
        alias = self._name(segments[-1]) if segments else "module_"
        text = f'import * as {alias} from "{"/".join(segments)}";'
        if text not in self._imports:
            self._imports.append(text)

    def _emit_Interface(self, s: Interface) -> None:
        export = self._take_export()
        self.line(f"{export}interface {self._type_name(s.name)}{self._generic(s.generic)} {{")
        self.indent += 1
        for m in s.members:
            readonly = "readonly " if m.readonly else ""
            mark = "?" if m.optional else ""
            self.line(f"{readonly}{self._name(m.name)}{mark}: {self._type(m.typ)};")
        self.indent -= 1
        self.line("}")

    def _emit_TypeAlias(self, s: TypeAlias) -> None:
        export = self._take_export()
        name = self._type_name(s.name)
        self.line(f"{export}type {name}{self._generic(s.generic)} = {self._type(s.aliased)};")

    def _emit_Impl(self, s: Impl) -> None:
        target = self._type_name(s.target)
        funcs = [m for m in s.methods if isinstance(m, Function)]
        extends = f" extends {self._type_name(s.trait)}" if s.trait else ""
        self.line(f"interface {target}{extends} {{")
        self.indent += 1
        for func in funcs:
            self.line(f"{self._signature(func)};")
        self.indent -= 1
        self.line("}")
        self.line(f"Object.assign({target}.prototype, {{")
        self.indent += 1
        for func in funcs:
            self._doc(func.doc)
            prefix = "async " if func.is_async else ""
            self.line(f"{prefix}{self._signature(func)} {{")
            self._body(func.body.body)
            self.line("},")
        self.indent -= 1
        self.line("});")
        for m in s.methods:
            if not isinstance(m, Function):
                self._stmt(m)

    def _decorator(self, s: Decorator) -> str:
        if s.args:
            args = ", ".join(self._expr(a) for a in s.args)
            return f"@{self._name(s.name)}({args})"
        return f"@{self._name(s.name)}"

    def _emit_Decorator(self, s: Decorator) -> None:
        # TypeScript decorators only apply to classes and class members
        if isinstance(s.target, Struct):
            self.line(self._decorator(s))
        else:
            self.line(f"// {self._decorator(s)}")
        self._stmt(s.target)

    # ── statements ───────────────────────────────────────────

    def _emit_Assign(self, s: Assign) -> None:
        self.line(f"{self._name(s.target)} = {self._expr(s.value)};")

    def _emit_If(self, s: If) -> None:
        self.line(f"if ({self._expr(s.cond)}) {{")
        self._body(s.then_body.body)
        if s.else_body is not None:
            self.line("} else {")
            self._body(s.else_body.body)
        self.line("}")

    def _emit_ForEach(self, s: ForEach) -> None:
        keyword = "let" if s.var in self._reassigned else "const"
        self.line(f"for ({keyword} {self._name(s.var)} of {self._expr(s.iterable)}) {{")
        self._body(s.body.body)
        self.line("}")

    def _emit_While(self, s: While) -> None:
        self.line(f"while ({self._expr(s.cond)}) {{")
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
        self.line("try {")
        self._body(s.body.body)
        if len(s.catches) == 1 and s.catches[0].typ is None:
            clause = s.catches[0]
            self.line(f"}} catch ({self._name(clause.var)}) {{")
            self._body(clause.body.body)
            self.line("}")
            return
        self.line("} catch (_err) {")
        self.indent += 1
        closed = False
        for i, (clause, closing) in enumerate(catch_chain(s.catches)):
            if closing:
                self.line("} else {")
                closed = True
            else:
                test = self._catch_test(clause.typ)
                self.line(f"if ({test}) {{" if i == 0 else f"}} else if ({test}) {{")
            self._catch_body(clause)
        if not closed:
            self.line("} else {")
            self.indent += 1
            self.line("throw _err;")
            self.indent -= 1
        self.line("}")
        self.indent -= 1
        self.line("}")

    def _catch_body(self, clause: CatchClause) -> None:
        self.indent += 1
        cast = f" as {self._type(clause.typ)}" if clause.typ is not None else ""
        self.line(f"const {self._name(clause.var)} = _err{cast};")
        for stmt in clause.body.body:
            self._stmt(stmt)
        self.indent -= 1

    def _catch_test(self, typ: Type | None) -> str:
        while isinstance(typ, (Reference, Box)):
            typ = typ.element
        if isinstance(typ, Primitive) and typ.kind in ("string", "number", "boolean"):
            return f'typeof _err === "{typ.kind}"'
        if isinstance(typ, NamedType):
            return f"_err instanceof {self._type_name(typ.name)}"
        if isinstance(typ, List):
            return "Array.isArray(_err)"
        return "true"

    def _emit_Match(self, s: Match) -> None:
        tagged = any(
            not c.is_wildcard and not is_literal_pattern(c.pattern) for c in s.cases
        )
        subject = self._expr(s.subject)
        hoisted = not isinstance(s.subject, Ident)
        if hoisted:
            self.line("{")
            self.indent += 1
            self.line(f"const _subject = {subject};")
            subject = "_subject"
        head = f"{subject}.tag" if tagged else subject
        self.line(f"switch ({head}) {{")
        self.indent += 1
        for case in s.cases:
            self._emit_case(case, subject, tagged)
        self.indent -= 1
        self.line("}")
        if hoisted:
            self.indent -= 1
            self.line("}")

    def _emit_case(self, case: MatchCase, subject: str, tagged: bool) -> None:
        if case.is_wildcard:
            label = "default:"
        elif is_literal_pattern(case.pattern):
            label = f"case {case.pattern}:"
        else:
            label = f'case "{to_pascal(case.pattern)}":'
        self.line(f"{label} {{")
        self.indent += 1
        if case.binding is not None:
            annot = f": {self._type(case.typ)}" if case.typ is not None else ""
            value = f"{subject}.value" if tagged and not case.is_wildcard else subject
            self.line(f"const {self._name(case.binding)}{annot} = {value};")
        for stmt in case.body.body:
            self._stmt(stmt)
        if not case.body.body or not isinstance(case.body.body[-1], Return):
            self.line("break;")
        self.indent -= 1
        self.line("}")

    def _emit_ExprStmt(self, s: ExprStmt) -> None:
        self.line(f"{self._expr(s.expr)};")

    def _emit_Block(self, s: Block) -> None:
        self.line("{")
        self._body(s.body)
        self.line("}")

    # ── expressions ──────────────────────────────────────────

    def _binary_op(self, op: str) -> str:
        if op not in _BINARY_OPS:
            raise NotImplementedError(f"TypeScript binary op: {op}")
        return _BINARY_OPS[op]

    def _expr_Constant(self, e: Constant) -> str:
        if e.kind == "string":
            return f'"{escape_string(str(e.value))}"'
        if e.kind == "number":
            return format_number(e.value)
        if e.kind == "boolean":
            return "true" if e.value else "false"
        if e.kind == "empty_list":
            return "[]"
        if e.kind == "empty_map":
            return "{}"
        raise NotImplementedError(f"TypeScript literal: {e.kind}")

    def _expr_Ident(self, e: Ident) -> str:
        return self._name(e.name)

    def _expr_Call(self, e: Call) -> str:
        args = ", ".join(self._expr(a) for a in e.args)
        return f"{self._name(e.func)}({args})"

    def _expr_UnaryOp(self, e: UnaryOp) -> str:
        if e.op not in _UNARY_OPS:
            raise NotImplementedError(f"TypeScript unary op: {e.op}")
        return f"{_UNARY_OPS[e.op]}{self._unary_operand(e)}"

    def _expr_Ternary(self, e: Ternary) -> str:
        cond = self._expr(e.cond)
        if isinstance(e.cond, Ternary):
            cond = f"({cond})"
        return f"{cond} ? {self._expr(e.then_expr)} : {self._expr(e.else_expr)}"

    def _expr_MemberAccess(self, e: MemberAccess) -> str:
        obj = self._postfix_operand(e.obj)
        if e.access == "dot" and isinstance(e.member, (Ident, Call)):
            return f"{obj}.{self._expr(e.member)}"
        return f"{obj}[{self._expr(e.member)}]"

    def _expr_ListLit(self, e: ListLit) -> str:
        return "[" + ", ".join(self._expr(el) for el in e.elements) + "]"

    def _expr_MapLit(self, e: MapLit) -> str:
        if not e.entries:
            return "{}"
        parts: list[str] = []
        for key, value in e.entries:
            if isinstance(key, Constant) and key.kind in ("string", "number"):
                parts.append(f"{self._expr(key)}: {self._expr(value)}")
            else:
                parts.append(f"[{self._expr(key)}]: {self._expr(value)}")
        return "{ " + ", ".join(parts) + " }"

    def _expr_Cast(self, e: Cast) -> str:
        if e.to not in _CASTS:
            raise NotImplementedError(f"TypeScript cast: {e.to}")
        return f"{_CASTS[e.to]}({self._expr(e.expr)})"

    def _expr_Paren(self, e: Paren) -> str:
        return f"({self._expr(e.expr)})"
