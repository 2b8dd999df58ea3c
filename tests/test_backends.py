"""Backend properties that hold for every node kind on every target."""

from dataclasses import dataclass

import pytest

from ylang import ir
from ylang.backend import (
    ALIASES,
    BACKENDS,
    TARGETS,
    GoBackend,
    RustBackend,
    TsBackend,
    UnsupportedTargetError,
    render,
    resolve_target,
)
from ylang.backend.util import (
    catch_chain,
    declared_enum,
    escape_string,
    is_literal_pattern,
    is_optional_doc,
    module_segments,
    pick_owner,
    split_words,
    to_camel,
    to_pascal,
    to_snake,
)
from ylang.ir import (
    ANY,
    NUMBER,
    STRING,
    Block,
    Call,
    CatchClause,
    Constant,
    ExprStmt,
    Function,
    Ident,
    Program,
    Return,
    Variable,
)


def _one() -> Constant:
    return Constant("number", 1)


def _fn(name: str = "f") -> Function:
    return Function(name, (), NUMBER, Block((Return(_one()),)))


def _body() -> Block:
    return Block((ExprStmt(Call("work")),))


STMT_SAMPLES: dict[type, ir.Stmt] = {
    ir.Function: _fn(),
    ir.Variable: Variable("x", STRING, Constant("string", "a")),
    ir.Struct: ir.Struct("point", (Variable("x", NUMBER, _one()), _fn("norm"))),
    ir.Trait: ir.Trait("shape", (ir.MethodSig("area", (), NUMBER),)),
    ir.Enum: ir.Enum("color", (ir.EnumVariant("red"), ir.EnumVariant("rgb", (NUMBER,)))),
    ir.ModuleDecl: ir.ModuleDecl("util", (_fn(),)),
    ir.Import: ir.Import("std.io"),
    ir.Interface: ir.Interface("named", (ir.InterfaceMember("name", STRING),)),
    ir.TypeAlias: ir.TypeAlias("id", NUMBER),
    ir.Impl: ir.Impl("point", (_fn("norm"),)),
    ir.Decorator: ir.Decorator("cached", _fn()),
    ir.Assign: ir.Assign("x", _one()),
    ir.If: ir.If(Ident("c"), _body(), _body()),
    ir.ForEach: ir.ForEach("x", Ident("xs"), _body()),
    ir.While: ir.While(Ident("c"), _body(), "i"),
    ir.Return: Return(),
    ir.Try: ir.Try(_body(), (CatchClause("e", _body()),)),
    ir.Match: ir.Match(Ident("v"), (ir.MatchCase("some", _body(), "x"), ir.MatchCase("_", _body()))),
    ir.ExprStmt: ExprStmt(Call("work")),
    ir.Block: _body(),
}

EXPR_SAMPLES: dict[type, ir.Expr] = {
    ir.Constant: Constant("string", "hi"),
    ir.Ident: Ident("value"),
    ir.Call: Call("work", (_one(),)),
    ir.BinaryOp: ir.BinaryOp("mod", Ident("a"), Ident("b")),
    ir.UnaryOp: ir.UnaryOp("not", Ident("a")),
    ir.Ternary: ir.Ternary(Ident("c"), _one(), Constant("number", 2)),
    ir.MemberAccess: ir.MemberAccess(Ident("p"), "dot", Ident("x")),
    ir.ListLit: ir.ListLit((_one(),)),
    ir.MapLit: ir.MapLit(((Constant("string", "k"), _one()),)),
    ir.Cast: ir.Cast(Ident("n"), "boolean"),
    ir.Paren: ir.Paren(Ident("a")),
}


def test_samples_cover_every_kind():
    assert set(STMT_SAMPLES) == set(ir.STMT_KINDS)
    assert set(EXPR_SAMPLES) == set(ir.EXPR_KINDS)


@pytest.mark.parametrize("backend", [TsBackend, RustBackend, GoBackend])
def test_every_kind_has_a_handler(backend):
    for kind in ir.STMT_KINDS:
        assert hasattr(backend, "_emit_" + kind.__name__), kind.__name__
    for kind in ir.EXPR_KINDS:
        assert hasattr(backend, "_expr_" + kind.__name__), kind.__name__


@pytest.mark.parametrize("target", TARGETS)
@pytest.mark.parametrize("kind", ir.STMT_KINDS, ids=lambda k: k.__name__)
def test_every_statement_kind_renders(target, kind):
    empty = render(target, Program())
    output = render(target, Program((STMT_SAMPLES[kind],)))
    assert output.strip()
    assert output != empty


@pytest.mark.parametrize("target", TARGETS)
@pytest.mark.parametrize("kind", ir.EXPR_KINDS, ids=lambda k: k.__name__)
def test_every_expression_kind_renders(target, kind):
    output = render(target, Program((ExprStmt(EXPR_SAMPLES[kind]),)))
    assert output != render(target, Program())


@pytest.mark.parametrize("target", TARGETS)
def test_rendering_is_deterministic(target):
    prog = Program(tuple(STMT_SAMPLES.values()) + tuple(ExprStmt(e) for e in EXPR_SAMPLES.values()))
    first = render(target, prog)
    assert render(target, prog) == first
    backend = BACKENDS[target]()
    assert backend.emit(prog) == first
    assert backend.emit(prog) == first


@pytest.mark.parametrize("target", TARGETS)
def test_map_entries_keep_insertion_order(target):
    entries = tuple((Constant("string", k), _one()) for k in ("zeta", "alpha", "mid"))
    output = render(target, Program((Variable("m", ir.NOTHING, ir.MapLit(entries)),)))
    assert output.index("zeta") < output.index("alpha") < output.index("mid")


@pytest.mark.parametrize(
    "target,fn_name,param_name",
    [
        ("typescript", "computeTotal", "itemCount"),
        ("rust", "compute_total", "item_count"),
        ("go", "computeTotal", "itemCount"),
    ],
)
def test_declared_names_and_references_agree(target, fn_name, param_name):
    prog = Program(
        (
            Function(
                "compute-total",
                (ir.Param("item_count", NUMBER),),
                NUMBER,
                Block((Return(Ident("itemCount")),)),
            ),
            ExprStmt(Call("computeTotal", (_one(),))),
        )
    )
    output = render(target, prog)
    assert output.count(fn_name) == 2
    assert output.count(param_name) == 2


@pytest.mark.parametrize(
    "typ,ts,rust,go",
    [
        (ir.List(STRING), "string[]", "Vec<String>", "[]string"),
        (ir.Map(STRING, NUMBER), "Record<string, number>", "HashMap<String, i64>", "map[string]int64"),
        (ir.Either(STRING, NUMBER), "Either<string, number>", "Result<String, i64>", "Either[string, int64]"),
        (ir.FuncType(NUMBER, STRING), "(arg: number) => string", "Box<dyn Fn(i64) -> String>", "func(int64) string"),
        (ir.FuncType(ir.NOTHING, ir.NOTHING), "() => void", "Box<dyn Fn()>", "func()"),
        (ir.Reference(STRING, "a"), "string", "&'a String", "*string"),
        (ir.Reference(STRING), "string", "&String", "*string"),
        (ir.Box(ir.NamedType("tree-node")), "TreeNode", "Box<TreeNode>", "*TreeNode"),
        (ir.Primitive("boolean"), "boolean", "bool", "bool"),
        (ANY, "any", "Box<dyn std::any::Any>", "any"),
    ],
)
def test_type_rendering(typ, ts, rust, go):
    assert TsBackend()._type(typ) == ts
    assert RustBackend()._type(typ) == rust
    assert GoBackend()._type(typ) == go


def test_unknown_node_kind_is_a_contract_violation():
    @dataclass(frozen=True)
    class Goto(ir.Stmt):
        label: str

    for target in TARGETS:
        with pytest.raises(NotImplementedError):
            render(target, Program((Goto("end"),)))


def test_either_prelude_emitted_once():
    prog = Program(
        (
            Variable("a", ir.Either(STRING, NUMBER), Ident("x")),
            Variable("b", ir.Either(NUMBER, STRING), Ident("y")),
        )
    )
    assert render("typescript", prog).count("type Either<L, R>") == 1
    assert render("go", prog).count("type Either[L any, R any] struct") == 1
    assert "Either" not in render("typescript", Program((Variable("c", STRING, Ident("z")),)))


def test_imports_are_hoisted_and_deduplicated():
    prog = Program((ExprStmt(Call("run")), ir.Import("std.io"), ir.Import("std.io")))
    ts = render("typescript", prog)
    assert ts.count('import * as io from "std/io";') == 1
    assert ts.index("import") < ts.index("run()")
    go = render("go", prog)
    assert go.count('import "std/io"') == 1


def test_go_struct_methods_and_generic():
    prog = Program((ir.Struct("box", (Variable("item", ir.NamedType("t"), Ident("zero")),), generic="t"),))
    output = render("go", prog)
    assert "type Box[T any] struct {" in output
    assert "func NewBox[T any]() *Box[T] {" in output


def test_rust_struct_without_trait_methods():
    prog = Program((ir.Struct("counter", (Variable("n", NUMBER, _one()), _fn("get"))),))
    output = render("rust", prog)
    assert "impl Counter {" in output
    assert "    pub fn get(&self) -> i64 {" in output


def test_rust_nested_module_loose_statements():
    prog = Program((ir.ModuleDecl("setup", (ExprStmt(Call("boot")),)),))
    output = render("rust", prog)
    assert "pub mod setup {" in output
    assert "pub fn init() {" in output


def test_go_nested_function_is_a_literal():
    prog = Program((Function("outer", (), ir.NOTHING, Block((_fn("inner"),))),))
    assert "inner := func() int64 {" in render("go", prog)


def test_ts_namespace_exports_declarations():
    prog = Program((ir.ModuleDecl("util", (_fn("helper"), Variable("limit", NUMBER, _one()))),))
    output = render("typescript", prog)
    assert "export function helper(): number {" in output
    assert "export const limit: number = 1;" in output


def test_ts_decorated_struct_and_members():
    member = ir.Decorator("observable", Variable("count", NUMBER, _one()))
    prog = Program((ir.Decorator("component", ir.Struct("widget", (member,)), (Constant("string", "w"),)),))
    output = render("typescript", prog)
    assert '@component("w")\nclass Widget {' in output
    assert "  @observable\n  count: number = 1;" in output


def test_untyped_catch_before_typed_is_an_always_branch():
    catches = (CatchClause("a", _body()), CatchClause("b", _body(), ir.NamedType("IoError")))
    assert [closing for _, closing in catch_chain(catches)] == [False, False]
    ts = render("typescript", Program((ir.Try(_body(), catches),)))
    assert "if (true) {" in ts
    assert "throw _err;" in ts


@pytest.mark.parametrize("target", TARGETS)
def test_nested_negation_keeps_its_operand_grouped(target):
    prog = Program(
        (
            Variable("y", NUMBER, ir.UnaryOp("negate", ir.UnaryOp("negate", Ident("x")))),
            Variable("z", NUMBER, ir.UnaryOp("negate", Constant("number", -1))),
            Variable("w", ir.BOOLEAN, ir.UnaryOp("not", ir.UnaryOp("not", Ident("c")))),
        )
    )
    output = render(target, prog)
    assert "-(-x)" in output
    assert "-(-1)" in output
    assert "!(!c)" in output
    assert "--" not in output


@pytest.mark.parametrize("target", TARGETS)
def test_control_characters_are_escaped(target):
    prog = Program((Variable("s", STRING, Constant("string", "a\x00b\x01\x7f\f\v")),))
    output = render(target, prog)
    assert "a\\x00b\\x01\\x7f\\x0c\\x0b" in output
    assert not any(ch in output for ch in "\x00\x01\x7f\f\v")


def test_escape_string():
    assert escape_string('say "hi"\n') == 'say \\"hi\\"\\n'
    assert escape_string("tab\tcr\r") == "tab\\tcr\\r"
    assert escape_string("\x1b[0m") == "\\x1b[0m"
    assert escape_string("é") == "é"


def test_variant_owner_follows_the_subject_enum():
    owners = {"Alert": 0, "Color": 1}
    assert pick_owner(owners, "Color") == ("Color", 1)
    assert pick_owner(owners, "Alert") == ("Alert", 0)
    assert pick_owner(owners, None) == ("Alert", 0)
    assert pick_owner(owners, "Shape") == ("Alert", 0)
    assert pick_owner({}, "Alert") is None
    assert declared_enum(ir.Reference(ir.NamedType("alert"))) == "alert"
    assert declared_enum(ir.Box(ir.NamedType("alert"))) == "alert"
    assert declared_enum(NUMBER) is None
    assert declared_enum(None) is None


def _two_enums_matched_through(subject_type: ir.Type) -> Program:
    enums = (
        ir.Enum("alert", (ir.EnumVariant("red"), ir.EnumVariant("green", (NUMBER,)))),
        ir.Enum("color", (ir.EnumVariant("red", (STRING,)), ir.EnumVariant("blue"))),
    )
    match = ir.Match(Ident("level"), (ir.MatchCase("red", _body()), ir.MatchCase("green", _body())))
    check = Function("check", (ir.Param("level", subject_type),), ir.NOTHING, Block((match,)))
    return Program(enums + (check,))


def test_rust_match_uses_the_subject_enum_variant():
    output = render("rust", _two_enums_matched_through(ir.NamedType("alert")))
    assert "Alert::Red => {" in output
    assert "Alert::Green(..) => {" in output
    assert "Color::Red" not in output
    output = render("rust", _two_enums_matched_through(ir.Reference(ir.NamedType("color"))))
    assert "Color::Red(..) => {" in output


def test_go_match_uses_the_subject_enum_variant():
    output = render("go", _two_enums_matched_through(ir.NamedType("alert")))
    assert "case AlertRed:" in output
    assert "case AlertGreen:" in output
    assert "case ColorRed:" not in output


def test_match_subject_declared_as_a_local_variable():
    enums = (
        ir.Enum("alert", (ir.EnumVariant("red"),)),
        ir.Enum("color", (ir.EnumVariant("red"),)),
    )
    level = Variable("level", ir.NamedType("color"), Call("current"))
    match = ir.Match(Ident("level"), (ir.MatchCase("red", _body()),))
    prog = Program(enums + (Function("check", (), ir.NOTHING, Block((level, match))),))
    assert "Color::Red => {" in render("rust", prog)
    assert "case ColorRed:" in render("go", prog)


# ============================================================
# registry
# ============================================================


def test_targets():
    assert TARGETS == ("typescript", "rust", "go")
    assert ALIASES == {"ts": "typescript", "rs": "rust", "golang": "go"}


@pytest.mark.parametrize(
    "name,canonical",
    [("typescript", "typescript"), ("TS", "typescript"), ("Rust", "rust"), ("rs", "rust"), (" golang ", "go")],
)
def test_resolve_target(name, canonical):
    assert resolve_target(name) == canonical


def test_unsupported_target():
    with pytest.raises(UnsupportedTargetError) as exc:
        render("cobol", Program((_fn(),)))
    assert str(exc.value) == "Unsupported target language: cobol"
    assert exc.value.target == "cobol"
    assert isinstance(exc.value, ValueError)


# ============================================================
# naming helpers
# ============================================================


@pytest.mark.parametrize(
    "name,snake,camel,pascal",
    [
        ("user-name", "user_name", "userName", "UserName"),
        ("userName", "user_name", "userName", "UserName"),
        ("UserName", "user_name", "userName", "UserName"),
        ("HTTPServer", "http_server", "httpServer", "HttpServer"),
        ("_private_field", "_private_field", "_privateField", "_PrivateField"),
        ("x", "x", "x", "X"),
    ],
)
def test_casing(name, snake, camel, pascal):
    assert to_snake(name) == snake
    assert to_camel(name) == camel
    assert to_pascal(name) == pascal


def test_split_words():
    assert split_words("user-name_fooBar") == ["user", "name", "foo", "Bar"]
    assert to_snake("__") == "__"


def test_small_helpers():
    assert module_segments("std::collections/hash.map") == ["std", "collections", "hash", "map"]
    assert is_optional_doc("An OPTIONAL flag")
    assert not is_optional_doc(None)
    assert is_literal_pattern("42")
    assert is_literal_pattern("-1.5")
    assert is_literal_pattern('"ok"')
    assert not is_literal_pattern("Some")
