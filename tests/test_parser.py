from specc.lexer import Lexer
from specc.parser import Parser
from specc.diagnostics import DiagnosticEngine, DiagnosticKind
from specc.types import BaseType, Typ, TypeKind, unit_typ
from specc.ast_nodes import (
    FunctionDef, UseDecl, LetStmt, ExprStmt, BinaryExpr, LiteralExpr, VariableExpr,
    TupleExpr, BorrowExpr, UnaryExpr, IndexExpr, CallExpr, MethodCallExpr,
    WildcardPattern, IdentPattern, TuplePattern,
)

U8 = BaseType.primitive(TypeKind.UINT8)
BOOL = BaseType.primitive(TypeKind.BOOL)

def parse(source, diag=None):
    diag = diag or DiagnosticEngine(quiet=True)
    lexer = Lexer(source, diag)
    parser = Parser(lexer.tokenize(), diag)
    return parser.parse()

def test_parser_function():
    source = "fn id(x: bool) -> bool { x }"
    diag = DiagnosticEngine(quiet=True)
    program = parse(source, diag)

    assert not diag.has_errors
    assert len(program.functions) == 1
    func = program.functions[0]
    assert isinstance(func, FunctionDef)
    assert func.name == "id"
    assert func.signature.params == (("x", Typ.consumed(BOOL)),)
    assert func.signature.ret == Typ.consumed(BOOL)
    assert len(func.body.stmts) == 1
    tail = func.body.stmts[0]
    assert isinstance(tail, ExprStmt)
    assert not tail.has_semicolon
    assert isinstance(tail.expression, VariableExpr)
    assert func.body.return_type is None

def test_parser_function_without_return_type_returns_unit():
    program = parse("fn main() { let x = 10u8; }")

    func = program.functions[0]
    assert func.signature.ret == unit_typ()
    assert isinstance(func.body.stmts[0], LetStmt)

def test_parser_types():
    source = """
    fn f(a: &Seq<u8>, b: (u8, bool), c: hacspec::Key<u32>, d: Seq<Seq<u8>>, e: (), g: (u8,), h: Key) {}
    """
    diag = DiagnosticEngine(quiet=True)
    program = parse(source, diag)

    assert not diag.has_errors
    params = dict(program.functions[0].signature.params)
    assert params["a"] == Typ.borrowed(BaseType.seq(U8))
    assert params["b"] == Typ.consumed(BaseType.tuple_of([U8, BOOL]))
    assert params["c"] == Typ.consumed(
        BaseType.named(["hacspec", "Key"], BaseType.primitive(TypeKind.UINT32))
    )
    assert params["d"] == Typ.consumed(BaseType.seq(BaseType.seq(U8)))
    assert params["e"] == unit_typ()
    assert params["g"] == Typ.consumed(BaseType.tuple_of([U8]))
    assert params["h"].base == BaseType.named(["Key"])

def test_parser_use_decl():
    program = parse("use hacspec::prelude::*;")

    assert len(program.items) == 1
    use = program.items[0]
    assert isinstance(use, UseDecl)
    assert use.path == ["hacspec", "prelude", "*"]
    assert str(use) == "hacspec::prelude::*"

def test_parser_items_keep_source_order():
    program = parse("use a::b; fn f() {} use c::d; fn g() {}")

    kinds = [type(item) for item in program.items]
    assert kinds == [UseDecl, FunctionDef, UseDecl, FunctionDef]

def test_parser_let_patterns():
    source = "fn f() { let (a, _) = (1u8, true); let (b,) = (2u8,); let c: u8 = 3u8; let (d) = 4u8; }"
    diag = DiagnosticEngine(quiet=True)
    program = parse(source, diag)

    assert not diag.has_errors
    first, second, third, fourth = program.functions[0].body.stmts

    assert isinstance(first.pattern, TuplePattern)
    assert isinstance(first.pattern.elements[0], IdentPattern)
    assert isinstance(first.pattern.elements[1], WildcardPattern)
    assert isinstance(first.initializer, TupleExpr)

    assert isinstance(second.pattern, TuplePattern)
    assert len(second.pattern.elements) == 1
    assert len(second.initializer.elements) == 1

    assert third.type_annotation == Typ.consumed(U8)
    assert isinstance(fourth.pattern, IdentPattern)

def test_parser_expression_precedence():
    source = "fn main() { let x = 1 + 2 * 3; }"
    program = parse(source)

    let_stmt = program.functions[0].body.stmts[0]
    expr = let_stmt.initializer

    # 1 + (2 * 3)
    assert isinstance(expr, BinaryExpr)
    assert expr.operator == "+"
    assert isinstance(expr.left, LiteralExpr)
    assert expr.left.value == 1
    assert expr.left.kind == TypeKind.INT32

    assert isinstance(expr.right, BinaryExpr)
    assert expr.right.operator == "*"
    assert expr.right.left.value == 2
    assert expr.right.right.value == 3

def test_parser_bitwise_and_versus_borrow():
    program = parse("fn f(a: u8, b: u8) { let c = a & b; let d = &a; }")

    first, second = program.functions[0].body.stmts
    assert isinstance(first.initializer, BinaryExpr)
    assert first.initializer.operator == "&"
    assert isinstance(second.initializer, BorrowExpr)
    assert isinstance(second.initializer.target, VariableExpr)

def test_parser_unary_and_unit_literal():
    program = parse("fn f(x: i32, b: bool) { let y = -x; let c = !b; let u = (); }")

    neg, neg_bool, unit = program.functions[0].body.stmts
    assert isinstance(neg.initializer, UnaryExpr)
    assert neg.initializer.operator == "-"
    assert neg_bool.initializer.operator == "!"
    assert isinstance(unit.initializer, LiteralExpr)
    assert unit.initializer.kind == TypeKind.UNIT

def test_parser_postfix_expressions():
    program = parse("fn f(s: &Seq<u8>, i: usize) { let a = s[i + 1usize]; let n = s.get(i, 0u8); }")

    index_stmt, method_stmt = program.functions[0].body.stmts
    index = index_stmt.initializer
    assert isinstance(index, IndexExpr)
    assert isinstance(index.sequence, VariableExpr)
    assert isinstance(index.index, BinaryExpr)

    call = method_stmt.initializer
    assert isinstance(call, MethodCallExpr)
    assert call.method_name == "get"
    assert len(call.arguments) == 2

def test_parser_calls():
    program = parse("fn f() { let a = add(1, 2); let b = math::add(1, 2); let c = add::<u8>(1u8); }")

    plain, qualified, generic = [stmt.initializer for stmt in program.functions[0].body.stmts]
    assert isinstance(plain, CallExpr)
    assert plain.callee_path == ["add"]
    assert len(plain.arguments) == 2
    assert qualified.callee_path == ["math", "add"]
    assert generic.callee_path == ["add"]
    assert generic.type_arg == Typ.consumed(U8)

def test_parser_expression_statements():
    program = parse("fn f(x: u8) { g(x); x }")

    first, tail = program.functions[0].body.stmts
    assert isinstance(first, ExprStmt)
    assert first.has_semicolon
    assert isinstance(tail, ExprStmt)
    assert not tail.has_semicolon

def test_parser_rejects_borrowed_tuple_component():
    diag = DiagnosticEngine(quiet=True)
    parse("fn f(x: (&u8, bool)) {}", diag)

    assert diag.has_errors
    assert diag.diagnostics[0].kind == DiagnosticKind.BORROWED_IN_TUPLE

def test_parser_error_recovery():
    # Missing semicolon
    source = "fn main() { let x = 10 let y = 20; }"
    diag = DiagnosticEngine(quiet=True)
    program = parse(source, diag)

    assert diag.has_errors
    assert diag.diagnostics[0].kind == DiagnosticKind.SYNTAX
    # Should still have parsed the function
    assert len(program.functions) == 1
