from typing import List, Optional
from specc.lexer import Token, TokenType
from specc.diagnostics import DiagnosticEngine, DiagnosticKind, Span
from specc.types import (
    BaseType, FuncSig, Typ, TypeKind, PRIMITIVE_TYPE_NAMES, unit_typ
)
from specc.ast_nodes import (
    Program, Item, FunctionDef, UseDecl, Block,
    Stmt, LetStmt, ExprStmt,
    Expr, LiteralExpr, VariableExpr, TupleExpr, BorrowExpr, BinaryExpr, UnaryExpr,
    IndexExpr, CallExpr, MethodCallExpr,
    Pattern, WildcardPattern, IdentPattern, TuplePattern,
)

class Parser:
    def __init__(self, tokens: List[Token], diagnostics: DiagnosticEngine):
        self.tokens = tokens
        self.diagnostics = diagnostics
        self.current = 0

    def parse(self) -> Program:
        items: List[Item] = []
        while not self._is_at_end():
            try:
                if self._check(TokenType.FN):
                    items.append(self._function_def())
                elif self._check(TokenType.USE):
                    items.append(self._use_decl())
                else:
                    self._error("Expected function or use declaration")
                    self._synchronize()
            except ParseError:
                self._synchronize()

        span = Span(0, 0, 0, 0)
        if self.tokens:
            span = Span(self.tokens[0].span.start, self.tokens[-1].span.end, 1, 1)
        return Program(span, items)

    # --- Declarations ---

    def _use_decl(self) -> UseDecl:
        start_token = self._consume(TokenType.USE, "Expected 'use'")

        # Parse path: hacspec::prelude::*
        path = [self._consume(TokenType.IDENTIFIER, "Expected import path").lexeme]
        while self._match(TokenType.COLONCOLON):
            if self._match(TokenType.STAR):
                path.append("*")
                break
            path.append(self._consume(TokenType.IDENTIFIER, "Expected identifier after '::'").lexeme)

        self._consume(TokenType.SEMICOLON, "Expected ';' after use declaration")
        return UseDecl(self._span_from(start_token), path)

    def _function_def(self) -> FunctionDef:
        start_token = self._consume(TokenType.FN, "Expected 'fn'")
        name = self._consume(TokenType.IDENTIFIER, "Expected function name").lexeme

        self._consume(TokenType.LPAREN, "Expected '(' after function name")
        params = []
        while not self._check(TokenType.RPAREN) and not self._is_at_end():
            param_name = self._consume(TokenType.IDENTIFIER, "Expected parameter name").lexeme
            self._consume(TokenType.COLON, "Expected ':' after parameter name")
            params.append((param_name, self._parse_type()))
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RPAREN, "Expected ')' after parameters")

        return_type = unit_typ(start_token.span)
        if self._match(TokenType.ARROW):
            return_type = self._parse_type()

        body = self._block()
        return FunctionDef(self._span_from(start_token), name, FuncSig(tuple(params), return_type), body)

    # --- Statements ---

    def _block(self) -> Block:
        start_token = self._consume(TokenType.LBRACE, "Expected '{' before block")
        statements: List[Stmt] = []
        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            try:
                if self._match(TokenType.LET):
                    statements.append(self._let_declaration())
                    continue

                expr = self._expression()
                # Tail expression: the value of the block
                if self._check(TokenType.RBRACE):
                    statements.append(ExprStmt(expr.span, expr, has_semicolon=False))
                    break
                self._consume(TokenType.SEMICOLON, "Expected ';' after expression")
                span = Span(expr.span.start, self._previous().span.end, expr.span.line, expr.span.column)
                statements.append(ExprStmt(span, expr))
            except ParseError:
                self._synchronize()

        self._consume(TokenType.RBRACE, "Expected '}' after block")
        return Block(self._span_from(start_token), statements)

    def _let_declaration(self) -> LetStmt:
        start_token = self._previous()
        pattern = self._parse_pattern()

        type_annotation = None
        if self._match(TokenType.COLON):
            type_annotation = self._parse_type()

        self._consume(TokenType.EQ, "Expected '=' after pattern")
        initializer = self._expression()
        self._consume(TokenType.SEMICOLON, "Expected ';' after variable declaration")
        return LetStmt(self._span_from(start_token), pattern, initializer, type_annotation)

    def _parse_pattern(self) -> Pattern:
        # _, x or (a, (b, _))
        if self._match(TokenType.UNDERSCORE):
            return WildcardPattern(self._previous().span)
        if self._match(TokenType.IDENTIFIER):
            token = self._previous()
            return IdentPattern(token.span, token.lexeme)
        if self._match(TokenType.LPAREN):
            start_token = self._previous()
            elements = []
            trailing_comma = False
            while not self._check(TokenType.RPAREN) and not self._is_at_end():
                elements.append(self._parse_pattern())
                trailing_comma = self._match(TokenType.COMMA)
                if not trailing_comma:
                    break
            self._consume(TokenType.RPAREN, "Expected ')' after tuple pattern")
            if len(elements) == 1 and not trailing_comma:
                return elements[0]
            return TuplePattern(self._span_from(start_token), elements)
        raise self._error("Expected pattern")

    # --- Expressions ---

    def _expression(self) -> Expr:
        return self._logic_or()

    def _logic_or(self) -> Expr:
        return self._binary(self._logic_and, TokenType.OROR)

    def _logic_and(self) -> Expr:
        return self._binary(self._comparison, TokenType.ANDAND)

    def _comparison(self) -> Expr:
        return self._binary(
            self._bit_or,
            TokenType.EQEQ, TokenType.NEQ, TokenType.LT, TokenType.GT, TokenType.LE, TokenType.GE,
        )

    def _bit_or(self) -> Expr:
        return self._binary(self._bit_xor, TokenType.PIPE)

    def _bit_xor(self) -> Expr:
        return self._binary(self._bit_and, TokenType.CARET)

    def _bit_and(self) -> Expr:
        return self._binary(self._shift, TokenType.AMPERSAND)

    def _shift(self) -> Expr:
        return self._binary(self._term, TokenType.SHL, TokenType.SHR)

    def _term(self) -> Expr:
        return self._binary(self._factor, TokenType.MINUS, TokenType.PLUS)

    def _factor(self) -> Expr:
        return self._binary(self._unary, TokenType.SLASH, TokenType.STAR, TokenType.PERCENT)

    def _binary(self, operand, *operators: TokenType) -> Expr:
        expr = operand()
        while self._match(*operators):
            operator = self._previous().lexeme
            right = operand()
            expr = BinaryExpr(Span(expr.span.start, right.span.end, expr.span.line, expr.span.column), expr, operator, right)
        return expr

    def _unary(self) -> Expr:
        if self._match(TokenType.MINUS, TokenType.BANG):
            operator = self._previous()
            operand = self._unary()
            return UnaryExpr(self._span_from(operator), operator.lexeme, operand)
        if self._match(TokenType.AMPERSAND):
            start_token = self._previous()
            target = self._unary()
            return BorrowExpr(self._span_from(start_token), target)
        return self._postfix()

    def _postfix(self) -> Expr:
        expr = self._primary()

        # Handle indexing (e.g., s[i]) and method calls (e.g., s.len())
        while True:
            if self._match(TokenType.LBRACKET):
                index = self._expression()
                self._consume(TokenType.RBRACKET, "Expected ']' after index")
                span = Span(expr.span.start, self._previous().span.end, expr.span.line, expr.span.column)
                expr = IndexExpr(span, expr, index)
            elif self._match(TokenType.DOT):
                method_name = self._consume(TokenType.IDENTIFIER, "Expected method name after '.'").lexeme
                args = self._parse_args()
                span = Span(expr.span.start, self._previous().span.end, expr.span.line, expr.span.column)
                expr = MethodCallExpr(span, expr, method_name, args)
            else:
                return expr

    def _parse_args(self) -> List[Expr]:
        self._consume(TokenType.LPAREN, "Expected '('")
        args = []
        while not self._check(TokenType.RPAREN) and not self._is_at_end():
            args.append(self._expression())
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RPAREN, "Expected ')'")
        return args

    def _primary(self) -> Expr:
        if self._match(TokenType.FALSE):
            return LiteralExpr(self._previous().span, False, TypeKind.BOOL)
        if self._match(TokenType.TRUE):
            return LiteralExpr(self._previous().span, True, TypeKind.BOOL)
        if self._match(TokenType.INTEGER):
            value, kind = self._previous().value
            return LiteralExpr(self._previous().span, value, kind)

        if self._match(TokenType.LPAREN):
            start_token = self._previous()
            if self._match(TokenType.RPAREN):
                return LiteralExpr(self._span_from(start_token), None, TypeKind.UNIT)

            first = self._expression()
            if self._match(TokenType.RPAREN):
                return first

            # Tuple literal: (a,) or (a, b, ...)
            self._consume(TokenType.COMMA, "Expected ',' or ')' after expression")
            elements = [first]
            while not self._check(TokenType.RPAREN) and not self._is_at_end():
                elements.append(self._expression())
                if not self._match(TokenType.COMMA):
                    break
            self._consume(TokenType.RPAREN, "Expected ')' after tuple elements")
            return TupleExpr(self._span_from(start_token), elements)

        if self._match(TokenType.IDENTIFIER):
            identifier_token = self._previous()

            # Qualified path and optional turbofish: math::add or add::<u8>
            path = [identifier_token.lexeme]
            type_arg: Optional[Typ] = None
            while self._match(TokenType.COLONCOLON):
                if self._match(TokenType.LT):
                    type_arg = self._parse_type()
                    self._close_type_argument()
                    break
                path.append(self._consume(TokenType.IDENTIFIER, "Expected identifier after '::'").lexeme)

            if self._check(TokenType.LPAREN):
                args = self._parse_args()
                return CallExpr(self._span_from(identifier_token), path, args, type_arg)

            return VariableExpr(self._span_from(identifier_token), path, type_arg)

        raise self._error("Expect expression")

    # --- Types ---

    def _parse_type(self) -> Typ:
        """Parse a type: u8, &Seq<u8>, (bool, u32), hacspec::Key<u8>."""
        start_token = self._peek()
        if self._match(TokenType.AMPERSAND):
            base = self._parse_base_type()
            return Typ.borrowed(base, self._span_from(start_token))
        base = self._parse_base_type()
        return Typ.consumed(base, base.span)

    def _parse_base_type(self) -> BaseType:
        start_token = self._peek()

        if self._match(TokenType.LPAREN):
            if self._match(TokenType.RPAREN):
                return BaseType.primitive(TypeKind.UNIT, self._span_from(start_token))
            elements = []
            trailing_comma = False
            while not self._check(TokenType.RPAREN) and not self._is_at_end():
                element = self._parse_type()
                if element.is_borrowed:
                    self.diagnostics.error(
                        "borrowed values are forbidden in tuples", element.span,
                        kind=DiagnosticKind.BORROWED_IN_TUPLE,
                    )
                elements.append(element.base)
                trailing_comma = self._match(TokenType.COMMA)
                if not trailing_comma:
                    break
            self._consume(TokenType.RPAREN, "Expected ')' after tuple type")
            if len(elements) == 1 and not trailing_comma:
                return elements[0]
            return BaseType.tuple_of(elements, self._span_from(start_token))

        path = [self._consume(TokenType.IDENTIFIER, "Expected type name").lexeme]
        while self._match(TokenType.COLONCOLON):
            path.append(self._consume(TokenType.IDENTIFIER, "Expected identifier after '::'").lexeme)

        arg: Optional[BaseType] = None
        if self._match(TokenType.LT):
            arg_type = self._parse_type()
            if arg_type.is_borrowed:
                self.diagnostics.error(
                    "type arguments cannot be borrowed", arg_type.span, kind=DiagnosticKind.SYNTAX
                )
            arg = arg_type.base
            if self._check(TokenType.COMMA):
                raise self._error("Expected a single type argument")
            self._close_type_argument()

        span = self._span_from(start_token)
        name = "::".join(path)
        if name in PRIMITIVE_TYPE_NAMES:
            if arg is not None:
                self.diagnostics.error(
                    f"Primitive type '{name}' cannot have type arguments", span, kind=DiagnosticKind.SYNTAX
                )
            return BaseType.primitive(PRIMITIVE_TYPE_NAMES[name], span)
        if name == "Seq":
            if arg is None:
                raise self._error("Expected '<' after 'Seq'")
            return BaseType.seq(arg, span)
        return BaseType.named(path, arg, span)

    def _close_type_argument(self):
        # Seq<Seq<u8>> lexes its closing brackets as a single '>>'
        if self._check(TokenType.SHR):
            token = self.tokens[self.current]
            span = Span(token.span.start + 1, token.span.end, token.span.line, token.span.column + 1)
            self.tokens[self.current] = Token(TokenType.GT, ">", span)
            return
        self._consume(TokenType.GT, "Expected '>' after type argument")

    # --- Helpers ---

    def _span_from(self, start_token: Token) -> Span:
        end = self._previous().span.end
        return Span(start_token.span.start, end, start_token.span.line, start_token.span.column)

    def _match(self, *types: TokenType) -> bool:
        for type in types:
            if self._check(type):
                self._advance()
                return True
        return False

    def _check(self, type: TokenType) -> bool:
        if self._is_at_end():
            return False
        return self.tokens[self.current].type == type

    def _peek(self) -> Token:
        return self.tokens[self.current]

    def _previous(self) -> Token:
        return self.tokens[self.current - 1]

    def _advance(self) -> Token:
        if not self._is_at_end():
            self.current += 1
        return self.tokens[self.current - 1]

    def _is_at_end(self) -> bool:
        return self.tokens[self.current].type == TokenType.EOF

    def _consume(self, type: TokenType, message: str) -> Token:
        if self._check(type):
            return self._advance()
        raise self._error(message)

    def _error(self, message: str) -> Exception:
        token = self.tokens[self.current]
        self.diagnostics.error(message, token.span, kind=DiagnosticKind.SYNTAX)
        return ParseError()

    def _synchronize(self):
        self._advance()
        while not self._is_at_end():
            if self._previous().type == TokenType.SEMICOLON:
                return

            if self.tokens[self.current].type in [TokenType.FN, TokenType.LET, TokenType.USE]:
                return

            self._advance()

class ParseError(Exception):
    pass
