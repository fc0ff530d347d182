import re
from enum import Enum, auto
from dataclasses import dataclass
from typing import List, Optional, Any
from specc.diagnostics import Span, DiagnosticEngine, DiagnosticKind
from specc.types import TypeKind, PRIMITIVE_TYPE_NAMES

class TokenType(Enum):
    # Keywords
    LET = auto()
    FN = auto()
    USE = auto()
    TRUE = auto()
    FALSE = auto()

    # Literals
    INTEGER = auto()
    IDENTIFIER = auto()
    UNDERSCORE = auto()

    # Operators & Punctuation
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()
    EQ = auto()        # =
    EQEQ = auto()      # ==
    NEQ = auto()       # !=
    LT = auto()        # <
    GT = auto()        # >
    LE = auto()        # <=
    GE = auto()        # >=
    ANDAND = auto()    # &&
    OROR = auto()      # ||
    AMPERSAND = auto() # & (borrow or bitwise and)
    PIPE = auto()      # |
    CARET = auto()     # ^
    SHL = auto()       # <<
    SHR = auto()       # >>
    BANG = auto()      # !
    DOT = auto()       # .
    LPAREN = auto()    # (
    RPAREN = auto()    # )
    LBRACE = auto()    # {
    RBRACE = auto()    # }
    LBRACKET = auto()  # [
    RBRACKET = auto()  # ]
    COLON = auto()     # :
    COLONCOLON = auto() # ::
    SEMICOLON = auto() # ;
    COMMA = auto()     # ,
    ARROW = auto()     # ->

    # Special
    EOF = auto()
    ERROR = auto()

INTEGER_SUFFIXES = "|".join(sorted(
    (name for name, kind in PRIMITIVE_TYPE_NAMES.items() if kind is not TypeKind.BOOL),
    key=len, reverse=True,
))

@dataclass
class Token:
    type: TokenType
    lexeme: str
    span: Span
    value: Optional[Any] = None

class Lexer:
    def __init__(self, source: str, diagnostics: DiagnosticEngine):
        self.source = source
        self.diagnostics = diagnostics
        self.tokens: List[Token] = []
        self.current_pos = 0
        self.line = 1
        self.column = 1

        # Regex patterns, tried in order
        self.patterns = [(token_type, re.compile(pattern)) for token_type, pattern in [
            (TokenType.LET, r'\blet\b'),
            (TokenType.FN, r'\bfn\b'),
            (TokenType.USE, r'\buse\b'),
            (TokenType.TRUE, r'\btrue\b'),
            (TokenType.FALSE, r'\bfalse\b'),

            (TokenType.ARROW, r'->'),
            (TokenType.COLONCOLON, r'::'),
            (TokenType.EQEQ, r'=='),
            (TokenType.NEQ, r'!='),
            (TokenType.LE, r'<='),
            (TokenType.GE, r'>='),
            (TokenType.ANDAND, r'&&'),
            (TokenType.OROR, r'\|\|'),
            (TokenType.SHL, r'<<'),
            (TokenType.SHR, r'>>'),
            (TokenType.EQ, r'='),
            (TokenType.LT, r'<'),
            (TokenType.GT, r'>'),
            (TokenType.PLUS, r'\+'),
            (TokenType.MINUS, r'-'),
            (TokenType.STAR, r'\*'),
            (TokenType.SLASH, r'/'),
            (TokenType.PERCENT, r'%'),
            (TokenType.AMPERSAND, r'&'),
            (TokenType.PIPE, r'\|'),
            (TokenType.CARET, r'\^'),
            (TokenType.BANG, r'!'),
            (TokenType.DOT, r'\.'),
            (TokenType.LPAREN, r'\('),
            (TokenType.RPAREN, r'\)'),
            (TokenType.LBRACE, r'\{'),
            (TokenType.RBRACE, r'\}'),
            (TokenType.LBRACKET, r'\['),
            (TokenType.RBRACKET, r'\]'),
            (TokenType.COLON, r':'),
            (TokenType.SEMICOLON, r';'),
            (TokenType.COMMA, r','),

            (TokenType.INTEGER, rf'(?:0x[0-9a-fA-F_]+|\d[\d_]*)(?:{INTEGER_SUFFIXES})?\b'),
            (TokenType.UNDERSCORE, r'_\b'),
            (TokenType.IDENTIFIER, r'[a-zA-Z_][a-zA-Z0-9_]*'),
        ]]
        self.skip_pattern = re.compile(r'\s+|//.*') # Skip whitespace and comments

    def tokenize(self) -> List[Token]:
        while self.current_pos < len(self.source):
            # Skip whitespace and comments
            match = self.skip_pattern.match(self.source, self.current_pos)
            if match:
                self._advance(match.end() - self.current_pos)
                continue

            matched = False
            for token_type, regex in self.patterns:
                match = regex.match(self.source, self.current_pos)
                if match:
                    lexeme = match.group(0)
                    span = Span(self.current_pos, self.current_pos + len(lexeme), self.line, self.column)

                    value = None
                    if token_type == TokenType.INTEGER:
                        value = self._integer_value(lexeme)

                    self.tokens.append(Token(token_type, lexeme, span, value))
                    self._advance(len(lexeme))
                    matched = True
                    break

            if not matched:
                char = self.source[self.current_pos]
                span = Span(self.current_pos, self.current_pos + 1, self.line, self.column)
                self.diagnostics.error(f"Unexpected character: '{char}'", span, kind=DiagnosticKind.SYNTAX)
                # Emit error token so the parser can fail gracefully
                self.tokens.append(Token(TokenType.ERROR, char, span))
                self._advance(1)

        # EOF Token
        span = Span(self.current_pos, self.current_pos, self.line, self.column)
        self.tokens.append(Token(TokenType.EOF, "", span))
        return self.tokens

    def _integer_value(self, lexeme: str):
        """Split '0xffu8' into (255, TypeKind.UINT8); unsuffixed literals are i32."""
        kind = TypeKind.INT32
        digits = lexeme
        # Hex digits never contain 'u' or 'i', so a match is always a real suffix
        suffix = re.search(rf'(?:{INTEGER_SUFFIXES})$', lexeme)
        if suffix:
            kind = PRIMITIVE_TYPE_NAMES[suffix.group(0)]
            digits = lexeme[:suffix.start()]
        digits = digits.replace("_", "")
        if digits.startswith("0x"):
            return int(digits[2:], 16), kind
        return int(digits), kind

    def _advance(self, amount: int):
        # Update line/col tracking
        text = self.source[self.current_pos : self.current_pos + amount]
        for char in text:
            if char == '\n':
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        self.current_pos += amount
