from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional
from rich.console import Console
from rich.markup import escape

@dataclass
class Span:
    start: int
    end: int
    line: int
    column: int

    def __repr__(self):
        return f"{self.line}:{self.column}"

class DiagnosticKind(Enum):
    UNKNOWN_IDENTIFIER = auto()
    UNKNOWN_FUNCTION = auto()
    TYPE_MISMATCH = auto()
    BORROW_MODE_MISMATCH = auto()
    ARITY_MISMATCH = auto()
    BORROWED_IN_TUPLE = auto()
    NON_INTEGER_INDEX = auto()
    BORROWED_INDEX = auto()
    NON_SEQUENCE_INDEXED = auto()
    UNSUPPORTED_QUALIFIED_CALL = auto()
    INVALID_BORROW = auto()
    SYNTAX = auto()

@dataclass
class Diagnostic:
    message: str
    span: Span
    level: str = "error"  # error, warning, info
    hint: Optional[str] = None
    kind: Optional[DiagnosticKind] = None

class TypeCheckError(Exception):
    """Raised by the checker after a fatal diagnostic has been reported."""

    def __init__(self, diagnostic: Diagnostic):
        super().__init__(diagnostic.message)
        self.diagnostic = diagnostic

class CompilationError(Exception):
    pass

class DiagnosticEngine:
    def __init__(self, console: Optional[Console] = None, quiet: bool = False):
        self.diagnostics: List[Diagnostic] = []
        self.has_errors = False
        self.console = console or Console(stderr=True)
        self.quiet = quiet

    def report(self, level: str, message: str, span: Span, hint: Optional[str] = None,
               kind: Optional[DiagnosticKind] = None) -> Diagnostic:
        diag = Diagnostic(message, span, level, hint, kind)
        self.diagnostics.append(diag)
        if level == "error":
            self.has_errors = True

        if not self.quiet:
            color = "red" if level == "error" else "yellow"
            self.console.print(f"[{color} bold]{level.upper()}:[/] {escape(message)} at {span}", highlight=False)
            if hint:
                self.console.print(f"  [blue]Hint:[/blue] {escape(hint)}", highlight=False)
        return diag

    def error(self, message: str, span: Span, hint: Optional[str] = None,
              kind: Optional[DiagnosticKind] = None) -> Diagnostic:
        return self.report("error", message, span, hint, kind)

    def of_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]
