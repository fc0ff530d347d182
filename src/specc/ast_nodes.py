from dataclasses import dataclass, field
from typing import Any, FrozenSet, List, Optional, Union
from specc.diagnostics import Span
from specc.types import FuncSig, Typ, TypeKind

@dataclass
class ASTNode:
    span: Span

# Expressions
@dataclass
class Expr(ASTNode):
    pass

@dataclass
class LiteralExpr(Expr):
    value: Any
    kind: TypeKind  # UNIT, BOOL or one of the integer kinds

@dataclass
class VariableExpr(Expr):
    path: List[str]              # e.g., ["x"]; qualified paths never resolve to a variable
    type_arg: Optional[Typ] = None

@dataclass
class TupleExpr(Expr):
    elements: List[Expr]

@dataclass
class BorrowExpr(Expr):
    target: Expr

@dataclass
class BinaryExpr(Expr):
    left: Expr
    operator: str
    right: Expr

@dataclass
class UnaryExpr(Expr):
    operator: str
    operand: Expr

@dataclass
class IndexExpr(Expr):
    sequence: Expr
    index: Expr

@dataclass
class CallExpr(Expr):
    callee_path: List[str]  # e.g., ["add"] or ["math", "add"]
    arguments: List[Expr]
    type_arg: Optional[Typ] = None  # add::<u8>(...)

@dataclass
class MethodCallExpr(Expr):
    receiver: Expr
    method_name: str
    arguments: List[Expr]

# Patterns
@dataclass
class Pattern(ASTNode):
    pass

@dataclass
class WildcardPattern(Pattern):
    pass

@dataclass
class IdentPattern(Pattern):
    name: str

@dataclass
class TuplePattern(Pattern):
    elements: List[Pattern]

# Statements
@dataclass
class Stmt(ASTNode):
    pass

@dataclass
class LetStmt(Stmt):
    pattern: Pattern
    initializer: Expr
    type_annotation: Optional[Typ] = None

@dataclass
class ExprStmt(Stmt):
    expression: Expr
    has_semicolon: bool = True  # False only for the tail expression of a block

@dataclass
class Block(ASTNode):
    stmts: List[Stmt]
    return_type: Optional[Typ] = None                # Populated by TypeChecker
    mutated_vars: Optional[FrozenSet[str]] = None    # Populated by TypeChecker

# Items
@dataclass
class FunctionDef(ASTNode):
    name: str
    signature: FuncSig
    body: Block

@dataclass
class UseDecl(ASTNode):
    """Import declaration: use path::to::module::*;"""
    path: List[str]

    def __str__(self) -> str:
        return "::".join(self.path)

Item = Union[FunctionDef, UseDecl]

@dataclass
class Program(ASTNode):
    items: List[Item] = field(default_factory=list)

    @property
    def functions(self) -> List[FunctionDef]:
        return [item for item in self.items if isinstance(item, FunctionDef)]
