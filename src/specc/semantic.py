import logging
from dataclasses import replace
from typing import FrozenSet, List, NoReturn, Optional, Sequence, Tuple
from specc.ast_nodes import (
    Program, Item, FunctionDef, UseDecl, Block,
    Stmt, LetStmt, ExprStmt,
    Expr, LiteralExpr, VariableExpr, TupleExpr, BorrowExpr, BinaryExpr, UnaryExpr,
    IndexExpr, CallExpr, MethodCallExpr,
    Pattern, WildcardPattern, IdentPattern, TuplePattern,
)
from specc.context import SignatureTable, VarContext
from specc.diagnostics import DiagnosticEngine, DiagnosticKind, Span, TypeCheckError
from specc.types import (
    BaseType, Borrowing, FuncSig, MethodKey, StaticKey, Typ, TypeKind,
    is_copy, types_equal, unit_typ,
)

logger = logging.getLogger(__name__)

MutatedSet = FrozenSet[str]

class TypeChecker:
    """
    Type and ownership checker.

    Signature tables and variable contexts are immutable and threaded through
    every call explicitly; the only side effect is reporting to ``diagnostics``.
    A fatal diagnostic raises ``TypeCheckError``, which aborts the enclosing
    expression, statement, item and program.
    """

    def __init__(self, diagnostics: DiagnosticEngine, signatures: Optional[SignatureTable] = None):
        self.diagnostics = diagnostics
        self.initial_signatures = signatures if signatures is not None else SignatureTable()
        # Results of the last successful check()
        self.checked_program: Optional[Program] = None
        self.signatures: SignatureTable = self.initial_signatures

    def check(self, program: Program) -> bool:
        self.checked_program = None
        try:
            self.checked_program = self.check_program(program)
        except TypeCheckError as e:
            logger.debug("type checking stopped at %s: %s", e.diagnostic.span, e)
            return False
        return True

    def check_program(self, program: Program) -> Program:
        """Check items in order; the first failing item aborts the whole program."""
        signatures = self.initial_signatures
        items: List[Item] = []
        for item in program.items:
            checked_item, signatures = self.check_item(item, signatures)
            items.append(checked_item)
        self.signatures = signatures
        return replace(program, items=items)

    # --- Items ---

    def check_item(self, item: Item, signatures: SignatureTable) -> Tuple[Item, SignatureTable]:
        if isinstance(item, FunctionDef):
            return self._check_function(item, signatures)
        if isinstance(item, UseDecl):
            logger.debug("use %s", item)
            return item, signatures
        raise TypeError(f"Unsupported item '{type(item).__name__}'")

    def _check_function(self, func: FunctionDef, signatures: SignatureTable) -> Tuple[FunctionDef, SignatureTable]:
        logger.debug("checking function %s: %s", func.name, func.signature)
        context = VarContext()
        for param_name, param_type in func.signature.params:
            context = context.bind(param_name, param_type)

        # The body only sees functions declared before this one
        body = self.check_block(func.body, signatures, context)

        logger.debug("registered %s", func.name)
        return replace(func, body=body), signatures.register(StaticKey(func.name), func.signature)

    # --- Statements ---

    def check_block(self, block: Block, signatures: SignatureTable, context: VarContext) -> Block:
        mutated_vars: MutatedSet = frozenset()
        return_type: Optional[Typ] = None
        for i, stmt in enumerate(block.stmts):
            stmt_type, context, stmt_mutated = self.check_statement(stmt, signatures, context)
            mutated_vars = mutated_vars | stmt_mutated
            if i + 1 < len(block.stmts):
                if not types_equal(stmt_type, unit_typ()):
                    self._fail(
                        DiagnosticKind.TYPE_MISMATCH,
                        f"statement should have unit type here, found {stmt_type}",
                        stmt.span,
                    )
            else:
                return_type = stmt_type
        # Bindings made inside the block end with it
        logger.debug("block at %s has type %s", block.span, return_type)
        return replace(block, return_type=return_type, mutated_vars=mutated_vars)

    def check_statement(self, stmt: Stmt, signatures: SignatureTable,
                        context: VarContext) -> Tuple[Typ, VarContext, MutatedSet]:
        if isinstance(stmt, LetStmt):
            expr_type, context = self.check_expr(stmt.initializer, signatures, context)
            declared = stmt.type_annotation
            if declared is not None and not types_equal(declared, expr_type):
                self._fail(
                    DiagnosticKind.TYPE_MISMATCH,
                    f"wrong type declared for variable: expected {declared}, found {expr_type}",
                    stmt.pattern.span,
                )
            bindings = self.bind_pattern(stmt.pattern, expr_type)
            return unit_typ(stmt.span), context.union(bindings), frozenset()

        if isinstance(stmt, ExprStmt):
            expr_type, context = self.check_expr(stmt.expression, signatures, context)
            if stmt.has_semicolon:
                return unit_typ(stmt.span), context, frozenset()
            return expr_type, context, frozenset()

        raise TypeError(f"Unsupported statement '{type(stmt).__name__}'")

    def bind_pattern(self, pattern: Pattern, typ: Typ) -> VarContext:
        """Bindings introduced by matching ``pattern`` against a value of type ``typ``."""
        if isinstance(pattern, WildcardPattern):
            return VarContext()

        if isinstance(pattern, IdentPattern):
            return VarContext().bind(pattern.name, typ)

        if isinstance(pattern, TuplePattern):
            if typ.base.kind is not TypeKind.TUPLE:
                self._fail(
                    DiagnosticKind.TYPE_MISMATCH,
                    f"let-binding pattern expected a tuple but the type is {typ.base}",
                    pattern.span,
                )
            components = typ.base.elems
            if len(pattern.elements) != len(components):
                # Reported, but the shorter of the two lists is still bound
                self.diagnostics.error(
                    f"let-binding tuple pattern has {len(pattern.elements)} variables "
                    f"but {len(components)} were expected from the type",
                    pattern.span,
                    kind=DiagnosticKind.ARITY_MISMATCH,
                )
            bindings = VarContext()
            for sub_pattern, component in zip(pattern.elements, components):
                bindings = bindings.union(self.bind_pattern(sub_pattern, Typ.consumed(component, pattern.span)))
            return bindings

        raise TypeError(f"Unsupported pattern '{type(pattern).__name__}'")

    # --- Expressions ---

    def check_expr(self, expr: Expr, signatures: SignatureTable,
                   context: VarContext) -> Tuple[Typ, VarContext]:
        """Type of ``expr`` and the context left after evaluating it left to right."""
        if isinstance(expr, LiteralExpr):
            return Typ.consumed(BaseType.primitive(expr.kind, expr.span), expr.span), context

        if isinstance(expr, VariableExpr):
            return self._check_variable(expr, context)

        if isinstance(expr, TupleExpr):
            return self._check_tuple(expr, signatures, context)

        if isinstance(expr, BorrowExpr):
            return self._check_borrow(expr, context)

        if isinstance(expr, BinaryExpr):
            left_type, context = self.check_expr(expr.left, signatures, context)
            right_type, context = self.check_expr(expr.right, signatures, context)
            if not types_equal(left_type, right_type):
                self._fail(
                    DiagnosticKind.TYPE_MISMATCH,
                    f"wrong types of binary operators, left is {left_type} while right is {right_type}",
                    expr.span,
                )
            return left_type, context

        if isinstance(expr, UnaryExpr):
            return self.check_expr(expr.operand, signatures, context)

        if isinstance(expr, IndexExpr):
            return self._check_index(expr, signatures, context)

        if isinstance(expr, CallExpr):
            return self._check_call(expr, signatures, context)

        if isinstance(expr, MethodCallExpr):
            return self._check_method_call(expr, signatures, context)

        raise TypeError(f"Unsupported expression '{type(expr).__name__}'")

    def _check_variable(self, expr: VariableExpr, context: VarContext) -> Tuple[Typ, VarContext]:
        name = "::".join(expr.path)
        typ = context.get(name) if len(expr.path) == 1 and expr.type_arg is None else None
        if typ is None:
            self._fail(DiagnosticKind.UNKNOWN_IDENTIFIER, f"the variable {name} is unknown", expr.span)

        # Reading a consumed value of a non-copy type moves it
        if typ.borrowing is Borrowing.CONSUMED and not is_copy(typ.base):
            return typ, context.without(name)
        return typ, context

    def _check_tuple(self, expr: TupleExpr, signatures: SignatureTable,
                     context: VarContext) -> Tuple[Typ, VarContext]:
        elements: List[BaseType] = []
        for element in expr.elements:
            element_type, context = self.check_expr(element, signatures, context)
            if element_type.is_borrowed:
                self._fail(
                    DiagnosticKind.BORROWED_IN_TUPLE,
                    "borrowed values are forbidden in tuples",
                    element.span,
                )
            elements.append(element_type.base)
        return Typ.consumed(BaseType.tuple_of(elements, expr.span), expr.span), context

    def _check_borrow(self, expr: BorrowExpr, context: VarContext) -> Tuple[Typ, VarContext]:
        target = expr.target
        if not isinstance(target, VariableExpr):
            self._fail(DiagnosticKind.INVALID_BORROW, "only variables can be borrowed", expr.span)
        name = "::".join(target.path)
        typ = context.get(name) if len(target.path) == 1 and target.type_arg is None else None
        if typ is None:
            self._fail(DiagnosticKind.UNKNOWN_IDENTIFIER, f"the variable {name} is unknown", target.span)
        # A borrow never consumes its target
        return Typ.borrowed(typ.base, expr.span), context

    def _check_index(self, expr: IndexExpr, signatures: SignatureTable,
                     context: VarContext) -> Tuple[Typ, VarContext]:
        sequence_type, context = self.check_expr(expr.sequence, signatures, context)
        index_type, context = self.check_expr(expr.index, signatures, context)

        # Both consumed and borrowed sequences can be read from
        if sequence_type.base.kind is not TypeKind.SEQ:
            self._fail(
                DiagnosticKind.NON_SEQUENCE_INDEXED,
                f"this expression should be a sequence but instead has type {sequence_type}",
                expr.sequence.span,
            )
        if index_type.is_borrowed:
            self._fail(
                DiagnosticKind.BORROWED_INDEX,
                "cannot index a sequence with a borrowed value",
                expr.index.span,
            )
        if not index_type.base.is_integer:
            self._fail(
                DiagnosticKind.NON_INTEGER_INDEX,
                f"expected an integer to index the sequence but got type {index_type}",
                expr.index.span,
            )
        return Typ.consumed(sequence_type.base.elem, expr.span), context

    def _check_call(self, expr: CallExpr, signatures: SignatureTable,
                    context: VarContext) -> Tuple[Typ, VarContext]:
        func_name = "::".join(expr.callee_path)
        if len(expr.callee_path) != 1 or expr.type_arg is not None:
            self._fail(
                DiagnosticKind.UNSUPPORTED_QUALIFIED_CALL,
                f"calling qualified or generic functions is not supported: {func_name}",
                expr.span,
            )

        func_sig = signatures.lookup(StaticKey(func_name))
        if func_sig is None:
            self._fail(
                DiagnosticKind.UNKNOWN_FUNCTION,
                f"unknown function {func_name}",
                expr.span,
                hint="functions must be declared before the functions that call them",
            )

        if len(func_sig.params) != len(expr.arguments):
            self.diagnostics.error(
                f"function {func_name} was expecting {len(func_sig.params)} arguments but got {len(expr.arguments)}",
                expr.span,
                kind=DiagnosticKind.ARITY_MISMATCH,
            )
        context = self._check_arguments(func_sig, expr.arguments, signatures, context)
        return func_sig.ret, context

    def _check_method_call(self, expr: MethodCallExpr, signatures: SignatureTable,
                           context: VarContext) -> Tuple[Typ, VarContext]:
        receiver_type, context = self.check_expr(expr.receiver, signatures, context)
        key = MethodKey(receiver_type.base, expr.method_name)
        method_sig = signatures.lookup(key)
        if method_sig is None:
            self._fail(DiagnosticKind.UNKNOWN_FUNCTION, f"unknown method {key}", expr.span)

        # The receiver is passed as the implicit last argument
        arguments = list(expr.arguments) + [expr.receiver]
        if len(method_sig.params) != len(arguments):
            self.diagnostics.error(
                f"method {key} was expecting {len(method_sig.params)} arguments but got {len(arguments)}",
                expr.span,
                kind=DiagnosticKind.ARITY_MISMATCH,
            )
        context = self._check_arguments(method_sig, arguments, signatures, context)
        return method_sig.ret, context

    def _check_arguments(self, sig: FuncSig, arguments: Sequence[Expr], signatures: SignatureTable,
                         context: VarContext) -> VarContext:
        for (param_name, param_type), arg in zip(sig.params, arguments):
            arg_type, context = self.check_expr(arg, signatures, context)
            if param_type.is_borrowed and not arg_type.is_borrowed:
                self._fail(
                    DiagnosticKind.BORROW_MODE_MISMATCH,
                    "expected a borrow here but didn't find one",
                    arg.span,
                    hint=f"parameter '{param_name}' has type {param_type}",
                )
            if arg_type.is_borrowed and not param_type.is_borrowed:
                self._fail(
                    DiagnosticKind.BORROW_MODE_MISMATCH,
                    "superfluous borrow here, argument is consumed",
                    arg.span,
                    hint=f"parameter '{param_name}' has type {param_type}",
                )
            # Borrowing modes agree at this point, only the base types are compared
            if arg_type.base != param_type.base:
                self._fail(
                    DiagnosticKind.TYPE_MISMATCH,
                    f"expected type {param_type.base}, got {arg_type.base}",
                    arg.span,
                )
        return context

    def _fail(self, kind: DiagnosticKind, message: str, span: Span, hint: Optional[str] = None) -> NoReturn:
        diagnostic = self.diagnostics.error(message, span, hint, kind)
        raise TypeCheckError(diagnostic)
