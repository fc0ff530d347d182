from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union
from specc.diagnostics import Span

class Borrowing(Enum):
    CONSUMED = "consumed"
    BORROWED = "borrowed"

    def __str__(self) -> str:
        return "&" if self is Borrowing.BORROWED else ""

class TypeKind(Enum):
    UNIT = "()"
    BOOL = "bool"
    UINT8 = "u8"
    INT8 = "i8"
    UINT16 = "u16"
    INT16 = "i16"
    UINT32 = "u32"
    INT32 = "i32"
    UINT64 = "u64"
    INT64 = "i64"
    UINT128 = "u128"
    INT128 = "i128"
    USIZE = "usize"
    ISIZE = "isize"
    SEQ = "Seq"
    NAMED = "named"
    TUPLE = "tuple"

INTEGER_KINDS = frozenset({
    TypeKind.UINT8, TypeKind.INT8,
    TypeKind.UINT16, TypeKind.INT16,
    TypeKind.UINT32, TypeKind.INT32,
    TypeKind.UINT64, TypeKind.INT64,
    TypeKind.UINT128, TypeKind.INT128,
    TypeKind.USIZE, TypeKind.ISIZE,
})

# Surface names of the types that take no components
PRIMITIVE_TYPE_NAMES = {kind.value: kind for kind in INTEGER_KINDS | {TypeKind.BOOL}}

@dataclass(frozen=True)
class BaseType:
    """
    Nominal base type. ``kind`` is the tag; only the fields matching the tag
    are set: ``elem`` for SEQ, ``path``/``arg`` for NAMED, ``elems`` for TUPLE.
    The span is carried for diagnostics and never compared or hashed.
    """
    kind: TypeKind
    elem: Optional["BaseType"] = None
    path: Tuple[str, ...] = ()
    arg: Optional["BaseType"] = None
    elems: Tuple["BaseType", ...] = ()
    span: Optional[Span] = field(default=None, compare=False, repr=False)

    @staticmethod
    def primitive(kind: TypeKind, span: Optional[Span] = None) -> "BaseType":
        if kind in (TypeKind.SEQ, TypeKind.NAMED, TypeKind.TUPLE):
            raise ValueError(f"'{kind.value}' is not a primitive type kind")
        return BaseType(kind, span=span)

    @staticmethod
    def seq(elem: "BaseType", span: Optional[Span] = None) -> "BaseType":
        return BaseType(TypeKind.SEQ, elem=elem, span=span)

    @staticmethod
    def named(path, arg: Optional["BaseType"] = None, span: Optional[Span] = None) -> "BaseType":
        return BaseType(TypeKind.NAMED, path=tuple(path), arg=arg, span=span)

    @staticmethod
    def tuple_of(elems, span: Optional[Span] = None) -> "BaseType":
        return BaseType(TypeKind.TUPLE, elems=tuple(elems), span=span)

    @property
    def is_integer(self) -> bool:
        return self.kind in INTEGER_KINDS

    def __str__(self) -> str:
        if self.kind is TypeKind.SEQ:
            return f"Seq<{self.elem}>"
        if self.kind is TypeKind.NAMED:
            name = "::".join(self.path)
            return f"{name}<{self.arg}>" if self.arg is not None else name
        if self.kind is TypeKind.TUPLE:
            if len(self.elems) == 1:
                return f"({self.elems[0]},)"
            return "(" + ", ".join(str(t) for t in self.elems) + ")"
        return self.kind.value

@dataclass(frozen=True)
class Typ:
    borrowing: Borrowing
    base: BaseType
    span: Optional[Span] = field(default=None, compare=False, repr=False)

    @staticmethod
    def consumed(base: BaseType, span: Optional[Span] = None) -> "Typ":
        return Typ(Borrowing.CONSUMED, base, span)

    @staticmethod
    def borrowed(base: BaseType, span: Optional[Span] = None) -> "Typ":
        return Typ(Borrowing.BORROWED, base, span)

    @property
    def is_borrowed(self) -> bool:
        return self.borrowing is Borrowing.BORROWED

    def __str__(self) -> str:
        return f"{self.borrowing}{self.base}"

def unit_typ(span: Optional[Span] = None) -> Typ:
    return Typ.consumed(BaseType.primitive(TypeKind.UNIT, span), span)

def base_types_equal(b1: BaseType, b2: BaseType) -> bool:
    if b1.kind != b2.kind:
        return False
    if b1.kind is TypeKind.SEQ:
        return base_types_equal(b1.elem, b2.elem)
    if b1.kind is TypeKind.NAMED:
        if len(b1.path) != len(b2.path):
            return False
        if not all(s1 == s2 for s1, s2 in zip(b1.path, b2.path)):
            return False
        if b1.arg is None or b2.arg is None:
            return b1.arg is None and b2.arg is None
        return base_types_equal(b1.arg, b2.arg)
    if b1.kind is TypeKind.TUPLE:
        return len(b1.elems) == len(b2.elems) and all(
            base_types_equal(t1, t2) for t1, t2 in zip(b1.elems, b2.elems)
        )
    return True

def types_equal(t1: Typ, t2: Typ) -> bool:
    """Exact equality: same borrowing mode and structurally equal base types."""
    if t1.borrowing != t2.borrowing:
        return False
    return base_types_equal(t1.base, t2.base)

def is_copy(base: BaseType) -> bool:
    """Copy values can be read any number of times without being consumed."""
    if base.kind in (TypeKind.UNIT, TypeKind.BOOL) or base.kind in INTEGER_KINDS:
        return True
    if base.kind is TypeKind.TUPLE:
        return all(is_copy(t) for t in base.elems)
    # Seq and Named types own their contents
    return False

# --- Signatures ---

@dataclass(frozen=True)
class FuncSig:
    params: Tuple[Tuple[str, Typ], ...]
    ret: Typ

    def __str__(self) -> str:
        params = ", ".join(f"{name}: {typ}" for name, typ in self.params)
        return f"fn({params}) -> {self.ret}"

@dataclass(frozen=True)
class StaticKey:
    name: str

    def __str__(self) -> str:
        return self.name

@dataclass(frozen=True)
class MethodKey:
    receiver: BaseType
    name: str

    def __str__(self) -> str:
        return f"{self.receiver}::{self.name}"

FnKey = Union[StaticKey, MethodKey]
