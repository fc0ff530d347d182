from specc.context import PersistentMap, SignatureTable, VarContext
from specc.types import BaseType, FuncSig, MethodKey, StaticKey, Typ, TypeKind, unit_typ

U8 = Typ.consumed(BaseType.primitive(TypeKind.UINT8))
SEQ = Typ.consumed(BaseType.seq(BaseType.primitive(TypeKind.UINT8)))

def test_updates_leave_the_receiver_untouched():
    empty = VarContext()
    one = empty.bind("x", U8)
    two = one.bind("s", SEQ)

    assert len(empty) == 0
    assert "x" in one and "s" not in one
    assert two.get("s") == SEQ
    assert isinstance(two, VarContext)

def test_derived_views_are_independent():
    base = VarContext().bind("x", U8).bind("s", SEQ)
    moved = base.without("s")
    rebound = base.bind("s", U8)

    assert "s" not in moved
    assert base.get("s") == SEQ
    assert rebound.get("s") == U8
    assert moved.get("x") == U8

def test_without_missing_key_returns_same_map():
    context = VarContext().bind("x", U8)

    assert context.without("y") is context

def test_union_prefers_right_operand():
    left = VarContext().bind("x", U8).bind("y", U8)
    right = VarContext().bind("x", SEQ)
    merged = left.union(right)

    assert merged.get("x") == SEQ
    assert merged.get("y") == U8
    assert left.get("x") == U8
    assert sorted(merged) == ["x", "y"]

def test_equality_and_repr():
    assert VarContext().bind("x", U8) == VarContext({"x": U8})
    assert PersistentMap({"a": 1}) != PersistentMap({"a": 2})
    assert repr(VarContext().bind("x", U8)) == "VarContext({x: u8})"

def test_signature_table_lookup():
    seq = BaseType.seq(BaseType.primitive(TypeKind.UINT8))
    len_sig = FuncSig((("self", Typ.borrowed(seq)),), Typ.consumed(BaseType.primitive(TypeKind.USIZE)))
    table = SignatureTable().register(StaticKey("main"), FuncSig((), unit_typ()))
    extended = table.register(MethodKey(seq, "len"), len_sig)

    assert table.lookup(MethodKey(seq, "len")) is None
    assert extended.lookup(MethodKey(seq, "len")) == len_sig
    assert extended.lookup(StaticKey("main")).ret == unit_typ()
    assert extended.lookup(StaticKey("len")) is None
