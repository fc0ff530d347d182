from typing import Dict, Generic, Iterator, Mapping, Optional, Tuple, TypeVar
from specc.types import FnKey, FuncSig, Typ

K = TypeVar("K")
V = TypeVar("V")

class PersistentMap(Generic[K, V]):
    """
    Immutable mapping. Every update returns a new map and leaves the receiver
    untouched, so two views derived from the same map never interfere.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Optional[Mapping[K, V]] = None):
        self._entries: Dict[K, V] = dict(entries) if entries else {}

    def _derive(self, entries: Dict[K, V]):
        derived = object.__new__(type(self))
        derived._entries = entries
        return derived

    def get(self, key: K) -> Optional[V]:
        return self._entries.get(key)

    def set(self, key: K, value: V):
        entries = dict(self._entries)
        entries[key] = value
        return self._derive(entries)

    def without(self, key: K):
        if key not in self._entries:
            return self
        entries = dict(self._entries)
        del entries[key]
        return self._derive(entries)

    def union(self, other: "PersistentMap[K, V]"):
        """Entries of ``other`` win over entries of ``self``."""
        if not other._entries:
            return self
        entries = dict(self._entries)
        entries.update(other._entries)
        return self._derive(entries)

    def items(self) -> Iterator[Tuple[K, V]]:
        return iter(list(self._entries.items()))

    def __contains__(self, key) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PersistentMap):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        body = ", ".join(f"{k}: {v}" for k, v in self._entries.items())
        return f"{type(self).__name__}({{{body}}})"

class VarContext(PersistentMap[str, Typ]):
    """Variables that are still usable: consumed non-copy names are removed."""

    def bind(self, name: str, typ: Typ) -> "VarContext":
        return self.set(name, typ)

class SignatureTable(PersistentMap[FnKey, FuncSig]):
    def register(self, key: FnKey, sig: FuncSig) -> "SignatureTable":
        return self.set(key, sig)

    def lookup(self, key: FnKey) -> Optional[FuncSig]:
        return self.get(key)
