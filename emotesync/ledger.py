"""
Ledger

In-place view over the caller's list of LedgerEntry rows.

PRINCIPLES:
===========
1. The caller owns the list and persists it after the engine returns
2. Keys are unique; order is insertion order
3. The engine appends, overwrites in place, and removes - nothing else
4. No locking: one reconciliation in flight per ledger
"""

from __future__ import annotations
from typing import Dict, Iterable, Iterator, List, Optional, Set, Any

from .contracts import LedgerEntry


class Ledger:
    """
    Ordered, key-unique wrapper around a mutable list.

    Mutations go straight through to the wrapped list so the caller sees
    them without copying anything back.
    """

    def __init__(self, entries: Optional[List[LedgerEntry]] = None):
        self._entries: List[LedgerEntry] = entries if entries is not None else []

        seen: Set[str] = set()
        for entry in self._entries:
            if entry.key in seen:
                raise ValueError(f"Duplicate ledger key {entry.key!r}")
            seen.add(entry.key)

    @classmethod
    def from_rows(cls, rows: Iterable[Dict[str, Any]]) -> 'Ledger':
        """Rebuild a ledger from LedgerEntry.to_dict() rows."""
        return cls([LedgerEntry.from_dict(row) for row in rows])

    def to_rows(self) -> List[Dict[str, Any]]:
        return [entry.to_dict() for entry in self._entries]

    @property
    def entries(self) -> List[LedgerEntry]:
        """The wrapped list itself, not a copy."""
        return self._entries

    def __iter__(self) -> Iterator[LedgerEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return any(e.key == key for e in self._entries)

    def keys(self) -> List[str]:
        return [e.key for e in self._entries]

    def get(self, key: str) -> Optional[LedgerEntry]:
        for entry in self._entries:
            if entry.key == key:
                return entry
        return None

    def add(self, entry: LedgerEntry):
        if entry.key in self:
            raise ValueError(f"Ledger already tracks key {entry.key!r}")
        self._entries.append(entry)

    def overwrite(self, key: str, remote_id: int, animated: bool, content_identifier: bytes) -> LedgerEntry:
        """Rewrite an existing entry in place; its position is kept."""
        entry = self.get(key)
        if entry is None:
            raise KeyError(key)
        entry.remote_id = remote_id
        entry.animated = animated
        entry.content_identifier = content_identifier
        return entry

    def remove(self, key: str) -> Optional[LedgerEntry]:
        for index, entry in enumerate(self._entries):
            if entry.key == key:
                del self._entries[index]
                return entry
        return None
