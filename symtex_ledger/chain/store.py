# symtex_ledger/chain/store.py
"""
In-memory entry set with snapshot reads.

The entry list only ever grows. A writer appends under `write_lock` and then
bumps the published count; a reader copies the count once and never looks
past it, so it sees a stable prefix without taking the lock.
"""

import threading
from typing import Dict, Iterator, List, Optional

from symtex_ledger.core.types import LedgerEntry


class Snapshot:
    """The first `count` entries of the ledger as of the moment it was taken."""

    __slots__ = ("_entries", "count", "base_sequence")

    def __init__(self, entries: List[LedgerEntry], count: int, base_sequence: Optional[int]):
        self._entries = entries
        self.count = count
        self.base_sequence = base_sequence

    def __len__(self) -> int:
        return self.count

    def __iter__(self) -> Iterator[LedgerEntry]:
        entries = self._entries
        for position in range(self.count):
            yield entries[position]

    @property
    def first_sequence(self) -> Optional[int]:
        return self.base_sequence if self.count else None

    @property
    def tail_sequence(self) -> Optional[int]:
        return self.base_sequence + self.count - 1 if self.count else None

    @property
    def tail(self) -> Optional[LedgerEntry]:
        return self._entries[self.count - 1] if self.count else None

    def at(self, position: int) -> LedgerEntry:
        if not 0 <= position < self.count:
            raise IndexError(position)
        return self._entries[position]

    def get(self, sequence: int) -> Optional[LedgerEntry]:
        if not self.count:
            return None
        position = sequence - self.base_sequence
        if 0 <= position < self.count:
            return self._entries[position]
        return None

    def between(self, start: int, end: int) -> Iterator[LedgerEntry]:
        """Entries with start <= sequence <= end, ascending."""
        if not self.count:
            return
        first = max(start - self.base_sequence, 0)
        last = min(end - self.base_sequence, self.count - 1)
        entries = self._entries
        for position in range(first, last + 1):
            yield entries[position]

    def to_list(self) -> List[LedgerEntry]:
        return self._entries[: self.count]


class EntryStore:
    """Source of truth for published entries. Sequences are gapless from the first one."""

    def __init__(self):
        self._entries: List[LedgerEntry] = []
        self._by_id: Dict[str, LedgerEntry] = {}
        self._base: Optional[int] = None
        self._count = 0
        # single-writer lock: append and annotation both go through it
        self.write_lock = threading.Lock()

    def __len__(self) -> int:
        return self._count

    def snapshot(self) -> Snapshot:
        return Snapshot(self._entries, self._count, self._base)

    def tail(self) -> Optional[LedgerEntry]:
        count = self._count
        return self._entries[count - 1] if count else None

    def publish(self, entry: LedgerEntry) -> None:
        """Make `entry` visible to readers. Caller must hold write_lock."""
        tail = self.tail()
        if tail is not None and entry.sequence != tail.sequence + 1:
            raise ValueError(f"out-of-order publish: {entry.sequence} after {tail.sequence}")
        if entry.id in self._by_id:
            raise ValueError(f"duplicate entry id {entry.id}")
        if self._base is None:
            self._base = entry.sequence
        self._entries.append(entry)
        self._by_id[entry.id] = entry
        self._count += 1

    def get_by_id(self, entry_id: str) -> Optional[LedgerEntry]:
        entry = self._by_id.get(entry_id)
        if entry is None or self._base is None:
            return None
        # ignore anything a concurrent writer hasn't finished publishing
        if entry.sequence - self._base >= self._count:
            return None
        return entry
