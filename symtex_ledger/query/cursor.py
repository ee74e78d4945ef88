# symtex_ledger/query/cursor.py
"""
Opaque pagination cursors.

A cursor records where the previous page stopped as (sort key value, sequence)
and is bound to the sort and the filter fingerprint, so it cannot be replayed
against a different query.
"""

from dataclasses import dataclass
from typing import Any

from symtex_ledger.core.encoding import decode_token, encode_token
from symtex_ledger.core.errors import QueryError
from symtex_ledger.core.types import LedgerEntry
from symtex_ledger.query.filters import LedgerFilter, LedgerSort

CURSOR_VERSION = 1


@dataclass(frozen=True)
class CursorPosition:
    key: Any
    sequence: int

    def precedes(self, sort: LedgerSort, entry: LedgerEntry) -> bool:
        """True when `entry` comes after this position in `sort` order."""
        key = sort.key(entry)
        if key == self.key:
            return entry.sequence > self.sequence
        if sort.descending:
            return key < self.key
        return key > self.key


def encode_cursor(sort: LedgerSort, flt: LedgerFilter, last: LedgerEntry) -> str:
    return encode_token({
        "v": CURSOR_VERSION,
        "f": sort.field.value,
        "d": sort.direction.value,
        "q": flt.fingerprint(),
        "k": sort.key_value(last),
        "s": last.sequence,
    })


def decode_cursor(token: str, sort: LedgerSort, flt: LedgerFilter) -> CursorPosition:
    try:
        data = decode_token(token)
    except ValueError as e:
        raise QueryError(f"invalid cursor: {e}") from None

    if data.get("v") != CURSOR_VERSION:
        raise QueryError("invalid cursor: unsupported version")
    if data.get("f") != sort.field.value or data.get("d") != sort.direction.value:
        raise QueryError("cursor was issued for a different sort")
    if data.get("q") != flt.fingerprint():
        raise QueryError("cursor was issued for a different filter")
    sequence = data.get("s")
    if isinstance(sequence, bool) or not isinstance(sequence, int):
        raise QueryError("invalid cursor: bad sequence")
    return CursorPosition(key=sort.parse_key(data.get("k")), sequence=sequence)
