# symtex_ledger/index/manager.py
"""
IndexManager: incremental lookup tables maintained on append.

Each bucket maps one (dimension, value) pair to the ascending list of
sequences carrying it. Sequences only grow, so a bucket is extended with a
plain append and readers cut it at their snapshot tail with bisect. Entries
are never removed; the only annotation-driven index is the flagged set,
replaced copy-on-write so readers never iterate a set that is changing.
"""

import logging
from bisect import bisect_right
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Set, Tuple

from symtex_ledger.chain.store import Snapshot
from symtex_ledger.core.types import LedgerEntry

logger = logging.getLogger(__name__)


class Dimension(str, Enum):
    ACTOR_TYPE = "actor_type"
    ACTOR_ID = "actor_id"
    CATEGORY = "category"
    SEVERITY = "severity"
    STATUS = "status"
    SPACE_ID = "space_id"
    PROJECT_ID = "project_id"
    TAG = "tag"
    PARENT_ID = "parent_id"


BucketKey = Tuple[Dimension, str]


def entry_keys(entry: LedgerEntry) -> Iterator[BucketKey]:
    yield Dimension.ACTOR_TYPE, entry.who.type.value
    yield Dimension.ACTOR_ID, entry.who.id
    yield Dimension.CATEGORY, entry.what.category.value
    yield Dimension.SEVERITY, entry.what.severity.value
    yield Dimension.STATUS, entry.what.status.value
    if entry.where.space_id:
        yield Dimension.SPACE_ID, entry.where.space_id
    if entry.where.project_id:
        yield Dimension.PROJECT_ID, entry.where.project_id
    for tag in entry.tags:
        yield Dimension.TAG, tag
    if entry.parent_id:
        yield Dimension.PARENT_ID, entry.parent_id


def _cut(bucket: List[int], upto: Optional[int]) -> List[int]:
    if upto is None:
        return []
    return bucket[: bisect_right(bucket, upto)]


class IndexManager:
    def __init__(self):
        self._buckets: Dict[BucketKey, List[int]] = {}
        self._flagged: FrozenSet[int] = frozenset()
        self.indexed_through: Optional[int] = None
        self.stale = False
        self.stale_reason: Optional[str] = None

    # ── writer side (called under the store's write lock) ──

    def on_append(self, entry: LedgerEntry) -> None:
        sequence = entry.sequence
        for key in entry_keys(entry):
            bucket = self._buckets.get(key)
            if bucket is None:
                self._buckets[key] = [sequence]
            elif bucket[-1] < sequence:
                bucket.append(sequence)
            elif bucket[-1] != sequence:
                raise ValueError(f"index bucket {key} already past sequence {sequence}")
        if entry.is_flagged:
            self._flagged = self._flagged | {sequence}
        self.indexed_through = sequence

    def on_annotate(self, entry: LedgerEntry) -> None:
        if entry.is_flagged:
            self._flagged = self._flagged | {entry.sequence}
        else:
            self._flagged = self._flagged - {entry.sequence}

    def mark_stale(self, reason: str) -> None:
        if not self.stale:
            logger.error("Index marked stale: %s", reason)
        self.stale = True
        self.stale_reason = reason

    def rebuild(self, entries: Iterable[LedgerEntry]) -> None:
        """Recompute every bucket from the source of truth, then swap in."""
        fresh = IndexManager()
        for entry in entries:
            fresh.on_append(entry)
        self._buckets = fresh._buckets
        self._flagged = fresh._flagged
        self.indexed_through = fresh.indexed_through
        self.stale = False
        self.stale_reason = None
        logger.info("Index rebuilt through sequence %s", self.indexed_through)

    # ── reader side ──

    def lookup(self, dimension: Dimension, value: str, upto: Optional[int]) -> List[int]:
        bucket = self._buckets.get((Dimension(dimension), value))
        return _cut(bucket, upto) if bucket else []

    def lookup_any(self, dimension: Dimension, values: Iterable[str], upto: Optional[int]) -> Set[int]:
        """Union of the buckets for `values` (OR within one predicate)."""
        matched: Set[int] = set()
        for value in values:
            matched.update(self.lookup(dimension, value, upto))
        return matched

    def flagged(self, upto: Optional[int]) -> Set[int]:
        if upto is None:
            return set()
        return {sequence for sequence in self._flagged if sequence <= upto}

    def contains(self, dimension: Dimension, value: str, sequence: int) -> bool:
        bucket = self._buckets.get((dimension, value))
        if not bucket:
            return False
        position = bisect_right(bucket, sequence)
        return position > 0 and bucket[position - 1] == sequence

    def count(self, dimension: Dimension, value: str) -> int:
        bucket = self._buckets.get((Dimension(dimension), value))
        return len(bucket) if bucket else 0

    def counts(self, dimension: Dimension) -> Dict[str, int]:
        dimension = Dimension(dimension)
        return {
            value: len(bucket)
            for (dim, value), bucket in tuple(self._buckets.items())
            if dim == dimension
        }

    def spot_check(self, snapshot: Snapshot, samples: int) -> Optional[str]:
        """
        Spot-check the index against `snapshot`. Returns a description of the
        first disagreement, or None when the sampled entries are all indexed.
        """
        if self.stale:
            return f"index is stale: {self.stale_reason}"
        if not snapshot.count:
            return None
        if self.indexed_through is None or self.indexed_through < snapshot.tail_sequence:
            return f"index covers through {self.indexed_through}, snapshot tail is {snapshot.tail_sequence}"
        if samples <= 0:
            return None

        last = snapshot.count - 1
        if samples == 1 or last == 0:
            positions = {last}
        else:
            positions = {round(i * last / (samples - 1)) for i in range(samples)}
        for position in sorted(positions):
            entry = snapshot.at(position)
            for dimension, value in entry_keys(entry):
                if not self.contains(dimension, value, entry.sequence):
                    return f"sequence {entry.sequence} missing from {dimension.value}={value!r}"
            if entry.is_flagged != (entry.sequence in self._flagged):
                return f"flagged index disagrees at sequence {entry.sequence}"
        return None
