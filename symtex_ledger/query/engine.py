# symtex_ledger/query/engine.py
"""
QueryEngine: filter → sort → paginate over a snapshot of the entry set.

Indexed predicates are answered from IndexManager buckets and intersected;
every candidate is then re-checked against the entry itself. If the index is
stale, lags the snapshot, fails a spot check, or hands back a candidate that
doesn't match its own predicate, the query is answered by a full scan instead
and the page is marked degraded. A query never silently returns a partial
result.
"""

import logging
import math
import warnings
from typing import Any, List, Mapping, Optional, Tuple, Union

from symtex_ledger.chain.store import EntryStore, Snapshot
from symtex_ledger.core.cancel import CancelToken, checkpoint
from symtex_ledger.core.errors import IndexInconsistencyWarning, QueryError
from symtex_ledger.core.types import LedgerEntry
from symtex_ledger.index.manager import IndexManager
from symtex_ledger.query.cursor import decode_cursor, encode_cursor
from symtex_ledger.query.filters import LedgerFilter, LedgerSort, Page, Pagination

logger = logging.getLogger(__name__)

FilterArg = Union[LedgerFilter, Mapping[str, Any], None]
SortArg = Union[LedgerSort, Mapping[str, Any], None]
PaginationArg = Union[Pagination, Mapping[str, Any], None]


def _coerce(value, cls, name):
    if value is None:
        return cls()
    if isinstance(value, cls):
        return value
    if isinstance(value, Mapping):
        return cls.from_dict(value)
    raise QueryError(f"{name}: expected {cls.__name__} or mapping, got {type(value).__name__}")


def report_inconsistency(problem: str, stacklevel: int = 3) -> None:
    """Log and warn that a read bypassed the index because of `problem`."""
    logger.warning("Index inconsistent, falling back to full scan: %s", problem)
    warnings.warn(
        f"ledger index inconsistent ({problem}); served by full scan",
        IndexInconsistencyWarning,
        stacklevel=stacklevel,
    )


class QueryEngine:
    def __init__(
        self,
        store: EntryStore,
        index: Optional[IndexManager] = None,
        default_page_size: int = 10,
        max_page_size: int = 500,
        spot_check_samples: int = 8,
        check_interval: int = 256,
    ):
        self.store = store
        self.index = index
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.spot_check_samples = spot_check_samples
        self.check_interval = check_interval

    def query(
        self,
        filter: FilterArg = None,
        sort: SortArg = None,
        pagination: PaginationArg = None,
        cancel: Optional[CancelToken] = None,
    ) -> Page:
        flt = _coerce(filter, LedgerFilter, "filter")
        order = _coerce(sort, LedgerSort, "sort")
        paging = _coerce(pagination, Pagination, "pagination")

        page_size = paging.page_size or self.default_page_size
        if page_size > self.max_page_size:
            raise QueryError(f"page_size {page_size} exceeds the maximum of {self.max_page_size}")
        position = decode_cursor(paging.cursor, order, flt) if paging.cursor else None

        snapshot = self.store.snapshot()
        matched, problem = self.select(flt, snapshot, cancel)
        ordered = sorted(matched, key=order.key, reverse=order.descending)

        total = len(ordered)
        total_pages = math.ceil(total / page_size) if total else 0

        if position is not None:
            start = self._first_after(ordered, order, position)
            page_number = None
        else:
            start = (paging.page - 1) * page_size
            page_number = paging.page

        entries = tuple(ordered[start:start + page_size])
        has_more = start + len(entries) < total
        next_cursor = encode_cursor(order, flt, entries[-1]) if has_more and entries else None

        return Page(
            entries=entries,
            total_count=total,
            page=page_number,
            page_size=page_size,
            total_pages=total_pages,
            has_more=has_more,
            next_cursor=next_cursor,
            degraded=problem is not None,
            warnings=(problem,) if problem else (),
        )

    def select(
        self, flt: LedgerFilter, snapshot: Snapshot, cancel: Optional[CancelToken] = None
    ) -> Tuple[List[LedgerEntry], Optional[str]]:
        """
        All entries of `snapshot` matching `flt`, in ascending sequence order,
        plus the index problem that forced a full scan (None if there was none).
        """
        predicates = flt.indexed_predicates()
        if self.index is None or not (predicates or flt.flagged_only):
            return self._scan(flt, snapshot, cancel), None

        problem = self.index.spot_check(snapshot, self.spot_check_samples)
        if problem is None:
            matched = self._from_index(flt, predicates, snapshot, cancel)
            if matched is not None:
                return matched, None
            problem = "index returned an entry that does not match its bucket"

        report_inconsistency(problem, stacklevel=5)
        return self._scan(flt, snapshot, cancel), problem

    def _from_index(self, flt, predicates, snapshot: Snapshot, cancel) -> Optional[List[LedgerEntry]]:
        upto = snapshot.tail_sequence
        candidates = None
        # smallest buckets first so the intersection shrinks fast
        lookups = sorted(
            (self.index.lookup_any(dimension, values, upto) for dimension, values in predicates),
            key=len,
        )
        for found in lookups:
            candidates = found if candidates is None else candidates & found
            if not candidates:
                return []
        if flt.flagged_only:
            flagged = self.index.flagged(upto)
            candidates = flagged if candidates is None else candidates & flagged

        matched = []
        for step, sequence in enumerate(sorted(candidates)):
            checkpoint(cancel, step, self.check_interval)
            entry = snapshot.get(sequence)
            if entry is None or not flt.matches_indexed(entry):
                return None
            if flt.matches(entry):
                matched.append(entry)
        return matched

    def _scan(self, flt: LedgerFilter, snapshot: Snapshot, cancel) -> List[LedgerEntry]:
        matched = []
        for step, entry in enumerate(snapshot):
            checkpoint(cancel, step, self.check_interval)
            if flt.matches(entry):
                matched.append(entry)
        return matched

    @staticmethod
    def _first_after(ordered: List[LedgerEntry], order: LedgerSort, position) -> int:
        # `ordered` is monotone in the sort, so binary-search the first entry past the cursor
        lo, hi = 0, len(ordered)
        while lo < hi:
            mid = (lo + hi) // 2
            if position.precedes(order, ordered[mid]):
                hi = mid
            else:
                lo = mid + 1
        return lo
