# symtex_ledger/ledger.py
import logging
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from symtex_ledger.chain.recorder import EventRecorder, Resolver
from symtex_ledger.chain.store import EntryStore, Snapshot
from symtex_ledger.config import LedgerConfig
from symtex_ledger.core.cancel import CancelToken
from symtex_ledger.core.errors import LedgerError, StorageError
from symtex_ledger.core.types import (
    ActorType,
    Annotation,
    Category,
    LedgerEntry,
    ReviewStatus,
    SixWPayload,
    coerce_enum,
    utc_now,
)
from symtex_ledger.crypto.hashing import merkle_root
from symtex_ledger.crypto.signing import SignatureCheck, Signer
from symtex_ledger.index.manager import Dimension, IndexManager, entry_keys
from symtex_ledger.query.engine import FilterArg, PaginationArg, QueryEngine, SortArg, report_inconsistency
from symtex_ledger.query.filters import Page
from symtex_ledger.storage import StorageBackend, create_storage
from symtex_ledger.verify.alerts import AlertSink, log_alert
from symtex_ledger.verify.verifier import ChainVerifier, VerificationResult

logger = logging.getLogger(__name__)

_UNSET = object()


class Ledger:
    """
    The audit ledger as one explicit service: entry set, indexes, the single
    writer, the query engine and the verifier. Build one per process and pass
    it to whoever needs to record or read events.

    `storage` may be a StorageBackend, a URI ("sqlite://...", "jsonl:..."), a
    plain file path (treated as SQLite), or None for an in-memory ledger.
    Existing entries are replayed from storage on construction.
    """

    def __init__(
        self,
        storage: Union[StorageBackend, str, Path, None] = None,
        config: Optional[LedgerConfig] = None,
        signer: Optional[Signer] = None,
        signature_check: Optional[SignatureCheck] = None,
        resolver: Optional[Resolver] = None,
        alert_sink: AlertSink = log_alert,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config or LedgerConfig()
        self.storage = self._open_storage(storage)
        self.alert_sink = alert_sink
        self.clock = clock

        self.store = EntryStore()
        self.index = IndexManager()
        self.recorder = EventRecorder(
            self.store,
            self.index,
            storage=self.storage,
            algorithm=self.config.hash_algorithm,
            initial_sequence=self.config.initial_sequence,
            signer=signer,
            resolver=resolver,
            clock=clock,
        )
        self.engine = QueryEngine(
            self.store,
            self.index,
            default_page_size=self.config.default_page_size,
            max_page_size=self.config.max_page_size,
            spot_check_samples=self.config.spot_check_samples,
            check_interval=self.config.cancel_check_interval,
        )
        self.verifier = ChainVerifier(
            self.store,
            signature_check=signature_check,
            check_interval=self.config.cancel_check_interval,
        )

        if self.storage is not None:
            self._load()

    @staticmethod
    def _open_storage(storage: Union[StorageBackend, str, Path, None]) -> Optional[StorageBackend]:
        if isinstance(storage, Path):
            storage = str(storage)
        if isinstance(storage, str):
            stripped = storage.strip()
            if stripped.startswith(("sqlite://", "jsonl:")):
                return create_storage(stripped)
            elif stripped:
                # Plain file path → SQLite
                return create_storage(f"sqlite://{stripped}")
            return None
        return storage

    def _load(self) -> None:
        loaded = self.storage.load_entries()
        for entry in loaded:
            self.recorder.replay(entry)
        if loaded:
            logger.info(
                "Loaded %d ledger entries (sequence %d..%d)",
                len(loaded), loaded[0].sequence, loaded[-1].sequence,
            )

    # ── append ──

    def append(self, payload: Union[SixWPayload, Mapping[str, Any]]) -> LedgerEntry:
        """Record one event. Raises ValidationError / StorageError; nothing is appended on failure."""
        return self.recorder.append(payload)

    # ── annotation (the only mutable channel) ──

    def annotate(
        self,
        sequence: int,
        *,
        is_flagged: Optional[bool] = None,
        review_status: Any = _UNSET,
        notes: Any = _UNSET,
    ) -> LedgerEntry:
        """
        Update the annotation of one entry. Only the fields passed change;
        pass review_status=None / notes=None to clear them. The content hash
        and chain are untouched.
        """
        if review_status is not _UNSET and review_status is not None:
            review_status = coerce_enum(ReviewStatus, review_status, "review_status")

        with self.store.write_lock:
            if self.recorder.closed:
                raise StorageError("ledger is closed")
            entry = self.store.snapshot().get(sequence)
            if entry is None:
                raise LedgerError(f"No entry with sequence {sequence}")

            current = entry.annotation
            updated = Annotation(
                is_flagged=current.is_flagged if is_flagged is None else bool(is_flagged),
                review_status=current.review_status if review_status is _UNSET else review_status,
                notes=current.notes if notes is _UNSET else notes,
                updated_at=self.clock(),
            )
            if self.storage is not None:
                try:
                    self.storage.update_annotation(sequence, updated)
                except StorageError:
                    raise
                except Exception as e:
                    raise StorageError(f"Failed to annotate entry {sequence}: {e}") from e

            current.is_flagged = updated.is_flagged
            current.review_status = updated.review_status
            current.notes = updated.notes
            current.updated_at = updated.updated_at
            self.index.on_annotate(entry)

        logger.debug("Annotated %d: flagged=%s review=%s", sequence, current.is_flagged, current.review_status)
        return entry

    def flag(self, sequence: int, flagged: bool = True) -> LedgerEntry:
        return self.annotate(sequence, is_flagged=flagged)

    # ── reads ──

    def query(
        self,
        filter: FilterArg = None,
        sort: SortArg = None,
        pagination: PaginationArg = None,
        cancel: Optional[CancelToken] = None,
    ) -> Page:
        return self.engine.query(filter, sort, pagination, cancel=cancel)

    def verify(
        self,
        start: Optional[int] = None,
        end: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
    ) -> VerificationResult:
        """Audit [start, end] (defaults: genesis..tail). A broken chain is also alerted out of band."""
        result = self.verifier.verify(start, end, cancel=cancel)
        if not result.is_valid:
            self.alert_sink(result.failure.to_error())
        return result

    def snapshot(self) -> Snapshot:
        return self.store.snapshot()

    def get(self, sequence: int) -> Optional[LedgerEntry]:
        return self.store.snapshot().get(sequence)

    def get_by_id(self, entry_id: str) -> Optional[LedgerEntry]:
        return self.store.get_by_id(entry_id)

    def _index_usable(self, snapshot: Snapshot, stacklevel: int = 4) -> bool:
        """Spot-check the index before answering from it; warn when falling back to a scan."""
        problem = self.index.spot_check(snapshot, self.config.spot_check_samples)
        if problem is None:
            return True
        report_inconsistency(problem, stacklevel=stacklevel)
        return False

    @staticmethod
    def _scan_counts(snapshot: Snapshot, dimension: Dimension) -> Dict[str, int]:
        return dict(Counter(
            value for entry in snapshot for dim, value in entry_keys(entry) if dim == dimension
        ))

    def children(self, entry_id: str) -> List[LedgerEntry]:
        snapshot = self.store.snapshot()
        if not self._index_usable(snapshot):
            return [entry for entry in snapshot if entry.parent_id == entry_id]
        sequences = self.index.lookup(Dimension.PARENT_ID, entry_id, snapshot.tail_sequence)
        return [snapshot.get(sequence) for sequence in sequences]

    @property
    def tail(self) -> Optional[LedgerEntry]:
        return self.store.tail()

    def __len__(self) -> int:
        return len(self.store)

    def get_category_count(self, category: Union[Category, str]) -> int:
        category = coerce_enum(Category, category, "category")
        return self._count(Dimension.CATEGORY, category.value)

    def get_actor_type_count(self, actor_type: Union[ActorType, str]) -> int:
        actor_type = coerce_enum(ActorType, actor_type, "actor_type")
        return self._count(Dimension.ACTOR_TYPE, actor_type.value)

    def _count(self, dimension: Dimension, value: str) -> int:
        snapshot = self.store.snapshot()
        if self._index_usable(snapshot, stacklevel=5):
            return len(self.index.lookup(dimension, value, snapshot.tail_sequence))
        return self._scan_counts(snapshot, dimension).get(value, 0)

    def stats(self) -> Dict[str, Any]:
        snapshot = self.store.snapshot()
        dimensions = {
            "by_category": Dimension.CATEGORY,
            "by_actor_type": Dimension.ACTOR_TYPE,
            "by_severity": Dimension.SEVERITY,
        }
        stats: Dict[str, Any] = {"total": snapshot.count}
        if self._index_usable(snapshot):
            stats["flagged"] = len(self.index.flagged(snapshot.tail_sequence))
            stats.update((key, self.index.counts(dimension)) for key, dimension in dimensions.items())
        else:
            stats["flagged"] = sum(1 for entry in snapshot if entry.is_flagged)
            stats.update((key, self._scan_counts(snapshot, dimension)) for key, dimension in dimensions.items())
        return stats

    def merkle_root(self, start: Optional[int] = None, end: Optional[int] = None) -> Optional[str]:
        """Merkle root over the content hashes of [start, end] (checkpoint value)."""
        snapshot = self.store.snapshot()
        if not snapshot.count:
            return None
        lo = snapshot.first_sequence if start is None else start
        hi = snapshot.tail_sequence if end is None else end
        return merkle_root(
            (entry.crypto.content_hash for entry in snapshot.between(lo, hi)),
            self.config.hash_algorithm,
        )

    def rebuild_index(self) -> None:
        with self.store.write_lock:
            self.index.rebuild(self.store.snapshot())

    # ── lifecycle ──

    def close(self) -> None:
        """
        Release storage resources (e.g. database connection). Reads keep
        working; append and annotate raise StorageError from here on.
        """
        with self.store.write_lock:
            self.recorder.closed = True
            if self.storage:
                self.storage.close()
                logger.debug("Storage closed")
                self.storage = None
                self.recorder.storage = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
