# symtex_ledger/chain/recorder.py
import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Union
from uuid import uuid4

from symtex_ledger.chain.store import EntryStore
from symtex_ledger.core.canon import canonical_json
from symtex_ledger.core.errors import LedgerError, StorageError, ValidationError
from symtex_ledger.core.types import Crypto, HashAlgorithm, LedgerEntry, SixWPayload, utc_now
from symtex_ledger.crypto.hashing import DEFAULT_ALGORITHM, compute_content_hash, link_hash
from symtex_ledger.crypto.signing import Signer, sign_content
from symtex_ledger.index.manager import IndexManager
from symtex_ledger.storage import StorageBackend

logger = logging.getLogger(__name__)

# Hook for resolving/validating references against other subsystems before the
# write lock is taken (e.g. confirming a space id exists). May raise ValidationError.
Resolver = Callable[[SixWPayload], SixWPayload]


def _check_serializable(payload: SixWPayload) -> None:
    """Reject values with no canonical JSON form, e.g. a set or NaN inside metadata."""
    sections = payload.six_w_dict()
    sections["related_entities"] = [related.to_dict() for related in payload.related_entities]
    sections["evidence"] = [evidence.to_dict() for evidence in payload.evidence]
    for name, value in sections.items():
        try:
            canonical_json(value)
        except (TypeError, ValueError, OverflowError) as e:
            raise ValidationError(f"not JSON-serializable ({e})", name) from None


class EventRecorder:
    """
    The only writer of new entries.

    Everything that can be slow or can fail on bad input (coercion, validation,
    reference resolution, hashing, signing) happens before the write lock. The
    locked unit is: read tail, allocate sequence, link, persist, index, publish.
    """

    def __init__(
        self,
        store: EntryStore,
        index: IndexManager,
        storage: Optional[StorageBackend] = None,
        algorithm: Union[HashAlgorithm, str] = DEFAULT_ALGORITHM,
        initial_sequence: int = 1,
        signer: Optional[Signer] = None,
        resolver: Optional[Resolver] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.index = index
        self.storage = storage
        self.algorithm = HashAlgorithm(algorithm)
        self.initial_sequence = initial_sequence
        self.signer = signer
        self.resolver = resolver
        self.clock = clock
        self.closed = False

    def prepare(self, payload: Union[SixWPayload, Mapping[str, Any]]) -> SixWPayload:
        """Coerce and validate a payload; fill `when` from the recorder clock if absent."""
        if isinstance(payload, Mapping):
            payload = SixWPayload.from_dict(payload)
        elif not isinstance(payload, SixWPayload):
            raise ValidationError(f"expected SixWPayload or mapping, got {type(payload).__name__}", "payload")
        if payload.when is None:
            payload = payload.with_when(self.clock())
        if self.resolver is not None:
            payload = self.resolver(payload)
        _check_serializable(payload)
        return payload

    def append(self, payload: Union[SixWPayload, Mapping[str, Any]]) -> LedgerEntry:
        """
        Validate, hash and append one event. Returns the published entry.
        Raises ValidationError (bad payload) or StorageError (persist failed or
        ledger closed); in both cases nothing was appended.
        """
        payload = self.prepare(payload)
        content_hash = compute_content_hash(payload, self.algorithm)
        signature, key_id = sign_content(self.signer, content_hash)
        entry_id = f"led-{uuid4().hex}"

        with self.store.write_lock:
            if self.closed:
                raise StorageError("ledger is closed")
            tail = self.store.tail()
            sequence = tail.sequence + 1 if tail is not None else self.initial_sequence
            entry = LedgerEntry(
                id=entry_id,
                sequence=sequence,
                who=payload.who,
                what=payload.what,
                when=payload.when,
                where=payload.where,
                why=payload.why,
                how=payload.how,
                crypto=Crypto(
                    content_hash=content_hash,
                    previous_hash=link_hash(tail),
                    algorithm=self.algorithm,
                    hashed_at=self.clock(),
                    signature=signature,
                    key_id=key_id,
                ),
                tags=payload.tags,
                related_entities=payload.related_entities,
                evidence=payload.evidence,
                parent_id=payload.parent_id,
            )

            if self.storage is not None:
                try:
                    self.storage.append(entry)
                except StorageError:
                    raise
                except Exception as e:
                    raise StorageError(f"Failed to persist entry {sequence}: {e}") from e

            # the durable store already has the entry; an index failure only
            # degrades queries to full scans, it must not block publication
            try:
                self.index.on_append(entry)
            except Exception as e:
                logger.exception("Index update failed for sequence %d", sequence)
                self.index.mark_stale(f"update failed at sequence {sequence}: {e}")

            self.store.publish(entry)

        logger.debug(
            "Appended %d %s/%s by %s:%s",
            entry.sequence, entry.what.category.value, entry.what.type, entry.who.type.value, entry.who.id,
        )
        return entry

    def replay(self, entry: LedgerEntry) -> None:
        """Publish an entry loaded from storage (start-up only). No hashing, no persist."""
        with self.store.write_lock:
            tail = self.store.tail()
            if tail is not None and entry.sequence != tail.sequence + 1:
                raise LedgerError(
                    f"Stored entries are not gapless: {entry.sequence} follows {tail.sequence}"
                )
            self.index.on_append(entry)
            self.store.publish(entry)
