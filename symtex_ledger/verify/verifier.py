# symtex_ledger/verify/verifier.py
from dataclasses import dataclass
from typing import Iterable, Optional

from symtex_ledger.chain.store import EntryStore
from symtex_ledger.core.cancel import CancelToken, checkpoint
from symtex_ledger.core.errors import ChainIntegrityError, QueryError
from symtex_ledger.core.types import LedgerEntry
from symtex_ledger.crypto.hashing import GENESIS_HASH, compute_content_hash
from symtex_ledger.crypto.signing import SignatureCheck


@dataclass(frozen=True)
class VerificationFailure:
    sequence: int
    message: str
    category: str = "hash_chain"  # "hash_chain", "content_hash", "sequence", "signature"

    def to_error(self) -> ChainIntegrityError:
        return ChainIntegrityError(self.sequence, self.message, self.category)


@dataclass(frozen=True)
class VerificationResult:
    """Ok when `failure` is None, otherwise BrokenAt(failure.sequence)."""

    checked: int = 0
    first_sequence: Optional[int] = None
    last_sequence: Optional[int] = None
    failure: Optional[VerificationFailure] = None

    @property
    def is_valid(self) -> bool:
        return self.failure is None

    @property
    def broken_at(self) -> Optional[int]:
        return self.failure.sequence if self.failure else None

    @property
    def message(self) -> str:
        if self.failure is None:
            if not self.checked:
                return "Empty range is valid"
            return f"Valid chain ({self.checked} entries, {self.first_sequence}..{self.last_sequence})"
        return self.failure.message

    def __bool__(self):
        return self.is_valid

    def __str__(self):
        if self.is_valid:
            return f"{self.message} ✓"
        f = self.failure
        return f"Verification FAILED: broken at sequence {f.sequence} [{f.category}] {f.message}"


class ChainVerifier:
    """
    Read-only audit of the hash chain. Stops at the first broken link and
    never repairs anything; deciding what to do is the caller's job.
    """

    def __init__(
        self,
        store: Optional[EntryStore] = None,
        signature_check: Optional[SignatureCheck] = None,
        check_interval: int = 256,
    ):
        self.store = store
        self.signature_check = signature_check
        self.check_interval = check_interval

    def verify(
        self,
        start: Optional[int] = None,
        end: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
    ) -> VerificationResult:
        """Verify [start, end] (inclusive, defaults genesis..tail) as of the call."""
        if self.store is None:
            raise RuntimeError("verify() needs an entry store; use verify_entries() for raw chains")
        if start is not None and end is not None and start > end:
            raise QueryError(f"invalid verification range [{start}, {end}]")

        snapshot = self.store.snapshot()
        if not snapshot.count:
            return VerificationResult()

        lo = snapshot.first_sequence if start is None else max(start, snapshot.first_sequence)
        hi = snapshot.tail_sequence if end is None else min(end, snapshot.tail_sequence)
        if lo > hi:
            return VerificationResult()

        previous = snapshot.get(lo - 1)
        return self.verify_entries(
            snapshot.between(lo, hi),
            previous=previous,
            from_genesis=lo == snapshot.first_sequence,
            cancel=cancel,
        )

    def verify_entries(
        self,
        entries: Iterable[LedgerEntry],
        previous: Optional[LedgerEntry] = None,
        from_genesis: bool = True,
        cancel: Optional[CancelToken] = None,
    ) -> VerificationResult:
        """
        Core verification over entries in ascending order.

        `previous` is the entry just before the first one (None when the range
        starts at the beginning of the ledger); with `from_genesis` the first
        entry must link to GENESIS_HASH.
        """
        checked = 0
        first_sequence = None
        last_sequence = None

        for step, entry in enumerate(entries):
            checkpoint(cancel, step, self.check_interval)
            failure = self._check(previous, entry, from_genesis and previous is None and step == 0)
            if failure is not None:
                return VerificationResult(checked, first_sequence, last_sequence, failure)

            checked += 1
            if first_sequence is None:
                first_sequence = entry.sequence
            last_sequence = entry.sequence
            previous = entry

        return VerificationResult(checked, first_sequence, last_sequence)

    def _check(
        self, previous: Optional[LedgerEntry], entry: LedgerEntry, is_first: bool
    ) -> Optional[VerificationFailure]:
        sequence = entry.sequence

        # 1. Sequence continuity
        if previous is not None and sequence != previous.sequence + 1:
            return VerificationFailure(
                sequence, f"Sequence gap: expected {previous.sequence + 1}, got {sequence}", "sequence"
            )

        # 2. Content hash over the six W's
        expected_content = compute_content_hash(entry, entry.crypto.algorithm)
        if entry.crypto.content_hash != expected_content:
            return VerificationFailure(sequence, "content_hash does not match the recorded six W's", "content_hash")

        # 3. Link to the previous entry (or genesis)
        if previous is not None:
            expected_prev = previous.crypto.content_hash
        elif is_first:
            expected_prev = GENESIS_HASH
        else:
            expected_prev = None
        if expected_prev is not None and entry.crypto.previous_hash != expected_prev:
            return VerificationFailure(sequence, "previous_hash does not match previous entry hash", "hash_chain")

        # 4. Signature (pass-through to the external key service)
        if self.signature_check is not None and entry.crypto.signature is not None:
            if not self.signature_check(entry):
                return VerificationFailure(sequence, "Invalid signature", "signature")

        return None
