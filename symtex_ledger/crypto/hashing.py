# symtex_ledger/crypto/hashing.py
"""
HashChain: content hashing and chain linking. Pure functions, no I/O.

The content hash covers the six W's only (who/what/when/where/why/how), never
the annotation, so flagging or reviewing an entry cannot break the chain.
"""

import hashlib
from typing import Any, Iterable, List, Mapping, Optional, Union

from symtex_ledger.core.canon import canonical_json
from symtex_ledger.core.types import HashAlgorithm, LedgerEntry, SixWPayload, coerce_enum

# previous_hash of the very first entry
GENESIS_HASH = "0" * 64

DEFAULT_ALGORITHM = HashAlgorithm.SHA256


def digest(data: bytes, algorithm: Union[HashAlgorithm, str] = DEFAULT_ALGORITHM) -> str:
    algorithm = coerce_enum(HashAlgorithm, algorithm, "algorithm")
    return hashlib.new(algorithm.value, data).hexdigest()


def compute_content_hash(
    payload: Union[SixWPayload, LedgerEntry, Mapping[str, Any]],
    algorithm: Union[HashAlgorithm, str] = DEFAULT_ALGORITHM,
) -> str:
    """Hex digest of the RFC 8785 canonical form of the six W's."""
    if isinstance(payload, (SixWPayload, LedgerEntry)):
        six_w = payload.six_w_dict()
    else:
        six_w = {key: payload[key] for key in ("who", "what", "when", "where", "why", "how")}
    return digest(canonical_json(six_w), algorithm)


def link_hash(previous: Optional[LedgerEntry]) -> str:
    """previous_hash for the entry that follows `previous` (genesis when there is none)."""
    if previous is None:
        return GENESIS_HASH
    return previous.crypto.content_hash


def merkle_root(hashes: Iterable[str], algorithm: Union[HashAlgorithm, str] = DEFAULT_ALGORITHM) -> Optional[str]:
    """
    Binary Merkle root over hex digests, pairing left to right and carrying an
    odd last node up unchanged. None for an empty range.
    """
    level: List[str] = list(hashes)
    if not level:
        return None
    while len(level) > 1:
        paired = []
        for i in range(0, len(level) - 1, 2):
            paired.append(digest(bytes.fromhex(level[i]) + bytes.fromhex(level[i + 1]), algorithm))
        if len(level) % 2:
            paired.append(level[-1])
        level = paired
    return level[0]
