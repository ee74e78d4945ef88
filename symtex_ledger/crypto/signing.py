# symtex_ledger/crypto/signing.py
"""
Signing is delegated to an external signer (KMS, HSM, agent key service).
The ledger only hands over the content hash and stores what comes back.
"""

from typing import Callable, Optional, Protocol, runtime_checkable

from symtex_ledger.core.types import LedgerEntry


@runtime_checkable
class Signer(Protocol):
    """Anything with a key id that can sign a content hash."""

    key_id: str

    def sign(self, content_hash: str) -> str:
        ...


# Returns True when an entry's signature checks out against the external key service.
SignatureCheck = Callable[[LedgerEntry], bool]


def sign_content(signer: Optional[Signer], content_hash: str) -> tuple[Optional[str], Optional[str]]:
    """(signature, key_id) for the crypto block, or (None, None) without a signer."""
    if signer is None:
        return None, None
    return signer.sign(content_hash), signer.key_id
