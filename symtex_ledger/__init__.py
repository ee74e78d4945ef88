"""
symtex-ledger — append-only, tamper-evident audit trail for Cognate activity.
Every event is recorded along six dimensions (Who/What/When/Where/Why/How)
and hash-chained to the one before it, so any later edit is detectable.
"""

__version__ = "0.1.0-dev"

from symtex_ledger.config import LedgerConfig
from symtex_ledger.core.cancel import CancelToken
from symtex_ledger.core.errors import (
    ChainIntegrityError,
    ConfigError,
    IndexInconsistencyWarning,
    LedgerError,
    OperationCancelled,
    QueryError,
    StorageError,
    ValidationError,
)
from symtex_ledger.core.types import (
    Action,
    ActionStatus,
    Actor,
    ActorType,
    Category,
    Evidence,
    LedgerEntry,
    Location,
    Method,
    Reason,
    Severity,
    SixWPayload,
    Trigger,
)
from symtex_ledger.crypto.hashing import GENESIS_HASH, compute_content_hash
from symtex_ledger.ledger import Ledger
from symtex_ledger.query.filters import LedgerFilter, LedgerSort, Page, Pagination
from symtex_ledger.verify.verifier import ChainVerifier, VerificationResult

__all__ = [
    "Action", "ActionStatus", "Actor", "ActorType", "CancelToken", "Category",
    "ChainIntegrityError", "ChainVerifier", "ConfigError", "Evidence", "GENESIS_HASH",
    "IndexInconsistencyWarning", "Ledger", "LedgerConfig", "LedgerEntry", "LedgerError",
    "LedgerFilter", "LedgerSort", "Location", "Method", "OperationCancelled", "Page",
    "Pagination", "QueryError", "Reason", "Severity", "SixWPayload", "StorageError",
    "Trigger", "ValidationError", "VerificationResult", "compute_content_hash",
]
