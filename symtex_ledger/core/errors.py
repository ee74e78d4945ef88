# symtex_ledger/core/errors.py
"""
Error taxonomy for the ledger.

Inside the package everything is raised as an exception. The collaborator
boundary (integration.auditor, the CLI) turns them into values / messages.
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for every ledger failure."""


class ValidationError(LedgerError, ValueError):
    """Malformed or missing field in an append payload. Nothing was appended."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        if field:
            message = f"{field}: {message}"
        super().__init__(message)


class QueryError(LedgerError, ValueError):
    """Invalid filter, sort, pagination or range. Rejected before any read."""


class ChainIntegrityError(LedgerError):
    """The hash chain is broken at `sequence`. Never repaired automatically."""

    def __init__(self, sequence: int, message: str, category: str = "hash_chain"):
        self.sequence = sequence
        self.category = category
        super().__init__(f"Chain broken at sequence {sequence} ({category}): {message}")


class StorageError(LedgerError):
    """The persistence adapter refused or failed a write."""


class OperationCancelled(LedgerError):
    """A long-running read was cancelled or timed out."""


class ConfigError(LedgerError, ValueError):
    pass


class IndexInconsistencyWarning(UserWarning):
    """An index disagreed with the entry set; the query fell back to a full scan."""
