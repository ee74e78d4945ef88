# symtex_ledger/core/canon.py
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

try:
    import jcs
except ImportError:
    raise ImportError("Please install jcs: pip install jcs")

from symtex_ledger.core.types import format_timestamp


def _plain(obj: Any) -> Any:
    """Reduce enums, datetimes and read-only mappings to JSON primitives."""
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return format_timestamp(obj)
    if isinstance(obj, Mapping):
        return {str(k): _plain(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_plain(v) for v in obj]
    return obj


def canonical_json(obj: Any) -> bytes:
    """
    Produce deterministic UTF-8 bytes according to RFC 8785 (JSON Canonicalization Scheme).
    Returns bytes ready for hashing or signing.
    """
    return jcs.canonicalize(_plain(obj))


def canonical_json_str(obj: Any) -> str:
    """Same as above, but returns string (storage rows, export lines)."""
    return canonical_json(obj).decode("utf-8")
