# symtex_ledger/core/encoding.py
import base64
import binascii
import json
from typing import Any, Dict

from symtex_ledger.core.canon import canonical_json


def b64url_encode(data: bytes) -> str:
    """Encode bytes to base64url (no padding, URL-safe)."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(s: str) -> bytes:
    """Decode base64url string back to bytes."""
    # Restore padding
    padding = len(s) % 4
    if padding:
        s += "=" * (4 - padding)
    return base64.urlsafe_b64decode(s.encode("ascii"))


def encode_token(obj: Dict[str, Any]) -> str:
    """Opaque, URL-safe token for a small JSON object (pagination cursors)."""
    return b64url_encode(canonical_json(obj))


def decode_token(token: str) -> Dict[str, Any]:
    """Inverse of encode_token. Raises ValueError on anything that isn't one."""
    try:
        decoded = json.loads(b64url_decode(token).decode("utf-8"))
    except (binascii.Error, UnicodeError, json.JSONDecodeError) as e:
        raise ValueError(f"malformed token: {e}") from None
    if not isinstance(decoded, dict):
        raise ValueError("malformed token: not an object")
    return decoded
