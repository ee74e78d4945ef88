# symtex_ledger/core/cancel.py
import threading
import time
from typing import Optional

from symtex_ledger.core.errors import OperationCancelled


class CancelToken:
    """
    Cooperative cancellation for long reads (full-range verify, unindexed scans).
    Appends never take one: once started they run to completion.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled("operation cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise OperationCancelled("operation timed out")


def checkpoint(token: Optional[CancelToken], step: int, every: int = 256) -> None:
    """Check `token` once every `every` iterations."""
    if token is not None and step % every == 0:
        token.raise_if_cancelled()
