# symtex_ledger/storage/__init__.py
"""
Storage adapters for the external append-only store.

The ledger keeps its working set in memory; an adapter only has to persist
entries losslessly, persist annotation changes, and hand everything back in
sequence order on start-up. Adapters must refuse edits to anything but the
annotation.
"""

from abc import ABC, abstractmethod
from typing import List
from pathlib import Path
from symtex_ledger.core.types import Annotation, LedgerEntry


class StorageBackend(ABC):
    """Abstract base for all persistent storage implementations."""

    @abstractmethod
    def append(self, entry: LedgerEntry) -> None:
        pass

    @abstractmethod
    def load_entries(self) -> List[LedgerEntry]:
        pass

    @abstractmethod
    def update_annotation(self, sequence: int, annotation: Annotation) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _uri_path(raw_path: str) -> Path:
    return Path(raw_path).expanduser().resolve()


def create_storage(uri: str) -> StorageBackend:
    if uri.startswith("sqlite://"):
        from .sqlite import SQLiteStorage
        # Extract everything after sqlite://
        return SQLiteStorage(_uri_path(uri[len("sqlite://"):]))

    elif uri.startswith("jsonl:"):
        from .jsonl import JSONLStorage
        raw_path = uri[len("jsonl:"):]
        if raw_path.startswith("//"):
            raw_path = raw_path[2:]
        return JSONLStorage(_uri_path(raw_path))
    else:
        raise ValueError(f"Unsupported storage URI: {uri}")


from .sqlite import SQLiteStorage
from .jsonl import JSONLStorage

__all__ = ["StorageBackend", "create_storage", "SQLiteStorage", "JSONLStorage"]
