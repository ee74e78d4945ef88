# symtex_ledger/storage/jsonl.py
import json
import logging
import os
from pathlib import Path
from typing import Dict, List

from symtex_ledger.core.canon import canonical_json_str
from symtex_ledger.core.errors import StorageError
from symtex_ledger.core.types import Annotation, LedgerEntry
from . import StorageBackend

logger = logging.getLogger(__name__)


class JSONLStorage(StorageBackend):
    """
    Append-only JSON lines. Each line is either
    {"kind": "entry", "entry": {...}} or
    {"kind": "annotation", "sequence": n, "annotation": {...}};
    the last annotation line for a sequence wins on load.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.exists() and self.path.is_dir():
            raise StorageError(f"Ledger path {self.path} is a directory, expected a file")
        self.path.touch(exist_ok=True)
        self._sequences: set = set()
        self._closed = False

    def _write(self, record: dict) -> None:
        if self._closed:
            raise RuntimeError("Storage is closed")
        try:
            with self.path.open("a", encoding="utf-8") as ledger_file:
                ledger_file.write(canonical_json_str(record) + "\n")
                ledger_file.flush()
                os.fsync(ledger_file.fileno())
        except OSError as e:
            raise StorageError(f"Failed to write {self.path}: {e}") from e

    def append(self, entry: LedgerEntry) -> None:
        if entry.sequence in self._sequences:
            raise StorageError(f"Sequence {entry.sequence} already stored")
        self._write({"kind": "entry", "entry": entry.to_dict()})
        self._sequences.add(entry.sequence)

    def update_annotation(self, sequence: int, annotation: Annotation) -> None:
        if sequence not in self._sequences:
            raise StorageError(f"No stored entry with sequence {sequence}")
        self._write({"kind": "annotation", "sequence": sequence, "annotation": annotation.to_dict()})

    def load_entries(self) -> List[LedgerEntry]:
        raw: Dict[int, dict] = {}
        order: List[int] = []
        with self.path.open("r", encoding="utf-8") as ledger_file:
            for line_no, line in enumerate(ledger_file, start=1):
                stripped = line.strip()
                if not stripped:
                    continue
                record = json.loads(stripped)
                kind = record.get("kind")
                if kind == "entry":
                    data = record["entry"]
                    raw[int(data["sequence"])] = data
                    order.append(int(data["sequence"]))
                elif kind == "annotation":
                    sequence = int(record["sequence"])
                    if sequence not in raw:
                        raise StorageError(f"{self.path}:{line_no}: annotation for unknown sequence {sequence}")
                    raw[sequence] = {**raw[sequence], "annotation": record["annotation"]}
                else:
                    raise StorageError(f"{self.path}:{line_no}: unknown record kind {kind!r}")

        loaded = [LedgerEntry.from_dict(raw[sequence]) for sequence in sorted(order)]
        self._sequences = set(order)
        logger.debug("Loaded %d entries from %s", len(loaded), self.path)
        return loaded

    def close(self) -> None:
        self._closed = True
