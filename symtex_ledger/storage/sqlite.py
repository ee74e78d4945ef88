# symtex_ledger/storage/sqlite.py
import json
import logging
import os
import sqlite3
from pathlib import Path
from typing import List, Optional

from symtex_ledger.core.canon import canonical_json_str
from symtex_ledger.core.errors import StorageError
from symtex_ledger.core.types import Annotation, LedgerEntry, format_timestamp
from . import StorageBackend

logger = logging.getLogger(__name__)

_IMMUTABLE_COLUMNS = (
    "sequence", "entry_id", "content_hash", "previous_hash", "occurred_at",
    "actor_type", "category", "severity", "entry_json",
)


class SQLiteStorage(StorageBackend):
    """SQLite persistent storage for ledger entries."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            env_path = os.environ.get("LEDGER_DB_PATH")
            db_path = env_path if env_path else Path.cwd() / "ledger.db"

        self.db_path = Path(db_path)

        # Ensure the entire parent directory tree exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.db_path = self.db_path.resolve()

        self._conn: Optional[sqlite3.Connection] = None
        self._connect()

    def _connect(self):
        conn_str = str(self.db_path)
        # writes are serialized by the ledger's write lock, so sharing across threads is safe
        self._conn = sqlite3.connect(conn_str, isolation_level=None, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_schema()

    def _create_schema(self):
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS entries (
                sequence         INTEGER PRIMARY KEY,
                entry_id         TEXT    NOT NULL UNIQUE,
                content_hash     TEXT    NOT NULL,
                previous_hash    TEXT    NOT NULL,
                occurred_at      TEXT    NOT NULL,
                actor_type       TEXT    NOT NULL,
                category         TEXT    NOT NULL,
                severity         TEXT    NOT NULL,
                entry_json       TEXT    NOT NULL,
                annotation_json  TEXT    NOT NULL
            )
        """)
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_occurred_at ON entries(occurred_at)")
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_category    ON entries(category)")
        # only annotation_json may change after insert, and nothing may be deleted
        self.conn.execute(f"""
            CREATE TRIGGER IF NOT EXISTS entries_immutable
            BEFORE UPDATE OF {", ".join(_IMMUTABLE_COLUMNS)} ON entries
            BEGIN
                SELECT RAISE(ABORT, 'ledger entries are immutable');
            END
        """)
        self.conn.execute("""
            CREATE TRIGGER IF NOT EXISTS entries_append_only
            BEFORE DELETE ON entries
            BEGIN
                SELECT RAISE(ABORT, 'ledger entries cannot be deleted');
            END
        """)

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Storage connection is closed")
        return self._conn

    def append(self, entry: LedgerEntry) -> None:
        try:
            self.conn.execute("""
                INSERT INTO entries
                (sequence, entry_id, content_hash, previous_hash, occurred_at,
                 actor_type, category, severity, entry_json, annotation_json)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                entry.sequence, entry.id, entry.crypto.content_hash, entry.crypto.previous_hash,
                format_timestamp(entry.when), entry.who.type.value, entry.what.category.value,
                entry.what.severity.value, canonical_json_str(entry.immutable_dict()),
                canonical_json_str(entry.annotation.to_dict()),
            ))
        except sqlite3.Error as e:
            raise StorageError(f"Failed to persist entry {entry.sequence}: {e}") from e

    def update_annotation(self, sequence: int, annotation: Annotation) -> None:
        try:
            cursor = self.conn.execute(
                "UPDATE entries SET annotation_json = ? WHERE sequence = ?",
                (canonical_json_str(annotation.to_dict()), sequence),
            )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to annotate entry {sequence}: {e}") from e
        if cursor.rowcount == 0:
            raise StorageError(f"No stored entry with sequence {sequence}")

    def load_entries(self) -> List[LedgerEntry]:
        cursor = self.conn.execute(
            "SELECT entry_json, annotation_json FROM entries ORDER BY sequence ASC"
        )
        loaded = []
        for entry_json, annotation_json in cursor:
            data = json.loads(entry_json)
            data["annotation"] = json.loads(annotation_json)
            loaded.append(LedgerEntry.from_dict(data))
        logger.debug("Loaded %d entries from %s", len(loaded), self.db_path)
        return loaded

    def get_entry_count(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM entries").fetchone()[0]

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
