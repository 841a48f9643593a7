"""
SQLite storage backend for Signal Dispatch.

Implements the Storage interface on a local SQLite database file.

=============================================================================
SCHEMA
=============================================================================

entries
    id          INTEGER PRIMARY KEY AUTOINCREMENT
    url         TEXT NOT NULL UNIQUE
    event_date  TEXT NOT NULL            -- YYYY-MM-DD
    created_at  TEXT NOT NULL            -- ISO timestamp
    emailed     INTEGER NOT NULL DEFAULT 0

meta
    key         TEXT PRIMARY KEY         -- "last_email_sent"
    value       TEXT

The UNIQUE constraint on url is the duplicate check; no table scan is needed.
=============================================================================
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from src.config import DATABASE_PATH
from src.errors import DuplicateEntryError, StorageError, ValidationError
from src.models.entry import Entry, parse_event_date, parse_timestamp
from src.storage.base import LAST_SENT_KEY, Storage

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL UNIQUE,
    event_date TEXT NOT NULL,
    created_at TEXT NOT NULL,
    emailed INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_entries_emailed ON entries (emailed, event_date);
CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""


class SQLiteStorage(Storage):
    """
    SQLite-backed storage implementation.

    Opens a short-lived connection per operation so the store can be shared
    by the web server threads and the scheduler thread.
    """

    def __init__(self, path: str = None):
        """
        Initialize SQLiteStorage and create the schema if needed.

        Args:
            path: Database file. Defaults to config.DATABASE_PATH.
        """
        self.path = str(path if path is not None else DATABASE_PATH)
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    def name(self) -> str:
        return "sqlite"

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a transaction, translating sqlite errors."""
        try:
            conn = sqlite3.connect(self.path, timeout=10)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open database {self.path}: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as e:
            raise StorageError(f"Database error: {e}") from e
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA)

    @staticmethod
    def row_to_entry(row: sqlite3.Row) -> Entry:
        """
        Convert an entries row to an Entry.

        Raises:
            StorageError: If the row holds values that cannot be parsed.
        """
        try:
            return Entry(
                id=row["id"],
                url=row["url"],
                event_date=parse_event_date(row["event_date"]),
                created_at=parse_timestamp(row["created_at"]),
                sent=bool(row["emailed"]),
            )
        except (ValueError, ValidationError) as e:
            raise StorageError(f"Corrupt entries row {row['id']}: {e}") from e

    # =========================================================================
    # EntryStore
    # =========================================================================

    def append(self, entry: Entry) -> int:
        created_at = datetime.now()
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    "INSERT INTO entries (url, event_date, created_at, emailed) VALUES (?, ?, ?, 0)",
                    (entry.url, entry.event_date.isoformat(), created_at.isoformat()),
                )
                entry_id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e):
                raise DuplicateEntryError(entry.url) from e
            raise StorageError(f"Database error: {e}") from e

        entry.id = entry_id
        entry.created_at = created_at
        entry.sent = False
        logger.debug("Stored entry %s", entry)
        return entry_id

    def exists(self, url: str) -> bool:
        with self._connect() as conn:
            row = conn.execute("SELECT 1 FROM entries WHERE url = ?", (url.strip(),)).fetchone()
        return row is not None

    def list_pending(self) -> List[Entry]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM entries WHERE emailed = 0 ORDER BY event_date ASC, id ASC"
            ).fetchall()
        return [self.row_to_entry(row) for row in rows]

    def mark_sent(self, entry_ids: Iterable[int]) -> int:
        ids = list(entry_ids)
        if not ids:
            return 0

        placeholders = ",".join("?" for _ in ids)
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE entries SET emailed = 1 WHERE emailed = 0 AND id IN ({placeholders})",
                ids,
            )
            return cursor.rowcount

    def list_entries(self) -> List[Entry]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM entries ORDER BY created_at DESC, id DESC").fetchall()
        return [self.row_to_entry(row) for row in rows]

    # =========================================================================
    # SendLedger
    # =========================================================================

    def last_sent_at(self) -> Optional[datetime]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM meta WHERE key = ?", (LAST_SENT_KEY,)).fetchone()

        if row is None or not row["value"]:
            return None
        try:
            return parse_timestamp(row["value"])
        except ValueError as e:
            raise StorageError(f"Corrupt {LAST_SENT_KEY} value: {row['value']!r}") from e

    def record_sent(self, when: datetime = None) -> None:
        when = when or datetime.now()
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
                (LAST_SENT_KEY, when.isoformat()),
            )
