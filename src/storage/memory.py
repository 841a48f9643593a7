"""
In-memory storage backend.

Holds entries and the send ledger in process memory. Used for tests and
local development; everything is lost when the process ends.
"""

import threading
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from src.errors import DuplicateEntryError
from src.models.entry import Entry
from src.storage.base import Storage


class MemoryStorage(Storage):
    """
    In-memory storage for testing and development.

    Entries are indexed by id and by url, so duplicate detection does not
    scan the whole backlog.
    """

    def __init__(self, entries: Iterable[Entry] = (), last_sent_at: Optional[datetime] = None):
        self._records: Dict[int, Entry] = {}
        self._by_url: Dict[str, int] = {}
        self._last_sent_at = last_sent_at
        self._next_id = 1
        self._lock = threading.Lock()

        for entry in entries:
            self._load(entry)

    @property
    def name(self) -> str:
        return "memory"

    def _load(self, entry: Entry) -> None:
        """Seed a pre-built entry, keeping its id when it has one."""
        if entry.id is None:
            entry.id = self._next_id
        self._next_id = max(self._next_id, entry.id + 1)
        self._records[entry.id] = entry
        self._by_url[entry.url] = entry.id

    def append(self, entry: Entry) -> int:
        with self._lock:
            if entry.url in self._by_url:
                raise DuplicateEntryError(entry.url)

            entry.id = self._next_id
            entry.created_at = datetime.now()
            entry.sent = False
            self._next_id += 1

            self._records[entry.id] = entry
            self._by_url[entry.url] = entry.id
            return entry.id

    def exists(self, url: str) -> bool:
        return url.strip() in self._by_url

    def list_pending(self) -> List[Entry]:
        pending = [e for e in self._records.values() if not e.sent]
        return sorted(pending, key=lambda e: (e.event_date, e.id))

    def mark_sent(self, entry_ids: Iterable[int]) -> int:
        changed = 0
        with self._lock:
            for entry_id in entry_ids:
                entry = self._records.get(entry_id)
                if entry is not None and not entry.sent:
                    entry.sent = True
                    changed += 1
        return changed

    def list_entries(self) -> List[Entry]:
        return sorted(self._records.values(), key=lambda e: (e.created_at, e.id), reverse=True)

    def last_sent_at(self) -> Optional[datetime]:
        return self._last_sent_at

    def record_sent(self, when: datetime = None) -> None:
        self._last_sent_at = when or datetime.now()

    def clear(self) -> None:
        """Clear all records and the ledger (for testing)."""
        with self._lock:
            self._records.clear()
            self._by_url.clear()
            self._last_sent_at = None
            self._next_id = 1

    def count(self) -> int:
        """Return number of stored entries (for testing)."""
        return len(self._records)
