"""
Base storage abstraction for Signal Dispatch.

Defines the abstract interfaces that all storage backends must implement:
an EntryStore for submissions and a SendLedger for the last dispatch time.
This allows swapping between SQLite, Airtable and in-memory storage.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional

from src.models.entry import Entry


LAST_SENT_KEY = "last_email_sent"


class EntryStore(ABC):
    """
    Durable record of submitted entries.

    Implementations must guarantee url uniqueness across all entries,
    sent or not, and raise StorageError for any backend failure.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Return the name of this storage backend.

        Used for logging and debugging.
        """
        pass

    @abstractmethod
    def append(self, entry: Entry) -> int:
        """
        Insert a new entry and assign its id.

        Args:
            entry: The entry to store. Its id and created_at are set in place.

        Returns:
            The new entry id.

        Raises:
            DuplicateEntryError: If the url is already stored.
            StorageError: If the backend write fails.
        """
        pass

    @abstractmethod
    def exists(self, url: str) -> bool:
        """Return True if an entry with this url is stored (sent or not)."""
        pass

    @abstractmethod
    def list_pending(self) -> List[Entry]:
        """Return every entry with sent=False, sorted by event date ascending."""
        pass

    @abstractmethod
    def mark_sent(self, entry_ids: Iterable[int]) -> int:
        """
        Flag entries as sent.

        Marking an entry that is already sent is a no-op.

        Args:
            entry_ids: Ids of the entries covered by a dispatched digest.

        Returns:
            Number of entries that changed from unsent to sent.
        """
        pass

    @abstractmethod
    def list_entries(self) -> List[Entry]:
        """Return all entries, newest first."""
        pass


class SendLedger(ABC):
    """Persisted timestamp of the last successful dispatch."""

    @abstractmethod
    def last_sent_at(self) -> Optional[datetime]:
        """Return when the last digest went out, or None if never."""
        pass

    @abstractmethod
    def record_sent(self, when: datetime = None) -> None:
        """
        Record a successful dispatch.

        Args:
            when: Dispatch time. Defaults to now.
        """
        pass


class Storage(EntryStore, SendLedger):
    """
    A backend holding both the entries and the send ledger.

    Every concrete backend implements both interfaces so that a single
    configuration switch selects where all state lives.
    """

    def __str__(self) -> str:
        return f"Storage({self.name})"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
