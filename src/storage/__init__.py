"""
Storage module.

Handles persistence of entries and the send ledger via SQLite, Airtable,
or in-memory backends.
"""

from src.storage.base import EntryStore, SendLedger, Storage, LAST_SENT_KEY
from src.storage.airtable import AirtableStorage
from src.storage.memory import MemoryStorage
from src.storage.sqlite import SQLiteStorage


def get_storage(backend: str = None) -> Storage:
    """
    Build the configured storage backend.

    Args:
        backend: "sqlite", "airtable" or "memory". Defaults to config.STORAGE_BACKEND.

    Raises:
        ValueError: For an unknown backend name.
    """
    from src.config import STORAGE_BACKEND

    backend = (backend or STORAGE_BACKEND).lower()
    if backend == "sqlite":
        return SQLiteStorage()
    if backend == "airtable":
        return AirtableStorage()
    if backend == "memory":
        return MemoryStorage()
    raise ValueError(f"Unknown storage backend: {backend!r}")


__all__ = [
    "EntryStore",
    "SendLedger",
    "Storage",
    "LAST_SENT_KEY",
    "AirtableStorage",
    "MemoryStorage",
    "SQLiteStorage",
    "get_storage",
]
