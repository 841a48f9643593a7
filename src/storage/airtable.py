"""
Airtable storage backend for Signal Dispatch.

Implements the Storage interface using an Airtable base as a
spreadsheet-backed store. Uses the Airtable REST API for all operations.

Airtable API Documentation: https://airtable.com/developers/web/api/introduction

=============================================================================
AIRTABLE SCHEMA
=============================================================================

Entries table (AIRTABLE_ENTRIES_TABLE, default "Entries"):

| Column Name    | Field Type      | Description                          |
|----------------|-----------------|--------------------------------------|
| entry_id       | Autonumber      | Entry id exposed to submitters       |
| url            | URL             | Submitted link (unique)              |
| event_date     | Date            | Event date (ISO, no time)            |
| created_at     | Date (with time)| When the entry was submitted         |
| sent           | Checkbox        | Included in a dispatched digest      |

Meta table (AIRTABLE_META_TABLE, default "Meta"):

| Column Name    | Field Type      | Description                          |
|----------------|-----------------|--------------------------------------|
| key            | Single line text| Setting name ("last_email_sent")     |
| value          | Single line text| ISO timestamp                        |

Note: uniqueness of "url" is enforced here, by looking the url up with
filterByFormula before every insert.

=============================================================================
"""

import logging
import threading
import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import requests

from src.config import (
    AIRTABLE_API_KEY,
    AIRTABLE_BASE_ID,
    AIRTABLE_ENTRIES_TABLE,
    AIRTABLE_META_TABLE,
    REQUEST_TIMEOUT,
)
from src.errors import DuplicateEntryError, StorageError
from src.models.entry import Entry, parse_event_date, parse_timestamp
from src.storage.base import LAST_SENT_KEY, Storage

logger = logging.getLogger(__name__)


def _formula_string(value: str) -> str:
    """Quote a value for use inside an Airtable formula."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def _chunks(items: List, size: int) -> Iterable[List]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class AirtableStorage(Storage):
    """
    Airtable-backed storage implementation.

    Configuration is pulled from environment variables via src.config:
    - AIRTABLE_API_KEY: API key for authentication
    - AIRTABLE_BASE_ID: Base ID (starts with "app")
    - AIRTABLE_ENTRIES_TABLE / AIRTABLE_META_TABLE: table names
    """

    # Airtable API base URL
    API_BASE = "https://api.airtable.com/v0"

    # Rate limiting: Airtable allows 5 requests per second
    REQUEST_DELAY = 0.25  # 250ms between requests to stay under limit

    # Airtable accepts at most 10 records per batch update
    BATCH_SIZE = 10

    def __init__(
        self,
        api_key: str = None,
        base_id: str = None,
        entries_table: str = None,
        meta_table: str = None,
    ):
        """
        Initialize AirtableStorage.

        Args:
            api_key: Airtable API key. Defaults to config.AIRTABLE_API_KEY.
            base_id: Airtable base ID. Defaults to config.AIRTABLE_BASE_ID.
            entries_table: Entries table name. Defaults to config.AIRTABLE_ENTRIES_TABLE.
            meta_table: Meta table name. Defaults to config.AIRTABLE_META_TABLE.
        """
        # Use provided values, or fall back to config if None (not empty string)
        self.api_key = api_key if api_key is not None else AIRTABLE_API_KEY
        self.base_id = base_id if base_id is not None else AIRTABLE_BASE_ID
        self.entries_table = entries_table if entries_table is not None else AIRTABLE_ENTRIES_TABLE
        self.meta_table = meta_table if meta_table is not None else AIRTABLE_META_TABLE

        self._last_request_time = 0.0
        # Serializes the url lookup and the create within this process
        self._append_lock = threading.Lock()

    @property
    def name(self) -> str:
        return "airtable"

    def _table_url(self, table: str) -> str:
        """Construct the base URL for a table."""
        return f"{self.API_BASE}/{self.base_id}/{table}"

    @property
    def _headers(self) -> Dict[str, str]:
        """Construct headers for API requests."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _rate_limit(self) -> None:
        """Enforce rate limiting between requests."""
        now = time.time()
        elapsed = now - self._last_request_time
        if elapsed < self.REQUEST_DELAY:
            time.sleep(self.REQUEST_DELAY - elapsed)
        self._last_request_time = time.time()

    def _validate_config(self) -> None:
        """Validate that required configuration is present."""
        if not self.api_key:
            raise StorageError("AIRTABLE_API_KEY is not configured")
        if not self.base_id:
            raise StorageError("AIRTABLE_BASE_ID is not configured")
        if not self.entries_table or not self.meta_table:
            raise StorageError("Airtable table names are not configured")

    def _request(
        self,
        method: str,
        table: str,
        record_id: str = None,
        params: Dict[str, Any] = None,
        payload: Dict[str, Any] = None,
    ) -> Dict[str, Any]:
        """
        Perform one API call and return the decoded JSON body.

        Raises:
            StorageError: On network errors, HTTP errors or invalid JSON.
        """
        self._validate_config()
        self._rate_limit()

        url = self._table_url(table)
        if record_id:
            url = f"{url}/{record_id}"

        try:
            response = requests.request(
                method,
                url,
                headers=self._headers,
                params=params,
                json=payload,
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise StorageError(f"Airtable {method} {table} failed: {e}") from e
        except ValueError as e:
            raise StorageError(f"Airtable returned invalid JSON: {e}") from e

    # =========================================================================
    # Serialization: Entry <-> Airtable
    # =========================================================================

    @staticmethod
    def entry_to_airtable_fields(entry: Entry) -> Dict[str, Any]:
        """
        Convert an Entry to Airtable field format.

        The entry_id autonumber is assigned by Airtable and never written.
        """
        return {
            "url": entry.url,
            "event_date": entry.event_date.isoformat(),
            "created_at": entry.created_at.isoformat(),
            "sent": entry.sent,
        }

    @staticmethod
    def airtable_record_to_entry(record: Dict[str, Any]) -> Optional[Entry]:
        """
        Convert an Airtable record to an Entry.

        Args:
            record: Airtable record with "id" and "fields".

        Returns:
            Entry if conversion successful, None for incomplete rows.
        """
        fields = record.get("fields", {})

        entry_id = fields.get("entry_id")
        url = fields.get("url")
        event_date = fields.get("event_date")
        if entry_id is None or not url or not event_date:
            return None

        try:
            created_at = datetime.now()
            if fields.get("created_at"):
                created_at = parse_timestamp(fields["created_at"])

            return Entry(
                id=int(entry_id),
                url=url,
                event_date=parse_event_date(event_date),
                created_at=created_at,
                sent=bool(fields.get("sent", False)),
            )
        except Exception as e:
            logger.warning("Skipping malformed Airtable record %s: %s", record.get("id"), e)
            return None

    # =========================================================================
    # API Operations
    # =========================================================================

    def _list_records(
        self,
        table: str,
        filter_formula: str = None,
        sort_field: str = None,
        sort_direction: str = "asc",
        max_records: int = None,
    ) -> List[Dict]:
        """
        List records from a table, following pagination offsets.

        Args:
            table: Table name.
            filter_formula: Airtable formula for filtering.
            sort_field: Field name to sort by.
            sort_direction: "asc" or "desc".
            max_records: Maximum number of records to return (None = all).

        Returns:
            List of Airtable record dicts.
        """
        params: Dict[str, Any] = {}
        if filter_formula:
            params["filterByFormula"] = filter_formula
        if sort_field:
            params["sort[0][field]"] = sort_field
            params["sort[0][direction]"] = sort_direction
        if max_records:
            params["maxRecords"] = max_records

        records: List[Dict] = []
        while True:
            data = self._request("GET", table, params=params)
            records.extend(data.get("records", []))

            offset = data.get("offset")
            if not offset or (max_records and len(records) >= max_records):
                break
            params["offset"] = offset

        return records

    def _records_to_entries(self, records: List[Dict]) -> List[Entry]:
        entries = []
        for record in records:
            entry = self.airtable_record_to_entry(record)
            if entry:
                entries.append(entry)
        return entries

    def _find_meta(self, key: str) -> Optional[Dict]:
        records = self._list_records(
            self.meta_table,
            filter_formula=f"{{key}}={_formula_string(key)}",
            max_records=1,
        )
        return records[0] if records else None

    # =========================================================================
    # EntryStore
    # =========================================================================

    def append(self, entry: Entry) -> int:
        """
        Create a new row for the entry.

        The url is looked up first; Airtable has no unique constraint.
        """
        with self._append_lock:
            if self.exists(entry.url):
                raise DuplicateEntryError(entry.url)

            entry.created_at = datetime.now()
            entry.sent = False

            record = self._request(
                "POST",
                self.entries_table,
                payload={"fields": self.entry_to_airtable_fields(entry), "typecast": True},
            )

        entry_id = record.get("fields", {}).get("entry_id")
        if entry_id is None:
            # Computed fields are not always echoed back on create
            record = self._request("GET", self.entries_table, record_id=record.get("id"))
            entry_id = record.get("fields", {}).get("entry_id")
        if entry_id is None:
            raise StorageError("Airtable did not assign an entry_id; check the Entries schema")

        entry.id = int(entry_id)
        logger.debug("Stored entry %s as record %s", entry, record.get("id"))
        return entry.id

    def exists(self, url: str) -> bool:
        records = self._list_records(
            self.entries_table,
            filter_formula=f"{{url}}={_formula_string(url.strip())}",
            max_records=1,
        )
        return bool(records)

    def list_pending(self) -> List[Entry]:
        records = self._list_records(
            self.entries_table,
            filter_formula="NOT({sent})",
            sort_field="event_date",
            sort_direction="asc",
        )
        entries = self._records_to_entries(records)
        return sorted(entries, key=lambda e: (e.event_date, e.id))

    def mark_sent(self, entry_ids: Iterable[int]) -> int:
        """
        Tick the "sent" checkbox on the given entries.

        Rows are located in groups of BATCH_SIZE ids and patched in one
        batch request per group.
        """
        ids = sorted(set(int(i) for i in entry_ids))
        changed = 0

        for group in _chunks(ids, self.BATCH_SIZE):
            id_terms = ",".join(f"{{entry_id}}={entry_id}" for entry_id in group)
            records = self._list_records(
                self.entries_table,
                filter_formula=f"AND(NOT({{sent}}), OR({id_terms}))",
            )
            if not records:
                continue

            self._request(
                "PATCH",
                self.entries_table,
                payload={
                    "records": [
                        {"id": record["id"], "fields": {"sent": True}}
                        for record in records
                    ]
                },
            )
            changed += len(records)

        return changed

    def list_entries(self) -> List[Entry]:
        records = self._list_records(
            self.entries_table,
            sort_field="created_at",
            sort_direction="desc",
        )
        return self._records_to_entries(records)

    # =========================================================================
    # SendLedger
    # =========================================================================

    def last_sent_at(self) -> Optional[datetime]:
        record = self._find_meta(LAST_SENT_KEY)
        if not record:
            return None

        value = record.get("fields", {}).get("value")
        if not value:
            return None
        try:
            return parse_timestamp(value)
        except ValueError as e:
            raise StorageError(f"Corrupt {LAST_SENT_KEY} value: {value!r}") from e

    def record_sent(self, when: datetime = None) -> None:
        when = when or datetime.now()
        fields = {"key": LAST_SENT_KEY, "value": when.isoformat()}

        record = self._find_meta(LAST_SENT_KEY)
        if record:
            self._request("PATCH", self.meta_table, record_id=record["id"], payload={"fields": fields})
        else:
            self._request("POST", self.meta_table, payload={"fields": fields})
