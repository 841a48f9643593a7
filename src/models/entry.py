"""
Core data models for Signal Dispatch.

Defines the Entry dataclass (one submitted URL with its event date) and
EnrichedEntry, the same entry decorated with a link preview for rendering.
"""

import re
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from typing import Optional

from src.errors import ValidationError


DATE_FORMAT = "%Y-%m-%d"
_FRACTION = re.compile(r"\.(\d+)(?=[+-]\d\d:?\d\d$|$)")


def parse_event_date(value) -> date:
    """
    Parse a YYYY-MM-DD string (or pass through a date) into a date.

    Raises:
        ValidationError: If the value is not a valid calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValidationError("Invalid date format, expected YYYY-MM-DD")


def parse_timestamp(value: str) -> datetime:
    """
    Parse a stored ISO timestamp into naive local time.

    Accepts a trailing "Z" and explicit offsets (as written by JavaScript's
    toISOString()); aware values are converted to the local zone.

    Raises:
        ValueError: If the value is not an ISO timestamp.
    """
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # Python < 3.11 only accepts 3 or 6 fractional digits
    match = _FRACTION.search(text)
    if match:
        text = text[:match.start()] + "." + match.group(1)[:6].ljust(6, "0") + text[match.end():]
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


@dataclass
class Entry:
    """
    A single submitted item awaiting (or having received) digest coverage.

    Attributes:
        url: The submitted link. Unique across the whole store.
        event_date: Calendar date supplied by the submitter.
        id: Store-assigned identifier; None until the entry is appended.
        created_at: When the entry was inserted.
        sent: True once a digest containing this entry was dispatched.
    """

    url: str
    event_date: date
    id: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.now)
    sent: bool = False

    def __post_init__(self) -> None:
        self.url = (self.url or "").strip()
        if isinstance(self.event_date, (str, datetime)):
            self.event_date = parse_event_date(self.event_date)
        self.validate()

    def validate(self) -> None:
        """
        Validate that required fields are present and valid.

        Raises:
            ValidationError: If validation fails.
        """
        if not self.url or self.event_date is None:
            raise ValidationError("Missing url or date")

    @classmethod
    def submit(cls, url: str, event_date, today: date = None) -> "Entry":
        """
        Build a new entry from raw submission values.

        Enforces the submission rules: both fields present, a parseable
        date, and a date no earlier than today.

        Args:
            url: Raw url from the form (whitespace is trimmed).
            event_date: Raw date string (YYYY-MM-DD) or date.
            today: Submission date. Defaults to date.today().

        Raises:
            ValidationError: On any rule violation.
        """
        url = (url or "").strip() if isinstance(url, str) else ""
        if isinstance(event_date, str):
            event_date = event_date.strip()
        if not url or not event_date:
            raise ValidationError("Missing url or date")

        parsed = parse_event_date(event_date)
        if today is None:
            today = date.today()
        if parsed < today:
            raise ValidationError("Date cannot be in the past")

        return cls(url=url, event_date=parsed)

    def to_dict(self) -> dict:
        """
        Convert Entry to a plain dictionary for storage/serialization.

        Date fields are converted to ISO format strings.
        """
        data = asdict(self)
        data["event_date"] = self.event_date.isoformat()
        data["created_at"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Entry":
        """Create an Entry from a dictionary produced by to_dict()."""
        data = data.copy()
        if isinstance(data.get("created_at"), str):
            data["created_at"] = parse_timestamp(data["created_at"])
        if isinstance(data.get("event_date"), str):
            data["event_date"] = parse_event_date(data["event_date"])
        data["sent"] = bool(data.get("sent", False))
        return cls(**data)

    def __str__(self) -> str:
        return f"#{self.id} {self.url} ({self.event_date.isoformat()})"


@dataclass
class LinkPreview:
    """Title, description and image extracted from a page."""

    title: str = ""
    description: str = ""
    image: Optional[str] = None


@dataclass
class EnrichedEntry:
    """An Entry together with the preview used to render it."""

    entry: Entry
    title: str
    description: str = ""
    image: Optional[str] = None
    preview_failed: bool = False

    @property
    def url(self) -> str:
        return self.entry.url

    @property
    def event_date(self) -> date:
        return self.entry.event_date

    @classmethod
    def from_preview(cls, entry: Entry, preview: LinkPreview) -> "EnrichedEntry":
        """Combine an entry with a fetched preview, filling blanks from the url."""
        return cls(
            entry=entry,
            title=(preview.title or "").strip() or entry.url,
            description=(preview.description or "").strip(),
            image=preview.image or None,
        )

    @classmethod
    def fallback(cls, entry: Entry) -> "EnrichedEntry":
        """The record used when no preview could be fetched."""
        return cls(entry=entry, title=entry.url, description="", image=None, preview_failed=True)
