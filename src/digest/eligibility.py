"""
Digest eligibility rules.

Decides, from the pending backlog and the last successful send, whether a
digest should go out now. A digest is sent when the backlog is non-empty and
any of these hold:

- urgency:   some entry's event date falls within URGENCY_WINDOW of now
             (overdue dates count as urgent)
- volume:    at least VOLUME_THRESHOLD entries are pending
- staleness: nothing was ever sent, or the last send is older than
             STALENESS_WINDOW

The evaluator is a pure function: `now` is always passed in, nothing is read
from storage or the clock.
"""

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import List, Optional, Sequence

from src.models.entry import Entry


URGENCY_WINDOW = timedelta(days=7)
VOLUME_THRESHOLD = 7
STALENESS_WINDOW = timedelta(days=21)


@dataclass(frozen=True)
class EligibilityDecision:
    """
    Outcome of one evaluation.

    Attributes:
        should_send: Whether a digest should be dispatched now.
        entries: The entries the digest covers, in send order (empty when not sending).
        urgency: An entry is due within the urgency window.
        volume: The backlog reached the volume threshold.
        staleness: No send yet, or the last one is too old.
    """
    should_send: bool
    entries: List[Entry] = field(default_factory=list)
    urgency: bool = False
    volume: bool = False
    staleness: bool = False

    @property
    def reasons(self) -> List[str]:
        """Names of the conditions that held."""
        flags = [("urgency", self.urgency), ("volume", self.volume), ("staleness", self.staleness)]
        return [name for name, held in flags if held]


def digest_order_key(entry: Entry):
    """Sort key: event date, then id (unsaved entries last), then url."""
    return (entry.event_date, entry.id is None, entry.id or 0, entry.url)


def order_for_digest(entries: Sequence[Entry]) -> List[Entry]:
    """Return entries in the order they appear in a digest."""
    return sorted(entries, key=digest_order_key)


def _event_start(entry: Entry, now: datetime) -> datetime:
    # Compare the start of the event day in the same timezone as `now`
    return datetime.combine(entry.event_date, time.min, tzinfo=now.tzinfo)


def is_urgent(pending: Sequence[Entry], now: datetime) -> bool:
    horizon = now + URGENCY_WINDOW
    return any(_event_start(entry, now) <= horizon for entry in pending)


def is_stale(last_sent_at: Optional[datetime], now: datetime) -> bool:
    if last_sent_at is None:
        return True
    return now - last_sent_at > STALENESS_WINDOW


def evaluate(
    pending: Sequence[Entry],
    last_sent_at: Optional[datetime],
    now: datetime,
) -> EligibilityDecision:
    """
    Decide whether to send a digest now.

    Args:
        pending: Entries not yet sent, in any order.
        last_sent_at: Time of the last successful dispatch, or None if never.
        now: Current time.

    Returns:
        EligibilityDecision. When should_send is True, entries holds all of
        `pending` sorted by event date, ties broken by id.
    """
    if not pending:
        return EligibilityDecision(should_send=False)

    urgency = is_urgent(pending, now)
    volume = len(pending) >= VOLUME_THRESHOLD
    staleness = is_stale(last_sent_at, now)
    should_send = urgency or volume or staleness

    return EligibilityDecision(
        should_send=should_send,
        entries=order_for_digest(pending) if should_send else [],
        urgency=urgency,
        volume=volume,
        staleness=staleness,
    )
