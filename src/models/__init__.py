"""
Data models module.

Defines data structures for submitted entries and their link previews.
"""

from src.models.entry import Entry, EnrichedEntry, LinkPreview, parse_event_date

__all__ = [
    "Entry",
    "EnrichedEntry",
    "LinkPreview",
    "parse_event_date",
]
