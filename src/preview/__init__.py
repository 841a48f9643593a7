"""
Preview module.

Fetches link previews (title, description, image) for submitted urls.
"""

from src.preview.fetcher import PreviewFetcher, HtmlPreviewFetcher
from src.preview.enrich import enrich_entry, enrich_entries

__all__ = [
    "PreviewFetcher",
    "HtmlPreviewFetcher",
    "enrich_entry",
    "enrich_entries",
]
