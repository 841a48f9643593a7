"""
Parallel preview enrichment.

Fetches previews for a batch of entries concurrently. Each fetch is
isolated: a failure (including a timeout) turns that entry into its
fallback record and never affects the others. The result keeps the
order of the input entries.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence

from src.config import PREVIEW_MAX_WORKERS
from src.models.entry import Entry, EnrichedEntry
from src.preview.fetcher import PreviewFetcher

logger = logging.getLogger(__name__)


def enrich_entry(entry: Entry, fetcher: PreviewFetcher) -> EnrichedEntry:
    """Fetch one preview, falling back to the raw url on any error."""
    try:
        preview = fetcher.fetch(entry.url)
    except Exception as e:
        logger.warning("Preview failed for %s: %s", entry.url, e)
        return EnrichedEntry.fallback(entry)
    return EnrichedEntry.from_preview(entry, preview)


def enrich_entries(
    entries: Sequence[Entry],
    fetcher: PreviewFetcher,
    max_workers: int = None,
) -> List[EnrichedEntry]:
    """
    Enrich all entries with link previews.

    Args:
        entries: Entries in the order they should appear.
        fetcher: Preview fetcher to use.
        max_workers: Concurrent fetches. Defaults to config.PREVIEW_MAX_WORKERS.

    Returns:
        One EnrichedEntry per input entry, same order.
    """
    if not entries:
        return []

    workers = max(1, min(max_workers or PREVIEW_MAX_WORKERS, len(entries)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="preview") as executor:
        return list(executor.map(lambda entry: enrich_entry(entry, fetcher), entries))
