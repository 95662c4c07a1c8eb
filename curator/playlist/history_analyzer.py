"""
Listening history paging and aggregation.

The history collaborator exposes ``history(page_offset, page_size)`` returning
HistoryEntry values, newest first. Pages are consumed strictly in server
order; paging stops on a short page or once the entry cap is reached.
"""
from __future__ import annotations

import logging
from typing import Dict, List

from curator.playlist.models import AggregatedHistory, HistoryEntry

logger = logging.getLogger(__name__)

TRACK_ENTRY = "track"


def fetch_history(
    *,
    history_source,
    page_size: int,
    max_entries: int,
) -> List[HistoryEntry]:
    """
    Pull history pages until exhausted or ``max_entries`` is reached.

    Args:
        history_source: Object with ``history(page_offset, page_size)``
        page_size: Entries requested per page
        max_entries: Cap on cumulative entries (the last page is truncated)

    Returns:
        Entries in server order, at most ``max_entries`` long
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")

    entries: List[HistoryEntry] = []
    offset = 0
    pages = 0
    while len(entries) < max_entries:
        page = list(history_source.history(offset, page_size))
        pages += 1
        room = max_entries - len(entries)
        entries.extend(page[:room])
        offset += len(page)
        if len(page) < page_size:
            break

    logger.debug(f"Fetched {len(entries)} history entries in {pages} page(s) (cap {max_entries})")
    return entries


def aggregate_history(entries: List[HistoryEntry]) -> Dict[str, AggregatedHistory]:
    """
    Collapse track entries by id: play count = occurrences, last played = most recent.

    Non-track entries (videos, podcasts, ...) are discarded. The returned
    mapping keeps first-seen order, which for newest-first history means the
    most recently played track comes first.
    """
    counts: Dict[str, int] = {}
    latest: Dict[str, object] = {}
    skipped = 0
    for entry in entries:
        if entry.entry_type != TRACK_ENTRY or not entry.track_id:
            skipped += 1
            continue
        counts[entry.track_id] = counts.get(entry.track_id, 0) + 1
        current = latest.get(entry.track_id)
        if current is None or entry.played_at > current:
            latest[entry.track_id] = entry.played_at

    if skipped:
        logger.debug(f"Discarded {skipped} non-track history entries")

    return {
        track_id: AggregatedHistory(track_id=track_id, play_count=count, last_played=latest[track_id])
        for track_id, count in counts.items()
    }
