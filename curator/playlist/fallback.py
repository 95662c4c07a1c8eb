"""
Fallback candidate builder.

Used when discovery cannot supply enough candidates: queries the music
library directly (bypassing history), ranks by user rating and converts the
returned records into the same CandidateTrack shape.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from curator.genre.normalize import genres_match_filter
from curator.playlist.config import FallbackConfig, ScoringConfig
from curator.playlist.discovery import build_candidate, sort_by_score
from curator.playlist.errors import NoMusicSectionError
from curator.playlist.models import CandidateTrack, TrackRecord
from curator.playlist.scoring import days_between, recency_weight

logger = logging.getLogger(__name__)

AUDIO_SECTION = "audio"
SORT_BY_RATING = "userRating:desc"
SORT_BY_PLAYS = "viewCount:desc"


def find_music_section(library, section_name: Optional[str] = None):
    """
    Locate the single audio section of the library.

    Args:
        library: Object with ``sections()`` returning objects that expose
            ``title``, ``content_type`` and ``search_tracks(**query)``
        section_name: Title used to pick one section when several exist

    Raises:
        NoMusicSectionError: No audio section, the named section is missing,
            or several audio sections exist and none was named
    """
    music = [s for s in library.sections() if getattr(s, "content_type", None) == AUDIO_SECTION]
    if section_name:
        named = [s for s in music if s.title.casefold() == section_name.casefold()]
        if not named:
            raise NoMusicSectionError(f"No music library section named '{section_name}' found.")
        return named[0]
    if not music:
        raise NoMusicSectionError()
    if len(music) > 1:
        titles = ", ".join(s.title for s in music)
        raise NoMusicSectionError(
            f"Found {len(music)} music library sections ({titles}); set fallback.section_name to choose one."
        )
    return music[0]


def _search(section, sort: str, maxresults: int) -> List[TrackRecord]:
    return list(section.search_tracks(sort=sort, libtype="track", maxresults=maxresults))


def build_fallback_candidates(
    *,
    library,
    target_count: int,
    now: datetime,
    config: FallbackConfig = FallbackConfig(),
    scoring: ScoringConfig = ScoringConfig(),
    ignore_list: Sequence[str] = (),
    exclude_ids: Optional[set] = None,
) -> List[CandidateTrack]:
    """
    Build candidates straight from the library, best rated first.

    Args:
        library: Library collaborator (see find_music_section)
        target_count: Playlist size the candidates are for
        now: Reference time for days-since-play
        config: Fetch multipliers, section choice, optional genre filter
        scoring: Scoring weights and decay
        ignore_list: Umbrella genres skipped when picking a primary genre
        exclude_ids: Track ids already covered by another source

    Returns:
        Candidates sorted by final score descending
    """
    section = find_music_section(library, config.section_name)
    multiplier = config.genre_fetch_multiplier if config.genre_filter else config.fetch_multiplier
    maxresults = max(target_count, 0) * multiplier

    records: Dict[str, TrackRecord] = {}
    for record in _search(section, SORT_BY_RATING, maxresults):
        records.setdefault(record.track_id, record)
    if config.include_most_played:
        for record in _search(section, SORT_BY_PLAYS, maxresults):
            records.setdefault(record.track_id, record)

    exclude = exclude_ids or set()
    candidates = []
    for record in records.values():
        if record.track_id in exclude:
            continue
        if config.genre_filter and not genres_match_filter(record.genres, config.genre_filter):
            continue
        play_count = record.play_count or 0
        candidates.append(build_candidate(
            record,
            play_count=play_count,
            last_played=record.last_played,
            recency=recency_weight(days_between(now, record.last_played), scoring.half_life_days),
            now=now,
            scoring=scoring,
            ignore_list=ignore_list,
            source="fallback",
        ))

    logger.info(
        f"Fallback: fetched {len(records)} tracks from '{section.title}' "
        f"(max {maxresults}) -> {len(candidates)} candidates"
    )
    return sort_by_score(candidates)
