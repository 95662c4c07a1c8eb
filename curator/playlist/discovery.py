"""
Discovery candidate builder.

Turns listening history into "rediscovery" candidates: tracks the listener
played enough to care about but has not heard for a while.

Pipeline:
    history pages -> track entries -> per-track aggregate -> bulk track fetch
    -> recency filter -> signal filter -> score -> score floor -> sort
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from curator.genre.normalize import normalize_genre_list, primary_genre
from curator.logging_utils import format_count
from curator.playlist.config import DiscoveryConfig, ScoringConfig
from curator.playlist.errors import InsufficientCandidatesError, NoListeningHistoryError
from curator.playlist.history_analyzer import aggregate_history, fetch_history
from curator.playlist.models import CandidateTrack, DiscoveryStats, TrackRecord
from curator.playlist.scoring import (
    days_between,
    fallback_score,
    normalize_play_count,
    normalize_rating,
    recency_weights,
    score_components,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveryResult:
    """
    Discovery candidates plus the per-stage counts that produced them.

    Attributes:
        candidates: Sorted by final score, descending
        stats: Stage counts (history_entries, unique_tracks, resolved, ...)
    """
    candidates: List[CandidateTrack]
    stats: Dict[str, int] = field(default_factory=dict)


def is_unrated(rating: Optional[float]) -> bool:
    return not rating


def build_candidate(
    record: TrackRecord,
    *,
    play_count: int,
    last_played: Optional[datetime],
    recency: float,
    now: datetime,
    scoring: ScoringConfig,
    ignore_list: Sequence[str],
    source: str,
) -> CandidateTrack:
    """Score one track record into a CandidateTrack."""
    days = days_between(now, last_played)
    breakdown = score_components(
        recency,
        fallback_score(record.user_rating, play_count, scoring),
        scoring,
        rating_score=normalize_rating(record.user_rating, scoring.rating_scale),
        play_count_score=normalize_play_count(play_count, scoring.play_count_saturation),
        days_since_play=days,
    )
    return CandidateTrack(
        track_id=record.track_id,
        artist=record.artist,
        album=record.album,
        title=record.title,
        genre=primary_genre(record.genres, ignore_list),
        genres=tuple(normalize_genre_list(record.genres)),
        recency_weight=breakdown.recency_weight,
        fallback_score=breakdown.fallback_score,
        final_score=breakdown.final_score,
        last_played=last_played,
        play_count=play_count,
        user_rating=record.user_rating,
        days_since_play=days,
        source=source,
        breakdown=breakdown,
    )


def sort_by_score(candidates: List[CandidateTrack]) -> List[CandidateTrack]:
    """Final score descending; ties keep their incoming order."""
    return sorted(candidates, key=lambda c: c.final_score, reverse=True)


def build_discovery_candidates(
    *,
    history_source,
    track_lookup,
    now: datetime,
    config: DiscoveryConfig = DiscoveryConfig(),
    scoring: ScoringConfig = ScoringConfig(),
    target_count: Optional[int] = None,
) -> DiscoveryResult:
    """
    Build discovery candidates from listening history.

    Args:
        history_source: Object with ``history(page_offset, page_size)``
        track_lookup: Object with ``fetch_tracks(ids) -> {id: TrackRecord}``;
            unresolved ids are simply absent from the mapping
        now: Reference time for days-since-play
        config: Discovery thresholds
        scoring: Scoring weights and decay
        target_count: Playlist size the candidates are for; a shortfall is
            logged so the caller can top up from the library

    Returns:
        DiscoveryResult with candidates sorted by final score

    Raises:
        NoListeningHistoryError: History contained no track entries
        InsufficientCandidatesError: History existed but nothing survived filtering
    """
    entries = fetch_history(
        history_source=history_source,
        page_size=config.page_size,
        max_entries=config.max_history_entries,
    )
    aggregated = aggregate_history(entries)
    if not aggregated:
        raise NoListeningHistoryError()

    stats: Dict[str, int] = {
        "history_entries": len(entries),
        "unique_tracks": len(aggregated),
    }

    records = track_lookup.fetch_tracks(list(aggregated.keys())) or {}
    resolved = [(aggregated[tid], records[tid]) for tid in aggregated if tid in records]
    missing = len(aggregated) - len(resolved)
    if missing:
        logger.info(f"Dropped {format_count(missing, 'history track')} that could not be resolved")
    stats["resolved"] = len(resolved)

    aged = []
    for agg, record in resolved:
        days = days_between(now, agg.last_played)
        if days is not None and days <= config.min_days_since_play:
            continue
        aged.append((agg, record))
    stats["too_recent"] = len(resolved) - len(aged)

    trusted = []
    for agg, record in aged:
        if is_unrated(record.user_rating) and agg.play_count < config.min_plays_unrated:
            continue
        if (
            not config.include_high_rated
            and record.user_rating is not None
            and record.user_rating >= config.high_rating_threshold
        ):
            continue
        trusted.append((agg, record))
    stats["low_signal"] = len(aged) - len(trusted)

    recency = recency_weights(
        [days_between(now, agg.last_played) for agg, _ in trusted],
        scoring.half_life_days,
    )
    candidates = []
    for (agg, record), weight in zip(trusted, recency):
        candidate = build_candidate(
            record,
            play_count=agg.play_count,
            last_played=agg.last_played,
            recency=float(weight),
            now=now,
            scoring=scoring,
            ignore_list=config.genre_ignore_list,
            source="discovery",
        )
        if candidate.final_score < config.score_floor:
            continue
        candidates.append(candidate)
    stats["below_floor"] = len(trusted) - len(candidates)
    stats["candidates"] = len(candidates)

    logger.info(
        f"Discovery: {format_count(stats['history_entries'], 'history entry', 'history entries')}, "
        f"{stats['unique_tracks']} unique, {stats['resolved']} resolved, "
        f"-{stats['too_recent']} recent, -{stats['low_signal']} low signal, "
        f"-{stats['below_floor']} below floor -> {format_count(len(candidates), 'candidate')}"
    )

    if not candidates:
        raise InsufficientCandidatesError(stats, config.min_days_since_play)
    if target_count is not None and len(candidates) < target_count:
        logger.info(f"Discovery short of target: {len(candidates)}/{target_count} candidates")

    return DiscoveryResult(candidates=sort_by_score(candidates), stats=stats)


def discovery_stats(candidates: Sequence[CandidateTrack], forgotten_days: int = 90) -> DiscoveryStats:
    """Aggregate view over a candidate sequence, computed on demand."""
    never_played = 0
    forgotten = 0
    rated = 0
    days_seen = []
    for candidate in candidates:
        if candidate.last_played is None:
            never_played += 1
        elif candidate.days_since_play is not None:
            days_seen.append(candidate.days_since_play)
            if candidate.days_since_play > forgotten_days:
                forgotten += 1
        if not is_unrated(candidate.user_rating):
            rated += 1

    avg = round(sum(days_seen) / len(days_seen), 1) if days_seen else None
    return DiscoveryStats(
        never_played=never_played,
        forgotten=forgotten,
        rated=rated,
        unrated=len(candidates) - rated,
        avg_days_since_play=avg,
    )
