"""
Playlist run orchestration.

Assembles discovery, fallback and exploratory slots into one playlist:

    1. discovery candidates from history
    2. fallback top-up from the library when discovery falls short
    3. exploration rate -> explore/exploit split
    4. diversity-constrained selection for the exploit slots
    5. novelty-biased random picks for the explore slots
    6. shortfall filled from the remaining candidates in score order

Every stage works on in-memory values only, so a caller can abandon a run
between stages without cleanup.
"""
from __future__ import annotations

import logging
import math
import random
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from curator.logging_utils import RunSummary, stage_timer, truncate_list
from curator.playlist.config import CurationConfig
from curator.playlist.discovery import build_discovery_candidates, discovery_stats, sort_by_score
from curator.playlist.errors import CurationError
from curator.playlist.exploration import StaticSignals, compute_exploration_rate
from curator.playlist.fallback import build_fallback_candidates
from curator.playlist.models import CandidateTrack, PlaylistResult
from curator.playlist.selector import genre_distribution, select_exploration_tracks, select_tracks

logger = logging.getLogger(__name__)


def _merge(primary: List[CandidateTrack], extra: List[CandidateTrack]) -> List[CandidateTrack]:
    seen = {c.track_id for c in primary}
    merged = list(primary)
    for candidate in extra:
        if candidate.track_id not in seen:
            seen.add(candidate.track_id)
            merged.append(candidate)
    return sort_by_score(merged)


def gather_candidates(
    *,
    history_source,
    track_lookup,
    library,
    config: CurationConfig,
    now: datetime,
    summary: Optional[RunSummary] = None,
) -> tuple:
    """
    Discovery candidates topped up with fallback candidates.

    Returns:
        (merged candidates sorted by score, discovery count, fallback count)

    Raises:
        CurationError: Both sources came up empty (the discovery error is
            re-raised, chained to the fallback error when there was one)
    """
    target = config.selection.target_count
    discovery: List[CandidateTrack] = []
    discovery_error: Optional[CurationError] = None

    with stage_timer("Discovery candidates", logger):
        try:
            result = build_discovery_candidates(
                history_source=history_source,
                track_lookup=track_lookup,
                now=now,
                config=config.discovery,
                scoring=config.scoring,
                target_count=target,
            )
            discovery = result.candidates
            if summary:
                for key, value in result.stats.items():
                    summary.add(f"discovery_{key}", value)
        except CurationError as e:
            if not config.fallback.enabled or library is None:
                raise
            logger.warning(f"Discovery failed, trying library fallback: {e}")
            discovery_error = e

    fallback: List[CandidateTrack] = []
    if len(discovery) < target and config.fallback.enabled and library is not None:
        with stage_timer("Fallback candidates", logger):
            try:
                fallback = build_fallback_candidates(
                    library=library,
                    target_count=target,
                    now=now,
                    config=config.fallback,
                    scoring=config.scoring,
                    ignore_list=config.discovery.genre_ignore_list,
                    exclude_ids={c.track_id for c in discovery},
                )
            except CurationError as e:
                if discovery_error is not None:
                    raise discovery_error from e
                if not discovery:
                    raise
                logger.warning(f"Fallback unavailable, continuing with discovery only: {e}")

    merged = _merge(discovery, fallback)
    if not merged and discovery_error is not None:
        raise discovery_error
    if summary:
        summary.add("discovery_pool", len(discovery))
        summary.add("fallback_pool", len(fallback))
    return merged, len(discovery), len(fallback)


def generate_playlist(
    *,
    history_source,
    track_lookup,
    library=None,
    config: CurationConfig = CurationConfig(),
    signals=None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
    exclude_ids: Iterable[str] = (),
) -> PlaylistResult:
    """
    Generate a discovery playlist.

    Args:
        history_source: ``history(page_offset, page_size)`` collaborator
        track_lookup: ``fetch_tracks(ids)`` collaborator
        library: ``sections()`` collaborator for the fallback (None disables it)
        config: Full run configuration
        signals: Exploration signal provider (defaults to neutral static signals)
        now: Reference time (defaults to current UTC time)
        rng: Random generator for the exploration draw; seed it for reproducible runs
        exclude_ids: Track ids that must not be selected

    Returns:
        PlaylistResult with the selected tracks in playlist order
    """
    now = now or datetime.now(timezone.utc)
    rng = rng or random.Random()
    summary = RunSummary("Discovery playlist", logger)

    candidates, discovery_count, fallback_count = gather_candidates(
        history_source=history_source,
        track_lookup=track_lookup,
        library=library,
        config=config,
        now=now,
        summary=summary,
    )

    if config.exploration_rate_override is not None:
        rate = config.exploration_rate_override
    else:
        rate = compute_exploration_rate(signals or StaticSignals(), config.exploration)

    target = config.selection.target_count
    excluded = frozenset(config.selection.exclude_ids) | frozenset(exclude_ids)
    explore_slots = min(target, int(math.floor(target * rate)))
    exploit_slots = target - explore_slots

    with stage_timer("Selection", logger):
        exploit = select_tracks(
            candidates,
            replace(config.selection, target_count=exploit_slots, exclude_ids=excluded),
        )
        explore = select_exploration_tracks(
            candidates=exploit.remaining,
            already_selected=exploit.selected,
            count=explore_slots,
            rng=rng,
            exclude_ids=excluded,
        )
        selected = exploit.selected + explore
        chosen = {c.track_id for c in selected}
        if len(selected) < target:
            for candidate in exploit.remaining:
                if len(selected) >= target:
                    break
                if candidate.track_id in chosen or candidate.track_id in excluded:
                    continue
                selected.append(candidate)
                chosen.add(candidate.track_id)

    remaining = [c for c in candidates if c.track_id not in chosen]
    genre_counts = genre_distribution(selected, target, config.selection.max_genre_share)
    stats = discovery_stats(selected, config.discovery.forgotten_days)
    mix = [f"{genre} x{count}" for genre, count in genre_counts.items()]
    logger.info(f"Genre mix: {truncate_list(mix, max_items=5)}")

    summary.add("candidates", len(candidates))
    summary.add("exploration_rate", rate)
    summary.add("exploited", len(exploit.selected))
    summary.add("explored", len(explore))
    summary.add("selected", len(selected))
    for candidate in selected:
        summary.increment(f"selected_from_{candidate.source}")
    summary.log()

    return PlaylistResult(
        selected=selected,
        remaining=remaining,
        exploration_rate=rate,
        exploited=len(exploit.selected),
        explored=len(explore),
        discovery_count=discovery_count,
        fallback_count=fallback_count,
        stats=stats,
        genre_counts=genre_counts,
    )
