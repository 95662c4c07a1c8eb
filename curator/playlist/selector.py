"""
Diversity-constrained selection with staged relaxation.

Candidates arrive sorted by score. Three left-to-right scans share a single
acceptance predicate; each pass drops one constraint:

    STRICT         artist cap + genre cap
    GENRE_RELAXED  artist cap
    UNCONSTRAINED  no caps

Counts and dedupe carry across passes, so the selector fills the target
whenever enough distinct candidates exist while staying as diverse as the
pool allows.
"""
from __future__ import annotations

import logging
import random
from collections import Counter
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Set

from curator.playlist.config import SelectionConfig
from curator.playlist.models import CandidateTrack, SelectionResult

logger = logging.getLogger(__name__)


class SelectionPass(Enum):
    STRICT = "strict"
    GENRE_RELAXED = "genre_relaxed"
    UNCONSTRAINED = "unconstrained"

    @property
    def caps_artist(self) -> bool:
        return self is not SelectionPass.UNCONSTRAINED

    @property
    def caps_genre(self) -> bool:
        return self is SelectionPass.STRICT


def artist_key(candidate: CandidateTrack) -> str:
    return (candidate.artist or "").strip().casefold()


def genre_key(candidate: CandidateTrack) -> Optional[str]:
    return candidate.genre.casefold() if candidate.genre else None


class _SelectionState:
    """Running counts shared by all passes."""

    def __init__(self, config: SelectionConfig):
        self.config = config
        self.max_per_genre = config.max_per_genre
        self.selected: List[CandidateTrack] = []
        self.selected_ids: Set[str] = set()
        self.artist_counts: Counter = Counter()
        self.genre_counts: Counter = Counter()

    @property
    def full(self) -> bool:
        return len(self.selected) >= self.config.target_count

    def accepts(self, candidate: CandidateTrack, stage: SelectionPass) -> bool:
        if candidate.track_id in self.selected_ids or candidate.track_id in self.config.exclude_ids:
            return False
        if stage.caps_artist and self.artist_counts[artist_key(candidate)] >= self.config.max_per_artist:
            return False
        genre = genre_key(candidate)
        if stage.caps_genre and genre is not None and self.genre_counts[genre] >= self.max_per_genre:
            return False
        return True

    def take(self, candidate: CandidateTrack) -> None:
        self.selected.append(candidate)
        self.selected_ids.add(candidate.track_id)
        self.artist_counts[artist_key(candidate)] += 1
        genre = genre_key(candidate)
        if genre is not None:
            self.genre_counts[genre] += 1


def select_tracks(candidates: Sequence[CandidateTrack], config: SelectionConfig) -> SelectionResult:
    """
    Select up to ``config.target_count`` tracks honoring artist and genre caps.

    Args:
        candidates: Score-sorted candidates (not re-sorted here)
        config: Target count, caps and excluded ids

    Returns:
        SelectionResult; ``remaining`` holds every distinct candidate that was
        not accepted (excluded ids included), in input order
    """
    state = _SelectionState(config)
    pass_counts: Dict[str, int] = {}

    for stage in SelectionPass:
        before = len(state.selected)
        for candidate in candidates:
            if state.full:
                break
            if state.accepts(candidate, stage):
                state.take(candidate)
        pass_counts[stage.value] = len(state.selected) - before
        if state.full:
            break

    remaining = []
    seen = set(state.selected_ids)
    for candidate in candidates:
        if candidate.track_id in seen:
            continue
        seen.add(candidate.track_id)
        remaining.append(candidate)

    logger.debug(
        f"Selected {len(state.selected)}/{config.target_count} "
        f"(strict={pass_counts.get('strict', 0)}, "
        f"genre_relaxed={pass_counts.get('genre_relaxed', 0)}, "
        f"unconstrained={pass_counts.get('unconstrained', 0)}), {len(remaining)} remaining"
    )
    return SelectionResult(selected=state.selected, remaining=remaining, pass_counts=pass_counts)


def select_exploration_tracks(
    *,
    candidates: Sequence[CandidateTrack],
    already_selected: Iterable[CandidateTrack],
    count: int,
    rng: random.Random,
    exclude_ids: Iterable[str] = (),
) -> List[CandidateTrack]:
    """
    Pick ``count`` exploratory tracks at random, favoring novelty.

    The pool is shuffled with ``rng``; a first sweep takes candidates that add
    an artist or genre not yet in the playlist, a second sweep takes anything
    left. Artist comparison is case-insensitive.
    """
    if count <= 0:
        return []

    already_selected = list(already_selected)
    chosen_ids = {c.track_id for c in already_selected} | set(exclude_ids)
    artists = {artist_key(c) for c in already_selected}
    genres = {genre_key(c) for c in already_selected if c.genre}

    pool = []
    pooled: Set[str] = set()
    for candidate in candidates:
        if candidate.track_id in chosen_ids or candidate.track_id in pooled:
            continue
        pooled.add(candidate.track_id)
        pool.append(candidate)
    rng.shuffle(pool)

    picks: List[CandidateTrack] = []
    for candidate in pool:
        if len(picks) >= count:
            break
        new_artist = artist_key(candidate) not in artists
        new_genre = candidate.genre is not None and genre_key(candidate) not in genres
        if new_artist or new_genre:
            picks.append(candidate)
            chosen_ids.add(candidate.track_id)
            artists.add(artist_key(candidate))
            if candidate.genre:
                genres.add(genre_key(candidate))

    for candidate in pool:
        if len(picks) >= count:
            break
        if candidate.track_id not in chosen_ids:
            picks.append(candidate)
            chosen_ids.add(candidate.track_id)

    return picks


def genre_distribution(
    selected: Sequence[CandidateTrack],
    target_count: int,
    max_genre_share: float,
) -> Dict[str, int]:
    """
    Count primary genres in a playlist and warn about genres over their share.

    Tracks without a genre are counted under "(none)".
    """
    counts = Counter(genre_key(c) or "(none)" for c in selected)
    limit = SelectionConfig(target_count=target_count, max_genre_share=max_genre_share).max_per_genre
    over = [g for g, n in counts.items() if g != "(none)" and n > limit]
    if over:
        logger.warning(
            f"Genres over {max_genre_share:.0%} share ({limit} tracks): "
            + ", ".join(f"{g}={counts[g]}" for g in over)
        )
    return dict(counts.most_common())
