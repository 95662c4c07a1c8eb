"""
Candidate scoring: recency decay blended with a rating/play-count quality term.

    recency  r = exp(-ln2 * days / half_life)          (never played -> 0)
    fallback f = 0.6 * rating / 10 + 0.4 * min(plays / saturation, 1)
    final      = 0.7 * r + 0.3 * f

All functions are pure; weights and constants come from ScoringConfig.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Optional, Sequence

import numpy as np

from curator.playlist.config import ScoringConfig
from curator.playlist.models import ScoreBreakdown

_LN2 = math.log(2.0)
_SECONDS_PER_DAY = 86400.0


def _clamp01(value: float) -> float:
    if value != value:  # NaN
        return 0.0
    return max(0.0, min(1.0, float(value)))


def days_between(now: datetime, then: Optional[datetime]) -> Optional[int]:
    """Whole days elapsed from ``then`` to ``now`` (floored, never negative)."""
    if then is None:
        return None
    seconds = (now - then).total_seconds()
    return max(0, int(seconds // _SECONDS_PER_DAY))


def recency_weight(days_since_play: Optional[float], half_life_days: float) -> float:
    """
    Exponential decay weight for a track last played ``days_since_play`` ago.

    Returns 0.0 for never-played tracks (fully decayed) and for a
    non-positive half-life. Negative day counts are treated as 0.
    """
    if days_since_play is None or half_life_days <= 0:
        return 0.0
    days = max(0.0, float(days_since_play))
    return math.exp(-_LN2 * days / half_life_days)


def recency_weights(days_since_play: Sequence[Optional[float]], half_life_days: float) -> np.ndarray:
    """Vectorized recency_weight; None/NaN entries map to 0."""
    days = np.array(
        [np.nan if d is None else float(d) for d in days_since_play],
        dtype=float,
    )
    if days.size == 0 or half_life_days <= 0:
        return np.zeros(days.shape, dtype=float)
    weights = np.exp(-_LN2 * np.clip(days, 0.0, None) / half_life_days)
    return np.nan_to_num(weights, nan=0.0)


def normalize_rating(rating: Optional[float], scale: float = 10.0) -> float:
    """Absent rating counts as 0."""
    if not rating or scale <= 0:
        return 0.0
    return _clamp01(rating / scale)


def normalize_play_count(play_count: Optional[int], saturation: int) -> float:
    if not play_count or saturation <= 0:
        return 0.0
    return _clamp01(play_count / saturation)


def fallback_score(
    rating: Optional[float],
    play_count: Optional[int],
    config: ScoringConfig = ScoringConfig(),
) -> float:
    """Quality proxy in [0, 1] from rating and play count."""
    return _clamp01(
        config.rating_weight * normalize_rating(rating, config.rating_scale)
        + config.play_count_weight * normalize_play_count(play_count, config.play_count_saturation)
    )


def score_components(
    recency: float,
    fallback: float,
    config: ScoringConfig = ScoringConfig(),
    *,
    rating_score: float = 0.0,
    play_count_score: float = 0.0,
    days_since_play: Optional[int] = None,
) -> ScoreBreakdown:
    """
    Blend a precomputed recency weight and fallback score.

    Inputs are clamped to [0, 1] so the result always lies in [0, 1] and is
    non-decreasing in both inputs.
    """
    r = _clamp01(recency)
    f = _clamp01(fallback)
    final = _clamp01(config.recency_weight * r + config.fallback_weight * f)
    return ScoreBreakdown(
        recency_weight=r,
        fallback_score=f,
        final_score=final,
        rating_score=rating_score,
        play_count_score=play_count_score,
        days_since_play=days_since_play,
    )


def score_track(
    *,
    rating: Optional[float],
    play_count: Optional[int],
    last_played: Optional[datetime],
    now: datetime,
    config: ScoringConfig = ScoringConfig(),
) -> ScoreBreakdown:
    """Full breakdown for a single track."""
    days = days_between(now, last_played)
    return score_components(
        recency_weight(days, config.half_life_days),
        fallback_score(rating, play_count, config),
        config,
        rating_score=normalize_rating(rating, config.rating_scale),
        play_count_score=normalize_play_count(play_count, config.play_count_saturation),
        days_since_play=days,
    )
