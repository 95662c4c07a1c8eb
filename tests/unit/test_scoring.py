"""Unit tests for candidate scoring.

Coverage:
- Recency decay (scalar and vectorized)
- Rating / play-count normalization and fallback blend
- Final score bounds and monotonicity
"""

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from curator.playlist.config import ScoringConfig
from curator.playlist.scoring import (
    days_between,
    fallback_score,
    normalize_play_count,
    normalize_rating,
    recency_weight,
    recency_weights,
    score_components,
    score_track,
)

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


# =============================================================================
# Recency
# =============================================================================

class TestRecency:

    def test_half_life(self):
        assert recency_weight(0, 7) == pytest.approx(1.0)
        assert recency_weight(7, 7) == pytest.approx(0.5)
        assert recency_weight(14, 7) == pytest.approx(0.25)

    def test_never_played_is_fully_decayed(self):
        assert recency_weight(None, 7) == 0.0

    def test_negative_days_clamp(self):
        assert recency_weight(-3, 7) == pytest.approx(1.0)

    def test_non_positive_half_life(self):
        assert recency_weight(3, 0) == 0.0

    def test_vectorized_matches_scalar(self):
        days = [0, 3.5, 7, None, 90]
        weights = recency_weights(days, 7)
        assert isinstance(weights, np.ndarray)
        expected = [recency_weight(d, 7) for d in days]
        assert weights.tolist() == pytest.approx(expected)

    def test_vectorized_empty(self):
        assert recency_weights([], 7).shape == (0,)

    def test_days_between_floors(self):
        assert days_between(NOW, NOW - timedelta(days=2, hours=23)) == 2
        assert days_between(NOW, None) is None
        assert days_between(NOW, NOW + timedelta(days=1)) == 0


# =============================================================================
# Fallback score
# =============================================================================

class TestFallbackScore:

    def test_rating_normalization(self):
        assert normalize_rating(None) == 0.0
        assert normalize_rating(0) == 0.0
        assert normalize_rating(5) == pytest.approx(0.5)
        assert normalize_rating(12) == 1.0

    def test_play_count_saturates(self):
        assert normalize_play_count(0, 25) == 0.0
        assert normalize_play_count(10, 25) == pytest.approx(0.4)
        assert normalize_play_count(100, 25) == 1.0

    def test_blend_weights(self):
        # 0.6 * 0.8 + 0.4 * (10 / 25)
        assert fallback_score(8, 10) == pytest.approx(0.64)

    def test_absent_rating_counts_as_zero(self):
        assert fallback_score(None, 25) == pytest.approx(0.4)


# =============================================================================
# Final score
# =============================================================================

class TestFinalScore:

    def test_blend(self):
        breakdown = score_components(0.5, 0.5)
        assert breakdown.final_score == pytest.approx(0.5)
        breakdown = score_components(1.0, 0.0)
        assert breakdown.final_score == pytest.approx(0.7)
        assert breakdown.recency_weight == 1.0
        assert breakdown.fallback_score == 0.0

    def test_bounds(self):
        grid = np.linspace(0.0, 1.0, 11)
        for r in grid:
            for f in grid:
                score = score_components(r, f).final_score
                assert 0.0 <= score <= 1.0

    def test_out_of_range_inputs_clamped(self):
        assert score_components(2.0, 2.0).final_score == pytest.approx(1.0)
        assert score_components(-1.0, -1.0).final_score == 0.0
        assert score_components(float("nan"), 0.5).recency_weight == 0.0

    def test_monotone_in_each_input(self):
        grid = np.linspace(0.0, 1.0, 21)
        for fixed in (0.0, 0.3, 1.0):
            by_r = [score_components(r, fixed).final_score for r in grid]
            by_f = [score_components(fixed, f).final_score for f in grid]
            assert all(b >= a for a, b in zip(by_r, by_r[1:]))
            assert all(b >= a for a, b in zip(by_f, by_f[1:]))

    def test_score_track_breakdown(self):
        breakdown = score_track(rating=10, play_count=25, last_played=NOW - timedelta(days=7), now=NOW)
        assert breakdown.days_since_play == 7
        assert breakdown.recency_weight == pytest.approx(0.5)
        assert breakdown.fallback_score == pytest.approx(1.0)
        assert breakdown.final_score == pytest.approx(0.7 * 0.5 + 0.3)
        assert breakdown.rating_score == pytest.approx(1.0)

    def test_score_track_never_played(self):
        breakdown = score_track(rating=None, play_count=0, last_played=None, now=NOW)
        assert breakdown.final_score == 0.0
        assert breakdown.days_since_play is None

    def test_custom_half_life(self):
        config = ScoringConfig(half_life_days=30)
        breakdown = score_track(rating=None, play_count=0, last_played=NOW - timedelta(days=30), now=NOW, config=config)
        assert breakdown.recency_weight == pytest.approx(0.5)
        assert breakdown.final_score == pytest.approx(0.35)

    def test_as_dict_rounds(self):
        data = score_components(1 / 3, 2 / 3).as_dict()
        assert data["recency_weight"] == round(1 / 3, 4)
        assert set(data) == {
            "recency_weight", "fallback_score", "final_score",
            "rating_score", "play_count_score", "days_since_play",
        }
