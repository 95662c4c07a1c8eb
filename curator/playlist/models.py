"""
Plain data shapes passed between the curation stages.

Everything here is a frozen dataclass: collaborators hand in TrackRecord and
HistoryEntry values, the pipeline produces CandidateTrack values and the
selection/result containers that wrap them.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class TrackRecord:
    """A library track as reported by the media server."""
    track_id: str
    title: str = ""
    artist: str = ""
    album: str = ""
    genres: Tuple[str, ...] = ()
    user_rating: Optional[float] = None  # 0-10
    play_count: int = 0
    last_played: Optional[datetime] = None


@dataclass(frozen=True)
class HistoryEntry:
    track_id: str
    played_at: datetime
    entry_type: str = "track"


@dataclass(frozen=True)
class AggregatedHistory:
    """One row per distinct track id seen in the scanned history."""
    track_id: str
    play_count: int
    last_played: datetime


@dataclass(frozen=True)
class ScoreBreakdown:
    recency_weight: float
    fallback_score: float
    final_score: float
    rating_score: float = 0.0
    play_count_score: float = 0.0
    days_since_play: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "recency_weight": round(self.recency_weight, 4),
            "fallback_score": round(self.fallback_score, 4),
            "final_score": round(self.final_score, 4),
            "rating_score": round(self.rating_score, 4),
            "play_count_score": round(self.play_count_score, 4),
            "days_since_play": self.days_since_play,
        }


@dataclass(frozen=True)
class CandidateTrack:
    """
    A scored track eligible for selection.

    Attributes:
        genre: Primary genre used for the per-genre cap (None if untagged)
        genres: All normalized genres of the track
        play_count: Aggregated history plays (discovery) or view count (fallback)
        source: "discovery" or "fallback"
    """
    track_id: str
    artist: str
    album: str
    title: str
    genre: Optional[str]
    recency_weight: float
    fallback_score: float
    final_score: float
    last_played: Optional[datetime] = None
    play_count: int = 0
    user_rating: Optional[float] = None
    genres: Tuple[str, ...] = ()
    days_since_play: Optional[int] = None
    source: str = "discovery"
    breakdown: Optional[ScoreBreakdown] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "track_id": self.track_id,
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "genre": self.genre,
            "source": self.source,
            "play_count": self.play_count,
            "user_rating": self.user_rating,
            "last_played": self.last_played.isoformat() if self.last_played else None,
            "score": self.breakdown.as_dict() if self.breakdown else {
                "recency_weight": self.recency_weight,
                "fallback_score": self.fallback_score,
                "final_score": self.final_score,
            },
        }


@dataclass(frozen=True)
class SelectionResult:
    """
    Output of the diversity-constrained selector.

    selected and remaining partition the deduplicated input: no track id is in
    both, and none appears twice in either.
    """
    selected: List[CandidateTrack]
    remaining: List[CandidateTrack]
    pass_counts: Dict[str, int] = field(default_factory=dict)

    def track_ids(self) -> List[str]:
        return [c.track_id for c in self.selected]


@dataclass(frozen=True)
class DiscoveryStats:
    never_played: int = 0
    forgotten: int = 0
    rated: int = 0
    unrated: int = 0
    avg_days_since_play: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PlaylistResult:
    """Final output of a curation run, handed to persistence/display collaborators."""
    selected: List[CandidateTrack]
    remaining: List[CandidateTrack]
    exploration_rate: float
    exploited: int
    explored: int
    discovery_count: int
    fallback_count: int
    stats: DiscoveryStats = field(default_factory=DiscoveryStats)
    genre_counts: Dict[str, int] = field(default_factory=dict)

    def track_ids(self) -> List[str]:
        return [c.track_id for c in self.selected]

    def breakdowns(self) -> Dict[str, Dict[str, Any]]:
        return {c.track_id: c.breakdown.as_dict() for c in self.selected if c.breakdown}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "track_ids": self.track_ids(),
            "tracks": [c.to_dict() for c in self.selected],
            "exploration_rate": self.exploration_rate,
            "exploited": self.exploited,
            "explored": self.explored,
            "discovery_candidates": self.discovery_count,
            "fallback_candidates": self.fallback_count,
            "stats": self.stats.as_dict(),
            "genre_counts": dict(self.genre_counts),
        }
