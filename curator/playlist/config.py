from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple

from curator.genre.normalize import DEFAULT_GENRE_IGNORE_LIST

HALF_LIFE_DAYS = 7.0
PLAY_COUNT_SATURATION = 25
MAX_GENRE_SHARE = 0.4
MAX_PER_ARTIST = 2
PLAYLIST_TARGET_SIZE = 50
DISCOVERY_DAYS = 90
HISTORY_PAGE_SIZE = 500


@dataclass(frozen=True)
class ScoringConfig:
    half_life_days: float = HALF_LIFE_DAYS
    play_count_saturation: int = PLAY_COUNT_SATURATION
    rating_scale: float = 10.0
    recency_weight: float = 0.7
    fallback_weight: float = 0.3
    rating_weight: float = 0.6
    play_count_weight: float = 0.4


@dataclass(frozen=True)
class DiscoveryConfig:
    min_days_since_play: int = DISCOVERY_DAYS
    max_history_entries: int = 20000
    page_size: int = HISTORY_PAGE_SIZE
    include_high_rated: bool = True
    high_rating_threshold: float = 8.0
    min_plays_unrated: int = 3
    score_floor: float = 0.1
    forgotten_days: int = DISCOVERY_DAYS
    genre_ignore_list: Tuple[str, ...] = DEFAULT_GENRE_IGNORE_LIST


@dataclass(frozen=True)
class FallbackConfig:
    enabled: bool = True
    fetch_multiplier: int = 5
    genre_fetch_multiplier: int = 10
    section_name: Optional[str] = None
    include_most_played: bool = False
    genre_filter: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SelectionConfig:
    target_count: int = PLAYLIST_TARGET_SIZE
    max_per_artist: int = MAX_PER_ARTIST
    max_genre_share: float = MAX_GENRE_SHARE
    exclude_ids: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def max_per_genre(self) -> int:
        # epsilon guards float products such as 0.29 * 100 == 28.999...
        return int(math.floor(self.target_count * self.max_genre_share + 1e-9))


@dataclass(frozen=True)
class ExplorationConfig:
    baseline: float = 0.15
    step: float = 0.03
    large_library_threshold: int = 10000
    high_skip_rate: float = 0.30
    min_rate: float = 0.10
    max_rate: float = 0.20


@dataclass(frozen=True)
class CurationConfig:
    """Everything a single playlist run needs."""
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    exploration: ExplorationConfig = field(default_factory=ExplorationConfig)
    exploration_rate_override: Optional[float] = None

    def __post_init__(self):
        rate = self.exploration_rate_override
        if rate is not None and not 0.0 <= rate <= 1.0:
            raise ValueError(f"Exploration rate override must be in [0, 1], got {rate}")
