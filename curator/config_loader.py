"""
Configuration Loader - YAML configuration with environment overrides
"""
import os
from typing import Any, Optional

import yaml

from curator.adaptive.models import AdaptiveConfig
from curator.genre.normalize import DEFAULT_GENRE_IGNORE_LIST
from curator.playlist.config import (
    CurationConfig,
    DiscoveryConfig,
    ExplorationConfig,
    FallbackConfig,
    ScoringConfig,
    SelectionConfig,
    PLAYLIST_TARGET_SIZE,
)

KNOWN_SECTIONS = (
    'library', 'scoring', 'discovery', 'fallback', 'selection',
    'exploration', 'adaptive', 'commands', 'genres', 'logging', 'api',
)


class Config:
    """Configuration manager for the playlist curator"""

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = config_path
        self.config = self._load_config()
        self._validate_config()

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Build a Config without a file (tests, embedding)."""
        instance = cls.__new__(cls)
        instance.config_path = "<dict>"
        instance.config = data or {}
        instance._validate_config()
        return instance

    def _load_config(self) -> dict:
        """Load configuration from YAML file"""
        if not os.path.exists(self.config_path):
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    def _validate_config(self):
        """Reject malformed sections and out-of-range tuning values"""
        if not isinstance(self.config, dict):
            raise ValueError(f"Configuration root must be a mapping: {self.config_path}")

        for section in KNOWN_SECTIONS:
            value = self.config.get(section)
            if value is not None and not isinstance(value, dict):
                raise ValueError(f"Configuration section '{section}' must be a mapping")

        share = self.get('selection', 'max_genre_share', 0.4)
        if not 0 < float(share) <= 1:
            raise ValueError(f"selection.max_genre_share must be in (0, 1], got {share}")

        sensitivity = self.get('adaptive', 'sensitivity', 5)
        if not 1 <= int(sensitivity) <= 10:
            raise ValueError(f"adaptive.sensitivity must be between 1 and 10, got {sensitivity}")

        override = self.get('exploration', 'rate_override')
        if override is not None and not 0 <= float(override) <= 1:
            raise ValueError(f"exploration.rate_override must be in [0, 1], got {override}")

        half_life = self.get('scoring', 'half_life_days', 7)
        if float(half_life) <= 0:
            raise ValueError(f"scoring.half_life_days must be positive, got {half_life}")

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """
        Get configuration value

        Args:
            section: Configuration section
            key: Configuration key
            default: Default value if not found

        Returns:
            Configuration value or default
        """
        if section not in self.config or self.config[section] is None:
            return default
        return self.config[section].get(key, default)

    @property
    def snapshot_path(self) -> Optional[str]:
        """Library snapshot file (with environment variable override)"""
        return os.getenv('CURATOR_SNAPSHOT') or self.get('library', 'snapshot_path')

    @property
    def target_size(self) -> int:
        """Playlist size (with environment variable override)"""
        return int(os.getenv('CURATOR_TARGET_SIZE') or self.get('selection', 'target_size', PLAYLIST_TARGET_SIZE))

    @property
    def min_days_since_play(self) -> int:
        """Discovery recency threshold (with environment variable override)"""
        return int(os.getenv('CURATOR_DISCOVERY_DAYS') or self.get('discovery', 'min_days_since_play', 90))

    @property
    def command_url(self) -> Optional[str]:
        """Playback-queue command endpoint (with environment variable override)"""
        return os.getenv('CURATOR_COMMAND_URL') or self.get('commands', 'url')

    @property
    def command_timeout(self) -> float:
        return float(self.get('commands', 'timeout_seconds', 5.0))

    @property
    def command_token(self) -> Optional[str]:
        return os.getenv('CURATOR_COMMAND_TOKEN') or self.get('commands', 'token')

    @property
    def discovery_playlist_enabled(self) -> bool:
        """Whether an always-on discovery playlist is enabled"""
        return bool(self.get('exploration', 'discovery_playlist_enabled', False))

    @property
    def recent_skip_rate(self) -> float:
        """Skip rate used when no live detector feeds the exploration signal"""
        return float(self.get('exploration', 'recent_skip_rate', 0.0))

    @property
    def random_seed(self) -> Optional[int]:
        seed = self.get('selection', 'random_seed')
        return int(seed) if seed is not None else None

    @property
    def genre_ignore_list(self) -> tuple:
        """Umbrella genres skipped when picking a primary genre"""
        ignore = self.get('genres', 'ignore_list')
        if ignore is None:
            return DEFAULT_GENRE_IGNORE_LIST
        return tuple(str(g) for g in ignore)

    @property
    def log_level(self) -> str:
        return str(self.get('logging', 'level', 'INFO')).upper()

    @property
    def log_file(self) -> Optional[str]:
        return self.get('logging', 'file')

    # =========================================================================
    # Component configs
    # =========================================================================

    def scoring_config(self) -> ScoringConfig:
        defaults = ScoringConfig()
        return ScoringConfig(
            half_life_days=float(self.get('scoring', 'half_life_days', defaults.half_life_days)),
            play_count_saturation=int(self.get('scoring', 'play_count_saturation', defaults.play_count_saturation)),
            rating_scale=float(self.get('scoring', 'rating_scale', defaults.rating_scale)),
            recency_weight=float(self.get('scoring', 'recency_weight', defaults.recency_weight)),
            fallback_weight=float(self.get('scoring', 'fallback_weight', defaults.fallback_weight)),
            rating_weight=float(self.get('scoring', 'rating_weight', defaults.rating_weight)),
            play_count_weight=float(self.get('scoring', 'play_count_weight', defaults.play_count_weight)),
        )

    def discovery_config(self) -> DiscoveryConfig:
        defaults = DiscoveryConfig()
        return DiscoveryConfig(
            min_days_since_play=self.min_days_since_play,
            max_history_entries=int(self.get('discovery', 'max_history_entries', defaults.max_history_entries)),
            page_size=int(self.get('discovery', 'page_size', defaults.page_size)),
            include_high_rated=bool(self.get('discovery', 'include_high_rated', defaults.include_high_rated)),
            high_rating_threshold=float(self.get('discovery', 'high_rating_threshold', defaults.high_rating_threshold)),
            min_plays_unrated=int(self.get('discovery', 'min_plays_unrated', defaults.min_plays_unrated)),
            score_floor=float(self.get('discovery', 'score_floor', defaults.score_floor)),
            forgotten_days=int(self.get('discovery', 'forgotten_days', defaults.forgotten_days)),
            genre_ignore_list=self.genre_ignore_list,
        )

    def fallback_config(self) -> FallbackConfig:
        defaults = FallbackConfig()
        genre_filter = self.get('fallback', 'genre_filter') or ()
        if isinstance(genre_filter, str):
            genre_filter = (genre_filter,)
        return FallbackConfig(
            enabled=bool(self.get('fallback', 'enabled', defaults.enabled)),
            fetch_multiplier=int(self.get('fallback', 'fetch_multiplier', defaults.fetch_multiplier)),
            genre_fetch_multiplier=int(self.get('fallback', 'genre_fetch_multiplier', defaults.genre_fetch_multiplier)),
            section_name=self.get('fallback', 'section_name'),
            include_most_played=bool(self.get('fallback', 'include_most_played', defaults.include_most_played)),
            genre_filter=tuple(genre_filter),
        )

    def selection_config(self, target_count: Optional[int] = None) -> SelectionConfig:
        defaults = SelectionConfig()
        return SelectionConfig(
            target_count=target_count if target_count is not None else self.target_size,
            max_per_artist=int(self.get('selection', 'max_per_artist', defaults.max_per_artist)),
            max_genre_share=float(self.get('selection', 'max_genre_share', defaults.max_genre_share)),
            exclude_ids=frozenset(str(i) for i in self.get('selection', 'exclude_ids', []) or []),
        )

    def exploration_config(self) -> ExplorationConfig:
        defaults = ExplorationConfig()
        return ExplorationConfig(
            baseline=float(self.get('exploration', 'baseline', defaults.baseline)),
            step=float(self.get('exploration', 'step', defaults.step)),
            large_library_threshold=int(self.get('exploration', 'large_library_threshold', defaults.large_library_threshold)),
            high_skip_rate=float(self.get('exploration', 'high_skip_rate', defaults.high_skip_rate)),
            min_rate=float(self.get('exploration', 'min_rate', defaults.min_rate)),
            max_rate=float(self.get('exploration', 'max_rate', defaults.max_rate)),
        )

    def adaptive_config(self) -> AdaptiveConfig:
        defaults = AdaptiveConfig()
        return AdaptiveConfig(
            enabled=bool(self.get('adaptive', 'enabled', defaults.enabled)),
            min_skip_count=int(self.get('adaptive', 'min_skip_count', defaults.min_skip_count)),
            sensitivity=int(self.get('adaptive', 'sensitivity', defaults.sensitivity)),
            window_seconds=float(self.get('adaptive', 'window_minutes', defaults.window_seconds / 60)) * 60,
            cooldown_seconds=float(self.get('adaptive', 'cooldown_seconds', defaults.cooldown_seconds)),
            max_removals=int(self.get('adaptive', 'max_removals', defaults.max_removals)),
            backfill=bool(self.get('adaptive', 'backfill', defaults.backfill)),
            backfill_seeds=int(self.get('adaptive', 'backfill_seeds', defaults.backfill_seeds)),
            session_timeout_seconds=float(self.get('adaptive', 'session_timeout_seconds', defaults.session_timeout_seconds)),
            max_sessions=int(self.get('adaptive', 'max_sessions', defaults.max_sessions)),
        )

    def curation_config(self, target_count: Optional[int] = None) -> CurationConfig:
        """Everything a playlist run needs, in one value"""
        override = self.get('exploration', 'rate_override')
        return CurationConfig(
            scoring=self.scoring_config(),
            discovery=self.discovery_config(),
            fallback=self.fallback_config(),
            selection=self.selection_config(target_count),
            exploration=self.exploration_config(),
            exploration_rate_override=float(override) if override is not None else None,
        )

    def __repr__(self) -> str:
        return f"Config(path={self.config_path}, sections={sorted(self.config.keys())})"
