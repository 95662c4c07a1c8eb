"""
Exploration rate: the share of a playlist reserved for exploratory picks.

    baseline 0.15
    +0.03  library larger than 10,000 tracks
    +0.03  recent skip rate above 0.30
    -0.03  an always-on discovery playlist is enabled
    clamp to [0.10, 0.20]

Signal failures never abort a run: the calculator falls back to baseline.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from curator.playlist.config import ExplorationConfig

logger = logging.getLogger(__name__)


def exploration_rate(
    *,
    library_size: int,
    skip_rate: float,
    has_discovery_playlist: bool,
    config: ExplorationConfig = ExplorationConfig(),
) -> float:
    """Pure rate computation from already-read signals."""
    rate = config.baseline
    if library_size > config.large_library_threshold:
        rate += config.step
    if skip_rate > config.high_skip_rate:
        rate += config.step
    if has_discovery_playlist:
        rate -= config.step
    rate = max(config.min_rate, min(config.max_rate, rate))
    return round(rate, 4)


def compute_exploration_rate(signals, config: ExplorationConfig = ExplorationConfig()) -> float:
    """
    Read signals and compute the rate, falling back to baseline on any failure.

    Args:
        signals: Object exposing ``total_track_count()``, ``recent_skip_rate()``
            and ``has_enabled_discovery_playlist()``
        config: Baseline, step, thresholds and clamp bounds
    """
    try:
        library_size = int(signals.total_track_count())
        skip_rate = float(signals.recent_skip_rate())
        has_discovery = bool(signals.has_enabled_discovery_playlist())
    except Exception as e:
        logger.warning(f"Exploration signals unavailable ({e}); using baseline {config.baseline:.2f}")
        return config.baseline

    rate = exploration_rate(
        library_size=library_size,
        skip_rate=skip_rate,
        has_discovery_playlist=has_discovery,
        config=config,
    )
    logger.info(
        f"Exploration rate {rate:.2f} (library={library_size:,}, skip_rate={skip_rate:.2f}, "
        f"discovery_playlist={'on' if has_discovery else 'off'})"
    )
    return rate


class StaticSignals:
    """Signals fixed up front, e.g. from configuration or CLI flags."""

    def __init__(self, library_size: int = 0, skip_rate: float = 0.0, discovery_playlist: bool = False):
        self.library_size = library_size
        self.skip_rate = skip_rate
        self.discovery_playlist = discovery_playlist

    def total_track_count(self) -> int:
        return self.library_size

    def recent_skip_rate(self) -> float:
        return self.skip_rate

    def has_enabled_discovery_playlist(self) -> bool:
        return self.discovery_playlist


class LibrarySignals:
    """
    Signals read live from collaborators.

    Args:
        library: Object with ``total_track_count()``
        skip_rate_fn: Callable returning the recent skip rate, e.g.
            SkipPatternDetector.recent_skip_rate
        discovery_playlist: Whether an always-on discovery playlist is enabled
    """

    def __init__(
        self,
        library,
        skip_rate_fn: Optional[Callable[[], float]] = None,
        discovery_playlist: bool = False,
    ):
        self.library = library
        self.skip_rate_fn = skip_rate_fn
        self.discovery_playlist = discovery_playlist

    def total_track_count(self) -> int:
        return self.library.total_track_count()

    def recent_skip_rate(self) -> float:
        return self.skip_rate_fn() if self.skip_rate_fn else 0.0

    def has_enabled_discovery_playlist(self) -> bool:
        return self.discovery_playlist
