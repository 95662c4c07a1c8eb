from .config import (
    CurationConfig,
    DiscoveryConfig,
    ExplorationConfig,
    FallbackConfig,
    ScoringConfig,
    SelectionConfig,
)
from .errors import (
    CurationError,
    InsufficientCandidatesError,
    NoDataError,
    NoListeningHistoryError,
    NoMusicSectionError,
)
from .models import (
    CandidateTrack,
    DiscoveryStats,
    HistoryEntry,
    PlaylistResult,
    ScoreBreakdown,
    SelectionResult,
    TrackRecord,
)
from .runner import generate_playlist

from . import discovery
from . import exploration
from . import fallback
from . import history_analyzer
from . import scoring
from . import selector

__all__ = [
    "CurationConfig",
    "DiscoveryConfig",
    "ExplorationConfig",
    "FallbackConfig",
    "ScoringConfig",
    "SelectionConfig",
    "CurationError",
    "InsufficientCandidatesError",
    "NoDataError",
    "NoListeningHistoryError",
    "NoMusicSectionError",
    "CandidateTrack",
    "DiscoveryStats",
    "HistoryEntry",
    "PlaylistResult",
    "ScoreBreakdown",
    "SelectionResult",
    "TrackRecord",
    "generate_playlist",
    "discovery",
    "exploration",
    "fallback",
    "history_analyzer",
    "scoring",
    "selector",
]
