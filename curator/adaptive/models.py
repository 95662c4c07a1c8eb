"""
Data shapes for the adaptive skip-pattern detector.

Events come in from the playback webhook; commands go out to the playback
queue collaborator.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

PLAYED = "played"
SKIPPED = "skipped"
REMOVE = "remove"
ADD_SIMILAR = "addSimilar"

# A stop below this completion ratio counts as a skip
SKIP_COMPLETION_THRESHOLD = 0.9


class SessionPhase(Enum):
    IDLE = "idle"
    TRACKING = "tracking"
    COOLDOWN = "cooldown"


@dataclass(frozen=True)
class AdaptiveConfig:
    """
    Detector tuning.

    Sensitivity (1-10) scales min_skip_count linearly from x2.0 at 1 to
    x0.5 at 10; the default 5 gives x1.33 (3 skips for min_skip_count=2).
    The resulting threshold is never below 1.
    """
    enabled: bool = True
    min_skip_count: int = 2
    sensitivity: int = 5
    window_seconds: float = 300.0
    cooldown_seconds: float = 10.0
    max_removals: int = 10
    backfill: bool = True
    backfill_seeds: int = 3
    session_timeout_seconds: float = 3600.0
    max_sessions: int = 256

    @property
    def skip_threshold(self) -> int:
        sensitivity = max(1, min(10, self.sensitivity))
        multiplier = 2.0 - (sensitivity - 1) * 1.5 / 9
        # half rounds up (2.5 -> 3), unlike round()
        return max(1, int(math.floor(self.min_skip_count * multiplier + 0.5)))


@dataclass(frozen=True)
class PlaybackEvent:
    session_id: str
    track_id: str
    event_type: str  # PLAYED | SKIPPED
    timestamp: datetime
    artist: Optional[str] = None
    genres: Tuple[str, ...] = ()
    playlist_id: Optional[str] = None

    def __post_init__(self):
        if self.event_type not in (PLAYED, SKIPPED):
            raise ValueError(f"Unknown playback event type: {self.event_type}")


@dataclass(frozen=True)
class QueueCommand:
    session_id: str
    action: str  # REMOVE | ADD_SIMILAR
    track_ids: Tuple[str, ...]
    reason: str = ""

    def as_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "action": self.action,
            "trackIds": list(self.track_ids),
            "reason": self.reason,
        }


@dataclass(frozen=True)
class PlaylistTrack:
    """A track of a playlist the system generated, as the detector sees it."""
    track_id: str
    artist: str = ""
    genres: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SkipRecord:
    track_id: str
    at: datetime
    artist_key: str
    genres: Tuple[str, ...]
