"""
Adaptive queue management
=========================
Live skip-pattern detection for managed playlists and delivery of the
resulting queue commands.
"""

from .commands import HttpCommandSink, QueueCommandDispatcher, RecordingSink
from .detector import SkipPatternDetector
from .models import (
    AdaptiveConfig,
    PlaybackEvent,
    PlaylistTrack,
    QueueCommand,
    SessionPhase,
)
from .sessions import PlaylistRegistry, SessionCache, SessionState

__all__ = [
    'AdaptiveConfig',
    'HttpCommandSink',
    'PlaybackEvent',
    'PlaylistRegistry',
    'PlaylistTrack',
    'QueueCommand',
    'QueueCommandDispatcher',
    'RecordingSink',
    'SessionCache',
    'SessionPhase',
    'SessionState',
    'SkipPatternDetector',
]
