"""
Per-session detector state and the registry of managed playlists.

SessionCache is a bounded, lock-guarded map of session id -> SessionState with
LRU eviction and idle expiry. PlaylistRegistry records every playlist the
system generated; events for any other playlist are ignored.
"""
from __future__ import annotations

import logging
import threading
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Deque, Dict, Iterable, List, Optional, Set

from curator.adaptive.models import PlaylistTrack, SessionPhase, SkipRecord

logger = logging.getLogger(__name__)

# Completed plays remembered per session (backfill seeds)
RECENT_PLAYS_KEPT = 20


@dataclass
class SessionState:
    """Mutable state of one listening session. Only touched under the cache lock."""
    session_id: str
    phase: SessionPhase = SessionPhase.IDLE
    playlist_id: Optional[str] = None
    position: int = -1
    skips: Deque[SkipRecord] = field(default_factory=deque)
    recent_plays: Deque[str] = field(default_factory=lambda: deque(maxlen=RECENT_PLAYS_KEPT))
    removed_ids: Set[str] = field(default_factory=set)
    last_adaptation: Optional[datetime] = None
    last_event_at: Optional[datetime] = None
    plays: int = 0
    skips_total: int = 0
    adaptations: int = 0

    def prune_skips(self, now: datetime, window: timedelta) -> None:
        """Drop skips that fell out of the sliding window."""
        while self.skips and now - self.skips[0].at >= window:
            self.skips.popleft()

    def snapshot(self) -> Dict[str, object]:
        return {
            "session_id": self.session_id,
            "phase": self.phase.value,
            "playlist_id": self.playlist_id,
            "position": self.position,
            "window_skips": len(self.skips),
            "plays": self.plays,
            "skips": self.skips_total,
            "adaptations": self.adaptations,
            "removed": sorted(self.removed_ids),
            "last_event_at": self.last_event_at.isoformat() if self.last_event_at else None,
        }


class SessionCache:
    """
    Bounded session map with LRU eviction and idle expiry.

    Args:
        max_sessions: Sessions kept before the least recently used is evicted
        timeout_seconds: Sessions idle longer than this are expired on access
    """

    def __init__(self, max_sessions: int = 256, timeout_seconds: float = 3600.0):
        self.max_sessions = max_sessions
        self.timeout = timedelta(seconds=timeout_seconds)
        self._sessions: OrderedDict[str, SessionState] = OrderedDict()
        self.lock = threading.RLock()
        self.evicted = 0
        self.expired = 0

    def get_or_create(self, session_id: str, now: datetime) -> SessionState:
        with self.lock:
            self.expire(now)
            state = self._sessions.get(session_id)
            if state is None:
                state = SessionState(session_id=session_id)
                self._sessions[session_id] = state
                while len(self._sessions) > self.max_sessions:
                    old_id, _ = self._sessions.popitem(last=False)
                    self.evicted += 1
                    logger.debug(f"Evicted least recently used session {old_id}")
            else:
                self._sessions.move_to_end(session_id)
            return state

    def get(self, session_id: str) -> Optional[SessionState]:
        with self.lock:
            return self._sessions.get(session_id)

    def expire(self, now: datetime) -> int:
        """Remove sessions idle past the timeout; returns how many were removed."""
        with self.lock:
            stale = [
                sid for sid, state in self._sessions.items()
                if state.last_event_at is not None and now - state.last_event_at > self.timeout
            ]
            for sid in stale:
                del self._sessions[sid]
            if stale:
                self.expired += len(stale)
                logger.info(f"Expired {len(stale)} idle session(s)")
            return len(stale)

    def values(self) -> List[SessionState]:
        with self.lock:
            return list(self._sessions.values())

    def clear(self) -> None:
        with self.lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self.lock:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self.lock:
            return session_id in self._sessions


class PlaylistRegistry:
    """Playlists generated by this system, in playlist order."""

    def __init__(self):
        self._playlists: Dict[str, List[PlaylistTrack]] = {}
        self._track_index: Dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, playlist_id: str, tracks: Iterable[PlaylistTrack]) -> None:
        tracks = list(tracks)
        with self._lock:
            self._forget(playlist_id)
            self._playlists[playlist_id] = tracks
            for track in tracks:
                self._track_index.setdefault(track.track_id, playlist_id)
        logger.info(f"Registered managed playlist {playlist_id} ({len(tracks)} tracks)")

    def unregister(self, playlist_id: str) -> None:
        with self._lock:
            self._forget(playlist_id)

    def _forget(self, playlist_id: str) -> None:
        old = self._playlists.pop(playlist_id, None)
        if not old:
            return
        for track in old:
            if self._track_index.get(track.track_id) == playlist_id:
                del self._track_index[track.track_id]

    def is_managed(self, playlist_id: Optional[str]) -> bool:
        with self._lock:
            return playlist_id is not None and playlist_id in self._playlists

    def playlist_for_track(self, track_id: str) -> Optional[str]:
        with self._lock:
            return self._track_index.get(track_id)

    def tracks(self, playlist_id: str) -> List[PlaylistTrack]:
        with self._lock:
            return list(self._playlists.get(playlist_id, ()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._playlists)
