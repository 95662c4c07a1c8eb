"""
Adaptive skip-pattern detector.

One state machine per listening session, fed by playback events for
playlists this system generated:

    idle --first event--> tracking --adaptation--> cooldown --elapsed--> tracking

While tracking, skips inside a sliding window are counted per genre and per
artist. Reaching the sensitivity-scaled threshold fires "genre fatigue" or
"artist aversion": matching upcoming tracks are removed from the queue and,
optionally, similar tracks are requested as backfill. Cooldown is a
timestamp comparison made when the next event arrives; nothing sleeps.

Usage:
    detector = SkipPatternDetector(AdaptiveConfig(), dispatcher=QueueCommandDispatcher(sink))
    detector.register_playlist("pl-1", tracks)
    commands = detector.handle_event(event)
"""
from __future__ import annotations

import logging
from collections import Counter, deque
from datetime import timedelta
from typing import Iterable, List, Optional, Tuple

from curator.adaptive.commands import QueueCommandDispatcher
from curator.adaptive.models import (
    ADD_SIMILAR,
    PLAYED,
    REMOVE,
    AdaptiveConfig,
    PlaybackEvent,
    PlaylistTrack,
    QueueCommand,
    SessionPhase,
    SkipRecord,
)
from curator.adaptive.sessions import PlaylistRegistry, SessionCache, SessionState
from curator.genre.normalize import normalize_genre_list

logger = logging.getLogger(__name__)

GENRE_FATIGUE = "genre_fatigue"
ARTIST_AVERSION = "artist_aversion"


def _artist_key(artist: Optional[str]) -> str:
    return (artist or "").strip().casefold()


class SkipPatternDetector:
    """
    Watches playback events and issues queue commands on skip patterns.

    Args:
        config: Thresholds, window, cooldown and cache bounds
        dispatcher: Where commands are sent (None: only returned)
        registry: Managed playlists (a fresh one by default)
    """

    def __init__(
        self,
        config: AdaptiveConfig = AdaptiveConfig(),
        dispatcher: Optional[QueueCommandDispatcher] = None,
        registry: Optional[PlaylistRegistry] = None,
    ):
        self.config = config
        self.dispatcher = dispatcher
        self.registry = registry or PlaylistRegistry()
        self.sessions = SessionCache(config.max_sessions, config.session_timeout_seconds)
        self.window = timedelta(seconds=config.window_seconds)
        self.cooldown = timedelta(seconds=config.cooldown_seconds)
        self.ignored_events = 0

    # =========================================================================
    # Registration
    # =========================================================================

    def register_playlist(self, playlist_id: str, tracks: Iterable[PlaylistTrack]) -> None:
        self.registry.register(playlist_id, tracks)

    def _resolve_playlist(self, event: PlaybackEvent, state: Optional[SessionState]) -> Optional[str]:
        if event.playlist_id is not None:
            return event.playlist_id if self.registry.is_managed(event.playlist_id) else None
        if state is not None and self.registry.is_managed(state.playlist_id):
            return state.playlist_id
        return self.registry.playlist_for_track(event.track_id)

    # =========================================================================
    # Event handling
    # =========================================================================

    def handle_event(self, event: PlaybackEvent) -> List[QueueCommand]:
        """
        Update the session for ``event`` and return any commands it triggered.

        Commands are also sent through the dispatcher, outside the session
        lock, when one is configured.
        """
        if not self.config.enabled:
            return []

        with self.sessions.lock:
            commands = self._update(event)

        if self.dispatcher is not None:
            for command in commands:
                self.dispatcher.dispatch(command)
        return commands

    def _update(self, event: PlaybackEvent) -> List[QueueCommand]:
        existing = self.sessions.get(event.session_id)
        playlist_id = self._resolve_playlist(event, existing)
        if playlist_id is None:
            self.ignored_events += 1
            logger.debug(f"Ignoring event for unmanaged playlist (session {event.session_id})")
            return []

        state = self.sessions.get_or_create(event.session_id, event.timestamp)
        if state.playlist_id != playlist_id:
            if state.playlist_id is not None:
                logger.info(f"Session {state.session_id} switched to playlist {playlist_id}")
            state.playlist_id = playlist_id
            state.skips.clear()
            state.removed_ids.clear()
            state.position = -1
        state.last_event_at = event.timestamp

        self._advance_phase(state, event)

        tracks = self.registry.tracks(playlist_id)
        position = next((i for i, t in enumerate(tracks) if t.track_id == event.track_id), None)
        if position is not None:
            state.position = position

        if event.event_type == PLAYED:
            state.plays += 1
            state.recent_plays.append(event.track_id)
            return []

        state.skips_total += 1
        state.skips.append(self._skip_record(event, tracks, position))
        state.prune_skips(event.timestamp, self.window)

        if state.phase is not SessionPhase.TRACKING:
            return []
        if len(state.skips) < self.config.min_skip_count:
            return []
        return self._adapt(state, tracks, event)

    def _advance_phase(self, state: SessionState, event: PlaybackEvent) -> None:
        if state.phase is SessionPhase.IDLE:
            state.phase = SessionPhase.TRACKING
            logger.debug(f"Session {state.session_id}: idle -> tracking")
        elif (
            state.phase is SessionPhase.COOLDOWN
            and state.last_adaptation is not None
            and event.timestamp - state.last_adaptation >= self.cooldown
        ):
            state.phase = SessionPhase.TRACKING
            logger.debug(f"Session {state.session_id}: cooldown -> tracking")

    def _skip_record(
        self,
        event: PlaybackEvent,
        tracks: List[PlaylistTrack],
        position: Optional[int],
    ) -> SkipRecord:
        known = tracks[position] if position is not None else None
        artist = event.artist if event.artist else (known.artist if known else "")
        genres = event.genres if event.genres else (known.genres if known else ())
        return SkipRecord(
            track_id=event.track_id,
            at=event.timestamp,
            artist_key=_artist_key(artist),
            genres=tuple(normalize_genre_list(genres)),
        )

    # =========================================================================
    # Pattern detection
    # =========================================================================

    def detect_patterns(self, skips: Iterable[SkipRecord]) -> Tuple[Optional[str], Optional[str]]:
        """
        Most-skipped genre and artist at or above the threshold.

        Returns:
            (fatigued genre or None, avoided artist key or None)
        """
        skips = list(skips)
        threshold = self.config.skip_threshold
        genre_counts = Counter(g for skip in skips for g in skip.genres)
        artist_counts = Counter(skip.artist_key for skip in skips if skip.artist_key)

        genre = None
        if genre_counts:
            top, count = genre_counts.most_common(1)[0]
            if count >= threshold:
                genre = top
        artist = None
        if artist_counts:
            top, count = artist_counts.most_common(1)[0]
            if count >= threshold:
                artist = top
        return genre, artist

    def _adapt(self, state: SessionState, tracks: List[PlaylistTrack], event: PlaybackEvent) -> List[QueueCommand]:
        genre, artist = self.detect_patterns(state.skips)
        if genre is None and artist is None:
            return []

        upcoming = [
            t for t in tracks[state.position + 1:]
            if t.track_id not in state.removed_ids and t.track_id != event.track_id
        ]
        reasons = []
        if genre is not None:
            reasons.append(f"{GENRE_FATIGUE}:{genre}")
        if artist is not None:
            reasons.append(f"{ARTIST_AVERSION}:{artist}")

        to_remove = []
        for track in upcoming:
            if len(to_remove) >= self.config.max_removals:
                break
            track_genres = normalize_genre_list(track.genres)
            if (genre is not None and genre in track_genres) or (
                artist is not None and _artist_key(track.artist) == artist
            ):
                to_remove.append(track.track_id)

        window_minutes = self.config.window_seconds / 60
        logger.info(
            f"Session {state.session_id}: {', '.join(reasons)} "
            f"({len(state.skips)} skips in {window_minutes:g} min, threshold {self.config.skip_threshold})"
        )

        state.skips = deque(
            s for s in state.skips
            if not ((genre is not None and genre in s.genres) or (artist is not None and s.artist_key == artist))
        )
        if not to_remove:
            logger.info(f"Session {state.session_id}: no upcoming tracks match, queue left unchanged")
            return []

        reason = "; ".join(reasons)
        commands = [QueueCommand(state.session_id, REMOVE, tuple(to_remove), reason)]
        state.removed_ids.update(to_remove)

        if self.config.backfill:
            seeds = self._backfill_seeds(state, upcoming, set(to_remove))
            if seeds:
                commands.append(QueueCommand(state.session_id, ADD_SIMILAR, seeds, f"backfill after {reason}"))

        state.phase = SessionPhase.COOLDOWN
        state.last_adaptation = event.timestamp
        state.adaptations += 1
        logger.debug(f"Session {state.session_id}: tracking -> cooldown ({self.config.cooldown_seconds:g}s)")
        return commands

    def _backfill_seeds(self, state: SessionState, upcoming: List[PlaylistTrack], removed: set) -> Tuple[str, ...]:
        """Most recent completed plays, topped up with kept upcoming tracks."""
        seeds: List[str] = []
        for track_id in reversed(state.recent_plays):
            if track_id not in seeds:
                seeds.append(track_id)
        for track in upcoming:
            if track.track_id not in removed and track.track_id not in seeds:
                seeds.append(track.track_id)
        return tuple(seeds[:self.config.backfill_seeds])

    # =========================================================================
    # Introspection
    # =========================================================================

    def session_phase(self, session_id: str) -> SessionPhase:
        state = self.sessions.get(session_id)
        return state.phase if state else SessionPhase.IDLE

    def session_snapshot(self, session_id: str) -> Optional[dict]:
        with self.sessions.lock:
            state = self.sessions.get(session_id)
            return state.snapshot() if state else None

    def recent_skip_rate(self) -> float:
        """Skips / (skips + plays) over live sessions; 0.0 without data."""
        states = self.sessions.values()
        skips = sum(s.skips_total for s in states)
        total = skips + sum(s.plays for s in states)
        return skips / total if total else 0.0
