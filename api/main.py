import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Literal, Optional

from fastapi import FastAPI, Form, HTTPException
from pydantic import BaseModel, Field

# Allow importing the curator package when run from a checkout
ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from curator.adaptive import (  # type: ignore
    HttpCommandSink,
    PlaybackEvent,
    PlaylistTrack,
    QueueCommandDispatcher,
    RecordingSink,
    SkipPatternDetector,
)
from curator.adaptive.models import PLAYED, SKIPPED, SKIP_COMPLETION_THRESHOLD  # type: ignore
from curator.config_loader import Config  # type: ignore
from curator.library_snapshot import LibrarySnapshot  # type: ignore
from curator.playlist.exploration import LibrarySignals, compute_exploration_rate  # type: ignore

CONFIG_PATH = Path(os.getenv("CURATOR_CONFIG_PATH", ROOT_DIR / "config.yaml"))

logger = logging.getLogger("curator.api")

app = FastAPI(title="Playlist Curator API")


def _load_config() -> Config:
    if CONFIG_PATH.exists():
        return Config(str(CONFIG_PATH))
    logger.info(f"No config at {CONFIG_PATH}; using defaults")
    return Config.from_dict({})


def build_detector(config: Config) -> SkipPatternDetector:
    """Detector wired to the configured command endpoint (in-memory sink without one)."""
    if config.command_url:
        sink = HttpCommandSink(config.command_url, timeout=config.command_timeout, token=config.command_token)
    else:
        sink = RecordingSink()
    return SkipPatternDetector(config.adaptive_config(), dispatcher=QueueCommandDispatcher(sink))


def load_library(config: Config) -> LibrarySnapshot:
    """Configured library snapshot, or an empty one when none is available."""
    path = config.snapshot_path
    if not path:
        return LibrarySnapshot([], [])
    try:
        return LibrarySnapshot.load(path)
    except FileNotFoundError as e:
        logger.warning(f"{e}; exploration signals will see an empty library")
        return LibrarySnapshot([], [])


config: Config = _load_config()
detector: SkipPatternDetector = build_detector(config)
library: LibrarySnapshot = load_library(config)


# =============================================================================
# Request / response models
# =============================================================================

class PlaybackEventIn(BaseModel):
    sessionId: str
    trackId: str
    eventType: Literal["played", "skipped"]
    timestamp: Optional[datetime] = None
    artist: Optional[str] = None
    genres: List[str] = Field(default_factory=list)
    playlistId: Optional[str] = None


class QueueCommandOut(BaseModel):
    sessionId: str
    action: Literal["remove", "addSimilar"]
    trackIds: List[str]
    reason: str = ""


class EventResponse(BaseModel):
    accepted: bool
    event: Optional[str] = None
    commands: List[QueueCommandOut] = Field(default_factory=list)


class PlaylistTrackIn(BaseModel):
    trackId: str
    artist: str = ""
    genres: List[str] = Field(default_factory=list)


class RegisterPlaylistRequest(BaseModel):
    tracks: List[PlaylistTrackIn]


# =============================================================================
# Plex webhook translation
# =============================================================================

def _utc(ts: Optional[datetime]) -> datetime:
    if ts is None:
        return datetime.now(timezone.utc)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def translate_plex_payload(payload: Dict, now: Optional[datetime] = None) -> Optional[PlaybackEvent]:
    """
    Map a Plex webhook payload to a PlaybackEvent.

    media.scrobble -> played; media.stop below 90% completion -> skipped;
    everything else (play, pause, resume, non-track media) -> None.
    """
    event = payload.get("event")
    metadata = payload.get("Metadata") or {}
    if metadata.get("type", "track") != "track":
        return None

    if event == "media.scrobble":
        event_type = PLAYED
    elif event == "media.stop":
        duration = metadata.get("duration") or 0
        offset = metadata.get("viewOffset") or 0
        if duration and offset / duration >= SKIP_COMPLETION_THRESHOLD:
            return None
        event_type = SKIPPED
    else:
        return None

    session_id = (payload.get("Player") or {}).get("uuid")
    track_id = metadata.get("ratingKey")
    if not session_id or not track_id:
        return None

    genres = tuple(g.get("tag", "") for g in metadata.get("Genre") or [] if isinstance(g, dict))
    return PlaybackEvent(
        session_id=str(session_id),
        track_id=str(track_id),
        event_type=event_type,
        timestamp=_utc(now),
        artist=metadata.get("grandparentTitle") or metadata.get("originalTitle"),
        genres=genres,
        playlist_id=payload.get("playlistId"),
    )


def _commands_out(commands) -> List[QueueCommandOut]:
    return [QueueCommandOut(**command.as_dict()) for command in commands]


# =============================================================================
# Routes
# =============================================================================

@app.get("/health")
def health() -> Dict[str, object]:
    return {
        "status": "ok",
        "adaptive_enabled": detector.config.enabled,
        "managed_playlists": len(detector.registry),
        "sessions": len(detector.sessions),
    }


@app.post("/webhooks/plex", response_model=EventResponse)
def plex_webhook(payload: str = Form(...)) -> EventResponse:
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid webhook payload: {exc}")
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="Webhook payload must be a JSON object")

    event = translate_plex_payload(data)
    if event is None:
        return EventResponse(accepted=False, event=data.get("event"))
    commands = detector.handle_event(event)
    return EventResponse(accepted=True, event=event.event_type, commands=_commands_out(commands))


@app.post("/events", response_model=EventResponse)
def playback_event(body: PlaybackEventIn) -> EventResponse:
    event = PlaybackEvent(
        session_id=body.sessionId,
        track_id=body.trackId,
        event_type=body.eventType,
        timestamp=_utc(body.timestamp),
        artist=body.artist,
        genres=tuple(body.genres),
        playlist_id=body.playlistId,
    )
    commands = detector.handle_event(event)
    return EventResponse(accepted=True, event=event.event_type, commands=_commands_out(commands))


@app.post("/playlists/{playlist_id}")
def register_playlist(playlist_id: str, body: RegisterPlaylistRequest) -> Dict[str, object]:
    if not body.tracks:
        raise HTTPException(status_code=400, detail="Playlist has no tracks")
    detector.register_playlist(
        playlist_id,
        [PlaylistTrack(t.trackId, t.artist, tuple(t.genres)) for t in body.tracks],
    )
    return {"playlist_id": playlist_id, "tracks": len(body.tracks)}


@app.delete("/playlists/{playlist_id}")
def unregister_playlist(playlist_id: str) -> Dict[str, object]:
    if not detector.registry.is_managed(playlist_id):
        raise HTTPException(status_code=404, detail="Playlist not managed")
    detector.registry.unregister(playlist_id)
    return {"playlist_id": playlist_id, "removed": True}


@app.get("/sessions/{session_id}")
def session_state(session_id: str) -> Dict[str, object]:
    snapshot = detector.session_snapshot(session_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return snapshot


@app.get("/stats/skip-rate")
def skip_rate() -> Dict[str, float]:
    return {"skip_rate": round(detector.recent_skip_rate(), 4)}


@app.get("/stats/exploration-rate")
def exploration_rate() -> Dict[str, float]:
    """Exploration rate the next playlist run would use, from live signals."""
    signals = LibrarySignals(
        library,
        skip_rate_fn=detector.recent_skip_rate,
        discovery_playlist=library.has_enabled_discovery_playlist() or config.discovery_playlist_enabled,
    )
    return {
        "exploration_rate": compute_exploration_rate(signals, config.exploration_config()),
        "library_size": library.total_track_count(),
    }
