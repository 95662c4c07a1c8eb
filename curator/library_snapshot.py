"""
File-backed library collaborator.

A snapshot is a YAML or JSON document exported from the media server:

    tracks:
      - id: "101"
        title: "Teardrop"
        artist: "Massive Attack"
        album: "Mezzanine"
        genres: ["Trip Hop", "Electronic"]
        rating: 8            # 0-10, optional
        view_count: 14       # optional
        last_viewed_at: 1699999999   # epoch s/ms or ISO-8601, optional
        section: "Music"     # optional, defaults to the first audio section
    history:
      - track_id: "101"
        played_at: "2024-01-02T20:15:00Z"
        type: track          # optional, defaults to "track"
    sections:
      - title: "Music"
        type: audio
    discovery_playlist: false

LibrarySnapshot implements every collaborator the curation pipeline reads
from: track lookup, history paging, library sections and exploration signals.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml

from curator.playlist.models import HistoryEntry, TrackRecord

logger = logging.getLogger(__name__)

_MS_EPOCH_CUTOFF = 1e12

_SORT_FIELDS = {
    "userRating": lambda t: t.user_rating or 0.0,
    "viewCount": lambda t: t.play_count or 0,
    "lastViewedAt": lambda t: t.last_played.timestamp() if t.last_played else 0.0,
    "titleSort": lambda t: t.title.casefold(),
}


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse epoch seconds, epoch milliseconds or ISO-8601 into an aware UTC datetime.

    Numbers above 1e12 are treated as milliseconds. Naive ISO strings are UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        seconds = value / 1000.0 if value > _MS_EPOCH_CUTOFF else float(value)
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    text = str(value).strip()
    if text.lstrip("-").replace(".", "", 1).isdigit():
        return parse_timestamp(float(text))
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _track_from_dict(raw: Dict[str, Any]) -> TrackRecord:
    genres = raw.get("genres") or []
    if isinstance(genres, str):
        genres = [genres]
    rating = raw.get("rating", raw.get("user_rating"))
    return TrackRecord(
        track_id=str(raw["id"]),
        title=raw.get("title", ""),
        artist=raw.get("artist", ""),
        album=raw.get("album", ""),
        genres=tuple(str(g) for g in genres),
        user_rating=float(rating) if rating is not None else None,
        play_count=int(raw.get("view_count", raw.get("play_count", 0)) or 0),
        last_played=parse_timestamp(raw.get("last_viewed_at", raw.get("last_played"))),
    )


class SnapshotSection:
    """One library section; ``search_tracks`` mirrors the server's search query."""

    def __init__(self, title: str, content_type: str, tracks: List[TrackRecord]):
        self.title = title
        self.content_type = content_type
        self._tracks = tracks

    def search_tracks(self, sort: str = "userRating:desc", libtype: str = "track", maxresults: Optional[int] = None) -> List[TrackRecord]:
        if libtype != "track":
            return []
        field_name, _, direction = sort.partition(":")
        key = _SORT_FIELDS.get(field_name)
        if key is None:
            raise ValueError(f"Unsupported sort field: {field_name}")
        ordered = sorted(self._tracks, key=key, reverse=(direction or "asc") == "desc")
        return ordered[:maxresults] if maxresults is not None else ordered

    def __repr__(self) -> str:
        return f"SnapshotSection({self.title!r}, {self.content_type!r}, {len(self._tracks)} tracks)"


class LibrarySnapshot:
    """In-memory library built from a snapshot document."""

    def __init__(
        self,
        tracks: Iterable[TrackRecord],
        history: Iterable[HistoryEntry] = (),
        sections: Optional[List[Dict[str, str]]] = None,
        track_sections: Optional[Dict[str, str]] = None,
        discovery_playlist: bool = False,
    ):
        self.tracks: Dict[str, TrackRecord] = {t.track_id: t for t in tracks}
        self._history = sorted(history, key=lambda e: e.played_at, reverse=True)
        self.discovery_playlist = discovery_playlist

        section_defs = sections or [{"title": "Music", "type": "audio"}]
        default_audio = next((s["title"] for s in section_defs if s.get("type") == "audio"), None)
        track_sections = track_sections or {}
        self._sections = []
        for definition in section_defs:
            title = definition["title"]
            members = [
                t for t in self.tracks.values()
                if track_sections.get(t.track_id, default_audio) == title
            ]
            self._sections.append(SnapshotSection(title, definition.get("type", "audio"), members))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibrarySnapshot":
        data = data or {}
        raw_tracks = data.get("tracks") or []
        tracks = [_track_from_dict(raw) for raw in raw_tracks]
        history = [
            HistoryEntry(
                track_id=str(raw["track_id"]),
                played_at=parse_timestamp(raw["played_at"]),
                entry_type=raw.get("type", "track"),
            )
            for raw in data.get("history") or []
        ]
        track_sections = {str(raw["id"]): raw["section"] for raw in raw_tracks if raw.get("section")}
        return cls(
            tracks,
            history,
            sections=data.get("sections"),
            track_sections=track_sections,
            discovery_playlist=bool(data.get("discovery_playlist", False)),
        )

    @classmethod
    def load(cls, path: Union[str, Path]) -> "LibrarySnapshot":
        """Load a .json, .yaml or .yml snapshot."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Library snapshot not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
        snapshot = cls.from_dict(data)
        logger.info(
            f"Loaded snapshot {path.name}: {len(snapshot.tracks)} tracks, "
            f"{len(snapshot._history)} history entries"
        )
        return snapshot

    # Track lookup
    def fetch_tracks(self, track_ids: Iterable[str]) -> Dict[str, TrackRecord]:
        return {tid: self.tracks[tid] for tid in track_ids if tid in self.tracks}

    # History source
    def history(self, page_offset: int, page_size: int) -> List[HistoryEntry]:
        return self._history[page_offset:page_offset + page_size]

    # Library sections
    def sections(self) -> List[SnapshotSection]:
        return list(self._sections)

    # Exploration signals
    def total_track_count(self) -> int:
        return len(self.tracks)

    def has_enabled_discovery_playlist(self) -> bool:
        return self.discovery_playlist
