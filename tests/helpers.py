"""Builders and fake collaborators shared by the test suite."""

from datetime import datetime, timedelta, timezone

from curator.playlist.models import CandidateTrack, HistoryEntry

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def days_ago(days: float, now: datetime = NOW) -> datetime:
    return now - timedelta(days=days)


def make_candidate(
    track_id: str,
    artist: str = "Artist",
    genre=None,
    score: float = 0.5,
    **kwargs,
) -> CandidateTrack:
    """Candidate with only the fields the selector looks at."""
    return CandidateTrack(
        track_id=track_id,
        artist=artist,
        album=kwargs.pop("album", "Album"),
        title=kwargs.pop("title", f"Song {track_id}"),
        genre=genre,
        recency_weight=kwargs.pop("recency_weight", 0.0),
        fallback_score=kwargs.pop("fallback_score", score),
        final_score=score,
        **kwargs,
    )


class FakeHistory:
    """History collaborator serving a fixed newest-first list, recording page calls."""

    def __init__(self, entries):
        self.entries = list(entries)
        self.calls = []

    def history(self, page_offset, page_size):
        self.calls.append((page_offset, page_size))
        return self.entries[page_offset:page_offset + page_size]


class FakeLookup:
    """Track lookup over a dict; ids not in the dict are unresolvable."""

    def __init__(self, records):
        self.records = {r.track_id: r for r in records}
        self.requested = []

    def fetch_tracks(self, track_ids):
        ids = list(track_ids)
        self.requested.append(ids)
        return {tid: self.records[tid] for tid in ids if tid in self.records}


def plays(track_id: str, count: int, last_days_ago: float, spacing_days: float = 1.0):
    """``count`` history entries for a track, newest at ``last_days_ago``."""
    return [
        HistoryEntry(track_id=track_id, played_at=days_ago(last_days_ago + i * spacing_days))
        for i in range(count)
    ]
