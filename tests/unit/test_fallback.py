"""Unit tests for the library-backed fallback candidate builder."""

import pytest

from curator.playlist.config import FallbackConfig
from curator.playlist.errors import NoDataError, NoMusicSectionError
from curator.playlist.fallback import build_fallback_candidates, find_music_section
from curator.playlist.models import TrackRecord
from tests.helpers import NOW, days_ago


class FakeSection:
    def __init__(self, title, content_type="audio", by_sort=None):
        self.title = title
        self.content_type = content_type
        self.by_sort = by_sort or {}
        self.queries = []

    def search_tracks(self, sort, libtype, maxresults):
        self.queries.append({"sort": sort, "libtype": libtype, "maxresults": maxresults})
        return list(self.by_sort.get(sort, []))[:maxresults]


class FakeLibrary:
    def __init__(self, *sections):
        self._sections = list(sections)

    def sections(self):
        return list(self._sections)


def _library(records, most_played=None):
    section = FakeSection("Music", by_sort={
        "userRating:desc": records,
        "viewCount:desc": most_played or [],
    })
    return FakeLibrary(FakeSection("Movies", "movie"), section), section


# =============================================================================
# Section lookup
# =============================================================================

class TestFindMusicSection:

    def test_single_audio_section(self):
        music = FakeSection("Music")
        library = FakeLibrary(FakeSection("Movies", "movie"), music, FakeSection("Shows", "show"))
        assert find_music_section(library) is music

    def test_no_audio_section(self):
        library = FakeLibrary(FakeSection("Movies", "movie"))
        with pytest.raises(NoMusicSectionError) as excinfo:
            find_music_section(library)
        assert isinstance(excinfo.value, NoDataError)

    def test_several_audio_sections_need_a_name(self):
        library = FakeLibrary(FakeSection("Music"), FakeSection("Audiobooks"))
        with pytest.raises(NoMusicSectionError, match="section_name"):
            find_music_section(library)

    def test_named_section(self):
        books = FakeSection("Audiobooks")
        library = FakeLibrary(FakeSection("Music"), books)
        assert find_music_section(library, "audiobooks") is books

    def test_named_section_missing(self):
        library = FakeLibrary(FakeSection("Music"))
        with pytest.raises(NoMusicSectionError, match="Vinyl"):
            find_music_section(library, "Vinyl")

    def test_named_section_must_be_audio(self):
        library = FakeLibrary(FakeSection("Music"), FakeSection("Clips", "movie"))
        with pytest.raises(NoMusicSectionError):
            find_music_section(library, "Clips")


# =============================================================================
# Candidate building
# =============================================================================

class TestBuildFallbackCandidates:

    def test_query_shape(self):
        library, section = _library([])
        build_fallback_candidates(library=library, target_count=50, now=NOW)
        assert section.queries == [{"sort": "userRating:desc", "libtype": "track", "maxresults": 250}]

    def test_genre_filter_widens_fetch(self):
        library, section = _library([])
        config = FallbackConfig(genre_filter=("ambient",))
        build_fallback_candidates(library=library, target_count=20, now=NOW, config=config)
        assert section.queries[0]["maxresults"] == 200

    def test_missing_play_data_defaults(self):
        record = TrackRecord("a", "Song", "Artist", "Album", (), 10.0)
        library, _ = _library([record])
        [candidate] = build_fallback_candidates(library=library, target_count=5, now=NOW)
        assert candidate.play_count == 0
        assert candidate.last_played is None
        assert candidate.recency_weight == 0.0
        # 0.3 * (0.6 * 1.0)
        assert candidate.final_score == pytest.approx(0.18)
        assert candidate.source == "fallback"

    def test_recently_played_scores_recency(self):
        record = TrackRecord("a", user_rating=0.0, play_count=0, last_played=days_ago(7))
        library, _ = _library([record])
        [candidate] = build_fallback_candidates(library=library, target_count=5, now=NOW)
        assert candidate.recency_weight == pytest.approx(0.5)
        assert candidate.days_since_play == 7

    def test_sorted_by_final_score(self):
        records = [
            TrackRecord("top-rated-stale", user_rating=10.0, play_count=0),
            TrackRecord("fresh", user_rating=6.0, play_count=10, last_played=days_ago(1)),
        ]
        library, _ = _library(records)
        candidates = build_fallback_candidates(library=library, target_count=5, now=NOW)
        assert [c.track_id for c in candidates] == ["fresh", "top-rated-stale"]

    def test_exclude_ids(self):
        records = [TrackRecord("a", user_rating=9.0), TrackRecord("b", user_rating=8.0)]
        library, _ = _library(records)
        candidates = build_fallback_candidates(library=library, target_count=5, now=NOW, exclude_ids={"a"})
        assert [c.track_id for c in candidates] == ["b"]

    def test_genre_filter(self):
        records = [
            TrackRecord("a", genres=("Ambient",), user_rating=9.0),
            TrackRecord("b", genres=("Metal",), user_rating=9.0),
            TrackRecord("c", genres=("Dark Ambient", "Drone"), user_rating=5.0),
        ]
        library, _ = _library(records)
        config = FallbackConfig(genre_filter=("ambient",))
        candidates = build_fallback_candidates(library=library, target_count=5, now=NOW, config=config)
        assert [c.track_id for c in candidates] == ["a", "c"]

    def test_most_played_merge_deduplicates(self):
        rated = [TrackRecord("a", user_rating=9.0, play_count=3)]
        played = [TrackRecord("a", user_rating=9.0, play_count=3), TrackRecord("b", play_count=40)]
        library, section = _library(rated, played)
        config = FallbackConfig(include_most_played=True)
        candidates = build_fallback_candidates(library=library, target_count=5, now=NOW, config=config)
        assert sorted(c.track_id for c in candidates) == ["a", "b"]
        assert [q["sort"] for q in section.queries] == ["userRating:desc", "viewCount:desc"]

    def test_no_section_raises(self):
        with pytest.raises(NoMusicSectionError):
            build_fallback_candidates(library=FakeLibrary(), target_count=5, now=NOW)

    def test_snapshot_library(self, sample_snapshot):
        candidates = build_fallback_candidates(
            library=sample_snapshot,
            target_count=10,
            now=NOW,
            exclude_ids={"1", "2", "3", "5"},
        )
        assert [c.track_id for c in candidates] == ["8", "7", "4", "6"]
        assert all(c.source == "fallback" for c in candidates)
