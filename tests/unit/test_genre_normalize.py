"""Unit tests for genre normalization (rewrite table v1)."""

import re

import pytest

from curator.genre.normalize import (
    DEFAULT_GENRE_IGNORE_LIST,
    GENRE_REWRITES,
    filter_meta_genres,
    genre_matches_filter,
    genres_match_filter,
    normalize_genre,
    normalize_genre_list,
    primary_genre,
    process_genres,
)


# =============================================================================
# normalize_genre
# =============================================================================

class TestNormalizeGenre:
    """Single tag canonicalization."""

    @pytest.mark.parametrize("raw", ["Synth Pop", "synthpop", "SYNTH-POP", "  synth   pop "])
    def test_synth_pop_variants(self, raw):
        assert normalize_genre(raw) == "synth-pop"

    @pytest.mark.parametrize("raw", ["Hip Hop", "hiphop", "HIP-HOP"])
    def test_hip_hop_variants(self, raw):
        assert normalize_genre(raw) == "hip-hop"

    @pytest.mark.parametrize("raw", ["drum and bass", "Drum & Bass", "drum'n'bass", "DnB", "drum n bass"])
    def test_drum_and_bass_variants(self, raw):
        assert normalize_genre(raw) == "drum-n-bass"

    def test_drum_and_bass_keeps_prefix(self):
        assert normalize_genre("Jungle/Drum'n'Bass") == "jungle/drum-n-bass"

    def test_slash_compounds(self):
        assert normalize_genre("Pop Rock") == "pop/rock"
        assert normalize_genre("Singer-Songwriter") == "singer/songwriter"
        assert normalize_genre("singer songwriter") == "singer/songwriter"

    @pytest.mark.parametrize("raw,expected", [
        ("Trip Hop", "trip-hop"),
        ("trip-hop", "trip-hop"),
        ("Electro Swing", "electro-swing"),
        ("Tech House", "tech-house"),
        ("Nu Jazz", "nu-jazz"),
        ("Post Hardcore", "post-hardcore"),
        ("Chill Out", "chillout"),
        ("chill-out", "chillout"),
        ("K Pop", "k-pop"),
        ("kpop", "k-pop"),
        ("R&B", "rnb"),
        ("r & b", "rnb"),
        ("Rhythm and Blues", "rnb"),
    ])
    def test_rewrite_table(self, raw, expected):
        assert normalize_genre(raw) == expected

    def test_empty_and_whitespace(self):
        assert normalize_genre("") == ""
        assert normalize_genre("   ") == ""
        assert normalize_genre(None) == ""

    def test_collapses_whitespace_and_lowercases(self):
        assert normalize_genre("  Progressive    ROCK ") == "progressive rock"

    def test_strips_edge_separators(self):
        assert normalize_genre("-shoegaze/") == "shoegaze"

    def test_unrelated_words_untouched(self):
        assert normalize_genre("Punk Pop") == "punk pop"
        assert normalize_genre("Pop Rock Ballads") == "pop rock ballads"

    def test_idempotent_on_canonical_forms(self):
        for canonical in ["drum-n-bass", "jungle/drum-n-bass", "rnb", "pop/rock", "singer/songwriter", "hip-hop"]:
            assert normalize_genre(canonical) == canonical

    def test_table_is_data(self):
        assert all(isinstance(p, re.Pattern) for _, p, _ in GENRE_REWRITES)

    def test_custom_table(self):
        table = (("shoegaze", re.compile(r"\bshoe gaze\b"), "shoegaze"),)
        assert normalize_genre("Shoe Gaze", rewrites=table) == "shoegaze"
        # default rules are not applied with a custom table
        assert normalize_genre("synth pop", rewrites=table) == "synth pop"

    @pytest.mark.parametrize("raw,expected", [
        ("/ Pop Rock", "pop/rock"),
        ("Pop Rock -", "pop/rock"),
        ("- Trip Hop /", "trip-hop"),
        ("Rock DNB Drum and Bass", "rock drum-n-bass drum-n-bass"),
    ])
    def test_edge_separators_and_repeated_compounds(self, raw, expected):
        assert normalize_genre(raw) == expected


# =============================================================================
# normalize_genre_list / filter_meta_genres / process_genres
# =============================================================================

class TestGenreLists:

    def test_sorted_deduplicated(self):
        result = normalize_genre_list(["Synth Pop", "synthpop", "Ambient", "", "  ", "ambient"])
        assert result == ["ambient", "synth-pop"]

    def test_idempotent(self):
        raws = ["Hip Hop", "Trip Hop", "R&B", "drum & bass", "Jazz", "jazz"]
        once = normalize_genre_list(raws)
        assert normalize_genre_list(once) == once
        assert once == sorted(set(once))

    @pytest.mark.parametrize("raws", [
        ["/ Pop Rock"],
        ["Pop Rock -", "-pop rock/"],
        ["Rock DNB Drum and Bass"],
        ["Jungle/DnB", "dnb / drum & bass", "R&B / Rhythm and Blues"],
        ["/ Synth Pop -", "- hip hop -", "singer songwriter /", "  / chill out / "],
    ])
    def test_idempotent_with_edge_separators_and_mixed_compounds(self, raws):
        once = normalize_genre_list(raws)
        assert normalize_genre_list(once) == once

    def test_empty_input(self):
        assert normalize_genre_list([]) == []
        assert normalize_genre_list(None) == []

    def test_filter_meta_removes_umbrella_genres(self):
        assert filter_meta_genres(["electronic", "trip-hop", "Rock"]) == ["trip-hop"]

    def test_filter_meta_never_empties(self):
        genres = ["Pop", "Rock", "electronic"]
        assert filter_meta_genres(genres) == genres

    def test_filter_meta_empty_input(self):
        assert filter_meta_genres([]) == []

    def test_filter_meta_custom_ignore_list(self):
        assert filter_meta_genres(["shoegaze", "dream pop"], ["Dream Pop"]) == ["shoegaze"]

    def test_process_genres(self):
        assert process_genres(["Electronic", "Trip Hop", "trip-hop", "Pop"]) == ["trip-hop"]

    def test_default_ignore_list_contents(self):
        for genre in ["electronic", "pop", "rock", "pop/rock", "club/dance"]:
            assert genre in DEFAULT_GENRE_IGNORE_LIST


# =============================================================================
# primary genre / filters
# =============================================================================

class TestPrimaryGenreAndFilters:

    def test_primary_genre_skips_umbrella(self):
        assert primary_genre(["Electronic", "Trip Hop"]) == "trip-hop"

    def test_primary_genre_keeps_record_order(self):
        assert primary_genre(["Shoegaze", "Dream Pop"]) == "shoegaze"

    def test_primary_genre_only_umbrella(self):
        assert primary_genre(["Rock"]) == "rock"

    def test_primary_genre_untagged(self):
        assert primary_genre([]) is None
        assert primary_genre(["  "]) is None

    def test_matches_filter_substring(self):
        assert genre_matches_filter("Trip Hop", "hop")
        assert genre_matches_filter("Synthpop", "synth pop")
        assert not genre_matches_filter("jazz", "rock")

    def test_matches_filter_empty_term(self):
        assert not genre_matches_filter("jazz", "")

    def test_genres_match_filter(self):
        assert genres_match_filter(["Ambient", "Downtempo"], ["tempo"])
        assert not genres_match_filter(["Ambient"], ["metal", "punk"])
        assert genres_match_filter(["Ambient"], [])
