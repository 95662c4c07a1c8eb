"""
Genre normalization
===================
Canonical genre tags for grouping, diversity caps and filtering.
"""

from .normalize import (
    DEFAULT_GENRE_IGNORE_LIST,
    GENRE_REWRITES,
    GENRE_REWRITES_VERSION,
    filter_meta_genres,
    genre_matches_filter,
    genres_match_filter,
    normalize_genre,
    normalize_genre_list,
    primary_genre,
    process_genres,
)

__all__ = [
    'DEFAULT_GENRE_IGNORE_LIST',
    'GENRE_REWRITES',
    'GENRE_REWRITES_VERSION',
    'filter_meta_genres',
    'genre_matches_filter',
    'genres_match_filter',
    'normalize_genre',
    'normalize_genre_list',
    'primary_genre',
    'process_genres',
]
