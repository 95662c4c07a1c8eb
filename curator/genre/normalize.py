"""
Genre Normalization - Rewrite Table v1
======================================
Deterministic canonicalization of raw genre tags from the media server.

Rules:
- Lowercase + trim
- Collapse whitespace runs and strip leading/trailing "-" and "/"
- Apply the compound rewrite table (first match per category wins)
- Tidy again and repeat the table until the text stops changing, so
  normalizing a normalized tag is a no-op
- Empty / whitespace-only input canonicalizes to ""

The rewrite table is data (GENRE_REWRITES) so it can be versioned and
extended without touching the pipeline.
"""

import re
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple

GENRE_REWRITES_VERSION = "v1"

# (category, pattern, replacement). Within a category only the first
# matching rule is applied; categories are applied in table order.
GENRE_REWRITES: Tuple[Tuple[str, Pattern, str], ...] = (
    # Drum and bass (keeps prefixes such as "jungle/")
    ("drum-n-bass", re.compile(r"drum\s*(?:'n'|n|and|&)\s*bass"), "drum-n-bass"),
    ("drum-n-bass", re.compile(r"\bdnb\b"), "drum-n-bass"),
    # R&B
    ("rnb", re.compile(r"\br\s*&\s*b\b"), "rnb"),
    ("rnb", re.compile(r"\brhythm and blues\b"), "rnb"),
    # Hyphenated compounds
    ("synth-pop", re.compile(r"\bsynth[\s-]?pop\b"), "synth-pop"),
    ("hip-hop", re.compile(r"\bhip[\s-]?hop\b"), "hip-hop"),
    ("k-pop", re.compile(r"\bk[\s-]?pop\b"), "k-pop"),
    ("electro-swing", re.compile(r"\belectro swing\b"), "electro-swing"),
    ("tech-house", re.compile(r"\btech house\b"), "tech-house"),
    ("trip-hop", re.compile(r"\btrip hop\b"), "trip-hop"),
    ("nu-jazz", re.compile(r"\bnu jazz\b"), "nu-jazz"),
    ("nu-disco", re.compile(r"\bnu disco\b"), "nu-disco"),
    ("post-hardcore", re.compile(r"\bpost hardcore\b"), "post-hardcore"),
    ("folk-metal", re.compile(r"\bfolk metal\b"), "folk-metal"),
    ("jazz-funk", re.compile(r"\bjazz funk\b"), "jazz-funk"),
    ("jazz-rock", re.compile(r"\bjazz rock\b"), "jazz-rock"),
    ("italo-disco", re.compile(r"\bitalo disco\b"), "italo-disco"),
    # Concatenated / slashed forms
    ("chillout", re.compile(r"\bchill[\s-]out\b"), "chillout"),
    ("pop/rock", re.compile(r"^pop rock$"), "pop/rock"),
    ("singer/songwriter", re.compile(r"\bsinger[\s-]songwriter\b"), "singer/songwriter"),
)

# Broad umbrella tags that say little about a track on their own
DEFAULT_GENRE_IGNORE_LIST: Tuple[str, ...] = (
    "electronic",
    "pop/rock",
    "club/dance",
    "pop",
    "rock",
    "dance",
    "alternative",
    "indie",
    "experimental",
    "edm",
    "metal",
    "jazz",
    "hip-hop",
    "ambient",
    "techno",
    "house",
    "trance",
)

_WHITESPACE = re.compile(r"\s+")
_EDGE_CHARS = "-/ "
_MAX_PASSES = 8


def _tidy(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip(_EDGE_CHARS)


def _apply_rewrites(text: str, rewrites: Sequence[Tuple[str, Pattern, str]]) -> str:
    done = set()
    for category, pattern, replacement in rewrites:
        if category in done:
            continue
        rewritten = pattern.sub(replacement, text)
        if rewritten != text:
            text = rewritten
            done.add(category)
    return text


def normalize_genre(raw: Optional[str], rewrites: Sequence[Tuple[str, Pattern, str]] = GENRE_REWRITES) -> str:
    """
    Canonicalize a single raw genre tag.

    Args:
        raw: Raw tag as stored on the server (may be None)
        rewrites: Rewrite table, defaults to GENRE_REWRITES

    Returns:
        Canonical lowercase form, or "" for empty input
    """
    if not raw:
        return ""
    text = _tidy(raw.lower())
    # Repeat until stable so the result is a fixed point of normalization
    for _ in range(_MAX_PASSES):
        if not text:
            break
        rewritten = _tidy(_apply_rewrites(text, rewrites))
        if rewritten == text:
            break
        text = rewritten
    return text


def normalize_genre_list(raws: Optional[Iterable[Optional[str]]]) -> List[str]:
    """Normalize every tag, drop empties and duplicates, return sorted ascending."""
    if not raws:
        return []
    return sorted({g for g in (normalize_genre(raw) for raw in raws) if g})


def filter_meta_genres(genres: Sequence[str], ignore_list: Iterable[str] = DEFAULT_GENRE_IGNORE_LIST) -> List[str]:
    """
    Remove umbrella genres, case-insensitively.

    If removal would leave nothing, the input is returned unchanged so a track
    tagged only "Rock" keeps its only signal.
    """
    if not genres:
        return []
    ignored = {normalize_genre(g) for g in ignore_list}
    kept = [g for g in genres if normalize_genre(g) not in ignored]
    return kept if kept else list(genres)


def process_genres(
    genres: Optional[Iterable[Optional[str]]],
    ignore_list: Iterable[str] = DEFAULT_GENRE_IGNORE_LIST,
) -> List[str]:
    """normalize_genre_list followed by filter_meta_genres."""
    return filter_meta_genres(normalize_genre_list(genres), ignore_list)


def primary_genre(
    tags: Optional[Sequence[Optional[str]]],
    ignore_list: Iterable[str] = DEFAULT_GENRE_IGNORE_LIST,
) -> Optional[str]:
    """
    First tag, in record order, that survives normalization and meta filtering.

    Falls back to the first non-empty normalized tag when every tag is an
    umbrella genre. Returns None for untagged tracks.
    """
    if not tags:
        return None
    normalized = []
    for tag in tags:
        canon = normalize_genre(tag)
        if canon and canon not in normalized:
            normalized.append(canon)
    if not normalized:
        return None
    return filter_meta_genres(normalized, ignore_list)[0]


def genre_matches_filter(genre: Optional[str], term: Optional[str]) -> bool:
    """Substring match after normalizing both sides. An empty term never matches."""
    needle = normalize_genre(term)
    if not needle:
        return False
    return needle in normalize_genre(genre)


def genres_match_filter(genres: Iterable[Optional[str]], terms: Optional[Sequence[str]]) -> bool:
    """True if any genre matches any term. No terms means no filter."""
    if not terms:
        return True
    genres = list(genres or [])
    return any(genre_matches_filter(genre, term) for genre in genres for term in terms)
