"""Test configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from curator.library_snapshot import LibrarySnapshot
from curator.logging_utils import reset_logging
from curator.playlist.models import TrackRecord
from tests.helpers import NOW, days_ago, plays


@pytest.fixture()
def now():
    return NOW


@pytest.fixture()
def clean_logging():
    """Leave the root logger as pytest configured it."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_snapshot():
    """Small library: history tracks across three artists plus library-only tracks."""
    tracks = [
        TrackRecord("1", "Teardrop", "Massive Attack", "Mezzanine", ("Trip Hop", "Electronic"), 9.0, 30, days_ago(120)),
        TrackRecord("2", "Angel", "Massive Attack", "Mezzanine", ("Trip Hop",), 8.0, 12, days_ago(150)),
        TrackRecord("3", "Glory Box", "Portishead", "Dummy", ("trip-hop",), 10.0, 40, days_ago(200)),
        TrackRecord("4", "Roads", "Portishead", "Dummy", ("Trip Hop",), None, 5, days_ago(100)),
        TrackRecord("5", "Hyperballad", "Björk", "Post", ("Electronic", "Art Pop"), 6.0, 8, days_ago(95)),
        TrackRecord("6", "Jóga", "Björk", "Homogenic", ("Art Pop",), None, 1, days_ago(300)),
        TrackRecord("7", "Unfinished Sympathy", "Massive Attack", "Blue Lines", ("Trip Hop",), 10.0, 0, None),
        TrackRecord("8", "Army of Me", "Björk", "Post", ("Industrial",), 7.0, 2, days_ago(10)),
    ]
    history = []
    history += plays("1", 4, 120)
    history += plays("2", 3, 150)
    history += plays("3", 6, 200)
    history += plays("4", 3, 100)
    history += plays("5", 2, 95)
    history += plays("6", 1, 300)
    history += plays("8", 2, 10)
    return LibrarySnapshot(tracks, history)
