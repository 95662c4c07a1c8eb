"""Smoke tests for the main_app.py CLI."""

import json
import subprocess
import sys
from pathlib import Path

import pytest

import main_app

ROOT_DIR = Path(__file__).resolve().parents[1]


@pytest.fixture()
def snapshot_file(tmp_path, sample_snapshot):
    data = {
        "tracks": [
            {
                "id": t.track_id,
                "title": t.title,
                "artist": t.artist,
                "album": t.album,
                "genres": list(t.genres),
                "rating": t.user_rating,
                "view_count": t.play_count,
                "last_viewed_at": t.last_played.isoformat() if t.last_played else None,
            }
            for t in sample_snapshot.tracks.values()
        ],
        "history": [
            {"track_id": e.track_id, "played_at": e.played_at.isoformat()}
            for e in sample_snapshot.history(0, 1000)
        ],
    }
    path = tmp_path / "library.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def _main(tmp_path, snapshot, *args):
    return main_app.main([
        "--config", str(tmp_path / "absent.yaml"),
        "--snapshot", str(snapshot),
        "--now", "2024-06-01T12:00:00Z",
        "--quiet",
        *args,
    ])


class TestMainAppCLI:

    def test_main_app_help(self):
        result = subprocess.run(
            [sys.executable, str(ROOT_DIR / "main_app.py"), "--help"],
            capture_output=True,
            text=True,
            cwd=str(ROOT_DIR),
        )
        assert result.returncode == 0, f"Error: {result.stderr}"
        assert "discover" in result.stdout
        assert "--snapshot" in result.stdout

    def test_discover_writes_playlist(self, tmp_path, snapshot_file, clean_logging, capsys):
        out = tmp_path / "out" / "playlist.json"
        code = _main(tmp_path, snapshot_file, "discover", "--tracks", "6",
                     "--exploration-rate", "0", "--output", str(out))
        assert code == 0
        payload = json.loads(out.read_text(encoding="utf-8"))
        assert payload["track_ids"] == ["8", "3", "1", "5", "7", "4"]
        assert "DISCOVERY PLAYLIST (6 tracks" in capsys.readouterr().out

    def test_stats(self, tmp_path, snapshot_file, clean_logging, capsys):
        assert _main(tmp_path, snapshot_file, "stats") == 0
        out = capsys.readouterr().out
        assert '"candidates": 4' in out
        assert '"too_recent": 1' in out

    def test_insufficient_candidates_suggests_lower_threshold(self, tmp_path, snapshot_file, clean_logging, capsys):
        assert _main(tmp_path, snapshot_file, "stats", "--min-days", "1000") == 2
        assert "--min-days 500" in capsys.readouterr().out

    def test_exploration_rate_out_of_range(self, tmp_path, snapshot_file, clean_logging):
        assert _main(tmp_path, snapshot_file, "discover", "--exploration-rate", "1.5") == 1

    def test_missing_snapshot(self, tmp_path, clean_logging):
        assert _main(tmp_path, tmp_path / "missing.yaml", "stats") == 1

    def test_bad_config(self, tmp_path, snapshot_file, clean_logging):
        config = tmp_path / "config.yaml"
        config.write_text("adaptive:\n  sensitivity: 99\n", encoding="utf-8")
        code = main_app.main(["--config", str(config), "--snapshot", str(snapshot_file), "stats"])
        assert code == 1

    def test_normalize_genres(self, clean_logging, capsys):
        assert main_app.main(["normalize-genres", "Synth Pop", "Electronic"]) == 0
        out = capsys.readouterr().out
        assert "'Synth Pop' -> 'synth-pop'" in out
        assert "processed: ['synth-pop']" in out
