# -*- coding: utf-8 -*-
"""
Playlist Curator - Main Application
Builds rediscovery playlists from listening history in a library snapshot
"""
import argparse
import json
import logging
import random
import sys
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from curator.config_loader import Config
from curator.genre.normalize import normalize_genre, process_genres
from curator.library_snapshot import LibrarySnapshot, parse_timestamp
from curator.logging_utils import add_logging_args, configure_logging, resolve_log_level
from curator.playlist.config import CurationConfig
from curator.playlist.discovery import build_discovery_candidates, discovery_stats
from curator.playlist.errors import CurationError, InsufficientCandidatesError
from curator.playlist.exploration import StaticSignals
from curator.playlist.runner import generate_playlist

logger = logging.getLogger("curator.app")


class CuratorApp:
    """Main application orchestrator"""

    def __init__(self, config: Optional[Config] = None, snapshot_path: Optional[str] = None):
        self.config = config or Config.from_dict({})
        path = snapshot_path or self.config.snapshot_path
        if not path:
            raise ValueError("No library snapshot given (use --snapshot or library.snapshot_path)")
        self.library = LibrarySnapshot.load(path)

    def curation_config(self, target: Optional[int], min_days: Optional[int], rate: Optional[float]) -> CurationConfig:
        config = self.config.curation_config(target)
        if min_days is not None:
            config = replace(config, discovery=replace(config.discovery, min_days_since_play=min_days))
        if rate is not None:
            config = replace(config, exploration_rate_override=rate)
        return config

    def signals(self, skip_rate: Optional[float]) -> StaticSignals:
        return StaticSignals(
            library_size=self.library.total_track_count(),
            skip_rate=skip_rate if skip_rate is not None else self.config.recent_skip_rate,
            discovery_playlist=self.library.has_enabled_discovery_playlist() or self.config.discovery_playlist_enabled,
        )

    def discover(
        self,
        *,
        target: Optional[int] = None,
        min_days: Optional[int] = None,
        rate: Optional[float] = None,
        skip_rate: Optional[float] = None,
        seed: Optional[int] = None,
        now: Optional[datetime] = None,
        output: Optional[str] = None,
    ) -> dict:
        """Generate a playlist and optionally write it as JSON"""
        config = self.curation_config(target, min_days, rate)
        seed = seed if seed is not None else self.config.random_seed
        result = generate_playlist(
            history_source=self.library,
            track_lookup=self.library,
            library=self.library,
            config=config,
            signals=self.signals(skip_rate),
            now=now or datetime.now(timezone.utc),
            rng=random.Random(seed),
        )
        payload = result.to_dict()
        if output:
            out = Path(output)
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            logger.info(f"Wrote {len(result.selected)} tracks to {out}")
        return payload

    def stats(self, *, min_days: Optional[int] = None, now: Optional[datetime] = None) -> dict:
        """Discovery statistics over the current discovery candidates"""
        config = self.curation_config(None, min_days, None)
        result = build_discovery_candidates(
            history_source=self.library,
            track_lookup=self.library,
            now=now or datetime.now(timezone.utc),
            config=config.discovery,
            scoring=config.scoring,
        )
        summary = discovery_stats(result.candidates, config.discovery.forgotten_days).as_dict()
        summary["candidates"] = len(result.candidates)
        summary["stages"] = result.stats
        return summary


def _print_playlist(payload: dict) -> None:
    print("\n" + "=" * 70)
    print(f"DISCOVERY PLAYLIST ({len(payload['track_ids'])} tracks, "
          f"exploration {payload['exploration_rate']:.0%})")
    print("=" * 70)
    for i, track in enumerate(payload["tracks"], 1):
        score = track["score"]["final_score"]
        print(f"  {i:2d}. {track['artist']} - {track['title']}  [{track['source']}, {score:.3f}]")
    print("=" * 70 + "\n")


def main(argv=None):
    """Entry point"""
    parser = argparse.ArgumentParser(
        description="Curate rediscovery playlists from listening history"
    )
    parser.add_argument("--config", default="config.yaml", help="Path to config.yaml (optional)")
    parser.add_argument("--snapshot", help="Library snapshot (.yaml/.json); overrides library.snapshot_path")
    parser.add_argument("--now", help="Reference time (ISO-8601 or epoch) for reproducible runs")
    add_logging_args(parser)

    sub = parser.add_subparsers(dest="command", required=True)

    discover = sub.add_parser("discover", help="Generate a discovery playlist")
    discover.add_argument("--tracks", type=int, help="Playlist size (default from config, 50)")
    discover.add_argument("--min-days", type=int, help="Minimum days since last play")
    discover.add_argument("--exploration-rate", type=float, help="Fixed exploration rate (skips the calculator)")
    discover.add_argument("--skip-rate", type=float, help="Recent skip rate signal (0-1)")
    discover.add_argument("--seed", type=int, help="Random seed for the exploration draw")
    discover.add_argument("--output", help="Write the playlist as JSON to this path")

    stats = sub.add_parser("stats", help="Show discovery statistics")
    stats.add_argument("--min-days", type=int, help="Minimum days since last play")

    genres = sub.add_parser("normalize-genres", help="Show how genre tags normalize")
    genres.add_argument("genres", nargs="+", help="Raw genre tags")

    args = parser.parse_args(argv)

    if args.command == "normalize-genres":
        configure_logging(level=resolve_log_level(args), log_file=args.log_file)
        for raw in args.genres:
            print(f"{raw!r} -> {normalize_genre(raw)!r}")
        print(f"processed: {process_genres(args.genres)}")
        return 0

    try:
        config = Config(args.config) if Path(args.config).exists() else Config.from_dict({})
    except ValueError as e:
        print(f"\nConfiguration Error: {e}\n")
        return 1

    configure_logging(
        level=resolve_log_level(args) if args.log_level != "INFO" or args.debug or args.quiet else config.log_level,
        log_file=args.log_file or config.log_file,
        run_id=uuid.uuid4().hex[:8],
        show_run_id=args.show_run_id,
    )
    now = parse_timestamp(args.now) if args.now else None

    try:
        app = CuratorApp(config, args.snapshot)
        if args.command == "discover":
            payload = app.discover(
                target=args.tracks,
                min_days=args.min_days,
                rate=args.exploration_rate,
                skip_rate=args.skip_rate,
                seed=args.seed,
                now=now,
                output=args.output,
            )
            _print_playlist(payload)
        elif args.command == "stats":
            print(json.dumps(app.stats(min_days=args.min_days, now=now), indent=2))
    except InsufficientCandidatesError as e:
        logger.error(str(e))
        if e.suggested_min_days is not None:
            print(f"\nNot enough candidates. Try: --min-days {e.suggested_min_days}\n")
        return 2
    except CurationError as e:
        logger.error(str(e))
        return 2
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"{e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
