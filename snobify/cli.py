"""
Snobify CLI - taste profile stats from exported playlist CSVs.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

from .catalog import CacheConfig, StatsCache
from .config import ComputeConfig
from .errors import SnobifyError
from .export import TABLES, export_stats, export_table, stats_tables
from .library import analyze_path
from .log import setup_logging
from .rater import RARE_REQUIRED_PLAYLISTS, rare_eligibility, rate_sources
from .stats import compute_profile, ingest


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="snobify",
        description="Playlist CSVs -> taste profile stats.",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    sub = ap.add_subparsers(dest="cmd", required=True)

    # Stats command
    ap_stats = sub.add_parser("stats", help="Compute the taste profile summary.")
    ap_stats.add_argument("path", nargs="?", default=None,
                          help="Directory of playlist CSVs, or a single CSV (default: DATA_DIR/PROFILE).")
    ap_stats.add_argument("--profile", default=None, help="Profile name used as cache key.")
    ap_stats.add_argument("--percent", action="store_true",
                          help="Show playlist ratings on a 0-100 scale.")
    ap_stats.add_argument("--no-cache", action="store_true", help="Always recompute.")
    ap_stats.add_argument("--out", default=None, help="Write JSON to this file instead of stdout.")

    # Ratings command
    ap_ratings = sub.add_parser("ratings", help="Rate each playlist separately.")
    ap_ratings.add_argument("path", help="Directory of playlist CSVs.")
    ap_ratings.add_argument("--min-tracks", type=int, default=None,
                            help="Skip playlists with fewer unique tracks.")

    # Library command
    ap_library = sub.add_parser("library", help="Time depth, vintage vs. modern genres, favourite artists.")
    ap_library.add_argument("path", help="Directory of playlist CSVs, or a single CSV.")
    ap_library.add_argument("--now-year", type=int, default=None,
                            help="Reference year for the vintage split (default: this year).")

    # Export command
    ap_export = sub.add_parser("export", help="Export one stats table to disk.")
    ap_export.add_argument("path", help="Directory of playlist CSVs, or a single CSV.")
    ap_export.add_argument("--table", required=True, choices=TABLES, help="Which table to export.")
    ap_export.add_argument("--out", required=True, help="Output path (.csv or .parquet)")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    config = ComputeConfig.from_env()
    setup_logging(log_level="DEBUG" if args.verbose else config.log_level)

    try:
        if args.cmd == "stats":
            profile = args.profile or config.default_profile
            cache = None
            if config.cache_enabled and not args.no_cache:
                cache = StatsCache(CacheConfig(enabled=True, dir=config.cache_dir))
            path = args.path or config.data_dir / profile
            stats = compute_profile(profile, path, cache=cache, config=config, progress=True)
            if args.out:
                written = export_stats(stats, args.out, percent=args.percent)
                print(f"✅ Wrote stats for {stats.meta.unique_tracks:,} tracks to {written}")
            else:
                print(json.dumps({"profile": profile, "stats": stats.to_dict(percent=args.percent)}, indent=2))
            return 0

        if args.cmd == "ratings":
            ingested = ingest(args.path, config, progress=True)
            min_tracks = args.min_tracks if args.min_tracks is not None else config.min_playlist_tracks
            ratings = rate_sources(ingested, min_tracks=min_tracks,
                                   creativity_weights=config.creativity_weights,
                                   overall_weights=config.overall_weights)
            for r in ratings:
                pct = r.rating.as_percent()
                print(f"   {r.name[:40]:40s} {pct['overall']:3d}/100 ({r.tracks} tracks, "
                      f"{r.unique_artists} artists)")
            print(f"✅ Rated {len(ratings)} playlists")
            eligibility = rare_eligibility(ratings)
            if eligibility.eligible:
                print(f"✅ Rare tracks unlocked by: {', '.join(eligibility.suggested)}")
            else:
                print(f"   Rare tracks locked ({len(eligibility.suggested)}/{RARE_REQUIRED_PLAYLISTS} qualifying playlists)")
            return 0

        if args.cmd == "library":
            analysis = analyze_path(args.path, config, now_year=args.now_year, progress=True)
            print(json.dumps(analysis.to_dict(), indent=2))
            return 0

        if args.cmd == "export":
            stats = compute_profile(config.default_profile, args.path, config=config, progress=True)
            df = stats_tables(stats)[args.table]
            path = export_table(df, args.out)
            print(f"✅ Exported {len(df):,} rows to {path}")
            return 0
    except SnobifyError as e:
        print(f"❌ [{e.code}] {e}", file=sys.stderr)
        if e.hint:
            print(f"   {e.hint}", file=sys.stderr)
        return 2

    return 1


if __name__ == "__main__":
    sys.exit(main())
