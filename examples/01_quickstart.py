#!/usr/bin/env python3
"""
Snobify Quickstart Example

Point it at a folder of playlist CSV exports (one file per playlist):
    python examples/01_quickstart.py profiles/default/history

Optional environment variables (or a .env file at the project root):
    export SNOBIFY_TOP_GENRES=20
    export SNOBIFY_MAX_WORKERS=8
"""

import sys

from snobify import CacheConfig, ComputeConfig, StatsCache, compute_profile, rate_sources
from snobify.log import setup_logging
from snobify.stats import ingest

path = sys.argv[1] if len(sys.argv) > 1 else "profiles/default/history"

config = ComputeConfig.from_env()
setup_logging(log_level=config.log_level)
cache = StatsCache(CacheConfig(enabled=config.cache_enabled, dir=config.cache_dir))

# Compute (or reuse) the profile summary
stats = compute_profile(config.default_profile, path, cache=cache, config=config, progress=True)
meta = stats.meta

print(f"\n📊 Your Library:")
print(f"   • {len(meta.sources)} playlists")
print(f"   • {meta.rows:,} rows, {meta.unique_tracks:,} unique tracks")
if meta.window_start:
    print(f"   • {meta.window_start:%Y-%m-%d} → {meta.window_end:%Y-%m-%d}")

print(f"\n🎸 Top genres:")
for g in stats.top_unique_genres[:5]:
    print(f"   • {g.genre}: {g.count}")

print(f"\n💎 Rarest tracks:")
for r in stats.rare_tracks[:5]:
    print(f"   • {r.name} by {r.artist} ({r.pop})")

rating = stats.playlist_rater.as_percent()
print(f"\n⭐ Overall {rating['overall']}/100 "
      f"(variety {rating['variety']}, cohesion {rating['cohesion']}, rarity {rating['rarityScore']})")

# Per-playlist ratings
for sr in rate_sources(ingest(path, config), min_tracks=config.min_playlist_tracks)[:5]:
    print(f"   • {sr.name}: {sr.rating.as_percent()['overall']}/100")
