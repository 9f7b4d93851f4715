"""
Snobify - taste profile stats from exported Spotify playlists.

Turns a folder of playlist CSV exports into one summary: unique genres,
discovery/activity trends, rare tracks, audio-feature averages and a rating.

Usage:
    from snobify import ComputeConfig, compute_path

    stats = compute_path("profiles/default/history", ComputeConfig.from_env())
    print(stats.to_dict())
"""

from .config import ComputeConfig
from .errors import (
    SnobifyError,
    DataNotFoundError,
    SchemaError,
    ComputeFailedError,
    ComputeTimeoutError,
    CacheReadError,
    CacheWriteError,
    error_envelope,
)
from .parser import parse_rows
from .ingest import IngestResult, read_sources
from .tracks import Track, TrackSet, NormalizeResult, normalize_row, build_track_set
from .enrich import TrackEnricher, PassThroughEnricher, GenreLookupEnricher
from .features import (
    top_unique_genres,
    discovery_trend,
    activity_trend,
    rare_tracks,
)
from .taste import TasteVector, build_taste_vector
from .rater import PlaylistRating, SourceRating, RareEligibility, rate, rate_sources, rare_eligibility
from .stats import Stats, StatsMeta, compute, compute_path, compute_profile, content_hash
from .library import LibraryAnalysis, analyze_library, analyze_path
from .catalog import CacheConfig, StatsCache
from .export import export_table, export_stats, stats_tables

__version__ = "0.3.0"

__all__ = [
    # Configuration
    "ComputeConfig",
    "CacheConfig",
    # Errors
    "SnobifyError",
    "DataNotFoundError",
    "SchemaError",
    "ComputeFailedError",
    "ComputeTimeoutError",
    "CacheReadError",
    "CacheWriteError",
    "error_envelope",
    # Ingestion
    "parse_rows",
    "IngestResult",
    "read_sources",
    # Tracks
    "Track",
    "TrackSet",
    "NormalizeResult",
    "normalize_row",
    "build_track_set",
    "TrackEnricher",
    "PassThroughEnricher",
    "GenreLookupEnricher",
    # Aggregation
    "top_unique_genres",
    "discovery_trend",
    "activity_trend",
    "rare_tracks",
    "TasteVector",
    "build_taste_vector",
    "PlaylistRating",
    "SourceRating",
    "rate",
    "rate_sources",
    "RareEligibility",
    "rare_eligibility",
    "LibraryAnalysis",
    "analyze_library",
    "analyze_path",
    # Stats
    "Stats",
    "StatsMeta",
    "compute",
    "compute_path",
    "compute_profile",
    "content_hash",
    "StatsCache",
    # Utilities
    "export_table",
    "export_stats",
    "stats_tables",
]
