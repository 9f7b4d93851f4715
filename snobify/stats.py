"""
Stats assembly: the single entry point from ingested rows to the summary.

    from snobify import ComputeConfig, compute_path

    stats = compute_path("profiles/default/history", ComputeConfig.from_env())
    stats.to_dict()
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .config import ComputeConfig
from .errors import CacheReadError, CacheWriteError, ComputeFailedError, SnobifyError
from .features import (
    GenreCount,
    MonthCount,
    RareTrack,
    activity_trend,
    date_window,
    discovery_trend,
    rare_tracks,
    top_unique_genres,
)
from .ingest import IngestResult, SourceRow, read_sources
from .log import get_logger, timed_step
from .rater import PlaylistRating, rate
from .taste import TasteVector, build_taste_vector
from .tracks import TrackSet, build_track_set

if TYPE_CHECKING:
    from .catalog import StatsCache
    from .enrich import TrackEnricher

logger = get_logger("stats")


def content_hash(ids: Iterable[str]) -> str:
    """SHA-256 over the sorted, deduplicated track ids."""
    h = hashlib.sha256()
    h.update("\n".join(sorted(set(ids))).encode("utf-8"))
    return h.hexdigest()


def _iso(d: Optional[datetime]) -> Optional[str]:
    return d.isoformat() if d is not None else None


def _parse_iso(s: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(s) if s else None


@dataclass(frozen=True)
class StatsMeta:
    hash: str
    rows: int
    unique_tracks: int = 0
    sources: Tuple[str, ...] = ()
    skipped: int = 0
    dropped: int = 0
    excluded: int = 0
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "rows": self.rows,
            "uniqueTracks": self.unique_tracks,
            "sources": list(self.sources),
            "skipped": self.skipped,
            "dropped": self.dropped,
            "excluded": self.excluded,
            "window": {"start": _iso(self.window_start), "end": _iso(self.window_end)},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StatsMeta":
        window = data.get("window") or {}
        return cls(
            hash=data["hash"],
            rows=int(data["rows"]),
            unique_tracks=int(data.get("uniqueTracks", 0)),
            sources=tuple(data.get("sources", ())),
            skipped=int(data.get("skipped", 0)),
            dropped=int(data.get("dropped", 0)),
            excluded=int(data.get("excluded", 0)),
            window_start=_parse_iso(window.get("start")),
            window_end=_parse_iso(window.get("end")),
        )


@dataclass(frozen=True)
class Stats:
    """Immutable summary of one compute run."""

    top_unique_genres: Tuple[GenreCount, ...]
    discovery_trend: Tuple[MonthCount, ...]
    activity_trend: Tuple[MonthCount, ...]
    rare_tracks: Tuple[RareTrack, ...]
    taste: TasteVector
    playlist_rater: PlaylistRating
    meta: StatsMeta

    def to_dict(self, percent: bool = False) -> Dict[str, Any]:
        """
        Serialize to the response shape.

        Args:
            percent: Render playlistRater on the 0-100 display scale
        """
        return {
            "topUniqueGenres": [{"genre": g.genre, "count": g.count} for g in self.top_unique_genres],
            "discoveryTrend": [{"month": m.month, "count": m.count} for m in self.discovery_trend],
            "activityTrend": [{"month": m.month, "count": m.count} for m in self.activity_trend],
            "rareTracks": [{"name": r.name, "artist": r.artist, "pop": r.pop} for r in self.rare_tracks],
            "taste": self.taste.to_dict(),
            "playlistRater": self.playlist_rater.as_percent() if percent else self.playlist_rater.to_dict(),
            "meta": self.meta.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stats":
        """Rebuild from ``to_dict()`` output (unit-scale ratings only)."""
        return cls(
            top_unique_genres=tuple(GenreCount(g["genre"], int(g["count"])) for g in data["topUniqueGenres"]),
            discovery_trend=tuple(MonthCount(m["month"], int(m["count"])) for m in data["discoveryTrend"]),
            activity_trend=tuple(MonthCount(m["month"], int(m["count"])) for m in data["activityTrend"]),
            rare_tracks=tuple(RareTrack(r["name"], r["artist"], int(r["pop"])) for r in data["rareTracks"]),
            taste=TasteVector.from_dict(data["taste"]),
            playlist_rater=PlaylistRating.from_dict(data["playlistRater"]),
            meta=StatsMeta.from_dict(data["meta"]),
        )


def assemble(
    track_set: TrackSet,
    config: Optional[ComputeConfig] = None,
    rows: Optional[int] = None,
    sources: Sequence[str] = (),
    dropped: int = 0,
) -> Stats:
    """
    Run every aggregation over an assembled track set.

    ``dropped`` is the number of malformed lines the parser discarded upstream.

    Raises:
        ComputeFailedError: If any aggregation fails unexpectedly
    """
    config = config or ComputeConfig()
    try:
        with timed_step("genres", logger):
            genres = top_unique_genres(track_set, limit=config.top_genres_limit)
        with timed_step("trends", logger):
            discovery = discovery_trend(track_set)
            activity = activity_trend(track_set)
        with timed_step("rarity", logger):
            rare = rare_tracks(track_set, n=config.rare_limit, percentile=config.active_rare_percentile)
        with timed_step("taste", logger):
            taste = build_taste_vector(track_set)
        with timed_step("rater", logger):
            rating = rate(track_set, config.creativity_weights, config.overall_weights)
        start, end = date_window(track_set)
    except SnobifyError:
        raise
    except Exception as e:
        logger.error("Aggregation failed: %s", e, exc_info=True)
        raise ComputeFailedError(f"Computation failed: {e}") from e

    meta = StatsMeta(
        hash=content_hash(track_set.ids()),
        rows=len(track_set.occurrences) + track_set.skipped if rows is None else rows,
        unique_tracks=len(track_set),
        sources=tuple(sorted(sources)),
        skipped=track_set.skipped,
        dropped=dropped,
        excluded=track_set.excluded,
        window_start=start,
        window_end=end,
    )
    return Stats(
        top_unique_genres=tuple(genres),
        discovery_trend=tuple(discovery),
        activity_trend=tuple(activity),
        rare_tracks=tuple(rare),
        taste=taste,
        playlist_rater=rating,
        meta=meta,
    )


def _normalize(rows: List[SourceRow], config: ComputeConfig, enricher: Optional["TrackEnricher"]) -> TrackSet:
    try:
        with timed_step("normalize", logger):
            return build_track_set(rows, enricher=enricher, cutoff_month=config.active_cutoff)
    except Exception as e:
        logger.error("Normalization failed: %s", e, exc_info=True)
        raise ComputeFailedError(f"Computation failed: {e}") from e


def compute(
    rows: Iterable[SourceRow],
    config: Optional[ComputeConfig] = None,
    enricher: Optional["TrackEnricher"] = None,
) -> Stats:
    """
    Compute Stats from (source_name, row) pairs.

    Args:
        rows: Ingested rows tagged with their source name
        config: Limits and rater weights (defaults when None)
        enricher: Optional per-track enrichment hook

    Returns:
        Stats; an empty input gives zeroed aggregates, not an error
    """
    config = config or ComputeConfig()
    rows = list(rows)
    track_set = _normalize(rows, config, enricher)
    sources = sorted({source for source, _ in rows})
    return assemble(track_set, config, rows=len(rows), sources=sources)


def ingest(path: Union[str, Path], config: Optional[ComputeConfig] = None, progress: bool = False) -> IngestResult:
    """Read a directory or single file using the config's suffixes, workers and timeout."""
    config = config or ComputeConfig()
    with timed_step("ingest", logger):
        return read_sources(
            path,
            suffixes=config.source_suffixes,
            required_key=config.required_key,
            max_workers=config.max_workers,
            timeout=config.timeout,
            progress=progress,
        )


def compute_path(
    path: Union[str, Path],
    config: Optional[ComputeConfig] = None,
    enricher: Optional["TrackEnricher"] = None,
    progress: bool = False,
) -> Stats:
    """
    Ingest ``path`` (directory or file) and compute Stats.

    Raises:
        DataNotFoundError, SchemaError, ComputeTimeoutError, ComputeFailedError
    """
    config = config or ComputeConfig()
    ingested = ingest(path, config, progress=progress)
    rows = list(ingested.iter_rows())
    track_set = _normalize(rows, config, enricher)
    return assemble(track_set, config, rows=len(rows), sources=list(ingested.sources),
                    dropped=ingested.dropped)


def compute_profile(
    profile: str,
    path: Union[str, Path],
    cache: Optional["StatsCache"] = None,
    config: Optional[ComputeConfig] = None,
    enricher: Optional["TrackEnricher"] = None,
    progress: bool = False,
) -> Stats:
    """
    Compute Stats for ``profile``, reusing a cached value keyed by (profile, content hash).

    A cache read failure falls back to recomputation; a cache write failure is
    logged and the freshly computed value is still returned.

    The hash covers track ids only. A re-export with the same tracks but other
    row counts, dates or popularity, or a run with different limits, weights or
    rare mode, is served the stored value (including its ``meta.rows``, trends
    and ratings). Pass ``cache=None`` (CLI ``--no-cache``) to recompute.
    """
    config = config or ComputeConfig()
    ingested = ingest(path, config, progress=progress)
    rows = list(ingested.iter_rows())
    track_set = _normalize(rows, config, enricher)
    digest = content_hash(track_set.ids())

    if cache is not None:
        try:
            cached = cache.get(profile, digest)
        except CacheReadError as e:
            logger.warning("Cache read failed for %s/%s, recomputing: %s", profile, digest[:12], e)
            cached = None
        if cached is not None:
            logger.info("Cache hit for %s (%s)", profile, digest[:12])
            return cached

    stats = assemble(track_set, config, rows=len(rows), sources=list(ingested.sources),
                     dropped=ingested.dropped)

    if cache is not None:
        try:
            cache.put(profile, stats)
        except CacheWriteError as e:
            logger.error("Cache write failed for %s/%s: %s", profile, digest[:12], e)
    return stats
