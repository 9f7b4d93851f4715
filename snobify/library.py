"""
Library-wide analysis over every ingested row.

- Time depth: listening years since Spotify launched, grouped by decade
- Vintage vs. modern genres (by release year) and how much they differ
- Favourite artists within the most frequent genres

Unlike the unique-track aggregates in ``features``, these count row occurrences,
so a track saved in three playlists votes three times.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Set, Tuple, Union

import pandas as pd

from .config import ComputeConfig
from .errors import ComputeFailedError, SnobifyError
from .features import GenreCount
from .ingest import SourceRow
from .log import get_logger, timed_step
from .schema import ARTIST_COLUMNS, GENRE_COLUMNS, LISTEN_DATE_COLUMNS, RELEASE_DATE_COLUMNS, first_value
from .stats import ingest
from .tracks import parse_date, split_genres

logger = get_logger("library")

# Listening dates before this year predate the service and are ignored
MIN_SPOTIFY_YEAR = 2008
# Releases at least this many years old count as vintage
VINTAGE_AGE_YEARS = 10

ALL_GENRES_LIMIT = 15
ERA_GENRES_LIMIT = 10
FAVORITE_GENRES = 8
ARTISTS_PER_GENRE = 5

ROW_COLUMNS = ["source", "artist", "genres", "listen_year", "release_year"]


class DecadeCount(NamedTuple):
    decade: str
    count: int


class ArtistCount(NamedTuple):
    name: str
    count: int


@dataclass(frozen=True)
class TimeDepth:
    earliest_year: Optional[int] = None
    latest_year: Optional[int] = None
    span_years: int = 0
    decades: Tuple[DecadeCount, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "earliestYear": self.earliest_year,
            "latestYear": self.latest_year,
            "spanYears": self.span_years,
            "decades": [{"decade": d.decade, "count": d.count} for d in self.decades],
        }


@dataclass(frozen=True)
class GenreFavorites:
    genre: str
    artists: Tuple[ArtistCount, ...] = ()


@dataclass(frozen=True)
class LibraryAnalysis:
    time_depth: TimeDepth
    top_genres_all: Tuple[GenreCount, ...] = ()
    vintage_genres_top: Tuple[GenreCount, ...] = ()
    modern_genres_top: Tuple[GenreCount, ...] = ()
    genre_contrast: int = 0
    favorites_per_genre: Tuple[GenreFavorites, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        def genres(items: Sequence[GenreCount]) -> List[Dict[str, Any]]:
            return [{"name": g.genre, "count": g.count} for g in items]

        return {
            "timeDepth": self.time_depth.to_dict(),
            "topGenresAll": genres(self.top_genres_all),
            "vintageGenresTop": genres(self.vintage_genres_top),
            "topGenresModern": genres(self.modern_genres_top),
            "genreContrast": self.genre_contrast,
            "favoritesPerGenre": [
                {"genre": f.genre, "artists": [{"name": a.name, "count": a.count} for a in f.artists]}
                for f in self.favorites_per_genre
            ],
        }


def _first_year(row: Dict[str, str], columns: Sequence[str]) -> Optional[int]:
    for column in columns:
        d = parse_date(row.get(column))
        if d is not None:
            return d.year
    return None


def rows_frame(rows: Iterable[SourceRow]) -> pd.DataFrame:
    """
    One record per raw row: source, lower-cased artist, genre tokens and years.

    Args:
        rows: (source_name, row) pairs as produced by ingestion

    Returns:
        DataFrame with ROW_COLUMNS; years are float (NaN when unparseable)
    """
    records = []
    for source, row in rows:
        records.append((
            source,
            first_value(row, ARTIST_COLUMNS).lower(),
            list(dict.fromkeys(split_genres(first_value(row, GENRE_COLUMNS)))),
            _first_year(row, LISTEN_DATE_COLUMNS),
            _first_year(row, RELEASE_DATE_COLUMNS),
        ))
    df = pd.DataFrame.from_records(records, columns=ROW_COLUMNS)
    df["listen_year"] = pd.to_numeric(df["listen_year"], errors="coerce").astype("float64")
    df["release_year"] = pd.to_numeric(df["release_year"], errors="coerce").astype("float64")
    return df


def _ranked(values: pd.Series, name: str) -> pd.DataFrame:
    """Value counts sorted by count descending, then value ascending."""
    counts = values.value_counts().rename_axis(name).reset_index(name="count")
    return counts.sort_values(["count", name], ascending=[False, True], kind="mergesort")


def top_genres(df: pd.DataFrame, limit: int) -> List[GenreCount]:
    """Genre token counts over rows (every token of every row)."""
    tokens = df["genres"].explode().dropna()
    if tokens.empty or limit <= 0:
        return []
    counts = _ranked(tokens.astype(str), "genre").head(limit)
    return [GenreCount(str(g), int(c)) for g, c in counts.itertuples(index=False)]


def time_depth(df: pd.DataFrame, min_year: int = MIN_SPOTIFY_YEAR) -> TimeDepth:
    """Earliest/latest listening year, inclusive span and per-decade row counts."""
    years = df["listen_year"].dropna().astype(int)
    years = years[years >= min_year]
    if years.empty:
        return TimeDepth()
    decades = (years // 10 * 10).astype(str).value_counts().sort_index()
    earliest, latest = int(years.min()), int(years.max())
    return TimeDepth(
        earliest_year=earliest,
        latest_year=latest,
        span_years=latest - earliest + 1,
        decades=tuple(DecadeCount(str(d), int(c)) for d, c in decades.items()),
    )


def genre_contrast(a: Set[str], b: Set[str]) -> int:
    """
    Jaccard distance between two genre sets on a 0-100 scale.

    Two empty sets have nothing to contrast and score 0.
    """
    union = a | b
    if not union:
        return 0
    similarity = len(a & b) / len(union)
    return int(math.floor((1 - similarity) * 100 + 0.5))


def favorites_per_genre(
    df: pd.DataFrame,
    top_n_genres: int = FAVORITE_GENRES,
    artists_per: int = ARTISTS_PER_GENRE,
) -> List[GenreFavorites]:
    """Most frequent artists within each of the most frequent genres."""
    genres = [g.genre for g in top_genres(df, top_n_genres)]
    if not genres:
        return []
    pairs = df.loc[df["artist"] != "", ["artist", "genres"]].explode("genres").dropna()
    out = []
    for genre in genres:
        artists = pairs.loc[pairs["genres"] == genre, "artist"]
        ranked = _ranked(artists, "artist").head(artists_per)
        out.append(GenreFavorites(
            genre=genre,
            artists=tuple(ArtistCount(str(a), int(c)) for a, c in ranked.itertuples(index=False)),
        ))
    return out


def analyze_library(rows: Iterable[SourceRow], now_year: Optional[int] = None) -> LibraryAnalysis:
    """
    Library analysis over raw rows.

    Args:
        rows: (source_name, row) pairs
        now_year: Reference year for the vintage split (current UTC year when None)

    Returns:
        LibraryAnalysis; empty input gives empty lists and a zero contrast

    Raises:
        ComputeFailedError: If the analysis fails unexpectedly
    """
    now_year = now_year if now_year is not None else datetime.now(timezone.utc).year
    try:
        with timed_step("library", logger):
            df = rows_frame(rows)
            dated = df[df["release_year"].notna()]
            vintage_mask = (now_year - dated["release_year"]) >= VINTAGE_AGE_YEARS
            vintage = top_genres(dated[vintage_mask], ERA_GENRES_LIMIT)
            modern = top_genres(dated[~vintage_mask], ERA_GENRES_LIMIT)
            analysis = LibraryAnalysis(
                time_depth=time_depth(df),
                top_genres_all=tuple(top_genres(df, ALL_GENRES_LIMIT)),
                vintage_genres_top=tuple(vintage),
                modern_genres_top=tuple(modern),
                genre_contrast=genre_contrast({g.genre for g in vintage}, {g.genre for g in modern}),
                favorites_per_genre=tuple(favorites_per_genre(df)),
            )
    except SnobifyError:
        raise
    except Exception as e:
        logger.error("Library analysis failed: %s", e, exc_info=True)
        raise ComputeFailedError(f"Library analysis failed: {e}") from e
    return analysis


def analyze_path(
    path: Union[str, Path],
    config: Optional[ComputeConfig] = None,
    now_year: Optional[int] = None,
    progress: bool = False,
) -> LibraryAnalysis:
    """Ingest ``path`` (directory or file) and run ``analyze_library`` on its rows."""
    ingested = ingest(path, config, progress=progress)
    return analyze_library(ingested.iter_rows(), now_year=now_year)
