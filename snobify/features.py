"""
Library features computed over the unique track set.

- Unique-genre distribution (one vote per track)
- Monthly discovery and activity trends
- Rarest tracks by popularity

Every function works on a ``TrackSet`` and applies its tie-breaks only after the
full set is assembled, so input order never changes the result.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable, List, NamedTuple, Optional, Tuple

import pandas as pd

from .tracks import TrackSet

FRAME_COLUMNS = [
    "id", "name", "artist", "primary_genre", "popularity",
    "danceability", "energy", "valence", "acousticness", "instrumentalness",
    "added_at",
]


class GenreCount(NamedTuple):
    genre: str
    count: int


class MonthCount(NamedTuple):
    month: str
    count: int


class RareTrack(NamedTuple):
    name: str
    artist: str
    pop: int


def tracks_frame(track_set: TrackSet) -> pd.DataFrame:
    """
    One row per unique track, sorted by id.

    Args:
        track_set: Deduplicated tracks

    Returns:
        DataFrame with FRAME_COLUMNS (empty, but typed, for an empty set)
    """
    records = [
        (t.id, t.name, t.artist, t.primary_genre, t.popularity,
         t.danceability, t.energy, t.valence, t.acousticness, t.instrumentalness,
         t.added_at)
        for t in track_set
    ]
    df = pd.DataFrame.from_records(records, columns=FRAME_COLUMNS)
    if df.empty:
        df = df.astype({"popularity": "int64", "danceability": "float64", "energy": "float64",
                        "valence": "float64", "acousticness": "float64",
                        "instrumentalness": "float64"})
    return df


def top_unique_genres(track_set: TrackSet, limit: Optional[int] = None) -> List[GenreCount]:
    """
    Count each unique track once, towards its primary genre.

    Tracks without a genre are left out of the count. Sorted by count
    descending, then genre name ascending.

    Args:
        track_set: Deduplicated tracks
        limit: Keep only the first ``limit`` genres (None = all)

    Returns:
        List of GenreCount
    """
    df = tracks_frame(track_set)
    genres = df.loc[df["primary_genre"] != "", "primary_genre"]
    if genres.empty:
        return []

    counts = genres.value_counts().rename_axis("genre").reset_index(name="count")
    counts = counts.sort_values(["count", "genre"], ascending=[False, True], kind="mergesort")
    if limit is not None and limit > 0:
        counts = counts.head(limit)
    return [GenreCount(str(g), int(c)) for g, c in counts.itertuples(index=False)]


def month_key(d: datetime) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def _month_counts(dates: Iterable[Optional[datetime]]) -> List[MonthCount]:
    months = pd.Series([month_key(d) for d in dates if d is not None], dtype="object")
    if months.empty:
        return []
    counts = months.value_counts().sort_index()
    return [MonthCount(str(m), int(c)) for m, c in counts.items()]


def discovery_trend(track_set: TrackSet) -> List[MonthCount]:
    """Distinct tracks first seen per month (earliest ``added_at``), sparse, ascending."""
    return _month_counts(t.added_at for t in track_set)


def activity_trend(track_set: TrackSet) -> List[MonthCount]:
    """All dated row occurrences per month, duplicates included, sparse, ascending."""
    return _month_counts(d for _, d in track_set.occurrences)


def rare_tracks(track_set: TrackSet, n: int = 10, percentile: Optional[float] = None) -> List[RareTrack]:
    """
    The ``n`` least popular unique tracks.

    Missing popularity counts as 0, so tracks without data sort first.
    Ties break by name, then artist.

    Args:
        track_set: Deduplicated tracks
        n: How many tracks to return
        percentile: When set, return the least popular ``percentile`` percent of
            the set instead (at least one track); ``n`` is ignored
    """
    if len(track_set) == 0:
        return []
    if percentile is not None:
        n = max(1, math.floor(len(track_set) * percentile / 100))
    if n <= 0:
        return []
    df = tracks_frame(track_set)
    df = df.sort_values(["popularity", "name", "artist", "id"], kind="mergesort").head(n)
    return [RareTrack(str(r.name), str(r.artist), int(r.popularity)) for r in df.itertuples(index=False)]


def date_window(track_set: TrackSet) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Earliest and latest resolvable date across all occurrences."""
    dates = [d for _, d in track_set.occurrences if d is not None]
    if not dates:
        return None, None
    return min(dates), max(dates)
