"""
Column names recognised in playlist exports.

Headers are matched case-sensitively; the first alias present in a header wins.
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

ID_COLUMNS = ("Track URI", "Track ID", "Spotify ID")
NAME_COLUMNS = ("Track Name", "Name", "Track")
ARTIST_COLUMNS = ("Artist Name(s)", "Artist", "Artists")
GENRE_COLUMNS = ("Genres", "Genre")
POPULARITY_COLUMNS = ("Popularity", "Track Popularity")
# Date a track entered the library: first save ("Added At") wins over plays.
# Listening years in library.py use LISTEN_DATE_COLUMNS, "Played At" first.
DATE_COLUMNS = ("Added At", "Played At", "Release Date")
LISTEN_DATE_COLUMNS = ("Played At", "Added At")
RELEASE_DATE_COLUMNS = ("Release Date",)

AUDIO_FEATURE_COLUMNS: Dict[str, str] = {
    "danceability": "Danceability",
    "energy": "Energy",
    "valence": "Valence",
    "acousticness": "Acousticness",
    "instrumentalness": "Instrumentalness",
}


def find_column(header: Iterable[str], aliases: Sequence[str]) -> Optional[str]:
    """Return the first alias present in ``header``, or None."""
    present = set(header)
    for alias in aliases:
        if alias in present:
            return alias
    return None


def first_value(row: Mapping[str, str], aliases: Sequence[str]) -> str:
    """Return the first non-blank value among ``aliases`` in ``row`` (stripped)."""
    for alias in aliases:
        value = row.get(alias)
        if value is not None and value.strip():
            return value.strip()
    return ""


def identity_columns(header: Iterable[str]) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """Return the (id, name, artist) columns found in ``header``."""
    header = list(header)
    return (
        find_column(header, ID_COLUMNS),
        find_column(header, NAME_COLUMNS),
        find_column(header, ARTIST_COLUMNS),
    )


def has_identity_columns(header: Iterable[str]) -> bool:
    """True if a header can produce track identities (an id, or name + artist)."""
    id_col, name_col, artist_col = identity_columns(header)
    return id_col is not None or (name_col is not None and artist_col is not None)
