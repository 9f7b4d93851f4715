"""
Track normalization: raw CSV rows -> typed, deduplicated Track records.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Tuple

from dateutil.parser import isoparse

from .log import get_logger
from .schema import (
    ARTIST_COLUMNS,
    AUDIO_FEATURE_COLUMNS,
    DATE_COLUMNS,
    GENRE_COLUMNS,
    ID_COLUMNS,
    NAME_COLUMNS,
    POPULARITY_COLUMNS,
    first_value,
)

if TYPE_CHECKING:
    from .enrich import TrackEnricher
    from .ingest import SourceRow

logger = get_logger("tracks")

# Tried after ISO-8601 parsing fails
DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
)


@dataclass(frozen=True)
class Track:
    id: str
    name: str
    artist: str
    primary_genre: str = ""
    popularity: int = 0
    danceability: float = 0.0
    energy: float = 0.0
    valence: float = 0.0
    acousticness: float = 0.0
    instrumentalness: float = 0.0
    added_at: Optional[datetime] = None
    sources: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def source_playlist(self) -> str:
        """Originating source (first in name order when merged from several)."""
        return min(self.sources) if self.sources else ""


@dataclass(frozen=True)
class NormalizeResult:
    """Either a track or the reason the row could not become one."""

    track: Optional[Track] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.track is not None


def parse_number(value: Optional[str]) -> Optional[float]:
    """Parse a locale-invariant decimal ('.' separator). Non-finite -> None."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an export timestamp into a naive UTC datetime.

    Accepts ISO-8601 (``2023-04-05T10:20:30Z``, ``2023-04-05``, ``2023-04``,
    ``2023``) and ``YYYY-MM-DD HH:MM:SS`` style values. Returns None otherwise.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    parsed: Optional[datetime] = None
    try:
        parsed = isoparse(value)
    except (ValueError, OverflowError):
        for fmt in DATE_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def split_genres(value: str) -> List[str]:
    """Split a pipe- or comma-delimited genre field into stripped, non-empty tokens."""
    return [g.strip() for g in value.replace("|", ",").split(",") if g.strip()]


def primary_genre(value: str) -> str:
    genres = split_genres(value)
    return genres[0] if genres else ""


def _norm_key(s: str) -> str:
    return " ".join(s.lower().split())


def identity_key(track_id: str, name: str, artist: str) -> Optional[str]:
    """Native identifier when present, else normalized name+artist, else None."""
    if track_id:
        return track_id
    if name and artist:
        return f"{_norm_key(name)}::{_norm_key(artist)}"
    return None


def normalize_row(row: Mapping[str, str], source: str) -> NormalizeResult:
    """
    Coerce one raw row into a Track.

    Args:
        row: Header-keyed raw values
        source: Originating source (playlist) name

    Returns:
        NormalizeResult holding the track, or a reason when the row has neither
        an identifier nor a track/artist name pair
    """
    track_id = first_value(row, ID_COLUMNS)
    name = first_value(row, NAME_COLUMNS)
    artist = first_value(row, ARTIST_COLUMNS)
    key = identity_key(track_id, name, artist)
    if key is None:
        return NormalizeResult(reason="no track identifier and no track/artist name pair")

    pop = parse_number(first_value(row, POPULARITY_COLUMNS))
    features: Dict[str, float] = {}
    for attr, column in AUDIO_FEATURE_COLUMNS.items():
        number = parse_number(row.get(column))
        features[attr] = clamp(number, 0.0, 1.0) if number is not None else 0.0

    added_at = None
    for column in DATE_COLUMNS:
        added_at = parse_date(row.get(column))
        if added_at is not None:
            break

    track = Track(
        id=key,
        name=name,
        artist=artist,
        primary_genre=primary_genre(first_value(row, GENRE_COLUMNS)),
        popularity=int(round(clamp(pop, 0.0, 100.0))) if pop is not None else 0,
        added_at=added_at,
        sources=frozenset([source]),
        **features,
    )
    return NormalizeResult(track=track)


def _earliest(a: Optional[datetime], b: Optional[datetime]) -> Optional[datetime]:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


class TrackSet:
    """
    Tracks deduplicated by identity, plus every usable row occurrence.

    A repeated id keeps the first-seen fields, the earliest ``added_at`` and the
    union of sources. Iteration is always in id order.
    """

    def __init__(self, tracks: Iterable[Track] = ()):
        self._tracks: Dict[str, Track] = {}
        self.occurrences: List[Tuple[str, Optional[datetime]]] = []
        self.skipped = 0
        self.excluded = 0
        for track in tracks:
            self.add(track)

    def add(self, track: Track) -> Track:
        self.occurrences.append((track.id, track.added_at))
        existing = self._tracks.get(track.id)
        if existing is None:
            self._tracks[track.id] = track
            return track
        merged = replace(
            existing,
            added_at=_earliest(existing.added_at, track.added_at),
            sources=existing.sources | track.sources,
        )
        self._tracks[track.id] = merged
        return merged

    def get(self, track_id: str) -> Optional[Track]:
        return self._tracks.get(track_id)

    def ids(self) -> List[str]:
        return sorted(self._tracks)

    def sorted(self) -> List[Track]:
        return [self._tracks[k] for k in self.ids()]

    def __iter__(self) -> Iterator[Track]:
        return iter(self.sorted())

    def __len__(self) -> int:
        return len(self._tracks)

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._tracks


def before_month(d: Optional[datetime], month: str) -> bool:
    """True if ``d`` falls in a calendar month earlier than ``month`` (YYYY-MM)."""
    if d is None:
        return False
    return f"{d.year:04d}-{d.month:02d}" < month


def build_track_set(
    rows: Iterable["SourceRow"],
    enricher: Optional["TrackEnricher"] = None,
    cutoff_month: Optional[str] = None,
) -> TrackSet:
    """
    Normalize and deduplicate (source, row) pairs.

    Unusable rows are counted in ``TrackSet.skipped`` and otherwise ignored.
    With ``cutoff_month`` set, rows dated before that month are counted in
    ``TrackSet.excluded`` and ignored; undated rows are kept.
    """
    track_set = TrackSet()
    for source, row in rows:
        result = normalize_row(row, source)
        if not result.ok:
            track_set.skipped += 1
            logger.debug("Dropping row from %s: %s", source, result.reason)
            continue
        track = result.track
        if cutoff_month and before_month(track.added_at, cutoff_month):
            track_set.excluded += 1
            continue
        if enricher is not None:
            track = enricher.enrich(track)
        track_set.add(track)
    return track_set
