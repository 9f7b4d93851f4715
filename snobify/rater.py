"""
Playlist rater: variety, cohesion, rarity, creativity and an overall score.

All scores are in [0, 1]; ``PlaylistRating.as_percent()`` gives the 0-100 scale
used for display.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

import numpy as np

from .config import (
    DEFAULT_CREATIVITY_WEIGHTS,
    DEFAULT_MIN_PLAYLIST_TRACKS,
    DEFAULT_OVERALL_WEIGHTS,
)
from .features import GenreCount, top_unique_genres, tracks_frame
from .tracks import TrackSet, build_track_set

if TYPE_CHECKING:
    from .enrich import TrackEnricher
    from .ingest import IngestResult

CORE_FEATURES = ["danceability", "energy", "valence"]

# Largest RMS distance from the centroid for points in the unit cube
MAX_DISPERSION = math.sqrt(3) / 2


@dataclass(frozen=True)
class PlaylistRating:
    variety: float = 0.0
    cohesion: float = 0.0
    rarity_score: float = 0.0
    creativity: float = 0.0
    overall: float = 0.0

    def as_percent(self) -> Dict[str, int]:
        return {k: int(round(v * 100)) for k, v in self.to_dict().items()}

    def to_dict(self) -> Dict[str, float]:
        return {
            "variety": self.variety,
            "rarityScore": self.rarity_score,
            "cohesion": self.cohesion,
            "overall": self.overall,
            "creativity": self.creativity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "PlaylistRating":
        return cls(
            variety=float(data.get("variety", 0.0)),
            cohesion=float(data.get("cohesion", 0.0)),
            rarity_score=float(data.get("rarityScore", 0.0)),
            creativity=float(data.get("creativity", 0.0)),
            overall=float(data.get("overall", 0.0)),
        )


def weighted(values: Sequence[float], weights: Sequence[float]) -> float:
    """Weighted mean of ``values``; weights are normalized by their sum."""
    if len(values) != len(weights):
        raise ValueError(f"expected {len(values)} weights, got {len(weights)}")
    total = float(sum(weights))
    if total <= 0:
        raise ValueError("weights must sum to a positive number")
    return sum(v * w for v, w in zip(values, weights)) / total


def dispersion(points: np.ndarray) -> float:
    """RMS distance of row vectors from their centroid."""
    if len(points) == 0:
        return 0.0
    centered = points - points.mean(axis=0)
    return float(np.sqrt((centered ** 2).sum(axis=1).mean()))


def rate(
    track_set: TrackSet,
    creativity_weights: Sequence[float] = DEFAULT_CREATIVITY_WEIGHTS,
    overall_weights: Sequence[float] = DEFAULT_OVERALL_WEIGHTS,
) -> PlaylistRating:
    """
    Score a set of unique tracks.

    Args:
        track_set: Deduplicated tracks
        creativity_weights: Weights for (variety, rarity_score)
        overall_weights: Weights for (rarity_score, cohesion, variety, creativity)

    Returns:
        PlaylistRating (all zeros for an empty set)
    """
    n = len(track_set)
    if n == 0:
        return PlaylistRating()

    df = tracks_frame(track_set)

    genres = df.loc[df["primary_genre"] != "", "primary_genre"].nunique()
    variety = min(1.0, genres / n)

    points = df[CORE_FEATURES].to_numpy(dtype=float)
    cohesion = 1.0 - min(1.0, dispersion(points) / MAX_DISPERSION)

    rarity_score = 1.0 - min(100.0, float(df["popularity"].mean())) / 100.0

    creativity = weighted([variety, rarity_score], creativity_weights)
    overall = weighted([rarity_score, cohesion, variety, creativity], overall_weights)

    return PlaylistRating(
        variety=variety,
        cohesion=cohesion,
        rarity_score=rarity_score,
        creativity=creativity,
        overall=overall,
    )


@dataclass(frozen=True)
class SourceRating:
    """Rating for a single source playlist."""

    name: str
    tracks: int
    unique_artists: int
    rating: PlaylistRating
    top_genres: List[GenreCount] = field(default_factory=list)

    def to_dict(self, percent: bool = False) -> dict:
        return {
            "name": self.name,
            "tracks": self.tracks,
            "uniqueArtists": self.unique_artists,
            "rating": self.rating.as_percent() if percent else self.rating.to_dict(),
            "topGenres": [{"genre": g.genre, "count": g.count} for g in self.top_genres],
        }


def rate_sources(
    ingested: "IngestResult",
    min_tracks: int = DEFAULT_MIN_PLAYLIST_TRACKS,
    creativity_weights: Sequence[float] = DEFAULT_CREATIVITY_WEIGHTS,
    overall_weights: Sequence[float] = DEFAULT_OVERALL_WEIGHTS,
    enricher: Optional["TrackEnricher"] = None,
) -> List[SourceRating]:
    """
    Rate each source playlist on its own.

    Playlists with fewer than ``min_tracks`` unique tracks are skipped.
    Sorted by overall score descending, then name.
    """
    ratings: List[SourceRating] = []
    for name, rows in ingested.rows_by_source().items():
        track_set = build_track_set(((name, row) for row in rows), enricher=enricher)
        if len(track_set) < min_tracks:
            continue
        artists = {t.artist.strip().lower() for t in track_set if t.artist.strip()}
        ratings.append(SourceRating(
            name=name,
            tracks=len(track_set),
            unique_artists=len(artists),
            rating=rate(track_set, creativity_weights, overall_weights),
            top_genres=top_unique_genres(track_set, limit=5),
        ))
    ratings.sort(key=lambda r: (-r.rating.overall, r.name))
    return ratings


# Rare-track eligibility: enough strong, sizeable playlists
RARE_MIN_TRACKS_EACH = 10
RARE_MIN_SCORE = 82
RARE_REQUIRED_PLAYLISTS = 3


@dataclass(frozen=True)
class RareEligibility:
    eligible: bool = False
    suggested: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {"eligible": self.eligible, "suggested": list(self.suggested)}


def rare_eligibility(
    ratings: Sequence[SourceRating],
    min_tracks: int = RARE_MIN_TRACKS_EACH,
    min_score: int = RARE_MIN_SCORE,
    required: int = RARE_REQUIRED_PLAYLISTS,
) -> RareEligibility:
    """
    Decide whether the rated playlists unlock the rare-track view.

    A playlist qualifies with at least ``min_tracks`` unique tracks and an
    overall score of at least ``min_score`` on the 0-100 scale.

    Args:
        ratings: Per-playlist ratings from ``rate_sources``
        min_tracks: Unique tracks a qualifying playlist needs
        min_score: Overall percent a qualifying playlist needs
        required: Qualifying playlists needed for eligibility

    Returns:
        RareEligibility with the best ``required`` qualifying playlist names
        (overall descending, then name)
    """
    qualified = [
        r for r in ratings
        if r.tracks >= min_tracks and r.rating.as_percent()["overall"] >= min_score
    ]
    qualified.sort(key=lambda r: (-r.rating.overall, r.name))
    return RareEligibility(
        eligible=len(qualified) >= required,
        suggested=[r.name for r in qualified[:required]],
    )
