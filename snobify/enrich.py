"""
Pluggable track enrichment (genre/mood classifiers and the like).

No real model ships with the package. The pipeline runs without enrichment when
no enricher is given (``enricher=None``); ``PassThroughEnricher`` is the explicit
no-op, and any object with a matching ``enrich`` method can be passed instead.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Mapping, Protocol, runtime_checkable

from .tracks import Track


@runtime_checkable
class TrackEnricher(Protocol):
    def enrich(self, track: Track) -> Track:
        """Return the track, possibly with fields filled in. Must keep ``id``."""
        ...


class PassThroughEnricher:
    """Returns tracks unchanged."""

    def enrich(self, track: Track) -> Track:
        return track


class GenreLookupEnricher:
    """
    Fills an empty primary genre from an artist -> genre mapping.

    Artist keys are matched case-insensitively. Tracks that already carry a
    genre are left alone.
    """

    def __init__(self, artist_genres: Mapping[str, str]):
        self._genres = {k.strip().lower(): v for k, v in artist_genres.items() if v}

    def enrich(self, track: Track) -> Track:
        if track.primary_genre:
            return track
        genre = self._genres.get(track.artist.strip().lower())
        if not genre:
            return track
        return replace(track, primary_genre=genre)
