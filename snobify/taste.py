"""
Taste vector: mean audio features across unique tracks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .features import tracks_frame
from .tracks import TrackSet


@dataclass(frozen=True)
class TasteVector:
    avg_danceability: float = 0.0
    avg_energy: float = 0.0
    avg_valence: float = 0.0
    acoustic_bias: float = 0.0
    instrumental_bias: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "avgDanceability": self.avg_danceability,
            "avgEnergy": self.avg_energy,
            "avgValence": self.avg_valence,
            "acousticBias": self.acoustic_bias,
            "instrumentalBias": self.instrumental_bias,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "TasteVector":
        return cls(
            avg_danceability=float(data.get("avgDanceability", 0.0)),
            avg_energy=float(data.get("avgEnergy", 0.0)),
            avg_valence=float(data.get("avgValence", 0.0)),
            acoustic_bias=float(data.get("acousticBias", 0.0)),
            instrumental_bias=float(data.get("instrumentalBias", 0.0)),
        )


def build_taste_vector(track_set: TrackSet) -> TasteVector:
    """
    Arithmetic means of the audio features over unique tracks.

    An empty set yields all zeros rather than NaN.
    """
    if len(track_set) == 0:
        return TasteVector()
    df = tracks_frame(track_set)
    means = df[["danceability", "energy", "valence", "acousticness", "instrumentalness"]].mean()
    return TasteVector(
        avg_danceability=float(means["danceability"]),
        avg_energy=float(means["energy"]),
        avg_valence=float(means["valence"]),
        acoustic_bias=float(means["acousticness"]),
        instrumental_bias=float(means["instrumentalness"]),
    )
