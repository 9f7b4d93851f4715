from __future__ import annotations
from pathlib import Path
from typing import Dict
import json
import pandas as pd

from .stats import Stats

TABLES = ("genres", "discovery", "activity", "rare")


def stats_tables(stats: Stats) -> Dict[str, pd.DataFrame]:
    """Tabular views of a Stats value, keyed by table name."""
    return {
        "genres": pd.DataFrame(list(stats.top_unique_genres), columns=["genre", "count"]),
        "discovery": pd.DataFrame(list(stats.discovery_trend), columns=["month", "count"]),
        "activity": pd.DataFrame(list(stats.activity_trend), columns=["month", "count"]),
        "rare": pd.DataFrame(list(stats.rare_tracks), columns=["name", "artist", "pop"]),
    }


def export_table(df: pd.DataFrame, out: str) -> str:
    p = Path(out)
    p.parent.mkdir(parents=True, exist_ok=True)
    if p.suffix.lower() in [".parquet", ".pq"]:
        df.to_parquet(p, index=False)
    elif p.suffix.lower() == ".csv":
        df.to_csv(p, index=False)
    else:
        # default csv
        df.to_csv(p.with_suffix(".csv"), index=False)
        return str(p.with_suffix(".csv"))
    return str(p)


def export_stats(stats: Stats, out: str, percent: bool = False) -> str:
    p = Path(out)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(stats.to_dict(percent=percent), indent=2), encoding="utf-8")
    return str(p)
