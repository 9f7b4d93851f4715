"""
Configuration for the stats pipeline.

All environment variables and default constants are defined here. Values are read
into an explicit ``ComputeConfig`` which callers pass down the pipeline.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv


# Project root (assumes this file is at snobify/config.py)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Load .env file early so environment variables are available
_env_path = PROJECT_ROOT / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


def parse_bool_env(key: str, default: bool = True) -> bool:
    """Parse boolean environment variable."""
    value = os.environ.get(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def parse_int_env(key: str, default: int) -> int:
    """Parse integer environment variable, falling back to default on garbage."""
    value = os.environ.get(key)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        return default


def parse_float_env(key: str, default: float) -> float:
    value = os.environ.get(key)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


def parse_list_env(key: str, default: List[str]) -> List[str]:
    """Parse comma-separated environment variable into a list of stripped items."""
    value = os.environ.get(key)
    if value is None or not value.strip():
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_weights(key: str, default: Tuple[float, ...]) -> Tuple[float, ...]:
    items = parse_list_env(key, [])
    if len(items) != len(default):
        return default
    try:
        weights = tuple(float(x) for x in items)
    except ValueError:
        return default
    if any(w < 0 for w in weights) or sum(weights) <= 0:
        return default
    return weights


# ============================================================================
# DEFAULTS
# ============================================================================
DEFAULT_PROFILE = "default"
DEFAULT_SOURCE_SUFFIXES = (".csv",)
DEFAULT_REQUIRED_KEY = "Track URI"
DEFAULT_TOP_GENRES = 15
DEFAULT_RARE_LIMIT = 10
DEFAULT_MAX_WORKERS = 4
DEFAULT_COMPUTE_TIMEOUT = 30.0
DEFAULT_MIN_PLAYLIST_TRACKS = 5

# Rare tracks: a fixed count ("top_n") or the least popular percentage ("percentile")
RARE_MODES = ("top_n", "percentile")
DEFAULT_RARE_MODE = "top_n"
DEFAULT_RARE_PERCENTILE = 5.0
# Dated rows before this month are excluded when drop_pre_spotify is on
DEFAULT_CUTOFF_MONTH = "2008-10"
_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

# Rater weights: (variety, rarity_score)
DEFAULT_CREATIVITY_WEIGHTS = (0.6, 0.4)
# Rater weights: (rarity_score, cohesion, variety, creativity)
DEFAULT_OVERALL_WEIGHTS = (0.35, 0.35, 0.15, 0.15)


def _default_data_dir() -> Path:
    return PROJECT_ROOT / "profiles"


def _default_cache_dir() -> Path:
    return PROJECT_ROOT / ".cache" / "stats"


@dataclass
class ComputeConfig:
    """Settings for one pipeline run. Construct explicitly or via ``from_env()``."""

    data_dir: Path = field(default_factory=_default_data_dir)
    cache_dir: Path = field(default_factory=_default_cache_dir)
    cache_enabled: bool = True
    default_profile: str = DEFAULT_PROFILE
    source_suffixes: Tuple[str, ...] = DEFAULT_SOURCE_SUFFIXES
    required_key: Optional[str] = DEFAULT_REQUIRED_KEY
    top_genres_limit: int = DEFAULT_TOP_GENRES
    rare_limit: int = DEFAULT_RARE_LIMIT
    max_workers: int = DEFAULT_MAX_WORKERS
    timeout: Optional[float] = DEFAULT_COMPUTE_TIMEOUT
    creativity_weights: Tuple[float, float] = DEFAULT_CREATIVITY_WEIGHTS
    overall_weights: Tuple[float, float, float, float] = DEFAULT_OVERALL_WEIGHTS
    min_playlist_tracks: int = DEFAULT_MIN_PLAYLIST_TRACKS
    rare_mode: str = DEFAULT_RARE_MODE
    rare_percentile: float = DEFAULT_RARE_PERCENTILE
    drop_pre_spotify: bool = False
    cutoff_month: str = DEFAULT_CUTOFF_MONTH
    log_level: str = "INFO"

    def __post_init__(self):
        # Convert string paths to Path objects
        if isinstance(self.data_dir, str):
            self.data_dir = Path(self.data_dir)
        if isinstance(self.cache_dir, str):
            self.cache_dir = Path(self.cache_dir)
        self.source_suffixes = tuple(s.lower() if s.startswith(".") else f".{s.lower()}"
                                     for s in self.source_suffixes)
        self.max_workers = max(1, int(self.max_workers))
        if self.timeout is not None and self.timeout <= 0:
            self.timeout = None
        self.rare_mode = (self.rare_mode or "").strip().lower()
        if self.rare_mode not in RARE_MODES:
            self.rare_mode = DEFAULT_RARE_MODE
        if not 0 < self.rare_percentile <= 100:
            self.rare_percentile = DEFAULT_RARE_PERCENTILE
        if not _MONTH_RE.match(self.cutoff_month or ""):
            self.cutoff_month = DEFAULT_CUTOFF_MONTH

    @property
    def active_rare_percentile(self) -> Optional[float]:
        """The percentile to use for rare tracks, or None in top-N mode."""
        return self.rare_percentile if self.rare_mode == "percentile" else None

    @property
    def active_cutoff(self) -> Optional[str]:
        """The cutoff month when drop_pre_spotify is on, else None."""
        return self.cutoff_month if self.drop_pre_spotify else None

    @classmethod
    def from_env(cls) -> "ComputeConfig":
        """Build a config from SNOBIFY_* environment variables (and .env)."""
        data_dir = os.environ.get("SNOBIFY_DATA_DIR")
        cache_dir = os.environ.get("SNOBIFY_CACHE_DIR")
        required_key = os.environ.get("SNOBIFY_REQUIRED_KEY", DEFAULT_REQUIRED_KEY).strip()
        return cls(
            data_dir=Path(data_dir) if data_dir else _default_data_dir(),
            cache_dir=Path(cache_dir) if cache_dir else _default_cache_dir(),
            cache_enabled=parse_bool_env("SNOBIFY_CACHE_ENABLED", True),
            default_profile=os.environ.get("SNOBIFY_DEFAULT_PROFILE", DEFAULT_PROFILE),
            source_suffixes=tuple(parse_list_env("SNOBIFY_SOURCE_SUFFIXES", list(DEFAULT_SOURCE_SUFFIXES))),
            required_key=required_key or None,
            top_genres_limit=parse_int_env("SNOBIFY_TOP_GENRES", DEFAULT_TOP_GENRES),
            rare_limit=parse_int_env("SNOBIFY_RARE_LIMIT", DEFAULT_RARE_LIMIT),
            max_workers=parse_int_env("SNOBIFY_MAX_WORKERS", DEFAULT_MAX_WORKERS),
            timeout=parse_float_env("SNOBIFY_COMPUTE_TIMEOUT", DEFAULT_COMPUTE_TIMEOUT),
            creativity_weights=_parse_weights("SNOBIFY_CREATIVITY_WEIGHTS", DEFAULT_CREATIVITY_WEIGHTS),
            overall_weights=_parse_weights("SNOBIFY_OVERALL_WEIGHTS", DEFAULT_OVERALL_WEIGHTS),
            min_playlist_tracks=parse_int_env("SNOBIFY_MIN_PLAYLIST_TRACKS", DEFAULT_MIN_PLAYLIST_TRACKS),
            rare_mode=os.environ.get("SNOBIFY_RARE_MODE", DEFAULT_RARE_MODE),
            rare_percentile=parse_float_env("SNOBIFY_RARE_PERCENTILE", DEFAULT_RARE_PERCENTILE),
            drop_pre_spotify=parse_bool_env("SNOBIFY_DROP_PRE_SPOTIFY", False),
            cutoff_month=os.environ.get("SNOBIFY_CUTOFF_MONTH", DEFAULT_CUTOFF_MONTH).strip(),
            log_level=os.environ.get("SNOBIFY_LOG_LEVEL", "INFO"),
        )
