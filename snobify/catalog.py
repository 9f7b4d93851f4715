from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Tuple
import json
import os
import re

from .errors import CacheReadError, CacheWriteError
from .stats import Stats


def _default_cache_dir() -> Path:
    """Default to ./.cache/stats in the current working directory."""
    return Path.cwd() / ".cache" / "stats"


@dataclass
class CacheConfig:
    enabled: bool = True
    dir: Path = field(default_factory=_default_cache_dir)

    def __post_init__(self):
        # Convert string paths to Path objects
        if isinstance(self.dir, str):
            self.dir = Path(self.dir)


def _safe_profile(profile: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]", "_", profile).strip(".") or "_"


class StatsCache:
    """Stores computed Stats as JSON keyed by (profile, content hash), plus an in-memory memo."""

    def __init__(self, cache: CacheConfig):
        self.cache = cache
        self._memo: Dict[Tuple[str, str], Stats] = {}

    def entry_path(self, profile: str, digest: str) -> Path:
        return self.cache.dir / _safe_profile(profile) / f"{digest}.json"

    def get(self, profile: str, digest: str) -> Optional[Stats]:
        """
        Return the cached Stats, or None on a miss.

        Raises:
            CacheReadError: If an entry exists but cannot be read or decoded
        """
        key = (profile, digest)
        if key in self._memo:
            return self._memo[key]
        if not self.cache.enabled:
            return None
        p = self.entry_path(profile, digest)
        if not p.exists():
            return None
        try:
            stats = Stats.from_dict(json.loads(p.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise CacheReadError(f"Unreadable cache entry {p}: {e}") from e
        self._memo[key] = stats
        return stats

    def put(self, profile: str, stats: Stats) -> Stats:
        """
        Store ``stats`` under its own content hash.

        Raises:
            CacheWriteError: If the entry cannot be written
        """
        self._memo[(profile, stats.meta.hash)] = stats
        if not self.cache.enabled:
            return stats
        p = self.entry_path(profile, stats.meta.hash)
        tmp = p.with_suffix(".json.tmp")
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(stats.to_dict(), indent=2, sort_keys=True), encoding="utf-8")
            os.replace(tmp, p)
        except OSError as e:
            raise CacheWriteError(f"Could not write cache entry {p}: {e}") from e
        return stats

    def clear(self) -> None:
        self._memo.clear()
