"""
Multi-source ingestion: one CSV per playlist, merged with provenance tags.

Files are read on a small thread pool, but results are always re-assembled in
lexicographic file-name order, so arrival order never leaks into the output.
"""

from __future__ import annotations

import sys
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from tqdm import tqdm

from .config import DEFAULT_MAX_WORKERS, DEFAULT_REQUIRED_KEY, DEFAULT_SOURCE_SUFFIXES
from .errors import ComputeTimeoutError, DataNotFoundError, SchemaError
from .log import get_logger
from .parser import RawRow, parse_rows
from .schema import ID_COLUMNS, has_identity_columns

logger = get_logger("ingest")

SourceRow = Tuple[str, RawRow]


@dataclass
class IngestResult:
    """Rows per source (playlist), in lexicographic source order."""

    sources: Dict[str, List[RawRow]] = field(default_factory=dict)
    failed: List[str] = field(default_factory=list)
    unusable: List[str] = field(default_factory=list)
    dropped: int = 0

    @property
    def row_count(self) -> int:
        return sum(len(rows) for rows in self.sources.values())

    def rows_by_source(self) -> Dict[str, List[RawRow]]:
        return dict(self.sources)

    def iter_rows(self) -> Iterator[SourceRow]:
        """Concatenate every source's rows as (source_name, row) pairs."""
        for name, rows in self.sources.items():
            for row in rows:
                yield name, row


def discover_sources(directory: Path, suffixes: Sequence[str] = DEFAULT_SOURCE_SUFFIXES) -> List[Path]:
    """List source files in ``directory`` matching ``suffixes``, sorted by file name."""
    wanted = {s.lower() for s in suffixes}
    files = [p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in wanted]
    return sorted(files, key=lambda p: p.name)


def _source_name(path: Path, taken: Dict[str, Path]) -> str:
    name = path.stem
    if name in taken:
        name = path.name
    return name


def _required_keys(required_key: Optional[str]) -> Tuple[str, ...]:
    if required_key:
        return (required_key,)
    return ()


def load_source(path: Path, required_key: Optional[str] = DEFAULT_REQUIRED_KEY) -> Tuple[List[str], List[RawRow], int]:
    """
    Read and parse one source file.

    Returns:
        (header, rows, dropped_line_count)

    Raises:
        OSError: If the file cannot be read
    """
    text = path.read_text(encoding="utf-8", errors="replace")
    table = parse_rows(text, required=_required_keys(required_key))
    rows = list(table)
    return table.header, rows, table.dropped


def _collect(
    result: IngestResult,
    name: str,
    path: Path,
    loaded: Optional[Tuple[List[str], List[RawRow], int]],
) -> None:
    if loaded is None:
        result.failed.append(name)
        return
    header, rows, dropped = loaded
    result.dropped += dropped
    if not header:
        logger.warning("Skipping %s: no header line", path.name)
        result.failed.append(name)
        return
    if not has_identity_columns(header):
        logger.warning(
            "Skipping %s: no identifier or track/artist name columns in header",
            path.name,
        )
        result.unusable.append(name)
        return
    result.sources[name] = rows
    logger.debug("Loaded %s: %d rows (%d dropped)", path.name, len(rows), dropped)


def _safe_load(path: Path, required_key: Optional[str]) -> Optional[Tuple[List[str], List[RawRow], int]]:
    try:
        return load_source(path, required_key)
    except (OSError, ValueError) as e:
        logger.warning("Could not read %s: %s", path.name, e)
        return None


def read_sources(
    path: Union[str, Path],
    suffixes: Sequence[str] = DEFAULT_SOURCE_SUFFIXES,
    required_key: Optional[str] = DEFAULT_REQUIRED_KEY,
    max_workers: int = DEFAULT_MAX_WORKERS,
    timeout: Optional[float] = None,
    progress: bool = False,
) -> IngestResult:
    """
    Ingest a directory of playlist CSVs, or a single consolidated CSV.

    Args:
        path: Directory of source files, or one file
        suffixes: File suffixes to pick up in a directory
        required_key: Identifier column whose empty cells drop the row
        max_workers: Upper bound on concurrent file reads
        timeout: Overall deadline in seconds (None = wait forever)
        progress: Show a tqdm progress bar over files

    Returns:
        IngestResult with sources ordered by file name

    Raises:
        DataNotFoundError: Path missing, no matching files, or nothing readable
        SchemaError: Files were read but none has usable identity columns
        ComputeTimeoutError: The deadline expired before every file was read
    """
    path = Path(path)
    if not path.exists():
        raise DataNotFoundError(f"No music data found at {path}")

    result = IngestResult()

    if path.is_file():
        _collect(result, path.stem, path, _safe_load(path, required_key))
        return _checked(result, path)

    files = discover_sources(path, suffixes)
    if not files:
        raise DataNotFoundError(f"No {'/'.join(suffixes)} files found in {path}")

    names: Dict[str, Path] = {}
    for f in files:
        names[_source_name(f, names)] = f

    loaded: Dict[str, Optional[Tuple[List[str], List[RawRow], int]]] = {}
    workers = max(1, min(max_workers, len(files)))
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="snobify-ingest")
    try:
        futures = {executor.submit(_safe_load, p, required_key): name for name, p in names.items()}
        completed = as_completed(futures, timeout=timeout)
        if progress:
            completed = tqdm(completed, total=len(futures), desc="Reading playlists",
                             unit="file", leave=False, file=sys.stderr)
        for future in completed:
            loaded[futures[future]] = future.result()
    except FuturesTimeoutError:
        # Outstanding reads are abandoned, not awaited
        executor.shutdown(wait=False, cancel_futures=True)
        raise ComputeTimeoutError(
            f"Reading {len(files)} files from {path} exceeded {timeout}s "
            f"({len(loaded)} finished)"
        ) from None
    except BaseException:
        executor.shutdown(wait=False, cancel_futures=True)
        raise
    executor.shutdown(wait=True)

    # Re-assemble in lexicographic order regardless of completion order
    for name in sorted(names, key=lambda n: names[n].name):
        _collect(result, name, names[name], loaded.get(name))

    logger.info(
        "Ingested %d rows from %d/%d files in %s",
        result.row_count, len(result.sources), len(files), path,
    )
    return _checked(result, path)


def _checked(result: IngestResult, path: Path) -> IngestResult:
    if result.sources:
        return result
    if result.unusable:
        raise SchemaError(
            f"Source data in {path} is missing required columns "
            f"(need one of {', '.join(ID_COLUMNS)}, or track and artist names)"
        )
    raise DataNotFoundError(f"No readable music data found at {path}")
