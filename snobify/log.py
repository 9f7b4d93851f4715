"""
Logging setup: console/file handlers for the ``snobify`` logger and timed stages.
"""

from __future__ import annotations

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

ROOT_LOGGER = "snobify"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_dir: Optional[Path] = None, log_level: str = "INFO") -> logging.Logger:
    """
    Set up logging for the application.

    Args:
        log_dir: Directory for a dated log file (console only when None)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Configured ``snobify`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"snobify_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the ``snobify`` logger or one of its children (e.g. ``ingest``)."""
    if not name:
        return logging.getLogger(ROOT_LOGGER)
    if name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


@contextmanager
def timed_step(step_name: str, logger: Optional[logging.Logger] = None) -> Iterator[None]:
    """Context manager to time and log execution of a pipeline stage."""
    logger = logger or get_logger()
    start_time = time.perf_counter()
    logger.debug("[START] %s", step_name)
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start_time
        logger.debug("[END] %s (took %.3fs)", step_name, elapsed)
