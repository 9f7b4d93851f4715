"""
Error taxonomy for the stats pipeline.

Only fatal conditions are raised. Bad lines, unreadable files, unparseable
numbers/dates and empty genres are handled locally and never surface here.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SnobifyError(Exception):
    """Base class for typed pipeline failures."""

    code = "SNB-9001"
    http_status = 500
    hint: Optional[str] = None

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        if hint is not None:
            self.hint = hint


class DataNotFoundError(SnobifyError):
    """No source files could be found or read."""

    code = "SNB-1002"
    http_status = 404
    hint = "Place playlist CSV exports in the profile directory or pass a CSV file."


class SchemaError(SnobifyError):
    """Source files exist but none has usable identity columns."""

    code = "SNB-1004"
    http_status = 422
    hint = "Each CSV needs a 'Track URI' column or both 'Track Name' and 'Artist Name(s)'."


class ComputeFailedError(SnobifyError):
    """Aggregation failed for an unexpected reason."""

    code = "SNB-2001"
    http_status = 500


class ComputeTimeoutError(ComputeFailedError):
    """The overall compute deadline expired before ingestion finished."""

    code = "SNB-2002"
    http_status = 504
    hint = "Try again, or raise SNOBIFY_COMPUTE_TIMEOUT for very large libraries."


class CacheReadError(SnobifyError):
    code = "SNB-3001"


class CacheWriteError(SnobifyError):
    code = "SNB-3002"


def error_envelope(err: BaseException, req_id: Optional[str] = None) -> tuple[int, Dict[str, Any]]:
    """
    Render an exception as (status, body) for a response layer.

    Untyped exceptions are reported as SNB-9001 with status 500.
    """
    if isinstance(err, SnobifyError):
        status, code, hint = err.http_status, err.code, err.hint
    else:
        status, code, hint = 500, SnobifyError.code, None
    body: Dict[str, Any] = {"code": code, "message": str(err) or type(err).__name__}
    if hint:
        body["hint"] = hint
    if req_id:
        body["reqId"] = req_id
    return status, {"error": body}
