"""
Tolerant CSV parsing for playlist exports.

Turns raw text into header-keyed rows. A malformed line is dropped, never fatal.
"""

from __future__ import annotations

import re
from typing import Dict, Iterator, List, Optional, Sequence

BOM = "\ufeff"

RawRow = Dict[str, str]

# Only CR, LF and CRLF end a line; other Unicode separators stay inside fields
LINE_BREAK = re.compile(r"\r\n|\r|\n")
QUOTE = '"'
DELIMITER = ","


class MalformedLineError(ValueError):
    """A line that cannot be tokenised (e.g. an unterminated quoted field)."""


def split_lines(text: str) -> List[str]:
    return LINE_BREAK.split(text)


def split_fields(line: str) -> List[str]:
    """
    Split one line into fields.

    Any quote toggles the inside-quoted-field state, so quoted runs may start
    mid-field (``a"b,c"d`` is one field ``ab,cd``). Inside quotes, ``""`` is one
    literal quote and commas are not separators.

    Raises:
        MalformedLineError: If the line ends inside a quoted field
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    i, n = 0, len(line)
    while i < n:
        ch = line[i]
        if ch == QUOTE:
            if in_quotes and i + 1 < n and line[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 2
                continue
            in_quotes = not in_quotes
        elif ch == DELIMITER and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    if in_quotes:
        raise MalformedLineError(f"unterminated quoted field in line: {line[:60]!r}")
    fields.append("".join(current))
    return fields


class TabularRows:
    """
    Lazy, restartable sequence of ``RawRow`` over one text blob.

    Each iteration re-scans the text, so consuming it twice yields the same rows.
    """

    def __init__(self, text: str, required: Sequence[str] = ()):
        if text.startswith(BOM):
            text = text[len(BOM):]
        self._text = text
        self._required = tuple(k for k in required if k)
        self._header: Optional[List[str]] = None
        self.dropped = 0

    @property
    def header(self) -> List[str]:
        """Header fields, or [] when the text has no non-blank line."""
        if self._header is None:
            self._header = []
            for line in split_lines(self._text):
                if line.strip():
                    try:
                        self._header = [h.strip() for h in split_fields(line)]
                    except MalformedLineError:
                        self._header = []
                    break
        return list(self._header)

    def __iter__(self) -> Iterator[RawRow]:
        header = self.header
        if not header:
            return
        required = [k for k in self._required if k in header]
        dropped = 0
        lines = iter(split_lines(self._text))
        # Skip up to and including the header line
        for line in lines:
            if line.strip():
                break
        for line in lines:
            if not line.strip():
                continue
            try:
                fields = split_fields(line)
            except MalformedLineError:
                dropped += 1
                continue
            if len(fields) > len(header):
                dropped += 1
                continue
            if not any(f.strip() for f in fields):
                continue
            fields.extend([""] * (len(header) - len(fields)))
            row = dict(zip(header, fields))
            if any(not row[k].strip() for k in required):
                dropped += 1
                continue
            yield row
        self.dropped = dropped


def parse_rows(text: str, required: Sequence[str] = ()) -> TabularRows:
    """
    Parse CSV text into rows keyed by header.

    Args:
        text: Raw file contents (a leading byte-order mark is ignored)
        required: Keys that, when present in the header, must be non-empty

    Returns:
        Restartable iterable of rows
    """
    return TabularRows(text, required=required)
