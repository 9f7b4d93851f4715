import csv
import io
import logging
from pathlib import Path

import pytest

HEADER = [
    "Track URI", "Track Name", "Artist Name(s)", "Genres", "Popularity",
    "Danceability", "Energy", "Valence", "Acousticness", "Instrumentalness", "Added At",
]


def csv_text(rows, header=HEADER):
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(header)
    for row in rows:
        writer.writerow([row.get(h, "") for h in header])
    return buf.getvalue()


def track(uri, name, artist, genres="", pop="50", dance="0.5", energy="0.5",
          valence="0.5", acoustic="0.1", instrumental="0.0", added=""):
    return {
        "Track URI": uri, "Track Name": name, "Artist Name(s)": artist, "Genres": genres,
        "Popularity": pop, "Danceability": dance, "Energy": energy, "Valence": valence,
        "Acousticness": acoustic, "Instrumentalness": instrumental, "Added At": added,
    }


@pytest.fixture
def write_playlist(tmp_path):
    def _write(name, rows, header=HEADER, directory: Path = tmp_path):
        p = directory / name
        p.write_text(csv_text(rows, header), encoding="utf-8")
        return p
    return _write


@pytest.fixture
def library(tmp_path, write_playlist):
    """chill.csv (Jazz/Jazz/Lo-fi) and hype.csv (Pop/Pop, one track shared with chill)."""
    write_playlist("chill.csv", [
        track("spotify:track:1", "Blue in Green", "Miles Davis", "Jazz", pop="60",
              added="2023-01-10T12:00:00Z"),
        track("spotify:track:2", "Naima", "John Coltrane", "Jazz|Hard Bop", pop="45",
              added="2023-01-20T12:00:00Z"),
        track("spotify:track:3", "Snowman", "Jinsang", "Lo-fi", pop="20",
              added="2023-02-02 08:30:00"),
    ])
    write_playlist("hype.csv", [
        track("spotify:track:1", "Blue in Green", "Miles Davis", "Pop", pop="60",
              added="2023-03-05T12:00:00Z"),
        track("spotify:track:4", "Levitating", "Dua Lipa", "Pop,Dance", pop="90",
              dance="0.9", energy="0.8", valence="0.9", added="2023-03-20T12:00:00Z"),
    ])
    return tmp_path


@pytest.fixture(autouse=True)
def _reset_snobify_logger():
    yield
    logger = logging.getLogger("snobify")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
