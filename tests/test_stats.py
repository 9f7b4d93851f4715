"""End-to-end tests for stats assembly."""

import json
from datetime import datetime

import pytest

import snobify.stats as stats_mod
from snobify.config import ComputeConfig
from snobify.errors import ComputeFailedError, DataNotFoundError, SchemaError, error_envelope
from snobify.features import GenreCount, MonthCount, RareTrack
from snobify.rater import PlaylistRating
from snobify.stats import Stats, compute, compute_path, content_hash
from snobify.taste import TasteVector

from conftest import track


def test_library_summary(library):
    stats = compute_path(library)

    assert list(stats.top_unique_genres) == [
        GenreCount("Jazz", 2), GenreCount("Lo-fi", 1), GenreCount("Pop", 1),
    ]
    assert list(stats.discovery_trend) == [
        MonthCount("2023-01", 2), MonthCount("2023-02", 1), MonthCount("2023-03", 1),
    ]
    assert list(stats.activity_trend) == [
        MonthCount("2023-01", 2), MonthCount("2023-02", 1), MonthCount("2023-03", 2),
    ]
    assert [r.name for r in stats.rare_tracks] == ["Snowman", "Naima", "Blue in Green", "Levitating"]


def test_meta(library):
    meta = compute_path(library).meta
    assert meta.rows == 5
    assert meta.unique_tracks == 4
    assert meta.sources == ("chill", "hype")
    assert meta.skipped == 0
    assert meta.window_start == datetime(2023, 1, 10, 12)
    assert meta.window_end == datetime(2023, 3, 20, 12)
    assert meta.hash == content_hash(["spotify:track:4", "spotify:track:3",
                                      "spotify:track:2", "spotify:track:1"])


def test_deterministic_across_worker_counts(library):
    one = compute_path(library, ComputeConfig(max_workers=1))
    many = compute_path(library, ComputeConfig(max_workers=8))
    assert one == many
    assert json.dumps(one.to_dict()) == json.dumps(many.to_dict())


def test_duplicate_track_appears_once_in_rare_tracks(tmp_path, write_playlist):
    for name in ("a.csv", "b.csv", "c.csv"):
        write_playlist(name, [track("u1", "Hidden Gem", "Nobody", "Folk", pop="1")])
    write_playlist("d.csv", [track("u2", "Hit", "Star", "Pop", pop="99")])
    stats = compute_path(tmp_path)
    assert list(stats.rare_tracks) == [RareTrack("Hidden Gem", "Nobody", 1), RareTrack("Hit", "Star", 99)]
    assert stats.meta.unique_tracks == 2


def test_header_only_files_give_zeroed_stats(tmp_path, write_playlist):
    write_playlist("empty.csv", [])
    stats = compute_path(tmp_path)
    assert stats.top_unique_genres == ()
    assert stats.discovery_trend == ()
    assert stats.rare_tracks == ()
    assert stats.taste == TasteVector()
    assert stats.playlist_rater == PlaylistRating()
    assert stats.meta.window_start is None


def test_missing_data_raises(tmp_path):
    with pytest.raises(DataNotFoundError):
        compute_path(tmp_path / "missing")


def test_unusable_columns_raise_schema_error(tmp_path, write_playlist):
    write_playlist("bad.csv", [{"Genres": "Jazz"}], header=["Genres"])
    with pytest.raises(SchemaError):
        compute_path(tmp_path)


def test_dates_do_not_affect_taste_or_rating():
    dated = [("p", track(f"u{i}", f"n{i}", "a", "Jazz", pop=str(i * 9), dance=str(i / 10),
                         added=f"2023-0{i + 1}-01")) for i in range(5)]
    undated = [(source, dict(row, **{"Added At": ""})) for source, row in dated]
    a, b = compute(dated), compute(undated)
    assert a.taste == b.taste
    assert a.playlist_rater == b.playlist_rater
    assert b.discovery_trend == ()


def test_unusable_rows_are_counted_not_fatal():
    rows = [("p", track("u1", "One", "A")), ("p", {"Genres": "Jazz"})]
    stats = compute(rows)
    assert stats.meta.rows == 2
    assert stats.meta.skipped == 1
    assert stats.meta.unique_tracks == 1


def test_to_dict_shape(library):
    data = compute_path(library).to_dict()
    assert list(data) == [
        "topUniqueGenres", "discoveryTrend", "activityTrend", "rareTracks",
        "taste", "playlistRater", "meta",
    ]
    assert data["topUniqueGenres"][0] == {"genre": "Jazz", "count": 2}
    assert data["rareTracks"][0] == {"name": "Snowman", "artist": "Jinsang", "pop": 20}
    assert set(data["taste"]) == {"avgDanceability", "avgEnergy", "avgValence",
                                  "acousticBias", "instrumentalBias"}
    assert data["meta"]["window"] == {"start": "2023-01-10T12:00:00", "end": "2023-03-20T12:00:00"}


def test_percent_scale(library):
    stats = compute_path(library)
    unit = stats.to_dict()["playlistRater"]
    percent = stats.to_dict(percent=True)["playlistRater"]
    for key, value in unit.items():
        assert percent[key] == int(round(value * 100))


def test_from_dict_rebuilds_equal_value(library):
    stats = compute_path(library)
    assert Stats.from_dict(json.loads(json.dumps(stats.to_dict()))) == stats


def test_aggregation_failure_is_typed(library, monkeypatch):
    def boom(track_set):
        raise RuntimeError("numerical meltdown")

    monkeypatch.setattr(stats_mod, "build_taste_vector", boom)
    with pytest.raises(ComputeFailedError) as excinfo:
        compute_path(library)
    assert "numerical meltdown" in str(excinfo.value)
    assert excinfo.value.code == "SNB-2001"


def test_custom_limits(library):
    stats = compute_path(library, ComputeConfig(top_genres_limit=1, rare_limit=2))
    assert len(stats.top_unique_genres) == 1
    assert len(stats.rare_tracks) == 2


def test_content_hash_ignores_order_and_duplicates():
    assert content_hash(["b", "a", "a"]) == content_hash(["a", "b"])
    assert content_hash(["a"]) != content_hash(["a", "b"])


class TestErrorEnvelope:
    def test_typed_error(self) -> None:
        status, body = error_envelope(DataNotFoundError("No music data found"), req_id="r-1")
        assert status == 404
        assert body["error"]["code"] == "SNB-1002"
        assert body["error"]["message"] == "No music data found"
        assert body["error"]["reqId"] == "r-1"
        assert "hint" in body["error"]

    def test_hint_override(self) -> None:
        _, body = error_envelope(SchemaError("bad header", hint="Add a Track URI column"))
        assert body["error"]["hint"] == "Add a Track URI column"

    def test_untyped_error(self) -> None:
        status, body = error_envelope(KeyError("x"))
        assert status == 500
        assert body["error"]["code"] == "SNB-9001"
        assert "reqId" not in body["error"]


def test_rare_percentile_mode(library):
    assert len(compute_path(library).rare_tracks) == 4
    stats = compute_path(library, ComputeConfig(rare_mode="percentile", rare_percentile=50))
    assert [r.name for r in stats.rare_tracks] == ["Snowman", "Naima"]


def test_pre_spotify_cutoff_is_off_by_default(tmp_path, write_playlist):
    write_playlist("old.csv", [
        track("u1", "Ancient", "A", added="2007-05-01"),
        track("u2", "Launch", "B", added="2008-10-02"),
        track("u3", "Undated", "C"),
    ])
    default = compute_path(tmp_path)
    assert default.meta.unique_tracks == 3
    assert default.meta.excluded == 0

    cut = compute_path(tmp_path, ComputeConfig(drop_pre_spotify=True))
    assert cut.meta.unique_tracks == 2
    assert cut.meta.excluded == 1
    assert cut.meta.rows == 3
    assert cut.to_dict()["meta"]["excluded"] == 1


def test_malformed_lines_are_reported_in_meta(tmp_path):
    (tmp_path / "broken.csv").write_text(
        'Track URI,Track Name,Artist Name(s)\nu1,One,A\nu2,"Unclosed,B\nu3,Three,C,extra\n',
        encoding="utf-8",
    )
    meta = compute_path(tmp_path).meta
    assert meta.unique_tracks == 1
    assert meta.dropped == 2
    assert meta.to_dict()["dropped"] == 2
