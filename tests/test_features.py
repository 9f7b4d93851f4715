"""Tests for genre, trend and rarity aggregation."""

from datetime import datetime

from snobify.features import (
    GenreCount,
    MonthCount,
    RareTrack,
    activity_trend,
    date_window,
    discovery_trend,
    rare_tracks,
    top_unique_genres,
    tracks_frame,
)
from snobify.tracks import Track, TrackSet, build_track_set

from conftest import track


def test_genre_counted_once_per_unique_track():
    rows = [
        ("a", track("u1", "One", "X", "Jazz")),
        ("b", track("u1", "One", "X", "Jazz")),
        ("c", track("u1", "One", "X", "Jazz")),
        ("a", track("u2", "Two", "Y", "Rock")),
    ]
    assert top_unique_genres(build_track_set(rows)) == [GenreCount("Jazz", 1), GenreCount("Rock", 1)]


def test_genres_sorted_by_count_then_name_and_empty_excluded():
    ts = TrackSet([
        Track(id="1", name="a", artist="x", primary_genre="Rock"),
        Track(id="2", name="b", artist="x", primary_genre="Ambient"),
        Track(id="3", name="c", artist="x", primary_genre="Rock"),
        Track(id="4", name="d", artist="x", primary_genre="Blues"),
        Track(id="5", name="e", artist="x", primary_genre=""),
    ])
    assert top_unique_genres(ts) == [
        GenreCount("Rock", 2), GenreCount("Ambient", 1), GenreCount("Blues", 1),
    ]
    assert top_unique_genres(ts, limit=2) == [GenreCount("Rock", 2), GenreCount("Ambient", 1)]


def test_empty_set_aggregates():
    ts = TrackSet()
    assert top_unique_genres(ts) == []
    assert discovery_trend(ts) == []
    assert activity_trend(ts) == []
    assert rare_tracks(ts) == []
    assert date_window(ts) == (None, None)
    assert list(tracks_frame(ts).columns)[0] == "id"


def test_rarity_ties_broken_by_name():
    ts = TrackSet([
        Track(id="1", name="B", artist="x", popularity=0),
        Track(id="2", name="A", artist="x", popularity=0),
        Track(id="3", name="C", artist="x", popularity=100),
    ])
    assert rare_tracks(ts) == [RareTrack("A", "x", 0), RareTrack("B", "x", 0), RareTrack("C", "x", 100)]


def test_rarity_artist_tiebreak_and_limit():
    ts = TrackSet([
        Track(id=str(i), name="Same", artist=artist, popularity=pop)
        for i, (artist, pop) in enumerate([("Zed", 5), ("Amy", 5), ("Bob", 1), ("Cat", 70)])
    ])
    assert rare_tracks(ts, n=3) == [
        RareTrack("Same", "Bob", 1), RareTrack("Same", "Amy", 5), RareTrack("Same", "Zed", 5),
    ]


def test_missing_popularity_sorts_first():
    rows = [
        ("p", track("u1", "Known", "x", pop="3")),
        ("p", track("u2", "Unknown", "x", pop="")),
    ]
    assert [r.name for r in rare_tracks(build_track_set(rows))] == ["Unknown", "Known"]


def test_discovery_counts_first_month_only_and_activity_counts_every_sighting():
    rows = [
        ("chill", track("u1", "One", "x", added="2023-01-10")),
        ("hype", track("u1", "One", "x", added="2023-03-05")),
        ("hype", track("u2", "Two", "y", added="2023-03-20")),
        ("hype", track("u3", "Three", "z", added="")),
    ]
    ts = build_track_set(rows)
    assert discovery_trend(ts) == [MonthCount("2023-01", 1), MonthCount("2023-03", 1)]
    assert activity_trend(ts) == [MonthCount("2023-01", 1), MonthCount("2023-03", 2)]


def test_trends_sparse_and_chronological():
    rows = [
        ("p", track("u1", "a", "x", added="2024-02-01")),
        ("p", track("u2", "b", "x", added="2022-11-30")),
        ("p", track("u3", "c", "x", added="2023-06-15")),
    ]
    months = [m.month for m in discovery_trend(build_track_set(rows))]
    assert months == ["2022-11", "2023-06", "2024-02"]


def test_date_window_spans_all_occurrences():
    rows = [
        ("a", track("u1", "a", "x", added="2023-01-10")),
        ("b", track("u1", "a", "x", added="2023-05-01")),
    ]
    assert date_window(build_track_set(rows)) == (datetime(2023, 1, 10), datetime(2023, 5, 1))


def test_rare_percentile_takes_share_of_the_set():
    ts = TrackSet([Track(id=f"{i:02d}", name=f"t{i:02d}", artist="x", popularity=i) for i in range(20)])
    assert [r.pop for r in rare_tracks(ts, percentile=10)] == [0, 1]
    # Always at least one track
    assert [r.pop for r in rare_tracks(ts, percentile=1)] == [0]
    # The fixed limit is ignored in percentile mode
    assert len(rare_tracks(ts, n=1, percentile=50)) == 10
