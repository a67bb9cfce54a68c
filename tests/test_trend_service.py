"""Tests for trend classification, window filtering, counts and streaks."""
from datetime import date, datetime, timedelta, timezone

import pytest

from moodtrack.models.mood import MoodTrend
from moodtrack.services.trend_service import (
    RECOMMENDATIONS,
    analyze_trend,
    calculate_streaks,
    classify_mood,
    count_moods,
    filter_window,
)

END = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
START = END - timedelta(days=7)


@pytest.fixture()
def series(make_entry):
    def _series(values):
        return [make_entry(v, END - timedelta(hours=i + 1)) for i, v in enumerate(values)]

    return _series


@pytest.mark.parametrize(
    "values, trend, mean",
    [
        ([4, 5, 4], MoodTrend.POSITIVE, 13 / 3),
        ([2, 1, 2], MoodTrend.NEGATIVE, 5 / 3),
        ([3, 3, 3], MoodTrend.STABLE, 3.0),
    ],
)
def test_trend_classification(series, values, trend, mean):
    summary = analyze_trend(series(values), START, END)
    assert summary.trend is trend
    assert summary.mean_value == pytest.approx(mean)
    assert summary.entry_count == 3
    assert summary.recommendations == list(RECOMMENDATIONS[trend])


def test_positive_mean_rounds_to_four_point_three(series):
    summary = analyze_trend(series([4, 5, 4]), START, END)
    assert round(summary.mean_value, 2) == 4.33


@pytest.mark.parametrize(
    "value, trend",
    [(1, MoodTrend.NEGATIVE), (2.99, MoodTrend.NEGATIVE), (3, MoodTrend.STABLE),
     (3.01, MoodTrend.POSITIVE), (5, MoodTrend.POSITIVE)],
)
def test_classify_mood_midpoint(value, trend):
    assert classify_mood(value) is trend


def test_each_trend_has_three_recommendations():
    assert set(RECOMMENDATIONS) == set(MoodTrend)
    assert all(len(recs) == 3 for recs in RECOMMENDATIONS.values())
    assert RECOMMENDATIONS[MoodTrend.POSITIVE][0] == "Keep up the great work!"


def test_empty_window_is_no_data(make_entry):
    old = [make_entry(5, START - timedelta(days=1))]
    assert analyze_trend(old, START, END) is None
    assert analyze_trend([], START, END) is None


def test_window_bounds_are_inclusive(make_entry):
    entries = [
        make_entry(1, START),
        make_entry(5, END),
        make_entry(2, START - timedelta(seconds=1)),
        make_entry(2, END + timedelta(seconds=1)),
    ]
    window = filter_window(entries, START, END)
    assert [e.mood_value for e in window] == [1, 5]


def test_window_end_defaults_to_now(make_entry, now):
    entries = [make_entry(4, now - timedelta(hours=1)), make_entry(1, now + timedelta(days=1))]
    summary = analyze_trend(entries, now - timedelta(days=7))
    assert summary.entry_count == 1
    assert summary.trend is MoodTrend.POSITIVE


def test_only_windowed_entries_count(make_entry):
    entries = [make_entry(5, END - timedelta(days=1)), make_entry(1, START - timedelta(days=3))]
    summary = analyze_trend(entries, START, END)
    assert summary.mean_value == 5
    assert summary.trend is MoodTrend.POSITIVE


def test_mood_counts(series):
    counts = count_moods(series([4, 4, 2, 4]))
    assert [(c.mood_label, c.count, c.percentage) for c in counts] == [
        ("Happy", 3, 75.0),
        ("Sad", 1, 25.0),
    ]


# ---- streaks ----


def _at(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, 12, 0, tzinfo=timezone.utc)


def test_streaks_empty():
    assert calculate_streaks([], date(2026, 10, 19)) == (0, 0)


def test_streaks_count_back_from_today(make_entry):
    today = date(2026, 10, 19)
    days = [today, today - timedelta(days=1), today - timedelta(days=2),
            today - timedelta(days=5), today - timedelta(days=6)]
    entries = [make_entry(3, _at(d)) for d in days]
    assert calculate_streaks(entries, today) == (3, 3)


def test_streak_continues_from_yesterday(make_entry):
    today = date(2026, 10, 19)
    entries = [make_entry(3, _at(today - timedelta(days=i))) for i in (1, 2)]
    assert calculate_streaks(entries, today) == (2, 2)


def test_streak_broken(make_entry):
    today = date(2026, 10, 19)
    entries = [make_entry(3, _at(today - timedelta(days=i))) for i in (3, 4, 5, 6)]
    assert calculate_streaks(entries, today) == (0, 4)


def test_several_entries_same_day_count_once(make_entry):
    today = date(2026, 10, 19)
    entries = [make_entry(3, _at(today)), make_entry(4, _at(today) + timedelta(hours=2))]
    assert calculate_streaks(entries, today) == (1, 1)
