from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from moodtrack.models.mood import MOOD_MIDPOINT, MoodEntry, MoodTrend, ensure_aware, utc_now
from moodtrack.models.stat import MoodCountStat, TrendSummary

RECOMMENDATIONS: Dict[MoodTrend, Tuple[str, ...]] = {
    MoodTrend.NEGATIVE: (
        "Consider talking to a friend or family member about your feelings",
        "Try incorporating more physical activity into your daily routine",
        "Practice mindfulness or meditation to help manage stress",
    ),
    MoodTrend.STABLE: (
        "Keep maintaining your current routine",
        "Consider setting new personal goals",
        "Share your positive experiences with others",
    ),
    MoodTrend.POSITIVE: (
        "Keep up the great work!",
        "Share your positive energy with others",
        "Document what's working well for future reference",
    ),
}


def classify_mood(value: float) -> MoodTrend:
    if value > MOOD_MIDPOINT:
        return MoodTrend.POSITIVE
    if value < MOOD_MIDPOINT:
        return MoodTrend.NEGATIVE
    return MoodTrend.STABLE


def filter_window(
    entries: Iterable[MoodEntry], start: datetime, end: Optional[datetime] = None
) -> List[MoodEntry]:
    """Entries with start <= timestamp <= end, input order kept."""
    start = ensure_aware(start)
    end = ensure_aware(end) if end is not None else utc_now()
    return [e for e in entries if start <= e.timestamp <= end]


def analyze_trend(
    entries: Sequence[MoodEntry], start: datetime, end: Optional[datetime] = None
) -> Optional[TrendSummary]:
    """Mean mood, trend label and canned recommendations over [start, end].

    Returns None when no entry falls inside the window.
    """
    window = filter_window(entries, start, end)
    if not window:
        return None

    mean_value = sum(e.mood_value for e in window) / len(window)
    trend = classify_mood(mean_value)

    return TrendSummary(
        mean_value=mean_value,
        trend=trend,
        recommendations=list(RECOMMENDATIONS[trend]),
        entry_count=len(window),
        mood_counts=count_moods(window),
    )


def count_moods(entries: Sequence[MoodEntry]) -> List[MoodCountStat]:
    counter: Dict[str, int] = {}
    for entry in entries:
        counter[entry.mood_label] = counter.get(entry.mood_label, 0) + 1

    stats = []
    if entries:
        for label, count in counter.items():
            stats.append(MoodCountStat(
                mood_label=label,
                count=count,
                percentage=round((count / len(entries)) * 100, 1),
            ))
    stats.sort(key=lambda x: x.count, reverse=True)
    return stats


def calculate_streaks(entries: Iterable[MoodEntry], today: Optional[date] = None) -> Tuple[int, int]:
    """(current, longest) runs of consecutive days with at least one entry."""
    dates = {e.timestamp.date() for e in entries}
    sorted_dates = sorted(dates)
    if not sorted_dates:
        return 0, 0

    longest_streak = 1
    current_run = 1
    for i in range(1, len(sorted_dates)):
        if (sorted_dates[i] - sorted_dates[i - 1]).days == 1:
            current_run += 1
        else:
            current_run = 1
        longest_streak = max(longest_streak, current_run)

    today = today or utc_now().date()
    yesterday = today - timedelta(days=1)

    # today may simply not have an entry yet
    if today in dates:
        check_date = today
    elif yesterday in dates:
        check_date = yesterday
    else:
        return 0, longest_streak

    current_streak = 0
    while check_date in dates:
        current_streak += 1
        check_date -= timedelta(days=1)

    return current_streak, longest_streak
