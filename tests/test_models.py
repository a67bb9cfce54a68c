"""Tests for the mood record models: derived label/emoji, note rules, aliases."""
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from moodtrack.models.mood import (
    MOOD_SCALE,
    NOTE_TOO_SHORT_MESSAGE,
    Insight,
    MoodDraft,
    MoodEntry,
    MoodTrend,
)

TS = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", sorted(MOOD_SCALE))
def test_label_and_emoji_follow_value(value):
    entry = MoodEntry(mood_value=value, note="two words", timestamp=TS)
    assert (entry.mood_label, entry.mood_emoji) == MOOD_SCALE[value]


def test_scale_ends():
    assert MOOD_SCALE[1] == ("Very Sad", "😢")
    assert MOOD_SCALE[5] == ("Very Happy", "😄")


def test_matching_label_is_accepted():
    entry = MoodEntry.model_validate(
        {"moodValue": 2, "moodLabel": "Sad", "moodEmoji": "😕", "note": "a b", "timestamp": TS}
    )
    assert entry.mood_label == "Sad"


def test_mismatched_label_is_rejected():
    with pytest.raises(ValidationError):
        MoodEntry.model_validate(
            {"moodValue": 1, "moodLabel": "Very Happy", "note": "a b", "timestamp": TS}
        )


def test_mismatched_emoji_is_rejected():
    with pytest.raises(ValidationError):
        MoodEntry(mood_value=5, mood_emoji="😢", note="a b", timestamp=TS)


@pytest.mark.parametrize("value", [0, 6, -1])
def test_out_of_range_value_is_rejected(value):
    with pytest.raises(ValidationError):
        MoodEntry(mood_value=value, note="a b", timestamp=TS)


def test_entry_is_immutable():
    entry = MoodEntry(mood_value=3, note="a b", timestamp=TS)
    with pytest.raises(ValidationError):
        entry.note = "changed note"


def test_naive_timestamp_is_read_as_utc():
    entry = MoodEntry(mood_value=3, note="a b", timestamp=datetime(2026, 1, 1, 9, 0))
    assert entry.timestamp.tzinfo is not None
    assert entry.timestamp == datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)


def test_entry_dump_uses_camel_case():
    entry = MoodEntry(mood_value=4, note="a b", timestamp=TS)
    dumped = entry.model_dump(mode="json", by_alias=True, exclude_none=True)
    assert set(dumped) == {"moodValue", "moodLabel", "moodEmoji", "note", "timestamp"}


# ---- drafts ----


def test_draft_with_two_words_is_valid():
    draft = MoodDraft(mood_value=3, note="ok fine")
    assert draft.note == "ok fine"


def test_draft_note_is_trimmed():
    draft = MoodDraft(mood_value=3, note="  ok   fine \n")
    assert draft.note == "ok   fine"


@pytest.mark.parametrize("note", ["ok", "", "   ", "  single\n"])
def test_draft_with_short_note_is_rejected(note):
    with pytest.raises(ValidationError) as exc:
        MoodDraft(mood_value=3, note=note)
    assert NOTE_TOO_SHORT_MESSAGE in str(exc.value)


def test_draft_to_entry_defaults_timestamp():
    entry = MoodDraft(mood_value=5, note="great day").to_entry(now=TS)
    assert entry.timestamp == TS
    assert entry.mood_label == "Very Happy"
    assert entry.ai_insight is None


def test_draft_keeps_given_timestamp():
    draft = MoodDraft.model_validate({"moodValue": 2, "note": "long day", "timestamp": "2026-10-01T10:00:00Z"})
    assert draft.to_entry(now=TS).timestamp == datetime(2026, 10, 1, 10, 0, tzinfo=timezone.utc)


# ---- insights ----


def test_insight_period_flag():
    entry = MoodEntry(mood_value=3, note="a b", timestamp=TS)
    single = Insight(id="1", timestamp=TS, mood_entry=entry, analysis="Mood: Neutral", mood_trend=MoodTrend.STABLE)
    period = single.model_copy(update={"period_start": TS, "period_end": TS})
    assert not single.is_period
    assert period.is_period


def test_insight_allows_at_most_three_recommendations():
    entry = MoodEntry(mood_value=3, note="a b", timestamp=TS)
    with pytest.raises(ValidationError):
        Insight(
            id="1",
            timestamp=TS,
            mood_entry=entry,
            analysis="x",
            recommendations=["a", "b", "c", "d"],
            mood_trend="stable",
        )
