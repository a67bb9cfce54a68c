from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# moodValue -> (moodLabel, moodEmoji)
MOOD_SCALE = {
    1: ("Very Sad", "😢"),
    2: ("Sad", "😕"),
    3: ("Neutral", "😐"),
    4: ("Happy", "😊"),
    5: ("Very Happy", "😄"),
}
MOOD_MIDPOINT = 3

MIN_NOTE_WORDS = 2
NOTE_TOO_SHORT_MESSAGE = "Please enter at least 2 words to describe your mood"

MAX_RECOMMENDATIONS = 3


class MoodTrend(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    STABLE = "stable"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    # naive instants are read as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def mood_label(value: int) -> str:
    return MOOD_SCALE[value][0]


def mood_emoji(value: int) -> str:
    return MOOD_SCALE[value][1]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MoodEntry(_CamelModel):
    model_config = ConfigDict(frozen=True)

    mood_value: int = Field(ge=1, le=5)
    mood_label: str
    mood_emoji: str
    note: str
    timestamp: datetime
    ai_insight: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _derive_label_and_emoji(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        raw_value = data.get("moodValue", data.get("mood_value"))
        try:
            value = int(raw_value)
        except (TypeError, ValueError):
            return data
        if value not in MOOD_SCALE:
            # range error is reported by the field constraint
            return data

        label, emoji = MOOD_SCALE[value]
        for alias, name, expected in (
            ("moodLabel", "mood_label", label),
            ("moodEmoji", "mood_emoji", emoji),
        ):
            supplied = data.pop(alias, None)
            supplied = data.pop(name, supplied)
            if supplied is not None and supplied != expected:
                raise ValueError(
                    f"{alias} {supplied!r} does not match moodValue {value} ({expected!r})"
                )
            data[alias] = expected
        return data

    @field_validator("timestamp")
    @classmethod
    def _aware_timestamp(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class MoodDraft(_CamelModel):
    """Input for a new entry. Label and emoji are never accepted here."""

    mood_value: int = Field(ge=1, le=5)
    note: str
    timestamp: Optional[datetime] = None

    @field_validator("note")
    @classmethod
    def _note_has_enough_words(cls, v: str) -> str:
        v = v.strip()
        if len(v.split()) < MIN_NOTE_WORDS:
            raise ValueError(NOTE_TOO_SHORT_MESSAGE)
        return v

    @field_validator("timestamp")
    @classmethod
    def _aware_timestamp(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v) if v is not None else None

    def to_entry(self, now: Optional[datetime] = None) -> MoodEntry:
        return MoodEntry(
            mood_value=self.mood_value,
            note=self.note,
            timestamp=self.timestamp or now or utc_now(),
        )


class Insight(_CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    mood_entry: MoodEntry
    analysis: str
    recommendations: List[str] = Field(default_factory=list, max_length=MAX_RECOMMENDATIONS)
    mood_trend: MoodTrend
    ai_response: Optional[str] = None
    # set only on insights that summarize a window of entries
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None

    @field_validator("timestamp", "period_start", "period_end")
    @classmethod
    def _aware_instants(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v) if v is not None else None

    @property
    def is_period(self) -> bool:
        return self.period_start is not None and self.period_end is not None


class GeneratedInsightResponse(_CamelModel):
    insight: Optional[Insight] = None
