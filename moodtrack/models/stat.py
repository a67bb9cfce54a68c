from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from moodtrack.models.mood import MoodTrend


class _StatModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MoodCountStat(_StatModel):
    mood_label: str
    count: int
    percentage: float


class TrendSummary(_StatModel):
    mean_value: float
    trend: MoodTrend
    recommendations: List[str]
    entry_count: int
    mood_counts: List[MoodCountStat] = []


class StreakStats(_StatModel):
    current_streak: int
    longest_streak: int
    total_entries: int


class TrendResponse(_StatModel):
    days: int
    summary: Optional[TrendSummary] = None
