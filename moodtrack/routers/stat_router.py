from typing import Optional

from fastapi import APIRouter, Depends, Query

from moodtrack.models.stat import StreakStats, TrendResponse
from moodtrack.routers.store_dependency import get_mood_store
from moodtrack.services.mood_store import MoodStore

router = APIRouter(
    prefix="/stats",
    tags=["Statistics"],
)


@router.get("/trend", response_model=TrendResponse)
async def get_trend(
    days: Optional[int] = Query(None, ge=1, le=365, description="Window length in days"),
    store: MoodStore = Depends(get_mood_store),
):
    if days is None:
        days = store.settings.insight_window_days
    return TrendResponse(days=days, summary=store.trend_summary(days))


@router.get("/streaks", response_model=StreakStats)
async def get_streaks(store: MoodStore = Depends(get_mood_store)):
    return store.streaks()
