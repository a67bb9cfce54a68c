from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from moodtrack.models.mood import GeneratedInsightResponse, Insight
from moodtrack.routers.store_dependency import get_mood_store
from moodtrack.services.mood_store import MoodStore

router = APIRouter(
    prefix="/insights",
    tags=["Insights"],
)


@router.get("", response_model=List[Insight])
async def list_insights(store: MoodStore = Depends(get_mood_store)):
    return list(store.list_insights())


@router.get("/entry/{timestamp}", response_model=List[Insight])
async def get_entry_insights(
    timestamp: str,
    store: MoodStore = Depends(get_mood_store),
):
    return list(store.insights_for(timestamp))


@router.post("/generate", response_model=GeneratedInsightResponse)
async def generate_period_insight(
    days: Optional[int] = Query(None, ge=1, le=365, description="Window length in days"),
    store: MoodStore = Depends(get_mood_store),
):
    insight = await store.generate_periodic_insight(days)
    return GeneratedInsightResponse(insight=insight)
