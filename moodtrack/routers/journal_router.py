from typing import List

from fastapi import APIRouter, Depends, status

from moodtrack.models.mood import MoodDraft, MoodEntry
from moodtrack.routers.store_dependency import get_mood_store
from moodtrack.services.mood_store import MoodStore

router = APIRouter(
    prefix="/journal",
    tags=["Journal"],
)


@router.post("/new", response_model=MoodEntry, status_code=status.HTTP_201_CREATED)
async def create_new_entry(
    draft: MoodDraft,
    store: MoodStore = Depends(get_mood_store),
):
    # the returned entry already carries aiInsight; clients display this one
    return await store.add_entry(draft)


@router.get("/history", response_model=List[MoodEntry])
async def get_journal_history(store: MoodStore = Depends(get_mood_store)):
    return list(store.list_entries())


@router.post("/reload", response_model=dict)
async def reload_journal(store: MoodStore = Depends(get_mood_store)):
    await store.load()
    return {
        "entries": len(store.list_entries()),
        "insights": len(store.list_insights()),
        "degraded": store.degraded,
    }


@router.delete("/{timestamp}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    timestamp: str,
    store: MoodStore = Depends(get_mood_store),
):
    await store.remove_entry(timestamp)
    return None
