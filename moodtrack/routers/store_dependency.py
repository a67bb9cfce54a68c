from fastapi import Request

from moodtrack.services.mood_store import MoodStore


def get_mood_store(request: Request) -> MoodStore:
    return request.app.state.mood_store
