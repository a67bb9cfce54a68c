"""
Shared pytest fixtures.

The completion endpoint is served by an httpx.MockTransport and storage lives
in a MemorySlotStore, so no network or disk is needed unless a test asks for
tmp_path.
"""
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from moodtrack.config import Settings
from moodtrack.db.database import MemorySlotStore, MoodRepository
from moodtrack.models.mood import Insight, MoodEntry
from moodtrack.services.ai_service import InsightGenerator
from moodtrack.services.mood_store import MoodStore
from moodtrack.services.trend_service import classify_mood

COMPLETION_TEXT = "Take a short walk and write down one good thing from today."


def completion_body(text: str = COMPLETION_TEXT) -> dict:
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": text}}]}


@pytest.fixture()
def settings():
    return Settings(openai_api_key="test-key", storage_backend="memory")


@pytest.fixture()
def completion_requests():
    return []


@pytest.fixture()
def ai_client(completion_requests):
    def handler(request: httpx.Request) -> httpx.Response:
        completion_requests.append(request)
        return httpx.Response(200, json=completion_body())

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture()
def slots():
    return MemorySlotStore()


@pytest.fixture()
def repository(slots):
    return MoodRepository(slots)


@pytest.fixture()
def generator(settings, ai_client):
    return InsightGenerator(settings, client=ai_client)


@pytest.fixture()
def store(repository, generator, settings):
    return MoodStore(repository, generator, settings)


@pytest.fixture()
def now():
    return datetime.now(timezone.utc)


@pytest.fixture()
def make_entry():
    def _make(value: int, timestamp: datetime, note: str = "feeling okay today") -> MoodEntry:
        return MoodEntry(mood_value=value, note=note, timestamp=timestamp)

    return _make


@pytest.fixture()
def make_insight():
    def _make(entry: MoodEntry, offset_seconds: int = 1) -> Insight:
        created = entry.timestamp + timedelta(seconds=offset_seconds)
        return Insight(
            id=created.isoformat(),
            timestamp=created,
            mood_entry=entry,
            analysis=f"Mood: {entry.mood_label}",
            mood_trend=classify_mood(entry.mood_value),
        )

    return _make
