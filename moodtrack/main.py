import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from moodtrack.config import Settings
from moodtrack.errors import (
    MoodTrackError,
    moodtrack_exception_handler,
    validation_exception_handler,
)
from moodtrack.routers import insight_router, journal_router, stat_router
from moodtrack.services.mood_store import MoodStore, build_store

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, store: Optional[MoodStore] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        mood_store = store or build_store(settings)
        await mood_store.load()
        app.state.mood_store = mood_store
        try:
            yield
        finally:
            await mood_store.close()

    app = FastAPI(
        title="MoodTrack Backend",
        description="Mood journal with trend insights and AI suggestions.",
        lifespan=lifespan,
    )

    app.add_exception_handler(MoodTrackError, moodtrack_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(journal_router.router)
    app.include_router(insight_router.router)
    app.include_router(stat_router.router)

    @app.get("/health", tags=["Health"])
    async def health(request: Request):
        mood_store: MoodStore = request.app.state.mood_store
        return {
            "status": mood_store.state.value,
            "degraded": mood_store.degraded,
            "memory_only": sorted(c.value for c in mood_store.memory_only),
            "entries": len(mood_store.list_entries()),
            "ai_configuration_error": mood_store.generator.configuration_error,
        }

    return app


app = create_app()
