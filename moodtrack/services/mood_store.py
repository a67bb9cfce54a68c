"""
The mood store: in-memory source of truth for entries and insights, mirrored
write-through to a MoodRepository.

Lifecycle is Uninitialized -> Loading -> Ready -> Closed. Mutations issued
before the first load trigger it; mutations issued while a load is running
wait for it. Queries never wait and never touch storage: they return the
current snapshot.

Both collections are newest first. Operations that touch both collections
take the entries lock before the insights lock.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import TypeAdapter, ValidationError

from moodtrack.config import Settings
from moodtrack.db.database import Collection, MoodRepository, build_repository
from moodtrack.errors import EntryValidationError, StorageError, StoreClosedError
from moodtrack.models.mood import Insight, MoodDraft, MoodEntry, ensure_aware, utc_now
from moodtrack.models.stat import StreakStats, TrendSummary
from moodtrack.services.ai_service import InsightGenerator
from moodtrack.services.trend_service import analyze_trend, calculate_streaks

logger = logging.getLogger(__name__)

_instant = TypeAdapter(datetime)


class StoreState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    CLOSED = "closed"


class MoodStore:
    def __init__(
        self,
        repository: MoodRepository,
        generator: InsightGenerator,
        settings: Optional[Settings] = None,
    ):
        self.repository = repository
        self.generator = generator
        self.settings = settings or generator.settings
        self.state = StoreState.UNINITIALIZED
        # true once a load or save failed; memory stays authoritative
        self.degraded = False
        # collections whose last load failed; not written back until a load succeeds
        self.memory_only: set[Collection] = set()

        self._entries: list[MoodEntry] = []
        self._insights: list[Insight] = []
        self._insights_by_entry: dict[datetime, list[Insight]] = {}

        self._entries_lock = asyncio.Lock()
        self._insights_lock = asyncio.Lock()
        self._ready = asyncio.Event()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """(Re)read both collections from durable storage."""
        self._check_open()
        if self.state is StoreState.LOADING:
            await self._ready.wait()
            return

        self.state = StoreState.LOADING
        self._ready.clear()
        try:
            async with self._entries_lock, self._insights_lock:
                self.memory_only = set()
                entries, insights = await asyncio.gather(
                    self._load_collection(self.repository.load_entries, Collection.MOOD_ENTRIES),
                    self._load_collection(self.repository.load_insights, Collection.INSIGHTS),
                )
                self._entries = entries
                self._set_insights(insights)
        finally:
            if self.state is StoreState.LOADING:
                self.state = StoreState.READY
            self._ready.set()

        logger.info(
            "Mood store ready: %d entries, %d insights", len(self._entries), len(self._insights)
        )

    async def close(self) -> None:
        if self.state is StoreState.CLOSED:
            return
        self.state = StoreState.CLOSED
        self._ready.set()
        await self.generator.aclose()
        await asyncio.to_thread(self.repository.close)
        logger.info("Mood store closed")

    async def _load_collection(self, loader: Callable[[], list], collection: Collection) -> list:
        try:
            return await asyncio.to_thread(loader)
        except StorageError as e:
            self.degraded = True
            self.memory_only.add(collection)
            logger.error(
                "Could not load %s, starting empty in memory-only mode: %s",
                collection.value, e.message,
            )
            return []

    async def _ensure_ready(self) -> None:
        self._check_open()
        if self.state is StoreState.UNINITIALIZED:
            await self.load()
        elif self.state is StoreState.LOADING:
            await self._ready.wait()
        self._check_open()

    def _check_open(self) -> None:
        if self.state is StoreState.CLOSED:
            raise StoreClosedError()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add_entry(self, draft: Union[MoodDraft, Mapping[str, Any]]) -> MoodEntry:
        """Validate, enrich with AI text, store the entry and its insight.

        Returns the stored entry including `ai_insight`.
        """
        draft = _validate_draft(draft)
        await self._ensure_ready()

        entry = draft.to_entry()
        # the AI text has to be on the entry before anything is persisted
        ai_insight = await self.generator.generate_entry_insight(entry)
        entry = entry.model_copy(update={"ai_insight": ai_insight})

        async with self._entries_lock, self._insights_lock:
            self._check_open()
            self._entries = [entry, *self._entries]
            insight = self.generator.build_entry_insight(entry, ai_insight)
            self._prepend_insight(insight)
            await self._persist(entries=True, insights=True)

        logger.debug("Added entry %s (%s)", entry.timestamp.isoformat(), entry.mood_label)
        return entry

    async def remove_entry(self, timestamp: Union[datetime, str]) -> int:
        """Remove every entry at `timestamp` and the insights derived from it.

        Returns the number of entries removed; 0 is not an error.
        """
        target = parse_instant(timestamp)
        await self._ensure_ready()

        async with self._entries_lock, self._insights_lock:
            remaining = [e for e in self._entries if e.timestamp != target]
            removed = len(self._entries) - len(remaining)
            if removed == 0 and target not in self._insights_by_entry:
                return 0

            self._entries = remaining
            self._set_insights(
                [i for i in self._insights if i.mood_entry.timestamp != target]
            )
            await self._persist(entries=True, insights=True)

        logger.debug("Removed %d entries at %s", removed, target.isoformat())
        return removed

    async def save_insight(self, insight: Insight) -> Insight:
        """Prepend an insight whose entry is already in the store."""
        await self._ensure_ready()
        async with self._entries_lock, self._insights_lock:
            self._require_entry(insight.mood_entry)
            stored = self._prepend_insight(insight)
            await self._persist(insights=True)
        return stored

    async def generate_periodic_insight(self, window_days: Optional[int] = None) -> Optional[Insight]:
        """Trend insight over the trailing window; None when there is too little data."""
        await self._ensure_ready()
        async with self._entries_lock, self._insights_lock:
            insight = self.generator.generate_period_insight(self._entries, window_days)
            if insight is None:
                logger.debug("Not enough data for a period insight")
                return None
            stored = self._prepend_insight(insight)
            await self._persist(insights=True)
        return stored

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_entries(self) -> tuple[MoodEntry, ...]:
        return tuple(self._entries)

    def list_insights(self) -> tuple[Insight, ...]:
        return tuple(self._insights)

    def insights_for(self, timestamp: Union[datetime, str]) -> tuple[Insight, ...]:
        return tuple(self._insights_by_entry.get(parse_instant(timestamp), ()))

    def trend_summary(self, days: Optional[int] = None, now: Optional[datetime] = None) -> Optional[TrendSummary]:
        if days is None:
            days = self.settings.insight_window_days
        now = ensure_aware(now) if now is not None else utc_now()
        return analyze_trend(self._entries, now - timedelta(days=days), now)

    def streaks(self, today: Optional[date] = None) -> StreakStats:
        current, longest = calculate_streaks(self._entries, today)
        return StreakStats(
            current_streak=current,
            longest_streak=longest,
            total_entries=len(self._entries),
        )

    # ------------------------------------------------------------------
    # Internals (callers hold the locks)
    # ------------------------------------------------------------------

    def _set_insights(self, insights: list[Insight]) -> None:
        self._insights = insights
        index: dict[datetime, list[Insight]] = {}
        for insight in insights:
            index.setdefault(insight.mood_entry.timestamp, []).append(insight)
        self._insights_by_entry = index

    def _prepend_insight(self, insight: Insight) -> Insight:
        insight = self._with_unique_id(insight)
        self._set_insights([insight, *self._insights])
        return insight

    def _with_unique_id(self, insight: Insight) -> Insight:
        taken = {i.id for i in self._insights}
        if insight.id not in taken:
            return insight
        n = 1
        while f"{insight.id}-{n}" in taken:
            n += 1
        return insight.model_copy(update={"id": f"{insight.id}-{n}"})

    def _require_entry(self, entry: MoodEntry) -> None:
        if not any(e.timestamp == entry.timestamp for e in self._entries):
            raise EntryValidationError(
                "Insight refers to an entry that is not in the store",
                details={"timestamp": entry.timestamp.isoformat()},
            )

    async def _persist(self, entries: bool = False, insights: bool = False) -> bool:
        entries = entries and Collection.MOOD_ENTRIES not in self.memory_only
        insights = insights and Collection.INSIGHTS not in self.memory_only
        jobs = []
        if entries:
            jobs.append(asyncio.to_thread(self.repository.save_entries, list(self._entries)))
        if insights:
            jobs.append(asyncio.to_thread(self.repository.save_insights, list(self._insights)))
        results = await asyncio.gather(*jobs)
        if not all(results):
            self.degraded = True
            logger.error("Persisting mood data failed; continuing with in-memory state")
            return False
        return True


def _validate_draft(draft: Union[MoodDraft, Mapping[str, Any]]) -> MoodDraft:
    if isinstance(draft, MoodDraft):
        return draft
    try:
        return MoodDraft.model_validate(draft)
    except ValidationError as e:
        raise EntryValidationError(
            "Invalid mood entry",
            details={"errors": [
                {"field": ".".join(str(loc) for loc in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ]},
        ) from e


def parse_instant(value: Union[datetime, str]) -> datetime:
    if isinstance(value, datetime):
        return ensure_aware(value)
    try:
        return ensure_aware(_instant.validate_python(value))
    except ValidationError as e:
        raise EntryValidationError(
            f"Invalid timestamp {value!r}", details={"timestamp": str(value)}
        ) from e


def build_store(settings: Settings) -> MoodStore:
    return MoodStore(build_repository(settings), InsightGenerator(settings), settings)
