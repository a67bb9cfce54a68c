"""
Durable storage for the two mood collections.

Each collection lives in a named slot holding the JSON text of its record
list. The slot backends only move text in and out of a medium; the
MoodRepository on top of them is the typed read/write facade the store uses.
"""
from __future__ import annotations

import json
import logging
import os
import time
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Protocol, Union

from pydantic import ValidationError
from pymongo import MongoClient
from pymongo.collection import Collection as MongoCollection
from pymongo.errors import PyMongoError

from moodtrack.config import Settings
from moodtrack.errors import StorageError
from moodtrack.models.mood import Insight, MoodEntry

logger = logging.getLogger(__name__)


class Collection(str, Enum):
    MOOD_ENTRIES = "moodEntries"
    INSIGHTS = "insights"


class SlotStore(Protocol):
    def read(self, slot: str) -> Optional[str]:
        """Return the slot's text, or None if the slot was never written."""

    def write(self, slot: str, payload: str) -> None:
        ...

    def close(self) -> None:
        ...


class MemorySlotStore:
    def __init__(self) -> None:
        self.slots: dict[str, str] = {}

    def read(self, slot: str) -> Optional[str]:
        return self.slots.get(slot)

    def write(self, slot: str, payload: str) -> None:
        self.slots[slot] = payload

    def close(self) -> None:
        pass


class JsonFileSlotStore:
    """One `<slot>.json` file per slot under `data_dir`."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)

    def path_for(self, slot: str) -> Path:
        return self.data_dir / f"{slot}.json"

    def read(self, slot: str) -> Optional[str]:
        path = self.path_for(slot)
        if not path.exists():
            return None
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise StorageError(f"Could not read {path}: {e}", slot=slot) from e
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            self.backup_corrupt(slot, raw)
            raise StorageError(f"{path} is not valid UTF-8: {e}", slot=slot) from e

    def write(self, slot: str, payload: str) -> None:
        """
        Atomic-ish save:
        - write to temp file in same directory
        - flush + fsync
        - os.replace to target
        - chmod 0600 best-effort
        """
        path = self.path_for(slot)
        tmp = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except OSError as e:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                pass
            raise StorageError(f"Could not write {path}: {e}", slot=slot) from e

        try:
            os.chmod(path, 0o600)
        except OSError:
            pass

    def backup_corrupt(self, slot: str, payload: Union[str, bytes]) -> Optional[Path]:
        path = self.path_for(slot)
        backup = path.with_suffix(f".corrupt-{int(time.time())}.json")
        try:
            if isinstance(payload, bytes):
                backup.write_bytes(payload)
            else:
                backup.write_text(payload, encoding="utf-8")
        except OSError:
            logger.exception("Could not back up corrupt slot %s", slot)
            return None
        return backup

    def close(self) -> None:
        pass


class MongoSlotStore:
    """Slots as `{_id: <slot>, payload: <json text>}` documents."""

    def __init__(self, collection: MongoCollection, client: Optional[MongoClient] = None) -> None:
        self.collection = collection
        self.client = client

    @classmethod
    def connect(cls, uri: str, db_name: str, collection_name: str = "slots") -> "MongoSlotStore":
        client = MongoClient(uri, serverSelectionTimeoutMS=5000)
        return cls(client[db_name][collection_name], client=client)

    def read(self, slot: str) -> Optional[str]:
        try:
            doc = self.collection.find_one({"_id": slot})
        except PyMongoError as e:
            raise StorageError(f"MongoDB read failed: {e}", slot=slot) from e
        if doc is None:
            return None
        payload = doc.get("payload")
        if payload is not None and not isinstance(payload, str):
            raise StorageError(
                f"Slot {slot!r} payload is {type(payload).__name__}, expected text", slot=slot
            )
        return payload

    def write(self, slot: str, payload: str) -> None:
        try:
            self.collection.update_one(
                {"_id": slot},
                {"$set": {"payload": payload}},
                upsert=True,
            )
        except PyMongoError as e:
            raise StorageError(f"MongoDB write failed: {e}", slot=slot) from e

    def close(self) -> None:
        if self.client is not None:
            self.client.close()


class MoodRepository:
    def __init__(self, slots: SlotStore) -> None:
        self.slots = slots

    def load(self, collection: Collection) -> list[dict[str, Any]]:
        """Absent slot -> []. Unreadable or undecodable slot -> StorageError."""
        slot = Collection(collection).value
        payload = self.slots.read(slot)
        if payload is None:
            return []
        if not isinstance(payload, str):
            raise StorageError(f"Slot {slot!r} did not return text", slot=slot)
        if not payload.strip():
            return []

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            if isinstance(self.slots, JsonFileSlotStore):
                self.slots.backup_corrupt(slot, payload)
            raise StorageError(f"Corrupt payload in slot {slot!r}: {e}", slot=slot) from e

        if not isinstance(data, list):
            raise StorageError(
                f"Slot {slot!r} holds {type(data).__name__}, expected a list", slot=slot
            )
        return data

    def save(self, collection: Collection, records: list[dict[str, Any]]) -> bool:
        slot = Collection(collection).value
        try:
            payload = json.dumps(records, ensure_ascii=False, indent=2) + "\n"
            self.slots.write(slot, payload)
        except (StorageError, TypeError, ValueError) as e:
            logger.error("Saving slot %s failed: %s", slot, e)
            return False
        return True

    # --- typed helpers ---

    def load_entries(self) -> list[MoodEntry]:
        return _parse_records(self.load(Collection.MOOD_ENTRIES), MoodEntry)

    def load_insights(self) -> list[Insight]:
        return _parse_records(self.load(Collection.INSIGHTS), Insight)

    def save_entries(self, entries: list[MoodEntry]) -> bool:
        return self.save(Collection.MOOD_ENTRIES, [_dump(e) for e in entries])

    def save_insights(self, insights: list[Insight]) -> bool:
        return self.save(Collection.INSIGHTS, [_dump(i) for i in insights])

    def close(self) -> None:
        self.slots.close()


def _dump(record) -> dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True, exclude_none=True)


def _parse_records(raw: list[Any], model):
    records = []
    for i, item in enumerate(raw):
        try:
            records.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning("Skipping invalid %s record #%d: %s", model.__name__, i, e)
    return records


def build_repository(settings: Settings) -> MoodRepository:
    backend = settings.storage_backend
    if backend == "mongo":
        if not settings.mongo_uri:
            raise StorageError("STORAGE_BACKEND=mongo requires MONGO_URI")
        slots = MongoSlotStore.connect(settings.mongo_uri, settings.db_name)
    elif backend == "memory":
        slots = MemorySlotStore()
    elif backend == "file":
        slots = JsonFileSlotStore(settings.data_dir)
    else:
        raise StorageError(f"Unknown storage backend {backend!r}")
    logger.info("Using %s storage backend", backend)
    return MoodRepository(slots)
