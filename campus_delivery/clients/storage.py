"""
Campus Delivery: Durable client storage

A string key/value slot store scoped to one client (browser session). Writes
are best-effort: a failing backend is logged, never raised to the caller.

``update`` is the read-modify-write primitive. Concurrent requests from the
same client each see the other's committed value, so no change is lost.
"""
import json
import logging
import threading
from collections.abc import Callable
from typing import Any, Protocol

import redis

logger = logging.getLogger(__name__)

CART_ITEMS_KEY = "cartItems"
SELECTED_UNIVERSITY_KEY = "selectedUniversity"
SELECTED_CAMPUS_KEY = "selectedCampus"

# Optimistic transaction retries before an update is given up
MAX_UPDATE_ATTEMPTS = 50

# Receives the current value (None when absent) and returns the new one (None deletes)
SlotChange = Callable[[str | None], str | None]


class ClientStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def update(self, key: str, change: SlotChange) -> None: ...


class MemoryStorage:
    """Process-local storage, used by tests and single-user tools."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def update(self, key: str, change: SlotChange) -> None:
        with self._lock:
            value = change(self._data.get(key))
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = value


def _decode(value: Any) -> str | None:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class RedisStorage:
    """Storage slots kept in Redis under ``client:{client_id}:{key}``."""

    def __init__(self, client: redis.Redis, client_id: str, ttl_seconds: int | None = None):
        self._redis = client
        self._prefix = f"client:{client_id}:"
        self._ttl = ttl_seconds

    def get_item(self, key: str) -> str | None:
        try:
            value = self._redis.get(self._prefix + key)
        except redis.RedisError as exc:
            logger.warning("Client storage read failed for %s: %s", key, exc)
            return None
        return _decode(value)

    def set_item(self, key: str, value: str) -> None:
        try:
            if self._ttl:
                self._redis.setex(self._prefix + key, self._ttl, value)
            else:
                self._redis.set(self._prefix + key, value)
        except redis.RedisError as exc:
            logger.warning("Client storage write failed for %s: %s", key, exc)

    def remove_item(self, key: str) -> None:
        try:
            self._redis.delete(self._prefix + key)
        except redis.RedisError as exc:
            logger.warning("Client storage delete failed for %s: %s", key, exc)

    def update(self, key: str, change: SlotChange) -> None:
        """
        WATCH the slot, compute the new value and commit it in MULTI/EXEC.
        A write by another request in between aborts the commit and the
        change is recomputed from the fresh value.
        """
        name = self._prefix + key
        try:
            with self._redis.pipeline() as pipe:
                for _ in range(MAX_UPDATE_ATTEMPTS):
                    try:
                        pipe.watch(name)
                        value = change(_decode(pipe.get(name)))
                        pipe.multi()
                        if value is None:
                            pipe.delete(name)
                        elif self._ttl:
                            pipe.setex(name, self._ttl, value)
                        else:
                            pipe.set(name, value)
                        pipe.execute()
                        return
                    except redis.WatchError:
                        continue
        except redis.RedisError as exc:
            logger.warning("Client storage update failed for %s: %s", key, exc)
            return
        logger.warning("Client storage update for %s gave up after %d conflicts", key, MAX_UPDATE_ATTEMPTS)


def load_json(storage: ClientStorage, key: str) -> Any | None:
    """Read a JSON slot; absent or malformed content reads as None."""
    raw = storage.get_item(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Discarding malformed JSON in client storage slot %s", key)
        return None


def save_json(storage: ClientStorage, key: str, value: Any) -> None:
    storage.set_item(key, json.dumps(value))


class CampusSelection:
    """The shopper's selected university and campus, persisted as JSON objects."""

    def __init__(self, storage: ClientStorage):
        self._storage = storage

    @property
    def university(self) -> dict | None:
        value = load_json(self._storage, SELECTED_UNIVERSITY_KEY)
        return value if isinstance(value, dict) else None

    @property
    def campus(self) -> dict | None:
        value = load_json(self._storage, SELECTED_CAMPUS_KEY)
        return value if isinstance(value, dict) else None

    @property
    def campus_id(self) -> str | None:
        campus = self.campus
        return str(campus["id"]) if campus and campus.get("id") is not None else None

    def select_university(self, university: dict | None) -> None:
        if university is None:
            self._storage.remove_item(SELECTED_UNIVERSITY_KEY)
            self._storage.remove_item(SELECTED_CAMPUS_KEY)
            return
        save_json(self._storage, SELECTED_UNIVERSITY_KEY, university)
        campus = self.campus
        if campus and campus.get("universityId") not in (None, university.get("id")):
            self._storage.remove_item(SELECTED_CAMPUS_KEY)

    def select_campus(self, campus: dict | None) -> None:
        if campus is None:
            self._storage.remove_item(SELECTED_CAMPUS_KEY)
        else:
            save_json(self._storage, SELECTED_CAMPUS_KEY, campus)

    def clear(self) -> None:
        self._storage.remove_item(SELECTED_UNIVERSITY_KEY)
        self._storage.remove_item(SELECTED_CAMPUS_KEY)

    def as_dict(self) -> dict[str, Any]:
        return {"selectedUniversity": self.university, "selectedCampus": self.campus}
