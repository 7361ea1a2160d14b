"""Single-use CSRF state storage.

Entries are read exactly once: ``take`` removes the key in the same operation
that reads it, so two racing callbacks carrying the same state can never both
succeed.
"""
from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod

import redis

from authbridge.core.config import settings
from authbridge.core.exceptions import StateNotFoundError
from authbridge.db.redis_client import get_redis_client

logger = logging.getLogger(__name__)

STATE_KEY_PREFIX = "oauth:state:"
DEFAULT_STATE_TTL_SECONDS = 300


class StateStore(ABC):
    @abstractmethod
    def put(self, state: str, value: str, ttl_seconds: int = DEFAULT_STATE_TTL_SECONDS) -> None:
        ...

    @abstractmethod
    def take(self, state: str) -> str | None:
        """Atomically read and delete ``state``; ``None`` when absent or expired."""

    def consume(self, state: str) -> str:
        """
        Return the value stored for ``state`` and forget it.

        Raises:
            StateNotFoundError: unknown, expired, or already consumed
        """
        value = self.take(state)
        if value is None:
            raise StateNotFoundError()
        return value


class RedisStateStore(StateStore):
    def __init__(self, client: redis.Redis | None = None) -> None:
        self._client = client or get_redis_client()

    def put(self, state: str, value: str, ttl_seconds: int = DEFAULT_STATE_TTL_SECONDS) -> None:
        self._client.set(f"{STATE_KEY_PREFIX}{state}", value, ex=ttl_seconds)

    def take(self, state: str) -> str | None:
        # GETDEL (Redis >= 6.2) is a single atomic command
        return self._client.getdel(f"{STATE_KEY_PREFIX}{state}")

    def ping(self) -> bool:
        return bool(self._client.ping())


class InMemoryStateStore(StateStore):
    """Process-local store for tests and single-process development."""

    def __init__(self) -> None:
        self._data: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def put(self, state: str, value: str, ttl_seconds: int = DEFAULT_STATE_TTL_SECONDS) -> None:
        with self._lock:
            self._data[state] = (value, time.monotonic() + ttl_seconds)

    def take(self, state: str) -> str | None:
        with self._lock:
            entry = self._data.pop(state, None)
        if entry is None:
            return None
        value, expires_at = entry
        if time.monotonic() >= expires_at:
            return None
        return value

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


_SHARED_STORE: StateStore | None = None


def get_state_store() -> StateStore:
    """Return the process-wide store: Redis when reachable, else in-memory outside prod."""
    global _SHARED_STORE
    if _SHARED_STORE is not None:
        return _SHARED_STORE
    if settings.REDIS_URL:
        try:
            _SHARED_STORE = RedisStateStore()
            return _SHARED_STORE
        except (redis.RedisError, RuntimeError) as exc:
            if settings.ENV.lower() == "prod":
                raise
            logger.warning("Falling back to in-memory OAuth state store: %s", exc)
    _SHARED_STORE = InMemoryStateStore()
    return _SHARED_STORE


def set_state_store(store: StateStore | None) -> None:
    """Replace the shared store (tests)."""
    global _SHARED_STORE
    _SHARED_STORE = store
