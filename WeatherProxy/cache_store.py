"""Cache store abstraction - key/value storage with per-entry expiration."""
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from weather_data import payload_from_json, payload_to_json


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload together with when it was written and for how long it is good."""
    payload: Any
    inserted_at: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now < self.inserted_at + self.ttl


class CacheStoreBase(ABC):
    """Abstract base class for cache backends."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """
        Look up a payload.

        Returns:
            The cached payload, or None if the key is absent or expired.
        """
        pass

    @abstractmethod
    def set(self, key: str, payload: Any, ttl: float) -> None:
        """
        Store a payload under key for ttl seconds, replacing any previous entry.

        A ttl of zero or less stores nothing.
        """
        pass


class InMemoryCacheStore(CacheStoreBase):
    """
    Process-local cache backed by a dict.

    Each read or write holds a lock, so a single key can never be observed
    half-written. Expired entries are dropped when they are read, and in bulk
    every purge_interval writes (or via purge_expired()), so keys that are
    written once and never read again do not pile up.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, purge_interval: int = 100):
        """
        Args:
            clock: Returns the current time in seconds. Tests pass a fake
                clock to move time forward without sleeping.
            purge_interval: Sweep expired entries after this many writes
        """
        self.clock = clock
        self.purge_interval = max(1, purge_interval)
        self._writes_since_purge = 0
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not entry.is_valid(self.clock()):
                del self._entries[key]
                logging.debug(f"Cache entry expired: {key}")
                return None
            return entry.payload

    def set(self, key: str, payload: Any, ttl: float) -> None:
        if ttl <= 0:
            return
        with self._lock:
            now = self.clock()
            self._entries[key] = CacheEntry(payload=payload, inserted_at=now, ttl=ttl)
            self._writes_since_purge += 1
            if self._writes_since_purge < self.purge_interval:
                return
            removed = self._purge_locked(now)
        if removed:
            logging.debug(f"Purged {removed} expired cache entries")

    def purge_expired(self) -> int:
        """Remove every expired entry and return how many were removed."""
        with self._lock:
            removed = self._purge_locked(self.clock())
        if removed:
            logging.debug(f"Purged {removed} expired cache entries")
        return removed

    def _purge_locked(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if not entry.is_valid(now)]
        for key in expired:
            del self._entries[key]
        self._writes_since_purge = 0
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisCacheStore(CacheStoreBase):
    """
    Cache backed by Redis, using Redis key expiry for the TTL.

    Payloads are stored as tagged JSON (see weather_data.payload_to_json).
    Connection errors are not handled here; the weather service treats any
    cache failure as a miss.
    """

    def __init__(self, client, prefix: str = ""):
        """
        Args:
            client: A redis.Redis compatible client
            prefix: Prepended to every key, e.g. "weather-proxy:"
        """
        self.client = client
        self.prefix = prefix

    def get(self, key: str) -> Optional[Any]:
        raw = self.client.get(self.prefix + key)
        if raw is None:
            return None
        return payload_from_json(raw)

    def set(self, key: str, payload: Any, ttl: float) -> None:
        if ttl <= 0:
            return
        # Redis EX takes whole seconds and rejects 0
        self.client.set(self.prefix + key, payload_to_json(payload), ex=max(1, int(ttl)))
