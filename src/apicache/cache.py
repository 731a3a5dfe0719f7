"""
Request Cache
In-memory keyed store of request entries with subscriber notification

Implements:
- get(key) -> CacheEntry | None
- set(key, entry) -> replaces entry, notifies subscribers synchronously
- subscribe(key, callback) -> Subscription
- unsubscribe(subscription)
- get_stats() -> {reads, hits, misses, writes, notifications, entries, subscribers}
"""

import itertools
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

ALL_KEYS = "*"

Listener = Callable[[str, "CacheEntry"], None]


@dataclass(frozen=True)
class CacheEntry:
    """Known state of one request. A settled entry carries data or error, never both."""
    loading: bool = False
    data: Any = None
    error: Any = None

    @property
    def settled(self) -> bool:
        return not self.loading

    def replace(self, **changes: Any) -> "CacheEntry":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {"loading": self.loading, "data": self.data, "error": self.error}


class Subscription:
    """Handle returned by Cache.subscribe(). Disposing twice is harmless."""

    _ids = itertools.count(1)

    def __init__(self, cache: "Cache", key: str, callback: Listener):
        self.id = next(self._ids)
        self.key = key
        self.callback = callback
        self._cache = cache
        self.active = True

    def dispose(self) -> None:
        self._cache.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return f"Subscription(id={self.id}, key={self.key!r}, active={self.active})"


class Cache:
    """
    Keyed store of CacheEntry values shared by every controller in a scope.

    Design principles:
    - Entries are replaced wholesale; callers merge before calling set()
    - Every set() notifies synchronously, in call order, never coalesced
    - Subscribers of a key run first, then ALL_KEYS subscribers, each in
      registration order
    - Entries are created on first set() and never deleted
    - Not thread-safe: meant for a single event loop
    """

    def __init__(self) -> None:
        self._entries: Dict[str, CacheEntry] = {}
        self._listeners: Dict[str, List[Subscription]] = {}

        self.stats = {
            "reads": 0,
            "hits": 0,
            "misses": 0,
            "writes": 0,
            "notifications": 0,
            "listener_errors": 0,
            "start_time": time.time(),
        }

        logger.debug("Cache initialized")

    def get(self, key: str) -> Optional[CacheEntry]:
        self.stats["reads"] += 1
        entry = self._entries.get(key)
        if entry is None:
            self.stats["misses"] += 1
        else:
            self.stats["hits"] += 1
        return entry

    def set(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry
        self.stats["writes"] += 1
        logger.debug(f"Cache set {key} (loading={entry.loading})")
        self._notify(key, entry)

    def _notify(self, key: str, entry: CacheEntry) -> None:
        # Snapshot so subscribe/unsubscribe from inside a callback
        # cannot change who is called in this round.
        listeners = list(self._listeners.get(key, ()))
        if key != ALL_KEYS:
            listeners.extend(self._listeners.get(ALL_KEYS, ()))

        for subscription in listeners:
            if not subscription.active:
                continue
            self.stats["notifications"] += 1
            try:
                subscription.callback(key, entry)
            except Exception:
                self.stats["listener_errors"] += 1
                logger.exception(f"Cache subscriber {subscription.id} failed for {key}")

    def subscribe(self, key: str, callback: Listener) -> Subscription:
        subscription = Subscription(self, key, callback)
        self._listeners.setdefault(key, []).append(subscription)
        logger.debug(f"Subscribed {subscription.id} to {key}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if not subscription.active:
            return
        subscription.active = False

        listeners = self._listeners.get(subscription.key)
        if listeners is None:
            return
        try:
            listeners.remove(subscription)
        except ValueError:
            return
        if not listeners:
            del self._listeners[subscription.key]
        logger.debug(f"Unsubscribed {subscription.id} from {subscription.key}")

    def keys(self) -> List[str]:
        return list(self._entries)

    def subscriber_count(self, key: Optional[str] = None) -> int:
        if key is not None:
            return len(self._listeners.get(key, ()))
        return sum(len(listeners) for listeners in self._listeners.values())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        reads = self.stats["reads"]
        hit_rate = (self.stats["hits"] / reads * 100) if reads > 0 else 0

        return {
            "reads": reads,
            "hits": self.stats["hits"],
            "misses": self.stats["misses"],
            "hit_rate_percent": round(hit_rate, 1),
            "writes": self.stats["writes"],
            "notifications": self.stats["notifications"],
            "listener_errors": self.stats["listener_errors"],
            "entries": len(self._entries),
            "subscribers": self.subscriber_count(),
            "uptime_seconds": int(time.time() - self.stats["start_time"]),
        }
