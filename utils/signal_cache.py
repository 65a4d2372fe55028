"""
Signal cache for HF Band Simulation.
Caches per-pair signal strengths with expiration, session purging and
generation tracking so that values computed before an invalidation are
never stored.
"""

import time
import threading
import logging
from typing import Dict, Any, FrozenSet, Hashable, Optional

from exceptions import StaleCache

logger = logging.getLogger(__name__)

PairKey = FrozenSet[Hashable]


def pair_key(session1: Hashable, session2: Hashable) -> PairKey:
    """Unordered key for a pair of sessions."""
    return frozenset((session1, session2))


class CacheEntry:
    """Represents a single cached signal strength with metadata."""

    def __init__(self, key: PairKey, value: float, max_age: float, clock=time.time):
        self.key = key
        self.value = value
        self._clock = clock
        self.created_at = clock()
        self.last_accessed = self.created_at
        self.max_age = max_age
        self.access_count = 0

    def is_expired(self) -> bool:
        """Check if the cache entry has expired."""
        return self._clock() - self.created_at > self.max_age

    def access(self):
        """Mark the entry as accessed."""
        self.last_accessed = self._clock()
        self.access_count += 1

    def get_age(self) -> float:
        """Get the age of the cache entry in seconds."""
        return self._clock() - self.created_at


class SignalCache:
    """Thread-safe map of session pair -> signal strength."""

    def __init__(self, max_age: float = 300, clock=time.time):
        self.max_age = max_age
        self.entries: Dict[PairKey, CacheEntry] = {}
        self.lock = threading.RLock()
        self.generation = 0
        self._clock = clock
        self.hits = 0
        self.misses = 0

    def get(self, key: PairKey) -> Optional[float]:
        """Get a cached strength, or None if missing or expired."""
        with self.lock:
            entry = self.entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            if entry.is_expired():
                del self.entries[key]
                self.misses += 1
                return None

            entry.access()
            self.hits += 1
            return entry.value

    def set(self, key: PairKey, value: float, generation: Optional[int] = None) -> bool:
        """
        Store a strength.

        When a generation is given and the cache has been invalidated since it
        was read, the value is stale and is not stored.
        """
        with self.lock:
            if generation is not None and generation != self.generation:
                raise StaleCache(f"Cache invalidated while computing {sorted(map(str, key))}")
            self.entries[key] = CacheEntry(key, value, self.max_age, self._clock)
            return True

    def set_if_absent(self, key: PairKey, value: float, generation: Optional[int] = None) -> float:
        """Store a strength unless a live entry exists; return the cached value."""
        with self.lock:
            if generation is not None and generation != self.generation:
                raise StaleCache(f"Cache invalidated while computing {sorted(map(str, key))}")
            entry = self.entries.get(key)
            if entry is not None and not entry.is_expired():
                return entry.value
            self.entries[key] = CacheEntry(key, value, self.max_age, self._clock)
            return value

    def delete(self, key: PairKey) -> bool:
        with self.lock:
            if key in self.entries:
                del self.entries[key]
                return True
            return False

    def clear(self):
        """Drop every entry and start a new generation."""
        with self.lock:
            count = len(self.entries)
            self.entries.clear()
            self.generation += 1
            if count:
                logger.debug(f"Cleared {count} cached signal strengths")

    def purge_session(self, session: Hashable) -> int:
        """Remove every entry that references a session."""
        with self.lock:
            stale_keys = [key for key in self.entries if session in key]
            for key in stale_keys:
                del self.entries[key]
            # Computations in flight for this session must not land
            self.generation += 1
            return len(stale_keys)

    def cleanup_expired(self) -> int:
        with self.lock:
            expired_keys = [key for key, entry in self.entries.items() if entry.is_expired()]
            for key in expired_keys:
                del self.entries[key]
            if expired_keys:
                logger.info(f"Cleaned up {len(expired_keys)} expired signal entries")
            return len(expired_keys)

    def __len__(self) -> int:
        with self.lock:
            return len(self.entries)

    def __contains__(self, key) -> bool:
        with self.lock:
            return key in self.entries

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self.lock:
            ages = [entry.get_age() for entry in self.entries.values()]
            return {
                'entries': len(self.entries),
                'generation': self.generation,
                'hits': self.hits,
                'misses': self.misses,
                'max_age': self.max_age,
                'oldest_entry_age': round(max(ages), 2) if ages else 0.0,
                'newest_entry_age': round(min(ages), 2) if ages else 0.0,
            }
