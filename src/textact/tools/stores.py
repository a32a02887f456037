"""
Process-wide stores shared by tools.

Both stores are plain objects handed to the tools that need them, so tests can build isolated
instances.  Synchronous tools run in worker threads, hence the locks.
"""

import threading
import time
from collections import OrderedDict
from typing import (
    Callable,
    List,
    Optional,
    Tuple,
)


class SearchCache:
    """
    Bounded LRU cache with per-entry time-to-live.

    Keys are normalized (stripped, lower-cased) so trivially different spellings of the same query
    share an entry.
    """

    def __init__(
        self,
        max_size: int = 100,
        ttl: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = max_size
        self._ttl = ttl
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, str]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def _key(query: str) -> str:
        return " ".join(query.lower().split())

    def get(self, query: str) -> Optional[str]:
        """Return the cached value for *query*, or None when absent or expired."""
        key = self._key(query)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            stored_at, value = entry
            if self._clock() - stored_at > self._ttl:
                del self._entries[key]
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return value

    def put(self, query: str, value: str) -> None:
        key = self._key(query)
        with self._lock:
            self._entries[key] = (self._clock(), value)
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class NoteStore:
    """Key/value notes kept for the lifetime of the process; oldest notes go first when full."""

    def __init__(self, max_notes: int = 500):
        self._max_notes = max_notes
        self._notes: "OrderedDict[str, str]" = OrderedDict()
        self._lock = threading.Lock()

    def set(self, key: str, content: str) -> None:
        with self._lock:
            self._notes[key] = content
            self._notes.move_to_end(key)
            while len(self._notes) > self._max_notes:
                self._notes.popitem(last=False)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._notes.get(key)

    def items(self) -> List[Tuple[str, str]]:
        """Snapshot of all notes in insertion order."""
        with self._lock:
            return list(self._notes.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._notes)
