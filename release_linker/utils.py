"""Shared utilities (timestamps, version names, thread-safe set)."""

import threading
from datetime import datetime, timezone
from typing import Hashable, Iterable, Set


def parse_iso(value: str) -> datetime:
    """Parse a GitHub ISO 8601 timestamp (``Z`` suffix allowed) as tz-aware UTC."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def clean_version(tag: str) -> str:
    """Strip a single leading ``v`` from a release tag (v1.2.3 -> 1.2.3)."""
    tag = (tag or "").strip()
    return tag[1:] if tag.startswith("v") else tag


class SyncedSet:
    """Set guarded by a lock; shared between worker threads of one run.

    ``add_if_absent`` is the only way to claim a key, so two threads
    racing on the same key never both see it as new.
    """

    def __init__(self, items: Iterable[Hashable] | None = None) -> None:
        self._items: Set[Hashable] = set(items or ())
        self._lock = threading.Lock()

    def add_if_absent(self, item: Hashable) -> bool:
        """Add item; return True if it was not present before."""
        with self._lock:
            if item in self._items:
                return False
            self._items.add(item)
            return True

    def discard(self, item: Hashable) -> None:
        with self._lock:
            self._items.discard(item)

    def snapshot(self) -> Set[Hashable]:
        """Return a copy of the current contents."""
        with self._lock:
            return set(self._items)

    def __contains__(self, item: object) -> bool:
        with self._lock:
            return item in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
