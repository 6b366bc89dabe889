"""Per-path cache of rendered read views, with explicit revalidation.

Read routes cache their JSON payload under the page path they back
(``/cabins/<id>``, ``/account/reservations`` ...), optionally scoped to a
guest. Mutations call ``revalidate(path)`` after storage has confirmed the
write, which drops every scope cached for that path.

Entries expire after VIEW_CACHE_TTL_SECONDS (default 60). Expired entries
are swept on every write, and at most VIEW_CACHE_MAX_ENTRIES (default 1024)
are kept, least recently used first out. A loader that returns None is not
cached.
"""

from __future__ import annotations

import os
import threading
import time
from collections import OrderedDict
from typing import Any, Callable

_DEFAULT_TTL = 60
_DEFAULT_MAX_ENTRIES = 1024


def _ttl_from_env() -> float:
    raw = os.environ.get("VIEW_CACHE_TTL_SECONDS", "")
    try:
        return float(raw) if raw else _DEFAULT_TTL
    except ValueError:
        return _DEFAULT_TTL


def _max_entries_from_env() -> int:
    raw = os.environ.get("VIEW_CACHE_MAX_ENTRIES", "")
    try:
        value = int(raw) if raw else _DEFAULT_MAX_ENTRIES
    except ValueError:
        return _DEFAULT_MAX_ENTRIES
    return value if value > 0 else _DEFAULT_MAX_ENTRIES


class ViewCache:
    def __init__(self, ttl_seconds: float | None = None, max_entries: int | None = None) -> None:
        self._ttl = _ttl_from_env() if ttl_seconds is None else ttl_seconds
        self._max_entries = _max_entries_from_env() if max_entries is None else max_entries
        self._entries: OrderedDict[tuple[str, str], tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    def get_or_load(self, path: str, loader: Callable[[], Any], scope: str = "") -> Any:
        """Return the cached value for (path, scope), calling ``loader`` on a miss.

        The loader runs outside the lock; exceptions propagate and nothing is
        cached.
        """
        key = (path, scope)
        now = time.monotonic()
        with self._lock:
            hit = self._entries.get(key)
            if hit is not None and (now - hit[0]) < self._ttl:
                self._entries.move_to_end(key)
                return hit[1]

        value = loader()
        if value is None:
            return None

        stored_at = time.monotonic()
        with self._lock:
            self._evict_expired(stored_at)
            self._entries[key] = (stored_at, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)
        return value

    def _evict_expired(self, now: float) -> None:
        # Caller holds the lock
        for key in [k for k, (ts, _) in self._entries.items() if (now - ts) >= self._ttl]:
            del self._entries[key]

    def revalidate(self, path: str) -> None:
        """Drop every cached scope of ``path``."""
        with self._lock:
            for key in [k for k in self._entries if k[0] == path]:
                del self._entries[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: tuple[str, str]) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Process-wide cache shared by the API routes
view_cache = ViewCache()
