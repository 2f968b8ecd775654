"""
Result cache for expensive discovery operations.

Memoizes classifier and probe results with a time-to-live so that
repeated installer invocations in one session (and, with a cache
directory, across separate CLI invocations) do not pay the
subprocess cost again.

Thread safety:
    A per-key lock gives single-flight semantics: when two callers ask
    for the same key on a cold cache, only one runs ``compute`` and the
    other waits and gets its result.  Different keys compute in
    parallel.  A file lock serialises writes to the cache file.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from orchestrate_install.core.persistence.cache_file import (
    CacheEntry,
    default_cache_path,
    load_entries,
    save_entries,
)

logger = logging.getLogger(__name__)

V = TypeVar("V")


class ResultCache:
    """TTL cache with single-flight computation and optional file backing.

    Args:
        cache_dir: Directory for ``cache.json``.  ``None`` keeps the
            cache in memory only.
        clock: Returns the current epoch seconds (injectable for tests).
    """

    def __init__(
        self,
        cache_dir: Path | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cache_dir = cache_dir
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._disk: dict[str, CacheEntry] | None = None
        self._key_locks: dict[str, threading.Lock] = {}
        self._key_locks_guard = threading.Lock()
        self._file_lock = threading.Lock()

    # ── Internal helpers ────────────────────────────────────────

    def _get_key_lock(self, key: str) -> threading.Lock:
        """Get or create a lock for a specific cache key."""
        with self._key_locks_guard:
            if key not in self._key_locks:
                self._key_locks[key] = threading.Lock()
            return self._key_locks[key]

    @property
    def _path(self) -> Path | None:
        return default_cache_path(self.cache_dir) if self.cache_dir else None

    def _disk_entry(self, key: str) -> CacheEntry | None:
        path = self._path
        if path is None:
            return None
        with self._file_lock:
            if self._disk is None:
                self._disk = load_entries(path)
            return self._disk.get(key)

    def _persist(self, entry: CacheEntry) -> None:
        """Merge one entry into the cache file.  Failures only log."""
        path = self._path
        if path is None:
            return
        with self._file_lock:
            now = self._clock()
            # Re-read before writing so entries written by other processes survive
            entries = {
                k: e for k, e in load_entries(path).items() if not e.is_expired(now)
            }
            entries[entry.key] = entry
            try:
                save_entries(entries, path)
            except (OSError, TypeError, ValueError) as e:
                logger.info("Cannot persist cache entry %s to %s: %s", entry.key, path, e)
                return
            self._disk = entries

    # ── Public API ──────────────────────────────────────────────

    def get_or_compute(self, key: str, ttl_seconds: float, compute: Callable[[], V]) -> V:
        """Return the cached value for ``key``, computing it on a miss.

        An entry is never returned once ``now - computed_at >= ttl``.
        If ``compute`` raises, nothing is stored and the exception
        propagates to that caller only. Callers waiting on the same key
        then find no entry and run ``compute`` themselves, one at a time.
        """
        lock = self._get_key_lock(key)
        with lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is not None and not entry.is_expired(now):
                logger.debug("cache HIT for %s (age %.1fs)", key, now - entry.computed_at)
                return entry.value

            disk = self._disk_entry(key)
            if disk is not None and not disk.is_expired(now):
                self._entries[key] = disk
                logger.debug("cache HIT (disk) for %s (age %.1fs)", key, now - disk.computed_at)
                return disk.value

            t0 = time.monotonic()
            value = compute()
            elapsed = time.monotonic() - t0

            entry = CacheEntry(
                key=key,
                value=value,
                computed_at=self._clock(),
                ttl_seconds=ttl_seconds,
            )
            self._entries[key] = entry
            self._persist(entry)
            logger.debug("cache MISS for %s (computed in %.2fs)", key, elapsed)
            return value

    def invalidate(self, key: str) -> None:
        """Drop one key from memory and from the cache file."""
        with self._get_key_lock(key):
            self._entries.pop(key, None)
            path = self._path
            if path is None:
                return
            with self._file_lock:
                entries = load_entries(path)
                if key in entries:
                    del entries[key]
                    save_entries(entries, path)
                self._disk = entries

    def clear(self) -> None:
        """Drop every entry, in memory and on disk."""
        self._entries.clear()
        path = self._path
        if path is None:
            return
        with self._file_lock:
            if path.is_file():
                save_entries({}, path)
            self._disk = {}
