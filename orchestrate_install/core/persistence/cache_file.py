"""
Cache file persistence — atomic read/write for cache entries.

Entries are stored as JSON in ``<cache_dir>/cache.json`` so classifier
and probe results survive between separate CLI invocations. Writes are
atomic (write to temp file, then rename) to prevent corruption if the
process crashes mid-write.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CACHE_FILE = "cache.json"


class CacheEntry(BaseModel):
    """One memoized value with its age and time-to-live."""

    key: str
    value: Any
    computed_at: float
    ttl_seconds: float

    def is_expired(self, now: float) -> bool:
        """An entry is invalid once ``now - computed_at >= ttl_seconds``."""
        return now - self.computed_at >= self.ttl_seconds


def default_cache_path(cache_dir: Path) -> Path:
    """Get the cache file path inside a cache directory."""
    return cache_dir / DEFAULT_CACHE_FILE


def load_entries(path: Path) -> dict[str, CacheEntry]:
    """Load cache entries from a JSON file.

    Args:
        path: Path to the cache JSON file.

    Returns:
        Key → entry. A missing or corrupt file yields an empty dict;
        individual malformed entries are dropped.
    """
    if not path.is_file():
        return {}

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        logger.info("Corrupt cache file %s: %s, ignoring", path, e)
        return {}

    if not isinstance(data, dict):
        logger.info("Unexpected cache file layout in %s, ignoring", path)
        return {}

    entries: dict[str, CacheEntry] = {}
    for key, raw in data.items():
        try:
            entry = CacheEntry.model_validate(raw)
        except ValidationError:
            logger.debug("Dropping malformed cache entry %s", key)
            continue
        entries[entry.key] = entry
    return entries


def save_entries(entries: dict[str, CacheEntry], path: Path) -> None:
    """Save cache entries to a JSON file (atomic write).

    Args:
        entries: Entries to persist.
        path: Target path for the cache file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    data = {key: entry.model_dump(mode="json") for key, entry in entries.items()}
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    _fd, tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=".cache_",
        suffix=".tmp",
    )
    tmp = Path(tmp_path)
    try:
        with open(_fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
        logger.debug("Cache saved to %s (%d entries)", path, len(entries))
    except Exception:
        tmp.unlink(missing_ok=True)
        raise
