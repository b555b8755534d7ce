# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Result cache: normalized identifier → last successful record.

Pure Python module: no browser dependencies.

Entries are never evicted in the background. Staleness is judged lazily
on read (``now - created_at >= ttl``) and a stale entry is simply
overwritten by the next successful scrape.

NOTE: not thread-safe; used from a single event loop.
"""

from __future__ import annotations

import copy
import logging
import time
from dataclasses import dataclass

logger = logging.getLogger("platestatus.cache")


# ---------------------------------------------------------------------------
# Cache entry
# ---------------------------------------------------------------------------


@dataclass
class CacheEntry:
    """A cached record with its creation time."""

    record: dict
    created_at: float  # time.monotonic()

    def is_expired(self, ttl: float) -> bool:
        return (time.monotonic() - self.created_at) >= ttl


# ---------------------------------------------------------------------------
# Cache stats (observability)
# ---------------------------------------------------------------------------


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    ttl_expirations: int = 0
    stores: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


# ---------------------------------------------------------------------------
# ResultCache
# ---------------------------------------------------------------------------


class ResultCache:
    """TTL-keyed mapping of identifier to normalized record."""

    def __init__(self, ttl: float = 600.0) -> None:
        self._ttl = ttl
        self._entries: dict[str, CacheEntry] = {}
        self._stats = CacheStats()

    @property
    def ttl(self) -> float:
        return self._ttl

    def entry(self, key: str) -> CacheEntry | None:
        """Raw entry regardless of age."""
        return self._entries.get(key)

    def get(self, key: str) -> dict | None:
        """Return a copy of the fresh record for *key*, or None."""
        entry = self._entries.get(key)
        if entry is None:
            self._stats.misses += 1
            return None
        if entry.is_expired(self._ttl):
            self._stats.misses += 1
            self._stats.ttl_expirations += 1
            logger.debug("Cache TTL expired: %s", key)
            return None
        self._stats.hits += 1
        return copy.deepcopy(entry.record)

    def put(self, key: str, record: dict) -> None:
        """Create or overwrite the entry for *key*."""
        self._entries[key] = CacheEntry(record=copy.deepcopy(record), created_at=time.monotonic())
        self._stats.stores += 1
        logger.debug("Cache store: %s (size=%d)", key, len(self._entries))

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def __len__(self) -> int:
        return len(self._entries)
