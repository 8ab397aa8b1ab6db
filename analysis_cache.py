# Copyright (c) 2026 Mark Menkhus <mark.menkhus@gmail.com>
# SPDX-License-Identifier: MIT
"""
analysis_cache.py - In-memory cache for metrics snapshots

The cache is owned by the caller and passed into run_analysis(); nothing
here is module-global. Entries expire after a fixed time-to-live.

Usage:
    from analysis_cache import AnalysisCache

    cache = AnalysisCache(ttl_seconds=600)
    cache.set(key, snapshot)
    snapshot = cache.get(key)     # None once expired
"""

import time
from dataclasses import dataclass
from typing import Optional, Any, Callable, Dict


DEFAULT_TTL_SECONDS = 30 * 60


@dataclass
class CacheEntry:
    value: Any
    stored_at: float


class AnalysisCache:
    """
    Key/value store with per-entry expiry.

    The clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries and not self.is_expired(key)

    def is_expired(self, key: str) -> bool:
        """True when key is missing or older than the TTL."""
        entry = self._entries.get(key)
        if entry is None:
            return True
        return self._clock() - entry.stored_at >= self.ttl_seconds

    def get(self, key: str) -> Optional[Any]:
        if self.is_expired(key):
            self._entries.pop(key, None)
            return None
        return self._entries[key].value

    def set(self, key: str, value: Any):
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock())

    def clear(self):
        self._entries.clear()
