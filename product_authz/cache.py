# product_authz/cache.py
"""Short-lived, process-local memo of policy verdicts."""
from __future__ import annotations

import hashlib
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from product_authz.verdict import Verdict

CacheKey = str


def cache_key(subject_id: str, action: str, resource_type: str, resource_id: Optional[str]) -> CacheKey:
    # \x1f cannot appear in any of the parts
    raw = "\x1f".join([subject_id, action, resource_type, resource_id or ""])
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class DecisionCache:
    """Thread-safe TTL cache of definitive verdicts.

    Only ALLOW and DENY are stored. A miss means "ask the decision service
    again", so evicting an entry early is always safe. Concurrent writers to
    one key resolve last-writer-wins.
    """

    def __init__(self, ttl: float, max_entries: int = 1024, clock: Callable[[], float] = time.monotonic):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self.max_entries = max(1, max_entries)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[CacheKey, Tuple[Verdict, float]] = {}

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def get(self, key: CacheKey) -> Optional[Verdict]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            verdict, expires_at = entry
            if expires_at <= now:
                del self._entries[key]
                return None
            return verdict

    def put(self, key: CacheKey, verdict: Verdict) -> None:
        if verdict is Verdict.INDETERMINATE:
            return
        now = self._clock()
        with self._lock:
            if self._entries.pop(key, None) is None and len(self._entries) >= self.max_entries:
                self._evict(now)
            self._entries[key] = (verdict, now + self.ttl)

    def invalidate(self, key: CacheKey) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _evict(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
        for k in expired:
            del self._entries[k]
        if len(self._entries) >= self.max_entries:
            # dicts keep insertion order; drop the oldest write
            oldest = next(iter(self._entries))
            del self._entries[oldest]
