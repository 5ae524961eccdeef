from __future__ import annotations

import hashlib
import json
import time
from typing import Any, Callable

_DEFAULT_TTL = 300  # 5 minutes


def make_key(name: str, params: dict[str, Any] | None = None) -> str:
    """Cache key for an aggregate: its name plus a digest of its parameters."""
    if not params:
        return name
    normalized = json.dumps(params, sort_keys=True, default=str)
    return f"{name}:{hashlib.sha256(normalized.encode()).hexdigest()[:16]}"


class TTLCache:
    """Keyed store of ``(value, created_at)`` entries with a fixed expiry.

    The clock is injectable so tests control time. Entries are never
    refreshed in place; an expired entry is dropped and recomputed by the
    caller, and ``clear`` replaces the whole store.
    """

    def __init__(
        self,
        ttl: float = _DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, dict[str, Any]] = {}
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry and self._clock() - entry["created_at"] < self.ttl:
            self._hits += 1
            return entry["value"]
        if entry:
            self._entries.pop(key, None)
        self._misses += 1
        return None

    def set(self, key: str, value: Any) -> float:
        created_at = self._clock()
        self._entries[key] = {"value": value, "created_at": created_at}
        return created_at

    def created_at(self, key: str) -> float | None:
        entry = self._entries.get(key)
        return entry["created_at"] if entry else None

    def get_or_compute(self, key: str, compute: Callable[[], Any]) -> tuple[Any, bool]:
        """Return ``(value, cached)``; concurrent misses may both recompute."""
        value = self.get(key)
        if value is not None:
            return value, True
        value = compute()
        self.set(key, value)
        return value, False

    def stats(self) -> dict[str, Any]:
        total = self._hits + self._misses
        return {
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }

    def clear(self) -> None:
        self._entries = {}
        self._hits = 0
        self._misses = 0
