from __future__ import annotations

import hashlib
import threading
import time
from typing import Callable, Dict, Optional, Tuple

DEFAULT_TTL_S = 300.0


def cache_key(module_name: str, version: str, prompt: str) -> str:
    digest = hashlib.md5(prompt.encode("utf-8")).hexdigest()[:8]
    return f"{module_name}:{version}:{digest}"


class SpecCache:
    """In-memory TTL cache for specification text.

    Opt-in: a cache instance is passed to ``generate_module`` explicitly, so
    separate callers never share one by accident.
    """

    def __init__(self, ttl_s: float = DEFAULT_TTL_S, *, clock: Callable[[], float] = time.monotonic):
        self.ttl_s = ttl_s
        self._clock = clock
        self._entries: Dict[str, Tuple[float, str]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at > self.ttl_s:
                del self._entries[key]
                return None
            return value

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["DEFAULT_TTL_S", "SpecCache", "cache_key"]
