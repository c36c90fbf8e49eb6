"""In-memory key/value caches with per-entry expiry."""

from __future__ import annotations

import threading
import time
from datetime import timedelta
from typing import Any, Callable, Dict, Tuple, Union

from .inited import add_initialized

DEFAULT_EXPIRATION = 300.0
VALUE_EXPIRATION = 120.0

Seconds = Union[int, float, timedelta]


class CacheManager:
    """Thread-safe cache; missing or expired keys read as ``missing``."""

    def __init__(
        self,
        default_expiration: float = DEFAULT_EXPIRATION,
        missing: Any = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_expiration = default_expiration
        self.missing = missing
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def set_value(self, key: str, value: Any) -> None:
        """Store ``value`` for two minutes."""
        self.set_with_expiration(key, value, VALUE_EXPIRATION)

    def set_with_expiration(self, key: str, value: Any, expiration: Seconds) -> None:
        """Store ``value``; 0 uses the default lifetime, a negative value never expires."""
        if isinstance(expiration, timedelta):
            expiration = expiration.total_seconds()
        if expiration == 0:
            expiration = self.default_expiration
        deadline = float("inf") if expiration < 0 else self._clock() + expiration
        with self._lock:
            self._entries[key] = (value, deadline)

    def get_value(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return self.missing
            value, deadline = entry
            if self._clock() >= deadline:
                del self._entries[key]
                return self.missing
            return value


def _new_managers() -> Dict[str, CacheManager]:
    return {
        "tool_tasks": CacheManager(),
        "windsurf": CacheManager(missing=""),
        "bing": CacheManager(missing=""),
        "cursor": CacheManager(missing=""),
        "qodo": CacheManager(missing=""),
    }


_managers = _new_managers()


@add_initialized
def _reset_managers(_env: Any) -> None:
    _managers.update(_new_managers())


def tool_tasks_cache_manager() -> CacheManager:
    return _managers["tool_tasks"]


def windsurf_cache_manager() -> CacheManager:
    return _managers["windsurf"]


def bing_cache_manager() -> CacheManager:
    return _managers["bing"]


def cursor_cache_manager() -> CacheManager:
    return _managers["cursor"]


def qodo_cache_manager() -> CacheManager:
    return _managers["qodo"]