"""Round-robin pool of credentials with per-item ready / in-use / failed markers."""

from __future__ import annotations

import dataclasses
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")

WAIT_TIMEOUT = 10.0
READY = 0
IN_USE = 1
FAILED = 2

_SWEEP_INTERVAL = 10.0
_SWEEP_LOCK_TIMEOUT = 20.0


class PollError(Exception):
    """Raised when no item can be taken from the pool."""


@dataclass
class _State:
    t: float
    s: int


def _json_default(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if hasattr(obj, "__dict__"):
        return vars(obj)
    return str(obj)


def _marker_key(key: Any) -> str:
    if isinstance(key, str):
        return key
    return json.dumps(key, sort_keys=True, separators=(",", ":"), default=_json_default)


class PollContainer(Generic[T]):
    """Hands out items in turn; failed items cool down for ``reset_time`` seconds."""

    def __init__(
        self,
        name: str,
        items: Optional[List[T]] = None,
        reset_time: float = 0.0,
        condition: Optional[Callable[..., bool]] = None,
    ) -> None:
        self.name = name
        self.reset_time = reset_time
        self.condition = condition
        self._items: List[T] = list(items or [])
        self._markers: Dict[str, _State] = {}
        self._pos = 0
        self._mu = threading.Lock()
        self._cmu = threading.RLock()
        self._stop = threading.Event()
        self._timer: Optional[threading.Thread] = None
        if reset_time > 0:
            self._timer = threading.Thread(target=self._run_timer, name=f"poll-{name}", daemon=True)
            self._timer.start()

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> List[T]:
        return list(self._items)

    def _run_timer(self) -> None:
        while not self._stop.is_set():
            if self._items:
                self.reset_expired()
            self._stop.wait(_SWEEP_INTERVAL)

    def reset_expired(self) -> None:
        """Return failed items whose cool-down has passed to the ready state."""
        if not self._mu.acquire(timeout=_SWEEP_LOCK_TIMEOUT):
            log.error("[%s] poll container failed to acquire lock", self.name)
            return
        try:
            now = time.monotonic()
            for value in list(self._items):
                key = _marker_key(value)
                marker = self._markers.get(key)
                if marker is None or marker.s in (READY, IN_USE):
                    continue
                if now - self.reset_time > marker.t:
                    marker.s = READY
                    log.info("[%s] poll container cool-down finished: %s", self.name, key)
        finally:
            self._mu.release()

    def poll(self, *args: Any) -> T:
        """Take the next item, starting after the last one handed out, that meets the condition."""
        if not self._items:
            raise PollError("no elements in slice")
        if self.condition is None:
            raise PollError("condition is nil")
        if not self._cmu.acquire(timeout=WAIT_TIMEOUT):
            raise PollError("lock timeout")
        try:
            items = list(self._items)
            size = len(items)
            if self._pos >= size:
                self._pos = 0
            start = self._pos
            for offset in range(size):
                curr = (start + offset) % size
                value = items[curr]
                if self.condition(value, *args):
                    self._pos = curr + 1
                    self.mark_to(value, IN_USE)
                    return value
            raise PollError("not roll result")
        finally:
            self._cmu.release()

    def remove(self, value: T) -> None:
        """Drop the first item equal to ``value``."""
        if not self._items:
            return
        if not self._cmu.acquire(timeout=WAIT_TIMEOUT):
            raise PollError("lock timeout")
        try:
            for index, item in enumerate(self._items):
                if item == value:
                    del self._items[index]
                    break
        finally:
            self._cmu.release()

    def add(self, value: T) -> None:
        with self._cmu:
            self._items.append(value)

    def mark_to(self, key: Any, value: int) -> None:
        """Set the marker of ``key``: 0 ready, 1 in use, 2 failed."""
        marker_key = _marker_key(key)
        if not self._mu.acquire(timeout=WAIT_TIMEOUT):
            raise TimeoutError("context deadline exceeded")
        try:
            self._markers[marker_key] = _State(time.monotonic(), value)
            if value == IN_USE:
                log.info("[%s] index [%d] state set to %d", self.name, self._pos, value)
            else:
                log.info("[%s] state set to %d", self.name, value)
        finally:
            self._mu.release()

    def marked(self, key: Any) -> int:
        """The marker of ``key``; ready if it was never marked."""
        marker_key = _marker_key(key)
        if not self._mu.acquire(timeout=WAIT_TIMEOUT):
            raise TimeoutError("context deadline exceeded")
        try:
            marker = self._markers.get(marker_key)
            return READY if marker is None else marker.s
        finally:
            self._mu.release()

    def close(self) -> None:
        """Stop the background cool-down sweeper."""
        self._stop.set()
        if self._timer is not None:
            self._timer.join(timeout=1.0)
            self._timer = None