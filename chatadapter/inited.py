"""Configuration environment plus start-up and shut-down hooks."""

from __future__ import annotations

import signal
import sys
import threading
from typing import Any, Callable, Dict, List, Optional

import yaml

Hook = Callable[["Environment"], None]

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_MISSING = object()


def _lower(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _lower(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_lower(v) for v in value]
    return value


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip(), 10)
        except ValueError:
            return 0
    return 0


def _to_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    return str(value)


class Environment:
    """Nested configuration read with dotted, case-insensitive keys."""

    def __init__(self, data: Optional[dict] = None) -> None:
        self._data: Dict[str, Any] = _lower(dict(data or {}))

    @classmethod
    def from_file(cls, path: str) -> "Environment":
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise ValueError(f"configuration in {path} is not a mapping")
        return cls(data)

    def get(self, key: str, default: Any = None) -> Any:
        node: Any = self._data
        for part in key.lower().split("."):
            if not isinstance(node, dict):
                return default
            node = node.get(part, _MISSING)
            if node is _MISSING:
                return default
        return node

    def get_string(self, key: str) -> str:
        return _to_string(self.get(key))

    def get_bool(self, key: str) -> bool:
        value = self.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            return value.strip() in _TRUE_WORDS
        return False

    def get_int(self, key: str) -> int:
        return _to_int(self.get(key))

    def get_int_slice(self, key: str) -> List[int]:
        value = self.get(key)
        return [_to_int(v) for v in value] if isinstance(value, list) else []

    def get_string_slice(self, key: str) -> List[str]:
        value = self.get(key)
        if isinstance(value, list):
            return [_to_string(v) for v in value]
        if isinstance(value, str):
            return value.split()
        return []

    def get_string_map(self, key: str) -> Dict[str, Any]:
        value = self.get(key)
        return dict(value) if isinstance(value, dict) else {}

    def set(self, key: str, value: Any) -> None:
        parts = key.lower().split(".")
        node = self._data
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = _lower(value)


_inits: List[Hook] = []
_exits: List[Hook] = []
_current = Environment()


def current_environment() -> Environment:
    """The environment most recently passed to :func:`initialized`."""
    return _current


def add_initialized(apply: Hook) -> Hook:
    """Register a start-up hook; usable as a decorator."""
    _inits.append(apply)
    return apply


def add_exited(apply: Hook) -> Hook:
    """Register a shut-down hook; usable as a decorator."""
    _exits.append(apply)
    return apply


def run_exited(env: Environment) -> None:
    for apply in list(_exits):
        apply(env)


def initialized(env: Environment) -> None:
    """Run every start-up hook and arrange for shut-down hooks on SIGINT/SIGTERM."""
    global _current
    _current = env
    for apply in list(_inits):
        apply(env)

    if threading.current_thread() is not threading.main_thread():
        return

    def _on_signal(signum: int, frame: Any) -> None:
        run_exited(env)
        sys.exit(0)

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _on_signal)