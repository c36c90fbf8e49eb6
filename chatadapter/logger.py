"""Log setup: a nested-style line format and daily log files kept for a week."""

from __future__ import annotations

import logging
import os
import re
import sys
import time
from datetime import date, datetime, timedelta
from typing import IO, Optional

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_AGE = timedelta(days=7)

_LEVELS = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}
_FILE_RE = re.compile(r"^background-(\d{4}-\d{2}-\d{2})\.log$")


def log_level(name: str) -> int:
    """Map a level name (trace, debug, info, warn, error) to a logging level; INFO otherwise."""
    return _LEVELS.get(name, logging.INFO)


class NestedFormatter(logging.Formatter):
    """Formats ``<time> <logger> file:line | [LEVL] message``."""

    def __init__(self, timestamp_format: str = TIMESTAMP_FORMAT) -> None:
        super().__init__()
        self.timestamp_format = timestamp_format

    @staticmethod
    def _caller(record: logging.LogRecord) -> str:
        root = "main" if record.name == "__main__" else record.name
        return f" <{root}> {record.filename}:{record.lineno} |"

    def format(self, record: logging.LogRecord) -> str:
        stamp = time.strftime(self.timestamp_format, time.localtime(record.created))
        level = record.levelname.upper()[:4]
        message = record.getMessage()
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return f"{stamp}{self._caller(record)} [{level}] {message}"


class _DailyFileHandler(logging.Handler):
    """Writes to ``background-YYYY-MM-DD.log`` and drops files older than a week."""

    def __init__(self, base_path: str, max_age: timedelta = MAX_AGE) -> None:
        super().__init__()
        os.makedirs(base_path, exist_ok=True)
        self.base_path = base_path
        self.max_age = max_age
        self._day: Optional[date] = None
        self._stream: Optional[IO[str]] = None

    def path_for(self, day: date) -> str:
        return os.path.join(self.base_path, f"background-{day:%Y-%m-%d}.log")

    def _open(self, day: date) -> None:
        if self._stream is not None:
            self._stream.close()
        self._stream = open(self.path_for(day), "a", encoding="utf-8")
        self._day = day
        self._purge(day)

    def _purge(self, today: date) -> None:
        for name in os.listdir(self.base_path):
            found = _FILE_RE.match(name)
            if found is None:
                continue
            try:
                day = datetime.strptime(found.group(1), "%Y-%m-%d").date()
            except ValueError:
                continue
            if today - day > self.max_age:
                os.remove(os.path.join(self.base_path, name))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            day = datetime.fromtimestamp(record.created).date()
            self.acquire()
            try:
                if day != self._day or self._stream is None:
                    self._open(day)
                assert self._stream is not None
                self._stream.write(message + "\n")
                self._stream.flush()
            finally:
                self.release()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        self.acquire()
        try:
            if self._stream is not None:
                self._stream.close()
                self._stream = None
        finally:
            self.release()
        super().close()


def init_logger(base_path: str, level: int) -> None:
    """Send log records at ``level`` and above to daily files under ``base_path`` and stdout."""
    root = logging.getLogger()
    root.setLevel(level)
    if not base_path:
        base_path = "log"

    for handler in list(root.handlers):
        if getattr(handler, "_chatadapter", False):
            root.removeHandler(handler)
            handler.close()

    formatter = NestedFormatter()
    file_handler = _DailyFileHandler(base_path)
    stdout_handler = logging.StreamHandler(sys.stdout)
    for handler in (file_handler, stdout_handler):
        handler.setFormatter(formatter)
        handler._chatadapter = True  # type: ignore[attr-defined]
        root.addHandler(handler)