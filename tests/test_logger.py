import logging
import time
from datetime import datetime

import pytest

from chatadapter.logger import TRACE, NestedFormatter, init_logger, log_level


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def test_log_level_names():
    assert log_level("trace") == TRACE
    assert log_level("debug") == logging.DEBUG
    assert log_level("warn") == logging.WARNING
    assert log_level("error") == logging.ERROR
    assert log_level("info") == logging.INFO
    assert log_level("bogus") == logging.INFO


def test_formatter_layout():
    record = logging.LogRecord(
        "chatadapter.x", logging.WARNING, "/a/b/mod.py", 12, "hi %s", ("there",), None
    )
    record.created = time.mktime((2024, 1, 2, 3, 4, 5, 0, 0, -1))
    text = NestedFormatter().format(record)
    assert text == "2024-01-02 03:04:05 <chatadapter.x> mod.py:12 | [WARN] hi there"


def test_formatter_main_logger_shows_main():
    record = logging.LogRecord("__main__", logging.INFO, "/x/run.py", 3, "msg", (), None)
    text = NestedFormatter().format(record)
    assert " <main> run.py:3 | [INFO] msg" in text


def test_init_logger_writes_daily_file(tmp_path, root_logger):
    base = tmp_path / "logs"
    init_logger(str(base), log_level("debug"))
    assert root_logger.level == logging.DEBUG
    logging.getLogger("chatadapter.test").info("hello world")
    path = base / f"background-{datetime.now():%Y-%m-%d}.log"
    content = path.read_text(encoding="utf-8")
    assert "hello world" in content
    assert "[INFO]" in content


def test_init_logger_drops_old_files(tmp_path, root_logger):
    base = tmp_path / "logs"
    base.mkdir()
    old = base / "background-2000-01-01.log"
    old.write_text("old\n", encoding="utf-8")
    keep = base / "notes.txt"
    keep.write_text("keep", encoding="utf-8")
    init_logger(str(base), logging.INFO)
    logging.getLogger("chatadapter.test").warning("rotate")
    assert not old.exists()
    assert keep.exists()


def test_init_logger_respects_level(tmp_path, root_logger):
    base = tmp_path / "logs"
    init_logger(str(base), log_level("error"))
    logger = logging.getLogger("chatadapter.test")
    logger.info("quiet line")
    logger.error("loud line")
    content = (base / f"background-{datetime.now():%Y-%m-%d}.log").read_text(encoding="utf-8")
    assert "loud line" in content
    assert "quiet line" not in content