"""Tests for codemap.logging."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from codemap.logging import ProgressLogger, configure_logging, get_logger


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logger = logging.getLogger("codemap")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def test_get_logger_names() -> None:
    assert get_logger().name == "codemap"
    assert get_logger("cache").name == "codemap.cache"
    assert get_logger("codemap.cache") is get_logger("cache")


def test_configure_logging_replaces_handlers(tmp_path: Path) -> None:
    configure_logging()
    logger = configure_logging(verbose=True, log_file=tmp_path / "logs" / "run.log")

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    get_logger("engine").debug("hello file")
    for handler in logger.handlers:
        handler.flush()
    assert "codemap.engine: hello file" in (tmp_path / "logs" / "run.log").read_text(encoding="utf-8")


def test_progress_logger_reports_each_decile(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="codemap")
    sink = ProgressLogger()

    for processed in range(1, 21):
        sink.report(processed, 20)
    sink.report(0, 0)

    messages = [record.getMessage() for record in caplog.records]
    assert messages[0] == "Processed 1/20 files"
    assert messages[-1] == "Analysed 20 files"
    assert len(messages) == 11
