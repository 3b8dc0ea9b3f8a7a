"""Logger setup for the codemap CLI and service.

Library modules only ever call :func:`get_logger`; handlers are installed once
by whichever surface owns the process (CLI or service) via
:func:`configure_logging`.
"""

from __future__ import annotations

import logging
from pathlib import Path

LOGGER_NAME = "codemap"
CONSOLE_FORMAT = "[codemap] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the codemap hierarchy.

    Both ``get_logger("cache")`` and ``get_logger("codemap.cache")`` name the
    same logger.
    """
    if not name or name == LOGGER_NAME:
        return logging.getLogger(LOGGER_NAME)
    if name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def _attach(logger: logging.Logger, handler: logging.Handler, level: int, fmt: str) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Install the console handler, plus a file handler when ``log_file`` is set."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = get_logger()
    logger.setLevel(level)
    logger.propagate = False

    # Running main() twice in one process must not double every line.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    _attach(logger, logging.StreamHandler(), level, CONSOLE_FORMAT)
    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        _attach(logger, logging.FileHandler(log_file, encoding="utf-8"), level, FILE_FORMAT)

    return logger


class ProgressLogger:
    """Progress sink that logs ``processed/total`` at each tenth of a scan."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or get_logger("progress")
        self._last_decile = -1

    def report(self, processed: int, total: int) -> None:
        if total <= 0:
            return
        decile = processed * 10 // total
        if decile == self._last_decile:
            return
        self._last_decile = decile
        if processed >= total:
            self._logger.info("Analysed %d files", total)
        else:
            self._logger.debug("Processed %d/%d files", processed, total)


__all__ = ["LOGGER_NAME", "ProgressLogger", "configure_logging", "get_logger"]
