# File: crawl_planner/logger.py
"""Логирование CrawlPlanner.

Один именованный логгер ``CrawlPlanner`` на весь пакет; модули берут дочерние
через :func:`get_logger`::

    log = get_logger("discovery")      # -> CrawlPlanner.discovery
    log.warning("TryingSitemap failed: %s", exc)

Консольный вывод идёт в stderr: stdout занят JSON-результатом команды ``plan``.
CLI перенастраивает уровень, файл и формат через :func:`init_logging`.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Iterator, Union

LOGGER_NAME: Final[str] = "CrawlPlanner"
DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

#: сторонние логгеры, которые в консоли приглушаются до WARNING
_NOISY: Final[tuple[str, ...]] = ("aiohttp.access", "aiohttp.client")

_LOG_FILE_MAX_BYTES: Final[int] = 2 * 1024 * 1024
_LOG_FILE_BACKUPS: Final[int] = 3

LevelT = Union[int, str]


def _handlers(log_file: Path | str | None, fmt: str) -> Iterator[logging.Handler]:
    formatter = logging.Formatter(fmt)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    yield console

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(
            path, maxBytes=_LOG_FILE_MAX_BYTES, backupCount=_LOG_FILE_BACKUPS, encoding="utf-8"
        )
        rotating.setFormatter(formatter)
        yield rotating


def init_logging(
    level: LevelT = "INFO",
    log_file: Path | str | None = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Настраивает логгер пакета заново: старые обработчики закрываются.

    Args:
        level: уровень (``"DEBUG"``, ``logging.INFO`` ...).
        log_file: файл с ротацией; ``None`` – только stderr.
        log_format: строка формата :class:`logging.Formatter`.
    """
    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(level)
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    for handler in _handlers(log_file, log_format):
        root.addHandler(handler)
    root.propagate = False

    for name in _NOISY:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))
    return root


def get_logger(name: str | None = None) -> logging.Logger:
    """``CrawlPlanner`` или его потомок ``CrawlPlanner.<name>``."""
    return logger.getChild(name) if name else logger


logger: logging.Logger = init_logging()

__all__ = ["LOGGER_NAME", "DEFAULT_FORMAT", "logger", "init_logging", "get_logger"]
