# === FILE: site_harvest/logger.py ===
"""Логирование SiteHarvest.

Все модули пишут в один логгер ``SiteHarvest``::

      from site_harvest.logger import logger
      logger.info("Crawl started")

Диагностика идёт в stderr, чтобы JSON-отчёт в stdout оставался чистым.
CLI перенастраивает логгер через :func:`init_logging`.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Tuple, Union

# --------------------------------------------------------------------------- #
# Constants                                                                   #
# --------------------------------------------------------------------------- #

_DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_LOGGER_NAME: Final[str] = "SiteHarvest"

# Болтливые библиотеки HTTP-клиента и браузера: выше WARNING не поднимаем
_NOISY_LOGGERS: Final[Tuple[str, ...]] = ("aiohttp.access", "aiohttp.client", "asyncio", "playwright")

_LOG_FILE_MAX_BYTES: Final[int] = 5 * 1024 * 1024
_LOG_FILE_BACKUPS: Final[int] = 3

_LevelT = Union[int, str]


def _resolve_level(level: _LevelT) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"unknown log level: {level!r}")
    return value


def _build_handlers(log_file: str | Path | None, fmt: str) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                filename=str(path),
                maxBytes=_LOG_FILE_MAX_BYTES,
                backupCount=_LOG_FILE_BACKUPS,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
) -> logging.Logger:
    """Заменяет обработчики логгера ``SiteHarvest``.

    Parameters
    ----------
    level
        Числовой или текстовый уровень (``"debug"`` тоже подходит).
        Неизвестное имя даёт :class:`ValueError`.
    log_file
        Файл с ротацией (5 MB × 3). *None* – только stderr.
    log_format
        Формат для :class:`logging.Formatter`.

    На уровне DEBUG логгеры aiohttp и Playwright не приглушаются.
    """
    numeric = _resolve_level(level)
    lg = logging.getLogger(_LOGGER_NAME)
    lg.setLevel(numeric)

    for handler in list(lg.handlers):
        lg.removeHandler(handler)
        handler.close()
    for handler in _build_handlers(log_file, log_format):
        lg.addHandler(handler)
    lg.propagate = False

    noisy_level = logging.NOTSET if numeric <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)
    return lg


logger: logging.Logger = init_logging()

__all__ = ["logger", "init_logging"]
