from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any

import coloredlogs

if TYPE_CHECKING:
    from pathlib import Path

LOG_FORMAT = "%(asctime)s %(name)s[%(process)d] %(levelname)s %(message)s"


def setup_logging(
    log_file: Path | None = None,
    print_level: int | str = logging.DEBUG,
    file_level: int | str = logging.DEBUG,
    logger_name: str = "ondemand",
    append: bool = False,
    level_styles_update: dict[str, dict[str, Any]] | None = None,
    field_styles_update: dict[str, dict[str, Any]] | None = None,
    disable_colors: bool = False,
    fmt: str = LOG_FORMAT,
) -> logging.Logger:
    """
    Console (and optionally file) output for the package loggers.

    Cell fills, consumes and scope definitions are logged at DEBUG level.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.DEBUG)

    level_styles = {**coloredlogs.DEFAULT_LEVEL_STYLES, **(level_styles_update or {})}
    field_styles = {**coloredlogs.DEFAULT_FIELD_STYLES, **(field_styles_update or {})}
    coloredlogs.install(
        level=print_level,
        logger=logger,
        fmt=fmt,
        level_styles=level_styles,
        field_styles=field_styles,
        isatty=False if disable_colors else None,
    )

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        # Replace the handler of an earlier call for the same file, like `coloredlogs.install` does for its own.
        for handler in list(logger.handlers):
            if isinstance(handler, logging.FileHandler) and handler.baseFilename == os.path.abspath(log_file):
                logger.removeHandler(handler)
                handler.close()
        file_handler = logging.FileHandler(log_file, mode="a" if append else "w")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(fmt))
        logger.addHandler(file_handler)
    return logger


class ChangeLoggingLevel:
    """Temporarily change the level of a logger (root by default) and its handlers"""

    def __init__(self, level: int, logger_name: str | None = None, skip_handlers: bool = False):
        self._level = level
        self._logger_name = logger_name
        self._skip_handlers = skip_handlers
        self._original_level: int | None = None
        self._original_handler_levels: dict[logging.Handler, int] | None = None

    def _update_levels(self, level: int, handler_levels: dict[logging.Handler, int] | None = None) -> None:
        logger = logging.getLogger(self._logger_name)
        logger.setLevel(level)
        if self._skip_handlers:
            return
        handler_levels = handler_levels or {}
        for handler in logger.handlers:
            handler.setLevel(handler_levels.get(handler, level))

    def __enter__(self) -> None:
        logger = logging.getLogger(self._logger_name)
        self._original_level = logger.level
        self._original_handler_levels = {handler: handler.level for handler in logger.handlers}
        self._update_levels(self._level)

    def __exit__(self, *_) -> None:
        assert self._original_level is not None
        self._update_levels(self._original_level, self._original_handler_levels)


__all__ = ["setup_logging", "ChangeLoggingLevel"]
