# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import json
import logging
import os

from enum import Enum
from typing import TYPE_CHECKING

from rich.logging import RichHandler

if TYPE_CHECKING:
    from docrefs.config import BaseSettings


ROOT_LOGGER = "docrefs"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogOutput(str, Enum):
    CONSOLE = "console"
    FILE = "file"
    BOTH = "both"


class LogFormat(str, Enum):
    TEXT_LIGHT = "text_light"
    TEXT = "text"
    JSON = "json"


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


def _build_formatter(log_format: LogFormat | str) -> logging.Formatter:
    if log_format == LogFormat.JSON:
        return JsonFormatter()

    if log_format == LogFormat.TEXT_LIGHT:
        return logging.Formatter("%(message)s")

    if isinstance(log_format, str) and log_format not in [f.value for f in LogFormat]:
        return logging.Formatter(log_format)

    return logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def setup_logging(settings: "BaseSettings") -> logging.Logger:
    """
    Configure the ``docrefs`` logger from the settings.

    Handlers installed by a previous call are replaced, so calling it again
    after changing the settings is safe.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(settings.log_level.value)

    for handler in list(logger.handlers):
        if getattr(handler, "_docrefs", False):
            logger.removeHandler(handler)
            handler.close()

    handlers: list[logging.Handler] = []
    formatter = _build_formatter(settings.log_format)

    if settings.log_output in (LogOutput.CONSOLE, LogOutput.BOTH):
        if settings.log_format == LogFormat.TEXT_LIGHT:
            console: logging.Handler = RichHandler(
                show_path=False, rich_tracebacks=True, markup=False
            )
        else:
            console = logging.StreamHandler()

        console.setFormatter(formatter)
        handlers.append(console)

    if settings.log_output in (LogOutput.FILE, LogOutput.BOTH):
        os.makedirs(os.path.dirname(settings.log_path) or ".", exist_ok=True)
        file_handler = logging.FileHandler(settings.log_path, encoding="utf-8")
        file_handler.setFormatter(
            formatter
            if settings.log_format != LogFormat.TEXT_LIGHT
            else _build_formatter(LogFormat.TEXT)
        )
        handlers.append(file_handler)

    for handler in handlers:
        setattr(handler, "_docrefs", True)
        logger.addHandler(handler)

    logger.propagate = False

    return logger


__all__ = [
    "LogLevel",
    "LogOutput",
    "LogFormat",
    "JsonFormatter",
    "setup_logging",
]
