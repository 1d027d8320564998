"""Coloured console logging for the command line tool."""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from typing import IO

LOGGER_NAME = "ghblob"

COLOR_RESET = "\033[0m"
COLOR_RED = "\033[31m"
COLOR_GREEN = "\033[32m"
COLOR_YELLOW = "\033[33m"
COLOR_BLUE = "\033[34m"
COLOR_CYAN = "\033[36m"
COLOR_DIM = "\033[2m"

CALLER_WIDTH = 30
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVEL_COLORS = {
    "INFO": COLOR_BLUE,
    "WARN": COLOR_YELLOW,
    "ERROR": COLOR_RED,
    "DEBUG": COLOR_GREEN,
}

_LEVEL_NAMES = {"WARNING": "WARN"}


def pad_right(text: str, length: int) -> str:
    """Pad ``text`` with spaces on the right up to ``length`` characters."""
    return text.ljust(length)


def format_level(levelname: str) -> str:
    """Render a level name in brackets, coloured by severity."""
    name = _LEVEL_NAMES.get(levelname.upper(), levelname.upper())
    color = _LEVEL_COLORS.get(name)
    if color is None:
        return f"[{name}]"
    return f"{color}[{name}]{COLOR_RESET}"


def _trimmed_path(record: logging.LogRecord) -> str:
    directory = os.path.basename(os.path.dirname(record.pathname))
    filename = os.path.basename(record.pathname)
    path = f"{directory}/{filename}" if directory else filename
    return f"{path}:{record.lineno}"


class ColorFormatter(logging.Formatter):
    """Tab separated console format: time, level, caller, message, fields."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = time.strftime(datefmt or TIME_FORMAT, time.localtime(record.created))
        return f"{COLOR_BLUE}[{stamp}]{COLOR_RESET}"

    def format(self, record: logging.LogRecord) -> str:
        parts = [self.formatTime(record, self.datefmt), format_level(record.levelname)]
        if logging.getLogger(record.name).isEnabledFor(logging.DEBUG):
            parts.append(COLOR_DIM + pad_right(_trimmed_path(record), CALLER_WIDTH) + COLOR_RESET)
        parts.append(record.getMessage())
        fields = getattr(record, "fields", None)
        if fields:
            parts.append(json.dumps(fields, default=str))
        line = "\t".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def init_logger(stream: IO[str] | None = None, level: int = logging.DEBUG) -> logging.Logger:
    """Configure the package logger to write coloured lines to ``stream``."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(ColorFormatter())
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def get_logger() -> logging.Logger:
    """Return the package logger."""
    return logging.getLogger(LOGGER_NAME)