"""
Conti Logging Configuration

Every engine logger lives under the ``conti`` namespace, so one
``setup_logging`` call decides where batch, shot and retry messages go.
Library users who never call it keep full control of output.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, TextIO
from enum import Enum


class LogLevel(Enum):
    """Log levels accepted by setup_logging and the config file."""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def from_name(cls, name: str) -> "LogLevel":
        """Resolve a level from its name, e.g. 'debug' or 'WARNING'."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown log level: {name}")


# Pipe-delimited record formats
DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
VERBOSE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(funcName)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER_NAME = "conti"

_loggers: dict = {}


def _attach(root: logging.Logger, handler: logging.Handler, level: LogLevel, formatter: logging.Formatter) -> None:
    handler.setLevel(level.value)
    handler.setFormatter(formatter)
    root.addHandler(handler)


def setup_logging(
    level: LogLevel = LogLevel.INFO,
    log_file: Optional[Path] = None,
    verbose: bool = False,
    console_output: bool = True,
    stream: Optional[TextIO] = None
) -> None:
    """
    Route engine logs to the console and/or a file.

    Calling it again replaces the previous handlers.

    Args:
        level: Minimum log level to capture
        log_file: Optional path to a log file (parent dirs are created)
        verbose: Include line numbers and function names
        console_output: Log to ``stream``
        stream: Console stream, stdout by default
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level.value)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(VERBOSE_FORMAT if verbose else DEFAULT_FORMAT, datefmt=DATE_FORMAT)

    if console_output:
        _attach(root, logging.StreamHandler(stream or sys.stdout), level, formatter)

    file_path = Path(log_file) if log_file else None
    if file_path:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        _attach(root, logging.FileHandler(file_path, encoding='utf-8'), level, formatter)

    root.debug(f"Logging ready (level={level.name}, verbose={verbose}, file={file_path})")


def get_logger(name: str) -> logging.Logger:
    """
    Logger for an engine component, e.g. ``get_logger("pipelines.scheduler")``.

    Never installs handlers; output is decided by ``setup_logging`` or by
    the embedding application.
    """
    full_name = name if name.startswith(ROOT_LOGGER_NAME) else f"{ROOT_LOGGER_NAME}.{name}"
    return _loggers.setdefault(full_name, logging.getLogger(full_name))
