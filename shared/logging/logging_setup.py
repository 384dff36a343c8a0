"""Logging setup: colored console output plus a plain UTF-8 log file.

Timestamps are rendered in the TIMEZONE of the deployment (default
Europe/Berlin). LOG_LEVEL=debug also enables the chatter of the HTTP and
Redis client libraries.
"""

import logging
import logging.config
import os
from datetime import datetime
from functools import partialmethod
from logging import Logger

from pytz import timezone

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOGGER_NAME = "doc_qa_bridge"
LIBRARY_LOGGERS = ("httpx", "httpcore", "redis")

ANSI_RESET = "\033[0m"
ANSI_COLORS: dict[str, str] = {
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "white": "\033[37m",
}
LEVEL_MARKERS: dict[int, str] = {
    logging.CRITICAL: "⛔ ",
    logging.ERROR: "⛔ ",
    logging.WARNING: "⚠️ ",
}


def _resolve_level() -> int:
    return logging.DEBUG if os.getenv("LOG_LEVEL", "info").lower() == "debug" else logging.INFO


class TimezoneFormatter(logging.Formatter):
    """Formats timestamps in a fixed timezone and marks warnings and errors."""

    def __init__(self, tz_name: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        created = datetime.fromtimestamp(record.created, self.tz)
        return created.strftime(datefmt) if datefmt else created.isoformat()

    def format(self, record: logging.LogRecord) -> str:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)
        # every handler formats the same record, so mark a copy
        marked = logging.makeLogRecord(record.__dict__)
        marked.msg = LEVEL_MARKERS.get(record.levelno, "") + message
        marked.args = ()
        return super().format(marked)


class ConsoleFormatter(TimezoneFormatter):
    """Wraps a line in the ANSI color named by the record's ``color`` attribute."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        ansi = ANSI_COLORS.get(getattr(record, "color", None) or "")
        return f"{ansi}{line}{ANSI_RESET}" if ansi and line else line


class ColorLogger:
    """Logger proxy whose log methods accept an optional ``color=`` keyword.

    The color only affects the console; the log file stays plain text.
    Everything else (setLevel, handlers, ...) is forwarded to the wrapped
    logger.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs) -> None:
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        kwargs.setdefault("stacklevel", 2)
        self._logger.log(level, msg, *args, **kwargs)

    debug = partialmethod(log, logging.DEBUG)
    info = partialmethod(log, logging.INFO)
    warning = partialmethod(log, logging.WARNING)
    error = partialmethod(log, logging.ERROR)
    critical = partialmethod(log, logging.CRITICAL)

    def exception(self, msg, *args, color: str | None = None, **kwargs) -> None:
        kwargs.setdefault("exc_info", True)
        self.log(logging.ERROR, msg, *args, color=color, **kwargs)

    def __getattr__(self, name):
        return getattr(self._logger, name)


def build_logging_config(log_file: str, tz_name: str, level: int) -> dict:
    formatter_args = {"fmt": LOG_FORMAT, "datefmt": DATE_FORMAT, "tz_name": tz_name}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"()": TimezoneFormatter, **formatter_args},
            "console": {"()": ConsoleFormatter, **formatter_args},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "level": level,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.FileHandler",
                "formatter": "plain",
                "level": level,
                "filename": log_file,
                "encoding": "utf-8",
            },
        },
        "root": {"handlers": ["console", "file"], "level": level},
    }


def setup_logging() -> ColorLogger:
    """Configure the root logger and return the application logger.

    Log files go to $ROOT_DIR/logs/app.log (ROOT_DIR defaults to the working
    directory).
    """
    level = _resolve_level()
    log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
    os.makedirs(log_dir, exist_ok=True)

    config = build_logging_config(
        log_file=os.path.join(log_dir, "app.log"),
        tz_name=os.getenv("TIMEZONE", "Europe/Berlin"),
        level=level,
    )
    logging.config.dictConfig(config)

    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if level == logging.DEBUG else logging.WARNING)

    return ColorLogger(logging.getLogger(LOGGER_NAME))
