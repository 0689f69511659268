"""Process-wide logger with structured (JSON) or console output."""

from __future__ import annotations

import datetime
import json
import logging
import os
import sys

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "dpanic": logging.CRITICAL,
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}

_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}

_COLORS = {
    logging.DEBUG: 35,
    logging.INFO: 34,
    logging.WARNING: 33,
    logging.ERROR: 31,
    logging.CRITICAL: 31,
}

_logger = logging.getLogger("dtmclient")
_logger.propagate = False


def _timestamp(record: logging.LogRecord) -> str:
    moment = datetime.datetime.fromtimestamp(record.created).astimezone()
    return moment.isoformat(timespec="milliseconds")


def _level_name(record: logging.LogRecord) -> str:
    return _NAMES.get(record.levelno, record.levelname.lower())


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "level": _level_name(record),
            "ts": _timestamp(record),
            "caller": f"{record.filename}:{record.lineno}",
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["stacktrace"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


class _ConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        color = _COLORS.get(record.levelno, 0)
        level = f"\x1b[{color}m{_level_name(record).upper()}\x1b[0m"
        line = (
            f"{_timestamp(record)}\t{level}\t"
            f"{record.filename}:{record.lineno}\t{record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class _StderrHandler(logging.Handler):
    """Writes to whatever sys.stderr is at the time of each record."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            stream = sys.stderr
            stream.write(self.format(record) + "\n")
            stream.flush()
        except Exception:
            self.handleError(record)


def init_log(level):
    """Configure the logger; level is one of debug, info, warn, error."""
    key = level.lower() if isinstance(level, str) else level
    if key not in _LEVELS:
        fatal_if_error(ValueError(f"unrecognized level: {level!r}"))
    handler = _StderrHandler()
    if os.environ.get("DTM_DEBUG"):
        handler.setFormatter(_ConsoleFormatter())
    else:
        handler.setFormatter(_JsonFormatter())
    for old in list(_logger.handlers):
        _logger.removeHandler(old)
    _logger.addHandler(handler)
    _logger.setLevel(_LEVELS[key])


def debug(msg, *args):
    _logger.debug(msg, *args, stacklevel=2)


def info(msg, *args):
    _logger.info(msg, *args, stacklevel=2)


def warn(msg, *args):
    _logger.warning(msg, *args, stacklevel=2)


def error(msg, *args):
    _logger.error(msg, *args, stacklevel=2)


def fatal_if(cond, msg, *args):
    """Stop the process with the formatted message when cond is true."""
    if not cond:
        return
    message = msg % args if args else msg
    raise SystemExit(message)


def fatal_if_error(err):
    """Stop the process when err is set."""
    fatal_if(err is not None, "fatal error: %s", err)


init_log("info")