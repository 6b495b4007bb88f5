"""Structured logging with contextual fields, console or JSON output."""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, NoReturn, TextIO

_PANIC = logging.CRITICAL + 10
_DISABLED = logging.CRITICAL + 50

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": _PANIC,
    "disabled": _DISABLED,
}

_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
    _PANIC: "panic",
}

_LEVEL_TAGS = {
    logging.DEBUG: ("DBG", "\x1b[33m"),
    logging.INFO: ("INF", "\x1b[32m"),
    logging.WARNING: ("WRN", "\x1b[31m"),
    logging.ERROR: ("ERR", "\x1b[1m\x1b[31m"),
    logging.CRITICAL: ("FTL", "\x1b[1m\x1b[31m"),
    _PANIC: ("PNC", "\x1b[1m\x1b[31m"),
}

# Shared threshold: creating a logger sets it for every logger.
_threshold = logging.INFO
_global_logger: Logger | None = None


def parse_level(level: str) -> int:
    """Map a level name to a numeric level; unknown names mean info."""
    return _LEVELS.get(level.lower(), logging.INFO)


@dataclass
class LoggerConfig:
    """How a logger is built."""

    level: str = "info"
    format: str = "json"
    dual_output: bool = False
    console_format: str = "console"
    file_format: str = "json"
    file_path: str = ""


def _timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created).astimezone().isoformat(timespec="seconds")


def _caller(record: logging.LogRecord) -> str:
    return f"{record.pathname}:{record.lineno}"


def _fields(record: logging.LogRecord) -> Mapping[str, Any]:
    return getattr(record, "fields", {})


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {"level": _LEVEL_NAMES.get(record.levelno, "info")}
        entry.update(_fields(record))
        entry["time"] = _timestamp(record)
        entry["caller"] = _caller(record)
        entry["message"] = record.getMessage()
        return json.dumps(entry, default=str, ensure_ascii=False)


class _ConsoleFormatter(logging.Formatter):
    def __init__(self, color: bool) -> None:
        super().__init__()
        self._color = color

    def format(self, record: logging.LogRecord) -> str:
        tag, colour = _LEVEL_TAGS.get(record.levelno, ("???", ""))
        if self._color:
            tag = f"{colour}{tag}\x1b[0m"
        parts = [_timestamp(record), tag, _caller(record), ">", record.getMessage()]
        for key, value in sorted(_fields(record).items()):
            text = value if isinstance(value, str) else json.dumps(value, default=str)
            parts.append(f"{key}={text}")
        return " ".join(parts)


def _console_handler() -> logging.Handler:
    stream: TextIO = sys.stdout
    handler = logging.StreamHandler(stream)
    isatty = getattr(stream, "isatty", None)
    handler.setFormatter(_ConsoleFormatter(color=bool(isatty and isatty())))
    return handler


def _json_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter())
    return handler


def _file_handler(file_path: str) -> logging.Handler:
    """Open today's log file in the directory of ``file_path`` for appending."""
    directory = os.path.dirname(file_path) or "."
    try:
        os.makedirs(directory, mode=0o755, exist_ok=True)
    except OSError as exc:
        raise OSError(f"erro ao criar diretório {directory}: {exc}") from exc
    file_name = f"zapcore-{datetime.now():%Y-%m-%d}.log"
    full_path = os.path.join(directory, file_name)
    try:
        handler = logging.FileHandler(full_path, mode="a", encoding="utf-8")
    except OSError as exc:
        raise OSError(f"erro ao abrir arquivo {full_path}: {exc}") from exc
    handler.setFormatter(_JsonFormatter())
    return handler


class Logger:
    """A logger carrying a set of contextual fields added to every entry."""

    def __init__(self, base: logging.Logger, fields: Mapping[str, Any] | None = None) -> None:
        self._base = base
        self._fields = dict(fields or {})

    def _log(self, level: int, message: str, fields: Mapping[str, Any], stacklevel: int = 3) -> None:
        if level < _threshold:
            return
        merged = {**self._fields, **fields}
        self._base.log(level, message, extra={"fields": merged}, stacklevel=stacklevel)

    def _fatal(self, message: str, fields: Mapping[str, Any], stacklevel: int) -> NoReturn:
        self._log(logging.CRITICAL, message, fields, stacklevel)
        raise SystemExit(1)

    def _panic(self, message: str, fields: Mapping[str, Any], stacklevel: int) -> NoReturn:
        self._log(_PANIC, message, fields, stacklevel)
        raise RuntimeError(message)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, kwargs)

    def fatal(self, message: str, **kwargs: Any) -> NoReturn:
        """Log at fatal level, then exit with status 1."""
        self._fatal(message, kwargs, 4)

    def panic(self, message: str, **kwargs: Any) -> NoReturn:
        """Log at panic level, then raise RuntimeError."""
        self._panic(message, kwargs, 4)

    def with_field(self, key: str, value: Any) -> Logger:
        return Logger(self._base, {**self._fields, key: value})

    def with_fields(self, fields: Mapping[str, Any]) -> Logger:
        return Logger(self._base, {**self._fields, **fields})

    def with_session_id(self, session_id: str) -> Logger:
        return self.with_field("session_id", session_id)

    def with_jid(self, jid: str) -> Logger:
        return self.with_field("jid", jid)

    def with_status(self, status: str) -> Logger:
        return self.with_field("status", status)

    def with_error(self, error: BaseException | None) -> Logger:
        if error is None:
            return Logger(self._base, self._fields)
        return self.with_field("error", str(error))


def create_logger(config: LoggerConfig) -> Logger:
    """Build a logger from ``config`` and set the shared level threshold."""
    global _threshold
    _threshold = parse_level(config.level)

    base = logging.Logger("zapcore", level=1)
    base.propagate = False

    if config.dual_output:
        base.addHandler(_console_handler())
        try:
            base.addHandler(_file_handler(config.file_path))
        except OSError as exc:
            print(f"Aviso: Falha ao criar arquivo de log ({exc}), usando apenas console")
    elif config.format == "console":
        base.addHandler(_console_handler())
    else:
        base.addHandler(_json_handler())

    return Logger(base)


def init(config: LoggerConfig) -> None:
    """Replace the global logger."""
    global _global_logger
    _global_logger = create_logger(config)


def get() -> Logger:
    """Return the global logger, creating a console one at info level if needed."""
    global _global_logger
    if _global_logger is None:
        _global_logger = create_logger(LoggerConfig(level="info", format="console"))
    return _global_logger


def debug(message: str, **kwargs: Any) -> None:
    get()._log(logging.DEBUG, message, kwargs, 4)


def info(message: str, **kwargs: Any) -> None:
    get()._log(logging.INFO, message, kwargs, 4)


def warning(message: str, **kwargs: Any) -> None:
    get()._log(logging.WARNING, message, kwargs, 4)


def error(message: str, **kwargs: Any) -> None:
    get()._log(logging.ERROR, message, kwargs, 4)


def fatal(message: str, **kwargs: Any) -> NoReturn:
    get()._fatal(message, kwargs, 5)


def panic(message: str, **kwargs: Any) -> NoReturn:
    get()._panic(message, kwargs, 5)


def with_session_id(session_id: str) -> Logger:
    return get().with_session_id(session_id)


def with_jid(jid: str) -> Logger:
    return get().with_jid(jid)


def with_status(status: str) -> Logger:
    return get().with_status(status)


def with_error(error: BaseException | None) -> Logger:
    return get().with_error(error)


def with_field(key: str, value: Any) -> Logger:
    return get().with_field(key, value)


def with_fields(fields: Mapping[str, Any]) -> Logger:
    return get().with_fields(fields)