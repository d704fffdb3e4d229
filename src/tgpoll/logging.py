from __future__ import annotations

import errno
import io
import os
import re
import sys
from typing import Any, TextIO, cast

import structlog
from structlog.types import Processor

# api.telegram.org/bot<token>/<method> and bare tokens in payloads
TOKEN_URL_RE = re.compile(r"bot\d+:[A-Za-z0-9_-]+")
BARE_TOKEN_RE = re.compile(r"\b\d+:[A-Za-z0-9_-]{10,}\b")

_LEVELS: dict[str, int] = {
    "debug": 10,
    "info": 20,
    "warning": 30,
    "error": 40,
    "exception": 40,
    "critical": 50,
}

_min_level = _LEVELS["info"]
_log_file: TextIO | None = None


def _truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _level_value(value: str | None, *, default: str = "info") -> int:
    if not value:
        return _LEVELS[default]
    return _LEVELS.get(value.strip().lower(), _LEVELS[default])


def _drop_below_level(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    if _LEVELS.get(method_name, 0) < _min_level:
        raise structlog.DropEvent
    return event_dict


def redact(text: str) -> str:
    text = TOKEN_URL_RE.sub("bot[REDACTED]", text)
    return BARE_TOKEN_RE.sub("[REDACTED_TOKEN]", text)


def _redact_value(value: Any) -> Any:
    if isinstance(value, str):
        return redact(value)
    if isinstance(value, (bytes, bytearray)):
        return redact(value.decode("utf-8", errors="replace"))
    if isinstance(value, dict):
        return {key: _redact_value(val) for key, val in value.items()}
    if isinstance(value, list):
        return [_redact_value(item) for item in value]
    if isinstance(value, tuple):
        return tuple(_redact_value(item) for item in value)
    return value


def _redact_event_dict(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    _ = logger, method_name
    return {key: _redact_value(val) for key, val in event_dict.items()}


def _file_sink(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    if _log_file is None:
        return event_dict
    try:
        line = structlog.processors.JSONRenderer(default=str)(
            logger, method_name, dict(event_dict)
        )
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        _log_file.write(line + "\n")
        _log_file.flush()
    except OSError:
        return event_dict
    return event_dict


def _add_logger_name(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    name = event_dict.pop("logger_name", None)
    if "logger" not in event_dict and isinstance(name, str) and name:
        event_dict["logger"] = name
    return event_dict


def get_logger(name: str | None = None) -> Any:
    if name:
        return structlog.get_logger(logger_name=name)
    return structlog.get_logger()


def bind_context(**fields: Any) -> None:
    structlog.contextvars.bind_contextvars(**fields)


class SafeWriter(io.TextIOBase):
    """Stdout wrapper that goes quiet once the reading end of a pipe is gone."""

    def __init__(self, stream: Any) -> None:
        self._stream = stream
        self._closed = False

    def write(self, message: str) -> int:
        if self._closed:
            return 0
        try:
            return self._stream.write(message)
        except (BrokenPipeError, ValueError):
            self._closed = True
            return 0
        except OSError as exc:
            if exc.errno == errno.EPIPE:
                self._closed = True
                return 0
            raise

    def flush(self) -> None:
        if self._closed:
            return
        try:
            self._stream.flush()
        except (BrokenPipeError, ValueError):
            self._closed = True
        except OSError as exc:
            if exc.errno != errno.EPIPE:
                raise
            self._closed = True

    def isatty(self) -> bool:
        isatty = getattr(self._stream, "isatty", None)
        return bool(isatty()) if callable(isatty) else False


def _open_log_file(path: str | None) -> None:
    global _log_file
    if _log_file is not None:
        try:
            _log_file.close()
        except OSError:
            pass
        _log_file = None
    if not path:
        return
    try:
        _log_file = open(path, "a", encoding="utf-8")
    except OSError:
        _log_file = None


def setup_logging(
    *, debug: bool = False, cache_logger_on_first_use: bool = True
) -> None:
    global _min_level

    level_name = "debug" if debug else os.environ.get("TGPOLL_LOG_LEVEL")
    _min_level = _level_value(level_name, default="info")

    log_format = os.environ.get("TGPOLL_LOG_FORMAT", "console").strip().lower()
    color = os.environ.get("TGPOLL_LOG_COLOR")
    colors = sys.stdout.isatty() if color is None else _truthy(color)
    if log_format == "json":
        renderer: Any = structlog.processors.JSONRenderer(default=str)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colors)

    _open_log_file(os.environ.get("TGPOLL_LOG_FILE"))

    processors = cast(
        list[Processor],
        [
            _drop_below_level,
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            _add_logger_name,
        ],
    )
    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
    processors.extend(
        cast(list[Processor], [_redact_event_dict, _file_sink, renderer])
    )

    structlog.configure(
        processors=processors,
        logger_factory=structlog.PrintLoggerFactory(
            file=cast(TextIO, SafeWriter(sys.stdout))
        ),
        cache_logger_on_first_use=cache_logger_on_first_use,
    )
