from __future__ import annotations

"""backend/faultline/logger.py

Process-wide structured logger.

Records are emitted through the standard-library ``logging`` machinery with a
JSON formatter: one object per call carrying ``time``, ``level``, ``msg`` and
the caller's key/value fields in order.

The active logger lives behind a single module reference. ``configure`` and
``set_level`` build a complete replacement and swap it in with one
assignment, so readers calling ``get_logger()`` never observe a
half-configured instance and pay no locking cost.

Key/value arguments follow the ``key, value, key, value`` convention and may
be followed by keyword fields. Fields never overwrite one another: an odd
number of positional arguments, a key repeated within a record, or a key
reserved for the record itself (``time``, ``level``, ``msg`` and the
``error*`` fields) raises ValueError instead of losing a value.
"""

import json
import logging
import sys
import threading
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import IO, Any, Optional

from faultline import errors

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

_LEVEL_LABELS = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
}

# Set per request by the HTTP layer; picked up by with_context()
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def parse_level(name: str) -> int:
    """Map a level name to a logging level; unknown names mean INFO."""
    return LEVELS.get(name, logging.INFO)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": _LEVEL_LABELS.get(record.levelno, record.levelname),
            "msg": record.getMessage(),
        }
        for key, value in getattr(record, "fields", ()):
            log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class _StdoutHandler(logging.StreamHandler):
    """StreamHandler bound to whatever ``sys.stdout`` is at emit time."""

    def __init__(self) -> None:
        super().__init__(sys.stdout)

    @property
    def stream(self) -> IO[str]:
        return sys.stdout

    @stream.setter
    def stream(self, value: IO[str]) -> None:
        pass


RESERVED_KEYS = frozenset({
    "time", "level", "msg",
    "error", "error_verbose", "error_source",
    "error_hints", "error_details", "error_domain",
})


def _pairs(
    kv: tuple,
    fields: dict[str, Any],
    existing: tuple[tuple[str, Any], ...] = (),
) -> tuple[tuple[str, Any], ...]:
    """Pair up ``kv`` and append ``fields``; ``existing`` are keys already bound."""
    if len(kv) % 2:
        raise ValueError(
            f"odd number of key/value arguments ({len(kv)}): "
            f"value {kv[-1]!r} has no matching key"
        )
    pairs = [
        (key if isinstance(key, str) else str(key), value)
        for key, value in zip(kv[::2], kv[1::2])
    ]
    pairs.extend(fields.items())

    seen = {key for key, _ in existing}
    for key, _ in pairs:
        if key in RESERVED_KEYS:
            raise ValueError(f"field {key!r} is reserved for the log record")
        if key in seen:
            raise ValueError(f"field {key!r} given more than once")
        seen.add(key)
    return tuple(pairs)


def _error_fields(err: BaseException, rich: bool) -> list[tuple[str, Any]]:
    fields: list[tuple[str, Any]] = [("error", str(err))]
    if rich:
        fields.append(("error_verbose", errors.format_verbose(err)))

    source = errors.get_one_line_source(err)
    if source is not None:
        fields.append(("error_source", str(source)))

    if not rich:
        return fields

    hints = errors.get_all_hints(err)
    if hints:
        fields.append(("error_hints", hints))

    details = errors.get_all_details(err)
    if details:
        fields.append(("error_details", details))

    domain = errors.get_domain(err)
    if domain:
        fields.append(("error_domain", str(domain)))

    return fields


class StructuredLogger:
    """Leveled key/value logger over a ``logging.Logger``.

    Instances are immutable; ``bind`` returns a new logger that prepends the
    given fields to every record.
    """

    def __init__(self, logger: logging.Logger, fields: tuple[tuple[str, Any], ...] = ()):
        self._logger = logger
        self._fields = fields

    @property
    def level(self) -> int:
        return self._logger.level

    def bind(self, *kv: Any, **fields: Any) -> "StructuredLogger":
        return StructuredLogger(self._logger, self._fields + _pairs(kv, fields, self._fields))

    def log(self, level: int, msg: str, *kv: Any, **fields: Any) -> None:
        pairs = _pairs(kv, fields, self._fields)
        self._emit(level, msg, pairs)

    def _emit(self, level: int, msg: str, pairs: tuple[tuple[str, Any], ...]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(level, msg, extra={"fields": self._fields + pairs})

    def debug(self, msg: str, *kv: Any, **fields: Any) -> None:
        self.log(logging.DEBUG, msg, *kv, **fields)

    def info(self, msg: str, *kv: Any, **fields: Any) -> None:
        self.log(logging.INFO, msg, *kv, **fields)

    def warn(self, msg: str, *kv: Any, **fields: Any) -> None:
        self.log(logging.WARNING, msg, *kv, **fields)

    def error(self, msg: str, *kv: Any, **fields: Any) -> None:
        self.log(logging.ERROR, msg, *kv, **fields)

    def log_error(self, msg: str, err: Optional[BaseException], *kv: Any, **fields: Any) -> None:
        """Log ``err`` at error level with its message, verbose chain,
        source location, hints, details and domain."""
        if err is None:
            self.error(msg, *kv, **fields)
            return
        extra = _pairs(kv, fields, self._fields)
        self._emit(logging.ERROR, msg, tuple(_error_fields(err, rich=True)) + extra)

    def log_warn(self, msg: str, err: Optional[BaseException], *kv: Any, **fields: Any) -> None:
        """Log ``err`` at warn level with its message and source location only."""
        if err is None:
            self.warn(msg, *kv, **fields)
            return
        extra = _pairs(kv, fields, self._fields)
        self._emit(logging.WARNING, msg, tuple(_error_fields(err, rich=False)) + extra)


def _build(level: int, stream: Optional[IO[str]]) -> StructuredLogger:
    # Not registered with logging.getLogger: each call builds a fresh instance.
    base = logging.Logger("faultline", level)
    handler = logging.StreamHandler(stream) if stream is not None else _StdoutHandler()
    handler.setFormatter(JSONFormatter())
    base.addHandler(handler)
    base.propagate = False
    return StructuredLogger(base)


_lock = threading.Lock()
_stream: Optional[IO[str]] = None
_current: StructuredLogger = _build(logging.INFO, None)


def configure(level: str = "info", stream: Optional[IO[str]] = None) -> StructuredLogger:
    """Replace the process logger. ``stream=None`` writes to standard output."""
    global _current, _stream
    with _lock:
        replacement = _build(parse_level(level), stream)
        _stream = stream
        _current = replacement
    return replacement


def set_level(level: str) -> StructuredLogger:
    """Replace the process logger with one at ``level``, keeping the sink."""
    global _current
    with _lock:
        replacement = _build(parse_level(level), _stream)
        _current = replacement
    return replacement


def get_logger() -> StructuredLogger:
    return _current


def debug(msg: str, *kv: Any, **fields: Any) -> None:
    get_logger().debug(msg, *kv, **fields)


def info(msg: str, *kv: Any, **fields: Any) -> None:
    get_logger().info(msg, *kv, **fields)


def warn(msg: str, *kv: Any, **fields: Any) -> None:
    get_logger().warn(msg, *kv, **fields)


def error(msg: str, *kv: Any, **fields: Any) -> None:
    get_logger().error(msg, *kv, **fields)


def log_error(msg: str, err: Optional[BaseException], *kv: Any, **fields: Any) -> None:
    get_logger().log_error(msg, err, *kv, **fields)


def log_warn(msg: str, err: Optional[BaseException], *kv: Any, **fields: Any) -> None:
    get_logger().log_warn(msg, err, *kv, **fields)


def bind(*kv: Any, **fields: Any) -> StructuredLogger:
    return get_logger().bind(*kv, **fields)


def with_component(component: str) -> StructuredLogger:
    return get_logger().bind("component", component)


def with_context() -> StructuredLogger:
    """Logger carrying the current request id, when one is set."""
    request_id = request_id_var.get()
    if request_id is not None:
        return get_logger().bind("request_id", request_id)
    return get_logger()
