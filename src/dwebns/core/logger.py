"""
Structured logging with key=value and JSON output.

Wraps the standard library ``logging`` module. Every line starts with a
snake_case event name followed by structured fields, either as key=value
pairs (default, human-readable) or as a single JSON object (for log
aggregators).

Byte values, which are common here (32-byte keys, encoded record data), are
rendered as ``0x``-prefixed hex instead of Python ``bytes`` reprs. Values
containing whitespace, ``=`` or quotes are escaped and wrapped in double
quotes. Long values are truncated.

[StructuredFormatter][dwebns.core.logger.StructuredFormatter] is installed on
the root handler by [setup_logging()][dwebns.core.logger.setup_logging], so
plain ``logging.getLogger(__name__)`` calls in the models and codecs layers
come out in the same shape.

Examples:
    ```python
    logger = Logger("reader")
    logger.info("events_fetched", name="alice", count=3)
    # events_fetched name=alice count=3

    scoped = logger.bind(name="alice")
    scoped.warning("log_skipped", reason="bad data")
    # log_skipped name=alice reason="bad data"
    ```
"""

from __future__ import annotations

import datetime
import json
import logging
import sys
from typing import Any, ClassVar


_TRUNCATION_SUFFIX = "...<truncated {} chars>"


def _render(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


def _truncate(text: str, limit: int | None) -> str:
    if limit and len(text) > limit:
        return text[:limit] + _TRUNCATION_SUFFIX.format(len(text) - limit)
    return text


def format_kv_pairs(
    fields: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format *fields* as space-separated key=value pairs.

    Args:
        fields: Key-value pairs to format.
        max_value_length: Maximum characters per value before truncation.
            ``None`` disables truncation.
        prefix: Prepended to non-empty output.

    Returns:
        e.g. ``' name=alice value="two words"'``, or ``""`` when *fields*
        is empty.
    """
    if not fields:
        return ""

    parts = []
    for key, value in fields.items():
        text = _truncate(_render(value), max_value_length)
        if not text or any(c in text for c in ' ="\'\n'):
            escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
            parts.append(f'{key}="{escaped}"')
        else:
            parts.append(f"{key}={text}")
    return prefix + " ".join(parts)


class StructuredFormatter(logging.Formatter):
    """Render every record as ``level logger message key=value ...``.

    Structured fields come from the ``structured_kv`` extra attached by
    [Logger][dwebns.core.logger.Logger]. Records from plain stdlib loggers
    carry none and are emitted with the same prefix.
    """

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        fields: dict[str, Any] = getattr(record, "structured_kv", {})
        if fields:
            line += format_kv_pairs(fields, max_value_length=None)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class Logger:
    """Structured logger taking an event name plus keyword fields.

    Args:
        name: Underlying ``logging.getLogger(name)`` name.
        json_output: Emit JSON objects instead of key=value pairs.
        max_value_length: Per-value truncation limit (default 1000).
        context: Fields attached to every line, see
            [bind()][dwebns.core.logger.Logger.bind].
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = (
            self._DEFAULT_MAX_VALUE_LENGTH if max_value_length is None else max_value_length
        )
        self._context: dict[str, Any] = dict(context or {})

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **context: Any) -> Logger:
        """Return a logger that adds *context* to every line it emits."""
        return Logger(
            self._logger.name,
            json_output=self._json_output,
            max_value_length=self._max_value_length,
            context={**self._context, **context},
        )

    def _fields(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        merged = {**self._context, **kwargs}
        return {k: _truncate(_render(v), self._max_value_length) for k, v in merged.items()}

    def _log(self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        fields = self._fields(kwargs)
        if self._json_output:
            payload = {
                "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
                "level": logging.getLevelName(level).lower(),
                "logger": self._logger.name,
                "message": msg,
                **fields,
            }
            self._logger.log(level, json.dumps(payload, default=str), exc_info=exc_info)
        else:
            self._logger.log(level, msg, extra={"structured_kv": fields}, exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log at ERROR level with the active exception's traceback."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)


def setup_logging(level: str = "INFO", *, json_output: bool = False) -> None:
    """Install a single stderr handler on the root logger.

    With *json_output* the handler prints messages verbatim (they are already
    JSON documents); otherwise it uses
    [StructuredFormatter][dwebns.core.logger.StructuredFormatter].
    """
    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler.setFormatter(StructuredFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())
