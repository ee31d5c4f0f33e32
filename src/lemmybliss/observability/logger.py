"""Structured JSON logging for lemmybliss.

Each record becomes one JSON object on one line, so the log of a push over
hundreds of communities can be filtered with ``jq`` (for example every
``"op": "mutation"`` line with a ``code``) instead of read top to bottom.

A typical executor line::

    {"ts": "2026-07-01T12:00:00.123456+00:00", "level": "WARNING",
     "logger": "lemmybliss.executor", "message": "Failed: Following tech ...",
     "op": "mutation", "kind": "community_follow", "code": "AMBIGUOUS_OR_MISSING"}

Modules obtain their logger once at import time::

    log = get_logger("lemmybliss.client")
    log.info("Pulled successfully", extra={"extra_fields": {"profile": "main"}})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any

# Names handed out by get_logger(); set_level() walks this set.
_managed: set[str] = set()


class StructuredFormatter(logging.Formatter):
    """Render a record as a single-line JSON object.

    Keys ``ts`` (ISO-8601 UTC, from the record's creation time), ``level``,
    ``logger`` and ``message`` are always present.  A mapping passed as
    ``extra={"extra_fields": {...}}`` is merged in at the top level, and
    tracebacks appear under ``exception`` / ``stack_info``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(getattr(record, "extra_fields", None) or {})
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(entry, default=str)


def _as_level(level: int | str) -> int:
    return logging.getLevelName(level.upper()) if isinstance(level, str) else level


def get_logger(
    name: str = "lemmybliss",
    *,
    level: int | str = logging.INFO,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Return the logger *name*, attaching a JSON handler on first use.

    Parameters
    ----------
    name:
        Logger name, conventionally ``"lemmybliss.<module>"``.
    level:
        Level as an ``int`` or a case-insensitive name.  Applied only when
        *name* is first requested.
    stream:
        Handler output; ``sys.stderr`` when omitted.

    Later calls with the same *name* return the same logger untouched, so
    no duplicate handlers accumulate.  The logger does not propagate, which
    keeps lines from being printed twice when the application configures
    the root logger.
    """
    logger = logging.getLogger(name)
    if name in _managed:
        return logger

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    logger.addHandler(handler)
    logger.setLevel(_as_level(level))
    logger.propagate = False
    _managed.add(name)
    return logger


def set_level(level: int | str) -> None:
    """Apply *level* to every logger handed out by :func:`get_logger`."""
    resolved = _as_level(level)
    for name in _managed:
        logging.getLogger(name).setLevel(resolved)
