"""JSON logging utilities for selfassess.

Provides:
- `attempt_context` to tag log records emitted while an attempt is being processed
- `JSONFormatter` to render logs as single-line JSON (optionally with attempt_id)
- `configure_logging` to set up stdout logging with the JSON formatter
"""

from __future__ import annotations

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional, Union

_attempt_id: ContextVar[Optional[str]] = ContextVar("attempt_id", default=None)


@contextmanager
def attempt_context(attempt_id: Optional[str]) -> Iterator[None]:
    """Set the attempt id seen by `JSONFormatter` for the duration of the block."""
    token = _attempt_id.set(attempt_id)
    try:
        yield
    finally:
        _attempt_id.reset(token)


class JSONFormatter(logging.Formatter):
    """Format log records as compact JSON with timestamp and optional attempt id."""

    def format(self, record: logging.LogRecord) -> str:
        base = {
            "level": record.levelname,
            "ts": round(time.time(), 3),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        attempt_id = _attempt_id.get()
        if attempt_id:
            base["attempt_id"] = attempt_id
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def configure_logging(level: Union[int, str] = "INFO") -> logging.Logger:
    """Configure root logging to stdout with the JSON formatter.

    Args:
        level: Logging level as int or string (e.g., logging.INFO or "INFO").

    Returns:
        The "selfassess_behaviour" package logger.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)
    return logging.getLogger("selfassess_behaviour")
