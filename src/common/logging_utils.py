"""Logging helpers shared by the registry, resolution and security layers.

Loggers are plain ``logging`` loggers; structured context travels in the
``extra`` mapping so that handlers can render or ship it as they see fit.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from constants import Constants

_CONTEXT_KEYS = (
    "event",
    "component",
    "action",
    "outcome",
    "target",
    "status_code",
    "duration_ms",
    "count",
    "attempt",
    "package_manager",
    "context",
)


class _ContextFormatter(logging.Formatter):
    """Append ``key=value`` pairs for any structured context on the record."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        pairs = []
        for key in _CONTEXT_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                pairs.append(f"{key}={value}")
        if pairs and record.levelno <= logging.DEBUG:
            return f"{base} [{' '.join(pairs)}]"
        return base


def configure_logging(level: Optional[str] = None) -> None:
    """Install a single stream handler on the root logger.

    The level comes from the argument, then ``GAVLENS_LOG_LEVEL``, then WARNING.
    Calling twice replaces the handler rather than stacking a second one.
    """
    level_name = (level or os.environ.get(Constants.LOG_LEVEL_ENV) or "WARNING").upper()
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_gavlens", False):
            root.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(_ContextFormatter(Constants.LOG_FORMAT))
    handler._gavlens = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.WARNING))


def extra_context(**kwargs: Any) -> Dict[str, Any]:
    """Build an ``extra`` mapping, dropping keys whose value is None."""
    return {k: v for k, v in kwargs.items() if v is not None}


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def safe_url(url: Optional[str]) -> Optional[str]:
    """Strip credentials, query string and fragment from a URL for logging."""
    if not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<invalid-url>"
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, host, parts.path, "", ""))


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, *exc: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed milliseconds; keeps counting while still inside the block."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
