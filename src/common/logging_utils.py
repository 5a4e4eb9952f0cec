"""Centralized logging helpers.

Every module logs through ``logging.getLogger(__name__)``; this module owns
root configuration plus the small helpers used to attach structured context
to DEBUG records without paying for it when DEBUG is off.
"""
from __future__ import annotations

import logging
import os
import time
import urllib.parse
from typing import Any, Dict, Optional

from constants import Constants

_SENSITIVE_QUERY_KEYS = {"token", "access_token", "auth", "key", "api_key", "password", "secret"}


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Install the root handler once, honoring DEPGRAPH_LOG_LEVEL.

    Args:
        level: Explicit level name; wins over the environment.
        log_file: Optional path for an additional file handler.
    """
    level_name = (level or os.environ.get(Constants.LOG_LEVEL_ENV) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)
    if not isinstance(level_value, int):
        level_value = logging.INFO

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level_value)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        root.addHandler(file_handler)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by ``logger``."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra=`` mapping, dropping unset fields.

    Keys are namespaced under ``ctx`` so they never collide with
    LogRecord attributes such as ``name`` or ``message``.
    """
    return {"ctx": {k: v for k, v in fields.items() if v is not None}}


def safe_url(url: str) -> str:
    """Strip credentials and sensitive query values from a URL for logging."""
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return url
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    query = urllib.parse.parse_qsl(parts.query, keep_blank_values=True)
    cleaned = [
        (k, "[REDACTED]" if k.lower() in _SENSITIVE_QUERY_KEYS else v) for k, v in query
    ]
    return urllib.parse.urlunsplit(
        (parts.scheme, netloc, parts.path, urllib.parse.urlencode(cleaned), "")
    )


class Timer:
    """Context manager measuring elapsed wall time."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> float:
        """Elapsed milliseconds; live value while still inside the block."""
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000.0, 2)
