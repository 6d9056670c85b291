"""Centralized logging helpers.

Provides a single place to configure the root logger plus small helpers that
keep structured DEBUG traces consistent across modules: ``extra_context``
builds the ``extra=`` payload, ``safe_url`` strips credentials before a URL
ends up in a log line and ``Timer`` measures request durations.
"""
from __future__ import annotations

import logging
import os
import time
import urllib.parse
from typing import Any, Dict, Optional

from constants import Constants

SENSITIVE_QUERY_KEYS = ("password", "token", "secret", "apikey", "api_key")
REDACTED = "***"


def configure_logging(log_file: Optional[str] = None) -> None:
    """Configure the root logger from the environment.

    The level is read from ``OBSHISTORY_LOG_LEVEL`` (default INFO). Calling
    this more than once replaces the previously installed handlers.
    """
    level_name = os.environ.get(Constants.LOG_LEVEL_ENV, "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler: logging.Handler
    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True if DEBUG records of ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build the ``extra`` mapping for a structured log record.

    Keys with a ``None`` value are dropped so log records only carry what is
    known at the call site.
    """
    return {key: value for key, value in fields.items() if value is not None}


def redact(value: Optional[str]) -> str:
    """Mask a secret, keeping nothing of the original value."""
    if not value:
        return ""
    return REDACTED


def safe_url(url: str) -> str:
    """Return ``url`` with user info and sensitive query values redacted."""
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return REDACTED

    netloc = parts.netloc
    if "@" in netloc:
        netloc = f"{REDACTED}@{netloc.rsplit('@', 1)[1]}"

    query = parts.query
    if query:
        pairs = urllib.parse.parse_qsl(query, keep_blank_values=True)
        query = urllib.parse.urlencode(
            [
                (key, REDACTED if key.lower() in SENSITIVE_QUERY_KEYS else value)
                for key, value in pairs
            ],
            safe="*",
        )

    return urllib.parse.urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


class Timer:
    """Context manager measuring wall clock duration in milliseconds."""

    def __init__(self) -> None:
        self._start: Optional[float] = None
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed milliseconds; measured up to now while still running."""
        if self._start is None:
            return 0
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
