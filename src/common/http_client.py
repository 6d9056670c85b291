"""Shared HTTP helpers used by the OBS client.

Encapsulates common request/timeout error handling so callers avoid
duplicating try/except blocks. Transport failures are raised as
``ObsConnectionError`` so a history resolution aborts as a whole instead of
continuing with partial data.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from constants import Constants
from common.errors import ObsConnectionError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def new_session(
    username: Optional[str] = None,
    password: Optional[str] = None,
) -> requests.Session:
    """Create a session carrying basic auth and the default headers."""
    session = requests.Session()
    session.headers.update({"User-Agent": Constants.USER_AGENT, "Accept": "application/xml"})
    if username is not None:
        session.auth = (username, password or "")
    return session


def safe_get(
    url: str,
    *,
    context: str,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
    **kwargs: Any,
) -> requests.Response:
    """Perform a GET request with consistent error handling and DEBUG traces.

    Args:
        url: Target URL.
        context: Human-readable source tag for logs (e.g., "history").
        session: Session to send the request with; a bare ``requests.get``
            is used when omitted.
        timeout: Timeout in seconds, defaults to Constants.REQUEST_TIMEOUT.
        **kwargs: Passed through to requests.

    Returns:
        requests.Response: The HTTP response object, whatever its status.

    Raises:
        ObsConnectionError: on timeouts and any other transport failure.
    """
    safe_target = safe_url(url)
    effective_timeout = timeout if timeout is not None else Constants.REQUEST_TIMEOUT
    getter = session.get if session is not None else requests.get
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context
                )
            )
        try:
            res = getter(url, timeout=effective_timeout, **kwargs)
        except requests.Timeout as exc:
            logger.error(
                "%s request timed out after %s seconds",
                context,
                effective_timeout,
            )
            raise ObsConnectionError(safe_target, f"timed out after {effective_timeout} seconds") from exc
        except requests.RequestException as exc:  # includes ConnectionError
            logger.error("%s connection error: %s", context, exc)
            raise ObsConnectionError(safe_target, str(exc)) from exc

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    outcome="success" if res.ok else "non_2xx",
                    status_code=res.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context
                )
            )
        return res
