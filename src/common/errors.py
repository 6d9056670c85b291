"""Exception hierarchy shared by the OBS client and the history resolver."""

from __future__ import annotations

from typing import Optional


class ObsError(Exception):
    """Base class for all errors raised by obs-history."""


class ObsConnectionError(ObsError):
    """Raised when the API could not be reached (timeout, DNS, refused, ...)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Could not connect to {url}: {reason}")
        self.url = url
        self.reason = reason


class ApiError(ObsError):
    """Raised when the API replies with a non-2xx status code.

    Args:
        status_code: HTTP status code of the reply.
        url: Requested URL (already stripped of credentials).
        method: HTTP method used for the request.
        summary: ``<summary>`` of an OBS status reply, if the body was one.
        details: ``<details>`` of an OBS status reply, if present.
    """

    def __init__(
        self,
        status_code: int,
        url: str,
        method: str = "GET",
        summary: Optional[str] = None,
        details: Optional[str] = None,
    ):
        message = f"Failed to load URL {url}, status code: {status_code}"
        if summary:
            message = f"{message} ({summary})"
        super().__init__(message)
        self.status_code = status_code
        self.url = url
        self.method = method
        self.summary = summary
        self.details = details


class SourceConflictError(ApiError):
    """Raised when the sources of a package cannot be expanded due to a conflict."""


class HistoryConsistencyError(ObsError):
    """Raised when the reconstructed history is internally inconsistent.

    This signals either a broken history on the server or a caching defect and
    always aborts the resolution.
    """

    def __init__(
        self,
        message: str,
        project: Optional[str] = None,
        package: Optional[str] = None,
        revision: Optional[str] = None,
    ):
        location = "/".join(part for part in (project, package) if part)
        if revision:
            location = f"{location}@{revision}"
        super().__init__(f"{location}: {message}" if location else message)
        self.project = project
        self.package = package
        self.revision = revision


class LinkCycleError(HistoryConsistencyError):
    """Raised when following links leads back to a package still being resolved."""
