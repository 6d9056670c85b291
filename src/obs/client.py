"""OBS source API client: revision lists and directory snapshots over HTTP/XML."""
from __future__ import annotations

import logging
import urllib.parse
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from typing import List, Optional

import requests

from constants import Constants
from common import http_client
from common.errors import ApiError, HistoryConsistencyError, SourceConflictError
from common.logging_utils import extra_context, is_debug_enabled, safe_url

from .models import PackageFile, RawLinkInfo, Revision, Snapshot

logger = logging.getLogger(__name__)


def _int_or_none(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _text(elem: ET.Element, tag: str) -> Optional[str]:
    node = elem.find(tag)
    if node is None:
        return None
    return node.text if node.text is not None else ""


def _timestamp(value: Optional[str]) -> Optional[datetime]:
    seconds = _int_or_none(value)
    if seconds is None:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _value_or_none(value: Optional[str]) -> Optional[str]:
    """Map the API's 'unknown' placeholder and empty strings to None."""
    if value is None or value == "" or value == Constants.UNKNOWN_USER:
        return None
    return value


def parse_status(text: str) -> tuple:
    """Extract (summary, details) from an OBS ``<status>`` reply.

    Anything that is not a status reply (e.g. an HTML login page) yields
    ``(None, None)``.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError:
        return None, None
    if root.tag != "status":
        return None, None
    return _text(root, "summary"), _text(root, "details")


def parse_revision_list(text: str, project: str, package: str) -> List[Revision]:
    """Parse a ``<revisionlist>`` into revisions sorted by revision number.

    Raises:
        HistoryConsistencyError: if the reply is not a revision list or a
            revision lacks its number or hash.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise HistoryConsistencyError(f"Invalid revision list: {exc}", project, package) from exc
    if root.tag != "revisionlist":
        raise HistoryConsistencyError(
            f"Expected a <revisionlist>, got <{root.tag}>", project, package
        )

    revisions: List[Revision] = []
    for elem in root.findall("revision"):
        number = _int_or_none(elem.get("rev"))
        revision_hash = _text(elem, "srcmd5")
        if number is None or not revision_hash:
            raise HistoryConsistencyError(
                "Revision entry without a revision number or srcmd5", project, package
            )
        commit_time = _timestamp(_text(elem, "time"))
        if commit_time is None:
            raise HistoryConsistencyError(
                f"Revision {number} has no commit time", project, package, revision_hash
            )
        revisions.append(
            Revision(
                project=project,
                package=package,
                revision_number=number,
                revision_hash=revision_hash,
                commit_time=commit_time,
                # OBS sometimes omits the comment and later replies with "" for
                # the same revision; always use "" in that case
                commit_message=_text(elem, "comment") or "",
                version_revision=_int_or_none(elem.get("vrev")),
                version=_value_or_none(_text(elem, "version")),
                author_id=_value_or_none(_text(elem, "user")),
                request_id=_int_or_none(_text(elem, "requestid")),
            )
        )

    revisions.sort(key=lambda rev: rev.revision_number)
    return revisions


def parse_directory(text: str, expanded: bool) -> Snapshot:
    """Parse a ``<directory>`` listing into a Snapshot."""
    root = ET.fromstring(text)
    if root.tag != "directory":
        raise ValueError(f"Expected a <directory>, got <{root.tag}>")

    files = []
    for entry in root.findall("entry"):
        name = entry.get("name")
        if not name:
            continue
        files.append(
            PackageFile(
                name=name,
                md5_hash=entry.get("md5"),
                size=_int_or_none(entry.get("size")),
                modified_time=_timestamp(entry.get("mtime")),
            )
        )

    link_infos = tuple(
        RawLinkInfo(
            project=link.get("project"),
            package=link.get("package"),
            srcmd5=link.get("srcmd5"),
            rev=link.get("rev"),
            baserev=link.get("baserev"),
            xsrcmd5=link.get("xsrcmd5"),
            lsrcmd5=link.get("lsrcmd5"),
            error=link.get("error"),
        )
        for link in root.findall("linkinfo")
    )

    return Snapshot(
        files=tuple(files),
        reported_revision_hash=root.get("rev") or root.get("srcmd5") or None,
        link_infos=link_infos,
        was_expanded=expanded,
    )


class ObsClient:
    """Read-only access to the source routes of an OBS instance.

    Implements both fetch contracts the history resolver depends on:
    ``fetch_revisions`` and ``fetch_snapshot``.
    """

    def __init__(
        self,
        api_url: str = Constants.DEFAULT_API_URL,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout if timeout is not None else Constants.REQUEST_TIMEOUT
        self._session = session if session is not None else http_client.new_session(username, password)

    def _package_url(self, project: str, package: str, suffix: str = "") -> str:
        return (
            f"{self.api_url}/source/{urllib.parse.quote(project, safe='')}"
            f"/{urllib.parse.quote(package, safe='')}{suffix}"
        )

    def _get(self, url: str, *, context: str, params: Optional[dict] = None) -> str:
        res = http_client.safe_get(
            url, context=context, session=self._session, timeout=self.timeout, params=params
        )
        if not res.ok:
            summary, details = parse_status(res.text)
            raise ApiError(res.status_code, safe_url(url), "GET", summary, details)
        return res.text

    def fetch_revisions(self, project: str, package: str) -> List[Revision]:
        """Retrieve the history of a package without following links.

        Returns:
            The revisions ordered by ascending revision number; empty when the
            package has no history.
        """
        text = self._get(self._package_url(project, package, "/_history"), context="history")
        revisions = parse_revision_list(text, project, package)
        if is_debug_enabled(logger):
            logger.debug(
                "Fetched revision list",
                extra=extra_context(
                    event="fetch",
                    component="client",
                    action="fetch_revisions",
                    outcome="success",
                    target=f"{project}/{package}",
                    count=len(revisions),
                )
            )
        return revisions

    def fetch_snapshot(self, project: str, package: str, revision_hash: str, expand: bool) -> Snapshot:
        """Retrieve the file listing of a package at ``revision_hash``.

        Raises:
            SourceConflictError: if ``expand`` is set and the link cannot be
                expanded (OBS replies with 400).
            ApiError: for any other non-2xx reply.
        """
        if expand:
            params = {"expand": "1", "linkrev": "base", "rev": revision_hash}
        else:
            params = {"expand": "0", "rev": revision_hash}
        url = self._package_url(project, package)
        try:
            text = self._get(url, context="snapshot", params=params)
        except ApiError as err:
            if expand and err.status_code == Constants.SOURCE_CONFLICT_STATUS:
                raise SourceConflictError(
                    err.status_code, err.url, err.method, err.summary, err.details
                ) from err
            raise
        try:
            return parse_directory(text, expanded=expand)
        except (ET.ParseError, ValueError) as exc:
            raise HistoryConsistencyError(
                f"Invalid directory listing: {exc}", project, package, revision_hash
            ) from exc
