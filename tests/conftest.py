"""Shared fixtures: an in-memory history source standing in for the OBS API."""

from collections import Counter
from datetime import datetime, timedelta, timezone

import pytest

from common.errors import ApiError, SourceConflictError
from obs.models import PackageFile, RawLinkInfo, Revision, Snapshot

EPOCH = datetime(2020, 1, 1, tzinfo=timezone.utc)


def link(project, package, rev=None, baserev=None, srcmd5=None):
    """Shorthand for a <linkinfo> descriptor."""
    return RawLinkInfo(project=project, package=package, rev=rev, baserev=baserev, srcmd5=srcmd5)


class FakeSource:
    """In-memory implementation of both fetch contracts.

    Packages are registered with a list of revision items, oldest first. An
    item is a dict with the keys ``hash`` (required), ``reported`` (hash the
    snapshot reports, defaults to ``hash``), ``links`` (list of RawLinkInfo)
    and ``conflict`` (expansion fails with a source conflict).
    """

    def __init__(self):
        self._packages = {}
        self.revision_calls = Counter()
        self.snapshot_calls = []

    def add_package(self, project, package, items):
        self._packages[(project, package)] = list(items)
        return self

    def fetch_revisions(self, project, package):
        self.revision_calls[(project, package)] += 1
        if (project, package) not in self._packages:
            raise ApiError(404, f"https://api.example.org/source/{project}/{package}/_history")
        return [
            Revision(
                project=project,
                package=package,
                revision_number=number,
                revision_hash=item["hash"],
                commit_time=EPOCH + timedelta(hours=number),
                commit_message=item.get("message", f"revision {number}"),
                version_revision=number,
                version="1.0",
                author_id="tester",
            )
            for number, item in enumerate(self._packages[(project, package)], start=1)
        ]

    def fetch_snapshot(self, project, package, revision_hash, expand):
        self.snapshot_calls.append((project, package, revision_hash, expand))
        item = next(s for s in self._packages[(project, package)] if s["hash"] == revision_hash)
        if expand and item.get("conflict"):
            raise SourceConflictError(400, f"https://api.example.org/source/{project}/{package}")
        return Snapshot(
            files=(PackageFile(name=f"{package}.spec"),),
            reported_revision_hash=item.get("reported", item["hash"]) if expand else item["hash"],
            link_infos=tuple(item.get("links", ())),
            was_expanded=expand,
        )


@pytest.fixture
def source():
    """A fresh, empty FakeSource."""
    return FakeSource()
