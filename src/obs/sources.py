"""Contracts of the fetch collaborators the history resolver depends on."""

from typing import Protocol, Sequence

from .models import Revision, Snapshot


class RevisionSource(Protocol):
    """Fetches the ordered revision list of one package."""

    def fetch_revisions(self, project: str, package: str) -> Sequence[Revision]:
        """Revisions ascending by revision number; empty means no history."""


class SnapshotSource(Protocol):
    """Fetches the file listing of one package at one revision."""

    def fetch_snapshot(self, project: str, package: str, revision_hash: str, expand: bool) -> Snapshot:
        """Raise SourceConflictError when ``expand`` cannot be satisfied."""


class HistorySource(RevisionSource, SnapshotSource, Protocol):
    """Both fetch contracts, as implemented by ``ObsClient``."""
