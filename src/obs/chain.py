"""Construction of the local (single package) commit chain."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from common.errors import HistoryConsistencyError, SourceConflictError
from common.logging_utils import extra_context, is_debug_enabled, Timer

from .models import ChainEntry, Commit, PackageRef, Revision, Snapshot
from .sources import RevisionSource, SnapshotSource

logger = logging.getLogger(__name__)


def commit_from_entry(package: PackageRef, entry: ChainEntry, parents: Sequence[Commit]) -> Commit:
    """Create the commit of one chain position with its final parent list."""
    rev = entry.revision
    return Commit(
        project=package.project,
        package=package.package,
        revision_hash=entry.revision_hash,
        revision_number=rev.revision_number,
        commit_time=rev.commit_time,
        commit_message=rev.commit_message,
        version_revision=rev.version_revision,
        version=rev.version,
        author_id=rev.author_id,
        request_id=rev.request_id,
        files=entry.snapshot.files,
        was_expanded=entry.snapshot.was_expanded,
        parent_commits=tuple(parents),
    )


@dataclass
class LocalChain:
    """The revisions of one package, oldest first, not yet turned into commits.

    Cross-link parents are collected on the entries first; ``link()`` then
    creates every commit exactly once with its final parent list, so no
    partially built commit is ever visible.
    """
    package: PackageRef
    entries: List[ChainEntry] = field(default_factory=list)
    _commits: Optional[List[Commit]] = field(default=None, init=False, repr=False)

    def __len__(self) -> int:
        return len(self.entries)

    def link(self) -> List[Commit]:
        """Create the commits, oldest first; each points to its predecessor first.

        The commits are created on the first call; cross-link parents added
        to the entries afterwards are not picked up.
        """
        if self._commits is not None:
            return self._commits
        commits: List[Commit] = []
        previous: Optional[Commit] = None
        for entry in self.entries:
            parents: List[Commit] = [] if previous is None else [previous]
            parents.extend(entry.cross_parents)
            previous = commit_from_entry(self.package, entry, parents)
            commits.append(previous)
        self._commits = commits
        return commits

    def pairs(self) -> List[Tuple[Commit, Snapshot]]:
        """The linked commits with the snapshot they were built from, oldest first."""
        return [(commit, entry.snapshot) for commit, entry in zip(self.link(), self.entries)]

    @property
    def head(self) -> Optional[Commit]:
        """Newest commit of the chain; None when the package has no history."""
        commits = self.link()
        return commits[-1] if commits else None


class CommitChainBuilder:
    """Fetches a package's revisions and snapshots and arranges them as a chain."""

    def __init__(self, revision_source: RevisionSource, snapshot_source: SnapshotSource):
        self._revisions = revision_source
        self._snapshots = snapshot_source

    def fetch_snapshot(self, package: PackageRef, revision: Revision) -> Snapshot:
        """Fetch the expanded snapshot, or the unexpanded one on a source conflict."""
        try:
            return self._snapshots.fetch_snapshot(
                package.project, package.package, revision.revision_hash, True
            )
        except SourceConflictError:
            logger.info(
                "Cannot expand %s at revision %s, using the unexpanded sources",
                package,
                revision.revision_number,
                extra=extra_context(
                    event="source_conflict",
                    component="chain",
                    action="fetch_snapshot",
                    outcome="fallback_unexpanded",
                    target=str(package),
                )
            )
        return self._snapshots.fetch_snapshot(
            package.project, package.package, revision.revision_hash, False
        )

    def build(self, package: PackageRef) -> LocalChain:
        """Build the local chain of ``package``.

        Errors from the sources other than a source conflict propagate
        unchanged.
        """
        with Timer() as t:
            revisions = list(self._revisions.fetch_revisions(package.project, package.package))
            snapshots = [self.fetch_snapshot(package, rev) for rev in revisions]

        if len(revisions) != len(snapshots):
            raise HistoryConsistencyError(
                f"Got {len(snapshots)} snapshots for {len(revisions)} revisions",
                package.project,
                package.package,
            )

        chain = LocalChain(package)
        for rev, snapshot in zip(revisions, snapshots):
            # an expanded snapshot reports the hash of the expanded sources
            revision_hash = snapshot.reported_revision_hash or rev.revision_hash
            chain.entries.append(ChainEntry(revision=rev, snapshot=snapshot, revision_hash=revision_hash))

        if is_debug_enabled(logger):
            logger.debug(
                "Built local chain",
                extra=extra_context(
                    event="function_exit",
                    component="chain",
                    action="build",
                    target=str(package),
                    count=len(chain),
                    duration_ms=t.duration_ms(),
                )
            )
        return chain
