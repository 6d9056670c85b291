"""Per-resolution caches for commits and package heads.

Both caches live for the duration of one top-level history resolution and
are owned by the resolver instance. Writes are guarded by a lock so fetches
of independent packages may run concurrently.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, Optional

from common.errors import HistoryConsistencyError
from common.logging_utils import extra_context, is_debug_enabled

from .models import Commit, CommitKey, PackageRef, commit_key_str

logger = logging.getLogger(__name__)


class CommitCache:
    """Write-once map from ``(project, package, revision_hash)`` to Commit.

    Used both to deduplicate construction and to look up specific ancestors
    of linked packages by their hash.
    """

    def __init__(self) -> None:
        self._commits: Dict[CommitKey, Commit] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._commits)

    def __contains__(self, key: CommitKey) -> bool:
        return key in self._commits

    def get(self, project: str, package: str, revision_hash: str) -> Optional[Commit]:
        """Get a cached commit.

        Returns:
            The commit or None if no commit with this key was published.
        """
        with self._lock:
            return self._commits.get((project, package, revision_hash))

    def add(self, commit: Commit) -> Commit:
        """Publish a commit unless its key is already taken.

        A package whose sources return to an earlier state produces the same
        hash twice; the first published commit keeps the key.

        Returns:
            The commit stored under the key of ``commit``.
        """
        with self._lock:
            existing = self._commits.get(commit.key)
            if existing is None:
                self._commits[commit.key] = commit
                return commit
        if existing is not commit:
            logger.warning(
                "Duplicate revision hash %s, keeping the older commit",
                commit_key_str(commit.key),
                extra=extra_context(
                    event="cache_conflict",
                    component="cache",
                    action="add",
                    target=commit_key_str(commit.key),
                )
            )
        return existing

    def add_all(self, commits: Iterable[Commit]) -> None:
        """Publish several commits, oldest first."""
        for commit in commits:
            self.add(commit)


class PackageHeadCache:
    """Map from a package to its resolved head, written exactly once per package.

    A cached ``None`` means that the package has no history at all.
    """

    def __init__(self) -> None:
        self._heads: Dict[PackageRef, Optional[Commit]] = {}
        self._lock = threading.Lock()

    def __contains__(self, package: PackageRef) -> bool:
        with self._lock:
            return package in self._heads

    def __len__(self) -> int:
        return len(self._heads)

    def get(self, package: PackageRef) -> Optional[Commit]:
        """Return the cached head of ``package`` (None if absent or empty)."""
        with self._lock:
            return self._heads.get(package)

    def set(self, package: PackageRef, head: Optional[Commit]) -> None:
        """Record the head of ``package``.

        Raises:
            HistoryConsistencyError: if the package already has a cached head.
        """
        with self._lock:
            if package in self._heads:
                raise HistoryConsistencyError(
                    "Head of package was already resolved", package.project, package.package
                )
            self._heads[package] = head
        if is_debug_enabled(logger):
            logger.debug(
                "Cached package head",
                extra=extra_context(
                    event="cache_set",
                    component="cache",
                    action="set_head",
                    target=str(package),
                    outcome="empty" if head is None else "head",
                )
            )
