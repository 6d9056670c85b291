"""Resolution of a package's history across source links.

A package whose sources are derived from another package via a link gets
the commits of the linked package attached as additional parents, which
turns the per-package chains into one commit graph. Linked packages are
resolved recursively; every package is fetched at most once per resolution
and every commit exists exactly once, so diamonds share their ancestors.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from common.errors import HistoryConsistencyError, LinkCycleError
from common.logging_utils import extra_context, is_debug_enabled

from .cache import CommitCache, PackageHeadCache
from .chain import CommitChainBuilder, LocalChain
from .links import extract_link
from .models import Commit, LinkInfo, PackageRef
from .sources import HistorySource

logger = logging.getLogger(__name__)


class CrossLinkResolver:
    """Resolves package histories across links.

    A resolver owns the caches of one resolution; create a new one for every
    top-level request so that no state leaks between requests.
    """

    def __init__(self, source: HistorySource):
        self._builder = CommitChainBuilder(source, source)
        self.commit_cache = CommitCache()
        self.head_cache = PackageHeadCache()
        self._in_progress: List[PackageRef] = []

    def resolve_history(self, project: str, package: str) -> Optional[Commit]:
        """Return the head commit of ``project/package`` with all ancestors.

        Returns:
            The head commit, or None if the package has no history.

        Raises:
            LinkCycleError: if the links lead back to ``project/package``
                while it is still being resolved.
            HistoryConsistencyError: if the history on the server is
                inconsistent.
        """
        pkg = PackageRef(project, package)
        if pkg in self.head_cache:
            return self.head_cache.get(pkg)

        if pkg in self._in_progress:
            cycle = " -> ".join(str(p) for p in self._in_progress[self._in_progress.index(pkg):])
            raise LinkCycleError(f"Link cycle detected: {cycle} -> {pkg}", project, package)

        self._in_progress.append(pkg)
        try:
            chain = self._builder.build(pkg)
            for position in range(len(chain)):
                self._attach_linked_parents(chain, position)
            commits = chain.link()
        finally:
            self._in_progress.remove(pkg)

        self.commit_cache.add_all(commits)
        head = commits[-1] if commits else None
        self.head_cache.set(pkg, head)

        if is_debug_enabled(logger):
            logger.debug(
                "Resolved history",
                extra=extra_context(
                    event="function_exit",
                    component="resolver",
                    action="resolve_history",
                    target=str(pkg),
                    count=len(commits),
                    outcome="empty" if head is None else "success",
                )
            )
        return head

    def _lookup(self, link: LinkInfo, revision_hash: str) -> Optional[Commit]:
        return self.commit_cache.get(link.target_project, link.target_package, revision_hash)

    def _attach_linked_parents(self, chain: LocalChain, position: int) -> None:
        """Collect the cross-link parents of the chain position ``position``.

        ``position`` 0 is the oldest revision.
        """
        entry = chain.entries[position]
        link = extract_link(entry.snapshot, chain.package)
        if link is None:
            return

        is_oldest = position == 0
        use_base_rev = not (
            link.pinned_revision is not None or link.base_revision is None or is_oldest
        )

        if not use_base_rev:
            linked_head = self.resolve_history(link.target_project, link.target_package)
            if linked_head is not None:
                ancestor: Optional[Commit] = linked_head
                if link.pinned_revision is not None:
                    ancestor = self._lookup(link, link.pinned_revision)

                if ancestor is None:
                    # the pinned revision is not part of the linked history,
                    # an expansion conflict: fall back to the base revision
                    use_base_rev = True
                else:
                    if ancestor.revision_hash not in (link.pinned_revision, link.expanded_source_hash):
                        raise HistoryConsistencyError(
                            f"Expected the linked package {link.target} to be at "
                            f"{link.pinned_revision} or {link.expanded_source_hash}, "
                            f"but got {ancestor.revision_hash}",
                            chain.package.project,
                            chain.package.package,
                            entry.revision_hash,
                        )
                    entry.cross_parents.append(ancestor)

        if use_base_rev and link.base_revision is not None:
            self._attach_base_revision(chain, position, link)

    def _attach_base_revision(self, chain: LocalChain, position: int, link: LinkInfo) -> None:
        """Attach the commit the expansion at ``position`` was based on.

        The edge is only created at a branch-off point, i.e. where the base
        revision differs from the one of the next older position, so every
        external revision is attached exactly once.
        """
        entry = chain.entries[position]
        if entry.cross_parents:
            raise HistoryConsistencyError(
                "Chain position already has a linked parent",
                chain.package.project,
                chain.package.package,
                entry.revision_hash,
            )

        if position > 0:
            older_link = extract_link(chain.entries[position - 1].snapshot, chain.package)
            if older_link is not None and older_link.base_revision == link.base_revision:
                return

        linked_head = self.resolve_history(link.target_project, link.target_package)
        if linked_head is None:
            return

        ancestor = self._lookup(link, link.base_revision)
        if ancestor is None:
            raise HistoryConsistencyError(
                f"Must find a commit with the revision {link.base_revision} "
                f"in the package {link.target}, but found none",
                chain.package.project,
                chain.package.package,
                entry.revision_hash,
            )
        entry.cross_parents.append(ancestor)


def fetch_history_across_links(source: HistorySource, project: str, package: str) -> Optional[Commit]:
    """Retrieve the history of a package, following links as far as possible.

    Args:
        source: Provider of revision lists and snapshots, e.g. an ObsClient.
        project: Name of the project.
        package: Name of the package.

    Returns:
        The head commit of the package with all ancestors reachable via
        ``Commit.parent_commits``; None if the package has no history.
    """
    return CrossLinkResolver(source).resolve_history(project, package)
