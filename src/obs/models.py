"""Data models for package revisions, source snapshots and the commit graph."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class PackageRef:
    """A package on the build service, identified by project and name."""
    project: str
    package: str

    def __str__(self) -> str:
        return f"{self.project}/{self.package}"


@dataclass(frozen=True)
class Revision:
    """One entry of a package's linear history as reported by the API."""
    project: str
    package: str
    revision_number: int
    revision_hash: str  # md5 of the unexpanded sources
    commit_time: datetime
    commit_message: str = ""
    version_revision: Optional[int] = None
    version: Optional[str] = None
    author_id: Optional[str] = None
    request_id: Optional[int] = None


@dataclass(frozen=True)
class PackageFile:
    """A file of a package at one revision; names only, never contents."""
    name: str
    md5_hash: Optional[str] = None
    size: Optional[int] = None
    modified_time: Optional[datetime] = None


@dataclass(frozen=True)
class RawLinkInfo:
    """A ``<linkinfo>`` element exactly as reported, every field optional."""
    project: Optional[str] = None
    package: Optional[str] = None
    srcmd5: Optional[str] = None
    rev: Optional[str] = None
    baserev: Optional[str] = None
    xsrcmd5: Optional[str] = None
    lsrcmd5: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class LinkInfo:
    """A link to another package with a guaranteed destination."""
    target_project: str
    target_package: str
    pinned_revision: Optional[str] = None
    base_revision: Optional[str] = None
    expanded_source_hash: Optional[str] = None

    @property
    def target(self) -> PackageRef:
        return PackageRef(self.target_project, self.target_package)


@dataclass(frozen=True)
class Snapshot:
    """The file listing of a package at one revision."""
    files: Tuple[PackageFile, ...] = ()
    reported_revision_hash: Optional[str] = None
    link_infos: Tuple[RawLinkInfo, ...] = ()
    was_expanded: bool = True


# Stable map key for commit lookups: (project, package, revision hash).
CommitKey = Tuple[str, str, str]


@dataclass(frozen=True, eq=False)
class Commit:
    """A node of the history graph.

    Commits are shared between children (several packages may link to the
    same ancestor), hence they compare by identity. ``parent_commits[0]`` is
    the preceding commit of the same package if there is one; any further
    parents are ancestors from linked packages. No parents marks a root.
    """
    project: str
    package: str
    revision_hash: str
    revision_number: int
    commit_time: datetime
    commit_message: str = ""
    version_revision: Optional[int] = None
    version: Optional[str] = None
    author_id: Optional[str] = None
    request_id: Optional[int] = None
    files: Tuple[PackageFile, ...] = ()
    was_expanded: bool = True
    parent_commits: Tuple["Commit", ...] = field(default=(), repr=False)

    @property
    def key(self) -> CommitKey:
        return (self.project, self.package, self.revision_hash)

    @property
    def package_ref(self) -> PackageRef:
        return PackageRef(self.project, self.package)

    @property
    def is_root(self) -> bool:
        return not self.parent_commits


def commit_key_str(key: CommitKey) -> str:
    """Render a commit key as ``project/package@hash``."""
    project, package, revision_hash = key
    return f"{project}/{package}@{revision_hash}"


@dataclass
class ChainEntry:
    """One position of a package's local chain, before commits are linked."""
    revision: Revision
    snapshot: Snapshot
    revision_hash: str
    cross_parents: List[Commit] = field(default_factory=list)
