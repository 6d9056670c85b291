"""Extraction of the outgoing source link of a snapshot."""

from typing import Optional

from common.errors import HistoryConsistencyError

from .models import LinkInfo, PackageRef, Snapshot


def extract_link(snapshot: Snapshot, package: Optional[PackageRef] = None) -> Optional[LinkInfo]:
    """Extract the link information from a snapshot.

    Broken links (links whose expansion failed) are extracted as well: the
    history can only be reconstructed if every link is known, even a broken
    one.

    Args:
        snapshot: The snapshot to inspect.
        package: Owner of the snapshot, only used in error messages.

    Returns:
        ``None`` if the snapshot carries no link with a destination, else the
        link. A link naming only its target is valid.

    Raises:
        HistoryConsistencyError: if the snapshot carries more than one
            ``<linkinfo>``; the schema allows it but OBS never produces it.
    """
    if not snapshot.link_infos:
        return None
    if len(snapshot.link_infos) > 1:
        raise HistoryConsistencyError(
            f"Package has {len(snapshot.link_infos)} <linkinfo> entries, at most one is supported",
            project=package.project if package else None,
            package=package.package if package else None,
            revision=snapshot.reported_revision_hash,
        )

    raw = snapshot.link_infos[0]
    if raw.project is None or raw.package is None:
        return None
    return LinkInfo(
        target_project=raw.project,
        target_package=raw.package,
        pinned_revision=raw.rev,
        base_revision=raw.baserev,
        expanded_source_hash=raw.srcmd5,
    )
