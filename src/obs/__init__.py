"""OBS source history package.

This package reconstructs the history of OBS packages across source links:
- client.py: HTTP interactions with the OBS source routes (history, directory)
- links.py: link extraction from directory snapshots
- chain.py: the local commit chain of a single package
- cache.py: per-resolution commit and package-head caches
- resolver.py: cross-link history resolution
- render.py: JSON, dot and SVG export of a resolved history
"""

from .models import (  # noqa: F401
    Commit,
    LinkInfo,
    PackageFile,
    PackageRef,
    Revision,
    Snapshot,
)
from .client import ObsClient  # noqa: F401
from .links import extract_link  # noqa: F401
from .resolver import CrossLinkResolver, fetch_history_across_links  # noqa: F401
from .render import draw_history_to_svg, history_to_dict, history_to_graphviz  # noqa: F401

__all__ = [
    # Models
    "Commit",
    "LinkInfo",
    "PackageFile",
    "PackageRef",
    "Revision",
    "Snapshot",
    # Client
    "ObsClient",
    # Resolution
    "extract_link",
    "CrossLinkResolver",
    "fetch_history_across_links",
    # Export
    "history_to_dict",
    "history_to_graphviz",
    "draw_history_to_svg",
]
