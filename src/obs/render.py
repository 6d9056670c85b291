"""Export of a resolved commit graph as JSON data, graphviz ``dot`` or SVG."""

from __future__ import annotations

import logging
import re
import subprocess
from collections import Counter
from datetime import timezone
from typing import Any, Dict, Iterator, List, Optional

from constants import Constants

from .models import Commit, commit_key_str

logger = logging.getLogger(__name__)

_RECORD_SPECIAL = re.compile(r'([{}|<>"\\])')


def iter_commits(head: Commit) -> Iterator[Commit]:
    """Yield every commit reachable from ``head`` exactly once, depth first.

    Commits are told apart by identity: a package whose sources were reverted
    to an earlier state has two distinct commits with the same key.
    """
    seen = set()
    stack = [head]
    while stack:
        commit = stack.pop()
        if id(commit) in seen:
            continue
        seen.add(id(commit))
        yield commit
        stack.extend(reversed(commit.parent_commits))


def node_names(head: Commit) -> Dict[int, str]:
    """Map every reachable commit (by id) to a unique export name.

    The name is the commit key. When several distinct commits share a key,
    each of them gets its revision number appended (``prj/pkg@hash#3``).
    """
    commits = list(iter_commits(head))
    counts = Counter(commit_key_str(c.key) for c in commits)
    names = {}
    for commit in commits:
        name = commit_key_str(commit.key)
        if counts[name] > 1:
            name = f"{name}#{commit.revision_number}"
        names[id(commit)] = name
    return names


def commit_to_dict(commit: Commit, names: Optional[Dict[int, str]] = None) -> Dict[str, Any]:
    """Serialize one commit; parents are referenced by their export name."""
    names = names or {}

    def name_of(c: Commit) -> str:
        return names.get(id(c), commit_key_str(c.key))

    return {
        "key": name_of(commit),
        "project": commit.project,
        "package": commit.package,
        "revision_hash": commit.revision_hash,
        "revision": commit.revision_number,
        "version_revision": commit.version_revision,
        "version": commit.version,
        "commit_time": commit.commit_time.astimezone(timezone.utc).isoformat(),
        "author": commit.author_id,
        "request_id": commit.request_id,
        "commit_message": commit.commit_message,
        "expanded": commit.was_expanded,
        "files": [f.name for f in commit.files],
        "parents": [name_of(p) for p in commit.parent_commits],
    }


def history_to_dict(head: Commit) -> Dict[str, Any]:
    """Serialize the graph below ``head`` into JSON compatible data."""
    names = node_names(head)
    return {
        "head": names[id(head)],
        "commits": [commit_to_dict(c, names) for c in iter_commits(head)],
    }


def _format_time(commit: Commit) -> str:
    return commit.commit_time.astimezone(timezone.utc).strftime("%b %d, %Y, %H:%M:%S")


def _escape(text: str) -> str:
    return _RECORD_SPECIAL.sub(r"\\\1", text)


def history_to_graphviz(head: Commit) -> str:
    """Describe the graph below ``head`` in the ``dot`` language.

    Every commit becomes one record node labelled with its hash, commit time
    (UTC), project/package, revision number and the first line of its commit
    message. Edges point from a commit to its parents. Each commit is emitted
    once, so shared ancestors do not produce duplicate edges.
    """
    names = node_names(head)
    lines: List[str] = ["digraph G {", '  graph [', '    rankdir = "LR"', "  ];"]
    for commit in iter_commits(head):
        key = names[id(commit)]
        message_lines = commit.commit_message.splitlines()
        first_line = message_lines[0] if message_lines else "no commit message"
        label = " | ".join(
            [
                f"<f0> {_escape(commit.revision_hash)}",
                _escape(_format_time(commit)),
                _escape(f"{commit.project}/{commit.package}"),
                f"revision: {commit.revision_number}",
                _escape(first_line),
            ]
        )
        lines.append(f'  "{key}" [')
        lines.append(f'    label = "{label}"')
        lines.append('    shape = "record"')
        lines.append("  ];")
        for parent in commit.parent_commits:
            lines.append(f'  "{key}":f0 -> "{names[id(parent)]}":f0;')
    lines.append("}")
    return "\n".join(lines) + "\n"


def draw_history_to_svg(head: Commit) -> str:
    """Render the graph below ``head`` with graphviz and return the SVG.

    Raises:
        FileNotFoundError: if the ``dot`` binary is not installed.
        subprocess.CalledProcessError: if ``dot`` fails.
    """
    logger.debug("Rendering history of %s with %s", commit_key_str(head.key), Constants.DOT_BINARY)
    result = subprocess.run(
        [Constants.DOT_BINARY, "-Tsvg"],
        input=history_to_graphviz(head),
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout
