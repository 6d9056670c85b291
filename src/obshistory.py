"""obs-history - Reconstruct the history of an OBS package across links.

    Returns:
        int: Exit code
"""
import json
import logging
import os
import subprocess
import sys
from datetime import timezone

from constants import Constants, ExitCodes, OutputFormats
from common.errors import ApiError, HistoryConsistencyError, ObsConnectionError
from common.logging_utils import configure_logging, extra_context, is_debug_enabled, redact, safe_url
from args import parse_args
from cli_config import build_settings
from obs.client import ObsClient
from obs.render import draw_history_to_svg, history_to_dict, history_to_graphviz
from obs.resolver import fetch_history_across_links


def revisions_to_list(revisions):
    """Serialize plain revisions for JSON output.

    Args:
        revisions (list): Revisions as returned by ObsClient.fetch_revisions.

    Returns:
        list: JSON compatible dicts, oldest first.
    """
    return [
        {
            "revision": rev.revision_number,
            "version_revision": rev.version_revision,
            "revision_hash": rev.revision_hash,
            "version": rev.version,
            "commit_time": rev.commit_time.astimezone(timezone.utc).isoformat(),
            "author": rev.author_id,
            "request_id": rev.request_id,
            "commit_message": rev.commit_message,
        }
        for rev in revisions
    ]


def render_history(head, output_format):
    """Render a resolved history in the requested format.

    Args:
        head (Commit): Head commit, or None for a package without history.
        output_format (str): One of Constants.SUPPORTED_FORMATS.

    Returns:
        str: The rendered history.
    """
    if output_format == OutputFormats.DOT.value:
        return history_to_graphviz(head) if head is not None else "digraph G {\n}\n"
    if output_format == OutputFormats.SVG.value:
        if head is None:
            raise ValueError("Cannot draw the history of a package without revisions")
        return draw_history_to_svg(head)
    data = history_to_dict(head) if head is not None else {"head": None, "commits": []}
    return json.dumps(data, indent=2)


def write_output(text, path):
    """Write ``text`` to ``path`` or to stdout when no path is given."""
    if not path:
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")
        return
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(text)
    logging.info("History written to %s", path)


def run(args):
    """Execute one CLI invocation; errors are left to the caller.

    Returns:
        int: Exit code
    """
    logger = logging.getLogger(__name__)
    settings = build_settings(args)
    client = ObsClient(
        settings.api_url,
        username=settings.username,
        password=settings.password,
        timeout=settings.timeout,
    )

    if is_debug_enabled(logger):
        logger.debug(
            "Starting history resolution",
            extra=extra_context(
                event="function_entry",
                component="cli",
                action="run",
                target=f"{args.PROJECT}/{args.PACKAGE}",
                outcome="links_disabled" if args.NO_LINKS else None,
            )
        )
        logger.debug(
            "Using API %s as %s (password: %s), timeout %ss",
            safe_url(settings.api_url),
            settings.username or "anonymous",
            redact(settings.password) or "none",
            settings.timeout,
        )

    if args.NO_LINKS:
        if args.OUTPUT_FORMAT != OutputFormats.JSON.value:
            logging.error("--no-links only supports the json output format.")
            return ExitCodes.FILE_ERROR.value
        revisions = client.fetch_revisions(args.PROJECT, args.PACKAGE)
        write_output(json.dumps(revisions_to_list(revisions), indent=2), args.OUTPUT)
        return ExitCodes.SUCCESS.value

    head = fetch_history_across_links(client, args.PROJECT, args.PACKAGE)
    if head is None:
        logging.warning("Package %s/%s has no history.", args.PROJECT, args.PACKAGE)
    write_output(render_history(head, args.OUTPUT_FORMAT), args.OUTPUT)
    return ExitCodes.SUCCESS.value


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    # Honor CLI --loglevel by passing it to centralized logger via env
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.LOG_LEVEL_ENV] = str(args.LOG_LEVEL).upper()
    configure_logging(getattr(args, "LOG_FILE", None))

    try:
        return run(args)
    except ObsConnectionError as exc:
        logging.error("%s", exc)
        return ExitCodes.CONNECTION_ERROR.value
    except ApiError as exc:
        logging.error("%s", exc)
        return ExitCodes.API_ERROR.value
    except HistoryConsistencyError as exc:
        logging.error("Inconsistent history: %s", exc)
        return ExitCodes.HISTORY_ERROR.value
    except (OSError, ValueError, subprocess.CalledProcessError) as exc:
        logging.error("%s", exc)
        return ExitCodes.FILE_ERROR.value


if __name__ == "__main__":
    sys.exit(main())
