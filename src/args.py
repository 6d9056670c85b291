"""Argument parsing functionality for obs-history."""

import argparse
from constants import Constants

def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="obs-history",
        description=(
            "obs-history - Reconstruct the history of an OBS package across links"
        ),
        add_help=True,
    )

    parser.add_argument("-p", "--project",
                        dest="PROJECT",
                        help="Name of the project containing the package",
                        action="store", type=str,
                        required=True)
    parser.add_argument("-k", "--package",
                        dest="PACKAGE",
                        help="Name of the package",
                        action="store", type=str,
                        required=True)

    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to output file (defaults to stdout)",
                        action="store",
                        type=str)
    parser.add_argument("-f", "--format",
                        dest="OUTPUT_FORMAT",
                        help="Output format (json, dot or svg). Defaults to json.",
                        action="store",
                        type=str.lower,
                        choices=Constants.SUPPORTED_FORMATS,
                        default="json")
    parser.add_argument("--no-links",
                        dest="NO_LINKS",
                        help="Only list the revisions of the package, do not follow links.",
                        action="store_true")

    # Connection
    parser.add_argument("--api-url",
                        dest="API_URL",
                        help=f"URL of the OBS API (default: {Constants.DEFAULT_API_URL})",
                        action="store",
                        type=str)
    parser.add_argument("-u", "--username",
                        dest="USERNAME",
                        help="Username for the OBS API",
                        action="store",
                        type=str)
    parser.add_argument("--password",
                        dest="PASSWORD",
                        help=f"Password for the OBS API (prefer ${Constants.ENV_PASSWORD})",
                        action="store",
                        type=str)
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help="Timeout in seconds for every HTTP request",
                        action="store",
                        type=float)

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='WARNING')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    # Config file (general)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
