"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    API_ERROR = 4
    HISTORY_ERROR = 5


class OutputFormats(Enum):
    """Output formats supported by the command line tool.

    Args:
        Enum (string): Output formats supported by the program.
    """

    JSON = "json"
    DOT = "dot"
    SVG = "svg"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    DEFAULT_API_URL = "https://api.opensuse.org"
    SUPPORTED_FORMATS = [
        OutputFormats.JSON.value,
        OutputFormats.DOT.value,
        OutputFormats.SVG.value,
    ]
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "OBSHISTORY_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    USER_AGENT = "obs-history/0.1"

    # Environment overrides for the connection settings
    ENV_API_URL = "OBS_API_URL"
    ENV_USERNAME = "OBS_USERNAME"
    ENV_PASSWORD = "OBS_PASSWORD"

    # OBS reports deleted/absent users with this placeholder
    UNKNOWN_USER = "unknown"

    # Status code OBS replies with when links cannot be expanded
    SOURCE_CONFLICT_STATUS = 400

    DOT_BINARY = "dot"
