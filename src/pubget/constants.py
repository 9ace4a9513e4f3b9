"""Constants used in the project."""

import os
from enum import Enum

from . import __version__


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3


class Constants:  # pylint: disable=too-few-public-methods
    """Configuration defaults; CLI flags take precedence over these."""

    ENV_REGISTRY_URL = "PUB_HOSTED_URL"
    REGISTRY_URL = os.environ.get(ENV_REGISTRY_URL, "https://pub.dev").rstrip("/")
    PACKAGE_API_PATH = "/api/packages/"
    ACCEPT_HEADER = "application/vnd.pub.v2+json"
    USER_AGENT = f"pubget/{__version__}"

    SPEC_FILE = "pubspec.yaml"
    OUT_DIR = "output"
    INFO_SUFFIX = "info"

    # Upper bound on resolution rounds; 0 disables the bound.
    MAX_ROUNDS = 1000
    # None blocks until the registry answers.
    REQUEST_TIMEOUT = None

    LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
