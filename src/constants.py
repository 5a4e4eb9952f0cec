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
    PARTIAL_GRAPH = 3


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL_NPM = "https://registry.npmjs.org"
    LATEST = "latest"
    MAX_TRIES = 10
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    MAX_CONCURRENCY = 16
    VERIFY_INTEGRITY = True
    USER_AGENT = "depgraph/0.1"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "DEPGRAPH_LOG_LEVEL"

    # Environment overrides (see cli_config.apply_env_overrides)
    ENV_REGISTRY_URL = "DEPGRAPH_REGISTRY_URL"
    ENV_MAX_TRIES = "DEPGRAPH_MAX_TRIES"
    ENV_REQUEST_TIMEOUT = "DEPGRAPH_REQUEST_TIMEOUT"
    ENV_MAX_CONCURRENCY = "DEPGRAPH_MAX_CONCURRENCY"
    ENV_VERIFY_INTEGRITY = "DEPGRAPH_VERIFY_INTEGRITY"
