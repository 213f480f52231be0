"""Configuration constants and retry settings for fnpublish."""

import os
from dataclasses import dataclass

from .remote.backoff import BackoffStrategy

# Project layout
PROJECT_CONFIG_FILE = "fnpublish.json"
REQUIREMENTS_FILE = "requirements.txt"
OPTIONAL_REQUIREMENTS_FILE = "requirements-optional.txt"
LOCAL_DEPENDENCIES_DIR = "vendor"
IGNORE_FILE = ".fnpublishignore"

# Deployment defaults
DEFAULT_ALIAS = "latest"
ALIAS_STAGE_VARIABLE = "lambdaVersion"
API_ROUTER_NAME = "router"
WORKDIR_PREFIX = "fnpublish-"

# Subprocess limits
PIP_INSTALL_TIMEOUT_SECONDS = 600  # 10 minute timeout for pip install
VALIDATION_TIMEOUT_SECONDS = 60

# Always excluded from the packaged copy
ALWAYS_IGNORE = [
    ".git/",
    "__pycache__/",
    "*.pyc",
    "*.pyo",
    ".venv/",
    "venv/",
    f"{LOCAL_DEPENDENCIES_DIR}/",
]


@dataclass
class RetryConfig:
    """Configuration for retrying throttled remote calls."""

    max_attempts: int = 10
    base_delay: float = 3.0
    max_delay: float = 30.0
    jitter: float = 0.2
    strategy: BackoffStrategy = BackoffStrategy.LINEAR

    @classmethod
    def from_env(cls) -> "RetryConfig":
        """Load retry configuration from environment variables.

        Environment variables:
        - FNPUBLISH_RETRY_MAX_ATTEMPTS: Max attempts per call (default: 10)
        - FNPUBLISH_RETRY_BASE_DELAY: Base delay in seconds (default: 3.0)
        - FNPUBLISH_RETRY_MAX_DELAY: Delay ceiling in seconds (default: 30.0)

        Returns:
            RetryConfig initialized from environment variables.
        """
        return cls(
            max_attempts=int(os.getenv("FNPUBLISH_RETRY_MAX_ATTEMPTS", "10")),
            base_delay=float(os.getenv("FNPUBLISH_RETRY_BASE_DELAY", "3.0")),
            max_delay=float(os.getenv("FNPUBLISH_RETRY_MAX_DELAY", "30.0")),
        )
