"""Package, validate and publish Python functions to AWS Lambda and API Gateway."""

from .core.exceptions import (
    ConfigurationError,
    EnvParsingError,
    FnPublishError,
    PackagingError,
    RemoteError,
    RemoteNotFound,
    RemoteThrottling,
    RetryExhaustedError,
    UnknownRemoteError,
    ValidationError,
)
from .core.options import UpdateOptions
from .core.stage_logger import StageLogger
from .update import DeploymentResult, update

__all__ = [
    "ConfigurationError",
    "DeploymentResult",
    "EnvParsingError",
    "FnPublishError",
    "PackagingError",
    "RemoteError",
    "RemoteNotFound",
    "RemoteThrottling",
    "RetryExhaustedError",
    "StageLogger",
    "UnknownRemoteError",
    "UpdateOptions",
    "ValidationError",
    "update",
]
