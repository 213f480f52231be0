from .exceptions import (
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

__all__ = [
    "ConfigurationError",
    "EnvParsingError",
    "FnPublishError",
    "PackagingError",
    "RemoteError",
    "RemoteNotFound",
    "RemoteThrottling",
    "RetryExhaustedError",
    "UnknownRemoteError",
    "ValidationError",
]
