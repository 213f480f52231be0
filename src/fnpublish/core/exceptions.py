"""Exceptions raised by the deployment pipeline.

Precondition failures (configuration, validation, variable parsing) are raised
strictly before the first mutating remote call. Remote failures carry the
machine-readable error code reported by the platform.
"""

from typing import Optional


class FnPublishError(Exception):
    """Base exception for all fnpublish failures."""

    pass


class ConfigurationError(FnPublishError):
    """Raised when the project configuration or the requested options are unusable."""

    pass


class EnvParsingError(ConfigurationError):
    """Raised when environment variables cannot be read from the supplied sources."""

    pass


class ValidationError(FnPublishError):
    """Raised when the packaged entry module cannot be loaded after a clean install."""

    def __init__(self, entry: str, output: str = ""):
        self.entry = entry
        self.output = output
        super().__init__(
            f"cannot require {entry} after clean installation. Check your dependencies."
        )


class RemoteError(FnPublishError):
    """Base exception for failures reported by a remote collaborator.

    Attributes:
        code: Machine-readable error kind (e.g. ``ResourceNotFoundException``).
        service: Remote service that raised the error (``lambda``, ``apigateway``...).
        operation: Operation that was being called.
    """

    def __init__(
        self,
        message: str,
        code: str,
        service: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        self.code = code
        self.service = service
        self.operation = operation
        super().__init__(message)


class RemoteNotFound(RemoteError):
    """Raised when a remote resource (function, API, alias, stage) does not exist."""

    pass


class RemoteThrottling(RemoteError):
    """Raised when the platform rejects a call because of rate limiting."""

    pass


class UnknownRemoteError(RemoteError):
    """Raised for any other remote failure."""

    pass


class RetryExhaustedError(UnknownRemoteError):
    """Raised when a throttled call is still throttled after the last attempt."""

    pass


class PackagingError(FnPublishError):
    """Raised when the project cannot be copied or its dependencies installed."""

    pass
