"""Retry layer wrapping every remote call.

Throttled calls are slept on and retried verbatim; every other failure passes
through untouched on first occurrence.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from ..config import RetryConfig
from ..core.exceptions import RemoteThrottling, RetryExhaustedError
from ..core.stage_logger import StageLogger
from .backoff import get_backoff_delay

log = logging.getLogger(__name__)

RETRY_NOTICE = "rate-limited by AWS, waiting before retry"


async def retry_on_throttling(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    config: Optional[RetryConfig] = None,
    on_retry: Optional[Callable[[RemoteThrottling, int, float], None]] = None,
    **kwargs: Any,
) -> Any:
    """Execute an async remote call, retrying while it is throttled.

    Args:
        func: Async callable performing the remote call
        *args: Positional arguments for func
        config: Retry settings (default: RetryConfig())
        on_retry: Called with (error, attempt, delay) before each sleep
        **kwargs: Keyword arguments for func

    Returns:
        Result from the first non-throttled attempt

    Raises:
        RetryExhaustedError: If the call is still throttled after the last attempt
        Exception: Any non-throttling error, unchanged
    """
    config = config or RetryConfig()
    max_attempts = max(config.max_attempts, 1)

    for attempt in range(max_attempts):
        try:
            result = await func(*args, **kwargs)
            if attempt > 0:
                log.info(f"Retry succeeded on attempt {attempt + 1}/{max_attempts}")
            return result
        except RemoteThrottling as e:
            if attempt >= max_attempts - 1:
                log.warning(
                    f"Still throttled after {max_attempts} attempts: {e.service}.{e.operation}"
                )
                raise RetryExhaustedError(
                    f"Failed after {max_attempts} attempts: {e}",
                    code=e.code,
                    service=e.service,
                    operation=e.operation,
                ) from e

            delay = get_backoff_delay(
                attempt,
                base=config.base_delay,
                max_seconds=config.max_delay,
                jitter=config.jitter,
                strategy=config.strategy,
            )
            if on_retry is not None:
                on_retry(e, attempt, delay)
            log.debug(f"Retry {attempt + 1}/{max_attempts} after {delay:.2f}s")
            await asyncio.sleep(delay)

    raise AssertionError("unreachable")


class RetryingClient:
    """Proxy that records and retries every coroutine method of a collaborator.

    ``RetryingClient(store, "lambda", stage_logger).update_code(...)`` logs
    ``lambda.update_code`` once in the call log and awaits the underlying
    method through :func:`retry_on_throttling`.
    """

    def __init__(
        self,
        target: Any,
        service: str,
        stage_logger: StageLogger,
        config: Optional[RetryConfig] = None,
    ):
        self._target = target
        self._service = service
        self._stage_logger = stage_logger
        self._config = config

    @property
    def target(self) -> Any:
        return self._target

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._target, name)
        if name.startswith("_") or not callable(attr):
            return attr

        async def call(*args: Any, **kwargs: Any) -> Any:
            self._stage_logger.log_call(self._service, name)
            return await retry_on_throttling(
                attr,
                *args,
                config=self._config,
                on_retry=self._notify_retry,
                **kwargs,
            )

        call.__name__ = name
        return call

    def _notify_retry(self, error: RemoteThrottling, attempt: int, delay: float) -> None:
        self._stage_logger.log_retry(
            RETRY_NOTICE, service=self._service, operation=error.operation
        )
