"""Retry wrapper for remote store calls.

A ``ResilientOperation`` runs a call, classifies any failure, and for
transient faults re-establishes the remote session before retrying the same
call. The initial connect and every later remote call go through the same
primitive; only the recovery action differs.
"""

import logging
import random
import time
from typing import Any, Callable, Optional, TypeVar

from ..exceptions import RemoteConnectionError
from ..utils import DEFAULT_RETRY_DELAY, DEFAULT_RETRY_LIMIT

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors raised outside a store's own error translation that still mean
# the connection went away
TRANSIENT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    RemoteConnectionError,
    ConnectionError,
    TimeoutError,
    EOFError,
)


def is_transient(exception: BaseException) -> bool:
    """Check whether an error is a retryable connection fault.

    Examples:
        >>> is_transient(RemoteConnectionError("timed out"))
        True
        >>> is_transient(PermissionError("denied"))
        False
    """
    return isinstance(exception, TRANSIENT_EXCEPTIONS)


class ResilientOperation:
    """Classify-and-retry wrapper with session recovery.

    Examples:
        >>> op = ResilientOperation(recover=store.reconnect)  # doctest: +SKIP
        >>> op.call(store.upload, "/tmp/a.txt", "/a.txt")  # doctest: +SKIP
    """

    def __init__(
        self,
        classify: Callable[[BaseException], bool] = is_transient,
        recover: Optional[Callable[[], Any]] = None,
        retry_limit: int = DEFAULT_RETRY_LIMIT,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the wrapper.

        Args:
            classify: Returns True for errors worth retrying
            recover: Action run before each retry (re-establish the session)
            retry_limit: Maximum number of retries after the first attempt
            retry_delay: Initial delay between retries in seconds (0 disables)
            sleep: Sleep function, replaceable in tests
        """
        if retry_limit < 0:
            raise ValueError("retry_limit cannot be negative")
        self.classify = classify
        self.recover = recover
        self.retry_limit = retry_limit
        self.retry_delay = retry_delay
        self._sleep = sleep

    def _should_retry(self, exception: BaseException, attempt: int) -> bool:
        """Determine if a call should be retried.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if the call should be retried, False otherwise
        """
        # Don't retry if we've exhausted our attempts
        if attempt >= self.retry_limit:
            return False
        return self.classify(exception)

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        if self.retry_delay <= 0:
            return 0.0
        base_delay = self.retry_delay * (2**attempt)
        # Add jitter: +/- 25% of base delay
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call ``func`` with retries.

        Args:
            func: The remote call
            *args: Positional arguments for ``func``
            **kwargs: Keyword arguments for ``func``

        Returns:
            Whatever ``func`` returns

        Raises:
            Exception: The first non-transient error, the error raised by the
                recovery action, or the last transient error once the retry
                budget is spent
        """
        name = getattr(func, "__name__", repr(func))
        attempt = 0
        while True:
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                if not self._should_retry(e, attempt):
                    if attempt and self.classify(e):
                        logger.error(
                            f"{name} failed after {attempt + 1} attempts: {e}"
                        )
                    raise

                delay = self._calculate_retry_delay(attempt)
                logger.debug(
                    f"{name} failed (attempt {attempt + 1}/{self.retry_limit + 1}), "
                    f"retrying in {delay:.1f}s: {e}"
                )
                if delay:
                    self._sleep(delay)
                if self.recover is not None:
                    try:
                        self.recover()
                    except Exception as recover_error:
                        logger.error(f"Reconnect before retrying {name} failed")
                        raise recover_error from e
                attempt += 1
                continue

            if attempt:
                logger.debug(f"{name} succeeded after {attempt + 1} attempts")
            return result
