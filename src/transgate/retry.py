"""Bounded fixed-delay retry for transport-level failures."""
import logging
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

import requests

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures worth another attempt. Status-code and body problems are not here.
TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
)


class RetryingExecutor:
    """Run a callable, retrying transient failures with a fixed pause.

    Attempts are strictly sequential. There is no backoff and no jitter:
    every pause lasts exactly ``retry_delay`` seconds and blocks the
    calling thread.
    """

    def __init__(
        self,
        retry_count: int = 0,
        retry_delay: float = 0.0,
        retry_on: Tuple[Type[BaseException], ...] = TRANSIENT_ERRORS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize executor.

        Args:
            retry_count: Maximum additional attempts after the first
            retry_delay: Pause in seconds between attempts
            retry_on: Exception types treated as transient
            sleep: Blocking sleep function
        """
        self.retry_count = max(0, int(retry_count))
        self.retry_delay = max(0.0, float(retry_delay))
        self.retry_on = retry_on
        self._sleep = sleep

    def execute(
        self,
        fn: Callable[[], T],
        on_retry: Optional[Callable[[int, Exception], None]] = None,
    ) -> T:
        """Call ``fn`` until it succeeds or retries are exhausted.

        The last transient failure is re-raised unchanged. Any other
        exception propagates on the first occurrence.
        """
        attempt = 0
        while True:
            try:
                return fn()
            except self.retry_on as exc:
                if attempt >= self.retry_count:
                    raise
                attempt += 1
                if on_retry is not None:
                    on_retry(attempt, exc)
                logger.debug("Retrying after %s (attempt %d/%d)", exc, attempt, self.retry_count)
                self._sleep(self.retry_delay)
