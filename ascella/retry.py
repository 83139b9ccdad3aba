"""Backoff for idempotent API reads.

Uploads are never retried: a POST that reached the server but lost its
reply would create a second copy of the image.
"""

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    max_retries: int = 3
    base_delay: float = 0.5  # seconds
    max_delay: float = 10.0  # seconds
    exponential_base: float = 2.0
    jitter: bool = True

    def delays(self) -> Iterator[float]:
        """Sleep before each retry, capped and jittered by up to 25%."""
        for attempt in range(self.max_retries):
            delay = min(self.base_delay * self.exponential_base ** attempt, self.max_delay)
            if self.jitter:
                delay *= random.uniform(0.75, 1.25)
            yield max(0.0, delay)


class RetryExhausted(Exception):
    """Every attempt failed with a retryable error."""

    def __init__(self, attempts: int, last_error: Optional[Exception] = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")


def retry_with_backoff(
    func: Callable[[], T],
    config: Optional[RetryConfig] = None,
    retryable_exceptions: tuple = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``func`` until it succeeds or the retries run out.

    Raises:
        RetryExhausted: If the last attempt also failed with a retryable error
        Exception: Any non-retryable error, immediately
    """
    config = config or RetryConfig()
    delays = config.delays()
    attempts = 0

    while True:
        attempts += 1
        try:
            return func()
        except retryable_exceptions as e:
            delay = next(delays, None)
            if delay is None:
                raise RetryExhausted(attempts, e) from e
            logger.warning(f"Attempt {attempts} failed: {e}. Retrying in {delay:.1f}s")
            sleep(delay)
