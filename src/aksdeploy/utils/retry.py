"""Bounded retries with exponential backoff for transient faults."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from ..errors import DeployError

T = TypeVar("T")

logger = __import__("logging").getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempts and base delay for one family of calls."""

    attempts: int = 3
    delay: float = 2.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def call(self, func: Callable[[], T], *, operation: str) -> T:
        return call_with_retries(
            func,
            operation=operation,
            attempts=self.attempts,
            delay=self.delay,
            sleep=self.sleep,
        )


def call_with_retries(
    func: Callable[[], T],
    *,
    operation: str,
    attempts: int = 3,
    delay: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call `func`, retrying on retryable DeployErrors.

    Waits `delay * 2**n` seconds before attempt n+2. Errors whose
    `retryable` attribute is False propagate on the first failure.

    Args:
        func: Zero-argument callable to invoke.
        operation: Human-readable name used in log messages.
        attempts: Maximum number of calls (at least 1).
        delay: Base delay in seconds.
        sleep: Sleep function, injectable for tests.

    Returns:
        The value returned by `func`.

    Raises:
        DeployError: The last error once attempts are exhausted, or the
            first non-retryable error.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except DeployError as exc:
            if not exc.retryable or attempt == attempts:
                if exc.retryable:
                    logger.error("%s failed after %d attempts: %s", operation, attempts, exc)
                raise
            wait_time = delay * (2 ** (attempt - 1))
            logger.warning(
                "%s attempt %d/%d failed (%s); retrying in %.1fs",
                operation,
                attempt,
                attempts,
                exc,
                wait_time,
            )
            sleep(wait_time)
    raise AssertionError("unreachable")
