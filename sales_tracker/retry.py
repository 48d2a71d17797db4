"""Bounded retry for transient storage failures."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from sales_tracker.config import Settings
from sales_tracker.errors import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed attempt count with exponential backoff between attempts."""

    attempts: int = 3
    delay: float = 0.1
    backoff: float = 2.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            attempts=max(1, settings.retry_attempts),
            delay=settings.retry_delay,
            backoff=settings.retry_backoff,
        )


NO_RETRY = RetryPolicy(attempts=1, delay=0.0)


def call_with_retry(operation: Callable[[], T], policy: RetryPolicy) -> T:
    """Run ``operation``, retrying it from scratch on transient StorageError.

    Non-transient errors and errors on the last attempt propagate unchanged.
    """
    delay = policy.delay
    for attempt in range(1, policy.attempts + 1):
        try:
            return operation()
        except StorageError as exc:
            if not exc.transient or attempt == policy.attempts:
                raise
            logger.warning(
                "Transient storage error (attempt %d/%d), retrying in %.2fs: %s",
                attempt,
                policy.attempts,
                delay,
                exc.cause,
            )
            time.sleep(delay)
            delay *= policy.backoff
    raise AssertionError("unreachable")  # pragma: no cover
