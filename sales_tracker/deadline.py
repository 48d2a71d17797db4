"""Caller-supplied timeout and cancellation for storage operations."""

import threading
import time
from typing import Optional

from sales_tracker.errors import OperationCancelled, OperationTimeout


class Deadline:
    """A timeout and/or cancel flag that travels down to the storage layer.

    Both parts are optional; ``Deadline()`` never expires.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self._expires_at = time.monotonic() + timeout if timeout is not None else None
        self._cancel_event = cancel_event

    @property
    def cancelled(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def remaining(self) -> Optional[float]:
        """Seconds left before expiry, or None for no timeout."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def should_abort(self) -> bool:
        return self.cancelled or self.expired

    def check(self) -> None:
        """Raise if the caller cancelled or the deadline passed."""
        if self.cancelled:
            raise OperationCancelled()
        if self.expired:
            raise OperationTimeout()
