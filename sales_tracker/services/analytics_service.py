"""Service for income and expense analytics over a date range."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sales_tracker.deadline import Deadline
from sales_tracker.errors import InternalError, LedgerError
from sales_tracker.models import AnalyticsResult, ItemKind
from sales_tracker.retry import NO_RETRY, RetryPolicy, call_with_retry
from sales_tracker.services.range_validator import DEFAULT_MAX_RANGE, to_utc, validate_range
from sales_tracker.stores.base import AnalyticsStore

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Computes income/expense aggregates and detail rows from one snapshot."""

    def __init__(
        self,
        store: AnalyticsStore,
        max_range: timedelta = DEFAULT_MAX_RANGE,
        retry_policy: RetryPolicy = NO_RETRY,
        default_timeout: Optional[float] = None,
    ):
        self._store = store
        self._max_range = max_range
        self._retry = retry_policy
        self._default_timeout = default_timeout

    @property
    def max_range(self) -> timedelta:
        return self._max_range

    def get_analytics(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        deadline: Optional[Deadline] = None,
    ) -> AnalyticsResult:
        """
        Get income and expense statistics plus detail rows for ``[start, end]``.

        The range is validated before storage is touched. All three reads run
        in one read-only transaction; a transient failure restarts the whole
        transaction, any other failure aborts the call.
        """
        validate_range(start, end, self._max_range)
        start, end = to_utc(start), to_utc(end)
        if deadline is None:
            deadline = Deadline(self._default_timeout)

        logger.info("Getting analytics from %s to %s", start.isoformat(), end.isoformat())
        try:
            result = call_with_retry(lambda: self._read(start, end, deadline), self._retry)
        except LedgerError as exc:
            logger.error("Failed to get analytics: %s (cause: %r)", exc, exc.cause)
            raise
        except Exception as exc:
            logger.exception("Unexpected failure while getting analytics")
            raise InternalError(cause=exc) from exc

        logger.info(
            "Analytics retrieved: %d income, %d expense, %d details",
            result.income.count,
            result.expense.count,
            len(result.details),
        )
        return result

    def _read(self, start: datetime, end: datetime, deadline: Deadline) -> AnalyticsResult:
        with self._store.snapshot(deadline) as snapshot:
            income = snapshot.aggregate(ItemKind.INCOME, start, end)
            expense = snapshot.aggregate(ItemKind.EXPENSE, start, end)
            details = snapshot.details(start, end)
        return AnalyticsResult(income=income, expense=expense, details=details)
