import threading

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

from sales_tracker.deadline import Deadline
from sales_tracker.errors import (
    InternalError,
    InvalidDateRange,
    MissingParameter,
    OperationCancelled,
    OperationTimeout,
    PeriodTooLarge,
    StorageError,
)
from sales_tracker.models import Aggregate, ItemKind
from sales_tracker.retry import RetryPolicy
from sales_tracker.services import AnalyticsService
from tests.fakes import FakeAnalyticsStore, make_item, ts

JANUARY = (ts("2024-01-01T00:00:00"), ts("2024-01-31T23:59:59"))


def january_store():
    return FakeAnalyticsStore(
        [
            make_item(1, ItemKind.INCOME, 100, ts("2024-01-01T00:00:00")),
            make_item(2, ItemKind.INCOME, 200, ts("2024-01-15T00:00:00")),
            make_item(3, ItemKind.EXPENSE, 50, ts("2024-01-10T00:00:00")),
        ]
    )


def transient(message="connection reset"):
    return StorageError("query failed", cause=OperationalError("SELECT", {}, Exception(message)), transient=True)


def fast_retry(attempts=3):
    return RetryPolicy(attempts=attempts, delay=0.0, backoff=1.0)


def test_january_scenario():
    store = january_store()
    result = AnalyticsService(store).get_analytics(*JANUARY)

    assert result.income.sum == 300
    assert result.income.avg == 150
    assert result.income.count == 2
    assert result.income.median == pytest.approx(150)
    assert result.income.percent90 == pytest.approx(190)
    assert result.expense == Aggregate(sum=50, avg=50, count=1, median=50, percent90=50)
    assert [item.id for item in result.details] == [2, 3, 1]
    assert store.opened == store.committed == 1


def test_all_three_reads_share_one_snapshot():
    store = january_store()
    AnalyticsService(store).get_analytics(*JANUARY)
    assert store.opened == 1
    assert store.calls == ["aggregate:income", "aggregate:expense", "details"]


def test_empty_window():
    result = AnalyticsService(january_store()).get_analytics(
        ts("2023-01-01T00:00:00"), ts("2023-06-01T00:00:00")
    )
    assert result.income == Aggregate()
    assert result.expense == Aggregate()
    assert result.details == []


@pytest.mark.parametrize(
    "start, end, error",
    [
        (None, ts("2024-01-01T00:00:00"), MissingParameter),
        (ts("2024-02-01T00:00:00"), ts("2024-01-01T00:00:00"), InvalidDateRange),
        (ts("2023-01-01T00:00:00"), ts("2024-06-01T00:00:00"), PeriodTooLarge),
    ],
)
def test_invalid_ranges_never_reach_the_store(start, end, error):
    store = january_store()
    with pytest.raises(error):
        AnalyticsService(store).get_analytics(start, end)
    assert store.opened == 0
    assert store.calls == []


def test_storage_failure_aborts_everything():
    store = january_store()
    store.fail("aggregate:expense", StorageError("expense aggregate query failed"))

    with pytest.raises(StorageError):
        AnalyticsService(store).get_analytics(*JANUARY)
    assert store.rolled_back == 1
    assert store.committed == 0
    assert "details" not in store.calls


def test_non_transient_failure_is_not_retried():
    store = january_store()
    store.fail("details", StorageError("bad query", cause=ProgrammingError("SELECT", {}, Exception())))

    with pytest.raises(StorageError) as info:
        AnalyticsService(store, retry_policy=fast_retry()).get_analytics(*JANUARY)
    assert isinstance(info.value.cause, ProgrammingError)
    assert store.opened == 1


def test_transient_failure_restarts_the_whole_transaction():
    store = january_store()
    store.fail("details", transient())

    result = AnalyticsService(store, retry_policy=fast_retry()).get_analytics(*JANUARY)
    assert result.income.count == 2
    assert store.opened == 2
    assert store.rolled_back == 1
    assert store.committed == 1
    # Both aggregates were recomputed inside the second transaction
    assert store.calls.count("aggregate:income") == 2


def test_retries_are_bounded():
    store = january_store()
    for _ in range(3):
        store.fail("aggregate:income", transient())

    with pytest.raises(StorageError):
        AnalyticsService(store, retry_policy=fast_retry(attempts=3)).get_analytics(*JANUARY)
    assert store.opened == 3
    assert store.committed == 0


def test_cancelled_before_start():
    cancel = threading.Event()
    cancel.set()
    store = january_store()

    with pytest.raises(OperationCancelled):
        AnalyticsService(store).get_analytics(*JANUARY, deadline=Deadline(cancel_event=cancel))
    assert store.calls == []


def test_cancelled_mid_query():
    cancel = threading.Event()
    store = january_store()

    original_trip = store.trip

    def trip(step):
        original_trip(step)
        if step == "aggregate:income":
            cancel.set()

    store.trip = trip
    with pytest.raises(OperationCancelled):
        AnalyticsService(store).get_analytics(*JANUARY, deadline=Deadline(cancel_event=cancel))
    assert store.rolled_back == 1
    assert "details" not in store.calls


def test_expired_deadline():
    with pytest.raises(OperationTimeout):
        AnalyticsService(january_store()).get_analytics(*JANUARY, deadline=Deadline(timeout=0))


def test_unexpected_errors_become_internal():
    store = january_store()
    cause = KeyError("boom")
    store.fail("details", cause)

    with pytest.raises(InternalError) as info:
        AnalyticsService(store).get_analytics(*JANUARY)
    assert info.value.cause is cause
    assert "boom" not in info.value.message


def test_repeated_calls_are_identical():
    service = AnalyticsService(january_store())
    assert service.get_analytics(*JANUARY) == service.get_analytics(*JANUARY)
