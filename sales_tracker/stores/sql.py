"""SQL-backed stores built on SQLModel sessions."""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional

from sqlalchemy import func
from sqlalchemy.exc import DBAPIError, DisconnectionError, OperationalError, SQLAlchemyError
from sqlmodel import Session, select

from sales_tracker.database import Database
from sales_tracker.deadline import Deadline
from sales_tracker.errors import OperationCancelled, OperationTimeout, RecordNotFoundError, StorageError
from sales_tracker.models import Aggregate, Item, ItemKind
from sales_tracker.models.analytics import MEDIAN, PERCENTILE_90
from sales_tracker.models.item import utcnow
from sales_tracker.retry import NO_RETRY, RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)

# How many SQLite VM instructions run between deadline checks
SQLITE_PROGRESS_STEPS = 1000


def _is_transient(exc: SQLAlchemyError) -> bool:
    if isinstance(exc, (OperationalError, DisconnectionError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


@contextmanager
def storage_errors(action: str, deadline: Optional[Deadline] = None) -> Iterator[None]:
    """Translate SQLAlchemy failures into the ledger error taxonomy."""
    try:
        yield
    except SQLAlchemyError as exc:
        if deadline is not None and deadline.cancelled:
            raise OperationCancelled(cause=exc) from exc
        if deadline is not None and deadline.expired:
            raise OperationTimeout(cause=exc) from exc
        raise StorageError(
            f"{action} failed", cause=exc, transient=_is_transient(exc)
        ) from exc


def _rollback(session: Session) -> None:
    try:
        session.rollback()
    except SQLAlchemyError:
        logger.warning("Rollback failed", exc_info=True)


def _in_window(start: datetime, end: datetime):
    return Item.occurred_at.between(start, end)


def ordered_set_aggregate_query(condition):
    """All five aggregate fields in one statement, for dialects with PERCENTILE_CONT."""
    return select(
        func.coalesce(func.sum(Item.amount), 0),
        func.coalesce(func.avg(Item.amount), 0),
        func.count(Item.id),
        func.coalesce(func.percentile_cont(MEDIAN).within_group(Item.amount), 0),
        func.coalesce(func.percentile_cont(PERCENTILE_90).within_group(Item.amount), 0),
    ).where(condition)


class SqlSnapshot:
    """Analytics reads bound to one open read-only transaction."""

    def __init__(self, session: Session, deadline: Deadline, ordered_set_aggregates: bool) -> None:
        self._session = session
        self._deadline = deadline
        self._ordered_set_aggregates = ordered_set_aggregates

    def aggregate(self, kind: ItemKind, start: datetime, end: datetime) -> Aggregate:
        self._deadline.check()
        condition = _in_window(start, end) & (Item.kind == kind)

        with storage_errors(f"{kind.value} aggregate query", self._deadline):
            if self._ordered_set_aggregates:
                query = ordered_set_aggregate_query(condition)
                total, avg, count, median, percent90 = self._session.exec(query).one()
                return Aggregate(
                    sum=float(total),
                    avg=float(avg),
                    count=int(count),
                    median=float(median),
                    percent90=float(percent90),
                )

            # No PERCENTILE_CONT (SQLite): pull the sorted amounts instead
            query = select(Item.amount).where(condition).order_by(Item.amount)
            amounts = self._session.exec(query).all()
        return Aggregate.from_amounts(amounts)

    def details(self, start: datetime, end: datetime) -> list[Item]:
        self._deadline.check()
        query = (
            select(Item)
            .where(_in_window(start, end))
            .order_by(Item.occurred_at.desc(), Item.id.asc())
        )
        with storage_errors("details query", self._deadline):
            return list(self._session.exec(query).all())


class SqlAnalyticsStore:
    """Serves analytics snapshots from the items table."""

    def __init__(self, database: Database) -> None:
        self._database = database

    @contextmanager
    def snapshot(self, deadline: Optional[Deadline] = None) -> Iterator[SqlSnapshot]:
        deadline = deadline or Deadline()
        deadline.check()

        session = self._database.session()
        raw_connection = None
        try:
            with storage_errors("open analytics snapshot", deadline):
                raw_connection = self._begin_read_only(session, deadline)
            try:
                yield SqlSnapshot(session, deadline, ordered_set_aggregates=self._database.is_postgres)
            finally:
                if raw_connection is not None:
                    raw_connection.set_progress_handler(None, 0)
            with storage_errors("commit analytics snapshot", deadline):
                session.commit()
        except BaseException:
            _rollback(session)
            raise
        finally:
            session.close()

    def _begin_read_only(self, session: Session, deadline: Deadline):
        """Start the snapshot transaction; returns the raw SQLite connection if any."""
        if self._database.is_postgres:
            connection = session.connection(
                execution_options={"isolation_level": "REPEATABLE READ"}
            )
            connection.exec_driver_sql("SET TRANSACTION READ ONLY")
            remaining = deadline.remaining()
            if remaining is not None:
                timeout_ms = max(1, int(remaining * 1000))
                connection.exec_driver_sql(f"SET LOCAL statement_timeout = {timeout_ms}")
            return None

        connection = session.connection()
        if not self._database.is_sqlite:
            return None
        raw_connection = connection.connection.dbapi_connection
        raw_connection.set_progress_handler(
            lambda: int(deadline.should_abort()), SQLITE_PROGRESS_STEPS
        )
        return raw_connection


class SqlItemStore:
    """CRUD and pagination over the items table."""

    def __init__(self, database: Database, retry_policy: RetryPolicy = NO_RETRY) -> None:
        self._database = database
        self._retry = retry_policy

    def create(self, item: Item) -> Item:
        values = item.model_dump(exclude={"id"})

        def _create() -> Item:
            row = Item(**values)
            with storage_errors("create item"), self._database.session() as session:
                session.add(row)
                session.commit()
            return row

        return call_with_retry(_create, self._retry)

    def get(self, item_id: int) -> Item:
        def _get() -> Item:
            with storage_errors("get item"), self._database.session() as session:
                item = session.get(Item, item_id)
            if item is None:
                raise RecordNotFoundError(f"Item {item_id} not found")
            return item

        return call_with_retry(_get, self._retry)

    def update(self, item_id: int, changes: dict[str, Any]) -> Item:
        def _update() -> Item:
            with storage_errors("update item"), self._database.session() as session:
                item = session.get(Item, item_id)
                if item is None:
                    raise RecordNotFoundError(f"Item {item_id} not found")
                for field, value in changes.items():
                    setattr(item, field, value)
                item.updated_at = utcnow()
                session.add(item)
                session.commit()
                return item

        return call_with_retry(_update, self._retry)

    def delete(self, item_id: int) -> None:
        def _delete() -> None:
            with storage_errors("delete item"), self._database.session() as session:
                item = session.get(Item, item_id)
                if item is None:
                    raise RecordNotFoundError(f"Item {item_id} not found")
                session.delete(item)
                session.commit()

        call_with_retry(_delete, self._retry)

    def list_page(self, offset: int, limit: int) -> tuple[list[Item], int]:
        def _list() -> tuple[list[Item], int]:
            with storage_errors("list items"), self._database.session() as session:
                # Count and page come from one transaction
                total = session.exec(select(func.count()).select_from(Item)).one()
                query = (
                    select(Item)
                    .order_by(Item.occurred_at.desc(), Item.id.asc())
                    .offset(offset)
                    .limit(limit)
                )
                items = list(session.exec(query).all())
            return items, int(total)

        return call_with_retry(_list, self._retry)
