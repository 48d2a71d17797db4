from sqlalchemy.dialects import postgresql

from sales_tracker.deadline import Deadline
from sales_tracker.models import Item, ItemKind
from sales_tracker.stores.sql import SqlAnalyticsStore, ordered_set_aggregate_query
from tests.fakes import ts


class RecordingConnection:
    def __init__(self):
        self.statements = []

    def exec_driver_sql(self, statement):
        self.statements.append(statement)


class RecordingSession:
    def __init__(self):
        self.connection_options = None
        self.recorded = RecordingConnection()

    def connection(self, execution_options=None):
        self.connection_options = execution_options
        return self.recorded


class PostgresDatabase:
    is_postgres = True
    is_sqlite = False


def test_aggregate_query_uses_percentile_cont():
    condition = Item.occurred_at.between(ts("2024-01-01T00:00:00"), ts("2024-01-31T00:00:00")) & (
        Item.kind == ItemKind.INCOME
    )
    compiled = ordered_set_aggregate_query(condition).compile(dialect=postgresql.dialect())
    sql = str(compiled)

    assert "coalesce(sum(items.amount)" in sql
    assert "coalesce(avg(items.amount)" in sql
    assert "count(items.id)" in sql
    assert sql.count("percentile_cont(") == 2
    assert sql.count("WITHIN GROUP (ORDER BY items.amount)") == 2
    assert "BETWEEN" in sql
    assert sorted(v for v in compiled.params.values() if isinstance(v, float)) == [0.5, 0.9]


def test_postgres_snapshot_is_repeatable_read_and_read_only():
    session = RecordingSession()

    SqlAnalyticsStore(PostgresDatabase())._begin_read_only(session, Deadline(timeout=2.5))

    assert session.connection_options == {"isolation_level": "REPEATABLE READ"}
    assert session.recorded.statements[0] == "SET TRANSACTION READ ONLY"
    assert session.recorded.statements[1].startswith("SET LOCAL statement_timeout = ")
    timeout_ms = int(session.recorded.statements[1].rsplit(" ", 1)[1])
    assert 0 < timeout_ms <= 2500


def test_postgres_snapshot_without_deadline_sets_no_timeout():
    session = RecordingSession()

    SqlAnalyticsStore(PostgresDatabase())._begin_read_only(session, Deadline())

    assert session.recorded.statements == ["SET TRANSACTION READ ONLY"]
