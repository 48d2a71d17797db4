import pytest
from fastapi.testclient import TestClient

from sales_tracker.app import create_app
from sales_tracker.config import Settings
from sales_tracker.database import Database
from sales_tracker.stores import SqlAnalyticsStore, SqlItemStore


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'test.db'}")
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture
def item_store(database):
    return SqlItemStore(database)


@pytest.fixture
def analytics_store(database):
    return SqlAnalyticsStore(database)


@pytest.fixture
def client(tmp_path):
    settings = Settings(database_path=tmp_path / "api.db", retry_attempts=1, _env_file=None)
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client
