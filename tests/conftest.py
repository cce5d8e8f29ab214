"""Pytest configuration and fixtures."""

import os

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SCHEDULER_ENABLED"] = "0"

import pytest
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from soundbox import config
from soundbox.db.database import Base, get_db
from soundbox.db.models import Store, Transaction
from soundbox.services.heartbeat_schema import HeartbeatSchemaCache

TEST_DATABASE_URL = "sqlite:///:memory:"

ADMIN_KEY = "admin-secret"
API_KEY = "cashier-secret"

HEARTBEAT_FULL_DDL = (
    "CREATE TABLE device_heartbeat ("
    "device_token TEXT PRIMARY KEY, store_id TEXT, last_seen TEXT, "
    "ip_address TEXT, firmware_version TEXT)"
)


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create a test database session."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def create_heartbeat_table(engine, ddl=HEARTBEAT_FULL_DDL):
    with engine.begin() as conn:
        conn.execute(text(ddl))


@pytest.fixture
def heartbeat_table(db_engine):
    create_heartbeat_table(db_engine)
    return db_engine


@pytest.fixture
def schema_cache():
    return HeartbeatSchemaCache()


@pytest.fixture(scope="function")
def client(db_session: Session, schema_cache, monkeypatch) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    monkeypatch.setattr(config, "ADMIN_KEY", ADMIN_KEY)
    monkeypatch.setattr(config, "API_KEY", API_KEY)
    app.dependency_overrides[get_db] = override_get_db
    app.state.heartbeat_schema = schema_cache
    test_client = TestClient(app, raise_server_exceptions=False)
    yield test_client
    app.dependency_overrides.clear()
    app.state.heartbeat_schema = HeartbeatSchemaCache()


@pytest.fixture
def admin_headers() -> dict:
    return {"x-admin-key": ADMIN_KEY}


@pytest.fixture
def api_headers() -> dict:
    return {"x-api-key": API_KEY}


@pytest.fixture
def store(db_session: Session) -> Store:
    """Enabled store S1 with device credential tok123."""
    store = Store(store_id="S1", name="Store One", device_token="tok123", enabled=True)
    db_session.add(store)
    db_session.commit()
    db_session.refresh(store)
    return store


@pytest.fixture
def disabled_store(db_session: Session) -> Store:
    store = Store(store_id="S2", name="Store Two", device_token="tok456", enabled=False)
    db_session.add(store)
    db_session.commit()
    db_session.refresh(store)
    return store


@pytest.fixture
def make_transaction(db_session: Session):
    """Insert a queued transaction directly, bypassing the API."""
    def _make(store_id, amount, transaction_id, played=False):
        tx = Transaction(transaction_id=transaction_id, store_id=store_id, amount=amount, played=played)
        db_session.add(tx)
        db_session.commit()
        return tx
    return _make
