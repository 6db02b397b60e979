import os
import tempfile
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path

# Set environment variables BEFORE any imports that might use settings
_test_db_dir = tempfile.mkdtemp()
_test_db_path = os.path.join(_test_db_dir, "test_shipflow.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_test_db_path}"
os.environ["SECRET_KEY"] = "test-secret-key-min-32-characters-long-for-testing"
os.environ["ALGORITHM"] = "HS256"
os.environ["ACCESS_TOKEN_EXPIRE_MINUTES"] = "30"
os.environ["NOTIFICATION_LANGUAGE"] = "en"
os.environ["COMPANY_NAME"] = "UNIVERSAL SHIPPING SERVICES"
os.environ["NOTIFICATION_SENDER"] = "noreply@uss.example.com"

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from shipflow.main import app
from shipflow.core.security import create_access_token
from shipflow.domain.actors import SYSTEM_ACTOR, Actor, ActorRole
from shipflow.domain.statuses import EntityKind
from shipflow.repositories.memory import InMemoryEntityStore
from shipflow.repositories.sql import SqlAlchemyEntityStore
from shipflow.services.audit import AuditLogger
from shipflow.services.notifications import NotificationDispatcher
from shipflow.services.workflow import WorkflowEngine

ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"

# Engine-level tests run at a fixed instant.
FIXED_NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)

CLIENT_ID = "client-1"
OTHER_CLIENT_ID = "client-2"

DEFAULT_FIELDS = {
    EntityKind.QUOTE: {
        "client_id": CLIENT_ID,
        "client_email": "client@example.com",
        "origin_port": "Casablanca",
        "destination_port": "Marseille",
        "cargo_type": "container",
        "cargo_description": "20ft dry container, textiles",
        "quote_amount": Decimal("1500.00"),
        "currency": "EUR",
    },
    EntityKind.SHIPMENT: {
        "client_id": CLIENT_ID,
        "client_email": "client@example.com",
        "origin_port": "Casablanca",
        "destination_port": "Marseille",
        "cargo_type": "container",
        "internal_notes": "Customs broker: Dupont",
        "client_visible_notes": "Loading scheduled",
    },
    EntityKind.AGENT: {
        "company_name": "Atlas Freight",
        "email": "agent@example.com",
        "country": "Morocco",
        "port": "Tanger Med",
    },
    EntityKind.SUBSCRIPTION: {
        "client_id": CLIENT_ID,
        "client_email": "client@example.com",
        "plan_type": "premium_tracking",
        "is_active": True,
        "start_date": date(2024, 1, 1),
        "end_date": date(2024, 12, 31),
    },
}


def _seeder(store):
    counter = {"n": 0}

    def seed(kind: EntityKind, status: str, **overrides) -> str:
        fields = {**DEFAULT_FIELDS[kind], **overrides, "status": status}
        if kind == EntityKind.SHIPMENT and "tracking_number" not in overrides:
            counter["n"] += 1
            fields["tracking_number"] = f"USS-T{counter['n']:06d}"
        return store.insert(kind, fields)

    return seed


# ============================================================================
# ENGINE FIXTURES (in-memory store, fixed clock)
# ============================================================================


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture(scope="function")
def store() -> InMemoryEntityStore:
    """Fresh in-memory store whose timestamps come from the fixed clock."""
    return InMemoryEntityStore(clock=lambda: FIXED_NOW)


def build_test_engine(store, now: datetime = FIXED_NOW) -> WorkflowEngine:
    return WorkflowEngine(
        store,
        audit=AuditLogger(store),
        dispatcher=NotificationDispatcher(
            store, language="en", brand="UNIVERSAL SHIPPING SERVICES"
        ),
        clock=lambda: now,
    )


@pytest.fixture(scope="function")
def engine(store) -> WorkflowEngine:
    """Workflow engine over the in-memory store."""
    return build_test_engine(store)


@pytest.fixture
def engine_at():
    """Build an engine over a given store whose clock reads a given instant."""
    return build_test_engine


@pytest.fixture(scope="function")
def seed(store):
    """Insert an entity with sensible defaults: seed(kind, status, **overrides) -> id."""
    return _seeder(store)


@pytest.fixture
def admin() -> Actor:
    return Actor(id="admin-1", role=ActorRole.ADMIN)


@pytest.fixture
def client_actor() -> Actor:
    return Actor(id=CLIENT_ID, role=ActorRole.CLIENT)


@pytest.fixture
def other_client_actor() -> Actor:
    return Actor(id=OTHER_CLIENT_ID, role=ActorRole.CLIENT)


@pytest.fixture
def system() -> Actor:
    return SYSTEM_ACTOR


# ============================================================================
# DATABASE / API FIXTURES
# ============================================================================


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test and run migrations."""
    temp_db_dir = tempfile.mkdtemp()
    test_db_path = os.path.join(temp_db_dir, "test.db")
    test_db_url = f"sqlite:///{test_db_path}"

    test_engine = create_engine(
        test_db_url,
        connect_args={"check_same_thread": False},
    )

    # Enable WAL mode to reduce locking issues
    @event.listens_for(test_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

    # Run Alembic migrations to set up the database schema
    alembic_cfg = Config(str(ALEMBIC_INI))
    alembic_cfg.set_main_option("sqlalchemy.url", test_db_url)
    command.upgrade(alembic_cfg, "head")

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        test_engine.dispose()

        for suffix in ["", "-wal", "-shm"]:
            path = f"{test_db_path}{suffix}"
            if os.path.exists(path):
                os.remove(path)
        if os.path.exists(temp_db_dir):
            os.rmdir(temp_db_dir)


@pytest.fixture(scope="function")
def db(db_session):
    """Alias for db_session to match test naming conventions."""
    return db_session


@pytest.fixture(scope="function")
def sql_store(db) -> SqlAlchemyEntityStore:
    return SqlAlchemyEntityStore(db)


@pytest.fixture(scope="function")
def sql_seed(sql_store):
    """Like `seed`, against the migrated SQLite database."""
    return _seeder(sql_store)


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database dependency override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    from shipflow.api.deps import get_db

    app.dependency_overrides[get_db] = override_get_db

    yield TestClient(app)

    app.dependency_overrides.clear()


def _headers(actor_id: str, role: str) -> dict:
    token = create_access_token(data={"sub": actor_id, "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict:
    return _headers("admin-1", "admin")


@pytest.fixture
def client_headers() -> dict:
    return _headers(CLIENT_ID, "client")


@pytest.fixture
def other_client_headers() -> dict:
    return _headers(OTHER_CLIENT_ID, "client")


@pytest.fixture
def agent_headers() -> dict:
    return _headers("agent-1", "agent")


@pytest.fixture
def system_headers() -> dict:
    return _headers("system", "system")
