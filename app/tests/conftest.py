"""
Pytest configuration and fixtures
"""
import os

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["TZ"] = "Asia/Kolkata"

from datetime import datetime, time, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.engine import Engine
from app.main import app
from app.db.base import Base
from app.core.deps import get_clock, get_cooldown_manager, get_db
from app.services.cooldown import CooldownManager, InMemoryCooldownStore

# Import all models to ensure they're registered with Base.metadata
from app.models import (
    Employee,
    Roster,
    AuditLog,
    AttendanceRecord,
    CooldownSnapshot,
    GatePass,
)  # noqa


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Monday 2025-03-10 09:00 in Asia/Kolkata
START = datetime(2025, 3, 10, 3, 30, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock; call it to read the time."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, now: datetime) -> datetime:
        self.now = now
        return now


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cooldown(clock):
    """Cooldown manager on the fake clock with an in-memory store"""
    return CooldownManager(InMemoryCooldownStore(), clock=clock)


@pytest.fixture(scope="function")
def client(db, clock, cooldown):
    """Test client fixture with database, clock and cooldown overrides"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock.now
    app.dependency_overrides[get_cooldown_manager] = lambda: cooldown
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def employee(db):
    """Active employee with code EMP001"""
    emp = Employee(emp_code="EMP001", name="Test Employee", active=True)
    db.add(emp)
    db.commit()
    db.refresh(emp)
    return emp


@pytest.fixture
def roster(db, employee):
    """09:00-18:00 roster with a 10 minute grace period"""
    r = Roster(
        employee_id=employee.id,
        start_time=time(9, 0),
        end_time=time(18, 0),
        grace_period_minutes=10,
        break_duration_minutes=60,
        early_departure_threshold_minutes=15,
    )
    db.add(r)
    db.commit()
    db.refresh(r)
    return r


@pytest.fixture
def session_factory(db):
    """Session factory bound to the test database"""
    return TestingSessionLocal
