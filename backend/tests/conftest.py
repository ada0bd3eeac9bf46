"""
Test configuration and fixtures for Timegate.

- Fresh in-memory SQLite database per test (StaticPool keeps one connection)
- TestClient with get_db, clock, hasher and token service overridden
- Cheap bcrypt cost and a fixed signing key so tests are fast and deterministic
"""
from datetime import datetime, timezone
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from timegate.api.v1.endpoints.auth import get_now
from timegate.core.database import Base, get_db
from timegate.core.security import PasswordHasher, TokenService, get_password_hasher, get_token_service
from timegate.main import app
from timegate.models import RoleEnum, User
from tests.factories import create_user

TEST_SECRET_KEY = "test-secret-key"
ADMIN_PASSWORD = "adminpass123"
EMPLOYEE_PASSWORD = "employeepass123"


class FrozenClock:
    """Settable wall clock injected through the get_now dependency."""

    def __init__(self, now: datetime):
        self.now = now

    def set(self, hour: int, minute: int = 0, second: int = 0, day: int = 18) -> datetime:
        self.now = datetime(2026, 10, day, hour, minute, second, tzinfo=timezone.utc)
        return self.now

    def __call__(self) -> datetime:
        return self.now


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def test_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(test_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(bind=test_engine, autocommit=False, autoflush=False)
    session = TestingSessionLocal()
    yield session
    session.close()


# =============================================================================
# Auth primitives
# =============================================================================


@pytest.fixture
def hasher() -> PasswordHasher:
    # Minimum bcrypt cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(TEST_SECRET_KEY, expire_minutes=60 * 24)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 10, 18, 9, 30, 0, tzinfo=timezone.utc))


# =============================================================================
# TestClient Fixtures
# =============================================================================


@pytest.fixture
def client(db: Session, hasher, token_service, clock) -> Generator[TestClient, None, None]:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_password_hasher] = lambda: hasher
    app.dependency_overrides[get_token_service] = lambda: token_service
    app.dependency_overrides[get_now] = clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def admin_user(db: Session, hasher) -> User:
    return create_user(
        db,
        hasher,
        email="admin@example.com",
        password=ADMIN_PASSWORD,
        role=RoleEnum.ADMIN,
        name="Admin User",
    )


@pytest.fixture
def employee_user(db: Session, hasher) -> User:
    """Employee allowed in from 09:00:00 to 18:00:00."""
    return create_user(
        db,
        hasher,
        email="employee@example.com",
        password=EMPLOYEE_PASSWORD,
        role=RoleEnum.EMPLOYEE,
        login_start_time="09:00:00",
        login_end_time="18:00:00",
    )


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user: User, token_service, clock) -> dict:
    issued = token_service.issue(admin_user.id, admin_user.role.value, admin_user.email, now=clock.now)
    return auth_header(issued.access_token)


@pytest.fixture
def employee_headers(employee_user: User, token_service, clock) -> dict:
    issued = token_service.issue(employee_user.id, employee_user.role.value, employee_user.email, now=clock.now)
    return auth_header(issued.access_token)
