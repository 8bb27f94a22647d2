"""Shared test fixtures and configuration."""

import os

# Settings are read at import time, so the environment must be set first
os.environ["APP_ENV"] = "testing"
os.environ["SECRET_KEY"] = "test-secret-key-at-least-32-characters-long"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["JOB_DELAY_SCALE"] = "0"
os.environ["SENTRY_DSN"] = ""

from datetime import datetime, timedelta  # noqa: E402
from typing import Dict, Generator, List  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from tracker.api.app import app  # noqa: E402
from tracker.db.base import Base  # noqa: E402
from tracker.db.models import BackgroundJob, IngestionJob, Organization, Project, User  # noqa: E402
from tracker.db.session import get_db  # noqa: E402
from tracker.middleware.rate_limit import limiter  # noqa: E402
from tracker.models.job import (  # noqa: E402
    BackgroundJobType,
    CreateBackgroundJobRequest,
    CreateIngestionJobRequest,
)
from tracker.models.project import ProjectStatus  # noqa: E402
from tracker.services.auth_service import AuthService  # noqa: E402
from tracker.services.background_job_service import BackgroundJobService  # noqa: E402
from tracker.services.ingestion_job_service import IngestionJobService  # noqa: E402


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key constraints for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    """Session factory bound to the test database, as handed to the lifecycle engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    session = session_factory()

    yield session

    session.close()


@pytest.fixture(scope="function")
def db(db_session) -> Generator[Session, None, None]:
    """Alias for db_session for cleaner test signatures."""
    yield db_session


# ============================================================================
# Organization and User Fixtures
# ============================================================================


@pytest.fixture
def organization(db: Session) -> Organization:
    org = Organization(name="Acme Analytics", description="Primary test organization")
    db.add(org)
    db.commit()
    db.refresh(org)
    return org


@pytest.fixture
def other_organization(db: Session) -> Organization:
    """A second organization for isolation tests."""
    org = Organization(name="Globex", description="Another tenant")
    db.add(org)
    db.commit()
    db.refresh(org)
    return org


@pytest.fixture
def user(db: Session, organization: Organization) -> User:
    user = User(email="ada@acme.test", first_name="Ada", last_name="Lovelace", organization_id=organization.id)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def teammate(db: Session, organization: Organization) -> User:
    """Another user in the same organization."""
    user = User(email="grace@acme.test", first_name="Grace", last_name="Hopper", organization_id=organization.id)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def other_user(db: Session, other_organization: Organization) -> User:
    user = User(email="hank@globex.test", first_name="Hank", last_name="Scorpio", organization_id=other_organization.id)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _bearer(user: User) -> Dict[str, str]:
    token = AuthService.create_user_token(user.id, user.email, user.organization_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(user: User) -> Dict[str, str]:
    return _bearer(user)


@pytest.fixture
def teammate_headers(teammate: User) -> Dict[str, str]:
    return _bearer(teammate)


@pytest.fixture
def other_auth_headers(other_user: User) -> Dict[str, str]:
    return _bearer(other_user)


# ============================================================================
# Project Fixtures
# ============================================================================


@pytest.fixture
def now() -> datetime:
    return datetime.utcnow()


@pytest.fixture
def projects(db: Session, user: User, teammate: User, now: datetime) -> List[Project]:
    """
    Four projects in the primary organization.

    Completed ones took exactly 6 and 50 days. The 50-day one finished 150
    days ago, so it is past the default archive window.
    """
    rows = [
        Project(
            title="Quarterly report",
            status=ProjectStatus.COMPLETED,
            user_id=user.id,
            organization_id=user.organization_id,
            created_at=now - timedelta(days=10),
            completed_at=now - timedelta(days=4),
        ),
        Project(
            title="Legacy migration",
            status=ProjectStatus.COMPLETED,
            user_id=user.id,
            organization_id=user.organization_id,
            created_at=now - timedelta(days=200),
            completed_at=now - timedelta(days=150),
        ),
        Project(
            title="Dashboard redesign",
            status=ProjectStatus.ACTIVE,
            user_id=user.id,
            organization_id=user.organization_id,
            created_at=now - timedelta(days=2),
        ),
        Project(
            title="Data catalog",
            status=ProjectStatus.ACTIVE,
            user_id=teammate.id,
            organization_id=teammate.organization_id,
            created_at=now - timedelta(days=40),
        ),
    ]
    db.add_all(rows)
    db.commit()
    for row in rows:
        db.refresh(row)
    return rows


# ============================================================================
# Job Fixtures
# ============================================================================


@pytest.fixture
def ingestion_job(db: Session, user: User) -> IngestionJob:
    """A pending ingestion job owned by `user`."""
    return IngestionJobService.create_job(
        db,
        CreateIngestionJobRequest(filename="sales.csv", file_type="csv", file_size=2048),
        user.id,
        user.organization_id,
    )


@pytest.fixture
def background_job(db: Session, user: User) -> BackgroundJob:
    """A queued recompute_analytics job owned by `user`."""
    return BackgroundJobService.create_job(
        db,
        CreateBackgroundJobRequest(job_type=BackgroundJobType.RECOMPUTE_ANALYTICS),
        user.id,
        user.organization_id,
    )


# ============================================================================
# FastAPI Test Client Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Start every test with empty rate limit counters."""
    limiter.reset()
    yield


@pytest.fixture
def mock_dispatcher(mocker):
    """Keep route handlers from launching real lifecycle tasks."""
    return {
        "ingestion": mocker.patch("tracker.workers.dispatcher.start_ingestion_job"),
        "background": mocker.patch("tracker.workers.dispatcher.start_background_job"),
    }


@pytest.fixture
def client(db_session, mock_dispatcher) -> TestClient:
    """Create a FastAPI test client with database override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Session cleanup handled by db_session fixture

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def authenticated_client(client: TestClient, auth_headers: Dict[str, str]) -> TestClient:
    """Test client authenticated as `user`."""
    client.headers.update(auth_headers)
    return client
