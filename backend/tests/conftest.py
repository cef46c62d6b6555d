"""
Test configuration and fixtures for Taskflow tests.

Provides:
- Test database with SQLite in-memory for speed, with the role catalog seeded
- FastAPI test client with database dependency override
- Authentication helpers (JWT token generation)
- Common fixtures for users, workspaces, projects and tasks
- A pinned clock for time-dependent endpoints
"""

import os
import sys
import logging
from datetime import datetime, timedelta, timezone
from typing import Generator, Dict

# Configure the app for tests before anything reads the environment
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SEED_ROLES_ON_STARTUP", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-taskflow")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("ARGON2_ROUNDS", "1")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, JSON
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.dialects.postgresql import JSONB

# Add backend directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, get_db
from main import app
import models
from auth.security import create_access_token
from services.auth_service import register_user
from services.project_service import create_project
from services.role_service import get_role_by_name, seed_roles
from time_utils import get_clock

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

# SQLite in-memory database for fast testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

# Fixed "now" for clock-dependent tests
FROZEN_NOW = datetime(2026, 3, 15, 12, 0, 0, tzinfo=timezone.utc)

DEFAULT_PASSWORD = "password123"


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "no_seed_roles: run the test against an empty role catalog"
    )


@pytest.fixture(scope="function")
def test_db(request) -> Generator[Session, None, None]:
    """
    Create a fresh in-memory SQLite database for each test.

    The role catalog is seeded unless the test is marked ``no_seed_roles``.
    """
    logger.debug("Creating test database")

    # Create engine with SQLite in-memory
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Replace PostgreSQL-specific types with SQLite-compatible types
    for table in Base.metadata.tables.values():
        for column in table.columns:
            if isinstance(column.type, JSONB):
                column.type = JSON()

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create session
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()

    if request.node.get_closest_marker("no_seed_roles") is None:
        seed_roles(db)

    try:
        yield db
    finally:
        db.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)
        logger.debug("Test database cleaned up")


@pytest.fixture(scope="function")
def client(test_db: Session) -> TestClient:
    """
    Create FastAPI test client with database dependency override.
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def frozen_clock(client: TestClient) -> datetime:
    """Pin the clock used by time-dependent endpoints to FROZEN_NOW."""
    app.dependency_overrides[get_clock] = lambda: (lambda: FROZEN_NOW)
    return FROZEN_NOW


def make_user(db: Session, email: str, name: str, password: str = DEFAULT_PASSWORD) -> models.User:
    """Register a user through the normal bootstrap (default workspace included)."""
    user_id, _ = register_user(email=email, name=name, password=password, db=db)
    return db.query(models.User).filter(models.User.id == user_id).first()


def add_member(
    db: Session,
    user: models.User,
    workspace: models.Workspace,
    role_name: models.RoleName = models.RoleName.MEMBER,
) -> models.Member:
    """Add ``user`` to ``workspace`` with the given role."""
    role = get_role_by_name(role_name, db)
    member = models.Member(
        user_id=user.id,
        workspace_id=workspace.id,
        role_id=role.id,
        joined_at=datetime.now(timezone.utc),
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


def create_auth_token(user: models.User, expires_delta: timedelta = None) -> str:
    """
    Helper to create JWT access token for a user.

    Args:
        user: User to create token for
        expires_delta: Optional expiration time override

    Returns:
        JWT access token string
    """
    logger.debug(f"Creating auth token for user {user.id}")
    return create_access_token({"sub": str(user.id)}, expires_delta)


def auth_headers_for(user: models.User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_auth_token(user)}"}


@pytest.fixture(scope="function")
def owner_user(test_db: Session) -> models.User:
    """
    A registered user; owner of their default workspace.
    """
    user = make_user(test_db, "owner@example.com", "Owner User")
    logger.info(f"Created owner user with ID: {user.id}")
    return user


@pytest.fixture(scope="function")
def workspace(test_db: Session, owner_user: models.User) -> models.Workspace:
    """The owner's default workspace."""
    return (
        test_db.query(models.Workspace)
        .filter(models.Workspace.id == owner_user.current_workspace_id)
        .first()
    )


@pytest.fixture(scope="function")
def member_user(test_db: Session, workspace: models.Workspace) -> models.User:
    """A registered user who joined ``workspace`` as MEMBER."""
    user = make_user(test_db, "member@example.com", "Member User")
    add_member(test_db, user, workspace, models.RoleName.MEMBER)
    return user


@pytest.fixture(scope="function")
def admin_user(test_db: Session, workspace: models.Workspace) -> models.User:
    """A registered user who is ADMIN of ``workspace``."""
    user = make_user(test_db, "admin@example.com", "Admin User")
    add_member(test_db, user, workspace, models.RoleName.ADMIN)
    return user


@pytest.fixture(scope="function")
def outsider_user(test_db: Session) -> models.User:
    """A registered user with no membership in ``workspace``."""
    return make_user(test_db, "outsider@example.com", "Outsider User")


@pytest.fixture(scope="function")
def owner_headers(owner_user: models.User) -> Dict[str, str]:
    return auth_headers_for(owner_user)


@pytest.fixture(scope="function")
def project(test_db: Session, owner_user: models.User, workspace: models.Workspace) -> models.Project:
    """A project in ``workspace`` created by the owner."""
    return create_project(
        owner_user.id, workspace.id, "Launch", test_db, emoji="🚀", description="Launch plan"
    )


@pytest.fixture(scope="function")
def task(test_db: Session, owner_user: models.User, project: models.Project) -> models.Task:
    """A TODO task in ``project``."""
    task = models.Task(
        title="Write announcement",
        workspace_id=project.workspace_id,
        project_id=project.id,
        created_by=owner_user.id,
    )
    test_db.add(task)
    test_db.commit()
    test_db.refresh(task)
    return task
