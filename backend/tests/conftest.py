"""
Waterfall Manager Backend — Test Configuration (conftest.py)
=============================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── db_engine: in-memory SQLite (aiosqlite, StaticPool) with tables created
    │   └── session_factory → db_session
    │       └── project: a seeded project in phase Proposal
    ├── mock_db_session: AsyncMock session for "no I/O happened" assertions
    ├── authenticator / make_identity / auth_headers: credentials
    └── test_client: httpx AsyncClient over ASGITransport, DB dependency overridden
"""

import os

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret-for-waterfall-manager-suite-0123456789"
os.environ["ROLE_CLAIM_POLICY"] = "reject"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator, Callable, Dict
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db_session
from app.models.phase_transition import PhaseTransition  # noqa: F401
from app.models.phases import Phase, ProjectStatus, Role
from app.models.project import Project
from app.services.auth_service import Identity, TokenAuthenticator

TEST_JWT_SECRET = os.environ["JWT_SECRET"]


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory database per test; StaticPool keeps one shared connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def project(db_session) -> Project:
    """A committed project at phase Proposal, status Planning."""
    now = datetime.now(timezone.utc)
    proj = Project(
        name="ERP System Implementation",
        description="Replace the legacy ERP",
        start_date=datetime(2025, 1, 6, tzinfo=timezone.utc),
        end_date=datetime(2025, 6, 30, tzinfo=timezone.utc),
        status=ProjectStatus.PLANNING,
        budget=Decimal("150000.00"),
        current_phase=Phase.PROPOSAL,
        created_at=now,
        updated_at=now,
    )
    db_session.add(proj)
    await db_session.commit()
    return proj


@pytest.fixture
def mock_db_session():
    """
    Mock async session.

    Used where a test must prove that no SQL was issued, e.g. a rejected
    transition never reaches execute().
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Identities & Tokens
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def authenticator() -> TokenAuthenticator:
    return TokenAuthenticator(secret=TEST_JWT_SECRET)


@pytest.fixture
def make_identity() -> Callable[[Role], Identity]:
    def _make(role: Role) -> Identity:
        return Identity(user_id=uuid4(), email=f"{role.api_name.lower()}@example.com", role=role)
    return _make


@pytest.fixture
def auth_headers(authenticator) -> Callable[[Identity], Dict[str, str]]:
    """Bearer header for an identity, signed with the suite's secret."""
    def _headers(identity: Identity) -> Dict[str, str]:
        token = authenticator.issue_token(identity.user_id, identity.email, identity.role)
        return {"Authorization": f"Bearer {token}"}
    return _headers


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    Each request gets its own session from the test engine, committed or
    rolled back the way the production dependency does it.
    """
    from app.main import app

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
