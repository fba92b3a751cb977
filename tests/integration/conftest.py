"""
Integration test fixtures for CoastWatch.

Each test gets its own SQLite database file (via aiosqlite) under pytest's
tmp_path, with the schema created from the models. Two sessions on the same
file really contend for locks, which the verification race tests rely on.

All async fixtures and tests use loop_scope="session" to share a single event
loop across the session. This avoids "attached to a different loop" errors.
"""

import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from coastwatch.db.models import (
    Base,
    HazardType,
    Report,
    ReportStatus,
    Severity,
    User,
    UserRole,
    UserStatus,
    utcnow,
)
from coastwatch.db.session import make_session_factory
from coastwatch.services.auth import create_access_token, hash_password
from coastwatch.services.policy import Identity

TEST_PASSWORD = "correct-horse-battery"


# ── Per-test DB lifecycle ────────────────────────────────────────────────────

@pytest_asyncio.fixture(loop_scope="session")
async def test_engine(tmp_path) -> AsyncEngine:
    """Fresh SQLite file with all tables created; disposed after the test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'coastwatch.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return make_session_factory(test_engine)


@pytest_asyncio.fixture(loop_scope="session")
async def db_session(session_factory) -> AsyncSession:
    """Function-scoped session on the test database."""
    session = session_factory()
    yield session
    await session.close()


# ── Users ────────────────────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def password_hash() -> str:
    """One bcrypt hash shared by every seeded user."""
    return hash_password(TEST_PASSWORD)


@pytest_asyncio.fixture(loop_scope="session")
async def users(db_session: AsyncSession, password_hash: str) -> dict[UserRole, User]:
    """One active user per role, committed."""
    seeded = {}
    now = utcnow()
    for role in UserRole:
        user = User(
            id=uuid.uuid4(),
            first_name=role.value.capitalize(),
            last_name="Tester",
            email=f"{role.value}@coastwatch.org",
            password_hash=password_hash,
            role=role,
            status=UserStatus.active,
            created_at=now,
            updated_at=now,
        )
        db_session.add(user)
        seeded[role] = user
    await db_session.commit()
    return seeded


@pytest.fixture
def identities(users: dict[UserRole, User]) -> dict[UserRole, Identity]:
    """Identity per role for the seeded users."""
    return {role: Identity(subject_id=user.id, role=role) for role, user in users.items()}


@pytest.fixture
def auth_headers(users: dict[UserRole, User]) -> Callable[[UserRole], dict[str, str]]:
    """Build Authorization headers for the seeded user of a role."""

    def _headers(role: UserRole) -> dict[str, str]:
        user = users[role]
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}

    return _headers


# ── Reports ──────────────────────────────────────────────────────────────────

@pytest.fixture
def valid_draft() -> dict:
    """A well-formed report submission in API (camelCase) form."""
    return {
        "hazardType": "high-waves",
        "severity": "high",
        "description": "Waves over the sea wall near the harbour entrance.",
        "location": {"type": "Point", "coordinates": [80.2707, 13.0827]},
    }


@pytest_asyncio.fixture(loop_scope="session")
async def seed_report(
    db_session: AsyncSession,
    users: dict[UserRole, User],
) -> Callable[..., Awaitable[Report]]:
    """Factory fixture inserting one report with configurable attributes."""

    async def _seed(
        longitude: float = 80.27,
        latitude: float = 13.08,
        hazard_type: HazardType = HazardType.flood,
        severity: Severity = Severity.medium,
        status: ReportStatus = ReportStatus.pending,
        created_at: datetime | None = None,
        reporter: User | None = None,
    ) -> Report:
        created = created_at or utcnow()
        reviewed = status != ReportStatus.pending
        report = Report(
            id=uuid.uuid4(),
            reporter_id=(reporter or users[UserRole.citizen]).id,
            hazard_type=hazard_type,
            severity=severity,
            description="Seeded hazard report for integration tests.",
            longitude=longitude,
            latitude=latitude,
            status=status,
            verifier_id=users[UserRole.verifier].id if reviewed else None,
            verified_at=created + timedelta(minutes=5) if reviewed else None,
            rejection_reason="Duplicate" if status == ReportStatus.rejected else None,
            created_at=created,
            updated_at=created + timedelta(minutes=5) if reviewed else created,
        )
        db_session.add(report)
        await db_session.commit()
        return report

    return _seed


# ── HTTP client ──────────────────────────────────────────────────────────────

@pytest_asyncio.fixture(loop_scope="session")
async def app_client(test_engine: AsyncEngine, session_factory):
    """httpx AsyncClient with ASGITransport, patched to use the test DB."""
    import coastwatch.db.session as db_session_mod

    original_engine = db_session_mod._engine
    original_factory = db_session_mod._async_session_factory

    db_session_mod._engine = test_engine
    db_session_mod._async_session_factory = session_factory

    from coastwatch.api.main import app

    app.state.redis = None

    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://testserver",
    ) as client:
        yield client

    db_session_mod._engine = original_engine
    db_session_mod._async_session_factory = original_factory
