"""
Pytest configuration and fixtures.
Provides an in-memory database, seeded users and an authenticated API client.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import consultrack.models  # noqa: F401  (registers every table on Base.metadata)
from consultrack.main import app
from consultrack.core.rate_limit import limiter
from consultrack.core.security import create_access_token
from consultrack.db.base import Base
from consultrack.db.session import enable_sqlite_savepoints, get_db
from consultrack.models.user import User, UserRole


# Test database URL (in-memory SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_ID = 1
STAFF_ID = 2
MANAGER_ID = 7
OTHER_MANAGER_ID = 8


@pytest.fixture(scope="function")
async def test_engine():
    """
    Create a test engine on a single shared in-memory connection.
    SAVEPOINT support is switched on the same way as for file-based SQLite.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture(scope="function")
def test_session_maker(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture(scope="function")
async def test_db_session(test_session_maker):
    """
    Create a test database session.
    Uses in-memory SQLite for fast tests.
    """
    async with test_session_maker() as session:
        yield session


@pytest.fixture(scope="function")
async def users(test_db_session):
    """An admin, a staff member and two managers (ids 7 and 8)."""
    seeded = {
        "admin": User(id=ADMIN_ID, name="Ada Admin", email="ada@example.com", role=UserRole.ADMIN),
        "staff": User(id=STAFF_ID, name="Sam Staff", email="sam@example.com", role=UserRole.STAFF),
        "manager": User(id=MANAGER_ID, name="Mia Rossi", email="mia@example.com", role=UserRole.MANAGER),
        "other_manager": User(id=OTHER_MANAGER_ID, name="Ben Ortiz", email="ben@example.com", role=UserRole.MANAGER),
    }
    test_db_session.add_all(seeded.values())
    await test_db_session.commit()
    return seeded


@pytest.fixture(scope="function")
def query_log(test_engine):
    """
    Every SQL statement sent to the driver while the fixture is active.
    Clear it right before the call under test to count that call's queries.
    """
    statements = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(test_engine.sync_engine, "before_cursor_execute", _record)
    yield statements
    event.remove(test_engine.sync_engine, "before_cursor_execute", _record)


@pytest.fixture(scope="function")
async def test_client(test_session_maker, users):
    """
    Create a test HTTP client whose requests use the test database.
    """
    async def override_get_db():
        async with test_session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def auth_headers(user_id: int) -> dict:
    """Bearer header for a seeded user."""
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


@pytest.fixture
def admin_headers(users):
    return auth_headers(ADMIN_ID)


@pytest.fixture
def manager_headers(users):
    return auth_headers(MANAGER_ID)


@pytest.fixture
def other_manager_headers(users):
    return auth_headers(OTHER_MANAGER_ID)


@pytest.fixture
def staff_headers(users):
    return auth_headers(STAFF_ID)
