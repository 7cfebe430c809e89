"""
Zoo Registry API: Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own SQLite database file (aiosqlite) under
       pytest's tmp_path, so tests never share state or need PostgreSQL.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── db:               Database handle on a fresh SQLite file, tables created
    │                     and dropped again at teardown
    ├── store:            DocumentStore over one open session of `db`
    ├── mock_db_session:  AsyncMock session for error-translation tests
    ├── test_client:      HTTPX AsyncClient against the app, sessions from `db`
    └── auth_headers:     Bearer header for a freshly registered user
"""

import os

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run before any zoo_api import: settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./zoo_registry_test.db"
os.environ["JWT_SECRET_KEY"] = "test-signing-key-0123456789-abcdefghijklmnop"
os.environ["BCRYPT_ROUNDS"] = "4"  # Fast hashing in tests
os.environ["ZOO_DELETE_POLICY"] = "nullify"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator, Dict  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from zoo_api.database import Database, get_db_session  # noqa: E402
from zoo_api.store import DocumentStore  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db(tmp_path) -> AsyncGenerator[Database, None]:
    """
    A Database handle on an empty SQLite file with all tables created.

    Retry waits are zero so connection-failure tests do not sleep.
    """
    database = Database(
        f"sqlite+aiosqlite:///{tmp_path / 'zoo_registry.db'}",
        retry_attempts=1,
        retry_min_wait=0,
        retry_max_wait=0,
    )
    await database.create_all()
    yield database
    await database.drop_all()
    await database.dispose()


@pytest_asyncio.fixture
async def store(db: Database) -> AsyncGenerator[DocumentStore, None]:
    """
    A DocumentStore over one open session.

    Services flush but never commit, so everything a test writes is visible
    to later calls on the same store. The session is closed (rolled back)
    afterwards, including after a failed flush.
    """
    async with db.session_factory() as session:
        yield DocumentStore(session)


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_store_failure(mock_db_session):
            mock_db_session.execute.side_effect = OperationalError(...)
            await DocumentStore(mock_db_session).find(Zoo)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def test_client(db: Database) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to the FastAPI app in-process.

    `get_db_session` is overridden so each request gets its own
    transaction on the test database, exactly as in production.
    """
    from zoo_api.main import app

    async def override_db_session():
        async with db.session() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def register(client: AsyncClient, username: str, password: str) -> Dict:
    response = await client.post("/api/users", json={"username": username, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


@pytest_asyncio.fixture
async def auth_headers(test_client: AsyncClient) -> Dict[str, str]:
    """Authorization header for a freshly registered user."""
    body = await register(test_client, "keeper", "keeper-pw")
    return {"Authorization": f"Bearer {body['token']}"}
