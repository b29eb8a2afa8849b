"""
Global pytest configuration and fixtures for the hospital admin RBAC test suite.
"""
import os

# Set test environment before the application reads its configuration
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only-32-chars"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ADD_USER_RATE_LIMIT"] = "1000/minute"
os.environ.pop("SMTP_HOST", None)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.core.database.base import Base  # noqa: E402
from app.core.database.engine import build_engine, build_sessionmaker, get_db, import_models  # noqa: E402
from app.features.users.verification import VerificationCodeSender, get_code_sender  # noqa: E402
from app.main import app  # noqa: E402

# Import fixtures from fixture modules
from tests.fixtures.user_fixtures import *  # noqa: F403, F401, E402
from tests.fixtures.permission_fixtures import *  # noqa: F403, F401, E402


class RecordingCodeSender(VerificationCodeSender):
    """Collects (email, code) pairs instead of sending them."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []

    async def send(self, email: str, code: str) -> None:
        self.sent.append((email, code))


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh SQLite database file per test."""
    import_models()
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    """Session for arranging and inspecting state directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def code_sender() -> RecordingCodeSender:
    return RecordingCodeSender()


@pytest_asyncio.fixture
async def client(session_factory, code_sender):
    """HTTP client bound to the app, using the test database and code sender."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_code_sender] = lambda: code_sender

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
