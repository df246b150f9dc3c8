import asyncio
import os
import tempfile

# Settings are read from the environment; configure before the app is imported
_DB_DIR = tempfile.mkdtemp(prefix="interview-coach-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["TTS_PROVIDER"] = "silence"
os.environ["RECOGNITION_PROVIDER"] = "client"
os.environ["SESSION_SETTLE_DELAY"] = "0"
os.environ["VOICE_LOAD_TIMEOUT"] = "0"
os.environ["RECOGNITION_RESTART_DELAY"] = "0.01"
os.environ["JWT_SECRET"] = "test-secret-for-the-interview-test-suite"
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("OPENAI_API_KEY", None)

import pytest
from fastapi.testclient import TestClient

from interview_coach.auth import current_active_user
from interview_coach.db.base import Base
from interview_coach.db.models.user import User
from interview_coach.db.session import engine
from interview_coach.main import app


@pytest.fixture(scope="session", autouse=True)
def ensure_schema() -> None:
    async def _create() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    asyncio.run(_create())


@pytest.fixture()
def fake_user() -> User:
    return User(
        id=1,
        email="tester@example.com",
        hashed_password="not-used",
        is_active=True,
        is_superuser=False,
        is_verified=True,
        role="user",
    )


@pytest.fixture()
def client(fake_user: User):
    """Client signed in as ``fake_user``; the context keeps one event loop across requests."""
    app.dependency_overrides[current_active_user] = lambda: fake_user
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.pop(current_active_user, None)


@pytest.fixture()
def anon_client():
    with TestClient(app) as c:
        yield c
