"""Pytest configuration and fixtures."""

import os

# Settings are cached on first import; required values must exist before that.
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-kapsa-tests")
os.environ.setdefault("REPLICATE_API_TOKEN", "r8_test_token")
os.environ["ENVIRONMENT"] = "production"

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from kapsa.config import get_settings
from kapsa.db.base import Base
from kapsa.db.models import (
    ChatSession,
    Course,
    CourseMaterial,
    Profile,
    Test,
    TestQuestion,
    User,
)
from kapsa.db.session import get_db
from kapsa.main import app

settings = get_settings()


def create_access_token(user_id: UUID, *, expires_in_minutes: int = 60) -> str:
    """Sign a token shaped like the identity provider's."""
    payload = {
        "sub": str(user_id),
        "aud": settings.jwt_audience,
        "role": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_in_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


@pytest.fixture
async def engine():
    """In-memory SQLite database shared by every session in a test."""
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
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


def _override_get_db(session_factory):
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return override_get_db


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""
    app.dependency_overrides[get_db] = _override_get_db(session_factory)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


# =============================================================================
# DATA
# =============================================================================


async def _add(session_factory, *rows):
    async with session_factory() as session:
        session.add_all(rows)
        await session.commit()
    return rows[0] if len(rows) == 1 else rows


@pytest.fixture
def add_rows(session_factory):
    """Insert rows in their own committed transaction and return them."""

    async def add(*rows):
        return await _add(session_factory, *rows)

    return add


@pytest.fixture
async def user(session_factory) -> User:
    user = User(email="ana@example.com")
    await _add(session_factory, user)
    await _add(session_factory, Profile(id=user.id, full_name="Ana Lopez", streak_days=3))
    return user


@pytest.fixture
async def other_user(session_factory) -> User:
    return await _add(session_factory, User(email="other@example.com"))


@pytest.fixture
async def course(session_factory, user) -> Course:
    return await _add(session_factory, Course(user_id=user.id, title="Biology 101", subtitle="Cells"))


@pytest.fixture
async def other_course(session_factory, other_user) -> Course:
    return await _add(session_factory, Course(user_id=other_user.id, title="Private Course"))


@pytest.fixture
async def chat_session(session_factory, user, course) -> ChatSession:
    return await _add(session_factory, ChatSession(user_id=user.id, course_id=course.id))


@pytest.fixture
async def material(session_factory, user, course) -> CourseMaterial:
    return await _add(
        session_factory,
        CourseMaterial(
            user_id=user.id,
            course_id=course.id,
            title="Cell Notes",
            type="notes",
            content="The mitochondria is the powerhouse of the cell and produces ATP.",
        ),
    )


@pytest.fixture
async def quiz(session_factory, user, course) -> tuple[Test, list[TestQuestion]]:
    test = await _add(
        session_factory,
        Test(user_id=user.id, course_id=course.id, title="Biology 101 - Quiz", total_count=2),
    )
    questions = await _add(
        session_factory,
        TestQuestion(
            test_id=test.id,
            question_number=1,
            question="What is the capital of France?",
            correct_answer="Paris",
        ),
        TestQuestion(
            test_id=test.id,
            question_number=2,
            question="What does the mitochondria produce?",
            correct_answer="ATP",
        ),
    )
    return test, list(questions)


@pytest.fixture
def token_factory():
    return create_access_token


@pytest.fixture
def auth_headers(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
