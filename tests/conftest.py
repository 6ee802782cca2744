"""
Pytest configuration and fixtures
"""

import os

# Settings are read at import time; keep the in-process scheduler off for tests
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
import pytest_asyncio
import httpx
from datetime import datetime, timedelta
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool, StaticPool
from typing import AsyncGenerator
from models import Base, User, Post, ScheduledPost, Transcription, VoiceRecording
from models.base import NotificationMethod, PostStatus, RecordingStatus, SourceType, VariationType
from services.workspaces import create_workspace

# Test database URL (defaults to in-memory SQLite; set TEST_DATABASE_URL to run against Postgres)
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine"""
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DATABASE_URL,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_async_engine(
            TEST_DATABASE_URL,
            echo=False,
            poolclass=NullPool,  # Disable connection pooling for tests
        )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


# ============================================================================
# Factories
# ============================================================================

@pytest.fixture
def make_user(db_session):
    """Create and commit a user"""
    counter = {"n": 0}

    async def _make_user(email=None, **fields):
        counter["n"] += 1
        user = User(email=email or f"user{counter['n']}@example.com", name=f"User {counter['n']}", **fields)
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_workspace(db_session):
    """Create and commit a workspace owned by ``owner``"""

    async def _make_workspace(owner, name=None, **fields):
        workspace = await create_workspace(db_session, owner, name)
        for key, value in fields.items():
            setattr(workspace, key, value)
        await db_session.commit()
        return workspace

    return _make_workspace


@pytest.fixture
def make_post(db_session):
    """Create and commit a post"""

    async def _make_post(user, workspace, content="A post about shipping small changes often.", **fields):
        post = Post(
            workspace_id=workspace.id,
            user_id=user.id,
            source_type=fields.pop("source_type", SourceType.MANUAL),
            variation_type=fields.pop("variation_type", VariationType.PROFESSIONAL),
            status=fields.pop("status", PostStatus.DRAFT),
            tags=fields.pop("tags", []),
            **fields,
        )
        post.set_content(content)
        db_session.add(post)
        await db_session.commit()
        return post

    return _make_post


@pytest.fixture
def make_schedule(db_session):
    """Schedule a post directly (bypasses the future-time check)"""

    async def _make_schedule(post, scheduled_for=None, **fields):
        scheduled = ScheduledPost(
            post_id=post.id,
            workspace_id=post.workspace_id,
            user_id=post.user_id,
            scheduled_for=scheduled_for or datetime.utcnow() - timedelta(minutes=1),
            notification_method=fields.pop("notification_method", NotificationMethod.EMAIL),
            **fields,
        )
        post.status = PostStatus.SCHEDULED
        post.scheduled_at = scheduled.scheduled_for
        db_session.add(scheduled)
        await db_session.commit()
        return scheduled

    return _make_schedule


@pytest.fixture
def make_transcription(db_session):
    """Create a recording with a transcription"""

    async def _make_transcription(user, workspace, text="I learned that shipping small changes beats big launches."):
        recording = VoiceRecording(
            workspace_id=workspace.id,
            user_id=user.id,
            storage_path=f"{workspace.id}/voice-recordings/{user.id}/1700000000000-abcd1234.webm",
            file_size_bytes=2048,
            mime_type="audio/webm",
            duration_seconds=42.0,
            status=RecordingStatus.TRANSCRIBED,
        )
        db_session.add(recording)
        await db_session.flush()

        transcription = Transcription(
            recording_id=recording.id,
            workspace_id=workspace.id,
            raw_text=text,
            processed_text=text,
            transcription_model="assemblyai",
            word_count=len(text.split()),
            character_count=len(text),
        )
        db_session.add(transcription)
        await db_session.commit()
        return transcription

    return _make_transcription


# ============================================================================
# API client
# ============================================================================

@pytest_asyncio.fixture
async def api_client(db_session):
    """HTTP client bound to the app with the test session as ``get_db``"""
    from api.dependencies import get_db
    from api.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def auth_headers(user, workspace=None):
    headers = {"X-User-Id": str(user.id)}
    if workspace is not None:
        headers["X-Workspace-Id"] = str(workspace.id)
    return headers


@pytest.fixture
def auth():
    return auth_headers
