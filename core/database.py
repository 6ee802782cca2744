"""
Database engine and session management with SQLAlchemy async.

The API process shares ``engine``/``async_session_maker``. Background
runners (the in-process scheduler, scripts) build their own engine with
``build_engine`` so they can dispose of it independently.
"""

from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


def build_engine(database_url: Optional[str] = None, echo: bool = False) -> AsyncEngine:
    """Create an async engine; SQLite URLs get a thread-agnostic connection."""
    url = database_url or settings.DATABASE_URL
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo, connect_args={"check_same_thread": False})
    return create_async_engine(url, echo=echo, poolclass=NullPool)


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


engine = build_engine()
async_session_maker = build_session_maker(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; uncommitted work is rolled back on error."""
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
