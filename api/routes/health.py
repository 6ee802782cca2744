"""
Health check endpoint with database and publish queue status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, text
from api.dependencies import get_db
from core.config import settings
from schemas.api import HealthCheckResponse, PublishQueueInfo
from models.scheduled_post import ScheduledPost
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


def configured_integrations():
    configured = {
        "openrouter": settings.OPENROUTER_API_KEY,
        "assemblyai": settings.ASSEMBLYAI_API_KEY,
        "linkedin": settings.LINKEDIN_CLIENT_ID and settings.LINKEDIN_CLIENT_SECRET,
        "resend": settings.RESEND_API_KEY,
    }
    return [name for name, value in configured.items() if value]


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Publish queue counters (due now, retries exhausted, still scheduled)
    - Configured integrations
    """

    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    publish_queue = None
    if db_connected:
        now = datetime.utcnow()
        try:
            pending = ScheduledPost.posted.is_(False)
            retries_left = ScheduledPost.retry_count < settings.PUBLISH_MAX_RETRIES

            due = await db.execute(
                select(func.count(ScheduledPost.id)).where(pending, retries_left, ScheduledPost.scheduled_for <= now)
            )
            exhausted = await db.execute(
                select(func.count(ScheduledPost.id)).where(pending, ScheduledPost.retry_count >= settings.PUBLISH_MAX_RETRIES)
            )
            scheduled = await db.execute(
                select(func.count(ScheduledPost.id)).where(pending, ScheduledPost.scheduled_for > now)
            )
            publish_queue = PublishQueueInfo(
                due=due.scalar() or 0,
                exhausted=exhausted.scalar() or 0,
                scheduled=scheduled.scalar() or 0,
            )
        except Exception as e:
            logger.error(f"Failed to fetch publish queue status: {str(e)}")

    return HealthCheckResponse(
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        publish_queue=publish_queue,
        integrations=configured_integrations(),
    )
