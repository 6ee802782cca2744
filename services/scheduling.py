"""
Post scheduling: create, reschedule, cancel and look up publish-queue rows.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from models.base import NotificationMethod, PostStatus
from models.post import Post
from models.scheduled_post import ScheduledPost
import logging

logger = logging.getLogger(__name__)


def _require_future(scheduled_for: datetime, now: datetime):
    if scheduled_for <= now:
        raise BadRequestError("Scheduled time must be in the future")


async def get_schedule(db: AsyncSession, post_id) -> Optional[ScheduledPost]:
    result = await db.execute(select(ScheduledPost).where(ScheduledPost.post_id == post_id))
    return result.scalar_one_or_none()


async def schedule_post(
    db: AsyncSession,
    post: Post,
    user_id,
    workspace_id,
    scheduled_for: datetime,
    notification_method: NotificationMethod = NotificationMethod.EMAIL,
    is_company_page: bool = False,
    now: Optional[datetime] = None
) -> ScheduledPost:
    """
    Queue a post for publishing and mark it scheduled, in one transaction.

    Raises:
        BadRequestError: time is not in the future
        ForbiddenError: post is not in the selected workspace
        ConflictError: post is already scheduled
    """
    now = now or datetime.utcnow()
    _require_future(scheduled_for, now)

    if str(post.workspace_id) != str(workspace_id):
        raise ForbiddenError("Post does not belong to the selected workspace")

    if await get_schedule(db, post.id) is not None:
        raise ConflictError("Post is already scheduled. Use PATCH to reschedule.")

    scheduled = ScheduledPost(
        post_id=post.id,
        workspace_id=post.workspace_id,
        user_id=user_id,
        scheduled_for=scheduled_for,
        notification_method=notification_method,
        is_company_page=is_company_page,
    )
    db.add(scheduled)

    post.status = PostStatus.SCHEDULED
    post.scheduled_at = scheduled_for
    post.updated_at = now

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Post is already scheduled. Use PATCH to reschedule.", original_exception=e)

    logger.info(f"Scheduled post {post.id} for {scheduled_for.isoformat()}")
    return scheduled


async def reschedule_post(
    db: AsyncSession,
    post: Post,
    scheduled_for: datetime,
    notification_method: Optional[NotificationMethod] = None,
    is_company_page: Optional[bool] = None,
    now: Optional[datetime] = None
) -> ScheduledPost:
    """Move an unposted schedule to a new time; notification and retry state reset."""
    now = now or datetime.utcnow()
    _require_future(scheduled_for, now)

    scheduled = await get_schedule(db, post.id)
    if scheduled is None:
        raise NotFoundError("Post is not scheduled")
    if scheduled.posted:
        raise BadRequestError("Cannot reschedule a post that has already been posted")

    scheduled.scheduled_for = scheduled_for
    scheduled.notification_sent = False
    scheduled.notification_sent_at = None
    scheduled.retry_count = 0
    scheduled.error_message = None
    if notification_method is not None:
        scheduled.notification_method = notification_method
    if is_company_page is not None:
        scheduled.is_company_page = is_company_page

    post.scheduled_at = scheduled_for
    post.status = PostStatus.SCHEDULED
    post.updated_at = now

    await db.commit()
    logger.info(f"Rescheduled post {post.id} for {scheduled_for.isoformat()}")
    return scheduled


async def cancel_schedule(db: AsyncSession, post: Post, now: Optional[datetime] = None):
    """Remove an unposted schedule and return the post to draft."""
    now = now or datetime.utcnow()

    scheduled = await get_schedule(db, post.id)
    if scheduled is None:
        raise NotFoundError("Post is not scheduled")
    if scheduled.posted:
        raise BadRequestError("Cannot cancel a post that has already been posted")

    await db.delete(scheduled)
    post.status = PostStatus.DRAFT
    post.scheduled_at = None
    post.updated_at = now

    await db.commit()
    logger.info(f"Cancelled schedule for post {post.id}")


async def list_schedules(
    db: AsyncSession,
    workspace_id,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> List[ScheduledPost]:
    query = (
        select(ScheduledPost)
        .where(ScheduledPost.workspace_id == workspace_id)
        .options(selectinload(ScheduledPost.post))
        .order_by(ScheduledPost.scheduled_for.asc())
    )
    if start is not None:
        query = query.where(ScheduledPost.scheduled_for >= start)
    if end is not None:
        query = query.where(ScheduledPost.scheduled_for <= end)

    result = await db.execute(query)
    return list(result.scalars().all())
