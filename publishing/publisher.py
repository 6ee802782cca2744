# ============================================================================
# File: publishing/publisher.py
# Description: Scheduled post publisher run by cron or the in-process scheduler
# ============================================================================
"""
Scheduled Post Publisher - publishes due posts to LinkedIn.

Each run:
1. Fetch - ids of due rows (scheduled_for <= now, not posted, retries left)
2. Claim - lock each row (FOR UPDATE SKIP LOCKED) and re-check eligibility
3. Publish - company page, personal profile, or "time to post" notification
4. Record - success bookkeeping in one commit; failures bump retry_count
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.config import settings
from core.exceptions import IntegrationError, PublishError, SuflateException
from integrations.linkedin import LinkedInClient, LinkedInPostResult, generate_share_url
from models.base import PostStatus
from models.scheduled_post import ScheduledPost
from publishing.notifications import PostNotifier
import logging

logger = logging.getLogger(__name__)

OUTCOME_POSTED = "posted"
OUTCOME_NOTIFIED = "notified"
OUTCOME_SKIPPED = "skipped"


class ScheduledPostPublisher:
    """
    Publishes due scheduled posts.

    Responsibilities:
    - Select due rows in scheduled_for order, bounded by batch size
    - Publish directly when a LinkedIn connection is available
    - Fall back to a notification with a share link otherwise
    - Keep the scheduled row and the post in step (single commit)
    - Track failures per row until the retry ceiling is reached
    """

    def __init__(
        self,
        db_session: AsyncSession,
        linkedin: Optional[LinkedInClient] = None,
        notifier: Optional[PostNotifier] = None,
        batch_size: Optional[int] = None,
        max_retries: Optional[int] = None
    ):
        self.db = db_session
        # Publish calls go out once per attempt; the next run is the retry
        self.linkedin = linkedin or LinkedInClient(max_retries=1)
        self.notifier = notifier or PostNotifier()
        self.batch_size = batch_size or settings.PUBLISH_BATCH_SIZE
        self.max_retries = max_retries or settings.PUBLISH_MAX_RETRIES

    def _eligible(self, now: datetime):
        return (
            ScheduledPost.scheduled_for <= now,
            ScheduledPost.posted.is_(False),
            ScheduledPost.retry_count < self.max_retries,
        )

    async def fetch_due_ids(self, now: datetime) -> List[UUID]:
        result = await self.db.execute(
            select(ScheduledPost.id)
            .where(*self._eligible(now))
            .order_by(ScheduledPost.scheduled_for.asc())
            .limit(self.batch_size)
        )
        return list(result.scalars().all())

    async def claim(self, scheduled_id: UUID, now: datetime) -> Optional[ScheduledPost]:
        """Lock one row if it is still eligible; None if another run holds or finished it."""
        result = await self.db.execute(
            select(ScheduledPost)
            .where(ScheduledPost.id == scheduled_id, *self._eligible(now))
            .options(
                selectinload(ScheduledPost.post),
                selectinload(ScheduledPost.user),
                selectinload(ScheduledPost.workspace),
            )
            .with_for_update(skip_locked=True, of=ScheduledPost)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def run(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Process one batch of due posts.

        Returns:
            Dictionary with processed, posted, notified, failed and errors

        Raises:
            SQLAlchemyError: if the batch query itself fails
        """
        now = now or datetime.utcnow()
        summary = {"processed": 0, "posted": 0, "notified": 0, "failed": 0, "errors": []}

        due_ids = await self.fetch_due_ids(now)
        if not due_ids:
            logger.info("[Publisher] No posts due for processing")
            return summary

        logger.info(f"[Publisher] {len(due_ids)} scheduled posts due")

        for scheduled_id in due_ids:
            try:
                scheduled = await self.claim(scheduled_id, now)
                if scheduled is None:
                    logger.info(f"[Publisher] Scheduled post {scheduled_id} already claimed, skipping")
                    await self.db.rollback()
                    continue

                summary["processed"] += 1
                outcome = await self.process(scheduled, now)
                await self.db.commit()

                if outcome == OUTCOME_SKIPPED:
                    continue
                summary["posted"] += 1
                if outcome == OUTCOME_NOTIFIED:
                    summary["notified"] += 1
                logger.info(f"[Publisher] Scheduled post {scheduled_id}: {outcome}")

            except Exception as e:
                await self.db.rollback()
                message = e.message if isinstance(e, SuflateException) else str(e)
                summary["failed"] += 1
                summary["errors"].append(f"Post {scheduled_id}: {message}")
                logger.error(
                    f"[Publisher] Scheduled post {scheduled_id} failed: {message}",
                    extra={"error_context": e.to_dict() if isinstance(e, SuflateException) else {"error": str(e)}}
                )
                await self._record_failure(scheduled_id, message, now)

        logger.info(
            f"[Publisher] Run complete: processed={summary['processed']}, posted={summary['posted']}, "
            f"notified={summary['notified']}, failed={summary['failed']}"
        )
        return summary

    async def process(self, scheduled: ScheduledPost, now: datetime) -> str:
        """Publish or notify for one claimed row. Changes are left for the caller to commit."""
        post = scheduled.post
        if post is None:
            raise PublishError("Post not found", context={"scheduled_post_id": str(scheduled.id)})

        if post.status in (PostStatus.DELETED, PostStatus.ARCHIVED):
            logger.info(f"[Publisher] Post {post.id} is {post.status.value}, dropping scheduled post {scheduled.id}")
            await self.db.delete(scheduled)
            return OUTCOME_SKIPPED

        workspace = scheduled.workspace
        user = scheduled.user

        if scheduled.is_company_page and workspace is not None and workspace.has_company_page:
            result = await self.linkedin.post_to_company_page(
                workspace.linkedin_access_token,
                workspace.linkedin_company_page_id,
                post.content
            )
            self._mark_published(scheduled, result, now)
            return OUTCOME_POSTED

        if user is not None and user.has_linkedin_connection:
            try:
                result = await self.linkedin.post_to_personal_profile(
                    user.linkedin_access_token,
                    user.linkedin_profile_id,
                    post.content
                )
            except IntegrationError as e:
                logger.warning(
                    f"[Publisher] Direct post failed for scheduled post {scheduled.id}, "
                    f"falling back to notification: {e.message}"
                )
            else:
                self._mark_published(scheduled, result, now)
                return OUTCOME_POSTED

        return await self._notify(scheduled, now)

    def _mark_published(self, scheduled: ScheduledPost, result: LinkedInPostResult, now: datetime):
        scheduled.posted = True
        scheduled.posted_at = now
        scheduled.linkedin_post_id = result.post_id
        scheduled.post_url = result.post_url
        scheduled.error_message = None

        post = scheduled.post
        post.status = PostStatus.PUBLISHED
        post.published_at = now
        post.linkedin_post_id = result.post_id
        post.updated_at = now

    async def _notify(self, scheduled: ScheduledPost, now: datetime) -> str:
        outcome = OUTCOME_POSTED

        if not scheduled.notification_sent:
            share_url = generate_share_url(scheduled.post.content)
            results = await self.notifier.notify(
                scheduled.user,
                scheduled.post.content,
                share_url,
                scheduled.notification_method
            )
            logger.info(f"[Publisher] Notification results for {scheduled.id}: {results}")
            scheduled.notification_sent = True
            scheduled.notification_sent_at = now
            outcome = OUTCOME_NOTIFIED

        # The reminder is the terminal step for posts that cannot be published directly
        scheduled.posted = True
        scheduled.posted_at = now
        return outcome

    async def _record_failure(self, scheduled_id: UUID, message: str, now: datetime):
        try:
            await self.db.execute(
                update(ScheduledPost)
                .where(ScheduledPost.id == scheduled_id)
                .values(
                    retry_count=ScheduledPost.retry_count + 1,
                    error_message=message[:2000],
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[Publisher] Could not record failure for {scheduled_id}: {e}")
