import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from core.config import settings
from core.database import build_engine, build_session_maker
from publishing.publisher import ScheduledPostPublisher

logger = logging.getLogger(__name__)


class PublishScheduler:
    """Runs the scheduled post publisher on an interval inside the API process"""

    def __init__(self, interval_minutes: int = None):
        self.scheduler = AsyncIOScheduler()
        self.interval_minutes = interval_minutes or settings.PUBLISH_INTERVAL_MINUTES
        self.engine = build_engine()
        self.SessionLocal = build_session_maker(self.engine)

    async def run_publish_job(self):
        """Job to publish due scheduled posts"""
        logger.info("Scheduler: Starting publish job")
        async with self.SessionLocal() as session:
            try:
                publisher = ScheduledPostPublisher(session)
                summary = await publisher.run()
                if summary["processed"]:
                    logger.info(
                        f"Scheduler: publish job finished - posted={summary['posted']}, "
                        f"notified={summary['notified']}, failed={summary['failed']}"
                    )
            except Exception as e:
                logger.error(f"Scheduler: publish job failed - {e}")

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_publish_job,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id="publish_scheduled_posts",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.start()
        logger.info(f"Publish scheduler started (every {self.interval_minutes} min)")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Publish scheduler stopped")
