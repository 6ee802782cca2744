"""
Script to run one scheduled-post publish batch (for an external cron)
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import build_engine, build_session_maker
from core.logging import setup_logging
from publishing.publisher import ScheduledPostPublisher

setup_logging()
logger = logging.getLogger(__name__)


async def run_publisher():
    """Publish every due scheduled post once"""

    engine = build_engine()
    AsyncSessionLocal = build_session_maker(engine)

    try:
        async with AsyncSessionLocal() as session:
            summary = await ScheduledPostPublisher(session).run()
            logger.info(
                f"Publish run completed: processed={summary['processed']}, posted={summary['posted']}, "
                f"notified={summary['notified']}, failed={summary['failed']}"
            )
            for error in summary["errors"]:
                logger.warning(error)

    except Exception as e:
        logger.error(f"Publish run error: {str(e)}")
        sys.exit(1)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(run_publisher())
