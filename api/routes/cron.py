"""
Cron trigger for the scheduled-post publisher
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from api.dependencies import get_publisher
from core.config import settings
from publishing.publisher import ScheduledPostPublisher
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/cron", tags=["Cron"])


def is_authorized(authorization: Optional[str]) -> bool:
    """The bearer secret is only enforced in production."""
    if not settings.is_production:
        return True
    return bool(settings.CRON_SECRET) and authorization == f"Bearer {settings.CRON_SECRET}"


@router.get("/scheduled-posts")
async def run_scheduled_posts(
    request: Request,
    authorization: Optional[str] = Header(None),
    publisher: ScheduledPostPublisher = Depends(get_publisher)
):
    """
    Publish every due scheduled post (one batch).

    Posts go directly to LinkedIn when a connection exists; otherwise the
    user is sent a "time to post" notification with a share link.
    """
    request_id = getattr(request.state, "request_id", "-")

    if not is_authorized(authorization):
        logger.warning(f"[{request_id}] Unauthorized cron request")
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    try:
        summary = await publisher.run()
    except SQLAlchemyError as e:
        logger.error(f"[{request_id}] Failed to fetch scheduled posts: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch scheduled posts"})

    if not summary["processed"] and not summary["failed"]:
        return {"success": True, "message": "No posts due for processing", "processed": 0}

    return {
        "success": True,
        "results": summary,
        "timestamp": datetime.utcnow().isoformat(),
    }
