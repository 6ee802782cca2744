"""
Post endpoints: drafts, variations, edits, moves, direct publishing and
scheduling
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
import math

from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    CurrentWorkspace,
    get_current_user,
    get_current_workspace,
    get_db,
    get_linkedin_client,
)
from core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from core.permissions import has_permission
from integrations.linkedin import LinkedInClient, format_post_text
from models.base import PostStatus
from models.user import User
from schemas.api import PaginationMetadata, to_naive_utc
from schemas.posts import (
    CalendarEntry,
    DraftListResponse,
    PostCreateRequest,
    PostMoveRequest,
    PostResponse,
    RescheduleRequest,
    ScheduledPostResponse,
    ScheduleRequest,
)
from services.posts import (
    create_manual_post,
    drop_pending_schedule,
    get_user_post,
    list_drafts,
    list_variations,
    move_post,
    save_post_changes,
)
from services.scheduling import (
    cancel_schedule,
    get_schedule,
    list_schedules,
    reschedule_post,
    schedule_post,
)
from services.workspaces import require_role
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Posts"])

UPDATABLE_FIELDS = ("content", "title", "tags", "status")


@router.post("/posts", response_model=PostResponse, status_code=201)
async def create_post(
    body: PostCreateRequest,
    user: User = Depends(get_current_user),
    current: CurrentWorkspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db)
):
    """Create a manual draft in the current workspace."""
    if not has_permission(current.role, "create"):
        raise ForbiddenError("Insufficient permissions")

    post = await create_manual_post(
        db,
        user.id,
        current.id,
        body.content,
        title=body.title,
        variation_type=body.variation_type,
        tags=body.tags,
    )
    await db.commit()
    return post


@router.get("/posts", response_model=List[PostResponse])
async def get_variations(
    recording_id: Optional[UUID] = Query(None, description="Source recording"),
    transcription_id: Optional[UUID] = Query(None, description="Source transcription"),
    current: CurrentWorkspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db)
):
    """Post variations for a recording or transcription, in variation order."""
    return await list_variations(
        db,
        current.id,
        transcription_id=transcription_id,
        recording_id=recording_id,
    )


@router.get("/drafts", response_model=DraftListResponse)
async def get_drafts(
    request: Request,
    status: str = Query("draft", description="Post status, or 'all'"),
    search: Optional[str] = Query(None, description="Search in content and title"),
    source_type: Optional[str] = Query(None),
    variation_type: Optional[str] = Query(None),
    tags: Optional[str] = Query(None, description="Comma separated; matches any"),
    workspace_id: Optional[UUID] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    request_id = getattr(request.state, "request_id", "-")
    tag_list = [tag.strip() for tag in tags.split(",") if tag.strip()] if tags else None

    logger.info(
        f"[{request_id}] GET /drafts - status={status}, page={page}, limit={limit}, "
        f"search={search}, tags={tag_list}"
    )

    posts, total = await list_drafts(
        db,
        user.id,
        status=status,
        search=search,
        source_type=source_type,
        variation_type=variation_type,
        tags=tag_list,
        workspace_id=workspace_id,
        page=page,
        limit=limit,
    )
    total_pages = math.ceil(total / limit) if total > 0 else 0

    return DraftListResponse(
        posts=[PostResponse.model_validate(post) for post in posts],
        pagination=PaginationMetadata(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
        ),
    )


@router.get("/posts/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_user_post(db, post_id, user.id)


@router.patch("/posts/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: UUID,
    body: Dict[str, Any] = Body(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    post = await get_user_post(db, post_id, user.id)
    changes = {field: body[field] for field in UPDATABLE_FIELDS if field in body}
    return await save_post_changes(db, post, changes)


@router.delete("/posts/{post_id}")
async def delete_post(
    request: Request,
    post_id: UUID,
    hard: bool = Query(False, description="Permanently delete instead of marking deleted"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    request_id = getattr(request.state, "request_id", "-")
    post = await get_user_post(db, post_id, user.id)

    # A deleted post must not be published by a pending schedule
    await drop_pending_schedule(db, post)

    if hard:
        await db.delete(post)
    else:
        post.status = PostStatus.DELETED
        post.updated_at = datetime.utcnow()
    await db.commit()

    logger.info(f"[{request_id}] Deleted post {post_id} (hard={hard})")
    return {"success": True}


@router.post("/posts/{post_id}/move")
async def move_post_to_workspace(
    request: Request,
    post_id: UUID,
    body: PostMoveRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Move a post (and its schedule) to another workspace the user belongs to."""
    request_id = getattr(request.state, "request_id", "-")
    post = await get_user_post(db, post_id, user.id)

    moved_from, moved_to = await move_post(db, post, user.id, body.target_workspace_id)
    await db.commit()

    logger.info(f"[{request_id}] Moved post {post_id} to workspace {moved_to}")
    return {
        "success": True,
        "post": PostResponse.model_validate(post),
        "moved_from": str(moved_from),
        "moved_to": str(moved_to),
    }


@router.post("/posts/{post_id}/publish")
async def publish_post(
    request: Request,
    post_id: UUID,
    user: User = Depends(get_current_user),
    linkedin: LinkedInClient = Depends(get_linkedin_client),
    db: AsyncSession = Depends(get_db)
):
    """Publish a post to the user's LinkedIn profile now."""
    request_id = getattr(request.state, "request_id", "-")
    post = await get_user_post(db, post_id, user.id)
    await require_role(db, post.workspace_id, user.id, "schedule")

    if post.status == PostStatus.PUBLISHED:
        raise BadRequestError("Post is already published")
    if not user.has_linkedin_connection:
        raise BadRequestError("LinkedIn account not connected")

    now = datetime.utcnow()
    if user.linkedin_token_expires_at is not None and user.linkedin_token_expires_at <= now:
        raise BadRequestError("LinkedIn connection expired. Please reconnect your account.")

    result = await linkedin.publish_text(
        user.linkedin_access_token,
        f"urn:li:person:{user.linkedin_profile_id}",
        format_post_text(post.content, post.title),
    )

    post.status = PostStatus.PUBLISHED
    post.published_at = now
    post.linkedin_post_id = result.post_id
    post.updated_at = now

    scheduled = await get_schedule(db, post.id)
    if scheduled is not None and not scheduled.posted:
        scheduled.posted = True
        scheduled.posted_at = now
        scheduled.linkedin_post_id = result.post_id
        scheduled.post_url = result.post_url

    await db.commit()
    logger.info(f"[{request_id}] Published post {post_id} to LinkedIn as {result.post_id}")

    return {
        "success": True,
        "linkedin_post_id": result.post_id,
        "post_url": result.post_url,
        "post": PostResponse.model_validate(post),
    }


# ============================================================================
# Scheduling
# ============================================================================

@router.post("/posts/{post_id}/schedule", response_model=ScheduledPostResponse, status_code=201)
async def create_schedule(
    post_id: UUID,
    body: ScheduleRequest,
    user: User = Depends(get_current_user),
    current: CurrentWorkspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db)
):
    if not has_permission(current.role, "schedule"):
        raise ForbiddenError("Insufficient permissions")

    post = await get_user_post(db, post_id, user.id)
    return await schedule_post(
        db,
        post,
        user.id,
        current.id,
        body.scheduled_for,
        notification_method=body.notification_method,
        is_company_page=body.is_company_page,
    )


@router.patch("/posts/{post_id}/schedule", response_model=ScheduledPostResponse)
async def update_schedule(
    post_id: UUID,
    body: RescheduleRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    post = await get_user_post(db, post_id, user.id)
    await require_role(db, post.workspace_id, user.id, "schedule")
    return await reschedule_post(
        db,
        post,
        body.scheduled_for,
        notification_method=body.notification_method,
        is_company_page=body.is_company_page,
    )


@router.delete("/posts/{post_id}/schedule")
async def delete_schedule(
    post_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    post = await get_user_post(db, post_id, user.id)
    await require_role(db, post.workspace_id, user.id, "schedule")
    await cancel_schedule(db, post)
    return {"success": True, "post": PostResponse.model_validate(post)}


@router.get("/posts/{post_id}/schedule", response_model=ScheduledPostResponse)
async def read_schedule(
    post_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    post = await get_user_post(db, post_id, user.id)
    scheduled = await get_schedule(db, post.id)
    if scheduled is None:
        raise NotFoundError("Post is not scheduled")
    return scheduled


@router.get("/scheduled-posts", response_model=List[CalendarEntry])
async def get_calendar(
    start: Optional[datetime] = Query(None, description="Range start (inclusive)"),
    end: Optional[datetime] = Query(None, description="Range end (inclusive)"),
    current: CurrentWorkspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db)
):
    schedules = await list_schedules(db, current.id, to_naive_utc(start), to_naive_utc(end))
    return [
        CalendarEntry(
            schedule=ScheduledPostResponse.model_validate(scheduled),
            post=PostResponse.model_validate(scheduled.post),
        )
        for scheduled in schedules
        if scheduled.post is not None
    ]
