"""
Post drafts: creation, updates, listing and moves between workspaces.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import BadRequestError, NotFoundError
from models.base import VARIATION_ORDER, PostStatus, SourceType, VariationType
from models.post import Post
from models.scheduled_post import ScheduledPost
from models.transcription import Transcription
from services.workspaces import require_role
import logging

logger = logging.getLogger(__name__)

UNSCHEDULED_STATUSES = (PostStatus.DRAFT, PostStatus.ARCHIVED, PostStatus.DELETED)


def coerce_variation(value: Optional[str]) -> VariationType:
    """Unknown or missing variation types fall back to professional."""
    try:
        return VariationType(value)
    except ValueError:
        return VariationType.PROFESSIONAL


def normalize_tags(tags: Any) -> List[str]:
    if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
        raise BadRequestError("Tags must be an array of strings")
    return [tag.strip() for tag in tags if tag.strip()]


def variation_sort_key(post: Post) -> Tuple[int, datetime]:
    value = getattr(post.variation_type, "value", post.variation_type)
    index = VARIATION_ORDER.index(value) if value in VARIATION_ORDER else len(VARIATION_ORDER)
    return index, post.created_at or datetime.min


def new_post(**fields) -> Post:
    content = fields.pop("content")
    post = Post(**fields)
    post.set_content(content)
    return post


async def get_user_post(db: AsyncSession, post_id, user_id) -> Post:
    post = await db.get(Post, post_id)
    if post is None or post.user_id != user_id:
        raise NotFoundError("Post not found", context={"post_id": str(post_id)})
    return post


async def create_manual_post(
    db: AsyncSession,
    user_id,
    workspace_id,
    content: str,
    title: Optional[str] = None,
    variation_type: Optional[str] = None,
    tags: Optional[List[str]] = None
) -> Post:
    content = (content or "").strip()
    if not content:
        raise BadRequestError("Content is required")

    post = new_post(
        workspace_id=workspace_id,
        user_id=user_id,
        source_type=SourceType.MANUAL,
        variation_type=coerce_variation(variation_type),
        content=content,
        title=(title or "").strip() or None,
        tags=normalize_tags(tags) if tags is not None else [],
        status=PostStatus.DRAFT,
    )
    db.add(post)
    await db.flush()
    return post


def apply_post_update(post: Post, changes: Dict[str, Any]) -> Post:
    """Apply PATCH fields. Raises BadRequestError on invalid values or an empty update."""
    if not changes:
        raise BadRequestError("No valid fields to update")

    if "content" in changes:
        content = changes["content"]
        if not isinstance(content, str) or not content.strip():
            raise BadRequestError("Content cannot be empty")
        post.set_content(content)

    if "title" in changes:
        title = changes["title"]
        if isinstance(title, str) and title.strip():
            post.title = title.strip()
        else:
            post.title = None

    if "tags" in changes:
        post.tags = normalize_tags(changes["tags"])

    if "status" in changes:
        try:
            post.status = PostStatus(changes["status"])
        except ValueError:
            allowed = ", ".join(s.value for s in PostStatus)
            raise BadRequestError(f"Invalid status. Allowed: {allowed}")

    post.updated_at = datetime.utcnow()
    return post


async def drop_pending_schedule(db: AsyncSession, post: Post):
    """Remove a schedule that has not fired yet so the publisher never picks the post up."""
    await db.execute(
        delete(ScheduledPost)
        .where(ScheduledPost.post_id == post.id, ScheduledPost.posted.is_(False))
        .execution_options(synchronize_session=False)
    )
    post.scheduled_at = None


async def save_post_changes(db: AsyncSession, post: Post, changes: Dict[str, Any]) -> Post:
    """Apply PATCH fields; moving a post to draft, archived or deleted cancels its pending schedule."""
    previous = post.status
    apply_post_update(post, changes)
    if post.status != previous and post.status in UNSCHEDULED_STATUSES:
        await drop_pending_schedule(db, post)
    await db.commit()
    return post


async def list_variations(
    db: AsyncSession,
    workspace_id,
    transcription_id=None,
    recording_id=None
) -> List[Post]:
    query = select(Post).where(Post.workspace_id == workspace_id, Post.status != PostStatus.DELETED)
    if transcription_id is not None:
        query = query.where(Post.transcription_id == transcription_id)
    elif recording_id is not None:
        query = query.join(Transcription, Transcription.id == Post.transcription_id).where(
            Transcription.recording_id == recording_id
        )
    else:
        raise BadRequestError("recording_id or transcription_id is required")

    result = await db.execute(query)
    return sorted(result.scalars().all(), key=variation_sort_key)


async def list_drafts(
    db: AsyncSession,
    user_id,
    status: str = "draft",
    search: Optional[str] = None,
    source_type: Optional[str] = None,
    variation_type: Optional[str] = None,
    tags: Optional[List[str]] = None,
    workspace_id=None,
    page: int = 1,
    limit: int = 20
) -> Tuple[List[Post], int]:
    """
    The user's posts, newest first.

    Tag filtering matches any of ``tags`` and runs after the query, since
    tag arrays are stored as JSON.
    """
    filters = [Post.user_id == user_id]

    if status != "all":
        try:
            filters.append(Post.status == PostStatus(status))
        except ValueError:
            raise BadRequestError(f"Invalid status: {status}")

    if workspace_id is not None:
        filters.append(Post.workspace_id == workspace_id)

    if search:
        filters.append(or_(Post.content.ilike(f"%{search}%"), Post.title.ilike(f"%{search}%")))

    if source_type:
        try:
            filters.append(Post.source_type == SourceType(source_type))
        except ValueError:
            raise BadRequestError(f"Invalid source type: {source_type}")

    if variation_type:
        try:
            filters.append(Post.variation_type == VariationType(variation_type))
        except ValueError:
            raise BadRequestError(f"Invalid variation type: {variation_type}")

    query = select(Post).where(*filters).order_by(Post.created_at.desc())
    offset = (page - 1) * limit

    if tags:
        wanted = {tag.lower() for tag in tags}
        result = await db.execute(query)
        matching = [
            post for post in result.scalars().all()
            if wanted & {tag.lower() for tag in (post.tags or [])}
        ]
        return matching[offset:offset + limit], len(matching)

    count_result = await db.execute(select(func.count(Post.id)).where(*filters))
    total = count_result.scalar() or 0

    result = await db.execute(query.offset(offset).limit(limit))
    return list(result.scalars().all()), total


async def move_post(db: AsyncSession, post: Post, user_id, target_workspace_id) -> Tuple[Any, Any]:
    """
    Move a post to another workspace the user belongs to. Its schedule, if
    any, moves with it. The caller commits.
    """
    if str(post.workspace_id) == str(target_workspace_id):
        raise BadRequestError("Post is already in this workspace")

    await require_role(db, post.workspace_id, user_id, "edit")
    target, _ = await require_role(db, target_workspace_id, user_id, "create")

    source_workspace_id = post.workspace_id
    post.workspace_id = target.id
    post.updated_at = datetime.utcnow()

    await db.execute(
        update(ScheduledPost)
        .where(ScheduledPost.post_id == post.id)
        .values(workspace_id=target.id)
        .execution_options(synchronize_session=False)
    )
    logger.info(f"Moved post {post.id} from workspace {source_workspace_id} to {target.id}")
    return source_workspace_id, target.id
