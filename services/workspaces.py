"""
Workspace lifecycle, membership and settings.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from core.permissions import has_permission
from models.amplification_job import AmplificationJob
from models.base import WorkspacePlan, WorkspaceRole
from models.carousel import Carousel
from models.post import Post
from models.scheduled_post import ScheduledPost
from models.transcription import Transcription
from models.user import User
from models.voice_recording import VoiceRecording
from models.workspace import CreditUsage, Workspace, WorkspaceMember
import logging

logger = logging.getLogger(__name__)

DEFAULT_POSTING_SCHEDULE = {
    "days": [1, 2, 3, 4, 5],
    "times": ["09:00", "12:00", "17:00"],
    "timezone": "UTC",
}
ASSIGNABLE_ROLES = {WorkspaceRole.ADMIN, WorkspaceRole.EDITOR, WorkspaceRole.VIEWER}
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def default_workspace_name(email: Optional[str]) -> str:
    prefix = (email or "").split("@")[0] or "My"
    return f"{prefix}'s Workspace"


async def create_workspace(db: AsyncSession, owner: User, name: Optional[str] = None) -> Workspace:
    """Create a workspace with an owner membership. The caller commits."""
    workspace = Workspace(
        name=(name or "").strip() or default_workspace_name(owner.email),
        owner_id=owner.id,
        plan=WorkspacePlan.STARTER,
        credits_total=settings.DEFAULT_WORKSPACE_CREDITS,
        credits_remaining=settings.DEFAULT_WORKSPACE_CREDITS,
    )
    db.add(workspace)
    await db.flush()

    db.add(WorkspaceMember(workspace_id=workspace.id, user_id=owner.id, role=WorkspaceRole.OWNER))
    await db.flush()
    logger.info(f"Created workspace {workspace.id} for user {owner.id}")
    return workspace


async def get_membership(db: AsyncSession, workspace_id, user_id) -> Optional[WorkspaceMember]:
    result = await db.execute(
        select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def get_role(db: AsyncSession, workspace: Workspace, user_id) -> Optional[WorkspaceRole]:
    membership = await get_membership(db, workspace.id, user_id)
    if membership is not None:
        return WorkspaceRole(membership.role)
    if workspace.owner_id == user_id:
        return WorkspaceRole.OWNER
    return None


async def get_workspace(db: AsyncSession, workspace_id) -> Workspace:
    workspace = await db.get(Workspace, workspace_id)
    if workspace is None:
        raise NotFoundError("Workspace not found", context={"workspace_id": str(workspace_id)})
    return workspace


async def require_role(
    db: AsyncSession,
    workspace_id,
    user_id,
    capability: str = "view"
) -> Tuple[Workspace, WorkspaceRole]:
    """
    Load a workspace and check the user's role grants ``capability``.

    Raises:
        NotFoundError: workspace does not exist
        ForbiddenError: user is not a member or lacks the capability
    """
    workspace = await get_workspace(db, workspace_id)
    role = await get_role(db, workspace, user_id)
    if role is None:
        raise ForbiddenError("Not a member of this workspace", context={"workspace_id": str(workspace_id)})
    if not has_permission(role, capability):
        raise ForbiddenError(
            "Insufficient permissions",
            context={"workspace_id": str(workspace_id), "role": role.value, "capability": capability}
        )
    return workspace, role


async def resolve_current_workspace(
    db: AsyncSession,
    user: User,
    requested_id=None
) -> Optional[Tuple[Workspace, WorkspaceRole]]:
    """
    Resolution order: requested workspace (if a member), first membership,
    first owned workspace.
    """
    if requested_id is not None:
        workspace = await db.get(Workspace, requested_id)
        if workspace is not None:
            role = await get_role(db, workspace, user.id)
            if role is not None:
                return workspace, role

    result = await db.execute(
        select(Workspace, WorkspaceMember.role)
        .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
        .where(WorkspaceMember.user_id == user.id)
        .order_by(WorkspaceMember.created_at.asc())
        .limit(1)
    )
    row = result.first()
    if row is not None:
        return row[0], WorkspaceRole(row[1])

    result = await db.execute(
        select(Workspace)
        .where(Workspace.owner_id == user.id)
        .order_by(Workspace.created_at.asc())
        .limit(1)
    )
    owned = result.scalar_one_or_none()
    if owned is not None:
        return owned, WorkspaceRole.OWNER

    return None


async def list_user_workspaces(db: AsyncSession, user_id) -> List[Tuple[Workspace, WorkspaceRole]]:
    result = await db.execute(
        select(Workspace, WorkspaceMember.role)
        .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
        .where(WorkspaceMember.user_id == user_id)
        .order_by(WorkspaceMember.created_at.asc())
    )
    return [(workspace, WorkspaceRole(role)) for workspace, role in result.all()]


async def count_members(db: AsyncSession, workspace_id) -> int:
    result = await db.execute(
        select(func.count(WorkspaceMember.id)).where(WorkspaceMember.workspace_id == workspace_id)
    )
    return result.scalar() or 0


async def list_members(db: AsyncSession, workspace_id) -> List[Tuple[WorkspaceMember, User]]:
    result = await db.execute(
        select(WorkspaceMember, User)
        .join(User, User.id == WorkspaceMember.user_id)
        .where(WorkspaceMember.workspace_id == workspace_id)
        .order_by(WorkspaceMember.created_at.asc())
    )
    return list(result.all())


async def delete_workspace(db: AsyncSession, workspace: Workspace, user_id) -> List[str]:
    """
    Delete a workspace and everything in it. The caller commits.

    Returns:
        Storage paths of the deleted recordings, for file cleanup

    Raises:
        ForbiddenError: caller is not the owner
        BadRequestError: it is the caller's only workspace
    """
    role = await get_role(db, workspace, user_id)
    if role != WorkspaceRole.OWNER:
        raise ForbiddenError("Only the owner can delete a workspace")

    owned_or_member = await list_user_workspaces(db, user_id)
    if len(owned_or_member) <= 1:
        raise BadRequestError("Cannot delete your only workspace")

    workspace_id = workspace.id
    paths_result = await db.execute(
        select(VoiceRecording.storage_path).where(VoiceRecording.workspace_id == workspace_id)
    )
    storage_paths = list(paths_result.scalars().all())

    transcription_ids = select(Transcription.id).where(Transcription.workspace_id == workspace_id)
    job_ids = select(AmplificationJob.id).where(AmplificationJob.workspace_id == workspace_id)

    # Posts moved to other workspaces keep their content but lose the source links
    await db.execute(
        update(Post)
        .where(Post.workspace_id != workspace_id, Post.transcription_id.in_(transcription_ids))
        .values(transcription_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(Post)
        .where(Post.workspace_id != workspace_id, Post.amplification_job_id.in_(job_ids))
        .values(amplification_job_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(Carousel)
        .where(Carousel.workspace_id != workspace_id, Carousel.transcription_id.in_(transcription_ids))
        .values(transcription_id=None)
        .execution_options(synchronize_session=False)
    )

    for model in (
        ScheduledPost,
        Post,
        Carousel,
        AmplificationJob,
        Transcription,
        VoiceRecording,
        CreditUsage,
        WorkspaceMember,
    ):
        await db.execute(
            delete(model)
            .where(model.workspace_id == workspace_id)
            .execution_options(synchronize_session=False)
        )

    await db.execute(
        delete(Workspace).where(Workspace.id == workspace_id).execution_options(synchronize_session=False)
    )
    db.expunge(workspace)
    logger.info(f"Deleted workspace {workspace_id} ({len(storage_paths)} recordings)")
    return storage_paths


async def change_member_role(db: AsyncSession, workspace: Workspace, target_user_id, role: str) -> WorkspaceMember:
    try:
        new_role = WorkspaceRole(role)
    except ValueError:
        raise BadRequestError("Invalid role. Allowed: admin, editor, viewer")
    if new_role not in ASSIGNABLE_ROLES:
        raise BadRequestError("Invalid role. Allowed: admin, editor, viewer")

    membership = await get_membership(db, workspace.id, target_user_id)
    if membership is None:
        raise NotFoundError("Member not found")
    if membership.role == WorkspaceRole.OWNER or workspace.owner_id == target_user_id:
        raise BadRequestError("Cannot change the owner's role. Transfer ownership instead.")

    membership.role = new_role
    return membership


async def remove_member(db: AsyncSession, workspace: Workspace, target_user_id):
    membership = await get_membership(db, workspace.id, target_user_id)
    if membership is None:
        raise NotFoundError("Member not found")
    if membership.role == WorkspaceRole.OWNER or workspace.owner_id == target_user_id:
        raise BadRequestError("Cannot remove the workspace owner")
    await db.delete(membership)


async def transfer_ownership(db: AsyncSession, workspace: Workspace, current_owner_id, new_owner_id):
    """New owner must already be a member; the previous owner becomes admin."""
    if str(new_owner_id) == str(current_owner_id):
        raise BadRequestError("You already own this workspace")

    new_membership = await get_membership(db, workspace.id, new_owner_id)
    if new_membership is None:
        raise BadRequestError("New owner must be a member of the workspace")

    current_membership = await get_membership(db, workspace.id, current_owner_id)
    if current_membership is None:
        current_membership = WorkspaceMember(workspace_id=workspace.id, user_id=current_owner_id)
        db.add(current_membership)

    current_membership.role = WorkspaceRole.ADMIN
    new_membership.role = WorkspaceRole.OWNER
    workspace.owner_id = new_membership.user_id
    logger.info(f"Transferred workspace {workspace.id} from {current_owner_id} to {new_owner_id}")


def get_posting_schedule(workspace: Workspace) -> Dict[str, Any]:
    schedule = dict(DEFAULT_POSTING_SCHEDULE)
    schedule.update(workspace.posting_schedule or {})
    return schedule


def merge_posting_schedule(workspace: Workspace, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Validate ``changes`` and merge them into the workspace's schedule."""
    schedule = get_posting_schedule(workspace)

    days = changes.get("days")
    if days is not None:
        if not isinstance(days, list) or not all(isinstance(d, int) and 1 <= d <= 7 for d in days):
            raise BadRequestError("Days must be integers between 1 and 7")
        schedule["days"] = sorted(set(days))

    times = changes.get("times")
    if times is not None:
        if not isinstance(times, list) or not all(isinstance(t, str) and TIME_PATTERN.match(t) for t in times):
            raise BadRequestError("Times must be in HH:MM format")
        schedule["times"] = sorted(set(times))

    timezone = changes.get("timezone")
    if timezone is not None:
        if not isinstance(timezone, str) or not timezone.strip():
            raise BadRequestError("Timezone must be a non-empty string")
        schedule["timezone"] = timezone.strip()

    workspace.posting_schedule = schedule
    return schedule
