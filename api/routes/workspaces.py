"""
Workspace endpoints: lifecycle, members, ownership, credits, posting
schedule and workspace switching
"""

from datetime import datetime
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import WORKSPACE_COOKIE, get_current_user, get_db, get_storage
from core.exceptions import ForbiddenError, StorageError
from core.permissions import has_permission, is_owner
from integrations.storage import LocalAudioStorage
from models.user import User
from schemas.workspaces import (
    MemberResponse,
    MemberRoleUpdateRequest,
    PostingScheduleUpdateRequest,
    TransferOwnershipRequest,
    WorkspaceCreateRequest,
    WorkspaceResponse,
    WorkspaceSwitchRequest,
    WorkspaceUpdateRequest,
    WorkspaceWithRole,
)
from services import credits
from services.workspaces import (
    change_member_role,
    count_members,
    create_workspace,
    delete_workspace,
    get_posting_schedule,
    list_members,
    list_user_workspaces,
    merge_posting_schedule,
    remove_member,
    require_role,
    transfer_ownership,
)
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/workspaces", tags=["Workspaces"])

COOKIE_MAX_AGE_SECONDS = 60 * 60 * 24 * 365


def with_role(workspace, role) -> WorkspaceWithRole:
    data = WorkspaceResponse.model_validate(workspace).model_dump()
    return WorkspaceWithRole(**data, role=role)


@router.get("", response_model=List[WorkspaceWithRole])
async def list_workspaces(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return [with_role(workspace, role) for workspace, role in await list_user_workspaces(db, user.id)]


@router.post("", response_model=WorkspaceWithRole, status_code=201)
async def create(
    request: Request,
    body: WorkspaceCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    request_id = getattr(request.state, "request_id", "-")
    workspace = await create_workspace(db, user, body.name)
    await db.commit()
    logger.info(f"[{request_id}] Created workspace {workspace.id}")
    return with_role(workspace, "owner")


@router.post("/switch")
async def switch_workspace(
    body: WorkspaceSwitchRequest,
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Remember the selected workspace in a cookie."""
    workspace, role = await require_role(db, body.workspace_id, user.id)
    response.set_cookie(
        WORKSPACE_COOKIE,
        str(workspace.id),
        max_age=COOKIE_MAX_AGE_SECONDS,
        httponly=True,
        samesite="lax",
    )
    return {"success": True, "workspace": with_role(workspace, role)}


@router.get("/{workspace_id}")
async def get_workspace_detail(
    workspace_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    workspace, role = await require_role(db, workspace_id, user.id)
    return {
        "workspace": with_role(workspace, role),
        "member_count": await count_members(db, workspace.id),
        "posting_schedule": get_posting_schedule(workspace),
    }


@router.patch("/{workspace_id}", response_model=WorkspaceWithRole)
async def update_workspace(
    workspace_id: UUID,
    body: WorkspaceUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Owners and admins may rename; only the owner may change the plan."""
    workspace, role = await require_role(db, workspace_id, user.id, "edit_workspace")

    if body.name is not None and body.name.strip():
        workspace.name = body.name.strip()
    if body.plan is not None:
        if not is_owner(role):
            raise ForbiddenError("Only the owner can change the plan")
        workspace.plan = body.plan

    workspace.updated_at = datetime.utcnow()
    await db.commit()
    return with_role(workspace, role)


@router.delete("/{workspace_id}")
async def remove_workspace(
    request: Request,
    workspace_id: UUID,
    user: User = Depends(get_current_user),
    storage: LocalAudioStorage = Depends(get_storage),
    db: AsyncSession = Depends(get_db)
):
    """Delete a workspace with all of its content. Refused for the caller's only workspace."""
    request_id = getattr(request.state, "request_id", "-")
    workspace, _ = await require_role(db, workspace_id, user.id)

    storage_paths = await delete_workspace(db, workspace, user.id)
    await db.commit()

    for path in storage_paths:
        try:
            storage.delete(path)
        except StorageError as e:
            logger.warning(f"[{request_id}] Could not remove {path}: {e.message}")

    logger.info(f"[{request_id}] Deleted workspace {workspace_id}")
    return {"success": True}


# ============================================================================
# Members
# ============================================================================

@router.get("/{workspace_id}/members", response_model=List[MemberResponse])
async def get_members(
    workspace_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await require_role(db, workspace_id, user.id)
    return [
        MemberResponse(
            user_id=member_user.id,
            email=member_user.email,
            name=member_user.name,
            role=member.role,
            joined_at=member.created_at,
        )
        for member, member_user in await list_members(db, workspace_id)
    ]


@router.patch("/{workspace_id}/members/{member_user_id}")
async def update_member(
    workspace_id: UUID,
    member_user_id: UUID,
    body: MemberRoleUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    workspace, _ = await require_role(db, workspace_id, user.id, "invite")
    membership = await change_member_role(db, workspace, member_user_id, body.role)
    await db.commit()
    return {"success": True, "user_id": str(member_user_id), "role": membership.role.value}


@router.delete("/{workspace_id}/members/{member_user_id}")
async def delete_member(
    workspace_id: UUID,
    member_user_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    workspace, _ = await require_role(db, workspace_id, user.id, "invite")
    await remove_member(db, workspace, member_user_id)
    await db.commit()
    return {"success": True}


@router.post("/{workspace_id}/transfer-ownership")
async def transfer(
    workspace_id: UUID,
    body: TransferOwnershipRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    workspace, _ = await require_role(db, workspace_id, user.id, "delete_workspace")
    await transfer_ownership(db, workspace, user.id, body.new_owner_id)
    await db.commit()
    return {"success": True, "owner_id": str(workspace.owner_id)}


# ============================================================================
# Credits and posting schedule
# ============================================================================

@router.get("/{workspace_id}/credits")
async def get_credits(
    workspace_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    workspace, _ = await require_role(db, workspace_id, user.id)
    return await credits.usage_report(db, workspace)


@router.get("/{workspace_id}/schedule")
async def get_schedule_settings(
    workspace_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    workspace, _ = await require_role(db, workspace_id, user.id)
    return {"posting_schedule": get_posting_schedule(workspace)}


@router.patch("/{workspace_id}/schedule")
async def update_schedule_settings(
    workspace_id: UUID,
    body: PostingScheduleUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    workspace, role = await require_role(db, workspace_id, user.id)
    if not has_permission(role, "edit_workspace"):
        raise ForbiddenError("Only owners and admins can change the posting schedule")

    schedule = merge_posting_schedule(workspace, body.model_dump(exclude_none=True))
    workspace.updated_at = datetime.utcnow()
    await db.commit()
    return {"posting_schedule": schedule}
