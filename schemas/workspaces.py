"""
Pydantic schemas for workspaces and members
"""

from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from models.base import WorkspacePlan, WorkspaceRole


class WorkspaceResponse(BaseModel):
    id: UUID
    name: str
    owner_id: Optional[UUID] = None
    plan: WorkspacePlan
    credits_total: int
    credits_remaining: int
    logo_url: Optional[str] = None
    linkedin_company_page_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
        use_enum_values = True


class WorkspaceWithRole(WorkspaceResponse):
    role: WorkspaceRole


class WorkspaceCreateRequest(BaseModel):
    name: Optional[str] = None


class WorkspaceUpdateRequest(BaseModel):
    name: Optional[str] = None
    plan: Optional[WorkspacePlan] = None


class WorkspaceSwitchRequest(BaseModel):
    workspace_id: UUID


class MemberResponse(BaseModel):
    user_id: UUID
    email: str
    name: Optional[str] = None
    role: WorkspaceRole
    joined_at: datetime

    class Config:
        use_enum_values = True


class MemberRoleUpdateRequest(BaseModel):
    role: str


class TransferOwnershipRequest(BaseModel):
    new_owner_id: UUID


class PostingScheduleUpdateRequest(BaseModel):
    days: Optional[List[int]] = None
    times: Optional[List[str]] = None
    timezone: Optional[str] = None


class CompanyPageRequest(BaseModel):
    company_page_id: str
