"""
Pydantic schemas for posts, drafts and scheduling
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from models.base import NotificationMethod, PostStatus, SourceType, VariationType
from schemas.api import PaginationMetadata, to_naive_utc


class PostResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    user_id: UUID
    transcription_id: Optional[UUID] = None
    amplification_job_id: Optional[UUID] = None
    source_type: SourceType
    variation_type: VariationType
    content: str
    title: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    status: PostStatus
    word_count: int
    character_count: int
    scheduled_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    linkedin_post_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @validator("tags", pre=True)
    def none_tags_to_list(cls, v):
        return v or []

    class Config:
        from_attributes = True
        use_enum_values = True


class PostCreateRequest(BaseModel):
    content: str
    title: Optional[str] = None
    variation_type: Optional[str] = None
    tags: Optional[List[str]] = None


class PostMoveRequest(BaseModel):
    target_workspace_id: UUID


class DraftListResponse(BaseModel):
    posts: List[PostResponse]
    pagination: PaginationMetadata


# ============================================================================
# Scheduling
# ============================================================================

class ScheduledPostResponse(BaseModel):
    id: UUID
    post_id: UUID
    workspace_id: UUID
    user_id: UUID
    scheduled_for: datetime
    notification_method: NotificationMethod
    is_company_page: bool
    notification_sent: bool
    notification_sent_at: Optional[datetime] = None
    posted: bool
    posted_at: Optional[datetime] = None
    linkedin_post_id: Optional[str] = None
    post_url: Optional[str] = None
    error_message: Optional[str] = None
    retry_count: int
    created_at: datetime

    class Config:
        from_attributes = True
        use_enum_values = True


class ScheduleRequest(BaseModel):
    scheduled_for: datetime
    notification_method: NotificationMethod = NotificationMethod.EMAIL
    is_company_page: bool = False

    @validator("scheduled_for")
    def normalize_timezone(cls, v):
        return to_naive_utc(v)


class RescheduleRequest(BaseModel):
    scheduled_for: datetime
    notification_method: Optional[NotificationMethod] = None
    is_company_page: Optional[bool] = None

    @validator("scheduled_for")
    def normalize_timezone(cls, v):
        return to_naive_utc(v)


class CalendarEntry(BaseModel):
    schedule: ScheduledPostResponse
    post: PostResponse
