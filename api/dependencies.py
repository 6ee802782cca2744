"""
FastAPI dependencies: database session, caller identity, current workspace
and third-party integration clients.

Integration providers are separate dependencies so tests can swap them
through ``app.dependency_overrides``.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_session
from core.exceptions import BadRequestError, UnauthorizedError
from integrations.assemblyai import AssemblyAIClient
from integrations.email import EmailSender
from integrations.linkedin import LinkedInClient
from integrations.openrouter import OpenRouterClient
from integrations.storage import LocalAudioStorage
from models.base import WorkspaceRole
from models.user import User
from models.workspace import Workspace
from publishing.notifications import PostNotifier
from publishing.publisher import ScheduledPostPublisher
from services.workspaces import resolve_current_workspace

WORKSPACE_COOKIE = "selected_workspace_id"


async def get_db():
    async for session in get_session():
        yield session


def _parse_uuid(value: Optional[str]) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        return None


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db)
) -> User:
    user_id = _parse_uuid(x_user_id)
    if user_id is None:
        raise UnauthorizedError("Unauthorized")
    user = await db.get(User, user_id)
    if user is None:
        raise UnauthorizedError("Unauthorized")
    return user


@dataclass
class CurrentWorkspace:
    workspace: Workspace
    role: WorkspaceRole

    @property
    def id(self):
        return self.workspace.id


async def get_current_workspace(
    request: Request,
    x_workspace_id: Optional[str] = Header(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> CurrentWorkspace:
    requested = _parse_uuid(x_workspace_id) or _parse_uuid(request.cookies.get(WORKSPACE_COOKIE))
    resolved = await resolve_current_workspace(db, user, requested)
    if resolved is None:
        raise BadRequestError("No workspace selected")
    workspace, role = resolved
    return CurrentWorkspace(workspace=workspace, role=role)


# ============================================================================
# Integrations
# ============================================================================

def get_linkedin_client() -> LinkedInClient:
    # Publish calls are made once per request
    return LinkedInClient(max_retries=1)


def get_llm_client() -> OpenRouterClient:
    return OpenRouterClient()


def get_transcriber() -> AssemblyAIClient:
    return AssemblyAIClient()


def get_email_sender() -> EmailSender:
    return EmailSender()


def get_storage() -> LocalAudioStorage:
    return LocalAudioStorage(settings.STORAGE_DIR)


def get_publisher(
    db: AsyncSession = Depends(get_db),
    linkedin: LinkedInClient = Depends(get_linkedin_client),
    email_sender: EmailSender = Depends(get_email_sender)
) -> ScheduledPostPublisher:
    return ScheduledPostPublisher(db, linkedin=linkedin, notifier=PostNotifier(email_sender=email_sender))
