"""
LinkedIn connection endpoints: OAuth flow, status, disconnect and company
page setup
"""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import CurrentWorkspace, get_current_user, get_current_workspace, get_db, get_linkedin_client
from core.config import settings
from core.exceptions import APIError, BadRequestError, ForbiddenError, IntegrationError, LinkedInError
from core.permissions import has_permission
from integrations.linkedin import LinkedInClient, decode_oauth_state, encode_oauth_state
from models.user import User
from schemas.workspaces import CompanyPageRequest
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/linkedin", tags=["LinkedIn"])


def dashboard_redirect(query: str) -> RedirectResponse:
    return RedirectResponse(url=f"{settings.APP_URL}/dashboard?{query}", status_code=307)


@router.get("/oauth")
async def start_oauth(
    user: User = Depends(get_current_user),
    linkedin: LinkedInClient = Depends(get_linkedin_client)
):
    """Redirect to LinkedIn's consent screen."""
    if not linkedin.is_configured:
        raise APIError("LinkedIn integration not configured")
    state = encode_oauth_state(str(user.id))
    return RedirectResponse(url=linkedin.authorization_url(state), status_code=307)


@router.get("/callback")
async def oauth_callback(
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    linkedin: LinkedInClient = Depends(get_linkedin_client),
    db: AsyncSession = Depends(get_db)
):
    """
    Complete the OAuth flow and store the personal connection.

    Always redirects back to the dashboard; failures are reported in the
    ``error`` query parameter.
    """
    request_id = getattr(request.state, "request_id", "-")

    if error:
        logger.info(f"[{request_id}] LinkedIn authorization declined: {error}")
        return dashboard_redirect("error=linkedin_denied")
    if not code or not state:
        return dashboard_redirect("error=linkedin_invalid_request")

    try:
        user_id = UUID(decode_oauth_state(state))
    except LinkedInError as e:
        logger.warning(f"[{request_id}] LinkedIn callback rejected: {e.message}")
        return dashboard_redirect(f"error=linkedin_{e.context.get('reason', 'invalid_state')}")
    except ValueError:
        return dashboard_redirect("error=linkedin_invalid_state")

    user = await db.get(User, user_id)
    if user is None:
        return dashboard_redirect("error=linkedin_user_not_found")

    try:
        token = await linkedin.exchange_code(code)
    except IntegrationError as e:
        logger.error(f"[{request_id}] LinkedIn token exchange failed: {e}", extra={"error_context": e.to_dict()})
        return dashboard_redirect("error=linkedin_token_failed")

    try:
        profile = await linkedin.get_userinfo(token["access_token"])
    except IntegrationError as e:
        logger.error(f"[{request_id}] LinkedIn profile lookup failed: {e}", extra={"error_context": e.to_dict()})
        return dashboard_redirect("error=linkedin_profile_failed")

    profile_id = profile.get("sub")
    if not profile_id:
        return dashboard_redirect("error=linkedin_profile_failed")

    user.linkedin_access_token = token["access_token"]
    user.linkedin_profile_id = profile_id
    expires_in = token.get("expires_in")
    user.linkedin_token_expires_at = (
        datetime.utcnow() + timedelta(seconds=int(expires_in)) if expires_in else None
    )
    await db.commit()

    logger.info(f"[{request_id}] LinkedIn connected for user {user.id}")
    return dashboard_redirect("linkedin=connected")


@router.get("/status")
async def connection_status(user: User = Depends(get_current_user)):
    expires_at = user.linkedin_token_expires_at
    expired = expires_at is not None and expires_at <= datetime.utcnow()
    return {
        "connected": user.has_linkedin_connection and not expired,
        "profile_id": user.linkedin_profile_id,
        "expires_at": expires_at.isoformat() if expires_at else None,
        "expired": expired,
    }


@router.post("/disconnect")
async def disconnect(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user.linkedin_access_token = None
    user.linkedin_profile_id = None
    user.linkedin_token_expires_at = None
    await db.commit()
    return {"success": True}


@router.put("/company-page")
async def set_company_page(
    body: CompanyPageRequest,
    user: User = Depends(get_current_user),
    current: CurrentWorkspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db)
):
    """Attach a LinkedIn company page to the current workspace using the caller's token."""
    if not has_permission(current.role, "edit_workspace"):
        raise ForbiddenError("Only owners and admins can connect a company page")
    if not user.linkedin_access_token:
        raise BadRequestError("Connect your LinkedIn account first")

    company_page_id = body.company_page_id.strip()
    if not company_page_id:
        raise BadRequestError("company_page_id is required")

    workspace = current.workspace
    workspace.linkedin_company_page_id = company_page_id
    workspace.linkedin_access_token = user.linkedin_access_token
    workspace.updated_at = datetime.utcnow()
    await db.commit()

    return {"success": True, "workspace_id": str(workspace.id), "company_page_id": company_page_id}
