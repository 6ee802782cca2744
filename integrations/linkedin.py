"""
LinkedIn API client.

Covers the OAuth 2.0 authorization-code flow, profile lookup, and text
publishing to a personal profile (``urn:li:person``) or a company page
(``urn:li:organization``) through the UGC Posts API, with the versioned
Posts API as the preferred route for direct publishing.

Publishing calls are never retried inside a request: LinkedIn accepts no
idempotency key, so a retried POST after an ambiguous failure can post twice.
"""

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote, urlencode

from core.config import settings
from core.exceptions import LinkedInError, ResourceNotFoundError
from integrations.base import HTTPIntegration
import logging

logger = logging.getLogger(__name__)

LINKEDIN_AUTH_URL = "https://www.linkedin.com/oauth/v2/authorization"
LINKEDIN_TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"
LINKEDIN_API_URL = "https://api.linkedin.com"
LINKEDIN_SCOPES = "openid profile email w_member_social"
LINKEDIN_API_VERSION = "202401"
STATE_MAX_AGE_SECONDS = 5 * 60


@dataclass
class LinkedInPostResult:
    post_id: str
    post_url: str


def build_post_url(post_id: str) -> str:
    return f"https://www.linkedin.com/feed/update/{post_id}"


def generate_share_url(content: str) -> str:
    """Pre-filled share dialog URL used when direct posting is not possible."""
    return f"https://www.linkedin.com/feed/?shareActive=true&text={quote(content, safe='')}"


def format_post_text(content: str, title: Optional[str] = None) -> str:
    if title:
        return f"{title}\n\n{content}"
    return content


# ============================================================================
# OAuth state
# ============================================================================

def _sign(payload: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode(), payload, hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).decode().rstrip("=")


def encode_oauth_state(user_id: str, secret: Optional[str] = None, now: Optional[float] = None) -> str:
    """Signed state carrying the user id and issue time."""
    secret = secret or settings.SECRET_KEY
    issued_at = int(now if now is not None else time.time())
    payload = json.dumps({"user_id": str(user_id), "timestamp": issued_at}).encode()
    encoded = base64.urlsafe_b64encode(payload).decode().rstrip("=")
    return f"{encoded}.{_sign(payload, secret)}"


def decode_oauth_state(
    state: str,
    secret: Optional[str] = None,
    max_age: int = STATE_MAX_AGE_SECONDS,
    now: Optional[float] = None
) -> str:
    """
    Validate a state produced by ``encode_oauth_state`` and return the user id.

    Raises:
        LinkedInError: with ``context["reason"]`` of ``invalid_state`` or ``state_expired``
    """
    secret = secret or settings.SECRET_KEY
    try:
        encoded, signature = state.split(".", 1)
        payload = base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4))
        data = json.loads(payload)
        user_id = data["user_id"]
        issued_at = int(data["timestamp"])
    except (ValueError, KeyError, TypeError) as e:
        raise LinkedInError("Invalid OAuth state", context={"reason": "invalid_state"}, original_exception=e)

    if not hmac.compare_digest(signature, _sign(payload, secret)):
        raise LinkedInError("Invalid OAuth state", context={"reason": "invalid_state"})

    current = now if now is not None else time.time()
    if current - issued_at > max_age:
        raise LinkedInError("OAuth state expired", context={"reason": "state_expired"})

    return user_id


# ============================================================================
# Client
# ============================================================================

class LinkedInClient(HTTPIntegration):
    """LinkedIn OAuth and publishing client"""

    service_name = "linkedin"
    error_class = LinkedInError

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        api_url: str = LINKEDIN_API_URL,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.client_id = client_id or settings.LINKEDIN_CLIENT_ID
        self.client_secret = client_secret or settings.LINKEDIN_CLIENT_SECRET
        self.redirect_uri = redirect_uri or settings.linkedin_redirect_uri
        self.api_url = api_url.rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def authorization_url(self, state: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "state": state,
            "scope": LINKEDIN_SCOPES,
        }
        return f"{LINKEDIN_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """Exchange an authorization code for an access token (codes are single use)."""
        response = await self._request(
            "POST",
            LINKEDIN_TOKEN_URL,
            retry=False,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        data = self._json(response)
        if not data.get("access_token"):
            raise LinkedInError("No access token in LinkedIn response", context={"url": LINKEDIN_TOKEN_URL})
        return data

    async def get_userinfo(self, access_token: str) -> Dict[str, Any]:
        response = await self._request(
            "GET",
            f"{self.api_url}/v2/userinfo",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        return self._json(response)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def _post_id_from(self, response) -> str:
        post_id = response.headers.get("x-restli-id") or response.headers.get("x-linkedin-id")
        if not post_id and response.content:
            try:
                post_id = response.json().get("id")
            except ValueError:
                post_id = None
        if not post_id:
            raise LinkedInError(
                "LinkedIn did not return a post id",
                context={"url": str(response.request.url), "status_code": response.status_code}
            )
        return post_id

    async def create_ugc_post(self, access_token: str, author_urn: str, text: str) -> LinkedInPostResult:
        """Publish a text post through the UGC Posts API"""
        url = f"{self.api_url}/v2/ugcPosts"
        payload = {
            "author": author_urn,
            "lifecycleState": "PUBLISHED",
            "specificContent": {
                "com.linkedin.ugc.ShareContent": {
                    "shareCommentary": {"text": text},
                    "shareMediaCategory": "NONE",
                }
            },
            "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"},
        }
        response = await self._request(
            "POST",
            url,
            retry=False,
            json=payload,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
                "X-Restli-Protocol-Version": "2.0.0",
            },
        )
        post_id = self._post_id_from(response)
        logger.info(f"LinkedIn UGC post created for {author_urn}: {post_id}")
        return LinkedInPostResult(post_id=post_id, post_url=build_post_url(post_id))

    async def create_post(self, access_token: str, author_urn: str, text: str) -> LinkedInPostResult:
        """Publish a text post through the versioned Posts API"""
        url = f"{self.api_url}/rest/posts"
        payload = {
            "author": author_urn,
            "commentary": text,
            "visibility": "PUBLIC",
            "distribution": {
                "feedDistribution": "MAIN_FEED",
                "targetEntities": [],
                "thirdPartyDistributionChannels": [],
            },
            "lifecycleState": "PUBLISHED",
            "isReshareDisabledByAuthor": False,
        }
        response = await self._request(
            "POST",
            url,
            retry=False,
            json=payload,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
                "X-Restli-Protocol-Version": "2.0.0",
                "LinkedIn-Version": LINKEDIN_API_VERSION,
            },
        )
        post_id = self._post_id_from(response)
        logger.info(f"LinkedIn post created for {author_urn}: {post_id}")
        return LinkedInPostResult(post_id=post_id, post_url=build_post_url(post_id))

    async def publish_text(self, access_token: str, author_urn: str, text: str) -> LinkedInPostResult:
        """Posts API first, UGC API when the versioned endpoint rejects the call."""
        try:
            return await self.create_post(access_token, author_urn, text)
        except (LinkedInError, ResourceNotFoundError) as e:
            logger.warning(f"LinkedIn Posts API failed, falling back to UGC API: {e.message}")
            return await self.create_ugc_post(access_token, author_urn, text)

    async def post_to_personal_profile(self, access_token: str, profile_id: str, text: str) -> LinkedInPostResult:
        return await self.create_ugc_post(access_token, f"urn:li:person:{profile_id}", text)

    async def post_to_company_page(self, access_token: str, company_page_id: str, text: str) -> LinkedInPostResult:
        return await self.create_ugc_post(access_token, f"urn:li:organization:{company_page_id}", text)
