"""
"Time to post" notifications for scheduled posts that cannot be published
directly.
"""

from html import escape
from typing import Any, Dict, Optional, Tuple

from core.exceptions import IntegrationError
from integrations.email import EmailSender
from models.base import NotificationMethod
import logging

logger = logging.getLogger(__name__)

EMAIL_SUBJECT = "It's time to post! Your scheduled content is ready"
PREVIEW_LENGTH = 500
DEFAULT_PREFERENCES = {"email": True, "push": False}


def truncate_preview(content: str, limit: int = PREVIEW_LENGTH) -> str:
    if len(content) <= limit:
        return content
    return content[:limit] + "..."


def build_email_bodies(content: str, share_url: str) -> Tuple[str, str]:
    """Return (html, text) bodies for the reminder email."""
    preview = truncate_preview(content)
    html = (
        "<div style=\"font-family: sans-serif; max-width: 600px; margin: 0 auto;\">"
        "<h2>Your scheduled LinkedIn post is ready</h2>"
        "<p>Here is the post you scheduled:</p>"
        f"<blockquote style=\"white-space: pre-wrap; border-left: 3px solid #0a66c2; padding-left: 12px;\">{escape(preview)}</blockquote>"
        f"<p><a href=\"{escape(share_url)}\" style=\"background: #0a66c2; color: #fff; padding: 10px 18px; "
        "border-radius: 4px; text-decoration: none;\">Post to LinkedIn</a></p>"
        "</div>"
    )
    text = (
        "Your scheduled LinkedIn post is ready.\n\n"
        f"{preview}\n\n"
        f"Post it now: {share_url}\n"
    )
    return html, text


def enabled_channels(preferences: Optional[Dict[str, Any]], method: Optional[NotificationMethod]) -> Dict[str, bool]:
    """
    Channels to use: the user's preferences narrowed by the schedule's
    notification method.
    """
    prefs = dict(DEFAULT_PREFERENCES)
    prefs.update(preferences or {})

    method = NotificationMethod(method) if method else NotificationMethod.EMAIL
    allowed_email = method in (NotificationMethod.EMAIL, NotificationMethod.BOTH)
    allowed_push = method in (NotificationMethod.PUSH, NotificationMethod.BOTH)

    return {
        "email": bool(prefs.get("email")) and allowed_email,
        "push": bool(prefs.get("push")) and allowed_push,
    }


class PushNotifier:
    """Web push delivery. No push provider is configured."""

    async def send(self, user_id, title: str, body: str, url: str):
        raise IntegrationError("Push notifications not configured", context={"user_id": str(user_id)})


class PostNotifier:
    """Sends the reminder on each enabled channel; failures are logged, not raised."""

    def __init__(self, email_sender: Optional[EmailSender] = None, push_notifier: Optional[PushNotifier] = None):
        self.email_sender = email_sender or EmailSender()
        self.push_notifier = push_notifier or PushNotifier()

    async def notify(
        self,
        user,
        content: str,
        share_url: str,
        method: Optional[NotificationMethod] = None
    ) -> Dict[str, Dict[str, Any]]:
        channels = enabled_channels(getattr(user, "notification_preferences", None), method)
        results: Dict[str, Dict[str, Any]] = {}

        if channels["email"]:
            if not getattr(user, "email", None):
                results["email"] = {"success": False, "error": "User has no email address"}
            else:
                html, text = build_email_bodies(content, share_url)
                try:
                    await self.email_sender.send(user.email, EMAIL_SUBJECT, html, text)
                    results["email"] = {"success": True}
                except IntegrationError as e:
                    logger.error(f"Reminder email to {user.email} failed: {e}", extra={"error_context": e.to_dict()})
                    results["email"] = {"success": False, "error": e.message}

        if channels["push"]:
            try:
                await self.push_notifier.send(user.id, EMAIL_SUBJECT, truncate_preview(content, 120), share_url)
                results["push"] = {"success": True}
            except IntegrationError as e:
                logger.warning(f"Push notification for user {user.id} failed: {e.message}")
                results["push"] = {"success": False, "error": e.message}

        return results
