"""
Resend email client.
"""

from typing import Optional

from core.config import settings
from core.exceptions import EmailDeliveryError
from integrations.base import HTTPIntegration
import logging

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class EmailSender(HTTPIntegration):
    """
    Send transactional email through Resend.

    Without an API key, non-production environments log the message and
    treat it as sent; production raises ``EmailDeliveryError``.
    """

    service_name = "resend"
    error_class = EmailDeliveryError

    def __init__(
        self,
        api_key: Optional[str] = None,
        sender: Optional[str] = None,
        production: Optional[bool] = None,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.sender = sender or settings.EMAIL_FROM
        self.production = production if production is not None else settings.is_production

    async def send(self, to: str, subject: str, html: str, text: Optional[str] = None) -> Optional[str]:
        """Send an email and return the provider message id (None when skipped)."""
        if not self.api_key:
            if self.production:
                raise EmailDeliveryError("Email service not configured", context={"to": to})
            logger.info(f"Email service not configured, skipping email to {to}: {subject}")
            return None

        payload = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        if text:
            payload["text"] = text

        response = await self._request(
            "POST",
            RESEND_API_URL,
            retry=False,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
        )
        message_id = self._json(response).get("id")
        logger.info(f"Email sent to {to} (id={message_id})")
        return message_id
