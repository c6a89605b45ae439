"""
Notification dispatcher used by the attendance core.

Sends through the Communications Service HTTP API and falls back to direct
SMTP when that service cannot be reached. ``send`` never raises: it returns a
``DispatchResult`` so callers can log a failed dispatch without touching any
ledger change they have already committed.

Usage:
    from libs.common.emails.client import get_email_client

    result = await get_email_client().send(
        recipients=["admin@example.com"],
        subject="Leave Request Notification",
        html_body="<p>...</p>",
    )
    if not result.success:
        logger.warning(result.error)
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

import httpx
from jose import jwt

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger

logger = get_logger(__name__)


@dataclass
class DispatchResult:
    """Outcome of one dispatch call."""

    success: bool
    sent_count: int = 0
    failed_count: int = 0
    error: Optional[str] = None


class EmailClient:
    """
    HTTP client for sending emails through the Communications Service.

    Authenticates with a short-lived service-role JWT. Falls back to direct
    SMTP if the Communications Service is unreachable (connection errors
    only; a non-200 answer is reported as a failure, not retried).
    """

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30.0):
        settings = get_settings()
        self.base_url = base_url or settings.COMMUNICATIONS_SERVICE_URL
        self.timeout = timeout

    def _get_auth_headers(self) -> dict[str, str]:
        settings = get_settings()
        token = jwt.encode(
            {
                "sub": "attendance_service",
                "role": "service_role",
                "exp": utc_now() + timedelta(seconds=60),
            },
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )
        return {"Authorization": f"Bearer {token}"}

    async def send(
        self,
        recipients: list[str],
        subject: str,
        html_body: str,
        body: Optional[str] = None,
    ) -> DispatchResult:
        """
        Send one message to a list of recipients.

        Args:
            recipients: Recipient email addresses
            subject: Email subject line
            html_body: HTML markup body
            body: Optional plain text alternative

        Returns:
            DispatchResult describing what was delivered
        """
        recipients = [r for r in recipients if r]
        if not recipients:
            return DispatchResult(success=True)

        payload: dict[str, Any] = {
            "to_emails": recipients,
            "subject": subject,
            "body": body or "",
            "html_body": html_body,
        }

        try:
            headers = self._get_auth_headers()
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/email/send-bulk",
                    json=payload,
                    headers=headers,
                )
        except httpx.RequestError as e:
            logger.error(f"Failed to connect to Communications Service: {e}")
            return await self._fallback_send(recipients, subject, html_body, body)

        if response.status_code != 200:
            logger.error(
                f"Bulk email API returned {response.status_code}: {response.text}"
            )
            return DispatchResult(
                success=False,
                failed_count=len(recipients),
                error=f"Email API returned {response.status_code}",
            )

        try:
            data = response.json()
        except ValueError:
            logger.error(f"Bulk email API returned a non-JSON body: {response.text}")
            return DispatchResult(
                success=False,
                failed_count=len(recipients),
                error="Email API returned an unreadable response",
            )
        return DispatchResult(
            success=bool(data.get("success", False)),
            sent_count=int(data.get("sent_count", 0)),
            failed_count=int(data.get("failed_count", 0)),
        )

    async def _fallback_send(
        self,
        recipients: list[str],
        subject: str,
        html_body: str,
        body: Optional[str] = None,
    ) -> DispatchResult:
        """Fallback to direct SMTP send if Communications Service unavailable."""
        logger.warning("Falling back to direct SMTP email send")
        from libs.common.emails.core import send_email

        if await send_email(recipients, subject, html_body, body):
            return DispatchResult(success=True, sent_count=len(recipients))
        return DispatchResult(
            success=False,
            failed_count=len(recipients),
            error="SMTP fallback failed",
        )


# Singleton instance for convenience
_email_client: Optional[EmailClient] = None


def get_email_client() -> EmailClient:
    """Get or create the singleton EmailClient instance."""
    global _email_client
    if _email_client is None:
        _email_client = EmailClient()
    return _email_client
