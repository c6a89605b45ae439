"""
Direct SMTP delivery, used when the Communications Service is unreachable.
"""

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


def _deliver(recipients: list[str], msg: MIMEMultipart, sender_email: str) -> None:
    settings = get_settings()
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
        server.starttls()
        server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.sendmail(sender_email, recipients, msg.as_string())


async def send_email(
    recipients: list[str],
    subject: str,
    html_body: str,
    body: Optional[str] = None,
) -> bool:
    """
    Send one message to every address in ``recipients`` over SMTP.

    Returns:
        True if the SMTP server accepted the message, False otherwise
    """
    settings = get_settings()

    if not settings.SMTP_PASSWORD or not settings.SMTP_USERNAME:
        logger.warning("SMTP_USERNAME/SMTP_PASSWORD not configured - email not sent")
        logger.info(f"Would have sent email to {', '.join(recipients)}: {subject}")
        return False

    sender_email = settings.DEFAULT_FROM_EMAIL
    msg = MIMEMultipart("alternative")
    if body:
        msg.attach(MIMEText(body, "plain"))
    msg.attach(MIMEText(html_body, "html"))
    msg["Subject"] = subject
    msg["From"] = f"{settings.DEFAULT_FROM_NAME} <{sender_email}>"
    msg["To"] = ", ".join(recipients)

    try:
        logger.info(f"Sending email to {len(recipients)} recipient(s): {subject}")
        await asyncio.to_thread(_deliver, recipients, msg, sender_email)
        return True
    except smtplib.SMTPAuthenticationError as e:
        logger.error(f"SMTP authentication failed: {e}")
        return False
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"SMTP error sending email: {e}")
        return False
