"""
Email dispatch package.

Modules:
- core: direct SMTP delivery (fallback path)
- client: EmailClient, the notification dispatcher used by services
"""

from libs.common.emails.client import DispatchResult, EmailClient, get_email_client

__all__ = ["DispatchResult", "EmailClient", "get_email_client"]
