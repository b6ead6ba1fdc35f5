"""Email sending via Resend API.

Simple HTTP POST to Resend for password-reset and email-verification
messages. Fire-and-forget: delivery failures are logged, never raised
to the authentication flow.
"""

import logging
from typing import Protocol
from urllib.parse import quote, urlencode

import httpx

from tenant_auth.core.config import Settings, settings

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


class EmailSender(Protocol):
    """Outbound email operations the authentication core depends on."""

    async def send_password_reset_email(self, email: str, token: str) -> None: ...

    async def send_verification_email(self, email: str, token: str) -> None: ...


class ResendEmailSender:
    """EmailSender posting plain-text messages to the Resend API."""

    def __init__(self, config: Settings = settings) -> None:
        self.config = config

    async def _send(self, *, to_email: str, subject: str, text: str) -> None:
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    _RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {self.config.resend_api_key.get_secret_value()}",
                    },
                    json={
                        "from": self.config.email_from,
                        "to": to_email,
                        "subject": subject,
                        "text": text,
                    },
                    timeout=_RESEND_TIMEOUT,
                )
                resp.raise_for_status()
        except httpx.HTTPError:
            logger.warning("Failed to send email", extra={"subject": subject}, exc_info=True)

    async def send_password_reset_email(self, email: str, token: str) -> None:
        """Send a password-reset link pointing at the frontend.

        Args:
            email: Recipient email address.
            token: Signed password-reset token.
        """
        params = urlencode({"token": token}, quote_via=quote)
        reset_url = f"{self.config.frontend_url}/reset-password?{params}"
        await self._send(
            to_email=email,
            subject="Reset your password",
            text=(
                f"Click this link to choose a new password:\n\n{reset_url}\n\n"
                "This link expires in 1 hour. "
                "If you didn't request this, you can safely ignore this email."
            ),
        )

    async def send_verification_email(self, email: str, token: str) -> None:
        """Send an email-verification link pointing at the API.

        Args:
            email: Recipient email address.
            token: Plain (unhashed) verification token.
        """
        params = urlencode({"token": token}, quote_via=quote)
        verify_url = f"{self.config.backend_url}/api/v1/auth/verify-email?{params}"
        await self._send(
            to_email=email,
            subject="Confirm your email address",
            text=(
                f"Click this link to confirm your email address:\n\n{verify_url}\n\n"
                "This link expires in 24 hours."
            ),
        )
