"""Email sending via Resend API.

Simple HTTP POST to Resend for account-activation emails. Plain-text only.
"""

import logging
from urllib.parse import quote, urlencode

import httpx

from dsu.core.config import Settings

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


async def send_activation_email(
    *, to_email: str, registration_key: str, settings: Settings
) -> None:
    """Send an account-activation email via Resend.

    The link points at the activation endpoint directly. Delivery failures
    are logged and swallowed: the account exists either way and the key can
    be resent out of band.

    Args:
        to_email: Recipient email address.
        registration_key: The user's registration key.
        settings: Application settings (sender, API key, backend URL).
    """
    params = urlencode({"registration_id": registration_key}, quote_via=quote)
    activation_url = f"{settings.backend_url}/v1/users/activation?{params}"

    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                _RESEND_API_URL,
                headers={
                    "Authorization": f"Bearer {settings.resend_api_key.get_secret_value()}",
                },
                json={
                    "from": settings.email_from,
                    "to": to_email,
                    "subject": "Activate your DSU account",
                    "text": (
                        "Click this link to activate your account:\n\n"
                        f"{activation_url}\n\n"
                        "If you didn't register, you can safely ignore this email."
                    ),
                },
                timeout=_RESEND_TIMEOUT,
            )
            resp.raise_for_status()
    except Exception:
        logger.warning("Failed to send activation email", exc_info=True)
