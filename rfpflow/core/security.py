"""
Identity provider integration: session-token verification and webhook signatures.

Session tokens are JWTs issued by Clerk; webhooks are delivered and signed through Svix.
"""
import logging
from typing import Any, Dict, Mapping, Optional

from jose import JWTError, jwt
from svix.webhooks import Webhook, WebhookVerificationError

from .config import settings

logger = logging.getLogger(__name__)

__all__ = ["verify_session_token", "verify_webhook", "WebhookVerificationError"]


def verify_session_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode a session token and return its claims, or None if it is not valid."""
    options = {"verify_aud": False}
    kwargs: Dict[str, Any] = {}
    if settings.CLERK_JWT_ISSUER:
        kwargs["issuer"] = settings.CLERK_JWT_ISSUER
    try:
        claims = jwt.decode(
            token,
            settings.CLERK_JWT_KEY,
            algorithms=[settings.CLERK_JWT_ALGORITHM],
            options=options,
            **kwargs,
        )
    except JWTError as e:
        logger.warning(f"Rejected session token: {e}")
        return None

    if not claims.get("sub"):
        logger.warning("Rejected session token without subject")
        return None
    return claims


def verify_webhook(body: bytes, headers: Mapping[str, str]) -> Any:
    """Authenticate a webhook delivery and return its decoded JSON payload.

    Raises WebhookVerificationError if the secret is not configured or the
    svix headers do not match the body, ValueError if the body is not UTF-8 JSON.
    """
    if not settings.CLERK_WEBHOOK_SECRET:
        raise WebhookVerificationError("Webhook secret is not configured")
    return Webhook(settings.CLERK_WEBHOOK_SECRET).verify(body, dict(headers))
