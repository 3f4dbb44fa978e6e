"""Turns an ``Authorization`` header into a verified caller identity."""
from __future__ import annotations
import logging
from typing import Optional

from schedule_admin.core.errors import Unauthenticated
from schedule_admin.core.firebase.exceptions import TokenVerificationError
from schedule_admin.core.models import Identity

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization_header: Optional[str]) -> str:
    """Return the token from ``Authorization: Bearer <token>``.

    Raises:
        Unauthenticated: Header missing, not a Bearer header, or empty token
    """
    header = authorization_header or ""
    if not header:
        raise Unauthenticated("missing bearer token")
    if not header.startswith(BEARER_PREFIX):
        raise Unauthenticated("invalid Authorization header format, expected 'Bearer <token>'")
    token = header[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthenticated("bearer token is empty")
    return token


def resolve_identity(users, authorization_header: Optional[str]) -> Identity:
    """Verify the bearer credential against the identity provider."""
    token = extract_bearer_token(authorization_header)
    try:
        identity = users.verify_id_token(token)
    except TokenVerificationError as exc:
        logger.warning("Token verification failed: %s", exc)
        raise Unauthenticated(f"invalid token: {exc}") from exc
    logger.debug("Verified identity uid=%s", identity.uid)
    return identity
