"""
Flask decorators for authentication and caller resolution.

Bearer tokens are Firebase ID tokens, verified by the identity provider
(signature, expiry and revocation). The verified identity and the resolved
caller are attached to ``flask.g`` for the route handler.
"""

import logging
from functools import wraps
from typing import Optional

from flask import current_app, g, request

from schedule_admin.core.identity import resolve_identity
from schedule_admin.core.models import Caller, Identity
from schedule_admin.core.provisioning_service import translate_gateway_errors

logger = logging.getLogger(__name__)

EXTENSION_KEY = "schedule_admin"


def get_services() -> dict:
    """Services registered by ``create_app`` (users, store, provisioning)."""
    return current_app.extensions[EXTENSION_KEY]


def require_bearer_token(fn):
    """Require a valid ``Authorization: Bearer <ID token>`` header.

    Raises:
        Unauthenticated: Missing, malformed or rejected token (rendered as 401)
        Internal: Provider could not be reached to verify the token (500)
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        services = get_services()
        with translate_gateway_errors("token verification"):
            g.identity = resolve_identity(services["users"], request.headers.get("Authorization"))
        return fn(*args, **kwargs)
    return wrapper


def require_caller(fn):
    """Require a bearer token whose subject has a resolvable role.

    The role check itself (admin or superadmin) belongs to the
    authorization engine; this only establishes who is calling.

    Raises:
        Unauthenticated: Token problems (401)
        PermissionDenied: No role from profile, claims or bootstrap list (403)
    """
    @wraps(fn)
    @require_bearer_token
    def wrapper(*args, **kwargs):
        provisioning = get_services()["provisioning"]
        with translate_gateway_errors("caller lookup"):
            g.caller = provisioning.roles.resolve_caller(g.identity)
        return fn(*args, **kwargs)
    return wrapper


def current_identity() -> Optional[Identity]:
    """Identity verified for the current request, if any."""
    return getattr(g, "identity", None)


def current_caller() -> Optional[Caller]:
    """Caller resolved for the current request, if any."""
    return getattr(g, "caller", None)
