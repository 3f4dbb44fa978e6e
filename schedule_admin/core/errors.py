"""Typed failures raised by the authorization engine and action executor.

Each subclass fixes an HTTP status and a wire ``kind``; the Flask error
handlers in ``schedule_admin.api.errors`` are the only place that turns
them into responses.
"""
from __future__ import annotations


class AdminError(Exception):
    """Admin API failure with HTTP status, error kind and human-readable detail."""

    status = 500
    kind = "internal"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.kind
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        """Convert to the JSON error body."""
        return {"error": self.kind, "message": self.detail}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.detail!r})"


class Unauthenticated(AdminError):
    """Missing, malformed, expired or revoked bearer token."""
    status = 401
    kind = "unauthenticated"


class PermissionDenied(AdminError):
    """Role, organization or escalation rule failure."""
    status = 403
    kind = "permission-denied"


class InvalidArgument(AdminError):
    """Missing required field or referential mismatch."""
    status = 400
    kind = "invalid-argument"


class NotFound(AdminError):
    """Target account or profile absent where required."""
    status = 404
    kind = "not-found"


class Conflict(AdminError):
    """Duplicate account on create."""
    status = 409
    kind = "already-exists"


class Internal(AdminError):
    """Unexpected provider or store failure."""
    status = 500
    kind = "internal"

