"""Input validation helpers for admin action payloads."""
from __future__ import annotations
from typing import Any, Optional

from schedule_admin.core.errors import InvalidArgument
from schedule_admin.core.models import Role

EMAIL_MAX_LENGTH = 254
NAME_MAX_LENGTH = 128


def validate_email(email: Any, field: str = "email") -> str:
    """Validate email address.

    Args:
        email: Email address to validate
        field: Field name for error messages

    Returns:
        Normalized (trimmed, lower-cased) email address

    Raises:
        InvalidArgument: If email is invalid
    """
    if not isinstance(email, str):
        raise InvalidArgument(f"{field} must be a string")
    email = email.strip().lower()
    if not email or "@" not in email:
        raise InvalidArgument(f"{field} format is invalid")

    local, domain = email.rsplit("@", 1)
    if not local or not domain or "." not in domain:
        raise InvalidArgument(f"{field} format is invalid")
    if len(email) > EMAIL_MAX_LENGTH:
        raise InvalidArgument(f"{field} exceeds maximum length")

    return email


def validate_full_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidArgument("fullName must be a non-empty string")
    name = name.strip()
    if len(name) > NAME_MAX_LENGTH:
        raise InvalidArgument("fullName exceeds maximum length")
    return name


def validate_role(role: Any) -> Role:
    """Parse a requested role; only member, admin and superadmin are accepted."""
    parsed = Role.parse(role)
    if parsed is None:
        allowed = ", ".join(r.value for r in Role)
        raise InvalidArgument(f"role must be one of: {allowed}")
    return parsed


def validate_identifier(value: Any, field: str) -> str:
    """Validate a document id such as uid or orgId."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"{field} must be a non-empty string")
    value = value.strip()
    if "/" in value:
        raise InvalidArgument(f"{field} contains invalid characters")
    return value


def validate_optional_identifier(value: Any, field: str) -> Optional[str]:
    """Like ``validate_identifier`` but ``None`` (explicit null) is kept."""
    if value is None:
        return None
    return validate_identifier(value, field)


def validate_password(value: Any, field: str = "password") -> str:
    # Strength policy belongs to the identity provider
    if not isinstance(value, str) or not value:
        raise InvalidArgument(f"{field} must be a non-empty string")
    return value


def require_fields(data: dict, *fields: str) -> None:
    """Raise when any field is absent or empty."""
    missing = [name for name in fields if data.get(name) in (None, "")]
    if missing:
        raise InvalidArgument(f"missing fields: {', '.join(missing)}")
