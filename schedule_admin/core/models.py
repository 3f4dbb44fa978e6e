"""Plain data carriers shared by the resolvers, policy engine and executor."""
from __future__ import annotations
import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Role(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"

    @classmethod
    def parse(cls, value: Any) -> Optional["Role"]:
        """Lenient parse for stored data: unknown or empty values give None."""
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


ADMIN_ROLES = frozenset({Role.ADMIN, Role.SUPERADMIN})


class Action(str, Enum):
    CREATE_USER = "createUser"
    UPDATE_USER = "updateUser"
    DELETE_USER = "deleteUser"
    RESET_PASSWORD = "resetPassword"


@dataclass(frozen=True)
class Identity:
    """Verified bearer-token subject."""
    uid: str
    email: str
    claims: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Caller:
    """Authenticated actor with its effective role and organization."""
    uid: str
    email: str
    role: Role
    org_id: Optional[str]

    @property
    def is_super(self) -> bool:
        return self.role is Role.SUPERADMIN

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


@dataclass(frozen=True)
class ProviderAccount:
    """Identity-provider view of an account."""
    uid: str
    email: Optional[str]
    display_name: Optional[str] = None
    custom_claims: dict = field(default_factory=dict)
    disabled: bool = False


@dataclass
class UserProfile:
    """Stored profile document; authoritative for role and orgId."""
    uid: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None
    org_id: Optional[str] = None
    department_id: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None

    @classmethod
    def from_document(cls, uid: str, data: dict) -> "UserProfile":
        return cls(
            uid=uid,
            email=data.get("email"),
            full_name=data.get("fullName"),
            role=data.get("role"),
            org_id=data.get("orgId"),
            department_id=data.get("departmentId"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    def to_json(self) -> dict:
        """Wire representation with ISO-8601 timestamps."""
        return {
            "uid": self.uid,
            "email": self.email,
            "fullName": self.full_name,
            "role": self.role,
            "orgId": self.org_id,
            "departmentId": self.department_id,
            "createdAt": _isoformat(self.created_at),
            "updatedAt": _isoformat(self.updated_at),
        }


@dataclass(frozen=True)
class Department:
    id: str
    org_id: Optional[str]


@dataclass(frozen=True)
class TargetState:
    """Effective role/org of an existing account, as seen by the role resolver."""
    uid: str
    email: Optional[str]
    role: Optional[Role]
    org_id: Optional[str]
    has_profile: bool
    has_account: bool
    # Stored profile values, independent of bootstrap or claims precedence
    profile_role: Optional[Role] = None
    department_id: Optional[str] = None

    @property
    def exists(self) -> bool:
        return self.has_profile or self.has_account


def _isoformat(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    return str(value)
