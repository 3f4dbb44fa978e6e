"""Effective role/org resolution for callers and targets.

Precedence is data, not control flow: ``ROLE_SOURCES`` and ``ORG_SOURCES``
are ordered tuples of strategies, each returning a value or None, and the
first non-empty answer wins.

Role:  bootstrap email list -> stored profile -> provider claims
Org:   stored profile -> provider claims

The bootstrap list only ever grants a role; it never supplies an org, so a
bootstrap superadmin without a profile resolves with ``org_id=None``.
Provider claims are a denormalized cache and are consulted only when no
profile document exists.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from schedule_admin.core.errors import PermissionDenied
from schedule_admin.core.models import Caller, Identity, Role, TargetState, UserProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleSubject:
    """Everything the strategies may look at for one account."""
    uid: str
    email: Optional[str]
    profile: Optional[UserProfile]
    claims: dict = field(default_factory=dict)
    super_emails: frozenset = frozenset()


def bootstrap_role(subject: RoleSubject) -> Optional[Role]:
    if (subject.email or "").strip().lower() in subject.super_emails:
        return Role.SUPERADMIN
    return None


def profile_role(subject: RoleSubject) -> Optional[Role]:
    if subject.profile is None:
        return None
    return Role.parse(subject.profile.role)


def claims_role(subject: RoleSubject) -> Optional[Role]:
    if subject.profile is not None:
        return None
    return Role.parse(subject.claims.get("role"))


def profile_org(subject: RoleSubject) -> Optional[str]:
    if subject.profile is None:
        return None
    return subject.profile.org_id or None


def claims_org(subject: RoleSubject) -> Optional[str]:
    if subject.profile is not None:
        return None
    return subject.claims.get("orgId") or None


ROLE_SOURCES: tuple[Callable[[RoleSubject], Optional[Role]], ...] = (
    bootstrap_role,
    profile_role,
    claims_role,
)

ORG_SOURCES: tuple[Callable[[RoleSubject], Optional[str]], ...] = (
    profile_org,
    claims_org,
)


def first_match(sources, subject: RoleSubject):
    """Return the first non-None answer from the ordered sources."""
    for source in sources:
        value = source(subject)
        if value is not None:
            return value
    return None


class RoleResolver:
    """Builds ``Caller`` and ``TargetState`` from the store, provider and bootstrap list."""

    def __init__(self, users, store, super_emails: frozenset):
        self.users = users
        self.store = store
        self.super_emails = super_emails

    def resolve_caller(self, identity: Identity) -> Caller:
        """Resolve the caller's effective role and org.

        Raises:
            PermissionDenied: No role could be determined from any source
        """
        profile = self.store.get_profile(identity.uid)
        subject = RoleSubject(
            uid=identity.uid,
            email=identity.email,
            profile=profile,
            claims=identity.claims or {},
            super_emails=self.super_emails,
        )
        role = first_match(ROLE_SOURCES, subject)
        if role is None:
            if profile is None and not (identity.claims or {}).get("role"):
                raise PermissionDenied("actor-not-found")
            raise PermissionDenied("no-role")

        return Caller(
            uid=identity.uid,
            email=identity.email,
            role=role,
            org_id=first_match(ORG_SOURCES, subject),
        )

    def resolve_target(self, uid: str) -> TargetState:
        """Resolve a target account's effective role and org.

        The bootstrap lookup uses the target's own email as held by the
        identity provider.
        """
        profile = self.store.get_profile(uid)
        account = self.users.get_user(uid)
        email = account.email if account and account.email else (profile.email if profile else None)
        subject = RoleSubject(
            uid=uid,
            email=email,
            profile=profile,
            claims=account.custom_claims if account else {},
            super_emails=self.super_emails,
        )
        return TargetState(
            uid=uid,
            email=email,
            role=first_match(ROLE_SOURCES, subject),
            org_id=first_match(ORG_SOURCES, subject),
            has_profile=profile is not None,
            has_account=account is not None,
            profile_role=Role.parse(profile.role) if profile else None,
            department_id=profile.department_id if profile else None,
        )
