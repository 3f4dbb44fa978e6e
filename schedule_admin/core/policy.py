"""Authorization engine for admin actions.

``authorize()`` is a pure function of an ``AuthorizationRequest``: it never
touches the provider or the store. Callers look up the target state and the
department record beforehand and pass the results in.

Rules, in evaluation order (first failure denies):

1. The caller must be admin or superadmin.
2. Non-superadmins may never touch a target whose effective role is superadmin.
3. Non-superadmins need an org of their own, and the subject's org must equal
   it: the requested org on create, the target's current org otherwise. A
   target without a stored profile is superadmin-only.
4. Non-superadmins may not grant superadmin, either by role or by using an
   email on the bootstrap list.
5. Non-superadmins may not move a user to another org.
6. A supplied department must exist and belong to the effective target org.
   This one applies to superadmins too.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional, Type

from schedule_admin.core.errors import AdminError, InvalidArgument, NotFound, PermissionDenied
from schedule_admin.core.models import ADMIN_ROLES, Action, Department, Role, TargetState

logger = logging.getLogger(__name__)

_TARGET_VERBS = {
    Action.UPDATE_USER: "modify",
    Action.DELETE_USER: "delete",
    Action.RESET_PASSWORD: "change password of",
}


@dataclass(frozen=True)
class AuthorizationRequest:
    caller_role: Optional[Role]
    caller_org: Optional[str]
    action: Action
    target: Optional[TargetState] = None
    requested_org: Optional[str] = None
    requested_role: Optional[Role] = None
    requested_email_is_super: bool = False
    department_id: Optional[str] = None
    department: Optional[Department] = None

    @property
    def is_caller_super(self) -> bool:
        return self.caller_role is Role.SUPERADMIN


@dataclass(frozen=True)
class Decision:
    """Outcome of ``authorize``.

    On allow, ``effective_org`` is the org the mutated account ends up in and
    ``noop`` marks a delete with nothing left to delete. On deny, ``error``
    is the failure class to raise and ``detail`` its message.
    """
    allowed: bool
    error: Optional[Type[AdminError]] = None
    detail: str = ""
    effective_org: Optional[str] = None
    noop: bool = False

    @classmethod
    def allow(cls, effective_org: Optional[str], noop: bool = False) -> "Decision":
        return cls(allowed=True, effective_org=effective_org, noop=noop)

    @classmethod
    def deny(cls, error: Type[AdminError], detail: str) -> "Decision":
        return cls(allowed=False, error=error, detail=detail)

    @property
    def kind(self) -> Optional[str]:
        return self.error.kind if self.error else None

    def raise_for_denial(self) -> None:
        """Raise the typed failure when the decision is a deny."""
        if not self.allowed:
            raise self.error(self.detail)


def effective_target_org(request: AuthorizationRequest) -> Optional[str]:
    """Org the account belongs to once the action is applied."""
    if request.action is Action.CREATE_USER:
        return request.requested_org
    current = request.target.org_id if request.target else None
    if request.action is Action.UPDATE_USER and request.requested_org is not None:
        return request.requested_org
    return current


def authorize(request: AuthorizationRequest) -> Decision:
    """Decide whether the caller may perform the action on the subject."""
    if request.caller_role not in ADMIN_ROLES:
        return Decision.deny(PermissionDenied, "admin or superadmin role required")

    effective_org = effective_target_org(request)

    if not request.is_caller_super:
        denial = _check_target_role(request)
        if denial is None:
            denial = _check_org_containment(request)
        if denial is not None:
            return denial

        # Nothing left to delete and no org to compare against
        if request.action is Action.DELETE_USER and request.target and not request.target.exists:
            return Decision.allow(effective_org, noop=True)

        denial = _check_escalation(request) or _check_org_transfer(request)
        if denial is not None:
            return denial

    denial = _check_department(request, effective_org)
    if denial is not None:
        return denial

    return Decision.allow(effective_org)


def _check_target_role(request: AuthorizationRequest) -> Optional[Decision]:
    target = request.target
    if target is not None and target.role is Role.SUPERADMIN:
        verb = _TARGET_VERBS.get(request.action, "modify")
        return Decision.deny(PermissionDenied, f"cannot {verb} superadmin")
    return None


def _check_org_containment(request: AuthorizationRequest) -> Optional[Decision]:
    caller_org = request.caller_org
    if not caller_org:
        return Decision.deny(PermissionDenied, "caller has no organization")

    if request.action is Action.CREATE_USER:
        if request.requested_org != caller_org:
            return Decision.deny(PermissionDenied, "admin can only create in own org")
        return None

    target = request.target
    if target is None or not target.has_profile:
        if request.action is Action.RESET_PASSWORD:
            return Decision.deny(PermissionDenied, "only superadmin can reset users without profile")
        if request.action is Action.UPDATE_USER:
            return Decision.deny(NotFound, "user profile not found")
        if target is not None and target.has_account:
            return Decision.deny(PermissionDenied, "only superadmin can delete users without profile")
        return None

    if target.org_id != caller_org:
        return Decision.deny(PermissionDenied, "admin can only act on users in own org")
    return None


def _check_escalation(request: AuthorizationRequest) -> Optional[Decision]:
    if request.requested_role is Role.SUPERADMIN:
        return Decision.deny(PermissionDenied, "admin cannot grant superadmin")
    if request.requested_email_is_super:
        return Decision.deny(PermissionDenied, "admin cannot assign a superadmin email")
    return None


def _check_org_transfer(request: AuthorizationRequest) -> Optional[Decision]:
    if request.action is not Action.UPDATE_USER or request.requested_org is None:
        return None
    if request.requested_org != request.caller_org:
        return Decision.deny(PermissionDenied, "admin can only move users within own org")
    return None


def _check_department(request: AuthorizationRequest, effective_org: Optional[str]) -> Optional[Decision]:
    if request.department_id is None:
        return None
    if request.department is None:
        return Decision.deny(InvalidArgument, f"department '{request.department_id}' not found")
    if request.department.org_id != effective_org:
        return Decision.deny(
            InvalidArgument,
            f"department '{request.department_id}' does not belong to organization '{effective_org}'",
        )
    return None
