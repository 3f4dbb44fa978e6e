"""
Provisioning Service Layer: admin user lifecycle

Validates an action payload, gathers the facts the authorization engine
needs (target state, department record), asks ``policy.authorize`` for a
decision and, when allowed, applies the mutation.

Write ordering for every action:
    identity provider  ->  Firestore profile  ->  custom claims (best effort)

Provider and store writes are not transactional; the provider is the
authority for accounts and the profile store catches up. Claim writes are
a denormalized cache: their failures are logged and reported in
``ActionResult.warnings`` instead of failing the action.
"""

from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from schedule_admin.core import audit
from schedule_admin.core.errors import Conflict, Internal, InvalidArgument, NotFound, PermissionDenied
from schedule_admin.core.firebase.exceptions import (
    EmailAlreadyExistsError,
    FirebaseGatewayError,
    InvalidProviderArgumentError,
    UserNotFoundError,
)
from schedule_admin.core.models import Action, Caller, Department, Role, TargetState
from schedule_admin.core.policy import AuthorizationRequest, Decision, authorize
from schedule_admin.core.roles import RoleResolver
from schedule_admin.core.validators import (
    require_fields,
    validate_email,
    validate_full_name,
    validate_identifier,
    validate_optional_identifier,
    validate_password,
    validate_role,
)

logger = logging.getLogger(__name__)

AUDIT_EVENTS = {
    Action.CREATE_USER: "create_user",
    Action.UPDATE_USER: "update_user",
    Action.DELETE_USER: "delete_user",
    Action.RESET_PASSWORD: "reset_password",
}


@dataclass
class ActionResult:
    """Successful action payload plus non-fatal warnings from best-effort writes."""
    payload: dict
    warnings: list[str] = field(default_factory=list)

    def to_json(self) -> dict:
        body = dict(self.payload)
        if self.warnings:
            body["warnings"] = list(self.warnings)
        return body


@contextmanager
def translate_gateway_errors(operation: str) -> Iterator[None]:
    """Map gateway exceptions onto the admin error taxonomy."""
    try:
        yield
    except EmailAlreadyExistsError as exc:
        raise Conflict(str(exc)) from exc
    except InvalidProviderArgumentError as exc:
        raise InvalidArgument(str(exc)) from exc
    except UserNotFoundError as exc:
        raise NotFound(str(exc)) from exc
    except FirebaseGatewayError as exc:
        logger.error("%s failed: %s", operation, exc, exc_info=True)
        raise Internal(f"{operation} failed") from exc


class ProvisioningService:
    """Executes admin actions against the identity provider and profile store."""

    def __init__(self, users, store, super_emails: frozenset):
        self.users = users
        self.store = store
        self.super_emails = super_emails
        self.roles = RoleResolver(users, store, super_emails)

    # ─────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────
    def _is_super_email(self, email: Optional[str]) -> bool:
        return bool(email) and email.strip().lower() in self.super_emails

    def _resolve_target(self, uid: str) -> TargetState:
        with translate_gateway_errors("target lookup"):
            return self.roles.resolve_target(uid)

    def _lookup_department(self, department_id: Optional[str]) -> Optional[Department]:
        if department_id is None:
            return None
        with translate_gateway_errors("department lookup"):
            return self.store.get_department(department_id)

    def _enforce(self, decision: Decision, caller: Caller, action: Action, target_uid: str) -> None:
        if decision.allowed:
            return
        logger.warning(
            "[policy] denied action=%s by=%s target=%s kind=%s: %s",
            action.value, caller.email, target_uid, decision.kind, decision.detail,
        )
        audit.safe_log_admin_event(
            "access_denied",
            target_uid,
            operator=caller.email,
            details={"action": action.value, "kind": decision.kind, "reason": decision.detail},
            success=False,
        )
        decision.raise_for_denial()

    def _write_claims(self, uid: str, role: Optional[str], org_id: Optional[str]) -> list[str]:
        """Best-effort denormalized claim write; returns warnings instead of raising."""
        try:
            self.users.set_custom_claims(uid, {"role": role, "orgId": org_id})
        except FirebaseGatewayError as exc:
            logger.warning("Custom claims update failed for uid=%s: %s", uid, exc)
            return [f"claims not updated: {exc}"]
        return []

    def _audit(self, action: Action, caller: Caller, uid: str, details: dict) -> None:
        audit.safe_log_admin_event(AUDIT_EVENTS[action], uid, operator=caller.email, details=details)

    # ─────────────────────────────────────────────────────────────────────
    # Create
    # ─────────────────────────────────────────────────────────────────────
    def create_user(self, caller: Caller, data: dict) -> ActionResult:
        """Create a provider account and its profile.

        Required: email, password, fullName, role, orgId. Optional: departmentId.

        Raises:
            InvalidArgument: Missing/invalid field, password rejected, department mismatch
            PermissionDenied: Policy denial
            Conflict: Email already registered
            Internal: Unexpected provider/store failure
        """
        require_fields(data, "email", "password", "fullName", "role", "orgId")
        email = validate_email(data["email"])
        password = validate_password(data["password"])
        full_name = validate_full_name(data["fullName"])
        role = validate_role(data["role"])
        org_id = validate_identifier(data["orgId"], "orgId")
        department_id = validate_optional_identifier(data.get("departmentId") or None, "departmentId")

        decision = authorize(AuthorizationRequest(
            caller_role=caller.role,
            caller_org=caller.org_id,
            action=Action.CREATE_USER,
            requested_org=org_id,
            requested_role=role,
            requested_email_is_super=self._is_super_email(email),
            department_id=department_id,
            department=self._lookup_department(department_id),
        ))
        self._enforce(decision, caller, Action.CREATE_USER, email)

        with translate_gateway_errors("account creation"):
            uid = self.users.create_user(email, password, full_name)

        with translate_gateway_errors("profile write"):
            self.store.create_profile(uid, {
                "email": email,
                "fullName": full_name,
                "role": role.value,
                "orgId": org_id,
                "departmentId": department_id,
            })

        warnings = self._write_claims(uid, role.value, org_id)
        self._audit(Action.CREATE_USER, caller, uid, {"orgId": org_id, "role": role.value})
        logger.info("Created user uid=%s org=%s role=%s", uid, org_id, role.value)
        return ActionResult({"uid": uid}, warnings)

    # ─────────────────────────────────────────────────────────────────────
    # Update
    # ─────────────────────────────────────────────────────────────────────
    def update_user(self, caller: Caller, data: dict) -> ActionResult:
        """Apply a partial update; absent fields are left untouched.

        Explicit nulls are not treated as absent: ``departmentId: null``
        clears the department, while null for the other fields is rejected.
        """
        require_fields(data, "uid")
        uid = validate_identifier(data["uid"], "uid")

        changes: dict[str, Any] = {}
        if "email" in data:
            changes["email"] = validate_email(data["email"])
        if "fullName" in data:
            changes["fullName"] = validate_full_name(data["fullName"])
        if "role" in data:
            changes["role"] = validate_role(data["role"])
        if "orgId" in data:
            changes["orgId"] = validate_identifier(data["orgId"], "orgId")
        if "departmentId" in data:
            changes["departmentId"] = validate_optional_identifier(data["departmentId"], "departmentId")
        password = validate_password(data["password"]) if "password" in data else None

        target = self._resolve_target(uid)
        requested_role: Optional[Role] = changes.get("role")
        department_id = changes.get("departmentId")
        if "orgId" in changes and "departmentId" not in changes:
            # A transfer keeps the stored department, which must belong to the new org
            department_id = target.department_id

        decision = authorize(AuthorizationRequest(
            caller_role=caller.role,
            caller_org=caller.org_id,
            action=Action.UPDATE_USER,
            target=target,
            requested_org=changes.get("orgId"),
            requested_role=requested_role,
            requested_email_is_super=self._is_super_email(changes.get("email")),
            department_id=department_id,
            department=self._lookup_department(department_id),
        ))
        self._enforce(decision, caller, Action.UPDATE_USER, uid)

        if not target.exists:
            raise NotFound(f"user '{uid}' not found")

        if "email" in changes or "fullName" in changes or password is not None:
            with translate_gateway_errors("account update"):
                self.users.update_user(
                    uid,
                    email=changes.get("email"),
                    display_name=changes.get("fullName"),
                    password=password,
                )

        if changes:
            document = {
                key: (value.value if isinstance(value, Role) else value)
                for key, value in changes.items()
            }
            with translate_gateway_errors("profile write"):
                self.store.merge_profile(uid, document)

        warnings: list[str] = []
        if "role" in changes or "orgId" in changes:
            role = requested_role or target.profile_role
            warnings = self._write_claims(uid, role.value if role else None, decision.effective_org)

        fields = sorted(changes) + (["password"] if password is not None else [])
        self._audit(Action.UPDATE_USER, caller, uid, {"fields": fields, "orgId": decision.effective_org})
        return ActionResult({"ok": True}, warnings)

    # ─────────────────────────────────────────────────────────────────────
    # Delete
    # ─────────────────────────────────────────────────────────────────────
    def delete_user(self, caller: Caller, data: dict) -> ActionResult:
        """Delete profile, optionally cascade schedules, then the provider account.

        Idempotent: a missing profile or provider account is not an error.
        """
        require_fields(data, "uid")
        uid = validate_identifier(data["uid"], "uid")
        cascade = bool(data.get("cascade"))

        target = self._resolve_target(uid)
        decision = authorize(AuthorizationRequest(
            caller_role=caller.role,
            caller_org=caller.org_id,
            action=Action.DELETE_USER,
            target=target,
        ))
        self._enforce(decision, caller, Action.DELETE_USER, uid)

        if decision.noop:
            # Nothing left to scope the cascade by, so stray schedules are kept
            logger.info("Delete of uid=%s is a no-op: no profile and no account", uid)
            return ActionResult({"ok": True})

        with translate_gateway_errors("profile delete"):
            self.store.delete_profile(uid)

        details: dict[str, Any] = {"cascade": cascade, "orgId": target.org_id}
        if cascade:
            with translate_gateway_errors("cascade delete"):
                details["cascadeDeleted"] = self.store.delete_schedules_created_by(uid)
            logger.info("Cascade removed %d schedule(s) created by uid=%s", details["cascadeDeleted"], uid)

        try:
            self.users.delete_user(uid)
        except UserNotFoundError:
            logger.info("Provider account for uid=%s already gone", uid)
        except FirebaseGatewayError as exc:
            logger.error("Provider account delete failed for uid=%s: %s", uid, exc, exc_info=True)
            raise Internal("account delete failed") from exc

        self._audit(Action.DELETE_USER, caller, uid, details)
        return ActionResult({"ok": True})

    # ─────────────────────────────────────────────────────────────────────
    # Password reset
    # ─────────────────────────────────────────────────────────────────────
    def reset_password(self, caller: Caller, data: dict) -> ActionResult:
        """Set a new password; accepts ``password`` or ``newPassword``."""
        uid = data.get("uid")
        new_password = data.get("password") or data.get("newPassword")
        if not uid or not new_password:
            raise InvalidArgument("missing uid/password")
        uid = validate_identifier(uid, "uid")
        new_password = validate_password(new_password)

        target = self._resolve_target(uid)
        decision = authorize(AuthorizationRequest(
            caller_role=caller.role,
            caller_org=caller.org_id,
            action=Action.RESET_PASSWORD,
            target=target,
        ))
        self._enforce(decision, caller, Action.RESET_PASSWORD, uid)

        with translate_gateway_errors("password update"):
            try:
                self.users.update_user(uid, password=new_password)
            except UserNotFoundError as exc:
                raise NotFound("auth user not found") from exc

        self._audit(Action.RESET_PASSWORD, caller, uid, {"orgId": target.org_id})
        return ActionResult({"ok": True})

    # ─────────────────────────────────────────────────────────────────────
    # Listing
    # ─────────────────────────────────────────────────────────────────────
    def list_users(self, caller: Caller, org_id: Optional[str], department_id: Optional[str]) -> list[dict]:
        """Org-scoped profile listing.

        Non-superadmins are confined to their own org (the default when
        ``org_id`` is omitted); superadmins may list any org or all.
        """
        if not caller.is_admin:
            raise PermissionDenied("admin or superadmin role required")
        if not caller.is_super:
            if not caller.org_id:
                raise PermissionDenied("caller has no organization")
            if org_id is None:
                org_id = caller.org_id
            elif org_id != caller.org_id:
                raise PermissionDenied("admin can only list users in own org")

        with translate_gateway_errors("profile listing"):
            profiles = self.store.list_profiles(org_id=org_id, department_id=department_id)
        return [profile.to_json() for profile in profiles]
