"""Firebase Authentication account operations."""
from __future__ import annotations
import logging
from typing import Optional

from firebase_admin import auth
from firebase_admin import exceptions as firebase_exceptions

from .client import FirebaseClient
from .exceptions import (
    EmailAlreadyExistsError,
    InvalidProviderArgumentError,
    ProviderError,
    TokenVerificationError,
    UserNotFoundError,
)
from schedule_admin.core.models import Identity, ProviderAccount

logger = logging.getLogger(__name__)


def _to_account(record) -> ProviderAccount:
    return ProviderAccount(
        uid=record.uid,
        email=record.email,
        display_name=record.display_name,
        custom_claims=dict(record.custom_claims or {}),
        disabled=bool(record.disabled),
    )


def _provider_error(operation: str, exc: Exception) -> ProviderError:
    code = getattr(exc, "code", None)
    return ProviderError(operation, str(exc), code=code)


class UserService:
    """Service for managing identity-provider accounts."""

    def __init__(self, client: FirebaseClient):
        """Initialize user service.

        Args:
            client: Initialised Firebase client
        """
        self.client = client

    def verify_id_token(self, id_token: str) -> Identity:
        """Verify an ID token, including the revocation check.

        Raises:
            TokenVerificationError: Token malformed, expired, revoked, or account disabled
            ProviderError: Public signing keys could not be fetched
        """
        try:
            decoded = auth.verify_id_token(id_token, app=self.client.app, check_revoked=True)
        except auth.CertificateFetchError as exc:
            raise _provider_error("auth.verify_id_token", exc) from exc
        except (ValueError, firebase_exceptions.FirebaseError) as exc:
            raise TokenVerificationError(str(exc)) from exc

        reserved = {"uid", "sub", "email", "iss", "aud", "iat", "exp", "auth_time", "firebase", "user_id"}
        claims = {key: value for key, value in decoded.items() if key not in reserved}
        return Identity(
            uid=decoded["uid"],
            email=(decoded.get("email") or "").lower(),
            claims=claims,
        )

    def get_user(self, uid: str) -> Optional[ProviderAccount]:
        """Return the account for uid, or None when the provider has no such account."""
        try:
            return _to_account(auth.get_user(uid, app=self.client.app))
        except auth.UserNotFoundError:
            return None
        except (ValueError, firebase_exceptions.FirebaseError) as exc:
            raise _provider_error("auth.get_user", exc) from exc

    def create_user(self, email: str, password: str, display_name: str) -> str:
        """Create an enabled, unverified account and return its uid.

        Raises:
            EmailAlreadyExistsError: Email already registered
            InvalidProviderArgumentError: Password or email rejected by provider policy
        """
        try:
            record = auth.create_user(
                email=email,
                password=password,
                display_name=display_name,
                email_verified=False,
                disabled=False,
                app=self.client.app,
            )
        except auth.EmailAlreadyExistsError as exc:
            raise EmailAlreadyExistsError(f"User with email '{email}' already exists") from exc
        except ValueError as exc:
            # The SDK validates password length and email shape client-side
            raise InvalidProviderArgumentError(str(exc)) from exc
        except firebase_exceptions.InvalidArgumentError as exc:
            raise InvalidProviderArgumentError(str(exc)) from exc
        except firebase_exceptions.FirebaseError as exc:
            raise _provider_error("auth.create_user", exc) from exc

        logger.info("Created provider account uid=%s", record.uid)
        return record.uid

    def update_user(
        self,
        uid: str,
        *,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        """Update only the supplied account attributes.

        Raises:
            UserNotFoundError: No account for uid
            EmailAlreadyExistsError: New email belongs to another account
            InvalidProviderArgumentError: Value rejected by provider policy
        """
        kwargs = {}
        if email is not None:
            kwargs["email"] = email
        if display_name is not None:
            kwargs["display_name"] = display_name
        if password is not None:
            kwargs["password"] = password
        if not kwargs:
            return

        try:
            auth.update_user(uid, app=self.client.app, **kwargs)
        except auth.UserNotFoundError as exc:
            raise UserNotFoundError(f"User '{uid}' not found") from exc
        except auth.EmailAlreadyExistsError as exc:
            raise EmailAlreadyExistsError(f"Email '{email}' is already in use") from exc
        except ValueError as exc:
            raise InvalidProviderArgumentError(str(exc)) from exc
        except firebase_exceptions.InvalidArgumentError as exc:
            raise InvalidProviderArgumentError(str(exc)) from exc
        except firebase_exceptions.FirebaseError as exc:
            raise _provider_error("auth.update_user", exc) from exc

    def set_custom_claims(self, uid: str, claims: dict) -> None:
        """Replace the account's custom claims."""
        try:
            auth.set_custom_user_claims(uid, claims, app=self.client.app)
        except auth.UserNotFoundError as exc:
            raise UserNotFoundError(f"User '{uid}' not found") from exc
        except (ValueError, firebase_exceptions.FirebaseError) as exc:
            raise _provider_error("auth.set_custom_user_claims", exc) from exc

    def delete_user(self, uid: str) -> None:
        """Delete the account.

        Raises:
            UserNotFoundError: No account for uid
        """
        try:
            auth.delete_user(uid, app=self.client.app)
        except auth.UserNotFoundError as exc:
            raise UserNotFoundError(f"User '{uid}' not found") from exc
        except (ValueError, firebase_exceptions.FirebaseError) as exc:
            raise _provider_error("auth.delete_user", exc) from exc
        logger.info("Deleted provider account uid=%s", uid)
