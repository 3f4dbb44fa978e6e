"""Firebase-gateway exceptions for error handling."""


class FirebaseGatewayError(Exception):
    """Base exception for all identity-provider and document-store operations."""
    pass


class ProviderError(FirebaseGatewayError):
    """Unexpected error from Firebase Auth or Firestore.

    Attributes:
        operation: Gateway operation that failed (e.g. "auth.create_user")
        code: Provider error code when available
    """

    def __init__(self, operation: str, message: str, code: str | None = None):
        self.operation = operation
        self.code = code
        self.message = message
        prefix = f"[{code}] " if code else ""
        super().__init__(f"{prefix}{operation}: {message}")


class TokenVerificationError(FirebaseGatewayError):
    """ID token is malformed, expired, revoked or belongs to a disabled account."""
    pass


class UserNotFoundError(FirebaseGatewayError):
    """No identity-provider account exists for the uid."""
    pass


class EmailAlreadyExistsError(FirebaseGatewayError):
    """Account creation or email change collided with an existing account."""
    pass


class InvalidProviderArgumentError(FirebaseGatewayError):
    """Provider rejected a value (weak password, malformed email, ...)."""
    pass
