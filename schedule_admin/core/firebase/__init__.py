"""Firebase Admin SDK gateway.

This package is the only place that talks to the identity provider
(Firebase Authentication) and the document store (Cloud Firestore).

Architecture:
- client.py: process-wide Firebase app handle with lazy initialisation
- users.py: account lifecycle and ID-token verification
- store.py: profile/department documents and cascade deletes
- exceptions.py: typed exceptions for error handling

Usage:
    from schedule_admin.core.firebase import get_firebase_client, UserService, ProfileStore

    client = get_firebase_client(cfg)
    users = UserService(client)
    store = ProfileStore(client, cfg)
"""
from .client import FirebaseClient, get_firebase_client
from .exceptions import (
    FirebaseGatewayError,
    ProviderError,
    TokenVerificationError,
    UserNotFoundError,
    EmailAlreadyExistsError,
    InvalidProviderArgumentError,
)
from .store import ProfileStore
from .users import UserService

__all__ = [
    "FirebaseClient",
    "get_firebase_client",
    "ProfileStore",
    "UserService",
    "FirebaseGatewayError",
    "ProviderError",
    "TokenVerificationError",
    "UserNotFoundError",
    "EmailAlreadyExistsError",
    "InvalidProviderArgumentError",
]
