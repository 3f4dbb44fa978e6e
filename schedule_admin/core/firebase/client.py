"""Process-wide handle to the Firebase Admin SDK.

Initialised once, lazily, from ``AppConfig``; immutable afterwards. Services
receive the handle explicitly instead of reaching for ``firebase_admin``
globals.
"""
from __future__ import annotations
import logging
import threading
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore

from schedule_admin.config import AppConfig

logger = logging.getLogger(__name__)

APP_NAME = "schedule-admin"

_client: Optional["FirebaseClient"] = None
_client_lock = threading.Lock()


class FirebaseClient:
    """Firebase app plus the Firestore client bound to it.

    Usage:
        client = FirebaseClient.from_config(cfg)
        users = UserService(client)
        store = ProfileStore(client, cfg)
    """

    def __init__(self, app: firebase_admin.App, timeout: float):
        self._app = app
        self._timeout = timeout
        self._db = None

    @classmethod
    def from_config(cls, cfg: AppConfig) -> "FirebaseClient":
        """Initialise (or reuse) the named Firebase app for the service account."""
        try:
            app = firebase_admin.get_app(APP_NAME)
        except ValueError:
            cred = credentials.Certificate(cfg.firebase_credentials)
            app = firebase_admin.initialize_app(
                cred,
                options={
                    "projectId": cfg.firebase_project_id,
                    # Bounds every Auth REST call made through this app
                    "httpTimeout": cfg.provider_timeout_seconds,
                },
                name=APP_NAME,
            )
            logger.info("Initialized Firebase app for project %s", cfg.firebase_project_id)
        return cls(app, cfg.provider_timeout_seconds)

    @property
    def app(self) -> firebase_admin.App:
        return self._app

    @property
    def timeout(self) -> float:
        """Per-call timeout in seconds for Firestore operations."""
        return self._timeout

    @property
    def db(self):
        """Firestore client, created on first access."""
        if self._db is None:
            self._db = firestore.client(app=self._app)
        return self._db


def get_firebase_client(cfg: AppConfig) -> FirebaseClient:
    """Return the process-wide client, creating it on first call."""
    global _client

    if _client is None:
        with _client_lock:
            if _client is None:
                _client = FirebaseClient.from_config(cfg)
    return _client
