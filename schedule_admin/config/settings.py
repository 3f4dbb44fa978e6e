"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Firestore rejects batches above 500 writes.
FIRESTORE_BATCH_CEILING = 500


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.info("[settings] Loaded %s from /run/secrets", secret_name)
                return secret_value
        except OSError as exc:
            logger.warning("[settings] Failed to read /run/secrets/%s: %s", secret_name, exc)

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def parse_email_list(raw: str | None) -> frozenset[str]:
    """Split a comma-separated email list into a normalized, immutable set."""
    return frozenset(
        item.strip().lower()
        for item in (raw or "").split(",")
        if item.strip()
    )


def _int_env(var_name: str, default: int) -> int:
    raw = os.environ.get(var_name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be an integer, got {raw!r}")


def _require(var_name: str, value: Optional[str]) -> str:
    if not value:
        raise RuntimeError(f"Environment variable {var_name} is required (Firebase service account).")
    return value


@dataclass(frozen=True)
class AppConfig:
    """Application configuration container."""
    # Firebase service account
    firebase_project_id: str
    firebase_client_email: str
    firebase_private_key: str

    # Bootstrap override: emails granted superadmin regardless of stored profile
    super_admin_emails: frozenset[str] = field(default_factory=frozenset)

    # Server
    port: int = 3000
    cors_allow_origin: str = "*"
    max_content_length: int = 1024 * 1024
    log_level: str = "INFO"

    # Provider calls
    provider_timeout_seconds: float = 10.0
    cascade_batch_size: int = 400

    # Firestore collections
    users_collection: str = "users"
    departments_collection: str = "departments"
    schedules_collection: str = "schedules"

    # Audit
    audit_log_dir: str = ".runtime/audit"
    audit_log_signing_key: str = ""

    @property
    def firebase_credentials(self) -> dict:
        """Service-account mapping accepted by ``firebase_admin.credentials.Certificate``."""
        return {
            "type": "service_account",
            "project_id": self.firebase_project_id,
            "client_email": self.firebase_client_email,
            "private_key": self.firebase_private_key,
            "token_uri": "https://oauth2.googleapis.com/token",
        }


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    project_id = _require("FIREBASE_PROJECT_ID", os.environ.get("FIREBASE_PROJECT_ID"))
    client_email = _require("FIREBASE_CLIENT_EMAIL", os.environ.get("FIREBASE_CLIENT_EMAIL"))

    # Private keys pasted into env files usually carry literal "\n" sequences
    private_key = _load_secret_from_file("firebase_private_key", "FIREBASE_PRIVATE_KEY")
    private_key = _require("FIREBASE_PRIVATE_KEY", private_key).replace("\\n", "\n")

    super_admin_emails = parse_email_list(os.environ.get("SUPER_ADMINS"))

    batch_size = _int_env("CASCADE_BATCH_SIZE", 400)
    batch_size = max(1, min(batch_size, FIRESTORE_BATCH_CEILING))

    timeout_raw = os.environ.get("PROVIDER_TIMEOUT_SECONDS", "10").strip() or "10"
    try:
        provider_timeout = float(timeout_raw)
    except ValueError:
        raise RuntimeError(f"Environment variable PROVIDER_TIMEOUT_SECONDS must be a number, got {timeout_raw!r}")

    audit_log_signing_key = _load_secret_from_file("audit_log_signing_key", "AUDIT_LOG_SIGNING_KEY") or ""

    cfg = AppConfig(
        firebase_project_id=project_id,
        firebase_client_email=client_email,
        firebase_private_key=private_key,
        super_admin_emails=super_admin_emails,
        port=_int_env("PORT", 3000),
        cors_allow_origin=os.environ.get("CORS_ALLOW_ORIGIN", "*"),
        max_content_length=_int_env("MAX_CONTENT_LENGTH", 1024 * 1024),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        provider_timeout_seconds=provider_timeout,
        cascade_batch_size=batch_size,
        users_collection=os.environ.get("USERS_COLLECTION", "users"),
        departments_collection=os.environ.get("DEPARTMENTS_COLLECTION", "departments"),
        schedules_collection=os.environ.get("SCHEDULES_COLLECTION", "schedules"),
        audit_log_dir=os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"),
        audit_log_signing_key=audit_log_signing_key,
    )

    logger.info(
        "[settings] project=%s; super_admins=%d; batch_size=%d; timeout=%ss",
        cfg.firebase_project_id,
        len(cfg.super_admin_emails),
        cfg.cascade_batch_size,
        cfg.provider_timeout_seconds,
    )
    return cfg
