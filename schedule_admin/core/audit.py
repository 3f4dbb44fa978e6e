"""Audit logging for admin actions (signed JSONL trail)."""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import logging
import os
from pathlib import Path
from typing import Any, Literal

logger = logging.getLogger(__name__)

AUDIT_LOG_FILENAME = "admin-events.jsonl"

_audit_dir = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))
_signing_key = os.environ.get("AUDIT_LOG_SIGNING_KEY", "").strip().encode("utf-8")

EventType = Literal[
    "create_user", "update_user", "delete_user", "reset_password",
    "access_denied",
]


def configure(log_dir: str | Path, signing_key: str = "") -> None:
    """Point the trail at a directory and set the HMAC key (empty disables signing)."""
    global _audit_dir, _signing_key
    _audit_dir = Path(log_dir)
    _signing_key = (signing_key or "").strip().encode("utf-8")


def audit_log_file() -> Path:
    return _audit_dir / AUDIT_LOG_FILENAME


def _ensure_audit_dir() -> None:
    """Create audit directory with restricted permissions."""
    _audit_dir.mkdir(parents=True, exist_ok=True)
    _audit_dir.chmod(0o700)


def _sign_event(event: dict[str, Any]) -> str:
    """Generate HMAC-SHA256 signature for audit event."""
    if not _signing_key:
        return ""
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"), default=str)
    return hmac.new(_signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def log_admin_event(
    event_type: EventType,
    target_uid: str,
    *,
    operator: str = "system",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    """Append an admin event to the audit trail with timestamp and signature.

    Args:
        event_type: Admin operation (create_user, delete_user, ...)
        target_uid: Account affected by the operation
        operator: Email of the caller who performed it
        details: Additional context (org, changed field names, ...); never secrets
        success: Whether the operation succeeded
    """
    _ensure_audit_dir()

    event = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "target_uid": target_uid,
        "operator": operator,
        "success": success,
        "details": details or {},
    }

    signature = _sign_event(event)
    if signature:
        event["signature"] = signature

    log_file = audit_log_file()
    with log_file.open("a", encoding="utf-8") as f:
        f.write(json.dumps(event, ensure_ascii=False, default=str) + "\n")

    log_file.chmod(0o600)


def safe_log_admin_event(
    event_type: EventType,
    target_uid: str,
    *,
    operator: str = "system",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> bool:
    """Log an admin event, never raising.

    Audit failures must not fail the admin action they describe.

    Returns:
        True if event was logged successfully, False if logging failed
    """
    try:
        log_admin_event(
            event_type,
            target_uid,
            operator=operator,
            details=details,
            success=success,
        )
        return True
    except Exception as exc:
        logger.warning("[audit] Failed to log %s event for %s: %s", event_type, target_uid, exc)
        return False


def verify_audit_log() -> tuple[int, int]:
    """Verify all signatures in the audit log.

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    log_file = audit_log_file()
    if not log_file.exists():
        return 0, 0

    total = 0
    valid = 0

    with log_file.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            total += 1
            try:
                event = json.loads(line)
                stored_sig = event.pop("signature", "")
                if not stored_sig:
                    continue
                computed_sig = _sign_event(event)
                if computed_sig and hmac.compare_digest(stored_sig, computed_sig):
                    valid += 1
            except (json.JSONDecodeError, KeyError):
                continue

    return total, valid


if __name__ == "__main__":
    import sys
    total, valid = verify_audit_log()
    print(f"Audit log: {valid}/{total} events with valid signatures")
    sys.exit(0 if total == valid else 1)
