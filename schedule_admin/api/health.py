"""Health check endpoints."""
import time

from flask import Blueprint, jsonify

from schedule_admin.api.decorators import require_bearer_token

bp = Blueprint("health", __name__)


@bp.route("/")
def liveness():
    return ("schedule-admin api up", 200, {"Content-Type": "text/plain"})


@bp.route("/health")
@require_bearer_token
def health_check():
    """Authenticated health check: proves token verification works end to end."""
    return jsonify({"ok": True}), 200


@bp.route("/ping")
def ping():
    """Unauthenticated wake-up probe."""
    return jsonify({"ok": True, "ts": int(time.time() * 1000)}), 200


@bp.route("/ready")
def readiness_check():
    return ("ready", 200, {"Content-Type": "text/plain"})
