"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints, middleware, and configuration.
The Gunicorn entry point lives in ``schedule_admin.wsgi``.
"""
from __future__ import annotations
import logging
from typing import Optional

from flask import Flask, request

from schedule_admin.config import AppConfig, load_settings
from schedule_admin.core import audit
from schedule_admin.core.provisioning_service import ProvisioningService

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[AppConfig] = None, users=None, store=None) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Pre-built configuration; loaded from the environment when omitted
        users: Identity-provider service; built from the Firebase handle when omitted
        store: Profile store; built from the Firebase handle when omitted
    """
    if cfg is None:
        cfg = load_settings()

    logging.getLogger().setLevel(cfg.log_level)

    if users is None or store is None:
        from schedule_admin.core.firebase import ProfileStore, UserService, get_firebase_client

        client = get_firebase_client(cfg)
        users = users or UserService(client)
        store = store or ProfileStore(client, cfg)

    app = Flask(__name__)

    # Store config for easy access in routes
    app.config["APP_CONFIG"] = cfg
    app.config["MAX_CONTENT_LENGTH"] = cfg.max_content_length
    app.json.sort_keys = False

    app.extensions["schedule_admin"] = {
        "users": users,
        "store": store,
        "provisioning": ProvisioningService(users, store, cfg.super_admin_emails),
    }

    audit.configure(cfg.audit_log_dir, cfg.audit_log_signing_key)

    # Register blueprints
    from schedule_admin.api import admin, errors, health, users as users_routes

    app.register_blueprint(health.bp)
    app.register_blueprint(admin.bp, url_prefix="/admin")
    app.register_blueprint(users_routes.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    _register_middleware(app, cfg)

    logger.info(
        "[flask_app] project=%s; bootstrap superadmins=%d",
        cfg.firebase_project_id,
        len(cfg.super_admin_emails),
    )
    return app


def _register_middleware(app: Flask, cfg: AppConfig):
    """Register CORS preflight handling and response headers."""

    @app.before_request
    def answer_preflight():
        if request.method == "OPTIONS":
            return ("", 204)
        return None

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = cfg.cors_allow_origin
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        return response


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    settings = load_settings()
    create_app(settings).run(host="0.0.0.0", port=settings.port, debug=True)
