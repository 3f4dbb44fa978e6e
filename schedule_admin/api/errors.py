"""Error handlers for the application."""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from schedule_admin.core.errors import AdminError, Internal

logger = logging.getLogger(__name__)

_HTTP_KINDS = {
    400: "invalid-argument",
    401: "unauthenticated",
    403: "permission-denied",
    404: "not-found",
    405: "invalid-argument",
    409: "already-exists",
    413: "invalid-argument",
    415: "invalid-argument",
}


def register_error_handlers(app):
    """Register JSON error handlers with the Flask app."""

    @app.errorhandler(AdminError)
    def handle_admin_error(error: AdminError):
        return jsonify(error.to_dict()), error.status

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        status = error.code or 500
        kind = _HTTP_KINDS.get(status, "internal")
        return jsonify({"error": kind, "message": error.description or error.name}), status

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        if isinstance(error, HTTPException):
            return handle_http_error(error)

        # Details stay in the log, never in the response
        logger.error("Unhandled exception: %s", error, exc_info=True)
        internal = Internal("an unexpected error occurred")
        return jsonify(internal.to_dict()), internal.status
