"""Gunicorn configuration file.

Serves ``schedule_admin.wsgi:app`` on ``PORT`` (default 3000). Secrets are
read by ``load_settings`` inside each worker, with ``/run/secrets`` taking
priority over the environment.
"""
import os
from pathlib import Path

wsgi_app = "schedule_admin.wsgi:app"
bind = f"0.0.0.0:{os.environ.get('PORT', '3000')}"
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
threads = int(os.environ.get("GUNICORN_THREADS", "4"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "60"))
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()


def post_fork(server, worker):
    """
    Called just after a worker has been forked.

    Reports whether the Firebase private key comes from a Docker secret or
    the environment, and logs an error when neither provides it.
    """
    secret_file = Path("/run/secrets") / "firebase_private_key"
    if secret_file.is_file():
        worker.log.info("Using Firebase private key from /run/secrets")
        return

    if os.environ.get("FIREBASE_PRIVATE_KEY"):
        worker.log.info("Using Firebase private key from environment")
        return

    worker.log.error("FIREBASE_PRIVATE_KEY is not set and /run/secrets/firebase_private_key is missing")
