"""Application instance for Gunicorn (``gunicorn schedule_admin.wsgi:app``)."""
from schedule_admin.flask_app import create_app

app = create_app()
