"""Schedule admin API package.

To use the Flask app factory:
    from schedule_admin.flask_app import create_app

To use the Firebase gateway:
    from schedule_admin.core.firebase import UserService, ProfileStore
"""
