"""
Session Controller for MoneyWise
Centralized session management using Flask-Login

This module provides:
- Session cookies backed by Flask-Login
- A user loader that resolves the cookie to a ``UserSession``
- JSON 401 responses for unauthenticated API calls

Usage:
    session_ctrl = SessionController(app, auth_service)

    @app.route('/api/protected')
    @login_required_api
    def protected_route():
        user_session = session_ctrl.current_session()
"""

import logging
from functools import wraps

from flask import jsonify, session
from flask_login import LoginManager, UserMixin, current_user, login_user, logout_user

from .errors import NotAuthenticatedError, StorageError

LOG = logging.getLogger(__name__)


class User(UserMixin):
    """Flask-Login wrapper around a ``UserSession``."""

    def __init__(self, user_session):
        self.id = str(user_session.user_id)
        self.user_session = user_session

    @property
    def email(self):
        return self.user_session.email


class SessionController:
    """
    Manages user sessions and authentication for the Flask application.

    Features:
    - Flask-Login integration
    - Secure session cookies
    - Conversion between the login cookie and ``UserSession``
    """

    def __init__(self, app, auth, session_config=None):
        """
        Args:
            app: Flask application instance
            auth: AuthService used to reload the user behind a cookie
            session_config: Optional dict with session cookie configuration
        """
        self.app = app
        self.auth = auth
        self.login_manager = LoginManager()

        self._configure_session(session_config)
        self._init_login_manager()

    def _configure_session(self, session_config=None):
        """Configure session cookie security settings."""
        if session_config is None:
            session_config = {
                'SESSION_COOKIE_SAMESITE': 'Lax',
                'SESSION_COOKIE_SECURE': False,
                'SESSION_COOKIE_HTTPONLY': True,
            }

        for key, value in session_config.items():
            self.app.config[key] = value

    def _init_login_manager(self):
        """Initialize Flask-Login with user loader."""
        self.login_manager.init_app(self.app)

        @self.login_manager.user_loader
        def load_user(user_id):
            """Load user from database by ID."""
            try:
                user_session = self.auth.get_user(int(user_id))
            except (StorageError, ValueError) as err:
                LOG.error("Error loading user %s: %s", user_id, err)
                return None
            return User(user_session) if user_session else None

        @self.login_manager.unauthorized_handler
        def unauthorized():
            """Handle unauthorized access attempts."""
            return jsonify(success=False, message=NotAuthenticatedError().message), 401

    def login(self, user_session, remember=False):
        """Log in a user and start the cookie session."""
        login_user(User(user_session), remember=remember)
        return True

    def logout(self):
        """Log out the current user and clear session."""
        logout_user()
        session.clear()
        return True

    def current_session(self):
        """The ``UserSession`` of the logged-in user, or None."""
        if current_user.is_authenticated:
            return current_user.user_session
        return None

    def is_authenticated(self):
        return current_user.is_authenticated


def login_required_api(f):
    """
    Decorator for API routes that require authentication.
    Returns JSON error instead of redirect.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({"success": False, "message": NotAuthenticatedError().message}), 401
        return f(*args, **kwargs)
    return decorated_function


__all__ = ['SessionController', 'User', 'login_required_api']
