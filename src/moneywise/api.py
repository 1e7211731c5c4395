"""
MoneyWise - Flask REST API

This module provides a RESTful API for the MoneyWise personal finance
application. It uses Flask with Flask-Login for session-based
authentication and serves endpoints for:

Authentication:
- Registration, login, logout and a throwaway demo account
- Session management with cookies

Financial Operations:
- Categories (CRUD, default catalog, picker names)
- Transactions (CRUD, recurring templates, cloning, limit warnings)
- Savings goals (CRUD, contributions)
- Monthly spending limits

Analytics:
- Dashboard summary with end-of-month projection and limit alerts
- Statistics for the current month or year

Response envelope:
- Mutations answer ``{"success": bool, "message": str, ...}``
- Reads answer plain JSON lists/objects
"""

import datetime
import logging
import uuid
from dataclasses import asdict
from decimal import Decimal
from functools import wraps

from flask import Flask, jsonify, request, session
from flask.json.provider import DefaultJSONProvider
from flask_cors import CORS

from .auth import AuthService
from .config import Config
from .demo_data import generate_demo_data
from .engine import MoneyWiseEngine
from .errors import NotAuthenticatedError, StorageError, ValidationError
from .log import setup_logging
from .models import EXPENSE
from .session_controller import SessionController, login_required_api
from .setup_sqlite import create_database

LOG = logging.getLogger(__name__)


class CustomJSONProvider(DefaultJSONProvider):
    """
    JSON provider for Decimal and date values.

    Converts:
    - Decimal to float
    - datetime/date to ISO 8601 strings
    """

    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, (datetime.datetime, datetime.date)):
            return obj.isoformat()
        return super().default(obj)


def _result(success, message, status_on_failure=400, **payload):
    body = {"success": success, "message": message}
    body.update(payload)
    if success:
        return jsonify(body), 200
    return jsonify(body), status_on_failure


def create_app(config=None, engine=None, auth=None):
    """
    Build the Flask application.

    Args:
        config: Config instance (``Config.from_env()`` when omitted)
        engine: MoneyWiseEngine to serve (SQLite at ``config.DB_PATH`` when omitted)
        auth: AuthService (same database when omitted)
    """
    config = config or Config.from_env()
    setup_logging(config.LOG_LEVEL, log_dir=config.LOG_DIR)

    app = Flask(__name__)
    app.json = CustomJSONProvider(app)
    app.config.update(config.flask_settings())

    # Enable CORS for the web interface (allows requests from different origins)
    CORS(app, supports_credentials=True)

    if not config.DB_PATH.exists():
        LOG.info("Database not found - creating fresh database at %s", config.DB_PATH)
        if not create_database(config.DB_PATH, verbose=False):
            raise StorageError(f"Could not create the database at {config.DB_PATH}")

    if engine is None:
        engine = MoneyWiseEngine.from_sqlite(config.DB_PATH)
    if auth is None:
        auth = AuthService(config.DB_PATH, bcrypt_rounds=config.BCRYPT_ROUNDS)

    session_ctrl = SessionController(app, auth, session_config={
        'SESSION_COOKIE_SAMESITE': config.SESSION_COOKIE_SAMESITE,
        'SESSION_COOKIE_SECURE': config.SESSION_COOKIE_SECURE,
        'SESSION_COOKIE_HTTPONLY': config.SESSION_COOKIE_HTTPONLY,
    })

    app.extensions['moneywise'] = {'engine': engine, 'auth': auth, 'sessions': session_ctrl}

    def check_engine(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if engine is None:
                return jsonify({"success": False, "message": "Engine not initialized. Check the server log."}), 500
            return func(*args, **kwargs)
        return wrapper

    def current():
        return session_ctrl.current_session()

    def payload():
        return request.get_json(silent=True) or {}

    # =============================================================================
    # ERROR HANDLERS
    # =============================================================================

    @app.errorhandler(StorageError)
    def handle_storage_error(err):
        LOG.error("Storage error on %s %s: %s", request.method, request.path, err)
        return jsonify({"success": False, "message": "A storage error occurred. Please try again."}), 500

    @app.errorhandler(ValidationError)
    def handle_validation_error(err):
        return jsonify({"success": False, "message": err.message, "field": err.field}), 400

    @app.errorhandler(NotAuthenticatedError)
    def handle_not_authenticated(err):
        return jsonify({"success": False, "message": err.message}), 401

    # =============================================================================
    # AUTHENTICATION
    # =============================================================================

    @app.route('/api/register', methods=['POST'])
    @check_engine
    def register_user_api():
        data = payload()
        success, message, user_session = auth.sign_up(
            data.get('email'),
            data.get('password'),
            first_name=data.get('first_name'),
            last_name=data.get('last_name'),
        )
        if not success:
            status_code = 409 if "exists" in message else 400
            return jsonify({"success": False, "message": message}), status_code

        session_ctrl.login(user_session)
        engine.initialize_default_categories(user_session)
        return jsonify({"success": True, "message": message, "user": asdict(user_session)})

    @app.route('/api/login', methods=['POST'])
    @check_engine
    def login_user_api():
        data = payload()
        user_session, message = auth.sign_in(data.get('email'), data.get('password'))
        if not user_session:
            return jsonify({"success": False, "message": message}), 401
        session_ctrl.login(user_session)
        return jsonify({"success": True, "message": message, "user": asdict(user_session)})

    @app.route('/api/demo_login', methods=['POST'])
    @check_engine
    def demo_login():
        """
        Create a demo user for the current browser session.
        Each session gets its own isolated demo user with pre-populated data;
        a previous demo user of the same session is removed first.
        """
        old_demo_user_id = session.get('demo_user_id')
        if old_demo_user_id:
            auth.delete_user(old_demo_user_id)
            LOG.info("[DEMO] Cleaned up old demo user %s", old_demo_user_id)
            session.pop('demo_user_id', None)
            session.pop('is_demo', None)

        success, message, user_session = auth.sign_up(
            f"demo_{uuid.uuid4().hex[:8]}@demo.moneywise",
            uuid.uuid4().hex,
            first_name="Demo",
        )
        if not success:
            return jsonify({"success": False, "message": "Failed to create demo user."}), 500

        demo_info = generate_demo_data(engine, user_session)
        session_ctrl.login(user_session)
        session['demo_user_id'] = user_session.user_id
        session['is_demo'] = True

        return jsonify({
            "success": True,
            "message": "Welcome to the MoneyWise demo!",
            "demo_info": demo_info,
        })

    @app.route('/api/logout', methods=['POST'])
    @login_required_api
    def logout():
        # A demo user and everything it owns is thrown away on logout
        if session.get('is_demo') and session.get('demo_user_id'):
            auth.delete_user(session['demo_user_id'])
        session_ctrl.logout()
        return jsonify({"success": True, "message": "You have been logged out."})

    @app.route('/api/check_session', methods=['GET'])
    @login_required_api
    def check_session():
        user_session = current()
        return jsonify({
            "logged_in": True,
            "email": user_session.email,
            "display_name": user_session.display_name,
            "is_demo": session.get('is_demo', False),
        })

    # =============================================================================
    # CATEGORIES
    # =============================================================================

    @app.route('/api/categories', methods=['GET'])
    @check_engine
    @login_required_api
    def get_categories():
        return jsonify([category.to_dict() for category in engine.list_categories(current())])

    @app.route('/api/categories', methods=['POST'])
    @check_engine
    @login_required_api
    def add_category_api():
        success, message, category = engine.add_category(current(), payload())
        return _result(success, message, category=category.to_dict() if category else None)

    @app.route('/api/categories/<int:category_id>', methods=['PUT', 'DELETE'])
    @check_engine
    @login_required_api
    def manage_category_api(category_id):
        if request.method == 'PUT':
            success, message = engine.update_category(current(), category_id, payload())
            return _result(success, message)

        category = engine.get_category(current(), category_id)
        if category and category.is_default:
            return jsonify({"success": False, "message": "Default categories cannot be deleted."}), 400
        success, message = engine.delete_category(current(), category_id)
        return _result(success, message, status_on_failure=500)

    @app.route('/api/categories/defaults', methods=['POST'])
    @check_engine
    @login_required_api
    def initialize_categories_api():
        success, message, created = engine.initialize_default_categories(current())
        return _result(success, message, status_on_failure=500, created=created)

    @app.route('/api/categories/names', methods=['GET'])
    @check_engine
    @login_required_api
    def category_names_api():
        if request.args.get('kind') == 'goal':
            return jsonify(engine.goal_category_names(current()))
        return jsonify(engine.category_names(current()))

    # =============================================================================
    # TRANSACTIONS
    # =============================================================================

    @app.route('/api/transactions', methods=['GET'])
    @check_engine
    @login_required_api
    def get_transactions():
        limit = request.args.get('limit', 10, type=int)
        return jsonify([tx.to_dict() for tx in engine.recent_transactions(current(), limit)])

    @app.route('/api/transactions', methods=['POST'])
    @check_engine
    @login_required_api
    def create_transaction_api():
        success, message, transaction = engine.create_transaction(current(), payload())
        return _result(success, message, transaction=transaction.to_dict() if transaction else None)

    @app.route('/api/transactions/<int:transaction_id>', methods=['PUT', 'DELETE'])
    @check_engine
    @login_required_api
    def manage_transaction_api(transaction_id):
        if request.method == 'PUT':
            success, message = engine.update_transaction(current(), transaction_id, payload())
            return _result(success, message)
        success, message = engine.delete_transaction(current(), transaction_id)
        return _result(success, message, status_on_failure=500)

    @app.route('/api/transactions/recurring', methods=['GET'])
    @check_engine
    @login_required_api
    def get_recurring_transactions():
        return jsonify([tx.to_dict() for tx in engine.recurring_transactions(current())])

    @app.route('/api/transactions/<int:transaction_id>/clone', methods=['POST'])
    @check_engine
    @login_required_api
    def clone_transaction_api(transaction_id):
        success, message, transaction = engine.clone_recurring(current(), transaction_id, payload())
        status = 404 if message == "Transaction not found." else 400
        return _result(success, message, status_on_failure=status,
                       transaction=transaction.to_dict() if transaction else None)

    @app.route('/api/transactions/limit_check', methods=['POST'])
    @check_engine
    @login_required_api
    def limit_check_api():
        data = payload()
        warning = engine.limit_warning(
            current(),
            data.get('category'),
            data.get('amount'),
            transaction_type=data.get('transaction_type', EXPENSE),
        )
        return jsonify({"warning": warning.to_dict() if warning else None})

    # =============================================================================
    # GOALS
    # =============================================================================

    @app.route('/api/goals', methods=['GET'])
    @check_engine
    @login_required_api
    def get_goals():
        return jsonify([goal.to_dict() for goal in engine.list_goals(current())])

    @app.route('/api/goals', methods=['POST'])
    @check_engine
    @login_required_api
    def create_goal_api():
        success, message, goal = engine.create_goal(current(), payload())
        return _result(success, message, goal=goal.to_dict() if goal else None)

    @app.route('/api/goals/<int:goal_id>', methods=['PUT', 'DELETE'])
    @check_engine
    @login_required_api
    def manage_goal_api(goal_id):
        if request.method == 'PUT':
            success, message = engine.update_goal(current(), goal_id, payload())
            return _result(success, message)
        success, message = engine.delete_goal(current(), goal_id)
        return _result(success, message, status_on_failure=500)

    @app.route('/api/goals/<int:goal_id>/contribute', methods=['POST'])
    @check_engine
    @login_required_api
    def contribute_to_goal_api(goal_id):
        success, message, goal = engine.contribute_to_goal(current(), goal_id, payload().get('amount'))
        status = 404 if message == "Goal not found." else 400
        return _result(success, message, status_on_failure=status, goal=goal.to_dict() if goal else None)

    # =============================================================================
    # SPENDING LIMITS
    # =============================================================================

    @app.route('/api/spending_limits', methods=['GET'])
    @check_engine
    @login_required_api
    def get_spending_limits():
        return jsonify([usage.to_dict() for usage in engine.spending_limits(current())])

    @app.route('/api/spending_limits', methods=['POST'])
    @check_engine
    @login_required_api
    def set_spending_limit_api():
        data = payload()
        success, message, spending_limit = engine.set_spending_limit(
            current(), data.get('category'), data.get('monthly_limit')
        )
        return _result(success, message, spending_limit=spending_limit.to_dict() if spending_limit else None)

    @app.route('/api/spending_limits/<int:limit_id>', methods=['DELETE'])
    @check_engine
    @login_required_api
    def delete_spending_limit_api(limit_id):
        success, message = engine.delete_spending_limit(current(), limit_id)
        return _result(success, message, status_on_failure=500)

    # =============================================================================
    # ANALYTICS
    # =============================================================================

    @app.route('/api/dashboard', methods=['GET'])
    @check_engine
    @login_required_api
    def get_dashboard_data():
        return jsonify(engine.dashboard(current()).to_dict())

    @app.route('/api/statistics', methods=['GET'])
    @check_engine
    @login_required_api
    def get_statistics():
        view = engine.statistics(current(), request.args.get('period', 'month'))
        return jsonify(view.to_dict())

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({"status": "ok", "database": config.DB_PATH.exists()})

    return app


# --- RUN THE APP ---
if __name__ == '__main__':
    settings = Config.from_env()
    create_app(settings).run(debug=True, port=settings.PORT, use_reloader=False)
