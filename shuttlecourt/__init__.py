"""Initialize the Flask app and its extensions."""

import json
import os

import firebase_admin
from firebase_admin import credentials
from flask import Flask, jsonify
from werkzeug.middleware.proxy_fix import ProxyFix

from .core.constants import ADMIN_SESSION_HOURS, DEFAULT_TIMEZONE
from .core.fees import FeeSharing
from .extensions import csrf


def _init_firebase(app):
    """Initialize the Firebase Admin SDK from env, file, or default credentials."""
    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except ValueError as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except ValueError as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    if cred and not firebase_admin._apps:
        options = {"projectId": project_id} if project_id else None
        try:
            firebase_admin.initialize_app(cred, options)
        except ValueError:
            app.logger.info("Firebase app already initialized.")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        ADMIN_CODE=os.environ.get("ADMIN_CODE"),
        CLUB_TIMEZONE=os.environ.get("CLUB_TIMEZONE") or DEFAULT_TIMEZONE,
        FEE_SHARING_POLICY=os.environ.get("FEE_SHARING_POLICY")
        or FeeSharing.ALL.value,
        FALLBACK_STORE_PATH=os.environ.get("FALLBACK_STORE_PATH")
        or os.path.join(app.instance_path, "fallback_store.json"),
        ADMIN_SESSION_HOURS=float(
            os.environ.get("ADMIN_SESSION_HOURS") or ADMIN_SESSION_HOURS
        ),
    )

    if test_config:
        app.config.update(test_config)

    # Unknown policies raise here
    FeeSharing.parse(app.config["FEE_SHARING_POLICY"])

    if not app.config.get("TESTING"):
        _init_firebase(app)

    try:
        os.makedirs(app.instance_path)
    except OSError:
        pass

    csrf.init_app(app)

    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import registration as registration_bp

    app.register_blueprint(registration_bp.bp)

    from . import admin as admin_bp

    app.register_blueprint(admin_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.route("/health")
    def health_check():
        """Perform a simple health check."""
        return jsonify({"status": "ok"})

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
