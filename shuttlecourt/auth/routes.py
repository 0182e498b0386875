from flask import current_app, jsonify
from flask_wtf.csrf import generate_csrf

from shuttlecourt.audit import log_security_event
from shuttlecourt.errors import InvalidCredentialError
from shuttlecourt.storage import get_store
from shuttlecourt.utils import form_error_message

from . import bp
from .forms import AdminLoginForm
from .services import AdminAuthService


@bp.route("/login", methods=["POST"])
def login():
    """
    Exchanges the admin code for a session token.
    The token is kept in the session cookie and also returned so API clients
    can send it as a bearer token.
    """
    form = AdminLoginForm()
    if not form.validate_on_submit():
        log_security_event(
            "INVALID_ADMIN_ATTEMPT", {"reason": form_error_message(form)}
        )
        raise InvalidCredentialError()

    token = AdminAuthService.authenticate(get_store(), form.code.data)
    current_app.logger.info("Admin session started")
    status = AdminAuthService.session_status()
    return jsonify({"status": "success", "token": token, **status})


@bp.route("/logout", methods=["POST"])
def logout():
    """Clears the admin session. Calling it twice is harmless."""
    AdminAuthService.logout()
    return jsonify({"status": "success", "message": "You have been logged out."})


@bp.route("/status")
def status():
    return jsonify(AdminAuthService.session_status())


@bp.route("/csrf-token")
def csrf_token():
    """Hands out a CSRF token for clients posting JSON."""
    return jsonify({"csrfToken": generate_csrf()})
