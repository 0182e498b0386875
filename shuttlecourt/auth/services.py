"""Service layer for admin authentication and authorization."""

from __future__ import annotations

import datetime
import hmac
from typing import TYPE_CHECKING, Any, Optional

from flask import current_app, session
from werkzeug.security import check_password_hash

from shuttlecourt.audit import log_admin_action, log_security_event
from shuttlecourt.core.constants import (
    ADMIN_SESSION_HOURS,
    LEGACY_ADMIN_KEYS,
    REDACTED_PREFIX_LENGTH,
    SESSION_TOKEN_KEY,
)
from shuttlecourt.errors import (
    InvalidCredentialError,
    PersistenceError,
    UnauthorizedError,
)
from shuttlecourt.utils import presented_token

from . import tokens

if TYPE_CHECKING:
    from shuttlecourt.storage import RegistrationStore


def redact(code: str) -> str:
    return f"{code[:REDACTED_PREFIX_LENGTH]}***"


def _codes_match(submitted: str, expected: str) -> bool:
    return hmac.compare_digest(submitted.encode(), expected.encode())


class AdminAuthService:
    """Issues and checks admin session tokens.

    Authorization is derived from the presented token on every call. The
    legacy ``is_admin`` session flag is written for older clients but never
    read here.
    """

    @staticmethod
    def _secret() -> Any:
        return current_app.config["SECRET_KEY"]

    @staticmethod
    def _duration_ms() -> int:
        hours = current_app.config.get("ADMIN_SESSION_HOURS", ADMIN_SESSION_HOURS)
        return int(float(hours) * 60 * 60 * 1000)

    @staticmethod
    def _clear_session() -> None:
        session.pop(SESSION_TOKEN_KEY, None)
        for key in LEGACY_ADMIN_KEYS:
            session.pop(key, None)

    @staticmethod
    def check_code(store: RegistrationStore, code: Optional[str]) -> bool:
        """Compare a submitted code with the stored admin secret.

        The stored hash wins; a legacy plaintext code is used only when no hash
        exists. If the store holds neither, or cannot be reached, the
        ``ADMIN_CODE`` setting is used instead.
        """
        submitted = (code or "").strip()
        if not submitted:
            return False

        try:
            stored_hash = store.get_admin_secret_hash()
            if stored_hash:
                return check_password_hash(stored_hash, submitted)
            plaintext = store.get_admin_secret_plaintext()
            if plaintext:
                return _codes_match(submitted, plaintext)
        except PersistenceError as e:
            current_app.logger.error(f"Error verifying admin credentials: {e}")
            log_security_event("ADMIN_VERIFICATION_ERROR", {"error": e.message})

        fallback = current_app.config.get("ADMIN_CODE")
        return bool(fallback) and _codes_match(submitted, str(fallback))

    @staticmethod
    def authenticate(store: RegistrationStore, code: Optional[str]) -> str:
        """Verify the admin code and start a session. Returns the new token."""
        if not code or not str(code).strip():
            log_security_event("INVALID_ADMIN_ATTEMPT", {"reason": "Empty code"})
            raise InvalidCredentialError()

        if not AdminAuthService.check_code(store, code):
            log_security_event(
                "FAILED_ADMIN_LOGIN", {"attemptedCode": redact(str(code))}
            )
            raise InvalidCredentialError()

        token = tokens.issue_token(AdminAuthService._secret())
        issued_at = tokens.issued_at_of(token)
        session[SESSION_TOKEN_KEY] = token
        session["is_admin"] = True
        session["admin_auth_time"] = str(issued_at)

        log_security_event("SUCCESSFUL_ADMIN_LOGIN")
        log_admin_action(
            "SECURE_SESSION_CREATED",
            {"sessionId": str(issued_at), "expiresAt": AdminAuthService._expiry(issued_at)},
        )
        return token

    @staticmethod
    def _expiry(issued_at: Optional[int]) -> Optional[str]:
        if issued_at is None:
            return None
        expires_ms = issued_at + AdminAuthService._duration_ms()
        return datetime.datetime.fromtimestamp(
            expires_ms / 1000, tz=datetime.timezone.utc
        ).isoformat()

    @staticmethod
    def validate(token: Optional[str] = None) -> bool:
        """Check the presented token; a bad one is cleared from the session."""
        if token is None:
            token = presented_token()
        if not token:
            return False

        valid, reason = tokens.validate_token(
            token, AdminAuthService._secret(), duration_ms=AdminAuthService._duration_ms()
        )
        if not valid:
            AdminAuthService._clear_session()
            log_security_event("INVALID_TOKEN_DETECTED", {"reason": reason})
        return valid

    @staticmethod
    def require_admin(action: str, record: bool = True) -> None:
        """Abort `action` with UnauthorizedError unless a valid token is presented.

        With `record` false a passing check is not written to the admin log;
        rejections always go to the security log.
        """
        token = presented_token()
        valid, reason = tokens.validate_token(
            token, AdminAuthService._secret(), duration_ms=AdminAuthService._duration_ms()
        )
        if not valid:
            AdminAuthService._clear_session()
            log_security_event(
                "UNAUTHORIZED_ADMIN_ACTION", {"action": action, "reason": reason}
            )
            raise UnauthorizedError(f"Unauthorized: {reason}.")

        if record:
            log_admin_action("ADMIN_ACTION_VALIDATED", {"action": action})

    @staticmethod
    def confirm_code(store: RegistrationStore, action: str, code: Optional[str]) -> None:
        """Re-check the admin code before a destructive action."""
        if not AdminAuthService.check_code(store, code):
            log_security_event(
                "FAILED_ADMIN_CONFIRMATION",
                {"action": action, "attemptedCode": redact(str(code or ""))},
            )
            raise InvalidCredentialError("Admin code confirmation failed.")

    @staticmethod
    def logout() -> None:
        """End the admin session. Safe to call without one."""
        token = session.get(SESSION_TOKEN_KEY)
        if token:
            log_admin_action(
                "SECURE_SESSION_CLEARED", {"sessionId": session.get("admin_auth_time")}
            )
        AdminAuthService._clear_session()

    @staticmethod
    def session_status() -> dict[str, Any]:
        token = presented_token()
        if not token or not AdminAuthService.validate(token):
            return {"isAdmin": False, "sessionId": None, "expiresAt": None}
        issued_at = tokens.issued_at_of(token)
        return {
            "isAdmin": True,
            "sessionId": str(issued_at),
            "expiresAt": AdminAuthService._expiry(issued_at),
        }
