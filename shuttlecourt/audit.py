"""Admin action and security event logging.

Entries go to the application logger and, best-effort, to the Firestore log
collections. A failed log write never fails the operation being logged.
"""

from __future__ import annotations

import datetime
from typing import Any, Optional

from flask import current_app, has_request_context, request

from shuttlecourt.core.constants import LOG_KIND_ADMIN, LOG_KIND_SECURITY
from shuttlecourt.core.types import AuditEntry
from shuttlecourt.storage import get_store
from shuttlecourt.utils import presented_token


def _timestamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def _session_id() -> Optional[str]:
    """The issue time of the current admin token, used to group log entries."""
    if not has_request_context():
        return None
    token = presented_token()
    if not token:
        return None
    return str(token).split(".", 1)[0]


def _request_context() -> dict[str, Optional[str]]:
    if not has_request_context():
        return {"userAgent": None, "url": None}
    return {"userAgent": request.headers.get("User-Agent"), "url": request.url}


def _persist(kind: str, entry: AuditEntry) -> None:
    try:
        get_store().append_audit_log(kind, dict(entry))
    except Exception as e:
        current_app.logger.error(f"Failed to save {kind} log: {e}")


def log_admin_action(action: str, details: Optional[dict[str, Any]] = None) -> AuditEntry:
    """Record an admin action."""
    entry: AuditEntry = {
        "action": action,
        "details": details or {},
        "timestamp": _timestamp(),
        "sessionId": _session_id(),
        **_request_context(),
    }
    current_app.logger.info(f"Admin Action: {action} {entry['details']}")
    _persist(LOG_KIND_ADMIN, entry)
    return entry


def log_security_event(
    event: str, details: Optional[dict[str, Any]] = None
) -> AuditEntry:
    """Record a security event such as a failed login or a rejected admin call."""
    entry: AuditEntry = {
        "event": event,
        "details": details or {},
        "timestamp": _timestamp(),
        "sessionId": _session_id(),
        **_request_context(),
    }
    current_app.logger.warning(f"Security Event: {event} {entry['details']}")
    _persist(LOG_KIND_SECURITY, entry)
    return entry
