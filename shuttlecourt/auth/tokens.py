"""Signed, time-bound admin session tokens.

A token reads ``<issuedAt>.<nonce>.<signature>``: the issue time in epoch
milliseconds, a random nonce, and an HMAC-SHA256 of both keyed by the
application's secret key. Only the server can mint or verify one.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import time
from typing import Optional, Union

from shuttlecourt.core.constants import ADMIN_SESSION_HOURS

SESSION_DURATION_MS = ADMIN_SESSION_HOURS * 60 * 60 * 1000
NONCE_BYTES = 9


def now_ms() -> int:
    return int(time.time() * 1000)


def _key(secret: Union[str, bytes]) -> bytes:
    return secret.encode() if isinstance(secret, str) else secret


def sign(issued_at: Union[int, str], nonce: str, secret: Union[str, bytes]) -> str:
    payload = f"{issued_at}:{nonce}".encode()
    return hmac.new(_key(secret), payload, hashlib.sha256).hexdigest()


def issue_token(secret: Union[str, bytes], issued_at: Optional[int] = None) -> str:
    """Mint a new token."""
    if issued_at is None:
        issued_at = now_ms()
    nonce = secrets.token_urlsafe(NONCE_BYTES)
    return f"{issued_at}.{nonce}.{sign(issued_at, nonce, secret)}"


def issued_at_of(token: str) -> Optional[int]:
    """The issue time of a well-formed token, without checking its signature."""
    parts = token.split(".") if isinstance(token, str) else []
    if len(parts) != 3:
        return None
    try:
        return int(parts[0])
    except ValueError:
        return None


def validate_token(
    token: Optional[str],
    secret: Union[str, bytes],
    now: Optional[int] = None,
    duration_ms: int = SESSION_DURATION_MS,
) -> tuple[bool, str]:
    """Check shape, age and signature. Returns ``(valid, reason)``."""
    if not token or not isinstance(token, str):
        return False, "No admin token present"

    parts = token.split(".")
    if len(parts) != 3:
        return False, "Malformed token"

    issued_at_str, nonce, signature = parts
    issued_at = issued_at_of(token)
    if issued_at is None:
        return False, "Malformed token timestamp"

    if now is None:
        now = now_ms()
    if now - issued_at >= duration_ms:
        return False, "Token expired"

    expected = sign(issued_at_str, nonce, secret)
    if not hmac.compare_digest(signature.encode(), expected.encode()):
        return False, "Token signature mismatch"

    return True, "ok"
