"""Decorators for the auth blueprint."""

from functools import wraps

from .services import AdminAuthService


def admin_required(action):
    """Reject the request unless it carries a valid admin token.

    Usage:
    @admin_required("UPDATE_SETTINGS")
    def update_settings():
        ...

    The check runs before the view body, so nothing is written on failure.
    A passing check is logged by the service method the view calls.
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            AdminAuthService.require_admin(action, record=False)
            return func(*args, **kwargs)

        return decorated_function

    return decorator
