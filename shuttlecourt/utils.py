"""Utility functions for the application."""

from flask import request, session

from shuttlecourt.core.constants import SESSION_TOKEN_KEY
from shuttlecourt.errors import ValidationError


def presented_token():
    """The bearer token from the Authorization header, else from the session."""
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer ") :].strip() or None
    return session.get(SESSION_TOKEN_KEY)


def form_error_message(form):
    """Flatten WTForms errors into one readable sentence."""
    messages = []
    for field_name, errors in form.errors.items():
        label = getattr(getattr(form, field_name, None), "label", None)
        name = label.text if label is not None else field_name
        for error in errors:
            messages.append(f"{name}: {error}")
    return " ".join(messages) or "Invalid input."


def validate_form(form):
    """Validate a submitted form or raise ValidationError."""
    if not form.validate_on_submit():
        raise ValidationError(form_error_message(form))
    return form
