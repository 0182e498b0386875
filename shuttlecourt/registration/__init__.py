"""The registration blueprint."""

from flask import Blueprint

bp = Blueprint("registration", __name__)

from . import routes  # noqa: E402

__all__ = ["routes"]
