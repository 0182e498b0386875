"""Forms for the auth blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import PasswordField
from wtforms.validators import DataRequired, Length


class AdminLoginForm(FlaskForm):
    """Admin login form."""

    code = PasswordField(
        "Admin code",
        validators=[DataRequired(), Length(max=128)],
        render_kw={"autocomplete": "current-password"},
    )
