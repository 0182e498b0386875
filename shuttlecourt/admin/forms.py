"""Forms for the admin blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import BooleanField, DecimalField, IntegerField, PasswordField, StringField
from wtforms.validators import DataRequired, EqualTo, Length, NumberRange, Optional


class SettingsForm(FlaskForm):
    """Partial settings update. Fields left out of the request keep their value."""

    courtsCount = IntegerField(
        "Courts count", validators=[Optional(), NumberRange(min=1)]
    )
    playersPerCourt = IntegerField(
        "Players per court", validators=[Optional(), NumberRange(min=1)]
    )
    extraCourtFee = DecimalField(
        "Extra court fee", validators=[Optional(), NumberRange(min=0)]
    )
    registrationEnabled = BooleanField("Registration enabled")
    courtName = StringField("Court name", validators=[Optional(), Length(max=100)])
    courtAddress = StringField(
        "Court address", validators=[Optional(), Length(max=200)]
    )

    def submitted(self):
        """Map of field name to value for the fields present in the request."""
        return {
            name: field.data
            for name, field in self._fields.items()
            if name != "csrf_token" and field.raw_data
        }


class ConfirmCodeForm(FlaskForm):
    """Re-entry of the admin code before a destructive action."""

    code = PasswordField("Admin code", validators=[DataRequired(), Length(max=128)])


class SecretForm(FlaskForm):
    """Rotation of the admin code."""

    code = PasswordField(
        "Current admin code", validators=[DataRequired(), Length(max=128)]
    )
    new_code = PasswordField(
        "New admin code", validators=[DataRequired(), Length(min=6, max=128)]
    )
    confirm_code = PasswordField(
        "Confirm new admin code",
        validators=[DataRequired(), EqualTo("new_code", message="Codes must match.")],
    )
