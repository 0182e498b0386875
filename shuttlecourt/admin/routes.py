"""Admin routes for the application."""

import datetime

from flask import jsonify, request

from shuttlecourt.auth.decorators import admin_required
from shuttlecourt.core.constants import AUDIT_LOG_LIMIT
from shuttlecourt.errors import ValidationError
from shuttlecourt.registration.services import RegistrationService
from shuttlecourt.storage import get_store
from shuttlecourt.utils import validate_form

from . import bp
from .forms import ConfirmCodeForm, SecretForm, SettingsForm
from .services import AdminService
from .transfer import export_filename


@bp.route("/settings", methods=["PUT"])
@admin_required("UPDATE_SETTINGS")
def update_settings():
    """Update club settings. Only affects registrations made afterwards."""
    form = validate_form(SettingsForm())
    changes = form.submitted()
    if not changes:
        raise ValidationError("No settings were provided.")
    settings = AdminService.update_settings(get_store(), changes)
    return jsonify({"status": "success", "settings": settings.to_dict()})


@bp.route("/registrations/<string:registration_id>", methods=["DELETE"])
@admin_required("DELETE_REGISTRATION")
def delete_registration(registration_id):
    """Delete a whole week."""
    AdminService.delete_registration(get_store(), registration_id)
    return jsonify({"status": "success", "deleted": registration_id})


@bp.route(
    "/registrations/<string:registration_id>/players/<string:player_id>",
    methods=["DELETE"],
)
@admin_required("REMOVE_PLAYER")
def remove_player(registration_id, player_id):
    """Remove a single player from a week."""
    store = get_store()
    result = AdminService.remove_player(store, registration_id, player_id)
    if result.deletes_registration:
        return jsonify(
            {"status": "success", "registrationDeleted": True, "registration": None}
        )
    body = RegistrationService.payload(result.registration, store.tz)
    body.update({"status": "success", "registrationDeleted": False})
    return jsonify(body)


@bp.route("/export")
@admin_required("EXPORT_DATA")
def export_data():
    """Download settings and registrations as one JSON document."""
    response = jsonify(AdminService.export(get_store()))
    filename = export_filename(datetime.date.today())
    response.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


@bp.route("/import", methods=["POST"])
@admin_required("IMPORT_DATA")
def import_data():
    """Replace all data with an export document.

    Body: ``{"code": "<admin code>", "data": {<export document>}}``
    """
    form = validate_form(ConfirmCodeForm())
    payload = request.get_json(silent=True) or {}
    if "data" not in payload:
        raise ValidationError('Send the export document as "data".')
    counts = AdminService.import_data(get_store(), payload["data"], form.code.data)
    return jsonify({"status": "success", **counts})


@bp.route("/reset", methods=["POST"])
@admin_required("RESET_DATABASE")
def reset_data():
    form = validate_form(ConfirmCodeForm())
    AdminService.reset(get_store(), form.code.data)
    return jsonify({"status": "success", "message": "All registrations were deleted."})


@bp.route("/logs/<string:kind>")
@admin_required("VIEW_LOGS")
def list_logs(kind):
    """Most recent admin or security log entries."""
    limit = request.args.get("limit", AUDIT_LOG_LIMIT, type=int)
    if limit < 1:
        raise ValidationError("Limit must be positive.")
    logs = AdminService.list_logs(get_store(), kind, min(limit, AUDIT_LOG_LIMIT))
    return jsonify({"kind": kind, "logs": logs})


@bp.route("/logs", methods=["DELETE"])
@admin_required("CLEAR_LOGS")
def clear_logs():
    cleared = AdminService.clear_logs(get_store())
    return jsonify({"status": "success", "cleared": cleared})


@bp.route("/secret", methods=["POST"])
@admin_required("CHANGE_ADMIN_CODE")
def change_secret():
    """Rotate the admin code after confirming the current one."""
    form = validate_form(SecretForm())
    AdminService.change_secret(get_store(), form.code.data, form.new_code.data)
    return jsonify({"status": "success", "message": "Admin code updated."})


@bp.route("/stats")
@admin_required("VIEW_STATS")
def stats():
    return jsonify(AdminService.stats(get_store()))
