"""Public routes for weekly signups."""

from flask import current_app, jsonify, request

from shuttlecourt.core.merge import MergeAction
from shuttlecourt.errors import ValidationError
from shuttlecourt.storage import get_store

from . import bp
from .services import RegistrationService


def _submitted_names():
    payload = request.get_json(silent=True) or {}
    names = payload.get("players")
    if not isinstance(names, list):
        raise ValidationError('Send the player names as a "players" list.')
    return names


@bp.route("/settings")
def settings():
    """Current club settings, as used for new signups."""
    return jsonify(get_store().get_settings().to_dict())


@bp.route("/registrations")
def list_registrations():
    """Every stored week with its court and fee summary."""
    store = get_store()
    return jsonify({"registrations": RegistrationService.list_with_summaries(store)})


@bp.route("/registrations/current")
def current_registration():
    """Next week's signups, or an empty summary if nobody has signed up yet."""
    store = get_store()
    registration = RegistrationService.current_week(store)
    if registration is None:
        preview = RegistrationService.preview(store, [])
        return jsonify({"registration": None, "summary": preview["summary"]})
    return jsonify(RegistrationService.payload(registration, store.tz))


@bp.route("/registrations", methods=["POST"])
def submit_registration():
    """Register players for next week."""
    store = get_store()
    result = RegistrationService.submit(store, _submitted_names())

    if not result.changed:
        current_app.logger.info(
            f"Submission ignored, all names already registered: {result.rejected_duplicates}"
        )
        return jsonify(
            {
                "status": "warning",
                "action": result.action.value,
                "message": "Everyone in this submission is already registered for this week.",
                "rejectedDuplicates": result.rejected_duplicates,
                "registration": None,
            }
        )

    body = RegistrationService.payload(result.registration, store.tz)
    body.update(
        {
            "status": "success",
            "action": result.action.value,
            "accepted": [p.name for p in result.accepted],
            "rejectedDuplicates": result.rejected_duplicates,
        }
    )
    status_code = 201 if result.action is MergeAction.CREATE else 200
    return jsonify(body), status_code


@bp.route("/registrations/preview", methods=["POST"])
def preview_registration():
    """Court and fee figures for the names typed so far."""
    return jsonify(RegistrationService.preview(get_store(), _submitted_names()))
