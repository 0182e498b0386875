"""Service layer for admin-related operations."""

from __future__ import annotations

import datetime
import decimal
from typing import TYPE_CHECKING, Any

from werkzeug.security import generate_password_hash

from shuttlecourt.audit import log_admin_action
from shuttlecourt.auth.services import AdminAuthService
from shuttlecourt.core.constants import AUDIT_LOG_LIMIT
from shuttlecourt.core.merge import RemovalResult, remove_player
from shuttlecourt.core.models import Settings

from .transfer import export_document, parse_import_document

if TYPE_CHECKING:
    from shuttlecourt.storage import RegistrationStore

SETTINGS_FIELDS = {
    "courtsCount": "courts_count",
    "playersPerCourt": "players_per_court",
    "extraCourtFee": "extra_court_fee",
    "registrationEnabled": "registration_enabled",
    "courtName": "court_name",
    "courtAddress": "court_address",
}


class AdminService:
    """Service class for admin-related operations.

    Every method checks the presented admin token first, so nothing is read
    or written for a caller without a valid session.
    """

    @staticmethod
    def update_settings(store: RegistrationStore, changes: dict[str, Any]) -> Settings:
        """Apply a partial settings update. Existing registrations keep their copy."""
        AdminAuthService.require_admin("UPDATE_SETTINGS")
        old_settings = store.get_settings()
        new_settings = old_settings.copy()
        for key, value in changes.items():
            attribute = SETTINGS_FIELDS.get(key)
            if attribute is None:
                continue
            if isinstance(value, decimal.Decimal):
                value = float(value)
            setattr(new_settings, attribute, value)
        new_settings.validate()

        store.update_settings(new_settings)
        log_admin_action(
            "SETTINGS_UPDATED",
            {
                "oldSettings": old_settings.to_dict(),
                "newSettings": new_settings.to_dict(),
            },
        )
        if new_settings.registration_enabled != old_settings.registration_enabled:
            log_admin_action(
                "REGISTRATION_STATUS_CHANGED",
                {"enabled": new_settings.registration_enabled, "changedBy": "admin"},
            )
        return new_settings

    @staticmethod
    def delete_registration(store: RegistrationStore, registration_id: str) -> None:
        AdminAuthService.require_admin("DELETE_REGISTRATION")
        registration = store.get_registration(registration_id)
        store.delete_registration(registration_id)
        log_admin_action(
            "REGISTRATION_DELETED",
            {
                "registrationId": registration_id,
                "weekStart": registration.week_start.isoformat(),
                "playersCount": registration.player_count,
                "playerNames": [p.name for p in registration.players],
            },
        )

    @staticmethod
    def remove_player(
        store: RegistrationStore, registration_id: str, player_id: str
    ) -> RemovalResult:
        """Remove one player; the week itself is deleted once it has nobody left."""
        AdminAuthService.require_admin("REMOVE_PLAYER")
        result = remove_player(store.get_registration(registration_id), player_id)
        if result.deletes_registration:
            store.delete_registration(registration_id)
        else:
            store.update_registration(registration_id, result.registration)

        log_admin_action(
            "PLAYER_REMOVED",
            {
                "registrationId": registration_id,
                "playerId": player_id,
                "playerName": result.removed.name,
                "remainingPlayers": result.registration.player_count,
                "registrationDeleted": result.deletes_registration,
            },
        )
        return result

    @staticmethod
    def export(store: RegistrationStore) -> dict[str, Any]:
        AdminAuthService.require_admin("EXPORT_DATA")
        registrations = store.list_registrations()
        document = export_document(
            store.get_settings(), registrations, store.get_metadata()
        )
        log_admin_action(
            "DATA_EXPORTED", {"totalRegistrations": len(registrations)}
        )
        return document

    @staticmethod
    def import_data(store: RegistrationStore, data: Any, code: str) -> dict[str, int]:
        """Replace all settings and registrations with the contents of an export."""
        AdminAuthService.require_admin("IMPORT_DATA")
        AdminAuthService.confirm_code(store, "IMPORT_DATA", code)
        document = parse_import_document(data, store.tz)

        store.replace_all(document.settings, document.registrations)
        counts = {
            "totalRegistrations": len(document.registrations),
            "totalPlayers": sum(r.player_count for r in document.registrations),
        }
        log_admin_action("DATA_IMPORTED", counts)
        return counts

    @staticmethod
    def reset(store: RegistrationStore, code: str) -> None:
        """Delete every registration and restore default settings."""
        AdminAuthService.require_admin("RESET_DATABASE")
        AdminAuthService.confirm_code(store, "RESET_DATABASE", code)
        store.reset()
        log_admin_action("DATABASE_RESET", {"timestamp": _now_iso()})

    @staticmethod
    def list_logs(
        store: RegistrationStore, kind: str, limit: int = AUDIT_LOG_LIMIT
    ) -> list[dict[str, Any]]:
        AdminAuthService.require_admin("VIEW_LOGS")
        return store.list_audit_logs(kind, limit)

    @staticmethod
    def clear_logs(store: RegistrationStore) -> int:
        AdminAuthService.require_admin("CLEAR_LOGS")
        cleared = store.clear_audit_logs()
        log_admin_action("LOGS_CLEARED", {"clearedCount": cleared})
        return cleared

    @staticmethod
    def change_secret(store: RegistrationStore, code: str, new_code: str) -> None:
        """Rotate the admin code. Only the hash is stored."""
        AdminAuthService.require_admin("CHANGE_ADMIN_CODE")
        AdminAuthService.confirm_code(store, "CHANGE_ADMIN_CODE", code)
        store.set_admin_secret_hash(generate_password_hash(new_code.strip()))
        log_admin_action("ADMIN_PASSWORD_UPDATED", {"timestamp": _now_iso()})

    @staticmethod
    def stats(store: RegistrationStore) -> dict[str, Any]:
        """Counters for the admin dashboard."""
        AdminAuthService.require_admin("VIEW_STATS")
        registrations = store.list_registrations()
        metadata = store.get_metadata()
        last_updated = metadata.get("lastUpdated")
        if isinstance(last_updated, datetime.datetime):
            last_updated = last_updated.isoformat()
        return {
            "totalRegistrations": len(registrations),
            "totalPlayers": sum(r.player_count for r in registrations),
            "lastUpdated": last_updated,
            "version": metadata.get("version"),
        }


def _now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()
