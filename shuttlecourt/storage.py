"""Firestore-backed persistence for settings, registrations and audit logs."""

from __future__ import annotations

import datetime
import json
import logging
import os
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, Optional

from firebase_admin import firestore
from flask import current_app, g

from shuttlecourt.core.constants import (
    ADMIN_CONFIG_COLLECTION,
    ADMIN_CONFIG_DOC,
    ADMIN_LOGS_COLLECTION,
    APP_METADATA_DOC,
    APP_SETTINGS_DOC,
    AUDIT_LOG_LIMIT,
    DATA_FORMAT_VERSION,
    FIRESTORE_BATCH_LIMIT,
    LOG_KIND_ADMIN,
    LOG_KIND_SECURITY,
    METADATA_COLLECTION,
    REGISTRATIONS_COLLECTION,
    SECURITY_LOGS_COLLECTION,
    SETTINGS_COLLECTION,
)
from shuttlecourt.core.models import Settings, WeeklyRegistration
from shuttlecourt.core.weeks import club_timezone, localize
from shuttlecourt.errors import AppError, NotFoundError, PersistenceError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

    from shuttlecourt.core.merge import MergeResult

logger = logging.getLogger(__name__)

LOG_COLLECTIONS = {
    LOG_KIND_ADMIN: ADMIN_LOGS_COLLECTION,
    LOG_KIND_SECURITY: SECURITY_LOGS_COLLECTION,
}
DESCENDING = "DESCENDING"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class SnapshotFile:
    """Last-known-good copy of settings and registrations on local disk.

    Used as the read tier when Firestore cannot be reached.
    """

    def __init__(self, path: str) -> None:
        self.path = path

    def load(self) -> dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, encoding="utf-8") as f:
            return json.load(f)

    def save(self, key: str, value: Any) -> None:
        try:
            data = self.load()
        except (OSError, ValueError):
            data = {}
        data[key] = value
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)


class RegistrationStore:
    """Facade over the Firestore collections the application uses."""

    def __init__(
        self,
        db: Client,
        tz: Optional[datetime.tzinfo] = None,
        fallback_path: Optional[str] = None,
    ) -> None:
        self.db = db
        self.tz = tz
        self.snapshot = SnapshotFile(fallback_path) if fallback_path else None

    # Conversion --------------------------------------------------------
    def _localized(self, registration: WeeklyRegistration) -> WeeklyRegistration:
        registration.week_start = localize(registration.week_start, self.tz)
        registration.week_end = localize(registration.week_end, self.tz)
        for player in registration.players:
            player.registered_at = localize(player.registered_at, self.tz)
        return registration

    def _registration_from_snapshot(self, snapshot: Any) -> WeeklyRegistration:
        registration = WeeklyRegistration.from_dict(
            snapshot.to_dict() or {}, doc_id=snapshot.id
        )
        return self._localized(registration)

    def _settings_ref(self) -> DocumentReference:
        return self.db.collection(SETTINGS_COLLECTION).document(APP_SETTINGS_DOC)

    def _registration_ref(self, registration_id: str) -> DocumentReference:
        return self.db.collection(REGISTRATIONS_COLLECTION).document(registration_id)

    # Fallback tier -----------------------------------------------------
    def _remember(self, key: str, value: Any) -> None:
        if self.snapshot is None:
            return
        try:
            self.snapshot.save(key, value)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not refresh fallback snapshot: {e}")

    def _recall(self, key: str, error: Exception) -> Any:
        if self.snapshot is not None:
            try:
                data = self.snapshot.load()
            except (OSError, ValueError) as e:
                logger.error(f"Fallback snapshot unreadable: {e}")
                data = {}
            if key in data:
                logger.warning(
                    f"Firestore read of {key} failed ({error}); serving fallback copy."
                )
                return data[key]
        raise PersistenceError(f"Could not read {key}: {error}") from error

    # Settings ----------------------------------------------------------
    def get_settings(self) -> Settings:
        """Return the current settings, writing defaults on first run."""
        try:
            doc = self._settings_ref().get()
            if not doc.exists:
                settings = Settings()
                self._settings_ref().set(settings.to_dict())
            else:
                settings = Settings.from_dict(doc.to_dict())
        except AppError:
            raise
        except Exception as e:
            return Settings.from_dict(self._recall("settings", e))
        self._remember("settings", settings.to_dict())
        return settings

    def update_settings(self, settings: Settings) -> None:
        try:
            self._settings_ref().set(settings.to_dict())
        except Exception as e:
            raise PersistenceError(f"Could not update settings: {e}") from e
        self._remember("settings", settings.to_dict())

    # Registrations -----------------------------------------------------
    def list_registrations(self) -> list[WeeklyRegistration]:
        """Return every stored week, most recent first."""
        try:
            registrations = [
                self._registration_from_snapshot(doc)
                for doc in self.db.collection(REGISTRATIONS_COLLECTION).stream()
            ]
        except AppError:
            raise
        except Exception as e:
            registrations = [
                self._localized(WeeklyRegistration.from_dict(item))
                for item in self._recall("registrations", e)
            ]
        else:
            self._remember("registrations", [r.to_json() for r in registrations])
        registrations.sort(key=lambda r: r.week_start, reverse=True)
        return registrations

    def get_registration(self, registration_id: str) -> WeeklyRegistration:
        try:
            doc = self._registration_ref(registration_id).get()
        except Exception as e:
            raise PersistenceError(f"Could not load registration: {e}") from e
        if not doc.exists:
            raise NotFoundError(f"Registration {registration_id} not found.")
        return self._registration_from_snapshot(doc)

    def create_registration(self, registration: WeeklyRegistration) -> None:
        self._write(
            "create registration",
            lambda: self._registration_ref(registration.id).set(registration.to_dict()),
        )

    def update_registration(
        self, registration_id: str, registration: WeeklyRegistration
    ) -> None:
        data = registration.to_dict()
        data["id"] = registration_id
        self._write(
            "update registration",
            lambda: self._registration_ref(registration_id).set(data),
        )

    def delete_registration(self, registration_id: str) -> None:
        self._write(
            "delete registration",
            lambda: self._registration_ref(registration_id).delete(),
        )

    def _write(self, label: str, operation: Callable[[], Any]) -> None:
        try:
            operation()
        except Exception as e:
            raise PersistenceError(f"Could not {label}: {e}") from e
        self.refresh_metadata()

    @staticmethod
    def _merge_week_in_transaction(
        transaction: Transaction,
        week_ref: DocumentReference,
        merge: Callable[[list[WeeklyRegistration]], MergeResult],
        tz: Optional[datetime.tzinfo] = None,
    ) -> MergeResult:
        """Read the week document, apply `merge`, and queue the write."""
        snapshot = week_ref.get(transaction=transaction)
        existing: list[WeeklyRegistration] = []
        if snapshot.exists:
            registration = WeeklyRegistration.from_dict(
                snapshot.to_dict() or {}, doc_id=snapshot.id
            )
            registration.week_start = localize(registration.week_start, tz)
            registration.week_end = localize(registration.week_end, tz)
            existing.append(registration)

        result = merge(existing)
        if result.registration is not None:
            # The stored id must match the document it is written to.
            result.registration.id = week_ref.id
            data = result.registration.to_dict()
            data["updatedAt"] = _utcnow()
            transaction.set(week_ref, data)
        return result

    def apply_week_merge(
        self,
        registration_id: str,
        merge: Callable[[list[WeeklyRegistration]], MergeResult],
    ) -> MergeResult:
        """Run the create-or-merge step for one week as a single transaction.

        The week document id is the uniqueness key, so two concurrent
        submissions for the same week serialize on it instead of both
        creating a record.
        """
        week_ref = self._registration_ref(registration_id)
        try:
            transaction = self.db.transaction()
            run = firestore.transactional(self._merge_week_in_transaction)
            result = run(transaction, week_ref, merge, self.tz)
        except AppError:
            raise
        except Exception as e:
            raise PersistenceError(f"Could not save registration: {e}") from e
        if result.changed:
            self.refresh_metadata()
        return result

    def _delete_all(self, refs: Iterable[Any]) -> None:
        batch = self.db.batch()
        pending = 0
        for ref in refs:
            batch.delete(ref)
            pending += 1
            if pending >= FIRESTORE_BATCH_LIMIT:
                batch.commit()
                batch = self.db.batch()
                pending = 0
        if pending:
            batch.commit()

    def replace_all(
        self, settings: Settings, registrations: list[WeeklyRegistration]
    ) -> None:
        """Swap every stored registration and the settings for the given data."""
        try:
            self._delete_all(
                doc.reference
                for doc in self.db.collection(REGISTRATIONS_COLLECTION).stream()
            )
            batch = self.db.batch()
            batch.set(self._settings_ref(), settings.to_dict())
            for index, registration in enumerate(registrations, start=1):
                batch.set(
                    self._registration_ref(registration.id), registration.to_dict()
                )
                if index % FIRESTORE_BATCH_LIMIT == 0:
                    batch.commit()
                    batch = self.db.batch()
            batch.commit()
        except Exception as e:
            raise PersistenceError(f"Could not import data: {e}") from e
        self.refresh_metadata()

    def reset(self) -> None:
        """Delete all registrations and restore default settings."""
        try:
            self._delete_all(
                doc.reference
                for doc in self.db.collection(REGISTRATIONS_COLLECTION).stream()
            )
            self._settings_ref().set(Settings().to_dict())
            self._metadata_ref().set(self._metadata_document(0, 0, created_at=None))
        except Exception as e:
            raise PersistenceError(f"Could not reset data: {e}") from e

    # Metadata ----------------------------------------------------------
    def _metadata_ref(self) -> DocumentReference:
        return self.db.collection(METADATA_COLLECTION).document(APP_METADATA_DOC)

    @staticmethod
    def _metadata_document(
        total_registrations: int,
        total_players: int,
        created_at: Optional[datetime.datetime],
    ) -> dict[str, Any]:
        now = _utcnow()
        return {
            "version": DATA_FORMAT_VERSION,
            "createdAt": created_at or now,
            "lastUpdated": now,
            "totalRegistrations": total_registrations,
            "totalPlayers": total_players,
        }

    def refresh_metadata(self) -> None:
        """Recount registrations and players. Failures are only logged."""
        try:
            docs = list(self.db.collection(REGISTRATIONS_COLLECTION).stream())
            total_players = sum(
                len((doc.to_dict() or {}).get("players") or []) for doc in docs
            )
            existing = self._metadata_ref().get()
            created_at = None
            if existing.exists:
                created_at = (existing.to_dict() or {}).get("createdAt")
            self._metadata_ref().set(
                self._metadata_document(len(docs), total_players, created_at)
            )
        except Exception as e:
            logger.error(f"Error updating metadata: {e}")

    def get_metadata(self) -> dict[str, Any]:
        try:
            doc = self._metadata_ref().get()
        except Exception as e:
            raise PersistenceError(f"Could not read metadata: {e}") from e
        if not doc.exists:
            return self._metadata_document(0, 0, created_at=None)
        return doc.to_dict() or {}

    # Audit logs --------------------------------------------------------
    def append_audit_log(self, kind: str, entry: dict[str, Any]) -> None:
        if kind not in LOG_COLLECTIONS:
            raise ValueError(f"Unknown log kind: {kind}")
        try:
            self.db.collection(LOG_COLLECTIONS[kind]).add(entry)
        except Exception as e:
            raise PersistenceError(f"Could not write {kind} log: {e}") from e

    def list_audit_logs(
        self, kind: str, limit: int = AUDIT_LOG_LIMIT
    ) -> list[dict[str, Any]]:
        if kind not in LOG_COLLECTIONS:
            raise NotFoundError(f"Unknown log kind: {kind}")
        try:
            docs = (
                self.db.collection(LOG_COLLECTIONS[kind])
                .order_by("timestamp", direction=DESCENDING)
                .limit(limit)
                .stream()
            )
            return [{"id": doc.id, **(doc.to_dict() or {})} for doc in docs]
        except Exception as e:
            raise PersistenceError(f"Could not read {kind} logs: {e}") from e

    def clear_audit_logs(self) -> int:
        try:
            refs = [
                doc.reference
                for collection in LOG_COLLECTIONS.values()
                for doc in self.db.collection(collection).stream()
            ]
            self._delete_all(refs)
        except Exception as e:
            raise PersistenceError(f"Could not clear logs: {e}") from e
        return len(refs)

    # Admin secret ------------------------------------------------------
    def _admin_config(self) -> dict[str, Any]:
        try:
            doc = (
                self.db.collection(ADMIN_CONFIG_COLLECTION)
                .document(ADMIN_CONFIG_DOC)
                .get()
            )
        except Exception as e:
            raise PersistenceError(f"Could not read admin config: {e}") from e
        return (doc.to_dict() or {}) if doc.exists else {}

    def get_admin_secret_hash(self) -> Optional[str]:
        return self._admin_config().get("passwordHash")

    def get_admin_secret_plaintext(self) -> Optional[str]:
        """Legacy plaintext code, only present on configs never rotated."""
        return self._admin_config().get("password")

    def set_admin_secret_hash(self, password_hash: str) -> None:
        """Store a new hash. The write replaces the document, dropping any plaintext."""
        try:
            self.db.collection(ADMIN_CONFIG_COLLECTION).document(ADMIN_CONFIG_DOC).set(
                {
                    "passwordHash": password_hash,
                    "lastUpdated": _utcnow(),
                    "version": DATA_FORMAT_VERSION,
                }
            )
        except Exception as e:
            raise PersistenceError(f"Could not update admin code: {e}") from e


def get_store() -> RegistrationStore:
    """Return the store for the current request."""
    if "store" not in g:
        g.store = RegistrationStore(
            firestore.client(),
            tz=club_timezone(current_app.config["CLUB_TIMEZONE"]),
            fallback_path=current_app.config.get("FALLBACK_STORE_PATH"),
        )
    return g.store
