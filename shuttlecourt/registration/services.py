"""Service layer for weekly signups."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any, Optional

from flask import current_app

from shuttlecourt.audit import log_admin_action, log_security_event
from shuttlecourt.core.fees import FeeSharing, compute_summary
from shuttlecourt.core.merge import (
    MergeAction,
    MergeResult,
    find_week_registration,
    merge_submission,
    normalize_name,
    validate_player_names,
)
from shuttlecourt.core.models import (
    Player,
    RegistrationSummary,
    Settings,
    WeeklyRegistration,
)
from shuttlecourt.core.weeks import next_week_range, week_info, week_key
from shuttlecourt.errors import RegistrationClosedError

if TYPE_CHECKING:
    from shuttlecourt.storage import RegistrationStore


class RegistrationService:
    """Service class for registration-related operations."""

    @staticmethod
    def fee_policy() -> FeeSharing:
        return FeeSharing.parse(current_app.config.get("FEE_SHARING_POLICY"))

    @staticmethod
    def summarize(
        registration: WeeklyRegistration,
        tz: Optional[datetime.tzinfo] = None,
        policy: Optional[FeeSharing] = None,
    ) -> RegistrationSummary:
        """Summary of a stored week, computed from its own settings snapshot."""
        return compute_summary(
            registration.player_count,
            registration.settings,
            policy or RegistrationService.fee_policy(),
            week_info(registration.week_start, registration.week_end, tz),
        )

    @staticmethod
    def payload(
        registration: WeeklyRegistration, tz: Optional[datetime.tzinfo] = None
    ) -> dict[str, Any]:
        return {
            "registration": registration.to_json(),
            "summary": RegistrationService.summarize(registration, tz).to_dict(),
        }

    @staticmethod
    def build_submission(
        names: list[str],
        settings: Settings,
        now: datetime.datetime,
        tz: Optional[datetime.tzinfo] = None,
    ) -> WeeklyRegistration:
        """Stamp a list of cleaned names with next week's range and a settings copy."""
        week_start, week_end = next_week_range(now, tz)
        return WeeklyRegistration(
            id=week_key(week_start, week_end, tz),
            week_start=week_start,
            week_end=week_end,
            players=[Player(name=name, registered_at=now) for name in names],
            settings=settings,
        )

    @staticmethod
    def submit(
        store: RegistrationStore,
        names: list[str],
        now: Optional[datetime.datetime] = None,
    ) -> MergeResult:
        """Register players for next week, merging into the week if it exists."""
        settings = store.get_settings()
        if not settings.registration_enabled:
            log_security_event(
                "REGISTRATION_ATTEMPT_WHEN_DISABLED",
                {"attemptedPlayerNames": [str(n) for n in names]},
            )
            raise RegistrationClosedError()

        cleaned = validate_player_names(names)
        now = now or datetime.datetime.now(store.tz or datetime.timezone.utc)
        incoming = RegistrationService.build_submission(cleaned, settings, now, store.tz)

        existing = find_week_registration(incoming, store.list_registrations(), store.tz)
        target_id = existing.id if existing is not None else incoming.id
        result = store.apply_week_merge(
            target_id, lambda current: merge_submission(incoming, current, store.tz)
        )

        registration = result.registration
        if result.action is MergeAction.CREATE and registration is not None:
            log_admin_action(
                "REGISTRATION_CREATED",
                {
                    "registrationId": registration.id,
                    "weekStart": registration.week_start.isoformat(),
                    "weekEnd": registration.week_end.isoformat(),
                    "playersCount": registration.player_count,
                    "playerNames": [p.name for p in registration.players],
                    "settings": registration.settings.to_dict(),
                },
            )
        elif registration is not None:
            log_admin_action(
                "PLAYERS_ADDED_TO_REGISTRATION",
                {
                    "registrationId": registration.id,
                    "newPlayersCount": len(result.accepted),
                    "newPlayerNames": [p.name for p in result.accepted],
                    "totalPlayersAfter": registration.player_count,
                },
            )
        if result.rejected_duplicates:
            log_admin_action(
                "DUPLICATE_NAMES_DETECTED",
                {
                    "registrationId": target_id,
                    "duplicateNames": result.rejected_duplicates,
                    "duplicateCount": len(result.rejected_duplicates),
                },
            )
        return result

    @staticmethod
    def current_week(
        store: RegistrationStore, now: Optional[datetime.datetime] = None
    ) -> Optional[WeeklyRegistration]:
        """The stored record for next week, if anyone has signed up yet."""
        now = now or datetime.datetime.now(store.tz or datetime.timezone.utc)
        week_start, week_end = next_week_range(now, store.tz)
        probe = WeeklyRegistration(
            id=week_key(week_start, week_end, store.tz),
            week_start=week_start,
            week_end=week_end,
        )
        return find_week_registration(probe, store.list_registrations(), store.tz)

    @staticmethod
    def preview(
        store: RegistrationStore,
        names: list[str],
        now: Optional[datetime.datetime] = None,
    ) -> dict[str, Any]:
        """Live summary while names are still being typed.

        Counts the players already registered for next week plus the typed
        names that would be accepted, using the current settings.
        """
        now = now or datetime.datetime.now(store.tz or datetime.timezone.utc)
        settings = store.get_settings()
        current = RegistrationService.current_week(store, now)
        week_start, week_end = next_week_range(now, store.tz)

        taken = {normalize_name(p.name) for p in current.players} if current else set()
        existing_count = len(current.players) if current else 0
        new_names: list[str] = []
        duplicates: list[str] = []
        for raw in names:
            name = str(raw).strip()
            if not name:
                continue
            key = normalize_name(name)
            if key in taken:
                duplicates.append(name)
            else:
                taken.add(key)
                new_names.append(name)

        summary = compute_summary(
            existing_count + len(new_names),
            settings,
            RegistrationService.fee_policy(),
            week_info(week_start, week_end, store.tz),
        )
        return {
            "summary": summary.to_dict(),
            "existingPlayersCount": existing_count,
            "newPlayers": new_names,
            "duplicates": duplicates,
            "registrationEnabled": settings.registration_enabled,
        }

    @staticmethod
    def list_with_summaries(store: RegistrationStore) -> list[dict[str, Any]]:
        return [
            RegistrationService.payload(registration, store.tz)
            for registration in store.list_registrations()
        ]
