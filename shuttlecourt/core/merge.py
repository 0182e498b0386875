"""Create-or-merge rule for weekly registrations."""

from __future__ import annotations

import datetime
import enum
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional

from shuttlecourt.core.constants import MAX_PLAYER_NAME_LENGTH
from shuttlecourt.errors import ConflictError, NotFoundError, ValidationError

from .models import Player, WeeklyRegistration
from .weeks import format_range, same_week


class MergeAction(str, enum.Enum):
    CREATE = "create"
    MERGE = "merge"


@dataclass
class MergeResult:
    """Outcome of applying a submission to the stored weeks."""

    action: MergeAction
    registration: Optional[WeeklyRegistration]
    accepted: list[Player] = field(default_factory=list)
    rejected_duplicates: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        """False when every submitted name was already registered."""
        return self.registration is not None


@dataclass
class RemovalResult:
    registration: WeeklyRegistration
    removed: Player

    @property
    def deletes_registration(self) -> bool:
        return not self.registration.players


def normalize_name(name: str) -> str:
    return name.strip().lower()


def validate_player_names(names: Iterable[str]) -> list[str]:
    """Trim submitted names, rejecting blanks and repeats within the submission."""
    cleaned: list[str] = []
    seen: set[str] = set()
    for raw in names:
        if not isinstance(raw, str):
            raise ValidationError("Player names must be text.")
        name = raw.strip()
        if not name:
            raise ValidationError("Player name cannot be empty.")
        if len(name) > MAX_PLAYER_NAME_LENGTH:
            raise ValidationError(
                f'Player name "{name[:20]}..." is longer than '
                f"{MAX_PLAYER_NAME_LENGTH} characters."
            )
        key = normalize_name(name)
        if key in seen:
            raise ValidationError(f'"{name}" is already in this submission.')
        seen.add(key)
        cleaned.append(name)
    if not cleaned:
        raise ValidationError("Add at least one player before submitting.")
    return cleaned


def find_week_registration(
    incoming: WeeklyRegistration,
    existing_registrations: Iterable[WeeklyRegistration],
    tz: Optional[datetime.tzinfo] = None,
) -> Optional[WeeklyRegistration]:
    """Return the stored record for the incoming week, if any."""
    matches = [
        registration
        for registration in existing_registrations
        if same_week(
            registration.week_start,
            registration.week_end,
            incoming.week_start,
            incoming.week_end,
            tz,
        )
    ]
    if len(matches) > 1:
        ids = ", ".join(sorted(r.id for r in matches))
        raise ConflictError(
            f"Found {len(matches)} registrations for the week "
            f"{format_range(incoming.week_start, incoming.week_end, tz)} ({ids}). "
            "Remove the duplicates before adding players."
        )
    return matches[0] if matches else None


def merge_submission(
    incoming: WeeklyRegistration,
    existing_registrations: Iterable[WeeklyRegistration],
    tz: Optional[datetime.tzinfo] = None,
) -> MergeResult:
    """Decide whether `incoming` starts a new week or joins the stored one.

    Names are compared case-insensitively after trimming. Accepted players keep
    the spelling they were submitted with and are appended after the players
    already registered. A merge replaces the stored settings snapshot with the
    incoming one. When nothing new is left the result carries no registration
    and the caller must not write anything.
    """
    existing = find_week_registration(incoming, existing_registrations, tz)
    if existing is None:
        return MergeResult(
            action=MergeAction.CREATE,
            registration=incoming,
            accepted=list(incoming.players),
        )

    taken = {normalize_name(player.name) for player in existing.players}
    accepted: list[Player] = []
    duplicates: list[str] = []
    for player in incoming.players:
        key = normalize_name(player.name)
        if key in taken:
            duplicates.append(player.name)
        else:
            taken.add(key)
            accepted.append(player)

    if not accepted:
        return MergeResult(
            action=MergeAction.MERGE,
            registration=None,
            rejected_duplicates=duplicates,
        )

    merged = WeeklyRegistration(
        id=existing.id,
        week_start=existing.week_start,
        week_end=existing.week_end,
        players=[*existing.players, *accepted],
        settings=incoming.settings,
    )
    return MergeResult(
        action=MergeAction.MERGE,
        registration=merged,
        accepted=accepted,
        rejected_duplicates=duplicates,
    )


def remove_player(registration: WeeklyRegistration, player_id: str) -> RemovalResult:
    """Drop one player. An emptied week is meant to be deleted by the caller."""
    remaining = [p for p in registration.players if p.id != player_id]
    if len(remaining) == len(registration.players):
        raise NotFoundError(
            f"Player {player_id} is not part of registration {registration.id}."
        )
    removed = next(p for p in registration.players if p.id == player_id)
    updated = WeeklyRegistration(
        id=registration.id,
        week_start=registration.week_start,
        week_end=registration.week_end,
        players=remaining,
        settings=registration.settings,
    )
    return RemovalResult(registration=updated, removed=removed)
