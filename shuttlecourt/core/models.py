"""Data models for settings, players and weekly registrations."""

from __future__ import annotations

import copy
import datetime
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from shuttlecourt.core.constants import (
    DEFAULT_COURTS_COUNT,
    DEFAULT_EXTRA_COURT_FEE,
    DEFAULT_PLAYERS_PER_COURT,
)
from shuttlecourt.core.types import (
    PlayerDocument,
    RegistrationDocument,
    SettingsDocument,
)
from shuttlecourt.errors import ValidationError

from .weeks import week_key


def parse_datetime(value: Any) -> datetime.datetime:
    """Coerce a stored timestamp (datetime or ISO-8601 string) to a datetime."""
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValidationError(f"Invalid date value: {value!r}") from e
    # Firestore Timestamp-like objects
    if hasattr(value, "to_datetime"):
        return value.to_datetime()
    raise ValidationError(f"Invalid date value: {value!r}")


@dataclass
class Settings:
    """Club-wide configuration, snapshotted into every registration."""

    courts_count: int = DEFAULT_COURTS_COUNT
    players_per_court: int = DEFAULT_PLAYERS_PER_COURT
    extra_court_fee: float = DEFAULT_EXTRA_COURT_FEE
    registration_enabled: bool = True
    court_name: Optional[str] = None
    court_address: Optional[str] = None

    @property
    def capacity(self) -> int:
        return self.courts_count * self.players_per_court

    def validate(self) -> None:
        """Reject values the fee engine cannot work with."""
        if isinstance(self.courts_count, bool) or not isinstance(
            self.courts_count, int
        ):
            raise ValidationError("Courts count must be a whole number.")
        if isinstance(self.players_per_court, bool) or not isinstance(
            self.players_per_court, int
        ):
            raise ValidationError("Players per court must be a whole number.")
        if self.courts_count < 1:
            raise ValidationError("Courts count must be at least 1.")
        if self.players_per_court < 1:
            raise ValidationError("Players per court must be at least 1.")
        if self.extra_court_fee is None or self.extra_court_fee < 0:
            raise ValidationError("Extra court fee cannot be negative.")

    def copy(self) -> Settings:
        return copy.copy(self)

    def to_dict(self) -> SettingsDocument:
        data: SettingsDocument = {
            "courtsCount": self.courts_count,
            "playersPerCourt": self.players_per_court,
            "extraCourtFee": self.extra_court_fee,
            "registrationEnabled": self.registration_enabled,
        }
        if self.court_name is not None:
            data["courtName"] = self.court_name
        if self.court_address is not None:
            data["courtAddress"] = self.court_address
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> Settings:
        """Build settings from a stored or imported document.

        Values are not coerced: a string such as ``"false"`` or a fractional
        court count raises ValidationError.
        """
        data = data or {}
        courts_count = data.get("courtsCount", DEFAULT_COURTS_COUNT)
        players_per_court = data.get("playersPerCourt", DEFAULT_PLAYERS_PER_COURT)
        extra_court_fee = data.get("extraCourtFee", DEFAULT_EXTRA_COURT_FEE)
        registration_enabled = data.get("registrationEnabled", True)

        for key, value in (
            ("courtsCount", courts_count),
            ("playersPerCourt", players_per_court),
        ):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(
                    f"Invalid settings: {key} must be a whole number, got {value!r}."
                )
        if isinstance(extra_court_fee, bool) or not isinstance(
            extra_court_fee, (int, float)
        ):
            raise ValidationError(
                f"Invalid settings: extraCourtFee must be a number, got {extra_court_fee!r}."
            )
        if not isinstance(registration_enabled, bool):
            raise ValidationError(
                "Invalid settings: registrationEnabled must be true or false, "
                f"got {registration_enabled!r}."
            )

        return cls(
            courts_count=courts_count,
            players_per_court=players_per_court,
            extra_court_fee=float(extra_court_fee),
            registration_enabled=registration_enabled,
            court_name=data.get("courtName"),
            court_address=data.get("courtAddress"),
        )


@dataclass
class Player:
    """A single signup. Identity within a week is the normalized name."""

    name: str
    registered_at: datetime.datetime
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> PlayerDocument:
        return {"id": self.id, "name": self.name, "registeredAt": self.registered_at}

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "registeredAt": self.registered_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Player:
        if not isinstance(data, dict) or "name" not in data:
            raise ValidationError("Player entries need a name.")
        return cls(
            id=str(data.get("id") or uuid.uuid4().hex),
            name=str(data["name"]),
            registered_at=parse_datetime(data.get("registeredAt")),
        )


@dataclass
class WeeklyRegistration:
    """All players signed up for one Monday–Sunday week."""

    id: str
    week_start: datetime.datetime
    week_end: datetime.datetime
    players: list[Player] = field(default_factory=list)
    settings: Settings = field(default_factory=Settings)

    def __post_init__(self) -> None:
        # Each record owns its settings snapshot.
        self.settings = self.settings.copy()

    @property
    def player_count(self) -> int:
        return len(self.players)

    def to_dict(self) -> RegistrationDocument:
        return {
            "id": self.id,
            "weekKey": week_key(self.week_start, self.week_end),
            "weekStart": self.week_start,
            "weekEnd": self.week_end,
            "players": [player.to_dict() for player in self.players],
            "settings": self.settings.to_dict(),
        }

    def to_json(self) -> dict[str, Any]:
        """Like `to_dict`, with ISO-8601 strings in place of datetimes."""
        data: dict[str, Any] = dict(self.to_dict())
        data["weekStart"] = self.week_start.isoformat()
        data["weekEnd"] = self.week_end.isoformat()
        data["players"] = [player.to_json() for player in self.players]
        return data

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], doc_id: Optional[str] = None
    ) -> WeeklyRegistration:
        if not isinstance(data, dict):
            raise ValidationError("Registration entries must be objects.")
        registration_id = data.get("id") or doc_id
        if not registration_id:
            raise ValidationError("Registration entries need an id.")
        if "weekStart" not in data or "weekEnd" not in data:
            raise ValidationError(
                f"Registration {registration_id} is missing its week range."
            )
        players = data.get("players") or []
        if not isinstance(players, list):
            raise ValidationError(f"Registration {registration_id} has invalid players.")
        return cls(
            id=str(registration_id),
            week_start=parse_datetime(data["weekStart"]),
            week_end=parse_datetime(data["weekEnd"]),
            players=[Player.from_dict(p) for p in players],
            settings=Settings.from_dict(data.get("settings")),
        )


@dataclass(frozen=True)
class RegistrationSummary:
    """Court and fee figures derived from a player count and a settings snapshot."""

    total_players: int
    required_courts: int
    extra_courts: int
    extra_players_count: int
    total_extra_fee: float
    fee_per_player: float
    fee_sharing: str
    week_info: Optional[dict[str, str]] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "totalPlayers": self.total_players,
            "requiredCourts": self.required_courts,
            "extraCourts": self.extra_courts,
            "extraPlayersCount": self.extra_players_count,
            "totalExtraFee": self.total_extra_fee,
            "feePerPlayer": self.fee_per_player,
            "feeSharing": self.fee_sharing,
        }
        if self.week_info is not None:
            data["weekInfo"] = self.week_info
        return data
