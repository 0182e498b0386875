"""Court capacity and extra-fee calculation."""

from __future__ import annotations

import enum
import math
from typing import Optional

from .models import RegistrationSummary, Settings


class FeeSharing(str, enum.Enum):
    """How the cost of extra courts is split."""

    # Everyone registered that week shares the cost once any court is added.
    ALL = "all"
    # Only the players beyond default capacity pay.
    OVERFLOW = "overflow"

    @classmethod
    def parse(cls, value: Optional[str]) -> FeeSharing:
        if isinstance(value, cls):
            return value
        try:
            return cls((value or cls.ALL.value).strip().lower())
        except ValueError as e:
            raise ValueError(f"Unknown fee sharing policy: {value!r}") from e


def compute_summary(
    player_count: int,
    settings: Settings,
    policy: FeeSharing = FeeSharing.ALL,
    week_info: Optional[dict[str, str]] = None,
) -> RegistrationSummary:
    """Work out courts and fees for `player_count` players under `settings`."""
    if player_count < 0:
        raise ValueError("Player count cannot be negative.")

    capacity = settings.courts_count * settings.players_per_court
    extra_players_count = max(0, player_count - capacity)
    extra_courts = (
        math.ceil(extra_players_count / settings.players_per_court)
        if extra_players_count > 0
        else 0
    )
    required_courts = settings.courts_count + extra_courts
    total_extra_fee = extra_courts * settings.extra_court_fee

    fee_per_player = 0.0
    if extra_courts > 0:
        if policy is FeeSharing.OVERFLOW:
            fee_per_player = total_extra_fee / extra_players_count
        elif player_count > 0:
            fee_per_player = total_extra_fee / player_count

    return RegistrationSummary(
        total_players=player_count,
        required_courts=required_courts,
        extra_courts=extra_courts,
        extra_players_count=extra_players_count,
        total_extra_fee=total_extra_fee,
        fee_per_player=fee_per_player,
        fee_sharing=policy.value,
        week_info=week_info,
    )
