"""Export and import of the full data set as one JSON document.

The document holds the settings, every weekly registration and a metadata
block::

    {
        "settings": {...},
        "registrations": [{...}, ...],
        "metadata": {"version", "createdAt", "lastUpdated",
                     "totalRegistrations", "totalPlayers"},
        "exportedAt": "...",
        "version": "1.0.0"
    }

Datetimes are ISO-8601 strings in the document and aware datetimes once
parsed back.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any, Optional

from shuttlecourt.core.constants import DATA_FORMAT_VERSION
from shuttlecourt.core.models import Settings, WeeklyRegistration, parse_datetime
from shuttlecourt.core.weeks import localize, week_key
from shuttlecourt.errors import ConflictError, ValidationError

REQUIRED_KEYS = ("settings", "registrations", "metadata")


@dataclass
class ImportDocument:
    settings: Settings
    registrations: list[WeeklyRegistration]
    metadata: dict[str, Any]


def _iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return parse_datetime(value).isoformat()


def export_filename(today: datetime.date) -> str:
    return f"badminton-data-{today.isoformat()}.json"


def export_document(
    settings: Settings,
    registrations: list[WeeklyRegistration],
    metadata: dict[str, Any],
    exported_at: Optional[datetime.datetime] = None,
) -> dict[str, Any]:
    """Build the export document. Counts are taken from `registrations`."""
    exported_at = exported_at or datetime.datetime.now(datetime.timezone.utc)
    return {
        "settings": settings.to_dict(),
        "registrations": [registration.to_json() for registration in registrations],
        "metadata": {
            "version": metadata.get("version") or DATA_FORMAT_VERSION,
            "createdAt": _iso(metadata.get("createdAt")),
            "lastUpdated": _iso(metadata.get("lastUpdated")),
            "totalRegistrations": len(registrations),
            "totalPlayers": sum(r.player_count for r in registrations),
        },
        "exportedAt": exported_at.isoformat(),
        "version": DATA_FORMAT_VERSION,
    }


def parse_import_document(
    data: Any, tz: Optional[datetime.tzinfo] = None
) -> ImportDocument:
    """Validate an export document and turn it back into models.

    Raises ValidationError for a missing section or malformed entry, and
    ConflictError when two registrations cover the same week.
    """
    if not isinstance(data, dict):
        raise ValidationError("Import data must be a JSON object.")
    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise ValidationError(f"Import data is missing: {', '.join(missing)}.")
    if not isinstance(data["settings"], dict):
        raise ValidationError("Import settings must be an object.")
    if not isinstance(data["registrations"], list):
        raise ValidationError("Import registrations must be a list.")
    if not isinstance(data["metadata"], dict):
        raise ValidationError("Import metadata must be an object.")

    settings = Settings.from_dict(data["settings"])
    settings.validate()

    registrations: list[WeeklyRegistration] = []
    seen_weeks: dict[str, str] = {}
    seen_ids: set[str] = set()
    for item in data["registrations"]:
        registration = WeeklyRegistration.from_dict(item)
        registration.week_start = localize(registration.week_start, tz)
        registration.week_end = localize(registration.week_end, tz)
        if registration.week_end < registration.week_start:
            raise ValidationError(
                f"Registration {registration.id} ends before it starts."
            )
        registration.settings.validate()

        if registration.id in seen_ids:
            raise ConflictError(f"Registration id {registration.id} appears twice.")
        key = week_key(registration.week_start, registration.week_end, tz)
        if key in seen_weeks:
            raise ConflictError(
                f"Registrations {seen_weeks[key]} and {registration.id} "
                "cover the same week."
            )
        seen_ids.add(registration.id)
        seen_weeks[key] = registration.id
        registrations.append(registration)

    return ImportDocument(
        settings=settings,
        registrations=registrations,
        metadata=dict(data["metadata"]),
    )
