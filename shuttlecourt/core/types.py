"""Core data types for the shuttlecourt application."""

from typing import Any, Dict, List, Optional, TypedDict  # noqa: UP035


class SettingsDocument(TypedDict, total=False):
    """The `settings/app_settings` document."""

    courtsCount: int
    playersPerCourt: int
    extraCourtFee: float
    registrationEnabled: bool
    courtName: Optional[str]
    courtAddress: Optional[str]


class PlayerDocument(TypedDict):
    """A player entry embedded in a registration document."""

    id: str
    name: str
    registeredAt: Any


class _RegistrationDocumentBase(TypedDict):
    id: str
    weekStart: Any
    weekEnd: Any
    players: List[PlayerDocument]  # noqa: UP006
    settings: SettingsDocument


class RegistrationDocument(_RegistrationDocumentBase, total=False):
    """A weekly registration document in Firestore."""

    weekKey: str
    updatedAt: Any


class AuditEntry(TypedDict, total=False):
    """An entry in the admin or security log collections."""

    action: str
    event: str
    details: Dict[str, Any]  # noqa: UP006
    timestamp: str
    userAgent: Optional[str]
    url: Optional[str]
    sessionId: Optional[str]
