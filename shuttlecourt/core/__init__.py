"""Core package for the shuttlecourt application."""

from .types import AuditEntry, RegistrationDocument, SettingsDocument

__all__ = ["AuditEntry", "RegistrationDocument", "SettingsDocument"]
