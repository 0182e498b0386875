"""Shared base test case for the Flask app backed by mockfirestore."""

from __future__ import annotations

import datetime
import os
import shutil
import tempfile
import unittest
from typing import Any, Optional
from unittest.mock import patch

from mockfirestore import MockFirestore

from shuttlecourt import create_app
from shuttlecourt.core.models import Player, Settings, WeeklyRegistration
from shuttlecourt.core.weeks import club_timezone, next_week_range, week_key
from tests.conftest import mock_firestore_module, patch_mockfirestore

patch_mockfirestore()

ADMIN_CODE = "court-secret"  # nosec
TIMEZONE = "Asia/Ho_Chi_Minh"
TZ = club_timezone(TIMEZONE)


def make_registration(
    names: list[str],
    now: Optional[datetime.datetime] = None,
    settings: Optional[Settings] = None,
    registration_id: Optional[str] = None,
) -> WeeklyRegistration:
    """A registration for the week after `now` (default: the current time)."""
    now = now or datetime.datetime.now(TZ)
    week_start, week_end = next_week_range(now, TZ)
    return WeeklyRegistration(
        id=registration_id or week_key(week_start, week_end, TZ),
        week_start=week_start,
        week_end=week_end,
        players=[Player(name=name, registered_at=now) for name in names],
        settings=settings or Settings(),
    )


class BaseTestCase(unittest.TestCase):
    """App, test client and an in-memory Firestore per test."""

    def setUp(self) -> None:
        self.mock_db = MockFirestore()
        self.mock_firestore = mock_firestore_module(self.mock_db)
        self.tmpdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmpdir, ignore_errors=True)

        patchers = {
            "init_app": patch("firebase_admin.initialize_app"),
            "firestore": patch(
                "shuttlecourt.storage.firestore", new=self.mock_firestore
            ),
        }
        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)

        self.app = create_app(
            {
                "TESTING": True,
                "WTF_CSRF_ENABLED": False,
                "SERVER_NAME": "localhost",
                "SECRET_KEY": "test-secret",
                "ADMIN_CODE": ADMIN_CODE,
                "CLUB_TIMEZONE": TIMEZONE,
                "FALLBACK_STORE_PATH": os.path.join(self.tmpdir, "fallback.json"),
            }
        )
        self.client = self.app.test_client()
        self.app_context = self.app.app_context()
        self.app_context.push()

    def tearDown(self) -> None:
        self.app_context.pop()

    def login(self) -> str:
        """Start an admin session and return the issued token."""
        response = self.client.post("/auth/login", json={"code": ADMIN_CODE})
        self.assertEqual(response.status_code, 200, response.get_json())
        return response.get_json()["token"]

    def store_registration(self, registration: WeeklyRegistration) -> None:
        self.mock_db.collection("registrations").document(registration.id).set(
            registration.to_dict()
        )

    def stored_registrations(self) -> dict[str, dict[str, Any]]:
        return {
            doc.id: doc.to_dict()
            for doc in self.mock_db.collection("registrations").stream()
        }

    def log_entries(self, collection: str) -> list[dict[str, Any]]:
        return [doc.to_dict() for doc in self.mock_db.collection(collection).stream()]
