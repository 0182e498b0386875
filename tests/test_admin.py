"""Tests for the admin blueprint."""

from __future__ import annotations

from typing import Any

from shuttlecourt.admin.services import AdminService
from shuttlecourt.core.models import Settings
from shuttlecourt.errors import UnauthorizedError
from shuttlecourt.storage import get_store
from tests.helpers import ADMIN_CODE, BaseTestCase, make_registration


class AdminRoutesTestCase(BaseTestCase):
    """Test case for the admin blueprint."""

    def setUp(self) -> None:
        super().setUp()
        self.registration = make_registration(["An", "Binh"])
        self.store_registration(self.registration)
        self.mock_db.collection("settings").document("app_settings").set(
            Settings().to_dict()
        )

    def _settings_doc(self) -> dict[str, Any]:
        return self.mock_db.collection("settings").document("app_settings").get().to_dict()

    def _admin_actions(self) -> list[str]:
        return [e["action"] for e in self.log_entries("admin_logs")]

    def _admin_entries(self, action: str) -> list[dict[str, Any]]:
        return [e for e in self.log_entries("admin_logs") if e["action"] == action]

    def test_every_admin_route_rejects_anonymous_callers(self) -> None:
        player_id = self.registration.players[0].id
        requests = [
            ("put", "/admin/settings", {"courtsCount": 5}),
            ("delete", f"/admin/registrations/{self.registration.id}", None),
            (
                "delete",
                f"/admin/registrations/{self.registration.id}/players/{player_id}",
                None,
            ),
            ("get", "/admin/export", None),
            (
                "post",
                "/admin/import",
                {
                    "code": ADMIN_CODE,
                    "data": {"settings": {}, "registrations": [], "metadata": {}},
                },
            ),
            ("post", "/admin/reset", {"code": ADMIN_CODE}),
            ("get", "/admin/logs/admin", None),
            ("delete", "/admin/logs", None),
            (
                "post",
                "/admin/secret",
                {
                    "code": ADMIN_CODE,
                    "new_code": "another-code",
                    "confirm_code": "another-code",
                },
            ),
            ("get", "/admin/stats", None),
        ]
        registrations_before = self.stored_registrations()
        settings_before = self._settings_doc()
        admin_logs_before = len(self.log_entries("admin_logs"))

        for method, url, body in requests:
            response = getattr(self.client, method)(url, json=body)
            self.assertEqual(response.status_code, 401, url)
            self.assertTrue(response.get_json()["reauthenticate"], url)

        self.assertEqual(self.stored_registrations(), registrations_before)
        self.assertEqual(self._settings_doc(), settings_before)
        self.assertEqual(len(self.log_entries("admin_logs")), admin_logs_before)
        self.assertFalse(
            self.mock_db.collection("passwordAdmin").document("passwordAdmin").get().exists
        )
        events = [e["event"] for e in self.log_entries("security_logs")]
        self.assertEqual(events.count("UNAUTHORIZED_ADMIN_ACTION"), len(requests))

    def test_service_methods_check_the_token_themselves(self) -> None:
        with self.app.test_request_context("/"):
            with self.assertRaises(UnauthorizedError):
                AdminService.update_settings(get_store(), {"courtsCount": 5})
            with self.assertRaises(UnauthorizedError):
                AdminService.reset(get_store(), ADMIN_CODE)
        self.assertEqual(self._settings_doc()["courtsCount"], 2)
        self.assertEqual(len(self.stored_registrations()), 1)

    def test_each_admin_request_logs_one_validation(self) -> None:
        self.login()
        requests = [
            ("get", "/admin/stats", None, "VIEW_STATS"),
            ("put", "/admin/settings", {"courtsCount": 3}, "UPDATE_SETTINGS"),
            ("get", "/admin/export", None, "EXPORT_DATA"),
            ("get", "/admin/logs/admin", None, "VIEW_LOGS"),
            (
                "delete",
                f"/admin/registrations/{self.registration.id}",
                None,
                "DELETE_REGISTRATION",
            ),
        ]

        for method, url, body, action in requests:
            before = len(self._admin_entries("ADMIN_ACTION_VALIDATED"))
            response = getattr(self.client, method)(url, json=body)
            self.assertEqual(response.status_code, 200, url)
            validated = self._admin_entries("ADMIN_ACTION_VALIDATED")
            self.assertEqual(len(validated), before + 1, url)

        self.assertCountEqual(
            [e["details"]["action"] for e in self._admin_entries("ADMIN_ACTION_VALIDATED")],
            [action for *_, action in requests],
        )

    def test_update_settings_is_partial_and_not_retroactive(self) -> None:
        self.login()

        response = self.client.put(
            "/admin/settings", json={"courtsCount": 3, "extraCourtFee": 120000}
        )

        self.assertEqual(response.status_code, 200)
        settings = response.get_json()["settings"]
        self.assertEqual(settings["courtsCount"], 3)
        self.assertEqual(settings["extraCourtFee"], 120000)
        self.assertEqual(settings["playersPerCourt"], 4)
        self.assertTrue(settings["registrationEnabled"])
        self.assertEqual(self._settings_doc()["courtsCount"], 3)

        stored = self.stored_registrations()[self.registration.id]
        self.assertEqual(stored["settings"]["courtsCount"], 2)
        self.assertIn("SETTINGS_UPDATED", self._admin_actions())
        self.assertNotIn("REGISTRATION_STATUS_CHANGED", self._admin_actions())

    def test_disable_registration(self) -> None:
        self.login()
        response = self.client.put(
            "/admin/settings", json={"registrationEnabled": False}
        )
        self.assertEqual(response.status_code, 200)
        self.assertFalse(self._settings_doc()["registrationEnabled"])
        changes = self._admin_entries("REGISTRATION_STATUS_CHANGED")
        self.assertEqual(len(changes), 1)
        self.assertEqual(changes[0]["details"], {"enabled": False, "changedBy": "admin"})

    def test_update_settings_rejects_invalid_values(self) -> None:
        self.login()
        for body in ({"courtsCount": 0}, {"extraCourtFee": -5}, {}):
            response = self.client.put("/admin/settings", json=body)
            self.assertEqual(response.status_code, 400, body)
        self.assertEqual(self._settings_doc(), Settings().to_dict())

    def test_delete_registration(self) -> None:
        self.login()

        response = self.client.delete(f"/admin/registrations/{self.registration.id}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.stored_registrations(), {})
        self.assertIn("REGISTRATION_DELETED", self._admin_actions())
        deleted = self._admin_entries("REGISTRATION_DELETED")[0]["details"]
        self.assertEqual(deleted["playerNames"], ["An", "Binh"])
        self.assertEqual(deleted["playersCount"], 2)
        metadata = self.mock_db.collection("metadata").document("app_metadata").get()
        self.assertEqual(metadata.to_dict()["totalRegistrations"], 0)

    def test_delete_unknown_registration(self) -> None:
        self.login()
        response = self.client.delete("/admin/registrations/nope")
        self.assertEqual(response.status_code, 404)

    def test_remove_player_keeps_week_with_remaining_players(self) -> None:
        self.login()
        player = self.registration.players[0]

        response = self.client.delete(
            f"/admin/registrations/{self.registration.id}/players/{player.id}"
        )
        data = response.get_json()

        self.assertEqual(response.status_code, 200)
        self.assertFalse(data["registrationDeleted"])
        self.assertEqual(data["summary"]["totalPlayers"], 1)
        stored = self.stored_registrations()[self.registration.id]
        self.assertEqual([p["name"] for p in stored["players"]], ["Binh"])

    def test_removing_last_player_deletes_week(self) -> None:
        self.login()
        for player in self.registration.players:
            response = self.client.delete(
                f"/admin/registrations/{self.registration.id}/players/{player.id}"
            )
            self.assertEqual(response.status_code, 200)

        self.assertTrue(response.get_json()["registrationDeleted"])
        self.assertEqual(self.stored_registrations(), {})

    def test_remove_unknown_player(self) -> None:
        self.login()
        response = self.client.delete(
            f"/admin/registrations/{self.registration.id}/players/nope"
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(len(self.stored_registrations()[self.registration.id]["players"]), 2)

    def test_export(self) -> None:
        self.login()

        response = self.client.get("/admin/export")
        data = response.get_json()

        self.assertEqual(response.status_code, 200)
        self.assertIn("attachment", response.headers["Content-Disposition"])
        self.assertEqual(set(data), {"settings", "registrations", "metadata", "exportedAt", "version"})
        self.assertEqual(data["metadata"]["totalRegistrations"], 1)
        self.assertEqual(data["metadata"]["totalPlayers"], 2)
        self.assertEqual(data["registrations"][0]["id"], self.registration.id)

    def test_export_import_round_trip(self) -> None:
        self.login()
        older = make_registration(
            ["Chi"], registration_id="older", settings=Settings(courts_count=3)
        )
        older.week_start = older.week_start.replace(year=older.week_start.year - 1)
        older.week_end = older.week_end.replace(year=older.week_end.year - 1)
        self.store_registration(older)
        exported = self.client.get("/admin/export").get_json()

        self.mock_db.collection("settings").document("app_settings").set(
            Settings(courts_count=7).to_dict()
        )
        self.client.delete(f"/admin/registrations/{self.registration.id}")

        response = self.client.post(
            "/admin/import", json={"code": ADMIN_CODE, "data": exported}
        )
        self.assertEqual(response.status_code, 200, response.get_json())
        self.assertEqual(response.get_json()["totalRegistrations"], 2)
        self.assertEqual(response.get_json()["totalPlayers"], 3)

        reexported = self.client.get("/admin/export").get_json()
        self.assertEqual(reexported["settings"], exported["settings"])
        self.assertEqual(reexported["registrations"], exported["registrations"])
        self.assertIn("DATA_IMPORTED", self._admin_actions())

    def test_import_requires_admin_code(self) -> None:
        self.login()
        exported = self.client.get("/admin/export").get_json()
        exported["registrations"] = []

        response = self.client.post(
            "/admin/import", json={"code": "wrong-code", "data": exported}
        )

        self.assertEqual(response.status_code, 401)
        self.assertEqual(len(self.stored_registrations()), 1)
        events = [e["event"] for e in self.log_entries("security_logs")]
        self.assertIn("FAILED_ADMIN_CONFIRMATION", events)

    def test_import_rejects_malformed_documents(self) -> None:
        self.login()
        exported = self.client.get("/admin/export").get_json()

        missing = dict(exported)
        del missing["metadata"]
        bad_entry = dict(exported, registrations=[{"id": "x"}])
        clash = dict(
            exported,
            registrations=[
                exported["registrations"][0],
                dict(exported["registrations"][0], id="copy"),
            ],
        )

        for data, status in ((missing, 400), (bad_entry, 400), (clash, 409)):
            response = self.client.post(
                "/admin/import", json={"code": ADMIN_CODE, "data": data}
            )
            self.assertEqual(response.status_code, status)
        self.assertEqual(list(self.stored_registrations()), [self.registration.id])

    def test_reset(self) -> None:
        self.login()
        self.client.put("/admin/settings", json={"courtsCount": 5})

        wrong = self.client.post("/admin/reset", json={"code": "wrong-code"})
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(len(self.stored_registrations()), 1)

        response = self.client.post("/admin/reset", json={"code": ADMIN_CODE})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.stored_registrations(), {})
        self.assertEqual(self._settings_doc(), Settings().to_dict())
        self.assertIn("DATABASE_RESET", self._admin_actions())

    def test_logs(self) -> None:
        self.login()

        admin_logs = self.client.get("/admin/logs/admin").get_json()["logs"]
        security_logs = self.client.get("/admin/logs/security").get_json()["logs"]

        self.assertIn("SECURE_SESSION_CREATED", [e["action"] for e in admin_logs])
        self.assertIn("SUCCESSFUL_ADMIN_LOGIN", [e["event"] for e in security_logs])
        timestamps = [e["timestamp"] for e in admin_logs]
        self.assertEqual(timestamps, sorted(timestamps, reverse=True))
        self.assertEqual(self.client.get("/admin/logs/other").status_code, 404)

        cleared = self.client.delete("/admin/logs").get_json()["cleared"]
        self.assertGreater(cleared, 0)
        self.assertEqual(self.log_entries("security_logs"), [])
        self.assertEqual(self._admin_actions(), ["LOGS_CLEARED"])

    def test_change_secret(self) -> None:
        self.login()

        mismatch = self.client.post(
            "/admin/secret",
            json={"code": ADMIN_CODE, "new_code": "fresh-code", "confirm_code": "x"},
        )
        self.assertEqual(mismatch.status_code, 400)

        wrong = self.client.post(
            "/admin/secret",
            json={
                "code": "wrong-code",
                "new_code": "fresh-code",
                "confirm_code": "fresh-code",
            },
        )
        self.assertEqual(wrong.status_code, 401)

        response = self.client.post(
            "/admin/secret",
            json={
                "code": ADMIN_CODE,
                "new_code": "fresh-code",
                "confirm_code": "fresh-code",
            },
        )
        self.assertEqual(response.status_code, 200)
        stored = (
            self.mock_db.collection("passwordAdmin").document("passwordAdmin").get().to_dict()
        )
        self.assertNotIn("password", stored)
        self.assertNotEqual(stored["passwordHash"], "fresh-code")

        self.client.post("/auth/logout")
        old = self.client.post("/auth/login", json={"code": ADMIN_CODE})
        self.assertEqual(old.status_code, 401)
        new = self.client.post("/auth/login", json={"code": "fresh-code"})
        self.assertEqual(new.status_code, 200)

    def test_stats(self) -> None:
        self.login()
        data = self.client.get("/admin/stats").get_json()
        self.assertEqual(data["totalRegistrations"], 1)
        self.assertEqual(data["totalPlayers"], 2)
