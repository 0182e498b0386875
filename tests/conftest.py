"""Common utilities for tests."""

import unittest.mock
from typing import Any

from mockfirestore.document import DocumentReference


class MockBatch:
    def __init__(self, db: Any) -> None:
        self.db = db
        self.writes: list[tuple[Any, Any]] = []
        self.commit = unittest.mock.MagicMock(side_effect=self._real_commit)

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.writes.append((ref, data))

    def delete(self, ref: Any) -> None:
        self.writes.append((ref, "DELETE"))

    def _real_commit(self) -> None:
        for ref, data in self.writes:
            if data == "DELETE":
                ref.delete()
            else:
                ref.set(data)
        self.writes = []


class MockTransaction:
    """Applies queued writes immediately; enough for single-process tests."""

    def __init__(self) -> None:
        self.set_calls: list[tuple[Any, Any]] = []

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.set_calls.append((ref, data))
        ref.set(data)


def patch_mockfirestore() -> None:
    """Let DocumentReference.get accept the transaction argument."""
    if not hasattr(DocumentReference, "_orig_get"):
        DocumentReference._orig_get = DocumentReference.get

        def doc_ref_get(self: Any, transaction: Any = None) -> Any:
            """Handle transaction argument in get."""
            return self._orig_get()

        DocumentReference.get = doc_ref_get


def mock_firestore_module(db: Any) -> unittest.mock.MagicMock:
    """A stand-in for ``firebase_admin.firestore`` wired to `db`."""
    module = unittest.mock.MagicMock()
    module.client.return_value = db
    module.transactional = lambda fn: fn
    db.batch = unittest.mock.MagicMock(side_effect=lambda: MockBatch(db))
    db.transaction = unittest.mock.MagicMock(side_effect=MockTransaction)
    return module
