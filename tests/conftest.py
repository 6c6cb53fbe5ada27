"""
Shared fixtures.

``FakeRemote`` stands in for ``RemoteClient``: it keeps rows in memory and
implements the equality-filter / order / limit subset the services use, so
tests can assert on remote state and on the list of calls made.
"""

from __future__ import annotations

import copy
import itertools
from typing import Any, Dict, List, Mapping, Optional

import pytest

from premium_notes.activity import ActivityLog
from premium_notes.auth import AuthClient
from premium_notes.cache import LocalCache
from premium_notes.categories import CategoryManager
from premium_notes.connectivity import ConnectivityMonitor
from premium_notes.controller import NotesController
from premium_notes.database import create_cache_engine
from premium_notes.exceptions import NetworkError, RemoteError
from premium_notes.notes import NoteService


USER_ID = "user-1"

NOTE_DEFAULTS = {
    "is_pinned": False,
    "is_trash": False,
    "image_url": None,
    "password": None,
}


def session_payload(email: str = "me@example.com") -> Dict[str, Any]:
    return {
        "access_token": "access-token",
        "refresh_token": "refresh-token",
        "token_type": "bearer",
        "expires_in": 3600,
        "user": {"id": USER_ID, "email": email},
    }


class FakeRemote:
    health_url = "http://backend.test/auth/v1/health"

    def __init__(self, connectivity: Optional[ConnectivityMonitor] = None) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self.uploads: Dict[str, bytes] = {}
        self.payloads: List[tuple] = []
        self.failures: Dict[tuple, Exception] = {}
        self.connectivity = connectivity
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)

    def _timestamp(self) -> str:
        tick = next(self._clock)
        return f"2024-01-01T00:{tick // 60:02d}:{tick % 60:02d}+00:00"

    def fail(self, method: str, target: str, error: Optional[Exception] = None) -> None:
        self.failures[(method, target)] = error or RemoteError("boom")

    def _record(self, method: str, target: str, *details: Any) -> None:
        self.calls.append((method, target) + details)
        error = self.failures.get((method, target))
        if error is not None:
            if isinstance(error, NetworkError) and self.connectivity is not None:
                self.connectivity.set_online(False)
            raise error

    def seed(self, table: str, **row: Any) -> Dict[str, Any]:
        row.setdefault("id", next(self._ids))
        row.setdefault("created_at", self._timestamp())
        if table == "notes":
            for key, value in NOTE_DEFAULTS.items():
                row.setdefault(key, value)
            row.setdefault("user_id", USER_ID)
            row.setdefault("category", "General")
            row.setdefault("updated_at", row["created_at"])
        self.tables.setdefault(table, []).append(row)
        return row

    @staticmethod
    def _matches(row: Mapping[str, Any], filters: Optional[Mapping[str, Any]]) -> bool:
        return all(row.get(key) == value for key, value in (filters or {}).items())

    def rows(self, table: str, **filters: Any) -> List[Dict[str, Any]]:
        return [row for row in self.tables.get(table, []) if self._matches(row, filters)]

    # RemoteClient surface

    def select(self, table, *, columns="*", filters=None, order=None, limit=None):
        self._record("select", table, dict(filters or {}))
        rows = [copy.deepcopy(row) for row in self.rows(table, **(filters or {}))]
        # Stable sorts applied last key first give multi-column ordering.
        for column, descending in reversed(list(order or [])):
            rows.sort(key=lambda row: (row.get(column) is not None, row.get(column) or 0), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        if columns != "*":
            wanted = [name.strip() for name in columns.split(",")]
            rows = [{name: row.get(name) for name in wanted} for row in rows]
        return rows

    def insert(self, table, rows):
        rows = [dict(row) for row in rows]
        self._record("insert", table, rows)
        return [copy.deepcopy(self.seed(table, **row)) for row in rows]

    def update(self, table, values, *, filters):
        self._record("update", table, dict(values), dict(filters))
        updated = []
        for row in self.rows(table, **filters):
            row.update(values)
            updated.append(copy.deepcopy(row))
        return updated

    def delete(self, table, *, filters):
        self._record("delete", table, dict(filters))
        self.tables[table] = [
            row for row in self.tables.get(table, []) if not self._matches(row, filters)
        ]

    def upload(self, bucket, name, data, content_type):
        self._record("upload", bucket, name)
        self.uploads[name] = data

    def public_url(self, bucket, name):
        return f"http://backend.test/storage/v1/object/public/{bucket}/{name}"

    def download(self, url):
        self._record("download", url)
        return b""

    def request(self, method, path, *, params=None, json=None, data=None, headers=None, authenticated=True):
        self._record(method, path)
        self.payloads.append((path, dict(params or {}), dict(json or {})))
        if path == "/auth/v1/token":
            return session_payload((json or {}).get("email", "me@example.com"))
        if path == "/auth/v1/verify":
            return session_payload()
        if path == "/auth/v1/signup":
            return {"id": USER_ID, "email": (json or {}).get("email")}
        if path == "/auth/v1/user":
            return {"id": USER_ID, "email": "me@example.com"}
        return None

    def writes(self) -> List[tuple]:
        return [call for call in self.calls if call[0] in {"insert", "update", "delete", "upload"}]


@pytest.fixture
def cache_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'cache.db'}"


@pytest.fixture
def cache(cache_url) -> LocalCache:
    return LocalCache(create_cache_engine(cache_url))


@pytest.fixture
def connectivity() -> ConnectivityMonitor:
    return ConnectivityMonitor(initial=True)


@pytest.fixture
def remote(connectivity) -> FakeRemote:
    return FakeRemote(connectivity)


@pytest.fixture
def current_user():
    return lambda: USER_ID


@pytest.fixture
def activity(remote, connectivity, current_user) -> ActivityLog:
    return ActivityLog(remote, connectivity, current_user)


@pytest.fixture
def note_service(remote, cache, connectivity, activity, current_user) -> NoteService:
    return NoteService(remote, cache, connectivity, activity, current_user, clock=lambda: 1700000000000)


@pytest.fixture
def category_manager(remote, cache, connectivity, current_user) -> CategoryManager:
    return CategoryManager(remote, cache, connectivity, current_user)


def build_controller(remote: FakeRemote, cache: LocalCache, connectivity: ConnectivityMonitor) -> NotesController:
    """Wire a controller the same way ``create_controller`` does, over fakes."""
    auth = AuthClient(remote, cache)

    def current_user_id() -> Optional[str]:
        return auth.session.user.id if auth.session else None

    activity = ActivityLog(remote, connectivity, current_user_id)
    controller = NotesController(
        remote=remote,
        auth=auth,
        cache=cache,
        connectivity=connectivity,
        notes=NoteService(remote, cache, connectivity, activity, current_user_id),
        categories=CategoryManager(remote, cache, connectivity, current_user_id),
        activity=activity,
    )
    controller.start()
    return controller


@pytest.fixture
def controller_factory():
    return build_controller


@pytest.fixture
def remote_factory():
    return FakeRemote


@pytest.fixture
def controller(remote, cache, connectivity) -> NotesController:
    return build_controller(remote, cache, connectivity)


@pytest.fixture
def signed_in_controller(controller) -> NotesController:
    controller.login("me@example.com", "secret")
    return controller
