from __future__ import annotations

import copy
from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest

from app import Services, create_app
from auth import SESSION_KEY, SessionObserver
from errors import RemoteError
from images import ImagePipeline
from models import SessionUser
from posts import PostStore
from profiles import ProfileStore


class FakeDatabase:
    """In-memory stand-in for RealtimeDatabase keyed by slash paths."""

    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self.data: Dict[str, Any] = data or {}
        self.calls = []
        self.clock = 1_700_000_000_000
        self.counter = 0
        self.fail = False

    def _record(self, op, path):
        self.calls.append((op, path))
        if self.fail:
            raise RemoteError(f"Database request failed ({op} {path}).")

    def _resolve(self, value):
        if value == {".sv": "timestamp"}:
            self.clock += 1000
            return self.clock
        if isinstance(value, dict):
            return {k: self._resolve(v) for k, v in value.items()}
        return copy.deepcopy(value)

    def _parts(self, path):
        return [p for p in path.strip("/").split("/") if p]

    def _node(self, path, create=False):
        node = self.data
        for part in self._parts(path):
            if not isinstance(node, dict):
                return None
            if part not in node:
                if not create:
                    return None
                node[part] = {}
            node = node[part]
        return node

    def get(self, path, id_token=None):
        self._record("get", path)
        return copy.deepcopy(self._node(path))

    def push(self, path, value, id_token=None):
        self._record("push", path)
        self.counter += 1
        key = f"-key{self.counter:04d}"
        self._node(path, create=True)[key] = self._resolve(value)
        return key

    def set(self, path, value, id_token=None):
        self._record("set", path)
        *parents, leaf = self._parts(path)
        self._node("/".join(parents), create=True)[leaf] = self._resolve(value)

    def update(self, path, value, id_token=None):
        self._record("update", path)
        self._node(path, create=True).update(self._resolve(value))

    def delete(self, path, id_token=None):
        self._record("delete", path)
        *parents, leaf = self._parts(path)
        parent = self._node("/".join(parents))
        if isinstance(parent, dict):
            parent.pop(leaf, None)


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def blobs():
    store = MagicMock()
    store.upload.side_effect = lambda key, data, content_type: f"https://cdn.example.com/{key}"
    return store


@pytest.fixture
def user():
    return SessionUser(
        uid="u1",
        email="writer@example.com",
        display_name="Writer",
        photo_url="https://example.com/me.png",
        id_token="token-1",
        refresh_token="refresh-1",
        # 2100-01-01, well clear of the refresh window
        expires_at=4_102_444_800,
    )


@pytest.fixture
def post_store(fake_db, blobs):
    return PostStore(fake_db, blobs)


@pytest.fixture
def services(fake_db, blobs, post_store):
    return Services(
        auth=MagicMock(),
        observer=SessionObserver(),
        posts=post_store,
        profiles=ProfileStore(fake_db),
        images=ImagePipeline(blobs),
    )


@pytest.fixture
def app(services):
    return create_app({"TESTING": True, "SECRET_KEY": "test"}, svc=services)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_client(client, user):
    with client.session_transaction() as sess:
        sess[SESSION_KEY] = user.to_dict()
    return client
