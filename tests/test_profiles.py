"""Tests for user profile merging on sign-in."""

from __future__ import annotations

from datetime import datetime, timezone

from errors import RemoteError
from models import SessionUser
from profiles import ProfileStore, merge_profile

NOW = datetime(2024, 2, 18, 9, 30, tzinfo=timezone.utc)


def session_user(**overrides):
    fields = {"uid": "u1", "email": "leaf@example.com", "display_name": "", "photo_url": ""}
    fields.update(overrides)
    return SessionUser(**fields)


class TestMergeProfile:
    def test_new_profile_defaults(self):
        merged = merge_profile(None, session_user(), now=NOW)
        assert merged == {
            "email": "leaf@example.com",
            "username": "leaf",
            "displayName": "leaf",
            "profilePicture": "",
            "admin": False,
            "createdAt": "2024-02-18T09:30:00+00:00",
        }

    def test_display_name_from_session(self):
        merged = merge_profile(None, session_user(display_name="Leaf Writer"), now=NOW)
        assert merged["displayName"] == "Leaf Writer"

    def test_admin_flag_survives_sign_in(self):
        existing = {"email": "leaf@example.com", "username": "leafy", "admin": True, "createdAt": "x"}
        merged = merge_profile(existing, session_user(), now=NOW)
        assert merged["admin"] is True

    def test_existing_fields_preserved_and_created_at_untouched(self):
        existing = {"username": "custom", "displayName": "Custom", "createdAt": "2020-01-01T00:00:00"}
        merged = merge_profile(existing, session_user(display_name="Other"), now=NOW)
        assert merged["username"] == "custom"
        assert merged["displayName"] == "Custom"
        assert merged["createdAt"] == "2020-01-01T00:00:00"
        assert merged["admin"] is False


class TestProfileStore:
    def test_sync_creates_then_merges(self, fake_db):
        store = ProfileStore(fake_db)
        store.sync(session_user())
        fake_db.data["users"]["u1"]["admin"] = True
        store.sync(session_user(photo_url="https://example.com/p.png"))
        profile = store.get("u1")
        assert profile["admin"] is True
        assert profile["username"] == "leaf"

    def test_sync_ignores_sign_out(self, fake_db):
        ProfileStore(fake_db).sync(None)
        assert fake_db.calls == []

    def test_sync_failure_is_logged_not_raised(self, fake_db, caplog):
        fake_db.fail = True
        ProfileStore(fake_db).sync(session_user())
        assert "Error managing user u1" in caplog.text
