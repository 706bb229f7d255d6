from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from errors import RemoteError
from models import SessionUser
from realtime import RealtimeDatabase

logger = logging.getLogger(__name__)

USERS_PATH = "users"


def merge_profile(
    existing: Optional[Dict[str, Any]],
    user: SessionUser,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Fill in what the stored profile is missing; stored fields always win."""
    existing = existing or {}
    default_name = user.default_username
    merged: Dict[str, Any] = {
        "email": user.email,
        "username": existing.get("username") or default_name,
        "displayName": existing.get("displayName") or user.display_name or default_name,
        "profilePicture": user.photo_url or existing.get("profilePicture") or "",
        "admin": existing.get("admin") or False,
    }
    if not existing:
        now = now or datetime.now(timezone.utc)
        merged["createdAt"] = now.replace(microsecond=0).isoformat()
    merged.update(existing)
    return merged


class ProfileStore:
    def __init__(self, db: RealtimeDatabase) -> None:
        self.db = db

    def get(self, uid: str, id_token: Optional[str] = None) -> Optional[Dict[str, Any]]:
        return self.db.get(f"{USERS_PATH}/{uid}", id_token=id_token)

    def sync(self, user: Optional[SessionUser]) -> None:
        """Create or merge ``users/{uid}``; subscribed to session changes."""
        if user is None:
            return
        path = f"{USERS_PATH}/{user.uid}"
        try:
            existing = self.db.get(path, id_token=user.id_token)
            self.db.set(path, merge_profile(existing, user), id_token=user.id_token)
        except RemoteError:
            logger.exception("Error managing user %s in database", user.uid)
