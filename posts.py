from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from blobs import BlobStore
from errors import AuthRequiredError, BlogError, RemoteError, ValidationError
from models import STATUSES, Post, PostForm, SessionUser, sort_posts
from realtime import SERVER_TIMESTAMP, RealtimeDatabase

logger = logging.getLogger(__name__)

POSTS_PATH = "blog-posts"


def require_user(user: Optional[SessionUser]) -> SessionUser:
    if user is None:
        raise AuthRequiredError()
    return user


def validate_form(form: PostForm) -> None:
    if not form.title.strip() or not form.content.strip():
        raise ValidationError("Title and content are required.")


def check_status(status: str) -> str:
    if status not in STATUSES:
        raise ValidationError(f"Unknown status: {status}")
    return status


class PostStore:
    """Post records under ``blog-posts/{id}`` plus best-effort cleanup of their images."""

    def __init__(self, db: RealtimeDatabase, blobs: Optional[BlobStore] = None) -> None:
        self.db = db
        self.blobs = blobs

    def list_posts(self, id_token: Optional[str] = None) -> List[Post]:
        raw = self.db.get(POSTS_PATH, id_token=id_token) or {}
        posts = [
            Post.from_record(key, record)
            for key, record in raw.items()
            if isinstance(record, dict)
        ]
        return sort_posts(posts)

    def get_post(self, post_id: str, id_token: Optional[str] = None) -> Optional[Post]:
        if not post_id:
            return None
        record = self.db.get(f"{POSTS_PATH}/{post_id}", id_token=id_token)
        if not isinstance(record, dict):
            return None
        return Post.from_record(post_id, record)

    def _fetch_written(self, post_id: str, token: str) -> Post:
        post = self.get_post(post_id, id_token=token)
        if post is None:
            raise RemoteError("The post was saved but could not be read back.")
        return post

    def create_post(
        self,
        user: Optional[SessionUser],
        form: PostForm,
        status: str = "published",
        image_url: Optional[str] = None,
    ) -> Post:
        user = require_user(user)
        validate_form(form)
        record: Dict[str, Any] = {
            "title": form.title.strip(),
            "content": form.content.strip(),
            "excerpt": form.excerpt.strip(),
            "category": form.category,
            "status": check_status(status),
            "imageUrl": image_url or "",
            "createdAt": SERVER_TIMESTAMP,
            "userId": user.uid,
            "username": user.name,
            "profilePicture": user.photo_url,
            "likes": 0,
            "likedBy": [],
        }
        post_id = self.db.push(POSTS_PATH, record, id_token=user.id_token)
        logger.info("Created post %s (%s) by %s", post_id, status, user.uid)
        return self._fetch_written(post_id, user.id_token)

    def update_post(
        self,
        user: Optional[SessionUser],
        post_id: Optional[str],
        form: PostForm,
        status: str = "published",
        image_url: Optional[str] = None,
        previous_image_url: Optional[str] = None,
    ) -> Post:
        user = require_user(user)
        if not post_id:
            raise ValidationError("No post selected for editing.")
        validate_form(form)
        new_image = bool(image_url) and image_url != previous_image_url
        changes: Dict[str, Any] = {
            "title": form.title.strip(),
            "content": form.content.strip(),
            "excerpt": form.excerpt.strip(),
            "category": form.category,
            "status": check_status(status),
            "imageUrl": image_url if new_image else (previous_image_url or ""),
            "updatedAt": SERVER_TIMESTAMP,
        }
        self.db.update(f"{POSTS_PATH}/{post_id}", changes, id_token=user.id_token)
        logger.info("Updated post %s (%s) by %s", post_id, status, user.uid)
        if new_image and previous_image_url:
            self.discard_image(previous_image_url)
        return self._fetch_written(post_id, user.id_token)

    def set_status(self, user: Optional[SessionUser], post: Post, status: str) -> Post:
        user = require_user(user)
        self.db.update(
            f"{POSTS_PATH}/{post.id}",
            {"status": check_status(status), "updatedAt": SERVER_TIMESTAMP},
            id_token=user.id_token,
        )
        return self._fetch_written(post.id, user.id_token)

    def delete_post(self, user: Optional[SessionUser], post: Post) -> None:
        user = require_user(user)
        self.db.delete(f"{POSTS_PATH}/{post.id}", id_token=user.id_token)
        logger.info("Deleted post %s by %s", post.id, user.uid)
        if post.image_url:
            self.discard_image(post.image_url)

    def discard_image(self, url: str) -> None:
        """Best-effort: a stale image left in storage is only logged."""
        if self.blobs is None:
            logger.warning("No blob store configured; leaving %s in place", url)
            return
        try:
            self.blobs.delete(url)
        except BlogError as exc:
            logger.warning("Error deleting image %s: %s", url, exc)
