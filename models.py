from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

CATEGORIES = ("journal", "archive", "notes")
STATUSES = ("published", "draft")
DEFAULT_CATEGORY = "journal"
DEFAULT_STATUS = "published"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Server timestamps arrive as epoch milliseconds; older records hold ISO strings."""
    if value is None or value == "":
        return EPOCH
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return EPOCH
    if isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return EPOCH
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    return EPOCH


def to_count(value: Any) -> int:
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError, OverflowError):
        return 0


def format_date(value: Any) -> str:
    dt = parse_timestamp(value)
    if dt == EPOCH:
        return ""
    return dt.strftime("%b %d, %Y")


@dataclass
class PostForm:
    """Fields the admin edits for a post."""

    title: str = ""
    category: str = DEFAULT_CATEGORY
    content: str = ""
    excerpt: str = ""

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "PostForm":
        category = (data.get("category") or DEFAULT_CATEGORY).strip()
        if category not in CATEGORIES:
            category = DEFAULT_CATEGORY
        return cls(
            title=data.get("title") or "",
            category=category,
            content=data.get("content") or "",
            excerpt=data.get("excerpt") or "",
        )


@dataclass
class Post:
    id: str
    title: str
    content: str
    excerpt: str = ""
    category: str = DEFAULT_CATEGORY
    status: str = DEFAULT_STATUS
    image_url: str = ""
    created_at: Any = None
    updated_at: Any = None
    user_id: str = ""
    username: str = ""
    profile_picture: str = ""
    likes: int = 0
    liked_by: List[str] = field(default_factory=list)

    @property
    def created(self) -> datetime:
        return parse_timestamp(self.created_at)

    @property
    def is_draft(self) -> bool:
        return self.status == "draft"

    @classmethod
    def from_record(cls, key: str, record: Dict[str, Any]) -> "Post":
        category = record.get("category")
        if category not in CATEGORIES:
            category = DEFAULT_CATEGORY
        status = record.get("status")
        if status not in STATUSES:
            status = DEFAULT_STATUS
        liked_by = record.get("likedBy") or []
        if isinstance(liked_by, dict):
            # the store turns sparse arrays into objects
            liked_by = list(liked_by.values())
        return cls(
            id=key,
            title=record.get("title", ""),
            content=record.get("content", ""),
            excerpt=record.get("excerpt") or "",
            category=category,
            status=status,
            image_url=record.get("imageUrl") or "",
            created_at=record.get("createdAt"),
            updated_at=record.get("updatedAt"),
            user_id=record.get("userId", ""),
            username=record.get("username", ""),
            profile_picture=record.get("profilePicture", ""),
            likes=to_count(record.get("likes")),
            liked_by=list(liked_by),
        )

    def to_form(self) -> PostForm:
        return PostForm(
            title=self.title,
            category=self.category,
            content=self.content,
            excerpt=self.excerpt,
        )


def sort_posts(posts: List[Post]) -> List[Post]:
    return sorted(posts, key=lambda p: p.created, reverse=True)


@dataclass
class SessionUser:
    uid: str
    email: str = ""
    display_name: str = ""
    photo_url: str = ""
    id_token: str = ""
    refresh_token: str = ""
    # epoch seconds; 0 means unknown
    expires_at: float = 0

    @property
    def default_username(self) -> str:
        return (self.email or "").split("@")[0]

    @property
    def name(self) -> str:
        return self.display_name or self.default_username

    def token_expiring(self, now: float, margin: float = 300) -> bool:
        return self.expires_at - now < margin

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["SessionUser"]:
        if not isinstance(data, dict) or not data.get("uid"):
            return None
        return cls(
            uid=data["uid"],
            email=data.get("email") or "",
            display_name=data.get("display_name") or "",
            photo_url=data.get("photo_url") or "",
            id_token=data.get("id_token") or "",
            refresh_token=data.get("refresh_token") or "",
            expires_at=float(data.get("expires_at") or 0),
        )


@dataclass(frozen=True)
class Quote:
    text: str
    author: str
