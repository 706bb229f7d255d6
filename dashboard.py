from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from markdown import markdown

from models import Post, PostForm, sort_posts

TABS = ("create", "manage", "journal", "archive")


def render_markdown(md_text: str) -> str:
    return markdown(
        md_text or "",
        extensions=["fenced_code", "codehilite", "tables", "sane_lists"],
        output_format="html5",
    )


@dataclass
class Dashboard:
    """State behind the admin page: tab, mirrored posts, the draft form and edit marker."""

    active_tab: str = "create"
    posts: List[Post] = field(default_factory=list)
    form: PostForm = field(default_factory=PostForm)
    editing_id: Optional[str] = None
    editing_image_url: str = ""
    preview: bool = False

    def __post_init__(self) -> None:
        self.select_tab(self.active_tab)

    def select_tab(self, tab: Optional[str]) -> None:
        self.active_tab = tab if tab in TABS else "create"

    def visible_posts(self) -> List[Post]:
        if self.active_tab in ("journal", "archive"):
            return [p for p in self.posts if p.category == self.active_tab]
        return list(self.posts)

    def start_edit(self, post: Post) -> None:
        self.select_tab("create")
        self.form = post.to_form()
        self.editing_id = post.id
        self.editing_image_url = post.image_url
        self.preview = False

    def reset_form(self) -> None:
        self.form = PostForm()
        self.editing_id = None
        self.editing_image_url = ""
        self.preview = False

    @property
    def is_editing(self) -> bool:
        return self.editing_id is not None

    @staticmethod
    def submit_status(action: Optional[str]) -> str:
        # "save as draft" wins over whatever the primary button would publish as
        return "draft" if action == "draft" else "published"

    def toggle_preview(self) -> None:
        self.preview = not self.preview

    def preview_html(self) -> str:
        return render_markdown(self.form.content)

    def apply_created(self, post: Post) -> None:
        self.posts = sort_posts([post] + [p for p in self.posts if p.id != post.id])

    def apply_updated(self, post: Post) -> None:
        self.posts = sort_posts([post if p.id == post.id else p for p in self.posts])

    def apply_deleted(self, post_id: str) -> None:
        self.posts = [p for p in self.posts if p.id != post_id]
