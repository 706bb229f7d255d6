from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Dict, List, Optional

from flask import (
    Flask,
    abort,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)

import config
from auth import AuthClient, SessionObserver, validate_signup
from blobs import BlobStore
from dashboard import Dashboard, render_markdown
from errors import BlogError, ValidationError
from images import ImageFile, ImagePipeline
from models import Post, PostForm, SessionUser, format_date
from posts import PostStore, validate_form
from profiles import ProfileStore
from quotes import random_quote
from realtime import RealtimeDatabase

EXTENSION_KEY = "vigintitres"


@dataclass
class Services:
    auth: AuthClient
    observer: SessionObserver
    posts: PostStore
    profiles: ProfileStore
    images: ImagePipeline
    # process-wide: the last list that loaded successfully, shown again when a refresh fails
    last_posts: List[Post] = field(default_factory=list)
    posts_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


def build_services(settings: Dict[str, Any]) -> Services:
    timeout = settings["HTTP_TIMEOUT"]
    db = RealtimeDatabase(settings["FIREBASE_DATABASE_URL"], timeout=timeout)
    blobs = BlobStore(
        bucket=settings["BLOB_BUCKET"],
        public_base=settings["BLOB_PUBLIC_BASE"],
        endpoint=settings["BLOB_ENDPOINT"],
        access_key_id=settings["BLOB_ACCESS_KEY_ID"],
        secret_access_key=settings["BLOB_SECRET_ACCESS_KEY"],
    )
    return Services(
        auth=AuthClient(settings["FIREBASE_API_KEY"], timeout=timeout),
        observer=SessionObserver(),
        posts=PostStore(db, blobs),
        profiles=ProfileStore(db),
        images=ImagePipeline(
            blobs,
            optimizer_url=settings["IMAGE_OPTIMIZER_URL"],
            optimizer_timeout=settings["IMAGE_OPTIMIZER_TIMEOUT"],
        ),
    )


def services() -> Services:
    return current_app.extensions[EXTENSION_KEY]


def current_user() -> Optional[SessionUser]:
    return services().observer.current()


def is_authenticated() -> bool:
    return current_user() is not None


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not is_authenticated():
            return redirect(url_for("admin_login", next=request.path))
        return view(*args, **kwargs)

    return wrapped


def load_posts() -> List[Post]:
    svc = services()
    user = current_user()
    try:
        posts = svc.posts.list_posts(id_token=user.id_token if user else None)
    except BlogError as exc:
        current_app.logger.error("Error fetching posts: %s", exc)
        flash("Failed to load posts. Please try again.", "error")
        with svc.posts_lock:
            return list(svc.last_posts)
    with svc.posts_lock:
        svc.last_posts = list(posts)
    return posts


def mirror(
    created: Optional[Post] = None,
    updated: Optional[Post] = None,
    deleted_id: Optional[str] = None,
) -> None:
    """Keep the cached list in step with a write that just succeeded."""
    svc = services()
    with svc.posts_lock:
        board = Dashboard(posts=svc.last_posts)
        if created is not None:
            board.apply_created(created)
        if updated is not None:
            board.apply_updated(updated)
        if deleted_id:
            board.apply_deleted(deleted_id)
        svc.last_posts = board.posts


def get_post_or_404(post_id: str) -> Post:
    user = current_user()
    try:
        post = services().posts.get_post(post_id, id_token=user.id_token if user else None)
    except BlogError as exc:
        current_app.logger.error("Error fetching post %s: %s", post_id, exc)
        abort(503)
    if post is None:
        abort(404)
    return post


def safe_next(target: Optional[str]) -> str:
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return url_for("admin_dashboard")


def render_dashboard(dashboard: Dashboard, status_code: int = 200):
    return (
        render_template("admin_dashboard.html", dashboard=dashboard),
        status_code,
    )


def register_routes(app: Flask) -> None:
    @app.before_request
    def keep_token_fresh():
        svc = services()
        user = svc.observer.current()
        if user is None or not user.token_expiring(time.time()):
            return None
        try:
            refreshed = svc.auth.refresh(user)
        except BlogError as exc:
            current_app.logger.warning("Token refresh failed for %s: %s", user.uid, exc)
            svc.observer.replace(None)
            flash(str(exc), "error")
            return None
        svc.observer.replace(refreshed)
        return None

    @app.context_processor
    def inject_globals():
        return {
            "site_title": app.config["SITE_TITLE"],
            "site_description": app.config["SITE_DESCRIPTION"],
            "format_date": format_date,
            "render_markdown": render_markdown,
            "current_user": current_user(),
            "is_authenticated": is_authenticated,
        }

    @app.route("/")
    def landing():
        return render_template("index.html", quote=random_quote())

    @app.route("/about")
    def about():
        return render_template("about.html")

    @app.route("/scriptures")
    def scriptures():
        posts = [p for p in load_posts() if not p.is_draft or is_authenticated()]
        return render_template("scriptures.html", posts=posts)

    @app.route("/scriptures/<post_id>")
    def scripture(post_id: str):
        post = get_post_or_404(post_id)
        if post.is_draft and not is_authenticated():
            abort(404)
        return render_template("scripture.html", post=post)

    @app.route("/admin/login", methods=["GET", "POST"])
    def admin_login():
        svc = services()
        mode = request.values.get("mode", "signin")
        if request.method == "POST":
            email = request.form.get("email", "").strip()
            password = request.form.get("password", "")
            try:
                if mode == "signup":
                    validate_signup(password, request.form.get("confirm_password", ""))
                    user = svc.auth.sign_up(
                        email, password, request.form.get("username", "").strip()
                    )
                    message = "Account created successfully!"
                else:
                    user = svc.auth.sign_in_with_password(email, password)
                    message = "Signed in successfully!"
            except BlogError as exc:
                flash(str(exc), "error")
                return render_template("admin_login.html", mode=mode, email=email), 400
            svc.observer.replace(user)
            flash(message, "success")
            return redirect(safe_next(request.args.get("next")))
        return render_template("admin_login.html", mode=mode, email="")

    @app.route("/admin/login/idp", methods=["POST"])
    def admin_login_idp():
        svc = services()
        credential = request.form.get("credential", "")
        provider = request.form.get("provider", "google.com")
        if not credential:
            flash("No credential received from the identity provider.", "error")
            return redirect(url_for("admin_login"))
        try:
            user = svc.auth.sign_in_with_idp(provider, credential, request.url_root)
        except BlogError as exc:
            flash(str(exc), "error")
            return redirect(url_for("admin_login"))
        svc.observer.replace(user)
        flash("Signed in successfully!", "success")
        return redirect(url_for("admin_dashboard"))

    @app.route("/admin/logout", methods=["GET", "POST"])
    def admin_logout():
        services().observer.replace(None)
        flash("Signed out successfully!", "success")
        return redirect(url_for("landing"))

    @app.route("/admin")
    @login_required
    def admin_dashboard():
        dashboard = Dashboard(active_tab=request.args.get("tab", "create"), posts=load_posts())
        return render_dashboard(dashboard)

    @app.route("/admin/posts/<post_id>/edit")
    @login_required
    def admin_edit_post(post_id: str):
        dashboard = Dashboard(posts=load_posts())
        dashboard.start_edit(get_post_or_404(post_id))
        return render_dashboard(dashboard)

    @app.route("/admin/posts", methods=["POST"])
    @login_required
    def admin_save_post():
        svc = services()
        user = current_user()
        action = request.form.get("action", "publish")
        dashboard = Dashboard(
            form=PostForm.from_mapping(request.form),
            editing_id=request.form.get("editing_id") or None,
            preview=request.form.get("preview") == "1",
        )

        if action == "preview":
            dashboard.toggle_preview()
            dashboard.posts = load_posts()
            return render_dashboard(dashboard)

        status = dashboard.submit_status(action)
        try:
            validate_form(dashboard.form)
            image = ImageFile.from_storage(request.files.get("image"))
            if image is not None:
                svc.images.validate(image)
            existing = None
            if dashboard.is_editing:
                # the stored record, not the form, says which image the post has now
                existing = svc.posts.get_post(dashboard.editing_id, id_token=user.id_token)
                if existing is None:
                    raise ValidationError("That post no longer exists.")
                dashboard.editing_image_url = existing.image_url
            image_url = svc.images.upload(user, image) if image is not None else None
            if existing is not None:
                updated = svc.posts.update_post(
                    user,
                    dashboard.editing_id,
                    dashboard.form,
                    status=status,
                    image_url=image_url,
                    previous_image_url=existing.image_url or None,
                )
                mirror(updated=updated)
                flash("Post updated successfully!", "success")
            else:
                created = svc.posts.create_post(user, dashboard.form, status=status, image_url=image_url)
                mirror(created=created)
                flash(
                    "Draft saved successfully!" if status == "draft" else "Post published successfully!",
                    "success",
                )
        except BlogError as exc:
            current_app.logger.warning("Saving post failed: %s", exc)
            flash(str(exc), "error")
            dashboard.posts = load_posts()
            return render_dashboard(dashboard, 400)
        return redirect(url_for("admin_dashboard", tab="manage"))

    @app.route("/admin/posts/<post_id>/status", methods=["POST"])
    @login_required
    def admin_toggle_status(post_id: str):
        post = get_post_or_404(post_id)
        status = "published" if post.is_draft else "draft"
        try:
            mirror(updated=services().posts.set_status(current_user(), post, status))
            flash(f"Post marked as {status}.", "success")
        except BlogError as exc:
            flash(str(exc), "error")
        return redirect(url_for("admin_dashboard", tab="manage"))

    @app.route("/admin/posts/<post_id>/delete", methods=["GET", "POST"])
    @login_required
    def admin_delete_post(post_id: str):
        post = get_post_or_404(post_id)
        if request.method == "GET":
            return render_template("admin_confirm_delete.html", post=post)
        if request.form.get("confirm") != "yes":
            flash("Deletion cancelled.", "success")
            return redirect(url_for("admin_dashboard", tab="manage"))
        try:
            services().posts.delete_post(current_user(), post)
            mirror(deleted_id=post.id)
            flash("Post deleted successfully!", "success")
        except BlogError as exc:
            flash(str(exc), "error")
        return redirect(url_for("admin_dashboard", tab="manage"))


def create_app(overrides: Optional[Dict[str, Any]] = None, svc: Optional[Services] = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config)
    if overrides:
        app.config.update(overrides)
    app.secret_key = app.config["SECRET_KEY"]
    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    svc = svc or build_services(app.config)
    svc.observer.subscribe(svc.profiles.sync)
    app.extensions[EXTENSION_KEY] = svc

    register_routes(app)
    return app


if __name__ == "__main__":
    create_app().run(debug=True)
