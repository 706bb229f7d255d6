from __future__ import annotations

from datetime import datetime, timezone

from models import EPOCH, Post, PostForm, SessionUser, format_date, parse_timestamp, to_count


def test_parse_timestamp_variants():
    assert parse_timestamp(None) == EPOCH
    assert parse_timestamp("not a date") == EPOCH
    assert parse_timestamp(0) == EPOCH
    assert parse_timestamp(1_700_000_000_000) == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
    assert parse_timestamp("2024-02-10T08:00:00Z") == datetime(2024, 2, 10, 8, tzinfo=timezone.utc)


def test_out_of_range_timestamp_is_epoch():
    assert parse_timestamp(10**20) == EPOCH
    assert parse_timestamp(-(10**20)) == EPOCH
    assert parse_timestamp(float("nan")) == EPOCH


def test_to_count_coerces_junk_to_zero():
    assert to_count("many") == 0
    assert to_count(None) == 0
    assert to_count(-3) == 0
    assert to_count("7") == 7
    assert Post.from_record("k", {"likes": {"a": 1}}).likes == 0


def test_format_date():
    assert format_date("2024-02-10T08:00:00") == "Feb 10, 2024"
    assert format_date(None) == ""


def test_from_record_maps_wire_names():
    post = Post.from_record(
        "k",
        {
            "title": "Between Words",
            "content": "Language both reveals and conceals truth.",
            "imageUrl": "https://cdn/x.png",
            "createdAt": 10,
            "userId": "u1",
            "username": "w",
            "profilePicture": "p",
            "likes": 3,
            "likedBy": {"0": "a", "1": "b"},
            "category": "notes",
            "status": "draft",
        },
    )
    assert post.image_url == "https://cdn/x.png"
    assert post.liked_by == ["a", "b"]
    assert post.likes == 3
    assert post.is_draft
    assert post.to_form() == PostForm(title="Between Words", category="notes", content=post.content)


def test_post_form_from_mapping_normalises_category():
    assert PostForm.from_mapping({"title": "t", "category": "poetry"}).category == "journal"
    assert PostForm.from_mapping({}).title == ""


def test_session_user_round_trip_and_defaults():
    user = SessionUser(uid="u", email="still@example.com")
    assert SessionUser.from_dict(user.to_dict()) == user
    assert user.name == "still"
    assert SessionUser.from_dict({"email": "x"}) is None


def test_session_user_token_expiring():
    user = SessionUser(uid="u", expires_at=10_000)
    assert not user.token_expiring(now=1_000)
    assert user.token_expiring(now=9_800)
    assert SessionUser(uid="u").token_expiring(now=1_000)
