"""Tests for the REST document store client."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from errors import RemoteError
from realtime import SERVER_TIMESTAMP, RealtimeDatabase


def response(payload=None, content=b"x", error=None):
    resp = MagicMock(content=content)
    resp.json.return_value = payload
    if error:
        resp.raise_for_status.side_effect = error
    return resp


@pytest.fixture
def http():
    return MagicMock()


@pytest.fixture
def db(http):
    return RealtimeDatabase("https://blog.example.firebaseio.com/", timeout=3, session=http)


def test_get_builds_json_url_with_auth(db, http):
    http.request.return_value = response({"a": 1})
    assert db.get("/blog-posts/", id_token="tok") == {"a": 1}
    http.request.assert_called_once_with(
        "GET",
        "https://blog.example.firebaseio.com/blog-posts.json",
        params={"auth": "tok"},
        json=None,
        timeout=3,
    )


def test_absent_path_is_none(db, http):
    http.request.return_value = response(None, content=b"null")
    assert db.get("users/nobody") is None


def test_push_returns_generated_key(db, http):
    http.request.return_value = response({"name": "-Nabc"})
    assert db.push("blog-posts", {"createdAt": SERVER_TIMESTAMP}) == "-Nabc"
    method, _ = http.request.call_args.args
    assert method == "POST"
    assert http.request.call_args.kwargs["json"] == {"createdAt": {".sv": "timestamp"}}


def test_push_without_key_is_an_error(db, http):
    http.request.return_value = response({})
    with pytest.raises(RemoteError):
        db.push("blog-posts", {})


@pytest.mark.parametrize("call,method", [("set", "PUT"), ("update", "PATCH")])
def test_writes_use_expected_verbs(db, http, call, method):
    http.request.return_value = response(None, content=b"")
    getattr(db, call)("users/u1", {"admin": True})
    assert http.request.call_args.args[0] == method


def test_delete(db, http):
    http.request.return_value = response(None, content=b"null")
    db.delete("blog-posts/-Nabc")
    assert http.request.call_args.args == ("DELETE", "https://blog.example.firebaseio.com/blog-posts/-Nabc.json")


def test_http_error_becomes_remote_error(db, http):
    http.request.return_value = response(error=requests.HTTPError("401 Unauthorized"))
    with pytest.raises(RemoteError):
        db.get("blog-posts")


def test_transport_error_becomes_remote_error(db, http):
    http.request.side_effect = requests.ConnectionError("offline")
    with pytest.raises(RemoteError):
        db.delete("blog-posts/x")


def test_non_json_success_body_becomes_remote_error(db, http):
    resp = response(content=b"<html>maintenance</html>")
    resp.json.side_effect = ValueError("Expecting value")
    http.request.return_value = resp
    with pytest.raises(RemoteError, match="unreadable"):
        db.get("blog-posts")
