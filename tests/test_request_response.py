"""Tests for Request and Response objects (no sockets involved)."""

from __future__ import annotations

import json

import pytest

from webtestkit.request import Request
from webtestkit.response import Response


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


def test_build_splits_query_string() -> None:
    req = Request.build("get", "/search?q=green&page=2")
    assert req.method == "GET"
    assert req.path == "/search"
    assert req.full_path == "/search?q=green&page=2"
    assert req.query_params == {"q": "green", "page": "2"}
    assert req.body == b""
    assert req.params == {}


def test_build_lowercases_headers() -> None:
    req = Request.build("POST", "/", headers={"Content-Type": "application/json"}, body=b"{}")
    assert req.headers == {"content-type": "application/json"}
    assert req.raw_headers == [(b"content-type", b"application/json")]
    assert req.json() == {}


def test_from_raw_parses_request_line_and_headers() -> None:
    head = (
        b"POST /items?x=1 HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"Set-Cookie: a=1\r\n"
        b"Set-Cookie: b=2"
    )
    req = Request._from_raw(head, b'{"k": "v"}')
    assert req.method == "POST"
    assert req.path == "/items"
    assert req.query_params == {"x": "1"}
    assert req.headers["host"] == "localhost"
    # Last value wins in the dict, duplicates kept in raw_headers
    assert req.headers["set-cookie"] == "b=2"
    assert req.raw_headers == [
        (b"Host", b"localhost"),
        (b"Set-Cookie", b"a=1"),
        (b"Set-Cookie", b"b=2"),
    ]
    assert req.json() == {"k": "v"}


@pytest.mark.parametrize(
    "head",
    [
        b"GARBAGE",
        b"GET nopath HTTP/1.1",
        b"GET / SPDY/3",
        b"GET / HTTP/1.1\r\nno-colon-here",
    ],
)
def test_from_raw_rejects_malformed_heads(head: bytes) -> None:
    with pytest.raises(ValueError):
        Request._from_raw(head, b"")


def test_keep_alive_defaults() -> None:
    assert Request._from_raw(b"GET / HTTP/1.1", b"").keep_alive
    assert not Request._from_raw(b"GET / HTTP/1.1\r\nConnection: close", b"").keep_alive
    assert not Request._from_raw(b"GET / HTTP/1.0", b"").keep_alive
    assert Request._from_raw(b"GET / HTTP/1.0\r\nConnection: keep-alive", b"").keep_alive


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------


def test_new_response_is_plain_text_200() -> None:
    resp = Response()
    assert resp.status == 200
    assert resp.type() == Response.TEXT
    assert resp.redirect() is None
    assert resp.content == b""


def test_redirect_sets_type_status_and_location() -> None:
    resp = Response()
    assert resp.redirect("/login") is resp
    assert resp.type() == Response.REDIRECT
    assert resp.status == 302
    assert resp.redirect() == "/login"
    assert resp.header("location") == "/login"


def test_redirect_with_custom_status() -> None:
    resp = Response().redirect("/moved", status=301)
    assert isinstance(resp, Response)
    assert resp.status == 301


def test_redirect_rejects_non_3xx_status() -> None:
    with pytest.raises(ValueError):
        Response().redirect("/x", status=200)


def test_setting_a_body_clears_redirect() -> None:
    resp = Response()
    resp.redirect("/elsewhere")
    resp.html("<p>hi</p>")
    assert resp.type() == Response.HTML
    assert resp.redirect() is None
    assert resp.header("Location") is None
    assert resp.header("content-type") == "text/html; charset=utf-8"


def test_json_body() -> None:
    resp = Response().json({"a": [1, 2]})
    assert resp.type() == Response.JSON
    assert json.loads(resp.content) == {"a": [1, 2]}


def test_write_accumulates_str_and_bytes() -> None:
    resp = Response()
    resp.write("hello ")
    resp.write(b"world")
    assert resp.content == b"hello world"


def test_to_bytes_formats_status_headers_and_body() -> None:
    resp = Response()
    resp.set_status(201)
    resp.set_header("X-Custom", "test")
    resp.set_header("Content-Length", "999")
    resp.write(b"created")
    raw = resp.to_bytes()
    assert raw.startswith(b"HTTP/1.1 201 Created\r\n")
    assert b"X-Custom: test\r\n" in raw
    # User-supplied Content-Length is replaced by the real one
    assert b"Content-Length: 7\r\n" in raw
    assert b"999" not in raw
    assert b"Connection: close" not in raw
    assert raw.endswith(b"\r\n\r\ncreated")


def test_to_bytes_without_keep_alive_adds_connection_close() -> None:
    raw = Response().to_bytes(keep_alive=False)
    assert b"Connection: close\r\n" in raw


def test_to_bytes_unknown_status_code() -> None:
    resp = Response()
    resp.set_status(299)
    assert resp.to_bytes().startswith(b"HTTP/1.1 299 Unknown\r\n")


@pytest.mark.parametrize(
    ("status", "body"),
    [(400, b"Bad Request"), (404, b"Not Found"), (500, b"Internal Server Error")],
)
def test_error_response_carries_reason_phrase(status: int, body: bytes) -> None:
    resp = Response.error(status)
    assert resp.status == status
    assert resp.type() == Response.TEXT
    assert resp.content == body
    assert resp.header("content-type") == "text/plain; charset=utf-8"
