from __future__ import annotations

import json as _json


_REASON_PHRASES: dict[int, str] = {
    200: "OK",
    201: "Created",
    204: "No Content",
    301: "Moved Permanently",
    302: "Found",
    303: "See Other",
    304: "Not Modified",
    307: "Temporary Redirect",
    308: "Permanent Redirect",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    413: "Content Too Large",
    431: "Request Header Fields Too Large",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}


def reason_phrase(status: int) -> str:
    return _REASON_PHRASES.get(status, "Unknown")


class Response:
    """HTTP response object that buffers its body until serialised.

    Every response carries a classification (``type()``) alongside its
    status code. Redirects are their own classification so callers can ask
    "is this a redirect?" without inspecting status codes.
    """

    TEXT = "text"
    HTML = "html"
    JSON = "json"
    REDIRECT = "redirect"

    __slots__ = ("status", "_headers", "_body_parts", "_type", "_redirect")

    status: int
    _headers: dict[str, str]
    _body_parts: list[bytes]
    _type: str
    _redirect: str | None

    def __init__(self) -> None:
        self.status = 200
        self._headers = {}
        self._body_parts = []
        self._type = Response.TEXT
        self._redirect = None

    def __repr__(self) -> str:
        return f"<Response {self.status} {self._type}>"

    @classmethod
    def error(cls, status: int) -> Response:
        """A plain-text response whose body is the reason phrase for *status*.

        Both the framework and the bare server build their error replies
        here, so a failure looks the same in-process and over the wire.
        """
        response = cls()
        response.set_status(status)
        response.text(reason_phrase(status))
        return response

    def type(self) -> str:
        return self._type

    def redirect(self, url: str | None = None, status: int = 302) -> str | None | Response:
        """Get or set the redirect target.

        ``redirect()`` returns the target URL, or ``None`` when this response
        is not a redirect. ``redirect(url)`` turns the response into a
        redirect to *url* and returns the response for chaining.
        """
        if url is None:
            return self._redirect if self._type == Response.REDIRECT else None
        if not 300 <= status < 400:
            raise ValueError(f"redirect status must be 3xx, got {status}")
        self._type = Response.REDIRECT
        self._redirect = url
        self.status = status
        self._headers["Location"] = url
        self._body_parts = []
        return self

    def html(self, content: str) -> Response:
        self._set_body(Response.HTML, "text/html; charset=utf-8", content.encode("utf-8"))
        return self

    def json(self, data: object) -> Response:
        self._set_body(Response.JSON, "application/json", _json.dumps(data).encode("utf-8"))
        return self

    def text(self, content: str) -> Response:
        self._set_body(Response.TEXT, "text/plain; charset=utf-8", content.encode("utf-8"))
        return self

    def _set_body(self, kind: str, content_type: str, body: bytes) -> None:
        self._type = kind
        self._redirect = None
        self._headers.pop("Location", None)
        self._headers["Content-Type"] = content_type
        self._body_parts = [body]

    def set_status(self, code: int) -> None:
        self.status = code

    def set_header(self, name: str, value: str) -> None:
        self._headers[name] = value

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self._headers.items():
            if key.lower() == lowered:
                return value
        return None

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    def write(self, data: bytes | str) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._body_parts.append(data)

    @property
    def content(self) -> bytes:
        return b"".join(self._body_parts)

    def to_bytes(self, *, keep_alive: bool = True) -> bytes:
        """Serialise to HTTP/1.1 wire format.

        Content-Length is always generated from the body; a user-supplied
        value is ignored.
        """
        body = self.content
        reason = reason_phrase(self.status)
        lines = [f"HTTP/1.1 {self.status} {reason}"]
        for name, value in self._headers.items():
            if name.lower() in ("content-length", "connection"):
                continue
            lines.append(f"{name}: {value}")
        lines.append(f"Content-Length: {len(body)}")
        if not keep_alive:
            lines.append("Connection: close")
        head = "\r\n".join(lines) + "\r\n\r\n"
        return head.encode("latin-1") + body
