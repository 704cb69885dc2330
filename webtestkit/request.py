from __future__ import annotations

import json
import urllib.parse


def _split_uri(uri: str) -> tuple[str, dict[str, str]]:
    """Split a request target into its path and first-value query params."""
    if "?" in uri:
        path_part, _, query_string = uri.partition("?")
        parsed_qs = urllib.parse.parse_qs(query_string)
        return path_part, {k: v[0] for k, v in parsed_qs.items()}
    return uri, {}


class Request:
    """HTTP request description handed to the application entrypoint."""

    __slots__ = (
        "method",
        "path",
        "full_path",
        "query_params",
        "headers",
        "body",
        "params",
        "version",
        "_raw_headers",
    )

    method: str
    path: str
    full_path: str
    query_params: dict[str, str]
    headers: dict[str, str]
    body: bytes
    params: dict[str, str]
    version: str

    def __init__(
        self,
        *,
        method: str,
        path: str,
        full_path: str,
        query_params: dict[str, str],
        headers: dict[str, str],
        body: bytes,
        version: str = "HTTP/1.1",
    ) -> None:
        self.method = method
        self.path = path
        self.full_path = full_path
        self.query_params = query_params
        self.headers = headers
        self.body = body
        self.params = {}
        self.version = version
        self._raw_headers: list[tuple[bytes, bytes]] = []

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.full_path}>"

    @classmethod
    def build(
        cls,
        method: str,
        uri: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes = b"",
    ) -> Request:
        """Build a request for *method* and *uri* without going through a socket."""
        path, query_params = _split_uri(uri)
        hdrs = {name.lower(): value for name, value in (headers or {}).items()}
        req = cls(
            method=method.upper(),
            path=path,
            full_path=uri,
            query_params=query_params,
            headers=hdrs,
            body=body,
        )
        req._raw_headers = [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in hdrs.items()
        ]
        return req

    @classmethod
    def _from_raw(cls, raw_head: bytes, body: bytes) -> Request:
        """Build a Request from a raw HTTP head (request line + headers).

        Raises:
            ValueError: If the request line is malformed.
        """
        lines = raw_head.split(b"\r\n")
        parts = lines[0].decode("latin-1").split(" ")
        if len(parts) != 3 or not parts[0] or not parts[1].startswith("/"):
            raise ValueError(f"malformed request line: {lines[0]!r}")
        method, target, version = parts
        if not version.startswith("HTTP/1."):
            raise ValueError(f"unsupported protocol version: {version!r}")

        # Last value wins in the dict, duplicates survive in raw_headers
        headers: dict[str, str] = {}
        raw_headers: list[tuple[bytes, bytes]] = []
        for line in lines[1:]:
            if not line:
                continue
            name, sep, value = line.partition(b":")
            if not sep or not name.strip():
                raise ValueError(f"malformed header line: {line!r}")
            name = name.strip()
            value = value.strip()
            raw_headers.append((name, value))
            headers[name.decode("latin-1").lower()] = value.decode("latin-1")

        path, query_params = _split_uri(target)
        req = cls(
            method=method,
            path=path,
            full_path=target,
            query_params=query_params,
            headers=headers,
            body=body,
            version=version,
        )
        req._raw_headers = raw_headers
        return req

    @property
    def raw_headers(self) -> list[tuple[bytes, bytes]]:
        """Headers as ordered list of (name, value) byte pairs.

        Preserves duplicates (e.g. multiple Set-Cookie).
        """
        return self._raw_headers

    @property
    def keep_alive(self) -> bool:
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.0":
            return connection == "keep-alive"
        return connection != "close"

    def json(self) -> object:
        """Parse body as JSON."""
        return json.loads(self.body)
